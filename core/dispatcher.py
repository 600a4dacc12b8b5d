"""
Dispatcher
----------
Central coordinator for one chat invocation.
All gates run here, in a fixed order, through the state machine:

    trigger → tool → env → deps → (help) → auth → params → build → run → respond

Each failing gate sends exactly one diagnostic template and stops.

Non-negotiable rule: the catalog is read-only; nothing survives an invocation.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional
import logging
import os

from api.messenger import Messenger, UserInfo
from commands.parser import (
    CommandParser, ExitCommand, Invocation, ToolCommand, UnrecognizedCommand,
)
from commands.registry import Catalog, ToolDefinition
from core.errors import (
    DispatchError, MessengerError, execution_failed, invalid_parameter,
    log_dispatch_error, missing_dependency, missing_env, unauthorized,
    user_lookup_failed,
)
from core.response import Delivery, Responder, ResponseFormatter
from core.state_machine import State, StateMachine, StateTransition
from infra.logging import InvocationContext
from security.permissions import AuthorizationResolver, ChannelDirectory
from tools.builder import TRIGGERED_VARS, BuiltCommand, CommandBuilder, InvocationEnv, inject_email
from tools.executor import ShellExecutor, is_failure
from tools.validator import ParameterValidator


HELP_WORD = "help"


def terminate_process(status: int) -> None:
    """Exit the whole process, from whichever thread handles the event."""
    logging.shutdown()
    os._exit(status)


@dataclass
class DispatchOutcome:
    """What happened to one invocation."""
    state: State
    error: Optional[DispatchError] = None
    command: Optional[BuiltCommand] = None
    output: Optional[str] = None
    delivery: Optional[Delivery] = None
    exit_status: Optional[int] = None
    history: List[StateTransition] = field(default_factory=list)

    @property
    def ignored(self) -> bool:
        return self.state == State.IDLE

    @property
    def rejected(self) -> bool:
        return self.state == State.REJECTED

    @property
    def responded(self) -> bool:
        return self.state == State.RESPONDED


class Dispatcher:
    """
    Dispatcher for catalog tools.

    Responsibilities:
    - Gate on trigger, env vars, dependencies, user, channel and parameters
    - Build and run the command
    - Hand the result to the responder

    This is the ONLY entry point for running catalog tools.
    """

    def __init__(
        self,
        catalog: Catalog,
        messenger: Messenger,
        executor: Optional[ShellExecutor] = None,
        formatter: Optional[ResponseFormatter] = None,
        responder: Optional[Responder] = None,
        on_exit: Optional[Callable[[int], None]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.catalog = catalog
        self._messenger = messenger
        self._executor = executor or ShellExecutor()
        self._parser = CommandParser(catalog)
        self._authorizer = AuthorizationResolver(catalog.admin, ChannelDirectory(messenger))
        self._validator = ParameterValidator(self._executor)
        self._builder = CommandBuilder()
        self._formatter = formatter or ResponseFormatter()
        self._responder = responder or Responder(catalog, messenger)
        self._on_exit = on_exit or terminate_process
        self._environ = environ
        self._logger = logging.getLogger("bashbot.dispatcher")

    @property
    def responder(self) -> Responder:
        return self._responder

    def handle(self, invocation: Invocation) -> DispatchOutcome:
        """Process one chat message end to end."""
        parsed = self._parser.parse(invocation.text)
        if parsed is None:
            return DispatchOutcome(state=State.IDLE)

        machine = StateMachine()
        with InvocationContext(invocation.timestamp or None):
            machine.transition(State.TRIGGER_MATCHED, "global trigger matched")
            self._logger.info(f"command detected: `{invocation.text}`")
            self._logger.info(f"Channel: {invocation.channel}")
            self._logger.info(f"User: {invocation.user}")
            self._logger.info(f"Timestamp: {invocation.timestamp}")

            if isinstance(parsed, ExitCommand):
                outcome = self._exit(machine, parsed, invocation)
            elif isinstance(parsed, UnrecognizedCommand):
                self._responder.send_config_message(invocation.channel, "command_not_found")
                machine.reject(f"unknown tool word '{parsed.word}'")
                outcome = DispatchOutcome(state=machine.state)
            else:
                outcome = self._run_tool(machine, parsed, invocation)

        outcome.history = machine.history
        if outcome.exit_status is not None:
            self._on_exit(outcome.exit_status)
        return outcome

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------

    def _reject(self, machine: StateMachine, channel: str, error: DispatchError) -> DispatchOutcome:
        log_dispatch_error(error, self._logger)
        self._responder.send_config_message(channel, error.template, error.passalong)
        machine.reject(error.message)
        return DispatchOutcome(state=machine.state, error=error)

    def check_env(self, tool: ToolDefinition) -> Optional[DispatchError]:
        """First required env var that is unset, TRIGGERED_* excluded."""
        environ = os.environ if self._environ is None else self._environ
        for envvar in tool.envvars:
            if envvar in TRIGGERED_VARS:
                continue
            if not environ.get(envvar):
                return missing_env(envvar, tool.trigger)
        return None

    def check_dependencies(self, tool: ToolDefinition) -> Optional[DispatchError]:
        """First required executable that is not on PATH."""
        for dependency in tool.dependencies:
            if self._executor.which(dependency) is None:
                return missing_dependency(dependency, tool.trigger)
        return None

    def _exit(self, machine: StateMachine, command: ExitCommand,
              invocation: Invocation) -> DispatchOutcome:
        self._responder.send(invocation.channel, command.farewell)
        machine.transition(State.RESPONDED, f"exit requested ({command.status})")
        self._logger.warning(f"Exiting with status {command.status}")
        return DispatchOutcome(state=machine.state, exit_status=command.status)

    def _run_tool(self, machine: StateMachine, command: ToolCommand,
                  invocation: Invocation) -> DispatchOutcome:
        tool, args = command.tool, command.args
        channel, user = invocation.channel, invocation.user
        for index, word in enumerate(args):
            self._logger.debug(f"{index}: {word}")

        machine.transition(State.TOOL_RESOLVED, f"tool '{tool.trigger}'")
        self._responder.send_config_message(channel, "processing_command")

        error = self.check_env(tool)
        if error:
            return self._reject(machine, channel, error)
        machine.transition(State.ENV_CHECKED, "env vars present")

        error = self.check_dependencies(tool)
        if error:
            return self._reject(machine, channel, error)
        machine.transition(State.DEPS_CHECKED, "dependencies present")

        try:
            user_info = self._messenger.get_user_info(user)
        except MessengerError as e:
            return self._reject(machine, channel, user_lookup_failed(user, str(e)))

        template = inject_email(tool, user_info.email)
        for line in self._formatter.metadata(tool, template):
            self._logger.info(line)

        allowed_channels = self._authorizer.allowed_channels(tool)
        authorized = self._authorizer.is_authorized(channel, tool)
        help_block = self._formatter.help_block(tool, allowed_channels)
        audit_line = " ".join([tool.trigger] + list(args))

        if HELP_WORD in args:
            self._responder.send(channel, help_block)
            machine.transition(State.RESPONDED, "help requested")
            return DispatchOutcome(state=machine.state)

        if not authorized:
            outcome = self._reject(machine, channel, unauthorized(channel, allowed_channels, tool.trigger))
            self._responder.send(channel, help_block)
            self._responder.log_to_channel(channel, user, audit_line)
            return outcome
        machine.transition(State.AUTHORIZED, f"channel {channel} permitted")

        parameters = self._validator.derive(tool)
        if tool.log:
            self._responder.log_to_channel(channel, user, audit_line)

        result = self._validator.validate(tool, args, parameters)
        if not result.ok:
            error = invalid_parameter(result.first_invalid_name, tool.trigger, result.first_invalid)
            return self._reject(machine, channel, error)
        machine.transition(State.PARAMS_VALIDATED, "all parameters valid")

        return self._execute(machine, tool, template, result.values, invocation, user_info)

    def _execute(self, machine: StateMachine, tool: ToolDefinition, template: str,
                 values: dict, invocation: Invocation, user_info: UserInfo) -> DispatchOutcome:
        env = InvocationEnv(
            triggered_at=invocation.timestamp,
            user_id=invocation.user,
            user_name=user_info.name,
            channel_id=invocation.channel,
            channel_name=self._authorizer.channel_name(invocation.channel),
        )
        built = self._builder.build(tool, template, values, env)
        machine.transition(State.BUILT, "command composed")
        self._logger.info("Triggered Command:")
        self._logger.info(built.display)

        output = self._executor.run(built.argv)
        machine.transition(State.EXECUTED, "command finished")
        self._logger.info(f"Return length: {len(output)}")

        error = None
        if is_failure(output):
            error = execution_failed(tool.trigger, output)
            log_dispatch_error(error, self._logger)

        transcript = self._formatter.transcript(tool, template, built.display, output)
        delivery = self._formatter.render(tool, output, transcript)
        self._logger.debug(delivery.body)
        self._responder.deliver(tool, delivery, invocation.channel, invocation.user, invocation.timestamp)
        machine.transition(State.RESPONDED, f"delivered as {delivery.mode.name.lower()}")

        return DispatchOutcome(
            state=machine.state,
            error=error,
            command=built,
            output=output,
            delivery=delivery,
        )
