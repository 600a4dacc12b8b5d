"""
Command Builder
---------------
Substitutes validated parameters into a tool's command template and
scopes the result with invocation environment exports.

Substitution is literal, single pass, in parameter declaration order.
No quoting is added: permissioned channels are trusted.
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence
import re

from commands.registry import ParameterSpec, ToolDefinition


EMAIL_PLACEHOLDER = "${email}"

# Exported before every command, in this order
TRIGGERED_VARS = (
    "TRIGGERED_AT",
    "TRIGGERED_USER_ID",
    "TRIGGERED_USER_NAME",
    "TRIGGERED_CHANNEL_ID",
    "TRIGGERED_CHANNEL_NAME",
)

_AND_SPLIT = re.compile(r"\s&&")


def placeholder(name: str) -> str:
    return "${" + name + "}"


@dataclass(frozen=True)
class InvocationEnv:
    """Values exported as TRIGGERED_* for one invocation."""
    triggered_at: str
    user_id: str
    user_name: str
    channel_id: str
    channel_name: str

    def exports(self) -> List[str]:
        values = (self.triggered_at, self.user_id, self.user_name,
                  self.channel_id, self.channel_name)
        return [f"export {var}={value}" for var, value in zip(TRIGGERED_VARS, values)]


@dataclass(frozen=True)
class BuiltCommand:
    """A command ready for the executor."""
    template: str      # command with ${email} already substituted
    body: str          # template with parameters substituted
    script: str        # body wrapped with exports and cd
    argv: List[str]

    @property
    def display(self) -> str:
        return display_command(self.script)


def display_command(script: str) -> str:
    """Break every `&&` onto its own indented line for logs and transcripts."""
    return _AND_SPLIT.sub(" \\\\\n        &&", script)


def inject_email(tool: ToolDefinition, email: str) -> str:
    """The joined command template with every ${email} replaced."""
    return tool.command_template.replace(EMAIL_PLACEHOLDER, email)


def substitute(template: str, parameters: Sequence[ParameterSpec], values: Dict[str, str]) -> str:
    """Replace each parameter placeholder, in declaration order."""
    command = template
    for spec in parameters:
        command = command.replace(placeholder(spec.name), values[spec.name])
    return command


class CommandBuilder:
    """Composes the final shell invocation for a tool."""

    def __init__(self, shell: str = "bash"):
        self.shell = shell

    def wrap(self, body: str, location: str, env: InvocationEnv) -> str:
        return " && ".join(env.exports() + [f"cd {location}", body])

    def build(self, tool: ToolDefinition, template: str,
              values: Dict[str, str], env: InvocationEnv) -> BuiltCommand:
        """
        Args:
            tool: the resolved tool
            template: command template with ${email} already injected
            values: validated value for every parameter name
            env: invocation-scoped environment
        """
        body = substitute(template, tool.parameters, values)
        script = self.wrap(body, tool.location, env)
        return BuiltCommand(
            template=template,
            body=body,
            script=script,
            argv=[self.shell, "-c", script],
        )
