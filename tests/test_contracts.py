"""
Contract Tests
---------------
API surface tests for the public modules.

These tests verify:
- Public symbols exist
- Required types are exported
- Breaking changes cause test failure
"""

from pathlib import Path

import pytest


class TestCommandsAPI:
    """Verify commands exports."""

    def test_exports_exist(self):
        from commands import (
            Catalog, ToolDefinition, ParameterSpec, MessageTemplate, AdminConfig,
            VendorDependency, CommandParser, Invocation, ToolCommand, ExitCommand,
            UnrecognizedCommand, EXIT_WORD,
        )

        assert Catalog is not None
        assert EXIT_WORD == "exit"


class TestCoreAPI:
    """Verify core exports."""

    def test_exports_exist(self):
        from core import StateMachine, State, DispatchError, ErrorKind, CatalogError
        from core.dispatcher import Dispatcher, DispatchOutcome
        from core.response import ResponseFormatter, Responder, DeliveryMode

        assert Dispatcher is not None
        assert DispatchOutcome is not None

    def test_state_values(self):
        from core import State

        for name in ("IDLE", "TRIGGER_MATCHED", "TOOL_RESOLVED", "ENV_CHECKED",
                     "DEPS_CHECKED", "AUTHORIZED", "PARAMS_VALIDATED", "BUILT",
                     "EXECUTED", "RESPONDED", "REJECTED"):
            assert hasattr(State, name)


class TestToolsAPI:
    """Verify tools exports."""

    def test_exports_exist(self):
        from tools import (
            ShellExecutor, ParameterValidator, CommandBuilder, InvocationEnv,
            TRIGGERED_VARS, install_vendor_dependencies,
        )

        assert TRIGGERED_VARS == (
            "TRIGGERED_AT", "TRIGGERED_USER_ID", "TRIGGERED_USER_NAME",
            "TRIGGERED_CHANNEL_ID", "TRIGGERED_CHANNEL_NAME",
        )


class TestMessengerContract:
    """Every messenger implements the full interface."""

    def test_abstract_methods(self):
        from api.messenger import Messenger

        assert Messenger.__abstractmethods__ == {
            "post_message", "post_ephemeral", "upload_file",
            "get_user_info", "list_conversations",
        }

    def test_cannot_instantiate(self):
        from api.messenger import Messenger

        with pytest.raises(TypeError):
            Messenger()


class TestExampleConfig:
    """The shipped example config stays loadable."""

    def test_loads(self, project_root):
        from commands.registry import Catalog

        catalog = Catalog.load(str(Path(project_root) / "config.example.yaml"))
        assert catalog.lookup_tool("ping").command_template == "echo pong"
        assert catalog.lookup_tool("echo").parameters[0].is_match


class TestCLI:

    def test_parser_flags(self):
        from main import build_parser

        args = build_parser().parse_args([
            "--config-file", "c.yaml", "--log-level", "debug", "--install-vendor-dependencies",
        ])
        assert args.config_file == "c.yaml"
        assert args.log_level == "debug"
        assert args.install_vendor_dependencies

    def test_missing_tokens_exit_code(self, monkeypatch):
        from main import main

        for var in ("SLACK_BOT_TOKEN", "SLACK_APP_TOKEN", "BASHBOT_CONFIG_FILEPATH"):
            monkeypatch.delenv(var, raising=False)
        assert main(["--config-file", "c.yaml"]) == 2
