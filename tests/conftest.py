"""
Bashbot Test Configuration
--------------------------
Shared fixtures and fakes for all tests.

No test talks to Slack or runs catalog commands on the host:
the messenger and the executor are replaced by recording fakes.
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from api.messenger import Conversation, Messenger, UserInfo
from commands.registry import Catalog
from core.errors import MessengerError


# =============================================================================
# Fakes
# =============================================================================

class FakeMessenger(Messenger):
    """
    Records every outbound call.

    Uploaded files are read at upload time so tests can assert on content.
    """

    def __init__(self, users: Optional[Dict[str, UserInfo]] = None,
                 conversations: Optional[Dict[str, List[Conversation]]] = None):
        self.users = users if users is not None else {
            "U1": UserInfo(id="U1", name="alice", email="alice@example.com"),
        }
        self.conversations = conversations if conversations is not None else {
            "private_channel": [Conversation(id="CADMIN", name="admins")],
            "public_channel": [
                Conversation(id="C123", name="deploys"),
                Conversation(id="C999", name="random"),
                Conversation(id="CLOG", name="bashbot-log"),
            ],
        }
        self.messages: List[tuple] = []
        self.ephemerals: List[tuple] = []
        self.uploads: List[tuple] = []
        self.fail_posts = False
        self.fail_uploads = False

    def post_message(self, channel, text, display_name):
        if self.fail_posts:
            raise MessengerError("channel_not_found")
        self.messages.append((channel, text, display_name))
        return f"ts-{len(self.messages)}"

    def post_ephemeral(self, channel, user, text, display_name):
        self.ephemerals.append((channel, user, text, display_name))

    def upload_file(self, channels, path):
        if self.fail_uploads:
            raise MessengerError("upload failed")
        self.uploads.append((list(channels), Path(path).name, Path(path).read_text()))

    def get_user_info(self, user_id):
        if user_id not in self.users:
            raise MessengerError("user_not_found")
        return self.users[user_id]

    def list_conversations(self, conversation_type):
        return list(self.conversations.get(conversation_type, []))

    def texts(self, channel: Optional[str] = None) -> List[str]:
        return [text for ch, text, _ in self.messages if channel is None or ch == channel]


class FakeExecutor:
    """
    Scripted executor.

    `outputs` maps a substring of the script to the output returned for it;
    anything unmatched returns `default`.
    """

    def __init__(self, outputs: Optional[Dict[str, str]] = None, default: str = "ok\n",
                 on_path: Optional[List[str]] = None):
        self.outputs = outputs or {}
        self.default = default
        self.on_path = set(on_path or ["bash"])
        self.calls: List[List[str]] = []

    def run(self, argv):
        self.calls.append(list(argv))
        script = argv[-1]
        for fragment, output in self.outputs.items():
            if fragment in script:
                return output
        return self.default

    def run_shell(self, script):
        return self.run(["bash", "-c", script])

    def which(self, executable):
        return f"/usr/bin/{executable}" if executable in self.on_path else None


# =============================================================================
# Catalog builders
# =============================================================================

def deploy_tool(**overrides) -> dict:
    tool = {
        "name": "Deploy",
        "description": "Deploy an environment",
        "help": "!bot deploy [prod|staging]",
        "trigger": "deploy",
        "location": "/srv/app",
        "command": ["deploy", "${env}"],
        "permissions": ["C123"],
        "log": False,
        "ephemeral": False,
        "response": "text",
        "parameters": [{"name": "env", "allowed": ["prod", "staging"]}],
    }
    tool.update(overrides)
    return tool


def catalog_data(tools: Optional[List[dict]] = None, messages: Optional[List[dict]] = None) -> dict:
    return {
        "admins": [{
            "trigger": "!bot",
            "appName": "BashBot",
            "privateChannelId": "CADMIN",
            "logChannelId": "CLOG",
        }],
        "messages": messages if messages is not None else [
            {"name": "processing_command", "text": "Processing command...", "active": True},
            {"name": "command_not_found", "text": "Command not found", "active": True},
            {"name": "unauthorized", "text": "This command is only allowed in: %s", "active": True},
            {"name": "invalid_parameter", "text": "Invalid parameter value: %s", "active": True},
            {"name": "missingenvvar", "text": "Missing environment variable: %s", "active": True},
            {"name": "missingdependency", "text": "Missing dependency: %s", "active": True},
            {"name": "ephemeral", "text": "Message only shown to user who triggered it.", "active": True},
        ],
        "dependencies": [],
        "tools": tools if tools is not None else [deploy_tool()],
    }


def build_catalog(tools: Optional[List[dict]] = None, **kwargs) -> Catalog:
    return Catalog.from_dict(catalog_data(tools, **kwargs))


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def project_root():
    """Return the project root path."""
    return PROJECT_ROOT


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def catalog():
    return build_catalog()
