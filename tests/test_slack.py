"""
Slack Integration Tests
-----------------------
SlackMessenger against a mocked WebClient and gateway event handling.
No network access.
"""

from unittest.mock import MagicMock
import threading
import time

import pytest
from slack_bolt import App
from slack_bolt.authorization import AuthorizeResult
from slack_bolt.request import BoltRequest
from slack_sdk.errors import SlackApiError

from api.gateway import SlackGateway, invocation_from_event
from api.messenger import Conversation, SlackMessenger, UserInfo
from core.errors import MessengerError


def api_error(message="boom"):
    return SlackApiError(message, {"ok": False, "error": message})


@pytest.fixture
def client():
    return MagicMock()


class TestSlackMessenger:

    def test_post_message(self, client):
        client.chat_postMessage.return_value = {"ok": True, "ts": "1700.5"}
        messenger = SlackMessenger(client=client)
        assert messenger.post_message("C123", "hi", "BashBot") == "1700.5"
        client.chat_postMessage.assert_called_once_with(
            channel="C123", text="hi", username="BashBot",
            unfurl_links=True, unfurl_media=True,
        )

    def test_post_message_error(self, client):
        client.chat_postMessage.side_effect = api_error("channel_not_found")
        with pytest.raises(MessengerError):
            SlackMessenger(client=client).post_message("C123", "hi", "BashBot")

    def test_post_ephemeral(self, client):
        SlackMessenger(client=client).post_ephemeral("C123", "U1", "psst", "BashBot")
        client.chat_postEphemeral.assert_called_once_with(
            channel="C123", user="U1", text="psst", username="BashBot",
        )

    def test_upload_each_channel(self, client):
        SlackMessenger(client=client).upload_file(["C1", "C2"], "/tmp/out.txt")
        assert client.files_upload_v2.call_count == 2
        client.files_upload_v2.assert_any_call(channel="C2", file="/tmp/out.txt")

    def test_upload_error(self, client):
        client.files_upload_v2.side_effect = api_error()
        with pytest.raises(MessengerError):
            SlackMessenger(client=client).upload_file(["C1"], "/tmp/out.txt")

    def test_user_info(self, client):
        client.users_info.return_value = {
            "ok": True,
            "user": {"id": "U1", "name": "alice", "profile": {"email": "alice@example.com"}},
        }
        user = SlackMessenger(client=client).get_user_info("U1")
        assert user == UserInfo(id="U1", name="alice", email="alice@example.com")

    def test_user_info_without_email(self, client):
        client.users_info.return_value = {"ok": True, "user": {"id": "U1", "name": "bot"}}
        assert SlackMessenger(client=client).get_user_info("U1").email == ""

    def test_user_info_error(self, client):
        client.users_info.side_effect = api_error("user_not_found")
        with pytest.raises(MessengerError, match="U1"):
            SlackMessenger(client=client).get_user_info("U1")

    def test_list_conversations(self, client):
        client.conversations_list.return_value = {
            "ok": True,
            "channels": [{"id": "C1", "name": "general"}, {"id": "C2", "name": "ops"}],
        }
        channels = SlackMessenger(client=client).list_conversations("public_channel")
        assert channels == [Conversation("C1", "general"), Conversation("C2", "ops")]
        client.conversations_list.assert_called_once_with(limit=1000, types="public_channel")


class TestInvocationFromEvent:

    def test_message(self):
        invocation = invocation_from_event(
            {"type": "message", "text": "!bot deploy prod", "channel": "C123", "user": "U1", "ts": "1700.1"}
        )
        assert invocation.text == "!bot deploy prod"
        assert invocation.channel == "C123"
        assert invocation.user == "U1"
        assert invocation.timestamp == "1700.1"

    def test_bot_message_ignored(self):
        event = {"type": "message", "subtype": "bot_message", "text": "!bot exit 0", "channel": "C1"}
        assert invocation_from_event(event) is None

    def test_empty_text_ignored(self):
        assert invocation_from_event({"type": "message", "subtype": "message_deleted"}) is None


class TestSlackGateway:

    def test_dispatches_messages(self):
        handled = []
        gateway = SlackGateway(handled.append, client=MagicMock(), app_token="xapp", app=MagicMock())
        gateway.on_message({"text": "!bot deploy prod", "channel": "C123", "user": "U1", "ts": "1"})
        gateway.on_message({"subtype": "bot_message", "text": "!bot deploy prod"})
        assert [i.text for i in handled] == ["!bot deploy prod"]

    def test_registers_message_listener(self):
        app = MagicMock()
        SlackGateway(lambda i: None, client=MagicMock(), app_token="xapp", app=app)
        app.event.assert_called_once_with("message")

    def test_concurrent_events_serialized(self):
        active = []
        overlaps = []

        def handler(invocation):
            active.append(invocation)
            overlaps.append(len(active) > 1)
            time.sleep(0.1)
            active.remove(invocation)

        gateway = SlackGateway(handler, client=MagicMock(), app_token="xapp", app=MagicMock())
        threads = [
            threading.Thread(target=gateway.on_message, args=({"text": f"!bot ping {n}", "ts": str(n)},))
            for n in range(3)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert overlaps == [False, False, False]


def message_request(text, ts):
    body = {
        "token": "verification",
        "team_id": "T1",
        "api_app_id": "A1",
        "type": "event_callback",
        "event_id": f"Ev{ts}",
        "event_time": 1700000000,
        "event": {
            "type": "message",
            "channel_type": "channel",
            "channel": "C123",
            "user": "U1",
            "text": text,
            "ts": ts,
        },
    }
    return BoltRequest(body=body, mode="socket_mode")


class TestSequentialDispatch:
    """Events dispatched back to back through bolt never overlap."""

    def test_handlers_do_not_overlap(self):
        def authorize(enterprise_id, team_id, logger):
            return AuthorizeResult(
                enterprise_id=enterprise_id, team_id=team_id,
                bot_token="xoxb-test", bot_id="B1", bot_user_id="UBOT",
            )

        lock = threading.Lock()
        running = []
        peak = []
        handled = []

        def slow_handler(invocation):
            with lock:
                running.append(invocation)
                peak.append(len(running))
            time.sleep(0.3)
            with lock:
                running.remove(invocation)
                handled.append(invocation.timestamp)

        app = App(authorize=authorize, signing_secret="secret")
        SlackGateway(slow_handler, client=MagicMock(), app_token="xapp", app=app)

        app.dispatch(message_request("!bot deploy prod", "1700000000.000001"))
        app.dispatch(message_request("!bot deploy staging", "1700000000.000002"))

        deadline = time.monotonic() + 10
        while len(handled) < 2 and time.monotonic() < deadline:
            time.sleep(0.05)

        assert sorted(handled) == ["1700000000.000001", "1700000000.000002"]
        assert max(peak) == 1
