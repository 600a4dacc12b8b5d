"""
Slack Gateway
-------------
Socket Mode connection that turns channel messages into invocations.

Rules:
- Messages posted by bots are never dispatched
- bolt acknowledges each event; the handler only sees message payloads
- Invocations run one at a time
- The gateway knows nothing about tools
"""

from typing import Any, Callable, Dict, Optional
import logging
import threading

from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler
from slack_sdk import WebClient

from commands.parser import Invocation


BOT_SUBTYPE = "bot_message"


def invocation_from_event(event: Dict[str, Any]) -> Optional[Invocation]:
    """Build an invocation from a message event, or None if it must be ignored."""
    if event.get("subtype") == BOT_SUBTYPE:
        return None
    text = event.get("text") or ""
    if not text:
        return None
    return Invocation(
        text=text,
        channel=event.get("channel", ""),
        user=event.get("user", ""),
        timestamp=event.get("ts", ""),
    )


class SlackGateway:
    """
    Receives Slack events over Socket Mode.

    The handler is called once per accepted message, on bolt's worker
    thread, under a lock: two invocations never run concurrently.
    """

    def __init__(
        self,
        handler: Callable[[Invocation], Any],
        client: WebClient,
        app_token: str,
        trigger: str = "",
        app: Optional[App] = None,
    ):
        self._handler = handler
        self._app_token = app_token
        self._trigger = trigger
        self._app = app or App(client=client)
        self._socket: Optional[SocketModeHandler] = None
        self._lock = threading.Lock()
        self._logger = logging.getLogger("bashbot.api.gateway")
        self._register()

    @property
    def app(self) -> App:
        return self._app

    def _register(self) -> None:
        @self._app.event("message")
        def on_message(event):
            self.on_message(event)

        @self._app.error
        def on_error(error):
            self._logger.error(f"Slack event error: {error}")

    def on_message(self, event: Dict[str, Any]) -> None:
        invocation = invocation_from_event(event)
        if invocation is None:
            return
        with self._lock:
            self._handler(invocation)

    def connect(self) -> None:
        self._socket = SocketModeHandler(self._app, self._app_token)
        self._socket.connect()
        self._logger.info(f"Bashbot is now connected to slack. Primary trigger: `{self._trigger}`")

    def start(self) -> None:
        """Connect and block forever."""
        self.connect()
        threading.Event().wait()

    def close(self) -> None:
        if self._socket is not None:
            self._socket.close()
            self._socket = None
