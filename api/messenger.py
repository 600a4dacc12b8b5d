"""
Messaging Collaborator
----------------------
Platform interface consumed by the dispatcher, plus the Slack Web API
implementation.

Every platform failure is raised as MessengerError. Callers decide whether
a failure is visible or only logged.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional
import logging

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from core.errors import MessengerError


@dataclass(frozen=True)
class UserInfo:
    """The invoking user, as resolved by the platform."""
    id: str
    name: str
    email: str = ""


@dataclass(frozen=True)
class Conversation:
    """A channel the bot can see."""
    id: str
    name: str


class Messenger(ABC):
    """Abstract messaging platform."""

    @abstractmethod
    def post_message(self, channel: str, text: str, display_name: str) -> str:
        """Post to a channel. Returns the platform message id."""

    @abstractmethod
    def post_ephemeral(self, channel: str, user: str, text: str, display_name: str) -> None:
        """Post a message only `user` can see, inside `channel`."""

    @abstractmethod
    def upload_file(self, channels: List[str], path: str) -> None:
        """Upload a local file to each channel."""

    @abstractmethod
    def get_user_info(self, user_id: str) -> UserInfo:
        """Resolve a user id."""

    @abstractmethod
    def list_conversations(self, conversation_type: str) -> List[Conversation]:
        """List channels of a type (`private_channel` or `public_channel`)."""


class SlackMessenger(Messenger):
    """
    Slack Web API messenger.

    Rules:
    - One attempt per call, no retries
    - SlackApiError is converted to MessengerError
    """

    CONVERSATION_LIMIT = 1000

    def __init__(self, bot_token: str = "", client: Optional[WebClient] = None):
        self._client = client or WebClient(token=bot_token)
        self._logger = logging.getLogger("bashbot.api.slack")

    @property
    def client(self) -> WebClient:
        return self._client

    def post_message(self, channel: str, text: str, display_name: str) -> str:
        try:
            response = self._client.chat_postMessage(
                channel=channel,
                text=text,
                username=display_name,
                unfurl_links=True,
                unfurl_media=True,
            )
        except SlackApiError as e:
            raise MessengerError(f"failed to send message to slack channel: {e}") from e
        return response.get("ts", "")

    def post_ephemeral(self, channel: str, user: str, text: str, display_name: str) -> None:
        try:
            self._client.chat_postEphemeral(
                channel=channel,
                user=user,
                text=text,
                username=display_name,
            )
        except SlackApiError as e:
            raise MessengerError(f"failed to send ephemeral message: {e}") from e

    def upload_file(self, channels: List[str], path: str) -> None:
        for channel in channels:
            try:
                self._client.files_upload_v2(channel=channel, file=path)
            except SlackApiError as e:
                raise MessengerError(f"Unexpected error uploading file: {e}") from e

    def get_user_info(self, user_id: str) -> UserInfo:
        try:
            response = self._client.users_info(user=user_id)
        except SlackApiError as e:
            raise MessengerError(f"can't get user {user_id}: {e}") from e

        user = response.get("user") or {}
        profile = user.get("profile") or {}
        return UserInfo(
            id=user.get("id", user_id),
            name=user.get("name", ""),
            email=profile.get("email", ""),
        )

    def list_conversations(self, conversation_type: str) -> List[Conversation]:
        try:
            response = self._client.conversations_list(
                limit=self.CONVERSATION_LIMIT,
                types=conversation_type,
            )
        except SlackApiError as e:
            raise MessengerError(f"can't list {conversation_type} conversations: {e}") from e

        return [
            Conversation(id=c.get("id", ""), name=c.get("name", ""))
            for c in response.get("channels") or []
        ]
