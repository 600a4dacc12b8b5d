"""
Authorization
-------------
Channel-based permissions for catalog tools.
The admin private channel may run everything; otherwise a tool must list
the channel id or the sentinel "all".

Exit Criterion: A tool can be blocked even if its trigger matched.
"""

from typing import Iterable, List, Optional
import logging

from api.messenger import Messenger
from commands.registry import AdminConfig, ToolDefinition
from core.errors import MessengerError


ALL_CHANNELS = "all"

# Listing order matters: private channel names come first
CHANNEL_TYPES = ("private_channel", "public_channel")


class ChannelDirectory:
    """
    Resolves channel ids to display names through the messenger.

    Listings are fetched on every call; nothing is cached between invocations.
    """

    def __init__(self, messenger: Messenger):
        self._messenger = messenger
        self._logger = logging.getLogger("bashbot.security.channels")

    def names_by_type(self, channel_ids: Iterable[str], channel_type: str) -> List[str]:
        """Names of the channels of one type whose id is in `channel_ids`."""
        wanted = list(channel_ids)
        try:
            channels = self._messenger.list_conversations(channel_type)
        except MessengerError as e:
            self._logger.error(str(e))
            return []

        self._logger.debug(f"Number of {channel_type}s this bot is monitoring: {len(channels)}")
        names = []
        for channel in channels:
            for channel_id in wanted:
                if channel_id == channel.id:
                    names.append(channel.name)
        return names

    def names(self, channel_ids: Iterable[str]) -> List[str]:
        """
        Display names for channel ids.

        Falls back to ["all"] when nothing resolves.
        """
        wanted = list(channel_ids)
        names: List[str] = []
        for channel_type in CHANNEL_TYPES:
            names.extend(self.names_by_type(wanted, channel_type))
        return names or [ALL_CHANNELS]


class AuthorizationResolver:
    """
    Decides whether a channel may invoke a tool.

    Rules:
    - Admin private channel is always authorized
    - Otherwise the tool's permissions must contain the channel or "all"
    - Pure predicate: adding permissions never revokes access
    """

    def __init__(self, admin: AdminConfig, directory: Optional[ChannelDirectory] = None):
        self._admin = admin
        self._directory = directory
        self._logger = logging.getLogger("bashbot.security")

    def is_authorized(self, channel: str, tool: ToolDefinition) -> bool:
        if self._admin.private_channel_id and channel == self._admin.private_channel_id:
            self._logger.debug(f"Authorized (admin channel): {tool.trigger}")
            return True

        for index, permission in enumerate(tool.permissions):
            self._logger.debug(f" ----> Param Permissions[{index}]: {permission}")
            if permission == channel or permission == ALL_CHANNELS:
                return True

        self._logger.warning(f"Permission DENIED: {tool.trigger} in {channel}")
        return False

    def allowed_channel_names(self, channel_ids: Iterable[str]) -> List[str]:
        """Display names for channel ids; ["all"] when nothing resolves."""
        if self._directory is None:
            return list(channel_ids) or [ALL_CHANNELS]
        return self._directory.names(channel_ids)

    def allowed_channels(self, tool: ToolDefinition) -> List[str]:
        """Human-readable list of channels the tool may run in."""
        return self.allowed_channel_names(tool.permissions)

    def channel_name(self, channel: str) -> str:
        """Display name of a single channel (as exported to the command)."""
        if self._directory is None:
            return channel
        return "".join(self._directory.names([channel]))
