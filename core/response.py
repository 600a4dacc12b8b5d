"""
Response Formatting & Delivery
------------------------------
Decides how a tool's output reaches the channel (inline, ephemeral or
file upload) and renders the help block and the verbose transcript.

Delivery failures are logged, never surfaced to the channel.
"""

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import List, Optional
import logging

from api.messenger import Messenger
from commands.registry import Catalog, ToolDefinition
from core.errors import MessengerError


FILE_THRESHOLD = 3500
AUDIT_MAX_LENGTH = 1000


class DeliveryMode(Enum):
    CHANNEL = auto()     # Visible to the whole channel
    EPHEMERAL = auto()   # Visible only to the invoking user
    FILE = auto()        # Uploaded as a text file


@dataclass
class Delivery:
    """What to send and how."""
    mode: DeliveryMode
    body: str
    transcript: str

    @property
    def is_file(self) -> bool:
        return self.mode == DeliveryMode.FILE


def truncate(text: str, limit: int) -> str:
    """Cut text to `limit` characters, the ellipsis included."""
    if len(text) <= limit:
        return text
    if limit > 3:
        limit -= 3
    return text[:limit] + "..."


def _flag(value: bool) -> str:
    return "true" if value else "false"


class ResponseFormatter:
    """Pure rendering rules; no I/O."""

    def __init__(self, file_threshold: int = FILE_THRESHOLD):
        self.file_threshold = file_threshold

    def help_block(self, tool: ToolDefinition, allowed_channels: List[str]) -> str:
        """The help block shown for `help` and on unauthorized use."""
        parameter_help = "".join(
            f"\n{p.name}: [{'|'.join(p.allowed)}{p.description}]"
            for p in tool.parameters
        )
        return (
            f"``` ====> {tool.name} [Allowed In: {', '.join(allowed_channels)}] <====\n"
            f"{tool.description}\n{tool.help}{parameter_help}```"
        )

    def metadata(self, tool: ToolDefinition, template: str) -> List[str]:
        """Tool metadata lines, as logged and written to transcripts."""
        return [
            f" ----> Param Name:        {tool.name}",
            f" ----> Param Description: {tool.description}",
            f" ----> Param Log:         {_flag(tool.log)}",
            f" ----> Param Help:        {tool.help}",
            f" ----> Param Trigger:     {tool.trigger}",
            f" ----> Param Location:    {tool.location}",
            f" ----> Param Command:     {template}",
            f" ----> Param Ephemeral:   {_flag(tool.ephemeral)}",
            f" ----> Param Response:    {tool.response}",
        ]

    def transcript(self, tool: ToolDefinition, template: str,
                   display_command: str, output: str) -> str:
        lines = self.metadata(tool, template)
        lines.append(" ----> Command:")
        lines.append(display_command)
        return "\n".join(lines) + "\n" + output

    def exceeds_threshold(self, output: str) -> bool:
        return len(output) > self.file_threshold

    def render(self, tool: ToolDefinition, output: str, transcript: str) -> Delivery:
        """
        Pick the delivery for a finished command.

        Output over the threshold always becomes a file; `response: file`
        also forces a file, with the transcript as its body.
        """
        send_file = self.exceeds_threshold(output)
        body = output
        if tool.response == "file":
            send_file = True
            body = transcript
        elif tool.response == "code":
            body = f"```{output}```"

        if send_file:
            mode = DeliveryMode.FILE
        elif tool.ephemeral:
            mode = DeliveryMode.EPHEMERAL
        else:
            mode = DeliveryMode.CHANNEL
        return Delivery(mode=mode, body=body, transcript=transcript)


class Responder:
    """
    Sends messages, files and audit lines through the messenger.

    Rules:
    - Configured messages can be suppressed (inactive) but are still logged
    - Failures are logged and swallowed
    """

    def __init__(self, catalog: Catalog, messenger: Messenger, output_dir: str = "."):
        self._catalog = catalog
        self._messenger = messenger
        self._output_dir = Path(output_dir)
        self._logger = logging.getLogger("bashbot.response")

    @property
    def app_name(self) -> str:
        return self._catalog.admin.app_name

    def send(self, channel: str, text: str) -> Optional[str]:
        """Post to a channel. Returns the message id, or None on failure."""
        try:
            message_id = self._messenger.post_message(
                channel, text.replace("\\n", "\n"), self.app_name
            )
        except MessengerError as e:
            self._logger.error(str(e))
            return None
        self._logger.info(f"Sent slack message[Channel:{channel}]: {text}")
        return message_id

    def send_to_user(self, channel: str, user: str, text: str) -> bool:
        try:
            self._messenger.post_ephemeral(
                channel, user, text.replace("\\n", "\n"), self.app_name
            )
        except MessengerError as e:
            self._logger.error(str(e))
            return False
        self._logger.info(f"Sent ephemeral slack message[Channel:{channel}]: {text}")
        return True

    def send_config_message(self, channel: str, name: str, passalong: str = "") -> str:
        """
        Send a configured message template.

        Returns the rendered text, whether or not it was delivered.
        """
        template = self._catalog.lookup_message(name)
        text = template.render(passalong)
        if template.active:
            self.send(channel, text)
        else:
            self._logger.warning("Message suppressed by configuration")
            self._logger.warning(text)
        return text

    def write_and_upload(self, channels: List[str], filename: str, content: str) -> bool:
        path = self._output_dir / filename
        self._logger.info(str(path))
        try:
            path.write_text(content)
        except OSError as e:
            self._logger.error(f"Could not write {path}: {e}")
            return False

        try:
            self._messenger.upload_file(channels, str(path))
        except MessengerError as e:
            self._logger.error(str(e))
            return False
        return True

    def deliver(self, tool: ToolDefinition, delivery: Delivery,
                channel: str, user: str, timestamp: str) -> None:
        """Deliver a command result, then the log-channel transcript if enabled."""
        if delivery.mode == DeliveryMode.FILE:
            self.write_and_upload([channel], f"{timestamp}.txt", delivery.body)
        elif delivery.mode == DeliveryMode.EPHEMERAL:
            self.send_config_message(channel, "ephemeral")
            self.send_to_user(channel, user, delivery.body)
        else:
            self.send(channel, delivery.body)

        if tool.log:
            self.write_and_upload(
                [self._catalog.admin.log_channel_id],
                f"bashbot-log-{timestamp}.txt",
                delivery.transcript,
            )

    def log_to_channel(self, channel: str, user: str, message: str) -> Optional[str]:
        """
        Post an audit line to the admin log channel.

        Skipped for the admin private channel and when the user can't be resolved.
        """
        try:
            user_info = self._messenger.get_user_info(user)
        except MessengerError as e:
            self._logger.error(f"can't get user: {e}")
            return None

        admin = self._catalog.admin
        if channel == admin.private_channel_id:
            return None

        message = truncate(message.replace("`", ""), AUDIT_MAX_LENGTH)
        output = f"{admin.app_name} <@{user_info.id}> <#{channel}> - {message}"
        self.send(admin.log_channel_id, output)
        self._logger.debug(f"Bashbot command triggered channel: {channel}")
        self._logger.info(output)
        return output
