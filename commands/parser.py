"""
Command Line Parser
-------------------
Turns a raw chat line into one of three parsed variants:
a tool command, the exit kill-switch, or an unrecognized word.

Lines that don't start with the global trigger produce nothing.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union
import re

from .registry import EXIT_WORD, Catalog, ToolDefinition


_SLACK_LINK = re.compile(r"<(http[^|>]*)(?:\|[^>]*)?>")
_SMART_DOUBLE = re.compile(r"[“”]")
_SMART_SINGLE = re.compile(r"[‘’]")


@dataclass(frozen=True)
class Invocation:
    """One inbound chat message. Lives for a single dispatch."""
    text: str
    channel: str
    user: str
    timestamp: str


@dataclass(frozen=True)
class ToolCommand:
    """The tool word resolved to a catalog entry."""
    tool: ToolDefinition
    args: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ExitCommand:
    """Operator kill-switch: `<trigger> exit [code]`."""
    words: List[str] = field(default_factory=list)

    @property
    def status(self) -> int:
        if len(self.words) == 3:
            return 0 if self.words[2] == "0" else 1
        return 0

    @property
    def farewell(self) -> str:
        if len(self.words) == 3:
            return "exiting: success" if self.words[2] == "0" else "exiting: failure"
        return "My battery is low and it's getting dark."


@dataclass(frozen=True)
class UnrecognizedCommand:
    """The tool word is neither a catalog trigger nor a reserved word."""
    word: str


ParsedCommand = Union[ToolCommand, ExitCommand, UnrecognizedCommand]


def normalize_token(token: str) -> str:
    """Unwrap Slack link markup and replace smart quotes with ASCII ones."""
    token = _SLACK_LINK.sub(r"\1", token)
    token = _SMART_DOUBLE.sub('"', token)
    return _SMART_SINGLE.sub("'", token)


def matches_trigger(text: str, trigger: str) -> bool:
    """True if the line is `<trigger> <something>` (case-insensitive)."""
    return re.match(rf"(?i){re.escape(trigger)} .", text) is not None


class CommandParser:
    """
    Parses command lines against a catalog.

    Responsibilities:
    - Gate on the global trigger
    - Normalize argument tokens
    - Pick the parsed variant for the tool word
    """

    def __init__(self, catalog: Catalog):
        self._catalog = catalog

    @property
    def trigger(self) -> str:
        return self._catalog.admin.trigger

    def parse(self, text: str) -> Optional[ParsedCommand]:
        """Parse a line. Returns None if the line is not addressed to the bot."""
        if not matches_trigger(text, self.trigger):
            return None

        words = text.split()
        if len(words) < 2:
            return None
        word = words[1]

        tool = self._catalog.lookup_tool(word)
        if tool is not None:
            return ToolCommand(tool=tool, args=[normalize_token(w) for w in words[2:]])
        if word == EXIT_WORD:
            return ExitCommand(words=words)
        return UnrecognizedCommand(word=word)
