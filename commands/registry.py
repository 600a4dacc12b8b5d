"""
Tool Catalog
------------
Declarative tool and message definitions loaded from YAML.
Loaded once at startup, read-only afterwards. Pure data plus lookup.

No execution here. Only parsing, consistency checks and lookup.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging
import re

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from core.errors import CatalogError


# Reserved tool word handled by the dispatcher itself
EXIT_WORD = "exit"


def _token_list(value: Any) -> Tuple[str, ...]:
    """YAML lists may be null or hold scalars; normalize to a tuple of str."""
    if value is None:
        return ()
    if isinstance(value, (str, int, float, bool)):
        return (str(value),)
    return tuple("" if item is None else str(item) for item in value)


class _CatalogModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class ParameterSpec(_CatalogModel):
    """
    One positional parameter of a tool.

    Validation is governed by exactly one of:
    - `allowed` (static values, extended by `source` output per invocation)
    - `match` (regex searched in the joined remainder of the arguments)
    """
    name: str
    description: str = ""
    allowed: Tuple[str, ...] = ()
    match: str = ""
    source: Tuple[str, ...] = ()

    @field_validator("allowed", "source", mode="before")
    @classmethod
    def _tokens(cls, value: Any) -> Tuple[str, ...]:
        return _token_list(value)

    @field_validator("description", "match", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else value

    @field_validator("match")
    @classmethod
    def _compiles(cls, value: str) -> str:
        if value:
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f"invalid match pattern {value!r}: {e}") from e
        return value

    @model_validator(mode="after")
    def _one_rule(self) -> "ParameterSpec":
        if self.match and (self.allowed or self.source):
            raise ValueError(
                f"parameter '{self.name}' declares match together with allowed/source"
            )
        return self

    @property
    def is_match(self) -> bool:
        """True if this parameter consumes the rest of the argument list."""
        return bool(self.match)

    @property
    def is_derived(self) -> bool:
        return bool(self.source)


class ToolDefinition(_CatalogModel):
    """A catalog entry mapping a trigger word to a templated shell command."""
    name: str
    trigger: str
    description: str = ""
    help: str = ""
    response: str = ""
    location: str = "./"
    command: Tuple[str, ...] = ()
    envvars: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()
    permissions: Tuple[str, ...] = ()
    log: bool = False
    ephemeral: bool = False
    parameters: Tuple[ParameterSpec, ...] = ()

    @field_validator("command", "envvars", "dependencies", "permissions", mode="before")
    @classmethod
    def _tokens(cls, value: Any) -> Tuple[str, ...]:
        return _token_list(value)

    @field_validator("parameters", mode="before")
    @classmethod
    def _no_parameters(cls, value: Any) -> Any:
        return () if value is None else value

    @field_validator("description", "help", "response", "location", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else value

    @property
    def command_template(self) -> str:
        """The command tokens joined with single spaces."""
        return " ".join(self.command)

    def __repr__(self) -> str:
        return f"ToolDefinition(trigger={self.trigger}, name={self.name})"


class MessageTemplate(_CatalogModel):
    """Configurable chat message; `text` may hold one `%s` for a passalong."""
    name: str
    text: str = ""
    active: bool = True

    def render(self, passalong: str = "") -> str:
        if passalong and "%s" in self.text:
            return self.text.replace("%s", passalong, 1)
        return self.text


class AdminConfig(_CatalogModel):
    trigger: str
    app_name: str = Field(default="BashBot", alias="appName")
    private_channel_id: str = Field(default="", alias="privateChannelId")
    log_channel_id: str = Field(default="", alias="logChannelId")


class VendorDependency(_CatalogModel):
    """A vendor tool installed into ./vendor before the bot connects."""
    name: str
    install: Tuple[str, ...] = ()

    @field_validator("install", mode="before")
    @classmethod
    def _tokens(cls, value: Any) -> Tuple[str, ...]:
        return _token_list(value)


class CatalogDocument(_CatalogModel):
    """Structural schema of the whole configuration document."""
    admins: Tuple[AdminConfig, ...] = ()
    messages: Tuple[MessageTemplate, ...] = ()
    dependencies: Tuple[VendorDependency, ...] = ()
    tools: Tuple[ToolDefinition, ...] = ()

    @field_validator("admins", "messages", "dependencies", "tools", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return () if value is None else value


class Catalog:
    """
    Immutable tool and message catalog.

    Responsibilities:
    - Load the configuration document from YAML
    - Reject inconsistent definitions at load time
    - Look up tools by trigger and messages by name

    Forbidden:
    - Any execution
    - Any mutation after construction
    """

    def __init__(self, document: CatalogDocument):
        self._logger = logging.getLogger("bashbot.catalog")
        if not document.admins:
            raise CatalogError("configuration must define at least one admin")

        self._document = document
        self._tools: Dict[str, ToolDefinition] = {}
        self._messages: Dict[str, MessageTemplate] = {}

        for tool in document.tools:
            self._check_tool(tool)
            self._tools[tool.trigger] = tool

        # Later definitions win, like a linear scan without break
        for message in document.messages:
            self._messages[message.name] = message

        self._logger.info(
            f"Catalog loaded: {len(self._tools)} tools, {len(self._messages)} messages"
        )

    def _check_tool(self, tool: ToolDefinition) -> None:
        if tool.trigger == EXIT_WORD:
            raise CatalogError(f"tool '{tool.name}' uses the reserved trigger '{EXIT_WORD}'")
        if tool.trigger in self._tools:
            raise CatalogError(
                f"duplicate trigger '{tool.trigger}' "
                f"('{self._tools[tool.trigger].name}' and '{tool.name}')"
            )
        names = [param.name for param in tool.parameters]
        for name in names:
            if names.count(name) > 1:
                raise CatalogError(f"tool '{tool.trigger}': duplicate parameter name '{name}'")
        for index, param in enumerate(tool.parameters):
            if param.is_match and index != len(tool.parameters) - 1:
                raise CatalogError(
                    f"tool '{tool.trigger}': match parameter '{param.name}' must be the last parameter"
                )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Catalog":
        """Build a catalog from an already-parsed document."""
        try:
            document = CatalogDocument.model_validate(data or {})
        except ValidationError as e:
            raise CatalogError(f"invalid configuration: {e}") from e
        return cls(document)

    @classmethod
    def load(cls, path: str) -> "Catalog":
        """Load the catalog from a YAML file."""
        config_path = Path(path)
        if not config_path.exists():
            raise CatalogError(f"Config file not found: {path}")

        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise CatalogError(f"Problem parsing config file {path}: {e}") from e

        if data is not None and not isinstance(data, dict):
            raise CatalogError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data)

    @property
    def admin(self) -> AdminConfig:
        """The primary admin entry."""
        return self._document.admins[0]

    @property
    def dependencies(self) -> Tuple[VendorDependency, ...]:
        return self._document.dependencies

    def lookup_tool(self, word: str) -> Optional[ToolDefinition]:
        """Get a tool by its trigger word, or None."""
        return self._tools.get(word)

    def lookup_message(self, name: str) -> MessageTemplate:
        """
        Get a message template by name.

        A miss is not an error: the name itself becomes the text, active.
        """
        template = self._messages.get(name)
        if template is None:
            return MessageTemplate(name=name, text=name, active=True)
        return template

    def list_tools(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    def triggers(self) -> Iterable[str]:
        return self._tools.keys()

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, trigger: str) -> bool:
        return trigger in self._tools
