# Commands module - Tool catalog and command line parsing
# This module does NOT execute commands, only loads and resolves them

from .registry import (
    Catalog, ToolDefinition, ParameterSpec, MessageTemplate,
    AdminConfig, VendorDependency, EXIT_WORD,
)
from .parser import (
    CommandParser, Invocation, ParsedCommand,
    ToolCommand, ExitCommand, UnrecognizedCommand,
)

__all__ = [
    "Catalog", "ToolDefinition", "ParameterSpec", "MessageTemplate",
    "AdminConfig", "VendorDependency", "EXIT_WORD",
    "CommandParser", "Invocation", "ParsedCommand",
    "ToolCommand", "ExitCommand", "UnrecognizedCommand",
]
