"""
Error Handling Module
---------------------
Closed set of dispatch error kinds with structured context.
Every recoverable-visible error maps to exactly one message template.

No retries: every external call is attempted once.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Dict, Optional
import logging


class ErrorKind(Enum):
    """Kinds of errors that can abort (or mark) an invocation."""
    MISSING_ENV = auto()          # Required environment variable not set
    MISSING_DEPENDENCY = auto()   # Required executable not on PATH
    UNAUTHORIZED = auto()         # Channel not permitted for the tool
    INVALID_PARAMETER = auto()    # Argument rejected by the validator
    USER_LOOKUP_FAILED = auto()   # Messaging platform could not resolve the user
    EXECUTION_FAILED = auto()     # Executor reported a failure in its output


# Message template sent to the channel for each kind.
# EXECUTION_FAILED has none: the executor output is delivered as-is.
TEMPLATE_NAMES: Dict[ErrorKind, Optional[str]] = {
    ErrorKind.MISSING_ENV: "missingenvvar",
    ErrorKind.MISSING_DEPENDENCY: "missingdependency",
    ErrorKind.UNAUTHORIZED: "unauthorized",
    ErrorKind.INVALID_PARAMETER: "invalid_parameter",
    ErrorKind.USER_LOOKUP_FAILED: "user_lookup_failed",
    ErrorKind.EXECUTION_FAILED: None,
}


@dataclass
class DispatchError:
    """
    Structured dispatch error.

    `passalong` is the string substituted into the message template
    (the env var name, the dependency, the allowed channels, ...).
    """
    kind: ErrorKind
    message: str
    passalong: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def template(self) -> Optional[str]:
        """Name of the message template reporting this error."""
        return TEMPLATE_NAMES[self.kind]

    def __repr__(self) -> str:
        return f"DispatchError({self.kind.name}: {self.message})"


class CatalogError(Exception):
    """Raised when the tool catalog cannot be loaded or is inconsistent."""


class ConfigurationError(Exception):
    """Raised when required runtime configuration is missing."""


class MessengerError(Exception):
    """Raised by a messaging collaborator when a platform call fails."""


_LEVELS: Dict[ErrorKind, int] = {
    ErrorKind.MISSING_ENV: logging.WARNING,
    ErrorKind.MISSING_DEPENDENCY: logging.WARNING,
    ErrorKind.UNAUTHORIZED: logging.WARNING,
    ErrorKind.INVALID_PARAMETER: logging.INFO,
    ErrorKind.USER_LOOKUP_FAILED: logging.ERROR,
    ErrorKind.EXECUTION_FAILED: logging.ERROR,
}


def log_dispatch_error(error: DispatchError, logger: Optional[logging.Logger] = None) -> None:
    """Log an error with the severity its kind calls for."""
    logger = logger or logging.getLogger("bashbot.errors")
    logger.log(
        _LEVELS.get(error.kind, logging.ERROR),
        f"{error.kind.name}: {error.message}",
        extra={"details": error.context},
    )


# Convenience constructors

def missing_env(envvar: str, tool: str = "") -> DispatchError:
    return DispatchError(
        kind=ErrorKind.MISSING_ENV,
        message=f"missing environment variable '{envvar}'",
        passalong=envvar,
        context={"tool": tool, "envvar": envvar},
    )


def missing_dependency(dependency: str, tool: str = "") -> DispatchError:
    return DispatchError(
        kind=ErrorKind.MISSING_DEPENDENCY,
        message=f"missing application/software dependency '{dependency}'",
        passalong=dependency,
        context={"tool": tool, "dependency": dependency},
    )


def unauthorized(channel: str, allowed_channels: list, tool: str = "") -> DispatchError:
    return DispatchError(
        kind=ErrorKind.UNAUTHORIZED,
        message=f"channel '{channel}' may not run '{tool}'",
        passalong=", ".join(allowed_channels),
        context={"tool": tool, "channel": channel, "allowed": list(allowed_channels)},
    )


def invalid_parameter(parameter: str, tool: str = "", position: int = -1) -> DispatchError:
    return DispatchError(
        kind=ErrorKind.INVALID_PARAMETER,
        message=f"invalid value for parameter '{parameter}'",
        passalong=parameter,
        context={"tool": tool, "parameter": parameter, "position": position},
    )


def user_lookup_failed(user: str, reason: str) -> DispatchError:
    return DispatchError(
        kind=ErrorKind.USER_LOOKUP_FAILED,
        message=f"can't get user '{user}': {reason}",
        context={"user": user, "reason": reason},
    )


def execution_failed(tool: str, output: str) -> DispatchError:
    return DispatchError(
        kind=ErrorKind.EXECUTION_FAILED,
        message=f"command for '{tool}' failed",
        context={"tool": tool, "output": output},
    )
