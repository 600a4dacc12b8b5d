# Infrastructure module - Logging and runtime settings

from .logging import (
    get_logger, configure_logging, InvocationContext,
    get_invocation_id, generate_invocation_id,
)
from .config import Settings, load_settings

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "InvocationContext",
    "get_invocation_id",
    "generate_invocation_id",
    # Settings
    "Settings",
    "load_settings",
]
