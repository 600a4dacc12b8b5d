# Core module - Dispatch state, errors and response delivery
# The dispatcher is the ONLY coordinator; import it from core.dispatcher
#
# No dispatcher or response imports here: api, commands and security load core.errors

from .state_machine import StateMachine, State, StateTransition
from .errors import (
    DispatchError, ErrorKind, CatalogError, ConfigurationError, MessengerError,
    log_dispatch_error,
)

__all__ = [
    "StateMachine", "State", "StateTransition",
    "DispatchError", "ErrorKind", "CatalogError", "ConfigurationError",
    "MessengerError", "log_dispatch_error",
]
