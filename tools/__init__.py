# Tools module - Parameter validation, command building and execution
# Everything between a resolved tool and its raw output lives here

from .executor import ShellExecutor, ERROR_PREFIX, is_failure
from .validator import ParameterValidator, ValidationResult, ResolvedParameter
from .builder import CommandBuilder, BuiltCommand, InvocationEnv, TRIGGERED_VARS
from .vendor import install_vendor_dependencies

__all__ = [
    "ShellExecutor",
    "ERROR_PREFIX",
    "is_failure",
    "ParameterValidator",
    "ValidationResult",
    "ResolvedParameter",
    "CommandBuilder",
    "BuiltCommand",
    "InvocationEnv",
    "TRIGGERED_VARS",
    "install_vendor_dependencies",
]
