"""
Parameter Validator
-------------------
Checks the argument words of an invocation against a tool's parameters.

Per parameter, left to right:
- `source` output extends the allowed values (fresh every invocation)
- `match` parameters regex-search the joined remainder of the arguments
- everything else must equal one allowed value exactly
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import re

from commands.registry import ParameterSpec, ToolDefinition
from tools.executor import ShellExecutor


@dataclass
class ResolvedParameter:
    """A parameter with its allowed set computed for this invocation."""
    spec: ParameterSpec
    allowed: List[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.spec.name


@dataclass
class ValidationResult:
    """Outcome of validating every parameter once."""
    parameters: List[ResolvedParameter]
    valid: List[bool]
    values: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(self.valid)

    @property
    def first_invalid(self) -> Optional[int]:
        """Index of the earliest rejected parameter, or None."""
        for index, is_valid in enumerate(self.valid):
            if not is_valid:
                return index
        return None

    @property
    def first_invalid_name(self) -> Optional[str]:
        index = self.first_invalid
        return None if index is None else self.parameters[index].name


def remainder(args: Sequence[str], position: int) -> str:
    """All argument words from `position` on, joined by single spaces."""
    return " ".join(args[position:])


class ParameterValidator:
    """Resolves allowed values and validates argument words."""

    def __init__(self, executor: ShellExecutor):
        self._executor = executor
        self._logger = logging.getLogger("bashbot.tools.validator")

    def derive(self, tool: ToolDefinition) -> List[ResolvedParameter]:
        """
        Compute each parameter's allowed set.

        Derived parameters run their source command inside the tool's
        location. This is the most expensive step of a dispatch.
        """
        resolved = []
        self._logger.debug(f" ----> Param Parameters Count: {len(tool.parameters)}")
        for index, spec in enumerate(tool.parameters):
            self._logger.debug(f" ----> Param Parameters[{index}]: {spec.name}")
            allowed = list(spec.allowed)
            if spec.is_derived:
                source = " ".join(spec.source)
                self._logger.debug(f"Deriving allowed parameters: {source}")
                output = self._executor.run_shell(f"cd {tool.location} && {source}")
                allowed.extend(output.split("\n"))
            resolved.append(ResolvedParameter(spec=spec, allowed=allowed))
        return resolved

    def check(self, parameter: ResolvedParameter, args: Sequence[str], position: int) -> Tuple[bool, str]:
        """
        Validate one parameter at `position`.

        Returns (is_valid, value) where value is what gets substituted.
        """
        spec = parameter.spec
        if spec.is_match:
            rest = remainder(args, position)
            if re.search(spec.match, rest):
                self._logger.debug(f"Parameter(s): '{rest}' matches regex: '{spec.match}'")
                return True, rest
            self._logger.debug(f"Parameter(s): '{rest}' does not match regex: '{spec.match}'")
            return False, rest

        if position >= len(args):
            self._logger.debug(f"Parameter '{spec.name}' missing")
            return False, ""

        token = args[position]
        return token in parameter.allowed, token

    def validate(self, tool: ToolDefinition, args: Sequence[str],
                 parameters: Optional[List[ResolvedParameter]] = None) -> ValidationResult:
        """
        Validate every parameter once, left to right.

        Pass `parameters` to reuse an already derived allowed set.
        """
        if parameters is None:
            parameters = self.derive(tool)

        valid = []
        values: Dict[str, str] = {}
        for position, parameter in enumerate(parameters):
            self._logger.debug(f" ====> Param Name: {parameter.name}")
            is_valid, value = self.check(parameter, args, position)
            valid.append(is_valid)
            if is_valid:
                values[parameter.name] = value

        return ValidationResult(parameters=parameters, valid=valid, values=values)
