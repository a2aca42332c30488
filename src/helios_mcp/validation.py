"""Argument validation for tool calls.

Validation is exhaustive: every violated constraint is reported in one error so
an agent can fix all of its arguments in a single retry.
"""
from collections.abc import Mapping
from typing import Any, TypeVar

import pydantic

from .errors import ValidationError
from .schemas import ToolArguments

ArgsT = TypeVar("ArgsT", bound=ToolArguments)


def _format_location(loc: tuple) -> str:
    parts = []
    for item in loc:
        if isinstance(item, int):
            parts.append(f"[{item}]")
        else:
            parts.append(f".{item}" if parts else str(item))
    return "".join(parts) or "arguments"


def format_violations(exc: pydantic.ValidationError) -> list[str]:
    """Turn pydantic errors into ``"field: problem"`` strings."""
    return [f"{_format_location(err['loc'])}: {err['msg']}" for err in exc.errors()]


def validate_arguments(model: type[ArgsT], raw: Any) -> ArgsT:
    """Validate raw tool arguments against ``model``.

    Args:
        model: The tool's argument model
        raw: Arguments as received from the client (may be None)

    Returns:
        A model instance with defaults applied and unknown fields dropped

    Raises:
        ValidationError: Listing every violated constraint
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValidationError(
            f"Invalid arguments: expected an object, got {type(raw).__name__}",
            violations=[f"arguments: expected an object, got {type(raw).__name__}"],
        )

    try:
        return model.model_validate(dict(raw))
    except pydantic.ValidationError as e:
        violations = format_violations(e)
        raise ValidationError("Invalid arguments: " + "; ".join(violations), violations=violations) from e
