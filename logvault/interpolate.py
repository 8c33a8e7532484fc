# logvault/interpolate.py
"""
Placeholder interpolation for log messages.

``{name}`` placeholders are replaced with the matching context value in a
single pass: substituted text is never scanned again, and placeholders with
no matching key are left untouched.
"""

import json
import re
from typing import Any, Dict, List, Mapping, Optional, Union

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


class RawJson:
    """A value that is already serialized JSON and is inserted verbatim."""

    __slots__ = ("text",)

    def __init__(self, text: str) -> None:
        if not isinstance(text, str):
            raise TypeError("RawJson expects a str")
        self.text = text

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"RawJson({self.text!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, RawJson) and other.text == self.text

    def __hash__(self) -> int:
        return hash(self.text)


ContextValue = Union[str, int, float, bool, None, RawJson, Dict[str, Any], List[Any]]
Context = Mapping[str, ContextValue]


def render_value(value: ContextValue) -> str:
    """
    Render one context value as text.

    Raises:
        TypeError: If the value is outside the supported kinds
    """
    # bool first: bool is a subclass of int
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, RawJson):
        return value.text
    if value is None:
        return "null"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    raise TypeError(
        f"Unsupported context value of type {type(value).__name__}; "
        "use str, int, float, bool, None, dict, list or RawJson"
    )


def resolve_context(context: Optional[Context]) -> Dict[str, str]:
    """Render every context value up front so type errors surface at the call."""
    if not context:
        return {}
    resolved: Dict[str, str] = {}
    for key, value in context.items():
        if not isinstance(key, str):
            raise TypeError(f"Context keys must be str, got {type(key).__name__}")
        resolved[key] = render_value(value)
    return resolved


def interpolate(message: str, context: Optional[Context] = None) -> str:
    """
    Substitute ``{key}`` placeholders in *message* with context values.

    Example:
        >>> interpolate("User {id} logged in", {"id": 42})
        'User 42 logged in'
    """
    replacements = resolve_context(context)
    if not replacements:
        return message

    def _substitute(match: "re.Match[str]") -> str:
        return replacements.get(match.group(1), match.group(0))

    return _PLACEHOLDER.sub(_substitute, message)


__all__ = [
    "Context",
    "ContextValue",
    "RawJson",
    "interpolate",
    "render_value",
    "resolve_context",
]
