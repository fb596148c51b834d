"""
Recursive context sanitization.

Every value is first classified into a `ValueKind` and then handled by exactly
one sanitizer for that kind, so the recursion is exhaustive: any input maps to
a redaction marker, a trimmed string, a JSON-safe scalar, a sanitized
mapping/list, or a type-name placeholder. Nothing here raises, and every
result can be serialized by the sinks' orjson encoder.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable

REDACTED = "[redacted]"
MAX_STRING_LENGTH = 120
# Nesting kept below orjson's own recursion limit (254 levels)
MAX_DEPTH = 100
SENSITIVE_KEY_PATTERN = re.compile(r"password|token|secret|senha|hash")

# Integer range orjson can encode
_INT_MIN = -(2**63)
_INT_LIMIT = 2**64


class ValueKind(Enum):
    STRING = "string"
    SCALAR = "scalar"  # int, float, bool, None
    MAPPING = "mapping"
    SEQUENCE = "sequence"  # list, tuple
    OPAQUE = "opaque"


def classify(value: Any) -> ValueKind:
    if isinstance(value, str):
        return ValueKind.STRING
    if value is None or isinstance(value, (bool, int, float)):
        return ValueKind.SCALAR
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    return ValueKind.OPAQUE


def is_sensitive_key(key: Any) -> bool:
    """Whether ``key`` names a field whose value must never be logged."""
    if not isinstance(key, str):
        return False
    return SENSITIVE_KEY_PATTERN.search(key.lower()) is not None


def type_name(value: Any) -> str:
    """Stable placeholder for a value that cannot be logged as-is."""
    cls = type(value)
    if cls.__module__ == "builtins":
        return cls.__name__
    return f"{cls.__module__}.{cls.__qualname__}"


def _fits_int_range(value: int) -> bool:
    return _INT_MIN <= value < _INT_LIMIT


def sanitize_key(key: Any) -> Any:
    """
    Normalize a mapping key to one the JSON encoder accepts.

    ``str``, ``float``, ``bool``, ``None`` and 64-bit ``int`` keys are kept;
    anything else (tuples, objects, huge ints) becomes ``str(key)``, or its
    type name when ``str()`` fails.
    """
    if key is None or isinstance(key, (str, bool, float)):
        return key
    if isinstance(key, int) and _fits_int_range(key):
        return key
    try:
        return str(key)
    except Exception:
        return type_name(key)


def _sanitize_string(value: str, depth: int) -> str:
    return value.strip()[:MAX_STRING_LENGTH]


def _sanitize_scalar(value: Any, depth: int) -> Any:
    if isinstance(value, int) and not isinstance(value, bool) and not _fits_int_range(value):
        return _sanitize_string(str(value), depth)
    return value


def _sanitize_mapping(value: Mapping, depth: int) -> Any:
    if depth > MAX_DEPTH:
        return type_name(value)
    sanitized: dict = {}
    for key, item in value.items():
        key = sanitize_key(key)
        if is_sensitive_key(key):
            sanitized[key] = REDACTED
        else:
            sanitized[key] = sanitize_value(item, depth + 1)
    return sanitized


def _sanitize_sequence(value: list | tuple, depth: int) -> Any:
    if depth > MAX_DEPTH:
        return type_name(value)
    return [sanitize_value(item, depth + 1) for item in value]


def _sanitize_opaque(value: Any, depth: int) -> str:
    return type_name(value)


_SANITIZERS: dict[ValueKind, Callable[[Any, int], Any]] = {
    ValueKind.STRING: _sanitize_string,
    ValueKind.SCALAR: _sanitize_scalar,
    ValueKind.MAPPING: _sanitize_mapping,
    ValueKind.SEQUENCE: _sanitize_sequence,
    ValueKind.OPAQUE: _sanitize_opaque,
}


def sanitize_value(value: Any, depth: int = 0) -> Any:
    """Sanitize a single value (keys are handled by the enclosing mapping)."""
    try:
        return _SANITIZERS[classify(value)](value, depth)
    except Exception:
        # Broken __str__/items() implementations on user types
        return type_name(value)


def sanitize(context: Any) -> dict:
    """
    Sanitize a caller-supplied context mapping.

    Sensitive keys (case-insensitive substring match on ``password``,
    ``token``, ``secret``, ``senha``, ``hash``) are replaced by ``"[redacted]"``
    at any depth. Keys the JSON encoder cannot take are stringified first, so
    a tuple key such as ``("api_token",)`` is still redacted. Strings are
    trimmed and cut to 120 characters; integers outside the 64-bit range
    become their decimal string. Nested mappings and lists are sanitized
    recursively; other objects become their type name.

    Limits:
        - Containers nested deeper than ``MAX_DEPTH`` levels are replaced by
          their type name (e.g. ``"dict"``). This also ends cyclic structures.
        - Sanitizing twice gives the same result, except for a string cut at
          120 characters whose last kept character is whitespace: the second
          pass strips that character. A third pass changes nothing.

    Args:
        context: The mapping to sanitize. ``None`` and non-mappings yield ``{}``.

    Returns:
        A new dict; the input is never modified.
    """
    if not isinstance(context, Mapping) or not context:
        return {}
    result = sanitize_value(context)
    return result if isinstance(result, dict) else {}
