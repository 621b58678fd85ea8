"""Key-casing conversion between the client and the wire."""

import re
from typing import Any

_UPPER = re.compile(r"[A-Z]")
_UNDERSCORE_LOWER = re.compile(r"_([a-z])")


def camel_to_snake(key: str) -> str:
    """``executionId`` -> ``execution_id``."""
    return _UPPER.sub(lambda m: "_" + m.group(0).lower(), key)


def snake_to_camel(key: str) -> str:
    """``execution_id`` -> ``executionId``."""
    return _UNDERSCORE_LOWER.sub(lambda m: m.group(1).upper(), key)


def to_snake_case(obj: Any) -> Any:
    """Rewrite mapping keys to snake_case, recursing through dicts and lists."""
    if isinstance(obj, dict):
        return {camel_to_snake(str(k)): to_snake_case(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_snake_case(item) for item in obj]
    return obj


def to_camel_case(obj: Any) -> Any:
    """Rewrite mapping keys to camelCase, recursing through dicts and lists."""
    if isinstance(obj, dict):
        return {snake_to_camel(str(k)): to_camel_case(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_camel_case(item) for item in obj]
    return obj
