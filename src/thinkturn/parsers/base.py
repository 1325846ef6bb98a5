"""
Reasoning parser interface and payload helpers.

A parser pulls provider-specific thinking content and opaque continuation
state out of a ChatResponse. Parsers read the decoded provider payload in
``ChatResponse.raw`` first and the transport's ``additional_properties``
second. Malformed payloads mean "nothing parsed", never an exception.
"""

from __future__ import annotations

import collections.abc as _abc
import json as _json
import logging as _logging
import typing as _typing

import thinkturn.api.types as api_types
import thinkturn.constants as constants
import thinkturn.core.types as core_types

_logger = _logging.getLogger(__name__)

# Errors that mean "this payload is not shaped the way we expected".
PAYLOAD_ERRORS = (_json.JSONDecodeError, KeyError, TypeError, UnicodeDecodeError)


class ReasoningParser(_typing.Protocol):
    """Extracts thinking content and reasoning state for one provider family."""

    @property
    def provider_family(self) -> str: ...

    def try_parse(
        self, response: api_types.ChatResponse
    ) -> core_types.ThinkingContent | None:
        """Return the response's thinking content, or None if it has none."""
        ...

    def extract_state(
        self, response: api_types.ChatResponse
    ) -> core_types.ReasoningState | None:
        """Return opaque state to pass back on the next turn, or None."""
        ...


def load_payload(raw: _typing.Any) -> _typing.Any:
    """
    Normalize a raw provider payload to plain dicts/lists.

    Accepts decoded JSON, a JSON string or bytes, or an object exposing
    ``model_dump()`` (pydantic-based SDK responses). Returns None when the
    payload cannot be decoded.
    """
    if raw is None:
        return None
    if isinstance(raw, (_abc.Mapping, list)):
        return raw
    try:
        if isinstance(raw, (bytes, bytearray)):
            return _json.loads(raw.decode("utf-8"))
        if isinstance(raw, str):
            return _json.loads(raw)
    except PAYLOAD_ERRORS:
        _logger.debug("Raw payload is not valid JSON")
        return None
    model_dump = getattr(raw, "model_dump", None)
    if callable(model_dump):
        return model_dump()
    return None


def get_path(obj: _typing.Any, *keys: str | int) -> _typing.Any:
    """
    Walk nested dicts/lists, returning None at the first missing step.

    Example:
        get_path(payload, "usage", "output_tokens_details", "reasoning_tokens")
    """
    current = obj
    for key in keys:
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return None
            current = current[key]
        else:
            if not isinstance(current, _abc.Mapping):
                return None
            current = current.get(key)
        if current is None:
            return None
    return current


def as_int(value: _typing.Any) -> int | None:
    """Interpret a token count that may arrive as int, float or numeric string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def as_list(value: _typing.Any) -> list[_typing.Any]:
    """Return value if it is a list, else an empty list."""
    return value if isinstance(value, list) else []


def first_int(*candidates: _typing.Any) -> int:
    """First candidate that reads as an int, else 0."""
    for candidate in candidates:
        number = as_int(candidate)
        if number is not None:
            return number
    return 0


def non_empty_str(value: _typing.Any) -> str | None:
    """Return value if it is a non-empty string, else None."""
    return value if isinstance(value, str) and value else None


def join_blocks(texts: _abc.Sequence[str]) -> str:
    """Join several thinking blocks with a visible separator."""
    return constants.THINKING_BLOCK_SEPARATOR.join(texts)


def decode_state(state: core_types.ReasoningState | None, provider: str) -> str | None:
    """
    Decode UTF-8 state data captured by the given provider's parser.

    Returns None when the state belongs to another provider or is empty.
    """
    if state is None or state.provider != provider or not state.data:
        return None
    try:
        return state.data.decode("utf-8")
    except UnicodeDecodeError:
        return None
