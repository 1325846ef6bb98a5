"""
Type definitions for model exchanges.

These types provide a provider-agnostic view of the messages sent to a model
and the responses it returns. thinkturn never talks to a provider itself; the
caller adapts its transport client's responses into these types.
"""

from __future__ import annotations

import collections.abc as _abc
import dataclasses as _dataclasses
import enum as _enum
import typing as _typing


class FinishReason(str, _enum.Enum):
    """Normalized finish reasons.

    Responses may also carry a raw provider string (e.g. ``"max_tokens"``,
    ``"SAFETY"``) when the caller's transport does not normalize it.
    """

    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    TOOL_CALLS = "tool_calls"


Role = _typing.Literal["system", "user", "assistant", "tool"]


@_dataclasses.dataclass(frozen=True)
class Message:
    """A message in the conversation."""

    role: Role
    content: str


@_dataclasses.dataclass(frozen=True)
class UsageDetails:
    """Detailed token usage breakdown (provider-specific)."""

    reasoning_tokens: int | None = None
    """Tokens used for reasoning/thinking (subset of output_tokens)."""

    cached_tokens: int | None = None
    """Tokens served from cache (subset of input_tokens)."""


@_dataclasses.dataclass(frozen=True)
class Usage:
    """Token usage information reported by the provider."""

    input_tokens: int | None = None
    output_tokens: int | None = None

    # Extended details (may be None for providers that don't support them)
    details: UsageDetails | None = None

    @property
    def total_tokens(self) -> int:
        return (self.input_tokens or 0) + (self.output_tokens or 0)

    @property
    def reasoning_tokens(self) -> int | None:
        """Convenience accessor for reasoning tokens."""
        return self.details.reasoning_tokens if self.details else None


@_dataclasses.dataclass(frozen=True)
class ChatResponse:
    """A complete (non-streaming) response from one model call."""

    text: str = ""
    finish_reason: FinishReason | str | None = None
    usage: Usage | None = None
    model_id: str | None = None

    raw: _typing.Any = None
    """The provider's decoded JSON payload (dict or list), if available."""

    additional_properties: _abc.Mapping[str, _typing.Any] = _dataclasses.field(
        default_factory=dict
    )
    """Extra provider fields the transport chose to surface."""

    @property
    def finish_reason_value(self) -> str | None:
        """The finish reason as a plain string, whatever form it arrived in."""
        if self.finish_reason is None:
            return None
        if isinstance(self.finish_reason, FinishReason):
            return self.finish_reason.value
        return str(self.finish_reason)

    def with_text(self, text: str) -> ChatResponse:
        """Return a copy carrying different text but the same metadata."""
        return _dataclasses.replace(self, text=text)


@_dataclasses.dataclass
class RequestOptions:
    """Outgoing request options that reasoning modifiers may adjust."""

    model_id: str | None = None
    additional_properties: dict[str, _typing.Any] = _dataclasses.field(default_factory=dict)


SendFunction = _typing.Callable[[list[Message]], _typing.Awaitable[ChatResponse]]
"""The injected model call: messages in, one complete response out.

Exceptions raised by the send function propagate to the caller untouched.
"""
