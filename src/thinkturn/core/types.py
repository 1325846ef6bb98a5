"""
Core data types for thinkturn.

These are data transfer objects (DTOs) shared across the system, plus the
interfaces of collaborators the core consumes but does not implement.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import datetime as _datetime
import enum as _enum
import typing as _typing

if _typing.TYPE_CHECKING:
    import thinkturn.agents.result as result_types


def _utcnow() -> _datetime.datetime:
    return _datetime.datetime.now(_datetime.timezone.utc)


class ThinkTurnError(Exception):
    """Base class for errors raised by thinkturn."""

    pass


class TaskComplexity(_enum.IntEnum):
    """Estimated complexity of the user's request, lowest first."""

    SIMPLE = 0
    MODERATE = 1
    COMPLEX = 2
    RESEARCH = 3


@_dataclasses.dataclass(frozen=True)
class ThinkingContent:
    """Reasoning text extracted from a response."""

    text: str

    token_count: int = 0
    """Thinking tokens reported by the provider (0 if unknown)."""

    is_summarized: bool = False
    """Whether the provider returned a summary instead of the full trace."""


@_dataclasses.dataclass(frozen=True)
class ReasoningState:
    """
    Opaque provider state needed to keep reasoning continuous across turns.

    Examples: an OpenAI encrypted reasoning token, an Anthropic thinking block
    signature, a Gemini thought signature. The core never interprets ``data``;
    callers pass it back to the provider verbatim on the next turn.
    """

    provider: str
    data: bytes
    captured_at: _datetime.datetime = _dataclasses.field(default_factory=_utcnow)


@_dataclasses.dataclass(frozen=True)
class ThinkingState:
    """Per-session roll-up that an application-level state store may persist."""

    session_id: str
    model_id: str | None = None
    reasoning_state: ReasoningState | None = None
    total_thinking_tokens: int = 0
    total_output_tokens: int = 0
    continuation_count: int = 0
    created_at: _datetime.datetime = _dataclasses.field(default_factory=_utcnow)
    updated_at: _datetime.datetime = _dataclasses.field(default_factory=_utcnow)

    @classmethod
    def accumulate(
        cls,
        previous: ThinkingState | None,
        session_id: str,
        result: result_types.TurnResult,
        *,
        model_id: str | None = None,
    ) -> ThinkingState:
        """
        Build the next session roll-up from a finished turn.

        Args:
            previous: State stored after the last turn, if any.
            session_id: Session the turn belongs to.
            result: The finished turn.
            model_id: Model used for the turn (falls back to previous value).

        Returns:
            New state with totals added and the turn's reasoning state.
        """
        now = _utcnow()
        metrics = result.metrics
        return cls(
            session_id=session_id,
            model_id=model_id or (previous.model_id if previous else None),
            reasoning_state=result.reasoning_state,
            total_thinking_tokens=(previous.total_thinking_tokens if previous else 0)
            + metrics.thinking_tokens,
            total_output_tokens=(previous.total_output_tokens if previous else 0)
            + metrics.output_tokens,
            continuation_count=(previous.continuation_count if previous else 0)
            + metrics.continuation_count,
            created_at=previous.created_at if previous else now,
            updated_at=now,
        )


class ThinkingStateStore(_typing.Protocol):
    """
    Storage for ThinkingState keyed by session id.

    Implemented by the surrounding application (memory, SQL, cache...).
    The core only produces and consumes ReasoningState values.
    """

    async def get(self, session_id: str) -> ThinkingState | None: ...

    async def set(self, session_id: str, state: ThinkingState) -> None: ...

    async def remove(self, session_id: str) -> bool: ...

    async def exists(self, session_id: str) -> bool: ...
