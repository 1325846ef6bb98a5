"""
Turn-scoped input to the turn manager.
"""

from __future__ import annotations

import asyncio as _asyncio
import collections.abc as _abc
import dataclasses as _dataclasses
import datetime as _datetime
import uuid as _uuid

import thinkturn.api.types as api_types
import thinkturn.config.types as config_types
import thinkturn.core.types as core_types


def _new_turn_id() -> str:
    return _uuid.uuid4().hex


def _utcnow() -> _datetime.datetime:
    return _datetime.datetime.now(_datetime.timezone.utc)


@_dataclasses.dataclass(frozen=True)
class ThinkingContext:
    """
    Everything one turn needs: who, which model, what was said, and limits.

    Immutable; the ``with_*`` helpers return modified copies.
    """

    session_id: str
    messages: tuple[api_types.Message, ...]
    turn_id: str = _dataclasses.field(default_factory=_new_turn_id)
    model_id: str | None = None

    budget: config_types.BudgetConfig | None = None
    """Explicit advisory budget. None lets the manager recommend one."""

    continuation: config_types.ContinuationConfig = _dataclasses.field(
        default_factory=config_types.ContinuationConfig
    )

    estimated_complexity: core_types.TaskComplexity | None = None
    """Pre-set complexity. None lets the manager estimate it."""

    cancel_event: _asyncio.Event | None = _dataclasses.field(
        default=None, compare=False, repr=False
    )
    """Set it to cancel the turn at the next send or delay."""

    started_at: _datetime.datetime = _dataclasses.field(default_factory=_utcnow)

    @classmethod
    def create(
        cls,
        session_id: str,
        messages: _abc.Iterable[api_types.Message],
        **kwargs: object,
    ) -> ThinkingContext:
        """
        Create a context for a new turn.

        Args:
            session_id: Session the turn belongs to.
            messages: Conversation to send (at least one message).
            **kwargs: Any other field (model_id, budget, continuation...).

        Raises:
            ValueError: If session_id is blank or messages is empty.
        """
        if not session_id or not session_id.strip():
            raise ValueError("session_id must not be empty")
        message_tuple = tuple(messages)
        if not message_tuple:
            raise ValueError("messages must not be empty")
        return cls(session_id=session_id, messages=message_tuple, **kwargs)  # type: ignore[arg-type]

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if the cancel event is set."""
        if self.is_cancelled:
            raise _asyncio.CancelledError(f"turn {self.turn_id} cancelled")

    def with_complexity(self, complexity: core_types.TaskComplexity) -> ThinkingContext:
        return _dataclasses.replace(self, estimated_complexity=complexity)

    def with_model(self, model_id: str) -> ThinkingContext:
        return _dataclasses.replace(self, model_id=model_id)

    def with_budget(self, budget: config_types.BudgetConfig) -> ThinkingContext:
        return _dataclasses.replace(self, budget=budget)

    def with_continuation(self, continuation: config_types.ContinuationConfig) -> ThinkingContext:
        return _dataclasses.replace(self, continuation=continuation)

    def with_cancel_event(self, cancel_event: _asyncio.Event) -> ThinkingContext:
        return _dataclasses.replace(self, cancel_event=cancel_event)

    @property
    def effective_budget(self) -> config_types.BudgetConfig:
        """The explicit budget, or the defaults."""
        return self.budget if self.budget is not None else config_types.BudgetConfig()
