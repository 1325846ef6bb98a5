"""
Outcome of a processed turn.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import typing as _typing

import thinkturn.agents.metrics as metrics_types
import thinkturn.api.types as api_types
import thinkturn.core.truncation as truncation_types
import thinkturn.core.types as core_types

if _typing.TYPE_CHECKING:
    import thinkturn.agents.context as context_types


@_dataclasses.dataclass(frozen=True)
class TurnResult:
    """The final (possibly merged) response plus what was learned about it."""

    response: api_types.ChatResponse
    metrics: metrics_types.TurnMetrics
    thinking_content: core_types.ThinkingContent | None = None
    reasoning_state: core_types.ReasoningState | None = None

    was_truncated: bool = False
    """The continuation loop stopped on a guard while the answer was incomplete."""

    truncation: truncation_types.TruncationInfo | None = None
    """Last detection result when ``was_truncated`` is set."""

    context: context_types.ThinkingContext | None = None

    @property
    def was_continued(self) -> bool:
        return self.metrics.continuation_count > 0

    @property
    def response_text(self) -> str:
        return self.response.text

    @property
    def has_thinking_content(self) -> bool:
        return self.thinking_content is not None

    @property
    def has_reasoning_state(self) -> bool:
        return self.reasoning_state is not None
