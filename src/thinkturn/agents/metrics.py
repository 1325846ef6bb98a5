"""
Turn metrics: a mutable builder used during the turn and the frozen snapshot
it produces.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import datetime as _datetime
import time as _time
import typing as _typing

import thinkturn.core.types as core_types


@_dataclasses.dataclass(frozen=True)
class TurnMetrics:
    """Token counts, continuations and timing of one turn."""

    input_tokens: int = 0
    thinking_tokens: int = 0
    output_tokens: int = 0

    continuation_count: int = 0
    """Send calls made after the initial one."""

    duration: _datetime.timedelta = _datetime.timedelta(0)
    detected_complexity: core_types.TaskComplexity | None = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.thinking_tokens + self.output_tokens

    @property
    def required_continuation(self) -> bool:
        return self.continuation_count > 0

    @property
    def average_tokens_per_continuation(self) -> float:
        """Output tokens per response (the initial one included)."""
        if self.continuation_count == 0:
            return float(self.output_tokens)
        return self.output_tokens / (self.continuation_count + 1)

    def to_dict(self) -> dict[str, _typing.Any]:
        """JSON-friendly form for logging."""
        return {
            "input_tokens": self.input_tokens,
            "thinking_tokens": self.thinking_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
            "continuation_count": self.continuation_count,
            "duration_seconds": self.duration.total_seconds(),
            "detected_complexity": (
                self.detected_complexity.name if self.detected_complexity is not None else None
            ),
        }


class TurnMetricsBuilder:
    """Accumulates metrics while a turn runs; ``build()`` freezes them."""

    def __init__(self) -> None:
        self._input_tokens = 0
        self._thinking_tokens = 0
        self._output_tokens = 0
        self._continuation_count = 0
        self._duration: _datetime.timedelta | None = None
        self._complexity: core_types.TaskComplexity | None = None
        self._started = _time.monotonic()

    def with_input_tokens(self, tokens: int) -> TurnMetricsBuilder:
        self._input_tokens = tokens
        return self

    def add_thinking_tokens(self, tokens: int) -> TurnMetricsBuilder:
        self._thinking_tokens += tokens
        return self

    def add_output_tokens(self, tokens: int) -> TurnMetricsBuilder:
        self._output_tokens += tokens
        return self

    def increment_continuation(self, count: int = 1) -> TurnMetricsBuilder:
        self._continuation_count += count
        return self

    def with_complexity(self, complexity: core_types.TaskComplexity | None) -> TurnMetricsBuilder:
        self._complexity = complexity
        return self

    def with_duration(self, duration: _datetime.timedelta) -> TurnMetricsBuilder:
        """Override the measured duration."""
        self._duration = duration
        return self

    def build(self) -> TurnMetrics:
        """Snapshot the metrics; duration defaults to time since the builder was made."""
        duration = self._duration
        if duration is None:
            duration = _datetime.timedelta(seconds=_time.monotonic() - self._started)
        return TurnMetrics(
            input_tokens=self._input_tokens,
            thinking_tokens=self._thinking_tokens,
            output_tokens=self._output_tokens,
            continuation_count=self._continuation_count,
            duration=duration,
            detected_complexity=self._complexity,
        )
