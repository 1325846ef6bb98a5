"""
Process-wide turn statistics.

Aggregates counters across every turn a manager processes. Updates come from
concurrent turns, so every read and write takes the lock.
"""

import dataclasses as _dataclasses
import datetime as _datetime
import threading as _threading


@_dataclasses.dataclass(frozen=True)
class TurnStatisticsSnapshot:
    """Point-in-time copy of the counters."""

    total_turns: int = 0
    truncated_turns: int = 0
    continued_turns: int = 0
    total_continuations: int = 0
    total_thinking_tokens: int = 0
    total_output_tokens: int = 0
    total_duration: _datetime.timedelta = _datetime.timedelta(0)

    @property
    def average_duration(self) -> _datetime.timedelta:
        if self.total_turns == 0:
            return _datetime.timedelta(0)
        return self.total_duration / self.total_turns

    @property
    def truncation_rate(self) -> float:
        """Fraction of turns that ended on a guard."""
        return self.truncated_turns / self.total_turns if self.total_turns else 0.0

    @property
    def continuation_rate(self) -> float:
        """Fraction of turns that needed at least one continuation."""
        return self.continued_turns / self.total_turns if self.total_turns else 0.0


class TurnStatistics:
    """Thread-safe counters over completed turns."""

    def __init__(self) -> None:
        self._lock = _threading.Lock()
        self._snapshot = TurnStatisticsSnapshot()

    def record_turn(
        self,
        *,
        was_truncated: bool,
        continuation_count: int,
        thinking_tokens: int,
        output_tokens: int,
        duration: _datetime.timedelta,
    ) -> None:
        """Add one completed turn to the counters."""
        with self._lock:
            current = self._snapshot
            self._snapshot = TurnStatisticsSnapshot(
                total_turns=current.total_turns + 1,
                truncated_turns=current.truncated_turns + (1 if was_truncated else 0),
                continued_turns=current.continued_turns + (1 if continuation_count > 0 else 0),
                total_continuations=current.total_continuations + continuation_count,
                total_thinking_tokens=current.total_thinking_tokens + thinking_tokens,
                total_output_tokens=current.total_output_tokens + output_tokens,
                total_duration=current.total_duration + duration,
            )

    def snapshot(self) -> TurnStatisticsSnapshot:
        with self._lock:
            return self._snapshot

    def reset(self) -> None:
        with self._lock:
            self._snapshot = TurnStatisticsSnapshot()
