"""
Turn event logging for thinkturn.

Provides JSONL logging of turn events for debugging and analysis, plus
aggregate statistics across turns.
"""

from thinkturn.logging.statistics import TurnStatistics, TurnStatisticsSnapshot
from thinkturn.logging.turn_logger import TurnLogger

__all__ = ["TurnLogger", "TurnStatistics", "TurnStatisticsSnapshot"]
