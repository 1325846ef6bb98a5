"""
Turn orchestration: complexity estimation, budgets, the continuation loop
and the ThinkingTurnManager that ties them together.
"""

from thinkturn.agents.budget import BudgetTracker, BudgetUsage
from thinkturn.agents.complexity import ComplexityEstimator, HeuristicComplexityEstimator
from thinkturn.agents.context import ThinkingContext
from thinkturn.agents.continuation import (
    ContinuationHandler,
    ContinuationResult,
    ContinuationState,
    GuardReason,
    MaxContinuationsExceededError,
)
from thinkturn.agents.manager import ThinkingTurnManager
from thinkturn.agents.metrics import TurnMetrics, TurnMetricsBuilder
from thinkturn.agents.result import TurnResult

__all__ = [
    "BudgetTracker",
    "BudgetUsage",
    "ComplexityEstimator",
    "ContinuationHandler",
    "ContinuationResult",
    "ContinuationState",
    "GuardReason",
    "HeuristicComplexityEstimator",
    "MaxContinuationsExceededError",
    "ThinkingContext",
    "ThinkingTurnManager",
    "TurnMetrics",
    "TurnMetricsBuilder",
    "TurnResult",
]
