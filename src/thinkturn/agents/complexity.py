"""
Heuristic task complexity estimation.

Scores the latest user message for signals of how much reasoning a request
needs and maps the result to a recommended advisory budget.
"""

from __future__ import annotations

import collections.abc as _abc
import logging as _logging
import re as _re
import typing as _typing

import thinkturn.api.types as api_types
import thinkturn.config.types as config_types
import thinkturn.core.types as core_types
import thinkturn.tokenization as tokenization

_logger = _logging.getLogger(__name__)

RESEARCH_KEYWORDS = (
    "research",
    "investigate",
    "comprehensive",
    "in-depth",
    "analyze thoroughly",
    "deep dive",
    "exhaustive",
)
COMPLEX_KEYWORDS = (
    "debug",
    "fix",
    "refactor",
    "optimize",
    "implement",
    "design",
    "architect",
    "troubleshoot",
    "diagnose",
)
MODERATE_KEYWORDS = (
    "explain",
    "summarize",
    "describe",
    "compare",
    "list",
    "outline",
    "clarify",
    "review",
)

SHORT_MESSAGE_TOKENS = 50
LONG_MESSAGE_TOKENS = 500
MULTI_TURN_MESSAGE_COUNT = 4

_CODE_BLOCK = _re.compile(r"```[\s\S]*?```|`[^`]+`")

RECOMMENDED_BUDGETS: dict[core_types.TaskComplexity, config_types.BudgetConfig] = {
    core_types.TaskComplexity.SIMPLE: config_types.BudgetConfig(
        thinking_budget=1024, answer_budget=2048, max_continuations=2
    ),
    core_types.TaskComplexity.MODERATE: config_types.BudgetConfig(
        thinking_budget=4096, answer_budget=4096, max_continuations=3
    ),
    core_types.TaskComplexity.COMPLEX: config_types.BudgetConfig(
        thinking_budget=8192, answer_budget=4096, max_continuations=5
    ),
    core_types.TaskComplexity.RESEARCH: config_types.BudgetConfig(
        thinking_budget=16384, answer_budget=8192, max_continuations=7
    ),
}


class ComplexityEstimator(_typing.Protocol):
    """Estimates how much reasoning a request needs."""

    def estimate(
        self, messages: _abc.Sequence[api_types.Message]
    ) -> core_types.TaskComplexity: ...

    def get_recommended_budget(
        self, complexity: core_types.TaskComplexity
    ) -> config_types.BudgetConfig: ...


class HeuristicComplexityEstimator:
    """
    Keyword and length based complexity estimator.

    Scoring of the latest user message:

    - research keywords: +4 for two or more, +2 for exactly one
    - any complex keyword: +2
    - any moderate keyword: +1
    - inline code or a fenced code block: +1
    - longer than 500 tokens: +1; shorter than 50 tokens: -1
    - more than 4 messages in the conversation: +1

    The score is floored at 0 and bucketed: >=4 research, >=2 complex,
    >=1 moderate, otherwise simple.
    """

    def __init__(self, token_counter: tokenization.TokenCounter) -> None:
        self._token_counter = token_counter

    def estimate(
        self, messages: _abc.Sequence[api_types.Message]
    ) -> core_types.TaskComplexity:
        """
        Estimate the complexity of the latest user request.

        Args:
            messages: The conversation so far.

        Returns:
            The estimated complexity (SIMPLE when there is no user message).
        """
        user_message = next((m for m in reversed(messages) if m.role == "user"), None)
        if user_message is None:
            return core_types.TaskComplexity.SIMPLE

        score = self.score(user_message.content, len(messages))
        if score >= 4:
            complexity = core_types.TaskComplexity.RESEARCH
        elif score >= 2:
            complexity = core_types.TaskComplexity.COMPLEX
        elif score >= 1:
            complexity = core_types.TaskComplexity.MODERATE
        else:
            complexity = core_types.TaskComplexity.SIMPLE

        _logger.debug("Estimated complexity %s (score %d)", complexity.name, score)
        return complexity

    def score(self, text: str, message_count: int) -> int:
        """Raw complexity score of one message (never negative)."""
        lowered = text.lower()
        score = 0

        research_hits = sum(1 for keyword in RESEARCH_KEYWORDS if keyword in lowered)
        if research_hits >= 2:
            score += 4
        elif research_hits == 1:
            score += 2

        if any(keyword in lowered for keyword in COMPLEX_KEYWORDS):
            score += 2
        if any(keyword in lowered for keyword in MODERATE_KEYWORDS):
            score += 1
        if _CODE_BLOCK.search(text):
            score += 1

        tokens = self._token_counter.count(text)
        if tokens > LONG_MESSAGE_TOKENS:
            score += 1
        elif tokens < SHORT_MESSAGE_TOKENS:
            score -= 1

        if message_count > MULTI_TURN_MESSAGE_COUNT:
            score += 1

        return max(0, score)

    def get_recommended_budget(
        self, complexity: core_types.TaskComplexity
    ) -> config_types.BudgetConfig:
        """Recommended advisory budget for a complexity level."""
        return RECOMMENDED_BUDGETS[complexity]
