"""
Turn-scoped token budget tracking.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import threading as _threading

import thinkturn.api.types as api_types
import thinkturn.config.types as config_types
import thinkturn.core.types as core_types
import thinkturn.parsers.base as parsers_base
import thinkturn.tokenization as tokenization

_logger = _logging.getLogger(__name__)


@_dataclasses.dataclass(frozen=True)
class BudgetUsage:
    """Tokens used so far in a turn."""

    input_tokens: int = 0
    thinking_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.thinking_tokens + self.output_tokens


class BudgetTracker:
    """
    Accumulates input, thinking and output tokens for one turn.

    Provider-reported usage wins: output tokens from ``usage.output_tokens``
    and thinking tokens from the usage's reasoning tokens (or a
    ``reasoning_tokens`` additional property). Missing values are estimated
    with the token counter, from the response text and the thinking text
    respectively.

    Every mutation and read holds one lock, so recordings from several
    threads never lose updates. Exceed checks only report; they never stop
    generation.
    """

    def __init__(self, token_counter: tokenization.TokenCounter) -> None:
        self._token_counter = token_counter
        self._lock = _threading.Lock()
        self._input_tokens = 0
        self._thinking_tokens = 0
        self._output_tokens = 0

    def record_response(
        self,
        response: api_types.ChatResponse,
        thinking: core_types.ThinkingContent | None = None,
    ) -> None:
        """
        Add a response's output and thinking tokens.

        Args:
            response: The response to account for.
            thinking: Thinking content parsed from the response, if any.
        """
        # Counting happens outside the lock; only the additions are serialized.
        output_tokens = response.usage.output_tokens if response.usage else None
        if output_tokens is None:
            output_tokens = self._token_counter.count(response.text)

        thinking_tokens = self._reported_reasoning_tokens(response)
        if not thinking_tokens and thinking is not None:
            thinking_tokens = thinking.token_count or self._token_counter.count(thinking.text)

        with self._lock:
            self._output_tokens += output_tokens
            self._thinking_tokens += thinking_tokens

    def set_input_tokens(self, input_tokens: int) -> None:
        with self._lock:
            self._input_tokens = input_tokens

    def get_usage(self) -> BudgetUsage:
        with self._lock:
            return BudgetUsage(
                input_tokens=self._input_tokens,
                thinking_tokens=self._thinking_tokens,
                output_tokens=self._output_tokens,
            )

    def is_thinking_budget_exceeded(self, config: config_types.BudgetConfig) -> bool:
        with self._lock:
            return self._thinking_tokens > config.thinking_budget

    def is_answer_budget_exceeded(self, config: config_types.BudgetConfig) -> bool:
        with self._lock:
            return self._output_tokens > config.answer_budget

    def reset(self) -> None:
        with self._lock:
            self._input_tokens = 0
            self._thinking_tokens = 0
            self._output_tokens = 0

    @staticmethod
    def _reported_reasoning_tokens(response: api_types.ChatResponse) -> int:
        if response.usage is not None and response.usage.reasoning_tokens is not None:
            return response.usage.reasoning_tokens
        return parsers_base.first_int(response.additional_properties.get("reasoning_tokens"))
