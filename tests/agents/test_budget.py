"""
Tests for BudgetTracker.
"""

import threading as _threading

import tests.conftest as conftest
import thinkturn.agents.budget as budget
import thinkturn.api.types as api_types
import thinkturn.config as config
import thinkturn.core.types as core_types
import thinkturn.tokenization as tokenization


class TestRecordResponse:
    """Tests for recording responses."""

    def test_reported_usage_wins(self, token_counter: tokenization.TokenCounter) -> None:
        """Provider-reported output and reasoning tokens are used as-is."""
        tracker = budget.BudgetTracker(token_counter)
        tracker.record_response(
            conftest.make_response("some text", output_tokens=50, reasoning_tokens=20),
            core_types.ThinkingContent(text="x" * 400, token_count=999),
        )
        usage = tracker.get_usage()
        assert usage.output_tokens == 50
        assert usage.thinking_tokens == 20

    def test_counts_text_without_usage(self, token_counter: tokenization.TokenCounter) -> None:
        """Missing usage falls back to the token counter."""
        tracker = budget.BudgetTracker(token_counter)
        tracker.record_response(conftest.make_response("abcdefgh" * 4))
        assert tracker.get_usage().output_tokens == 8
        assert tracker.get_usage().thinking_tokens == 0

    def test_thinking_token_count_used(self, token_counter: tokenization.TokenCounter) -> None:
        """The parsed thinking token count is used when usage has none."""
        tracker = budget.BudgetTracker(token_counter)
        tracker.record_response(
            conftest.make_response("a", output_tokens=1),
            core_types.ThinkingContent(text="ignored", token_count=30),
        )
        assert tracker.get_usage().thinking_tokens == 30

    def test_thinking_text_counted(self, token_counter: tokenization.TokenCounter) -> None:
        """Without any reported count the thinking text is counted."""
        tracker = budget.BudgetTracker(token_counter)
        tracker.record_response(
            conftest.make_response("a", output_tokens=1),
            core_types.ThinkingContent(text="abcd" * 10),
        )
        assert tracker.get_usage().thinking_tokens == 10

    def test_reasoning_tokens_from_additional_properties(
        self, token_counter: tokenization.TokenCounter
    ) -> None:
        """Transports may surface reasoning tokens as an additional property."""
        tracker = budget.BudgetTracker(token_counter)
        tracker.record_response(
            api_types.ChatResponse(
                text="a",
                usage=api_types.Usage(output_tokens=1),
                additional_properties={"reasoning_tokens": 12},
            )
        )
        assert tracker.get_usage().thinking_tokens == 12

    def test_accumulates(self, token_counter: tokenization.TokenCounter) -> None:
        """Recordings add up and total includes input."""
        tracker = budget.BudgetTracker(token_counter)
        tracker.set_input_tokens(7)
        tracker.record_response(conftest.make_response("a", output_tokens=5))
        tracker.record_response(conftest.make_response("b", output_tokens=6))
        usage = tracker.get_usage()
        assert usage.output_tokens == 11
        assert usage.total_tokens == 18

    def test_reset(self, token_counter: tokenization.TokenCounter) -> None:
        """reset zeroes every counter."""
        tracker = budget.BudgetTracker(token_counter)
        tracker.set_input_tokens(7)
        tracker.record_response(conftest.make_response("a", output_tokens=5, reasoning_tokens=2))
        tracker.reset()
        assert tracker.get_usage() == budget.BudgetUsage()


class TestBudgetChecks:
    """Exceed checks are strict comparisons."""

    def test_exceeded(self, token_counter: tokenization.TokenCounter) -> None:
        """Going over a budget is reported."""
        tracker = budget.BudgetTracker(token_counter)
        tracker.record_response(conftest.make_response("a", output_tokens=11, reasoning_tokens=6))
        limits = config.BudgetConfig(thinking_budget=5, answer_budget=10)
        assert tracker.is_thinking_budget_exceeded(limits)
        assert tracker.is_answer_budget_exceeded(limits)

    def test_exactly_at_budget(self, token_counter: tokenization.TokenCounter) -> None:
        """Using exactly the budget is not an overrun."""
        tracker = budget.BudgetTracker(token_counter)
        tracker.record_response(conftest.make_response("a", output_tokens=10, reasoning_tokens=5))
        limits = config.BudgetConfig(thinking_budget=5, answer_budget=10)
        assert not tracker.is_thinking_budget_exceeded(limits)
        assert not tracker.is_answer_budget_exceeded(limits)


class TestConcurrency:
    """Recordings from many threads are never lost."""

    def test_concurrent_record_response(self, token_counter: tokenization.TokenCounter) -> None:
        """N concurrent recordings sum exactly."""
        tracker = budget.BudgetTracker(token_counter)
        response = conftest.make_response("x", output_tokens=3, reasoning_tokens=2)
        threads_count = 16
        per_thread = 250
        barrier = _threading.Barrier(threads_count)

        def _worker() -> None:
            barrier.wait()
            for _ in range(per_thread):
                tracker.record_response(response)

        threads = [_threading.Thread(target=_worker) for _ in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        usage = tracker.get_usage()
        assert usage.output_tokens == 3 * threads_count * per_thread
        assert usage.thinking_tokens == 2 * threads_count * per_thread
