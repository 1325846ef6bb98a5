"""
Tests for ThinkingTurnManager.
"""

import asyncio as _asyncio
import datetime as _datetime
import json as _json
import logging as _logging

import pytest as _pytest

import tests.conftest as conftest
import thinkturn.agents.budget as budget
import thinkturn.agents.complexity as complexity
import thinkturn.agents.context as context_types
import thinkturn.agents.continuation as continuation
import thinkturn.agents.manager as manager
import thinkturn.api.types as api_types
import thinkturn.config as config
import thinkturn.core.types as core_types
import thinkturn.logging as turn_logging
import thinkturn.parsers as parsers
import thinkturn.tokenization as tokenization

CUT_TEXT = "This is a truncated response that ends abruptly in the middle of"
REST_TEXT = " a sentence. Here is the complete response."


def _manager(
    token_counter: tokenization.TokenCounter,
    **kwargs: object,
) -> manager.ThinkingTurnManager:
    return manager.ThinkingTurnManager(
        complexity_estimator=complexity.HeuristicComplexityEstimator(token_counter),
        continuation_handler=continuation.ContinuationHandler(),
        budget_tracker_factory=lambda: budget.BudgetTracker(token_counter),
        parser_registry=parsers.ReasoningParserRegistry.create_default(),
        token_counter=token_counter,
        **kwargs,  # type: ignore[arg-type]
    )


def _context(messages: list[api_types.Message], **kwargs: object) -> context_types.ThinkingContext:
    return context_types.ThinkingContext.create("session-1", messages, **kwargs)


def _anthropic_raw(thinking: str, answer: str) -> dict[str, object]:
    return {
        "content": [
            {"type": "thinking", "thinking": thinking, "signature": "sig-1"},
            {"type": "text", "text": answer},
        ]
    }


class TestProcessTurn:
    """End-to-end turn processing."""

    @_pytest.mark.asyncio
    async def test_untruncated_turn(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
        scripted_sender_factory,
    ) -> None:
        """A complete response needs one call and no continuation."""
        sender = scripted_sender_factory(conftest.make_response("Tides follow the moon."))
        result = await _manager(token_counter).process_turn(_context(user_messages), sender)

        assert sender.call_count == 1
        assert result.response_text == "Tides follow the moon."
        assert not result.was_continued
        assert not result.was_truncated
        assert result.truncation is None

    @_pytest.mark.asyncio
    async def test_truncated_turn_is_continued(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
        scripted_sender_factory,
    ) -> None:
        """A length cut is continued and the fragments are joined."""
        sender = scripted_sender_factory(
            conftest.make_response(CUT_TEXT, api_types.FinishReason.LENGTH),
            conftest.make_response(REST_TEXT),
        )
        result = await _manager(token_counter).process_turn(_context(user_messages), sender)

        assert sender.call_count == 2
        assert result.response_text == CUT_TEXT + REST_TEXT
        assert result.metrics.continuation_count == 1
        assert result.was_continued
        assert not result.was_truncated

        # The continuation request carries the partial answer back.
        follow_up = sender.calls[1]
        assert follow_up[0] == user_messages[0]
        assert follow_up[1].role == "assistant"
        assert follow_up[1].content == CUT_TEXT
        assert follow_up[-1].role == "user"

    @_pytest.mark.asyncio
    async def test_guard_exit_marks_truncated(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
    ) -> None:
        """Hitting the continuation limit returns the partial answer."""
        sender = conftest.CountingSender()
        context = _context(
            user_messages,
            continuation=config.ContinuationConfig(
                max_continuations=2, delay_between_continuations=_datetime.timedelta(0)
            ),
        )
        result = await _manager(token_counter).process_turn(context, sender)

        assert sender.call_count == 3
        assert result.was_truncated
        assert result.metrics.continuation_count == 2
        assert result.response_text.startswith("part 1")

    @_pytest.mark.asyncio
    async def test_guard_exit_can_raise(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
    ) -> None:
        """throw_on_max_continuations turns a guard exit into an error."""
        context = _context(
            user_messages,
            continuation=config.ContinuationConfig(
                max_continuations=1,
                delay_between_continuations=_datetime.timedelta(0),
                throw_on_max_continuations=True,
            ),
        )
        with _pytest.raises(continuation.MaxContinuationsExceededError) as exc_info:
            await _manager(token_counter).process_turn(context, conftest.CountingSender())
        assert exc_info.value.partial_response.text.startswith("part 1")


class TestReasoningExtraction:
    """Thinking content and reasoning state in the result."""

    @_pytest.mark.asyncio
    async def test_anthropic_thinking(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
        scripted_sender_factory,
    ) -> None:
        """Anthropic thinking blocks are parsed for claude models."""
        sender = scripted_sender_factory(
            conftest.make_response(
                "The moon pulls the water.",
                raw=_anthropic_raw("Gravity differs across the earth.", "The moon pulls the water."),
            )
        )
        context = _context(user_messages, model_id="claude-sonnet-4")
        result = await _manager(token_counter).process_turn(context, sender)

        assert result.has_thinking_content
        assert result.thinking_content.text == "Gravity differs across the earth."
        assert result.has_reasoning_state
        assert result.reasoning_state.provider == "anthropic"

    @_pytest.mark.asyncio
    async def test_thinking_from_intermediate_response(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
        scripted_sender_factory,
    ) -> None:
        """Thinking that only arrived with the first fragment is still found."""
        sender = scripted_sender_factory(
            conftest.make_response(
                CUT_TEXT,
                api_types.FinishReason.LENGTH,
                raw=_anthropic_raw("First, recall the question.", CUT_TEXT),
            ),
            conftest.make_response(REST_TEXT),
        )
        context = _context(user_messages, model_id="claude-sonnet-4")
        result = await _manager(token_counter).process_turn(context, sender)

        assert result.response_text == CUT_TEXT + REST_TEXT
        assert result.thinking_content is not None
        assert result.thinking_content.text == "First, recall the question."

    @_pytest.mark.asyncio
    async def test_no_reasoning(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
        scripted_sender_factory,
    ) -> None:
        """Plain responses have neither thinking nor state."""
        sender = scripted_sender_factory(conftest.make_response("Plain answer."))
        result = await _manager(token_counter).process_turn(_context(user_messages), sender)
        assert result.thinking_content is None
        assert result.reasoning_state is None


class TestComplexityAndBudget:
    """Complexity estimation and budget selection."""

    @_pytest.mark.asyncio
    async def test_complexity_estimated(
        self,
        token_counter: tokenization.TokenCounter,
        scripted_sender_factory,
    ) -> None:
        """The estimated level and its budget land on the context."""
        messages = [api_types.Message(role="user", content="hi")]
        sender = scripted_sender_factory(conftest.make_response("Hello!"))
        result = await _manager(token_counter).process_turn(_context(messages), sender)

        assert result.metrics.detected_complexity is core_types.TaskComplexity.SIMPLE
        assert result.context is not None
        assert result.context.estimated_complexity is core_types.TaskComplexity.SIMPLE
        assert result.context.budget is not None
        assert result.context.budget.thinking_budget == 1024

    @_pytest.mark.asyncio
    async def test_explicit_complexity_kept(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
        scripted_sender_factory,
    ) -> None:
        """A caller-supplied level is not re-estimated."""
        sender = scripted_sender_factory(conftest.make_response("Done."))
        context = _context(
            user_messages, estimated_complexity=core_types.TaskComplexity.RESEARCH
        )
        result = await _manager(token_counter).process_turn(context, sender)
        assert result.metrics.detected_complexity is core_types.TaskComplexity.RESEARCH
        assert result.context.budget.thinking_budget == 16384

    @_pytest.mark.asyncio
    async def test_auto_estimation_disabled(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
        scripted_sender_factory,
    ) -> None:
        """Without estimation the default budget applies."""
        default_budget = config.BudgetConfig(thinking_budget=111)
        turn_manager = _manager(
            token_counter, auto_estimate_complexity=False, default_budget=default_budget
        )
        sender = scripted_sender_factory(conftest.make_response("Done."))
        result = await turn_manager.process_turn(_context(user_messages), sender)

        assert result.metrics.detected_complexity is None
        assert result.context.budget is default_budget

    @_pytest.mark.asyncio
    async def test_budget_overrun_is_logged(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
        scripted_sender_factory,
        caplog: _pytest.LogCaptureFixture,
    ) -> None:
        """Exceeding the thinking budget logs a warning but returns normally."""
        sender = scripted_sender_factory(
            conftest.make_response("Done.", output_tokens=5, reasoning_tokens=50)
        )
        context = _context(user_messages, budget=config.BudgetConfig(thinking_budget=10))

        with caplog.at_level(_logging.WARNING, logger="thinkturn.agents.manager"):
            result = await _manager(token_counter).process_turn(context, sender)

        assert result.metrics.thinking_tokens == 50
        assert "exceeded thinking budget" in caplog.text


class TestMetrics:
    """Token metrics and statistics."""

    @_pytest.mark.asyncio
    async def test_reported_usage_is_summed(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
        scripted_sender_factory,
    ) -> None:
        """Output tokens add up across every response of the turn."""
        sender = scripted_sender_factory(
            conftest.make_response(CUT_TEXT, api_types.FinishReason.LENGTH, output_tokens=20),
            conftest.make_response(REST_TEXT, output_tokens=15, reasoning_tokens=4),
        )
        result = await _manager(token_counter).process_turn(_context(user_messages), sender)

        assert result.metrics.output_tokens == 35
        assert result.metrics.thinking_tokens == 4
        assert result.metrics.input_tokens > 0
        assert result.metrics.total_tokens == (
            result.metrics.input_tokens + result.metrics.thinking_tokens + 35
        )

    @_pytest.mark.asyncio
    async def test_statistics_recorded(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
        scripted_sender_factory,
    ) -> None:
        """Each finished turn updates the statistics."""
        statistics = turn_logging.TurnStatistics()
        turn_manager = _manager(token_counter, statistics=statistics)
        sender = scripted_sender_factory(
            conftest.make_response(CUT_TEXT, api_types.FinishReason.LENGTH),
            conftest.make_response(REST_TEXT),
        )

        await turn_manager.process_turn(_context(user_messages), sender)

        snapshot = statistics.snapshot()
        assert snapshot.total_turns == 1
        assert snapshot.continued_turns == 1
        assert snapshot.total_continuations == 1
        assert snapshot.truncated_turns == 0


class TestCancellation:
    """Cancellation before and during a turn."""

    @_pytest.mark.asyncio
    async def test_cancelled_before_send(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
        scripted_sender_factory,
    ) -> None:
        """A set cancel event stops the turn before anything is sent."""
        cancel = _asyncio.Event()
        cancel.set()
        sender = scripted_sender_factory(conftest.make_response("unused"))
        context = _context(user_messages, cancel_event=cancel)

        with _pytest.raises(_asyncio.CancelledError):
            await _manager(token_counter).process_turn(context, sender)
        assert sender.call_count == 0

    @_pytest.mark.asyncio
    async def test_cancelled_during_continuation_delay(
        self,
        token_counter: tokenization.TokenCounter,
        user_messages: list[api_types.Message],
    ) -> None:
        """Setting the event while waiting between continuations cancels the turn."""
        cancel = _asyncio.Event()
        sender = conftest.CountingSender()
        context = _context(
            user_messages,
            cancel_event=cancel,
            continuation=config.ContinuationConfig(
                max_continuations=5, delay_between_continuations=_datetime.timedelta(seconds=5)
            ),
        )
        _asyncio.get_running_loop().call_later(0.05, cancel.set)

        with _pytest.raises(_asyncio.CancelledError):
            await _manager(token_counter).process_turn(context, sender)
        assert sender.call_count == 2


class TestCreateDefault:
    """Tests for create_default."""

    @_pytest.mark.asyncio
    async def test_wired_from_settings(
        self,
        isolated_env,
        tmp_path,
        monkeypatch: _pytest.MonkeyPatch,
        user_messages: list[api_types.Message],
        scripted_sender_factory,
    ) -> None:
        """The default manager runs a turn with approximate counting."""
        monkeypatch.chdir(tmp_path)
        with isolated_env:
            settings = config.Settings.construct_without_dotenv(prefer_exact_token_counting=False)
        turn_manager = manager.ThinkingTurnManager.create_default(settings)

        assert turn_manager.turn_logger is None
        sender = scripted_sender_factory(
            conftest.make_response(CUT_TEXT, api_types.FinishReason.LENGTH),
            conftest.make_response(REST_TEXT),
        )
        result = await turn_manager.process_turn(_context(user_messages), sender)
        assert result.response_text == CUT_TEXT + REST_TEXT

    @_pytest.mark.asyncio
    async def test_context_manager_closes_turn_log(
        self,
        isolated_env,
        tmp_path,
        monkeypatch: _pytest.MonkeyPatch,
        user_messages: list[api_types.Message],
        scripted_sender_factory,
    ) -> None:
        """Leaving the with block closes the JSONL turn log."""
        monkeypatch.chdir(tmp_path)
        log_dir = tmp_path / "logs"
        with isolated_env:
            settings = config.Settings.construct_without_dotenv(
                prefer_exact_token_counting=False,
                logging={"enabled": True, "dir": str(log_dir)},
            )

        sender = scripted_sender_factory(conftest.make_response("Tides follow the moon."))
        with manager.ThinkingTurnManager.create_default(settings) as turn_manager:
            assert turn_manager.turn_logger is not None
            await turn_manager.process_turn(_context(user_messages), sender)
            log_path = turn_manager.turn_logger.file_path

        assert log_path is not None
        assert log_path.parent == log_dir
        events = [_json.loads(line) for line in log_path.read_text().splitlines()]
        assert [e["event_type"] for e in events][-2:] == ["turn_end", "logger_end"]

        # A second close is harmless.
        turn_manager.close()
        assert len(log_path.read_text().splitlines()) == len(events)

    def test_close_without_logger(self, token_counter: tokenization.TokenCounter) -> None:
        """close() is a no-op when no turn log was configured."""
        turn_manager = _manager(token_counter)
        assert turn_manager.turn_logger is None
        turn_manager.close()
