"""
ThinkingTurnManager: runs one reasoning turn end to end.

The manager composes the collaborators of a turn:

1. estimate the request's complexity and pick an advisory budget
2. send the conversation through the caller's send function
3. detect truncation and drive the continuation loop
4. extract thinking content and reasoning state from the result
5. account tokens against the budget and freeze the metrics

It performs no I/O of its own apart from calling the send function (and the
optional JSONL turn logger).
"""

from __future__ import annotations

import asyncio as _asyncio
import collections.abc as _abc
import logging as _logging
import typing as _typing

import thinkturn.agents.budget as budget
import thinkturn.agents.complexity as complexity
import thinkturn.agents.context as context_types
import thinkturn.agents.continuation as continuation
import thinkturn.agents.metrics as metrics_types
import thinkturn.agents.result as result_types
import thinkturn.api.types as api_types
import thinkturn.config as config
import thinkturn.core.truncation as truncation
import thinkturn.core.types as core_types
import thinkturn.logging as turn_logging
import thinkturn.parsers as parsers
import thinkturn.tokenization as tokenization

_logger = _logging.getLogger(__name__)

BudgetTrackerFactory = _typing.Callable[[], budget.BudgetTracker]


class ThinkingTurnManager:
    """
    Orchestrates reasoning turns.

    A manager may serve many turns concurrently: every turn gets its own
    BudgetTracker from ``budget_tracker_factory`` and all per-turn values
    live in locals, so nothing is shared between turns except the (read-only)
    collaborators and the optional statistics.
    """

    def __init__(
        self,
        complexity_estimator: complexity.ComplexityEstimator,
        continuation_handler: continuation.ContinuationHandler,
        budget_tracker_factory: BudgetTrackerFactory,
        parser_registry: parsers.ReasoningParserRegistry,
        token_counter: tokenization.TokenCounter,
        *,
        auto_estimate_complexity: bool = True,
        default_budget: config.BudgetConfig | None = None,
        turn_logger: turn_logging.TurnLogger | None = None,
        statistics: turn_logging.TurnStatistics | None = None,
    ) -> None:
        self._complexity_estimator = complexity_estimator
        self._continuation_handler = continuation_handler
        self._budget_tracker_factory = budget_tracker_factory
        self._parser_registry = parser_registry
        self._token_counter = token_counter
        self._auto_estimate_complexity = auto_estimate_complexity
        self._default_budget = default_budget
        self._turn_logger = turn_logger
        self._statistics = statistics

    @classmethod
    def create_default(
        cls,
        settings: config.Settings | None = None,
        *,
        parser_registry: parsers.ReasoningParserRegistry | None = None,
        token_counter: tokenization.TokenCounter | None = None,
        statistics: turn_logging.TurnStatistics | None = None,
    ) -> ThinkingTurnManager:
        """
        Build a manager with the built-in collaborators.

        Args:
            settings: Settings to wire from (loaded from the environment if None).
            parser_registry: Parser registry (a new default registry if None).
            token_counter: Token counter (picked from settings if None).
            statistics: Statistics to update after each turn.

        Returns:
            A ready-to-use manager.
        """
        if settings is None:
            settings = config.Settings()
        if token_counter is None:
            token_counter = tokenization.create_token_counter(
                prefer_exact=settings.prefer_exact_token_counting
            )

        turn_logger = None
        if settings.logging.enabled:
            turn_logger = turn_logging.TurnLogger.from_config(settings.logging, settings.logs_dir)

        return cls(
            complexity_estimator=complexity.HeuristicComplexityEstimator(token_counter),
            continuation_handler=continuation.ContinuationHandler(
                truncation.TruncationDetector(settings.truncation),
                turn_logger=turn_logger,
            ),
            budget_tracker_factory=lambda: budget.BudgetTracker(token_counter),
            parser_registry=parser_registry or parsers.ReasoningParserRegistry.create_default(),
            token_counter=token_counter,
            auto_estimate_complexity=settings.auto_estimate_complexity,
            default_budget=settings.budget,
            turn_logger=turn_logger,
            statistics=statistics,
        )

    @property
    def turn_logger(self) -> turn_logging.TurnLogger | None:
        return self._turn_logger

    def close(self) -> None:
        """Close the turn logger, if any. Safe to call more than once."""
        if self._turn_logger is not None:
            self._turn_logger.close()

    def __enter__(self) -> ThinkingTurnManager:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: _typing.Any,
    ) -> None:
        self.close()

    async def process_turn(
        self,
        context: context_types.ThinkingContext,
        send: api_types.SendFunction,
    ) -> result_types.TurnResult:
        """
        Process one turn.

        Args:
            context: The turn to run.
            send: Function that sends messages to the model.

        Returns:
            The final response with thinking content, reasoning state and metrics.

        Raises:
            asyncio.CancelledError: If the turn is cancelled. No partial
                result is produced.
            continuation.MaxContinuationsExceededError: If a guard stops the
                continuation loop and the config asks for an error.
        """
        metrics = metrics_types.TurnMetricsBuilder()
        tracker = self._budget_tracker_factory()

        try:
            context = self._prepare_context(context)
            metrics.with_complexity(context.estimated_complexity)

            input_tokens = sum(self._token_counter.count_message(m) for m in context.messages)
            tracker.set_input_tokens(input_tokens)
            metrics.with_input_tokens(input_tokens)

            if self._turn_logger is not None:
                self._turn_logger.log_turn_start(
                    turn_id=context.turn_id,
                    session_id=context.session_id,
                    model_id=context.model_id,
                    message_count=len(context.messages),
                    complexity=(
                        context.estimated_complexity.name
                        if context.estimated_complexity is not None
                        else None
                    ),
                )

            context.raise_if_cancelled()
            initial_response = await send(list(context.messages))
            self._log_initial_response(context, initial_response)

            outcome = await self._continuation_handler.handle(context, initial_response, send)
        except _asyncio.CancelledError:
            _logger.debug("Turn %s cancelled", context.turn_id)
            tracker.reset()
            raise

        final_response = outcome.final_response
        model_id = context.model_id or final_response.model_id
        thinking, reasoning_state = self._parse_reasoning(
            model_id, final_response, outcome.intermediate_responses
        )

        tracker.record_response(final_response, thinking)
        usage = tracker.get_usage()
        metrics.add_output_tokens(usage.output_tokens)
        metrics.add_thinking_tokens(usage.thinking_tokens)
        metrics.increment_continuation(outcome.continuation_count)

        self._check_budget(context, tracker, outcome.continuation_count)

        turn_metrics = metrics.build()
        result = result_types.TurnResult(
            response=final_response,
            metrics=turn_metrics,
            thinking_content=thinking,
            reasoning_state=reasoning_state,
            was_truncated=outcome.was_truncated,
            truncation=outcome.truncation,
            context=context,
        )

        _logger.info(
            "Turn %s complete: %d continuation(s), %d thinking / %d output tokens, "
            "truncated=%s (%.2fs)",
            context.turn_id,
            turn_metrics.continuation_count,
            turn_metrics.thinking_tokens,
            turn_metrics.output_tokens,
            result.was_truncated,
            turn_metrics.duration.total_seconds(),
        )
        if self._turn_logger is not None:
            self._turn_logger.log_turn_end(
                turn_id=context.turn_id,
                was_truncated=result.was_truncated,
                metrics=turn_metrics.to_dict(),
                thinking_length=len(thinking.text) if thinking is not None else None,
            )
        if self._statistics is not None:
            self._statistics.record_turn(
                was_truncated=result.was_truncated,
                continuation_count=turn_metrics.continuation_count,
                thinking_tokens=turn_metrics.thinking_tokens,
                output_tokens=turn_metrics.output_tokens,
                duration=turn_metrics.duration,
            )
        return result

    def _prepare_context(
        self, context: context_types.ThinkingContext
    ) -> context_types.ThinkingContext:
        """Fill in complexity and budget when the caller left them unset."""
        if context.estimated_complexity is None and self._auto_estimate_complexity:
            context = context.with_complexity(self._complexity_estimator.estimate(context.messages))

        if context.budget is None:
            if context.estimated_complexity is not None and self._auto_estimate_complexity:
                context = context.with_budget(
                    self._complexity_estimator.get_recommended_budget(context.estimated_complexity)
                )
            elif self._default_budget is not None:
                context = context.with_budget(self._default_budget)

        return context

    def _parse_reasoning(
        self,
        model_id: str | None,
        final_response: api_types.ChatResponse,
        responses: _abc.Sequence[api_types.ChatResponse],
    ) -> tuple[core_types.ThinkingContent | None, core_types.ReasoningState | None]:
        """
        Extract thinking content and reasoning state.

        The parser for the model is tried first, then every other registered
        parser. Each parser looks at the final response first, then at every
        response of the turn in order.
        """
        candidates = [final_response, *(r for r in responses if r is not final_response)]
        for parser in self._candidate_parsers(model_id):
            for response in candidates:
                thinking = parser.try_parse(response)
                state = parser.extract_state(response)
                if thinking is not None or state is not None:
                    _logger.debug(
                        "Reasoning parsed by %s parser (thinking=%s, state=%s)",
                        parser.provider_family,
                        thinking is not None,
                        state is not None,
                    )
                    return thinking, state
        return None, None

    def _candidate_parsers(self, model_id: str | None) -> list[parsers.ReasoningParser]:
        found, preferred = self._parser_registry.try_get_by_model(model_id)
        ordered: list[parsers.ReasoningParser] = []
        if found and preferred is not None:
            ordered.append(preferred)
        ordered.extend(p for p in self._parser_registry.items() if p is not preferred)
        return ordered

    def _check_budget(
        self,
        context: context_types.ThinkingContext,
        tracker: budget.BudgetTracker,
        continuation_count: int,
    ) -> None:
        """Log advisory budget overruns; never changes the outcome."""
        turn_budget = context.effective_budget
        usage = tracker.get_usage()
        if tracker.is_thinking_budget_exceeded(turn_budget):
            _logger.warning(
                "Turn %s exceeded thinking budget: %d > %d tokens",
                context.turn_id,
                usage.thinking_tokens,
                turn_budget.thinking_budget,
            )
        if tracker.is_answer_budget_exceeded(turn_budget):
            _logger.warning(
                "Turn %s exceeded answer budget: %d > %d tokens",
                context.turn_id,
                usage.output_tokens,
                turn_budget.answer_budget,
            )
        if continuation_count > turn_budget.max_continuations:
            _logger.warning(
                "Turn %s used %d continuations (budget %d)",
                context.turn_id,
                continuation_count,
                turn_budget.max_continuations,
            )

    def _log_initial_response(
        self,
        context: context_types.ThinkingContext,
        response: api_types.ChatResponse,
    ) -> None:
        if self._turn_logger is None:
            return
        self._turn_logger.log_response(
            turn_id=context.turn_id,
            index=0,
            text=response.text,
            finish_reason=response.finish_reason_value,
            output_tokens=response.usage.output_tokens if response.usage else None,
        )
