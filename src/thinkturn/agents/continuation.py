"""
The continuation loop: ask the model to resume a truncated answer until it
is complete or a guard stops the loop.

States::

    INITIAL -> EVALUATING -> COMPLETED
                          -> CONTINUING -> SENDING -> EVALUATING -> ...
                          -> GUARD_EXCEEDED

Guards are checked before every continuation request: the number of
continuations and the wall-clock time of the loop. After a response that
leaves the answer truncated, the model must also have added enough new text.
"""

from __future__ import annotations

import asyncio as _asyncio
import dataclasses as _dataclasses
import enum as _enum
import logging as _logging
import time as _time

import thinkturn.agents.context as context_types
import thinkturn.api.types as api_types
import thinkturn.config.types as config_types
import thinkturn.core.recovery as recovery
import thinkturn.core.truncation as truncation
import thinkturn.core.types as core_types
import thinkturn.logging as turn_logging

_logger = _logging.getLogger(__name__)


class ContinuationState(_enum.Enum):
    INITIAL = "initial"
    SENDING = "sending"
    EVALUATING = "evaluating"
    CONTINUING = "continuing"
    COMPLETED = "completed"
    GUARD_EXCEEDED = "guard_exceeded"


class GuardReason(_enum.Enum):
    """Which guard stopped the loop."""

    MAX_CONTINUATIONS = "max_continuations"
    MAX_DURATION = "max_duration"
    INSUFFICIENT_PROGRESS = "insufficient_progress"


@_dataclasses.dataclass(frozen=True)
class ContinuationResult:
    """Outcome of the continuation loop."""

    final_response: api_types.ChatResponse
    """Last response's metadata carrying the merged text and summed usage."""

    continuation_count: int = 0
    state: ContinuationState = ContinuationState.COMPLETED
    guard: GuardReason | None = None

    truncation: truncation.TruncationInfo | None = None
    """Last detection result (only set while the answer was still truncated)."""

    intermediate_responses: tuple[api_types.ChatResponse, ...] = ()
    """Every response received, the initial one first."""

    @property
    def reached_max_continuations(self) -> bool:
        return self.guard is GuardReason.MAX_CONTINUATIONS

    @property
    def was_truncated(self) -> bool:
        """The loop stopped on a guard rather than a complete answer."""
        return self.guard is not None


class MaxContinuationsExceededError(core_types.ThinkTurnError):
    """Raised on a guard exit when ``throw_on_max_continuations`` is set."""

    def __init__(self, result: ContinuationResult, message: str) -> None:
        super().__init__(message)
        self.result = result

    @property
    def partial_response(self) -> api_types.ChatResponse:
        return self.result.final_response


def _sum_optional(values: list[int | None]) -> int | None:
    present = [v for v in values if v is not None]
    return sum(present) if present else None


def combine_usage(responses: list[api_types.ChatResponse]) -> api_types.Usage | None:
    """Sum the usage reported across several responses (None if none reported)."""
    usages = [r.usage for r in responses if r.usage is not None]
    if not usages:
        return None
    if len(usages) == 1:
        return usages[0]

    details = [u.details for u in usages if u.details is not None]
    return api_types.Usage(
        input_tokens=_sum_optional([u.input_tokens for u in usages]),
        output_tokens=_sum_optional([u.output_tokens for u in usages]),
        details=(
            api_types.UsageDetails(
                reasoning_tokens=_sum_optional([d.reasoning_tokens for d in details]),
                cached_tokens=_sum_optional([d.cached_tokens for d in details]),
            )
            if details
            else None
        ),
    )


def build_continuation_messages(
    context: context_types.ThinkingContext,
    accumulated: str,
) -> list[api_types.Message]:
    """
    Messages for one continuation request.

    The original conversation, then (if configured) the partial answer as an
    assistant message, then the continuation prompt as a user message.
    """
    config = context.continuation
    messages = list(context.messages)
    if config.include_previous_response and accumulated:
        messages.append(api_types.Message(role="assistant", content=accumulated))
    messages.append(api_types.Message(role="user", content=config.render_prompt(accumulated)))
    return messages


async def _delay(seconds: float, cancel_event: _asyncio.Event | None) -> None:
    """Sleep, waking early with CancelledError if the cancel event is set."""
    if cancel_event is None:
        await _asyncio.sleep(seconds)
        return
    try:
        await _asyncio.wait_for(cancel_event.wait(), timeout=seconds)
    except TimeoutError:
        return
    raise _asyncio.CancelledError("turn cancelled during continuation delay")


class ContinuationHandler:
    """Drives the continuation loop for one truncated response."""

    def __init__(
        self,
        detector: truncation.TruncationDetector | None = None,
        *,
        turn_logger: turn_logging.TurnLogger | None = None,
    ) -> None:
        self._detector = detector or truncation.TruncationDetector()
        self._turn_logger = turn_logger

    @property
    def detector(self) -> truncation.TruncationDetector:
        return self._detector

    async def handle(
        self,
        context: context_types.ThinkingContext,
        initial_response: api_types.ChatResponse,
        send: api_types.SendFunction,
    ) -> ContinuationResult:
        """
        Continue ``initial_response`` until it is complete or a guard trips.

        Args:
            context: The turn (messages and continuation config).
            initial_response: The response to the original request.
            send: Function that sends messages and returns one response.

        Returns:
            The merged result.

        Raises:
            MaxContinuationsExceededError: On a guard exit when the config
                asks for it.
            asyncio.CancelledError: If the turn is cancelled.
        """
        config = context.continuation
        started = _time.monotonic()
        state = ContinuationState.INITIAL

        state = self._transition(context, state, ContinuationState.EVALUATING)
        info = self._detector.detect(initial_response)
        if not info.is_truncated:
            self._transition(context, state, ContinuationState.COMPLETED)
            return ContinuationResult(
                final_response=initial_response,
                intermediate_responses=(initial_response,),
            )

        _logger.debug("Turn %s truncated: %s", context.turn_id, info.reason.name)
        responses = [initial_response]
        accumulated = initial_response.text
        count = 0
        guard: GuardReason | None = None

        while True:
            guard = self._check_guards(config, count, _time.monotonic() - started)
            if guard is not None:
                break

            state = self._transition(context, state, ContinuationState.CONTINUING)
            messages = build_continuation_messages(context, accumulated)

            delay = config.delay_between_continuations.total_seconds()
            if count > 0 and delay > 0:
                await _delay(delay, context.cancel_event)
            context.raise_if_cancelled()

            state = self._transition(context, state, ContinuationState.SENDING)
            response = await send(messages)
            count += 1
            responses.append(response)
            self._log_response(context, count, response)

            state = self._transition(context, state, ContinuationState.EVALUATING)
            overlap = recovery.overlap_length(accumulated, response.text)
            new_text = response.text[overlap:]
            accumulated = recovery.combine_fragments([accumulated, new_text])

            if self._turn_logger is not None:
                self._turn_logger.log_continuation(
                    turn_id=context.turn_id,
                    continuation_count=count,
                    progress_chars=len(new_text),
                    overlap_chars=overlap,
                )

            # A short fragment that completes the answer is not a stall.
            info = self._detector.detect(response.with_text(accumulated))
            if not info.is_truncated:
                break

            if len(new_text) < config.min_progress_per_continuation:
                _logger.debug(
                    "Turn %s: continuation %d added %d chars (minimum %d)",
                    context.turn_id,
                    count,
                    len(new_text),
                    config.min_progress_per_continuation,
                )
                guard = GuardReason.INSUFFICIENT_PROGRESS
                break

        accumulated = self._recover(context, accumulated)
        final_response = responses[-1].with_text(accumulated)
        final_response = _dataclasses.replace(final_response, usage=combine_usage(responses))

        if guard is None:
            self._transition(context, state, ContinuationState.COMPLETED)
            return ContinuationResult(
                final_response=final_response,
                continuation_count=count,
                state=ContinuationState.COMPLETED,
                intermediate_responses=tuple(responses),
            )

        self._transition(context, state, ContinuationState.GUARD_EXCEEDED)
        elapsed = _time.monotonic() - started
        _logger.warning(
            "Turn %s stopped on %s after %d continuation(s) (%.1fs)",
            context.turn_id,
            guard.value,
            count,
            elapsed,
        )
        if self._turn_logger is not None:
            self._turn_logger.log_guard_exceeded(
                turn_id=context.turn_id,
                guard=guard.value,
                continuation_count=count,
                elapsed_seconds=elapsed,
            )

        result = ContinuationResult(
            final_response=final_response,
            continuation_count=count,
            state=ContinuationState.GUARD_EXCEEDED,
            guard=guard,
            truncation=info,
            intermediate_responses=tuple(responses),
        )
        if config.throw_on_max_continuations:
            raise MaxContinuationsExceededError(
                result,
                f"Response still truncated after {count} continuation(s) "
                f"(guard: {guard.value}, max {config.max_continuations})",
            )
        return result

    @staticmethod
    def _check_guards(
        config: config_types.ContinuationConfig,
        count: int,
        elapsed: float,
    ) -> GuardReason | None:
        if count >= config.max_continuations:
            return GuardReason.MAX_CONTINUATIONS
        if elapsed >= config.max_total_duration.total_seconds():
            return GuardReason.MAX_DURATION
        return None

    def _recover(self, context: context_types.ThinkingContext, text: str) -> str:
        """Close unterminated JSON and code fences in the merged answer."""
        config = context.continuation

        if config.enable_json_recovery and recovery.looks_like_json(text):
            result = recovery.try_recover_json(text)
            self._log_recovery(context, "json", result)
            if result.was_modified:
                text = result.content

        if config.enable_code_block_recovery:
            result = recovery.try_recover_code_blocks(text)
            self._log_recovery(context, "code_block", result)
            if result.was_modified:
                text = result.content

        return text

    def _log_recovery(
        self,
        context: context_types.ThinkingContext,
        kind: str,
        result: recovery.ContentRecoveryResult,
    ) -> None:
        if result.status is recovery.ContentRecoveryStatus.NO_RECOVERY_NEEDED:
            return
        _logger.info(
            "Turn %s: %s recovery %s (%s)",
            context.turn_id,
            kind,
            result.status.value,
            result.description,
        )
        if self._turn_logger is not None:
            self._turn_logger.log_recovery(
                turn_id=context.turn_id,
                kind=kind,
                status=result.status.value,
                description=result.description,
            )

    def _log_response(
        self,
        context: context_types.ThinkingContext,
        index: int,
        response: api_types.ChatResponse,
    ) -> None:
        if self._turn_logger is None:
            return
        self._turn_logger.log_response(
            turn_id=context.turn_id,
            index=index,
            text=response.text,
            finish_reason=response.finish_reason_value,
            output_tokens=response.usage.output_tokens if response.usage else None,
        )

    @staticmethod
    def _transition(
        context: context_types.ThinkingContext,
        current: ContinuationState,
        new: ContinuationState,
    ) -> ContinuationState:
        _logger.debug("Turn %s: %s -> %s", context.turn_id, current.name, new.name)
        return new
