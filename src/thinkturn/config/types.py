"""Configuration type definitions for thinkturn.

This module defines the Pydantic models used to represent configuration
sections. Each section can be used on its own (e.g. a ``ContinuationConfig``
attached to one turn) or nested within the main Settings class.

- BudgetConfig: advisory thinking/answer token budgets and limits
- ContinuationConfig: continuation loop guards, prompt and recovery toggles
- TruncationDetectorConfig: which heuristics the detector runs
- TurnLoggingConfig: JSONL turn event logging

All types use `extra="allow"` to preserve unknown fields. Use
`get_extra_fields()` to audit a config for typos.
"""

import datetime as _datetime
import typing as _typing

import pydantic as _pydantic

import thinkturn.constants as constants

# =============================================================================
# Base class with introspection
# =============================================================================


class ConfigBase(_pydantic.BaseModel):
    """
    Base class for all config types.

    Unknown fields are preserved rather than silently dropped so that a
    config file can be audited for typos.
    """

    model_config = _pydantic.ConfigDict(extra="allow", validate_assignment=True)

    def get_extra_fields(self) -> dict[str, _typing.Any]:
        """
        Return fields that were provided but not in the schema.

        Returns:
            Dict of field_name → value for all unrecognized fields.
        """
        return dict(self.model_extra) if self.model_extra else {}

    def has_extra_fields(self) -> bool:
        """Check if this config has any unrecognized fields."""
        return bool(self.model_extra)

    def collect_all_extra_fields(
        self,
        prefix: str = "",
    ) -> dict[str, _typing.Any]:
        """
        Recursively collect extra fields from this config and nested configs.

        Returns a flat dict with dotted paths as keys, e.g.:
            {"continuation.max_continuatons": 3}

        Args:
            prefix: Dotted path prefix (used in recursion).

        Returns:
            Flat dict of path → value for all unrecognized fields.
        """
        result: dict[str, _typing.Any] = {}

        for key, value in self.get_extra_fields().items():
            path = f"{prefix}.{key}" if prefix else key
            result[path] = value

        for field_name in self.__class__.model_fields:
            value = getattr(self, field_name, None)
            if isinstance(value, ConfigBase):
                child_prefix = f"{prefix}.{field_name}" if prefix else field_name
                result.update(value.collect_all_extra_fields(child_prefix))

        return result


# =============================================================================
# Budget
# =============================================================================


class BudgetConfig(ConfigBase):
    """
    Advisory token and time budget for one turn.

    Exceeding a budget is reported (logged, and visible through the budget
    tracker's checks), never enforced by cutting generation short.

    YAML section: budget.*
    """

    model_config = _pydantic.ConfigDict(extra="allow", frozen=True)

    thinking_budget: int = _pydantic.Field(default=constants.DEFAULT_THINKING_BUDGET, ge=0)
    """Tokens the model may spend on reasoning."""

    answer_budget: int = _pydantic.Field(default=constants.DEFAULT_ANSWER_BUDGET, ge=0)
    """Tokens the model may spend on the visible answer."""

    max_continuations: int = _pydantic.Field(
        default=constants.DEFAULT_MAX_CONTINUATIONS, ge=0
    )
    """Continuation requests recommended for this budget."""

    max_duration: _datetime.timedelta = _pydantic.Field(
        default=_datetime.timedelta(seconds=constants.DEFAULT_MAX_DURATION_SECONDS)
    )
    """Wall-clock time recommended for the whole turn."""

    min_progress_tokens: int = _pydantic.Field(
        default=constants.DEFAULT_MIN_PROGRESS_TOKENS, ge=0
    )
    """Tokens a continuation should add to count as progress."""

    @_pydantic.field_validator("max_duration")
    @classmethod
    def _non_negative_duration(cls, value: _datetime.timedelta) -> _datetime.timedelta:
        if value < _datetime.timedelta(0):
            raise ValueError("max_duration must not be negative")
        return value


# =============================================================================
# Continuation
# =============================================================================


class ContinuationConfig(ConfigBase):
    """
    Settings for the continuation loop that resumes truncated responses.

    YAML section: continuation.*
    """

    model_config = _pydantic.ConfigDict(extra="allow", frozen=True)

    max_continuations: int = _pydantic.Field(
        default=constants.DEFAULT_MAX_CONTINUATIONS, ge=0
    )
    """Maximum continuation requests after the initial one."""

    max_total_duration: _datetime.timedelta = _pydantic.Field(
        default=_datetime.timedelta(seconds=constants.DEFAULT_MAX_CONTINUATION_SECONDS)
    )
    """Wall-clock limit for the whole continuation loop."""

    delay_between_continuations: _datetime.timedelta = _pydantic.Field(
        default=_datetime.timedelta(0)
    )
    """Pause before each continuation after the first."""

    enable_json_recovery: bool = True
    """Close unterminated JSON in the merged response."""

    enable_code_block_recovery: bool = True
    """Close an unterminated code fence in the merged response."""

    continuation_prompt: str = constants.DEFAULT_CONTINUATION_PROMPT
    """User message sent to ask for more. May contain {previous_response}."""

    include_previous_response: bool = True
    """Send the accumulated partial answer back as an assistant message."""

    min_progress_per_continuation: int = _pydantic.Field(
        default=constants.DEFAULT_MIN_PROGRESS_CHARS, ge=0
    )
    """New characters (after overlap removal) a continuation must add."""

    throw_on_max_continuations: bool = False
    """Raise MaxContinuationsExceededError instead of flagging truncation."""

    @_pydantic.field_validator("max_total_duration", "delay_between_continuations")
    @classmethod
    def _non_negative_duration(cls, value: _datetime.timedelta) -> _datetime.timedelta:
        if value < _datetime.timedelta(0):
            raise ValueError("durations must not be negative")
        return value

    def render_prompt(self, previous_response: str) -> str:
        """Render the continuation prompt, substituting the partial answer."""
        return self.continuation_prompt.replace(
            constants.PREVIOUS_RESPONSE_PLACEHOLDER, previous_response
        )


# =============================================================================
# Truncation detection
# =============================================================================


class TruncationDetectorConfig(ConfigBase):
    """
    Which heuristics the truncation detector runs.

    Explicit finish reasons are always honoured; these switches only affect
    the text analysis used when the provider gave no explicit signal.

    YAML section: truncation.*
    """

    model_config = _pydantic.ConfigDict(extra="allow", frozen=True)

    enable_structural_analysis: bool = True
    """Check bracket balance and code fences."""

    enable_heuristic_analysis: bool = True
    """Check whether the text stops mid-sentence."""

    min_text_length_for_heuristics: int = _pydantic.Field(
        default=constants.DEFAULT_MIN_TEXT_LENGTH_FOR_HEURISTICS, ge=0
    )
    """Shorter texts are never flagged as stopping mid-sentence."""


# =============================================================================
# Turn logging
# =============================================================================


class TurnLoggingConfig(ConfigBase):
    """
    JSONL turn event logging.

    YAML section: logging.*
    """

    enabled: bool = False
    """Write turn events to a JSONL file."""

    dir: str | None = None
    """Log directory. None = the platform temp directory."""

    private: bool = True
    """Lock log directory to owner-only (drwx------)."""

    include_text: bool = False
    """Include full response text in events (otherwise only lengths)."""
