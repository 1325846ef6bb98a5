"""
Truncation detection for model responses.

A response is truncated when it stopped before conveying a complete answer.
The provider's finish reason is authoritative whenever it names a reason;
text analysis is only a fallback for responses that report a normal stop
(or nothing at all).
"""

from __future__ import annotations

import dataclasses as _dataclasses
import enum as _enum
import re as _re

import thinkturn.api.types as api_types
import thinkturn.config.types as config_types
import thinkturn.core.recovery as recovery


class TruncationReason(_enum.Enum):
    """Why a response is considered incomplete."""

    NONE = "none"
    TOKEN_LIMIT = "token_limit"
    UNBALANCED_STRUCTURE = "unbalanced_structure"
    INCOMPLETE_CODE_BLOCK = "incomplete_code_block"
    MID_SENTENCE = "mid_sentence"
    CONTENT_FILTERED = "content_filtered"
    RECITATION = "recitation"
    REFUSAL = "refusal"
    CONTEXT_WINDOW_EXCEEDED = "context_window_exceeded"


@_dataclasses.dataclass(frozen=True)
class TruncationInfo:
    """Result of truncation detection."""

    is_truncated: bool
    reason: TruncationReason = TruncationReason.NONE
    details: str | None = None

    @classmethod
    def not_truncated(cls) -> TruncationInfo:
        return _NOT_TRUNCATED

    @classmethod
    def truncated(cls, reason: TruncationReason, details: str | None = None) -> TruncationInfo:
        return cls(is_truncated=True, reason=reason, details=details)


_NOT_TRUNCATED = TruncationInfo(is_truncated=False)

# Finish reasons that carry an explicit truncation signal (lowercased).
_FINISH_REASON_MAP: dict[str, tuple[TruncationReason, str]] = {
    "length": (TruncationReason.TOKEN_LIMIT, "Response reached the output token limit"),
    "max_tokens": (TruncationReason.TOKEN_LIMIT, "Response reached the output token limit"),
    "content_filter": (
        TruncationReason.CONTENT_FILTERED,
        "Response was blocked by a content filter",
    ),
    "safety": (TruncationReason.CONTENT_FILTERED, "Response was blocked by safety filters"),
    "recitation": (
        TruncationReason.RECITATION,
        "Response was stopped for reciting training data",
    ),
    "refusal": (TruncationReason.REFUSAL, "Model refused to complete the response"),
    "model_context_window_exceeded": (
        TruncationReason.CONTEXT_WINDOW_EXCEEDED,
        "Conversation exceeded the model's context window",
    ),
}

_FENCE_LINE = _re.compile(r"^\s*```[\w+#.-]*\s*$", _re.MULTILINE)

_BRACKET_PAIRS = {"{": "}", "[": "]", "(": ")"}
_CLOSING_BRACKETS = {v: k for k, v in _BRACKET_PAIRS.items()}

# Endings that introduce more content rather than finish it.
_CONTINUATION_ENDINGS = frozenset(":-*#")


def _count_brackets(text: str) -> dict[str, int]:
    """Count brackets outside of string literals.

    Both double- and single-quoted strings are skipped; a single quote
    only opens a string when it is not preceded by a word character, so
    apostrophes in prose ("don't") do not hide the rest of the text.
    """
    counts = dict.fromkeys("{}[]()", 0)
    quote: str | None = None
    escaped = False
    prev = ""

    for ch in text:
        if quote is not None:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote or (ch == "\n" and quote == "'"):
                quote = None
        elif ch == '"':
            quote = ch
        elif ch == "'" and not (prev.isalnum() or prev == "_"):
            quote = ch
        elif ch in counts:
            counts[ch] += 1
        prev = ch

    return counts


class TruncationDetector:
    """
    Classifies responses as complete or truncated.

    Priority (first match wins):

    1. An explicit finish reason (length, content filter, recitation,
       refusal, context window) is mapped directly and never overridden.
    2. Structural analysis: unbalanced brackets outside strings, or an odd
       number of code fence lines.
    3. Heuristic analysis: long text that stops mid-sentence.
    """

    def __init__(self, options: config_types.TruncationDetectorConfig | None = None) -> None:
        self._options = options or config_types.TruncationDetectorConfig()

    @property
    def options(self) -> config_types.TruncationDetectorConfig:
        return self._options

    def detect(self, response: api_types.ChatResponse) -> TruncationInfo:
        """
        Detect truncation in a complete response.

        Args:
            response: The response to inspect.

        Returns:
            TruncationInfo describing the outcome.
        """
        finish_reason = response.finish_reason_value
        if finish_reason:
            explicit = _FINISH_REASON_MAP.get(finish_reason.strip().lower())
            if explicit is not None:
                reason, details = explicit
                return TruncationInfo.truncated(reason, details)

        return self.detect_in_text(response.text)

    def detect_in_text(self, text: str | None) -> TruncationInfo:
        """
        Detect truncation using only text analysis.

        Args:
            text: Response text.

        Returns:
            TruncationInfo describing the outcome. Empty text is never
            considered truncated.
        """
        if not text or not text.strip():
            return TruncationInfo.not_truncated()

        if self._options.enable_structural_analysis:
            structural = self._check_structure(text)
            if structural.is_truncated:
                return structural

        if (
            self._options.enable_heuristic_analysis
            and len(text) >= self._options.min_text_length_for_heuristics
        ):
            heuristic = self._check_mid_sentence(text)
            if heuristic.is_truncated:
                return heuristic

        return TruncationInfo.not_truncated()

    def _check_structure(self, text: str) -> TruncationInfo:
        counts = _count_brackets(text)
        unbalanced = [
            f"{opener}{counts[opener]} vs {closer}{counts[closer]}"
            for opener, closer in _BRACKET_PAIRS.items()
            if counts[opener] > counts[closer]
        ]
        if unbalanced:
            return TruncationInfo.truncated(
                TruncationReason.UNBALANCED_STRUCTURE,
                "Unbalanced brackets: " + ", ".join(unbalanced),
            )

        fences = len(_FENCE_LINE.findall(text))
        if fences % 2 == 1:
            return TruncationInfo.truncated(
                TruncationReason.INCOMPLETE_CODE_BLOCK,
                f"Unclosed code block ({fences} fence lines)",
            )

        return TruncationInfo.not_truncated()

    def _check_mid_sentence(self, text: str) -> TruncationInfo:
        # Ending on a line or paragraph boundary counts as a clean stop.
        if text.endswith("\n"):
            return TruncationInfo.not_truncated()

        trimmed = text.rstrip()
        if not trimmed:
            return TruncationInfo.not_truncated()

        last = trimmed[-1]
        if last in recovery.SENTENCE_TERMINATORS or last in _CONTINUATION_ENDINGS:
            return TruncationInfo.not_truncated()
        if trimmed.endswith(recovery.CODE_FENCE):
            return TruncationInfo.not_truncated()
        # Closing quotes/brackets after a terminator: 'He said "done."'
        stripped_closers = trimmed.rstrip("\"')]}»」』”’")
        if stripped_closers and stripped_closers[-1] in recovery.SENTENCE_TERMINATORS:
            return TruncationInfo.not_truncated()

        return TruncationInfo.truncated(
            TruncationReason.MID_SENTENCE,
            "Text ends without sentence-terminal punctuation",
        )
