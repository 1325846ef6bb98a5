"""
Token counters.

Two implementations of the TokenCounter protocol:

- ApproximateTokenCounter: character-class ratios, no dependencies, any model.
- TiktokenTokenCounter: exact for OpenAI models, close for most others.

Both add a fixed per-message overhead when counting a Message, covering the
role and framing tokens chat formats wrap around the content.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import math as _math
import typing as _typing

import tiktoken as _tiktoken

import thinkturn.api.types as api_types
import thinkturn.constants as constants
import thinkturn.tokenization.encoders as encoders

_logger = _logging.getLogger(__name__)


class TokenCounter(_typing.Protocol):
    """Counts tokens in text and messages."""

    def count(self, text: str | None) -> int: ...

    def count_message(self, message: api_types.Message) -> int: ...

    def supports_model(self, model_id: str | None) -> bool: ...


@_dataclasses.dataclass(frozen=True)
class LanguageRatios:
    """Average characters per token for each script."""

    latin: float = 4.0
    korean: float = 1.5
    japanese: float = 1.5
    chinese: float = 1.2
    other: float = 3.5


def _script(ch: str) -> str | None:
    """Classify a character; None for whitespace and control characters."""
    if ch.isspace() or not ch.isprintable():
        return None
    code = ord(ch)
    if 0xAC00 <= code <= 0xD7AF or 0x1100 <= code <= 0x11FF or 0x3130 <= code <= 0x318F:
        return "korean"
    if 0x3040 <= code <= 0x30FF:
        return "japanese"
    if 0x4E00 <= code <= 0x9FFF or 0x3400 <= code <= 0x4DBF:
        return "chinese"
    if code <= 0x024F and ch.isalpha():
        return "latin"
    return "other"


class ApproximateTokenCounter:
    """
    Estimates tokens from character counts per script.

    Latin text averages about four characters per token; Hangul, kana and
    Han characters are far denser. Mixed text is weighted by script.
    """

    def __init__(self, ratios: LanguageRatios | None = None) -> None:
        self._ratios = ratios or LanguageRatios()

    def count(self, text: str | None) -> int:
        if not text:
            return 0

        counts = dict.fromkeys(("latin", "korean", "japanese", "chinese", "other"), 0)
        for ch in text:
            script = _script(ch)
            if script is not None:
                counts[script] += 1

        tokens = sum(chars / getattr(self._ratios, script) for script, chars in counts.items())
        return _math.ceil(tokens)

    def count_message(self, message: api_types.Message) -> int:
        return self.count(message.content) + constants.MESSAGE_TOKEN_OVERHEAD

    def supports_model(self, model_id: str | None) -> bool:
        return True


class TiktokenTokenCounter:
    """Counts tokens with a tiktoken encoding."""

    def __init__(self, model_id: str | None = None) -> None:
        """
        Initialize with a model name for encoder selection.

        Args:
            model_id: Model name; unknown or missing uses cl100k_base.
        """
        self._encoder: _tiktoken.Encoding = encoders.get_encoder(model_id)

    @property
    def encoding_name(self) -> str:
        """Name of the encoder being used."""
        return self._encoder.name

    def count(self, text: str | None) -> int:
        if not text:
            return 0
        return encoders.count_tokens(self._encoder, text)

    def count_message(self, message: api_types.Message) -> int:
        return self.count(message.content) + constants.MESSAGE_TOKEN_OVERHEAD

    def supports_model(self, model_id: str | None) -> bool:
        if not model_id or not model_id.strip():
            return False
        try:
            return _tiktoken.encoding_name_for_model(model_id) == self._encoder.name
        except KeyError:
            return False


def create_token_counter(
    model_id: str | None = None,
    *,
    prefer_exact: bool = True,
) -> TokenCounter:
    """
    Pick a token counter for a model.

    tiktoken is used when exact counting is preferred and the model is an
    OpenAI model (or unknown). Everything else, and any failure to load a
    tiktoken encoding (it is downloaded on first use), falls back to the
    approximate counter.

    Args:
        model_id: Model the counts are for, if known.
        prefer_exact: Whether to try tiktoken at all.

    Returns:
        A TokenCounter.
    """
    if prefer_exact and (model_id is None or encoders.is_openai_model(model_id)):
        try:
            return TiktokenTokenCounter(model_id)
        except (OSError, ValueError) as e:
            _logger.warning("tiktoken unavailable (%s); using approximate token counts", e)
    return ApproximateTokenCounter()
