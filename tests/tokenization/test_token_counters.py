"""
Tests for token counters.

Only the approximate counter is exercised directly; tiktoken encodings are
downloaded on first use, so counter selection is tested with the encoder
lookup patched out.
"""

import pytest as _pytest

import thinkturn.api.types as api_types
import thinkturn.tokenization as tokenization
import thinkturn.tokenization.counters as counters
import thinkturn.tokenization.encoders as encoders


class TestApproximateTokenCounter:
    """Tests for ApproximateTokenCounter."""

    @_pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("", 0),
            ("abcdefgh", 2),
            ("abcdefghi", 3),
            ("안녕하세요", 4),
            ("こんにちは", 4),
            ("日本", 2),
            ("1234", 2),
        ],
    )
    def test_counts_by_script(self, text: str, expected: int) -> None:
        """Each script uses its own characters-per-token ratio."""
        assert tokenization.ApproximateTokenCounter().count(text) == expected

    def test_whitespace_is_free(self) -> None:
        """Whitespace does not add tokens."""
        counter = tokenization.ApproximateTokenCounter()
        assert counter.count("abcd    efgh\n") == counter.count("abcdefgh")

    def test_none_is_zero(self) -> None:
        """None counts as empty."""
        assert tokenization.ApproximateTokenCounter().count(None) == 0

    def test_message_overhead(self) -> None:
        """Each message costs four tokens on top of its content."""
        counter = tokenization.ApproximateTokenCounter()
        message = api_types.Message(role="user", content="abcdefgh")
        assert counter.count_message(message) == 6

    def test_custom_ratios(self) -> None:
        """Ratios are configurable."""
        counter = tokenization.ApproximateTokenCounter(tokenization.LanguageRatios(latin=2.0))
        assert counter.count("abcdefgh") == 4

    def test_supports_every_model(self) -> None:
        """The estimate works for any model."""
        assert tokenization.ApproximateTokenCounter().supports_model("anything")


class TestCreateTokenCounter:
    """Tests for create_token_counter."""

    def test_prefer_exact_false(self) -> None:
        """Exact counting can be turned off."""
        counter = tokenization.create_token_counter("gpt-4o", prefer_exact=False)
        assert isinstance(counter, tokenization.ApproximateTokenCounter)

    def test_non_openai_model_uses_estimate(self) -> None:
        """tiktoken is not used for other vendors' models."""
        counter = tokenization.create_token_counter("claude-3-opus")
        assert isinstance(counter, tokenization.ApproximateTokenCounter)

    def test_encoding_failure_falls_back(self, monkeypatch: _pytest.MonkeyPatch) -> None:
        """A failed encoding download falls back to the estimate."""

        def _unavailable(model: str | None) -> None:
            raise OSError(f"cannot download encoding for {model}")

        monkeypatch.setattr(encoders, "get_encoder", _unavailable)
        counter = tokenization.create_token_counter("gpt-4o")
        assert isinstance(counter, counters.ApproximateTokenCounter)


class TestIsOpenAIModel:
    """Tests for is_openai_model."""

    @_pytest.mark.parametrize("model_id", ["gpt-4o", "GPT-5", "o1-preview", "o3", "o4-mini"])
    def test_openai_models(self, model_id: str) -> None:
        """OpenAI model families are recognized."""
        assert encoders.is_openai_model(model_id)

    @_pytest.mark.parametrize("model_id", ["claude-3", "gemini-2.5", "qwen3"])
    def test_other_models(self, model_id: str) -> None:
        """Other vendors are not."""
        assert not encoders.is_openai_model(model_id)
