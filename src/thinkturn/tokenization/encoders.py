"""
tiktoken encoder lookup.

Uses tiktoken's model-to-encoding mapping where available, with a fallback to
cl100k_base for unknown models. For non-OpenAI models the count is an
approximation; provider-reported usage always takes precedence over it.
"""

import tiktoken as _tiktoken

import thinkturn.constants as constants

# Model ID prefixes tiktoken models accurately.
OPENAI_MODEL_PREFIXES = ("gpt-", "o1", "o3", "o4", "chatgpt-", "text-embedding-")


def is_openai_model(model_id: str) -> bool:
    """Whether tiktoken's encodings are exact for this model."""
    return model_id.strip().lower().startswith(OPENAI_MODEL_PREFIXES)


def get_encoder(model: str | None) -> _tiktoken.Encoding:
    """
    Get a tiktoken encoder for the given model.

    Model → Encoding mapping (from tiktoken):
    - gpt-4o*, o1*, o3*, o4* → o200k_base
    - gpt-4*, gpt-3.5* → cl100k_base
    - Others (or None) → cl100k_base (approximate)

    Args:
        model: Model name (e.g., "gpt-4o", "claude-sonnet-4").

    Returns:
        A tiktoken Encoding suitable for the model.
    """
    if model:
        try:
            return _tiktoken.encoding_for_model(model)
        except KeyError:
            pass
    return _tiktoken.get_encoding(constants.DEFAULT_TIKTOKEN_ENCODING)


def count_tokens(encoder: _tiktoken.Encoding, text: str) -> int:
    """
    Count the number of tokens in a text string.

    Special-token text (e.g. "<|endoftext|>") is counted as ordinary text.
    """
    return len(encoder.encode(text, disallowed_special=()))
