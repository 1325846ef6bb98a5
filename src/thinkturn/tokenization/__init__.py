"""
Token counting for budgets and complexity estimates.
"""

from thinkturn.tokenization.counters import (
    ApproximateTokenCounter,
    LanguageRatios,
    TiktokenTokenCounter,
    TokenCounter,
    create_token_counter,
)

__all__ = [
    "ApproximateTokenCounter",
    "LanguageRatios",
    "TiktokenTokenCounter",
    "TokenCounter",
    "create_token_counter",
]
