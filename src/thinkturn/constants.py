"""
Shared constants for thinkturn.

This module provides a single source of truth for default values
that are used across multiple modules.
"""

# Continuation defaults
DEFAULT_MAX_CONTINUATIONS = 5
"""Default maximum continuation requests per turn."""

DEFAULT_MAX_CONTINUATION_SECONDS = 300.0
"""Default wall-clock ceiling for the whole continuation loop (5 minutes)."""

DEFAULT_MIN_PROGRESS_CHARS = 10
"""Minimum new characters a continuation must add to count as progress.

This is a low bar. A model that keeps returning near-identical short
continuations can still pass it, so tune it per deployment.
"""

DEFAULT_CONTINUATION_PROMPT = "Please continue from where you left off."
"""Prompt sent to ask the model to resume a truncated answer."""

PREVIOUS_RESPONSE_PLACEHOLDER = "{previous_response}"
"""Placeholder in the continuation prompt replaced by the partial answer."""

# Budget defaults
DEFAULT_THINKING_BUDGET = 4096
"""Default advisory thinking-token budget."""

DEFAULT_ANSWER_BUDGET = 4096
"""Default advisory answer-token budget."""

DEFAULT_MAX_DURATION_SECONDS = 600.0
"""Default advisory turn duration budget (10 minutes)."""

DEFAULT_MIN_PROGRESS_TOKENS = 100
"""Default advisory minimum token progress per continuation."""

# Truncation heuristics
DEFAULT_MIN_TEXT_LENGTH_FOR_HEURISTICS = 100
"""Texts shorter than this are assumed to be intentionally brief."""

# Token counting
MESSAGE_TOKEN_OVERHEAD = 4
"""Fixed per-message token overhead (role markers and separators)."""

DEFAULT_TIKTOKEN_ENCODING = "cl100k_base"
"""Fallback tiktoken encoding for models tiktoken does not know."""

# Reasoning text joining
THINKING_BLOCK_SEPARATOR = "\n---\n"
"""Separator placed between multiple thinking blocks of one response."""

ENCRYPTED_REASONING_PLACEHOLDER = "[Reasoning content encrypted]"
"""Thinking text used when only encrypted reasoning was returned."""
