"""
Reasoning parsers: extract thinking content and continuation state from
provider responses.
"""

from thinkturn.parsers.anthropic import AnthropicReasoningParser
from thinkturn.parsers.base import ReasoningParser
from thinkturn.parsers.gemini import GeminiReasoningParser
from thinkturn.parsers.openai import OpenAIReasoningParser
from thinkturn.parsers.opensource import (
    OpenSourceReasoningParser,
    ThinkTagConfig,
    strip_think_tags,
)
from thinkturn.parsers.registry import DEFAULT_PARSER_REGISTRY, ReasoningParserRegistry

__all__ = [
    "DEFAULT_PARSER_REGISTRY",
    "AnthropicReasoningParser",
    "GeminiReasoningParser",
    "OpenAIReasoningParser",
    "OpenSourceReasoningParser",
    "ReasoningParser",
    "ReasoningParserRegistry",
    "ThinkTagConfig",
    "strip_think_tags",
]
