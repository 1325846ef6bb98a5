"""
Registry mapping providers and model IDs to reasoning parsers.
"""

from __future__ import annotations

import thinkturn.parsers.anthropic as anthropic
import thinkturn.parsers.base as base
import thinkturn.parsers.gemini as gemini
import thinkturn.parsers.openai as openai
import thinkturn.parsers.opensource as opensource
import thinkturn.providers.registry as providers_registry


class ReasoningParserRegistry(providers_registry.ProviderRegistry[base.ReasoningParser]):
    """
    Registry of reasoning parsers.

    Parsers are registered by provider family and found either directly or
    through model ID prefixes. A default parser (None unless set) is returned
    when nothing matches.
    """

    item_kind = "parser"

    def set_default_parser(self, parser: base.ReasoningParser | None) -> None:
        """Set the parser returned when no specific parser matches (None clears it)."""
        self._set_default(parser)

    @classmethod
    def create_default(cls) -> ReasoningParserRegistry:
        """
        Create a registry with the built-in parsers and model prefixes.

        Returns:
            A new registry the caller owns and may modify.
        """
        registry = cls()

        registry.register(openai.OpenAIReasoningParser())
        for prefix in ("gpt-", "o1", "o3", "o4"):
            registry.register_model_prefix(prefix, openai.PROVIDER)

        registry.register(anthropic.AnthropicReasoningParser())
        registry.register_model_prefix("claude", anthropic.PROVIDER)

        registry.register(gemini.GeminiReasoningParser())
        for prefix in ("gemini", "models/gemini"):
            registry.register_model_prefix(prefix, gemini.PROVIDER)

        registry.register(opensource.OpenSourceReasoningParser())
        for prefix in ("deepseek", "qwen", "qwq", "glm"):
            registry.register_model_prefix(prefix, opensource.PROVIDER)

        return registry


DEFAULT_PARSER_REGISTRY = ReasoningParserRegistry.create_default()
DEFAULT_PARSER_REGISTRY.freeze()
"""Shared pre-populated registry (frozen). Use create_default() for one you can modify."""
