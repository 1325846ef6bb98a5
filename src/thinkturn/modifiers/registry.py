"""
Registry mapping providers and model IDs to reasoning request modifiers.
"""

from __future__ import annotations

import thinkturn.api.types as api_types
import thinkturn.modifiers.base as base
import thinkturn.modifiers.opensource as opensource
import thinkturn.providers.registry as providers_registry


class ReasoningRequestModifierRegistry(
    providers_registry.ProviderRegistry[base.ReasoningRequestModifier]
):
    """
    Registry of request modifiers.

    Only providers that need an explicit opt-in are registered; a model with
    no modifier streams reasoning without any request changes.
    """

    item_kind = "modifier"

    def set_default_modifier(self, modifier: base.ReasoningRequestModifier | None) -> None:
        """Set the modifier returned when no specific modifier matches (None clears it)."""
        self._set_default(modifier)

    def requires_explicit_activation(self, model_id: str | None) -> bool:
        """Whether requests for ``model_id`` need a modifier to get reasoning."""
        return self.get_by_model(model_id) is not None

    def apply(
        self,
        options: api_types.RequestOptions | None,
        model_id: str | None,
    ) -> api_types.RequestOptions | None:
        """
        Enable reasoning on ``options`` if the model needs it.

        Returns:
            The modified options, or ``options`` untouched when no modifier
            matches.
        """
        modifier = self.get_by_model(model_id)
        if modifier is None:
            return options
        return modifier.enable_reasoning(options, model_id)

    @classmethod
    def create_default(cls) -> ReasoningRequestModifierRegistry:
        """Create a registry with the open-source modifier and its prefixes."""
        registry = cls()
        registry.register(opensource.OpenSourceRequestModifier())
        for prefix in ("deepseek", "qwen", "qwq", "glm"):
            registry.register_model_prefix(prefix, opensource.PROVIDER)
        return registry


DEFAULT_MODIFIER_REGISTRY = ReasoningRequestModifierRegistry.create_default()
DEFAULT_MODIFIER_REGISTRY.freeze()
"""Shared pre-populated registry (frozen). Use create_default() for one you can modify."""
