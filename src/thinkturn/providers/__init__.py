"""
Provider plumbing shared by the parser and request modifier registries.
"""

from thinkturn.providers.registry import FrozenRegistryError, ProviderItem, ProviderRegistry

__all__ = ["FrozenRegistryError", "ProviderItem", "ProviderRegistry"]
