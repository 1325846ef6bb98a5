"""
Provider-keyed plugin registry.

Items (parsers, request modifiers) are registered under their provider
family. Model IDs are mapped to provider families through an ordered list of
prefixes, so adding a provider never requires touching the core types.
All lookups are case-insensitive.
"""

from __future__ import annotations

import logging as _logging
import typing as _typing

import thinkturn.core.types as core_types

_logger = _logging.getLogger(__name__)


class ProviderItem(_typing.Protocol):
    """Anything that declares the provider family it serves."""

    @property
    def provider_family(self) -> str: ...


T = _typing.TypeVar("T", bound=ProviderItem)


class FrozenRegistryError(core_types.ThinkTurnError):
    """Raised when a frozen registry is modified."""


class ProviderRegistry(_typing.Generic[T]):
    """
    Registry mapping provider families and model ID prefixes to items.

    Registering a second item for the same provider replaces the first.
    Prefixes are matched in registration order; the first match wins.
    After ``freeze()`` every mutation raises FrozenRegistryError.
    """

    item_kind = "item"
    """Noun used in log messages (e.g. "parser")."""

    def __init__(self) -> None:
        self._by_provider: dict[str, T] = {}
        self._prefixes: list[tuple[str, str]] = []
        self._default: T | None = None
        self._frozen = False

    def freeze(self) -> None:
        """Make the registry read-only. Cannot be undone."""
        self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise FrozenRegistryError(
                f"{self.item_kind} registry is read-only; create a new registry to customize"
            )

    def register(self, item: T) -> None:
        """
        Register an item under its provider family.

        Args:
            item: The item to register.

        Raises:
            ValueError: If the item's provider family is blank.
            FrozenRegistryError: If the registry is frozen.
        """
        self._check_mutable()
        provider = _require_text(item.provider_family, "provider_family")
        if provider in self._by_provider:
            _logger.debug("Replacing %s for provider %r", self.item_kind, provider)
        self._by_provider[provider] = item

    def register_model_prefix(self, prefix: str, provider_family: str) -> None:
        """
        Map model IDs starting with ``prefix`` to a provider family.

        Args:
            prefix: Model ID prefix (case-insensitive).
            provider_family: Provider family to map to.

        Raises:
            ValueError: If either argument is blank.
            FrozenRegistryError: If the registry is frozen.
        """
        self._check_mutable()
        self._prefixes.append(
            (_require_text(prefix, "prefix"), _require_text(provider_family, "provider_family"))
        )

    def _set_default(self, item: T | None) -> None:
        self._check_mutable()
        self._default = item

    def get_by_provider(self, provider_family: str | None) -> T | None:
        """
        Get the item for a provider family.

        Returns:
            The registered item, else the default item (may be None).
        """
        if not provider_family or not provider_family.strip():
            return self._default
        return self._by_provider.get(provider_family.strip().lower(), self._default)

    def get_by_model(self, model_id: str | None) -> T | None:
        """
        Get the item for a model ID via prefix matching.

        Returns:
            The item of the first matching prefix whose provider is
            registered, else the default item (may be None).
        """
        if not model_id or not model_id.strip():
            return self._default

        lowered = model_id.strip().lower()
        for prefix, provider in self._prefixes:
            if lowered.startswith(prefix) and provider in self._by_provider:
                return self._by_provider[provider]
        return self._default

    def try_get_by_provider(self, provider_family: str | None) -> tuple[bool, T | None]:
        """Like get_by_provider, returning ``(found, item)``."""
        item = self.get_by_provider(provider_family)
        return item is not None, item

    def try_get_by_model(self, model_id: str | None) -> tuple[bool, T | None]:
        """Like get_by_model, returning ``(found, item)``."""
        item = self.get_by_model(model_id)
        return item is not None, item

    def detect_provider(self, model_id: str | None) -> str | None:
        """
        Detect the provider family of a model ID from the registered prefixes.

        Returns:
            The provider family of the first matching prefix, or None.
        """
        if not model_id or not model_id.strip():
            return None

        lowered = model_id.strip().lower()
        for prefix, provider in self._prefixes:
            if lowered.startswith(prefix):
                return provider
        return None

    @property
    def registered_providers(self) -> list[str]:
        """Provider families with a registered item, in registration order."""
        return list(self._by_provider)

    @property
    def registered_prefixes(self) -> list[tuple[str, str]]:
        """``(prefix, provider_family)`` pairs in match order."""
        return list(self._prefixes)

    def items(self) -> list[T]:
        """Registered items in registration order."""
        return list(self._by_provider.values())

    def __len__(self) -> int:
        return len(self._by_provider)

    def __contains__(self, provider_family: str) -> bool:
        return provider_family.lower() in self._by_provider


def _require_text(value: str | None, name: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{name} must not be empty")
    return value.strip().lower()
