"""
Reasoning request modifier interface.

Some providers only return reasoning when the request opts in with a
provider-specific flag. A modifier adds those flags to outgoing request
options. Providers that return reasoning by default need no modifier.
"""

from __future__ import annotations

import typing as _typing

import thinkturn.api.types as api_types


class ReasoningRequestModifier(_typing.Protocol):
    """Adds reasoning opt-in flags for one provider family."""

    @property
    def provider_family(self) -> str: ...

    def supports_model(self, model_id: str | None) -> bool:
        """Whether this modifier knows how to enable reasoning for the model."""
        ...

    def enable_reasoning(
        self,
        options: api_types.RequestOptions | None,
        model_id: str | None,
    ) -> api_types.RequestOptions:
        """Return options (created if None) with reasoning enabled."""
        ...
