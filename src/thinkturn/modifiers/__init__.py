"""
Reasoning request modifiers: opt outgoing requests into reasoning output.
"""

from thinkturn.modifiers.base import ReasoningRequestModifier
from thinkturn.modifiers.opensource import (
    OpenSourceRequestModifier,
    OpenSourceRequestSettings,
)
from thinkturn.modifiers.registry import (
    DEFAULT_MODIFIER_REGISTRY,
    ReasoningRequestModifierRegistry,
)

__all__ = [
    "DEFAULT_MODIFIER_REGISTRY",
    "OpenSourceRequestModifier",
    "OpenSourceRequestSettings",
    "ReasoningRequestModifier",
    "ReasoningRequestModifierRegistry",
]
