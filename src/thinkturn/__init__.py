"""
thinkturn - turn orchestration for reasoning models

Detects truncated answers, asks the model to continue them, repairs what is
still broken, and extracts thinking content and reasoning state from the
result.
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml - read it and parse into tuple (primary representation)
_raw_version = _metadata.version("thinkturn")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)
__author__ = "thinkturn contributors"

from thinkturn.agents import ThinkingContext, ThinkingTurnManager, TurnResult  # noqa: E402
from thinkturn.api import ChatResponse, FinishReason, Message  # noqa: E402
from thinkturn.config import Settings  # noqa: E402

__all__ = [
    "__version__",
    "__version_info__",
    "ChatResponse",
    "FinishReason",
    "Message",
    "Settings",
    "ThinkingContext",
    "ThinkingTurnManager",
    "TurnResult",
]
