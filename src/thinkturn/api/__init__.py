"""
Provider-agnostic exchange types for thinkturn.

thinkturn performs no network I/O. Callers adapt their own transport
client's responses into ChatResponse and pass an async send function.
"""

from thinkturn.api.types import (
    ChatResponse,
    FinishReason,
    Message,
    RequestOptions,
    SendFunction,
    Usage,
    UsageDetails,
)

__all__ = [
    "ChatResponse",
    "FinishReason",
    "Message",
    "RequestOptions",
    "SendFunction",
    "Usage",
    "UsageDetails",
]
