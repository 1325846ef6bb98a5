"""
Core types, truncation detection and content recovery.
"""

from thinkturn.core.recovery import (
    ContentRecoveryResult,
    ContentRecoveryStatus,
    combine_fragments,
    find_clean_truncation_point,
    try_recover_code_blocks,
    try_recover_json,
)
from thinkturn.core.truncation import TruncationDetector, TruncationInfo, TruncationReason
from thinkturn.core.types import (
    ReasoningState,
    TaskComplexity,
    ThinkingContent,
    ThinkingState,
    ThinkingStateStore,
    ThinkTurnError,
)

__all__ = [
    "ContentRecoveryResult",
    "ContentRecoveryStatus",
    "ReasoningState",
    "TaskComplexity",
    "ThinkTurnError",
    "ThinkingContent",
    "ThinkingState",
    "ThinkingStateStore",
    "TruncationDetector",
    "TruncationInfo",
    "TruncationReason",
    "combine_fragments",
    "find_clean_truncation_point",
    "try_recover_code_blocks",
    "try_recover_json",
]
