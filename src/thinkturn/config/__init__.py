"""
Configuration module for thinkturn.

Uses pydantic for config sections and pydantic-settings for environment
variable and YAML loading.
"""

from thinkturn.config.settings import Settings
from thinkturn.config.sources import ConfigFileError
from thinkturn.config.types import (
    BudgetConfig,
    ConfigBase,
    ContinuationConfig,
    TruncationDetectorConfig,
    TurnLoggingConfig,
)

__all__ = [
    "BudgetConfig",
    "ConfigBase",
    "ConfigFileError",
    "ContinuationConfig",
    "Settings",
    "TruncationDetectorConfig",
    "TurnLoggingConfig",
]
