"""
Settings configuration using pydantic-settings.

Loads configuration from:
1. Constructor arguments (highest precedence)
2. Environment variables with THINKTURN_ prefix
3. .env file (if present)
4. YAML config file (THINKTURN_CONFIG_FILE or ./thinkturn.yaml)

Nested config uses double underscore delimiter:
  THINKTURN_CONTINUATION__MAX_CONTINUATIONS=3
  THINKTURN_LOGGING__ENABLED=true
"""

import getpass as _getpass
import os as _os
import pathlib as _pathlib
import tempfile as _tempfile
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings

import thinkturn.config.sources as sources
import thinkturn.config.types as types


def _get_env_file() -> str | None:
    """Determine which .env file to load.

    THINKTURN_ENV_FILE if set and existing, otherwise None (environment
    variables only).
    """
    if env_file := _os.environ.get("THINKTURN_ENV_FILE"):
        if _pathlib.Path(env_file).exists():
            return env_file
    return None


def _get_username() -> str:
    """Get the current username for directory naming."""
    try:
        return _getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


class Settings(_pydantic_settings.BaseSettings):
    """
    thinkturn configuration settings.

    All settings can be overridden via environment variables with THINKTURN_
    prefix. For nested config, use double underscore:
    THINKTURN_BUDGET__THINKING_BUDGET=8192

    Config precedence (highest to lowest):
    1. Constructor arguments
    2. Environment variables (THINKTURN_*)
    3. .env file
    4. YAML config file
    5. Built-in defaults
    """

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix="THINKTURN_",
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="allow",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[_pydantic_settings.BaseSettings],
        init_settings: _pydantic_settings.PydanticBaseSettingsSource,
        env_settings: _pydantic_settings.PydanticBaseSettingsSource,
        dotenv_settings: _pydantic_settings.PydanticBaseSettingsSource,
        file_secret_settings: _pydantic_settings.PydanticBaseSettingsSource,
    ) -> tuple[_pydantic_settings.PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            sources.YamlFileSettingsSource(settings_cls),
            file_secret_settings,
        )

    @classmethod
    def construct_without_dotenv(cls, **kwargs: _typing.Any) -> "Settings":
        """Create Settings from environment variables only, without loading .env file.

        Useful for test isolation and for reproducing issues without .env
        interference.
        """
        return cls(_env_file=None, **kwargs)  # type: ignore[call-arg]

    # =========================================================================
    # Nested config sections
    # =========================================================================

    budget: types.BudgetConfig = _pydantic.Field(default_factory=types.BudgetConfig)
    """Default advisory budget (used when complexity estimation is off)."""

    continuation: types.ContinuationConfig = _pydantic.Field(
        default_factory=types.ContinuationConfig
    )
    """Continuation loop settings."""

    truncation: types.TruncationDetectorConfig = _pydantic.Field(
        default_factory=types.TruncationDetectorConfig
    )
    """Truncation detector switches."""

    logging: types.TurnLoggingConfig = _pydantic.Field(
        default_factory=types.TurnLoggingConfig
    )
    """JSONL turn event logging."""

    # =========================================================================
    # Flat fields
    # =========================================================================

    auto_estimate_complexity: bool = True
    """Estimate complexity and pick a budget when a turn has none."""

    prefer_exact_token_counting: bool = True
    """Use tiktoken when available instead of the character-ratio estimate."""

    @property
    def logs_dir(self) -> _pathlib.Path:
        """Directory for turn event logs.

        Default: {tempdir}/thinkturn-logs-{username}
        """
        if self.logging.dir:
            return _pathlib.Path(self.logging.dir)
        return _pathlib.Path(_tempfile.gettempdir()) / f"thinkturn-logs-{_get_username()}"

    # =========================================================================
    # Introspection (for strict validation mode)
    # =========================================================================

    def get_extra_fields(self) -> dict[str, _typing.Any]:
        """Get unknown fields at the top level of Settings."""
        return dict(self.model_extra) if self.model_extra else {}

    def collect_all_extra_fields(self) -> dict[str, _typing.Any]:
        """
        Recursively collect all extra fields from Settings and nested configs.

        Returns a flat dict with dotted paths as keys, e.g.:
            {"continuation.max_continuatons": 3}
        """
        result: dict[str, _typing.Any] = dict(self.get_extra_fields())
        for field_name in ["budget", "continuation", "truncation", "logging"]:
            nested = getattr(self, field_name)
            result.update(nested.collect_all_extra_fields(prefix=field_name))
        return result

    def has_extra_fields(self) -> bool:
        """Check if there are any unknown fields anywhere in the config."""
        return bool(self.collect_all_extra_fields())

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert settings to a JSON-friendly dictionary."""
        return {
            "budget": self.budget.model_dump(mode="json"),
            "continuation": self.continuation.model_dump(mode="json"),
            "truncation": self.truncation.model_dump(mode="json"),
            "logging": self.logging.model_dump(mode="json"),
            "logs_dir": str(self.logs_dir),
            "auto_estimate_complexity": self.auto_estimate_complexity,
            "prefer_exact_token_counting": self.prefer_exact_token_counting,
        }
