"""Custom pydantic-settings source for thinkturn configuration.

This module provides:

- YamlFileSettingsSource: A pydantic-settings source that loads
  configuration from a single YAML file.

The file is chosen in this order:
1. The path in THINKTURN_CONFIG_FILE (must exist when set)
2. ./thinkturn.yaml in the current working directory (optional)
"""

import collections.abc as _abc
import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic.fields as _pydantic_fields
import pydantic_settings as _pydantic_settings
import yaml as _yaml

# Environment variable naming an explicit config file
ENV_CONFIG_FILE = "THINKTURN_CONFIG_FILE"

DEFAULT_CONFIG_FILENAME = "thinkturn.yaml"


class ConfigFileError(Exception):
    """Error loading or parsing a configuration file."""

    def __init__(self, path: _pathlib.Path, message: str) -> None:
        self.path = path
        super().__init__(f"Error in config file {path}: {message}")


def get_config_path() -> _pathlib.Path | None:
    """
    Get the path of the YAML config file to load, if any.

    Returns:
        Path from THINKTURN_CONFIG_FILE, or ./thinkturn.yaml if it exists,
        otherwise None.

    Raises:
        ConfigFileError: If THINKTURN_CONFIG_FILE names a missing file.
    """
    explicit = _os.environ.get(ENV_CONFIG_FILE)
    if explicit:
        path = _pathlib.Path(explicit)
        # Explicitly set but missing is an error, not a silent fallback
        if not path.exists():
            raise ConfigFileError(path, "file named by THINKTURN_CONFIG_FILE not found")
        return path

    local = _pathlib.Path.cwd() / DEFAULT_CONFIG_FILENAME
    return local if local.exists() else None


class YamlFileSettingsSource(_pydantic_settings.PydanticBaseSettingsSource):
    """
    Settings source that loads a YAML config file.

    The parsed mapping is returned as-is; Pydantic validates it and unknown
    keys end up in ``model_extra`` so they can be audited.
    """

    def __init__(
        self,
        settings_cls: type[_pydantic_settings.BaseSettings],
        config_path: _pathlib.Path | None = None,
    ) -> None:
        """
        Initialize the settings source.

        Args:
            settings_cls: The Settings class being populated.
            config_path: Override path for the config file (for testing).
                If not provided, uses get_config_path().
        """
        super().__init__(settings_cls)
        self._config_path = config_path if config_path is not None else get_config_path()
        self._data = self._load_yaml_file(self._config_path) if self._config_path else {}

    @property
    def config_path(self) -> _pathlib.Path | None:
        """The file that was loaded, if any."""
        return self._config_path

    def _load_yaml_file(self, path: _pathlib.Path) -> dict[str, _typing.Any]:
        """
        Load and validate the top level of a YAML file.

        Raises:
            ConfigFileError: If the file cannot be read or parsed, or its top
                level is not a mapping.
        """
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigFileError(path, f"cannot read file: {e}") from e

        try:
            data = _yaml.safe_load(content)
        except _yaml.YAMLError as e:
            raise ConfigFileError(path, f"invalid YAML: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigFileError(
                path, f"top level must be a mapping, got {type(data).__name__}"
            )
        return data

    def get_field_value(
        self,
        field: _pydantic_fields.FieldInfo,
        field_name: str,
    ) -> tuple[_typing.Any, str, bool]:
        """
        Get value for a field from the loaded file.

        Returns:
            Tuple of (value, field_name, is_complex).
        """
        value = self._data.get(field_name)
        if value is None:
            return None, field_name, False
        return value, field_name, isinstance(value, (_abc.Mapping, list))

    def __call__(self) -> dict[str, _typing.Any]:
        """Return the full file content (not filtered to known fields)."""
        return dict(self._data)
