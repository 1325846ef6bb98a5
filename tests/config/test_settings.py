"""Tests for Settings loading from init args, environment and YAML."""

import datetime as _datetime
import pathlib as _pathlib

import pytest as _pytest

import thinkturn.config as config
import thinkturn.config.sources as sources


@_pytest.fixture
def workdir(tmp_path: _pathlib.Path, monkeypatch: _pytest.MonkeyPatch) -> _pathlib.Path:
    """Empty working directory with no THINKTURN_* variables set."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestSettingsDefaults:
    """Tests for default values."""

    def test_defaults(self, clean_settings: config.Settings) -> None:
        """Sections get their own defaults."""
        assert clean_settings.budget == config.BudgetConfig()
        assert clean_settings.continuation == config.ContinuationConfig()
        assert clean_settings.truncation == config.TruncationDetectorConfig()
        assert not clean_settings.logging.enabled
        assert clean_settings.auto_estimate_complexity
        assert clean_settings.prefer_exact_token_counting
        assert not clean_settings.has_extra_fields()

    def test_logs_dir_default(self, clean_settings: config.Settings) -> None:
        """Logs go to a per-user temp directory by default."""
        assert clean_settings.logs_dir.name.startswith("thinkturn-logs-")

    def test_to_dict(self, clean_settings: config.Settings) -> None:
        """to_dict is JSON-friendly."""
        data = clean_settings.to_dict()
        assert data["continuation"]["max_continuations"] == 5
        assert isinstance(data["logs_dir"], str)


class TestSettingsSources:
    """Tests for the layered sources."""

    def test_env_nested_override(
        self, isolated_env, workdir: _pathlib.Path, monkeypatch: _pytest.MonkeyPatch
    ) -> None:
        """Nested fields are set with a double underscore."""
        with isolated_env:
            monkeypatch.setenv("THINKTURN_CONTINUATION__MAX_CONTINUATIONS", "2")
            monkeypatch.setenv("THINKTURN_AUTO_ESTIMATE_COMPLEXITY", "false")
            settings = config.Settings.construct_without_dotenv()
        assert settings.continuation.max_continuations == 2
        assert not settings.auto_estimate_complexity

    def test_yaml_file(self, isolated_env, workdir: _pathlib.Path) -> None:
        """./thinkturn.yaml is loaded."""
        (workdir / sources.DEFAULT_CONFIG_FILENAME).write_text(
            "budget:\n"
            "  thinking_budget: 2048\n"
            "continuation:\n"
            "  delay_between_continuations: 2\n"
            "logging:\n"
            "  dir: /var/log/thinkturn\n"
        )
        with isolated_env:
            settings = config.Settings.construct_without_dotenv()
        assert settings.budget.thinking_budget == 2048
        assert settings.continuation.delay_between_continuations == _datetime.timedelta(seconds=2)
        assert settings.logs_dir == _pathlib.Path("/var/log/thinkturn")

    def test_env_beats_yaml(
        self, isolated_env, workdir: _pathlib.Path, monkeypatch: _pytest.MonkeyPatch
    ) -> None:
        """Environment variables take precedence over the YAML file."""
        (workdir / sources.DEFAULT_CONFIG_FILENAME).write_text("prefer_exact_token_counting: true\n")
        with isolated_env:
            monkeypatch.setenv("THINKTURN_PREFER_EXACT_TOKEN_COUNTING", "false")
            settings = config.Settings.construct_without_dotenv()
        assert not settings.prefer_exact_token_counting

    def test_init_beats_env(
        self, isolated_env, workdir: _pathlib.Path, monkeypatch: _pytest.MonkeyPatch
    ) -> None:
        """Constructor arguments take precedence over everything."""
        with isolated_env:
            monkeypatch.setenv("THINKTURN_AUTO_ESTIMATE_COMPLEXITY", "false")
            settings = config.Settings.construct_without_dotenv(auto_estimate_complexity=True)
        assert settings.auto_estimate_complexity

    def test_unknown_keys_are_collected(self, isolated_env, workdir: _pathlib.Path) -> None:
        """Typos in the YAML file show up as extra fields."""
        (workdir / sources.DEFAULT_CONFIG_FILENAME).write_text(
            "continuation:\n  max_continuatons: 3\nbudgett: {}\n"
        )
        with isolated_env:
            settings = config.Settings.construct_without_dotenv()
        assert settings.collect_all_extra_fields() == {
            "budgett": {},
            "continuation.max_continuatons": 3,
        }
        assert settings.has_extra_fields()

    def test_invalid_value_rejected(
        self, isolated_env, workdir: _pathlib.Path, monkeypatch: _pytest.MonkeyPatch
    ) -> None:
        """Negative limits fail validation."""
        with isolated_env:
            monkeypatch.setenv("THINKTURN_CONTINUATION__MAX_CONTINUATIONS", "-1")
            with _pytest.raises(ValueError):
                config.Settings.construct_without_dotenv()
