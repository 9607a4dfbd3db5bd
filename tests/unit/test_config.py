"""Unit tests for calendar_planner configuration loading."""

import os
from pathlib import Path

import pytest

from calendar_planner.config_loader import Config, load_config
from calendar_planner.config_manager import ConfigManager, load_settings

pytestmark = pytest.mark.unit


@pytest.fixture
def isolated_environ():
    """Drop planner variables that a test or a .env file put into os.environ."""
    yield os.environ
    for key in [k for k in os.environ if k.startswith("CALENDAR_PLANNER_")]:
        del os.environ[key]


class TestConfigFromDict:
    """Tests for Config.from_dict coercion."""

    def test_defaults(self):
        cfg = Config.from_dict(None)

        assert cfg == Config()
        assert cfg.data_dir == "data"
        assert cfg.statistics_window_days == 30

    def test_values_are_coerced(self):
        cfg = Config.from_dict(
            {"data_dir": "/tmp/planner", "log_level": "debug", "statistics_window_days": "14"}
        )

        assert cfg.data_dir == "/tmp/planner"
        assert cfg.log_level == "DEBUG"
        assert cfg.statistics_window_days == 14

    @pytest.mark.parametrize("raw,expected", [(0, 1), (-4, 1), (1000, 366), ("abc", 30)])
    def test_window_days_are_clamped(self, raw, expected):
        cfg = Config.from_dict({"reminder_lookahead_days": raw})

        assert cfg.reminder_lookahead_days == expected


class TestLoadConfig:
    """Tests for YAML loading."""

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(str(tmp_path / "missing.yaml")) == Config()

    def test_reads_yaml_mapping(self, tmp_path):
        path = tmp_path / "calendar_planner.yaml"
        path.write_text("data_dir: store\nstatistics_window_days: 7\n", encoding="utf-8")

        cfg = load_config(str(path))

        assert cfg.data_dir == "store"
        assert cfg.statistics_window_days == 7

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "calendar_planner.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(str(path)) == Config()

    def test_non_mapping_is_rejected(self, tmp_path):
        path = tmp_path / "calendar_planner.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))

    def test_default_path_is_working_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "calendar_planner.yaml").write_text("log_level: warning\n", encoding="utf-8")

        assert load_config().log_level == "WARNING"


class TestConfigManager:
    """Tests for environment overrides."""

    def test_env_file_does_not_override_existing_variables(self, tmp_path, isolated_environ):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n"
            "CALENDAR_PLANNER_DATA_DIR='from-file'\n"
            "CALENDAR_PLANNER_LOG_LEVEL=debug\n"
            "not a pair\n",
            encoding="utf-8",
        )
        isolated_environ["CALENDAR_PLANNER_LOG_LEVEL"] = "ERROR"

        loaded = ConfigManager(env_file).load_env_file()

        assert loaded == ["CALENDAR_PLANNER_DATA_DIR"]
        assert isolated_environ["CALENDAR_PLANNER_DATA_DIR"] == "from-file"
        assert isolated_environ["CALENDAR_PLANNER_LOG_LEVEL"] == "ERROR"

    def test_missing_env_file(self, tmp_path, isolated_environ):
        assert ConfigManager(tmp_path / ".env").load_env_file() == []

    def test_build_config_from_env(self, isolated_environ):
        isolated_environ.update(
            {
                "CALENDAR_PLANNER_DATA_DIR": "/srv/planner",
                "CALENDAR_PLANNER_LOG_LEVEL": "warning",
                "CALENDAR_PLANNER_STATS_DAYS": "9",
            }
        )

        assert ConfigManager(Path("unused")).build_config_from_env() == {
            "data_dir": "/srv/planner",
            "log_level": "WARNING",
            "statistics_window_days": 9,
        }

    def test_invalid_stats_days_is_ignored(self, isolated_environ):
        isolated_environ["CALENDAR_PLANNER_STATS_DAYS"] = "soon"

        assert ConfigManager(Path("unused")).build_config_from_env() == {}


class TestLoadSettings:
    """Tests for file plus environment precedence."""

    def test_environment_wins_over_file(self, tmp_path, isolated_environ):
        config_path = tmp_path / "calendar_planner.yaml"
        config_path.write_text("data_dir: from-yaml\nstatistics_window_days: 5\n", encoding="utf-8")
        env_file = tmp_path / ".env"
        env_file.write_text("CALENDAR_PLANNER_DATA_DIR=from-env\n", encoding="utf-8")

        cfg = load_settings(str(config_path), env_file)

        assert cfg.data_dir == "from-env"
        assert cfg.statistics_window_days == 5

    def test_without_overrides_returns_file_config(self, tmp_path, isolated_environ):
        config_path = tmp_path / "calendar_planner.yaml"
        config_path.write_text("reminder_lookahead_days: 3\n", encoding="utf-8")

        cfg = load_settings(str(config_path), tmp_path / ".env")

        assert cfg.reminder_lookahead_days == 3
