from pathlib import Path

import pytest

from opwait.config import (
    DEFAULT_TIMEOUT_MINUTES,
    WaitConfig,
    _deep_merge,
    build_wait_config,
    load_config,
    load_wait_config,
)
from opwait.core.exceptions import ConfigurationError
from opwait.wait import PollPolicy

pytestmark = [pytest.mark.unit]


class TestDeepMerge:
    def test_shallow_override(self):
        assert _deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_merge(self):
        base = {"wait": {"timeout_minutes": 4, "max_interval": 10.0}}
        override = {"wait": {"timeout_minutes": 20}}
        assert _deep_merge(base, override) == {"wait": {"timeout_minutes": 20, "max_interval": 10.0}}

    def test_empty_base(self):
        assert _deep_merge({}, {"a": 1}) == {"a": 1}

    def test_empty_override(self):
        assert _deep_merge({"a": 1}, {}) == {"a": 1}


class TestLoadConfig:
    def test_no_files(self, tmp_path: Path):
        result = load_config(project_dir=tmp_path, global_path=tmp_path / "nonexistent.toml")
        assert result == {"wait": {}}

    def test_project_overrides_global(self, tmp_path: Path):
        global_toml = tmp_path / "defaults.toml"
        global_toml.write_text("[wait]\ntimeout_minutes = 5\nmax_interval = 20.0\n")
        project_dir = tmp_path / "project"
        project_dir.mkdir()
        (project_dir / "opwait.toml").write_text("[wait]\ntimeout_minutes = 15\n")

        result = load_config(project_dir=project_dir, global_path=global_toml)

        assert result["wait"] == {"timeout_minutes": 15, "max_interval": 20.0}

    def test_invalid_toml(self, tmp_path: Path):
        (tmp_path / "opwait.toml").write_text("[wait\n")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            load_config(project_dir=tmp_path, global_path=tmp_path / "nonexistent.toml")


class TestWaitConfig:
    def test_defaults(self, tmp_path: Path):
        config = load_wait_config(project_dir=tmp_path, global_path=tmp_path / "nonexistent.toml")
        assert config == WaitConfig()
        assert config.timeout_minutes == DEFAULT_TIMEOUT_MINUTES
        assert config.policy == PollPolicy()

    def test_full_table(self, tmp_path: Path):
        (tmp_path / "opwait.toml").write_text(
            "[wait]\n"
            "timeout_minutes = 30\n"
            "initial_interval = 1\n"
            "min_interval = 3.0\n"
            "max_interval = 60\n"
            "multiplier = 1.5\n"
        )
        config = load_wait_config(project_dir=tmp_path, global_path=tmp_path / "nonexistent.toml")
        assert config.timeout_minutes == 30.0
        assert config.policy == PollPolicy(
            initial_interval=1.0, min_interval=3.0, max_interval=60.0, multiplier=1.5,
        )

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Unknown wait settings: poll_every"):
            build_wait_config({"poll_every": 3})

    def test_non_numeric_value(self):
        with pytest.raises(ConfigurationError, match="must be a number"):
            build_wait_config({"timeout_minutes": "ten"})

    def test_floor_enforced(self):
        with pytest.raises(ConfigurationError, match="floor"):
            build_wait_config({"min_interval": 0.5})

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigurationError, match="positive"):
            build_wait_config({"timeout_minutes": 0})

    def test_wait_must_be_table(self, tmp_path: Path):
        (tmp_path / "opwait.toml").write_text('wait = "fast"\n')
        with pytest.raises(ConfigurationError, match="table"):
            load_wait_config(project_dir=tmp_path, global_path=tmp_path / "nonexistent.toml")
