"""Tests for sensorbars.config."""

from __future__ import annotations

import tomllib
from pathlib import Path
from unittest.mock import patch

import pytest

from sensorbars.config import (
    DEFAULT_CONFIG,
    _deep_merge,
    dump_default_config,
    load_config,
    validate_config,
)


class TestLoadConfigDefaults:
    def test_defaults_returned_when_no_file(self, tmp_path: Path) -> None:
        with patch("sensorbars.config._DEFAULT_PATH", tmp_path / "missing.toml"):
            cfg = load_config(None)
        assert cfg["poll_interval"] == 0.5
        assert cfg["tick_interval"] == 0.5
        assert cfg["quit_key"] == "q"
        assert cfg["logging"]["file"] == ""

    def test_all_default_keys_present(self, tmp_path: Path) -> None:
        with patch("sensorbars.config._DEFAULT_PATH", tmp_path / "missing.toml"):
            cfg = load_config(None)
        assert set(cfg.keys()) == set(DEFAULT_CONFIG.keys())

    def test_default_location_used(self, tmp_path: Path) -> None:
        default = tmp_path / "config.toml"
        default.write_text('quit_key = "x"\n')
        with patch("sensorbars.config._DEFAULT_PATH", default):
            assert load_config(None)["quit_key"] == "x"

    def test_invalid_default_location_ignored(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        default = tmp_path / "config.toml"
        default.write_text("this is [not valid toml\n")
        with patch("sensorbars.config._DEFAULT_PATH", default):
            cfg = load_config(None)
        assert cfg["quit_key"] == "q"
        assert "ignoring invalid TOML" in capsys.readouterr().err


class TestTomlOverlay:
    def test_overrides_logging_section(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text('[logging]\nfile = "/tmp/sensorbars.log"\n')
        cfg = load_config(toml_file)
        assert cfg["logging"]["file"] == "/tmp/sensorbars.log"
        # Other logging keys remain at defaults
        assert cfg["logging"]["level"] == "WARNING"

    def test_overrides_scalar(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text("poll_interval = 2.0\nnvidia_smi = false\n")
        cfg = load_config(toml_file)
        assert cfg["poll_interval"] == 2.0
        assert cfg["nvidia_smi"] is False
        assert cfg["tick_interval"] == 0.5

    def test_hidden_sensors_list(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text('hidden_sensors = ["acpitz", "iwlwifi_1/0"]\n')
        cfg = load_config(toml_file)
        assert cfg["hidden_sensors"] == ["acpitz", "iwlwifi_1/0"]


class TestExplicitPath:
    def test_missing_explicit_path_errors(self, tmp_path: Path) -> None:
        missing = tmp_path / "nonexistent.toml"
        with pytest.raises(SystemExit) as exc:
            load_config(missing)
        assert exc.value.code == 1

    def test_invalid_toml_errors(self, tmp_path: Path) -> None:
        bad_file = tmp_path / "bad.toml"
        bad_file.write_text("this is [not valid toml\n")
        with pytest.raises(SystemExit):
            load_config(bad_file)


class TestValidation:
    def test_defaults_are_valid(self) -> None:
        assert validate_config(DEFAULT_CONFIG) == DEFAULT_CONFIG

    def test_integer_interval_coerced(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text("tick_interval = 1\n")
        cfg = load_config(toml_file)
        assert cfg["tick_interval"] == 1.0
        assert isinstance(cfg["tick_interval"], float)

    def test_log_level_normalised(self, tmp_path: Path) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text('[logging]\nlevel = "debug"\n')
        assert load_config(toml_file)["logging"]["level"] == "DEBUG"

    @pytest.mark.parametrize(
        ("body", "message"),
        [
            ("poll_interval = 0\n", "poll_interval"),
            ('tick_interval = "fast"\n', "tick_interval"),
            ('quit_key = ""\n', "quit_key"),
            ("quit_key = 7\n", "quit_key"),
            ('nvidia_smi = "yes"\n', "nvidia_smi"),
            ('hidden_sensors = "acpitz"\n', "hidden_sensors"),
            ("hidden_sensors = [1, 2]\n", "hidden_sensors"),
            ('[logging]\nlevel = "LOUD"\n', "logging level"),
        ],
    )
    def test_invalid_values_rejected(
        self,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
        body: str,
        message: str,
    ) -> None:
        toml_file = tmp_path / "config.toml"
        toml_file.write_text(body)
        with pytest.raises(SystemExit) as exc:
            load_config(toml_file)
        assert exc.value.code == 1
        assert message in capsys.readouterr().err

    def test_invalid_values_in_default_location_ignored(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        default = tmp_path / "config.toml"
        default.write_text("poll_interval = -1\n")
        with patch("sensorbars.config._DEFAULT_PATH", default):
            cfg = load_config(None)
        assert cfg["poll_interval"] == 0.5
        assert "ignoring" in capsys.readouterr().err


class TestDumpDefaultConfig:
    def test_is_valid_toml(self) -> None:
        parsed = tomllib.loads(dump_default_config())
        assert "poll_interval" in parsed
        assert "logging" in parsed

    def test_roundtrips_defaults(self) -> None:
        parsed = tomllib.loads(dump_default_config())
        assert parsed == DEFAULT_CONFIG


class TestDeepMerge:
    def test_scalar_overwrite(self) -> None:
        result = _deep_merge({"a": 1, "b": 2}, {"a": 10})
        assert result == {"a": 10, "b": 2}

    def test_nested_dict_merge(self) -> None:
        base = {"x": {"a": 1, "b": 2}}
        overlay = {"x": {"b": 3, "c": 4}}
        result = _deep_merge(base, overlay)
        assert result["x"] == {"a": 1, "b": 3, "c": 4}

    def test_new_key_added(self) -> None:
        result = _deep_merge({"a": 1}, {"b": 2})
        assert result == {"a": 1, "b": 2}
