"""Tests for gaugewire.config."""

from __future__ import annotations

import json

import pytest

from gaugewire._constants import DEFAULT_MULTIPLIERS, DEFAULT_TIMESTAMP_FORMAT
from gaugewire.config import DeviceConfig


class TestFromDict:
    def test_minimal(self):
        config = DeviceConfig.from_dict({"deviceId": "egauge1", "username": "u", "password": "p"})
        assert config.device_id == "egauge1"
        assert config.multipliers == DEFAULT_MULTIPLIERS
        assert config.timestamp_format == DEFAULT_TIMESTAMP_FORMAT

    def test_multipliers_merge_over_defaults(self):
        config = DeviceConfig.from_dict(
            {
                "deviceId": "egauge1",
                "username": "u",
                "password": "p",
                "multipliers": {"P": 0.001, "X": 5},
            }
        )
        assert config.multipliers["P"] == 0.001
        assert config.multipliers["X"] == 5.0
        assert config.multipliers["V"] == DEFAULT_MULTIPLIERS["V"]

    def test_missing_key(self):
        with pytest.raises(ValueError, match="password"):
            DeviceConfig.from_dict({"deviceId": "egauge1", "username": "u"})

    def test_bad_multipliers(self):
        with pytest.raises(ValueError, match="multipliers"):
            DeviceConfig.from_dict(
                {"deviceId": "e", "username": "u", "password": "p", "multipliers": [1, 2]}
            )

    def test_null_multiplier(self):
        with pytest.raises(ValueError, match="map types to numbers"):
            DeviceConfig.from_dict(
                {"deviceId": "e", "username": "u", "password": "p", "multipliers": {"P": None}}
            )

    def test_non_object_config(self):
        with pytest.raises(ValueError, match="JSON object"):
            DeviceConfig.from_dict(["egauge1", "u", "p"])  # type: ignore[arg-type]

    def test_defaults_are_not_shared(self):
        a = DeviceConfig("e", "u", "p")
        a.multipliers["P"] = 99.0
        assert DeviceConfig("e", "u", "p").multipliers["P"] == DEFAULT_MULTIPLIERS["P"]


class TestLoadSave:
    def test_save_and_load(self, tmp_path):
        path = tmp_path / "sub" / "config.json"
        config = DeviceConfig("egauge1", "u", "p", timestamp_format="%H:%M")
        assert config.save(path) == path

        assert DeviceConfig.load(path) == config
        assert path.stat().st_mode & 0o777 == 0o600
        assert json.loads(path.read_text())["deviceId"] == "egauge1"

    def test_default_location(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        monkeypatch.setattr("gaugewire._constants.CONFIG_FILE", path)
        DeviceConfig("egauge1", "u", "p").save()
        assert DeviceConfig.load().device_id == "egauge1"

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="gaugewire configure"):
            DeviceConfig.load(tmp_path / "missing.json")
