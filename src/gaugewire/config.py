"""Device configuration stored under ``~/.config/gaugewire``."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from gaugewire import _constants
from gaugewire._constants import DEFAULT_MULTIPLIERS, DEFAULT_TIMESTAMP_FORMAT


@dataclass(frozen=True)
class DeviceConfig:
    """Identity and conversion settings for one eGauge device."""

    device_id: str
    """Device name as used in ``{device_id}.d.egauge.net``."""

    username: str
    password: str

    multipliers: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_MULTIPLIERS))
    """Register type -> scale factor applied to per-second differences."""

    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT
    """``strftime`` format used when exporting series."""

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> DeviceConfig:
        """Build a config from its JSON form.

        Configured multipliers are merged over the defaults so a config
        file only needs to list the types it overrides.
        """
        if not isinstance(data, dict):
            raise ValueError("Config must be a JSON object.")
        try:
            device_id = str(data["deviceId"])
            username = str(data["username"])
            password = str(data["password"])
        except KeyError as e:
            raise ValueError(f"Config is missing required key {e}.") from None
        multipliers = dict(DEFAULT_MULTIPLIERS)
        extra = data.get("multipliers") or {}
        if not isinstance(extra, dict):
            raise ValueError("Config key 'multipliers' must be an object.")
        try:
            multipliers.update({str(k): float(v) for k, v in extra.items()})
        except (TypeError, ValueError):
            raise ValueError("Config key 'multipliers' must map types to numbers.") from None
        return cls(
            device_id=device_id,
            username=username,
            password=password,
            multipliers=multipliers,
            timestamp_format=str(data.get("timestampFormat") or DEFAULT_TIMESTAMP_FORMAT),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "deviceId": self.device_id,
            "username": self.username,
            "password": self.password,
            "multipliers": self.multipliers,
            "timestampFormat": self.timestamp_format,
        }

    @classmethod
    def load(cls, path: Path | None = None) -> DeviceConfig:
        """Load the config from *path* (default ``~/.config/gaugewire/config.json``).

        Raises :class:`FileNotFoundError` if no config file exists.
        """
        path = path or _constants.CONFIG_FILE
        if not path.exists():
            raise FileNotFoundError(
                f"No saved config at {path}. Run `gaugewire configure` first."
            )
        return cls.from_dict(json.loads(path.read_text()))

    def save(self, path: Path | None = None) -> Path:
        """Persist the config; the file holds a password so it is ``0600``."""
        path = path or _constants.CONFIG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2))
        path.chmod(0o600)
        return path
