"""Internal constants for the eGauge JSON API."""

from __future__ import annotations

from pathlib import Path

API_URL = "https://{device_id}.d.egauge.net/api"

ENDPOINT_UNAUTHORIZED = "/auth/unauthorized"
ENDPOINT_LOGIN = "/auth/login"
ENDPOINT_REGISTER = "/register"
ENDPOINT_EPOCH = "/config/db/epoch"
ENDPOINT_TIME = "/sys/time"
ENDPOINT_UPTIME = "/sys/uptime"
ENDPOINT_REBOOT = "/cmd/reboot"

TOKEN_EXPIRY_BUFFER = 60  # seconds before expiry to trigger proactive refresh
REQUEST_TIMEOUT = 15  # seconds

DEFAULT_INTERVAL = 60
DEFAULT_DECIMALS = 6
DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Raw register units accumulate per second; these scale a per-second
# difference into the physical unit of the register type.
DEFAULT_MULTIPLIERS: dict[str, float] = {
    "P": 1.0,  # W
    "S": 1.0,  # VA
    "Q": 1.0,  # var
    "V": 0.001,  # mV -> V
    "I": 0.001,  # mA -> A
    "F": 0.001,  # mHz -> Hz
    "T": 0.001,  # m°C -> °C
    "h": 0.001,  # m%RH -> %RH
    "#": 0.001,
}

CONFIG_DIR = Path.home() / ".config" / "gaugewire"
CONFIG_FILE = CONFIG_DIR / "config.json"

API_HEADERS: dict[str, str] = {
    "Accept": "application/json",
}
