"""Python API and CLI for eGauge energy meters."""

from gaugewire.client import Device, fetch_token, is_token_expired
from gaugewire.config import DeviceConfig
from gaugewire.exceptions import (
    EgaugeAuthError,
    EgaugeError,
    EgaugeParseError,
    EgaugeRequestError,
    ErrorType,
    MissingMultiplierError,
)
from gaugewire.registers import RegisterSample, round_value

__all__ = [
    "Device",
    "DeviceConfig",
    "EgaugeAuthError",
    "EgaugeError",
    "EgaugeParseError",
    "EgaugeRequestError",
    "ErrorType",
    "MissingMultiplierError",
    "RegisterSample",
    "fetch_token",
    "is_token_expired",
    "round_value",
]
