"""Register responses and conversion of accumulative counters into rates.

eGauge registers are cumulative: a power register holds watt-seconds, not
watts.  A rate is derived by differencing two rows and dividing by the
number of seconds between them, then scaling by a per-type multiplier.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field

from gaugewire.exceptions import EgaugeParseError, MissingMultiplierError

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Register:
    """A register descriptor as reported by ``/register``."""

    name: str
    """Register name, unique within a response."""

    type: str
    """Type code (``P``, ``V``, ``I``, ...) used to look up the multiplier."""

    idx: int
    """Position of this register's value within each row."""

    did: int | None = None
    """Database id of the register."""

    rate: float | None = None
    """Instantaneous rate; only present when ``rate`` was requested."""


@dataclass(frozen=True)
class RegisterRange:
    """A block of rows sharing a start timestamp and spacing."""

    ts: int
    """Timestamp of the first (newest) row."""

    delta: int
    """Seconds between adjacent rows."""

    rows: list[tuple[int, ...]] = field(default_factory=list)
    """Cumulative values, newest first, aligned with the registers."""


@dataclass(frozen=True)
class RegisterResponse:
    """Parsed body of a ``/register`` call."""

    registers: list[Register]
    ranges: list[RegisterRange] = field(default_factory=list)
    ts: str | None = None

    @classmethod
    def from_json(cls, data: object) -> RegisterResponse:
        """Parse a decoded JSON body.

        Raises :class:`EgaugeParseError` when required fields are missing
        or rows do not line up with the register list.
        """
        if not isinstance(data, dict):
            raise EgaugeParseError("Register response is not an object.", data=data)
        try:
            registers = [
                Register(
                    name=str(r["name"]),
                    type=str(r["type"]),
                    idx=int(r["idx"]),
                    did=int(r["did"]) if r.get("did") is not None else None,
                    rate=float(r["rate"]) if r.get("rate") is not None else None,
                )
                for r in data["registers"]
            ]
            ranges = [
                RegisterRange(
                    ts=int(rng["ts"]),
                    delta=int(rng["delta"]),
                    rows=[tuple(int(v) for v in row) for row in rng.get("rows") or []],
                )
                for rng in data.get("ranges") or []
            ]
        except (AttributeError, KeyError, TypeError, ValueError) as err:
            raise EgaugeParseError(data=err) from err

        for register in registers:
            if not 0 <= register.idx < len(registers):
                raise EgaugeParseError(
                    f"Register '{register.name}' has out-of-range index {register.idx}.",
                    data=data,
                )
        for rng in ranges:
            for row in rng.rows:
                if len(row) != len(registers):
                    raise EgaugeParseError(
                        f"Row has {len(row)} values but {len(registers)} registers were reported.",
                        data=data,
                    )
        ts = data.get("ts")
        return cls(registers=registers, ranges=ranges, ts=None if ts is None else str(ts))


@dataclass(frozen=True)
class RegisterSample:
    """Converted register values for one timestamp of a range."""

    time: int
    registers: dict[str, float]


def round_value(number: float, decimal_places: int = 6) -> float:
    """Round *number* half away from zero to *decimal_places*."""
    if decimal_places < 0:
        raise ValueError("You must provide a positive integer for decimal places.")
    factor = 10**decimal_places
    scaled = math.floor(abs(number) * factor + 0.5)
    return math.copysign(scaled / factor, number) if scaled else 0.0


def time_spec_for_point(unix: int, interval: int) -> str:
    """``time`` parameter selecting the two rows bounding *unix*."""
    return f"{unix - interval}:{interval}:{unix}"


def time_spec_for_range(start_unix: int, end_unix: int, interval: int) -> str:
    """``time`` parameter covering *start_unix*..*end_unix* plus one leading row."""
    return f"{start_unix - interval}:{interval}:{end_unix}"


def _multiplier(multipliers: Mapping[str, float], register: Register) -> float:
    try:
        return multipliers[register.type]
    except KeyError:
        raise MissingMultiplierError(
            f"No multiplier configured for register type '{register.type}' ({register.name})."
        ) from None


def _convert_row_pair(
    registers: list[Register],
    newer: tuple[int, ...],
    older: tuple[int, ...],
    seconds: int,
    multipliers: Mapping[str, float],
    decimals: int,
) -> dict[str, float]:
    values: dict[str, float] = {}
    for register in registers:
        diff = newer[register.idx] - older[register.idx]
        values[register.name] = round_value(
            diff / seconds * _multiplier(multipliers, register), decimals
        )
    return values


def average_at_time(
    response: RegisterResponse,
    interval: int,
    multipliers: Mapping[str, float],
    decimals: int = 6,
) -> dict[str, float]:
    """Average rate of every register over the *interval* seconds before a point.

    A single returned row (e.g. a query at the device epoch) yields zero for
    every register rather than an error.
    """
    if interval <= 0:
        raise ValueError("interval must be a positive number of seconds.")
    if not response.ranges:
        raise EgaugeParseError("Register response contains no ranges.", data=response)
    rows = response.ranges[0].rows
    end = rows[0] if rows else (0,) * len(response.registers)
    start = rows[1] if len(rows) > 1 else end
    return _convert_row_pair(response.registers, end, start, interval, multipliers, decimals)


def series_for_range(
    response: RegisterResponse,
    multipliers: Mapping[str, float],
    decimals: int = 6,
    interval: int | None = None,
) -> list[RegisterSample]:
    """Convert a ranged response into chronologically ordered samples.

    Each adjacent pair of rows yields one sample stamped with the newer
    row's time, so N+1 rows produce N samples.
    """
    if not response.ranges:
        return []
    rng = response.ranges[0]
    if len(rng.rows) < 2:
        return []
    if rng.delta <= 0:
        raise EgaugeParseError(f"Invalid row spacing {rng.delta}.", data=response)
    if interval is not None and rng.delta != interval:
        _LOGGER.warning(
            "Device returned rows %ss apart, requested interval was %ss", rng.delta, interval
        )

    samples: list[RegisterSample] = []
    for i in range(len(rng.rows) - 1):
        values = _convert_row_pair(
            response.registers, rng.rows[i], rng.rows[i + 1], rng.delta, multipliers, decimals
        )
        samples.append(RegisterSample(time=rng.ts - i * rng.delta, registers=values))
    samples.reverse()
    return samples


def current_rates(response: RegisterResponse, decimals: int = 6) -> dict[str, float]:
    """Instantaneous rates as reported directly by the device."""
    values: dict[str, float] = {}
    for register in response.registers:
        if register.rate is None:
            raise EgaugeParseError(f"Register '{register.name}' has no rate.", data=register)
        values[register.name] = round_value(register.rate, decimals)
    return values
