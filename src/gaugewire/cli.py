"""Thin CLI wrapper over :class:`gaugewire.Device`."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from datetime import datetime
from pathlib import Path
from typing import TypeVar

import aiohttp
import typer

from gaugewire._constants import DEFAULT_INTERVAL
from gaugewire.client import Device
from gaugewire.config import DeviceConfig
from gaugewire.exceptions import EgaugeError, MissingMultiplierError
from gaugewire.export import format_timestamp, write_csv

app = typer.Typer(help="Read data from eGauge energy meters.", invoke_without_command=True)

T = TypeVar("T")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log HTTP traffic"),
) -> None:
    """Read data from eGauge energy meters."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s"
        )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


def _print_json(obj: object) -> None:
    """Print JSON, syntax-highlighted on a TTY and compact otherwise."""
    if sys.stdout.isatty():
        from rich.console import Console
        from rich.syntax import Syntax

        Console().print(Syntax(json.dumps(obj, indent=2), "json"))
    else:
        typer.echo(json.dumps(obj))


def _load_config() -> DeviceConfig:
    """Load the saved config or exit with an error."""
    try:
        return DeviceConfig.load()
    except FileNotFoundError:
        typer.echo("No saved config. Run `gaugewire configure` first.", err=True)
        raise typer.Exit(1) from None
    except ValueError as e:
        typer.echo(f"Invalid config: {e}", err=True)
        raise typer.Exit(1) from None


def _run(operation: Callable[[Device], Awaitable[T]], config: DeviceConfig | None = None) -> T:
    """Run *operation* against the configured device, exiting 1 on failure."""
    device = Device.from_config(config or _load_config())
    try:
        return asyncio.run(operation(device))
    except EgaugeError as e:
        typer.echo(f"{e} ({e.error_type})", err=True)
        raise typer.Exit(1) from None
    except MissingMultiplierError as e:
        typer.echo(str(e.args[0]), err=True)
        raise typer.Exit(1) from None
    except aiohttp.ClientError as e:
        typer.echo(f"Connection failed: {e}", err=True)
        raise typer.Exit(1) from None


def _parse_time(value: str) -> int:
    """Accept Unix seconds or an ISO-8601 timestamp (local time if naive)."""
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return int(datetime.fromisoformat(value).timestamp())
    except ValueError:
        raise typer.BadParameter(
            f"'{value}' is neither a Unix timestamp nor an ISO-8601 time."
        ) from None


def _echo_registers(values: dict[str, float], as_json: bool) -> None:
    if as_json:
        _print_json(values)
        return
    width = max((len(name) for name in values), default=0)
    for name, value in values.items():
        typer.echo(f"  {name.ljust(width)}  {value}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def configure(
    device_id: str = typer.Option(..., prompt=True, help="eGauge device name"),
    username: str = typer.Option(..., prompt=True, help="eGauge account username"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, help="eGauge account password"
    ),
) -> None:
    """Save device credentials locally."""
    try:
        existing = DeviceConfig.load()
    except (FileNotFoundError, ValueError):
        existing = None
    if existing is not None:
        config = DeviceConfig(
            device_id,
            username,
            password,
            multipliers=existing.multipliers,
            timestamp_format=existing.timestamp_format,
        )
    else:
        config = DeviceConfig(device_id, username, password)
    path = config.save()
    typer.echo(f"Saved config for {device_id} to {path}.")


@app.command()
def now(
    as_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show the instantaneous rate of every register."""
    values = _run(lambda d: d.get_current_registers())
    _echo_registers(values, as_json)


@app.command()
def at(
    when: str = typer.Argument(..., help="Unix timestamp or ISO-8601 time"),
    interval: int = typer.Option(
        DEFAULT_INTERVAL, "--interval", "-i", help="Seconds to average over"
    ),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show average register values over the interval ending at WHEN."""
    unix = _parse_time(when)
    if interval <= 0:
        typer.echo("--interval must be positive.", err=True)
        raise typer.Exit(1)
    values = _run(lambda d: d.get_registers_at_time(unix, interval))
    _echo_registers(values, as_json)


@app.command("range")
def range_(
    start: str = typer.Argument(..., help="First timestamp (Unix or ISO-8601)"),
    end: str = typer.Argument(..., help="Last timestamp, included (Unix or ISO-8601)"),
    interval: int = typer.Option(
        DEFAULT_INTERVAL, "--interval", "-i", help="Seconds between rows"
    ),
    csv_path: Path | None = typer.Option(None, "--csv", help="Write the series to a CSV file"),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show register values for every interval between START and END."""
    start_unix = _parse_time(start)
    end_unix = _parse_time(end)
    if end_unix < start_unix:
        typer.echo("END must not be before START.", err=True)
        raise typer.Exit(1)
    if interval <= 0:
        typer.echo("--interval must be positive.", err=True)
        raise typer.Exit(1)

    config = _load_config()
    samples = _run(lambda d: d.get_values_for_range(start_unix, end_unix, interval), config)

    if csv_path is not None:
        count = write_csv(samples, csv_path, config.timestamp_format)
        typer.echo(f"Wrote {count} row(s) to {csv_path}.")
        return
    if as_json:
        _print_json([{"time": s.time, "registers": s.registers} for s in samples])
        return
    if not samples:
        typer.echo("No data for the requested range.", err=True)
        return
    for sample in samples:
        ts = format_timestamp(sample.time, config.timestamp_format)
        values = ", ".join(f"{k}={v}" for k, v in sample.registers.items())
        typer.echo(f"{ts}  {values}")


@app.command()
def epoch() -> None:
    """Show when the meter started recording."""
    value = _run(lambda d: d.get_epoch())
    typer.echo(f"{value} ({format_timestamp(value)})")


@app.command("time")
def time_() -> None:
    """Show the current device time."""
    value = _run(lambda d: d.get_time())
    typer.echo(f"{value} ({format_timestamp(int(value))})")


@app.command()
def uptime() -> None:
    """Show seconds since the device last booted."""
    value = _run(lambda d: d.get_uptime())
    typer.echo(f"{value:.0f} s")


@app.command()
def reboot(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Reboot the device."""
    config = _load_config()
    if not yes:
        typer.confirm(f"Reboot {config.device_id}?", abort=True)
    _run(lambda d: d.reboot(), config)
    typer.echo(f"Reboot requested for {config.device_id}.")
