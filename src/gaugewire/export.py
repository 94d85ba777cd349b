"""CSV export of converted register series."""

from __future__ import annotations

import csv
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from gaugewire._constants import DEFAULT_TIMESTAMP_FORMAT
from gaugewire.registers import RegisterSample


def format_timestamp(unix: int, fmt: str = DEFAULT_TIMESTAMP_FORMAT) -> str:
    """Format a Unix timestamp in local time."""
    return datetime.fromtimestamp(unix).strftime(fmt)


def write_csv(
    samples: Sequence[RegisterSample],
    path: Path,
    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
) -> int:
    """Write *samples* to *path* as ``Timestamp,<register>...`` rows.

    Column order follows the first sample.  Returns the number of data rows
    written.
    """
    names = list(samples[0].registers) if samples else []
    with path.open("w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["Timestamp", *names])
        for sample in samples:
            writer.writerow(
                [
                    format_timestamp(sample.time, timestamp_format),
                    *(sample.registers[name] for name in names),
                ]
            )
    return len(samples)
