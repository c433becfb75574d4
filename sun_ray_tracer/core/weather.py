"""Irradiance lookup from EnergyPlus weather (EPW) files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .sun_position import DateLike, parse_date, parse_time_of_day

# EPW files start with 8 header lines before the hourly records.
EPW_HEADER_LINES = 8


@dataclass
class Irradiance:
    """Hourly irradiance for one EPW record.

    Attributes:
        dni: Direct normal irradiance in W/m2.
        dhi: Diffuse horizontal irradiance in W/m2.
    """

    dni: float
    dhi: float


def read_epw_irradiance(epw_content: str, target_date: DateLike, time_of_day: str) -> Optional[Irradiance]:
    """Find the irradiance record for a date and local time.

    EPW hours run 1-24 and label the hour ending at that time, so 14:xx
    local time reads the record for hour 15.

    Args:
        epw_content: Full text of an EPW file.
        target_date: Date to look up (the year is ignored).
        time_of_day: "HH:MM" local time.

    Returns:
        Irradiance, or None if the file has no matching record.
    """
    day = parse_date(target_date)
    hour, _ = parse_time_of_day(time_of_day)
    epw_hour = hour + 1

    for line in epw_content.splitlines()[EPW_HEADER_LINES:]:
        parts = line.split(",")
        if len(parts) < 16:
            continue
        try:
            month, dom, record_hour = int(parts[1]), int(parts[2]), int(parts[3])
        except ValueError:
            continue
        if (month, dom, record_hour) == (day.month, day.day, epw_hour):
            return Irradiance(dni=float(parts[14]), dhi=float(parts[15]))

    return None


def load_epw_irradiance(path: str | Path, target_date: DateLike, time_of_day: str) -> Optional[Irradiance]:
    """Read an EPW file and look up the irradiance for a date and time."""
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        content = f.read()
    return read_epw_irradiance(content, target_date, time_of_day)
