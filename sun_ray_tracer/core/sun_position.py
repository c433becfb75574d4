"""Sun position calculation based on location, date and local time.

This module converts a calendar date, an "HH:MM" local time and a latitude /
longitude pair into solar altitude, azimuth and a direction vector using the
standard engineering approximations for the equation of time and solar
declination. The formulas are kept exactly as other solar-geometry consumers
of the scene expect them; do not swap them for a higher-precision model
without updating those consumers.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Union

import numpy as np

from .geometry import sun_direction_from_angles

DateLike = Union[date, datetime, str]


class InvalidSolarInputError(ValueError):
    """Raised when the date, time or coordinates cannot be used."""


@dataclass
class SolarPosition:
    """Sun position for a single date and time.

    Attributes:
        altitude_deg: Angle above the horizon in degrees.
        azimuth_deg: Azimuth in degrees, clockwise from North [0, 360).
            Set to 0 when the sun is not visible.
        direction: Unit vector from the scene origin toward the sun, or a
            zero vector when the sun is at or below the horizon.
        day_of_year: Day count with January 1st = 1.
        hour_angle_deg: Hour angle in degrees (negative before solar noon).
        declination_deg: Solar declination in degrees.
    """

    altitude_deg: float
    azimuth_deg: float
    direction: np.ndarray = field(default_factory=lambda: np.zeros(3))
    day_of_year: int = 0
    hour_angle_deg: float = 0.0
    declination_deg: float = 0.0

    @property
    def is_visible(self) -> bool:
        """Whether the sun is above the horizon and rays can be traced."""
        return self.altitude_deg > 0 and bool(np.any(self.direction))


def parse_date(target_date: DateLike) -> date:
    """Coerce a date, datetime or "YYYY-MM-DD" string to a date."""
    if isinstance(target_date, datetime):
        return target_date.date()
    if isinstance(target_date, date):
        return target_date
    if isinstance(target_date, str):
        try:
            return datetime.strptime(target_date.strip(), "%Y-%m-%d").date()
        except ValueError as exc:
            raise InvalidSolarInputError(f"Invalid date: {target_date!r}") from exc
    raise InvalidSolarInputError(f"Invalid date: {target_date!r}")


def parse_time_of_day(time_of_day: str) -> tuple[int, int]:
    """Parse a 24-hour "HH:MM" string into (hour, minute)."""
    if not isinstance(time_of_day, str):
        raise InvalidSolarInputError(f"Invalid time: {time_of_day!r}")
    try:
        parsed = datetime.strptime(time_of_day.strip(), "%H:%M")
    except ValueError as exc:
        raise InvalidSolarInputError(f"Invalid time: {time_of_day!r}") from exc
    return parsed.hour, parsed.minute


def _js_round(value: float) -> int:
    # Halves round toward +infinity, unlike Python's round().
    return math.floor(value + 0.5)


def calculate_solar_position(
    target_date: DateLike,
    time_of_day: str,
    latitude: float,
    longitude: float,
) -> SolarPosition:
    """Calculate the sun's altitude, azimuth and direction.

    Local civil time is interpreted against the standard meridian nearest to
    the longitude, so the result does not depend on daylight saving rules.

    Args:
        target_date: Calendar date (date, datetime or "YYYY-MM-DD").
        time_of_day: Local time as "HH:MM" (24-hour).
        latitude: Latitude in degrees (positive = North).
        longitude: Longitude in degrees (positive = East).

    Returns:
        SolarPosition. When the sun is at or below the horizon the azimuth is
        0 and the direction is a zero vector; check ``is_visible``.

    Raises:
        InvalidSolarInputError: If the date or time cannot be parsed, or the
            coordinates are not finite numbers.
    """
    day = parse_date(target_date)
    hour, minute = parse_time_of_day(time_of_day)

    try:
        latitude = float(latitude)
        longitude = float(longitude)
    except (TypeError, ValueError) as exc:
        raise InvalidSolarInputError("Latitude and longitude must be numbers") from exc
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise InvalidSolarInputError("Latitude and longitude must be finite")
    if abs(latitude) > 90:
        raise InvalidSolarInputError(f"Latitude out of range: {latitude}")

    day_of_year = day.timetuple().tm_yday

    # Local standard time meridian
    lstm = 15 * _js_round(longitude / 15)

    # Equation of time (minutes)
    b = math.radians((360 / 365) * (day_of_year - 81))
    eot = 9.87 * math.sin(2 * b) - 7.53 * math.cos(b) - 1.5 * math.sin(b)

    time_correction = 4 * (longitude - lstm) + eot
    local_solar_time = hour + minute / 60 + time_correction / 60

    hour_angle_deg = 15 * (local_solar_time - 12)
    h = math.radians(hour_angle_deg)
    lat = math.radians(latitude)

    declination_deg = -23.45 * math.cos(math.radians((360 / 365) * (day_of_year + 10)))
    decl = math.radians(declination_deg)

    sin_alt = math.sin(decl) * math.sin(lat) + math.cos(decl) * math.cos(lat) * math.cos(h)
    altitude = math.asin(max(-1.0, min(1.0, sin_alt)))
    altitude_deg = math.degrees(altitude)
    cos_alt = math.cos(altitude)

    if altitude_deg <= 0 or cos_alt <= 0:
        return SolarPosition(
            altitude_deg=altitude_deg,
            azimuth_deg=0.0,
            direction=np.zeros(3),
            day_of_year=day_of_year,
            hour_angle_deg=hour_angle_deg,
            declination_deg=declination_deg,
        )

    cos_az = (math.sin(decl) * math.cos(lat) - math.cos(decl) * math.sin(lat) * math.cos(h)) / cos_alt
    azimuth_deg = math.degrees(math.acos(max(-1.0, min(1.0, cos_az))))
    if h > 0:
        azimuth_deg = 360.0 - azimuth_deg

    return SolarPosition(
        altitude_deg=altitude_deg,
        azimuth_deg=azimuth_deg,
        direction=sun_direction_from_angles(azimuth_deg, altitude_deg),
        day_of_year=day_of_year,
        hour_angle_deg=hour_angle_deg,
        declination_deg=declination_deg,
    )


def sun_path_for_date(
    latitude: float,
    longitude: float,
    target_date: DateLike,
    interval_minutes: int = 30,
) -> list[dict]:
    """Generate visible sun positions over an entire day.

    Args:
        latitude: Latitude in degrees.
        longitude: Longitude in degrees.
        target_date: The date to calculate for.
        interval_minutes: Time between data points.

    Returns:
        List of {timestamp, azimuth_deg, altitude_deg} dictionaries for the
        times at which the sun is above the horizon.
    """
    if interval_minutes <= 0:
        raise ValueError("interval_minutes must be positive")

    day = parse_date(target_date)
    data = []

    current = datetime(day.year, day.month, day.day)
    end = current + timedelta(days=1)

    while current < end:
        stamp = current.strftime("%H:%M")
        pos = calculate_solar_position(day, stamp, latitude, longitude)
        if pos.is_visible:
            data.append({
                "timestamp": stamp,
                "azimuth_deg": round(pos.azimuth_deg, 1),
                "altitude_deg": round(pos.altitude_deg, 1),
            })
        current += timedelta(minutes=interval_minutes)

    return data
