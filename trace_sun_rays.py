#!/usr/bin/env python3
"""Trace sun rays through the windows of a room and render the result.

Settings come from a JSON config; command-line options override them.

Usage:
    python trace_sun_rays.py                                  # Config defaults
    python trace_sun_rays.py --date 2024-12-21 --time 10:30   # Winter morning
    python trace_sun_rays.py --rays 500 --bounces 5 --output trace.html
    python trace_sun_rays.py --epw weather.epw --json

Exit codes:
    0 on success (including when the sun is down or nothing was traced),
    1 when the config or request is invalid.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from sun_ray_tracer.core.models import Config
from sun_ray_tracer.core.room import build_room_scene
from sun_ray_tracer.core.sun_position import calculate_solar_position, sun_path_for_date
from sun_ray_tracer.core.weather import load_epw_irradiance
from sun_ray_tracer.simulator.orchestrator import run_trace
from sun_ray_tracer.visualization.scene_builder import build_trace_figure

DEFAULT_CONFIG = Path("config/default_room.json")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Trace sun rays through a room's windows")
    parser.add_argument("--config", type=str, default=str(DEFAULT_CONFIG), help="Path to config file")
    parser.add_argument("--date", type=str, help="Date as YYYY-MM-DD")
    parser.add_argument("--time", type=str, help="Local time as HH:MM")
    parser.add_argument("--latitude", type=float, help="Latitude in degrees (North positive)")
    parser.add_argument("--longitude", type=float, help="Longitude in degrees (East positive)")
    parser.add_argument("--rays", type=int, help="Total rays across all glazing")
    parser.add_argument("--bounces", type=int, help="Maximum interior bounces per ray")
    parser.add_argument("--epw", type=str, help="EPW weather file for irradiance lookup")
    parser.add_argument("--output", type=str, help="Write the interactive figure to this HTML file")
    parser.add_argument("--json", action="store_true", help="Output JSON format")
    parser.add_argument("--verbose", action="store_true", help="Log per-panel details")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = Config.from_json_file(args.config)
        scene = build_room_scene(config)

        target_date = args.date or config.trace.date
        time_of_day = args.time or config.trace.time
        latitude = config.location.latitude if args.latitude is None else args.latitude
        longitude = config.location.longitude if args.longitude is None else args.longitude
        ray_count = config.trace.ray_count if args.rays is None else args.rays
        max_bounces = config.trace.max_bounces if args.bounces is None else args.bounces

        solar_position = calculate_solar_position(target_date, time_of_day, latitude, longitude)
        group = run_trace(ray_count, max_bounces, solar_position, scene)
        irradiance = load_epw_irradiance(args.epw, target_date, time_of_day) if args.epw else None
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.output:
        fig = build_trace_figure(
            scene,
            trace_group=group,
            solar_position=solar_position,
            sun_path=sun_path_for_date(latitude, longitude, target_date),
            title=f"Sun rays on {target_date} at {time_of_day}",
        )
        fig.write_html(args.output)

    if args.json:
        details = {
            "date": str(target_date),
            "time": time_of_day,
            "altitude_deg": round(solar_position.altitude_deg, 3),
            "azimuth_deg": round(solar_position.azimuth_deg, 3),
            "sun_visible": solar_position.is_visible,
            "trace": None if group is None else group.summary(),
        }
        if irradiance is not None:
            details["irradiance"] = {"dni": irradiance.dni, "dhi": irradiance.dhi}
        print(json.dumps(details))
        return 0

    print(f"Date: {target_date} {time_of_day}  Location: {latitude:.4f}, {longitude:.4f}")
    if solar_position.is_visible:
        print(f"Sun: Az={solar_position.azimuth_deg:.1f}°, Alt={solar_position.altitude_deg:.1f}°")
    else:
        print(f"Sun below horizon (Alt={solar_position.altitude_deg:.1f}°)")

    if irradiance is not None:
        print(f"Irradiance: DNI={irradiance.dni:.0f} W/m2, DHI={irradiance.dhi:.0f} W/m2")
    elif args.epw:
        print("Irradiance: no matching EPW record")

    if group is not None:
        summary = group.summary()
        print(f"Rays: {summary['rays']}  Segments: {summary['segments']}")
        for name, count in summary["terminations"].items():
            print(f"  {name}: {count}")

    if args.output:
        print(f"Saved to: {Path(args.output).absolute()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
