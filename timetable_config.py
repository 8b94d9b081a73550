"""Helpers for reading and applying timetable config files."""

from __future__ import annotations

import copy
import json
import re
from pathlib import Path

from timetable import WEEK_DAYS, GridParams, Meeting, normalize_day

DEFAULT_GRID = {
    "min_time": 8 * 60,
    "max_time": 22 * 60,
    "resolution": 15,
    "days": list(WEEK_DAYS),
}

DEFAULT_DISPLAY_OPTIONS = {
    "palette": "default",
    "dark": False,
    "highlight_conflicts": True,
    "twenty_four": True,
    "show_time": True,
    "emphasize_on_hover": True,
}

DEFAULT_SCALE = 45

DEFAULT_CONFIG = {
    "grid": DEFAULT_GRID,
    "display_options": DEFAULT_DISPLAY_OPTIONS,
    "scale": DEFAULT_SCALE,
    "hidden_identifiers": [],
    "selected_identifier": None,
    "hover_course_key": None,
}

TIME_RE = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*([AP]M)?$", re.IGNORECASE)


def parse_minutes(value: int | str) -> int | None:
    """Read minutes from midnight from an int or a "9:30", "09:30 PM" style string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = TIME_RE.match(str(value).strip().upper())
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    ampm = match.group(3)
    if minute >= 60:
        return None
    if ampm and not 1 <= hour <= 12:
        return None
    if not ampm and (hour > 24 or (hour == 24 and minute)):
        return None
    if ampm == "PM" and hour != 12:
        hour += 12
    if ampm == "AM" and hour == 12:
        hour = 0
    return hour * 60 + minute


def normalize_config(data: dict | None) -> dict:
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not isinstance(data, dict):
        return config

    grid = data.get("grid")
    if isinstance(grid, dict):
        for key in ("min_time", "max_time"):
            if key in grid:
                minutes = parse_minutes(grid[key])
                if minutes is not None:
                    config["grid"][key] = minutes
        resolution = grid.get("resolution")
        if resolution is not None and not isinstance(resolution, bool):
            try:
                value = float(resolution)
            except (TypeError, ValueError):
                value = None
            if value is not None:
                # fractional steps are kept so GridParams rejects them
                config["grid"]["resolution"] = int(value) if value.is_integer() else value
        days = grid.get("days")
        if isinstance(days, list):
            normalized = []
            for day in days:
                name = normalize_day(day)
                if name and name not in normalized:
                    normalized.append(name)
            if normalized:
                config["grid"]["days"] = normalized

    display_options = data.get("display_options")
    if isinstance(display_options, dict):
        for key, default in DEFAULT_DISPLAY_OPTIONS.items():
            value = display_options.get(key)
            if isinstance(value, type(default)):
                config["display_options"][key] = value

    scale = data.get("scale")
    if scale is not None:
        try:
            config["scale"] = max(1, int(scale))
        except (TypeError, ValueError):
            pass

    hidden = data.get("hidden_identifiers")
    if isinstance(hidden, list):
        config["hidden_identifiers"] = [str(item) for item in hidden if item]

    selected = data.get("selected_identifier")
    if selected:
        config["selected_identifier"] = str(selected)

    hover = data.get("hover_course_key")
    if hover is not None:
        try:
            config["hover_course_key"] = int(hover)
        except (TypeError, ValueError):
            pass

    return config


def load_config(path: Path) -> dict:
    if not path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return copy.deepcopy(DEFAULT_CONFIG)
    return normalize_config(data)


def save_config(path: Path, config: dict) -> None:
    normalized = normalize_config(config)
    path.write_text(json.dumps(normalized, indent=2), encoding="utf-8")


def get_grid_params(config: dict | None) -> GridParams:
    grid = dict(DEFAULT_GRID)
    if config:
        grid.update(config.get("grid", {}))
    return GridParams(
        min_time=grid["min_time"],
        max_time=grid["max_time"],
        resolution=grid["resolution"],
        days=tuple(grid["days"]),
    )


def get_display_settings(config: dict | None) -> dict:
    display = copy.deepcopy(DEFAULT_DISPLAY_OPTIONS)
    display["scale"] = DEFAULT_SCALE
    display["selected_identifier"] = None
    display["hover_course_key"] = None
    if config:
        display.update(config.get("display_options", {}))
        for key in ("scale", "selected_identifier", "hover_course_key"):
            if key in config:
                display[key] = config[key]
    return display


def apply_config(meetings: list[Meeting], config: dict) -> list[Meeting]:
    hidden = set(config.get("hidden_identifiers", []))
    return [meeting for meeting in meetings if meeting.identifier not in hidden]
