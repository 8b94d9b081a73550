#!/usr/bin/env python3
"""Load course meetings from JSON and render weekly timetables as HTML."""

from __future__ import annotations

import argparse
import html
import json
import logging
from pathlib import Path

import timetable_config
from timetable import (
    Empty,
    Meeting,
    MeetingPlacement,
    Occupied,
    Timetable,
    TimetableError,
    build_timetable,
    normalize_day,
)

logger = logging.getLogger(__name__)

PALETTES = {
    "default": [
        "eaeaea",
        "fce8b1",
        "e0f2ff",
        "c0fac7",
        "d6d5f2",
        "c0dcf3",
        "ffe6de",
        "d1dbf5",
        "e6f9d9",
        "c1f1e7",
        "dbcfed",
    ],
    "accessible": ["70ff63", "6863ff", "ff0000", "00ff00", "0000ff", "00ffff"],
    "monochrome": ["eaeaea"],
}
CONFLICT_COLOUR = "#c53030"
SELECTED_SHADOW = "inset 0 0 0 0.15rem rgba(60, 142, 230, 0.7)"


def minutes_to_label(minutes: int, twenty_four: bool = True) -> str:
    hour = minutes // 60
    minute = minutes % 60
    if twenty_four:
        return f"{hour:02d}:{minute:02d}"
    ampm = "AM" if hour < 12 or hour == 24 else "PM"
    display_hour = hour % 12
    if display_hour == 0:
        display_hour = 12
    return f"{display_hour}:{minute:02d} {ampm}"


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    value = value.lstrip("#")
    if len(value) == 3:
        value = "".join(char * 2 for char in value)
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def course_key_to_rgb(
    course_key: int, palette: str = "default", lighten_percent: float = 0
) -> tuple[int, int, int]:
    colours = PALETTES.get(palette, PALETTES["default"])
    r, g, b = hex_to_rgb(colours[course_key % len(colours)])
    factor = (100 + lighten_percent) / 100
    return (
        int(min(r * factor, 255)),
        int(min(g * factor, 255)),
        int(min(b * factor, 255)),
    )


def course_key_to_colour(
    course_key: int,
    palette: str = "default",
    alpha: float = 1,
    lighten_percent: float = 0,
) -> str:
    r, g, b = course_key_to_rgb(course_key, palette, lighten_percent)
    return f"rgba({r}, {g}, {b}, {alpha})"


def meeting_from_dict(item: dict) -> Meeting:
    day = normalize_day(item.get("day", ""))
    if day is None:
        raise ValueError(f"unknown day {item.get('day')!r}")
    start = timetable_config.parse_minutes(item.get("start", item.get("start_time", "")))
    end = timetable_config.parse_minutes(item.get("end", item.get("end_time", "")))
    if start is None or end is None:
        raise ValueError(f"unreadable time range for {item!r}")
    return Meeting(
        day=day,
        start_time=start,
        end_time=end,
        course_key=int(item.get("course_key", 0)),
        identifier=str(item.get("identifier", "")),
        title=str(item.get("title", "")),
        location=str(item.get("location", "")),
    )


def load_meetings(path: Path) -> list[Meeting]:
    if not path.exists():
        raise SystemExit(f"Meetings file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Meetings file is not valid JSON: {exc}")
    if isinstance(data, dict):
        data = data.get("meetings", [])
    if not isinstance(data, list):
        raise SystemExit(f"Expected a list of meetings in {path}")

    meetings: list[Meeting] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise SystemExit(f"Meeting #{index} in {path} is not an object")
        try:
            meetings.append(meeting_from_dict(item))
        except (TypeError, ValueError) as exc:
            raise SystemExit(f"Meeting #{index} in {path}: {exc}")
    return meetings


def slot_style(
    placement: MeetingPlacement,
    background: str = "",
    box_shadow: str = "",
) -> str:
    inset = "0.3em" if placement.slot_index == 0 else "0.1em"
    rules = [
        "position: absolute",
        f"width: calc({placement.width}% - 0.4em)",
        f"height: calc({placement.height}% - 0.1em)",
        f"left: calc({placement.left}% + {inset})",
        f"top: calc({placement.top}% + 0.1rem)",
    ]
    if background:
        rules.append(f"background-color: {background}")
    if box_shadow:
        rules.append(f"box-shadow: {box_shadow}")
    return "; ".join(rules)


def meeting_body_html(meeting: Meeting, twenty_four: bool) -> str:
    title = meeting.title or meeting.identifier or "(Untitled)"
    time_range = (
        f"{minutes_to_label(meeting.start_time, twenty_four)} - "
        f"{minutes_to_label(meeting.end_time, twenty_four)}"
    )
    parts = [f"<div class=\"meeting-title\">{html.escape(title)}</div>"]
    parts.append(f"<div class=\"meeting-detail\">{html.escape(time_range)}</div>")
    if meeting.location:
        parts.append(
            f"<div class=\"meeting-detail\">{html.escape(meeting.location)}</div>"
        )
    return "".join(parts)


def meeting_classes(meeting: Meeting, display: dict, conflict: bool) -> str:
    classes = ["meeting"]
    if conflict:
        classes.append("conflict")
    if display.get("emphasize_on_hover") and display.get("hover_course_key") == meeting.course_key:
        classes.append("highlight")
    if meeting.identifier and meeting.identifier == display.get("selected_identifier"):
        classes.append("selected")
    return " ".join(classes)


def render_single_cell(cell: Occupied, display: dict) -> str:
    meeting = cell.group.meetings[0]
    palette = display.get("palette", "default")
    lighten = -15 if display.get("dark") else 0
    style = f"background-color: {course_key_to_colour(meeting.course_key, palette, 1, lighten)}"
    if meeting.identifier and meeting.identifier == display.get("selected_identifier"):
        style += f"; box-shadow: {SELECTED_SHADOW}"
    return (
        f"<td class=\"meeting-cell\" rowspan=\"{cell.row_span}\">"
        f"<div class=\"{meeting_classes(meeting, display, False)}\" "
        f"data-course-key=\"{meeting.course_key}\" style=\"{style}\">"
        f"{meeting_body_html(meeting, display.get('twenty_four', True))}"
        "</div></td>"
    )


def render_conflict_cell(cell: Occupied, display: dict) -> str:
    palette = display.get("palette", "default")
    lighten = -15 if display.get("dark") else 0
    hovered = display.get("hover_course_key")
    items = []
    for placement in cell.placements:
        meeting = placement.meeting
        emphasized = display.get("emphasize_on_hover") and hovered == meeting.course_key
        if display.get("highlight_conflicts") and not emphasized:
            background = CONFLICT_COLOUR
        else:
            background = course_key_to_colour(meeting.course_key, palette, 1, lighten)
        shadow = ""
        if meeting.identifier and meeting.identifier == display.get("selected_identifier"):
            shadow = SELECTED_SHADOW
        items.append(
            f"<div class=\"{meeting_classes(meeting, display, True)}\" "
            f"data-course-key=\"{meeting.course_key}\" "
            f"style=\"{slot_style(placement, background, shadow)}\">"
            f"{meeting_body_html(meeting, display.get('twenty_four', True))}"
            "</div>"
        )
    return (
        f"<td class=\"meeting-cell\" rowspan=\"{cell.row_span}\">"
        f"<div class=\"slots\">{''.join(items)}</div></td>"
    )


def render_cell(cell: Occupied | Empty, display: dict) -> str:
    if isinstance(cell, Empty):
        return "<td class=\"empty\"></td>"
    if cell.group.has_conflict:
        return render_conflict_cell(cell, display)
    return render_single_cell(cell, display)


def render_timetable_html(table: Timetable, title: str = "Timetable") -> str:
    display = dict(timetable_config.get_display_settings(None))
    display.update(table.display)
    grid = table.grid
    dark = display.get("dark")
    row_height = (display.get("scale", timetable_config.DEFAULT_SCALE) / 100) * 2

    css = """
* { box-sizing: border-box; }
body {
  margin: 24px;
  background: __PAGE_BG__;
  color: __INK__;
  font-family: 'Avenir Next', 'Segoe UI', sans-serif;
  font-size: 0.625rem;
}
.timetable-wrap { width: 100%; overflow-x: auto; }
table {
  width: calc(100% - 0.25rem);
  min-width: 500px;
  border-collapse: collapse;
}
th {
  border-right: 1px solid __GRID__;
  font-size: 1rem;
  padding-bottom: 0.8em;
}
td { line-height: __ROW_HEIGHT__em; }
td.time {
  width: 1px;
  text-align: right;
  padding-right: 1em;
  border-right: 1px solid __GRID__;
  font-family: monospace;
  font-size: 1.4em;
  white-space: nowrap;
  vertical-align: top;
}
tr.minor-row td.time { color: transparent; }
td.meeting-cell, td.empty {
  padding: 0;
  position: relative;
  width: calc(100% / __DAYS__);
  border-right: 1px solid __GRID__;
  font-size: 1.2em;
}
.slots { position: absolute; inset: 0; }
.meeting {
  position: absolute;
  inset: 0.2em 0.3em 0 0.3em;
  padding: 0.6rem;
  overflow: hidden;
  text-overflow: ellipsis;
  line-height: 1.5;
  font-weight: 500;
  box-shadow: 1px 1px 4px -3px rgba(0, 0, 0, 0.4);
}
.meeting.conflict { color: __CONFLICT_INK__; }
.meeting.highlight { filter: brightness(0.92); }
.meeting.selected { cursor: default; }
.meeting-detail { font-weight: 400; opacity: 0.8; }
"""
    css = (
        css.replace("__PAGE_BG__", "#1a202c" if dark else "#ffffff")
        .replace("__INK__", "#f7fafc" if dark else "#1a202c")
        .replace("__GRID__", "#4a5568" if dark else "#e2e8f0")
        .replace("__CONFLICT_INK__", "#ffffff" if display.get("highlight_conflicts") else "inherit")
        .replace("__ROW_HEIGHT__", f"{row_height:g}")
        .replace("__DAYS__", str(len(grid.days)))
    )

    html_parts = [
        "<!DOCTYPE html>",
        "<html lang=\"en\">",
        "<head>",
        "<meta charset=\"utf-8\">",
        f"<title>{html.escape(title)}</title>",
        "<meta name=\"viewport\" content=\"width=device-width, initial-scale=1\">",
        f"<style>{css}</style>",
        "</head>",
        "<body>",
        "<div class=\"timetable-wrap\">",
        "<table>",
        "<thead>",
        "<tr>",
        "<th></th>",
    ]
    for day in grid.days:
        html_parts.append(f"<th>{html.escape(day[:3])}</th>")
    html_parts.extend([
        "</tr>",
        "</thead>",
        "<tbody>",
    ])

    for row in table.rows:
        row_class = "hour-row" if row.time % 60 == 0 else "minor-row"
        html_parts.append(f"<tr class=\"{row_class}\">")
        if display.get("show_time", True):
            label = minutes_to_label(row.time, display.get("twenty_four", True))
            html_parts.append(f"<td class=\"time\">{html.escape(label)}</td>")
        else:
            html_parts.append("<td class=\"time\" style=\"padding: 0\">&nbsp;</td>")
        for cell in row.day_cells:
            html_parts.append(render_cell(cell, display))
        html_parts.append("</tr>")

    html_parts.extend([
        "</tbody>",
        "</table>",
        "</div>",
        "</body>",
        "</html>",
    ])
    return "\n".join(html_parts)


def groups_to_json(table: Timetable) -> dict:
    return {
        day: [
            {
                "min_start_time": group.min_start_time,
                "max_end_time": group.max_end_time,
                "meetings": [
                    {
                        "identifier": meeting.identifier,
                        "start_time": meeting.start_time,
                        "end_time": meeting.end_time,
                    }
                    for meeting in group.meetings
                ],
            }
            for group in table.groups(day)
        ]
        for day in table.grid.days
    }


def build_from_files(
    meetings_path: Path, config_path: Path | None, overrides: dict | None = None
) -> Timetable:
    config = timetable_config.load_config(config_path) if config_path else None
    if overrides:
        config = timetable_config.normalize_config(
            {**(config or {}), "grid": {**(config or {}).get("grid", {}), **overrides}}
        )
    meetings = load_meetings(meetings_path)
    logger.debug("Loaded %d meetings from %s", len(meetings), meetings_path)
    if config:
        meetings = timetable_config.apply_config(meetings, config)
    try:
        grid = timetable_config.get_grid_params(config)
    except TimetableError as exc:
        raise SystemExit(f"Invalid grid: {exc}")
    display = timetable_config.get_display_settings(config)
    return build_timetable(meetings, grid, display)


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("meetings", type=Path, help="Meetings JSON file")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("weekgrid.json"),
        help="Timetable config JSON",
    )
    parser.add_argument("--min-time", help="Earliest row, e.g. 08:00")
    parser.add_argument("--max-time", help="Latest row, e.g. 22:00")
    parser.add_argument("--resolution", type=int, help="Minutes per row")
    parser.add_argument("--verbose", action="store_true", help="Log debug output")


def grid_overrides(args: argparse.Namespace) -> dict:
    overrides = {}
    if args.min_time:
        overrides["min_time"] = args.min_time
    if args.max_time:
        overrides["max_time"] = args.max_time
    if args.resolution is not None:
        overrides["resolution"] = args.resolution
    return overrides


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Render weekly course timetables with overlapping meetings side by side."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    render_parser = subparsers.add_parser("render", help="Render timetable HTML")
    add_common_arguments(render_parser)
    render_parser.add_argument("--out", type=Path, default=Path("timetable.html"))
    render_parser.add_argument("--title", default="Timetable")

    groups_parser = subparsers.add_parser("groups", help="Print overlap groups as JSON")
    add_common_arguments(groups_parser)

    args = parser.parse_args()
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    table = build_from_files(args.meetings, args.config, grid_overrides(args))

    if args.command == "groups":
        print(json.dumps(groups_to_json(table), indent=2))
        return

    if args.command == "render":
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(render_timetable_html(table, args.title), encoding="utf-8")
        print(f"Rendered {len(table.rows)} rows into {args.out}")


if __name__ == "__main__":
    main()
