#!/usr/bin/env python3
"""Render a weekly timetable PDF from a meetings JSON file."""

from __future__ import annotations

import argparse
import logging
import unicodedata
from dataclasses import dataclass
from pathlib import Path

from fpdf import FPDF

from timetable import Empty, Meeting, Occupied, Timetable
from timetable_tool import (
    CONFLICT_COLOUR,
    add_common_arguments,
    build_from_files,
    course_key_to_rgb,
    grid_overrides,
    hex_to_rgb,
    minutes_to_label,
)

GRID_COLOUR = (226, 232, 240)
HEADER_FILL = (247, 250, 252)
EMPTY_FILL = (255, 255, 255)
SELECTED_OUTLINE = (60, 142, 230)


@dataclass
class RenderConfig:
    page_size: str
    orientation: str
    margin: float
    header_height: float
    time_col_width: float
    header_font_size: float
    body_font_size: float
    padding: float
    slot_inset: float


PUNCTUATION_TO_ASCII = str.maketrans(
    {
        "\u2013": "-",
        "\u2014": "-",
        "\u2018": "'",
        "\u2019": "'",
        "\u201c": "\"",
        "\u201d": "\"",
        "\u2026": "...",
    }
)


def sanitize_text(value: str | None) -> str:
    """Reduce text to the ASCII the core Helvetica font can draw."""
    if not value:
        return ""
    text = unicodedata.normalize("NFKD", str(value).translate(PUNCTUATION_TO_ASCII))
    return " ".join(text.encode("ascii", "ignore").decode("ascii").split())


def wrap_text(pdf: FPDF, text: str, max_width: float) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}".strip()
        if pdf.get_string_width(candidate) <= max_width:
            current = candidate
            continue
        if current:
            lines.append(current)
        while pdf.get_string_width(word) > max_width and len(word) > 1:
            cut = len(word) - 1
            while cut > 1 and pdf.get_string_width(word[:cut]) > max_width:
                cut -= 1
            lines.append(word[:cut])
            word = word[cut:]
        current = word
    if current:
        lines.append(current)
    return lines


def fit_lines(pdf: FPDF, lines: list[str], max_width: float, max_lines: int) -> list[str]:
    if len(lines) <= max_lines:
        return lines
    fitted = lines[:max_lines]
    last = fitted[-1]
    while last and pdf.get_string_width(last + "...") > max_width:
        last = last[:-1]
    fitted[-1] = last.rstrip() + "..."
    return fitted


def draw_box(
    pdf: FPDF,
    x: float,
    y: float,
    width: float,
    height: float,
    lines: list[str],
    fill_color: tuple[int, int, int] | None,
    config: RenderConfig,
    align: str = "L",
    bold: bool = False,
    font_size: float | None = None,
) -> None:
    if width <= 0 or height <= 0:
        return
    if fill_color:
        pdf.set_fill_color(*fill_color)
        pdf.rect(x, y, width, height, style="DF")
    else:
        pdf.rect(x, y, width, height)
    if not lines:
        return

    pdf.set_font("Helvetica", style="B" if bold else "", size=font_size or config.body_font_size)
    padding = config.padding
    line_height = pdf.font_size * 1.2
    max_lines = max(1, int((height - 2 * padding) / line_height))
    cursor_y = y + padding
    for line in fit_lines(pdf, lines, width - 2 * padding, max_lines):
        pdf.set_xy(x + padding, cursor_y)
        pdf.cell(width - 2 * padding, line_height, line, align=align)
        cursor_y += line_height


def meeting_lines(pdf: FPDF, meeting: Meeting, max_width: float, twenty_four: bool) -> list[str]:
    title = sanitize_text(meeting.title or meeting.identifier or "(Untitled)")
    lines = wrap_text(pdf, title, max_width)
    time_range = (
        f"{minutes_to_label(meeting.start_time, twenty_four)} - "
        f"{minutes_to_label(meeting.end_time, twenty_four)}"
    )
    lines.extend(wrap_text(pdf, time_range, max_width))
    location = sanitize_text(meeting.location)
    if location:
        lines.extend(wrap_text(pdf, location, max_width))
    return lines


def meeting_fill(meeting: Meeting, conflict: bool, display: dict) -> tuple[int, int, int]:
    emphasized = (
        display.get("emphasize_on_hover")
        and display.get("hover_course_key") == meeting.course_key
    )
    if conflict and display.get("highlight_conflicts") and not emphasized:
        return hex_to_rgb(CONFLICT_COLOUR)
    lighten = -15 if display.get("dark") else 0
    return course_key_to_rgb(meeting.course_key, display.get("palette", "default"), lighten)


def draw_occupied(
    pdf: FPDF,
    cell: Occupied,
    x: float,
    y: float,
    width: float,
    full_height: float,
    bottom: float,
    config: RenderConfig,
    display: dict,
) -> None:
    visible_height = min(full_height, bottom - y)
    draw_box(pdf, x, y, width, visible_height, [], EMPTY_FILL, config)

    inset = config.slot_inset
    twenty_four = display.get("twenty_four", True)
    for placement in cell.placements:
        meeting = placement.meeting
        slot_x = x + width * placement.left / 100 + (inset if placement.slot_index == 0 else inset / 3)
        slot_width = width * placement.width / 100 - inset * 4 / 3
        slot_y = y + full_height * placement.top / 100
        slot_height = min(full_height * placement.height / 100, bottom - slot_y)
        lines = meeting_lines(pdf, meeting, slot_width - 2 * config.padding, twenty_four)
        fill = meeting_fill(meeting, not placement.is_full_cell, display)
        draw_box(pdf, slot_x, slot_y, slot_width, slot_height, lines, fill, config)
        if meeting.identifier and meeting.identifier == display.get("selected_identifier"):
            pdf.set_draw_color(*SELECTED_OUTLINE)
            pdf.rect(slot_x, slot_y, slot_width, max(0.0, slot_height))
            pdf.set_draw_color(*GRID_COLOUR)


def render_timetable(pdf: FPDF, table: Timetable, config: RenderConfig, title: str) -> None:
    display = dict(table.display)
    grid = table.grid

    pdf.add_page()
    pdf.set_auto_page_break(auto=False, margin=0)
    pdf.set_font("Helvetica", style="B", size=14)
    pdf.set_xy(config.margin, config.margin)
    pdf.cell(0, 6, sanitize_text(title), new_x="LMARGIN", new_y="NEXT")

    table_x = config.margin
    table_y = config.margin + config.header_height
    table_width = pdf.w - 2 * config.margin
    table_height = pdf.h - config.margin - table_y
    day_col_width = (table_width - config.time_col_width) / len(grid.days)
    column_x = {
        day: table_x + config.time_col_width + idx * day_col_width
        for idx, day in enumerate(grid.days)
    }

    pdf.set_draw_color(*GRID_COLOUR)
    pdf.set_line_width(0.1)

    header_height = pdf.font_size * 1.2 + 2 * config.padding
    draw_box(pdf, table_x, table_y, config.time_col_width, header_height, [], HEADER_FILL, config)
    for day in grid.days:
        draw_box(
            pdf,
            column_x[day],
            table_y,
            day_col_width,
            header_height,
            [day[:3]],
            HEADER_FILL,
            config,
            align="C",
            bold=True,
            font_size=config.header_font_size,
        )

    body_y = table_y + header_height
    body_bottom = table_y + table_height
    row_height = max(1.0, table_height - header_height) / grid.row_count

    for row in table.rows:
        row_y = body_y + row.index * row_height
        label = ""
        on_hour = row.time % 60 == 0
        if on_hour and display.get("show_time", True):
            label = minutes_to_label(row.time, display.get("twenty_four", True))
        draw_box(
            pdf,
            table_x,
            row_y,
            config.time_col_width,
            row_height,
            [label] if label else [],
            HEADER_FILL,
            config,
            align="R",
            bold=True,
        )
        for cell in row.day_cells:
            x = column_x[cell.day]
            if isinstance(cell, Empty):
                draw_box(pdf, x, row_y, day_col_width, row_height, [], EMPTY_FILL, config)
            else:
                draw_occupied(
                    pdf,
                    cell,
                    x,
                    row_y,
                    day_col_width,
                    row_height * cell.row_span,
                    body_bottom,
                    config,
                    display,
                )


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Render a weekly timetable PDF from a meetings JSON file."
    )
    add_common_arguments(parser)
    parser.add_argument("--out", type=Path, default=Path("timetable.pdf"))
    parser.add_argument("--title", default="Timetable")
    parser.add_argument("--page-size", default="A4")
    parser.add_argument(
        "--orientation", choices=["portrait", "landscape"], default="landscape"
    )
    parser.add_argument("--font-size", type=float, default=6.5)
    args = parser.parse_args()
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    table = build_from_files(args.meetings, args.config, grid_overrides(args))

    config = RenderConfig(
        page_size=args.page_size,
        orientation=args.orientation,
        margin=8.0,
        header_height=10.0,
        time_col_width=16.0,
        header_font_size=8.0,
        body_font_size=float(args.font_size),
        padding=1.0,
        slot_inset=0.9,
    )
    pdf = FPDF(
        orientation=args.orientation[0].upper(),
        unit="mm",
        format=args.page_size,
    )
    render_timetable(pdf, table, config, args.title)
    args.out.parent.mkdir(parents=True, exist_ok=True)
    pdf.output(str(args.out))
    print(f"Rendered {len(table.rows)} rows into {args.out}")


if __name__ == "__main__":
    main()
