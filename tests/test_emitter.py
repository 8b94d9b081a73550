from timetable import (
    Empty,
    GridParams,
    Meeting,
    Occupied,
    TimeLabel,
    build_timetable,
    cluster_meetings,
    emit,
    group_by_day,
)


def make_meeting(
    identifier: str, start_min: int, end_min: int, day: str = "Monday"
) -> Meeting:
    return Meeting(day=day, start_time=start_min, end_time=end_min, identifier=identifier)


def cell_kinds(row) -> list[str]:
    return [type(cell).__name__ for cell in row.day_cells]


def test_boundary_row_when_min_equals_max() -> None:
    grid = GridParams(min_time=480, max_time=480, resolution=15)
    rows = emit(group_by_day([], grid.days), grid)
    assert len(rows) == 1
    assert rows[0].cells[0] == TimeLabel(480)
    assert all(isinstance(cell, Empty) for cell in rows[0].day_cells)


def test_empty_day_gets_empty_cell_every_row() -> None:
    grid = GridParams(min_time=480, max_time=600, resolution=30, days=("Monday", "Tuesday"))
    groups = group_by_day([make_meeting("a", 480, 540)], grid.days)
    assert groups["Tuesday"] == ()
    rows = emit(groups, grid)
    assert len(rows) == 5
    for row in rows:
        assert isinstance(row.label, TimeLabel)
        assert [cell for cell in row.day_cells if cell.day == "Tuesday"] == [Empty("Tuesday")]


def test_spanned_rows_emit_no_cell() -> None:
    grid = GridParams(min_time=480, max_time=600, resolution=30, days=("Monday", "Tuesday"))
    meetings = [
        make_meeting("a", 510, 570),
        make_meeting("b", 540, 600),
    ]
    rows = emit(group_by_day(meetings, grid.days), grid)
    assert [cell_kinds(row) for row in rows] == [
        ["Empty", "Empty"],
        ["Occupied", "Empty"],
        ["Empty"],
        ["Empty"],
        ["Empty", "Empty"],
    ]
    occupied = rows[1].day_cells[0]
    assert isinstance(occupied, Occupied)
    assert occupied.row_span == 3
    assert [m.identifier for m in occupied.group] == ["a", "b"]
    assert len(occupied.placements) == 2


def test_cells_follow_display_day_order() -> None:
    grid = GridParams(min_time=540, max_time=540, resolution=15, days=("Wednesday", "Monday"))
    meetings = [make_meeting("mon", 540, 600), make_meeting("wed", 540, 600, day="Wednesday")]
    (row,) = emit(group_by_day(meetings, grid.days), grid)
    assert [cell.day for cell in row.day_cells] == ["Wednesday", "Monday"]
    assert [cell.group.meetings[0].identifier for cell in row.day_cells] == ["wed", "mon"]


def test_meetings_on_hidden_days_are_dropped() -> None:
    groups = group_by_day(
        [make_meeting("a", 540, 600), make_meeting("sat", 540, 600, day="Saturday")],
        ("Monday",),
    )
    assert list(groups) == ["Monday"]
    assert [m.identifier for m in groups["Monday"][0]] == ["a"]


def test_clustering_is_memoized_on_content() -> None:
    meetings = [make_meeting("a", 540, 600), make_meeting("b", 570, 630)]
    first = cluster_meetings(meetings, ("Monday",))
    again = cluster_meetings([make_meeting("a", 540, 600), make_meeting("b", 570, 630)], ["Monday"])
    assert again is first
    other = cluster_meetings(meetings, ("Monday", "Tuesday"))
    assert other is not first


def test_build_timetable_passes_display_through() -> None:
    display = {"palette": "monochrome", "dark": True}
    table = build_timetable(
        [make_meeting("a", 540, 630), make_meeting("b", 600, 660)],
        GridParams(min_time=480, max_time=720, resolution=15, days=("Monday",)),
        display,
    )
    assert dict(table.display) == display
    assert len(table.rows) == 17
    (group,) = table.groups("Monday")
    assert (group.min_start_time, group.max_end_time) == (540, 660)
    starts = [
        row.index
        for row in table.rows
        if any(isinstance(cell, Occupied) for cell in row.day_cells)
    ]
    assert starts == [4]


def test_groups_off_the_grid_leave_empty_cells() -> None:
    grid = GridParams(min_time=480, max_time=720, resolution=30, days=("Monday",))
    meetings = [
        make_meeting("early", 420, 540),
        make_meeting("between", 545, 590),
        make_meeting("after", 730, 800),
    ]
    rows = emit(group_by_day(meetings, grid.days), grid)
    assert [row.time for row in rows] == list(range(480, 721, 30))
    for row in rows:
        assert row.day_cells == (Empty("Monday"),)
    assert not any(isinstance(cell, Occupied) for row in rows for cell in row.cells)
