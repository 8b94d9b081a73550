import pytest

from timetable import (
    GridParams,
    Meeting,
    MeetingGroup,
    OutOfRangeGrid,
    partition,
    place_meetings,
    plan_day,
    plan_group,
)


def make_meeting(identifier: str, start_min: int, end_min: int) -> Meeting:
    return Meeting(day="Monday", start_time=start_min, end_time=end_min, identifier=identifier)


def test_row_span_rounds_up() -> None:
    grid = GridParams(min_time=480, max_time=1320, resolution=15)
    group = MeetingGroup((make_meeting("a", 540, 630),))
    placement = plan_group(group, grid)
    assert placement.start_row == 4
    assert placement.row_span == 6

    partial = plan_group(MeetingGroup((make_meeting("b", 540, 580),)), grid)
    assert partial.row_span == 3


def test_single_meeting_fills_cell() -> None:
    (placement,) = place_meetings(MeetingGroup((make_meeting("a", 540, 600),)))
    assert placement.is_full_cell
    assert (placement.left, placement.width, placement.top, placement.height) == (
        0.0,
        100.0,
        0.0,
        100.0,
    )


def test_three_way_conflict_slots() -> None:
    (group,) = partition([
        make_meeting("a", 540, 600),
        make_meeting("b", 550, 600),
        make_meeting("c", 560, 600),
    ])
    placements = place_meetings(group)
    assert [p.slot_index for p in placements] == [0, 1, 2]
    assert all(p.slot_count == 3 for p in placements)
    assert all(p.width == pytest.approx(33.333, abs=0.01) for p in placements)
    assert [p.left for p in placements] == pytest.approx([0.0, 33.333, 66.667], abs=0.01)


def test_vertical_offsets_are_relative_to_group() -> None:
    (group,) = partition([
        make_meeting("a", 540, 630),
        make_meeting("b", 600, 660),
    ])
    first, second = place_meetings(group)
    assert first.top == 0.0
    assert first.height == pytest.approx(75.0)
    assert second.top == pytest.approx(50.0)
    assert second.height == pytest.approx(50.0)


def test_groups_off_the_grid_are_not_placed() -> None:
    grid = GridParams(min_time=480, max_time=720, resolution=30)
    groups = partition([
        make_meeting("early", 420, 450),
        make_meeting("between", 500, 530),
        make_meeting("ok", 540, 600),
        make_meeting("late", 780, 840),
    ])
    placements = plan_day(groups, grid)
    assert [p.group.meetings[0].identifier for p in placements] == ["ok"]
    assert placements[0].start_row == 2
    assert placements[0].row_span == 2


@pytest.mark.parametrize(
    "kwargs",
    [
        {"resolution": 0},
        {"resolution": -15},
        {"resolution": 61},
        {"min_time": 600, "max_time": 540},
        {"min_time": -1},
        {"max_time": 1441},
        {"days": ()},
        {"days": ("Monday", "Monday")},
        {"resolution": 7.5},
        {"resolution": True},
        {"min_time": 480.5},
        {"max_time": "1320"},
    ],
)
def test_grid_rejects_bad_params(kwargs: dict) -> None:
    with pytest.raises(OutOfRangeGrid):
        GridParams(**kwargs)


def test_grid_rows_include_upper_bound() -> None:
    grid = GridParams(min_time=480, max_time=540, resolution=20)
    assert list(grid.times) == [480, 500, 520, 540]
    assert grid.row_index(520) == 2
    assert grid.row_index(510) is None
    assert grid.row_index(560) is None

    uneven = GridParams(min_time=480, max_time=530, resolution=20)
    assert list(uneven.times) == [480, 500, 520]
