"""Cluster overlapping meetings and lay them out on a weekly time grid."""

from __future__ import annotations

import collections
import functools
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)

DAY_ORDER = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]
WEEK_DAYS = DAY_ORDER[:5]
DAY_ABBR_TO_NAME = {name[:3]: name for name in DAY_ORDER}
MINUTES_PER_DAY = 24 * 60
MAX_RESOLUTION = 60
CLUSTER_CACHE_SIZE = 32


class TimetableError(ValueError):
    pass


class InvalidInterval(TimetableError):
    pass


class OutOfRangeGrid(TimetableError):
    pass


def normalize_day(value: str) -> str | None:
    text = str(value).strip().capitalize()
    if text in DAY_ORDER:
        return text
    return DAY_ABBR_TO_NAME.get(text[:3])


@dataclass(frozen=True)
class Meeting:
    day: str
    start_time: int
    end_time: int
    course_key: int = 0
    identifier: str = ""
    title: str = ""
    location: str = ""

    def __post_init__(self) -> None:
        if self.start_time >= self.end_time:
            raise InvalidInterval(
                f"meeting {self.identifier or '?'} on {self.day} ends at "
                f"{self.end_time} which is not after its start {self.start_time}"
            )
        if self.start_time < 0 or self.end_time > MINUTES_PER_DAY:
            raise InvalidInterval(
                f"meeting {self.identifier or '?'} on {self.day} falls outside "
                f"0-{MINUTES_PER_DAY} minutes ({self.start_time}-{self.end_time})"
            )

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time

    def overlaps(self, other: Meeting) -> bool:
        return self.start_time < other.end_time and other.start_time < self.end_time


@dataclass(frozen=True)
class MeetingGroup:
    """Meetings on one day that overlap each other directly or transitively."""

    meetings: tuple[Meeting, ...]

    def __post_init__(self) -> None:
        if not self.meetings:
            raise ValueError("a meeting group needs at least one meeting")
        days = {meeting.day for meeting in self.meetings}
        if len(days) > 1:
            raise ValueError(f"meeting group spans several days: {sorted(days)}")

    def __len__(self) -> int:
        return len(self.meetings)

    def __iter__(self):
        return iter(self.meetings)

    @property
    def day(self) -> str:
        return self.meetings[0].day

    @property
    def min_start_time(self) -> int:
        return min(meeting.start_time for meeting in self.meetings)

    @property
    def max_end_time(self) -> int:
        return max(meeting.end_time for meeting in self.meetings)

    @property
    def span(self) -> int:
        return self.max_end_time - self.min_start_time

    @property
    def has_conflict(self) -> bool:
        return len(self.meetings) > 1


@dataclass(frozen=True)
class GridParams:
    min_time: int = 8 * 60
    max_time: int = 22 * 60
    resolution: int = 15
    days: tuple[str, ...] = tuple(WEEK_DAYS)

    def __post_init__(self) -> None:
        object.__setattr__(self, "days", tuple(self.days))
        for name in ("min_time", "max_time", "resolution"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise OutOfRangeGrid(f"{name} must be whole minutes, got {value!r}")
        if not 0 < self.resolution <= MAX_RESOLUTION:
            raise OutOfRangeGrid(
                f"resolution must be in (0, {MAX_RESOLUTION}], got {self.resolution}"
            )
        for name in ("min_time", "max_time"):
            value = getattr(self, name)
            if not 0 <= value <= MINUTES_PER_DAY:
                raise OutOfRangeGrid(
                    f"{name} must be in [0, {MINUTES_PER_DAY}], got {value}"
                )
        if self.min_time > self.max_time:
            raise OutOfRangeGrid(
                f"min_time {self.min_time} is after max_time {self.max_time}"
            )
        if not self.days:
            raise OutOfRangeGrid("at least one day must be displayed")
        if len(set(self.days)) != len(self.days):
            raise OutOfRangeGrid(f"days contain duplicates: {list(self.days)}")

    @property
    def times(self) -> range:
        return range(self.min_time, self.max_time + 1, self.resolution)

    @property
    def row_count(self) -> int:
        return len(self.times)

    def row_index(self, minutes: int) -> int | None:
        """Return the row whose time is exactly ``minutes``, if there is one."""
        offset = minutes - self.min_time
        if offset < 0 or minutes > self.max_time or offset % self.resolution:
            return None
        return offset // self.resolution

    def row_span(self, start: int, end: int) -> int:
        return int((end - start + self.resolution - 1) // self.resolution)


def meeting_sort_key(meeting: Meeting) -> tuple[int, int, str, int]:
    return (meeting.start_time, meeting.end_time, meeting.identifier, meeting.course_key)


def partition(meetings: Iterable[Meeting]) -> list[MeetingGroup]:
    """Split one day's meetings into maximal groups of overlapping meetings.

    A meeting joins the current group when it starts strictly before the
    latest end seen so far in that group, so back-to-back meetings stay apart
    and a meeting nested inside a longer one does not close the group early.
    """
    groups: list[MeetingGroup] = []
    current: list[Meeting] = []
    current_end = -1
    for meeting in sorted(meetings, key=meeting_sort_key):
        if not current or meeting.start_time < current_end:
            current.append(meeting)
            current_end = max(current_end, meeting.end_time)
        else:
            groups.append(MeetingGroup(tuple(current)))
            current = [meeting]
            current_end = meeting.end_time
    if current:
        groups.append(MeetingGroup(tuple(current)))
    return groups


def group_by_day(
    meetings: Iterable[Meeting], days: Sequence[str]
) -> Mapping[str, tuple[MeetingGroup, ...]]:
    wanted = set(days)
    meetings_by_day: dict[str, list[Meeting]] = collections.defaultdict(list)
    for meeting in meetings:
        if meeting.day not in wanted:
            logger.debug(
                "Dropping %s on %s: day is not displayed", meeting.identifier, meeting.day
            )
            continue
        meetings_by_day[meeting.day].append(meeting)
    return MappingProxyType(
        {day: tuple(partition(meetings_by_day.get(day, []))) for day in days}
    )


@functools.lru_cache(maxsize=CLUSTER_CACHE_SIZE)
def _cluster_cached(
    meetings: tuple[Meeting, ...], days: tuple[str, ...]
) -> Mapping[str, tuple[MeetingGroup, ...]]:
    logger.debug("Clustering %d meetings over %d days", len(meetings), len(days))
    return group_by_day(meetings, days)


def cluster_meetings(
    meetings: Iterable[Meeting], days: Sequence[str]
) -> Mapping[str, tuple[MeetingGroup, ...]]:
    """Memoized ``group_by_day`` keyed on the meeting contents and day order."""
    return _cluster_cached(tuple(meetings), tuple(days))


@dataclass(frozen=True)
class MeetingPlacement:
    """Position of one meeting inside its group's cell, in percent."""

    meeting: Meeting
    slot_index: int
    slot_count: int
    left: float
    width: float
    top: float
    height: float

    @property
    def is_full_cell(self) -> bool:
        return self.slot_count == 1


@dataclass(frozen=True)
class GroupPlacement:
    group: MeetingGroup
    start_row: int
    row_span: int
    placements: tuple[MeetingPlacement, ...]

    @property
    def end_row(self) -> int:
        return self.start_row + self.row_span


def place_meetings(group: MeetingGroup) -> tuple[MeetingPlacement, ...]:
    if not group.has_conflict:
        return (MeetingPlacement(group.meetings[0], 0, 1, 0.0, 100.0, 0.0, 100.0),)

    count = len(group)
    percent = 100 / count
    span = group.span
    start = group.min_start_time
    return tuple(
        MeetingPlacement(
            meeting=meeting,
            slot_index=index,
            slot_count=count,
            left=index * percent,
            width=percent,
            top=(meeting.start_time - start) / span * 100,
            height=meeting.duration / span * 100,
        )
        for index, meeting in enumerate(group.meetings)
    )


def plan_group(group: MeetingGroup, grid: GridParams) -> GroupPlacement | None:
    start_row = grid.row_index(group.min_start_time)
    if start_row is None:
        logger.warning(
            "Group on %s starting at %d is not on a %d-minute row between %d and %d",
            group.day,
            group.min_start_time,
            grid.resolution,
            grid.min_time,
            grid.max_time,
        )
        return None
    return GroupPlacement(
        group=group,
        start_row=start_row,
        row_span=grid.row_span(group.min_start_time, group.max_end_time),
        placements=place_meetings(group),
    )


def plan_day(groups: Iterable[MeetingGroup], grid: GridParams) -> list[GroupPlacement]:
    planned = (plan_group(group, grid) for group in groups)
    return [placement for placement in planned if placement is not None]


@dataclass(frozen=True)
class TimeLabel:
    time: int


@dataclass(frozen=True)
class Occupied:
    day: str
    placement: GroupPlacement

    @property
    def group(self) -> MeetingGroup:
        return self.placement.group

    @property
    def row_span(self) -> int:
        return self.placement.row_span

    @property
    def placements(self) -> tuple[MeetingPlacement, ...]:
        return self.placement.placements


@dataclass(frozen=True)
class Empty:
    day: str


Cell = TimeLabel | Occupied | Empty


@dataclass(frozen=True)
class Row:
    time: int
    index: int
    cells: tuple[Cell, ...]

    @property
    def label(self) -> TimeLabel:
        return self.cells[0]

    @property
    def day_cells(self) -> tuple[Cell, ...]:
        return self.cells[1:]


def emit(
    groups_by_day: Mapping[str, Sequence[MeetingGroup]], grid: GridParams
) -> list[Row]:
    """Walk the grid rows and emit the cells each day column needs.

    Rows covered by an earlier group's row-span get no cell for that day.
    """
    day_starts: dict[str, dict[int, GroupPlacement]] = {}
    day_skips: dict[str, frozenset[int]] = {}
    for day in grid.days:
        placements = plan_day(groups_by_day.get(day, ()), grid)
        day_starts[day] = {placement.start_row: placement for placement in placements}
        day_skips[day] = frozenset(
            row
            for placement in placements
            for row in range(placement.start_row + 1, placement.end_row)
        )

    rows: list[Row] = []
    for index, current_time in enumerate(grid.times):
        cells: list[Cell] = [TimeLabel(current_time)]
        for day in grid.days:
            if index in day_starts[day]:
                cells.append(Occupied(day, day_starts[day][index]))
            elif index not in day_skips[day]:
                cells.append(Empty(day))
        rows.append(Row(current_time, index, tuple(cells)))
    return rows


@dataclass(frozen=True)
class Timetable:
    grid: GridParams
    groups_by_day: Mapping[str, tuple[MeetingGroup, ...]]
    rows: tuple[Row, ...]
    display: Mapping[str, Any] = field(default_factory=dict)

    def groups(self, day: str) -> tuple[MeetingGroup, ...]:
        return self.groups_by_day.get(day, ())


def build_timetable(
    meetings: Iterable[Meeting],
    grid: GridParams | None = None,
    display: Mapping[str, Any] | None = None,
) -> Timetable:
    grid = grid or GridParams()
    groups_by_day = cluster_meetings(meetings, grid.days)
    rows = emit(groups_by_day, grid)
    return Timetable(
        grid=grid,
        groups_by_day=groups_by_day,
        rows=tuple(rows),
        display=MappingProxyType(dict(display or {})),
    )
