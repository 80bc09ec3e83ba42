"""
Conflict detection, weekly expansion and series time shifting.

Everything here is pure: callers pass the current reservation list and the
acting user explicitly, and no function touches the store.
"""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, List, Optional, Sequence, Tuple, Union
from zoneinfo import ZoneInfo

from reserve_api.core.errors import ValidationError
from reserve_api.modules.reserves.schemas import EditMode

Interval = Tuple[datetime, datetime]
TimeZoneLike = Union[str, tzinfo]

MINUTES_PER_DAY = 24 * 60


def get_zone(tz: TimeZoneLike) -> tzinfo:
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


def to_local(dt: datetime, tz: TimeZoneLike) -> datetime:
    """Return dt in the given zone. Naive datetimes are taken as wall-clock time there."""
    zone = get_zone(tz)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=zone)
    return dt.astimezone(zone)


def round_to_slot(dt: datetime, minutes: int) -> datetime:
    """Round dt to the nearest slot boundary; halves round up. Seconds are dropped."""
    if not minutes or minutes <= 0:
        return dt
    base = dt.replace(minute=0, second=0, microsecond=0)
    rounded = int(dt.minute / minutes + 0.5) * minutes
    return base + timedelta(minutes=rounded)


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    # half-open: [a, b) and [b, c) do not overlap
    return start_a < end_b and start_b < end_a


def find_conflicts(
    start: datetime,
    end: datetime,
    reserves: Iterable,
    exclude_ids: Iterable[int] = (),
) -> list:
    """
    Return the reservations whose interval overlaps [start, end).

    Args:
        start: Candidate start
        end: Candidate end
        reserves: Existing reservations (anything with id, start_time, end_time)
        exclude_ids: Reservations never compared, e.g. the one being edited

    Returns:
        Overlapping reservations in input order. Reservations missing a start
        or end time are ignored.
    """
    excluded = set(exclude_ids)
    conflicts = []
    for reserve in reserves:
        if reserve.id in excluded:
            continue
        if reserve.start_time is None or reserve.end_time is None:
            continue
        if intervals_overlap(start, end, reserve.start_time, reserve.end_time):
            conflicts.append(reserve)
    return conflicts


def check_time_overlap(
    start: datetime,
    end: datetime,
    reserves: Iterable,
    exclude_ids: Iterable[int] = (),
) -> bool:
    """True when the interval is malformed (start >= end) or collides with a reservation."""
    if start >= end:
        return True
    return bool(find_conflicts(start, end, reserves, exclude_ids))


def ensure_bookable(
    start: datetime,
    end: datetime,
    reserves: Iterable,
    exclude_ids: Iterable[int] = (),
) -> None:
    """Raise ValidationError unless [start, end) can be booked."""
    if start >= end:
        raise ValidationError("Start time must be before end time")
    conflicts = find_conflicts(start, end, reserves, exclude_ids)
    if conflicts:
        raise ValidationError(
            "The selected time overlaps an existing reservation",
            conflict_ids=[c.id for c in conflicts],
        )


def expand_weekly(start: datetime, end: datetime, weeks: int, tz: TimeZoneLike) -> List[Interval]:
    """
    Expand one booking into `weeks` weekly occurrences.

    Each occurrence starts on the template's calendar date plus 7*i days at the
    same wall-clock time in `tz`, so the time of day survives DST and month
    changes. The end is the start plus the template's elapsed duration.

    Args:
        start: Start of week 0
        end: End of week 0
        weeks: Number of occurrences, at least 1
        tz: Zone used for the calendar arithmetic

    Returns:
        List of (start, end) pairs, week 0 first
    """
    if weeks < 1:
        raise ValidationError("Recurring weeks must be at least 1")
    zone = get_zone(tz)
    local_start = to_local(start, zone)
    local_end = to_local(end, zone)
    if local_start >= local_end:
        raise ValidationError("Start time must be before end time")

    duration = local_end.astimezone(timezone.utc) - local_start.astimezone(timezone.utc)
    wall_time = local_start.time()

    intervals = []
    for index in range(weeks):
        day = local_start.date() + timedelta(days=7 * index)
        week_start = datetime.combine(day, wall_time, tzinfo=zone)
        week_end = (week_start.astimezone(timezone.utc) + duration).astimezone(zone)
        intervals.append((week_start, week_end))
    return intervals


def validate_series(
    intervals: Sequence[Interval],
    reserves: Iterable,
    exclude_ids: Iterable[int] = (),
) -> None:
    """
    Check every occurrence of a new series before anything is written.

    Occurrence i is checked against the existing reservations and against
    occurrences 0..i-1 of the same series.
    """
    reserves = list(reserves)
    excluded = list(exclude_ids)
    accepted: List[Interval] = []
    for index, (start, end) in enumerate(intervals):
        if start >= end:
            raise ValidationError(f"Week {index + 1}: start time must be before end time")
        conflicts = find_conflicts(start, end, reserves, excluded)
        if conflicts:
            raise ValidationError(
                f"Week {index + 1} overlaps an existing reservation",
                conflict_ids=[c.id for c in conflicts],
            )
        for prior_start, prior_end in accepted:
            if intervals_overlap(start, end, prior_start, prior_end):
                raise ValidationError(f"Week {index + 1} overlaps another week of the same series")
        accepted.append((start, end))


def resolve_mode(
    requested: Optional[EditMode],
    reserve_group_id: Optional[int],
    series_size: int = 1,
) -> EditMode:
    """Series-wide operations only apply to reservations that share a series with others."""
    if reserve_group_id is None or series_size <= 1:
        return EditMode.SINGLE
    if requested is None:
        raise ValidationError("This reservation is part of a series; choose mode 'single' or 'all'")
    return requested


def can_mutate(reserve, user_id: Optional[str], admin: bool) -> bool:
    if admin:
        return True
    return user_id is not None and reserve.user_id == user_id


def time_of_day_delta(original_start: datetime, new_start: datetime, tz: TimeZoneLike) -> timedelta:
    """Difference of the wall-clock hour:minute of two datetimes; their dates are ignored."""
    zone = get_zone(tz)
    before = to_local(original_start, zone)
    after = to_local(new_start, zone)
    return timedelta(hours=after.hour - before.hour, minutes=after.minute - before.minute)


def shift_time_of_day(dt: datetime, delta: timedelta, tz: TimeZoneLike) -> datetime:
    """Move dt's wall-clock time by delta without changing its calendar date."""
    zone = get_zone(tz)
    local = to_local(dt, zone)
    minute_of_day = local.hour * 60 + local.minute + int(delta.total_seconds() // 60)
    if not 0 <= minute_of_day < MINUTES_PER_DAY:
        raise ValidationError(f"Shifting {local.isoformat()} by {delta} leaves its calendar day")
    hours, minutes = divmod(minute_of_day, 60)
    return datetime.combine(local.date(), time(hours, minutes, local.second), tzinfo=zone)


@dataclass
class PlannedUpdate:
    reserve: object
    start_time: Optional[datetime]
    end_time: Optional[datetime]


@dataclass
class SeriesPlan:
    updates: List[PlannedUpdate] = field(default_factory=list)
    skipped: list = field(default_factory=list)

    @property
    def update_ids(self) -> List[int]:
        return [u.reserve.id for u in self.updates]

    @property
    def skipped_ids(self) -> List[int]:
        return [r.id for r in self.skipped]


def plan_series_update(
    series: Iterable,
    delta: timedelta,
    tz: TimeZoneLike,
    user_id: Optional[str],
    admin: bool,
) -> SeriesPlan:
    """
    Compute the new times for every occurrence of a series.

    Only the start is shifted within its calendar day; the end follows at the
    occurrence's own elapsed duration and may roll over to the next day.
    Occurrences the user may not mutate are put in `skipped` and left alone.
    Occurrences without times keep None and only get their text/relations updated.
    """
    zone = get_zone(tz)
    plan = SeriesPlan()
    for reserve in series:
        if not can_mutate(reserve, user_id, admin):
            plan.skipped.append(reserve)
            continue
        if reserve.start_time is None or reserve.end_time is None:
            plan.updates.append(PlannedUpdate(reserve, None, None))
            continue
        duration = reserve.end_time.astimezone(timezone.utc) - reserve.start_time.astimezone(timezone.utc)
        start = shift_time_of_day(reserve.start_time, delta, zone)
        end = (start.astimezone(timezone.utc) + duration).astimezone(zone)
        plan.updates.append(PlannedUpdate(reserve, start, end))
    return plan
