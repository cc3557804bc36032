# gridlock: axis scaling and time grouping for charts
# Copyright (C) 2024-present  the gridlock contributors

# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.

# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

'''
Time interval (aka "timeframe") math.

All timestamps are epoch **milliseconds**. Sub-day units are treated
as fixed durations; day and longer units are calendar relative and
are computed with ``pendulum`` in the requested time zone so that
variable month lengths, week start days and DST transitions are
handled for real.

NOTE: the fixed ms ``.duration`` of an interval is only ever an
approximation used for *ranking* intervals against each other, never
for exact date arithmetic.

'''
from __future__ import annotations
from math import (
    ceil,
    floor,
)
import re
from typing import (
    Literal,
    Sequence,
)

from bidict import bidict
import pendulum
from pendulum import DateTime

from .types import Struct


TimeUnit = Literal[
    'millisecond',
    'second',
    'minute',
    'hour',
    'day',
    'week',
    'month',
    'year',
]

# ms per unit, with month and year being averages (only for ranking).
unit_durations: dict[TimeUnit, float] = {
    'millisecond': 1,
    'second': 1000,
    'minute': 60000,
    'hour': 3600000,
    'day': 86400000,
    'week': 604800000,
    'month': 365.242 / 12 * 86400000,
    'year': 31536000000,
}

# short "timeframe" codes <-> unit names
_unit_codes: bidict[str, str] = bidict({
    'millisecond': 'ms',
    'second': 's',
    'minute': 'm',
    'hour': 'h',
    'day': 'd',
    'week': 'w',
    'month': 'M',
    'year': 'y',
})

# the parent unit each unit's value is floored within
_next_units: dict[TimeUnit, TimeUnit | None] = {
    'millisecond': 'second',
    'second': 'minute',
    'minute': 'hour',
    'hour': 'day',
    'day': 'month',  # not a mistake
    'week': 'month',
    'month': 'year',
    'year': None,
}

_sub_day: frozenset[str] = frozenset({
    'millisecond',
    'second',
    'minute',
    'hour',
})

_code_re = re.compile(r'^\s*(\d+)?\s*([A-Za-z]+)\s*$')
_key_re = re.compile(r'^([a-z]+)(\d+)$')


class TimeInterval(
    Struct,
    frozen=True,
):
    '''
    An immutable ``(unit, count)`` time interval, eg. ``5 minute``.

    '''
    unit: TimeUnit
    count: int = 1

    def __post_init__(self) -> None:
        if self.unit not in unit_durations:
            raise ValueError(f'Invalid time unit: {self.unit!r}')

        if (
            not isinstance(self.count, int)
            or self.count < 1
        ):
            raise ValueError(
                f'Interval count must be a positive int, not {self.count!r}'
            )

    @property
    def key(self) -> str:
        '''
        Data set id for a series resolution at this interval.

        '''
        return f'{self.unit}{self.count}'

    @property
    def code(self) -> str:
        return f'{self.count}{_unit_codes[self.unit]}'

    @property
    def duration(self) -> float:
        return unit_durations[self.unit] * self.count

    def __str__(self) -> str:
        return self.code

    @classmethod
    def parse(
        cls,
        text: str | TimeInterval | dict,

    ) -> TimeInterval:
        '''
        Parse any of ``'5m'``, ``'5 minutes'``, ``'minute5'`` or
        a ``{'unit': .., 'count': ..}`` table.

        '''
        if isinstance(text, TimeInterval):
            return text

        if isinstance(text, dict):
            return cls(
                unit=text['unit'],
                count=int(text.get('count', 1)),
            )

        if match := _key_re.match(text):
            unit, count = match.groups()
            if unit in unit_durations:
                return cls(unit=unit, count=int(count))

        match = _code_re.match(text)
        if not match:
            raise ValueError(f'Unparseable interval: {text!r}')

        count, token = match.groups()
        count = int(count) if count else 1

        if token in _unit_codes.inverse:
            unit = _unit_codes.inverse[token]
        else:
            unit = token.lower().removesuffix('s')

        return cls(unit=unit, count=count)


def get_next_unit(unit: TimeUnit) -> TimeUnit | None:
    '''
    Return the unit that "contains" ``unit``, eg. ``'hour'`` for
    ``'minute'``.

    '''
    return _next_units[unit]


def get_duration(
    unit: TimeUnit,
    count: float = 1,
) -> float:
    return unit_durations[unit] * count


def interval_duration(interval: TimeInterval | None) -> float:
    if interval is None:
        return 0
    return interval.duration


def is_utc(tz: str | None) -> bool:
    return tz in (None, 'UTC', 'utc', 'Etc/UTC', 'Z')


def to_datetime(
    ts: float,
    tz: str | None = 'UTC',
) -> DateTime:
    return pendulum.from_timestamp(ts / 1000, tz=tz or 'UTC')


def to_ms(dt: DateTime) -> int:
    return round(dt.timestamp() * 1000)


def fixed_step(
    unit: TimeUnit,
    count: int,
    first_day_of_week: int,
    tz: str | None,

) -> tuple[float, float] | None:
    '''
    Return a ``(step, offset)`` pair when rounding to ``(unit,
    count)`` is plain modular arithmetic on the epoch, which is the
    case for UTC and intervals that evenly divide their parent unit.

    '''
    if not is_utc(tz):
        return None

    step: float = unit_durations[unit] * count
    match unit:
        case 'millisecond' if 1000 % count == 0:
            return step, 0
        case 'second' | 'minute' if 60 % count == 0:
            return step, 0
        case 'hour' if 24 % count == 0:
            return step, 0
        case 'day' if count == 1:
            return step, 0
        case 'week' if count == 1:
            # the epoch (1970-01-01) is a thursday (weekday 4 when
            # sunday == 0); offset to the first requested week day.
            offset_days: int = (first_day_of_week - 4) % 7
            return step, offset_days * unit_durations['day']

    return None


def round_time(
    ts: float,
    unit: TimeUnit,
    count: int = 1,
    first_day_of_week: int = 1,
    tz: str | None = 'UTC',
    first_ts: float | None = None,

) -> int:
    '''
    "Round" (floor) the epoch-ms ``ts`` down to the start of its
    ``(unit, count)`` interval.

    ``first_day_of_week`` uses the 0 == sunday convention. When
    ``first_ts`` is passed multi-day and multi-week intervals are
    anchored at that time's (rounded) date instead of the calendar.

    '''
    if (
        unit == 'millisecond'
        and count == 1
    ):
        return floor(ts)

    fixed = fixed_step(unit, count, first_day_of_week, tz)
    if fixed:
        step, offset = fixed
        return int(((ts - offset) // step) * step + offset)

    dt: DateTime = to_datetime(ts, tz)
    match unit:
        case 'millisecond':
            ms: int = dt.microsecond // 1000
            out = dt.set(microsecond=(ms // count) * count * 1000)

        case 'second':
            out = dt.set(
                second=(dt.second // count) * count,
                microsecond=0,
            )

        case 'minute':
            out = dt.set(
                minute=(dt.minute // count) * count,
                second=0,
                microsecond=0,
            )

        case 'hour':
            out = dt.set(
                hour=(dt.hour // count) * count,
                minute=0,
                second=0,
                microsecond=0,
            )

        case 'day':
            out = dt.start_of('day')
            if (
                count > 1
                and first_ts is not None
            ):
                first = to_datetime(first_ts, tz).start_of('day')
                days: int = (out.date() - first.date()).days
                out = first.add(days=(days // count) * count)

        case 'week':
            if (
                count > 1
                and first_ts is not None
            ):
                first = to_datetime(
                    round_time(first_ts, 'week', 1, first_day_of_week, tz),
                    tz,
                )
                weeks: int = (dt.date() - first.date()).days // 7
                dt = first.add(weeks=(weeks // count) * count)

            # sunday == 0 like the ``first_day_of_week`` arg
            weekday: int = dt.isoweekday() % 7
            if weekday >= first_day_of_week:
                back: int = weekday - first_day_of_week
            else:
                back = 7 + weekday - first_day_of_week

            out = dt.subtract(days=back).start_of('day')

        case 'month':
            month0: int = ((dt.month - 1) // count) * count
            out = pendulum.datetime(
                dt.year,
                month0 + 1,
                1,
                tz=tz or 'UTC',
            )

        case 'year':
            out = pendulum.datetime(
                max((dt.year // count) * count, 1),
                1,
                1,
                tz=tz or 'UTC',
            )

        case _:
            raise ValueError(f'Invalid time unit: {unit!r}')

    rounded: int = to_ms(out)

    # XXX: during a DST "fall back" the wall clock repeats an hour and
    # the re-built local time can resolve to the *first* occurrence
    # which is a full hour before the input; push it forward.
    if unit in _sub_day:
        hdur: float = unit_durations['hour']
        if unit == 'hour':
            hdur *= count

        if rounded + hdur <= ts:
            rounded += int(hdur)

    return rounded


def add_time(
    ts: float,
    unit: TimeUnit,
    count: int = 1,
    tz: str | None = 'UTC',

) -> int:
    '''
    Add ``count`` of ``unit`` to the epoch-ms ``ts``.

    Sub-day units add absolute (elapsed) time, day and longer units
    add calendar time (wall clock preserved across DST, month ends
    clamped).

    '''
    if (
        unit in _sub_day
        or (
            is_utc(tz)
            and unit in ('day', 'week')
        )
    ):
        return round(ts + unit_durations[unit] * count)

    dt: DateTime = to_datetime(ts, tz)
    match unit:
        case 'day':
            out = dt.add(days=count)
        case 'week':
            out = dt.add(weeks=count)
        case 'month':
            out = dt.add(months=count)
        case 'year':
            out = dt.add(years=count)
        case _:
            raise ValueError(f'Invalid time unit: {unit!r}')

    return to_ms(out)


def next_boundary(
    start: int,
    interval: TimeInterval,
    first_day_of_week: int = 1,
    tz: str | None = 'UTC',
    first_ts: float | None = None,

) -> int:
    '''
    Return the start of the interval following the one which begins
    at ``start`` (which must already be rounded).

    Every timestamp in ``[start, next_boundary(start))`` rounds to
    ``start``; the re-round handles counts which don't evenly divide
    their parent unit (eg. 5h buckets restart at midnight).

    '''
    unit, count = interval.unit, interval.count
    end: int = add_time(start, unit, count, tz=tz)
    rounded: int = round_time(
        end,
        unit,
        count,
        first_day_of_week=first_day_of_week,
        tz=tz,
        first_ts=first_ts,
    )
    if rounded <= start:
        return end

    return rounded


def date_interval_duration(
    interval: TimeInterval,
    ts: float,
    first_day_of_week: int = 1,
    tz: str | None = 'UTC',

) -> int:
    '''
    Exact (calendar) ms length of the ``interval`` instance that
    contains ``ts``.

    '''
    unit, count = interval.unit, interval.count
    if unit in _sub_day:
        return int(interval.duration)

    first: int = round_time(ts, unit, count, first_day_of_week, tz)
    last: float = first + count * unit_durations[unit] * 1.05
    last = round_time(last, unit, 1, first_day_of_week, tz)
    return last - first


def check_change(
    t0: float,
    t1: float,
    unit: TimeUnit,
    tz: str | None = 'UTC',

) -> bool:
    '''
    Predicate for whether the ``unit`` "period" (or any containing
    period) changed between two timestamps; used to choose the
    "period change" label format on grid lines.

    '''
    if (t1 - t0) > get_duration(unit, 1.2):
        return True

    one: DateTime = to_datetime(t0, tz)
    two: DateTime = to_datetime(t1, tz)

    u: TimeUnit | None = unit
    while u:
        match u:
            case 'year':
                changed = one.year != two.year
            case 'month':
                changed = (
                    one.year != two.year
                    or one.month != two.month
                )
            case 'day' | 'week':
                changed = (
                    one.month != two.month
                    or one.day != two.day
                )
            case 'hour':
                changed = one.hour != two.hour
            case 'minute':
                changed = one.minute != two.minute
            case 'second':
                changed = one.second != two.second
            case 'millisecond':
                changed = t0 != t1

        if changed:
            return True

        u = get_next_unit(u)

    return False


def choose_interval(
    duration: float,
    grid_count: float,
    intervals: Sequence[TimeInterval],
    index: int = 0,

) -> TimeInterval:
    '''
    Walk the (ascending duration) ``intervals`` starting at ``index``
    and return the first whose count over ``duration`` fits in
    ``grid_count``.

    When the span is shorter then a single instance of the candidate
    the previous (finer) interval is preferred, and the coarsest
    interval is returned if nothing fits.

    '''
    last: int = len(intervals) - 1
    i: int = index
    while True:
        if i >= last:
            return intervals[last]

        interval: TimeInterval = intervals[i]
        ivl_dur: float = interval.duration
        if (
            duration < ivl_dur
            and i > 0
        ):
            return intervals[i - 1]

        if ceil(duration / ivl_dur) <= grid_count:
            return interval

        i += 1
