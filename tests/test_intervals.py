'''
Interval (timeframe) math: parsing, calendar rounding and stepping.

'''
import pytest

from gridlock._intervals import (
    TimeInterval,
    add_time,
    check_change,
    choose_interval,
    date_interval_duration,
    get_next_unit,
    next_boundary,
    round_time,
)
from conftest import (
    DAY,
    MINUTE,
    T0,
    ms,
)


@pytest.mark.parametrize(
    'text, unit, count',
    [
        ('5m', 'minute', 5),
        ('1M', 'month', 1),
        ('100ms', 'millisecond', 100),
        ('1d', 'day', 1),
        ('5 minutes', 'minute', 5),
        ('hour', 'hour', 1),
        ('minute15', 'minute', 15),
        ({'unit': 'week', 'count': 2}, 'week', 2),
    ],
)
def test_parse_interval(text, unit, count):
    ivl = TimeInterval.parse(text)
    assert ivl.unit == unit
    assert ivl.count == count
    assert TimeInterval.parse(ivl.code) == ivl
    assert TimeInterval.parse(ivl.key) == ivl


@pytest.mark.parametrize(
    'kwargs',
    [
        {'unit': 'fortnight'},
        {'unit': 'day', 'count': 0},
        {'unit': 'day', 'count': -3},
    ],
)
def test_invalid_interval(kwargs):
    with pytest.raises(ValueError):
        TimeInterval(**kwargs)


def test_interval_key_and_duration():
    ivl = TimeInterval('minute', 5)
    assert ivl.key == 'minute5'
    assert ivl.code == '5m'
    assert ivl.duration == 5 * MINUTE
    assert TimeInterval('year').duration > TimeInterval('month', 11).duration


# friday 2024-03-15 14:37:25.123 UTC
TS: int = ms(2024, 3, 15, 14, 37, 25) + 123


@pytest.mark.parametrize(
    'unit, count, first_day, expect',
    [
        ('millisecond', 1, 1, TS),
        ('second', 10, 1, ms(2024, 3, 15, 14, 37, 20)),
        ('minute', 15, 1, ms(2024, 3, 15, 14, 30)),
        ('minute', 7, 1, ms(2024, 3, 15, 14, 35)),
        ('hour', 1, 1, ms(2024, 3, 15, 14)),
        ('hour', 5, 1, ms(2024, 3, 15, 10)),
        ('day', 1, 1, ms(2024, 3, 15)),
        ('week', 1, 1, ms(2024, 3, 11)),
        ('week', 1, 0, ms(2024, 3, 10)),
        ('month', 1, 1, ms(2024, 3, 1)),
        ('month', 3, 1, ms(2024, 1, 1)),
        ('year', 1, 1, ms(2024, 1, 1)),
        ('year', 10, 1, ms(2020, 1, 1)),
    ],
)
def test_round_time_utc(unit, count, first_day, expect):
    assert round_time(
        TS,
        unit,
        count,
        first_day_of_week=first_day,
    ) == expect


def test_round_time_named_tz():
    tz: str = 'America/New_York'

    # 22:00 local on the 14th
    ts: int = ms(2024, 3, 15, 2)
    assert round_time(ts, 'day', tz=tz) == ms(2024, 3, 14, tz=tz)
    assert round_time(ts, 'month', tz=tz) == ms(2024, 3, 1, tz=tz)


def test_round_time_dst_fall_back():
    '''
    During the repeated 01:00 local hour rounding must not land an
    hour before the input.

    '''
    tz: str = 'America/New_York'

    # 01:30 EST, the second 01:30 of the night
    ts: int = ms(2024, 11, 3, 6, 30)
    rounded: int = round_time(ts, 'hour', tz=tz)
    assert rounded == ms(2024, 11, 3, 6)
    assert ts - rounded == 30 * MINUTE


def test_round_time_anchored_multi_day():
    first: int = T0 + 1 * DAY
    ts: int = T0 + 5 * DAY + 1000

    # 3 day cells counted from the anchor, not the calendar
    assert round_time(ts, 'day', 3, first_ts=first) == T0 + 4 * DAY


def test_add_time_calendar():
    # month end clamps (2024 is a leap year)
    assert add_time(ms(2024, 1, 31), 'month') == ms(2024, 2, 29)
    assert add_time(ms(2024, 1, 1), 'year') == ms(2025, 1, 1)
    assert add_time(T0, 'minute', 90) == T0 + 90 * MINUTE

    # wall clock is kept over the spring forward
    tz: str = 'Europe/London'
    assert add_time(
        ms(2024, 3, 30, 12, tz=tz),
        'day',
        tz=tz,
    ) == ms(2024, 3, 31, 12, tz=tz)


def test_next_boundary_restarts_at_parent():
    start: int = ms(2024, 1, 1, 20)
    five_h = TimeInterval('hour', 5)
    assert next_boundary(start, five_h) == ms(2024, 1, 2)
    assert next_boundary(ms(2024, 1, 2), five_h) == ms(2024, 1, 2, 5)


def test_date_interval_duration():
    month = TimeInterval('month')
    assert date_interval_duration(month, ms(2024, 2, 10)) == 29 * DAY
    assert date_interval_duration(month, ms(2023, 2, 10)) == 28 * DAY
    assert date_interval_duration(
        TimeInterval('minute', 5),
        T0,
    ) == 5 * MINUTE


def test_check_change():
    # crossing a month boundary is a change even at the day unit
    assert check_change(
        ms(2024, 1, 31, 23),
        ms(2024, 2, 1, 1),
        'day',
    )
    assert not check_change(
        ms(2024, 1, 5, 10),
        ms(2024, 1, 5, 10, 30),
        'hour',
    )

    # anything further apart then 1.2 units
    assert check_change(T0, T0 + 2 * DAY, 'day')


def test_next_unit():
    assert get_next_unit('minute') == 'hour'
    assert get_next_unit('day') == 'month'
    assert get_next_unit('year') is None


@pytest.mark.parametrize(
    'duration, expect',
    [
        (30 * MINUTE, '5m'),
        (5 * MINUTE, '1m'),
        (2 * DAY, '1d'),
        (200 * DAY, '1d'),
    ],
)
def test_choose_interval(duration, expect):
    intervals = [
        TimeInterval.parse(code)
        for code in ('1m', '5m', '1h', '1d')
    ]
    assert choose_interval(duration, 10, intervals).code == expect
