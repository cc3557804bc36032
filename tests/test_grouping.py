'''
Time bucket aggregation and lazily grouped resolutions.

'''
import numpy as np
import pytest

from gridlock import (
    ResolutionSet,
    TimeInterval,
    UnknownResolution,
    aggregate,
    bucket_starts,
)
from gridlock._grouping import default_rule
from conftest import (
    DAY,
    MINUTE,
    T0,
    ms,
    ohlc,
)

WEEK = TimeInterval('week')


@pytest.fixture
def week_of_days() -> np.ndarray:
    '''
    Mon through Fri of one week.

    '''
    arr = np.zeros(
        5,
        dtype=[('time', 'i8'), ('value', 'f8')],
    )
    arr['time'] = T0 + np.arange(5) * DAY
    arr['value'] = [10, 12, 9, 15, 11]
    return arr


@pytest.mark.parametrize(
    'rule, expect',
    [
        ('close', 11),
        ('open', 10),
        ('high', 15),
        ('low', 9),
        ('sum', 57),
        ('average', 11.4),
        ('extreme', 15),
    ],
)
def test_weekly_rules(week_of_days, rule, expect):
    out = aggregate(
        week_of_days,
        WEEK,
        rules={'value': rule},
    )
    assert out.size == 1
    assert out['time'][0] == T0
    assert out['value'][0] == pytest.approx(expect)
    assert out['value_count'][0] == 5


def test_week_start_day(week_of_days):
    # weeks starting sunday put all five days in the week of dec 31
    out = aggregate(
        week_of_days,
        WEEK,
        first_day_of_week=0,
    )
    assert out['time'].tolist() == [ms(2023, 12, 31)]

    # weeks starting wednesday split mon-tue from wed-fri
    out = aggregate(
        week_of_days,
        WEEK,
        rules={'value': 'sum'},
        first_day_of_week=3,
    )
    assert out['time'].tolist() == [ms(2023, 12, 27), ms(2024, 1, 3)]
    assert out['value'].tolist() == [22, 35]


def test_nan_samples_skipped(week_of_days):
    week_of_days['value'][[1, 3]] = np.nan
    out = aggregate(
        week_of_days,
        WEEK,
        rules={'value': 'average'},
    )
    assert out['value'][0] == pytest.approx(10)
    assert out['value_count'][0] == 3


def test_empty_periods_produce_no_buckets():
    arr = np.zeros(3, dtype=[('time', 'i8'), ('value', 'f8')])
    arr['time'] = [T0, T0 + 1000, T0 + 3 * DAY]
    arr['value'] = [1, 2, 3]

    out = aggregate(arr, TimeInterval('day'))
    assert out['time'].tolist() == [T0, T0 + 3 * DAY]
    assert out['value'].tolist() == [2, 3]
    assert np.all(np.diff(out['time']) > 0)


def test_ohlcv_default_rules():
    times = T0 + np.arange(120) * MINUTE
    raw = ohlc(times)
    out = aggregate(raw, TimeInterval('hour'))

    assert out.size == 2
    first = raw[:60]
    assert out['open'][0] == first['open'][0]
    assert out['close'][0] == first['close'][-1]
    assert out['high'][0] == first['high'].max()
    assert out['low'][0] == first['low'].min()
    assert out['volume'][0] == 60


def test_unsorted_input_is_sorted(week_of_days):
    shuffled = week_of_days[[3, 0, 4, 1, 2]]
    out = aggregate(shuffled, WEEK, rules={'value': 'close'})
    assert out['value'][0] == 11


def test_empty_input():
    arr = np.zeros(0, dtype=[('time', 'i8'), ('value', 'f8')])
    out = aggregate(arr, TimeInterval('day'))
    assert out.size == 0
    assert 'value_count' in out.dtype.names


def test_invalid_rule(week_of_days):
    with pytest.raises(ValueError):
        aggregate(week_of_days, WEEK, rules={'value': 'median'})


@pytest.mark.parametrize(
    'field, rule',
    [
        ('open', 'open'),
        ('high', 'high'),
        ('volume', 'sum'),
        ('bid', 'close'),
    ],
)
def test_default_rule(field, rule):
    assert default_rule(field) == rule


def test_bucket_starts_calendar_and_fixed_agree():
    '''
    The vectorized (UTC) path and the calendar walk must agree.

    '''
    times = T0 + np.arange(0, 3 * DAY, 7 * MINUTE, dtype=np.int64)
    fixed = bucket_starts(times, TimeInterval('hour', 6))
    walked = bucket_starts(
        times,
        TimeInterval('hour', 6),
        tz='Etc/GMT',
    )
    assert np.array_equal(fixed, walked)
    assert np.all(fixed <= times)
    assert np.all(times - fixed < 6 * 60 * MINUTE)


def test_bucket_starts_dst():
    tz: str = 'America/New_York'

    # hourly samples over the spring forward night
    times = ms(2024, 3, 10, tz=tz) + np.arange(24) * 60 * MINUTE
    starts = bucket_starts(times, TimeInterval('day'), tz=tz)
    assert set(starts.tolist()) == {
        ms(2024, 3, 10, tz=tz),
        ms(2024, 3, 11, tz=tz),
    }
    # 23 hours in the shortened day
    assert (starts == ms(2024, 3, 10, tz=tz)).sum() == 23


def test_resolution_set_lazy_cache():
    times = T0 + np.arange(3 * 24 * 60) * MINUTE
    raw = ohlc(times)
    rs = ResolutionSet(raw, TimeInterval('minute'))

    assert rs.native_key == 'minute1'
    assert rs.get('minute1') is raw
    assert rs.cached() == []

    hourly = rs['1h']
    assert hourly.size == 72
    assert rs.cached() == ['hour1']
    assert rs.get('hour1') is hourly

    daily = rs.get(TimeInterval('day'))
    assert daily.size == 3

    # replacing raw data drops every derived set
    rs.replace(raw[:60])
    assert rs.cached() == []
    assert rs.get('hour1').size == 1


@pytest.mark.parametrize(
    'key',
    ['second1', '30s', 'not-an-interval'],
)
def test_resolution_set_unknown(key):
    raw = ohlc(T0 + np.arange(10) * MINUTE)
    rs = ResolutionSet(raw, TimeInterval('minute'))
    with pytest.raises(UnknownResolution):
        rs.get(key)

    # also a ``KeyError``
    with pytest.raises(KeyError):
        rs[key]
