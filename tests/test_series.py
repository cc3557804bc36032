'''
Series extents, visible windows and data set switching.

'''
import numpy as np
import pytest

from gridlock import (
    Series,
    TimeInterval,
    UnknownResolution,
)
from conftest import (
    MINUTE,
    T0,
    ohlc,
)


@pytest.fixture
def bars() -> Series:
    times = T0 + np.arange(24 * 60) * MINUTE
    return Series('bars', ohlc(times), base_interval='1m')


def test_defaults(bars):
    assert bars.y_fields == ['low', 'high']
    assert bars.base_interval == TimeInterval('minute')
    assert bars.active_key == 'minute1'
    assert (bars.start_index, bars.end_index) == (0, 24 * 60)


def test_extents(bars):
    data = bars.data
    assert bars.report_extent('x') == (T0, T0 + (24 * 60 - 1) * MINUTE)
    assert bars.report_extent('y') == (data['low'].min(), data['high'].max())

    bars.set_visible(10, 20)
    assert bars.view_version == 1
    assert bars.report_extent('y', visible=True) == (
        data['low'][10:20].min(),
        data['high'][10:20].max(),
    )

    # clamped
    bars.set_visible(-5, 1e9)
    assert (bars.start_index, bars.end_index) == (0, 24 * 60)


def test_non_finite_skipped():
    arr = np.zeros(4, dtype=[('time', 'i8'), ('value', 'f8')])
    arr['time'] = T0 + np.arange(4) * MINUTE
    arr['value'] = [np.nan, 3, np.inf, -2]

    series = Series('s', arr)
    assert series.y_fields == ['value']
    assert series.report_extent('y') == (-2, 3)
    assert series.report_min_positive('y') == 3

    arr['value'] = np.nan
    series.set_data(arr)
    assert series.data_version == 1
    assert series.report_extent('y') is None
    assert series.report_min_positive('y') is None


def test_set_data_set(bars):
    bars.set_visible_from_values(T0 + 120 * MINUTE, T0 + 180 * MINUTE)
    assert bars.start_index == 119

    assert bars.set_data_set('1h')
    assert bars.active_key == 'hour1'
    assert bars.data.size == 24
    assert bars.data_version == 1

    # the same time window stays visible
    assert bars.xs[bars.start_index] <= T0 + 120 * MINUTE
    assert bars.xs[bars.end_index - 1] >= T0 + 180 * MINUTE

    # x extents always come from the native data
    assert bars.report_extent('x')[1] == T0 + (24 * 60 - 1) * MINUTE

    assert not bars.set_data_set(TimeInterval('hour'))
    assert bars.set_data_set(bars.base_interval)
    assert bars.data is bars.raw


def test_set_data_set_unknown(bars):
    with pytest.raises(UnknownResolution):
        bars.set_data_set('1s')

    plain = Series('plain', bars.raw)
    with pytest.raises(UnknownResolution):
        plain.set_data_set('1h')
