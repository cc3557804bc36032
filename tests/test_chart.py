'''
Chart registry, attachment and multi-axis sync.

'''
import logging

import numpy as np
import pytest

from gridlock import (
    AttachError,
    Chart,
    ConfigurationError,
    DateAxis,
    Series,
    SyncCycleError,
    TimeInterval,
    ValueAxis,
)
from conftest import (
    MINUTE,
    T0,
)


def line(
    id: str,
    values,
) -> Series:
    arr = np.zeros(
        len(values),
        dtype=[('time', 'i8'), ('value', 'f8')],
    )
    arr['time'] = T0 + np.arange(len(values)) * MINUTE
    arr['value'] = values
    return Series(id, arr)


@pytest.fixture
def chart() -> Chart:
    chart = Chart('sync')
    chart.add_axis(ValueAxis('y2', sync_with_axis='y1'))
    chart.add_axis(ValueAxis('y1'))
    chart.add_axis(
        DateAxis('x', base_interval=TimeInterval('minute'))
    )
    chart.add_series(line('prices', np.linspace(0, 100, 50)), 'y1', 'x')
    chart.add_series(line('volume', np.linspace(0, 40, 50)), 'y2', 'x')
    return chart


def test_update_order(chart):
    assert [axis.id for axis in chart.update_order()] == ['x', 'y1', 'y2']


def test_synced_cell_counts(chart):
    chart.update(now=0)
    y1 = chart.axes['y1']
    y2 = chart.axes['y2']

    assert (y1.scale.min, y1.scale.max, y1.scale.step) == (0, 120, 20)

    # the synced axis' cell count lines up with its target's
    target_count: float = (y1.scale.max - y1.scale.min) / y1.scale.step
    assert ValueAxis.check_sync(
        y2.scale.min,
        y2.scale.max,
        y2.scale.step,
        target_count,
    )
    assert y2.scale.min <= 0
    assert y2.scale.max >= 40


@pytest.mark.parametrize(
    'ours, target, expect',
    [
        ((0, 40, 5), (0, 120, 20), (0, 60, 10)),
        ((0, 40, 5), (0, 100, 10), (0, 50, 5)),
        ((0, 37, 5), (0, 100, 10), (0, 50, 5)),
        ((-8, 14, 2), (0, 120, 20), (-10, 20, 5)),

        # already aligned
        ((0, 60, 10), (0, 120, 20), (0, 60, 10)),
    ],
)
def test_sync_axes(ours, target, expect):
    axis = ValueAxis('y')
    assert axis.sync_axes(*ours, *target) == pytest.approx(expect)


@pytest.mark.parametrize(
    'args, synced',
    [
        ((0, 60, 10, 6), True),
        ((0, 60, 20, 6), True),
        ((0, 40, 5, 6), False),
    ],
)
def test_check_sync(args, synced):
    assert ValueAxis.check_sync(*args) is synced


def test_sync_cycles_rejected(chart):
    with pytest.raises(SyncCycleError):
        chart.set_sync('y1', 'y2')

    # unchanged
    assert chart.axes['y1'].settings.sync_with_axis is None

    with pytest.raises(SyncCycleError):
        chart.add_axis(ValueAxis('self', sync_with_axis='self'))

    # also a config error
    with pytest.raises(ConfigurationError):
        chart.set_sync('y1', 'y2')


def test_unsync(chart):
    chart.set_sync('y2', None)
    assert chart.axes['y2'].settings.sync_with_axis is None
    chart.set_sync('y1', 'y2')
    assert [axis.id for axis in chart.update_order()] == ['x', 'y2', 'y1']


def test_missing_sync_target(caplog):
    chart = Chart()
    axis = chart.add_axis(ValueAxis('y', sync_with_axis='ghost'))
    chart.add_series(line('s', [1, 2, 3]), 'y')
    chart.update(now=0)

    assert axis.scale is not None
    assert 'ghost' in caplog.text


def test_duplicate_ids(chart):
    with pytest.raises(ConfigurationError):
        chart.add_axis(ValueAxis('y1'))

    with pytest.raises(ConfigurationError):
        chart.add_series(line('prices', [1]))


def test_add_axis_logs_settings(caplog):
    with caplog.at_level(logging.DEBUG, logger='gridlock'):
        Chart().add_axis(ValueAxis('volume', grid_count=5))

    assert 'AxisSettings(' in caplog.text
    assert "'grid_count': 5" in caplog.text


def test_attach_errors(chart):
    with pytest.raises(AttachError):
        chart.attach('nope', 'y1')

    with pytest.raises(AttachError):
        chart.attach('prices', 'nope')

    # not attached
    with pytest.raises(AttachError):
        chart.detach('prices', 'y2')

    # lookups are ``KeyError``s too
    with pytest.raises(KeyError):
        chart.remove_axis('nope')

    # nothing registered on a failed add
    with pytest.raises(AttachError):
        chart.add_series(line('orphan', [1]), 'y1', 'nope')
    assert 'orphan' not in chart.series


def test_attach_detach(chart):
    assert chart.attached('prices') == {'y1', 'x'}
    chart.attach('prices', 'y2')
    assert 'prices' in chart.axes['y2'].series

    chart.detach('prices', 'y2')
    assert 'prices' not in chart.axes['y2'].series
    assert chart.attached('prices') == {'y1', 'x'}


def test_remove(chart):
    chart.update(now=0)
    chart.remove_series('volume')
    assert 'volume' not in chart.series
    assert 'volume' not in chart.axes['y2'].series

    axis = chart.remove_axis('y1')
    assert axis.id == 'y1'
    assert chart.attached('prices') == {'x'}

    # the now dangling sync is tolerated
    chart.update(now=1)
