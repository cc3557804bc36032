'''
Axis settings files and packaged defaults.

'''
from pathlib import Path

import pytest

from gridlock import (
    AxisSettings,
    ConfigurationError,
    DateAxisSettings,
    TimeInterval,
    config,
)


def test_conf_dir_override(tmpconfdir):
    assert config.get_conf_dir() == tmpconfdir
    assert config.get_conf_path() == tmpconfdir / 'axes.toml'

    with pytest.raises(ConfigurationError):
        config.get_conf_path('brokers')


def test_load_missing(tmpconfdir):
    with pytest.raises(ConfigurationError):
        config.load('axes')

    conf, path = config.load('axes', touch_if_dne=True)
    assert conf == {}
    assert path.is_file()


def test_write_then_load(tmpconfdir):
    conf: dict = {
        'axis': {
            'price': {
                'grid_count': 5,
                'logarithmic': True,
            },
        },
    }
    config.write(conf, name='axes')
    loaded, path = config.load('axes')
    assert path == tmpconfdir / 'axes.toml'
    assert loaded == conf

    with pytest.raises(ValueError):
        config.write({}, name='axes')


def test_invalid_toml(tmp_path: Path):
    path = tmp_path / 'axes.toml'
    path.write_text('[axis.price\ngrid_count = ')
    with pytest.raises(ConfigurationError):
        config.load(path=path)


def test_date_defaults():
    defaults: dict = config.date_defaults()
    assert defaults['group_count'] == 500
    assert TimeInterval('hour') in defaults['group_intervals']
    assert all(
        isinstance(ivl, TimeInterval)
        for ivl in defaults['grid_intervals']
    )

    # ascending
    durations = [ivl.duration for ivl in defaults['grid_intervals']]
    assert durations == sorted(durations)

    # copies, not the cached tables
    defaults['group_count'] = 1
    assert config.date_defaults()['group_count'] == 500


def test_axis_settings():
    settings = config.axis_settings({'grid_count': 5}, max_deviation=0.2)
    assert isinstance(settings, AxisSettings)
    assert settings.grid_count == 5
    assert settings.max_deviation == 0.2
    assert not settings.logarithmic


def test_date_axis_settings():
    settings = config.axis_settings(
        {
            'base_interval': '5m',
            'group_data': True,
            'group_intervals': ['5m', '1h', '1d'],
        },
        kind='date',
    )
    assert isinstance(settings, DateAxisSettings)
    assert settings.base_interval == TimeInterval('minute', 5)
    assert settings.group_intervals == [
        TimeInterval('minute', 5),
        TimeInterval('hour'),
        TimeInterval('day'),
    ]

    # unset fields come from the packaged defaults
    assert settings.date_formats['day'] == 'MMM DD'
    assert settings.strict_min_max


@pytest.mark.parametrize(
    'section, kind',
    [
        ({'grid_count': 'lots'}, 'value'),
        ({'base_interval': '5 fortnights'}, 'date'),
        ({'group_intervals': 5}, 'date'),
    ],
)
def test_invalid_axis_settings(section, kind):
    with pytest.raises(ConfigurationError):
        config.axis_settings(section, kind=kind)


def test_load_axis_settings(tmpconfdir):
    config.write(
        {
            'axis': {
                'time': {
                    'kind': 'date',
                    'base_interval': '1d',
                    'gapless': True,
                },
                'price': {
                    'strict_min_max': True,
                    'min': 0,
                },
            },
        },
        name='axes',
    )
    time_settings = config.load_axis_settings('time')
    assert isinstance(time_settings, DateAxisSettings)
    assert time_settings.gapless
    assert time_settings.base_interval == TimeInterval('day')

    price = config.load_axis_settings('price')
    assert type(price) is AxisSettings
    assert price.min == 0

    with pytest.raises(ConfigurationError):
        config.load_axis_settings('volume')
