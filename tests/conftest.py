import logging
from pathlib import Path

import numpy as np
import pendulum
import pytest

from gridlock import config
from gridlock.log import get_console_log


def pytest_addoption(parser):
    parser.addoption("--ll", action="store", dest='loglevel',
                     default=None, help="logging level to set when testing")
    parser.addoption("--confdir", default=None,
                     help="Use an alternate config dir")


@pytest.fixture(scope='session')
def loglevel(request) -> str:
    return request.config.option.loglevel


@pytest.fixture()
def log(
    request: pytest.FixtureRequest,
    loglevel: str,
) -> logging.Logger:
    '''
    Deliver a per-test-named ``gridlock.log`` instance.

    '''
    return get_console_log(
        level=loglevel,
        name=request.node.name,
    )


@pytest.fixture
def tmpconfdir(
    tmp_path: Path,
) -> Path:
    '''
    Point the config dir at a per-test tmp dir and restore the
    original on teardown.

    '''
    orig: Path = config.get_conf_dir()
    tmpconfdir: Path = tmp_path / '_testing'
    tmpconfdir.mkdir()
    config._override_config_dir(tmpconfdir)
    yield tmpconfdir
    config._override_config_dir(orig)


def ms(*args, tz: str = 'UTC') -> int:
    '''
    Epoch-ms for a ``pendulum.datetime()`` call.

    '''
    return round(pendulum.datetime(*args, tz=tz).timestamp() * 1000)


# 2024-01-01 is a monday
T0: int = ms(2024, 1, 1)
DAY: int = 86_400_000
MINUTE: int = 60_000


def ohlc(
    times: np.ndarray,
    closes: np.ndarray | None = None,
) -> np.ndarray:
    '''
    A synthetic OHLCV struct array at ``times``.

    '''
    arr = np.zeros(
        len(times),
        dtype=[
            ('time', 'i8'),
            ('open', 'f8'),
            ('high', 'f8'),
            ('low', 'f8'),
            ('close', 'f8'),
            ('volume', 'f8'),
        ],
    )
    if closes is None:
        closes = 100 + np.sin(np.arange(len(times)) / 50) * 10

    arr['time'] = times
    arr['close'] = closes
    arr['open'] = np.roll(closes, 1)
    arr['open'][0] = closes[0]
    arr['high'] = np.maximum(arr['open'], arr['close']) + 1
    arr['low'] = np.minimum(arr['open'], arr['close']) - 1
    arr['volume'] = 1
    return arr
