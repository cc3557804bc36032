import logging

import pytest

from gridlock._profile import (
    Profiler,
    enable_profiling,
)


@pytest.fixture
def profiling():
    enable_profiling()
    yield
    enable_profiling(False)


def test_disabled_by_default():
    assert Profiler(msg='noop') is Profiler._disabled


def test_profiler_logs(profiling, caplog):
    with caplog.at_level(logging.DEBUG, logger='gridlock'):
        profiler = Profiler(msg='work')
        profiler('step one')
        profiler.finish()

        # only flushed once
        profiler.finish()

    assert caplog.text.count('> work') == 1
    assert 'step one:' in caplog.text
    assert '< work:' in caplog.text


def test_profiler_threshold(caplog):
    enable_profiling(ms_threshold=1e9)
    try:
        with caplog.at_level(logging.DEBUG, logger='gridlock'):
            profiler = Profiler(msg='fast')
            profiler.finish()
    finally:
        enable_profiling(False)

    assert 'fast' not in caplog.text
