'''
"Nice" scale snapping.

'''
from math import (
    inf,
    isfinite,
    nan,
)

import sys

import pytest

from gridlock._nice import (
    ScaleState,
    adjust_min_max,
    compute,
    decimal_places,
    js_round,
    round_to,
    safe_adjust_min_max,
)


@pytest.mark.parametrize(
    'args, expect',
    [
        ((0.3, 97.2, 5), (0, 100, 20)),
        ((0, 100, 10), (0, 110, 10)),
        ((0, 100, 10, True), (0, 100, 10)),
        ((-7, 13, 10), (-8, 14, 2)),
        ((12, 87, 10), (10, 90, 10)),
        ((3, 47, 8), (0, 50, 10)),
        ((-250, -20, 5), (-300, 0, 50)),
        ((1, 1e6, 10), (0, 1_100_000, 100_000)),
        ((0.001, 0.0095, 5), (0, 0.01, 0.002)),
        ((5, 5, 10), (4.5, 5.5, 0.5)),
        ((0, 0, 10), (-1, 1, 0.2)),
        ((0, 120, 10, True), (0, 120, 20)),
    ],
)
def test_adjust_min_max(args, expect):
    assert adjust_min_max(*args) == pytest.approx(expect)


def test_adjust_never_crosses_zero():
    mn, mx, step = adjust_min_max(0.5, 9.5, 10)
    assert mn == 0
    mn, mx, step = adjust_min_max(-9.5, -0.5, 10)
    assert mx == 0


@pytest.mark.parametrize(
    'min_, max_, grid_count, strict',
    [
        (0.3, 97.2, 5, False),
        (-1234.5, 0.002, 7, False),
        (1e-9, 3e-9, 10, False),
        (17, 18, 3, True),
        (1e12, 1.0001e12, 10, False),
        (1e15, 4.2e17, 10, False),

        # float extremes: overflowing spans and subnormal steps
        (-1e308, 1e308, 10, False),
        (-1e308, 1e308, 10, True),
        (5e-324, 1e-323, 10, False),
        (1.7e308, 1.79e308, 10, False),
    ],
)
def test_compute_properties(min_, max_, grid_count, strict):
    '''
    Containment, non-degeneracy and (near) integral cell counts.

    '''
    state = compute(min_, max_, grid_count, strict=strict)
    assert isfinite(state.min)
    assert isfinite(state.max)
    assert isfinite(state.step)
    assert state.min < state.max
    assert state.step > 0
    if not strict:
        assert state.min <= min_
        assert state.max >= max_

    cells: float = state.cells
    assert cells == pytest.approx(round(cells), abs=1e-6)

    # deterministic
    assert compute(min_, max_, grid_count, strict=strict) == state


def test_compute_large_magnitude():
    state = compute(1e15, 4.2e17, 10)
    assert (state.min, state.max, state.step) == (0, 4.5e17, 5e16)
    assert state.cells == 9

    # the fallback widening keeps the full float range
    state = compute(-1e308, 1e308, 10)
    assert state.min == -sys.float_info.max
    assert state.max == sys.float_info.max
    assert state.cells == pytest.approx(10)


@pytest.mark.parametrize(
    'max_, max_precision, expect',
    [
        (0.001, None, (0, 0.0012, 0.0002)),
        (0.001, 2, (0, 0.01, 0.01)),
        # a step ceiled to zero decimals is at least 1
        (0.001, 0, (0, 1, 1)),
        (0.0123, 3, (0, 0.014, 0.002)),
        (1.3, 1, (0, 1.4, 0.2)),
    ],
)
def test_compute_max_precision(max_, max_precision, expect):
    state = compute(0, max_, 10, max_precision=max_precision)
    assert (state.min, state.max, state.step) == pytest.approx(expect)


def test_compute_zero_width():
    state = compute(5, 5, 10)
    assert state.min < 5 < state.max

    state = compute(0, 0, 10)
    assert (state.min, state.max) == pytest.approx((-1, 1))


@pytest.mark.parametrize('bad', [nan, inf, -inf])
def test_compute_rejects_non_finite(bad):
    with pytest.raises(ValueError):
        compute(bad, 10, 5)
    with pytest.raises(ValueError):
        compute(0, bad, 5)


def test_compute_swapped_bounds():
    assert compute(97.2, 0.3, 5) == compute(0.3, 97.2, 5)


def test_compute_log():
    state = compute(1, 1000, 3, logarithmic=True)
    assert state.logarithmic
    assert state.min == 1
    assert state.max == 10_000
    assert state.step == 1  # decades


def test_compute_log_treat_zero_as():
    state = compute(0, 100, 3, logarithmic=True, treat_zero_as=0.1)
    assert state.min == pytest.approx(0.01)
    assert state.max == pytest.approx(1000)


def test_compute_log_non_positive_fallback(caplog):
    state = compute(-5, 1000, 3, logarithmic=True, min_positive=10)
    assert state.min > 0
    assert state.max >= 1000
    assert 'Logarithmic axis' in caplog.text


def test_safe_adjust_falls_back(monkeypatch):
    from gridlock import _nice

    def blowup(*args, **kwargs):
        raise OverflowError

    monkeypatch.setattr(_nice, 'adjust_min_max', blowup)
    assert safe_adjust_min_max(0, 10, 10) == (-5, 15, 2)

    # degenerate (zero step) results also fall back
    monkeypatch.setattr(_nice, 'adjust_min_max', lambda *a, **kw: (0, 10, 0))
    assert safe_adjust_min_max(0, 10, 10) == (-5, 15, 2)


@pytest.mark.parametrize(
    'value, places',
    [
        (0.25, 2),
        (100.0, 0),
        (0.5, 1),
        (1e-07, 7),
        (2.5e-05, 6),
        (20, 0),
    ],
)
def test_decimal_places(value, places):
    assert decimal_places(value) == places


def test_half_up_rounding():
    assert js_round(2.5) == 3
    assert js_round(-0.5) == 0
    assert js_round(-1.5) == -1
    assert round_to(1.005, 2) == pytest.approx(1.0, abs=0.011)
    assert round_to(0.125, 2) == 0.13


def test_scale_state_helpers():
    state = ScaleState(min=0, max=100, step=20)
    assert state.span == 100
    assert state.cells == 5
    assert state.to_dict()['step'] == 20
