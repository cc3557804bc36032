'''
Easings and per-frame tweens.

'''
import pytest

from gridlock import (
    Tween,
    get_easing,
)


@pytest.mark.parametrize(
    'name',
    [
        'linear', 'quad', 'cubic', 'exp', 'sine',
        'circle', 'bounce', 'elastic',
    ],
)
@pytest.mark.parametrize('mod', ['', 'out-', 'inout-'])
def test_easing_endpoints(name, mod):
    ease = get_easing(mod + name)
    assert ease(0) == pytest.approx(0, abs=2e-3)
    assert ease(1) == pytest.approx(1, abs=2e-3)


@pytest.mark.parametrize(
    'name, t, expect',
    [
        ('linear', 0.3, 0.3),
        ('cubic', 0.5, 0.125),
        ('out-cubic', 0.5, 0.875),
        ('inout-quad', 0.25, 0.125),
        ('yoyo-linear', 0.75, 0.5),
        ('OUT-Quad', 0.5, 0.75),
    ],
)
def test_easing_values(name, t, expect):
    assert get_easing(name)(t) == pytest.approx(expect)


@pytest.mark.parametrize('name', ['wobble', 'sideways-cubic', ''])
def test_unknown_easing(name):
    with pytest.raises(ValueError):
        get_easing(name)


def test_tween():
    tween = Tween(
        key='start',
        from_=0,
        to=10,
        start=100,
        duration=50,
        easing='linear',
    )
    assert tween.value(90) == 0
    assert tween.value(125) == 5
    assert not tween.done(125)
    assert tween.value(150) == 10
    assert tween.done(150)
    assert tween.value(1e9) == 10


def test_zero_duration_tween():
    tween = Tween(key='end', from_=1, to=0.5, start=0, duration=0)
    assert tween.done(0)
    assert tween.value(0) == 0.5
