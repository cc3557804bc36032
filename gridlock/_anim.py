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
Per-frame zoom/scale interpolation.

There are no timers or tasks here: a ``Tween`` is a plain record which
is asked for its value at some "now" (ms) each frame. Re-targeting an
animated key just replaces its tween (last write wins).

'''
from __future__ import annotations
from functools import lru_cache
from math import (
    asin,
    cos,
    pi,
    sin,
    sqrt,
)
from typing import Callable

from .types import Struct

Easing = Callable[[float], float]


def linear(t: float) -> float:
    return t


def quad(t: float) -> float:
    return t * t


def cubic(t: float) -> float:
    return t * t * t


def exp(t: float) -> float:
    return 2 ** (10 * t - 10)


def sine(t: float) -> float:
    return 1 - cos(t * pi / 2)


def circle(t: float) -> float:
    return 1 - sqrt(1 - t * t)


_b0: float = 1 / (4 / 11) / (4 / 11)


def _bounce_out(t: float) -> float:
    if t < 4 / 11:
        return _b0 * t * t
    elif t < 8 / 11:
        t -= 6 / 11
        return _b0 * t * t + 3 / 4
    elif t < 10 / 11:
        t -= 9 / 11
        return _b0 * t * t + 15 / 16
    else:
        t -= 21 / 22
        return _b0 * t * t + 63 / 64


def bounce(t: float) -> float:
    return 1 - _bounce_out(1 - t)


_period: float = 0.3 / (2 * pi)
_s: float = asin(1) * _period


def elastic(t: float) -> float:
    t -= 1
    return 2 ** (10 * t) * sin((_s - t) / _period)


def out(ease: Easing) -> Easing:
    def _out(t: float) -> float:
        return 1 - ease(1 - t)

    return _out


def in_out(ease: Easing) -> Easing:
    def _in_out(t: float) -> float:
        if t <= 0.5:
            return ease(t * 2) / 2
        return 1 - ease((1 - t) * 2) / 2

    return _in_out


def yoyo(ease: Easing) -> Easing:
    def _yoyo(t: float) -> float:
        if t < 0.5:
            return ease(t * 2)
        return ease((1 - t) * 2)

    return _yoyo


_easings: dict[str, Easing] = {
    'linear': linear,
    'quad': quad,
    'cubic': cubic,
    'exp': exp,
    'sine': sine,
    'circle': circle,
    'bounce': bounce,
    'elastic': elastic,
}
_modifiers: dict[str, Callable[[Easing], Easing]] = {
    'out': out,
    'inout': in_out,
    'yoyo': yoyo,
}


@lru_cache
def get_easing(name: str) -> Easing:
    '''
    Resolve an easing name like ``'cubic'``, ``'out-cubic'`` or
    ``'yoyo-out-sine'`` (modifiers are applied right to left).

    '''
    *mods, base = name.lower().split('-')
    try:
        ease: Easing = _easings[base]
        for mod in reversed(mods):
            ease = _modifiers[mod](ease)

    except KeyError as ke:
        raise ValueError(f'Unknown easing: {name!r}') from ke

    return ease


class Tween(Struct):
    '''
    Interpolation of a single numeric key from ``from_`` to ``to``
    starting at ``start`` (ms) over ``duration`` (ms).

    '''
    key: str
    from_: float
    to: float
    start: float
    duration: float
    easing: str = 'out-cubic'

    def progress(self, now: float) -> float:
        if self.duration <= 0:
            return 1.

        return min(max((now - self.start) / self.duration, 0.), 1.)

    def done(self, now: float) -> bool:
        return self.progress(now) >= 1

    def value(self, now: float) -> float:
        t: float = self.progress(now)
        if t >= 1:
            return self.to

        ease = get_easing(self.easing)
        return self.from_ + (self.to - self.from_) * ease(t)
