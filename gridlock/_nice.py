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
"Nice number" axis scaling.

Given a raw ``[min, max]`` and a target grid line count derive a human
readable ``(min, max, step)`` triple where ``step`` has a leading digit
in ``{1, 2, 5}`` and both bounds land on ``step`` multiples enclosing
the input range.

Everything here is a pure function of its inputs; all state lives in
the axis controllers.

'''
from __future__ import annotations
from math import (
    ceil,
    floor,
    isfinite,
    log10,
    ulp,
)
import re
import sys

from .types import Struct
from .log import get_logger

log = get_logger(__name__)

# max times a floating point sub-epsilon step is doubled
_small_step_cap: int = 2048

# (the rounded range) / step can never legitimately exceed this
# multiple of the grid count.
_max_cells_per_grid: int = 100

_float_max: float = sys.float_info.max

_dec_re = re.compile(r'(?:\.(\d+))?(?:[eE]([+-]?\d+))?$')


class ScaleState(Struct):
    '''
    An axis' full (unzoomed) scale.

    '''
    min: float
    max: float
    step: float
    step_decimal_places: int = 0
    logarithmic: bool = False

    @property
    def span(self) -> float:
        return self.max - self.min

    @property
    def cells(self) -> float:
        '''
        Number of ``step`` sized grid cells in the range.

        '''
        return self.max / self.step - self.min / self.step


class SelectionScaleState(Struct):
    '''
    The currently zoomed (visible) sub-range of an axis.

    '''
    selection_min: float
    selection_max: float
    step: float
    step_decimal_places: int = 0


def js_round(value: float) -> float:
    '''
    Half-up rounding (what the rest of the planet calls "rounding"),
    not python's round-half-to-even.

    '''
    return floor(value + 0.5)


def round_to(
    value: float,
    precision: int | None = None,
) -> float:
    if (
        precision is None
        or precision <= 0
    ):
        return js_round(value)

    d: float = 10 ** precision
    return js_round(value * d) / d


def ceil_to(
    value: float,
    precision: int | None = None,
) -> float:
    if (
        precision is None
        or precision <= 0
    ):
        return ceil(value)

    d: float = 10 ** precision
    return ceil(value * d) / d


def decimal_places(value: float) -> int:
    '''
    Count the decimal places shown in the shortest repr of ``value``
    (including exponent notation like ``1e-07``).

    '''
    match = _dec_re.search(repr(float(value)).removesuffix('.0'))
    if not match:
        return 0

    frac, exp = match.groups()
    return max(
        0,
        (len(frac) if frac else 0) - (int(exp) if exp else 0),
    )


def fix_small_step(step: float) -> float:
    '''
    Double a step which is lost to floating point error when added to
    ``1`` until it isn't.

    '''
    for _ in range(_small_step_cap):
        if 1 + step != 1:
            break
        step *= 2

    return step


def get_delta(value: float) -> float:
    '''
    A tenth of the order of magnitude of ``value``; used to widen
    zero-width ranges.

    '''
    if not value:
        return 0.9

    return 10 ** floor(log10(abs(value))) / 10


def adjust_min_max(
    min_: float,
    max_: float,
    grid_count: float,
    strict: bool = False,
    max_precision: int | None = None,

) -> tuple[float, float, float]:
    '''
    The core "nice scale" snapping routine.

    Return a ``(min, max, step)`` with the step's leading digit
    snapped to ``{1, 2, 5, 10}`` and the bounds re-derived as the
    ``step`` multiples enclosing the input. In ``strict`` mode no
    extra power-of-ten padding is added and ``max`` is floored to
    a step multiple instead of ceiled.

    May raise ``ArithmeticError`` / ``ValueError`` on inputs which
    overflow, see ``compute()`` for the guarded entrypoint.

    '''
    grid_count = js_round(max(grid_count, 1))

    initial_min: float = min_
    initial_max: float = max_

    difference: float = max_ - min_
    if difference == 0:
        difference = abs(max_)
        if difference == 0:
            return adjust_min_max(
                -0.9,
                0.9,
                grid_count,
                strict=strict,
                max_precision=max_precision,
            )

    exponent: float = log10(abs(difference))
    power: float = 10 ** floor(exponent) / 10

    if strict:
        min_ = floor(min_ / power) * power
        max_ = ceil(max_ / power) * power
    else:
        min_ = ceil(min_ / power) * power - power
        max_ = floor(max_ / power) * power + power

    # never cross zero unless the input did
    if (
        min_ < 0
        and initial_min >= 0
    ):
        min_ = 0
    if (
        max_ > 0
        and initial_max <= 0
    ):
        max_ = 0

    power = 10 ** floor(exponent) / 100

    # approximate step between two grid lines
    step: float = ceil((difference / grid_count) / power) * power
    step_power: float = 10 ** floor(log10(abs(step)))

    # snap the leading digit to 2, 5 or 10
    divisor: int = ceil(step / step_power)
    if divisor > 5:
        divisor = 10
    elif divisor > 2:
        divisor = 5

    step = ceil(step / (step_power * divisor)) * step_power * divisor

    if max_precision is not None:
        ceiled: float = ceil_to(step, max_precision)
        if step != ceiled:
            step = ceiled
            if step == 0:
                step = 1

    dec_count: int = 0
    if step_power < 1:
        dec_count = int(js_round(abs(log10(step_power)))) + 1
        step = round_to(step, dec_count)

    min_count: int = floor(min_ / step)
    min_ = round_to(step * min_count, dec_count)

    if strict:
        max_count: int = floor(max_ / step)
    else:
        max_count = ceil(max_ / step)

    if max_count == min_count:
        max_count += 1

    max_ = round_to(step * max_count, dec_count)

    if max_ < initial_max:
        max_ += step

    if min_ > initial_min:
        min_ -= step

    return min_, max_, fix_small_step(step)


def fallback_min_max(
    min_: float,
    max_: float,
    grid_count: float,

) -> tuple[float, float, float]:
    '''
    Plain symmetric widening used when the nice snapping blows up
    (float overflow at extreme magnitudes, subnormal steps).

    Bounds are clamped to the largest finite float and the step never
    drops below the bounds' ``ulp``.

    '''
    largest: float = max(abs(min_), abs(max_))
    if max_ > min_:
        delta: float = max_ / 2 - min_ / 2
    else:
        delta = get_delta(largest)

    delta = max(delta, ulp(largest))

    min_ = max(min_ - delta, -_float_max)
    max_ = min(max_ + delta, _float_max)

    # halved first so the span of ``[-max, max]`` can't overflow
    step: float = (max_ / 2 - min_ / 2) / max(grid_count, 1) * 2
    step = min(
        max(step, ulp(max(abs(min_), abs(max_)))),
        _float_max,
    )
    return min_, max_, step


def is_sane(
    min_: float,
    max_: float,
    step: float,
    grid_count: float,
) -> bool:
    return (
        isfinite(min_)
        and isfinite(max_)
        and isfinite(step)
        and max_ > min_
        and step > 0
        and (
            max_ / step - min_ / step
            <= max(grid_count, 1) * _max_cells_per_grid
        )
    )


def safe_adjust_min_max(
    min_: float,
    max_: float,
    grid_count: float,
    strict: bool = False,
    max_precision: int | None = None,

) -> tuple[float, float, float]:
    '''
    ``adjust_min_max()`` but falling back to ``fallback_min_max()``
    for any degenerate (non-finite, zero width, runaway cell count)
    result.

    '''
    try:
        out = adjust_min_max(
            min_,
            max_,
            grid_count,
            strict=strict,
            max_precision=max_precision,
        )
    except (
        ArithmeticError,
        ValueError,
    ):
        log.warning(
            f'Nice scaling overflowed for [{min_}, {max_}], widening..'
        )
        return fallback_min_max(min_, max_, grid_count)

    if not is_sane(*out, grid_count):
        log.warning(
            f'Degenerate nice scale {out} for [{min_}, {max_}], widening..'
        )
        return fallback_min_max(min_, max_, grid_count)

    return out


def log_domain_error(
    min_: float,
    max_: float,
) -> None:
    log.error(
        'Logarithmic axis can not have values <= 0\n'
        f'min: {min_}, max: {max_}\n'
        'Set `treat_zero_as` to substitute a positive value.'
    )


def compute(
    min_: float,
    max_: float,
    grid_count: float,
    strict: bool = False,
    max_precision: int | None = None,
    logarithmic: bool = False,
    treat_zero_as: float | None = None,
    min_positive: float | None = None,

) -> ScaleState:
    '''
    Compute a nice ``ScaleState`` for the raw range ``[min_, max_]``.

    In ``logarithmic`` mode the snapping runs on ``log10`` of the
    (positive) bounds and the returned step is in decades. Non-positive
    bounds use ``treat_zero_as`` when set, otherwise an error is logged
    and ``min_positive`` (or ``max_ / 1000``) is used.

    Raises ``ValueError`` for non-finite input.

    '''
    if not (
        isfinite(min_)
        and isfinite(max_)
        and isfinite(grid_count)
    ):
        raise ValueError(
            f'Non-finite scale input: [{min_}, {max_}] / {grid_count}'
        )

    if min_ > max_:
        min_, max_ = max_, min_

    if logarithmic:
        if min_ <= 0:
            if (
                treat_zero_as is not None
                and treat_zero_as > 0
            ):
                min_ = treat_zero_as
            else:
                log_domain_error(min_, max_)
                min_ = min_positive or (
                    max_ / 1000 if max_ > 0 else 1
                )

        if max_ < min_:
            max_ = min_

        lmin, lmax, step = safe_adjust_min_max(
            *_widen(log10(min_), log10(max_)),
            grid_count,
            strict=strict,
            max_precision=max_precision,
        )
        return ScaleState(
            min=_pow10(lmin),
            max=_pow10(lmax),
            step=step,
            step_decimal_places=decimal_places(step),
            logarithmic=True,
        )

    min_, max_ = _widen(min_, max_)
    out = safe_adjust_min_max(
        min_,
        max_,
        grid_count,
        strict=strict,
        max_precision=max_precision,
    )
    if not is_sane(*out, grid_count):
        log.error(
            f'No usable scale for [{min_}, {max_}], using [-1, 1]'
        )
        out = (-1., 1., 2 / max(grid_count, 1))

    min_, max_, step = out
    return ScaleState(
        min=min_,
        max=max_,
        step=step,
        step_decimal_places=decimal_places(step),
    )


def _widen(
    min_: float,
    max_: float,
) -> tuple[float, float]:
    '''
    Symmetrically widen a zero-width range by the value's order of
    magnitude (or ``0.9`` around zero).

    '''
    if min_ != max_:
        return min_, max_

    delta: float = max(get_delta(max_), ulp(max_))
    return (
        max(min_ - delta, -_float_max),
        min(max_ + delta, _float_max),
    )


def _pow10(exp: float) -> float:
    try:
        return 10 ** exp
    except OverflowError:
        return _float_max
