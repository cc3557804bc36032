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
Numeric (value) axis scale control.

A ``ValueAxis`` owns the full ``ScaleState`` and the zoomed
``SelectionScaleState`` of one chart axis and derives them from the
extents reported by its attached series, its settings and (optionally)
the finalized scale of another axis it is synced with.

All (re)computation happens inside ``.update()`` and is driven by an
explicit ``Dirty`` bitmask processed in a fixed order:

  extents -> scale -> grouping -> layout

'''
from __future__ import annotations
from enum import (
    Enum,
    IntFlag,
    auto,
)
from math import (
    ceil,
    floor,
    inf,
    isfinite,
    isnan,
    log10,
    nan,
)
from typing import (
    Any,
    Callable,
    Iterator,
)

from ._anim import Tween
from ._errors import ConfigurationError
from ._nice import (
    ScaleState,
    SelectionScaleState,
    decimal_places,
    get_delta,
    js_round,
    log_domain_error,
    round_to,
    safe_adjust_min_max,
)
from ._traits import (
    ExtentReporter,
    IndexMappable,
    LinearMapper,
    LogMapper,
    Role,
    fold_extents,
)
from .types import Struct
from .log import get_logger

log = get_logger(__name__)

# ``sync_axes()`` search iteration cap
_sync_cap: int = 500

# grid cell count cap per ``.grid()`` call
_grid_cap: int = 1000


class AxisState(Enum):
    UNSET = auto()
    COMPUTING = auto()
    STABLE = auto()


class Dirty(IntFlag):
    NONE = 0
    EXTENTS = auto()
    SETTINGS = auto()
    STRICT = auto()
    SELECTION = auto()
    GROUPING = auto()
    LAYOUT = auto()

    # anything requiring a full scale re-computation
    SCALE = EXTENTS | SETTINGS | STRICT


class AxisRange(
    Struct,
    frozen=True,
):
    '''
    A highlighted value (or value range) on an axis which, when
    ``affects_min_max`` is set, is folded into the axis extents.

    '''
    value: float
    end_value: float | None = None
    affects_min_max: bool = False


class GridCell(Struct):
    '''
    One grid line / label / fill cell handed to a renderer.

    '''
    value: float
    end_value: float
    position: float
    end_position: float
    index: int

    # cell size and the value cell indices count from
    step: float
    origin: float

    label: str = ''
    is_base: bool = False
    filled: bool = False


FillRule = Callable[[GridCell], bool]


def value_fill_rule(cell: GridCell) -> bool:
    '''
    Fill every other cell counting from zero.

    '''
    half: float = cell.value / cell.step / 2
    return round_to(half, 5) != js_round(half)


class AxisSettings(
    Struct,
    kw_only=True,
):
    '''
    Declarative per-axis settings; never mutated in place, use
    ``ValueAxis.set()``.

    '''
    # user bounds; with ``strict_min_max`` these are exact
    min: float | None = None
    max: float | None = None
    strict_min_max: bool = False
    strict_min_max_selection: bool = False

    # relative padding; log axes default to 0.1 / 0.2
    extra_min: float | None = None
    extra_max: float | None = None

    logarithmic: bool = False
    treat_zero_as: float | None = None
    max_precision: int | None = None
    base_value: float = 0

    # target grid line count (normally from axis length / min
    # grid distance in pixels)
    grid_count: float = 10

    sync_with_axis: str | None = None

    # ``None`` derives the factor from the data density
    max_zoom_factor: float | None = 1000
    max_deviation: float = 0.1
    min_zoom_count: int | None = None
    max_zoom_count: int | None = None

    interpolation_duration: float = 0
    easing: str = 'out-cubic'

    # fit the selection to the visible data extents
    auto_zoom: bool = True

    ranges: tuple[AxisRange, ...] = ()

    # ``GridCell -> bool``, decorative only
    fill_rule: Any = None


_flags_by_setting: dict[str, Dirty] = {
    'strict_min_max': Dirty.STRICT,
    'strict_min_max_selection': Dirty.STRICT,
    'fill_rule': Dirty.LAYOUT,
    'max_deviation': Dirty.LAYOUT,
    'min_zoom_count': Dirty.LAYOUT,
    'max_zoom_count': Dirty.LAYOUT,
    'auto_zoom': Dirty.SELECTION,
    'interpolation_duration': Dirty.NONE,
    'easing': Dirty.NONE,
}


class ValueAxis:
    '''
    A numeric scale controller.

    Series are attached by reference (never owned); the axis only ever
    calls their ``.report_extent()``. A ``sync_with_axis`` target is
    only ever read, through the scale passed to ``.update()``.

    '''
    kind: str = 'value'

    # settings which require a new mapper
    _mapper_settings: frozenset[str] = frozenset({
        'logarithmic',
        'treat_zero_as',
    })

    def __init__(
        self,
        id: str,
        role: Role = 'y',
        settings: AxisSettings | None = None,
        **kwargs,
    ) -> None:
        self.id = id
        self.role: Role = role
        self.settings: AxisSettings = self._settings_type()(**kwargs)
        if settings is not None:
            self.settings = settings.copy(kwargs)

        self.series: dict[str, ExtentReporter] = {}

        self.state = AxisState.UNSET
        self.dirty = Dirty.SCALE | Dirty.LAYOUT

        # finalized (target) scale and the selection derived from the
        # current zoom window.
        self.scale: ScaleState | None = None
        self.selection: SelectionScaleState | None = None

        # result of the last visible-data selection fit; read by
        # axes synced to us.
        self.selection_final: SelectionScaleState | None = None

        # current (possibly mid animation) values
        self._values: dict[str, float] = {
            'min': nan,
            'max': nan,
            'start': 0.,
            'end': 1.,
        }
        self._tweens: dict[str, Tween] = {}
        self._now: float = 0.

        self._min_real: float | None = None
        self._max_real: float | None = None
        self._min_real_log: float | None = None

        # the non-positive log value error is logged once per config
        self._log_domain_warned: bool = False
        self._delta_min_max: float = 1
        self._max_zoom_factor: float = self.settings.max_zoom_factor or 1000

        # series which have not yet reported for the current pass
        self._pending: set[str] = set()

        # last seen ``(data_version, view_version)`` per series
        self._seen: dict[str, tuple[int, int]] = {}

        # emitted events not yet drained by the owner
        self._events: list[Struct] = []
        self._subscribers: list[Callable[[Struct], None]] = []

        self.mapper: IndexMappable = self._make_mapper()

    def __repr__(self) -> str:
        return (
            f'{type(self).__name__}({self.id!r}, role={self.role!r}, '
            f'state={self.state.name})'
        )

    def _settings_type(self) -> type[AxisSettings]:
        return AxisSettings

    def _make_mapper(self) -> IndexMappable:
        if self.settings.logarithmic:
            return LogMapper(self.settings.treat_zero_as)

        return LinearMapper()

    # settings
    # --------
    def _flags_for(
        self,
        key: str,
    ) -> Dirty:
        return _flags_by_setting.get(key, Dirty.SETTINGS)

    def set(
        self,
        **kwargs,
    ) -> Dirty:
        '''
        Update settings, raising the dirty flags for whatever changed.

        '''
        try:
            new: AxisSettings = self.settings.copy(kwargs)
        except (
            TypeError,
            ValueError,
        ) as err:
            raise ConfigurationError(
                f'Invalid setting for {self}: {err}'
            ) from err

        diff = self.settings - new
        flags = Dirty.NONE
        for key in diff.keys():
            flags |= self._flags_for(key)

        self.settings = new
        if self._mapper_settings & diff.keys():
            self.mapper = self._make_mapper()
            self._log_domain_warned = False

        if diff:
            log.debug(f'{self.id} settings changed:\n{diff}')

        self.dirty |= flags
        return flags

    # series attachment
    # -----------------
    def attach(
        self,
        series: ExtentReporter,
    ) -> None:
        self.series[series.id] = series
        self.dirty |= Dirty.EXTENTS

    def detach(
        self,
        series_id: str,
    ) -> ExtentReporter | None:
        series = self.series.pop(series_id, None)
        self._seen.pop(series_id, None)
        self._pending.discard(series_id)
        if series is not None:
            self.dirty |= Dirty.EXTENTS

        return series

    def begin_pass(self) -> None:
        '''
        Start an update pass: every attached series must ``.report()``
        before the scale is (re)computed.

        '''
        self._pending = set(self.series)

    def report(
        self,
        series_id: str,
    ) -> None:
        self._pending.discard(series_id)

    @property
    def ready(self) -> bool:
        return not self._pending

    def _check_series(self) -> None:
        '''
        Raise flags for any series whose data or visible window
        changed since last seen.

        '''
        for sid, series in self.series.items():
            versions = (
                getattr(series, 'data_version', 0),
                getattr(series, 'view_version', 0),
            )
            last = self._seen.get(sid)
            if last == versions:
                continue

            if (
                last is None
                or last[0] != versions[0]
            ):
                self.dirty |= Dirty.EXTENTS

            self.dirty |= Dirty.SELECTION
            self._seen[sid] = versions

    # animated values
    # ---------------
    @property
    def min(self) -> float:
        return self._values['min']

    @property
    def max(self) -> float:
        return self._values['max']

    @property
    def start(self) -> float:
        return self._values['start']

    @property
    def end(self) -> float:
        return self._values['end']

    def target(
        self,
        key: str,
    ) -> float:
        '''
        Final value of a (possibly animating) key.

        '''
        tween = self._tweens.get(key)
        if tween is not None:
            return tween.to

        return self._values[key]

    def animating(self) -> bool:
        return bool(self._tweens)

    def _animate(
        self,
        key: str,
        to: float,
        duration: float | None = None,
    ) -> None:
        if duration is None:
            duration = self.settings.interpolation_duration

        current: float = self._values[key]
        if (
            duration <= 0
            or isnan(current)
        ):
            self._tweens.pop(key, None)
            self._values[key] = to
            self.dirty |= Dirty.LAYOUT
            return

        # last write wins
        self._tweens[key] = Tween(
            key=key,
            from_=current,
            to=to,
            start=self._now,
            duration=duration,
            easing=self.settings.easing,
        )

    def _step_tweens(
        self,
        now: float,
    ) -> None:
        self._now = now
        for key, tween in list(self._tweens.items()):
            self._values[key] = tween.value(now)
            if tween.done(now):
                del self._tweens[key]

            self.dirty |= Dirty.LAYOUT

    # scale computation
    # -----------------
    def _extras(self) -> tuple[float, float]:
        s = self.settings
        extra_min: float = s.extra_min or 0
        extra_max: float = s.extra_max or 0
        if s.logarithmic:
            if s.extra_min is None:
                extra_min = 0.1
            if s.extra_max is None:
                extra_max = 0.2

        return extra_min, extra_max

    def _adjust(
        self,
        min_: float,
        max_: float,
        strict: bool = False,
    ) -> tuple[float, float, float]:
        return safe_adjust_min_max(
            min_,
            max_,
            self.settings.grid_count,
            strict=strict,
            max_precision=self.settings.max_precision,
        )

    def _fix_min(self, min_: float) -> float:
        return min_

    def _fix_max(self, max_: float) -> float:
        return max_

    def _fix_zoom_factor(self) -> None:
        pass

    def _fold_ranges(
        self,
        mn: float,
        mx: float,
    ) -> tuple[float, float]:
        for rng in self.settings.ranges:
            if not rng.affects_min_max:
                continue

            for value in (rng.value, rng.end_value):
                if value is not None:
                    mn = min(mn, value)
                    mx = max(mx, value)

        return mn, mx

    def _min_positive(self) -> float | None:
        found: list[float] = []
        for series in self.series.values():
            if series.ignore_min_max:
                continue

            report = getattr(series, 'report_min_positive', None)
            if report is None:
                continue

            value = report(self.role)
            if value is not None:
                found.append(value)

        return min(found) if found else None

    def _round_float_error(
        self,
        mn: float,
        mx: float,
    ) -> tuple[float, float]:
        if mx - mn > 0:
            dec_count = int(js_round(abs(log10(mx - mn)))) + 5
            mn = round_to(mn, dec_count)
            mx = round_to(mx, dec_count)

        return mn, mx

    def get_delta(
        self,
        value: float,
    ) -> float:
        self._delta_min_max = get_delta(value)
        return self._delta_min_max

    def get_global_extent(
        self,
        sync: ScaleState | None = None,
    ) -> ScaleState | None:
        '''
        Fold all attached series extents (and any ``affects_min_max``
        ranges) and derive the full nice scale.

        Returns ``None`` (and leaves the axis ``UNSET``) when nothing
        finite was found.

        '''
        s = self.settings
        extra_min, extra_max = self._extras()

        folded = fold_extents(self.series.values(), self.role)
        if folded is None:
            mn, mx, min_diff = inf, -inf, inf
        else:
            mn, mx, min_diff = folded

        mn, mx = self._fold_ranges(mn, mx)

        if s.logarithmic:
            if (
                s.treat_zero_as is not None
                and mn <= 0
            ):
                mn = s.treat_zero_as

            if mn <= 0:
                if not self._log_domain_warned:
                    log_domain_error(mn, mx)
                    self._log_domain_warned = True

                mn = self._min_positive() or (
                    mx / 1000 if mx > 0 else 1
                )

        if (
            mn == 0
            and mx == 0
        ):
            mn, mx = -0.9, 0.9

        if s.min is not None:
            mn = s.min
        if s.max is not None:
            mx = s.max

        # nothing found and no bounds defined
        if (
            mn == inf
            or mx == -inf
        ):
            self.scale = None
            self.state = AxisState.UNSET
            return None

        if mn > mx:
            mn, mx = mx, mn

        initial_min: float = mn
        initial_max: float = mx
        self._min_real_log = mn

        mn = self._fix_min(mn)
        mx = self._fix_max(mx)

        # eg. a date axis with a single date and .5 locations
        if mx - mn <= 1e-15:
            if mx - mn != 0:
                self._delta_min_max = (mx - mn) / 2
            else:
                self.get_delta(mx)

            mn -= self._delta_min_max
            mx += self._delta_min_max

        mn -= (mx - mn) * extra_min
        mx += (mx - mn) * extra_max

        if s.logarithmic:
            if (
                mn < 0
                and initial_min >= 0
            ):
                mn = 0
            if (
                mx > 0
                and initial_max <= 0
            ):
                mx = 0

        self._min_real = mn
        self._max_real = mx

        strict_min_max: bool = (
            s.strict_min_max
            or s.strict_min_max_selection
        )
        strict: bool = (
            strict_min_max
            or s.max is not None
        )

        mn, mx, step = self._adjust(mn, mx, strict)
        # second pass always strict
        mn, mx, step = self._adjust(mn, mx, True)

        if strict_min_max:
            mn = s.min if s.min is not None else self._min_real
            mx = s.max if s.max is not None else self._max_real

            if mx - mn <= 1e-8:
                mn -= self._delta_min_max
                mx += self._delta_min_max

            delta: float = mx - mn
            mn -= delta * extra_min
            mx += delta * extra_max

        if min_diff == inf:
            min_diff = mx - mn

        mn, mx = self._round_float_error(mn, mx)

        if sync is not None:
            mn, mx, step = self.sync_axes(
                mn,
                mx,
                step,
                sync.min,
                sync.max,
                sync.step,
            )

        if min_diff > 0:
            self._max_zoom_factor = max(
                1,
                ceil((mx - mn) / min_diff * (s.max_zoom_factor or 100)),
            )
        self._fix_zoom_factor()

        if s.logarithmic:
            mn = self._min_real
            mx = self._max_real
            if mn <= 0:
                mn = initial_min * (1 - min(extra_min, 0.99))

        scale = ScaleState(
            min=mn,
            max=mx,
            step=step,
            step_decimal_places=decimal_places(step),
            logarithmic=s.logarithmic,
        )
        prev: ScaleState | None = self.scale
        self.scale = scale
        self.state = AxisState.STABLE

        if (
            prev is None
            or prev.min != mn
            or prev.max != mx
        ):
            log.debug(f'{self.id} scale -> [{mn}, {mx}] / {step}')
            self._animate('min', mn)
            self._animate('max', mx)

        return scale

    def _fold_selection(self) -> tuple[float, float]:
        '''
        Fold the visible extents of all series; starts inverted at
        ``(scale.max, scale.min)``.

        '''
        scale = self.scale
        mn, mx = scale.max, scale.min
        folded = fold_extents(
            self.series.values(),
            self.role,
            visible=True,
        )
        if folded is not None:
            mn = min(mn, folded[0])
            mx = max(mx, folded[1])

        mn, mx = self._fold_ranges(mn, mx)
        if mn > mx:
            mn, mx = mx, mn

        return mn, mx

    def get_selection_extent(
        self,
        sync: SelectionScaleState | None = None,
    ) -> SelectionScaleState | None:
        '''
        Fit the selection to the extents of the *visible* data and
        zoom to it.

        '''
        scale = self.scale
        if scale is None:
            return None

        s = self.settings
        mn, mx = scale.min, scale.max
        extra_min, extra_max = self._extras()
        strict_min_max: bool = s.strict_min_max

        sel_min, sel_max = self._fold_selection()

        if s.min is not None:
            sel_min = s.min if strict_min_max else mn
        elif (
            strict_min_max
            and self._min_real is not None
        ):
            sel_min = self._min_real

        if s.max is not None:
            sel_max = s.max if strict_min_max else mx
        elif (
            strict_min_max
            and self._max_real is not None
        ):
            sel_max = self._max_real

        if sel_min == sel_max:
            smin: float = sel_min
            sel_min -= self._delta_min_max
            sel_max += self._delta_min_max

            if sel_min < mn:
                d: float = smin - mn
                if d == 0:
                    d = self._delta_min_max

                sel_min = smin - d
                sel_max = smin + d
                strict_min_max = True

            sel_min, sel_max, _ = self._adjust(
                sel_min,
                sel_max,
                strict_min_max,
            )

        sel_min_real: float = sel_min
        sel_max_real: float = sel_max

        delta: float = sel_max - sel_min
        sel_min -= delta * extra_min
        sel_max += delta * extra_max

        sel_min, sel_max, step = self._adjust(sel_min, sel_max)
        sel_min = min(max(sel_min, mn), mx)
        sel_max = min(max(sel_max, mn), mx)

        # second pass always strict
        amin, amax, step = self._adjust(sel_min, sel_max, True)
        if not strict_min_max:
            sel_min, sel_max = amin, amax

        if sync is not None:
            smn, smx, step = self.sync_axes(
                sel_min,
                sel_max,
                step,
                sync.selection_min,
                sync.selection_max,
                sync.step,
            )
            sel_min = max(smn, mn)
            sel_max = min(smx, mx)

        if strict_min_max:
            if s.min is not None:
                sel_min = max(sel_min, s.min)
            if s.max is not None:
                sel_max = min(sel_max, s.max)

        if s.strict_min_max_selection:
            span: float = sel_max_real - sel_min_real
            sel_min = sel_min_real - span * extra_min
            sel_max = sel_max_real + span * extra_max

        if strict_min_max:
            sel_min = s.min if s.min is not None else sel_min_real
            sel_max = s.max if s.max is not None else sel_max_real

            if sel_max - sel_min <= 1e-8:
                sel_min -= self._delta_min_max
                sel_max += self._delta_min_max

            span = sel_max - sel_min
            sel_min -= span * extra_min
            sel_max += span * extra_max

        if s.logarithmic:
            if sel_min <= 0:
                sel_min = sel_min_real * (1 - min(extra_min, 0.99))

            sel_min = max(sel_min, mn)
            sel_max = min(sel_max, mx)

        precision: int = min(
            20,
            ceil(log10(self._max_zoom_factor + 1)) + 2,
        )
        start: float = round_to(self.value_to_final_position(sel_min), precision)
        end: float = round_to(self.value_to_final_position(sel_max), precision)

        self.selection_final = SelectionScaleState(
            selection_min=sel_min,
            selection_max=sel_max,
            step=step,
            step_decimal_places=decimal_places(step),
        )
        self.zoom(start, end)
        return self.selection_final

    def handle_range_change(self) -> SelectionScaleState | None:
        '''
        Derive the visible ``SelectionScaleState`` from the current
        ``start``/``end`` zoom positions.

        '''
        if self.scale is None:
            self.selection = None
            return None

        sel_min: float = self.position_to_value(self.start)
        sel_max: float = self.position_to_value(self.end)
        if not (
            isfinite(sel_min)
            and isfinite(sel_max)
        ):
            return self.selection

        _, _, step = self._adjust(sel_min, sel_max, True)
        dp: int = decimal_places(step)

        sel_min = round_to(sel_min, dp)
        sel_max = round_to(sel_max, dp)
        sel_min, sel_max, step = self._adjust(sel_min, sel_max, True)

        # keep inside the domain unless zoomed past the edges
        if self.start >= 0:
            sel_min = max(sel_min, self.min)
        if self.end <= 1:
            sel_max = min(sel_max, self.max)

        self.selection = SelectionScaleState(
            selection_min=sel_min,
            selection_max=sel_max,
            step=step,
            step_decimal_places=decimal_places(step),
        )
        return self.selection

    # axis sync
    # ---------
    @staticmethod
    def check_sync(
        min_: float,
        max_: float,
        step: float,
        count: float,
    ) -> bool:
        '''
        Predicate for whether our cell count is a whole multiple or
        divisor of the target's ``count``.

        '''
        current: float = (max_ - min_) / step
        for i in range(1, ceil(count)):
            if (
                round_to(current / i, 1) == count
                or current * i == count
            ):
                return True

        return False

    def sync_axes(
        self,
        min_: float,
        max_: float,
        step: float,
        sync_min: float,
        sync_max: float,
        sync_step: float,
    ) -> tuple[float, float, float]:
        '''
        Search outward (alternately growing ``max`` twice then ``min``
        once) for a range whose cell count lines up with the target
        axis' count.

        Gives up after ``_sync_cap`` candidates returning the last one.

        '''
        if not (
            sync_step
            and step
        ):
            return min_, max_, step

        count: float = js_round((sync_max - sync_min) / sync_step)
        diff: float = (max_ - min_) * 0.01
        omin, omax, ostep = min_, max_, step

        for c in range(1, _sync_cap + 2):
            if self.check_sync(omin, omax, ostep, count):
                return omin, omax, ostep

            if c > _sync_cap:
                log.warning(
                    f'{self.id} sync did not converge after {_sync_cap} '
                    f'tries, using [{omin}, {omax}] / {ostep}'
                )
                break

            if c % 3 == 0:
                omin = min_ - diff * c
                if (
                    min_ >= 0
                    and omin < 0
                ):
                    omin = 0
            else:
                omax = max_ + diff * c

            omin, omax, ostep = self._adjust(omin, omax, True)

        return omin, omax, ostep

    # mapping
    # -------
    def value_to_position(
        self,
        value: float,
    ) -> float:
        return self.mapper.value_to_position(value, self.min, self.max)

    def position_to_value(
        self,
        position: float,
    ) -> float:
        return self.mapper.position_to_value(position, self.min, self.max)

    def value_to_final_position(
        self,
        value: float,
    ) -> float:
        '''
        Position of ``value`` w.r.t. the final (non-animated) scale.

        '''
        if self.scale is None:
            return nan

        return self.mapper.value_to_position(
            value,
            self.scale.min,
            self.scale.max,
        )

    def base_value(self) -> float:
        '''
        The configured ``base_value`` clamped into the scale.

        '''
        lo: float = -inf
        hi: float = inf
        if self.scale is not None:
            lo, hi = self.scale.min, self.scale.max
        if self.selection is not None:
            lo = min(lo, self.selection.selection_min)
            hi = max(hi, self.selection.selection_max)

        return min(max(self.settings.base_value, lo), hi)

    def base_position(self) -> float:
        return self.value_to_position(self.base_value())

    def cell_width_position(self) -> float:
        '''
        Relative position distance between two grid lines.

        '''
        sel = self.selection
        if sel is None:
            return 0.05

        return sel.step / (sel.selection_max - sel.selection_min)

    @property
    def max_zoom_factor(self) -> float:
        return self._max_zoom_factor

    # zooming
    # -------
    def zoom(
        self,
        start: float,
        end: float,
        duration: float | None = None,
    ) -> bool:
        '''
        Zoom to the relative ``[start, end]`` window, constrained by
        ``max_deviation`` (how far past the domain edges) and the max
        zoom factor.

        Returns whether a (new) zoom target was set.

        '''
        s = self.settings
        cur_start: float = self.start
        cur_end: float = self.end

        if (
            self.target('start') == start
            and self.target('end') == end
        ):
            return False

        max_deviation: float = s.max_deviation * min(1, end - start)
        start = max(start, -max_deviation)
        end = min(end, 1 + max_deviation)

        if start > end:
            start, end = end, start

        priority: str = 'end'
        if (
            end == 1
            and start != 0
        ):
            priority = 'start' if start < cur_start else 'end'

        if (
            start == 0
            and end != 1
        ):
            priority = 'end' if end > cur_end else 'start'

        max_zoom: float = self._max_zoom_factor
        if s.min_zoom_count:
            max_zoom = max_zoom / s.min_zoom_count

        min_zoom: float = 1
        if s.max_zoom_count:
            min_zoom = max_zoom / s.max_zoom_count

        if end - start <= 0:
            end = start + 1 / max_zoom

        if priority == 'start':
            if (
                s.max_zoom_count
                and 1 / (end - start) < min_zoom
            ):
                end = start + 1 / min_zoom

            if 1 / (end - start) > max_zoom:
                end = start + 1 / max_zoom

            if (
                end > 1
                and end - start < 1 / max_zoom
            ):
                start = end - 1 / max_zoom

        else:
            if (
                s.max_zoom_count
                and 1 / (end - start) < min_zoom
            ):
                start = end - 1 / min_zoom

            if 1 / (end - start) > max_zoom:
                start = end - 1 / max_zoom

            if (
                start < 0
                and end - start < 1 / max_zoom
            ):
                end = start + 1 / max_zoom

        if 1 / (end - start) > max_zoom:
            end = start + 1 / max_zoom

        if 1 / (end - start) > max_zoom:
            start = end - 1 / max_zoom

        if (
            self.target('start') == start
            and self.target('end') == end
        ):
            return False

        self._animate('start', start, duration)
        self._animate('end', end, duration)
        self.dirty |= Dirty.LAYOUT
        return True

    def zoom_to_values(
        self,
        start: float,
        end: float,
        duration: float | None = None,
    ) -> bool:
        if self.scale is None:
            return False

        return self.zoom(
            self.value_to_final_position(start),
            self.value_to_final_position(end),
            duration,
        )

    # events
    # ------
    def subscribe(
        self,
        handler: Callable[[Struct], None],
    ) -> None:
        self._subscribers.append(handler)

    def _emit(
        self,
        event: Struct,
    ) -> None:
        self._events.append(event)
        for handler in self._subscribers:
            handler(event)

    def drain_events(self) -> list[Struct]:
        events, self._events = self._events, []
        return events

    # update pass
    # -----------
    def _check_span(self) -> None:
        pass

    def _update_grouping(self) -> None:
        pass

    def _update_layout(self) -> None:
        self.handle_range_change()

    def update(
        self,
        now: float = 0.,
        target: ValueAxis | None = None,
    ) -> bool:
        '''
        Run one update pass at time ``now`` (ms) in the fixed
        extents -> scale -> grouping -> layout order.

        ``target`` is the (already updated) ``sync_with_axis`` axis.
        Returns ``False`` if deferred because not every attached
        series has reported yet.

        '''
        self._check_series()
        self._step_tweens(now)

        if self.dirty & Dirty.SCALE:
            if self._pending:
                log.debug(
                    f'{self.id} deferring scale, waiting on {self._pending}'
                )
                return False

            self.state = AxisState.COMPUTING
            self.get_global_extent(
                sync=target.scale if target else None,
            )
            self.dirty &= ~Dirty.SCALE
            self.dirty |= Dirty.SELECTION | Dirty.LAYOUT

        if self.dirty & Dirty.SELECTION:
            if (
                self.scale is not None
                and self.settings.auto_zoom
                and self.role == 'y'
            ):
                sync: SelectionScaleState | None = None
                if target is not None:
                    sync = target.selection_final or target.selection

                self.get_selection_extent(sync=sync)

            self.dirty &= ~Dirty.SELECTION

        self._check_span()
        if self.dirty & Dirty.GROUPING:
            self._update_grouping()
            self.dirty &= ~Dirty.GROUPING

        if self.dirty & Dirty.LAYOUT:
            self._update_layout()
            self.dirty &= ~Dirty.LAYOUT

        return True

    # grid
    # ----
    def _iter_values(self) -> Iterator[tuple[float, float]]:
        sel = self.selection
        step: float = sel.step
        dp: int = sel.step_decimal_places

        if self.settings.logarithmic:
            lo: int = floor(log10(max(sel.selection_min, 1e-300)))
            hi: int = ceil(log10(max(sel.selection_max, 1e-300)))
            # thin out to about `grid_count` decades
            decade: int = max(1, ceil((hi - lo) / self.settings.grid_count))
            for k in range(lo, hi + 1, decade):
                yield 10. ** k, 10. ** (k + decade)
            return

        for i in range(_grid_cap):
            value: float = round_to(sel.selection_min + i * step, dp)
            if value > sel.selection_max:
                break

            yield value, round_to(value + step, dp)

    def grid(self) -> list[GridCell]:
        '''
        Grid cells over the current selection.

        '''
        sel = self.selection
        if (
            sel is None
            or self.scale is None
            or not sel.step > 0
        ):
            return []

        fill_rule: FillRule = self.settings.fill_rule or value_fill_rule
        base: float = self.base_value()
        cells: list[GridCell] = []
        for i, (value, end) in enumerate(self._iter_values()):
            places: int = sel.step_decimal_places
            if self.settings.logarithmic:
                places = decimal_places(value)

            cell = GridCell(
                value=value,
                end_value=end,
                position=self.value_to_position(value),
                end_position=self.value_to_position(end),
                index=i,
                step=sel.step,
                origin=self.scale.min,
                label=f'{value:.{places}f}',
                is_base=value == base,
            )
            cell.filled = bool(fill_rule(cell))
            cells.append(cell)

        return cells
