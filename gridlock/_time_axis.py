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
Date-time axis scale control with automatic data grouping.

A ``DateAxis`` is a ``ValueAxis`` over epoch-ms time stamps which
never "nice" rounds its bounds, aligns them to its (active) interval
instead and, when ``group_data`` is set, picks the resolution of its
series' data sets from the visible time span.

'''
from __future__ import annotations
from datetime import datetime
from functools import lru_cache
from math import (
    ceil,
    isclose,
)

from msgspec import field
import numpy as np
from pendulum import DateTime

from ._axis import (
    Dirty,
    GridCell,
    FillRule,
    AxisSettings,
    ValueAxis,
    _grid_cap,
)
from ._gapless import GaplessIndex
from ._intervals import (
    TimeInterval,
    add_time,
    check_change,
    choose_interval,
    date_interval_duration,
    get_next_unit,
    round_time,
    to_datetime,
    to_ms,
)
from ._nice import (
    SelectionScaleState,
    decimal_places,
    js_round,
)
from ._traits import (
    IndexMappable,
    LinearMapper,
    Role,
)
from .config import date_defaults
from .types import Struct
from .log import get_logger

log = get_logger(__name__)


@lru_cache
def _defaults() -> dict:
    return date_defaults()


def _default(key: str):
    def factory():
        value = _defaults()[key]
        if isinstance(value, (list, dict)):
            return type(value)(value)
        return value

    return factory


def date_fill_rule(cell: GridCell) -> bool:
    '''
    Fill every other cell counting from the axis min.

    '''
    k: float = js_round((cell.value - cell.origin) / cell.step)
    return k / 2 == js_round(k / 2)


class DateAxisSettings(
    AxisSettings,
    kw_only=True,
):
    # declared resolution of the attached series' data
    base_interval: TimeInterval = field(
        default_factory=lambda: TimeInterval('day'),
    )

    group_data: bool = False
    group_count: int = field(default_factory=_default('group_count'))

    # a fixed group interval, overrides ``group_intervals``
    group_interval: TimeInterval | None = None
    group_intervals: list[TimeInterval] = field(
        default_factory=_default('group_intervals'),
    )
    grid_intervals: list[TimeInterval] = field(
        default_factory=_default('grid_intervals'),
    )

    # where in its interval cell a sample sits
    start_location: float = 0
    end_location: float = 1

    mark_unit_change: bool = True
    date_formats: dict[str, str] = field(
        default_factory=_default('date_formats'),
    )
    period_change_date_formats: dict[str, str] = field(
        default_factory=_default('period_change_date_formats'),
    )

    first_day_of_week: int = 1
    timezone: str = 'UTC'

    gapless: bool = False
    auto_gap_count: float = field(default_factory=_default('auto_gap_count'))

    strict_min_max: bool = True
    max_zoom_factor: float | None = None

    def __post_init__(self) -> None:
        # accept short codes like ``'5m'`` when built from code
        self.base_interval = TimeInterval.parse(self.base_interval)
        if self.group_interval is not None:
            self.group_interval = TimeInterval.parse(self.group_interval)

        self.group_intervals = [
            TimeInterval.parse(ivl) for ivl in self.group_intervals
        ]
        self.grid_intervals = [
            TimeInterval.parse(ivl) for ivl in self.grid_intervals
        ]


class ResolutionChanged(Struct, frozen=True):
    '''
    Emitted once each time an axis switches its active data
    resolution.

    '''
    axis_id: str
    previous: str
    current: str


_date_flags: dict[str, Dirty] = {
    'group_data': Dirty.GROUPING,
    'group_count': Dirty.GROUPING,
    'group_interval': Dirty.GROUPING,
    'group_intervals': Dirty.GROUPING,
    'base_interval': Dirty.SETTINGS | Dirty.GROUPING,
    'grid_intervals': Dirty.LAYOUT,
    'mark_unit_change': Dirty.LAYOUT,
    'date_formats': Dirty.LAYOUT,
    'period_change_date_formats': Dirty.LAYOUT,
    'auto_gap_count': Dirty.NONE,
}


class DateAxis(ValueAxis):
    '''
    A time scale controller.

    Its ``active_interval`` is the ``base_interval`` until grouping
    engages, then the chosen group interval; it only ever changes
    when the visible span changes (panning never re-selects).

    '''
    kind: str = 'date'
    _mapper_settings: frozenset[str] = frozenset({
        'gapless',
        'base_interval',
    })

    def __init__(
        self,
        id: str,
        role: Role = 'x',
        settings: DateAxisSettings | None = None,
        **kwargs,
    ) -> None:
        super().__init__(
            id,
            role=role,
            settings=settings,
            **kwargs,
        )
        self.active_interval: TimeInterval = self.settings.base_interval
        self._last_span: float | None = None

    def _settings_type(self) -> type[DateAxisSettings]:
        return DateAxisSettings

    def _make_mapper(self) -> IndexMappable:
        if self.settings.gapless:
            # not yet set during ``__init__()``
            ivl: TimeInterval = getattr(
                self,
                'active_interval',
                self.settings.base_interval,
            )
            mapper = GaplessIndex(ivl.duration)
            self._rebuild_index(mapper)
            return mapper

        return LinearMapper()

    def _flags_for(
        self,
        key: str,
    ) -> Dirty:
        try:
            return _date_flags[key]
        except KeyError:
            return super()._flags_for(key)

    @property
    def base_interval(self) -> TimeInterval:
        return self.settings.base_interval

    @property
    def gapless(self) -> bool:
        return isinstance(self.mapper, GaplessIndex)

    def base_duration(self) -> float:
        '''
        Approximate ms duration of the active (possibly grouped)
        interval.

        '''
        return self.active_interval.duration

    def base_main_duration(self) -> float:
        '''
        Approximate ms duration of the declared ``base_interval``.

        '''
        return self.settings.base_interval.duration

    # gapless index
    # -------------
    def _rebuild_index(
        self,
        mapper: GaplessIndex | None = None,
    ) -> None:
        if mapper is None:
            mapper = self.mapper

        mapper.rebuild(*(
            series.data[series.x_field]
            for series in self.series.values()
            if hasattr(series, 'data')
        ))

    def _check_series(self) -> None:
        super()._check_series()
        if (
            self.gapless
            and self.dirty & Dirty.EXTENTS
        ):
            self._rebuild_index()

    # scale hooks
    # -----------
    def _adjust(
        self,
        min_: float,
        max_: float,
        strict: bool = False,
    ) -> tuple[float, float, float]:
        # never nice rounded
        return min_, max_, (max_ - min_) / self.settings.grid_count

    def _round_float_error(
        self,
        mn: float,
        mx: float,
    ) -> tuple[float, float]:
        return mn, mx

    def _location_in(
        self,
        ts: float,
        location: float,
    ) -> float:
        ivl = self.active_interval
        s = self.settings
        start: int = round_time(
            ts,
            ivl.unit,
            ivl.count,
            first_day_of_week=s.first_day_of_week,
            tz=s.timezone,
        )
        end: int = add_time(start, ivl.unit, ivl.count, tz=s.timezone)
        return start + (end - start) * location

    def _fix_min(self, min_: float) -> float:
        return self._location_in(min_, self.settings.start_location)

    def _fix_max(self, max_: float) -> float:
        return self._location_in(max_, self.settings.end_location)

    def _fix_zoom_factor(self) -> None:
        s = self.settings
        if self.gapless:
            self._max_zoom_factor = max(1, len(self.mapper))

        elif s.max_zoom_factor is not None:
            self._max_zoom_factor = s.max_zoom_factor

        elif self._min_real is not None:
            self._max_zoom_factor = max(
                1,
                js_round(
                    (self._max_real - self._min_real)
                    / self.base_main_duration()
                ),
            )

    # resolution selection
    # --------------------
    def select_resolution(
        self,
        visible_span_ms: float,
        item_budget: int | None = None,
    ) -> TimeInterval:
        '''
        Return the finest group interval whose bucket count over the
        visible span fits in ``item_budget`` (default
        ``group_count``), never finer then the ``base_interval``.

        '''
        s = self.settings
        base: TimeInterval = s.base_interval
        budget: int = item_budget or s.group_count

        if s.group_interval is not None:
            chosen = s.group_interval

        else:
            # samples sit inside their cell per the locations
            span: float = visible_span_ms + (
                s.start_location + (1 - s.end_location)
            ) * base.duration

            candidates: list[TimeInterval] = sorted(
                {base, *s.group_intervals},
                key=lambda ivl: ivl.duration,
            )
            chosen = candidates[-1]
            for ivl in candidates:
                if ceil(span / ivl.duration) <= budget:
                    chosen = ivl
                    break

        if chosen.duration < base.duration:
            return base

        return chosen

    def _visible_span(self) -> float:
        scale = self.scale
        start: float = self.mapper.position_to_value(
            self.target('start'),
            scale.min,
            scale.max,
        )
        end: float = self.mapper.position_to_value(
            self.target('end'),
            scale.min,
            scale.max,
        )
        return end - start

    def _check_span(self) -> None:
        if self.scale is None:
            return

        span: float = self._visible_span()
        if (
            self._last_span is None
            or not isclose(span, self._last_span, rel_tol=1e-9)
        ):
            self.dirty |= Dirty.GROUPING

    def _update_grouping(self) -> None:
        s = self.settings
        if self.scale is None:
            return

        span: float = self._visible_span()
        self._last_span = span
        if (
            s.group_data
            or s.group_interval is not None
        ):
            new: TimeInterval = self.select_resolution(span)
        else:
            new = s.base_interval

        prev: TimeInterval = self.active_interval
        if new == prev:
            return

        self.active_interval = new
        for series in self.series.values():
            native: TimeInterval | None = getattr(
                series,
                'base_interval',
                None,
            )
            if native is None:
                continue

            if new.duration < native.duration:
                series.set_data_set(native)
            else:
                series.set_data_set(new)

        if self.gapless:
            self.mapper.base_duration = new.duration
            self._rebuild_index()

        # bounds are aligned to the active interval
        self.dirty |= Dirty.EXTENTS
        log.info(
            f'{self.id} resolution {prev.code} -> {new.code} '
            f'for {span / 1e3:.0f}s span'
        )
        self._emit(
            ResolutionChanged(
                axis_id=self.id,
                previous=prev.key,
                current=new.key,
            )
        )

    def _update_layout(self) -> None:
        self.handle_range_change()
        sel = self.selection
        if (
            sel is None
            or self.role != 'x'
        ):
            return

        for series in self.series.values():
            set_visible = getattr(series, 'set_visible_from_values', None)
            if set_visible is not None:
                set_visible(sel.selection_min, sel.selection_max)

    def handle_range_change(self) -> SelectionScaleState | None:
        if self.scale is None:
            self.selection = None
            return None

        sel_min: float = self.position_to_value(self.start)
        sel_max: float = self.position_to_value(self.end)
        step: float = (sel_max - sel_min) / self.settings.grid_count
        self.selection = SelectionScaleState(
            selection_min=sel_min,
            selection_max=sel_max,
            step=step,
            step_decimal_places=decimal_places(step),
        )
        return self.selection

    # time helpers
    # ------------
    def round_to_interval_boundary(
        self,
        ts: float,
        interval: TimeInterval | None = None,
        location: float = 0,
    ) -> float:
        '''
        Round ``ts`` down to the start of its ``interval`` (default
        the active one) cell and offset by ``location`` of the cell's
        (calendar) length.

        '''
        s = self.settings
        ivl: TimeInterval = interval or self.active_interval
        start: int = round_time(
            ts,
            ivl.unit,
            ivl.count,
            first_day_of_week=s.first_day_of_week,
            tz=s.timezone,
        )
        if not location:
            return start

        end: int = add_time(start, ivl.unit, ivl.count, tz=s.timezone)
        return start + (end - start) * location

    def should_gap(
        self,
        t0: float,
        t1: float,
        auto_gap_count: float | None = None,
    ) -> bool:
        '''
        Predicate for whether a line between two consecutive samples
        should be broken.

        '''
        if auto_gap_count is None:
            auto_gap_count = self.settings.auto_gap_count

        return t1 - t0 > self.base_duration() * auto_gap_count

    def date_to_position(
        self,
        date: datetime | float,
    ) -> float:
        if isinstance(date, datetime):
            date = to_ms(date)

        return self.value_to_position(date)

    def position_to_date(
        self,
        position: float,
    ) -> DateTime:
        return to_datetime(
            self.position_to_value(position),
            self.settings.timezone,
        )

    def zoom_to_dates(
        self,
        start: datetime | float,
        end: datetime | float,
        duration: float | None = None,
    ) -> bool:
        if isinstance(start, datetime):
            start = to_ms(start)
        if isinstance(end, datetime):
            end = to_ms(end)

        return self.zoom_to_values(start, end, duration)

    def round_axis_position(
        self,
        position: float,
        location: float,
    ) -> float:
        '''
        Snap a relative axis position to ``location`` within its
        interval cell.

        '''
        s = self.settings
        ivl: TimeInterval = self.active_interval
        value: float = self.position_to_value(position)
        value -= (location - 0.5) * self.base_duration()

        start: int = round_time(
            value,
            ivl.unit,
            ivl.count,
            first_day_of_week=s.first_day_of_week,
            tz=s.timezone,
        )
        duration: int = date_interval_duration(
            ivl,
            start,
            first_day_of_week=s.first_day_of_week,
            tz=s.timezone,
        )
        return self.value_to_position(start + location * duration)

    # grid
    # ----
    def _label(
        self,
        ts: float,
        fmt: str,
    ) -> str:
        return to_datetime(ts, self.settings.timezone).format(fmt)

    def _format_for(
        self,
        ivl: TimeInterval,
        value: float,
        previous: float | None,
    ) -> str:
        s = self.settings
        fmt: str = s.date_formats[ivl.unit]
        next_unit = get_next_unit(ivl.unit)
        if (
            s.mark_unit_change
            and previous is not None
            and next_unit is not None
            and check_change(value, previous, next_unit, s.timezone)
        ):
            fmt = s.period_change_date_formats[ivl.unit]

        return fmt

    def grid_interval(
        self,
        span: float,
    ) -> TimeInterval:
        '''
        Grid (label) interval for ``span``, never finer then the
        active interval.

        '''
        ivl: TimeInterval = choose_interval(
            span,
            self.settings.grid_count,
            self.settings.grid_intervals,
        )
        if ivl.duration < self.base_duration():
            return self.active_interval

        return ivl

    def grid(self) -> list[GridCell]:
        sel = self.selection
        if (
            sel is None
            or self.scale is None
            or not sel.selection_max > sel.selection_min
        ):
            return []

        if self.gapless:
            return self._gapless_grid()

        s = self.settings
        fill_rule: FillRule = s.fill_rule or date_fill_rule
        ivl: TimeInterval = self.grid_interval(
            sel.selection_max - sel.selection_min,
        )
        step: float = ivl.duration

        value: float = round_time(
            sel.selection_min - step,
            ivl.unit,
            ivl.count,
            first_day_of_week=s.first_day_of_week,
            tz=s.timezone,
            first_ts=self.scale.min,
        )
        previous: float | None = None
        cells: list[GridCell] = []
        for i in range(_grid_cap):
            if value >= sel.selection_max + step:
                break

            end: int = add_time(value, ivl.unit, ivl.count, tz=s.timezone)
            cell = GridCell(
                value=value,
                end_value=end,
                position=self.value_to_position(value),
                end_position=self.value_to_position(end),
                index=i,
                step=step,
                origin=self.scale.min,
                label=self._label(
                    value,
                    self._format_for(ivl, value, previous),
                ),
            )
            cell.filled = bool(fill_rule(cell))
            cells.append(cell)

            previous = value
            value = end

        return cells

    def _gapless_grid(self) -> list[GridCell]:
        '''
        Grid cells placed only on existing times: the first known
        time in each grid interval cell, thinned to at most
        ``grid_count`` cells.

        '''
        s = self.settings
        sel = self.selection
        dates: np.ndarray = self.mapper.dates
        lo: int = int(np.searchsorted(dates, sel.selection_min, side='left'))
        hi: int = int(np.searchsorted(dates, sel.selection_max, side='right'))
        visible: np.ndarray = dates[lo:hi]
        if not visible.size:
            return []

        ivl: TimeInterval = self.grid_interval(
            visible.size * self.base_duration(),
        )

        firsts: list[int] = []
        last_start: int | None = None
        for ts in visible.tolist():
            start: int = round_time(
                ts,
                ivl.unit,
                ivl.count,
                first_day_of_week=s.first_day_of_week,
                tz=s.timezone,
            )
            if start != last_start:
                firsts.append(ts)
                last_start = start

        frequency: int = max(1, ceil(len(firsts) / s.grid_count))
        picked: list[int] = firsts[::frequency]

        cells: list[GridCell] = []
        previous: float | None = None
        for i, value in enumerate(picked[:_grid_cap]):
            end = (
                picked[i + 1] if i + 1 < len(picked)
                else add_time(value, ivl.unit, ivl.count, tz=s.timezone)
            )
            cell = GridCell(
                value=value,
                end_value=end,
                position=self.value_to_position(value),
                end_position=self.value_to_position(end),
                index=i,
                step=ivl.duration * frequency,
                origin=self.scale.min,
                label=self._label(
                    value,
                    self._format_for(ivl, value, previous),
                ),
            )
            if s.fill_rule is None:
                cell.filled = i % 2 == 0
            else:
                cell.filled = bool(s.fill_rule(cell))

            cells.append(cell)
            previous = value

        return cells
