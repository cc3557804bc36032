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
Composable axis "traits" (API descriptions) and the pluggable value
<-> position mappers.

Instead of a deep axis class tree each concrete axis kind implements
some of,

- ``ScaleComputable``: derives a full and selection scale from its
  attached ``ExtentReporter``s.
- ``TimeGroupable``: picks which time resolution of its series data
  is active.
- ``IndexMappable``: maps values to normalized ``[0, 1]`` positions
  and back; plugged into an axis as its ``.mapper``.

'''
from __future__ import annotations
from abc import abstractmethod
from math import (
    isfinite,
    log10,
)
from typing import (
    Iterable,
    Literal,
    Protocol,
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from ._intervals import TimeInterval
    from ._nice import (
        ScaleState,
        SelectionScaleState,
    )


Role = Literal['x', 'y']


class ExtentReporter(
    Protocol,
):
    '''
    Api description of a data series as seen by its axes.

    '''
    id: str
    ignore_min_max: bool

    @abstractmethod
    def report_extent(
        self,
        role: Role,
        visible: bool = False,

    ) -> tuple[float, float] | None:
        '''
        Return the ``(min, max)`` of the values mapped to the axis in
        ``role``, optionally only over the currently visible index
        range, or ``None`` when there are no finite values.

        '''
        ...


class IndexMappable(
    Protocol,
):
    @abstractmethod
    def value_to_position(
        self,
        value: float,
        min_: float,
        max_: float,
    ) -> float:
        ...

    @abstractmethod
    def position_to_value(
        self,
        position: float,
        min_: float,
        max_: float,
    ) -> float:
        ...


class ScaleComputable(
    Protocol,
):
    scale: ScaleState | None
    selection: SelectionScaleState | None

    @abstractmethod
    def get_global_extent(
        self,
        sync: ScaleState | None = None,
    ) -> ScaleState | None:
        ...

    @abstractmethod
    def get_selection_extent(
        self,
        sync: SelectionScaleState | None = None,
    ) -> SelectionScaleState | None:
        ...


class TimeGroupable(
    Protocol,
):
    base_interval: TimeInterval
    active_interval: TimeInterval

    @abstractmethod
    def select_resolution(
        self,
        visible_span_ms: float,
        item_budget: int,
    ) -> TimeInterval:
        ...

    @abstractmethod
    def round_to_interval_boundary(
        self,
        ts: float,
        interval: TimeInterval | None = None,
        location: float = 0,
    ) -> float:
        ...


def fold_extents(
    reporters: Iterable[ExtentReporter],
    role: Role,
    visible: bool = False,

) -> tuple[float, float, float] | None:
    '''
    Fold the extents of all non-ignored reporters into a single
    ``(min, max, min_diff)`` where ``min_diff`` is the narrowest
    per-series range (used for the max zoom factor).

    '''
    mn: float = float('inf')
    mx: float = float('-inf')
    min_diff: float = float('inf')

    for reporter in reporters:
        if reporter.ignore_min_max:
            continue

        extent = reporter.report_extent(role, visible=visible)
        if extent is None:
            continue

        smin, smax = extent
        if not (
            isfinite(smin)
            and isfinite(smax)
        ):
            continue

        mn = min(mn, smin)
        mx = max(mx, smax)

        diff: float = smax - smin
        if diff <= 0:
            diff = abs(smax / 100)

        if 0 < diff < min_diff:
            min_diff = diff

    if mn == float('inf'):
        return None

    return mn, mx, min_diff


class LinearMapper:
    '''
    Plain ``(v - min) / (max - min)`` mapping.

    '''
    def value_to_position(
        self,
        value: float,
        min_: float,
        max_: float,
    ) -> float:
        return (value - min_) / (max_ - min_)

    def position_to_value(
        self,
        position: float,
        min_: float,
        max_: float,
    ) -> float:
        return position * (max_ - min_) + min_


class LogMapper:
    '''
    ``log10`` mapping with non-positive values substituted by
    ``treat_zero_as`` (when set).

    '''
    def __init__(
        self,
        treat_zero_as: float | None = None,
    ) -> None:
        self.treat_zero_as = treat_zero_as

    def _log(self, value: float) -> float:
        if (
            value <= 0
            and self.treat_zero_as
        ):
            value = self.treat_zero_as

        if value <= 0:
            return float('-inf')

        return log10(value)

    def value_to_position(
        self,
        value: float,
        min_: float,
        max_: float,
    ) -> float:
        lmin: float = self._log(min_)
        return (self._log(value) - lmin) / (self._log(max_) - lmin)

    def position_to_value(
        self,
        position: float,
        min_: float,
        max_: float,
    ) -> float:
        lmin: float = self._log(min_)
        return 10 ** (position * (self._log(max_) - lmin) + lmin)
