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
Data series: a struct array of samples as seen by its axes.

'''
from __future__ import annotations
from typing import Sequence

import numpy as np
from numpy.lib import recfunctions as rfn

from ._errors import UnknownResolution
from ._grouping import (
    ResolutionSet,
    Rule,
    value_fields,
)
from ._intervals import TimeInterval
from ._traits import Role
from .log import get_logger

log = get_logger(__name__)


class Series:
    '''
    A (non-rendering) data series holding a struct array with an
    ``x_field`` column and one or more ``y_fields``.

    When a ``base_interval`` is given the x column is treated as
    epoch-ms time stamps and coarser resolutions are available via
    ``.set_data_set()``.

    Extents are cached per ``(role, data set, index range)`` and only
    dropped when data is replaced.

    '''
    def __init__(
        self,
        id: str,
        data: np.ndarray,
        base_interval: TimeInterval | str | None = None,
        x_field: str = 'time',
        y_fields: Sequence[str] | None = None,
        rules: dict[str, Rule] | None = None,
        ignore_min_max: bool = False,
        tz: str | None = 'UTC',
        first_day_of_week: int = 1,
    ) -> None:
        self.id = id
        self.x_field = x_field
        self.ignore_min_max = ignore_min_max

        if y_fields is None:
            names = data.dtype.names
            if (
                'low' in names
                and 'high' in names
            ):
                y_fields = ['low', 'high']
            else:
                y_fields = value_fields(data, x_field)

        self.y_fields: list[str] = list(y_fields)

        self.resolutions: ResolutionSet | None = None
        self._raw: np.ndarray = data
        if base_interval is not None:
            self.resolutions = ResolutionSet(
                data,
                TimeInterval.parse(base_interval),
                rules=rules,
                tz=tz,
                first_day_of_week=first_day_of_week,
                time_field=x_field,
            )

        self.active_key: str | None = (
            self.resolutions.native_key
            if self.resolutions else None
        )
        self._data: np.ndarray = data

        # visible index range ``[start_index, end_index)``
        self.start_index: int = 0
        self.end_index: int = data.size

        self.data_version: int = 0
        self.view_version: int = 0

        self._extents: dict[tuple, tuple[float, float] | None] = {}

    def __repr__(self) -> str:
        return (
            f'Series({self.id!r}, size={self._data.size}, '
            f'key={self.active_key!r})'
        )

    @property
    def data(self) -> np.ndarray:
        '''
        The active data set (raw or grouped).

        '''
        return self._data

    @property
    def raw(self) -> np.ndarray:
        return self._raw

    @property
    def base_interval(self) -> TimeInterval | None:
        if self.resolutions is None:
            return None

        return self.resolutions.base_interval

    @property
    def xs(self) -> np.ndarray:
        return self._data[self.x_field]

    def set_data(
        self,
        data: np.ndarray,
    ) -> None:
        '''
        Replace the raw data dropping all cached extents and
        resolutions; the active data set key is kept.

        '''
        self._raw = data
        self._extents.clear()
        if self.resolutions is not None:
            self.resolutions.replace(data)
            self._data = self.resolutions.get(self.active_key)
        else:
            self._data = data

        self.start_index = 0
        self.end_index = self._data.size
        self.data_version += 1

    def set_data_set(
        self,
        key: str | TimeInterval,
    ) -> bool:
        '''
        Switch the active data set to the resolution ``key``.

        Returns whether anything changed. Raises ``UnknownResolution``
        for keys finer then (or not derivable from) the native one.

        '''
        if self.resolutions is None:
            raise UnknownResolution(
                f'{self} has no time resolutions'
            )

        if isinstance(key, TimeInterval):
            key = key.key

        if key == self.active_key:
            return False

        data: np.ndarray = self.resolutions.get(key)
        prev_xs: np.ndarray = self.xs
        lo: float | None = None
        hi: float | None = None
        if (
            prev_xs.size
            and self.end_index > self.start_index
        ):
            lo = prev_xs[max(self.start_index, 0)]
            hi = prev_xs[min(self.end_index, prev_xs.size) - 1]

        self.active_key = TimeInterval.parse(key).key
        self._data = data
        self.data_version += 1

        # keep the same visible time window
        if lo is not None:
            self.set_visible_from_values(lo, hi)
        else:
            self.start_index = 0
            self.end_index = data.size

        log.debug(f'{self.id} switched to {self.active_key}')
        return True

    def set_visible(
        self,
        start_index: int,
        end_index: int,
    ) -> None:
        size: int = self._data.size
        start_index = min(max(int(start_index), 0), size)
        end_index = min(max(int(end_index), start_index), size)
        if (
            start_index == self.start_index
            and end_index == self.end_index
        ):
            return

        self.start_index = start_index
        self.end_index = end_index
        self.view_version += 1

    def set_visible_from_values(
        self,
        min_: float,
        max_: float,
    ) -> None:
        '''
        Set the visible index range to cover the x values in
        ``[min_, max_]`` including the one sample just before ``min_``.

        '''
        xs: np.ndarray = self.xs
        start: int = int(np.searchsorted(xs, min_, side='left')) - 1
        end: int = int(np.searchsorted(xs, max_, side='left')) + 1
        self.set_visible(max(start, 0), end)

    def _fields(
        self,
        role: Role,
    ) -> list[str]:
        if role == 'x':
            return [self.x_field]

        return self.y_fields

    def _values(
        self,
        role: Role,
        visible: bool,
    ) -> np.ndarray:
        # the x extent is always that of the native data
        arr: np.ndarray = (
            self._raw if (role == 'x' and not visible)
            else self._data
        )
        if visible:
            arr = arr[self.start_index:self.end_index]

        values = rfn.structured_to_unstructured(
            arr[self._fields(role)],
            dtype=np.float64,
        )
        return values[np.isfinite(values)]

    def report_extent(
        self,
        role: Role,
        visible: bool = False,

    ) -> tuple[float, float] | None:
        key: tuple = (
            role,
            self.active_key,
            visible,
            self.start_index if visible else None,
            self.end_index if visible else None,
        )
        try:
            return self._extents[key]
        except KeyError:
            pass

        values = self._values(role, visible)
        extent: tuple[float, float] | None = None
        if values.size:
            extent = (float(values.min()), float(values.max()))

        self._extents[key] = extent
        return extent

    def report_min_positive(
        self,
        role: Role,
    ) -> float | None:
        '''
        Smallest strictly positive value, used as the fallback minimum
        of a logarithmic axis.

        '''
        values = self._values(role, False)
        values = values[values > 0]
        if not values.size:
            return None

        return float(values.min())
