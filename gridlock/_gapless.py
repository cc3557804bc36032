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
"Gapless" time indexing: map timestamps to axis positions by their
index in the set of *actually present* sample times so that periods
without data (weekends, holidays, exchange halts) take no space.

'''
from __future__ import annotations
from math import floor

import numpy as np

from .log import get_logger

log = get_logger(__name__)

# tolerance for snapping ``position * len`` onto an exact index
_snap: float = 1e-9


class GaplessIndex:
    '''
    A sorted, de-duplicated ``int64`` array of epoch-ms times.

    Known times map to ``index / len``; anything in between (or
    outside) is placed relative to the nearest lower (or boundary)
    known time using ``base_duration`` as the distance of one index
    step (not elapsed wall clock time).

    Plugs into an axis as its mapper; the axis ``min``/``max`` are
    ignored since the domain is the index itself.

    '''
    def __init__(
        self,
        base_duration: float,
        times: np.ndarray | None = None,
    ) -> None:
        self.base_duration = base_duration
        self._dates = np.empty(0, dtype=np.int64)
        if times is not None:
            self.rebuild(times)

    def __len__(self) -> int:
        return self._dates.size

    @property
    def dates(self) -> np.ndarray:
        return self._dates

    def rebuild(
        self,
        *time_arrays: np.ndarray,
    ) -> None:
        '''
        Re-index from scratch with the union of all ``time_arrays``.

        '''
        arrays = [
            np.asarray(times, dtype=np.int64)
            for times in time_arrays
            if len(times)
        ]
        if not arrays:
            self._dates = np.empty(0, dtype=np.int64)
        else:
            # sorts and drops dupes
            self._dates = np.unique(np.concatenate(arrays))

        log.debug(f'Gapless index rebuilt with {self._dates.size} times')

    def get_sorted_index(
        self,
        ts: float,
    ) -> tuple[int, bool]:
        '''
        Binary search for ``ts`` returning the insertion index and
        whether it exactly matches an existing time.

        '''
        dates = self._dates
        index = int(np.searchsorted(dates, ts, side='left'))
        found: bool = (
            index < dates.size
            and dates[index] == ts
        )
        return index, found

    def insert(
        self,
        ts: int,
    ) -> bool:
        index, found = self.get_sorted_index(ts)
        if found:
            return False

        self._dates = np.insert(self._dates, index, ts)
        return True

    def value_to_index(
        self,
        ts: float,
    ) -> int:
        '''
        Index of the nearest known time at or below ``ts``, clamped to
        the boundary indices.

        '''
        index, found = self.get_sorted_index(ts)
        if (
            not found
            and index > 0
        ):
            index -= 1

        return index

    def value_to_position(
        self,
        ts: float,
        min_: float | None = None,
        max_: float | None = None,
    ) -> float:
        size: int = self._dates.size
        if not size:
            return 0.

        index, found = self.get_sorted_index(ts)
        if found:
            return index / size

        if index > 0:
            index -= 1

        offset: float = (ts - self._dates[index]) / self.base_duration
        return (index + offset) / size

    def position_to_value(
        self,
        position: float,
        min_: float | None = None,
        max_: float | None = None,
    ) -> float:
        size: int = self._dates.size
        if not size:
            return float('nan')

        index: float = position * size
        nearest: int = round(index)
        if abs(index - nearest) < _snap:
            index = nearest

        findex: int = min(max(floor(index), 0), size - 1)
        return int(self._dates[findex]) + (index - findex) * self.base_duration
