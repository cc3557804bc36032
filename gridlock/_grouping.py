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
Time bucket aggregation ("grouping") of struct-array time series.

Raw samples are resampled into coarser interval buckets by first
computing every sample's bucket start time and then folding
consecutive samples with an equal start into one row, per field, with
an OHLC-style rule. The fold is a single linear pass in ``numba``.

'''
from __future__ import annotations
from typing import (
    Literal,
    Sequence,
)

import numpy as np
from numpy.lib import recfunctions as rfn
from numba import njit

from ._errors import UnknownResolution
from ._intervals import (
    TimeInterval,
    fixed_step,
    next_boundary,
    round_time,
)
from ._profile import Profiler
from .log import get_logger

log = get_logger(__name__)


Rule = Literal[
    'close',
    'open',
    'low',
    'high',
    'sum',
    'average',
    'extreme',
]

# kernel op codes
_rule_codes: dict[Rule, int] = {
    'close': 0,
    'open': 1,
    'low': 2,
    'high': 3,
    'sum': 4,
    'average': 5,
    'extreme': 6,
}


def default_rule(field: str) -> Rule:
    '''
    The natural rule for well known OHLCV field names; anything else
    takes the last (close) value.

    '''
    match field:
        case 'open' | 'high' | 'low' | 'close':
            return field
        case 'volume':
            return 'sum'
        case _:
            return 'close'


def bucket_starts(
    times: np.ndarray,
    interval: TimeInterval,
    tz: str | None = 'UTC',
    first_day_of_week: int = 1,
    first_ts: float | None = None,

) -> np.ndarray:
    '''
    Return an ``int64`` array of the bucket (interval) start time for
    each (sorted) epoch-ms timestamp in ``times``.

    '''
    unit, count = interval.unit, interval.count
    anchored: bool = (
        first_ts is not None
        and unit in ('day', 'week')
        and count > 1
    )
    fixed = None if anchored else fixed_step(
        unit,
        count,
        first_day_of_week,
        tz,
    )
    if fixed:
        step, offset = fixed
        return (
            np.floor((times.astype(np.float64) - offset) / step) * step
            + offset
        ).astype(np.int64)

    # calendar relative intervals; re-round only when a sample leaves
    # the current ``[start, end)`` window.
    out = np.empty(times.size, dtype=np.int64)
    start: int | None = None
    end: int | None = None
    for i, t in enumerate(times.tolist()):
        if (
            start is None
            or not (start <= t < end)
        ):
            start = round_time(
                t,
                unit,
                count,
                first_day_of_week=first_day_of_week,
                tz=tz,
                first_ts=first_ts,
            )
            end = next_boundary(
                start,
                interval,
                first_day_of_week=first_day_of_week,
                tz=tz,
                first_ts=first_ts,
            )
        out[i] = start

    return out


@njit(
    nogil=True,
)
def _fold_buckets(
    starts: np.ndarray,
    values: np.ndarray,
    codes: np.ndarray,

) -> tuple[
    np.ndarray,
    np.ndarray,
    np.ndarray,
]:
    '''
    Fold rows with equal (non-decreasing) ``starts`` into buckets
    applying the per-column rule ``codes``. NaN samples are skipped
    and not counted.

    '''
    n, nf = values.shape

    nb = 0
    for i in range(n):
        if (
            i == 0
            or starts[i] != starts[i - 1]
        ):
            nb += 1

    times = np.empty(nb, dtype=np.int64)
    out = np.full((nb, nf), np.nan)
    counts = np.zeros((nb, nf), dtype=np.int64)

    b = -1
    for i in range(n):
        if (
            i == 0
            or starts[i] != starts[i - 1]
        ):
            b += 1
            times[b] = starts[i]

        for j in range(nf):
            v = values[i, j]
            if np.isnan(v):
                continue

            c = counts[b, j]
            code = codes[j]

            if c == 0:
                out[b, j] = v

            elif code == 0:  # close
                out[b, j] = v

            elif code == 2:  # low
                if v < out[b, j]:
                    out[b, j] = v

            elif code == 3:  # high
                if v > out[b, j]:
                    out[b, j] = v

            elif (
                code == 4  # sum
                or code == 5  # average, divided below
            ):
                out[b, j] += v

            elif code == 6:  # extreme
                if abs(v) > abs(out[b, j]):
                    out[b, j] = v

            # open (1) keeps the first value

            counts[b, j] = c + 1

    for j in range(nf):
        if codes[j] == 5:
            for k in range(nb):
                if counts[k, j]:
                    out[k, j] /= counts[k, j]

    return times, out, counts


def bucket_dtype(
    fields: Sequence[str],
    time_field: str = 'time',
) -> np.dtype:
    return np.dtype(
        [(time_field, 'i8')]
        + [(f, 'f8') for f in fields]
        + [(f'{f}_count', 'i8') for f in fields]
    )


def value_fields(
    arr: np.ndarray,
    time_field: str = 'time',
) -> list[str]:
    '''
    All non-time, non-count fields of a struct array.

    '''
    return [
        name for name in arr.dtype.names
        if (
            name != time_field
            and not name.endswith('_count')
        )
    ]


def aggregate(
    raw: np.ndarray,
    interval: TimeInterval,
    rules: dict[str, Rule] | None = None,
    fields: Sequence[str] | None = None,
    tz: str | None = 'UTC',
    first_day_of_week: int = 1,
    first_ts: float | None = None,
    time_field: str = 'time',

) -> np.ndarray:
    '''
    Resample the struct array ``raw`` (with an epoch-ms ``time_field``)
    into ``interval`` buckets.

    Returns a new struct array with the bucket start ``time``, one
    ``float64`` column per field and an ``int64`` ``<field>_count``
    column with the number of (non-NaN) samples folded into each
    value. Periods without samples produce no bucket.

    '''
    profiler = Profiler(
        msg=f'aggregate({interval.code})',
        ms_threshold=4,
    )
    fields = list(fields or value_fields(raw, time_field))
    rules = rules or {}

    codes = np.empty(len(fields), dtype=np.int64)
    for j, field in enumerate(fields):
        rule: Rule = rules.get(field) or default_rule(field)
        try:
            codes[j] = _rule_codes[rule]
        except KeyError as ke:
            raise ValueError(
                f'Invalid grouping rule {rule!r} for field {field!r}'
            ) from ke

    dtype = bucket_dtype(fields, time_field)
    if not raw.size:
        return np.zeros(0, dtype=dtype)

    times: np.ndarray = raw[time_field]
    if np.any(np.diff(times) < 0):
        log.warning(
            f'Unsorted input to `aggregate()` for {interval.code}, sorting..'
        )
        raw = raw[np.argsort(times, kind='stable')]
        times = raw[time_field]

    starts = bucket_starts(
        times,
        interval,
        tz=tz,
        first_day_of_week=first_day_of_week,
        first_ts=first_ts,
    )
    profiler('bucket starts')

    values = np.ascontiguousarray(
        rfn.structured_to_unstructured(
            raw[fields],
            dtype=np.float64,
        )
    )
    btimes, out, counts = _fold_buckets(
        starts,
        values,
        codes,
    )
    profiler(f'folded {raw.size} -> {btimes.size}')

    result = np.zeros(btimes.size, dtype=dtype)
    result[time_field] = btimes
    for j, field in enumerate(fields):
        result[field] = out[:, j]
        result[f'{field}_count'] = counts[:, j]

    profiler.finish()
    return result


class ResolutionSet:
    '''
    The raw time series of one data series plus its lazily computed
    (and cached) coarser resolutions keyed by ``TimeInterval.key``.

    The cache is only ever dropped when the raw data is replaced.

    '''
    def __init__(
        self,
        raw: np.ndarray,
        base_interval: TimeInterval,
        rules: dict[str, Rule] | None = None,
        fields: Sequence[str] | None = None,
        tz: str | None = 'UTC',
        first_day_of_week: int = 1,
        time_field: str = 'time',
    ) -> None:
        self._raw = raw
        self.base_interval = base_interval
        self.rules: dict[str, Rule] = dict(rules or {})
        self.fields: list[str] = list(
            fields or value_fields(raw, time_field)
        )
        self.tz = tz
        self.first_day_of_week = first_day_of_week
        self.time_field = time_field
        self._cache: dict[str, np.ndarray] = {}

    @property
    def native_key(self) -> str:
        return self.base_interval.key

    @property
    def raw(self) -> np.ndarray:
        return self._raw

    def cached(self) -> list[str]:
        return list(self._cache)

    def replace(
        self,
        raw: np.ndarray,
    ) -> None:
        '''
        Swap in new raw data, dropping all derived resolutions.

        '''
        self._raw = raw
        if self._cache:
            log.debug(
                f'Dropping cached resolutions {list(self._cache)}'
            )
        self._cache.clear()

    def _resolve(
        self,
        key: str | TimeInterval,
    ) -> TimeInterval:
        if isinstance(key, TimeInterval):
            return key

        try:
            return TimeInterval.parse(key)
        except ValueError as ve:
            raise UnknownResolution(key) from ve

    def get(
        self,
        key: str | TimeInterval,
    ) -> np.ndarray:
        '''
        Return the data set for ``key``, aggregating it on first use.

        '''
        interval: TimeInterval = self._resolve(key)
        if interval == self.base_interval:
            return self._raw

        if interval.duration <= self.base_interval.duration:
            raise UnknownResolution(
                f'{interval.key} is not coarser then the native '
                f'{self.native_key} resolution'
            )

        try:
            return self._cache[interval.key]
        except KeyError:
            pass

        first_ts: float | None = None
        if (
            self._raw.size
            and interval.unit in ('day', 'week')
            and interval.count > 1
        ):
            first_ts = float(self._raw[self.time_field][0])

        grouped = aggregate(
            self._raw,
            interval,
            rules=self.rules,
            fields=self.fields,
            tz=self.tz,
            first_day_of_week=self.first_day_of_week,
            first_ts=first_ts,
            time_field=self.time_field,
        )
        log.debug(
            f'Grouped {self._raw.size} -> {grouped.size} @ {interval.key}'
        )
        self._cache[interval.key] = grouped
        return grouped

    def __getitem__(
        self,
        key: str | TimeInterval,
    ) -> np.ndarray:
        return self.get(key)
