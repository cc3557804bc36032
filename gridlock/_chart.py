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
Chart level registry of axes and series keyed by id.

The ``Chart`` owns every axis and series, wires attachments and runs
the per-frame update pass over all axes in sync dependency order.

'''
from __future__ import annotations
import time

from ._axis import ValueAxis
from ._errors import (
    AttachError,
    ConfigurationError,
    SyncCycleError,
)
from ._profile import Profiler
from ._traits import ExtentReporter
from .types import Struct
from .log import get_logger

log = get_logger(__name__)


class Chart:
    '''
    An arena of axes and series.

    Axes only ever hold (non-owning) references to the series attached
    to them, the attachment table lives here.

    '''
    def __init__(
        self,
        name: str = 'chart',
    ) -> None:
        self.name = name
        self.axes: dict[str, ValueAxis] = {}
        self.series: dict[str, ExtentReporter] = {}

        # series id -> attached axis ids
        self._attached: dict[str, set[str]] = {}

    def __repr__(self) -> str:
        return (
            f'Chart({self.name!r}, axes={list(self.axes)}, '
            f'series={list(self.series)})'
        )

    def _get_axis(
        self,
        axis_id: str,
    ) -> ValueAxis:
        try:
            return self.axes[axis_id]
        except KeyError:
            raise AttachError(f'No axis with id {axis_id!r}') from None

    def _get_series(
        self,
        series_id: str,
    ) -> ExtentReporter:
        try:
            return self.series[series_id]
        except KeyError:
            raise AttachError(f'No series with id {series_id!r}') from None

    # axis sync graph
    # ---------------
    def _sync_chain(
        self,
        axis_id: str,
        target: str | None,
    ) -> list[str]:
        '''
        Follow the ``sync_with_axis`` links starting at ``target``
        as if ``axis_id`` were synced to it, returning the visited
        axis ids.

        Raises ``SyncCycleError`` if the walk returns to ``axis_id``.

        '''
        chain: list[str] = [axis_id]
        while target is not None:
            if target in chain:
                chain.append(target)
                raise SyncCycleError(
                    'Cyclic axis sync: ' + ' -> '.join(chain)
                )

            chain.append(target)
            axis = self.axes.get(target)
            if axis is None:
                break

            target = axis.settings.sync_with_axis

        return chain

    def add_axis(
        self,
        axis: ValueAxis,
    ) -> ValueAxis:
        if axis.id in self.axes:
            raise ConfigurationError(
                f'Axis id {axis.id!r} already registered on {self}'
            )

        self._sync_chain(axis.id, axis.settings.sync_with_axis)
        self.axes[axis.id] = axis
        log.debug(f'Added {axis!r}:\n{axis.settings.pformat()}')
        return axis

    def remove_axis(
        self,
        axis_id: str,
    ) -> ValueAxis:
        axis = self._get_axis(axis_id)
        for sid in list(axis.series):
            self.detach(sid, axis_id)

        del self.axes[axis_id]
        return axis

    def set_sync(
        self,
        axis_id: str,
        target_id: str | None,
    ) -> None:
        '''
        Sync ``axis_id``'s grid to ``target_id``'s (or un-sync with
        ``None``), rejecting cycles.

        '''
        axis = self._get_axis(axis_id)
        if target_id is not None:
            self._get_axis(target_id)
            self._sync_chain(axis_id, target_id)

        axis.set(sync_with_axis=target_id)

    # series
    # ------
    def add_series(
        self,
        series: ExtentReporter,
        *axis_ids: str,
    ) -> ExtentReporter:
        if series.id in self.series:
            raise ConfigurationError(
                f'Series id {series.id!r} already registered on {self}'
            )

        # validate before mutating anything
        for axis_id in axis_ids:
            self._get_axis(axis_id)

        self.series[series.id] = series
        self._attached[series.id] = set()
        for axis_id in axis_ids:
            self.attach(series.id, axis_id)

        return series

    def remove_series(
        self,
        series_id: str,
    ) -> ExtentReporter:
        series = self._get_series(series_id)
        for axis_id in list(self._attached[series_id]):
            self.detach(series_id, axis_id)

        del self._attached[series_id]
        del self.series[series_id]
        return series

    def attach(
        self,
        series_id: str,
        axis_id: str,
    ) -> None:
        series = self._get_series(series_id)
        axis = self._get_axis(axis_id)
        axis.attach(series)
        self._attached[series_id].add(axis_id)

    def detach(
        self,
        series_id: str,
        axis_id: str,
    ) -> None:
        self._get_series(series_id)
        axis = self._get_axis(axis_id)
        if axis_id not in self._attached[series_id]:
            raise AttachError(
                f'Series {series_id!r} is not attached to {axis_id!r}'
            )

        axis.detach(series_id)
        self._attached[series_id].discard(axis_id)

    def attached(
        self,
        series_id: str,
    ) -> set[str]:
        self._get_series(series_id)
        return set(self._attached[series_id])

    # update pass
    # -----------
    def update_order(self) -> list[ValueAxis]:
        '''
        All axes ordered so that every sync target comes before the
        axes synced to it, x axes ahead of y axes otherwise.

        '''
        order: dict[str, ValueAxis] = {}
        for axis in sorted(
            self.axes.values(),
            key=lambda axis: axis.role != 'x',
        ):
            chain: list[str] = self._sync_chain(
                axis.id,
                axis.settings.sync_with_axis,
            )
            for aid in reversed(chain):
                if (
                    aid in self.axes
                    and aid not in order
                ):
                    order[aid] = self.axes[aid]

        return list(order.values())

    def update(
        self,
        now: float | None = None,
    ) -> list[Struct]:
        '''
        Run one full update pass at ``now`` (ms, monotonic) and return
        all events emitted by the axes.

        '''
        if now is None:
            now = time.monotonic() * 1e3

        profiler = Profiler(
            msg=f'Chart.update() for {self.name}',
            ms_threshold=4,
        )
        for axis in self.axes.values():
            axis.begin_pass()

        for sid, axis_ids in self._attached.items():
            for axis_id in axis_ids:
                self.axes[axis_id].report(sid)

        profiler('extents reported')

        events: list[Struct] = []
        for axis in self.update_order():
            target_id: str | None = axis.settings.sync_with_axis
            target: ValueAxis | None = None
            if target_id is not None:
                target = self.axes.get(target_id)
                if target is None:
                    log.warning(
                        f'{axis.id} sync target {target_id!r} is missing'
                    )

            axis.update(now, target=target)
            events.extend(axis.drain_events())
            profiler(f'{axis.id} updated')

        profiler.finish()
        return events

    def animating(self) -> bool:
        return any(
            axis.animating() for axis in self.axes.values()
        )
