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

"""
Profiling wrappers for the per-frame update paths.

"""
import os
import sys
from time import perf_counter

from .log import get_logger

log = get_logger(__name__)

# NOTE: set ``GRIDLOCK_PROFILE`` to a comma separated list of
# ``<Type>.<method>`` or ``<module>.<func>`` qualnames, or call
# ``enable_profiling()`` to turn on every profiler.
_profile_all: bool = False
ms_slower_then: float = 0


def enable_profiling(
    on: bool = True,
    ms_threshold: float = 0,
) -> None:
    global _profile_all, ms_slower_then
    _profile_all = on
    ms_slower_then = ms_threshold


def profile_enabled() -> bool:
    return _profile_all


class Profiler:
    '''
    Simple (nestable) profiler measuring multiple intervals.

    Calling the profiler instance registers a message tagged with the
    time elapsed since the last call. On ``.finish()`` (or when
    garbage collected) all messages are flushed to the log at
    ``debug`` level, unless the total lifetime was faster then
    ``ms_threshold``.

    Example:
        def update(...):
            profiler = Profiler(msg='update()')
            ... do stuff ...
            profiler('did stuff')

    '''
    _profilers: list[str] = [
        name for name in
        os.environ.get('GRIDLOCK_PROFILE', '').split(',')
        if name
    ]
    _depth: int = 0

    class DisabledProfiler:
        def __init__(self, *args, **kwargs):
            pass

        def __call__(self, *args):
            pass

        def finish(self):
            pass

    _disabled = DisabledProfiler()

    def __new__(
        cls,
        msg: str | None = None,
        disabled: bool | str = 'env',
        ms_threshold: float = 0.0,
    ):
        # determine the qualified name of the caller
        caller = sys._getframe(1)
        slf = caller.f_locals.get('self')
        if slf is not None:
            qualifier: str = type(slf).__name__
        else:
            qualifier = caller.f_globals['__name__'].split('.', 1)[-1]

        qualname: str = f'{qualifier}.{caller.f_code.co_name}'

        if (
            disabled is True
            or (
                disabled == 'env'
                and not _profile_all
                and qualname not in cls._profilers
            )
        ):
            return cls._disabled

        obj = super().__new__(cls)
        obj._name = msg or qualname
        obj._msgs: list[tuple[str, float]] = []
        obj._threshold = max(ms_threshold, ms_slower_then)
        obj._first = obj._last = perf_counter()
        obj._finished = False
        obj._indent = '  ' * cls._depth
        cls._depth += 1
        return obj

    def __call__(
        self,
        msg: str | None = None,
    ) -> None:
        now = perf_counter()
        self._msgs.append((
            msg or str(len(self._msgs)),
            (now - self._last) * 1e3,
        ))
        self._last = now

    def __del__(self):
        self.finish()

    def finish(
        self,
        msg: str | None = None,
    ) -> None:
        if self._finished:
            return

        self._finished = True
        if msg:
            self(msg)

        Profiler._depth -= 1
        total_ms: float = (perf_counter() - self._first) * 1e3
        if total_ms < self._threshold:
            return

        lines: list[str] = [f'{self._indent}> {self._name}']
        for text, ms in self._msgs:
            lines.append(f'{self._indent}  {text}: {ms:0.4f} ms')
        lines.append(f'{self._indent}< {self._name}: {total_ms:0.4f} ms')
        log.debug('\n'.join(lines))
