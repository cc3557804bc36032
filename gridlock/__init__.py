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
gridlock: axis scaling and time-series aggregation for charts.

'''
from ._errors import (
    GridlockError,
    ConfigurationError,
    SyncCycleError,
    AttachError,
    UnknownResolution,
)
from ._intervals import (
    TimeInterval,
    add_time,
    check_change,
    choose_interval,
    date_interval_duration,
    get_duration,
    get_next_unit,
    next_boundary,
    round_time,
)
from ._nice import (
    ScaleState,
    SelectionScaleState,
    adjust_min_max,
    compute,
)
from ._grouping import (
    ResolutionSet,
    aggregate,
    bucket_starts,
)
from ._gapless import GaplessIndex
from ._anim import (
    Tween,
    get_easing,
)
from ._series import Series
from ._axis import (
    AxisRange,
    AxisSettings,
    AxisState,
    Dirty,
    GridCell,
    ValueAxis,
)
from ._time_axis import (
    DateAxis,
    DateAxisSettings,
    ResolutionChanged,
)
from ._chart import Chart


__all__: list[str] = [
    'AttachError',
    'AxisRange',
    'AxisSettings',
    'AxisState',
    'Chart',
    'ConfigurationError',
    'DateAxis',
    'DateAxisSettings',
    'Dirty',
    'GaplessIndex',
    'GridCell',
    'GridlockError',
    'ResolutionChanged',
    'ResolutionSet',
    'ScaleState',
    'SelectionScaleState',
    'Series',
    'SyncCycleError',
    'TimeInterval',
    'Tween',
    'UnknownResolution',
    'ValueAxis',
    'add_time',
    'adjust_min_max',
    'aggregate',
    'bucket_starts',
    'check_change',
    'choose_interval',
    'compute',
    'date_interval_duration',
    'get_duration',
    'get_easing',
    'get_next_unit',
    'next_boundary',
    'round_time',
]
