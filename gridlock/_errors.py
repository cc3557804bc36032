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
Package error types.

'''


class GridlockError(Exception):
    'Base for all errors raised by this package.'


class ConfigurationError(GridlockError):
    'Misconfigured settings, likely in a TOML file.'


class SyncCycleError(ConfigurationError):
    'Two or more axes are set to ``sync_with_axis`` each other.'


class AttachError(GridlockError, KeyError):
    'No such axis or series id is registered.'


class UnknownResolution(GridlockError, KeyError):
    '''
    Requested data set key is not a (coarser then native) resolution
    of the series.

    '''
