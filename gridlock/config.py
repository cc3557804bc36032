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
Axis configuration (files) mgmt.

"""
from copy import deepcopy
from functools import lru_cache
import os
from pathlib import Path
from typing import (
    Any,
    Callable,
    Literal,
    MutableMapping,
)

import click
import msgspec
import tomlkit
try:
    import tomllib
except ModuleNotFoundError:
    import tomli as tomllib

from ._errors import ConfigurationError
from ._intervals import TimeInterval
from .log import get_logger

log = get_logger('config')


_config_dir: Path = Path(
    os.environ.get('GRIDLOCK_CONFIG_DIR')
    or click.get_app_dir('gridlock')
)

_conf_names: set[str] = {
    'axes',  # per-axis settings tables
}

_defaults_path: Path = Path(__file__).parent / '_defaults.toml'

# settings fields holding one or many intervals written as
# short codes (eg. '5m') in TOML.
_interval_fields: set[str] = {
    'base_interval',
    'group_interval',
}
_intervals_fields: set[str] = {
    'group_intervals',
    'grid_intervals',
}

AxisKind = Literal['value', 'date']

_context_defaults = dict(
    help_option_names=['-h', '--help'],
)


def _override_config_dir(
    path: str | Path,
) -> None:
    global _config_dir
    _config_dir = Path(path)


def _conf_fn_w_ext(
    name: str,
) -> str:
    # change this if we ever change the config file format.
    return f'{name}.toml'


def get_conf_dir() -> Path:
    '''
    Return the user configuration directory ``Path``
    on the local filesystem.

    '''
    return _config_dir


def get_conf_path(
    conf_name: str = 'axes',

) -> Path:
    '''
    Return the top-level default config path, normally under
    ``~/.config/gridlock`` on linux, for a given ``conf_name``.

    '''
    if conf_name not in _conf_names:
        raise ConfigurationError(
            f'Unknown config name {conf_name!r}, '
            f'expected one of {_conf_names}'
        )

    fn = _conf_fn_w_ext(conf_name)
    return _config_dir / Path(fn)


def load(
    # NOTE: always appended with .toml suffix
    conf_name: str = 'axes',
    path: Path | None = None,

    decode: Callable[
        [str,],
        MutableMapping,
    ] = tomllib.loads,

    touch_if_dne: bool = False,

) -> tuple[dict, Path]:
    '''
    Load config file by name.

    If desired config is not in the top level user config dir then
    pass the ``path: Path`` explicitly.

    '''
    path: Path = path or get_conf_path(conf_name)

    if not path.is_file():
        if not touch_if_dne:
            raise ConfigurationError(f'Config file {path} does not exist')

        path.parent.mkdir(
            parents=True,
            exist_ok=True,
        )
        with path.open(mode='x'):
            pass

    try:
        with path.open(mode='r') as fp:
            config: dict = decode(fp.read())

    except tomllib.TOMLDecodeError as err:
        raise ConfigurationError(
            f'Invalid TOML in {path}:\n{err}'
        ) from err

    log.debug(f'Read config file {path}')
    return config, path


def write(
    config: dict,  # toml config as dict

    name: str | None = None,
    path: Path | None = None,
    fail_empty: bool = True,

) -> None:
    '''
    Write a config to disk preserving any existing style.

    '''
    if name:
        path: Path = path or get_conf_path(name)

    if path is None:
        raise ValueError('One of `name` or `path` is required')

    dirname: Path = path.parent
    if not dirname.is_dir():
        log.debug(f'Creating config dir {dirname}')
        dirname.mkdir(parents=True)

    if (
        not config
        and fail_empty
    ):
        raise ValueError(
            "Watch out you're trying to write a blank config!"
        )

    log.debug(
        f'Writing config `{name}` file to:\n'
        f'{path}'
    )
    with path.open(mode='w') as fp:
        tomlkit.dump(  # preserve style on write B)
            config,
            fp,
        )


@lru_cache
def _load_defaults() -> dict:
    return tomllib.loads(_defaults_path.read_text())


def load_defaults() -> dict:
    '''
    Return (a copy of) the packaged ``_defaults.toml`` tables.

    '''
    return deepcopy(_load_defaults())


def date_defaults() -> dict:
    '''
    The packaged ``[date]`` table with all intervals parsed.

    '''
    return _parse_intervals(load_defaults()['date'])


def _parse_intervals(
    table: dict[str, Any],
) -> dict[str, Any]:
    '''
    Convert any short code (or table) interval entries to
    ``TimeInterval``s.

    '''
    out: dict[str, Any] = dict(table)
    try:
        for key in _interval_fields & out.keys():
            if out[key] is not None:
                out[key] = TimeInterval.parse(out[key])

        for key in _intervals_fields & out.keys():
            out[key] = [TimeInterval.parse(raw) for raw in out[key]]

    except (
        ValueError,
        TypeError,
    ) as err:
        raise ConfigurationError(
            f'Invalid interval in settings table:\n{table}'
        ) from err

    return out


def axis_settings(
    section: dict | None = None,
    kind: AxisKind = 'value',
    **overrides,

):
    '''
    Convert a (TOML) settings table plus any ``overrides`` into an
    ``AxisSettings`` or ``DateAxisSettings``.

    '''
    # NOTE: deferred to avoid a cycle, the axis types read the
    # packaged defaults from this module.
    from ._axis import AxisSettings
    from ._time_axis import DateAxisSettings

    table: dict = _parse_intervals({**(section or {}), **overrides})
    table.pop('kind', None)

    settings_type = DateAxisSettings if kind == 'date' else AxisSettings

    # ``msgspec.convert()`` wants plain tables for nested structs
    for key, value in table.items():
        if isinstance(value, TimeInterval):
            table[key] = value.to_dict()
        elif (
            isinstance(value, list)
            and value
            and isinstance(value[0], TimeInterval)
        ):
            table[key] = [ivl.to_dict() for ivl in value]

    try:
        return msgspec.convert(
            table,
            type=settings_type,
            strict=False,
        )
    except (
        msgspec.ValidationError,
        ValueError,
        TypeError,
    ) as err:
        raise ConfigurationError(
            f'Invalid {kind} axis settings:\n{err}'
        ) from err


def load_axis_settings(
    name: str,
    path: Path | None = None,
):
    '''
    Load the ``[axis.<name>]`` table from the user's ``axes.toml``
    (or ``path``). The table's ``kind`` key selects the settings
    type (default ``'value'``).

    '''
    conf, path = load('axes', path=path)
    try:
        section: dict = conf['axis'][name]
    except KeyError as ke:
        raise ConfigurationError(
            f'No `[axis.{name}]` table in {path}'
        ) from ke

    return axis_settings(
        section,
        kind=section.get('kind', 'value'),
    )
