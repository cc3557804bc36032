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
CLI for poking at the scale and grouping machinery.

'''
import json
import os
from math import ceil
from pathlib import Path
import sys
from typing import get_args

import click
import msgspec
import numpy as np
import pendulum

from .log import (
    get_console_log,
    get_logger,
    colorize_json,
)
from . import config
from ._errors import GridlockError
from ._grouping import (
    Rule,
    aggregate,
)
from ._intervals import (
    TimeInterval,
    add_time,
    round_time,
    to_datetime,
)
from ._nice import compute
from ._time_axis import DateAxis


log = get_logger('cli')


def _echo(
    data: dict | list,
) -> None:
    if sys.stdout.isatty():
        click.echo(colorize_json(data))
    else:
        click.echo(json.dumps(data, indent=4))


def _parse_ts(
    value: str,
    tz: str,
) -> int:
    '''
    Epoch-ms int or any ISO 8601-ish date-time string.

    '''
    try:
        return int(value)
    except ValueError:
        pass

    try:
        dt = pendulum.parse(value, tz=tz)
    except ValueError as err:
        raise click.BadParameter(f'Invalid timestamp {value!r}') from err

    return round(dt.timestamp() * 1000)


def _interval_cb(
    ctx: click.Context,
    param: click.Parameter,
    value: str,
) -> TimeInterval:
    try:
        return TimeInterval.parse(value)
    except ValueError as err:
        raise click.BadParameter(str(err)) from err


@click.group(context_settings=config._context_defaults)
@click.option('--ll', 'loglevel', default='warning', help='Logging level')
@click.option('--configdir', '-c', help='Configuration directory')
@click.pass_context
def cli(
    ctx: click.Context,
    loglevel: str,
    configdir: str | None,

) -> None:
    if configdir is not None:
        assert os.path.isdir(configdir), f"`{configdir}` is not a valid path"
        config._override_config_dir(configdir)

    ctx.ensure_object(dict)
    ctx.obj.update({
        'loglevel': loglevel,
        'log': get_console_log(loglevel),
        'confdir': config.get_conf_dir(),
    })


@cli.command()
@click.argument('min_', metavar='MIN', type=float)
@click.argument('max_', metavar='MAX', type=float)
@click.option('--grid-count', '-g', default=10., help='Target grid line count')
@click.option('--strict', is_flag=True, help='Keep the exact bounds')
@click.option('--log', 'logarithmic', is_flag=True, help='Log10 scale')
@click.option('--max-precision', type=int, default=None)
@click.option('--treat-zero-as', type=float, default=None)
def scale(
    min_: float,
    max_: float,
    grid_count: float,
    strict: bool,
    logarithmic: bool,
    max_precision: int | None,
    treat_zero_as: float | None,
) -> None:
    '''
    Compute a nice scale for the range ``MIN`` to ``MAX``.

    '''
    try:
        state = compute(
            min_,
            max_,
            grid_count,
            strict=strict,
            max_precision=max_precision,
            logarithmic=logarithmic,
            treat_zero_as=treat_zero_as,
        )
    except ValueError as err:
        raise click.UsageError(str(err)) from err

    _echo(state.to_dict() | {'cells': state.cells})


@cli.command(name='round')
@click.argument('timestamp')
@click.argument('interval', callback=_interval_cb)
@click.option('--location', '-l', default=0., help='Offset within the cell')
@click.option('--tz', default='UTC', help='Time zone name')
@click.option('--first-day', default=1, help='First day of week, sunday=0')
def round_(
    timestamp: str,
    interval: TimeInterval,
    location: float,
    tz: str,
    first_day: int,
) -> None:
    '''
    Round ``TIMESTAMP`` down to the start of its ``INTERVAL`` cell.

    '''
    ts: int = _parse_ts(timestamp, tz)
    start: int = round_time(
        ts,
        interval.unit,
        interval.count,
        first_day_of_week=first_day,
        tz=tz,
    )
    end: int = add_time(start, interval.unit, interval.count, tz=tz)
    value: float = start + (end - start) * location
    _echo({
        'input': ts,
        'interval': interval.code,
        'ms': value,
        'iso': to_datetime(value, tz).isoformat(),
        'cell_ms': end - start,
    })


@cli.command()
@click.argument('span_ms', type=float)
@click.option('--budget', '-n', type=int, default=None, help='Max buckets')
@click.option(
    '--base',
    '-b',
    default='1m',
    callback=_interval_cb,
    help='Native data interval',
)
def resolution(
    span_ms: float,
    budget: int | None,
    base: TimeInterval,
) -> None:
    '''
    Select the data resolution for a visible span of ``SPAN_MS``.

    '''
    axis = DateAxis(
        'cli',
        base_interval=base,
        group_data=True,
    )
    ivl: TimeInterval = axis.select_resolution(span_ms, budget)
    _echo({
        'interval': ivl.code,
        'key': ivl.key,
        'buckets': ceil(span_ms / ivl.duration),
        'budget': budget or axis.settings.group_count,
    })


def _load_csv(
    path: Path,
) -> np.ndarray:
    with path.open() as fp:
        header: list[str] = [
            name.strip() for name in fp.readline().split(',')
        ]

    if not header or header[0] != 'time':
        raise click.UsageError(
            f'{path} must have a `time,<fields..>` header row'
        )

    dtype = np.dtype(
        [('time', 'i8')] + [(name, 'f8') for name in header[1:]]
    )
    return np.atleast_1d(
        np.loadtxt(
            path,
            delimiter=',',
            skiprows=1,
            dtype=dtype,
        )
    )


@cli.command()
@click.argument(
    'csv',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument('interval', callback=_interval_cb)
@click.option(
    '--rule',
    '-r',
    multiple=True,
    help='Per field aggregation rule as `field=rule`',
)
@click.option('--tz', default='UTC', help='Time zone name')
@click.option('--first-day', default=1, help='First day of week, sunday=0')
def group(
    csv: Path,
    interval: TimeInterval,
    rule: tuple[str, ...],
    tz: str,
    first_day: int,
) -> None:
    '''
    Aggregate the ``time,<fields..>`` rows of ``CSV`` into ``INTERVAL``
    buckets.

    '''
    names: tuple[str, ...] = get_args(Rule)
    rules: dict[str, str] = {}
    for entry in rule:
        field, _, name = entry.partition('=')
        if name not in names:
            raise click.BadParameter(
                f'Invalid rule {entry!r}, expected one of {names}'
            )
        rules[field] = name

    raw = _load_csv(csv)
    try:
        buckets = aggregate(
            raw,
            interval,
            rules=rules,
            tz=tz,
            first_day_of_week=first_day,
        )
    except ValueError as err:
        raise click.UsageError(str(err)) from err

    _echo([
        {name: row[name].item() for name in buckets.dtype.names}
        for row in buckets
    ])


@cli.command()
@click.argument('name')
@click.option(
    '--path',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Alternate `axes.toml`',
)
def axis(
    name: str,
    path: Path | None,
) -> None:
    '''
    Show the resolved settings of the ``[axis.NAME]`` config table.

    '''
    try:
        settings = config.load_axis_settings(name, path=path)
    except GridlockError as err:
        raise click.ClickException(str(err)) from err

    _echo(msgspec.to_builtins(settings))
