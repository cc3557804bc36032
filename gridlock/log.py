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
Log like a lumberjack!

'''
import logging
import json

import colorlog
from pygments import (
    highlight,
    lexers,
    formatters,
)

# Makes it so we only see the full module name when using ``__name__``
# without the extra "gridlock." prefix.
_proj_name: str = 'gridlock'

LOG_FORMAT: str = (
    '%(log_color)s{%(levelname)s}%(reset)s '
    '%(asctime)s.%(msecs)03d '
    '%(bold_white)s%(name)s%(reset)s:%(lineno)d '
    '%(message)s'
)
DATE_FORMAT: str = '%H:%M:%S'

STD_PALETTE: dict[str, str] = {
    'DEBUG': 'white',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'bold_red',
}


def get_logger(
    name: str | None = None,

) -> logging.Logger:
    '''
    Return the package log or a sub-log for `name` if provided.

    '''
    log: logging.Logger = logging.getLogger(_proj_name)
    if (
        name
        and name != _proj_name
    ):
        # strip the project prefix so ``__name__`` reads as
        # ``<subsys>`` under our root logger.
        sub: str = name.removeprefix(f'{_proj_name}.')
        log = log.getChild(sub)

    return log


def get_console_log(
    level: str | None = None,
    name: str | None = None,

) -> logging.Logger:
    '''
    Get the package logger and enable a handler which writes to stderr.

    Only one handler is ever installed on the project root logger no
    matter how many times this is called; subsequent calls only
    (maybe) adjust the level.

    '''
    log = get_logger(name)
    if not level:
        return log

    root: logging.Logger = logging.getLogger(_proj_name)
    root.setLevel(level.upper())

    if not any(
        isinstance(h.formatter, colorlog.ColoredFormatter)
        for h in root.handlers
    ):
        handler = colorlog.StreamHandler()
        handler.setFormatter(
            colorlog.ColoredFormatter(
                LOG_FORMAT,
                datefmt=DATE_FORMAT,
                log_colors=STD_PALETTE,
            )
        )
        root.addHandler(handler)

    return log


def colorize_json(
    data: dict | list,
    style='algol_nu',
):
    '''
    Colorize json output using ``pygments``.

    '''
    formatted_json = json.dumps(
        data,
        sort_keys=True,
        indent=4,
    )
    return highlight(
        formatted_json,
        lexers.JsonLexer(),

        # likeable styles: algol_nu, tango, monokai
        formatters.TerminalTrueColorFormatter(style=style)
    )
