#!/usr/bin/env python

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

from setuptools import setup, find_packages

with open('README.rst', encoding='utf-8') as f:
    readme = f.read()


setup(
    name="gridlock",
    version='0.1.0.alpha0.dev0',
    description='axis scaling and time-series grouping for charts.',
    long_description=readme,
    license='AGPLv3',
    author='the gridlock contributors',
    platforms=['linux'],
    packages=find_packages(include=['gridlock', 'gridlock.*']),
    package_data={
        'gridlock': ['_defaults.toml'],
    },
    entry_points={
        'console_scripts': [
            'gridlock = gridlock.cli:cli',
        ]
    },
    install_requires=[
        'tomli; python_version < "3.11"',  # fastest pure py reader
        'tomlkit',  # style preserving writer
        'click',
        'colorlog',
        'pygments',
        'msgspec>=0.18',  # performant structs, ``__post_init__``

        # numerics
        'pendulum',  # easier datetimes
        'bidict',  # 2 way map
        'numpy',
        'numba',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    tests_require=['pytest'],
    python_requires=">=3.10",
    keywords=[
        "charting",
        "axis",
        "time-series",
        "resampling",
    ],
    classifiers=[
        'Development Status :: 3 - Alpha',
        'License :: OSI Approved :: GNU Affero General Public License v3',
        'Operating System :: POSIX :: Linux',
        "Programming Language :: Python :: Implementation :: CPython",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: 3.10",
        'Intended Audience :: Science/Research',
        'Intended Audience :: Developers',
    ],
)
