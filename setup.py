#!/usr/bin/env python3
# FFSGEN: UEFI Firmware File Builder
# Copyright (c) 2010-2021, Intel Corporation
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; Version 2.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA  02110-1301, USA.
#


"""
Setup module to install ffsgen package via setuptools
"""

import os
from setuptools import setup, find_packages, __version__ as _sutver

if _sutver and int(_sutver.split('.')[0]) < 62:
    raise RuntimeError("Setuptools version must be greater than 62.0.0. Please upgrade using 'pip install setuptools --upgrade'")


def long_description():
    with open('README') as readme:
        return readme.read()


def version():
    with open(os.path.join('ffsgen', 'VERSION')) as version_file:
        return version_file.read().strip()


package_data = {
    # Include any configuration file.
    'ffsgen': ['*VERSION*', 'options/*.ini'],
}
install_requires = ['brotli']

setup(
    name='ffsgen',
    version=version(),
    description='FFSGEN: UEFI Firmware File Builder',
    author='FFSGEN Team',
    license='GNU General Public License v2 (GPLv2)',
    platforms=['any'],
    long_description=long_description(),

    classifiers=[
        'Development Status :: 5 - Production/Stable',
        'Environment :: Console',
        'License :: OSI Approved :: GNU General Public License v2 (GPLv2)',
        'Natural Language :: English',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Software Development :: Build Tools',
        'Topic :: System :: Hardware'
    ],

    packages=find_packages(exclude=['tests.*', 'tests']),
    package_data=package_data,
    install_requires=install_requires,
    python_requires='>=3.8',

    py_modules=['ffsgen_util'],
    entry_points={
        'console_scripts': [
            'ffsgen_util=ffsgen_util:main',
        ],
    },
    test_suite='tests',
)
