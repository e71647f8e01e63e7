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
Logging functions
"""
import logging
import platform
import string
import sys
import os
from typing import Optional
from enum import Enum

dir_path = os.path.dirname(os.path.realpath(__file__))
BASE_PATH = os.path.join(dir_path, os.pardir, os.pardir)
LOGGER_NAME = 'FFSGEN_LOGGER'


class level(Enum):
    DEBUG = 10
    HAL = 12
    VERBOSE = 13
    INFO = 20
    GOOD = 21
    ERROR = 40


class ffsgenFilter(logging.Filter):
    def __init__(self, name: str = '') -> None:
        super().__init__(name)

    def filter(self, record):
        if record.levelno == level.ERROR.value:
            record.additional = 'ERROR: '
        elif record.levelno == level.GOOD.value:
            record.additional = '[+] '
        elif record.levelno == level.DEBUG.value:
            record.additional = '[*] [DEBUG] '
        elif record.levelno == level.VERBOSE.value:
            record.additional = '[*] [VERBOSE] '
        elif record.levelno == level.HAL.value:
            record.additional = '[*] [HAL] '
        else:
            record.additional = ''
        return True


class ffsgenLogFormatter(logging.Formatter):
    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, style='%') -> None:
        super().__init__(fmt, datefmt, style)
        self.infmt = fmt

    def format(self, record):
        if record.args:
            record.args = tuple()
        formatter = logging.Formatter(self.infmt)
        return formatter.format(record)


class ffsgenStreamFormatter(logging.Formatter):
    try:
        is_atty = sys.stdout.isatty()
    except AttributeError:
        is_atty = False
    # Respect https://no-color.org/ convention, and disable colorization
    # when the output is not a terminal (eg. redirection to a file)
    mPlatform = platform.system().lower()
    if is_atty and os.getenv('NO_COLOR') is None and (("windows" == mPlatform) or "linux" == mPlatform):
        if mPlatform == 'windows':
            _ = os.system('color')
        colors = {
            'GREY': '\033[90m',
            'RED': '\033[91m',
            'GREEN': '\033[92m',
            'BLUE': '\033[94m',
            'WHITE': '\033[97m',
            'END': '\033[0m'}
    else:
        colors = {}

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, style='%') -> None:
        super().__init__(fmt, datefmt, style)
        self.infmt = fmt

    def format(self, record):
        if record.levelno == level.DEBUG.value:
            color = 'BLUE'
        elif record.levelno in [level.VERBOSE.value, level.HAL.value]:
            color = 'GREY'
        elif record.levelno == level.GOOD.value:
            color = 'GREEN'
        elif record.levelno == level.ERROR.value:
            color = 'RED'
        else:
            color = 'WHITE'
        if record.args:
            if record.args[0] is not None and record.args[0] in self.colors:
                color = record.args[0]
            record.args = tuple()
        if color in self.colors:
            log_fmt = f'{self.colors[color]}{self.infmt}{self.colors["END"]}'
        else:
            log_fmt = self.infmt
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


class Logger:
    """Class for logging to console and text file."""

    def __init__(self):
        """The Constructor."""
        self.logfile = None
        self.LOG_PATH = os.path.join(BASE_PATH, "logs")
        self.logstream = logging.StreamHandler(sys.stdout)
        self.ffsgenLogger = logging.getLogger(LOGGER_NAME)
        self.ffsgenLogger.setLevel(logging.INFO)
        if not self.ffsgenLogger.handlers:
            self.ffsgenLogger.addHandler(self.logstream)
        if not self.ffsgenLogger.filters:
            self.ffsgenLogger.addFilter(ffsgenFilter(LOGGER_NAME))
        self.ffsgenLogger.propagate = False
        logging.addLevelName(level.VERBOSE.value, level.VERBOSE.name)
        logging.addLevelName(level.HAL.value, level.HAL.name)
        streamFormatter = ffsgenStreamFormatter('%(additional)s%(message)s')
        self.logstream.setFormatter(streamFormatter)
        self.logFormatter = ffsgenLogFormatter('%(additional)s%(message)s')

    def log(self, text: str, level: level = level.INFO, color: Optional[str] = None) -> None:
        """Sends plain text to logging."""
        self.ffsgenLogger.log(level.value, text, color)

    def log_verbose(self, text: str) -> None:
        """Logs a Verbose message"""
        self.log(text, level.VERBOSE)

    def log_hal(self, text: str) -> None:
        """Logs an encoder (HAL) message"""
        self.log(text, level.HAL)

    def log_debug(self, text: str) -> None:
        """Logs a debug message"""
        self.log(text, level.DEBUG)

    def log_error(self, text: str) -> None:
        """Logs an Error message"""
        self.log(text, level.ERROR)

    def log_good(self, text: str) -> None:
        """Logs a message, if colors available, displays in green."""
        self.log(text, level.GOOD)

    def log_heading(self, text: str) -> None:
        """Logs a heading message."""
        self.log(text, level.INFO, 'BLUE')

    def set_log_level(self, verbose: bool, hal: bool, debug: bool, vverbose: bool) -> None:
        self.VERBOSE = True if verbose or vverbose else self.VERBOSE
        self.HAL = True if hal or vverbose else self.HAL
        self.DEBUG = True if debug or vverbose else self.DEBUG
        self.setlevel()

    def setlevel(self) -> None:
        if self.DEBUG:
            self.ffsgenLogger.setLevel(level.DEBUG.value)
        elif self.HAL:
            self.ffsgenLogger.setLevel(level.HAL.value)
        elif self.VERBOSE:
            self.ffsgenLogger.setLevel(level.VERBOSE.value)
        else:
            self.ffsgenLogger.setLevel(level.INFO.value)

    def create_logs_folder(self) -> bool:
        if not os.path.exists(self.LOG_PATH):
            try:
                os.mkdir(self.LOG_PATH)
            except OSError:
                print('Unable to create logs folder')
                return False
        return True

    def set_log_file(self, name: str, tologpath: bool = True) -> None:
        """Sets the log file for the output."""
        # Close current log file if it's opened
        self.disable()

        # specifying empty string (name='') effectively disables logging to file
        if name and (not tologpath or self.create_logs_folder()):
            if tologpath:
                self.LOG_FILE_NAME = os.path.join(self.LOG_PATH, name)
            else:
                self.LOG_FILE_NAME = name
            try:
                self.logfile = logging.FileHandler(filename=self.LOG_FILE_NAME, mode='a')
            except OSError:
                print(f'WARNING: Could not open log file: {self.LOG_FILE_NAME}')
            else:
                self.ffsgenLogger.addHandler(self.logfile)
                self.logfile.setFormatter(self.logFormatter)
                self.LOG_TO_FILE = True
                self.ffsgenLogger.removeHandler(self.logstream)
        else:
            self.ffsgenLogger.addHandler(self.logstream)

    def close(self) -> None:
        """Closes the log file."""
        if self.logfile:
            try:
                self.ffsgenLogger.removeHandler(self.logfile)
                self.logfile.close()
                self.logstream.flush()
            except OSError:
                print('WARNING: Could not close log file')
            finally:
                self.logfile = None

    def remove_ffsgen_logger(self) -> None:
        while self.ffsgenLogger.filters:
            self.ffsgenLogger.removeFilter(self.ffsgenLogger.filters[0])
        while self.ffsgenLogger.handlers:
            self.ffsgenLogger.removeHandler(self.ffsgenLogger.handlers[0])

    def disable(self) -> None:
        """Disables the logging to file and closes the file if any."""
        self.LOG_TO_FILE = False
        self.LOG_FILE_NAME = ''
        self.close()

    VERBOSE: bool = False
    HAL: bool = False
    DEBUG: bool = False

    LOG_TO_FILE: bool = False
    LOG_FILE_NAME: str = ''


_logger = Logger()


def logger() -> Logger:
    """Returns a Logger instance."""
    return _logger


##################################################################################
# Hex dump functions
##################################################################################

def dump_buffer_bytes(arr: bytes, length: int = 8) -> str:
    """Dumps the buffer (bytes, bytearray) with ASCII"""
    output = []
    num_string = []
    ascii_string = []
    index = 1
    for c in arr:
        num_string += [f'{c:02X} ']
        if not (chr(c) in string.printable) or (chr(c) in string.whitespace):
            ascii_string += [' ']
        else:
            ascii_string += [chr(c)]
        if (index % length) == 0:
            num_string += ['| ']
            num_string += ascii_string
            output.append(''.join(num_string))
            ascii_string = []
            num_string = []
        index += 1
    if 0 != (len(arr) % length):
        num_string += [(length - len(arr) % length) * 3 * ' ']
        num_string += ['| ']
        num_string += ascii_string
        output.append(''.join(num_string))
    return '\n'.join(output)
