# FFSGEN: UEFI Firmware File Builder
# Copyright (c) 2016, Google
# Copyright (c) 2019-2021, Intel Corporation
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


import traceback

from ffsgen.library.exceptions import FfsError
from ffsgen.library.logger import logger


class ExitCode:
    OK = 0
    WARNING = 2
    FAIL = 8
    ERROR = 16
    EXCEPTION = 32


class BaseCommand:

    def __init__(self, argv):
        self.argv = argv
        self.logger = logger()
        self.ExitCode = ExitCode.OK

    def run(self) -> None:
        try:
            self.func()
        except FfsError as err:
            self.logger.log_error(str(err))
            self.ExitCode = ExitCode.ERROR
        except Exception:
            self.logger.log_error('An error occured during the execution of the command!')
            self.logger.log_error('Please run with the debug option for further details')
            if logger().DEBUG:
                traceback.print_exc()
            self.ExitCode = ExitCode.EXCEPTION

    def set_up(self) -> None:
        pass

    def tear_down(self) -> None:
        pass

    def parse_arguments(self) -> None:
        raise NotImplementedError('sub class should overwrite the parse_arguments() method')
