# FFSGEN: UEFI Firmware File Builder
# Copyright (c) 2023, Intel Corporation
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
To execute: python[3] -m unittest tests.utilcmd.ffs_cmd.test_ffs_cmd
"""

import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from ffsgen.command import ExitCode
from ffsgen.library.uefi.compression import unwrap_section
from ffsgen.library.uefi.guid import get_guid_bin, guid_from_name
from ffsgen.library.uefi.section import encode_section
from tests.utilcmd.run_ffsgen_util import setup_run_destroy_util, setup_run_destroy_util_get_log_output

GUID = '11111111-2222-3333-4444-555555555555'
PE32_DATA = b'MZ' + b'\x90' * 126


class TestFfsUtilcmd(unittest.TestCase):

    def setUp(self) -> None:
        self.temp_dir = tempfile.mkdtemp()
        self.efi_file = self.path('MyDriver.efi')
        with open(self.efi_file, 'wb') as f:
            f.write(PE32_DATA)
        self.output = self.path('MyDriver.ffs')

    def tearDown(self) -> None:
        shutil.rmtree(self.temp_dir)

    def path(self, name: str) -> str:
        return os.path.join(self.temp_dir, name)

    def read_output(self) -> bytes:
        with open(self.output, 'rb') as f:
            return f.read()

    def test_create(self) -> None:
        retval = setup_run_destroy_util('ffs', f'create {self.output} {self.efi_file} --name MyDriver --type DRIVER --version 1.0 --depex TRUE')
        self.assertEqual(retval, ExitCode.OK)
        image = self.read_output()
        self.assertEqual(image[:16], guid_from_name('MyDriver').bytes_le)
        self.assertEqual(image[18], 0x07)
        self.assertEqual(image[24:24 + len(PE32_DATA) + 4], encode_section('PE32', PE32_DATA))

    def test_create_compressed(self) -> None:
        retval = setup_run_destroy_util('ffs', f'create {self.output} {self.efi_file} --guid {GUID} --compress')
        self.assertEqual(retval, ExitCode.OK)
        image = self.read_output()
        self.assertEqual(image[:16], get_guid_bin(GUID))
        self.assertEqual(image[27], 0x02)
        self.assertEqual(unwrap_section(image[24:]), encode_section('PE32', PE32_DATA))

    def test_create_brotli(self) -> None:
        retval = setup_run_destroy_util('ffs', f'create {self.output} {self.efi_file} --guid {GUID} --compress brotli')
        self.assertEqual(retval, ExitCode.OK)
        self.assertEqual(unwrap_section(self.read_output()[24:]), encode_section('PE32', PE32_DATA))

    def test_create_section_argument(self) -> None:
        raw_file = self.path('data.dat')
        with open(raw_file, 'wb') as f:
            f.write(b'\x01\x02\x03\x04')
        retval = setup_run_destroy_util('ffs', f'create {self.output} --section RAW:{raw_file} --guid {GUID} --type FREEFORM')
        self.assertEqual(retval, ExitCode.OK)
        self.assertEqual(self.read_output()[24:], b'\x08\x00\x00\x19\x01\x02\x03\x04')

    def test_create_fixed_checksum(self) -> None:
        retval = setup_run_destroy_util('ffs', f'create {self.output} {self.efi_file} --guid {GUID} --fixed-checksum')
        self.assertEqual(retval, ExitCode.OK)
        image = self.read_output()
        self.assertEqual(image[17], 0xAA)
        self.assertEqual(image[19], 0x00)

    def test_create_auto(self) -> None:
        depex_file = self.path('MyDriver.pei.depex')
        with open(depex_file, 'wb') as f:
            f.write(b'\x06\x08')
        retval = setup_run_destroy_util('ffs', f'create {self.output} {self.efi_file} {depex_file} --auto --name MyPeim')
        self.assertEqual(retval, ExitCode.OK)
        image = self.read_output()
        self.assertEqual(image[18], 0x06)

    def test_create_malformed_guid(self) -> None:
        retval, log = setup_run_destroy_util_get_log_output('ffs', f'create {self.output} {self.efi_file} --guid 1111-2222',
                                                            logging_functions_to_capture=['log_error'])
        self.assertEqual(retval, ExitCode.ERROR)
        self.assertIn('1111-2222', log)
        self.assertFalse(os.path.exists(self.output))

    def test_create_missing_input(self) -> None:
        retval = setup_run_destroy_util('ffs', f'create {self.output} {self.path("missing.efi")} --guid {GUID}')
        self.assertEqual(retval, ExitCode.ERROR)
        self.assertFalse(os.path.exists(self.output))

    def test_create_unreadable_section_input(self) -> None:
        raw_file = self.path('data.dat')
        with open(raw_file, 'wb') as f:
            f.write(b'\x01\x02\x03\x04')
        builtin_open = open

        def open_denied(file, *args, **kwargs):
            if file == raw_file:
                raise PermissionError(13, 'Permission denied', file)
            return builtin_open(file, *args, **kwargs)

        with patch('builtins.open', side_effect=open_denied):
            retval, log = setup_run_destroy_util_get_log_output('ffs', f'create {self.output} --section RAW:{raw_file} --guid {GUID}',
                                                                logging_functions_to_capture=['log_error'])
        self.assertEqual(retval, ExitCode.ERROR)
        self.assertIn('data.dat', log)
        self.assertFalse(os.path.exists(self.output))

    def test_create_unknown_suffix(self) -> None:
        dll_file = self.path('MyDriver.dll')
        with open(dll_file, 'wb') as f:
            f.write(PE32_DATA)
        retval, log = setup_run_destroy_util_get_log_output('ffs', f'create {self.output} {dll_file} --guid {GUID} --auto',
                                                            logging_functions_to_capture=['log_error'])
        self.assertEqual(retval, ExitCode.ERROR)
        self.assertIn('MyDriver.dll', log)
        self.assertFalse(os.path.exists(self.output))

    def test_create_unknown_type(self) -> None:
        retval = setup_run_destroy_util('ffs', f'create {self.output} {self.efi_file} --guid {GUID} --type BOOTLOADER')
        self.assertEqual(retval, ExitCode.ERROR)
        self.assertFalse(os.path.exists(self.output))

    def test_guid(self) -> None:
        retval, log = setup_run_destroy_util_get_log_output('ffs', 'guid MyDriver')
        self.assertEqual(retval, ExitCode.OK)
        self.assertIn(str(guid_from_name('MyDriver')).upper(), log)

    def test_types(self) -> None:
        retval, log = setup_run_destroy_util_get_log_output('ffs', 'types')
        self.assertEqual(retval, ExitCode.OK)
        self.assertIn('DRIVER', log)
        self.assertIn('PE32', log)


if __name__ == '__main__':
    unittest.main()
