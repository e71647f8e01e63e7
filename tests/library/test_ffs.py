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
To execute: python[3] -m unittest tests.library.test_ffs
"""

import struct
import unittest

import ffsgen.library.uefi.ffs as ffs
from ffsgen.library.exceptions import FfsConfigError
from ffsgen.library.uefi.guid import get_guid_bin
from ffsgen.library.uefi.section import encode_section, join_sections

GUID = '11111111-2222-3333-4444-555555555555'


def header_sum(image: bytes, header_size: int = 24) -> int:
    # IntegrityCheck.File and State are excluded from the header checksum
    header = bytearray(image[:header_size])
    header[17] = 0
    header[23] = 0
    return sum(header) & 0xFF


class TestChecksum(unittest.TestCase):

    def test_fv_checksum8(self):
        for buffer in [b'', b'\x01', b'\xff\xff', bytes(range(256)), b'\x12\x34\x56']:
            with self.subTest(buffer=buffer):
                self.assertEqual((sum(buffer) + ffs.FvChecksum8(buffer)) & 0xFF, 0)

    def test_fv_sum8(self):
        self.assertEqual(ffs.FvSum8(b'\x80\x80\x01'), 0x01)


class TestFileTypes(unittest.TestCase):

    def test_get_file_type(self):
        self.assertEqual(ffs.get_file_type('EFI_FV_FILETYPE_PEIM'), 0x06)
        self.assertEqual(ffs.get_file_type('fv_mm'), 0x0A)
        self.assertEqual(ffs.get_file_type('SMM'), 0x0A)
        self.assertEqual(ffs.get_file_type('SMM_CORE'), 0x0D)
        self.assertEqual(ffs.get_file_type('FVIMAGE'), 0x0B)
        self.assertEqual(ffs.get_file_type('FV_IMAGE'), 0x0B)
        self.assertEqual(ffs.get_file_type('EFI_FV_FILETYPE_FIRMWARE_VOLUME_IMAGE'), 0x0B)
        self.assertEqual(ffs.get_file_type(0x07), 0x07)

    def test_unknown_file_type(self):
        with self.assertRaises(FfsConfigError):
            ffs.get_file_type('BOOTLOADER')
        with self.assertRaises(FfsConfigError):
            ffs.get_file_type(0x10)

    def test_default_attributes(self):
        for name in ffs.FILE_TYPES:
            self.assertEqual(ffs.get_file_type_attributes(name), ffs.FFS_ATTRIB_CHECKSUM)

    def test_file_state(self):
        self.assertEqual(ffs.file_state(True), 0xF8)
        self.assertEqual(ffs.file_state(False), 0x07)


class TestAssembleFfsFile(unittest.TestCase):

    def setUp(self):
        self.sections = [encode_section('PE32', b'MZ' + bytes(range(61))), encode_section('RAW', b'\x01\x02')]
        self.body = join_sections(self.sections)

    def test_header_layout(self):
        image = ffs.assemble_ffs_file(GUID, 'FREEFORM', self.sections)
        Name, IntegrityCheck, Type, Attributes, Size, State = struct.unpack_from(ffs.EFI_FFS_FILE_HEADER, image)
        self.assertEqual(Name, get_guid_bin(GUID))
        self.assertEqual(Type, ffs.EFI_FV_FILETYPE_FREEFORM)
        self.assertEqual(Attributes, ffs.FFS_ATTRIB_CHECKSUM)
        self.assertEqual(int.from_bytes(Size, 'little'), len(image))
        self.assertEqual(len(image), 24 + len(self.body))
        self.assertEqual(State, 0xF8)
        self.assertEqual(image[24:], self.body)

    def test_header_checksum(self):
        image = ffs.assemble_ffs_file(GUID, 'DRIVER', self.sections)
        self.assertEqual(header_sum(image), 0)

    def test_data_checksum(self):
        image = ffs.assemble_ffs_file(GUID, 'DRIVER', self.sections)
        self.assertEqual((sum(image[24:]) + image[17]) & 0xFF, 0)

    def test_fixed_checksum(self):
        image = ffs.assemble_ffs_file(GUID, 'DRIVER', self.sections, attributes=0)
        self.assertEqual(image[17], ffs.FFS_FIXED_CHECKSUM)
        self.assertEqual(image[19], 0)
        self.assertEqual(header_sum(image), 0)

    def test_erase_polarity_zero(self):
        image = ffs.assemble_ffs_file(GUID, 'DRIVER', self.sections, erase_polarity=False)
        self.assertEqual(image[23], 0x07)
        self.assertEqual(header_sum(image), 0)

    def test_no_sections(self):
        with self.assertRaises(FfsConfigError):
            ffs.assemble_ffs_file(GUID, 'DRIVER', [])

    def test_unknown_type(self):
        with self.assertRaises(FfsConfigError):
            ffs.assemble_ffs_file(GUID, 'NOT_A_TYPE', self.sections)

    def test_large_file(self):
        sections = [encode_section('RAW', bytes(0xFFFFF0))]
        image = ffs.assemble_ffs_file(GUID, 'FREEFORM', sections)
        Name, IntegrityCheck, Type, Attributes, Size, State, ExtendedSize = struct.unpack_from(ffs.EFI_FFS_FILE_HEADER2, image)
        self.assertTrue(Attributes & ffs.FFS_ATTRIB_LARGE_FILE)
        self.assertEqual(Size, b'\x00\x00\x00')
        self.assertEqual(ExtendedSize, len(image))
        self.assertEqual(ExtendedSize, 32 + 0xFFFFF4)
        self.assertEqual(header_sum(image, 32), 0)
        self.assertEqual(image[17], ffs.FvChecksum8(image[32:]))

    def test_largest_standard_file(self):
        sections = [encode_section('RAW', bytes(0xFFFFFF - 24 - 4))]
        image = ffs.assemble_ffs_file(GUID, 'FREEFORM', sections)
        self.assertEqual(image[20:23], b'\xff\xff\xff')
        self.assertEqual(image[19] & ffs.FFS_ATTRIB_LARGE_FILE, 0)
        self.assertEqual(len(image), 0xFFFFFF)


if __name__ == '__main__':
    unittest.main()
