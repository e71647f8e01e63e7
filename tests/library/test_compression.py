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
To execute: python[3] -m unittest tests.library.test_compression
"""

import struct
import unittest
from unittest.mock import patch

import ffsgen.library.uefi.compression as compression
from ffsgen.library.exceptions import CodecError, FfsConfigError, ParseError
from ffsgen.library.uefi.section import encode_section, get_section_size, join_sections, ui_section


class TestUefiCompression(unittest.TestCase):

    def setUp(self):
        self.data = b'\x4d\x5a' + b'firmware' * 64 + bytes(range(256))

    def test_lzma_header_carries_size(self):
        data = compression.UefiCompression().compress_efi_binary(self.data, compression.COMPRESSION_TYPE_LZMA)
        self.assertEqual(data[5:13], struct.pack('<Q', len(self.data)))

    def test_lzma_decompress(self):
        comp = compression.UefiCompression()
        data = comp.compress_efi_binary(self.data, compression.COMPRESSION_TYPE_LZMA)
        self.assertEqual(comp.decompress_efi_binary(data, compression.COMPRESSION_TYPE_LZMA), self.data)

    def test_brotli_header(self):
        data = compression.UefiCompression().compress_efi_binary(self.data, compression.COMPRESSION_TYPE_BROTLI)
        size, scratch = struct.unpack_from(compression.BROTLI_HEADER, data)
        self.assertEqual(size, len(self.data))
        self.assertEqual(scratch, compression.BROTLI_SCRATCH_SIZE)

    def test_brotli_decompress(self):
        comp = compression.UefiCompression()
        data = comp.compress_efi_binary(self.data, compression.COMPRESSION_TYPE_BROTLI)
        self.assertEqual(comp.decompress_efi_binary(data, compression.COMPRESSION_TYPE_BROTLI), self.data)

    def test_none(self):
        comp = compression.UefiCompression()
        self.assertEqual(comp.compress_efi_binary(self.data, compression.COMPRESSION_TYPE_NONE), self.data)

    def test_unknown_type(self):
        with self.assertRaises(CodecError):
            compression.UefiCompression().compress_efi_binary(self.data, 0x42)

    def test_corrupted_lzma(self):
        with self.assertRaises(CodecError):
            compression.UefiCompression().decompress_efi_binary(b'\xff' * 32, compression.COMPRESSION_TYPE_LZMA)

    def test_truncated_brotli(self):
        with self.assertRaises(CodecError):
            compression.UefiCompression().decompress_efi_binary(b'\x00' * 4, compression.COMPRESSION_TYPE_BROTLI)

    def test_codec_unavailable(self):
        with patch.dict(compression.modules, {'brotli': False}):
            with self.assertRaises(CodecError):
                compression.UefiCompression().compress_efi_binary(self.data, compression.COMPRESSION_TYPE_BROTLI)


class TestWrapSections(unittest.TestCase):

    def setUp(self):
        self.sections = [encode_section('PE32', b'MZ' + b'\x90' * 301), ui_section('MyDriver')]

    def test_get_compression_type(self):
        self.assertEqual(compression.get_compression_type('LZMA'), compression.COMPRESSION_TYPE_LZMA)
        self.assertEqual(compression.get_compression_type('brotli'), compression.COMPRESSION_TYPE_BROTLI)
        with self.assertRaises(FfsConfigError):
            compression.get_compression_type('zip')

    def test_wrap_lzma(self):
        wrapped = compression.wrap_sections(self.sections, 'lzma')
        self.assertEqual(len(wrapped), 1)
        Size, HeaderSize, Type = get_section_size(wrapped[0])
        self.assertEqual(Type, 0x02)
        self.assertEqual(Size, len(wrapped[0]))
        guid, DataOffset, Attributes = struct.unpack_from(compression.EFI_GUID_DEFINED_SECTION, wrapped[0], HeaderSize)
        self.assertEqual(guid, compression.LZMA_CUSTOM_DECOMPRESS_GUID.bytes_le)
        self.assertEqual(DataOffset, HeaderSize + 20)
        self.assertEqual(Attributes, compression.EFI_GUIDED_SECTION_PROCESSING_REQUIRED)

    def test_round_trip_lzma(self):
        wrapped = compression.wrap_sections(self.sections, 'lzma')
        self.assertEqual(compression.unwrap_section(wrapped[0]), join_sections(self.sections))

    def test_round_trip_brotli(self):
        wrapped = compression.wrap_sections(self.sections, 'brotli')
        guid = struct.unpack_from(compression.EFI_GUID_DEFINED_SECTION, wrapped[0], 4)[0]
        self.assertEqual(guid, compression.BROTLI_CUSTOM_DECOMPRESS_GUID.bytes_le)
        self.assertEqual(compression.unwrap_section(wrapped[0]), join_sections(self.sections))

    def test_wrap_nothing(self):
        with self.assertRaises(FfsConfigError):
            compression.wrap_sections([])

    def test_wrap_none(self):
        with self.assertRaises(FfsConfigError):
            compression.wrap_sections(self.sections, 'none')

    def test_unwrap_not_guid_defined(self):
        with self.assertRaises(ParseError):
            compression.unwrap_section(self.sections[0])

    def test_unwrap_unknown_guid(self):
        container = compression.CompressedContainer(compression.LZMA_CUSTOM_DECOMPRESS_GUID, 0, b'')
        section = bytearray(container.to_section())
        section[4] ^= 0xFF
        with self.assertRaises(CodecError):
            compression.unwrap_section(bytes(section))


class TestSectionSet(unittest.TestCase):

    def setUp(self):
        self.section_set = compression.SectionSet((encode_section('RAW', b'\x01' * 33), encode_section('RAW', b'\x02' * 7)))

    def test_compress_section_set(self):
        compressed = compression.compress_section_set(self.section_set, 'lzma')
        self.assertEqual(compressed.compression, 'lzma')
        self.assertEqual(len(compressed.sections), 1)
        self.assertIsNone(self.section_set.compression)
        self.assertEqual(len(self.section_set.sections), 2)
        self.assertEqual(compression.unwrap_section(compressed.sections[0]), join_sections(self.section_set.sections))

    def test_compress_twice(self):
        compressed = compression.compress_section_set(self.section_set, 'brotli')
        with self.assertRaises(FfsConfigError):
            compression.compress_section_set(compressed, 'lzma')


if __name__ == '__main__':
    unittest.main()
