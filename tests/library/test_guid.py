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
To execute: python[3] -m unittest tests.library.test_guid
"""

import hashlib
import unittest
from uuid import UUID

import ffsgen.library.uefi.guid as guid
from ffsgen.library.exceptions import FfsConfigError, FfsPreconditionError, GuidParseError, ParseError

GUID_STR = '11111111-2222-3333-4444-555555555555'
GUID_BIN = b'\x11\x11\x11\x11\x22\x22\x33\x33\x44\x44\x55\x55\x55\x55\x55\x55'


class TestGuid(unittest.TestCase):

    def test_parse_guid(self):
        self.assertEqual(guid.parse_guid(GUID_STR), UUID(GUID_STR))

    def test_parse_guid_braces_and_case(self):
        self.assertEqual(guid.parse_guid('{EE4E5898-3914-4259-9D6E-DC7BD79403CF}'),
                         UUID('ee4e5898-3914-4259-9d6e-dc7bd79403cf'))

    def test_parse_guid_malformed(self):
        for bad in ['', '1111-2222', '11111111-2222-3333-4444-55555555555', '11111111222233334444555555555555',
                    '{11111111-2222-3333-4444-555555555555', '11111111-2222-3333-4444-555555555555}',
                    'zzzzzzzz-2222-3333-4444-555555555555', '11111111-2222-3333-4444-5555555555555']:
            with self.subTest(bad=bad):
                with self.assertRaises(GuidParseError):
                    guid.parse_guid(bad)

    def test_guid_parse_error_is_parse_error(self):
        with self.assertRaises(ParseError):
            guid.get_guid_bin('not-a-guid')

    def test_get_guid_bin_mixed_endian(self):
        self.assertEqual(guid.get_guid_bin(GUID_STR), GUID_BIN)
        self.assertEqual(guid.get_guid_bin(UUID(GUID_STR)), GUID_BIN)
        self.assertEqual(guid.get_guid_bin(GUID_BIN), GUID_BIN)

    def test_get_guid_bin_wrong_width(self):
        with self.assertRaises(FfsPreconditionError):
            guid.get_guid_bin(GUID_BIN[:15])
        with self.assertRaises(FfsPreconditionError):
            guid.get_guid_bin(GUID_BIN + b'\x00')

    def test_guid_from_name_is_deterministic(self):
        first = guid.guid_from_name('MyDriver')
        second = guid.guid_from_name('MyDriver')
        self.assertEqual(first, second)
        self.assertEqual(len(first.bytes_le), 16)

    def test_guid_from_name_distinct_names(self):
        names = ['MyDriver', 'MyDriver2', 'mydriver', 'PlatformPei', 'SmmAccess', 'A', 'B']
        guids = {guid.guid_from_name(name) for name in names}
        self.assertEqual(len(guids), len(names))

    def test_guid_from_name_derivation(self):
        digest = hashlib.sha1(b'\x00\x00' + 'MyDriver'.encode('utf-16-le')).digest()
        self.assertEqual(guid.guid_from_name('MyDriver').bytes_le, digest[:16])

    def test_resolve_guid_explicit_wins(self):
        self.assertEqual(guid.resolve_guid(GUID_STR, 'MyDriver'), UUID(GUID_STR))

    def test_resolve_guid_from_name(self):
        self.assertEqual(guid.resolve_guid(None, 'MyDriver'), guid.guid_from_name('MyDriver'))

    def test_resolve_guid_default(self):
        self.assertEqual(guid.resolve_guid(default=GUID_STR), UUID(GUID_STR))

    def test_resolve_guid_missing(self):
        with self.assertRaises(FfsConfigError):
            guid.resolve_guid()

    def test_resolve_guid_malformed(self):
        with self.assertRaises(GuidParseError):
            guid.resolve_guid('11111111-2222', 'MyDriver')


if __name__ == '__main__':
    unittest.main()
