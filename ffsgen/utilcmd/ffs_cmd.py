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
The ffs command builds UEFI PI firmware files (FFS) from binary inputs.

>>> ffsgen_util ffs create <output> [input ...] [--name <name>] [--guid <GUID>] [--type <file_type>]
                           [--version <version>] [--build <number>] [--depex "<GUID> ..."|TRUE]
                           [--compress [lzma|brotli]] [--auto] [--section <TYPE>:<file> ...]
                           [--fixed-checksum]
>>> ffsgen_util ffs guid <name>
>>> ffsgen_util ffs types

Examples:

>>> ffsgen_util ffs create MyDriver.ffs MyDriver.efi --name MyDriver --type DRIVER --version 1.0 --depex TRUE
>>> ffsgen_util ffs create MyPeim.ffs MyPeim.efi MyPeim.pei.depex --auto --name MyPeim --compress
>>> ffsgen_util ffs create Data.ffs --section RAW:data.bin --guid AAAAAAAA-BBBB-CCCC-DDDD-EEEEEEEEEEEE --type FREEFORM
>>> ffsgen_util ffs guid MyDriver
"""

from argparse import ArgumentParser
from typing import List, Tuple

from ffsgen.command import BaseCommand, ExitCode
from ffsgen.library.exceptions import FfsConfigError
from ffsgen.library.file import read_file, write_file
from ffsgen.library.uefi.builder import FfsInput, FfsRequest, build_ffs
from ffsgen.library.uefi.compression import COMPRESSION_NAMES
from ffsgen.library.uefi.depex import parse_depex_operands
from ffsgen.library.uefi.ffs import FILE_TYPES
from ffsgen.library.uefi.guid import guid_from_name
from ffsgen.library.uefi.section import SECTION_TYPES


class FfsCommand(BaseCommand):

    def parse_arguments(self) -> None:
        parser = ArgumentParser(prog='ffsgen_util ffs', usage=__doc__)
        subparsers = parser.add_subparsers()

        # create command args
        parser_create = subparsers.add_parser('create')
        parser_create.add_argument('output', type=str, help='FFS file to write')
        parser_create.add_argument('inputs', type=str, nargs='*', default=[], help='input payload files')
        parser_create.add_argument('--name', dest='name', type=str, default=None, help='display name (UI section, GUID derivation)')
        parser_create.add_argument('--guid', dest='guid', type=str, default=None, help='file GUID')
        parser_create.add_argument('--type', dest='file_type', type=str, default=None, help=', '.join(FILE_TYPES.keys()))
        parser_create.add_argument('--version', dest='version', type=str, default=None, help='version string (VERSION section)')
        parser_create.add_argument('--build', dest='build_number', type=int, default=0, help='build number of the VERSION section')
        parser_create.add_argument('--depex', dest='depex', type=str, default=None, help='required GUIDs or TRUE')
        parser_create.add_argument('--compress', dest='compress', type=str, nargs='?', const='', default=None,
                                   metavar='ALG', help=f"compress all sections: {', '.join(COMPRESSION_NAMES.keys())}")
        parser_create.add_argument('--auto', dest='auto_detect', action='store_true', help='detect section types from input suffixes')
        parser_create.add_argument('--section', dest='sections', type=str, action='append', default=[],
                                   help='input with explicit section type, <TYPE>:<file>')
        parser_create.add_argument('--fixed-checksum', dest='fixed_checksum', action='store_true',
                                   help='clear FFS_ATTRIB_CHECKSUM and store the fixed 0xAA data checksum')
        parser_create.set_defaults(func=self.create)

        # guid command args
        parser_guid = subparsers.add_parser('guid')
        parser_guid.add_argument('name', type=str, help='display name to derive the GUID from')
        parser_guid.set_defaults(func=self.guid_cmd)

        # types command args
        parser_types = subparsers.add_parser('types')
        parser_types.set_defaults(func=self.types)

        parser.parse_args(self.argv, namespace=self)

    def _read_input(self, filename: str) -> bytes:
        return read_file(filename)

    def _split_section_arg(self, section_arg: str) -> Tuple[str, str]:
        section_type, sep, filename = section_arg.partition(':')
        if not sep or not section_type or not filename:
            raise FfsConfigError(f"Invalid --section argument '{section_arg}' (expected <TYPE>:<file>)")
        return section_type, filename

    def _inputs(self) -> List[FfsInput]:
        inputs = [FfsInput(filename, self._read_input(filename)) for filename in self.inputs]
        for section_arg in self.sections:
            section_type, filename = self._split_section_arg(section_arg)
            inputs.append(FfsInput(filename, self._read_input(filename), section_type))
        return inputs

    def create(self) -> None:
        request = FfsRequest(
            inputs=self._inputs(),
            name=self.name,
            file_type=self.file_type,
            version=self.version,
            guid=self.guid,
            depex=parse_depex_operands(self.depex) if self.depex is not None else (),
            compress=self.compress,
            auto_detect=self.auto_detect,
            attributes=0 if self.fixed_checksum else None,
            build_number=self.build_number
        )
        ffs_image = build_ffs(request)
        if not write_file(self.output, ffs_image):
            self.ExitCode = ExitCode.ERROR
            return
        self.logger.log_good(f"[FFSGEN] Firmware file was successfully assembled: '{self.output}' ({len(ffs_image):d} bytes)")

    def guid_cmd(self) -> None:
        self.logger.log(str(guid_from_name(self.name)).upper())

    def types(self) -> None:
        self.logger.log_heading('[FFSGEN] File types:')
        for name, (file_type, _) in FILE_TYPES.items():
            self.logger.log(f'  {name:<20} 0x{file_type:02X}')
        self.logger.log_heading('[FFSGEN] Section types:')
        for name, section_type in SECTION_TYPES.items():
            self.logger.log(f'  {name:<22} 0x{section_type:02X}')


commands = {'ffs': FfsCommand}
