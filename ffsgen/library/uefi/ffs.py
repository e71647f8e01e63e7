# FFSGEN: UEFI Firmware File Builder
# Copyright (c) 2020-2021, Intel Corporation
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
UEFI Firmware File (FFS) assembly
"""

import struct
from typing import Dict, Optional, Sequence, Union

from ffsgen.library.defines import BIT0, BIT2, BIT6, MASK_24b, is_set, pack_3b_size
from ffsgen.library.exceptions import FfsConfigError
from ffsgen.library.logger import dump_buffer_bytes, logger
from ffsgen.library.uefi.guid import GuidType, get_guid_bin, to_uuid
from ffsgen.library.uefi.section import join_sections

################################################################################################
#
# EFI Firmware File Defines
#
################################################################################################

FFS_ATTRIB_LARGE_FILE = BIT0
FFS_ATTRIB_FIXED = BIT2
FFS_ATTRIB_DATA_ALIGNMENT = 0x38
FFS_ATTRIB_CHECKSUM = BIT6

EFI_FILE_HEADER_CONSTRUCTION = 0x01
EFI_FILE_HEADER_VALID = 0x02
EFI_FILE_DATA_VALID = 0x04

FFS_FIXED_CHECKSUM = 0xAA

EFI_FV_FILETYPE_RAW = 0x01
EFI_FV_FILETYPE_FREEFORM = 0x02
EFI_FV_FILETYPE_SECURITY_CORE = 0x03
EFI_FV_FILETYPE_PEI_CORE = 0x04
EFI_FV_FILETYPE_DXE_CORE = 0x05
EFI_FV_FILETYPE_PEIM = 0x06
EFI_FV_FILETYPE_DRIVER = 0x07
EFI_FV_FILETYPE_COMBINED_PEIM_DRIVER = 0x08
EFI_FV_FILETYPE_APPLICATION = 0x09
EFI_FV_FILETYPE_MM = 0x0a
EFI_FV_FILETYPE_FIRMWARE_VOLUME_IMAGE = 0x0b
EFI_FV_FILETYPE_COMBINED_MM_DXE = 0x0c
EFI_FV_FILETYPE_MM_CORE = 0x0d
EFI_FV_FILETYPE_MM_STANDALONE = 0x0e
EFI_FV_FILETYPE_MM_CORE_STANDALONE = 0x0f

FILE_TYPE_NAMES: Dict[int, str] = {
    0x01: 'FV_RAW',
    0x02: 'FV_FREEFORM',
    0x03: 'FV_SECURITY_CORE',
    0x04: 'FV_PEI_CORE',
    0x05: 'FV_DXE_CORE',
    0x06: 'FV_PEIM',
    0x07: 'FV_DRIVER',
    0x08: 'FV_COMBINED_PEIM_DRIVER',
    0x09: 'FV_APPLICATION',
    0x0A: 'FV_MM',
    0x0B: 'FV_FVIMAGE',
    0x0C: 'FV_COMBINED_MM_DXE',
    0x0D: 'FV_MM_CORE',
    0x0E: 'FV_MM_STANDALONE',
    0x0F: 'FV_MM_CORE_STANDALONE'
}

# name -> (file type, default attributes)
FILE_TYPES: Dict[str, tuple] = {
    'RAW': (EFI_FV_FILETYPE_RAW, FFS_ATTRIB_CHECKSUM),
    'FREEFORM': (EFI_FV_FILETYPE_FREEFORM, FFS_ATTRIB_CHECKSUM),
    'SECURITY_CORE': (EFI_FV_FILETYPE_SECURITY_CORE, FFS_ATTRIB_CHECKSUM),
    'PEI_CORE': (EFI_FV_FILETYPE_PEI_CORE, FFS_ATTRIB_CHECKSUM),
    'DXE_CORE': (EFI_FV_FILETYPE_DXE_CORE, FFS_ATTRIB_CHECKSUM),
    'PEIM': (EFI_FV_FILETYPE_PEIM, FFS_ATTRIB_CHECKSUM),
    'DRIVER': (EFI_FV_FILETYPE_DRIVER, FFS_ATTRIB_CHECKSUM),
    'COMBINED_PEIM_DRIVER': (EFI_FV_FILETYPE_COMBINED_PEIM_DRIVER, FFS_ATTRIB_CHECKSUM),
    'APPLICATION': (EFI_FV_FILETYPE_APPLICATION, FFS_ATTRIB_CHECKSUM),
    'SMM': (EFI_FV_FILETYPE_MM, FFS_ATTRIB_CHECKSUM),
    'MM': (EFI_FV_FILETYPE_MM, FFS_ATTRIB_CHECKSUM),
    'FV_IMAGE': (EFI_FV_FILETYPE_FIRMWARE_VOLUME_IMAGE, FFS_ATTRIB_CHECKSUM),
    'COMBINED_MM_DXE': (EFI_FV_FILETYPE_COMBINED_MM_DXE, FFS_ATTRIB_CHECKSUM),
    'SMM_CORE': (EFI_FV_FILETYPE_MM_CORE, FFS_ATTRIB_CHECKSUM),
    'MM_CORE': (EFI_FV_FILETYPE_MM_CORE, FFS_ATTRIB_CHECKSUM),
    'MM_STANDALONE': (EFI_FV_FILETYPE_MM_STANDALONE, FFS_ATTRIB_CHECKSUM),
    'MM_CORE_STANDALONE': (EFI_FV_FILETYPE_MM_CORE_STANDALONE, FFS_ATTRIB_CHECKSUM),
}

EFI_FFS_FILE_HEADER = "<16sHBB3sB"
EFI_FFS_FILE_HEADER_size = struct.calcsize(EFI_FFS_FILE_HEADER)
EFI_FFS_FILE_HEADER2 = "<16sHBB3sBQ"
EFI_FFS_FILE_HEADER2_size = struct.calcsize(EFI_FFS_FILE_HEADER2)


def FvSum8(buffer: bytes) -> int:
    sum8 = 0
    for b in buffer:
        sum8 = (sum8 + b) & 0xff
    return sum8


def FvChecksum8(buffer: bytes) -> int:
    return ((0x100 - FvSum8(buffer)) & 0xff)


def get_file_type(file_type: Union[int, str]) -> int:
    """Maps a file type name (DRIVER, EFI_FV_FILETYPE_PEIM, FV_MM, ...) or code to its code."""
    if isinstance(file_type, int):
        if file_type in FILE_TYPE_NAMES:
            return file_type
        raise FfsConfigError(f'Unknown file type 0x{file_type:02X}')
    return FILE_TYPES[_file_type_key(file_type)][0]


def get_file_type_attributes(file_type: Union[int, str]) -> int:
    if isinstance(file_type, int):
        file_type = get_file_type_name(get_file_type(file_type))
    return FILE_TYPES[_file_type_key(file_type)][1]


def get_file_type_name(file_type: int) -> str:
    return FILE_TYPE_NAMES.get(file_type, f'FV_UNKNOWN_{file_type:02X}')


# Alternate spellings of FILE_TYPES keys
FILE_TYPE_ALIASES: Dict[str, str] = {
    'FVIMAGE': 'FV_IMAGE',
    'FIRMWARE_VOLUME_IMAGE': 'FV_IMAGE'
}


def _file_type_key(file_type: str) -> str:
    key = file_type.strip().upper()
    for prefix in ('', 'EFI_FV_FILETYPE_', 'FV_'):
        if not key.startswith(prefix):
            continue
        candidate = key[len(prefix):]
        candidate = FILE_TYPE_ALIASES.get(candidate, candidate)
        if candidate in FILE_TYPES:
            return candidate
    raise FfsConfigError(f"Unknown file type '{file_type}' (expected one of: {', '.join(FILE_TYPES.keys())})")


def file_state(erase_polarity: bool = True) -> int:
    State = EFI_FILE_HEADER_CONSTRUCTION | EFI_FILE_HEADER_VALID | EFI_FILE_DATA_VALID
    # State bits are cleared, not set, on volumes erased to 0xFF
    if erase_polarity:
        State = ~State & 0xff
    return State


def assemble_ffs_file(guid: GuidType, file_type: Union[int, str], sections: Sequence[bytes],
                      attributes: Optional[int] = None, erase_polarity: bool = True) -> bytes:
    """
    Assembles an FFS file from encoded sections.

    The header checksum is computed over the header with IntegrityCheck and
    State zeroed, then patched in. The file checksum covers the section data
    when FFS_ATTRIB_CHECKSUM is set and is the fixed value 0xAA otherwise.
    """
    Name = get_guid_bin(guid)
    Type = get_file_type(file_type)
    Attributes = get_file_type_attributes(Type) if attributes is None else attributes
    if not sections:
        raise FfsConfigError('A firmware file requires at least one section')

    image = join_sections(sections)
    Size = EFI_FFS_FILE_HEADER_size + len(image)
    if Size > MASK_24b:
        Attributes |= FFS_ATTRIB_LARGE_FILE
        Size = EFI_FFS_FILE_HEADER2_size + len(image)
    else:
        Attributes &= ~FFS_ATTRIB_LARGE_FILE

    def pack_header(IntegrityCheck: int, State: int) -> bytes:
        if is_set(Attributes, FFS_ATTRIB_LARGE_FILE):
            return struct.pack(EFI_FFS_FILE_HEADER2, Name, IntegrityCheck, Type, Attributes, pack_3b_size(0), State, Size)
        return struct.pack(EFI_FFS_FILE_HEADER, Name, IntegrityCheck, Type, Attributes, pack_3b_size(Size), State)

    hsum = FvChecksum8(pack_header(0, 0))
    if is_set(Attributes, FFS_ATTRIB_CHECKSUM):
        fsum = FvChecksum8(image)
    else:
        fsum = FFS_FIXED_CHECKSUM
    CheckSum = (hsum | (fsum << 8))
    State = file_state(erase_polarity)

    FileHeader = pack_header(CheckSum, State)
    logger().log_hal(f'[ffs] {{{to_uuid(guid)}}} {get_file_type_name(Type)}: Attr {Attributes:02X}h, State {State:02X}h, '
                     f'Size {Size:06X}h, Checksum {CheckSum:04X}h')
    logger().log_debug(f'[ffs] Header:\n{dump_buffer_bytes(FileHeader, 16)}')
    return FileHeader + image
