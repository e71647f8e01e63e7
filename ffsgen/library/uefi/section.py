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
UEFI Firmware File Section encoding
"""

import struct
from typing import Dict, Iterable, Tuple, Union

from ffsgen.library.defines import DW, MASK_32b, align, get_3b_size, pack_3b_size
from ffsgen.library.exceptions import FfsConfigError, FfsPreconditionError
from ffsgen.library.logger import logger

################################################################################################
#
# EFI Section Defines
#
################################################################################################

EFI_SECTION_COMPRESSION = 0x01
EFI_SECTION_GUID_DEFINED = 0x02
EFI_SECTION_PE32 = 0x10
EFI_SECTION_PIC = 0x11
EFI_SECTION_TE = 0x12
EFI_SECTION_DXE_DEPEX = 0x13
EFI_SECTION_VERSION = 0x14
EFI_SECTION_USER_INTERFACE = 0x15
EFI_SECTION_COMPATIBILITY16 = 0x16
EFI_SECTION_FIRMWARE_VOLUME_IMAGE = 0x17
EFI_SECTION_FREEFORM_SUBTYPE_GUID = 0x18
EFI_SECTION_RAW = 0x19
EFI_SECTION_PEI_DEPEX = 0x1B
EFI_SECTION_MM_DEPEX = 0x1C
EFI_SECTION_SMM_DEPEX = EFI_SECTION_MM_DEPEX

SECTION_NAMES: Dict[int, str] = {
    0x01: 'S_COMPRESSION',
    0x02: 'S_GUID_DEFINED',
    0x10: 'S_PE32',
    0x11: 'S_PIC',
    0x12: 'S_TE',
    0x13: 'S_DXE_DEPEX',
    0x14: 'S_VERSION',
    0x15: 'S_USER_INTERFACE',
    0x16: 'S_COMPATIBILITY16',
    0x17: 'S_FV_IMAGE',
    0x18: 'S_FREEFORM_SUBTYPE_GUID',
    0x19: 'S_RAW',
    0x1B: 'S_PEI_DEPEX',
    0x1C: 'S_MM_DEPEX'
}

SECTION_TYPES: Dict[str, int] = {
    'COMPRESSION': EFI_SECTION_COMPRESSION,
    'GUID_DEFINED': EFI_SECTION_GUID_DEFINED,
    'PE32': EFI_SECTION_PE32,
    'PIC': EFI_SECTION_PIC,
    'TE': EFI_SECTION_TE,
    'DXE_DEPEX': EFI_SECTION_DXE_DEPEX,
    'VERSION': EFI_SECTION_VERSION,
    'USER_INTERFACE': EFI_SECTION_USER_INTERFACE,
    'UI': EFI_SECTION_USER_INTERFACE,
    'COMPATIBILITY16': EFI_SECTION_COMPATIBILITY16,
    'FV_IMAGE': EFI_SECTION_FIRMWARE_VOLUME_IMAGE,
    'FIRMWARE_VOLUME_IMAGE': EFI_SECTION_FIRMWARE_VOLUME_IMAGE,
    'FREEFORM_SUBTYPE_GUID': EFI_SECTION_FREEFORM_SUBTYPE_GUID,
    'RAW': EFI_SECTION_RAW,
    'PEI_DEPEX': EFI_SECTION_PEI_DEPEX,
    'MM_DEPEX': EFI_SECTION_MM_DEPEX,
    'SMM_DEPEX': EFI_SECTION_SMM_DEPEX
}

# Sections that are meaningless without a body
EFI_SECTIONS_NONEMPTY = [EFI_SECTION_PE32, EFI_SECTION_PIC, EFI_SECTION_TE, EFI_SECTION_DXE_DEPEX,
                         EFI_SECTION_VERSION, EFI_SECTION_USER_INTERFACE, EFI_SECTION_COMPATIBILITY16,
                         EFI_SECTION_FIRMWARE_VOLUME_IMAGE, EFI_SECTION_PEI_DEPEX, EFI_SECTION_MM_DEPEX]

EFI_COMMON_SECTION_HEADER = "<3sB"
EFI_COMMON_SECTION_HEADER_size = struct.calcsize(EFI_COMMON_SECTION_HEADER)
EFI_COMMON_SECTION_HEADER2 = "<3sBI"
EFI_COMMON_SECTION_HEADER2_size = struct.calcsize(EFI_COMMON_SECTION_HEADER2)

# 24-bit size value that announces the 32-bit ExtendedSize field
EFI_SECTION_SIZE_EXTENDED = 0xFFFFFF

EFI_SECTION_ALIGNMENT = 4

EFI_GUID_SIZE = 16


def get_section_type(section_type: Union[int, str]) -> int:
    """Maps a section type name (PE32, EFI_SECTION_RAW, ...) or code to its code."""
    if isinstance(section_type, int):
        if section_type in SECTION_NAMES:
            return section_type
        raise FfsConfigError(f'Unknown section type 0x{section_type:02X}')
    key = section_type.strip().upper()
    for prefix in ('EFI_SECTION_', 'S_'):
        if key.startswith(prefix):
            key = key[len(prefix):]
    if key not in SECTION_TYPES:
        raise FfsConfigError(f"Unknown section type '{section_type}' (expected one of: {', '.join(SECTION_TYPES.keys())})")
    return SECTION_TYPES[key]


def get_section_name(section_type: int) -> str:
    return SECTION_NAMES.get(section_type, f'S_UNKNOWN_{section_type:02X}')


def get_section_header_size(payload_size: int) -> int:
    """Returns the header size a section with the given payload size is encoded with."""
    if EFI_COMMON_SECTION_HEADER_size + payload_size >= EFI_SECTION_SIZE_EXTENDED:
        return EFI_COMMON_SECTION_HEADER2_size
    return EFI_COMMON_SECTION_HEADER_size


def encode_section(section_type: Union[int, str], payload: bytes) -> bytes:
    """
    Wraps a payload into an EFI section (EFI_COMMON_SECTION_HEADER + payload).

    Sections of 0xFFFFFF bytes or more use EFI_COMMON_SECTION_HEADER2: the
    24-bit size is set to 0xFFFFFF and the real size goes into the 32-bit
    ExtendedSize field.
    """
    SectionType = get_section_type(section_type)
    payload = bytes(payload)
    if not payload and SectionType in EFI_SECTIONS_NONEMPTY:
        raise FfsConfigError(f'Section {get_section_name(SectionType)} requires a non-empty payload')
    if SectionType == EFI_SECTION_FREEFORM_SUBTYPE_GUID and len(payload) < EFI_GUID_SIZE:
        raise FfsConfigError(f'Section {get_section_name(SectionType)} must start with a {EFI_GUID_SIZE:d}-byte sub-type GUID')

    HeaderSize = get_section_header_size(len(payload))
    SectionSize = HeaderSize + len(payload)
    if HeaderSize == EFI_COMMON_SECTION_HEADER_size:
        SectionHeader = struct.pack(EFI_COMMON_SECTION_HEADER, pack_3b_size(SectionSize), SectionType)
    else:
        if SectionSize > MASK_32b:
            raise FfsPreconditionError(f'Section {get_section_name(SectionType)} is too large: 0x{SectionSize:X} bytes')
        SectionHeader = struct.pack(EFI_COMMON_SECTION_HEADER2, pack_3b_size(EFI_SECTION_SIZE_EXTENDED), SectionType, SectionSize)

    logger().log_hal(f'[section] {get_section_name(SectionType)}: Size 0x{SectionSize:X}, HdrSize 0x{HeaderSize:X}')
    return SectionHeader + payload


def get_section_size(sections: bytes, offset: int = 0) -> Tuple[int, int, int]:
    """Reads back (size, header size, type) of the section at offset."""
    Size, Type = struct.unpack_from(EFI_COMMON_SECTION_HEADER, sections, offset)
    Size = get_3b_size(Size)
    HeaderSize = EFI_COMMON_SECTION_HEADER_size
    if Size == EFI_SECTION_SIZE_EXTENDED:
        Size = struct.unpack_from(EFI_COMMON_SECTION_HEADER2, sections, offset)[2]
        HeaderSize = EFI_COMMON_SECTION_HEADER2_size
    return Size, HeaderSize, Type


def join_sections(sections: Iterable[bytes]) -> bytes:
    """Concatenates encoded sections, starting each one on a 4-byte boundary."""
    image = b''
    for section in sections:
        image = image.ljust(align(len(image), EFI_SECTION_ALIGNMENT), b'\x00')
        image += section
    return image


def to_ucs2(text: str) -> bytes:
    """Null-terminated UTF-16LE string as stored in UI and version sections."""
    return (text + '\x00').encode('utf-16-le')


def ui_section(name: str) -> bytes:
    return encode_section(EFI_SECTION_USER_INTERFACE, to_ucs2(name))


def version_section(version: str, build_number: int = 0) -> bytes:
    return encode_section(EFI_SECTION_VERSION, DW(build_number) + to_ucs2(version))
