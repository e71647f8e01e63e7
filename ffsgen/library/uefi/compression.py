# FFSGEN: UEFI Firmware File Builder
# Copyright (c) 2021, Intel Corporation
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
Compression of section sets into GUID-defined sections

usage:
    >>> wrap_sections([pe32, ui], 'lzma')
    >>> compress_section_set(SectionSet((pe32, ui), None), 'brotli')
    >>> unwrap_section(section)
"""

import importlib
import struct
from typing import Dict, Final, List, NamedTuple, Optional, Sequence, Tuple, Union
from uuid import UUID

from ffsgen.library.exceptions import CodecError, FfsConfigError, ParseError
from ffsgen.library.logger import logger
from ffsgen.library.uefi.guid import EFI_GUID_SIZE, get_guid_bin
from ffsgen.library.uefi.section import EFI_SECTION_GUID_DEFINED, encode_section, get_section_header_size
from ffsgen.library.uefi.section import get_section_name, get_section_size, join_sections

modules: Dict[str, bool] = {}

for module_name in ['brotli', 'lzma']:
    try:
        globals()[module_name] = importlib.import_module(module_name)

        modules[module_name] = True
    except ModuleNotFoundError as import_error:
        modules[module_name] = False

        logger().log_debug(f'Failed to import compression module "{import_error.name}"')

COMPRESSION_TYPE_NONE: Final[int] = 0
COMPRESSION_TYPE_LZMA: Final[int] = 3
COMPRESSION_TYPE_BROTLI: Final[int] = 4

COMPRESSION_TYPES: Final[List[int]] = [
    COMPRESSION_TYPE_BROTLI,
    COMPRESSION_TYPE_LZMA,
    COMPRESSION_TYPE_NONE
]

COMPRESSION_NAMES: Final[Dict[str, int]] = {
    'none': COMPRESSION_TYPE_NONE,
    'lzma': COMPRESSION_TYPE_LZMA,
    'brotli': COMPRESSION_TYPE_BROTLI
}

DEFAULT_COMPRESSION: Final[str] = 'lzma'

LZMA_CUSTOM_DECOMPRESS_GUID: Final[UUID] = UUID('EE4E5898-3914-4259-9D6E-DC7BD79403CF')
BROTLI_CUSTOM_DECOMPRESS_GUID: Final[UUID] = UUID('3D532050-5CDA-4FD0-879E-0F7F630D5AFB')

COMPRESSION_GUIDS: Final[Dict[int, UUID]] = {
    COMPRESSION_TYPE_LZMA: LZMA_CUSTOM_DECOMPRESS_GUID,
    COMPRESSION_TYPE_BROTLI: BROTLI_CUSTOM_DECOMPRESS_GUID
}

EFI_GUID_DEFINED_SECTION: Final[str] = '<16sHH'
EFI_GUID_DEFINED_SECTION_size: Final[int] = struct.calcsize(EFI_GUID_DEFINED_SECTION)

EFI_GUIDED_SECTION_PROCESSING_REQUIRED: Final[int] = 0x01
EFI_GUIDED_SECTION_AUTH_STATUS_VALID: Final[int] = 0x02

# .lzma ("alone") header: properties byte, 32-bit dictionary size, 64-bit uncompressed size
LZMA_HEADER_SIZE_OFFSET: Final[int] = 0x5
LZMA_HEADER_SIZE_END: Final[int] = 0xD

# Brotli header: 64-bit uncompressed size, 64-bit decoder scratch size
BROTLI_HEADER: Final[str] = '<QQ'
BROTLI_HEADER_size: Final[int] = struct.calcsize(BROTLI_HEADER)
# Upper bound of the decoder working memory announced to the firmware decompressor
BROTLI_SCRATCH_SIZE: Final[int] = 0x100000


def get_compression_type(compression: Union[int, str]) -> int:
    if isinstance(compression, int):
        if compression in COMPRESSION_TYPES:
            return compression
        raise FfsConfigError(f'Unknown compression type 0x{compression:X}')
    key = compression.strip().lower()
    if key not in COMPRESSION_NAMES:
        raise FfsConfigError(f"Unknown compression algorithm '{compression}' (expected one of: {', '.join(COMPRESSION_NAMES.keys())})")
    return COMPRESSION_NAMES[key]


def get_compression_name(compression_type: int) -> str:
    for name, ctype in COMPRESSION_NAMES.items():
        if ctype == compression_type:
            return name
    return f'unknown_{compression_type:X}'


def get_compression_type_by_guid(guid: UUID) -> int:
    for ctype, cguid in COMPRESSION_GUIDS.items():
        if cguid == guid:
            return ctype
    raise CodecError(f'No decompressor is registered for GUID {{{guid}}}')


# noinspection PyUnresolvedReferences
class UefiCompression:
    """ UEFI Compression """

    @staticmethod
    def _require(module_name: str) -> None:
        if not modules[module_name]:
            raise CodecError(f'Compression module "{module_name}" is not available')

    def compress_efi_binary(self, uncompressed_data: bytes, compression_type: int) -> bytes:
        """ Compress EFI data """

        if compression_type not in COMPRESSION_TYPES:
            raise CodecError(f'Unknown EFI compression type 0x{compression_type:X}')

        if compression_type == COMPRESSION_TYPE_NONE:
            data = uncompressed_data
        elif compression_type == COMPRESSION_TYPE_LZMA:
            self._require('lzma')
            try:
                data = lzma.compress(uncompressed_data, format=lzma.FORMAT_ALONE)
            except lzma.LZMAError as error:
                raise CodecError(f'Cannot compress LZMA data: {error}') from error

            # The .lzma encoder leaves the size unknown (all ones); firmware decoders expect the real one
            data = data[:LZMA_HEADER_SIZE_OFFSET] + struct.pack('<Q', len(uncompressed_data)) + data[LZMA_HEADER_SIZE_END:]
        else:
            self._require('brotli')
            try:
                stream = brotli.compress(uncompressed_data)
            except brotli.error as error:
                raise CodecError(f'Cannot compress BROTLI data: {error}') from error
            data = struct.pack(BROTLI_HEADER, len(uncompressed_data), BROTLI_SCRATCH_SIZE) + stream

        logger().log_hal(f'[compression] {get_compression_name(compression_type)}: 0x{len(uncompressed_data):X} -> 0x{len(data):X} bytes')
        return data

    def decompress_efi_binary(self, compressed_data: bytes, compression_type: int) -> bytes:
        """ Decompress EFI data """

        if compression_type not in COMPRESSION_TYPES:
            raise CodecError(f'Unknown EFI compression type 0x{compression_type:X}')

        if compression_type == COMPRESSION_TYPE_NONE:
            return compressed_data

        if compression_type == COMPRESSION_TYPE_LZMA:
            self._require('lzma')
            try:
                return lzma.decompress(compressed_data)
            except lzma.LZMAError as error:
                logger().log_debug(f'Cannot decompress LZMA data: {error}')

            # If lzma fails, patch the size within the header
            # https://github.com/python/cpython/issues/92018
            try:
                return lzma.decompress(compressed_data[:LZMA_HEADER_SIZE_OFFSET] + b'\xFF' * 0x8 + compressed_data[LZMA_HEADER_SIZE_END:])
            except lzma.LZMAError as error_fallback:
                raise CodecError(f'Cannot decompress LZMA data: {error_fallback}') from error_fallback

        self._require('brotli')
        if len(compressed_data) < BROTLI_HEADER_size:
            raise CodecError('Truncated BROTLI header')
        size, _ = struct.unpack_from(BROTLI_HEADER, compressed_data)
        try:
            data = brotli.decompress(compressed_data[BROTLI_HEADER_size:])
        except brotli.error as error:
            raise CodecError(f'Cannot decompress BROTLI data: {error}') from error
        if len(data) != size:
            raise CodecError(f'BROTLI data size mismatch: header 0x{size:X}, decoded 0x{len(data):X}')
        return data


class CompressedContainer(NamedTuple):
    guid: UUID
    uncompressed_length: int
    data: bytes

    def to_section(self) -> bytes:
        """Serializes the container as an EFI_SECTION_GUID_DEFINED section."""
        payload_size = EFI_GUID_DEFINED_SECTION_size + len(self.data)
        DataOffset = get_section_header_size(payload_size) + EFI_GUID_DEFINED_SECTION_size
        header = struct.pack(EFI_GUID_DEFINED_SECTION, get_guid_bin(self.guid), DataOffset, EFI_GUIDED_SECTION_PROCESSING_REQUIRED)
        return encode_section(EFI_SECTION_GUID_DEFINED, header + self.data)


class SectionSet(NamedTuple):
    sections: Tuple[bytes, ...]
    compression: Optional[str] = None


def compress_sections(sections: Sequence[bytes], compression: Union[int, str] = DEFAULT_COMPRESSION) -> CompressedContainer:
    CompressionType = get_compression_type(compression)
    if CompressionType == COMPRESSION_TYPE_NONE:
        raise FfsConfigError('A compression algorithm is required to build a compressed container')
    image = join_sections(sections)
    data = UefiCompression().compress_efi_binary(image, CompressionType)
    return CompressedContainer(COMPRESSION_GUIDS[CompressionType], len(image), data)


def wrap_sections(sections: Sequence[bytes], compression: Union[int, str] = DEFAULT_COMPRESSION) -> List[bytes]:
    """
    Replaces a list of encoded sections with a single GUID-defined section
    holding the compressed, 4-byte aligned concatenation of all of them.
    """
    if not sections:
        raise FfsConfigError('Nothing to compress')
    container = compress_sections(sections, compression)
    logger().log_hal(f'[compression] {len(sections):d} section(s) wrapped with {{{container.guid}}}')
    return [container.to_section()]


def compress_section_set(section_set: SectionSet, compression: str = DEFAULT_COMPRESSION) -> SectionSet:
    if section_set.compression is not None:
        raise FfsConfigError(f'Section set is already compressed with {section_set.compression}')
    name = get_compression_name(get_compression_type(compression))
    return SectionSet(tuple(wrap_sections(section_set.sections, compression)), name)


def unwrap_section(section: bytes) -> bytes:
    """Decompresses a GUID-defined section back into the joined inner sections."""
    Size, HeaderSize, Type = get_section_size(section)
    if Type != EFI_SECTION_GUID_DEFINED:
        raise ParseError(f'Expected {get_section_name(EFI_SECTION_GUID_DEFINED)} section, got {get_section_name(Type)}')
    guid_bin, DataOffset, _ = struct.unpack_from(EFI_GUID_DEFINED_SECTION, section, HeaderSize)
    guid = UUID(bytes_le=guid_bin[:EFI_GUID_SIZE])
    CompressionType = get_compression_type_by_guid(guid)
    return UefiCompression().decompress_efi_binary(section[DataOffset:Size], CompressionType)
