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
EFI GUID parsing, derivation and binary encoding

usage:
    >>> parse_guid('11111111-2222-3333-4444-555555555555')
    >>> guid_from_name('MyDriver')
    >>> resolve_guid(guid=None, name='MyDriver')
    >>> get_guid_bin(guid)

GUIDs are stored in firmware in the EFI_GUID layout: Data1 (UINT32), Data2
and Data3 (UINT16) little-endian, Data4 as an 8-byte array. This is the
`bytes_le` form of :class:`uuid.UUID`.
"""

import hashlib
import re
from typing import Optional, Union
from uuid import UUID

from ffsgen.library.exceptions import FfsConfigError, FfsPreconditionError, GuidParseError
from ffsgen.library.logger import logger

EFI_GUID_SIZE = 16

GUID_PATTERN = r'[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}'
GUID_REGEX = re.compile(rf'^(?:\{{({GUID_PATTERN})\}}|({GUID_PATTERN}))$')

GuidType = Union[UUID, str, bytes]


def parse_guid(guid_str: str) -> UUID:
    """Parses canonical 8-4-4-4-12 GUID text (optionally in braces)."""
    match = GUID_REGEX.match(guid_str.strip()) if isinstance(guid_str, str) else None
    if match is None:
        raise GuidParseError(f'Invalid GUID: {guid_str!r} (expected XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX)')
    return UUID(match.group(1) or match.group(2))


def name_to_ucs2(name: str) -> bytes:
    """Encodes a display name the way GUIDs are derived from it: a zero code unit, then UTF-16LE."""
    return b'\x00\x00' + name.encode('utf-16-le')


def guid_from_name(name: str) -> UUID:
    """
    Derives a stable GUID from a display name.

    The first 16 bytes of the SHA-1 digest of the encoded name are taken as
    the binary EFI_GUID. The same name always yields the same GUID.
    """
    digest = hashlib.sha1(name_to_ucs2(name)).digest()
    guid = UUID(bytes_le=digest[:EFI_GUID_SIZE])
    logger().log_hal(f'[guid] Derived {{{guid}}} from name "{name}"')
    return guid


def resolve_guid(guid: Optional[GuidType] = None, name: Optional[str] = None, default: Optional[GuidType] = None) -> UUID:
    """
    Selects the file GUID.

    An explicit GUID wins; otherwise the GUID is derived from the name;
    otherwise the caller supplied default is used. Having none of the three
    is a configuration error.
    """
    if guid:
        return to_uuid(guid)
    if name:
        return guid_from_name(name)
    if default:
        logger().log_hal(f'[guid] Using default GUID {{{default}}}')
        return to_uuid(default)
    raise FfsConfigError('Either a GUID or a name is required to identify the file')


def to_uuid(guid: GuidType) -> UUID:
    if isinstance(guid, UUID):
        return guid
    if isinstance(guid, (bytes, bytearray)):
        if len(guid) != EFI_GUID_SIZE:
            raise FfsPreconditionError(f'GUID must be {EFI_GUID_SIZE:d} bytes, got {len(guid):d}')
        return UUID(bytes_le=bytes(guid))
    return parse_guid(guid)


def get_guid_bin(guid: GuidType) -> bytes:
    """Returns the 16-byte EFI_GUID encoding of a GUID (text, UUID or raw bytes)."""
    return to_uuid(guid).bytes_le
