# FFSGEN: UEFI Firmware File Builder
# Copyright (c) 2010-2022, Intel Corporation
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

import struct
import os
import platform
from typing import Tuple
from ffsgen.library.file import get_main_dir

BIT0 = 0x0001
BIT2 = 0x0004
BIT6 = 0x0040

MASK_24b = 0xFFFFFF
MASK_32b = 0xFFFFFFFF


def is_set(val: int, bit_mask: int) -> bool:
    return bool(val & bit_mask != 0)


def DB(val: int) -> bytes:
    return struct.pack('<B', val)


def DW(val: int) -> bytes:
    return struct.pack('<H', val)


def align(of: int, size: int) -> int:
    of = (((of + size - 1) // size) * size)
    return of


def pack_3b_size(size: int) -> bytes:
    """Packs the 24-bit little-endian size field used by FFS files and sections."""
    return (size & MASK_24b).to_bytes(3, byteorder='little')


def get_3b_size(s_data: bytes) -> int:
    return s_data[0] + (s_data[1] << 8) + (s_data[2] << 16)


def get_version() -> str:
    version_strs = []
    ffsgen_folder = os.path.abspath(get_main_dir())
    for fname in sorted([x for x in os.listdir(os.path.join(ffsgen_folder, "ffsgen")) if x.startswith('VERSION')]):
        version_file = os.path.join(ffsgen_folder, "ffsgen", fname)
        with open(version_file, "r") as verFile:
            version_strs.append(verFile.read().strip())
    return '-'.join(version_strs)


def os_version() -> Tuple[str, str, str, str]:
    return platform.system(), platform.release(), platform.version(), platform.machine()
