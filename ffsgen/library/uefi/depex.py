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
Dependency expression (DEPEX) compilation

usage:
    >>> encode_depex('DRIVER', ['11111111-2222-3333-4444-555555555555'])
    >>> encode_depex('PEIM', [], all_true=True)
    >>> depex_to_string(compile_depex(['TRUE']))

A dependency expression is a postfix program run by the PEI, DXE or MM
dispatcher. Operands listed by the caller are all required, so they are
pushed in order and combined with AND.
"""

import re
from typing import Dict, List, Sequence, Union
from uuid import UUID

from ffsgen.library.defines import DB
from ffsgen.library.exceptions import DepexParseError, FfsConfigError
from ffsgen.library.logger import logger
from ffsgen.library.uefi.ffs import get_file_type, get_file_type_name
from ffsgen.library.uefi.ffs import EFI_FV_FILETYPE_PEIM, EFI_FV_FILETYPE_COMBINED_PEIM_DRIVER
from ffsgen.library.uefi.ffs import EFI_FV_FILETYPE_DRIVER, EFI_FV_FILETYPE_APPLICATION
from ffsgen.library.uefi.ffs import EFI_FV_FILETYPE_MM, EFI_FV_FILETYPE_COMBINED_MM_DXE, EFI_FV_FILETYPE_MM_STANDALONE
from ffsgen.library.uefi.guid import EFI_GUID_SIZE, get_guid_bin
from ffsgen.library.uefi.section import EFI_SECTION_DXE_DEPEX, EFI_SECTION_MM_DEPEX, EFI_SECTION_PEI_DEPEX
from ffsgen.library.uefi.section import encode_section, get_section_name

################################################################################################
#
# Dependency Expression Opcodes
#
################################################################################################

EFI_DEP_BEFORE = 0x00
EFI_DEP_AFTER = 0x01
EFI_DEP_PUSH = 0x02
EFI_DEP_AND = 0x03
EFI_DEP_OR = 0x04
EFI_DEP_NOT = 0x05
EFI_DEP_TRUE = 0x06
EFI_DEP_FALSE = 0x07
EFI_DEP_END = 0x08
EFI_DEP_SOR = 0x09

DEPEX_OPCODE_NAMES: Dict[int, str] = {
    EFI_DEP_BEFORE: 'BEFORE',
    EFI_DEP_AFTER: 'AFTER',
    EFI_DEP_PUSH: 'PUSH',
    EFI_DEP_AND: 'AND',
    EFI_DEP_OR: 'OR',
    EFI_DEP_NOT: 'NOT',
    EFI_DEP_TRUE: 'TRUE',
    EFI_DEP_FALSE: 'FALSE',
    EFI_DEP_END: 'END',
    EFI_DEP_SOR: 'SOR'
}

# Opcodes followed by a GUID operand
DEPEX_GUID_OPCODES = [EFI_DEP_BEFORE, EFI_DEP_AFTER, EFI_DEP_PUSH]

DEPEX_PHASE_PEI = 'PEI'
DEPEX_PHASE_DXE = 'DXE'
DEPEX_PHASE_MM = 'MM'

# phase -> (section type, opcodes the dispatcher of that phase understands)
DEPEX_PHASES: Dict[str, tuple] = {
    DEPEX_PHASE_PEI: (EFI_SECTION_PEI_DEPEX, [EFI_DEP_PUSH, EFI_DEP_AND, EFI_DEP_OR, EFI_DEP_NOT,
                                              EFI_DEP_TRUE, EFI_DEP_FALSE, EFI_DEP_END]),
    DEPEX_PHASE_DXE: (EFI_SECTION_DXE_DEPEX, [EFI_DEP_BEFORE, EFI_DEP_AFTER, EFI_DEP_PUSH, EFI_DEP_AND, EFI_DEP_OR,
                                              EFI_DEP_NOT, EFI_DEP_TRUE, EFI_DEP_FALSE, EFI_DEP_END, EFI_DEP_SOR]),
    DEPEX_PHASE_MM: (EFI_SECTION_MM_DEPEX, [EFI_DEP_PUSH, EFI_DEP_AND, EFI_DEP_OR, EFI_DEP_NOT,
                                            EFI_DEP_TRUE, EFI_DEP_FALSE, EFI_DEP_END, EFI_DEP_SOR]),
}

FILE_TYPE_DEPEX_PHASE: Dict[int, str] = {
    EFI_FV_FILETYPE_PEIM: DEPEX_PHASE_PEI,
    EFI_FV_FILETYPE_COMBINED_PEIM_DRIVER: DEPEX_PHASE_PEI,
    EFI_FV_FILETYPE_DRIVER: DEPEX_PHASE_DXE,
    EFI_FV_FILETYPE_APPLICATION: DEPEX_PHASE_DXE,
    EFI_FV_FILETYPE_MM: DEPEX_PHASE_MM,
    EFI_FV_FILETYPE_COMBINED_MM_DXE: DEPEX_PHASE_MM,
    EFI_FV_FILETYPE_MM_STANDALONE: DEPEX_PHASE_MM,
}

DEPEX_TRUE_KEYWORD = 'TRUE'

DepexOperand = Union[str, UUID, bytes]


def get_depex_phase(file_type: Union[int, str]) -> str:
    """Returns the dispatcher phase (PEI, DXE, MM) a file type is dispatched in."""
    FileType = get_file_type(file_type)
    if FileType not in FILE_TYPE_DEPEX_PHASE:
        raise FfsConfigError(f'File type {get_file_type_name(FileType)} does not take a dependency expression')
    return FILE_TYPE_DEPEX_PHASE[FileType]


def parse_depex_operands(depex_str: str) -> List[str]:
    """Splits a depex operand list ("GUID GUID", "GUID,GUID" or "TRUE") into operands."""
    operands = [op for op in re.split(r'[\s,]+', depex_str.strip()) if op]
    if not operands:
        raise DepexParseError(f'Empty dependency expression: {depex_str!r}')
    return operands


def _is_true_operand(operand: DepexOperand) -> bool:
    return isinstance(operand, str) and operand.strip().upper() == DEPEX_TRUE_KEYWORD


def _opcode(opcode: int, phase: str) -> bytes:
    if opcode not in DEPEX_PHASES[phase][1]:
        raise FfsConfigError(f'Opcode {DEPEX_OPCODE_NAMES[opcode]} is not supported in {phase} dependency expressions')
    return DB(opcode)


def compile_depex(operands: Sequence[DepexOperand], all_true: bool = False, phase: str = DEPEX_PHASE_DXE) -> bytes:
    """
    Compiles required GUIDs into dependency expression bytecode.

    N operands become N PUSH <GUID> instructions, N-1 AND instructions and
    a closing END. `all_true` (or the single operand "TRUE") becomes TRUE END.
    """
    if phase not in DEPEX_PHASES:
        raise FfsConfigError(f'Unknown dependency expression phase: {phase}')
    if all_true or (len(operands) == 1 and _is_true_operand(operands[0])):
        return _opcode(EFI_DEP_TRUE, phase) + _opcode(EFI_DEP_END, phase)
    if not operands:
        raise DepexParseError('Dependency expression requires at least one GUID or TRUE')
    if any(_is_true_operand(op) for op in operands):
        raise DepexParseError('TRUE cannot be combined with GUID operands')

    depex = b''
    for operand in operands:
        depex += _opcode(EFI_DEP_PUSH, phase) + get_guid_bin(operand)
    depex += _opcode(EFI_DEP_AND, phase) * (len(operands) - 1)
    depex += _opcode(EFI_DEP_END, phase)
    return depex


def encode_depex(file_type: Union[int, str], operands: Sequence[DepexOperand], all_true: bool = False) -> bytes:
    """Builds the DEPEX section matching the dispatcher phase of file_type."""
    phase = get_depex_phase(file_type)
    SectionType = DEPEX_PHASES[phase][0]
    depex = compile_depex(operands, all_true, phase)
    logger().log_hal(f'[depex] {get_section_name(SectionType)}: {depex_to_string(depex)}')
    return encode_section(SectionType, depex)


def depex_to_string(depex: bytes) -> str:
    """Disassembles dependency expression bytecode."""
    ops = []
    off = 0
    while off < len(depex):
        opcode = depex[off]
        off += 1
        if opcode not in DEPEX_OPCODE_NAMES:
            ops.append(f'UNKNOWN_{opcode:02X}')
            continue
        if opcode in DEPEX_GUID_OPCODES:
            guid = UUID(bytes_le=depex[off:off + EFI_GUID_SIZE]) if off + EFI_GUID_SIZE <= len(depex) else None
            off += EFI_GUID_SIZE
            ops.append(f'{DEPEX_OPCODE_NAMES[opcode]} {{{guid}}}' if guid else f'{DEPEX_OPCODE_NAMES[opcode]} <truncated>')
        else:
            ops.append(DEPEX_OPCODE_NAMES[opcode])
    return ' '.join(ops)
