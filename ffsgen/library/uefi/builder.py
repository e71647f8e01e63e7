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
Builds a complete FFS file from a request: input payloads, metadata, dependency
expression, optional compression.

usage:
    >>> build_ffs(FfsRequest(inputs=[FfsInput('driver.efi', data)], name='MyDriver', file_type='DRIVER'))
    >>> detect_section_type('Platform.pei.depex')
"""

from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

from ffsgen.library.exceptions import FfsConfigError, FfsPreconditionError
from ffsgen.library.logger import logger
from ffsgen.library.options import Options
from ffsgen.library.uefi.compression import SectionSet, compress_section_set
from ffsgen.library.uefi.depex import DEPEX_PHASES, encode_depex, get_depex_phase
from ffsgen.library.uefi.ffs import assemble_ffs_file, get_file_type, get_file_type_name
from ffsgen.library.uefi.guid import GuidType, resolve_guid
from ffsgen.library.uefi.section import EFI_SECTION_DXE_DEPEX, EFI_SECTION_FREEFORM_SUBTYPE_GUID, EFI_SECTION_MM_DEPEX
from ffsgen.library.uefi.section import EFI_SECTION_PE32, EFI_SECTION_PEI_DEPEX, EFI_SECTION_RAW, EFI_SECTION_USER_INTERFACE
from ffsgen.library.uefi.section import EFI_SECTION_VERSION, encode_section, get_section_name, get_section_type
from ffsgen.library.uefi.section import ui_section, version_section

CONFIG_SECTION = 'Util_Config'

DEFAULT_SECTION_TYPE = EFI_SECTION_PE32

# Input name suffix -> section type
AUTO_DETECT_SUFFIXES: Dict[str, int] = {
    '.pei.depex': EFI_SECTION_PEI_DEPEX,
    '.peidepex': EFI_SECTION_PEI_DEPEX,
    '.smm.depex': EFI_SECTION_MM_DEPEX,
    '.mm.depex': EFI_SECTION_MM_DEPEX,
    '.smmdepex': EFI_SECTION_MM_DEPEX,
    '.dxe.depex': EFI_SECTION_DXE_DEPEX,
    '.depex': EFI_SECTION_DXE_DEPEX,
    '.pe32': EFI_SECTION_PE32,
    '.efi': EFI_SECTION_PE32,
    '.raw': EFI_SECTION_RAW,
    '.bin': EFI_SECTION_RAW,
    '.ver': EFI_SECTION_VERSION,
    '.version': EFI_SECTION_VERSION,
    '.ui': EFI_SECTION_USER_INTERFACE,
    '.guid': EFI_SECTION_FREEFORM_SUBTYPE_GUID
}

# A precompiled dependency expression implies the file type dispatched in its phase
DEPEX_DEFAULT_FILE_TYPES: Dict[int, str] = {
    EFI_SECTION_PEI_DEPEX: 'PEIM',
    EFI_SECTION_DXE_DEPEX: 'DRIVER',
    EFI_SECTION_MM_DEPEX: 'SMM'
}


class FfsInput(NamedTuple):
    name: str
    data: bytes
    section_type: Optional[Union[int, str]] = None


class FfsRequest(NamedTuple):
    inputs: Sequence[FfsInput] = ()
    name: Optional[str] = None
    file_type: Optional[Union[int, str]] = None
    version: Optional[str] = None
    guid: Optional[GuidType] = None
    depex: Sequence[str] = ()
    depex_true: bool = False
    # None: no compression, '': configured default algorithm
    compress: Optional[str] = None
    auto_detect: bool = False
    attributes: Optional[int] = None
    erase_polarity: Optional[bool] = None
    build_number: int = 0


def detect_section_type(input_name: str) -> int:
    """Picks the section type from the input name suffix, longest suffix first."""
    lname = input_name.lower()
    for suffix in sorted(AUTO_DETECT_SUFFIXES, key=len, reverse=True):
        if lname.endswith(suffix):
            return AUTO_DETECT_SUFFIXES[suffix]
    raise FfsPreconditionError(f"Cannot determine the section type of input '{input_name}' "
                               f"(known suffixes: {', '.join(AUTO_DETECT_SUFFIXES.keys())})")


def _input_section_type(ffs_input: FfsInput, auto_detect: bool) -> int:
    if ffs_input.section_type is not None:
        return get_section_type(ffs_input.section_type)
    if auto_detect:
        return detect_section_type(ffs_input.name)
    return DEFAULT_SECTION_TYPE


def encode_inputs(inputs: Sequence[FfsInput], auto_detect: bool = False) -> Tuple[List[bytes], List[Tuple[str, int]]]:
    """
    Encodes every input into one section.

    Returns the sections and the (input name, section type) of every
    precompiled dependency expression among the inputs.
    """
    sections = []
    depex_inputs = []
    for ffs_input in inputs:
        try:
            SectionType = _input_section_type(ffs_input, auto_detect)
            sections.append(encode_section(SectionType, ffs_input.data))
        except (FfsConfigError, FfsPreconditionError) as err:
            raise type(err)(f"Input '{ffs_input.name}': {err}") from err
        logger().log_verbose(f"[builder] '{ffs_input.name}' -> {get_section_name(SectionType)} (0x{len(ffs_input.data):X} bytes)")
        if SectionType in DEPEX_DEFAULT_FILE_TYPES:
            depex_inputs.append((ffs_input.name, SectionType))
    return sections, depex_inputs


def check_depex_inputs(FileType: int, depex_inputs: Sequence[Tuple[str, int]], depex_requested: bool) -> None:
    """Rejects a second DEPEX section and a DEPEX input of the wrong phase."""
    if not depex_inputs:
        return
    if len(depex_inputs) > 1 or depex_requested:
        names = ', '.join(f"'{name}'" for name, _ in depex_inputs)
        raise FfsConfigError(f'Only one dependency expression per file is allowed (inputs {names}'
                             f"{' and --depex' if depex_requested else ''})")
    name, SectionType = depex_inputs[0]
    ExpectedType = DEPEX_PHASES[get_depex_phase(FileType)][0]
    if SectionType != ExpectedType:
        raise FfsConfigError(f"Input '{name}': {get_section_name(SectionType)} does not match file type "
                             f"{get_file_type_name(FileType)} (expected {get_section_name(ExpectedType)})")


def build_ffs(request: FfsRequest, options: Optional[Options] = None) -> bytes:
    """
    Builds the FFS file described by request.

    Input sections come first, followed by the UI, VERSION and DEPEX sections.
    When compression is requested, all of them are wrapped into one
    GUID-defined section.
    """
    if options is None:
        options = Options()

    sections, depex_inputs = encode_inputs(request.inputs, request.auto_detect)

    file_type = request.file_type
    if file_type is None and depex_inputs:
        file_type = DEPEX_DEFAULT_FILE_TYPES[depex_inputs[0][1]]
    if file_type is None:
        file_type = options.get_section_data(CONFIG_SECTION, 'default_file_type', 'FREEFORM')
    FileType = get_file_type(file_type)
    depex_requested = bool(request.depex) or request.depex_true
    check_depex_inputs(FileType, depex_inputs, depex_requested)

    if request.name:
        sections.append(ui_section(request.name))
    if request.version:
        sections.append(version_section(request.version, request.build_number))
    if depex_requested:
        sections.append(encode_depex(FileType, request.depex, request.depex_true))

    if not sections:
        raise FfsConfigError('No input sections and no metadata: nothing to build')

    if request.compress is not None:
        compression = request.compress or options.get_section_data(CONFIG_SECTION, 'default_compression', 'lzma')
        sections = list(compress_section_set(SectionSet(tuple(sections)), compression).sections)

    default_guid = options.get_section_data(CONFIG_SECTION, 'default_guid', '').strip()
    guid = resolve_guid(request.guid, request.name, default_guid or None)

    erase_polarity = request.erase_polarity
    if erase_polarity is None:
        erase_polarity = options.get_bool_data(CONFIG_SECTION, 'erase_polarity', True)

    logger().log_hal(f'[builder] {{{guid}}} {get_file_type_name(FileType)}: {len(sections):d} top-level section(s)')
    return assemble_ffs_file(guid, FileType, sections, request.attributes, erase_polarity)
