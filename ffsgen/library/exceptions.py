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


# ================================================
# FFSGEN common
# ================================================

class FfsError(RuntimeError):
    pass


# Unknown section/file type, missing inputs, no depex phase
class FfsConfigError(FfsError):
    pass


class OptionsConfigError(FfsConfigError):
    """Raised when the options file cannot be located or read."""
    pass


# Parsing
class ParseError(FfsError):
    """Base exception for text input that cannot be parsed."""
    pass


class GuidParseError(ParseError):
    pass


class DepexParseError(ParseError):
    pass


# Compression
class CodecError(FfsError):
    pass


# GUID width, size overflow, unmappable input name
class FfsPreconditionError(FfsError):
    pass
