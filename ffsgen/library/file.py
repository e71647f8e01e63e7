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
Reading from/writing to files with validation support

usage:
    >>> read_file(filename)
    >>> write_file(filename, buffer)
    >>> validate_file_exists(filename)
"""

import os
from typing import Any
from ffsgen.library.exceptions import FfsConfigError
from ffsgen.library.logger import logger


def read_file(filename: str, size: int = 0, validate: bool = True) -> bytes:
    """
    Read file with optional validation.

    Args:
        filename: Path to file to read
        size: Number of bytes to read (0 = read all)
        validate: Whether to validate file before reading

    Returns:
        File contents as bytes

    Raises:
        FfsConfigError: the file is missing or cannot be read
    """
    if validate and not validate_file_exists(filename, "input file"):
        raise FfsConfigError(f"Cannot read input '{filename}'")

    try:
        with open(filename, 'rb') as f:
            if size:
                _file = f.read(size)
            else:
                _file = f.read()
    except OSError as err:
        raise FfsConfigError(f"Unable to open file '{filename:.256}' for read access: {err}") from err
    logger().log_debug(f"[file] Read {len(_file):d} bytes from '{filename:.256}'")
    return _file


def write_file(filename: str, buffer: Any, append: bool = False, validate: bool = True) -> bool:
    """
    Write file with optional validation.

    Args:
        filename: Path to file to write
        buffer: Data to write
        append: Whether to append to existing file
        validate: Whether to validate directory before writing

    Returns:
        True if write successful, False otherwise
    """
    if validate:
        dir_path = os.path.dirname(filename)
        if dir_path and not validate_directory_path(dir_path, create_if_missing=True):
            return False

    perm = 'a' if append else 'w'
    if isinstance(buffer, bytes) or isinstance(buffer, bytearray):
        perm += 'b'
    try:
        with open(filename, perm) as f:
            f.write(buffer)
    except OSError:
        logger().log_error(f"Unable to open file '{filename:.256}' for write access")
        return False

    logger().log_debug(f"[file] Wrote {len(buffer):d} bytes to '{filename:.256}'")
    return True


def get_main_dir() -> str:
    path = os.path.abspath(os.path.join(os.path.dirname(__file__), os.path.pardir, os.path.pardir))
    return path


# ================================================
# File Validation Functions
# ================================================

def validate_file_exists(filepath: str, file_type: str = "file") -> bool:
    """
    Validate that a file exists and is accessible.

    Args:
        filepath: Path to the file to validate
        file_type: Description of the file type for error messages

    Returns:
        True if file exists and is accessible, False otherwise
    """
    if not filepath:
        logger().log_error(f"Empty filepath provided for {file_type}")
        return False

    if not os.path.exists(filepath):
        logger().log_error(f"File not found: {file_type} '{filepath}'")
        return False

    if not os.path.isfile(filepath):
        logger().log_error(f"Path '{filepath}' exists but is not a file")
        return False

    return True


def validate_directory_path(dirpath: str, create_if_missing: bool = False) -> bool:
    """
    Validate directory path and optionally create it.

    Args:
        dirpath: Directory path to validate
        create_if_missing: Create directory if it doesn't exist

    Returns:
        True if directory exists or was created successfully, False otherwise
    """
    if not dirpath:
        logger().log_error("Empty directory path provided")
        return False

    if os.path.exists(dirpath):
        if not os.path.isdir(dirpath):
            logger().log_error(f"Path '{dirpath}' exists but is not a directory")
            return False
        return True

    if create_if_missing:
        try:
            os.makedirs(dirpath, exist_ok=True)
            logger().log_debug(f"Created directory: {dirpath}")
            return True
        except OSError as e:
            logger().log_error(f"Failed to create directory '{dirpath}': {e}")
            return False
    else:
        logger().log_error(f"Directory '{dirpath}' does not exist")
        return False
