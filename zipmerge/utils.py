"""
Copyright 2025 DNAi inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""
Utility functions for zipmerge.

This module provides the little-endian binary cursor used by all format
code, DOS date/time packing, and chunked reads of raw byte ranges.
"""

import io
import struct
from datetime import datetime
from typing import BinaryIO, Iterator

from .constants import COPY_CHUNK_SIZE
from .errors import ZipFormatError, ZipIOError


def timestamp_to_dos_datetime(dt: datetime) -> tuple[int, int]:
    """Pack a datetime into (dos_date, dos_time).

    Years outside 1980-2107 are clamped; seconds are rounded down to even.
    """
    years = min(max(dt.year - 1980, 0), 127)
    return (
        (years << 9) | (dt.month << 5) | dt.day,
        (dt.hour << 11) | (dt.minute << 5) | (dt.second // 2),
    )


def stream_size(f: BinaryIO) -> int:
    """Return the length of a seekable stream, restoring its position."""
    position = f.tell()
    try:
        return f.seek(0, io.SEEK_END)
    finally:
        f.seek(position)


def read_exact(f: BinaryIO, size: int) -> bytes:
    """Read exactly 'size' bytes.

    Raises:
        ZipFormatError: On a negative size or if the stream ends first, which
            means the structure being read is truncated.
    """
    if size < 0:
        raise ZipFormatError(f"Invalid read size: {size}")

    data = f.read(size)
    if len(data) < size:
        raise ZipFormatError(f"Unexpected end of file: expected {size} bytes, got {len(data)}")
    return data


def read_uint16(f: BinaryIO) -> int:
    """Read a little-endian 16-bit unsigned integer from file."""
    return struct.unpack("<H", read_exact(f, 2))[0]


def read_uint32(f: BinaryIO) -> int:
    """Read a little-endian 32-bit unsigned integer from file."""
    return struct.unpack("<I", read_exact(f, 4))[0]


def read_uint64(f: BinaryIO) -> int:
    """Read a little-endian 64-bit unsigned integer from file."""
    return struct.unpack("<Q", read_exact(f, 8))[0]


def write_bytes(f: BinaryIO, data: bytes) -> None:
    """Write all of 'data' to file.

    Raises:
        ZipIOError: If the stream accepts fewer bytes than given.
    """
    written = f.write(data)
    if written is not None and written != len(data):
        raise ZipIOError(
            f"Write operation failed: expected to write {len(data)} bytes, wrote {written} bytes"
        )


def write_uint16(f: BinaryIO, value: int) -> None:
    """Write a little-endian 16-bit unsigned integer to file."""
    write_bytes(f, struct.pack("<H", value & 0xFFFF))


def write_uint32(f: BinaryIO, value: int) -> None:
    """Write a little-endian 32-bit unsigned integer to file."""
    write_bytes(f, struct.pack("<I", value & 0xFFFFFFFF))


def write_uint64(f: BinaryIO, value: int) -> None:
    """Write a little-endian 64-bit unsigned integer to file."""
    write_bytes(f, struct.pack("<Q", value & 0xFFFFFFFFFFFFFFFF))


def iter_range(
    f: BinaryIO, start: int, length: int, chunk_size: int = COPY_CHUNK_SIZE
) -> Iterator[bytes]:
    """Yield the bytes of [start, start + length) from file in chunks.

    Args:
        f: Seekable binary file-like object.
        start: Absolute offset of the first byte.
        length: Number of bytes to yield in total.
        chunk_size: Maximum size of each yielded chunk.

    Raises:
        ZipFormatError: If the stream ends before 'length' bytes were read.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    f.seek(start)
    remaining = length
    while remaining > 0:
        chunk = f.read(min(chunk_size, remaining))
        if not chunk:
            raise ZipFormatError(
                f"Unexpected end of file: {remaining} of {length} bytes "
                f"missing at offset {start + length - remaining}"
            )
        remaining -= len(chunk)
        yield chunk
