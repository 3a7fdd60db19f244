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
ZIP structure definitions, parsing and serialization functions.

This module holds the two record models the merge engine works with:

- the central directory model: central directory headers, the End of
  Central Directory record and its ZIP64 locator/record, and
- the local entry model: local file headers and the optional trailing
  data descriptor.

Parsing functions read from the current position of a binary stream;
``write_*`` functions serialize to the current position and return the
number of bytes written so callers can keep their offset bookkeeping.
"""

import io
import logging
import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional

from .constants import (
    CENTRAL_DIR_HEADER,
    CENTRAL_DIR_HEADER_SIZE,
    DATA_DESCRIPTOR,
    DATA_DESCRIPTOR_SIZE,
    END_OF_CENTRAL_DIR,
    END_OF_CENTRAL_DIR_MAGIC,
    END_OF_CENTRAL_DIR_SIZE,
    FLAG_DATA_DESCRIPTOR,
    FLAG_ENCRYPTED,
    FLAG_UTF8,
    LOCAL_FILE_HEADER,
    LOCAL_FILE_HEADER_SIZE,
    MAX_CD_OFFSET,
    MAX_CD_SIZE,
    MAX_COMMENT_SIZE,
    MAX_DISK_NUMBER,
    MAX_ENTRIES,
    MAX_FILE_SIZE,
    VERSION_MADE_BY_DEFAULT,
    VERSION_ZIP64,
    ZIP64_DATA_DESCRIPTOR_SIZE,
    ZIP64_END_OF_CENTRAL_DIR,
    ZIP64_END_OF_CENTRAL_DIR_LOCATOR,
    ZIP64_END_OF_CENTRAL_DIR_SIZE,
    ZIP64_EXTRA_FIELD_TAG,
    ZIP64_LOCATOR_SIZE,
)
from .errors import ZipFormatError, ZipUnsupportedFeature
from .utils import (
    read_exact,
    read_uint32,
    read_uint64,
    write_bytes,
    write_uint16,
    write_uint32,
    write_uint64,
)

logger = logging.getLogger(__name__)

# Fixed parts of the records, signature first, in dataclass field order
_LOCAL_HEADER = struct.Struct("<IHHHHHIIIHH")
_CENTRAL_HEADER = struct.Struct("<IHHHHHHIIIHHHHHII")
_EOCD = struct.Struct("<IHHHHIIH")
_ZIP64_EOCD = struct.Struct("<IQHHIIQQQQ")
_ZIP64_LOCATOR = struct.Struct("<IIQI")


@dataclass
class LocalFileHeader:
    """Local file header structure.

    This header appears before each file's compressed data in the ZIP archive.
    """

    signature: int
    version: int
    flags: int
    compression_method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    filename_len: int
    extra_len: int
    filename: bytes
    extra: bytes

    @property
    def size(self) -> int:
        """Total header length, i.e. the distance to the entry's raw data."""
        return LOCAL_FILE_HEADER_SIZE + self.filename_len + self.extra_len


@dataclass
class CentralDirectoryHeader:
    """Central directory header structure, with its 32-bit fields as stored.

    This header appears in the central directory and contains information
    about a file entry, including a pointer to the local file header.
    """

    signature: int
    version_made_by: int
    version: int
    flags: int
    compression_method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: int
    uncompressed_size: int
    filename_len: int
    extra_len: int
    comment_len: int
    disk_num: int
    internal_attrs: int
    external_attrs: int
    local_header_offset: int
    filename: bytes
    extra: bytes
    comment: bytes


@dataclass
class EndOfCentralDirectory:
    """End of Central Directory record.

    This record marks the end of the central directory and contains
    information needed to locate the central directory.
    """

    signature: int
    disk_num: int
    cd_disk: int
    cd_records_on_disk: int
    cd_records_total: int
    cd_size: int
    cd_offset: int
    comment_len: int
    comment: bytes

    @property
    def is_saturated(self) -> bool:
        """True if any field holds the sentinel that defers to ZIP64."""
        return (
            self.cd_records_total == MAX_ENTRIES
            or self.cd_size == MAX_CD_SIZE
            or self.cd_offset == MAX_CD_OFFSET
        )


@dataclass
class Zip64EndOfCentralDirectory:
    """ZIP64 End of Central Directory record.

    This record is used when ZIP64 extensions are needed (large files,
    many entries, etc.).
    """

    signature: int
    size: int
    version_made_by: int
    version_needed: int
    disk_num: int
    cd_disk: int
    cd_records_on_disk: int
    cd_records_total: int
    cd_size: int
    cd_offset: int


@dataclass
class Zip64Locator:
    """ZIP64 End of Central Directory Locator.

    This record points to the ZIP64 End of Central Directory record.
    """

    signature: int
    disk_num: int
    zip64_eocd_offset: int
    total_disks: int


@dataclass
class DataDescriptor:
    """Data descriptor structure.

    Written after the compressed data when bit 3 of the general purpose
    flags is set. The leading signature is optional in the format.
    """

    crc32: int
    compressed_size: int
    uncompressed_size: int
    is_zip64: bool = False
    has_signature: bool = True


@dataclass(frozen=True)
class ZipEntry:
    """ZIP entry metadata as resolved from the central directory.

    ZIP64 overrides are folded into the integer fields and removed from
    ``extra``. A size or offset is ``None`` when the directory saturates
    the 32-bit field but carries no ZIP64 value for it.
    """

    index: int
    filename: bytes
    version_made_by: int
    version_needed: int
    flags: int
    compression_method: int
    mod_time: int
    mod_date: int
    crc32: int
    compressed_size: Optional[int]
    uncompressed_size: Optional[int]
    local_header_offset: Optional[int]
    internal_attrs: int = 0
    external_attrs: int = 0
    extra: bytes = b""
    comment: bytes = b""

    @property
    def name(self) -> str:
        """Decoded entry name (UTF-8 when flagged, CP437 otherwise)."""
        if self.flags & FLAG_UTF8:
            return self.filename.decode("utf-8", errors="replace")
        return self.filename.decode("cp437")

    @property
    def has_data_descriptor(self) -> bool:
        return bool(self.flags & FLAG_DATA_DESCRIPTOR)

    @property
    def is_encrypted(self) -> bool:
        return bool(self.flags & FLAG_ENCRYPTED)

    @property
    def is_resolved(self) -> bool:
        """True if sizes and offset are all known."""
        return (
            self.compressed_size is not None
            and self.uncompressed_size is not None
            and self.local_header_offset is not None
        )


@dataclass
class CentralDirectory:
    """A parsed central directory together with its location."""

    entries: list[ZipEntry]
    offset: int
    size: int
    comment: bytes = b""
    is_zip64: bool = False


def _read_record(f: BinaryIO, layout: struct.Struct, signature: int, what: str) -> tuple:
    """Read the fixed part of a record and check its signature."""
    fields = layout.unpack(read_exact(f, layout.size))
    if fields[0] != signature:
        raise ZipFormatError(
            f"Invalid {what} signature: 0x{fields[0]:08X}, expected 0x{signature:08X}"
        )
    return fields


def parse_local_file_header(f: BinaryIO) -> LocalFileHeader:
    """Parse a local file header from the current file position.

    Args:
        f: Binary file-like object positioned at the start of a local file header.

    Returns:
        LocalFileHeader object; the stream is left at the start of the raw data.

    Raises:
        ZipFormatError: If the signature is invalid or file is truncated.
    """
    fields = _read_record(f, _LOCAL_HEADER, LOCAL_FILE_HEADER, "local file header")
    header = LocalFileHeader(*fields, filename=b"", extra=b"")
    header.filename = read_exact(f, header.filename_len)
    header.extra = read_exact(f, header.extra_len)
    return header


def parse_central_directory_header(f: BinaryIO) -> CentralDirectoryHeader:
    """Parse a central directory header from the current file position.

    Raises:
        ZipFormatError: If the signature is invalid or file is truncated.
    """
    fields = _read_record(f, _CENTRAL_HEADER, CENTRAL_DIR_HEADER, "central directory header")
    header = CentralDirectoryHeader(*fields, filename=b"", extra=b"", comment=b"")
    header.filename = read_exact(f, header.filename_len)
    header.extra = read_exact(f, header.extra_len)
    header.comment = read_exact(f, header.comment_len)
    return header


def parse_eocd(f: BinaryIO) -> EndOfCentralDirectory:
    """Parse an End of Central Directory record, comment included."""
    fields = _read_record(f, _EOCD, END_OF_CENTRAL_DIR, "EOCD")
    eocd = EndOfCentralDirectory(*fields, comment=b"")
    eocd.comment = read_exact(f, eocd.comment_len)
    return eocd


def parse_zip64_eocd(f: BinaryIO) -> Zip64EndOfCentralDirectory:
    """Parse the fixed part of a ZIP64 End of Central Directory record.

    The extensible data sector that may follow is not read.
    """
    return Zip64EndOfCentralDirectory(
        *_read_record(f, _ZIP64_EOCD, ZIP64_END_OF_CENTRAL_DIR, "ZIP64 EOCD")
    )


def parse_zip64_locator(f: BinaryIO) -> Zip64Locator:
    return Zip64Locator(
        *_read_record(f, _ZIP64_LOCATOR, ZIP64_END_OF_CENTRAL_DIR_LOCATOR, "ZIP64 locator")
    )


def parse_data_descriptor(f: BinaryIO, is_zip64: bool = False) -> DataDescriptor:
    """Parse a data descriptor from the current file position.

    The descriptor signature is optional; when the first four bytes are not
    the signature they are taken as the CRC32.

    Args:
        f: Binary file-like object positioned just after an entry's payload.
        is_zip64: Whether the sizes are 64-bit.

    Raises:
        ZipFormatError: If the file is truncated.
    """
    first = read_uint32(f)
    has_signature = first == DATA_DESCRIPTOR
    crc32 = read_uint32(f) if has_signature else first

    if is_zip64:
        compressed_size = read_uint64(f)
        uncompressed_size = read_uint64(f)
    else:
        compressed_size = read_uint32(f)
        uncompressed_size = read_uint32(f)

    return DataDescriptor(
        crc32=crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        is_zip64=is_zip64,
        has_signature=has_signature,
    )


def split_zip64_extra(extra: bytes) -> tuple[Optional[bytes], bytes]:
    """Separate the ZIP64 block from an extra field.

    Args:
        extra: Raw extra field bytes.

    Returns:
        Tuple of (zip64 block data or None, remaining extra bytes). Bytes that
        do not form a complete tag/size block are kept verbatim at the end.
    """
    zip64_data = None
    kept = bytearray()
    pos = 0
    while pos + 4 <= len(extra):
        tag, size = struct.unpack_from("<HH", extra, pos)
        end = pos + 4 + size
        if end > len(extra):
            break
        if tag == ZIP64_EXTRA_FIELD_TAG:
            if zip64_data is None:
                zip64_data = extra[pos + 4 : end]
        else:
            kept += extra[pos:end]
        pos = end
    kept += extra[pos:]
    return zip64_data, bytes(kept)


def resolve_zip64_values(
    zip64_data: Optional[bytes], fields: list[tuple[int, int, int]]
) -> list[Optional[int]]:
    """Resolve 32-bit fields against a ZIP64 extra block.

    Only saturated fields are present in the block, in the order given.

    Args:
        zip64_data: Payload of the ZIP64 extra block, or None if absent.
        fields: (stored value, sentinel, width in bytes) for each field, in
            the block's field order.

    Returns:
        The resolved value of each field; None when a saturated field has no
        corresponding value in the block.
    """
    resolved: list[Optional[int]] = []
    pos = 0
    for value, sentinel, width in fields:
        if value != sentinel:
            resolved.append(value)
            continue
        if zip64_data is None or pos + width > len(zip64_data):
            resolved.append(None)
            continue
        fmt = "<Q" if width == 8 else "<I"
        resolved.append(struct.unpack_from(fmt, zip64_data, pos)[0])
        pos += width
    return resolved


def build_zip64_extra_field(values: list[int]) -> bytes:
    """Build a ZIP64 extra block holding the given 64-bit values in order."""
    if not values:
        return b""
    data = b"".join(struct.pack("<Q", value) for value in values)
    return struct.pack("<HH", ZIP64_EXTRA_FIELD_TAG, len(data)) + data


def entry_from_central_header(header: CentralDirectoryHeader, index: int) -> ZipEntry:
    """Build a ZipEntry from a raw central directory header.

    Raises:
        ZipUnsupportedFeature: If the entry starts on another disk.
    """
    zip64_data, extra = split_zip64_extra(header.extra)
    uncompressed_size, compressed_size, local_header_offset, disk_num = resolve_zip64_values(
        zip64_data,
        [
            (header.uncompressed_size, MAX_FILE_SIZE, 8),
            (header.compressed_size, MAX_FILE_SIZE, 8),
            (header.local_header_offset, MAX_CD_OFFSET, 8),
            (header.disk_num, MAX_DISK_NUMBER, 4),
        ],
    )
    if disk_num:
        raise ZipUnsupportedFeature(
            f"Entry {index} starts on disk {disk_num} (multi-disk archives are not supported)"
        )

    return ZipEntry(
        index=index,
        filename=header.filename,
        version_made_by=header.version_made_by,
        version_needed=header.version,
        flags=header.flags,
        compression_method=header.compression_method,
        mod_time=header.mod_time,
        mod_date=header.mod_date,
        crc32=header.crc32,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        local_header_offset=local_header_offset,
        internal_attrs=header.internal_attrs,
        external_attrs=header.external_attrs,
        extra=extra,
        comment=header.comment,
    )


def find_eocd(f: BinaryIO, size: int) -> tuple[EndOfCentralDirectory, int]:
    """Find and parse the End of Central Directory record.

    Scans backward from the end of the stream. The EOCD can be followed by
    up to 65535 bytes of comment, so the search window is bounded by that.
    A candidate signature is accepted only if its declared comment fits in
    the stream, which skips signatures appearing inside the comment.

    Returns:
        Tuple of (EndOfCentralDirectory, absolute position of the record).

    Raises:
        ZipFormatError: If no EOCD record is found.
    """
    if size < END_OF_CENTRAL_DIR_SIZE:
        raise ZipFormatError(f"File too small to be a ZIP archive: {size} bytes")

    window = min(size, END_OF_CENTRAL_DIR_SIZE + MAX_COMMENT_SIZE)
    window_start = size - window
    f.seek(window_start)
    data = read_exact(f, window)

    pos = data.rfind(END_OF_CENTRAL_DIR_MAGIC)
    while pos != -1:
        if pos + END_OF_CENTRAL_DIR_SIZE <= len(data):
            comment_len = struct.unpack_from("<H", data, pos + 20)[0]
            if pos + END_OF_CENTRAL_DIR_SIZE + comment_len <= len(data):
                absolute_pos = window_start + pos
                f.seek(absolute_pos)
                return parse_eocd(f), absolute_pos
        pos = data.rfind(END_OF_CENTRAL_DIR_MAGIC, 0, pos)

    raise ZipFormatError("End of Central Directory record not found")


def _find_zip64_eocd(
    f: BinaryIO, eocd_pos: int
) -> Optional[tuple[Zip64EndOfCentralDirectory, int]]:
    """Follow the ZIP64 locator immediately preceding the EOCD, if any."""
    locator_pos = eocd_pos - ZIP64_LOCATOR_SIZE
    if locator_pos < 0:
        return None

    f.seek(locator_pos)
    if read_uint32(f) != ZIP64_END_OF_CENTRAL_DIR_LOCATOR:
        return None
    f.seek(locator_pos)
    locator = parse_zip64_locator(f)

    if locator.disk_num != 0 or locator.total_disks > 1:
        raise ZipUnsupportedFeature(
            f"Archive spans {locator.total_disks} disks (multi-disk archives are not supported)"
        )

    zip64_eocd_offset = locator.zip64_eocd_offset
    if zip64_eocd_offset + ZIP64_END_OF_CENTRAL_DIR_SIZE > locator_pos:
        raise ZipFormatError(
            f"Invalid ZIP64 EOCD offset: {zip64_eocd_offset} (locator at {locator_pos})"
        )

    f.seek(zip64_eocd_offset)
    return parse_zip64_eocd(f), zip64_eocd_offset


def parse_central_directory(f: BinaryIO, size: int) -> tuple[CentralDirectory, int]:
    """Locate and parse the central directory of an archive.

    Args:
        f: Seekable binary stream holding the archive.
        size: Length of the stream in bytes.

    Returns:
        Tuple of (CentralDirectory, append offset). The append offset is the
        position where the existing central directory begins.

    Raises:
        ZipFormatError: If the directory cannot be located or is inconsistent
            with the stream length.
        ZipUnsupportedFeature: If the archive spans multiple disks.
    """
    eocd, eocd_pos = find_eocd(f, size)
    end_records_start = eocd_pos

    zip64 = _find_zip64_eocd(f, eocd_pos)
    if zip64 is not None:
        zip64_eocd, end_records_start = zip64
        logger.debug("Found ZIP64 end of central directory at %d", end_records_start)
        disk_num, cd_disk = zip64_eocd.disk_num, zip64_eocd.cd_disk
        records_on_disk = zip64_eocd.cd_records_on_disk
        num_entries = zip64_eocd.cd_records_total
        cd_size = zip64_eocd.cd_size
        cd_offset = zip64_eocd.cd_offset
    else:
        if eocd.is_saturated:
            logger.debug("EOCD holds ZIP64 sentinels but no locator; using values as stored")
        disk_num, cd_disk = eocd.disk_num, eocd.cd_disk
        records_on_disk = eocd.cd_records_on_disk
        num_entries = eocd.cd_records_total
        cd_size = eocd.cd_size
        cd_offset = eocd.cd_offset

    if disk_num != 0 or cd_disk != 0 or records_on_disk != num_entries:
        raise ZipUnsupportedFeature("Multi-disk archives are not supported")

    if cd_offset + cd_size > end_records_start:
        raise ZipFormatError(
            f"Central directory extends beyond end records: offset {cd_offset}, "
            f"size {cd_size} (end records at {end_records_start}, file size: {size})"
        )
    if num_entries * CENTRAL_DIR_HEADER_SIZE > cd_size:
        raise ZipFormatError(
            f"Entry count {num_entries} does not fit in a central directory of {cd_size} bytes"
        )

    f.seek(cd_offset)
    cd_data = io.BytesIO(read_exact(f, cd_size))
    entries = [
        entry_from_central_header(parse_central_directory_header(cd_data), index)
        for index in range(num_entries)
    ]

    directory = CentralDirectory(
        entries=entries,
        offset=cd_offset,
        size=cd_size,
        comment=eocd.comment,
        is_zip64=zip64 is not None,
    )
    return directory, cd_offset


def local_header_needs_zip64(entry: ZipEntry, force_zip64: bool = False) -> bool:
    """Check whether an entry's local header needs a ZIP64 extra block."""
    return (
        force_zip64
        or entry.compressed_size >= MAX_FILE_SIZE
        or entry.uncompressed_size >= MAX_FILE_SIZE
    )


def _checked_extra(extra: bytes) -> bytes:
    if len(extra) > 0xFFFF:
        raise ZipFormatError(f"Extra field too long: {len(extra)} bytes (max 65535)")
    return extra


def write_local_file_header(
    f: BinaryIO, entry: ZipEntry, extra: bytes = b"", force_zip64: bool = False
) -> int:
    """Write a local file header for an entry.

    With the data descriptor flag set, CRC32 and sizes are written as zero
    (0xFFFFFFFF sizes plus a zeroed ZIP64 block for ZIP64 entries) and the
    real values go into the descriptor after the payload.

    Args:
        f: Destination stream positioned where the header starts.
        entry: Entry whose sizes are resolved.
        extra: Extra field to carry over; any ZIP64 block in it is replaced.
        force_zip64: Always write a ZIP64 block.

    Returns:
        Number of bytes written.
    """
    needs_zip64 = local_header_needs_zip64(entry, force_zip64)
    _, extra = split_zip64_extra(extra)

    if entry.has_data_descriptor:
        crc32 = 0
        if needs_zip64:
            stored_compressed_size = stored_uncompressed_size = MAX_FILE_SIZE
            extra = build_zip64_extra_field([0, 0]) + extra
        else:
            stored_compressed_size = stored_uncompressed_size = 0
    else:
        crc32 = entry.crc32
        if needs_zip64:
            stored_compressed_size = stored_uncompressed_size = MAX_FILE_SIZE
            extra = build_zip64_extra_field(
                [entry.uncompressed_size, entry.compressed_size]
            ) + extra
        else:
            stored_compressed_size = entry.compressed_size
            stored_uncompressed_size = entry.uncompressed_size
    extra = _checked_extra(extra)

    version = max(entry.version_needed, VERSION_ZIP64) if needs_zip64 else entry.version_needed

    write_uint32(f, LOCAL_FILE_HEADER)
    write_uint16(f, version)
    write_uint16(f, entry.flags)
    write_uint16(f, entry.compression_method)
    write_uint16(f, entry.mod_time)
    write_uint16(f, entry.mod_date)
    write_uint32(f, crc32)
    write_uint32(f, stored_compressed_size)
    write_uint32(f, stored_uncompressed_size)
    write_uint16(f, len(entry.filename))
    write_uint16(f, len(extra))
    write_bytes(f, entry.filename)
    write_bytes(f, extra)

    return LOCAL_FILE_HEADER_SIZE + len(entry.filename) + len(extra)


def write_data_descriptor(f: BinaryIO, entry: ZipEntry, is_zip64: bool = False) -> int:
    """Write a signed data descriptor for an entry.

    Returns:
        Number of bytes written.
    """
    write_uint32(f, DATA_DESCRIPTOR)
    write_uint32(f, entry.crc32)
    if is_zip64:
        write_uint64(f, entry.compressed_size)
        write_uint64(f, entry.uncompressed_size)
        return ZIP64_DATA_DESCRIPTOR_SIZE
    write_uint32(f, entry.compressed_size)
    write_uint32(f, entry.uncompressed_size)
    return DATA_DESCRIPTOR_SIZE


def write_central_directory_header(
    f: BinaryIO, entry: ZipEntry, force_zip64: bool = False
) -> int:
    """Write the central directory header of an entry.

    Sizes and the local header offset that do not fit in 32 bits (or all of
    them, when forced) are saturated and stored in a ZIP64 extra block
    placed ahead of the entry's other extra fields.

    Returns:
        Number of bytes written.

    Raises:
        ZipFormatError: If the entry has unresolved sizes or offset.
    """
    if not entry.is_resolved:
        raise ZipFormatError(f"Entry '{entry.name}' has unresolved sizes or offset")

    zip64_values = []
    stored = []
    for value in (entry.uncompressed_size, entry.compressed_size, entry.local_header_offset):
        if force_zip64 or value >= MAX_FILE_SIZE:
            zip64_values.append(value)
            stored.append(MAX_FILE_SIZE)
        else:
            stored.append(value)
    stored_uncompressed_size, stored_compressed_size, stored_offset = stored

    extra = _checked_extra(build_zip64_extra_field(zip64_values) + entry.extra)
    version = max(entry.version_needed, VERSION_ZIP64) if zip64_values else entry.version_needed

    write_uint32(f, CENTRAL_DIR_HEADER)
    write_uint16(f, entry.version_made_by)
    write_uint16(f, version)
    write_uint16(f, entry.flags)
    write_uint16(f, entry.compression_method)
    write_uint16(f, entry.mod_time)
    write_uint16(f, entry.mod_date)
    write_uint32(f, entry.crc32)
    write_uint32(f, stored_compressed_size)
    write_uint32(f, stored_uncompressed_size)
    write_uint16(f, len(entry.filename))
    write_uint16(f, len(extra))
    write_uint16(f, len(entry.comment))
    write_uint16(f, 0)  # Disk number start
    write_uint16(f, entry.internal_attrs)
    write_uint32(f, entry.external_attrs)
    write_uint32(f, stored_offset)
    write_bytes(f, entry.filename)
    write_bytes(f, extra)
    write_bytes(f, entry.comment)

    return CENTRAL_DIR_HEADER_SIZE + len(entry.filename) + len(extra) + len(entry.comment)


def end_records_need_zip64(
    num_entries: int, cd_offset: int, cd_size: int, force_zip64: bool = False
) -> bool:
    """Check whether the directory end needs ZIP64 records."""
    return (
        force_zip64
        or num_entries >= MAX_ENTRIES
        or cd_size >= MAX_CD_SIZE
        or cd_offset >= MAX_CD_OFFSET
    )


def write_end_records(
    f: BinaryIO,
    num_entries: int,
    cd_offset: int,
    cd_size: int,
    comment: bytes = b"",
    force_zip64: bool = False,
) -> int:
    """Write the End of Central Directory record, with ZIP64 records if needed.

    Args:
        f: Stream positioned directly after the central directory.
        num_entries: Number of central directory headers.
        cd_offset: Offset of central directory from start of file.
        cd_size: Size of central directory in bytes.
        comment: Archive comment.
        force_zip64: Write ZIP64 records regardless of the values.

    Returns:
        Number of bytes written.
    """
    if len(comment) > MAX_COMMENT_SIZE:
        raise ZipFormatError(f"Archive comment too long: {len(comment)} bytes (max 65535)")

    written = 0
    if end_records_need_zip64(num_entries, cd_offset, cd_size, force_zip64):
        zip64_eocd_offset = cd_offset + cd_size

        write_uint32(f, ZIP64_END_OF_CENTRAL_DIR)
        # Record size excludes the signature and the size field itself
        write_uint64(f, ZIP64_END_OF_CENTRAL_DIR_SIZE - 12)
        write_uint16(f, VERSION_MADE_BY_DEFAULT)
        write_uint16(f, VERSION_ZIP64)
        write_uint32(f, 0)  # Number of this disk
        write_uint32(f, 0)  # Disk with start of central directory
        write_uint64(f, num_entries)
        write_uint64(f, num_entries)
        write_uint64(f, cd_size)
        write_uint64(f, cd_offset)

        write_uint32(f, ZIP64_END_OF_CENTRAL_DIR_LOCATOR)
        write_uint32(f, 0)  # Disk with ZIP64 EOCD
        write_uint64(f, zip64_eocd_offset)
        write_uint32(f, 1)  # Total number of disks
        written += ZIP64_END_OF_CENTRAL_DIR_SIZE + ZIP64_LOCATOR_SIZE

        num_entries = MAX_ENTRIES
        cd_size = MAX_CD_SIZE
        cd_offset = MAX_CD_OFFSET

    write_uint32(f, END_OF_CENTRAL_DIR)
    write_uint16(f, 0)  # Number of this disk
    write_uint16(f, 0)  # Disk with start of central directory
    write_uint16(f, num_entries)
    write_uint16(f, num_entries)
    write_uint32(f, cd_size)
    write_uint32(f, cd_offset)
    write_uint16(f, len(comment))
    write_bytes(f, comment)
    written += END_OF_CENTRAL_DIR_SIZE + len(comment)

    return written
