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
ZIP archive reader implementation.

This module provides the ZipReader class, which parses the central directory
of a ZIP or ZIP64 archive and gives access to each entry's raw, still
compressed payload without decoding it.
"""

import logging
from dataclasses import replace
from typing import BinaryIO, Iterator, Optional

from .constants import COPY_CHUNK_SIZE, MAX_FILE_SIZE
from .errors import ZipFormatError
from .structures import (
    CentralDirectory,
    DataDescriptor,
    LocalFileHeader,
    ZipEntry,
    parse_central_directory,
    parse_data_descriptor,
    parse_local_file_header,
    resolve_zip64_values,
    split_zip64_extra,
)
from .utils import iter_range, stream_size

logger = logging.getLogger(__name__)


class ZipReader:
    """Reader for the structure of ZIP and ZIP64 archives.

    The central directory is parsed once on open and is the authoritative
    source for every entry's payload length.

    Example:
        with ZipReader("archive.zip") as z:
            for entry in z.entries:
                start, end = z.payload_range(entry)
    """

    def __init__(self, file: str | BinaryIO, size: Optional[int] = None):
        """Initialize ZipReader with a file path or file-like object.

        Args:
            file: Path to ZIP file (str or path-like) or seekable binary
                file-like object. A file-like object is not closed by the reader.
            size: Length of the archive in bytes. Defaults to the stream length.

        Raises:
            ZipFormatError: If the archive structure cannot be parsed.
            OSError: If the file cannot be opened or read.
        """
        if hasattr(file, "__fspath__"):
            file = str(file)

        if isinstance(file, str):
            self._file = open(file, "rb")
            self._should_close = True
            self.name: Optional[str] = file
        else:
            for method in ("read", "seek", "tell"):
                if not hasattr(file, method):
                    raise ZipFormatError(f"File-like object must have a {method}() method")
            self._file = file
            self._should_close = False
            self.name = getattr(file, "name", None)

        self._closed: bool = False

        try:
            self._size = stream_size(self._file) if size is None else size
            self._directory: CentralDirectory
            self._directory, self._append_offset = parse_central_directory(
                self._file, self._size
            )
        except Exception:
            self.close()
            raise

        logger.debug(
            "Parsed %d entries from %s (central directory at %d, %d bytes)",
            len(self._directory.entries),
            self.name or "<stream>",
            self._directory.offset,
            self._directory.size,
        )

    @property
    def entries(self) -> tuple[ZipEntry, ...]:
        """Entries in central directory order."""
        return tuple(self._directory.entries)

    @property
    def append_offset(self) -> int:
        """Offset where the existing central directory begins."""
        return self._append_offset

    @property
    def comment(self) -> bytes:
        """Archive comment from the End of Central Directory record."""
        return self._directory.comment

    @property
    def size(self) -> int:
        """Length of the archive stream in bytes."""
        return self._size

    @property
    def is_zip64(self) -> bool:
        return self._directory.is_zip64

    def _check_open(self) -> BinaryIO:
        if self._closed or self._file is None:
            raise ZipFormatError("Archive is closed")
        return self._file

    def read_local_header(self, entry: ZipEntry) -> tuple[LocalFileHeader, int]:
        """Parse the local file header of an entry.

        Returns:
            Tuple of (LocalFileHeader, offset where the raw data begins).

        Raises:
            ZipFormatError: If the offset is unresolved or out of bounds, or
                the header is invalid.
        """
        f = self._check_open()
        offset = entry.local_header_offset
        if offset is None:
            raise ZipFormatError(f"Local header offset of entry '{entry.name}' is unresolved")
        if offset >= self._size:
            raise ZipFormatError(
                f"Invalid local header offset for entry '{entry.name}': {offset} "
                f"(file size: {self._size})"
            )

        f.seek(offset)
        header = parse_local_file_header(f)
        return header, offset + header.size

    def _resolve_sizes(self, entry: ZipEntry, header: LocalFileHeader) -> ZipEntry:
        """Fill in sizes the central directory left unresolved.

        The central directory is authoritative. A data descriptor entry has
        no usable sizes in its local header, so without directory values the
        payload length cannot be known short of decompressing.
        """
        if entry.compressed_size is not None and entry.uncompressed_size is not None:
            return entry

        if entry.has_data_descriptor:
            raise ZipFormatError(
                f"Sizes of data descriptor entry '{entry.name}' "
                f"are not resolved by the central directory"
            )

        zip64_data, _ = split_zip64_extra(header.extra)
        uncompressed_size, compressed_size = resolve_zip64_values(
            zip64_data,
            [
                (header.uncompressed_size, MAX_FILE_SIZE, 8),
                (header.compressed_size, MAX_FILE_SIZE, 8),
            ],
        )
        if entry.compressed_size is not None:
            compressed_size = entry.compressed_size
        if entry.uncompressed_size is not None:
            uncompressed_size = entry.uncompressed_size
        if compressed_size is None or uncompressed_size is None:
            raise ZipFormatError(f"Sizes of entry '{entry.name}' are unresolved")

        logger.debug("Resolved sizes of '%s' from its local header", entry.name)
        return replace(
            entry, compressed_size=compressed_size, uncompressed_size=uncompressed_size
        )

    def locate(self, entry: ZipEntry) -> tuple[ZipEntry, LocalFileHeader, int]:
        """Resolve an entry against its local header and validate its payload.

        Returns:
            Tuple of (entry with resolved sizes, LocalFileHeader, offset where
            the raw data begins).

        Raises:
            ZipFormatError: If the local header is invalid, the sizes cannot be
                resolved, or the payload extends beyond the archive.
        """
        header, start = self.read_local_header(entry)
        entry = self._resolve_sizes(entry, header)
        end = start + entry.compressed_size
        if end > self._size:
            raise ZipFormatError(
                f"Compressed data extends beyond file for entry '{entry.name}': "
                f"range [{start}, {end}) (file size: {self._size})"
            )
        return entry, header, start

    def payload_range(self, entry: ZipEntry) -> tuple[int, int]:
        """Locate an entry's raw compressed payload.

        Returns:
            Tuple of (start, end) absolute offsets, end exclusive.

        Raises:
            ZipFormatError: See locate().
        """
        entry, _, start = self.locate(entry)
        return start, start + entry.compressed_size

    def iter_bytes(
        self, start: int, length: int, chunk_size: int = COPY_CHUNK_SIZE
    ) -> Iterator[bytes]:
        """Yield the archive bytes of [start, start + length) in chunks."""
        return iter_range(self._check_open(), start, length, chunk_size)

    def iter_payload(
        self, entry: ZipEntry, chunk_size: int = COPY_CHUNK_SIZE
    ) -> Iterator[bytes]:
        """Yield an entry's raw compressed payload in chunks, undecoded.

        The payload range is validated before the iterator is returned.
        """
        start, end = self.payload_range(entry)
        return self.iter_bytes(start, end - start, chunk_size)

    def read_payload(self, entry: ZipEntry) -> bytes:
        """Return an entry's raw compressed payload as bytes."""
        return b"".join(self.iter_payload(entry))

    def read_data_descriptor(self, entry: ZipEntry) -> DataDescriptor:
        """Parse the data descriptor following an entry's payload.

        The descriptor has 64-bit sizes when the local header carries a
        ZIP64 extra block.

        Raises:
            ZipFormatError: If the entry has no data descriptor or it is truncated.
        """
        if not entry.has_data_descriptor:
            raise ZipFormatError(f"Entry '{entry.name}' has no data descriptor")

        header, _ = self.read_local_header(entry)
        zip64_data, _ = split_zip64_extra(header.extra)
        _, end = self.payload_range(entry)

        f = self._check_open()
        f.seek(end)
        return parse_data_descriptor(f, is_zip64=zip64_data is not None)

    def close(self) -> None:
        """Close the archive file if the reader opened it."""
        if self._closed:
            return

        if self._should_close and self._file:
            self._file.close()
        self._file = None
        self._closed = True

    def __enter__(self) -> "ZipReader":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
