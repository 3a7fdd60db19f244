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
ZIP archive writer implementation.

This module provides the ZipWriter class, which writes raw (already
compressed) entries and a central directory describing them. A writer
either starts a fresh archive at offset 0 or is attached to an existing
archive at its append offset, keeping every byte before that offset.
"""

import enum
import io
import logging
from dataclasses import replace
from datetime import datetime
from typing import BinaryIO, Iterable, Optional

from .constants import (
    COMP_DEFLATE,
    COPY_CHUNK_SIZE,
    FLAG_DATA_DESCRIPTOR,
    FLAG_UTF8,
    METHOD_TO_NAME,
    VERSION_DEFAULT,
    VERSION_MADE_BY_DEFAULT,
)
from .errors import ZipFormatError, ZipUnsupportedFeature, ZipWriterClosed
from .reader import ZipReader
from .structures import (
    ZipEntry,
    local_header_needs_zip64,
    write_central_directory_header,
    write_data_descriptor,
    write_end_records,
    write_local_file_header,
)
from .utils import timestamp_to_dos_datetime, write_bytes

logger = logging.getLogger(__name__)


class WriterState(enum.Enum):
    FRESH = "fresh"
    APPENDING = "appending"
    CLOSED = "closed"


class ZipWriter:
    """Writer for ZIP and ZIP64 archives built from raw entries.

    Entries are never compressed or decompressed here: copied entries keep
    their payload bytes, CRC32 and sizes, and only their offsets change.

    Example:
        with ZipReader("a.zip") as src, ZipWriter("merged.zip") as z:
            for entry in src.entries:
                z.copy_entry(entry, src)
    """

    def __init__(
        self,
        file: str | BinaryIO,
        force_zip64: bool = False,
        chunk_size: int = COPY_CHUNK_SIZE,
    ):
        """Initialize a fresh ZipWriter with a file path or file-like object.

        Args:
            file: Path to ZIP file (str or path-like), created or truncated,
                or a binary file-like object opened for writing. A file-like
                object is not closed by the writer.
            force_zip64: Write ZIP64 records even when all values fit in 32 bits.
            chunk_size: Size of the chunks used to stream payloads.

        Raises:
            ZipFormatError: If the file-like object lacks required methods.
            OSError: If the file cannot be created.
        """
        if hasattr(file, "__fspath__"):
            file = str(file)

        if isinstance(file, str):
            self._file = open(file, "wb")
            self._should_close = True
        else:
            for method in ("write", "seek", "tell"):
                if not hasattr(file, method):
                    raise ZipFormatError(f"File-like object must have a {method}() method")
            self._file = file
            self._should_close = False

        self._entries: list[ZipEntry] = []
        self._origin: int = 0
        self._current_offset: int = 0
        self._state = WriterState.FRESH
        self._force_zip64 = force_zip64
        self._chunk_size = chunk_size
        self.comment: bytes = b""

    @classmethod
    def attach(
        cls,
        stream: BinaryIO,
        reader: ZipReader,
        force_zip64: bool = False,
        chunk_size: int = COPY_CHUNK_SIZE,
    ) -> "ZipWriter":
        """Attach a writer to an existing archive for in-place appending.

        The reader's entries and comment carry over unchanged and new entries
        are written from the reader's append offset, over the old central
        directory. The caller must position the stream at that offset first.

        Args:
            stream: Stream of the existing archive, opened for reading and writing.
            reader: Reader that parsed the same archive.

        Raises:
            ValueError: If the stream is not positioned at the append offset.
            ZipFormatError: If an existing entry has unresolved sizes or offset.
        """
        origin = reader.append_offset
        if stream.tell() != origin:
            raise ValueError(
                f"Stream is at offset {stream.tell()}, expected the append offset {origin}"
            )
        for entry in reader.entries:
            if not entry.is_resolved:
                raise ZipFormatError(
                    f"Existing entry '{entry.name}' has unresolved sizes or offset"
                )

        writer = cls(stream, force_zip64=force_zip64, chunk_size=chunk_size)
        writer._entries = list(reader.entries)
        writer._origin = writer._current_offset = origin
        writer._state = WriterState.APPENDING
        writer.comment = reader.comment
        logger.debug(
            "Appending after %d existing entries at offset %d", len(writer._entries), origin
        )
        return writer

    @property
    def state(self) -> WriterState:
        return self._state

    @property
    def offset(self) -> int:
        """Current write offset."""
        return self._current_offset

    @property
    def origin(self) -> int:
        """Offset where this writer started writing."""
        return self._origin

    @property
    def entries(self) -> tuple[ZipEntry, ...]:
        """Entries of the destination central directory, in order."""
        return tuple(self._entries)

    def _check_writable(self) -> BinaryIO:
        if self._state is WriterState.CLOSED or self._file is None:
            raise ZipWriterClosed("Archive writer is finalized")
        return self._file

    def _write_entry(
        self, record: ZipEntry, local_extra: bytes, chunks: Iterable[bytes]
    ) -> None:
        """Write local header, payload and data descriptor, then record the entry.

        On failure the stream and cursor are moved back to where the entry
        started, so the next entry overwrites the partial bytes.
        """
        f = self._check_writable()
        entry_offset = self._current_offset
        record = replace(record, index=len(self._entries), local_header_offset=entry_offset)

        try:
            written = write_local_file_header(f, record, local_extra, self._force_zip64)
            payload_size = 0
            for chunk in chunks:
                write_bytes(f, chunk)
                payload_size += len(chunk)
            if payload_size != record.compressed_size:
                raise ZipFormatError(
                    f"Payload of '{record.name}' is {payload_size} bytes, "
                    f"expected {record.compressed_size}"
                )
            written += payload_size
            if record.has_data_descriptor:
                written += write_data_descriptor(
                    f, record, is_zip64=local_header_needs_zip64(record, self._force_zip64)
                )
        except Exception:
            f.seek(entry_offset)
            raise

        self._current_offset += written
        self._entries.append(record)
        logger.debug(
            "Wrote '%s' (%s) at offset %d (%d bytes)",
            record.name,
            METHOD_TO_NAME.get(record.compression_method, f"method {record.compression_method}"),
            entry_offset,
            written,
        )

    def copy_entry(self, entry: ZipEntry, reader: ZipReader) -> None:
        """Copy an entry from a source archive without decompressing it.

        The local header is rewritten at the current offset with the entry's
        name, flags, method, times, CRC32 and sizes unchanged; the raw payload
        follows byte for byte. The payload range is validated against the
        source archive before anything is written.

        Args:
            entry: Entry from reader.entries.
            reader: Reader of the archive the entry belongs to.

        Raises:
            ZipWriterClosed: If the writer is finalized.
            ZipUnsupportedFeature: If the entry is encrypted.
            ZipFormatError: If the entry's local header is invalid, its size is
                unresolved, or its payload extends beyond the source archive.
        """
        self._check_writable()
        if entry.is_encrypted:
            raise ZipUnsupportedFeature(
                f"Entry '{entry.name}' is encrypted (encryption not supported)"
            )

        resolved, local_header, start = reader.locate(entry)
        chunks = reader.iter_bytes(start, resolved.compressed_size, self._chunk_size)
        self._write_entry(resolved, local_header.extra, chunks)

    def add_raw(
        self,
        name: str,
        data: bytes,
        crc32: int,
        uncompressed_size: int,
        compression_method: int = COMP_DEFLATE,
        date_time: Optional[datetime] = None,
        use_data_descriptor: bool = False,
        comment: bytes = b"",
    ) -> None:
        """Add an entry from already-compressed bytes.

        Args:
            name: Entry name (path within ZIP archive).
            data: Compressed payload, written as is.
            crc32: CRC32 of the uncompressed data.
            uncompressed_size: Size of the uncompressed data.
            compression_method: Method id the payload was compressed with.
            date_time: Modification time, defaults to now.
            use_data_descriptor: Write sizes and CRC32 in a trailing data descriptor.
            comment: Entry comment.

        Raises:
            ZipWriterClosed: If the writer is finalized.
            ZipFormatError: If the name is invalid.
        """
        self._check_writable()

        if "\\" in name:
            name = name.replace("\\", "/")
        if not name:
            raise ZipFormatError("Entry name cannot be empty")
        if "\x00" in name:
            raise ZipFormatError("Entry name cannot contain null bytes")
        filename = name.encode("utf-8")
        if len(filename) > 0xFFFF:
            raise ZipFormatError(f"Entry name too long: {len(filename)} bytes (max 65535)")

        mod_date, mod_time = timestamp_to_dos_datetime(date_time or datetime.now())

        flags = FLAG_UTF8
        if use_data_descriptor:
            flags |= FLAG_DATA_DESCRIPTOR

        if name.endswith("/"):
            external_attrs = 0o040755 << 16  # Directory
        else:
            external_attrs = 0o100644 << 16  # Regular file

        record = ZipEntry(
            index=len(self._entries),
            filename=filename,
            version_made_by=VERSION_MADE_BY_DEFAULT,
            version_needed=VERSION_DEFAULT,
            flags=flags,
            compression_method=compression_method,
            mod_time=mod_time,
            mod_date=mod_date,
            crc32=crc32 & 0xFFFFFFFF,
            compressed_size=len(data),
            uncompressed_size=uncompressed_size,
            local_header_offset=self._current_offset,
            external_attrs=external_attrs,
            comment=comment,
        )
        self._write_entry(record, b"", [data] if data else [])

    def finalize(self) -> None:
        """Write the central directory and end records, then close the archive.

        The directory is written at the current offset and a seekable stream
        is truncated at its new end, which may be shorter than an archive
        this writer was attached to. Calling finalize again has no effect.

        Raises:
            ZipFormatError: If the directory cannot be serialized.
            OSError: If writing fails.
        """
        if self._state is WriterState.CLOSED:
            return

        try:
            f = self._check_writable()
            cd_offset = self._current_offset

            # Serialize first so a failure leaves the stream untouched
            buffer = io.BytesIO()
            for entry in self._entries:
                write_central_directory_header(buffer, entry, self._force_zip64)
            cd_size = buffer.tell()
            write_end_records(
                buffer, len(self._entries), cd_offset, cd_size, self.comment, self._force_zip64
            )

            write_bytes(f, buffer.getvalue())
            self._current_offset += buffer.tell()
            # Only write/seek/tell are required of a caller's stream
            if getattr(f, "seekable", lambda: False)() and hasattr(f, "truncate"):
                f.truncate(self._current_offset)
            if hasattr(f, "flush"):
                f.flush()
            logger.info(
                "Wrote central directory of %d entries at offset %d (%d bytes)",
                len(self._entries),
                cd_offset,
                cd_size,
            )
        finally:
            if self._should_close and self._file:
                self._file.close()
            self._file = None
            self._state = WriterState.CLOSED

    def close(self) -> None:
        """Finalize the archive; alias kept for context-manager style use."""
        self.finalize()

    def __enter__(self) -> "ZipWriter":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
