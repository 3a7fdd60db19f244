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
Merge orchestration.

merge_archives() copies the entries of several archives into one, either a
new output file or the first input archive rewritten in place. A bad entry
or an unreadable source archive is logged and skipped; failing to open the
destination or to finalize it aborts the merge.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Optional

from .constants import COPY_CHUNK_SIZE
from .errors import ZipFormatError
from .reader import ZipReader
from .writer import ZipWriter

logger = logging.getLogger(__name__)


@dataclass
class MergeConfig:
    """What to merge and where.

    Without an output path the first archive is the destination: the other
    archives are appended to it in place.
    """

    archives: list[Path]
    output: Optional[Path] = None
    force_zip64: bool = False
    chunk_size: int = COPY_CHUNK_SIZE

    def __post_init__(self) -> None:
        self.archives = [Path(archive) for archive in self.archives]
        if self.output is not None:
            self.output = Path(self.output)

        if not self.archives:
            raise ValueError("At least one archive is required")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.output is not None:
            for archive in self.archives:
                if _same_file(archive, self.output):
                    raise ValueError(f"Output file is also an input: {archive}")

    @property
    def in_place(self) -> bool:
        return self.output is None

    @property
    def destination(self) -> Path:
        return self.archives[0] if self.output is None else self.output

    @property
    def sources(self) -> list[Path]:
        """Archives whose entries are copied into the destination."""
        return self.archives[1:] if self.output is None else list(self.archives)


@dataclass
class EntryFailure:
    """An entry that could not be copied."""

    archive: Path
    name: str
    error: Exception


@dataclass
class ArchiveFailure:
    """A source archive that could not be opened."""

    archive: Path
    error: Exception


@dataclass
class MergeResult:
    """Outcome of a merge."""

    output: Path
    entries_copied: int = 0
    entry_count: int = 0
    entry_failures: list[EntryFailure] = field(default_factory=list)
    archive_failures: list[ArchiveFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.entry_failures and not self.archive_failures


def _same_file(a: Path, b: Path) -> bool:
    try:
        return os.path.samefile(a, b)
    except OSError:
        return a.resolve() == b.resolve()


def _open_destination(config: MergeConfig) -> tuple[BinaryIO, ZipWriter]:
    """Open the destination stream and a writer positioned on it."""
    if not config.in_place:
        f = open(config.destination, "wb")
        return f, ZipWriter(f, force_zip64=config.force_zip64, chunk_size=config.chunk_size)

    f = open(config.destination, "r+b")
    try:
        reader = ZipReader(f)
        f.seek(reader.append_offset)
        writer = ZipWriter.attach(
            f, reader, force_zip64=config.force_zip64, chunk_size=config.chunk_size
        )
    except BaseException:
        f.close()
        raise
    logger.info(
        "Appending to %s at offset %d (%d existing entries)",
        config.destination,
        reader.append_offset,
        len(reader.entries),
    )
    return f, writer


def _copy_archive(
    archive: Path, writer: ZipWriter, result: MergeResult
) -> None:
    """Copy every entry of one source archive, skipping the ones that fail."""
    try:
        reader = ZipReader(archive)
    except (ZipFormatError, OSError) as e:
        logger.warning("%s: %s", archive, e)
        result.archive_failures.append(ArchiveFailure(archive, e))
        return

    copied = 0
    with reader:
        for entry in reader.entries:
            try:
                writer.copy_entry(entry, reader)
            except (ZipFormatError, OSError) as e:
                logger.warning("copying from %s (%s): %s", archive, entry.name, e)
                result.entry_failures.append(EntryFailure(archive, entry.name, e))
                continue
            copied += 1
    result.entries_copied += copied
    logger.info("Copied %d of %d entries from %s", copied, len(reader.entries), archive)


def merge_archives(config: MergeConfig) -> MergeResult:
    """Merge the configured archives.

    Output entry order is the order of the archives, each archive's entries
    in their central directory order. Duplicate names are kept.

    Args:
        config: Archives to merge and destination.

    Returns:
        MergeResult with counts and the entries and archives that were skipped.

    Raises:
        ZipFormatError: If the in-place destination is not a valid archive.
        OSError: If the destination cannot be opened or finalized.
    """
    result = MergeResult(output=config.destination)
    f, writer = _open_destination(config)

    with f:
        try:
            for archive in config.sources:
                _copy_archive(archive, writer, result)
        finally:
            writer.finalize()
        result.entry_count = len(writer.entries)

    logger.info(
        "Merged %d entries into %s (%d total)",
        result.entries_copied,
        result.output,
        result.entry_count,
    )
    return result
