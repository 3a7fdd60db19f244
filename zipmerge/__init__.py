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
zipmerge - merge ZIP/ZIP64 archives without recompressing their entries.

Compressed entry data is copied verbatim between archives; only local
headers, the central directory and the end records are rewritten. Only
Python standard library modules are used.
"""

__version__ = "0.1.0"

from .errors import (
    ZipError,
    ZipFormatError,
    ZipIOError,
    ZipUnsupportedFeature,
    ZipWriterClosed,
)
from .merge import ArchiveFailure, EntryFailure, MergeConfig, MergeResult, merge_archives
from .reader import ZipReader
from .structures import ZipEntry
from .writer import WriterState, ZipWriter

__all__ = [
    "ArchiveFailure",
    "EntryFailure",
    "MergeConfig",
    "MergeResult",
    "WriterState",
    "ZipEntry",
    "ZipError",
    "ZipFormatError",
    "ZipIOError",
    "ZipReader",
    "ZipUnsupportedFeature",
    "ZipWriter",
    "ZipWriterClosed",
    "merge_archives",
]
