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
Custom exception classes for zipmerge.

The reader and writer raise these and never handle them; the merge
orchestration decides whether an error skips one entry, skips one source
archive, or aborts the merge.
"""


class ZipError(Exception):
    """Base exception class for all ZIP-related errors."""

    pass


class ZipFormatError(ZipError):
    """Raised when a ZIP file has an invalid format or structure.

    This exception is raised when:
    - The End of Central Directory record cannot be found
    - Required signatures are missing or incorrect
    - A structure is truncated or points outside the file
    - An entry's payload size cannot be resolved
    """

    pass


class ZipUnsupportedFeature(ZipFormatError):
    """Raised when encountering a ZIP feature zipmerge does not handle.

    This exception is raised when:
    - The archive spans multiple disks
    - An entry is encrypted
    """

    pass


class ZipIOError(ZipError, OSError):
    """Raised when the destination stream accepts fewer bytes than written."""

    pass


class ZipWriterClosed(ZipError, RuntimeError):
    """Raised when a writer is used after it has been finalized.

    This is a programming error, never an entry-level failure.
    """

    pass
