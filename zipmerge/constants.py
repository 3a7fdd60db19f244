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
ZIP format constants including signatures, flags, version numbers and limits.

This module defines the constants used by the reader and writer when parsing
and re-serializing the structural records of ZIP and ZIP64 archives.
"""

# ZIP file signatures (magic numbers)
LOCAL_FILE_HEADER = 0x04034B50  # "PK\x03\x04"
CENTRAL_DIR_HEADER = 0x02014B50  # "PK\x01\x02"
END_OF_CENTRAL_DIR = 0x06054B50  # "PK\x05\x06"
ZIP64_END_OF_CENTRAL_DIR = 0x06064B50  # "PK\x06\x06"
ZIP64_END_OF_CENTRAL_DIR_LOCATOR = 0x07064B50  # "PK\x06\x07"
DATA_DESCRIPTOR = 0x08074B50  # "PK\x07\x08"

# Byte form of the EOCD signature, used for the backward scan
END_OF_CENTRAL_DIR_MAGIC = b"PK\x05\x06"

# Compression methods (only used for naming; payloads are never decoded)
COMP_STORED = 0
COMP_DEFLATE = 8
COMP_BZIP2 = 12
COMP_LZMA = 14

METHOD_TO_NAME = {
    COMP_STORED: "stored",
    COMP_DEFLATE: "deflate",
    COMP_BZIP2: "bzip2",
    COMP_LZMA: "lzma",
}

# General purpose bit flags
FLAG_ENCRYPTED = 0x0001  # File is encrypted
FLAG_DATA_DESCRIPTOR = 0x0008  # Data descriptor follows file data
FLAG_UTF8 = 0x0800  # UTF-8 encoding for filename/comment

# ZIP version constants
VERSION_DEFAULT = 20  # Default version needed to extract
VERSION_ZIP64 = 45  # ZIP64 format version
VERSION_MADE_BY_DEFAULT = 63  # Made by: MS-DOS, APPNOTE 6.3

# Classic ZIP limits (32-bit); a field equal to the limit is a ZIP64 sentinel
MAX_FILE_SIZE = 0xFFFFFFFF
MAX_ENTRIES = 0xFFFF
MAX_CD_SIZE = 0xFFFFFFFF
MAX_CD_OFFSET = 0xFFFFFFFF
MAX_DISK_NUMBER = 0xFFFF

# Largest value a variable-length uint16 length field can declare
MAX_COMMENT_SIZE = 0xFFFF

# ZIP64 extra field tag
ZIP64_EXTRA_FIELD_TAG = 0x0001

# Local file header size (fixed part)
LOCAL_FILE_HEADER_SIZE = 30

# Central directory header size (fixed part, excluding filename/extra/comment)
CENTRAL_DIR_HEADER_SIZE = 46

# End of central directory size (fixed part, excluding comment)
END_OF_CENTRAL_DIR_SIZE = 22

# ZIP64 end of central directory size (fixed part)
ZIP64_END_OF_CENTRAL_DIR_SIZE = 56

# ZIP64 locator size (fixed part)
ZIP64_LOCATOR_SIZE = 20

# Data descriptor sizes, signature included
DATA_DESCRIPTOR_SIZE = 16
ZIP64_DATA_DESCRIPTOR_SIZE = 24

# Chunk size used when streaming raw payloads between archives
COPY_CHUNK_SIZE = 1024 * 1024
