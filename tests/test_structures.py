import struct
from dataclasses import replace
from io import BytesIO

import pytest

from zipmerge.constants import (
    END_OF_CENTRAL_DIR_SIZE,
    MAX_FILE_SIZE,
    ZIP64_END_OF_CENTRAL_DIR_SIZE,
    ZIP64_LOCATOR_SIZE,
)
from zipmerge.errors import ZipFormatError, ZipUnsupportedFeature
from zipmerge.structures import (
    ZipEntry,
    build_zip64_extra_field,
    entry_from_central_header,
    find_eocd,
    parse_central_directory,
    parse_central_directory_header,
    parse_data_descriptor,
    parse_local_file_header,
    resolve_zip64_values,
    split_zip64_extra,
    write_central_directory_header,
    write_data_descriptor,
    write_end_records,
    write_local_file_header,
)


def _entry(**kwargs) -> ZipEntry:
    values = dict(
        index=0,
        filename=b"dir/file.txt",
        version_made_by=63,
        version_needed=20,
        flags=0,
        compression_method=8,
        mod_time=0x6000,
        mod_date=0x58B1,
        crc32=0xDEADBEEF,
        compressed_size=10,
        uncompressed_size=20,
        local_header_offset=0,
    )
    values.update(kwargs)
    return ZipEntry(**values)


def _empty_archive(comment: bytes = b"") -> bytes:
    with BytesIO() as stream:
        write_end_records(stream, 0, 0, 0, comment)
        return stream.getvalue()


def test_find_eocd_skips_signature_in_comment():
    comment = b"trailing PK\x05\x06 bytes"
    data = _empty_archive(comment)
    eocd, pos = find_eocd(BytesIO(data), len(data))
    assert pos == 0
    assert eocd.comment == comment


def test_find_eocd_missing():
    data = b"\x00" * 100
    with pytest.raises(ZipFormatError, match="not found"):
        find_eocd(BytesIO(data), len(data))


def test_find_eocd_too_small():
    with pytest.raises(ZipFormatError, match="too small"):
        find_eocd(BytesIO(b"PK\x05\x06"), 4)


def test_split_zip64_extra():
    other = struct.pack("<HH", 0x5455, 5) + b"\x01\x02\x03\x04\x05"
    zip64 = build_zip64_extra_field([7, 8])
    zip64_data, kept = split_zip64_extra(other + zip64 + b"\xff")
    assert zip64_data == struct.pack("<QQ", 7, 8)
    assert kept == other + b"\xff"


def test_split_zip64_extra_without_block():
    assert split_zip64_extra(b"") == (None, b"")


def test_resolve_zip64_values_only_consumes_saturated_fields():
    zip64_data = struct.pack("<QQ", 5_000_000_000, 6_000_000_000)
    resolved = resolve_zip64_values(
        zip64_data,
        [
            (MAX_FILE_SIZE, MAX_FILE_SIZE, 8),
            (123, MAX_FILE_SIZE, 8),
            (MAX_FILE_SIZE, MAX_FILE_SIZE, 8),
            (0, 0xFFFF, 4),
        ],
    )
    assert resolved == [5_000_000_000, 123, 6_000_000_000, 0]


def test_resolve_zip64_values_missing_block():
    assert resolve_zip64_values(None, [(MAX_FILE_SIZE, MAX_FILE_SIZE, 8)]) == [None]


def test_central_header_round_trip():
    entry = _entry(extra=b"\x55\x54\x01\x00\x00", comment=b"note", external_attrs=0o644 << 16)
    stream = BytesIO()
    size = write_central_directory_header(stream, entry)
    assert size == len(stream.getvalue())

    stream.seek(0)
    parsed = entry_from_central_header(parse_central_directory_header(stream), 0)
    assert parsed == entry


def test_central_header_forced_zip64():
    entry = _entry(local_header_offset=1234)
    stream = BytesIO()
    write_central_directory_header(stream, entry, force_zip64=True)

    stream.seek(0)
    header = parse_central_directory_header(stream)
    assert header.compressed_size == MAX_FILE_SIZE
    assert header.uncompressed_size == MAX_FILE_SIZE
    assert header.local_header_offset == MAX_FILE_SIZE
    assert header.version == 45
    assert header.extra == build_zip64_extra_field([20, 10, 1234])

    assert entry_from_central_header(header, 0) == replace(entry, version_needed=45)


@pytest.mark.parametrize(
    "offset, compressed_size, zip64_values",
    [
        (0xFFFFFFFE, 10, []),
        (0xFFFFFFFF, 10, [0xFFFFFFFF]),
        (2**32 + 7, 10, [2**32 + 7]),
        (0, 0xFFFFFFFF, [0xFFFFFFFF]),
    ],
)
def test_central_header_zip64_threshold(offset: int, compressed_size: int, zip64_values: list):
    entry = _entry(local_header_offset=offset, compressed_size=compressed_size)
    stream = BytesIO()
    write_central_directory_header(stream, entry)

    stream.seek(0)
    header = parse_central_directory_header(stream)
    assert header.extra == build_zip64_extra_field(zip64_values)
    assert header.local_header_offset == min(offset, MAX_FILE_SIZE)
    assert header.compressed_size == min(compressed_size, MAX_FILE_SIZE)
    assert header.uncompressed_size == 20

    version_needed = 45 if zip64_values else 20
    assert header.version == version_needed
    assert entry_from_central_header(header, 0) == replace(entry, version_needed=version_needed)


def test_central_header_unresolved():
    with pytest.raises(ZipFormatError):
        write_central_directory_header(BytesIO(), _entry(compressed_size=None))


def test_entry_on_other_disk():
    stream = BytesIO()
    write_central_directory_header(stream, _entry())
    data = bytearray(stream.getvalue())
    struct.pack_into("<H", data, 34, 2)
    header = parse_central_directory_header(BytesIO(bytes(data)))
    with pytest.raises(ZipUnsupportedFeature):
        entry_from_central_header(header, 0)


def test_local_header_with_data_descriptor():
    entry = _entry(flags=0x8)
    stream = BytesIO()
    write_local_file_header(stream, entry)

    stream.seek(0)
    header = parse_local_file_header(stream)
    assert (header.crc32, header.compressed_size, header.uncompressed_size) == (0, 0, 0)
    assert header.extra == b""


def test_local_header_with_data_descriptor_zip64():
    entry = _entry(flags=0x8)
    stream = BytesIO()
    write_local_file_header(stream, entry, force_zip64=True)

    stream.seek(0)
    header = parse_local_file_header(stream)
    assert header.crc32 == 0
    assert header.compressed_size == header.uncompressed_size == MAX_FILE_SIZE
    assert header.extra == build_zip64_extra_field([0, 0])


def test_local_header_replaces_zip64_block():
    extra = build_zip64_extra_field([1, 2]) + struct.pack("<HH", 0x7875, 0)
    stream = BytesIO()
    size = write_local_file_header(stream, _entry(), extra)

    stream.seek(0)
    header = parse_local_file_header(stream)
    assert header.size == size
    assert header.extra == struct.pack("<HH", 0x7875, 0)
    assert (header.compressed_size, header.uncompressed_size) == (10, 20)


@pytest.mark.parametrize("is_zip64", [False, True])
def test_data_descriptor_round_trip(is_zip64: bool):
    stream = BytesIO()
    write_data_descriptor(stream, _entry(), is_zip64)
    stream.seek(0)
    descriptor = parse_data_descriptor(stream, is_zip64)
    assert descriptor.has_signature
    assert (descriptor.crc32, descriptor.compressed_size, descriptor.uncompressed_size) == (
        0xDEADBEEF,
        10,
        20,
    )


def test_data_descriptor_without_signature():
    stream = BytesIO(struct.pack("<III", 0x12345678, 3, 4))
    descriptor = parse_data_descriptor(stream)
    assert not descriptor.has_signature
    assert descriptor.crc32 == 0x12345678
    assert (descriptor.compressed_size, descriptor.uncompressed_size) == (3, 4)


def test_end_records_classic():
    stream = BytesIO()
    assert write_end_records(stream, 3, 100, 50, b"hi") == END_OF_CENTRAL_DIR_SIZE + 2
    assert stream.getvalue().startswith(b"PK\x05\x06")


def test_end_records_zip64():
    stream = BytesIO()
    written = write_end_records(stream, 3, 100, 50, force_zip64=True)
    data = stream.getvalue()
    assert written == len(data)
    assert written == ZIP64_END_OF_CENTRAL_DIR_SIZE + ZIP64_LOCATOR_SIZE + END_OF_CENTRAL_DIR_SIZE
    assert data[:4] == b"PK\x06\x06"
    assert data[56:60] == b"PK\x06\x07"
    assert struct.unpack_from("<Q", data, 64)[0] == 150
    assert struct.unpack_from("<HHII", data, 84) == (0xFFFF, 0xFFFF, MAX_FILE_SIZE, MAX_FILE_SIZE)


@pytest.mark.parametrize(
    "num_entries, cd_offset, signature",
    [
        (0xFFFE, 100, b"PK\x05\x06"),
        (0xFFFF, 100, b"PK\x06\x06"),
        (3, 0xFFFFFFFE, b"PK\x05\x06"),
        (3, 0xFFFFFFFF, b"PK\x06\x06"),
    ],
)
def test_end_records_zip64_threshold(num_entries: int, cd_offset: int, signature: bytes):
    stream = BytesIO()
    written = write_end_records(stream, num_entries, cd_offset, 50)
    data = stream.getvalue()
    assert data[:4] == signature
    if signature == b"PK\x05\x06":
        assert written == END_OF_CENTRAL_DIR_SIZE
        assert struct.unpack_from("<HHII", data, 8) == (num_entries, num_entries, 50, cd_offset)
    else:
        assert written == (
            ZIP64_END_OF_CENTRAL_DIR_SIZE + ZIP64_LOCATOR_SIZE + END_OF_CENTRAL_DIR_SIZE
        )
        assert struct.unpack_from("<QQQQ", data, 24) == (num_entries, num_entries, 50, cd_offset)


def test_end_records_comment_too_long():
    with pytest.raises(ZipFormatError):
        write_end_records(BytesIO(), 0, 0, 0, b"x" * 0x10000)


def test_parse_empty_directory():
    data = _empty_archive(b"empty")
    directory, offset = parse_central_directory(BytesIO(data), len(data))
    assert directory.entries == []
    assert directory.comment == b"empty"
    assert offset == 0


def _zip64_end_records(cd_offset: int) -> bytes:
    stream = BytesIO()
    stream.write(b"\x00" * cd_offset)
    write_end_records(stream, 0, cd_offset, 0, force_zip64=True)
    return stream.getvalue()[cd_offset:]


def test_parse_zip64_directory():
    data = b"payload" + _zip64_end_records(cd_offset=7)
    directory, offset = parse_central_directory(BytesIO(data), len(data))
    assert directory.is_zip64
    assert offset == 7


def test_directory_beyond_end_records():
    stream = BytesIO()
    write_end_records(stream, 0, 500, 0)
    data = stream.getvalue()
    with pytest.raises(ZipFormatError, match="beyond"):
        parse_central_directory(BytesIO(data), len(data))


def test_entry_count_does_not_fit():
    stream = BytesIO()
    stream.write(b"\x00" * 40)
    write_end_records(stream, 1, 0, 40)
    data = stream.getvalue()
    with pytest.raises(ZipFormatError, match="does not fit"):
        parse_central_directory(BytesIO(data), len(data))


def test_multi_disk_archive():
    data = bytearray(_empty_archive())
    struct.pack_into("<H", data, 4, 1)
    with pytest.raises(ZipUnsupportedFeature):
        parse_central_directory(BytesIO(bytes(data)), len(data))
