import struct
import zipfile
from pathlib import Path
from typing import Iterable, Tuple

DATE_TIME = (2024, 5, 17, 12, 30, 10)


def make_zip(
    path: Path,
    files: Iterable[Tuple[str, bytes]],
    compression: int = zipfile.ZIP_DEFLATED,
    comment: bytes = b"",
) -> Path:
    """Write an archive with the stdlib zipfile module."""
    with zipfile.ZipFile(path, "w", compression=compression) as z:
        for name, data in files:
            z.writestr(zipfile.ZipInfo(name, date_time=DATE_TIME), data, compress_type=compression)
        z.comment = comment
    return path


def read_all(path: Path) -> list[Tuple[str, bytes]]:
    """Decompress every entry of an archive with the stdlib zipfile module."""
    with zipfile.ZipFile(path) as z:
        assert z.testzip() is None
        return [(info.filename, z.read(info)) for info in z.infolist()]


def patch_first_compressed_size(path: Path, value: int) -> None:
    """Overwrite the compressed size stored in the first central directory header."""
    with zipfile.ZipFile(path) as z:
        start_dir = z.start_dir
    data = bytearray(path.read_bytes())
    assert data[start_dir : start_dir + 4] == b"PK\x01\x02"
    struct.pack_into("<I", data, start_dir + 20, value)
    path.write_bytes(bytes(data))


class _Sink:
    """Write-only stream: no tell() or seek(), like a pipe."""

    def __init__(self):
        self.data = bytearray()

    def write(self, data) -> int:
        self.data += data
        return len(data)

    def flush(self) -> None:
        pass


def make_streamed_zip(
    path: Path, files: Iterable[Tuple[str, bytes]], force_zip64: bool = False
) -> Path:
    """Write an archive whose entries all carry data descriptors.

    The stdlib zipfile module sets bit 3 and writes a signed descriptor
    after each entry when its output stream cannot seek.
    """
    sink = _Sink()
    with zipfile.ZipFile(sink, "w") as z:
        for name, data in files:
            info = zipfile.ZipInfo(name, date_time=DATE_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            with z.open(info, "w", force_zip64=force_zip64) as f:
                f.write(data)
    path.write_bytes(bytes(sink.data))
    return path
