import zipfile
from pathlib import Path

import pytest

from tests.util import make_streamed_zip, make_zip


@pytest.fixture
def archive_a(tmp_path: Path) -> Path:
    return make_zip(
        tmp_path / "a.zip",
        [("a/one.txt", b"one " * 100), ("a/two.bin", bytes(range(256)) * 4), ("a/empty", b"")],
    )


@pytest.fixture
def archive_b(tmp_path: Path) -> Path:
    return make_zip(
        tmp_path / "b.zip",
        [("b/three.txt", b"three\n" * 50), ("b/four.txt", b"four")],
        compression=zipfile.ZIP_STORED,
    )


@pytest.fixture
def archive_c(tmp_path: Path) -> Path:
    return make_zip(tmp_path / "c.zip", [("c/five.txt", b"five" * 1000)], comment=b"archive c")


@pytest.fixture
def streamed_archive(tmp_path: Path) -> Path:
    return make_streamed_zip(
        tmp_path / "streamed.zip", [("s/six.txt", b"six " * 200), ("s/seven", b"")]
    )


@pytest.fixture
def streamed_archive64(tmp_path: Path) -> Path:
    return make_streamed_zip(
        tmp_path / "streamed64.zip", [("z/eight.txt", b"eight\n" * 300)], force_zip64=True
    )
