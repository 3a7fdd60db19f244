import logging
from pathlib import Path

import pytest

from zipmerge import __version__
from zipmerge.__main__ import main
from tests.util import patch_first_compressed_size, read_all


@pytest.fixture(autouse=True)
def restore_logger():
    logger = logging.getLogger("zipmerge")
    handlers, level, propagate = logger.handlers[:], logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


def test_merge_to_output(archive_a: Path, archive_b: Path, tmp_path: Path, capsys):
    output = tmp_path / "out.zip"
    assert main(["-o", str(output), str(archive_a), str(archive_b)]) == 0
    assert read_all(output) == read_all(archive_a) + read_all(archive_b)
    assert capsys.readouterr().err == ""


def test_merge_in_place(archive_a: Path, archive_c: Path):
    expected = read_all(archive_a) + read_all(archive_c)
    assert main([str(archive_a), str(archive_c)]) == 0
    assert read_all(archive_a) == expected


def test_verbose(archive_a: Path, archive_b: Path, tmp_path: Path, capsys):
    assert main(["-v", "-o", str(tmp_path / "out.zip"), str(archive_a), str(archive_b)]) == 0
    err = capsys.readouterr().err
    assert "zipmerge: Copied 3 of 3 entries from" in err
    assert "Merged 5 entries" in err


def test_skipped_entry_is_reported(archive_a: Path, archive_b: Path, tmp_path: Path, capsys):
    patch_first_compressed_size(archive_b, 0x7FFFFFFF)
    assert main(["-o", str(tmp_path / "out.zip"), str(archive_a), str(archive_b)]) == 0
    err = capsys.readouterr().err
    assert f"zipmerge: copying from {archive_b} (b/three.txt):" in err
    assert "1 entries and 0 archives skipped" in err


def test_no_arguments(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 2


def test_output_is_input(archive_a: Path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["-o", str(archive_a), str(archive_a)])
    assert exc_info.value.code == 2
    assert "Output file is also an input" in capsys.readouterr().err


def test_missing_destination(archive_b: Path, tmp_path: Path, capsys):
    missing = tmp_path / "missing.zip"
    with pytest.raises(SystemExit) as exc_info:
        main([str(missing), str(archive_b)])
    assert exc_info.value.code == 1
    assert "File not found" in capsys.readouterr().err


def test_invalid_destination(archive_b: Path, tmp_path: Path, capsys):
    broken = tmp_path / "broken.zip"
    broken.write_bytes(b"\x00" * 64)
    with pytest.raises(SystemExit) as exc_info:
        main([str(broken), str(archive_b)])
    assert exc_info.value.code == 1
    assert f"zipmerge: {broken}: End of Central Directory record not found" in (
        capsys.readouterr().err
    )


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])
    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out
