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
Command-line interface for zipmerge (``zipmerge``).

Usage (via ``python -m zipmerge`` or the ``zipmerge`` console script):

    # Append the entries of b.zip and c.zip to a.zip, rewriting it in place
    python -m zipmerge a.zip b.zip c.zip

    # Write a new archive holding the entries of a.zip and b.zip
    python -m zipmerge -o merged.zip a.zip b.zip

Entries that cannot be copied, and source archives that cannot be opened,
are reported and skipped. Failing to open or finish the destination is fatal.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

from . import __version__
from .errors import ZipError
from .merge import MergeConfig, merge_archives

logger = logging.getLogger("zipmerge")


def _print_error(message: str, exit_code: int = 1) -> NoReturn:
    """Print an error message to stderr and exit with the given code."""
    sys.stderr.write(f"zipmerge: {message}\n")
    sys.exit(exit_code)


def _configure_logging(verbose: bool) -> None:
    """Route library log records to stderr with the program prefix."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("zipmerge: %(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.INFO if verbose else logging.WARNING)
    logger.propagate = False


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="zipmerge",
        usage="zipmerge [-o dst.zip] a.zip [b.zip...]",
        description=(
            "Merge the content of many zip files without decompressing and "
            "recompressing the data. By default the content of the second and "
            "subsequent files is appended to the first, rewriting it in place."
        ),
    )
    parser.add_argument(
        "archives", nargs="+", type=Path, metavar="archive", help="ZIP archives to merge"
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        metavar="file",
        default=None,
        help="Write a new archive to FILE instead of rewriting the first archive",
    )
    parser.add_argument(
        "--force-zip64",
        action="store_true",
        help="Write ZIP64 records even when the archive does not need them",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Report progress for each archive"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the zipmerge CLI.

    Returns:
        Process exit status: 0 when the merge completed, even if some entries
        were skipped.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = MergeConfig(
            archives=args.archives, output=args.output, force_zip64=args.force_zip64
        )
    except ValueError as e:
        _print_error(str(e), exit_code=2)

    try:
        result = merge_archives(config)
    except FileNotFoundError as e:
        _print_error(f"File not found: {e.filename}", exit_code=1)
    except (ZipError, OSError) as e:
        _print_error(f"{config.destination}: {e}", exit_code=1)
    except KeyboardInterrupt:
        _print_error("Interrupted by user", exit_code=130)

    skipped = len(result.entry_failures)
    if skipped or result.archive_failures:
        logger.warning(
            "%d entries and %d archives skipped", skipped, len(result.archive_failures)
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
