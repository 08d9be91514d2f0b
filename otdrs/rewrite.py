"""Command-line tool turning JSON produced by the converter back into a SOR file."""

from __future__ import annotations

import argparse
import dataclasses
import sys
from collections.abc import Sequence
from pathlib import Path

from otdrs.types import SORFile
from otdrs.writer import to_bytes


def strip_proprietary(sor: SORFile) -> SORFile:
    """Return a copy of sor without any proprietary blocks."""
    return dataclasses.replace(sor, proprietary_blocks=[])


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wotdrs",
        description=(
            "Convert SOR JSON back into a .sor file, dropping proprietary blocks."
        ),
    )
    parser.add_argument(
        "-i", "--input", required=True, help="path of the JSON file to read"
    )
    parser.add_argument(
        "-o", "--output", required=True, help="path of the .sor file to write"
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the rewriter; returns the process exit status."""
    opts = _build_parser().parse_args(argv)
    try:
        sor = SORFile.from_json(Path(opts.input).read_text(encoding="utf-8"))
        Path(opts.output).write_bytes(to_bytes(strip_proprietary(sor)))
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"File written: {opts.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())