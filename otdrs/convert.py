"""Command-line conversion of SOR files into JSON or CBOR."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

import cbor2

from otdrs.parser import parse_file
from otdrs.types import SORFile

FORMATS = ("json", "cbor")
STDOUT = "stdout"


def serialize(sor: SORFile, output_format: str) -> bytes:
    """Encode a parsed SOR file as compact JSON or as CBOR.

    Raises ValueError for any other output format.
    """
    if output_format == "json":
        return sor.to_json().encode("utf-8")
    if output_format == "cbor":
        return cbor2.dumps(sor.to_dict())
    raise ValueError(f"unimplemented output format: {output_format!r}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="otdrs",
        description=(
            "Convert Telcordia SOR files, used by optical time-domain "
            "reflectometry testers, into open formats such as JSON."
        ),
    )
    parser.add_argument("input_filename", help="SOR file to read")
    parser.add_argument(
        "-f", "--format", default="json", help="output format: json or cbor"
    )
    parser.add_argument(
        "-o",
        "--output-filename",
        default=STDOUT,
        help="file to write, or 'stdout'",
    )
    parser.add_argument(
        "-m",
        "--modify-script",
        default=None,
        help="modification script; it must be readable but is not interpreted",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the converter; returns the process exit status."""
    opts = _build_parser().parse_args(argv)
    try:
        sor = parse_file(Path(opts.input_filename).read_bytes())
        if opts.modify_script is not None:
            Path(opts.modify_script).read_text(encoding="utf-8")
        output = serialize(sor, opts.format)
        if opts.output_filename == STDOUT:
            sys.stdout.buffer.write(output)
            sys.stdout.buffer.flush()
        else:
            Path(opts.output_filename).write_bytes(output)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())