"""Command line entry point for the tag extractor.

Extracts the requested tags from a set of data files and prints a summary
of the result:

    python -m tag_extractor data/*.csv --tag T1 --tag T2 \\
        --start "2023-01-15 00:00:00" --end "2023-01-15 06:00:00" --interval 10
"""
import argparse
import os
import sys
from typing import List, Optional

from .config import load_config
from .engine import ExtractionEngine, ExtractionRequest
from .errors import ExtractionError
from .utils import format_file_size, summarize_values


def _print_log(message: str, level: str) -> None:
    """Log callback printing to stdout, or stderr for warnings and errors."""
    stream = sys.stderr if level in ("WARNING", "ERROR") else sys.stdout
    print(f"[{level}] {message}", file=stream)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tag_extractor",
        description="Extract time-stamped tag samples from csv, txt and xlsx data files.",
    )
    parser.add_argument("files", nargs="+", help="Data files named <name>YYYYMMDD[_]HHMMSS.<ext>")
    parser.add_argument(
        "--tag", "-t", dest="tags", action="append", required=True,
        help="Tag to extract (repeat for several tags)",
    )
    parser.add_argument("--start", required=True, help='Window start, e.g. "2023-01-15 08:00"')
    parser.add_argument("--end", required=True, help='Window end, e.g. "1/15/23 5pm"')
    parser.add_argument("--interval", type=int, default=None, help="Keep every n-th sample")
    parser.add_argument("--config", default=None, help="Path of a JSON config file")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the tag extractor command line.

    Returns:
        Process exit status
    """
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    engine = ExtractionEngine(config, _print_log)

    total_size = sum(os.path.getsize(f) for f in args.files if os.path.isfile(f))
    _print_log(f"Reading {len(args.files)} file(s), {format_file_size(total_size)}", "INFO")

    request = ExtractionRequest(
        files=args.files,
        tags=args.tags,
        start=args.start,
        end=args.end,
        interval=args.interval,
    )
    try:
        result = engine.extract_request(request)
    except (ExtractionError, ValueError) as e:
        print(f"Error extracting data: {e}", file=sys.stderr)
        return 1

    print(f"{result.point_count} points", end="")
    if result.point_count:
        print(f" from {result.timestamps[0]} to {result.timestamps[-1]}")
    else:
        print()
    for tag, values in result.as_dict().items():
        summary = summarize_values(values)
        if summary["count"]:
            print(f"  {tag}: count={summary['count']} min={summary['min']:g} max={summary['max']:g}")
        else:
            print(f"  {tag}: no values")
    return 0


if __name__ == "__main__":
    sys.exit(main())
