"""Command-line front end: fill a template from JSON data."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from docxmerge.config import Config
from docxmerge.document import load
from docxmerge.exceptions import DocxMergeError

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_USAGE_ERROR = 2


def configure_logging(log_level: int | str) -> logging.Logger:
    """Send log records at ``log_level`` and above to stderr."""

    resolved_level = log_level if isinstance(log_level, int) else getattr(logging, str(log_level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved_level)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root_logger.addHandler(handler)
    return root_logger


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docxmerge",
        description="Replace placeholders in a .docx template with values from JSON.",
        epilog="example: docxmerge -i template.docx -d '{\"name\": \"value\"}'",
    )
    parser.add_argument("-i", "--input", required=True, help="template path")
    parser.add_argument("-o", "--output", default="output.docx", help="output path (default: %(default)s)")
    parser.add_argument("-d", "--data", required=True, help="JSON object string or path to a JSON file")
    parser.add_argument("-p", "--prefix", default="{{", help="placeholder prefix (default: %(default)s)")
    parser.add_argument("-s", "--suffix", default="}}", help="placeholder suffix (default: %(default)s)")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="logging level (default: %(default)s)",
    )
    return parser


def read_values(data: str) -> dict[str, str]:
    """Parse ``data`` as a JSON object, or read it from the file it names."""

    try:
        values = json.loads(data)
    except json.JSONDecodeError:
        try:
            content = Path(data).read_text(encoding="utf-8")
        except OSError as exc:
            raise ValueError(f"data is neither JSON nor a readable file: {exc}") from exc
        try:
            values = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{data} does not contain valid JSON: {exc}") from exc

    if not isinstance(values, dict):
        raise ValueError("data must be a JSON object of names to text")
    for name, value in values.items():
        if not isinstance(value, str):
            raise ValueError(f"value for {name!r} must be a string")
    return values


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = create_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        values = read_values(args.data)
    except ValueError as exc:
        logger.error("%s", exc)
        return EXIT_USAGE_ERROR

    try:
        config = Config(placeholder_prefix=args.prefix, placeholder_suffix=args.suffix)
        with load(args.input, config) as document:
            document.set_values(values)
            document.save(args.output)
    except DocxMergeError as exc:
        logger.error("%s", exc.message)
        return EXIT_ERROR

    logger.info("Wrote %s", args.output)
    print(f"Wrote {args.output}")
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
