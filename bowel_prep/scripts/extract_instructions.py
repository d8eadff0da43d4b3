#!/usr/bin/env python3
"""CLI entrypoint for the bowel-prep instruction extractor."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path

from bowel_prep.instruction_extractor import pdf, pipeline

DEFAULT_OUTPUT = Path("output.csv")

logger = logging.getLogger("bowel_prep.instruction_extractor.cli")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


def parse_backend_list(value: str | None) -> list[str] | None:
    if not value:
        return None
    parts = [entry.strip() for entry in value.split(",") if entry.strip()]
    return parts or None


def command_extract(args: argparse.Namespace) -> bool:
    input_path = Path(args.path).expanduser()
    output_path = Path(args.output).expanduser()
    result = pipeline.process_document(
        input_path,
        output_path,
        min_pdf_chars=pdf.resolve_min_pdf_chars(args.min_pdf_chars),
        pdf_backends=parse_backend_list(args.pdf_backends),
    )
    if not result.success:
        logger.error(result.message)
        return False
    print(result.message)
    return True


def build_parser() -> argparse.ArgumentParser:
    parser_obj = argparse.ArgumentParser(
        description="Extract bowel-prep instructions from a PDF into a CSV table"
    )
    parser_obj.add_argument("path", help="Instruction document (.pdf, .txt, .html, .docx)")
    parser_obj.add_argument(
        "--output",
        default=str(DEFAULT_OUTPUT),
        help=f"CSV output path (default: {DEFAULT_OUTPUT})",
    )
    parser_obj.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser_obj.add_argument(
        "--pdf-backends",
        help="Comma-separated PDF extraction backend order (overrides PREP_PDF_BACKENDS)",
    )
    parser_obj.add_argument(
        "--min-pdf-chars",
        type=int,
        help="Minimum characters required from a PDF (overrides PREP_MIN_PDF_CHARS)",
    )
    return parser_obj


def main(argv: list[str] | None = None) -> None:
    parser_obj = build_parser()
    args = parser_obj.parse_args(argv)
    configure_logging(args.verbose)
    command_extract(args)


if __name__ == "__main__":
    main()
