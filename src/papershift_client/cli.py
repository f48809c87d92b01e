"""Command-line entry point: process a document URL and export the result."""

import argparse
import asyncio
import sys

from .logger import logger
from .ocr import (
    DocumentRef,
    OCRClient,
    ProcessingRequest,
    ProcessingResult,
    ProgressUpdate,
    export_result,
)
from .ocr.models import DEFAULT_BATCH_SIZE, DEFAULT_DPI


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="papershift-ocr",
        description="Run OCR on a hosted image or PDF and save the result",
    )
    parser.add_argument("url", help="Publicly reachable URL of the document")
    parser.add_argument(
        "--media-type",
        default=None,
        help="Declared MIME type (default: inferred from the URL suffix)",
    )
    parser.add_argument(
        "--api-url",
        default=None,
        help="OCR service base URL. Overrides PAPERSHIFT_API_URL env var.",
    )
    parser.add_argument(
        "--dpi", type=int, default=DEFAULT_DPI, help=f"PDF render DPI (default: {DEFAULT_DPI})"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"PDF pages per batch (default: {DEFAULT_BATCH_SIZE})",
    )
    parser.add_argument(
        "--no-images", action="store_true", help="Do not extract embedded images"
    )
    parser.add_argument(
        "--output", default=".", help="Directory for the exported file (default: .)"
    )
    parser.add_argument(
        "--format",
        choices=["md", "markdown", "html", "json"],
        default="md",
        help="Export format (default: md)",
    )
    parser.add_argument(
        "--log-level", default=None, help="Log level, e.g. DEBUG. Overrides PAPERSHIFT_LOG_LEVEL."
    )
    return parser


async def run(args: argparse.Namespace) -> int:
    request = ProcessingRequest(
        document=DocumentRef.from_url(args.url, media_type=args.media_type),
        dpi=args.dpi,
        batch_size=args.batch_size,
        extract_images=not args.no_images,
    )

    exit_code = 1

    def on_progress(update: ProgressUpdate) -> None:
        print(f"{update.status_line}  {update.message}", flush=True)

    def on_complete(result: ProcessingResult) -> None:
        nonlocal exit_code
        path = export_result(result, args.output, args.format)
        print(
            f"Done: {result.metadata.page_count} page(s), "
            f"{len(result.bounding_boxes)} block(s), saved to {path}"
        )
        exit_code = 0

    def on_error(message: str) -> None:
        print(f"Error: {message}", file=sys.stderr)

    async with OCRClient(base_url=args.api_url) as client:
        await client.process_document(request, on_progress, on_complete, on_error)

    return exit_code


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        logger.set_level(args.log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
