"""Two-stage processing of a local file: upload to file hosting, then OCR."""

import inspect
import mimetypes
from collections.abc import Awaitable
from pathlib import Path
from typing import Protocol

from ..logger import logger
from .client import (
    CompleteCallback,
    ErrorCallback,
    OCRClient,
    PageCallback,
    ProgressCallback,
    notify,
)
from .models import DocumentRef, ProcessingOutcome, ProcessingRequest, infer_kind
from .progress import ProgressAggregator


class UploadProgressCallback(Protocol):
    def __call__(self, percent: float) -> None: ...


class Uploader(Protocol):
    """File-hosting collaborator that makes a local file reachable by URL."""

    async def upload(self, path: Path, on_progress: UploadProgressCallback) -> str:
        """Upload the file, reporting 0-100 progress, and return its public URL."""
        ...


async def process_file(
    file_path: str | Path,
    uploader: Uploader,
    client: OCRClient,
    on_progress: ProgressCallback | None,
    on_complete: CompleteCallback,
    on_error: ErrorCallback,
    *,
    upload_share: float = 50.0,
    media_type: str | None = None,
    on_page: PageCallback | None = None,
    **options,
) -> ProcessingOutcome:
    """Upload a local document and process it, reporting one combined progress.

    Upload progress fills [0, upload_share] of the bar and OCR progress fills
    the rest. Exactly one of on_complete or on_error is called for the whole
    pipeline.

    Args:
        file_path: Local image or PDF.
        uploader: Collaborator returning a reachable URL for the file.
        client: OCRClient used for the processing stage.
        on_progress: Called with each combined ProgressUpdate.
        on_complete: Called with the ProcessingResult on success.
        on_error: Called with a human-readable message on failure.
        upload_share: Percentage of the bar given to the upload stage.
        media_type: Declared MIME type. Guessed from the file name if omitted.
        on_page: Optional hook called with each finished PDF page number.
        **options: Extra ProcessingRequest options (dpi, batch_size,
            extract_images).

    Returns:
        The outcome delivered to the terminal callback.
    """
    file_path = Path(file_path)
    media_type = media_type or mimetypes.guess_type(file_path.name)[0]
    aggregator = ProgressAggregator(upload_share=upload_share)
    pending: list[Awaitable] = []

    def report_upload(percent: float) -> None:
        # Uploaders call back synchronously; awaitables from async callbacks run in order below
        result = on_progress(aggregator.upload(percent)) if on_progress else None
        if inspect.isawaitable(result):
            pending.append(result)

    logger.info("uploading document", file_path=str(file_path), media_type=media_type)
    try:
        url = await uploader.upload(file_path, report_upload)
    except Exception as e:
        message = f"Upload failed: {e}"
        logger.error("document upload failed", file_path=str(file_path), error=str(e))
        for awaitable in pending:
            await awaitable
        await notify(on_error, message)
        return ProcessingOutcome.failure(message)

    for awaitable in pending:
        await awaitable
    logger.info("document uploaded", file_path=str(file_path), url=url)

    # Hosted URLs do not always keep the suffix, so the local name decides the kind
    request = ProcessingRequest(
        document=DocumentRef(url=url, kind=infer_kind(file_path.name, media_type)),
        **options,
    )
    return await client.process_document(
        request,
        on_progress,
        on_complete,
        on_error,
        progress=aggregator,
        on_page=on_page,
    )
