"""HTTP client that drives one OCR invocation from request to result.

Images are processed with a single request/response exchange. PDFs are
processed through a long-lived ``text/event-stream`` response whose lines are
decoded, interpreted and routed to the caller's callbacks as they arrive.
"""

import inspect
import os
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing
from enum import Enum
from typing import Any
from uuid import uuid4

import httpx

from ..logger import logger, pop_context, push_context
from .events import interpret_line
from .exceptions import OCRClientError, ProcessingFailedError, TransportError
from .framing import aiter_lines
from .models import (
    CompleteEvent,
    DocumentKind,
    FailedEvent,
    PageDoneEvent,
    ProcessingOutcome,
    ProcessingRequest,
    ProcessingResult,
    ProgressEvent,
    ProgressUpdate,
    StreamEvent,
)
from .normalizer import normalize_result
from .progress import ProgressAggregator

# Configuration
API_BASE_URL = os.getenv("PAPERSHIFT_API_URL", "http://localhost:8000")
CONNECT_TIMEOUT_SECONDS = float(os.getenv("PAPERSHIFT_CONNECT_TIMEOUT", "10.0"))
READ_TIMEOUT_SECONDS = float(os.getenv("PAPERSHIFT_READ_TIMEOUT", "300.0"))

IMAGE_ENDPOINT = "/api/v1/ocr/image/url"
PDF_STREAM_ENDPOINT = "/api/v1/ocr/pdf/url/stream"
SAMPLES_ENDPOINT = "/api/samples"

USER_AGENT = "papershift-client/0.1.0"

ProgressCallback = Callable[[ProgressUpdate], Awaitable[None] | None]
CompleteCallback = Callable[[ProcessingResult], Awaitable[None] | None]
ErrorCallback = Callable[[str], Awaitable[None] | None]
PageCallback = Callable[[int], Awaitable[None] | None]


class ProcessingState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    IMAGE_DIRECT = "image_direct"
    STREAMING_PDF = "streaming_pdf"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({ProcessingState.COMPLETED, ProcessingState.FAILED})


class _Invocation:
    """State owned by a single call to OCRClient.process."""

    def __init__(self, request: ProcessingRequest, aggregator: ProgressAggregator):
        self.id = uuid4().hex
        self.request = request
        self.aggregator = aggregator
        self.state = ProcessingState.IDLE
        self.started = time.perf_counter()

    @property
    def duration_ms(self) -> float:
        return round((time.perf_counter() - self.started) * 1000, 2)

    def transition(self, state: ProcessingState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Invocation already finished in state {self.state.value}")
        logger.debug(
            "ocr state transition",
            from_state=self.state.value,
            to_state=state.value,
        )
        self.state = state


async def notify(callback: Callable[..., Any] | None, *args: Any) -> None:
    """Invoke a plain or async callback."""
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


def _raise_for_status(response: httpx.Response) -> None:
    """Raise TransportError for non-2xx responses, including the server's detail.

    The response body must already be read.
    """
    if response.is_success:
        return

    detail = None
    try:
        body = response.json()
        if isinstance(body, dict):
            detail = body.get("detail") or body.get("message") or body.get("error")
    except ValueError:
        detail = response.text.strip()[:200] or None

    message = f"OCR request failed with status {response.status_code}"
    if detail:
        message = f"{message}: {detail}"
    raise TransportError(message, status_code=response.status_code)


def _describe_error(error: Exception) -> str:
    if isinstance(error, OCRClientError):
        return str(error)
    if isinstance(error, httpx.TimeoutException):
        return f"Request to OCR service timed out ({type(error).__name__})"
    detail = str(error) or type(error).__name__
    return f"Could not reach OCR service: {detail}"


class OCRClient:
    """Client for the OCR service's URL-based processing endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the OCR client.

        Args:
            base_url: OCR service base URL. Defaults to PAPERSHIFT_API_URL.
            api_key: Optional bearer token. Defaults to PAPERSHIFT_API_KEY.
            http_client: Optional preconfigured httpx.AsyncClient. When given,
                the caller remains responsible for closing it.
        """
        self.base_url = (base_url or API_BASE_URL).rstrip("/")
        self._api_key = api_key or os.getenv("PAPERSHIFT_API_KEY")

        headers = {"User-Agent": USER_AGENT}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        self._owns_client = http_client is None
        if http_client is None:
            http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(
                    READ_TIMEOUT_SECONDS,
                    connect=CONNECT_TIMEOUT_SECONDS,
                ),
                follow_redirects=True,
            )
        self._client = http_client
        self._headers = headers

    async def __aenter__(self) -> "OCRClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    async def process_document(
        self,
        request: ProcessingRequest,
        on_progress: ProgressCallback | None,
        on_complete: CompleteCallback,
        on_error: ErrorCallback,
        *,
        progress: ProgressAggregator | None = None,
        on_page: PageCallback | None = None,
    ) -> ProcessingOutcome:
        """Process a document and report through callbacks.

        Exactly one of on_complete or on_error is called, once, after every
        progress callback for this invocation. An exception raised by
        on_progress or on_page is not reported through on_error: it
        propagates out of this call and no terminal callback fires.

        Args:
            request: The document and its processing options.
            on_progress: Called with each combined ProgressUpdate.
            on_complete: Called with the ProcessingResult on success.
            on_error: Called with a human-readable message on failure.
            progress: Aggregator to continue from, e.g. one that already
                received upload progress. A fresh one is used otherwise.
            on_page: Optional hook called with each finished PDF page number.

        Returns:
            The same outcome that was delivered to the terminal callback.
        """
        outcome = await self.process(
            request, on_progress, progress=progress, on_page=on_page
        )
        if outcome.succeeded:
            await notify(on_complete, outcome.result)
        else:
            await notify(on_error, outcome.error)
        return outcome

    async def process(
        self,
        request: ProcessingRequest,
        on_progress: ProgressCallback | None = None,
        *,
        progress: ProgressAggregator | None = None,
        on_page: PageCallback | None = None,
    ) -> ProcessingOutcome:
        """Process a document and return its terminal outcome.

        Transport and service failures are returned as a failed outcome.
        Cancelling the awaiting task closes the underlying response.

        Args:
            request: The document and its processing options.
            on_progress: Called with each combined ProgressUpdate.
            progress: Aggregator to continue from. Without one, processing
                progress spans the whole 0-100 range.
            on_page: Optional hook called with each finished PDF page number.

        Returns:
            ProcessingOutcome holding either the result or an error message.
        """
        invocation = _Invocation(request, progress or ProgressAggregator(upload_share=0.0))
        context_token = push_context(
            request_id=invocation.id, document_kind=request.kind.value
        )

        try:
            logger.info("ocr request started", url=request.document.url)
            invocation.transition(ProcessingState.REQUESTING)
            if request.kind is DocumentKind.PDF:
                result = await self._process_pdf(invocation, on_progress, on_page)
            else:
                result = await self._process_image(invocation, on_progress)
        except (OCRClientError, httpx.HTTPError) as e:
            message = _describe_error(e)
            invocation.transition(ProcessingState.FAILED)
            logger.error(
                "ocr processing failed",
                error=message,
                error_type=type(e).__name__,
                duration_ms=invocation.duration_ms,
            )
            return ProcessingOutcome.failure(message)
        else:
            invocation.transition(ProcessingState.COMPLETED)
            logger.info(
                "ocr processing complete",
                result_id=result.id,
                page_count=result.metadata.page_count,
                total_blocks=len(result.bounding_boxes),
                duration_ms=invocation.duration_ms,
            )
            return ProcessingOutcome.success(result)
        finally:
            pop_context(context_token)

    async def _process_image(
        self,
        invocation: _Invocation,
        on_progress: ProgressCallback | None,
    ) -> ProcessingResult:
        invocation.transition(ProcessingState.IMAGE_DIRECT)
        response = await self._client.post(
            self._url(IMAGE_ENDPOINT),
            json=invocation.request.to_payload(),
            headers=self._headers,
        )
        _raise_for_status(response)

        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError("OCR response body is not valid JSON") from e

        result = normalize_result(payload)
        await notify(on_progress, invocation.aggregator.complete())
        return result

    async def _process_pdf(
        self,
        invocation: _Invocation,
        on_progress: ProgressCallback | None,
        on_page: PageCallback | None,
    ) -> ProcessingResult:
        invocation.transition(ProcessingState.STREAMING_PDF)

        async with aclosing(self.stream_events(invocation.request)) as events:
            async for event in events:
                if isinstance(event, ProgressEvent):
                    await notify(on_progress, invocation.aggregator.processing(event))
                elif isinstance(event, PageDoneEvent):
                    logger.debug("pdf page processed", page=event.page_number)
                    await notify(on_page, event.page_number)
                elif isinstance(event, CompleteEvent):
                    return normalize_result(event.payload)
                elif isinstance(event, FailedEvent):
                    raise ProcessingFailedError(event.message)

        raise TransportError("OCR stream ended before processing completed")

    async def stream_events(self, request: ProcessingRequest) -> AsyncIterator[StreamEvent]:
        """Yield the typed events of a PDF processing stream in arrival order.

        Malformed frames are dropped. Closing the generator closes the
        response.

        Raises:
            ValueError: If the request is not for a PDF.
            TransportError: If the service answers with a non-2xx status.
            httpx.HTTPError: On network failures while reading.
        """
        if request.kind is not DocumentKind.PDF:
            raise ValueError("Only PDF documents are processed as a stream")

        async with self._client.stream(
            "POST",
            self._url(PDF_STREAM_ENDPOINT),
            json=request.to_payload(),
            headers={**self._headers, "Accept": "text/event-stream"},
        ) as response:
            if not response.is_success:
                await response.aread()
                _raise_for_status(response)

            async for line in aiter_lines(response.aiter_bytes()):
                event = interpret_line(line)
                if event is not None:
                    yield event

    async def get_example_documents(self) -> list[dict[str, Any]]:
        """Fetch the catalogue of example documents offered by the service.

        Returns:
            List of example entries (id, label, url, description, ...).

        Raises:
            TransportError: On non-2xx status or an unreadable body.
        """
        try:
            response = await self._client.get(
                self._url(SAMPLES_ENDPOINT), headers=self._headers
            )
        except httpx.HTTPError as e:
            raise TransportError(_describe_error(e)) from e
        _raise_for_status(response)

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError("Samples response body is not valid JSON") from e

        if isinstance(body, dict):
            body = body.get("samples", [])
        return [item for item in body if isinstance(item, dict)] if isinstance(body, list) else []
