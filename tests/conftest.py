"""Shared fixtures for OCR client tests."""

import json

import httpx
import pytest

from papershift_client.ocr import (
    DocumentRef,
    OCRClient,
    ProcessingRequest,
    ProcessingResult,
    ProgressUpdate,
)

BASE_URL = "https://ocr.test"


def frame(**fields) -> bytes:
    """Encode one event-stream frame."""
    return f"data: {json.dumps(fields, ensure_ascii=False)}\n\n".encode("utf-8")


async def iter_chunks(chunks):
    for chunk in chunks:
        yield chunk


def stream_response(chunks, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        headers={"content-type": "text/event-stream"},
        content=iter_chunks(chunks),
    )


class CallbackRecorder:
    """Records every callback in call order."""

    def __init__(self):
        self.calls: list[tuple[str, object]] = []

    def on_progress(self, update: ProgressUpdate) -> None:
        self.calls.append(("progress", update))

    def on_complete(self, result: ProcessingResult) -> None:
        self.calls.append(("complete", result))

    def on_error(self, message: str) -> None:
        self.calls.append(("error", message))

    @property
    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.calls]

    @property
    def progress(self) -> list[ProgressUpdate]:
        return [value for kind, value in self.calls if kind == "progress"]

    def terminal(self) -> tuple[str, object]:
        terminals = [call for call in self.calls if call[0] in ("complete", "error")]
        assert len(terminals) == 1, f"expected one terminal callback, got {terminals}"
        assert self.calls[-1] == terminals[0], "terminal callback was not the last call"
        return terminals[0]


@pytest.fixture
def recorder() -> CallbackRecorder:
    return CallbackRecorder()


@pytest.fixture
def make_client():
    """Build an OCRClient whose HTTP traffic goes to the given handler."""

    def _make(handler) -> OCRClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return OCRClient(base_url=BASE_URL, api_key="test-key", http_client=http_client)

    return _make


@pytest.fixture
def pdf_request() -> ProcessingRequest:
    return ProcessingRequest(
        document=DocumentRef.from_url("https://files.test/report.pdf"),
        dpi=150,
        batch_size=4,
    )


@pytest.fixture
def image_request() -> ProcessingRequest:
    return ProcessingRequest(document=DocumentRef.from_url("https://files.test/receipt.jpg"))
