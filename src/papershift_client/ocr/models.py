"""Data models shared by the OCR client components."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_DPI = 200
DEFAULT_BATCH_SIZE = 5

BlockLabel = Literal["title", "text", "table", "image", "header"]
BLOCK_LABELS: frozenset[str] = frozenset({"title", "text", "table", "image", "header"})


class DocumentKind(str, Enum):
    IMAGE = "image"
    PDF = "pdf"


def infer_kind(name: str, media_type: str | None = None) -> DocumentKind:
    """Infer the document kind from a declared media type or a file name/URL.

    Args:
        name: File name or URL of the document.
        media_type: Optional MIME type, e.g. "application/pdf".

    Returns:
        DocumentKind.PDF for PDFs, DocumentKind.IMAGE for everything else.
    """
    if media_type:
        return DocumentKind.PDF if "pdf" in media_type.lower() else DocumentKind.IMAGE
    path = urlparse(name).path or name
    return DocumentKind.PDF if path.lower().endswith(".pdf") else DocumentKind.IMAGE


class DocumentRef(BaseModel):
    """A reachable document URL and its kind."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1)
    kind: DocumentKind

    @classmethod
    def from_url(cls, url: str, media_type: str | None = None) -> "DocumentRef":
        return cls(url=url, kind=infer_kind(url, media_type))


class ProcessingRequest(BaseModel):
    """One OCR invocation: the document plus kind-dependent options."""

    model_config = ConfigDict(frozen=True)

    document: DocumentRef
    extract_images: bool = True
    dpi: int = Field(default=DEFAULT_DPI, ge=1)  # PDF rasterization density
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)  # PDF pages per batch

    @property
    def kind(self) -> DocumentKind:
        return self.document.kind

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON request body for this document's kind."""
        if self.kind is DocumentKind.PDF:
            return {
                "url": self.document.url,
                "dpi": self.dpi,
                "batch_size": self.batch_size,
                "extract_images": self.extract_images,
            }
        return {"url": self.document.url, "extract_images": self.extract_images}


# --- Stream events ---


@dataclass(frozen=True)
class ProgressEvent:
    progress: float
    eta: float | None = None
    message: str = "Processing document..."


@dataclass(frozen=True)
class PageDoneEvent:
    page_number: int


@dataclass(frozen=True)
class CompleteEvent:
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FailedEvent:
    message: str


StreamEvent = ProgressEvent | PageDoneEvent | CompleteEvent | FailedEvent


# --- Canonical result ---


class Coordinates(BaseModel):
    """Axis-aligned rectangle in source-pixel coordinates."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float = Field(ge=0)
    height: float = Field(ge=0)


class ContentBlock(BaseModel):
    """One positioned region of recognized content."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: BlockLabel = "text"
    coordinates: Coordinates
    text: str = ""
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    page: int = Field(default=1, ge=1)


class DocumentMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    page_count: int = Field(default=1, ge=1)
    processing_time: float = Field(default=0.0, ge=0.0)  # seconds
    language: str = "unknown"


class ProcessingResult(BaseModel):
    """Normalized OCR output handed to the caller on completion."""

    model_config = ConfigDict(frozen=True)

    id: str
    markdown: str = ""
    html: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)  # backend payload, untouched
    bounding_boxes: list[ContentBlock] = Field(default_factory=list)
    page_width: float | None = None
    page_height: float | None = None
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)


# --- Progress and outcome ---


class ProgressUpdate(BaseModel):
    """Combined progress as shown to the user."""

    model_config = ConfigDict(frozen=True)

    percent: int = Field(ge=0, le=100)
    eta: float | None = None  # seconds
    message: str = "Processing..."
    phase: Literal["upload", "processing", "complete"] = "processing"

    @property
    def eta_display(self) -> str:
        # A zero or negative estimate means the backend has none yet
        if self.eta is None or self.eta <= 0:
            return "calculating..."
        return f"{math.ceil(self.eta)}s"

    @property
    def status_line(self) -> str:
        return f"{self.percent}% • ETA: {self.eta_display}"


@dataclass(frozen=True)
class ProcessingOutcome:
    """Terminal outcome of one invocation: a result or an error message."""

    result: ProcessingResult | None = None
    error: str | None = None

    def __post_init__(self):
        if (self.result is None) == (self.error is None):
            raise ValueError("ProcessingOutcome needs exactly one of result or error")

    @property
    def succeeded(self) -> bool:
        return self.result is not None

    @classmethod
    def success(cls, result: ProcessingResult) -> "ProcessingOutcome":
        return cls(result=result)

    @classmethod
    def failure(cls, message: str) -> "ProcessingOutcome":
        return cls(error=message)
