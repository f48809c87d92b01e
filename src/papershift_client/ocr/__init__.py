from .models import (
    BLOCK_LABELS,
    CompleteEvent,
    ContentBlock,
    Coordinates,
    DocumentKind,
    DocumentMetadata,
    DocumentRef,
    FailedEvent,
    PageDoneEvent,
    ProcessingOutcome,
    ProcessingRequest,
    ProcessingResult,
    ProgressEvent,
    ProgressUpdate,
    StreamEvent,
    infer_kind,
)
from .exceptions import (
    FrameParseError,
    OCRClientError,
    ProcessingFailedError,
    TransportError,
)
from .framing import FrameDecoder, aiter_lines
from .events import interpret_line, parse_event
from .normalizer import normalize_block, normalize_result, strip_markup
from .progress import ProgressAggregator
from .client import OCRClient, ProcessingState
from .pipeline import Uploader, process_file
from .export import export_result, render_result

__all__ = [
    # Models
    "BLOCK_LABELS",
    "DocumentKind",
    "DocumentRef",
    "ProcessingRequest",
    "ContentBlock",
    "Coordinates",
    "DocumentMetadata",
    "ProcessingResult",
    "ProgressUpdate",
    "ProcessingOutcome",
    "infer_kind",
    # Events
    "StreamEvent",
    "ProgressEvent",
    "PageDoneEvent",
    "CompleteEvent",
    "FailedEvent",
    "parse_event",
    "interpret_line",
    # Errors
    "OCRClientError",
    "TransportError",
    "FrameParseError",
    "ProcessingFailedError",
    # Framing
    "FrameDecoder",
    "aiter_lines",
    # Normalization
    "normalize_result",
    "normalize_block",
    "strip_markup",
    # Progress
    "ProgressAggregator",
    # Client
    "OCRClient",
    "ProcessingState",
    # Pipeline
    "Uploader",
    "process_file",
    # Export
    "export_result",
    "render_result",
]
