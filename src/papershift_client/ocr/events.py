"""Classification of decoded stream lines into typed events."""

import json
import math
from typing import Any

from ..logger import logger
from .exceptions import FrameParseError
from .models import (
    CompleteEvent,
    FailedEvent,
    PageDoneEvent,
    ProgressEvent,
    StreamEvent,
)

DATA_PREFIX = "data: "
DEFAULT_PROGRESS_MESSAGE = "Processing document..."
DEFAULT_ERROR_MESSAGE = "OCR processing failed"


def _as_number(value: Any) -> float | None:
    # bool is an int subclass, but never a meaningful progress value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _as_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def parse_event(line: str) -> StreamEvent | None:
    """Parse one decoded line into a StreamEvent.

    Args:
        line: A complete line from the FrameDecoder.

    Returns:
        The event, or None for lines without the data marker and for
        event kinds this client does not handle.

    Raises:
        FrameParseError: If the line has the marker but its payload is not a
            JSON object.
    """
    if not line.startswith(DATA_PREFIX):
        return None

    raw = line[len(DATA_PREFIX):].strip()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise FrameParseError(f"Invalid event payload: {e}") from e
    if not isinstance(data, dict):
        raise FrameParseError(f"Event payload is not an object: {type(data).__name__}")

    kind = data.get("event") or data.get("type")

    if kind == "progress":
        progress = _as_number(data.get("progress"))
        return ProgressEvent(
            progress=progress if progress is not None else 0.0,
            eta=_as_number(data.get("eta")),
            message=_as_text(data.get("message")) or DEFAULT_PROGRESS_MESSAGE,
        )

    if kind == "page":
        page = _as_number(data.get("page", data.get("page_number")))
        return PageDoneEvent(page_number=int(page) if page is not None else 0)

    if kind == "complete":
        result = data.get("result")
        return CompleteEvent(payload=result if isinstance(result, dict) else data)

    if kind == "error":
        message = (
            _as_text(data.get("message"))
            or _as_text(data.get("error"))
            or _as_text(data.get("detail"))
        )
        return FailedEvent(message=message or DEFAULT_ERROR_MESSAGE)

    logger.debug("ignoring unknown stream event", event=kind)
    return None


def interpret_line(line: str) -> StreamEvent | None:
    """Like parse_event, but malformed frames are logged and dropped."""
    try:
        return parse_event(line)
    except FrameParseError as e:
        logger.warn(
            "dropping malformed stream frame",
            error=str(e),
            frame_preview=line[:120],
        )
        return None
