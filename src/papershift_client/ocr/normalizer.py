"""Mapping of backend OCR payloads into the canonical ProcessingResult.

Image and PDF responses differ in shape: image results carry their blocks in
``metadata.blocks``, PDF results may carry a ``pages`` list where each page
has its own blocks and text. Every field is optional at this boundary and all
defaulting happens here, so callers never see a partially-filled result.
"""

import hashlib
import html
import json
import math
import re
from collections.abc import Mapping, Sequence
from html.parser import HTMLParser
from typing import Any

from .models import (
    BLOCK_LABELS,
    ContentBlock,
    Coordinates,
    DocumentMetadata,
    ProcessingResult,
)

DEFAULT_LANGUAGE = "unknown"
DEFAULT_LABEL = "text"

_BLOCK_LIST_KEYS = ("blocks", "bounding_boxes", "layout")
_LABEL_KEYS = ("label", "type", "category")
_BREAK_TAGS = frozenset({"br", "p", "div", "tr", "li", "h1", "h2", "h3", "h4", "h5", "h6"})
_CELL_TAGS = frozenset({"td", "th"})
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_HEADING = re.compile(r"^(#{1,6})\s+(.*)$")


class _TextExtractor(HTMLParser):
    """Collect text content, dropping tags and decoding entities."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []

    def handle_starttag(self, tag, attrs):
        if tag in _BREAK_TAGS:
            self.parts.append("\n")

    def handle_startendtag(self, tag, attrs):
        self.handle_starttag(tag, attrs)

    def handle_endtag(self, tag):
        if tag in _BREAK_TAGS:
            self.parts.append("\n")
        elif tag in _CELL_TAGS:
            self.parts.append(" ")

    def handle_data(self, data):
        self.parts.append(data)


def strip_markup(text: str) -> str:
    """Remove HTML tags from block text on a best-effort basis.

    Args:
        text: Block text that may contain inline HTML (tables, emphasis, ...).

    Returns:
        Plain text with entities decoded and surrounding whitespace removed.
    """
    if "<" not in text and "&" not in text:
        return text.strip()
    parser = _TextExtractor()
    parser.feed(text)
    parser.close()
    plain = "".join(parser.parts)
    return _EXCESS_NEWLINES.sub("\n\n", plain).strip()


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _list(value: Any) -> list:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return list(value)
    return []


def _first_list(source: Mapping[str, Any], keys: Sequence[str]) -> list:
    for key in keys:
        items = _list(source.get(key))
        if items:
            return items
    return []


def _convert_bbox(bbox: Any) -> tuple[float, float, float, float]:
    """Read a box as (x0, y0, x1, y1), substituting 0 for unusable values.

    Accepts a 4-number sequence, an {x0, y0, x1, y1} mapping, or a
    {left, top, width, height} mapping.
    """
    if isinstance(bbox, Mapping):
        if "left" in bbox or "top" in bbox:
            left = _number(bbox.get("left")) or 0.0
            top = _number(bbox.get("top")) or 0.0
            return (
                left,
                top,
                left + (_number(bbox.get("width")) or 0.0),
                top + (_number(bbox.get("height")) or 0.0),
            )
        values = [bbox.get(k) for k in ("x0", "y0", "x1", "y1")]
    else:
        values = _list(bbox)[:4]

    coords = [_number(v) or 0.0 for v in values]
    coords.extend([0.0] * (4 - len(coords)))
    return coords[0], coords[1], coords[2], coords[3]


def _map_label(raw: Mapping[str, Any]) -> str:
    for key in _LABEL_KEYS:
        label = _text(raw.get(key))
        if label:
            label = label.strip().lower()
            return label if label in BLOCK_LABELS else DEFAULT_LABEL
    return DEFAULT_LABEL


def normalize_block(raw: Any, index: int, page: int = 1) -> ContentBlock:
    """Convert one raw backend block into a ContentBlock.

    Malformed geometry never rejects the block: missing coordinates become 0
    and inverted boxes collapse to zero width/height.

    Args:
        raw: Backend block, normally {"label", "bbox", "text", "confidence"}.
        index: Position of the block in the whole document, used for the id.
        page: Page the block belongs to when the block does not say.

    Returns:
        The normalized ContentBlock.
    """
    raw = _mapping(raw)
    x0, y0, x1, y1 = _convert_bbox(raw.get("bbox"))

    confidence = _number(raw.get("confidence", raw.get("score")))
    confidence = 1.0 if confidence is None else min(max(confidence, 0.0), 1.0)

    block_page = _number(raw.get("page"))
    block_page = int(block_page) if block_page is not None and block_page >= 1 else page

    block_id = raw.get("id")
    text = _text(raw.get("text")) or _text(raw.get("content")) or ""

    return ContentBlock(
        id=str(block_id) if block_id not in (None, "") else f"block-{index}",
        type=_map_label(raw),
        coordinates=Coordinates(
            x=x0,
            y=y0,
            width=max(x1 - x0, 0.0),
            height=max(y1 - y0, 0.0),
        ),
        text=strip_markup(text),
        confidence=confidence,
        page=block_page,
    )


def _page_number(page: Mapping[str, Any], position: int) -> int:
    number = _number(page.get("page_number", page.get("page")))
    return int(number) if number is not None and number >= 1 else position + 1


def _collect_blocks(
    metadata: Mapping[str, Any], pages: list[Mapping[str, Any]]
) -> list[ContentBlock]:
    raw_blocks: list[tuple[Any, int]] = [
        (raw, 1) for raw in _first_list(metadata, _BLOCK_LIST_KEYS)
    ]
    if not raw_blocks:
        for position, page in enumerate(pages):
            number = _page_number(page, position)
            page_blocks = _first_list(page, _BLOCK_LIST_KEYS) or _first_list(
                _mapping(page.get("metadata")), _BLOCK_LIST_KEYS
            )
            raw_blocks.extend((raw, number) for raw in page_blocks)

    return [
        normalize_block(raw, index, page)
        for index, (raw, page) in enumerate(raw_blocks)
    ]


def _document_text(payload: Mapping[str, Any], pages: list[Mapping[str, Any]]) -> str:
    text = _text(payload.get("markdown")) or _text(payload.get("text"))
    if text is not None:
        return text
    page_texts = [
        _text(page.get("markdown")) or _text(page.get("text")) or "" for page in pages
    ]
    return "\n\n".join(t for t in page_texts if t)


def render_html(markdown: str) -> str:
    """Render lightly structured text as escaped HTML paragraphs and headings."""
    parts = []
    for paragraph in re.split(r"\n\s*\n", markdown.strip()):
        if not paragraph:
            continue
        heading = _HEADING.match(paragraph)
        if heading and "\n" not in paragraph:
            level = len(heading.group(1))
            parts.append(f"<h{level}>{html.escape(heading.group(2))}</h{level}>")
        else:
            body = "<br>".join(html.escape(line) for line in paragraph.splitlines())
            parts.append(f"<p>{body}</p>")
    return "\n".join(parts)


def _page_count(metadata: Mapping[str, Any], pages: list) -> int:
    for key in ("page_count", "total_pages", "pages"):
        count = _number(metadata.get(key))
        if count is not None:
            return max(int(count), 1)
    return max(len(pages), 1)


def _page_size(
    metadata: Mapping[str, Any], pages: list[Mapping[str, Any]]
) -> tuple[float | None, float | None]:
    width = _number(metadata.get("image_width", metadata.get("width")))
    height = _number(metadata.get("image_height", metadata.get("height")))
    if width is None and height is None:
        size = _list(metadata.get("image_size"))
        if len(size) == 2:
            width, height = _number(size[0]), _number(size[1])
    if width is None and height is None and pages:
        width = _number(pages[0].get("width"))
        height = _number(pages[0].get("height"))
    return width, height


def _result_id(payload: Mapping[str, Any]) -> str:
    for key in ("id", "request_id"):
        value = payload.get(key)
        if isinstance(value, (str, int)) and not isinstance(value, bool) and value != "":
            return str(value)
    digest = hashlib.sha256(
        json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    ).hexdigest()
    return f"ocr-{digest[:16]}"


def normalize_result(payload: Any) -> ProcessingResult:
    """Map a backend completion payload to a ProcessingResult.

    Pure and deterministic: the same payload always yields the same result.
    Missing or mistyped fields fall back to defaults (no blocks, one page,
    zero processing time, language "unknown") instead of raising.

    Args:
        payload: The decoded JSON completion payload.

    Returns:
        The canonical ProcessingResult.
    """
    payload = _mapping(payload)
    metadata = _mapping(payload.get("metadata"))
    pages = [_mapping(p) for p in _list(payload.get("pages"))]

    markdown = _document_text(payload, pages)
    html_text = _text(payload.get("html"))
    processing_time = _number(
        metadata.get("processing_time", payload.get("processing_time"))
    )
    language = _text(metadata.get("language")) or _text(payload.get("language"))
    width, height = _page_size(metadata, pages)

    return ProcessingResult(
        id=_result_id(payload),
        markdown=markdown,
        html=html_text if html_text is not None else render_html(markdown),
        raw=dict(payload),
        bounding_boxes=_collect_blocks(metadata, pages),
        page_width=width,
        page_height=height,
        metadata=DocumentMetadata(
            page_count=_page_count(metadata, pages),
            processing_time=max(processing_time or 0.0, 0.0),
            language=language or DEFAULT_LANGUAGE,
        ),
    )
