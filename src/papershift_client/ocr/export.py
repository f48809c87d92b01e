"""Writing processed results to disk."""

from pathlib import Path

from ..logger import logger
from .models import ProcessingResult

EXPORT_FILENAMES = {
    "markdown": "document.md",
    "html": "document.html",
    "json": "document.json",
}
FORMAT_ALIASES = {"md": "markdown"}


def render_result(result: ProcessingResult, fmt: str) -> str:
    """Render a result in one of the export formats.

    Args:
        result: The processed document.
        fmt: "markdown" (or "md"), "html" or "json".

    Returns:
        The rendered text.

    Raises:
        ValueError: If the format is not supported.
    """
    fmt = FORMAT_ALIASES.get(fmt, fmt)
    if fmt == "markdown":
        return result.markdown
    if fmt == "html":
        return result.html
    if fmt == "json":
        return result.model_dump_json(indent=2)
    raise ValueError(
        f"Unsupported export format: {fmt!r}. Use one of {sorted(EXPORT_FILENAMES)}"
    )


def export_result(
    result: ProcessingResult, output_dir: str | Path, fmt: str = "markdown"
) -> Path:
    """Write a result as document.md, document.html or document.json.

    Args:
        result: The processed document.
        output_dir: Directory to write into. Created if missing.
        fmt: "markdown" (or "md"), "html" or "json".

    Returns:
        Path of the written file.
    """
    content = render_result(result, fmt)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    path = output_dir / EXPORT_FILENAMES[FORMAT_ALIASES.get(fmt, fmt)]
    path.write_text(content, encoding="utf-8")

    logger.info(
        "result exported",
        result_id=result.id,
        format=fmt,
        path=str(path),
        size_bytes=path.stat().st_size,
    )
    return path
