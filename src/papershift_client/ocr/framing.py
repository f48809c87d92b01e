"""Incremental line framing for event-stream response bodies."""

import codecs
from collections.abc import AsyncIterable, AsyncIterator, Iterator


class FrameDecoder:
    """Turn arbitrarily split byte chunks into complete text lines.

    A trailing partial line is kept in the buffer and prefixed to the next
    chunk. Decoding is incremental, so a multi-byte UTF-8 character split
    across two chunks is reassembled rather than replaced. Invalid bytes are
    decoded with U+FFFD replacement characters.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last newline, not yet emitted."""
        return self._buffer

    def feed(self, chunk: bytes) -> Iterator[str]:
        """Add a chunk and return an iterator over the lines it completes.

        Args:
            chunk: Raw bytes in arrival order.

        Returns:
            Iterator over complete lines, without their line terminators.
        """
        text = self._buffer + self._decoder.decode(chunk)
        *lines, self._buffer = text.split("\n")
        return (_strip_cr(line) for line in lines)

    def flush(self) -> Iterator[str]:
        """Emit whatever is left at end of stream as a final line."""
        text = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if not text:
            return iter(())
        *lines, last = text.split("\n")
        if last:
            lines.append(last)
        return (_strip_cr(line) for line in lines)


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


async def aiter_lines(chunks: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Decode an async byte stream into lines with a fresh FrameDecoder."""
    decoder = FrameDecoder()
    async for chunk in chunks:
        for line in decoder.feed(chunk):
            yield line
    for line in decoder.flush():
        yield line
