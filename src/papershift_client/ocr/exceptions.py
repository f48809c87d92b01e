"""Error taxonomy for the OCR client."""


class OCRClientError(Exception):
    """Base class for errors raised while processing a document."""

    pass


class TransportError(OCRClientError):
    """The HTTP exchange failed: bad status, network error or unreadable body."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FrameParseError(OCRClientError, ValueError):
    """A single stream line carried the event marker but no valid payload."""

    pass


class ProcessingFailedError(OCRClientError):
    """The OCR service reported an error event for the document."""

    pass
