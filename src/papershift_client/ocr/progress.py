"""Combined upload + OCR progress on a single 0-100 scale."""

import math

from .models import ProgressEvent, ProgressUpdate

DEFAULT_UPLOAD_SHARE = 50.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(percent: float) -> float:
    return min(max(percent, 0.0), 100.0)


class ProgressAggregator:
    """Remap upload-phase and processing-phase progress onto one bar.

    The upload phase owns [0, upload_share] and the processing phase owns
    [upload_share, 100]. With the default share, an upload at 100% lands
    exactly on 50 and processing at 100% lands exactly on 100. Values are
    remapped, not smoothed: a backend that reports a regression produces a
    regression here too.
    """

    def __init__(self, upload_share: float = DEFAULT_UPLOAD_SHARE):
        if not 0.0 <= upload_share <= 100.0:
            raise ValueError(f"upload_share must be within 0-100, got {upload_share}")
        self.upload_share = upload_share
        self._last: ProgressUpdate | None = None

    @property
    def last(self) -> ProgressUpdate | None:
        """The most recent combined update, if any."""
        return self._last

    def upload(self, percent: float) -> ProgressUpdate:
        """Combine an upload-phase percentage (0-100)."""
        percent = _clamp(percent)
        self._last = ProgressUpdate(
            percent=_round_half_up(percent * self.upload_share / 100.0),
            eta=None,
            message=f"Uploading: {_round_half_up(percent)}%",
            phase="upload",
        )
        return self._last

    def processing(self, event: ProgressEvent) -> ProgressUpdate:
        """Combine a processing-phase progress event (0-100)."""
        span = 100.0 - self.upload_share
        percent = self.upload_share + _clamp(event.progress) * span / 100.0
        self._last = ProgressUpdate(
            percent=_round_half_up(percent),
            eta=event.eta,
            message=event.message,
            phase="processing",
        )
        return self._last

    def complete(self, message: str = "Complete!") -> ProgressUpdate:
        """Final update once the result is available."""
        self._last = ProgressUpdate(percent=100, eta=None, message=message, phase="complete")
        return self._last
