"""Progress events for a crawl session.

Events are fire-and-forget: a consumer that raises (for example because an
SSE client disconnected) is logged once and then ignored for the rest of the
session.  Percentages never go backwards.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

STAGES = ("fetch", "parse", "structure", "forms", "graph", "score", "merge", "complete", "failed")

# Percent reached when each stage finishes.  Fetch reports its own
# per-page progress between FETCH_START and the fetch value.
FETCH_START = 5
STAGE_PERCENT: dict[str, int] = {
    "fetch": 35,
    "parse": 50,
    "structure": 60,
    "forms": 70,
    "graph": 80,
    "score": 90,
    "merge": 97,
    "complete": 100,
}


@dataclass
class ProgressEvent:
    stage: str
    message: str
    progress_percent: int
    pages_processed: int = 0
    total_pages: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


ProgressCallback = Callable[[ProgressEvent], None]


class ProgressReporter:
    """Delivers monotonically increasing :class:`ProgressEvent`s to a callback."""

    def __init__(self, callback: Optional[ProgressCallback] = None, total_pages: int = 0) -> None:
        self._callback = callback
        self.total_pages = total_pages
        self.pages_processed = 0
        self.percent = 0
        self.events: list[ProgressEvent] = []

    def emit(
        self,
        stage: str,
        message: str,
        *,
        percent: Optional[int] = None,
        pages_processed: Optional[int] = None,
    ) -> ProgressEvent:
        if stage not in STAGES:
            raise ValueError(f"Unknown stage: {stage!r}")
        if pages_processed is not None:
            self.pages_processed = pages_processed
        if stage != "failed":
            target = STAGE_PERCENT[stage] if percent is None else percent
            self.percent = max(self.percent, min(int(target), 100))

        event = ProgressEvent(
            stage=stage,
            message=message,
            progress_percent=self.percent,
            pages_processed=self.pages_processed,
            total_pages=self.total_pages,
        )
        self.events.append(event)
        logger.info("[%s] %s (%d%%)", stage.upper(), message, self.percent)

        if self._callback is not None:
            try:
                self._callback(event)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Progress consumer failed, detaching it: %s", exc)
                self._callback = None
        return event

    def fetch_progress(self, pages: int, message: str) -> ProgressEvent:
        """Per-page fetch event, scaled between FETCH_START and the fetch mark."""
        span = STAGE_PERCENT["fetch"] - FETCH_START
        ratio = pages / self.total_pages if self.total_pages else 1.0
        return self.emit("fetch", message, percent=FETCH_START + int(span * min(ratio, 1.0)), pages_processed=pages)
