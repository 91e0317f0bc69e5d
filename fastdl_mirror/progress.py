"""
Structured progress events.

The engines never print; they hand :class:`ProgressEvent` objects to an
optional callback.  Two reporters are provided: :class:`LogReporter` for
plain logs and :class:`TqdmReporter` for live bars.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable

try:
    from tqdm import tqdm as _tqdm
    _TQDM_AVAILABLE = True
except ImportError:
    _TQDM_AVAILABLE = False

from fastdl_mirror.utils.log import log

CRAWL = "crawl"
DOWNLOAD = "download"
DECODE = "decode"

WAVE_STARTED = "wave_started"
PAGE_EXPLORED = "page_explored"
PAGE_FAILED = "page_failed"
CRAWL_FINISHED = "crawl_finished"
FILE_DOWNLOADED = "file_downloaded"
DOWNLOAD_FAILED = "download_failed"
RETRY = "retry"
FILE_DECODED = "file_decoded"
FILE_CORRUPT = "file_corrupt"
STAGE_FINISHED = "stage_finished"


@dataclass(frozen=True)
class ProgressEvent:
    stage: str
    kind: str
    counts: dict[str, int] = field(default_factory=dict)
    item: str | None = None


ProgressCallback = Callable[[ProgressEvent], None]


def emit(callback: ProgressCallback | None, stage: str, kind: str,
         item: str | None = None, **counts: int) -> None:
    """Deliver an event to *callback* if one was supplied."""
    if callback is not None:
        callback(ProgressEvent(stage=stage, kind=kind, counts=counts, item=item))


class LogReporter:
    """Logs stage milestones; per-item events go to DEBUG."""

    def __call__(self, event: ProgressEvent) -> None:
        counts = "  ".join(f"{k}={v}" for k, v in event.counts.items())
        if event.kind in (WAVE_STARTED, CRAWL_FINISHED, STAGE_FINISHED):
            log.info("[%s] %s  %s", event.stage, event.kind, counts)
        elif event.kind in (DOWNLOAD_FAILED, FILE_CORRUPT, PAGE_FAILED):
            log.warning("[%s] %s %s  %s", event.stage, event.kind, event.item, counts)
        else:
            log.debug("[%s] %s %s  %s", event.stage, event.kind, event.item, counts)


class TqdmReporter:
    """One tqdm bar per stage, created on the stage's first event."""

    def __init__(self) -> None:
        if not _TQDM_AVAILABLE:
            raise RuntimeError("tqdm is not installed (pip install tqdm)")
        self._bars: dict[str, "_tqdm"] = {}
        self._lock = threading.Lock()

    def _bar(self, stage: str, total: int | None) -> "_tqdm":
        bar = self._bars.get(stage)
        if bar is None:
            unit = {CRAWL: "page", DOWNLOAD: "file", DECODE: "file"}.get(stage, "item")
            bar = _tqdm(desc=stage.capitalize(), unit=unit, total=total,
                        dynamic_ncols=True)
            self._bars[stage] = bar
        return bar

    def __call__(self, event: ProgressEvent) -> None:
        with self._lock:
            bar = self._bar(event.stage, event.counts.get("total"))
            if bar.total is None and "total" in event.counts:
                bar.total = event.counts["total"]
            if event.kind == WAVE_STARTED:
                bar.total = (bar.total or 0) + event.counts.get("wave", 0)
                bar.refresh()
            elif event.kind in (PAGE_EXPLORED, PAGE_FAILED, FILE_DOWNLOADED,
                                DOWNLOAD_FAILED, FILE_DECODED, FILE_CORRUPT):
                bar.update(1)
            if event.kind in (CRAWL_FINISHED, STAGE_FINISHED):
                bar.set_postfix(event.counts)
                bar.close()
                del self._bars[event.stage]
            elif event.counts:
                bar.set_postfix(event.counts, refresh=False)


def default_reporter() -> ProgressCallback:
    """TqdmReporter when tqdm is installed, LogReporter otherwise."""
    return TqdmReporter() if _TQDM_AVAILABLE else LogReporter()
