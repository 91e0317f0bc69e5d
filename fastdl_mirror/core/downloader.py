"""
Parallel downloader.

Every URL becomes one task on a bounded thread pool.  A task mirrors the
URL's path below the output directory, streams the body to a ``.part``
sibling and renames it into place, so a half-written file never shadows a
previous good copy.

Transport failures are retried according to a :class:`RetryPolicy`.  With
``max_attempts=0`` a file is never abandoned, which suits long unattended
mirror jobs against a flaky host.
"""

import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Iterator

import requests

from fastdl_mirror import progress as ev
from fastdl_mirror.config import (
    PARTIAL_SUFFIX,
    REQUEST_TIMEOUT,
    RETRY_BACKOFF,
    RETRY_DELAY,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_DELAY,
    RETRYABLE_STATUS_CODES,
    STREAM_CHUNK,
    auto_concurrency,
)
from fastdl_mirror.core.storage import ensure_dir, local_target, remove_file, stream_to_file
from fastdl_mirror.errors import FilesystemError, MirrorError, TransportError
from fastdl_mirror.progress import ProgressCallback
from fastdl_mirror.session import build_session
from fastdl_mirror.utils.log import log


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff between download attempts.

    ``max_attempts=0`` means unlimited attempts.
    """

    max_attempts: int = RETRY_MAX_ATTEMPTS
    delay: float = RETRY_DELAY
    backoff: float = RETRY_BACKOFF
    max_delay: float = RETRY_MAX_DELAY

    @classmethod
    def forever(cls, delay: float = RETRY_DELAY) -> "RetryPolicy":
        """Retry without limit at a fixed interval."""
        return cls(max_attempts=0, delay=delay, backoff=1.0, max_delay=delay)

    def exhausted(self, attempt: int) -> bool:
        return self.max_attempts > 0 and attempt >= self.max_attempts

    def wait_for(self, attempt: int) -> float:
        """Seconds to sleep after failed attempt number *attempt* (1-based)."""
        return min(self.delay * self.backoff ** (attempt - 1), self.max_delay)


@dataclass
class DownloadReport:
    completed: dict[str, Path] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)


class Downloader:
    def __init__(
        self,
        output_dir: Path,
        session: requests.Session | None = None,
        workers: int = 0,
        timeout: float | None = REQUEST_TIMEOUT,
        retry: RetryPolicy | None = None,
        progress: ProgressCallback | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.workers = workers or auto_concurrency()
        self.session = session or build_session(pool_size=self.workers)
        self.timeout = timeout
        self.retry = retry or RetryPolicy()
        self.progress = progress
        self._sleep = sleep

    def run(self, urls: Iterable[str]) -> DownloadReport:
        """Download every URL in *urls*; never raises for a single file."""
        report = DownloadReport()
        todo = sorted(set(urls))
        if not todo:
            return report

        log.info("Downloading %d file(s) into %s", len(todo), self.output_dir.resolve())
        with ThreadPoolExecutor(max_workers=self.workers,
                                thread_name_prefix="download") as pool:
            futures = {pool.submit(self.fetch, url): url for url in todo}
            for fut in as_completed(futures):
                url = futures[fut]
                try:
                    report.completed[url] = fut.result()
                except MirrorError as exc:
                    log.error("[ERR] Giving up on %s: %s", url, exc)
                    report.failed[url] = str(exc)
                    ev.emit(self.progress, ev.DOWNLOAD, ev.DOWNLOAD_FAILED, item=url,
                            completed=len(report.completed),
                            failed=len(report.failed), total=len(todo))
                    continue
                ev.emit(self.progress, ev.DOWNLOAD, ev.FILE_DOWNLOADED, item=url,
                        completed=len(report.completed),
                        failed=len(report.failed), total=len(todo))

        log.info("Download complete. ok=%d  failed=%d",
                 len(report.completed), len(report.failed))
        ev.emit(self.progress, ev.DOWNLOAD, ev.STAGE_FINISHED,
                completed=len(report.completed), failed=len(report.failed),
                total=len(todo))
        return report

    def fetch(self, url: str) -> Path:
        """Download one URL, retrying transport failures per the policy."""
        directory, filename = local_target(url, self.output_dir)
        ensure_dir(directory)
        target = directory / filename

        attempt = 0
        while True:
            attempt += 1
            try:
                self._fetch_once(url, target)
                return target
            except TransportError as exc:
                if not exc.retryable or self.retry.exhausted(attempt):
                    raise
                wait = self.retry.wait_for(attempt)
                log.warning("[RETRY] %s (attempt %d): %s – sleeping %.1fs",
                            url, attempt, exc, wait)
                ev.emit(self.progress, ev.DOWNLOAD, ev.RETRY, item=url, attempt=attempt)
                self._sleep(wait)

    def _fetch_once(self, url: str, target: Path) -> None:
        log.debug("[GET] %s", url)
        try:
            resp = self.session.get(url, stream=True, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(url, str(exc)) from exc

        part = target.with_name(target.name + PARTIAL_SUFFIX)
        try:
            if resp.status_code >= 400:
                raise TransportError(
                    url, f"HTTP {resp.status_code}", status=resp.status_code,
                    retryable=resp.status_code in RETRYABLE_STATUS_CODES,
                )
            stream_to_file(part, self._chunks(url, resp))
            try:
                os.replace(part, target)
            except OSError as exc:
                raise FilesystemError(target, f"rename failed: {exc}") from exc
        except MirrorError:
            remove_file(part)
            raise
        finally:
            resp.close()

    @staticmethod
    def _chunks(url: str, resp: requests.Response) -> Iterator[bytes]:
        # requests exceptions subclass OSError; translate them here so the
        # file writer does not report a dropped connection as a disk error.
        try:
            yield from resp.iter_content(STREAM_CHUNK)
        except requests.RequestException as exc:
            raise TransportError(url, f"body transfer failed: {exc}") from exc
