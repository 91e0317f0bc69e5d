"""
Run the crawl → download → decode pipeline for one or more roots.
"""

from dataclasses import dataclass, field
from pathlib import Path

import requests

from fastdl_mirror.config import DEFAULT_OUTPUT, REQUEST_TIMEOUT, auto_concurrency
from fastdl_mirror.core.classifier import LinkPolicy
from fastdl_mirror.core.crawler import PageErrorPolicy, WaveCrawler
from fastdl_mirror.core.decompressor import Decompressor
from fastdl_mirror.core.downloader import Downloader, RetryPolicy
from fastdl_mirror.errors import MirrorError
from fastdl_mirror.progress import ProgressCallback
from fastdl_mirror.session import build_session
from fastdl_mirror.utils.log import log
from fastdl_mirror.utils.url import normalise_root


@dataclass
class RootReport:
    root: str
    visited: int = 0
    pages: int = 0
    downloads: set[str] = field(default_factory=set)
    failed: dict[str, str] = field(default_factory=dict)
    crawl_errors: dict[str, str] = field(default_factory=dict)
    aborted: str | None = None


@dataclass
class MirrorReport:
    roots: list[RootReport] = field(default_factory=list)
    corrupt: set[Path] = field(default_factory=set)

    @property
    def failed(self) -> dict[str, str]:
        merged: dict[str, str] = {}
        for r in self.roots:
            merged.update(r.failed)
        return merged

    @property
    def aborted(self) -> dict[str, str]:
        return {r.root: r.aborted for r in self.roots if r.aborted}

    @property
    def ok(self) -> bool:
        return not self.corrupt and not self.failed and not self.aborted


class Mirror:
    """
    Mirror a list of listing roots into *output_dir*.

    Roots are processed one after another.  The corrupt-file set is shared
    by every decode pass of a run and is never reset between roots.  A
    root whose crawl aborts is recorded on its :class:`RootReport` and the
    run moves on to the next root.
    """

    def __init__(
        self,
        output_dir: Path = Path(DEFAULT_OUTPUT),
        policy: LinkPolicy | None = None,
        workers: int = 0,
        timeout: float | None = REQUEST_TIMEOUT,
        retry: RetryPolicy | None = None,
        page_errors: PageErrorPolicy = PageErrorPolicy.ABORT,
        session: requests.Session | None = None,
        progress: ProgressCallback | None = None,
        download: bool = True,
        decode: bool = True,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.policy = policy or LinkPolicy()
        self.workers = workers or auto_concurrency()
        self.timeout = timeout
        self.retry = retry or RetryPolicy()
        self.page_errors = page_errors
        self.session = session or build_session(pool_size=self.workers * 2)
        self.progress = progress
        self.download = download
        self.decode = decode

    def run(self, roots: list[str]) -> MirrorReport:
        report = MirrorReport()
        for raw in roots:
            try:
                report.roots.append(self.run_root(raw, report.corrupt))
            except MirrorError as exc:
                log.error("[ERR] Root %s aborted: %s", raw, exc)
                report.roots.append(RootReport(root=raw, aborted=str(exc)))
        if report.corrupt:
            log.warning("%d corrupt file(s):", len(report.corrupt))
            for path in sorted(report.corrupt):
                log.warning("  [CORRUPT] %s", path)
        return report

    def run_root(self, raw_root: str, corrupt: set[Path]) -> RootReport:
        root = normalise_root(raw_root)
        result = WaveCrawler(
            root,
            policy=self.policy,
            session=self.session,
            workers=self.workers,
            timeout=self.timeout,
            page_errors=self.page_errors,
            progress=self.progress,
        ).crawl()
        rr = RootReport(
            root=root,
            visited=len(result.visited),
            pages=len(result.pages),
            downloads=set(result.downloads),
            crawl_errors=dict(result.errors),
        )

        if not self.download:
            for url in sorted(result.downloads):
                log.info("  %s", url)
            return rr

        downloaded = Downloader(
            self.output_dir,
            session=self.session,
            workers=self.workers,
            timeout=self.timeout,
            retry=self.retry,
            progress=self.progress,
        ).run(result.downloads)
        rr.failed = dict(downloaded.failed)

        if self.decode:
            Decompressor(self.output_dir, workers=self.workers,
                         progress=self.progress).run(corrupt)
        return rr
