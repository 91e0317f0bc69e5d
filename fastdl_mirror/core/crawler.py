"""
Level-synchronous BFS crawler for directory-listing hosts.

The crawl proceeds in *waves*.  Every listing path in the current frontier
is explored in parallel; each exploration fetches the page, resolves its
anchors, probes every link with a HEAD request to learn its canonical
address, and classifies the survivors.  Only when every task of a wave has
finished are the results merged and the next wave started.

Worker threads never touch the crawl's bookkeeping.  They return a
:class:`PageResult` and the crawl thread, the only mutator, folds it into
the visited set, the frontier and the download set.
"""

import enum
import urllib.parse
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

import requests

from fastdl_mirror import progress as ev
from fastdl_mirror.config import REQUEST_TIMEOUT, auto_concurrency
from fastdl_mirror.core.classifier import LinkClass, LinkPolicy, classify
from fastdl_mirror.core.resolver import parse_listing
from fastdl_mirror.errors import MirrorError, TransportError
from fastdl_mirror.progress import ProgressCallback
from fastdl_mirror.session import build_session
from fastdl_mirror.utils.log import log
from fastdl_mirror.utils.url import canonical_url, origin, parent_path, path_spellings


class PageErrorPolicy(enum.Enum):
    """What a failed listing page or link probe does to the crawl."""

    ABORT = "abort"    # propagate the first failure, discard the crawl
    SKIP = "skip"      # record the failure and keep crawling


@dataclass
class PageResult:
    path: str
    recurse: list[str] = field(default_factory=list)
    downloads: set[str] = field(default_factory=set)
    errors: dict[str, str] = field(default_factory=dict)
    links: int = 0


@dataclass
class CrawlResult:
    root: str
    downloads: set[str] = field(default_factory=set)
    visited: set[str] = field(default_factory=set)
    pages: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    waves: int = 0


class WaveCrawler:
    """
    Discover every downloadable file below *root_url*.

    *root_url* must point at a listing page.  A failure to fetch or parse
    the root page always propagates; failures deeper in the tree follow
    *page_errors*.
    """

    def __init__(
        self,
        root_url: str,
        policy: LinkPolicy | None = None,
        session: requests.Session | None = None,
        workers: int = 0,
        timeout: float | None = REQUEST_TIMEOUT,
        page_errors: PageErrorPolicy = PageErrorPolicy.ABORT,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.root_url = root_url
        self.origin = origin(root_url)
        self.host = urllib.parse.urlparse(root_url).netloc
        self.root_path = urllib.parse.urlparse(root_url).path or "/"
        self.policy = policy or LinkPolicy()
        self.workers = workers or auto_concurrency()
        self.session = session or build_session(pool_size=self.workers * 2)
        self.timeout = timeout
        self.page_errors = page_errors
        self.progress = progress

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def crawl(self) -> CrawlResult:
        result = CrawlResult(root=self.root_url)
        visited = result.visited
        visited.add("/")
        visited.update(path_spellings(parent_path(self.root_url)))

        download_paths: set[str] = set()
        frontier: list[str] = [self.root_path]

        log.info("Crawl root       : %s", self.root_url)
        log.info("Workers          : %d", self.workers)

        pages = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="page")
        probes = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="probe")
        aborted = False
        try:
            while frontier:
                wave: list[str] = []
                for path in frontier:
                    if path in visited:
                        continue
                    visited.update(path_spellings(path))
                    wave.append(path)
                frontier = []
                if not wave:
                    break

                result.waves += 1
                snapshot = frozenset(visited)
                log.info("[WAVE] %d: %d page(s)  visited=%d  downloads=%d",
                         result.waves, len(wave), len(visited),
                         len(result.downloads))
                ev.emit(self.progress, ev.CRAWL, ev.WAVE_STARTED,
                        wave=len(wave), visited=len(visited),
                        downloads=len(result.downloads))

                futures = {
                    pages.submit(self._explore, path, snapshot, probes): path
                    for path in wave
                }
                for fut in as_completed(futures):
                    path = futures[fut]
                    try:
                        page = fut.result()
                    except MirrorError as exc:
                        if self.page_errors is PageErrorPolicy.ABORT or path == self.root_path:
                            aborted = True
                            log.error("[ERR] Crawl aborted at %s: %s", path, exc)
                            raise
                        log.warning("[ERR] Skipping listing %s: %s", path, exc)
                        result.errors[path] = str(exc)
                        ev.emit(self.progress, ev.CRAWL, ev.PAGE_FAILED, item=path,
                                visited=len(visited), downloads=len(result.downloads))
                        continue

                    result.pages.append(page.path)
                    result.errors.update(page.errors)
                    for url in page.downloads:
                        if url not in result.downloads:
                            result.downloads.add(url)
                            parsed = urllib.parse.urlparse(url)
                            if parsed.netloc == self.host:
                                download_paths.add(parsed.path)
                    for child in page.recurse:
                        if child not in visited and child not in download_paths:
                            frontier.append(child)
                    ev.emit(self.progress, ev.CRAWL, ev.PAGE_EXPLORED, item=path,
                            visited=len(visited), downloads=len(result.downloads))

                # Ordering within a wave is arbitrary; keep the next wave
                # free of anything already claimed for download.
                frontier = [p for p in frontier if p not in download_paths]
        finally:
            # An abort must not wait on in-flight pages; a stalled listing
            # with no timeout would otherwise hold it forever.
            for pool in (pages, probes):
                pool.shutdown(wait=not aborted, cancel_futures=aborted)

        log.info("Crawl complete. waves=%d  pages=%d  visited=%d  downloads=%d  errors=%d",
                 result.waves, len(result.pages), len(visited),
                 len(result.downloads), len(result.errors))
        ev.emit(self.progress, ev.CRAWL, ev.CRAWL_FINISHED,
                visited=len(visited), downloads=len(result.downloads),
                pages=len(result.pages))
        return result

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _explore(
        self,
        path: str,
        visited: frozenset[str],
        probes: ThreadPoolExecutor,
    ) -> PageResult:
        """Fetch one listing page and classify everything it links to."""
        page_url = self.origin + path
        page = PageResult(path=path)

        resp = self._get(page_url)
        _base, links = parse_listing(resp.content, resp.url or page_url)
        page.links = len(links)
        log.debug("  %s: %d link(s)", path, len(links))

        futures = {probes.submit(self._probe, url): url for url in links}
        canonical: list[str] = []
        for fut in as_completed(futures):
            url = futures[fut]
            try:
                canonical.append(fut.result())
            except MirrorError as exc:
                if self.page_errors is PageErrorPolicy.ABORT:
                    for pending in futures:
                        pending.cancel()
                    raise
                log.warning("[ERR] Probe failed for %s: %s", url, exc)
                page.errors[url] = str(exc)

        for url in canonical:
            parsed = urllib.parse.urlparse(url)
            child = parsed.path
            if self.policy.is_excluded(child):
                continue
            if parsed.netloc != self.host:
                # Files may live on a CDN; listings only count on the root's host.
                if classify(child, self.policy) is LinkClass.DOWNLOAD:
                    page.downloads.add(url)
                else:
                    log.debug("  Off-host link not followed: %s", url)
                continue
            if child in visited:
                continue
            kind = classify(child, self.policy)
            if kind is LinkClass.RECURSE:
                page.recurse.append(child)
            elif kind is LinkClass.DOWNLOAD:
                page.downloads.add(url)
            else:
                log.debug("[SKIP] %s", url)
        return page

    def _get(self, url: str) -> requests.Response:
        log.debug("[GET] %s", url)
        try:
            resp = self.session.get(url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as exc:
            raise TransportError(url, str(exc)) from exc
        if resp.status_code >= 400:
            raise TransportError(url, f"HTTP {resp.status_code}",
                                 status=resp.status_code)
        return resp

    def _probe(self, url: str) -> str:
        """HEAD *url* and return its canonical ``scheme://host/path`` form
        after redirects."""
        try:
            resp = self.session.head(url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as exc:
            raise TransportError(url, f"probe failed: {exc}") from exc
        if resp.status_code >= 400:
            # Some listing servers refuse HEAD; the address is still usable.
            log.debug("[PROBE] HTTP %s for %s", resp.status_code, url)
        return canonical_url(resp.url or url)
