"""
In-memory stand-in for a listing host, shaped like ``requests.Session``.
"""

import threading
import urllib.parse
from collections import Counter

import requests


class FakeResponse:
    def __init__(self, url: str, status_code: int = 200, content: bytes = b"",
                 fail_stream: Exception | None = None) -> None:
        self.url = url
        self.status_code = status_code
        self.content = content
        self.closed = False
        self._fail_stream = fail_stream

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def iter_content(self, chunk_size: int = 1):
        data = self.content
        for i in range(0, len(data), chunk_size):
            yield data[i:i + chunk_size]
            if self._fail_stream is not None:
                raise self._fail_stream

    def close(self) -> None:
        self.closed = True


class FakeHost:
    """
    pages      path → HTML listing
    files      path → body bytes
    redirects  path → path or absolute URL (followed by both GET and HEAD)
    status     path → HTTP status to return instead of content
    errors     path → exception to raise on GET
    """

    def __init__(self, origin: str = "https://fastdl.test", pages=None, files=None,
                 redirects=None, status=None, errors=None) -> None:
        self.origin = origin
        self.pages = dict(pages or {})
        self.files = dict(files or {})
        self.redirects = dict(redirects or {})
        self.status = dict(status or {})
        self.errors = dict(errors or {})
        self.gets: Counter = Counter()
        self.heads: Counter = Counter()
        self._lock = threading.Lock()

    def _final(self, url: str) -> tuple[str, str]:
        parsed = urllib.parse.urlparse(url)
        target = self.redirects.get(parsed.path, parsed.path)
        if "://" in target:
            return urllib.parse.urlparse(target).path, target
        return target, f"{parsed.scheme}://{parsed.netloc}{target}"

    def get(self, url, timeout=None, allow_redirects=True, stream=False):
        path, final = self._final(url)
        with self._lock:
            self.gets[path] += 1
        if path in self.errors:
            raise self.errors[path]
        if path in self.status:
            return FakeResponse(final, self.status[path])
        if path in self.pages:
            return FakeResponse(final, 200, self.pages[path].encode("utf-8"))
        if path in self.files:
            return FakeResponse(final, 200, self.files[path])
        return FakeResponse(final, 404)

    def head(self, url, timeout=None, allow_redirects=True):
        path, final = self._final(url)
        with self._lock:
            self.heads[path] += 1
        if path in self.errors and isinstance(self.errors[path], requests.RequestException):
            raise self.errors[path]
        return FakeResponse(final, 200)


def listing(*hrefs: str, base: str | None = None) -> str:
    head = f'<head><base href="{base}"></head>' if base else "<head></head>"
    anchors = "\n".join(f'<a href="{h}">{h}</a><br>' for h in hrefs)
    return f"<html>{head}<body><h1>Index</h1>\n{anchors}\n</body></html>"


def fastdl_tree(**extra) -> FakeHost:
    """Three-level listing: root → maps/ and sound/ → one file each.

    ``maps/`` points into the mirror subtree; ``sound/`` holds a file
    named with the ``gfl_`` content prefix.
    """
    pages = {
        "/cstrike/": listing("../", "maps/", "sound", "index.html", "upload.tmp"),
        "/cstrike/maps/": listing(
            "../",
            "/gflfastdlv2/cstrike/maps/de_dust2.bsp.bz2",
            "/gflfastdlv2/cstrike/maps/",
        ),
        "/cstrike/sound/": listing("../", "gfl_ambience.wav.bz2", "?C=N;O=D"),
    }
    pages.update(extra.pop("pages", {}))
    return FakeHost(
        pages=pages,
        redirects={"/cstrike/sound": "/cstrike/sound/"},
        **extra,
    )
