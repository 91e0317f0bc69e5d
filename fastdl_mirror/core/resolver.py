"""
Listing-page parsing: base URL resolution and anchor extraction.
"""

import urllib.parse

from bs4 import BeautifulSoup

from fastdl_mirror.errors import ParseError

try:
    import lxml  # noqa: F401
    _BS4_PARSER = "lxml"
except ImportError:
    _BS4_PARSER = "html.parser"

_IGNORED_SCHEMES = ("mailto:", "javascript:", "data:", "#")


def parse_document(html: str | bytes, page_url: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, _BS4_PARSER)
    except Exception as exc:
        raise ParseError(page_url, f"unparseable listing: {exc}") from exc


def resolve_base_url(page_url: str, soup: BeautifulSoup) -> str:
    """
    Return the URL that relative links on *page_url* resolve against.

    An explicit ``<base href>`` wins (itself resolved against the page);
    otherwise the page URL's path prefix, i.e. everything up to and
    including the last ``/``.
    """
    tag = soup.find("base", href=True)
    if tag is not None and tag["href"].strip():
        return urllib.parse.urljoin(page_url, tag["href"].strip())
    return urllib.parse.urljoin(page_url, ".")


def extract_anchors(soup: BeautifulSoup, base: str) -> list[str]:
    """Absolute URLs of every ``<a href>`` on the page, in document order,
    without fragments.  Duplicates are dropped."""
    seen: set[str] = set()
    links: list[str] = []
    for el in soup.find_all("a", href=True):
        raw = el["href"].strip()
        if not raw or raw.startswith(_IGNORED_SCHEMES):
            continue
        absolute, _frag = urllib.parse.urldefrag(urllib.parse.urljoin(base, raw))
        if urllib.parse.urlparse(absolute).scheme not in ("http", "https"):
            continue
        if absolute not in seen:
            seen.add(absolute)
            links.append(absolute)
    return links


def parse_listing(html: str | bytes, page_url: str) -> tuple[str, list[str]]:
    """Parse a listing page and return ``(base_url, links)``."""
    soup = parse_document(html, page_url)
    base = resolve_base_url(page_url, soup)
    return base, extract_anchors(soup, base)
