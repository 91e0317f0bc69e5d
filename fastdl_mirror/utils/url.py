"""
Path-token helpers.

The crawl tracks directories by URL *path* (``/cstrike/maps/``).  Listing
servers are inconsistent about trailing slashes, so both spellings of a
path are treated as the same token for visitation purposes.
"""

import urllib.parse

from fastdl_mirror.errors import ParseError


def path_alias(path: str) -> str:
    """Return the other trailing-slash spelling of *path*.

    ``/a/b/`` → ``/a/b`` and ``/a/b`` → ``/a/b/``.  The root ``/`` is its
    own alias.
    """
    if path == "/":
        return path
    if path.endswith("/"):
        return path[:-1]
    return path + "/"


def path_spellings(path: str) -> tuple[str, str]:
    return path, path_alias(path)


def parent_path(url: str) -> str:
    """Path of the directory above the listing at *url* (with trailing slash)."""
    return urllib.parse.urlparse(urllib.parse.urljoin(url, "..")).path or "/"


def origin(url: str) -> str:
    """``scheme://host[:port]`` of *url*."""
    parsed = urllib.parse.urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ParseError(url, "not an absolute http(s) URL")
    return f"{parsed.scheme}://{parsed.netloc}"


def canonical_url(url: str) -> str:
    """Reduce *url* to ``scheme://host/path``, dropping params, query
    and fragment."""
    parsed = urllib.parse.urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ParseError(url, "not an absolute http(s) URL")
    return urllib.parse.urlunparse(
        (parsed.scheme, parsed.netloc, parsed.path or "/", "", "", "")
    )


def normalise_root(raw: str) -> str:
    """Turn user input into a root listing URL.

    Adds ``https://`` when no scheme is given and a trailing slash so that
    relative links on the root page resolve inside the directory.
    """
    raw = raw.strip()
    if not raw.startswith(("http://", "https://")):
        raw = "https://" + raw
    parsed = urllib.parse.urlparse(raw)
    if not parsed.netloc:
        raise ParseError(raw, "root URL has no host")
    path = parsed.path or "/"
    if not path.endswith("/"):
        path += "/"
    return urllib.parse.urlunparse((parsed.scheme, parsed.netloc, path, "", "", ""))
