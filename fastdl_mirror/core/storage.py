"""
Local storage helpers: mapping remote URLs onto the mirror root and
writing bodies to disk.
"""

import logging
import urllib.parse
from pathlib import Path
from typing import Iterator

from fastdl_mirror.errors import FilesystemError, ParseError

log = logging.getLogger("fastdl-mirror")


def local_target(url: str, root: Path) -> tuple[Path, str]:
    """
    Split *url* into ``(directory, filename)`` below *root*.

    ``https://host/a/b/c.ext`` → ``(<root>/a/b, "c.ext")``
    """
    path = urllib.parse.unquote(urllib.parse.urlparse(url).path)
    directory, _, filename = path.rpartition("/")
    if not filename:
        raise ParseError(url, "URL names a directory, not a file")
    parts = [p for p in directory.split("/") if p]
    if any(p in (".", "..") for p in parts):
        raise ParseError(url, "path escapes the mirror root")
    return root.joinpath(*parts), filename


def ensure_dir(directory: Path) -> None:
    """Create *directory* and its parents; concurrent callers are fine."""
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(directory, f"cannot create directory: {exc}") from exc


def stream_to_file(local_path: Path, chunks: Iterator[bytes]) -> int:
    """Write *chunks* to *local_path*, replacing any existing file.

    Returns the number of bytes written.
    """
    total = 0
    try:
        with local_path.open("wb") as fh:
            for chunk in chunks:
                if chunk:
                    fh.write(chunk)
                    total += len(chunk)
    except OSError as exc:
        raise FilesystemError(local_path, f"write failed: {exc}") from exc
    log.debug("[SAVE] %s (%d bytes)", local_path, total)
    return total


def remove_file(local_path: Path) -> None:
    try:
        local_path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        raise FilesystemError(local_path, f"delete failed: {exc}") from exc
