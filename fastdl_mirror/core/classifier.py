"""
Link classification.

Decides, from the canonical path alone, whether a discovered link is a
directory to explore, a file to download, or something to ignore.  The
decision never depends on crawl order or time.
"""

import enum
from dataclasses import dataclass

from fastdl_mirror.config import DEFAULT_MIRROR_MARKER, EXCLUDED_MARKERS


class LinkClass(enum.Enum):
    RECURSE = "recurse"
    DOWNLOAD = "download"
    SKIP = "skip"


@dataclass(frozen=True)
class LinkPolicy:
    """
    Markers driving :func:`classify`.

    mirror_marker
        Path segment of the secondary subtree that holds the real files.
        Files below it are downloaded; its directories are never entered.
    content_prefixes
        Filename prefixes that mark downloadable files in the ordinary
        tree.  Empty means the ordinary tree holds no downloads.
    excluded_markers
        Substrings (index pages, temp files) that disqualify a path.
    """

    mirror_marker: str = DEFAULT_MIRROR_MARKER
    content_prefixes: tuple[str, ...] = ()
    excluded_markers: tuple[str, ...] = EXCLUDED_MARKERS

    def is_excluded(self, path: str) -> bool:
        return any(marker in path for marker in self.excluded_markers)

    def in_mirror(self, path: str) -> bool:
        return bool(self.mirror_marker) and self.mirror_marker in path


def classify(path: str, policy: LinkPolicy) -> LinkClass:
    """Classify the canonical URL *path* under *policy*."""
    if policy.is_excluded(path):
        return LinkClass.SKIP

    is_dir = path.endswith("/")
    if policy.in_mirror(path):
        return LinkClass.SKIP if is_dir else LinkClass.DOWNLOAD

    if not is_dir and policy.content_prefixes:
        name = path.rsplit("/", 1)[-1]
        if name.startswith(policy.content_prefixes):
            return LinkClass.DOWNLOAD

    return LinkClass.RECURSE
