"""Utility subpackage for the FastDL mirror."""

from fastdl_mirror.utils.log import log, setup_logging
from fastdl_mirror.utils.url import (
    canonical_url,
    normalise_root,
    origin,
    parent_path,
    path_alias,
    path_spellings,
)

__all__ = [
    "log",
    "setup_logging",
    "canonical_url",
    "normalise_root",
    "origin",
    "parent_path",
    "path_alias",
    "path_spellings",
]
