"""
fastdl_mirror
=============
Mirror a directory-listing file host (a game server "FastDL" site, for
instance) to local disk: crawl every listing page below a root URL,
download each discovered file, then decode the ``.bz2`` sidecars.

Quick start
-----------
    from pathlib import Path
    from fastdl_mirror import LinkPolicy, Mirror

    mirror = Mirror(output_dir=Path("fastdl"), policy=LinkPolicy())
    report = mirror.run(["https://fastdl.example.com/cstrike/"])
    print(sorted(report.corrupt))
"""

from fastdl_mirror.core import (
    Decompressor,
    Downloader,
    LinkClass,
    LinkPolicy,
    PageErrorPolicy,
    RetryPolicy,
    WaveCrawler,
    classify,
)
from fastdl_mirror.errors import (
    DecodeError,
    FilesystemError,
    MirrorError,
    ParseError,
    TransportError,
)
from fastdl_mirror.mirror import Mirror, MirrorReport

__version__ = "1.0.0"

__all__ = [
    "Decompressor",
    "Downloader",
    "LinkClass",
    "LinkPolicy",
    "PageErrorPolicy",
    "RetryPolicy",
    "WaveCrawler",
    "classify",
    "DecodeError",
    "FilesystemError",
    "MirrorError",
    "ParseError",
    "TransportError",
    "Mirror",
    "MirrorReport",
]
