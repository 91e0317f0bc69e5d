"""Core engines – crawl, download and decode."""

from fastdl_mirror.core.classifier import LinkClass, LinkPolicy, classify
from fastdl_mirror.core.crawler import CrawlResult, PageErrorPolicy, WaveCrawler
from fastdl_mirror.core.decompressor import DecodeReport, Decompressor, decode_file
from fastdl_mirror.core.downloader import DownloadReport, Downloader, RetryPolicy
from fastdl_mirror.core.resolver import parse_listing, resolve_base_url

__all__ = [
    "LinkClass",
    "LinkPolicy",
    "classify",
    "CrawlResult",
    "PageErrorPolicy",
    "WaveCrawler",
    "DecodeReport",
    "Decompressor",
    "decode_file",
    "DownloadReport",
    "Downloader",
    "RetryPolicy",
    "parse_listing",
    "resolve_base_url",
]
