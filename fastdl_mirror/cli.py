"""
Command-line interface for the FastDL mirror.
"""

import argparse
import logging
import os
import sys
import time
from pathlib import Path

from fastdl_mirror.config import (
    DEFAULT_MIRROR_MARKER,
    DEFAULT_OUTPUT,
    REQUEST_TIMEOUT,
    RETRY_DELAY,
    RETRY_MAX_ATTEMPTS,
    auto_concurrency,
)
from fastdl_mirror.core.classifier import LinkPolicy
from fastdl_mirror.core.crawler import PageErrorPolicy
from fastdl_mirror.core.downloader import RetryPolicy
from fastdl_mirror.mirror import Mirror
from fastdl_mirror.progress import LogReporter, default_reporter
from fastdl_mirror.session import build_session
from fastdl_mirror.utils.log import log, setup_logging

try:
    import colorlog  # noqa: F401
    _COLORLOG_AVAILABLE = True
except ImportError:
    _COLORLOG_AVAILABLE = False

EXIT_OK = 0
EXIT_INCOMPLETE = 1
EXIT_CRAWL_ABORTED = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="fastdl-mirror",
        description="Mirror a directory-listing file host to local disk and "
                    "decode its .bz2 files.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  fastdl-mirror https://fastdl.example.com/cstrike/\n"
            "  fastdl-mirror fastdl.example.com/cstrike/maps/ --output mirror\n"
            "  fastdl-mirror https://fastdl.example.com/cstrike/ --crawl-only\n"
        ),
    )
    parser.add_argument(
        "roots", nargs="+", metavar="ROOT",
        help="Listing URL(s) to mirror, processed in order",
    )
    parser.add_argument(
        "--output", default=DEFAULT_OUTPUT,
        help=f"Local mirror root (default: {DEFAULT_OUTPUT!r}, the working directory)",
    )
    parser.add_argument(
        "--workers", default="auto", metavar="N",
        help="Parallel workers per stage, or 'auto' (default: auto)",
    )
    parser.add_argument(
        "--timeout", type=float, default=REQUEST_TIMEOUT, metavar="SECONDS",
        help=f"Per-request timeout, 0 = wait forever (default: {REQUEST_TIMEOUT})",
    )
    parser.add_argument(
        "--mirror-marker", default=DEFAULT_MIRROR_MARKER, metavar="SEGMENT",
        help="Path segment of the subtree whose files are downloaded and "
             f"whose directories are never entered (default: {DEFAULT_MIRROR_MARKER})",
    )
    parser.add_argument(
        "--content-prefix", action="append", default=[], metavar="PREFIX",
        help="Download files in the ordinary tree whose name starts with "
             "PREFIX (repeatable)",
    )
    parser.add_argument(
        "--max-attempts", type=int, default=RETRY_MAX_ATTEMPTS, metavar="N",
        help=f"Download attempts per file, 0 = unlimited (default: {RETRY_MAX_ATTEMPTS})",
    )
    parser.add_argument(
        "--retry-delay", type=float, default=RETRY_DELAY, metavar="SECONDS",
        help=f"Initial delay between download attempts (default: {RETRY_DELAY})",
    )
    parser.add_argument(
        "--retry-forever", action="store_true",
        help="Never abandon a download; retry at a fixed --retry-delay.  "
             "Without it a file is given up after --max-attempts",
    )
    parser.add_argument(
        "--skip-page-errors", action="store_true",
        help="Record failing listing pages and keep crawling instead of "
             "aborting the root",
    )
    parser.add_argument(
        "--crawl-only", action="store_true",
        help="Only discover and list download URLs",
    )
    parser.add_argument(
        "--no-decode", dest="decode", action="store_false", default=True,
        help="Keep downloaded .bz2 files compressed",
    )
    parser.add_argument(
        "--no-verify-ssl", dest="verify_ssl", action="store_false", default=True,
        help="Disable TLS certificate verification",
    )
    parser.add_argument(
        "--no-progress", dest="progress", action="store_false", default=True,
        help="Log progress instead of drawing progress bars",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Enable verbose debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Write detailed logs to this file (always at DEBUG level)",
    )
    return parser.parse_args(argv)


def resolve_workers(raw: str) -> int:
    raw = raw.strip().lower()
    if raw in ("auto", "0", ""):
        workers = auto_concurrency()
        log.info("Auto-detected concurrency: %d workers (CPU: %s, RAM-aware)",
                 workers, os.cpu_count())
        return workers
    try:
        workers = int(raw)
    except ValueError:
        log.warning("Invalid --workers value '%s', using auto", raw)
        return auto_concurrency()
    return max(1, workers)


def build_mirror(args: argparse.Namespace) -> Mirror:
    workers = resolve_workers(args.workers)
    if args.retry_forever:
        retry = RetryPolicy.forever(args.retry_delay)
    else:
        retry = RetryPolicy(max_attempts=max(0, args.max_attempts),
                            delay=args.retry_delay)
    policy = LinkPolicy(
        mirror_marker=args.mirror_marker,
        content_prefixes=tuple(args.content_prefix),
    )
    return Mirror(
        output_dir=Path(args.output),
        policy=policy,
        workers=workers,
        timeout=args.timeout or None,
        retry=retry,
        page_errors=PageErrorPolicy.SKIP if args.skip_page_errors else PageErrorPolicy.ABORT,
        session=build_session(pool_size=workers * 2, verify_ssl=args.verify_ssl),
        progress=default_reporter() if args.progress else LogReporter(),
        download=not args.crawl_only,
        decode=args.decode,
    )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    setup_logging(debug=args.debug, log_file=args.log_file)

    if args.debug:
        logging.getLogger("urllib3").setLevel(logging.DEBUG)

    if not args.verify_ssl:
        import urllib3
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        log.warning("TLS certificate verification is DISABLED (--no-verify-ssl)")

    if not _COLORLOG_AVAILABLE:
        log.info("Tip: install colorlog for colored output   (pip install colorlog)")
    if args.timeout == 0:
        log.warning("Request timeout disabled – a stalled host can hang a worker")

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    mirror = build_mirror(args)
    t0 = time.monotonic()
    report = mirror.run(args.roots)
    elapsed = time.monotonic() - t0
    log.info("Total elapsed time: %.1f s", elapsed)

    for url, reason in sorted(report.failed.items()):
        log.error("  [ERR] not downloaded: %s (%s)", url, reason)
    for root, reason in report.aborted.items():
        log.error("  [ERR] crawl aborted: %s (%s)", root, reason)
    if report.aborted:
        sys.exit(EXIT_CRAWL_ABORTED)
    if not report.ok:
        sys.exit(EXIT_INCOMPLETE)
    sys.exit(EXIT_OK)


if __name__ == "__main__":
    main()
