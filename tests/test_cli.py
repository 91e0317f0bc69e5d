"""
Tests for command-line parsing and exit codes.
"""

import io
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import MagicMock, patch

from fastdl_mirror import cli
from fastdl_mirror.core.crawler import PageErrorPolicy
from fastdl_mirror.mirror import MirrorReport, RootReport
from fastdl_mirror.progress import LogReporter


class TestParseArgs(unittest.TestCase):

    def test_defaults(self):
        args = cli.parse_args(["https://fastdl.test/cstrike/"])
        self.assertEqual(args.roots, ["https://fastdl.test/cstrike/"])
        self.assertEqual(args.output, ".")
        self.assertEqual(args.workers, "auto")
        self.assertEqual(args.content_prefix, [])
        self.assertFalse(args.retry_forever)
        self.assertFalse(args.skip_page_errors)
        self.assertTrue(args.decode)

    def test_multiple_roots_and_prefixes(self):
        args = cli.parse_args([
            "a.test/x/", "b.test/y/",
            "--content-prefix", "gfl_", "--content-prefix", "map_",
        ])
        self.assertEqual(args.roots, ["a.test/x/", "b.test/y/"])
        self.assertEqual(args.content_prefix, ["gfl_", "map_"])

    def test_help_states_bounded_retry_default(self):
        out = io.StringIO()
        with redirect_stdout(out), self.assertRaises(SystemExit):
            cli.parse_args(["--help"])
        self.assertIn("given up after", " ".join(out.getvalue().split()))


class TestResolveWorkers(unittest.TestCase):

    @patch("fastdl_mirror.cli.auto_concurrency", return_value=6)
    def test_auto(self, _auto):
        self.assertEqual(cli.resolve_workers("auto"), 6)

    def test_explicit(self):
        self.assertEqual(cli.resolve_workers("12"), 12)

    @patch("fastdl_mirror.cli.auto_concurrency", return_value=3)
    def test_invalid_falls_back(self, _auto):
        self.assertEqual(cli.resolve_workers("lots"), 3)


class TestBuildMirror(unittest.TestCase):

    @patch("fastdl_mirror.cli.build_session")
    def test_flags_mapped(self, build_session):
        args = cli.parse_args([
            "fastdl.test/cstrike/", "--workers", "3", "--timeout", "0",
            "--retry-forever", "--retry-delay", "9", "--skip-page-errors",
            "--mirror-marker", "fastdlv3", "--content-prefix", "gfl_",
            "--no-progress", "--crawl-only", "--output", "out",
        ])
        mirror = cli.build_mirror(args)
        self.assertEqual(mirror.workers, 3)
        self.assertIsNone(mirror.timeout)
        self.assertEqual(mirror.retry.max_attempts, 0)
        self.assertEqual(mirror.retry.wait_for(10), 9.0)
        self.assertIs(mirror.page_errors, PageErrorPolicy.SKIP)
        self.assertEqual(mirror.policy.mirror_marker, "fastdlv3")
        self.assertEqual(mirror.policy.content_prefixes, ("gfl_",))
        self.assertIsInstance(mirror.progress, LogReporter)
        self.assertFalse(mirror.download)
        self.assertEqual(mirror.output_dir, Path("out"))
        build_session.assert_called_once_with(pool_size=6, verify_ssl=True)


class TestMain(unittest.TestCase):

    def run_main(self, report):
        mirror = MagicMock()
        mirror.run.return_value = report
        with patch("fastdl_mirror.cli.build_mirror", return_value=mirror), \
             patch("fastdl_mirror.cli.setup_logging"), \
             patch("fastdl_mirror.cli.Path.mkdir"):
            with self.assertRaises(SystemExit) as ctx:
                cli.main(["https://fastdl.test/cstrike/"])
        return ctx.exception.code

    def test_success(self):
        self.assertEqual(self.run_main(MirrorReport()), cli.EXIT_OK)

    def test_corrupt_files(self):
        report = MirrorReport(corrupt={Path("maps/x.bsp.bz2")})
        self.assertEqual(self.run_main(report), cli.EXIT_INCOMPLETE)

    def test_crawl_abort(self):
        report = MirrorReport(roots=[
            RootReport(root="https://fastdl.test/cstrike/", aborted="HTTP 500"),
        ])
        self.assertEqual(self.run_main(report), cli.EXIT_CRAWL_ABORTED)

    def test_abort_outranks_corrupt_files(self):
        report = MirrorReport(
            roots=[
                RootReport(root="https://fastdl.test/cstrike/"),
                RootReport(root="https://fastdl.test/tf/", aborted="HTTP 500"),
            ],
            corrupt={Path("maps/x.bsp.bz2")},
        )
        self.assertEqual(self.run_main(report), cli.EXIT_CRAWL_ABORTED)


if __name__ == "__main__":
    unittest.main()
