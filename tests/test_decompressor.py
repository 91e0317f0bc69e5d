"""
Tests for bz2 sidecar decoding.
"""

import bz2
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fastdl_mirror.core.decompressor import (
    Decompressor,
    decode_file,
    decoded_path,
    find_compressed,
)
from fastdl_mirror.errors import DecodeError, FilesystemError
from fastdl_mirror.progress import FILE_CORRUPT, FILE_DECODED, STAGE_FINISHED

PLAINTEXT = b"VBSP\x14\x00\x00\x00" + bytes(range(256)) * 64


class _TmpDirCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, rel: str, data: bytes) -> Path:
        path = self.root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path


class TestDecodeFile(_TmpDirCase):

    def test_well_formed_file(self):
        src = self.write("maps/de_dust2.bsp.bz2", bz2.compress(PLAINTEXT))
        out = decode_file(src)
        self.assertEqual(out, self.root / "maps" / "de_dust2.bsp")
        self.assertEqual(out.read_bytes(), PLAINTEXT)
        self.assertFalse(src.exists())

    def test_concatenated_streams_decode_as_one(self):
        data = bz2.compress(b"first block|") + bz2.compress(b"second block|") + bz2.compress(b"third")
        src = self.write("sound/a.wav.bz2", data)
        out = decode_file(src)
        self.assertEqual(out.read_bytes(), b"first block|second block|third")

    def test_corrupt_stream(self):
        src = self.write("maps/bad.bsp.bz2", b"BZh91AY&SY" + b"\x00garbage" * 20)
        with self.assertRaises(DecodeError):
            decode_file(src)
        self.assertTrue(src.exists())
        self.assertFalse((self.root / "maps" / "bad.bsp").exists())
        self.assertFalse((self.root / "maps" / "bad.bsp.part").exists())

    def test_truncated_stream(self):
        src = self.write("maps/cut.bsp.bz2", bz2.compress(PLAINTEXT)[:-20])
        with self.assertRaises(DecodeError):
            decode_file(src)
        self.assertTrue(src.exists())
        self.assertEqual(sorted(p.name for p in src.parent.iterdir()), ["cut.bsp.bz2"])

    def test_not_bzip2_at_all(self):
        src = self.write("maps/plain.bsp.bz2", b"just some text")
        with self.assertRaises(DecodeError):
            decode_file(src)
        self.assertTrue(src.exists())

    def test_write_failure_keeps_source(self):
        src = self.write("maps/x.bsp.bz2", bz2.compress(PLAINTEXT))
        with patch("fastdl_mirror.core.decompressor.os.replace",
                   side_effect=PermissionError("read-only")):
            with self.assertRaises(FilesystemError):
                decode_file(src)
        self.assertTrue(src.exists())
        self.assertEqual(sorted(p.name for p in src.parent.iterdir()), ["x.bsp.bz2"])

    def test_existing_output_overwritten(self):
        self.write("maps/x.bsp", b"old")
        src = self.write("maps/x.bsp.bz2", bz2.compress(b"new"))
        self.assertEqual(decode_file(src).read_bytes(), b"new")

    def test_decoded_path(self):
        self.assertEqual(decoded_path(Path("a/b.bsp.bz2")), Path("a/b.bsp"))

    def test_suffix_only_name_is_corrupt(self):
        src = self.write("maps/.bz2", bz2.compress(b"x"))
        with self.assertRaises(DecodeError):
            decode_file(src)
        self.assertTrue(src.exists())
        self.assertEqual([p.name for p in src.parent.iterdir()], [".bz2"])


class TestFindCompressed(_TmpDirCase):

    def test_any_depth_only_suffix(self):
        a = self.write("a.bz2", b"")
        b = self.write("x/y/z/b.bsp.bz2", b"")
        self.write("x/readme.txt", b"")
        self.write("x/c.bz2.part", b"")
        (self.root / "dir.bz2").mkdir()
        self.assertEqual(find_compressed(self.root), [a, b])


class TestDecompressor(_TmpDirCase):

    def test_mixed_batch(self):
        good = self.write("maps/good.bsp.bz2", bz2.compress(PLAINTEXT))
        deep = self.write("materials/a/b/c.vtf.bz2", bz2.compress(b"texture"))
        bad = self.write("maps/bad.bsp.bz2", b"BZh9 not really")
        events = []

        report = Decompressor(self.root, workers=4, progress=events.append).run()

        self.assertEqual(set(report.decoded), {good, deep})
        self.assertEqual(report.corrupt, {bad})
        self.assertEqual((self.root / "maps" / "good.bsp").read_bytes(), PLAINTEXT)
        self.assertEqual((self.root / "materials/a/b/c.vtf").read_bytes(), b"texture")
        self.assertFalse(good.exists())
        self.assertTrue(bad.exists())
        self.assertFalse((self.root / "maps" / "bad.bsp").exists())

        kinds = [e.kind for e in events]
        self.assertEqual(kinds.count(FILE_DECODED), 2)
        self.assertEqual(kinds.count(FILE_CORRUPT), 1)
        self.assertEqual(events[-1].kind, STAGE_FINISHED)
        self.assertEqual(events[-1].counts, {"completed": 2, "corrupt": 1, "total": 3})

    def test_suffix_only_name_does_not_stop_batch(self):
        odd = self.write(".bz2", bz2.compress(b"x"))
        ok = self.write("ok.txt.bz2", bz2.compress(b"fine"))
        report = Decompressor(self.root, workers=2).run()
        self.assertEqual(report.corrupt, {odd})
        self.assertEqual(set(report.decoded), {ok})
        self.assertEqual((self.root / "ok.txt").read_bytes(), b"fine")

    def test_unexpected_error_isolated_to_one_file(self):
        boom = self.write("maps/boom.bsp.bz2", bz2.compress(b"x"))
        fine = self.write("maps/fine.bsp.bz2", bz2.compress(b"y"))
        real = decode_file

        def flaky(path, suffix):
            if path == boom:
                raise RuntimeError("unexpected")
            return real(path, suffix)

        with patch("fastdl_mirror.core.decompressor.decode_file", side_effect=flaky):
            with self.assertLogs("fastdl-mirror", level="ERROR"):
                report = Decompressor(self.root, workers=2).run()
        self.assertEqual(report.corrupt, {boom})
        self.assertEqual(set(report.decoded), {fine})

    def test_corrupt_set_accumulates(self):
        earlier = self.root / "older" / "broken.bz2"
        shared = {earlier}
        bad = self.write("maps/bad.bsp.bz2", b"nope")
        report = Decompressor(self.root, workers=2).run(shared)
        self.assertIs(report.corrupt, shared)
        self.assertEqual(shared, {earlier, bad})

    def test_nothing_to_do(self):
        events = []
        report = Decompressor(self.root, workers=2, progress=events.append).run()
        self.assertEqual(report.decoded, {})
        self.assertEqual(report.corrupt, set())
        self.assertEqual([e.kind for e in events], [STAGE_FINISHED])


if __name__ == "__main__":
    unittest.main()
