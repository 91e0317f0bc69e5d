"""
Decompression of ``.bz2`` sidecar files.

Each compressed file under the mirror root is decoded on its own worker.
Output goes to a ``.part`` sibling first and is renamed over the final
name only once the whole stream decoded cleanly; the compressed original
is deleted after that.  Anything that fails is left exactly as it was and
reported as corrupt.
"""

import bz2
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from fastdl_mirror import progress as ev
from fastdl_mirror.config import COMPRESSED_SUFFIX, PARTIAL_SUFFIX, STREAM_CHUNK, auto_concurrency
from fastdl_mirror.core.storage import remove_file
from fastdl_mirror.errors import DecodeError, FilesystemError, MirrorError
from fastdl_mirror.progress import ProgressCallback
from fastdl_mirror.utils.log import log

_MB = 1024 * 1024


@dataclass
class DecodeReport:
    decoded: dict[Path, Path] = field(default_factory=dict)
    corrupt: set[Path] = field(default_factory=set)


def find_compressed(root: Path, suffix: str = COMPRESSED_SUFFIX) -> list[Path]:
    """Every regular file below *root* whose name ends with *suffix*."""
    return sorted(p for p in Path(root).rglob(f"*{suffix}") if p.is_file())


def decoded_path(path: Path, suffix: str = COMPRESSED_SUFFIX) -> Path:
    stem = path.name[: -len(suffix)]
    if not stem:
        raise DecodeError(path, "no file name left once the suffix is removed")
    return path.with_name(stem)


def decode_file(path: Path, suffix: str = COMPRESSED_SUFFIX) -> Path:
    """
    Decode *path* into its sibling without *suffix* and delete *path*.

    Concatenated bz2 streams decode as one continuous output.  Raises
    :class:`DecodeError` for a corrupt or truncated stream and
    :class:`FilesystemError` when the output cannot be written; in both
    cases *path* is untouched and no output file is left behind.
    """
    out = decoded_path(path, suffix)
    part = out.with_name(out.name + PARTIAL_SUFFIX)
    size = 0
    try:
        try:
            with bz2.open(path, "rb") as src, part.open("wb") as dst:
                while True:
                    try:
                        chunk = src.read(STREAM_CHUNK)
                    except (OSError, EOFError, ValueError) as exc:
                        raise DecodeError(path, str(exc) or type(exc).__name__) from exc
                    if not chunk:
                        break
                    dst.write(chunk)
                    size += len(chunk)
        except OSError as exc:
            raise FilesystemError(part, f"cannot write decoded output: {exc}") from exc
        try:
            os.replace(part, out)
        except OSError as exc:
            raise FilesystemError(out, f"rename failed: {exc}") from exc
    except MirrorError:
        remove_file(part)
        raise

    log.info("[DECODE] %s → %s (%.2f MB)", path.name, out.name, size / _MB)
    try:
        remove_file(path)
    except FilesystemError as exc:
        log.warning("[ERR] Decoded but could not delete %s: %s", path, exc)
    return out


class Decompressor:
    def __init__(
        self,
        root: Path,
        workers: int = 0,
        suffix: str = COMPRESSED_SUFFIX,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.root = Path(root)
        self.workers = workers or auto_concurrency()
        self.suffix = suffix
        self.progress = progress

    def run(self, corrupt: set[Path] | None = None) -> DecodeReport:
        """Decode every sidecar below the root.

        Corrupt files are added to *corrupt* as well as to the returned
        report, so one set can collect the results of several passes.
        """
        report = DecodeReport()
        if corrupt is not None:
            report.corrupt = corrupt
        files = find_compressed(self.root, self.suffix)
        if not files:
            log.info("No %s files to decode under %s", self.suffix, self.root)
            ev.emit(self.progress, ev.DECODE, ev.STAGE_FINISHED,
                    completed=0, corrupt=len(report.corrupt), total=0)
            return report

        log.info("Decoding %d %s file(s)", len(files), self.suffix)
        for path in files:
            log.debug("  queued: %s", path)

        corrupt_here = 0
        with ThreadPoolExecutor(max_workers=self.workers,
                                thread_name_prefix="decode") as pool:
            futures = {pool.submit(decode_file, path, self.suffix): path
                       for path in files}
            for fut in as_completed(futures):
                path = futures[fut]
                try:
                    report.decoded[path] = fut.result()
                except Exception as exc:
                    if isinstance(exc, MirrorError):
                        log.error("[CORRUPT] %s", exc)
                    else:
                        log.exception("[CORRUPT] %s: unexpected %s", path, type(exc).__name__)
                    report.corrupt.add(path)
                    corrupt_here += 1
                    ev.emit(self.progress, ev.DECODE, ev.FILE_CORRUPT, item=str(path),
                            completed=len(report.decoded), corrupt=corrupt_here,
                            total=len(files))
                    continue
                ev.emit(self.progress, ev.DECODE, ev.FILE_DECODED, item=str(path),
                        completed=len(report.decoded), corrupt=corrupt_here,
                        total=len(files))
                log.debug("Finished decoding: %d / %d files",
                          len(report.decoded) + corrupt_here, len(files))

        log.info("Decode complete. ok=%d  corrupt=%d", len(report.decoded), corrupt_here)
        ev.emit(self.progress, ev.DECODE, ev.STAGE_FINISHED,
                completed=len(report.decoded), corrupt=corrupt_here, total=len(files))
        return report
