"""
Error taxonomy shared by the crawl, download and decode stages.
"""


class MirrorError(Exception):
    """Base class for every error raised by fastdl_mirror."""


class TransportError(MirrorError):
    """A network request failed or returned an unusable HTTP status."""

    def __init__(
        self,
        url: str,
        message: str,
        status: int | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url
        self.status = status
        self.retryable = retryable


class ParseError(MirrorError):
    """A URL or listing document could not be parsed."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url


class DecodeError(MirrorError):
    """A compressed stream is corrupt or truncated."""

    def __init__(self, path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class FilesystemError(MirrorError):
    """Creating, writing or deleting a local file failed."""

    def __init__(self, path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
