"""
HTTP session creation for the mirror.

One ``requests.Session`` is shared by every worker thread; the connection
pool is sized to the worker count so threads do not queue for sockets.
"""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from fastdl_mirror.config import ADAPTER_RETRIES, USER_AGENT


def build_session(pool_size: int = 10, verify_ssl: bool = True) -> requests.Session:
    """Return a ``requests.Session`` with connection-level retries and a
    connection pool large enough for *pool_size* concurrent workers."""
    session = requests.Session()
    # Status retries are left to the callers; the adapter only absorbs
    # dropped connections and half-open sockets.
    retry = Retry(
        total=ADAPTER_RETRIES,
        connect=ADAPTER_RETRIES,
        read=ADAPTER_RETRIES,
        status=0,
        backoff_factor=0.5,
        allowed_methods=frozenset({"GET", "HEAD"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(
        max_retries=retry,
        pool_connections=pool_size,
        pool_maxsize=pool_size,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = verify_ssl
    session.headers.update({
        "User-Agent": USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,*/*;q=0.8",
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
    })
    return session
