import os
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

import pytest
from starlette.requests import Request


@pytest.fixture(scope="session", autouse=True)
def _force_test_env():
    # Environment must not leak strict mode or a custom tag into tests
    for k in ("REQBIND_TAG", "REQBIND_DEFAULT_CONTENT_TYPE", "REQBIND_REJECT_UNKNOWN_QUERY"):
        os.environ.pop(k, None)


def _make_request(
    url: str = "/x",
    *,
    method: str = "GET",
    headers: Sequence[Tuple[str, str]] = (),
    cookies: Optional[Dict[str, str]] = None,
    path_params: Optional[Dict[str, str]] = None,
) -> Request:
    parts = urlsplit(url)
    raw: List[Tuple[bytes, bytes]] = [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in headers]
    if cookies:
        raw.append((b"cookie", "; ".join(f"{k}={v}" for k, v in cookies.items()).encode("latin-1")))
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "server": ("testserver", 80),
        "client": ("testclient", 50000),
        "root_path": "",
        "path": parts.path,
        "raw_path": parts.path.encode("latin-1"),
        "query_string": parts.query.encode("latin-1"),
        "headers": raw,
        "path_params": path_params or {},
    }
    return Request(scope)


@pytest.fixture(scope="session")
def build_request():
    return _make_request

