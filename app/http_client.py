# -*- coding: utf-8 -*-
from contextlib import contextmanager
from typing import Iterator, Optional

import httpx

JSON_HEADERS = {"Content-Type": "application/json"}


def make_timeout(total_seconds: int) -> httpx.Timeout:
    connect = min(20, max(5, total_seconds - 10))
    read    = max(10, total_seconds - 5)
    write   = 30
    pool    = 30
    return httpx.Timeout(connect=connect, read=read, write=write, pool=pool)


@contextmanager
def http_client(timeout_sec: int, client: Optional[httpx.Client] = None) -> Iterator[httpx.Client]:
    """Yield the caller's client if given, otherwise a short-lived one."""
    if client is not None:
        yield client
        return
    with httpx.Client(timeout=make_timeout(timeout_sec), follow_redirects=True) as c:
        yield c


def clip(text: str, max_chars: int = 600) -> str:
    text = text or ""
    return text if len(text) <= max_chars else text[:max_chars] + " …"
