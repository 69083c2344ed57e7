# -*- coding: utf-8 -*-
from typing import Optional
from urllib.parse import urljoin, urlparse

import httpx
from langsmith import traceable
from loguru import logger

from app.config import Settings
from app.errors import DisallowedUrl, DownloadFailed, ValidationFailed
from app.http_client import clip, http_client

PDF_MIME = "application/pdf"
MAX_REDIRECTS = 5


def resolve_document_url(path_or_url: str, settings: Settings) -> str:
    """Host-relative takanon paths are served from the land-authority site."""
    if not (path_or_url or "").strip():
        raise ValidationFailed("URL is required")
    base = settings.integrations.documents.base_url.rstrip("/") + "/"
    return urljoin(base, path_or_url.strip())


def ensure_allowed_url(url: str, settings: Settings) -> str:
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if parsed.scheme not in ("http", "https") or not host:
        raise DisallowedUrl("URL is not allowed")
    for allowed in settings.integrations.documents.allowed_hosts:
        allowed = allowed.lower()
        if host == allowed or host.endswith("." + allowed):
            return url
    logger.warning(f"[PDF] rejected host {host}")
    raise DisallowedUrl("URL is not allowed")


@traceable(name="download_document")
def download_document(url: str, settings: Settings, client: Optional[httpx.Client] = None) -> bytes:
    url = ensure_allowed_url(resolve_document_url(url, settings), settings)
    logger.info(f"[PDF] downloading {url}")
    with http_client(settings.http.request_timeout_sec, client) as c:
        # every hop must stay on the allow-list
        for _ in range(MAX_REDIRECTS + 1):
            r = c.get(url, follow_redirects=False)
            if not r.is_redirect:
                break
            url = ensure_allowed_url(urljoin(url, r.headers["location"]), settings)
            logger.info(f"[PDF] redirected to {url}")
        else:
            logger.error(f"[PDF] more than {MAX_REDIRECTS} redirects")
            raise DownloadFailed("Failed to download PDF")
        if r.status_code >= 400:
            logger.error(f"[PDF] HTTP {r.status_code} body={clip(r.text, 200)}")
            raise DownloadFailed("Failed to download PDF", status_code=r.status_code)
        content = r.content
    logger.info(f"[PDF] {len(content)} bytes")
    return content
