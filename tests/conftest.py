import json
import os
from typing import Callable, Dict, List, Optional

import httpx
import pytest

os.environ.setdefault("LANGSMITH_TRACING", "false")

from app.config import Settings
from app.models import ExtractedTable

AUTOCOMPLETE_URL = "https://www.govmap.gov.il/api/search-service/autocomplete"
SEARCH_AND_LOCATE_URL = "https://ags.govmap.gov.il/Api/Controllers/GovmapApi/SearchAndLocate"
PLANS_URL = "https://apps.land.gov.il/TabaSearch/api/SerachPlans/GetPlans"

PDF_BYTES = b"%PDF-1.4 fake takanon"


def make_plan(number: str, status_date: str, path: Optional[str] = "/TabaSearch/doc.pdf") -> Dict:
    documents = {"takanon": {"path": path, "info": "תקנון", "codeMismach": 1}} if path is not None else {}
    return {
        "planNumber": number,
        "planId": hash(number) % 100000,
        "cityText": "תל אביב-יפו",
        "mahut": "תוספת זכויות בנייה",
        "status": "אישור",
        "statusDate": status_date,
        "relationType": None,
        "documentsSet": documents,
    }


class FakeExtractor:
    """Stands in for TableExtractor; records what it was given."""

    def __init__(self, tables: Optional[List[ExtractedTable]] = None, error: Optional[Exception] = None):
        self.tables = tables or []
        self.error = error
        self.calls: List[bytes] = []

    def extract(self, pdf_bytes: bytes) -> List[ExtractedTable]:
        self.calls.append(pdf_bytes)
        if self.error:
            raise self.error
        return self.tables


class Upstream:
    """Routes requests by URL prefix to canned handlers and keeps a request log."""

    def __init__(self):
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def on(self, url_prefix: str, status: int = 200, json_body=None, content: bytes = None):
        def handler(request: httpx.Request) -> httpx.Response:
            if content is not None:
                return httpx.Response(status, content=content)
            return httpx.Response(status, json=json_body if json_body is not None else {})
        self.routes[url_prefix] = handler
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        for prefix, handler in self.routes.items():
            if url.startswith(prefix):
                return handler(request)
        return httpx.Response(599, text=f"unrouted {url}")

    def bodies(self, url_prefix: str) -> List[Dict]:
        return [json.loads(r.content) for r in self.requests if str(r.url).startswith(url_prefix)]


@pytest.fixture
def settings() -> Settings:
    s = Settings(gemini_api_key="test-key")
    s.integrations.documents.allowed_hosts = ["apps.land.gov.il", "mavat.iplan.gov.il"]
    return s


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def client(upstream) -> httpx.Client:
    with httpx.Client(transport=httpx.MockTransport(upstream)) as c:
        yield c


@pytest.fixture
def rights_table() -> ExtractedTable:
    return ExtractedTable(
        page_number=7,
        title="טבלת זכויות והוראות בניה - מצב מוצע",
        headers=["יעוד", "שטח בניה"],
        rows=[["מגורים א", "120"], ["מגורים ב", "240"], ["מסחר", ""]],
    )
