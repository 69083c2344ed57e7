import json
from types import SimpleNamespace

import pytest

from app.errors import ExtractionError
from app.llm_integration import MSG_PARSE_FAILED, TableExtractor, parse_tables_response
from app.prompts import BUILDING_RIGHTS_TITLE, TABLES_EXTRACTION_PROMPT

VALID = {
    "tables": [
        {"pageNumber": 12, "title": "זכויות", "headers": ["יעוד", "שטח"], "rows": [["מגורים", "100"], ["", None]]},
        {"headers": [], "rows": [["a", 3]]},
    ]
}


class FakeModels:
    def __init__(self, text):
        self.text = text
        self.calls = []

    def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        return SimpleNamespace(text=self.text)


def _extractor(settings, text):
    models = FakeModels(text)
    return TableExtractor(settings, client=SimpleNamespace(models=models)), models


def test_parses_valid_payload():
    tables = parse_tables_response(json.dumps(VALID, ensure_ascii=False))
    assert len(tables) == 2
    assert tables[0].page_number == 12
    assert tables[0].headers == ["יעוד", "שטח"]
    assert tables[0].rows[1] == ["", ""]
    assert tables[1].title is None
    assert tables[1].rows == [["a", "3"]]


def test_missing_tables_means_no_tables():
    assert parse_tables_response("{}") == []
    assert parse_tables_response('{"tables": null}') == []


@pytest.mark.parametrize("text", [
    "",
    "   ",
    "no json here",
    '{"tables": [',
    'Here you go: {"tables": []}',
    '{"tables": "nope"}',
    '{"tables": [{"headers": "x", "rows": []}]}',
])
def test_bad_responses_raise(text):
    with pytest.raises(ExtractionError) as exc:
        parse_tables_response(text)
    assert exc.value.message == MSG_PARSE_FAILED
    assert exc.value.status_code == 500


def test_extract_sends_pdf_and_prompt(settings):
    extractor, models = _extractor(settings, json.dumps(VALID))
    tables = extractor.extract(b"%PDF-1.4")
    assert len(tables) == 2
    call = models.calls[0]
    assert call["model"] == settings.integrations.llm.model
    part, prompt = call["contents"]
    assert part.inline_data.mime_type == "application/pdf"
    assert part.inline_data.data == b"%PDF-1.4"
    assert prompt == TABLES_EXTRACTION_PROMPT
    assert call["config"].response_mime_type == "application/json"


def test_extract_rejects_empty_pdf(settings):
    extractor, models = _extractor(settings, "{}")
    with pytest.raises(ExtractionError):
        extractor.extract(b"")
    assert models.calls == []


def test_extract_propagates_parse_failure(settings):
    extractor, _ = _extractor(settings, "sorry, I could not find any tables")
    with pytest.raises(ExtractionError):
        extractor.extract(b"%PDF-1.4")


def test_prompt_names_the_building_rights_title():
    assert BUILDING_RIGHTS_TITLE in TABLES_EXTRACTION_PROMPT
    assert '"tables"' in TABLES_EXTRACTION_PROMPT
