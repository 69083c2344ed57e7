# -*- coding: utf-8 -*-
from typing import List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from langsmith import traceable
from loguru import logger
from pydantic import ValidationError

from app.config import Settings
from app.errors import ExtractionError, UpstreamError
from app.http_client import clip
from app.models import ExtractedTable, TablesPayload
from app.prompts import TABLES_EXTRACTION_PROMPT, TABLES_RESPONSE_SCHEMA

MSG_PARSE_FAILED = "Failed to parse AI response"
MSG_PROCESS_FAILED = "Failed to process PDF"


def parse_tables_response(text: str) -> List[ExtractedTable]:
    """
    Validate the model output against TablesPayload.
    The output must be exactly one JSON object; prose around it is an error.
    """
    text = (text or "").strip()
    if not text:
        logger.error("[GEMINI] empty response")
        raise ExtractionError(MSG_PARSE_FAILED)
    try:
        payload = TablesPayload.model_validate_json(text)
    except ValidationError as e:
        logger.error(f"[GEMINI] response failed validation: {e.error_count()} error(s) text={clip(text)}")
        raise ExtractionError(MSG_PARSE_FAILED) from e
    if not payload.tables:
        logger.info("[GEMINI] no tables found")
    return payload.tables


class TableExtractor:
    """Sends a takanon PDF to Gemini and returns the building-rights tables."""

    def __init__(self, settings: Settings, client: Optional[genai.Client] = None):
        self._cfg = settings.integrations.llm
        if client is None:
            client = genai.Client(
                api_key=settings.require_api_key(),
                http_options=types.HttpOptions(timeout=self._cfg.request_timeout_sec * 1000),
            )
        self._client = client

    def _config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=self._cfg.temperature,
            response_mime_type="application/json",
            response_schema=TABLES_RESPONSE_SCHEMA,
        )

    @traceable(name="gemini_extract_tables")
    def extract(self, pdf_bytes: bytes) -> List[ExtractedTable]:
        if not pdf_bytes:
            raise ExtractionError("No file provided", status_code=400)
        model = self._cfg.model
        logger.info(f"[GEMINI] model={model} pdf_bytes={len(pdf_bytes)}")
        try:
            response = self._client.models.generate_content(
                model=model,
                contents=[
                    types.Part.from_bytes(data=pdf_bytes, mime_type="application/pdf"),
                    TABLES_EXTRACTION_PROMPT,
                ],
                config=self._config(),
            )
        except genai_errors.APIError as e:
            logger.error(f"[GEMINI] API error model={model} code={e.code}: {e.message}")
            raise UpstreamError(MSG_PROCESS_FAILED, status_code=500) from e

        tables = parse_tables_response(response.text or "")
        logger.info(f"[GEMINI] extracted {len(tables)} table(s)")
        return tables
