# -*- coding: utf-8 -*-
import json
from typing import Any, Dict, List, Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from loguru import logger
from pydantic import BaseModel, ValidationError

from agents import run_address_pipeline, run_upload_pipeline
from app.config import Settings, load_settings
from app.documents import PDF_MIME, download_document, resolve_document_url
from app.errors import TakanonError, ValidationFailed
from app.llm_integration import TableExtractor
from app.models import PlanDetails, PlanRecord
from app.plan_selection import SelectionPolicy, select_plan
from app.search_integration import lookup_parcel, search_address, search_plans
from app.workbook import HEBREW_LABELS, UPLOAD_LABELS, XLSX_FILENAME, XLSX_MIME

MSG_INTERNAL = "אירעה שגיאה בעיבוד הבקשה"


class AddressReq(BaseModel):
    address: Optional[str] = None

class CoordinatesReq(BaseModel):
    coordinates: Optional[str] = None

class PlansReq(BaseModel):
    block: Optional[int] = None
    parcel: Optional[int] = None

class SelectReq(BaseModel):
    plans: List[Dict[str, Any]] = []
    policy: Optional[SelectionPolicy] = None

class UrlReq(BaseModel):
    url: Optional[str] = None


def _attachment(filename: str) -> Dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


def create_app(
    settings: Optional[Settings] = None,
    extractor: Optional[TableExtractor] = None,
    http_client: Optional[httpx.Client] = None,
) -> FastAPI:
    """
    Build the API. Settings are read once here and the Gemini key is checked
    before any route exists, so a missing key stops start-up with ConfigError.
    Run with ``uvicorn api.main:create_app --factory``.
    """
    load_dotenv()
    settings = settings or load_settings()
    settings.require_api_key()
    if extractor is None:
        extractor = TableExtractor(settings)

    app = FastAPI(title="Takanon Tables API", version="1.0.0")
    app.state.settings = settings
    app.state.extractor = extractor
    app.state.http_client = http_client

    @app.exception_handler(TakanonError)
    async def _takanon_error(request: Request, exc: TakanonError):
        logger.warning(f"[API] {request.url.path} -> {exc.status_code} {exc.message}")
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError):
        return JSONResponse({"error": "Invalid request"}, status_code=400)

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        logger.exception(f"[API] {request.url.path} failed")
        return JSONResponse({"error": MSG_INTERNAL}, status_code=500)

    @app.post("/api/govmap/search")
    def govmap_search(req: AddressReq):
        return search_address(req.address, settings, http_client)

    @app.post("/api/govmap/parcel")
    def govmap_parcel(req: CoordinatesReq):
        return lookup_parcel(req.coordinates, settings, http_client)

    @app.post("/api/plans/search")
    def plans_search(req: PlansReq):
        return search_plans(req.block, req.parcel, settings, http_client)

    @app.post("/api/plans/select")
    def plans_select(req: SelectReq):
        plans = [PlanRecord.model_validate(p) for p in req.plans]
        policy = req.policy or settings.integrations.plans.selection_policy
        plan = select_plan(plans, policy)
        return {
            "plan": plan.model_dump(by_alias=True),
            "pdfUrl": resolve_document_url(plan.regulation_path, settings),
        }

    @app.post("/api/download-pdf")
    def download_pdf(req: UrlReq):
        content = download_document(req.url, settings, http_client)
        return Response(content=content, media_type=PDF_MIME, headers=_attachment("plan.pdf"))

    @app.post("/api/process-pdf")
    def process_pdf(pdf: Optional[UploadFile] = File(None), plan: Optional[str] = Form(None)):
        if pdf is None:
            raise ValidationFailed("No file provided")
        data = pdf.file.read()
        if not data:
            raise ValidationFailed("No file provided")

        summary, labels = None, UPLOAD_LABELS
        if plan:
            try:
                summary = PlanDetails.model_validate(json.loads(plan))
            except (ValueError, ValidationError) as e:
                raise ValidationFailed("Invalid plan details") from e
            labels = HEBREW_LABELS

        logger.info(f"[API] process-pdf {pdf.filename} ({len(data)} bytes)")
        xlsx = run_upload_pipeline(data, extractor, summary=summary, labels=labels)
        return Response(content=xlsx, media_type=XLSX_MIME, headers=_attachment(XLSX_FILENAME))

    @app.post("/api/search-address")
    def search_address_pipeline(req: AddressReq):
        if not (req.address or "").strip():
            raise ValidationFailed("כתובת לא סופקה")
        return run_address_pipeline(req.address.strip(), settings, extractor, client=http_client)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app
