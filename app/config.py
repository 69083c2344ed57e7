# -*- coding: utf-8 -*-
import os
from typing import List, Optional

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field

from app.errors import ConfigError
from app.plan_selection import SelectionPolicy

CONFIG_PATH = os.getenv("CONFIG_PATH", "config/config.yaml")


class GovmapConfig(BaseModel):
    autocomplete_url: str = "https://www.govmap.gov.il/api/search-service/autocomplete"
    search_and_locate_url: str = "https://ags.govmap.gov.il/Api/Controllers/GovmapApi/SearchAndLocate"
    parcel_url: str = "https://www.govmap.gov.il/api/layers-catalog/apps/parcel-search/address"


class PlansConfig(BaseModel):
    search_url: str = "https://apps.land.gov.il/TabaSearch/api/SerachPlans/GetPlans"
    statuses: List[int] = Field(default_factory=lambda: [8])
    plan_types: List[int] = Field(default_factory=lambda: [21])
    selection_policy: SelectionPolicy = SelectionPolicy.MOST_RECENT


class DocumentsConfig(BaseModel):
    base_url: str = "https://apps.land.gov.il"
    allowed_hosts: List[str] = Field(default_factory=lambda: ["apps.land.gov.il"])


class LLMConfig(BaseModel):
    provider: str = "gemini"
    model: str = "gemini-2.5-pro"
    temperature: float = 0.1
    request_timeout_sec: int = 300


class IntegrationsConfig(BaseModel):
    govmap: GovmapConfig = Field(default_factory=GovmapConfig)
    plans: PlansConfig = Field(default_factory=PlansConfig)
    documents: DocumentsConfig = Field(default_factory=DocumentsConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)


class HttpConfig(BaseModel):
    request_timeout_sec: int = 60


class Settings(BaseModel):
    """
    Process-wide configuration. Built once at start-up by load_settings()
    and handed to everything that needs it; nothing reads the environment
    per request.
    """
    integrations: IntegrationsConfig = Field(default_factory=IntegrationsConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    gemini_api_key: Optional[str] = None

    def require_api_key(self) -> str:
        key = (self.gemini_api_key or "").strip()
        if not key:
            raise ConfigError("Gemini API key not configured")
        return key


def _load_config(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(path: Optional[str] = None) -> Settings:
    load_dotenv()
    path = path or os.getenv("CONFIG_PATH", CONFIG_PATH)
    raw = {}
    if os.path.exists(path):
        raw = _load_config(path)
        logger.info(f"[CONFIG] loaded {path}")
    else:
        logger.warning(f"[CONFIG] {path} not found, using defaults")
    settings = Settings.model_validate(raw)
    settings.gemini_api_key = os.getenv("GEMINI_API_KEY", "").strip() or None
    return settings
