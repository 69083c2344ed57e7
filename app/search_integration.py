# -*- coding: utf-8 -*-
import re
from typing import Any, Dict, List, Optional

import httpx
from langsmith import traceable
from loguru import logger

from app.config import Settings
from app.errors import AddressNotFound, UpstreamError, ValidationFailed
from app.http_client import JSON_HEADERS, clip, http_client
from app.models import AddressMatch, ParcelId, PlanRecord

# user-facing messages
MSG_ADDRESS_NOT_FOUND = "לא הצלחנו למצוא את הכתובת"
MSG_NO_ADDRESS_DATA = "לא נמצאו נתונים עבור הכתובת"

_POINT_RE = re.compile(r"POINT\s*\(\s*(-?[\d.]+)[\s,]+(-?[\d.]+)\s*\)", re.IGNORECASE)

_BLOCK_KEYS = ("gush_num", "GUSH_NUM", "gush", "block")
_PARCEL_KEYS = ("parcel", "PARCEL", "helka", "chelka", "parcel_num")


def _require(value: Any, message: str) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationFailed(message)
    return value


def _raise_for_upstream(r: httpx.Response, tag: str, message: str) -> None:
    if r.status_code >= 400:
        logger.error(f"[{tag}] HTTP {r.status_code} body={clip(r.text)}")
        raise UpstreamError(message, status_code=r.status_code)


# ---------- Address Resolver ----------

@traceable(name="govmap_autocomplete")
def search_address(address: str, settings: Settings, client: Optional[httpx.Client] = None) -> Dict[str, Any]:
    """Hebrew, address-only, single result autocomplete. Returns the raw payload."""
    _require(address, "Address is required")
    payload = {
        "searchText": address,
        "language": "he",
        "filterType": "address",
        "isAccurate": False,
        "maxResults": 1,
    }
    with http_client(settings.http.request_timeout_sec, client) as c:
        r = c.post(settings.integrations.govmap.autocomplete_url, json=payload, headers=JSON_HEADERS)
        _raise_for_upstream(r, "GOVMAP", "Failed to search address")
        data = r.json()
    logger.info(f"[GOVMAP] autocomplete '{address}' -> {len((data or {}).get('results') or [])} result(s)")
    return data


def extract_coordinates(payload: Dict[str, Any]) -> str:
    """First match's shape (``POINT(x y)``) as the ``x,y`` string the parcel service takes."""
    results = (payload or {}).get("results") or (payload or {}).get("data") or []
    if not results:
        raise AddressNotFound(MSG_NO_ADDRESS_DATA)
    shape = results[0].get("shape") or ""
    m = _POINT_RE.search(shape)
    if not m:
        raise AddressNotFound(MSG_NO_ADDRESS_DATA)
    return f"{m.group(1)},{m.group(2)}"


@traceable(name="govmap_search_and_locate")
def locate_address(address: str, settings: Settings, client: Optional[httpx.Client] = None) -> AddressMatch:
    _require(address, "כתובת לא סופקה")
    with http_client(settings.http.request_timeout_sec, client) as c:
        r = c.post(
            settings.integrations.govmap.search_and_locate_url,
            json={"type": 0, "address": address},
            headers=JSON_HEADERS,
        )
        if r.status_code >= 400:
            logger.error(f"[GOVMAP] SearchAndLocate HTTP {r.status_code} body={clip(r.text)}")
            raise AddressNotFound(MSG_ADDRESS_NOT_FOUND)
        data = r.json() or {}

    matches = data.get("data") or []
    if not matches:
        logger.warning(f"[GOVMAP] no match for '{address}'")
        raise AddressNotFound(MSG_NO_ADDRESS_DATA)
    match = AddressMatch.model_validate(matches[0])
    if len(match.values) < 2:
        raise AddressNotFound(MSG_NO_ADDRESS_DATA)
    logger.info(f"[GOVMAP] found block: {match.block}, parcel: {match.parcel}")
    return match


# ---------- Parcel Locator ----------

@traceable(name="govmap_parcel")
def lookup_parcel(coordinates: str, settings: Settings, client: Optional[httpx.Client] = None) -> Dict[str, Any]:
    _require(coordinates, "Coordinates are required")
    url = f"{settings.integrations.govmap.parcel_url}/({coordinates})"
    with http_client(settings.http.request_timeout_sec, client) as c:
        r = c.get(url, headers=JSON_HEADERS)
        _raise_for_upstream(r, "GOVMAP", "Failed to fetch parcel data")
        return r.json()


def _first(d: Dict[str, Any], keys) -> Any:
    for k in keys:
        if d.get(k) not in (None, ""):
            return d[k]
    return None


def extract_parcel(payload: Dict[str, Any]) -> ParcelId:
    props = (payload or {}).get("properties")
    if props is None:
        features = (payload or {}).get("features") or (payload or {}).get("data") or []
        props = (features[0] or {}).get("properties") if features else None
    props = props or {}
    block, parcel = _first(props, _BLOCK_KEYS), _first(props, _PARCEL_KEYS)
    if block is None or parcel is None:
        raise AddressNotFound(MSG_NO_ADDRESS_DATA)
    return ParcelId(block=int(block), parcel=int(parcel))


# ---------- Plan Finder ----------

@traceable(name="plans_search")
def search_plans(block: int, parcel: int, settings: Settings, client: Optional[httpx.Client] = None) -> Dict[str, Any]:
    if not block or not parcel:
        raise ValidationFailed("Block and parcel are required")
    cfg = settings.integrations.plans
    payload = {
        "planNumber": "",
        "gush": block,
        "chelka": parcel,
        "statuses": cfg.statuses,
        "planTypes": cfg.plan_types,
        "fromStatusDate": None,
        "toStatusDate": None,
        "planTypesUsed": True,
    }
    with http_client(settings.http.request_timeout_sec, client) as c:
        r = c.post(cfg.search_url, json=payload, headers=JSON_HEADERS)
        _raise_for_upstream(r, "PLANS", "Failed to fetch plans")
        data = r.json() or {}
    logger.info(f"[PLANS] gush={block} chelka={parcel} -> {len(data.get('plansSmall') or [])} plan(s)")
    return data


def plans_from_response(data: Dict[str, Any]) -> List[PlanRecord]:
    return [PlanRecord.model_validate(p) for p in ((data or {}).get("plansSmall") or [])]
