# -*- coding: utf-8 -*-
from typing import Any, Callable, Dict, List, Optional, TypedDict

import httpx
from langchain_core.runnables import RunnableConfig
from langgraph.graph import StateGraph, START, END
from loguru import logger

from app.config import Settings
from app.documents import download_document
from app.errors import DownloadFailed, NoPlansFound, UpstreamError
from app.llm_integration import TableExtractor
from app.models import ExtractedTable, PlanDetails, PlanRecord
from app.plan_selection import MSG_NO_PLANS, SelectionPolicy, select_plan
from app.progress import ProgressStep
from app.search_integration import locate_address, plans_from_response, search_plans
from app.workbook import HEBREW_LABELS, UPLOAD_LABELS, SheetLabels, build_workbook, workbook_bytes, workbook_to_data_uri

MSG_PLANS_SEARCH_FAILED = "לא הצלחנו למצוא תוכניות בנייה"
MSG_DOWNLOAD_FAILED = "לא הצלחנו להוריד את מסמך התוכנית"

# -------------------- Types & Helpers --------------------

class PlanState(TypedDict, total=False):
    address: str
    block: int
    parcel: int
    plans: List[PlanRecord]
    plan: PlanRecord
    pdf_bytes: bytes
    tables: List[ExtractedTable]
    xlsx: bytes


def _deps(config: RunnableConfig) -> Dict[str, Any]:
    return (config or {}).get("configurable", {})


def _report(config: RunnableConfig, step: ProgressStep) -> None:
    on_step = _deps(config).get("on_step")
    logger.info(f"[PIPELINE] {step.value}")
    if on_step:
        on_step(step)

# -------------------- Nodes --------------------
# Each node either fills its part of the state or raises; an exception ends
# the run and nothing downstream executes.

def node_resolve_address(state: PlanState, config: RunnableConfig) -> PlanState:
    _report(config, ProgressStep.SEARCHING)
    deps = _deps(config)
    match = locate_address(state["address"], deps["settings"], deps.get("client"))
    state["block"] = match.block
    state["parcel"] = match.parcel
    return state

def node_fetch_plans(state: PlanState, config: RunnableConfig) -> PlanState:
    _report(config, ProgressStep.FETCHING_PLANS)
    deps = _deps(config)
    try:
        data = search_plans(state["block"], state["parcel"], deps["settings"], deps.get("client"))
    except UpstreamError as e:
        raise NoPlansFound(MSG_PLANS_SEARCH_FAILED) from e
    plans = plans_from_response(data)
    if not plans:
        raise NoPlansFound(MSG_NO_PLANS)
    state["plans"] = plans
    return state

def node_filter_plans(state: PlanState, config: RunnableConfig) -> PlanState:
    _report(config, ProgressStep.FILTERING_PLANS)
    deps = _deps(config)
    policy = deps.get("policy") or deps["settings"].integrations.plans.selection_policy
    state["plan"] = select_plan(state["plans"], policy)
    return state

def node_download(state: PlanState, config: RunnableConfig) -> PlanState:
    _report(config, ProgressStep.DOWNLOADING)
    deps = _deps(config)
    try:
        state["pdf_bytes"] = download_document(state["plan"].regulation_path, deps["settings"], deps.get("client"))
    except DownloadFailed as e:
        raise DownloadFailed(MSG_DOWNLOAD_FAILED, status_code=500) from e
    return state

def node_parse(state: PlanState, config: RunnableConfig) -> PlanState:
    _report(config, ProgressStep.PARSING)
    extractor: TableExtractor = _deps(config)["extractor"]
    state["tables"] = extractor.extract(state["pdf_bytes"])
    return state

def node_build_workbook(state: PlanState, config: RunnableConfig) -> PlanState:
    details = PlanDetails.from_plan(state["plan"], state["block"], state["parcel"])
    wb = build_workbook(state.get("tables") or [], summary=details, labels=HEBREW_LABELS)
    state["xlsx"] = workbook_bytes(wb)
    _report(config, ProgressStep.COMPLETE)
    return state


# -------------------- Graph --------------------
graph = StateGraph(PlanState)
graph.add_node("resolve_address", node_resolve_address)
graph.add_node("fetch_plans", node_fetch_plans)
graph.add_node("filter_plans", node_filter_plans)
graph.add_node("download", node_download)
graph.add_node("parse", node_parse)
graph.add_node("build_workbook", node_build_workbook)

graph.add_edge(START, "resolve_address")
graph.add_edge("resolve_address", "fetch_plans")
graph.add_edge("fetch_plans", "filter_plans")
graph.add_edge("filter_plans", "download")
graph.add_edge("download", "parse")
graph.add_edge("parse", "build_workbook")
graph.add_edge("build_workbook", END)

pipeline = graph.compile()

# -------------------- Entrypoints --------------------
def run_address_pipeline(
    address: str,
    settings: Settings,
    extractor: TableExtractor,
    client: Optional[httpx.Client] = None,
    policy: Optional[SelectionPolicy] = None,
    on_step: Optional[Callable[[ProgressStep], None]] = None,
) -> Dict[str, Any]:
    config = {"configurable": {
        "settings": settings,
        "extractor": extractor,
        "client": client,
        "policy": policy,
        "on_step": on_step,
    }}
    result = pipeline.invoke({"address": address}, config=config)
    details = PlanDetails.from_plan(result["plan"], result["block"], result["parcel"])
    return {
        "downloadUrl": workbook_to_data_uri(result["xlsx"]),
        "planDetails": details.model_dump(by_alias=True),
    }

def run_upload_pipeline(
    pdf_bytes: bytes,
    extractor: TableExtractor,
    summary: Optional[PlanDetails] = None,
    labels: SheetLabels = UPLOAD_LABELS,
) -> bytes:
    tables = extractor.extract(pdf_bytes)
    return workbook_bytes(build_workbook(tables, summary=summary, labels=labels))
