# -*- coding: utf-8 -*-
import json
import os

import requests
import streamlit as st

from app.errors import TakanonError
from app.models import PlanDetails, PlanRecord
from app.progress import STEP_LABELS, ProgressStep, ProgressTracker
from app.search_integration import extract_coordinates, extract_parcel
from app.workbook import XLSX_FILENAME, XLSX_MIME

API_URL = os.getenv("API_URL", "http://localhost:8000").rstrip("/")
TIMEOUT = 300

st.set_page_config(page_title="טבלאות זכויות בנייה", layout="centered")
st.title("📐 טבלאות זכויות בנייה מתוך תקנון")

# --- session state init ---
if "xlsx" not in st.session_state:
    st.session_state.xlsx = None
if "plan_details" not in st.session_state:
    st.session_state.plan_details = None
if "upload_xlsx" not in st.session_state:
    st.session_state.upload_xlsx = None


class ApiError(Exception):
    pass


def _post(path: str, **kwargs) -> requests.Response:
    r = requests.post(f"{API_URL}{path}", timeout=TIMEOUT, **kwargs)
    if not r.ok:
        try:
            msg = r.json().get("error")
        except ValueError:
            msg = None
        raise ApiError(msg or f"HTTP {r.status_code}")
    return r


def run_address_flow(address: str, tracker: ProgressTracker) -> None:
    tracker.advance(ProgressStep.SEARCHING)
    coordinates = extract_coordinates(_post("/api/govmap/search", json={"address": address}).json())
    parcel_id = extract_parcel(_post("/api/govmap/parcel", json={"coordinates": coordinates}).json())

    tracker.advance(ProgressStep.FETCHING_PLANS)
    plans = _post("/api/plans/search", json={"block": parcel_id.block, "parcel": parcel_id.parcel}).json()
    plans = plans.get("plansSmall") or []
    if not plans:
        raise ApiError("לא נמצאו תוכניות בנייה לכתובת זו")

    tracker.advance(ProgressStep.FILTERING_PLANS)
    selected = _post("/api/plans/select", json={"plans": plans}).json()
    plan = PlanRecord.model_validate(selected["plan"])
    details = PlanDetails.from_plan(plan, parcel_id.block, parcel_id.parcel)

    tracker.advance(ProgressStep.DOWNLOADING)
    pdf = _post("/api/download-pdf", json={"url": selected["pdfUrl"]}).content

    tracker.advance(ProgressStep.PARSING)
    xlsx = _post(
        "/api/process-pdf",
        files={"pdf": ("plan.pdf", pdf, "application/pdf")},
        data={"plan": json.dumps(details.model_dump(by_alias=True), ensure_ascii=False)},
    ).content

    st.session_state.xlsx = xlsx
    st.session_state.plan_details = details.model_dump(by_alias=True)
    tracker.advance(ProgressStep.COMPLETE)


tab_address, tab_upload = st.tabs(["חיפוש לפי כתובת", "העלאת PDF"])

with tab_address:
    address = st.text_input("כתובת", placeholder="לדוגמה: הרצל 1, תל אביב")
    status = st.empty()
    bar = st.empty()

    def show(step: ProgressStep) -> None:
        if step is ProgressStep.IDLE:
            return
        status.info(STEP_LABELS[step])
        bar.progress(tracker.fraction)

    tracker = ProgressTracker(show)

    if st.button("🔎 חפש והפק טבלאות", type="primary", disabled=not address.strip()):
        st.session_state.xlsx = None
        try:
            run_address_flow(address.strip(), tracker)
            status.success(STEP_LABELS[ProgressStep.COMPLETE])
        except (ApiError, TakanonError, requests.RequestException) as e:
            tracker.fail(str(e))
            status.error(tracker.error)

    if st.session_state.plan_details:
        d = st.session_state.plan_details
        st.subheader(f"תוכנית {d.get('planNumber', '')}")
        st.write(f"**עיר:** {d.get('cityText', '')}  |  **גוש:** {d.get('block')}  |  **חלקה:** {d.get('parcel')}")
        st.write(f"**מהות:** {d.get('mahut', '')}")
        st.write(f"**סטטוס:** {d.get('status', '')} ({d.get('statusDate', '')})")
    if st.session_state.xlsx:
        st.download_button("⬇️ הורד XLSX", data=st.session_state.xlsx, file_name=XLSX_FILENAME, mime=XLSX_MIME)

with tab_upload:
    uploaded = st.file_uploader("קובץ PDF של תקנון", type=["pdf"])
    if st.button("⚙️ עבד PDF", disabled=uploaded is None):
        try:
            with st.spinner("Processing..."):
                r = _post("/api/process-pdf", files={"pdf": (uploaded.name, uploaded.getvalue(), "application/pdf")})
            st.session_state.upload_xlsx = r.content
            st.success("Processing complete!")
        except (ApiError, requests.RequestException) as e:
            st.error(str(e))
    if st.session_state.upload_xlsx:
        st.download_button("⬇️ Download XLSX", data=st.session_state.upload_xlsx, file_name=XLSX_FILENAME, mime=XLSX_MIME, key="upload_dl")
