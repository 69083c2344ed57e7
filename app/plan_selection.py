# -*- coding: utf-8 -*-
from datetime import datetime
from enum import Enum
from typing import List, Union

from loguru import logger

from app.errors import NoPlansFound, NoUsableDocument
from app.models import PlanRecord

MSG_NO_PLANS = "לא נמצאו תוכניות בנייה לכתובת זו"
MSG_NO_TAKANON = "לא נמצא מסמך תקנון לתוכנית"

# below every real date, so unparseable dates sort last
UNPARSEABLE_DATE = datetime.min


class SelectionPolicy(str, Enum):
    MOST_RECENT = "most_recent"
    LEAST_RECENT = "least_recent"


def parse_status_date(value: str) -> datetime:
    """
    Parse a DD/MM/YY or DD/MM/YYYY status date.
    Two-digit years below 50 are 20xx, the rest 19xx. Anything that does not
    split into three numbers forming a real date maps to UNPARSEABLE_DATE.
    """
    parts = (value or "").strip().split("/")
    if len(parts) != 3:
        return UNPARSEABLE_DATE
    try:
        day, month, year = (int(p) for p in parts)
        if year < 100:
            year = 2000 + year if year < 50 else 1900 + year
        return datetime(year, month, day)
    except (ValueError, OverflowError):
        return UNPARSEABLE_DATE


def sort_plans(plans: List[PlanRecord]) -> List[PlanRecord]:
    """Most recent first. Equal dates keep their input order."""
    return sorted(plans, key=lambda p: parse_status_date(p.status_date), reverse=True)


def select_plan(plans: List[PlanRecord], policy: Union[SelectionPolicy, str] = SelectionPolicy.MOST_RECENT) -> PlanRecord:
    policy = SelectionPolicy(policy)
    if not plans:
        raise NoPlansFound(MSG_NO_PLANS)

    usable = [p for p in plans if p.is_usable]
    if not usable:
        logger.warning(f"[PLANS] none of {len(plans)} plan(s) has a takanon document")
        raise NoUsableDocument(MSG_NO_TAKANON)

    ordered = sort_plans(usable)
    chosen = ordered[0] if policy is SelectionPolicy.MOST_RECENT else ordered[-1]
    logger.info(f"[PLANS] policy={policy.value} picked {chosen.plan_number} ({chosen.status_date}) of {len(usable)} usable")
    return chosen
