# -*- coding: utf-8 -*-
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional


class ProgressStep(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    FETCHING_PLANS = "fetching_plans"
    FILTERING_PLANS = "filtering_plans"
    DOWNLOADING = "downloading"
    PARSING = "parsing"
    COMPLETE = "complete"
    ERROR = "error"


# the address flow, in order
ADDRESS_FLOW: List[ProgressStep] = [
    ProgressStep.SEARCHING,
    ProgressStep.FETCHING_PLANS,
    ProgressStep.FILTERING_PLANS,
    ProgressStep.DOWNLOADING,
    ProgressStep.PARSING,
    ProgressStep.COMPLETE,
]

STEP_LABELS: Dict[ProgressStep, str] = {
    ProgressStep.IDLE: "",
    ProgressStep.SEARCHING: "מחפש כתובת...",
    ProgressStep.FETCHING_PLANS: "מאתר תוכניות בנייה...",
    ProgressStep.FILTERING_PLANS: "בוחר את התוכנית הרלוונטית...",
    ProgressStep.DOWNLOADING: "מוריד את מסמך התקנון...",
    ProgressStep.PARSING: "מחלץ טבלאות זכויות בנייה...",
    ProgressStep.COMPLETE: "הושלם",
    ProgressStep.ERROR: "אירעה שגיאה",
}

_TRANSITIONS: Dict[ProgressStep, FrozenSet[ProgressStep]] = {
    ProgressStep.IDLE: frozenset({ProgressStep.SEARCHING, ProgressStep.PARSING}),
    ProgressStep.SEARCHING: frozenset({ProgressStep.FETCHING_PLANS}),
    ProgressStep.FETCHING_PLANS: frozenset({ProgressStep.FILTERING_PLANS}),
    ProgressStep.FILTERING_PLANS: frozenset({ProgressStep.DOWNLOADING}),
    ProgressStep.DOWNLOADING: frozenset({ProgressStep.PARSING}),
    ProgressStep.PARSING: frozenset({ProgressStep.COMPLETE}),
    ProgressStep.COMPLETE: frozenset(),
    ProgressStep.ERROR: frozenset(),
}

Observer = Callable[[ProgressStep], None]


class ProgressTracker:
    """
    Display-only progress for one run. A single writer moves it forward,
    observers (the UI) are told about every change. Upload runs jump from
    IDLE straight to PARSING. Any non-terminal step may fail into ERROR;
    reset() returns to IDLE from anywhere.
    """

    def __init__(self, observer: Optional[Observer] = None):
        self.step = ProgressStep.IDLE
        self.error: Optional[str] = None
        self._observers: List[Observer] = [observer] if observer else []

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def _set(self, step: ProgressStep) -> None:
        self.step = step
        for obs in self._observers:
            obs(step)

    def can_advance(self, step: ProgressStep) -> bool:
        return step in _TRANSITIONS[self.step]

    def advance(self, step: ProgressStep) -> None:
        step = ProgressStep(step)
        if not self.can_advance(step):
            raise ValueError(f"illegal progress transition {self.step.value} -> {step.value}")
        self._set(step)

    def fail(self, message: str) -> None:
        if self.step in (ProgressStep.COMPLETE, ProgressStep.ERROR):
            raise ValueError(f"cannot fail from {self.step.value}")
        self.error = message
        self._set(ProgressStep.ERROR)

    def reset(self) -> None:
        self.error = None
        self._set(ProgressStep.IDLE)

    @property
    def done(self) -> bool:
        return self.step in (ProgressStep.COMPLETE, ProgressStep.ERROR)

    @property
    def fraction(self) -> float:
        if self.step in ADDRESS_FLOW:
            return (ADDRESS_FLOW.index(self.step) + 1) / len(ADDRESS_FLOW)
        return 0.0
