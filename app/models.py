# -*- coding: utf-8 -*-
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AddressMatch(BaseModel):
    """One SearchAndLocate hit. Values[0] is the block, Values[1] the parcel."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    object_id: Optional[int] = Field(default=None, alias="ObjectId")
    created: Optional[str] = Field(default=None, alias="Created")
    is_editable: bool = Field(default=False, alias="IsEditable")
    values: List[float] = Field(default_factory=list, alias="Values")

    @property
    def block(self) -> int:
        return int(self.values[0])

    @property
    def parcel(self) -> int:
        return int(self.values[1])


class ParcelId(BaseModel):
    block: int
    parcel: int


class RegulationDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    path: Optional[str] = None
    info: Optional[str] = None
    code: Optional[int] = Field(default=None, alias="codeMismach")


class PlanRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    plan_number: str = Field(default="", alias="planNumber")
    plan_id: Optional[int] = Field(default=None, alias="planId")
    city: str = Field(default="", alias="cityText")
    nature: str = Field(default="", alias="mahut")
    status: str = ""
    status_date: str = Field(default="", alias="statusDate")
    relation_type: Optional[str] = Field(default=None, alias="relationType")
    documents: Dict[str, Any] = Field(default_factory=dict, alias="documentsSet")

    @field_validator("plan_number", "city", "nature", "status", "status_date", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else str(v)

    @field_validator("documents", mode="before")
    @classmethod
    def _none_to_dict(cls, v):
        return v or {}

    @property
    def regulation(self) -> Optional[RegulationDocument]:
        takanon = self.documents.get("takanon")
        if not isinstance(takanon, dict):
            return None
        return RegulationDocument.model_validate(takanon)

    @property
    def regulation_path(self) -> Optional[str]:
        doc = self.regulation
        if doc is None or not (doc.path or "").strip():
            return None
        return doc.path

    @property
    def is_usable(self) -> bool:
        return self.regulation_path is not None


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


class ExtractedTable(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page_number: Optional[int] = Field(default=None, alias="pageNumber")
    title: Optional[str] = None
    headers: List[str] = Field(default_factory=list)
    # row lengths are not required to match
    rows: List[List[str]] = Field(default_factory=list)

    @field_validator("headers", mode="before")
    @classmethod
    def _headers_to_str(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            return v
        return [_cell(h) for h in v]

    @field_validator("rows", mode="before")
    @classmethod
    def _rows_to_str(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            return v
        return [[_cell(c) for c in row] if isinstance(row, list) else row for row in v]

    @property
    def width(self) -> int:
        return max([len(self.headers)] + [len(r) for r in self.rows])


class TablesPayload(BaseModel):
    tables: List[ExtractedTable] = Field(default_factory=list)

    @field_validator("tables", mode="before")
    @classmethod
    def _none_to_list(cls, v):
        return v or []


class PlanDetails(BaseModel):
    """What gets echoed back to the client and written to the summary sheet."""
    model_config = ConfigDict(populate_by_name=True)

    plan_number: str = Field(alias="planNumber")
    city: str = Field(default="", alias="cityText")
    nature: str = Field(default="", alias="mahut")
    status: str = ""
    status_date: str = Field(default="", alias="statusDate")
    block: Optional[int] = None
    parcel: Optional[int] = None

    @classmethod
    def from_plan(cls, plan: PlanRecord, block: Optional[int] = None, parcel: Optional[int] = None) -> "PlanDetails":
        return cls(
            plan_number=plan.plan_number,
            city=plan.city,
            nature=plan.nature,
            status=plan.status,
            status_date=plan.status_date,
            block=block,
            parcel=parcel,
        )
