from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ApiError(BaseModel):
    """Standard API error payload."""

    error: str
    detail: Optional[str] = None


class PrefixOut(BaseModel):
    """Image filename prefix derived from a unit id."""

    unit_id: str
    prefix: str
    resolved: bool


class ReclassifiedOut(BaseModel):
    source: str
    target: str
    kind: str
    removed: int = 0
    created: int = 0
    consumed: int = 0


class ReportOut(BaseModel):
    """What a normalization pass changed."""

    split_removed: int = 0
    split_fields: List[Dict[str, str]] = Field(default_factory=list)
    authority_fields_changed: int = 0
    reclassified: List[ReclassifiedOut] = Field(default_factory=list)


class NormalizeOut(BaseModel):
    """Normalized record plus the change report."""

    record_id: str
    doc_type: str = ""
    fields: List[Dict[str, Any]] = Field(default_factory=list)
    entities: List[Dict[str, Any]] = Field(default_factory=list)
    report: ReportOut
