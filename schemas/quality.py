"""
Pydantic schemas for data quality checks and reports
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from schemas.enums import AlertSeverity, QualityIssueKind, ValueType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Checks
# ============================================================================

class ValueRange(BaseModel):
    """Inclusive bounds; either side may be omitted"""
    min: Optional[Any] = None
    max: Optional[Any] = None


class QualityChecks(BaseModel):
    """
    Optional expectations evaluated on top of the always-on completeness
    and type-consistency profile.

    unique_keys accepts single field names or lists of fields forming a
    composite key.
    """

    expected_types: Dict[str, ValueType] = Field(default_factory=dict)
    value_ranges: Dict[str, ValueRange] = Field(default_factory=dict)
    unique_keys: List[List[str]] = Field(default_factory=list)

    @field_validator("unique_keys", mode="before")
    @classmethod
    def wrap_single_fields(cls, v):
        if isinstance(v, (list, tuple)):
            return [[key] if isinstance(key, str) else key for key in v]
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "expected_types": {"parcel_id": "string", "value": "number"},
                "value_ranges": {"value": {"min": 0}},
                "unique_keys": ["parcel_id"]
            }
        }


# ============================================================================
# Report
# ============================================================================

class FieldProfile(BaseModel):
    """Completeness and type consistency of one field"""
    field: str
    present: int
    missing: int
    completeness: float
    inferred_type: Optional[ValueType] = None
    type_mismatches: int = 0
    consistency: float = 100.0


class QualityIssue(BaseModel):
    field: str
    kind: QualityIssueKind
    severity: AlertSeverity
    message: str
    affected_records: int
    recommendation: str


class QualityReport(BaseModel):
    """
    Result of DataQualityAnalyzer.analyze.

    completeness, consistency, accuracy and score are percentages (0-100);
    score is the mean of the other three.
    """

    record_count: int
    field_count: int
    completeness: float = 100.0
    consistency: float = 100.0
    accuracy: float = 100.0
    score: float = 100.0
    fields: List[FieldProfile] = Field(default_factory=list)
    issues: List[QualityIssue] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    summary: str = ""
    analyzed_at: datetime = Field(default_factory=_utcnow)


class QualityAnalysisRequest(BaseModel):
    """Body of POST /quality/analyze"""
    records: List[Dict[str, Any]] = Field(default_factory=list)
    checks: Optional[QualityChecks] = None
