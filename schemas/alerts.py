"""
Pydantic schemas for operational alerts
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone
from schemas.enums import AlertType, AlertSeverity, AlertCategory
import uuid


class AlertCreate(BaseModel):
    type: AlertType
    severity: AlertSeverity
    category: AlertCategory
    title: str = Field(..., min_length=1, max_length=300)
    message: str
    details: Optional[str] = None
    job_id: Optional[str] = None


class Alert(AlertCreate):
    """Immutable record of a notable event; only `acknowledged` ever changes"""
    id: str = Field(default_factory=lambda: f"alert_{uuid.uuid4().hex}")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    acknowledged: bool = False


class AlertFilter(BaseModel):
    type: Optional[AlertType] = None
    severity: Optional[AlertSeverity] = None
    category: Optional[AlertCategory] = None
    acknowledged: Optional[bool] = None
    job_id: Optional[str] = None
    since: Optional[datetime] = None
    limit: Optional[int] = Field(None, ge=1)
