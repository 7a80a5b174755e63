"""
Alert query and acknowledgment endpoints
"""

from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from api.dependencies import get_manager
from etl.pipeline import PipelineManager
from schemas.alerts import Alert, AlertFilter
from schemas.enums import AlertType, AlertSeverity, AlertCategory

router = APIRouter(prefix="/alerts", tags=["Alerts"])


@router.get("", response_model=List[Alert])
async def list_alerts(
    type: Optional[AlertType] = Query(None, description="Filter by alert type"),
    severity: Optional[AlertSeverity] = Query(None, description="Filter by severity"),
    category: Optional[AlertCategory] = Query(None, description="Filter by category"),
    acknowledged: Optional[bool] = Query(None, description="Filter by acknowledgment"),
    job_id: Optional[str] = Query(None, description="Filter by job"),
    since: Optional[datetime] = Query(None, description="Only alerts created at or after this time"),
    limit: Optional[int] = Query(100, ge=1, le=1000, description="Maximum alerts returned"),
    manager: PipelineManager = Depends(get_manager)
):
    """Alerts, most recent first"""
    return manager.get_alerts(AlertFilter(
        type=type,
        severity=severity,
        category=category,
        acknowledged=acknowledged,
        job_id=job_id,
        since=since,
        limit=limit
    ))


@router.get("/{alert_id}", response_model=Alert)
async def get_alert(alert_id: str, manager: PipelineManager = Depends(get_manager)):
    return manager.alerts.get_alert(alert_id)


@router.post("/{alert_id}/acknowledge", response_model=Alert)
async def acknowledge_alert(alert_id: str, manager: PipelineManager = Depends(get_manager)):
    return manager.alerts.acknowledge_alert(alert_id)
