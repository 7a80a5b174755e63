"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Health Check Schemas
# ============================================================================

class JobHealthInfo(BaseModel):
    """Per-job status line for the health check"""
    job_id: str
    name: str
    status: str
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=_utcnow)
    scheduler_running: bool
    jobs: List[JobHealthInfo] = Field(default_factory=list)
    total_jobs: int = 0
    successful_jobs: int = 0
    failed_jobs: int = 0

    @model_validator(mode="after")
    def determine_status(self):
        """Determine overall health status"""
        if self.total_jobs == 0 or self.failed_jobs == 0:
            self.status = "healthy"
        elif self.failed_jobs < self.total_jobs:
            self.status = "degraded"
        else:
            self.status = "unhealthy"
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "scheduler_running": True,
                "total_jobs": 2,
                "successful_jobs": 2,
                "failed_jobs": 0,
                "jobs": [
                    {
                        "job_id": "parcel-refresh",
                        "name": "Parcel refresh",
                        "status": "success",
                        "last_run_at": "2024-01-15T10:00:00Z",
                        "next_run_at": "2024-01-16T02:00:00Z"
                    }
                ]
            }
        }


# ============================================================================
# Data Source Action Schemas
# ============================================================================

class ConnectionStateResponse(BaseModel):
    source_id: str
    connected: bool
    last_connected_at: Optional[datetime] = None
    last_error: Optional[str] = None


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "error": "NotFoundError",
                "detail": "Job 'parcel-refresh' not found",
                "timestamp": "2024-01-15T10:30:00Z"
            }
        }


# ============================================================================
# Rule Preview Schema
# ============================================================================

class RuleTestRequest(BaseModel):
    """Sample records for POST /rules/{id}/test (only the first 100 are used)"""
    records: List[Dict[str, Any]] = Field(default_factory=list)
