"""
Pydantic schemas for jobs, schedules, run history and system status
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Any
from datetime import datetime, time, timezone
from schemas.enums import JobStatus, ScheduleFrequency, ScheduledJobState, RunTrigger
from schemas.rules import RowError
from schemas.quality import QualityChecks
import uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_ids(v: Any) -> Any:
    if isinstance(v, (list, tuple)):
        return [str(x) if isinstance(x, int) and not isinstance(x, bool) else x for x in v]
    return v


# ============================================================================
# Schedule
# ============================================================================

class Schedule(BaseModel):
    """
    Frequency descriptor governing automatic job execution.

    days_of_week uses 0=Sunday .. 6=Saturday. time_of_day is "HH:MM"
    (24h) in the scheduler timezone; naive start dates are read in that
    timezone as well.
    """

    frequency: ScheduleFrequency
    start_date: Optional[datetime] = None
    days_of_week: Optional[List[int]] = None
    time_of_day: Optional[str] = None

    @field_validator("frequency", mode="before")
    @classmethod
    def lower_frequency(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("time_of_day")
    @classmethod
    def validate_time_of_day(cls, v):
        if v is None:
            return v
        try:
            datetime.strptime(v, "%H:%M")
        except ValueError:
            raise ValueError(f"time_of_day must be HH:MM, got {v!r}")
        return v

    @field_validator("days_of_week")
    @classmethod
    def validate_days_of_week(cls, v):
        if v is None:
            return v
        for day in v:
            if day < 0 or day > 6:
                raise ValueError(f"days_of_week entries must be 0-6 (0=Sunday), got {day}")
        return sorted(set(v))

    @model_validator(mode="after")
    def check_frequency_requirements(self):
        if self.frequency == ScheduleFrequency.ONCE and self.start_date is None:
            raise ValueError("once schedules require start_date")
        if self.frequency in (
            ScheduleFrequency.DAILY,
            ScheduleFrequency.WEEKLY,
            ScheduleFrequency.MONTHLY,
        ) and not self.time_of_day:
            raise ValueError(f"{self.frequency.value} schedules require time_of_day")
        if self.frequency == ScheduleFrequency.WEEKLY and not self.days_of_week:
            raise ValueError("weekly schedules require a non-empty days_of_week")
        return self

    def clock_time(self) -> Optional[time]:
        if not self.time_of_day:
            return None
        return datetime.strptime(self.time_of_day, "%H:%M").time()


# ============================================================================
# Job
# ============================================================================

class Job(BaseModel):
    """A configured extract-transform-load task"""

    id: str = Field(default_factory=lambda: f"job_{uuid.uuid4().hex[:12]}", min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    source_ids: List[str] = Field(default_factory=list)
    destination_ids: List[str] = Field(default_factory=list)
    rule_ids: List[str] = Field(default_factory=list)
    status: JobStatus = JobStatus.CREATED
    schedule: Optional[Schedule] = None
    enabled: bool = True
    quality_checks: Optional[QualityChecks] = None

    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("source_ids", "destination_ids", "rule_ids", mode="before")
    @classmethod
    def coerce_ref_ids(cls, v):
        return _coerce_ids(v)


class JobCreate(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    source_ids: List[str] = Field(default_factory=list)
    destination_ids: List[str] = Field(default_factory=list)
    rule_ids: List[str] = Field(default_factory=list)
    schedule: Optional[Schedule] = None
    enabled: bool = True
    quality_checks: Optional[QualityChecks] = None

    @field_validator("source_ids", "destination_ids", "rule_ids", mode="before")
    @classmethod
    def coerce_ref_ids(cls, v):
        return _coerce_ids(v)


class JobUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    source_ids: Optional[List[str]] = None
    destination_ids: Optional[List[str]] = None
    rule_ids: Optional[List[str]] = None
    schedule: Optional[Schedule] = None
    enabled: Optional[bool] = None
    quality_checks: Optional[QualityChecks] = None

    @field_validator("source_ids", "destination_ids", "rule_ids", mode="before")
    @classmethod
    def coerce_ref_ids(cls, v):
        return _coerce_ids(v)


class ExcludedJob(BaseModel):
    """A catalog job left out of the active set, with the reason"""
    job_id: str
    name: str
    reason: str
    missing_source_ids: List[str] = Field(default_factory=list)
    missing_destination_ids: List[str] = Field(default_factory=list)
    missing_rule_ids: List[str] = Field(default_factory=list)
    excluded_at: datetime = Field(default_factory=_utcnow)


# ============================================================================
# Runs & Scheduling
# ============================================================================

class JobRun(BaseModel):
    """One execution of a job"""
    run_id: str = Field(default_factory=lambda: f"run_{uuid.uuid4().hex[:12]}")
    job_id: str
    trigger: RunTrigger = RunTrigger.MANUAL
    status: JobStatus = JobStatus.RUNNING
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    records_extracted: int = 0
    records_transformed: int = 0
    records_loaded: int = 0
    row_errors: List[RowError] = Field(default_factory=list)
    error_message: Optional[str] = None
    quality_score: Optional[float] = None
    data: List[dict] = Field(default_factory=list, exclude=True)


class ScheduledJob(BaseModel):
    """Snapshot of a scheduler registration"""
    job_id: str
    name: str
    schedule: Schedule
    state: ScheduledJobState = ScheduledJobState.SCHEDULED
    registered_at: datetime
    next_fire_at: Optional[datetime] = None
    last_fired_at: Optional[datetime] = None
    fire_count: int = 0


class SystemStatus(BaseModel):
    job_count: int
    data_source_count: int
    transformation_rule_count: int
    running_job_count: int = 0
    scheduled_job_count: int = 0
    excluded_job_count: int = 0
    scheduler_running: bool = False
    last_failure_at: Optional[datetime] = None
