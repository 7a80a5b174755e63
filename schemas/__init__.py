"""
Pydantic schemas for data validation and serialization.

This package defines the catalog entities, typed configurations and result
objects shared by the connector, transformation engine, scheduler, pipeline
manager and HTTP API:

Schemas:
    enums: Shared enums (job status, rule types, alert categories, ...)
    data_source: DataSource entity, per-type connector configs, connector results
    rules: TransformationRule entity, typed rule configs, engine results
    jobs: Job, Schedule, JobRun, ScheduledJob, SystemStatus
    alerts: Alert, AlertCreate, AlertFilter
    quality: QualityChecks, QualityReport and field profiles
    catalog: Catalog document (data_sources, transformation_rules, jobs)
    api: API endpoint request/response schemas

Usage:
    from schemas.jobs import Job, Schedule
    from schemas.enums import ScheduleFrequency

Example:
    schedule = Schedule(frequency="weekly", days_of_week=[1, 3], time_of_day="06:30")
    job = Job(id="nightly-parcels", name="Parcel refresh", schedule=schedule)

Validation:
    Schedule invariants are enforced at construction time:
    - weekly requires a non-empty days_of_week
    - daily/weekly/monthly require time_of_day
    - once requires start_date
"""

from schemas.data_source import DataSource
from schemas.rules import TransformationRule
from schemas.jobs import Job, Schedule, JobRun, ScheduledJob, SystemStatus
from schemas.alerts import Alert, AlertCreate
from schemas.catalog import Catalog

__all__ = [
    "DataSource",
    "TransformationRule",
    "Job",
    "Schedule",
    "JobRun",
    "ScheduledJob",
    "SystemStatus",
    "Alert",
    "AlertCreate",
    "Catalog",
]
