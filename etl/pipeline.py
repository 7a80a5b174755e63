# ============================================================================
# File: etl/pipeline.py
# Description: Pipeline manager - catalogs, job execution and scheduling
# ============================================================================
"""
Pipeline Manager - Orchestrates Extract, Transform, Load for catalog jobs.

This module provides:
- Catalog ownership (jobs, transformation rules; data sources via the connector)
- Referential validation of jobs at initialize time and on CRUD
- Single-flight job execution (a second concurrent run is rejected)
- Status transitions and alerts for every outcome
- Data quality scoring of every transformed batch
- Registration of scheduled jobs with the JobScheduler
"""

import asyncio
import time
from typing import Dict, List, Optional, Set
from datetime import datetime, timezone
import logging

from etl.alerts import AlertRegistry
from etl.connector import DataConnector
from etl.quality import DataQualityAnalyzer
from etl.scheduler import JobScheduler
from etl.transformers.engine import TransformationEngine
from schemas.alerts import Alert, AlertFilter
from schemas.data_source import DataSource, DataSourceCreate, DataSourceUpdate
from schemas.rules import TransformationRule, TransformationRuleCreate, TransformationRuleUpdate
from schemas.jobs import Job, JobCreate, JobUpdate, JobRun, ExcludedJob, SystemStatus
from schemas.quality import QualityChecks, QualityReport
from schemas.enums import (
    JobStatus,
    RunTrigger,
    ScheduleFrequency,
    AlertType,
    AlertSeverity,
    AlertCategory,
)
from core.config import settings, Settings
from core.logging import log_context
from core.exceptions import (
    ConfigurationError,
    NotFoundError,
    ValidationError,
    ConcurrencyError,
    JobTimeoutError,
)

logger = logging.getLogger(__name__)

_DEFAULT = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PipelineManager:
    """
    ETL orchestrator over explicitly supplied components.

    Responsibilities:
    - Own the Job and TransformationRule catalogs (DataSources live in the connector)
    - Execute a job end to end: extract -> transform -> load
    - Map every failure to a job status plus an Alert
    - Keep the scheduler in sync with job edits
    """

    def __init__(
        self,
        connector: DataConnector,
        engine: TransformationEngine,
        scheduler: JobScheduler,
        alerts: AlertRegistry,
        execution_timeout=_DEFAULT,
        max_run_history: Optional[int] = None,
        quality: Optional[DataQualityAnalyzer] = None,
        quality_threshold: Optional[float] = None
    ):
        self.connector = connector
        self.engine = engine
        self.scheduler = scheduler
        self.alerts = alerts
        self.execution_timeout: Optional[float] = (
            settings.JOB_EXECUTION_TIMEOUT_SECONDS if execution_timeout is _DEFAULT else execution_timeout
        )
        self.max_run_history = max_run_history or settings.MAX_RUN_HISTORY
        self.quality = quality or DataQualityAnalyzer()
        self.quality_threshold = (
            settings.DATA_QUALITY_THRESHOLD if quality_threshold is None else quality_threshold
        )

        self._jobs: Dict[str, Job] = {}
        self._rules: Dict[str, TransformationRule] = {}
        self._excluded: Dict[str, ExcludedJob] = {}
        self._runs: Dict[str, List[JobRun]] = {}
        self._running: Set[str] = set()
        self._last_failure_at: Optional[datetime] = None
        self._shut_down = False

    # ========================================================================
    # Initialization & lifecycle
    # ========================================================================

    async def initialize(
        self,
        jobs: List[Job],
        data_sources: List[DataSource],
        transformation_rules: List[TransformationRule]
    ) -> None:
        """
        Load catalogs. Jobs whose references do not resolve are excluded
        (see get_excluded_jobs) rather than raising.
        """
        for job_id in list(self._jobs):
            self.scheduler.unschedule_job(job_id)
        await self.connector.close_all()
        for source in self.connector.get_all_data_sources():
            await self.connector.remove_data_source(source.id)

        self._jobs.clear()
        self._rules.clear()
        self._excluded.clear()

        for source in data_sources:
            self.connector.register_data_source(source)

        for rule in transformation_rules:
            self._rules[rule.id] = rule.model_copy(deep=True)

        for job in jobs:
            if job.id in self._jobs:
                logger.warning(f"Duplicate job id {job.id} in catalog; keeping the last definition")

            missing_sources, missing_destinations, missing_rules = self._missing_references(job)
            if missing_sources or missing_destinations or missing_rules:
                self._exclude(job, missing_sources, missing_destinations, missing_rules)
                continue

            active = job.model_copy(deep=True)
            self._jobs[active.id] = active
            if active.status == JobStatus.PAUSED:
                active.next_run_at = None
                logger.info(f"Job {active.id} is paused; not scheduling it")
            else:
                self._arm(active)

        logger.info(
            f"Pipeline initialized: {len(self._jobs)} jobs, "
            f"{len(data_sources)} data sources, {len(self._rules)} rules, "
            f"{len(self._excluded)} excluded"
        )

    def start(self) -> None:
        """Start the scheduler (requires a running event loop)"""
        self.scheduler.start()

    async def shutdown(self) -> None:
        """Stop the scheduler and release connector resources; safe to call twice"""
        if self._shut_down:
            return
        self._shut_down = True
        self.scheduler.shutdown()
        await self.connector.close_all()
        logger.info("Pipeline manager shut down")

    # ========================================================================
    # Execution
    # ========================================================================

    async def execute_job(self, job_id: str, trigger: RunTrigger = RunTrigger.MANUAL) -> JobRun:
        """
        Run a job end to end.

        Returns:
            JobRun describing the outcome (status success, warning or failed)

        Raises:
            NotFoundError: Unknown job id
            ConcurrencyError: The job is already running
        """
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Job '{job_id}' not found", context={"job_id": job_id})

        # check-and-set with no await in between
        if job_id in self._running:
            raise ConcurrencyError(
                f"Job '{job.name}' is already running",
                context={"job_id": job_id, "trigger": trigger.value}
            )
        self._running.add(job_id)

        run = JobRun(job_id=job_id, trigger=trigger)
        with log_context(job_id=job_id, run_id=run.run_id, trigger=trigger.value):
            job.status = JobStatus.RUNNING
            rules = self._snapshot_rules(job)
            started = time.perf_counter()

            logger.info(f"Starting job {job_id} ({job.name}) [{trigger.value}] with {len(rules)} rules")

            try:
                if self.execution_timeout:
                    await asyncio.wait_for(self._run_stages(job, rules, run), timeout=self.execution_timeout)
                else:
                    await self._run_stages(job, rules, run)

            except asyncio.TimeoutError as e:
                timeout_error = JobTimeoutError(
                    f"Execution exceeded {self.execution_timeout} seconds and was cancelled",
                    context={"job_id": job_id, "timeout_seconds": self.execution_timeout},
                    original_exception=e
                )
                self._fail(
                    job, run,
                    timeout_error.message,
                    severity=AlertSeverity.CRITICAL,
                    category=AlertCategory.JOB,
                    title=f"Job {job.name} timed out"
                )

            except Exception as e:
                logger.exception(f"Unexpected error while executing job {job_id}")
                self._fail(
                    job, run,
                    f"Unexpected error: {type(e).__name__}: {e}",
                    severity=AlertSeverity.CRITICAL,
                    category=AlertCategory.JOB,
                    title=f"Job {job.name} crashed"
                )

            finally:
                if run.status == JobStatus.RUNNING:
                    # Cancelled from outside
                    run.status = JobStatus.FAILED
                    run.error_message = "Execution cancelled"
                    job.status = JobStatus.FAILED
                    self._last_failure_at = _utcnow()

                run.completed_at = _utcnow()
                run.duration_seconds = round(time.perf_counter() - started, 3)
                job.updated_at = run.completed_at
                self._running.discard(job_id)
                self._record_run(run)
                self._after_run(job, run)

            logger.info(
                f"Job {job_id} finished with status {run.status.value}: "
                f"{run.records_extracted} extracted, {run.records_loaded} loaded, "
                f"{len(run.row_errors)} row errors in {run.duration_seconds}s"
            )
            return run.model_copy(deep=True)

    async def _run_stages(self, job: Job, rules: List[TransformationRule], run: JobRun) -> None:
        # --------------------------------------------------
        # PHASE 1: EXTRACT
        # --------------------------------------------------
        batch = []
        for source_id in job.source_ids:
            result = await self.connector.extract(source_id)
            if not result.success:
                self._fail(
                    job, run,
                    f"Extraction from {source_id} failed: {result.message}",
                    severity=AlertSeverity.HIGH,
                    category=AlertCategory.CONNECTION,
                    title=f"Extraction failed for job {job.name}"
                )
                return
            batch.extend(result.data)

        run.records_extracted = len(batch)

        # --------------------------------------------------
        # PHASE 2: TRANSFORM
        # --------------------------------------------------
        transformed = await self.engine.apply_transformations(batch, rules)
        if not transformed.success:
            reason = "; ".join(f"{issue.rule_name}: {issue.message}" for issue in transformed.rule_errors)
            self._fail(
                job, run,
                f"Transformation failed: {reason}",
                severity=AlertSeverity.HIGH,
                category=AlertCategory.JOB,
                title=f"Invalid transformation rule in job {job.name}"
            )
            return

        for warning in transformed.warnings:
            logger.warning(f"Job {job.id}: rule {warning.rule_name}: {warning.message}")

        run.records_transformed = transformed.output_records
        run.row_errors = transformed.errors
        run.data = transformed.data

        report = self.quality.analyze(transformed.data, job.quality_checks)
        run.quality_score = report.score

        # --------------------------------------------------
        # PHASE 3: LOAD
        # --------------------------------------------------
        # An empty batch is still delivered: replace-mode destinations are cleared
        # and unreachable destinations still fail the run
        if not transformed.data:
            logger.info(f"Job {job.id}: no records left after transformation")

        for destination_id in job.destination_ids:
            result = await self.connector.load(destination_id, transformed.data)
            if not result.success:
                self._fail(
                    job, run,
                    f"Load into {destination_id} failed: {result.message}",
                    severity=AlertSeverity.HIGH,
                    category=AlertCategory.CONNECTION,
                    title=f"Load failed for job {job.name}"
                )
                return
            run.records_loaded += result.records_loaded

        job.last_run_at = _utcnow()

        if report.record_count and report.score < self.quality_threshold:
            logger.warning(f"Job {job.id}: data quality score {report.score} below {self.quality_threshold}")
            self.alerts.emit(
                AlertType.WARNING,
                AlertSeverity.MEDIUM,
                AlertCategory.DATA_QUALITY,
                title=f"Low data quality in job {job.name}",
                message=f"Quality score {report.score} is below the threshold of {self.quality_threshold}",
                details="; ".join(report.recommendations[:3]) or report.summary,
                job_id=job.id
            )

        if transformed.errors:
            run.status = JobStatus.WARNING
            job.status = JobStatus.WARNING
            self.alerts.emit(
                AlertType.WARNING,
                AlertSeverity.MEDIUM,
                AlertCategory.DATA_QUALITY,
                title=f"Job {job.name} completed with row errors",
                message=f"{len(transformed.errors)} row errors across {run.records_extracted} records",
                details=transformed.errors[0].message,
                job_id=job.id
            )
        else:
            run.status = JobStatus.SUCCESS
            job.status = JobStatus.SUCCESS
            self.alerts.emit(
                AlertType.SUCCESS,
                AlertSeverity.LOW,
                AlertCategory.JOB,
                title=f"Job {job.name} completed",
                message=f"Loaded {run.records_loaded} records from {run.records_extracted} extracted",
                job_id=job.id
            )

    def _fail(
        self,
        job: Job,
        run: JobRun,
        message: str,
        severity: AlertSeverity,
        category: AlertCategory,
        title: str
    ) -> None:
        run.status = JobStatus.FAILED
        run.error_message = message
        job.status = JobStatus.FAILED
        self._last_failure_at = _utcnow()
        logger.error(f"Job {job.id} failed: {message}")
        self.alerts.emit(AlertType.ERROR, severity, category, title=title, message=message, job_id=job.id)

    def _record_run(self, run: JobRun) -> None:
        history = self._runs.setdefault(run.job_id, [])
        history.insert(0, run)
        del history[self.max_run_history:]

    def _after_run(self, job: Job, run: JobRun) -> None:
        scheduled = self.scheduler.get_scheduled_job(job.id)
        job.next_run_at = scheduled.next_fire_at if scheduled else None

        if (
            run.trigger == RunTrigger.SCHEDULED
            and job.schedule is not None
            and job.schedule.frequency == ScheduleFrequency.ONCE
            and run.status in (JobStatus.SUCCESS, JobStatus.WARNING)
        ):
            job.status = JobStatus.COMPLETED

    async def _on_schedule(self, job_id: str) -> None:
        """Handler registered with the scheduler for every scheduled job"""
        try:
            await self.execute_job(job_id, trigger=RunTrigger.SCHEDULED)
        except ConcurrencyError as e:
            logger.warning(f"Scheduled run of {job_id} skipped: {e.message}")
            self.alerts.emit(
                AlertType.WARNING,
                AlertSeverity.MEDIUM,
                AlertCategory.JOB,
                title="Scheduled run skipped",
                message=f"Job {job_id} was still running when its schedule fired",
                job_id=job_id
            )
        except NotFoundError:
            logger.warning(f"Scheduled job {job_id} no longer exists; unscheduling")
            self.scheduler.unschedule_job(job_id)

    # ========================================================================
    # Scheduling helpers
    # ========================================================================

    def _arm(self, job: Job) -> None:
        """Register an enabled scheduled job, otherwise mark it idle"""
        if job.enabled and job.schedule is not None:
            scheduled = self.scheduler.schedule_job(job.id, job.name, job.schedule, self._on_schedule)
            job.status = JobStatus.SCHEDULED
            job.next_run_at = scheduled.next_fire_at
        else:
            self.scheduler.unschedule_job(job.id)
            job.status = JobStatus.IDLE
            job.next_run_at = None

    def pause_job(self, job_id: str) -> Job:
        job = self._get_job(job_id)
        if job_id in self._running:
            raise ConcurrencyError(f"Job '{job.name}' is running and cannot be paused", context={"job_id": job_id})

        self.scheduler.unschedule_job(job_id)
        job.status = JobStatus.PAUSED
        job.next_run_at = None
        job.updated_at = _utcnow()
        logger.info(f"Paused job {job_id}")
        return self._job_snapshot(job)

    def resume_job(self, job_id: str) -> Job:
        job = self._get_job(job_id)
        if job_id in self._running:
            raise ConcurrencyError(f"Job '{job.name}' is running", context={"job_id": job_id})

        if self.scheduler.get_scheduled_job(job_id) is None:
            self._arm(job)
            job.updated_at = _utcnow()
            logger.info(f"Resumed job {job_id} (status {job.status.value})")
        return self._job_snapshot(job)

    # ========================================================================
    # Data source catalog
    # ========================================================================

    def create_data_source(self, data: DataSourceCreate) -> DataSource:
        if data.id and self.connector.has_data_source(data.id):
            raise ValidationError(
                f"Data source '{data.id}' already exists",
                context={"entity": "data_source", "reason": "duplicate id"}
            )
        try:
            self.connector.validate_configuration(data)
        except ConfigurationError as e:
            raise ValidationError(
                e.message,
                context={"entity": "data_source", "reason": "invalid configuration"},
                original_exception=e
            )

        source_id = self.connector.register_data_source(data)
        logger.info(f"Created data source {source_id}")
        return self.connector.get_data_source(source_id)

    def get_data_source(self, source_id: str) -> DataSource:
        return self.connector.get_data_source(source_id)

    def get_all_data_sources(self) -> List[DataSource]:
        return self.connector.get_all_data_sources()

    async def update_data_source(self, source_id: str, update: DataSourceUpdate) -> DataSource:
        current = self.connector.get_data_source(source_id)
        if update.configuration is not None:
            candidate = current.model_copy(update={"configuration": update.configuration})
            try:
                self.connector.validate_configuration(candidate)
            except ConfigurationError as e:
                raise ValidationError(
                    e.message,
                    context={"entity": "data_source", "reason": "invalid configuration"},
                    original_exception=e
                )
        return await self.connector.update_data_source(source_id, update)

    async def delete_data_source(self, source_id: str) -> None:
        self.connector.get_data_source(source_id)
        users = [j.id for j in self._jobs.values() if source_id in j.source_ids or source_id in j.destination_ids]
        if users:
            raise ValidationError(
                f"Data source '{source_id}' is referenced by jobs: {', '.join(users)}",
                context={"entity": "data_source", "reason": "still referenced", "job_ids": users}
            )
        await self.connector.remove_data_source(source_id)

    # ========================================================================
    # Transformation rule catalog
    # ========================================================================

    def create_transformation_rule(self, data: TransformationRuleCreate) -> TransformationRule:
        if data.id and data.id in self._rules:
            raise ValidationError(
                f"Transformation rule '{data.id}' already exists",
                context={"entity": "transformation_rule", "reason": "duplicate id"}
            )

        rule = TransformationRule(**data.model_dump(exclude_none=True))
        self._validate_rule(rule)
        self._rules[rule.id] = rule
        logger.info(f"Created transformation rule {rule.id} ({rule.type.value})")
        return rule.model_copy(deep=True)

    def get_transformation_rule(self, rule_id: str) -> TransformationRule:
        return self._get_rule(rule_id).model_copy(deep=True)

    def get_all_transformation_rules(self) -> List[TransformationRule]:
        return [r.model_copy(deep=True) for r in self._rules.values()]

    def update_transformation_rule(self, rule_id: str, update: TransformationRuleUpdate) -> TransformationRule:
        current = self._get_rule(rule_id)
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        updated = current.model_copy(update={**changes, "updated_at": _utcnow()}, deep=True)
        self._validate_rule(updated)

        # Runs in flight hold their own snapshot
        self._rules[rule_id] = updated
        return updated.model_copy(deep=True)

    def delete_transformation_rule(self, rule_id: str) -> None:
        self._get_rule(rule_id)
        users = [j.id for j in self._jobs.values() if rule_id in j.rule_ids]
        if users:
            raise ValidationError(
                f"Transformation rule '{rule_id}' is referenced by jobs: {', '.join(users)}",
                context={"entity": "transformation_rule", "reason": "still referenced", "job_ids": users}
            )
        del self._rules[rule_id]

    def _validate_rule(self, rule: TransformationRule) -> None:
        try:
            self.engine.validate_rule(rule)
        except ConfigurationError as e:
            raise ValidationError(
                e.message,
                context={"entity": "transformation_rule", "reason": "invalid configuration"},
                original_exception=e
            )

    # ========================================================================
    # Job catalog
    # ========================================================================

    def create_job(self, data: JobCreate) -> Job:
        if data.id and data.id in self._jobs:
            raise ValidationError(
                f"Job '{data.id}' already exists",
                context={"entity": "job", "reason": "duplicate id"}
            )

        job = Job(**data.model_dump(exclude_none=True))
        self._require_references(job)
        self._jobs[job.id] = job
        self._excluded.pop(job.id, None)
        self._arm(job)
        logger.info(f"Created job {job.id} ({job.status.value})")
        return self._job_snapshot(job)

    def get_job(self, job_id: str) -> Job:
        return self._job_snapshot(self._get_job(job_id))

    def get_all_jobs(self) -> List[Job]:
        return [self._job_snapshot(j) for j in self._jobs.values()]

    def update_job(self, job_id: str, update: JobUpdate) -> Job:
        current = self._get_job(job_id)
        if job_id in self._running:
            raise ConcurrencyError(f"Job '{current.name}' is running and cannot be updated", context={"job_id": job_id})

        changes = update.model_dump(exclude_unset=True)
        changes = {k: v for k, v in changes.items() if v is not None or k in ("schedule", "quality_checks")}
        if "schedule" in changes:
            changes["schedule"] = update.schedule
        if "quality_checks" in changes:
            changes["quality_checks"] = update.quality_checks
        updated = current.model_copy(update={**changes, "updated_at": _utcnow()})
        self._require_references(updated)

        self._jobs[job_id] = updated
        if current.status != JobStatus.PAUSED:
            self._arm(updated)
        return self._job_snapshot(updated)

    def delete_job(self, job_id: str) -> None:
        job = self._get_job(job_id)
        if job_id in self._running:
            raise ConcurrencyError(f"Job '{job.name}' is running and cannot be deleted", context={"job_id": job_id})

        self.scheduler.unschedule_job(job_id)
        del self._jobs[job_id]
        self._runs.pop(job_id, None)
        logger.info(f"Deleted job {job_id}")

    def get_job_runs(self, job_id: str) -> List[JobRun]:
        self._get_job(job_id)
        return [r.model_copy(deep=True) for r in self._runs.get(job_id, [])]

    def get_excluded_jobs(self) -> List[ExcludedJob]:
        return [e.model_copy(deep=True) for e in self._excluded.values()]

    def _missing_references(self, job: Job):
        missing_sources = [s for s in job.source_ids if not self.connector.has_data_source(s)]
        missing_destinations = [d for d in job.destination_ids if not self.connector.has_data_source(d)]
        missing_rules = [r for r in job.rule_ids if r not in self._rules]
        return missing_sources, missing_destinations, missing_rules

    def _require_references(self, job: Job) -> None:
        missing_sources, missing_destinations, missing_rules = self._missing_references(job)
        if missing_sources or missing_destinations or missing_rules:
            raise ValidationError(
                f"Job '{job.name}' references unknown entities",
                context={
                    "entity": "job",
                    "reason": "unresolved reference",
                    "missing_source_ids": missing_sources,
                    "missing_destination_ids": missing_destinations,
                    "missing_rule_ids": missing_rules
                }
            )

    def _exclude(self, job: Job, missing_sources, missing_destinations, missing_rules) -> None:
        parts = []
        if missing_sources:
            parts.append(f"sources {', '.join(missing_sources)}")
        if missing_destinations:
            parts.append(f"destinations {', '.join(missing_destinations)}")
        if missing_rules:
            parts.append(f"rules {', '.join(missing_rules)}")
        reason = f"Unresolved references: {'; '.join(parts)}"

        self._excluded[job.id] = ExcludedJob(
            job_id=job.id,
            name=job.name,
            reason=reason,
            missing_source_ids=missing_sources,
            missing_destination_ids=missing_destinations,
            missing_rule_ids=missing_rules
        )
        logger.warning(f"Excluding job {job.id} ({job.name}): {reason}")
        self.alerts.emit(
            AlertType.WARNING,
            AlertSeverity.MEDIUM,
            AlertCategory.JOB,
            title=f"Job {job.name} excluded",
            message=reason,
            job_id=job.id
        )

    # ========================================================================
    # Read-only views
    # ========================================================================

    def get_alerts(self, filter: Optional[AlertFilter] = None) -> List[Alert]:
        return self.alerts.get_alerts(filter)

    def get_system_status(self) -> SystemStatus:
        return SystemStatus(
            job_count=len(self._jobs),
            data_source_count=len(self.connector.get_all_data_sources()),
            transformation_rule_count=len(self._rules),
            running_job_count=len(self._running),
            scheduled_job_count=len(self.scheduler.get_all_scheduled_jobs()),
            excluded_job_count=len(self._excluded),
            scheduler_running=self.scheduler.is_running,
            last_failure_at=self._last_failure_at
        )

    def analyze_quality(self, records: List[dict], checks: Optional[QualityChecks] = None) -> QualityReport:
        """Score a sample batch without running a job"""
        return self.quality.analyze(records, checks)

    def is_running(self, job_id: str) -> bool:
        return job_id in self._running

    # ========================================================================
    # Internals
    # ========================================================================

    def _get_job(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Job '{job_id}' not found", context={"job_id": job_id})
        return job

    def _get_rule(self, rule_id: str) -> TransformationRule:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise NotFoundError(f"Transformation rule '{rule_id}' not found", context={"rule_id": rule_id})
        return rule

    def _snapshot_rules(self, job: Job) -> List[TransformationRule]:
        rules = []
        for position, rule_id in enumerate(job.rule_ids):
            rule = self._rules.get(rule_id)
            if rule is None:
                logger.warning(f"Job {job.id} references missing rule {rule_id}; skipping it")
                continue
            rules.append((rule.order, position, rule.model_copy(deep=True)))
        return [rule for _, _, rule in sorted(rules, key=lambda item: (item[0], item[1]))]

    def _job_snapshot(self, job: Job) -> Job:
        snapshot = job.model_copy(deep=True)
        scheduled = self.scheduler.get_scheduled_job(job.id)
        if scheduled is not None:
            snapshot.next_run_at = scheduled.next_fire_at
        return snapshot


def build_pipeline(config: Optional[Settings] = None) -> PipelineManager:
    """Wire a PipelineManager with default components from settings"""
    config = config or settings
    alerts = AlertRegistry()
    return PipelineManager(
        connector=DataConnector(),
        engine=TransformationEngine(),
        scheduler=JobScheduler(alerts=alerts, timezone=config.SCHEDULER_TIMEZONE),
        alerts=alerts,
        execution_timeout=config.JOB_EXECUTION_TIMEOUT_SECONDS,
        max_run_history=config.MAX_RUN_HISTORY,
        quality=DataQualityAnalyzer(),
        quality_threshold=config.DATA_QUALITY_THRESHOLD
    )
