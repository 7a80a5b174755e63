"""
Integration tests for the pipeline manager: execution outcomes, alerts,
concurrency, scheduling and catalog maintenance
"""

import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch
from etl.alerts import AlertRegistry
from etl.connector import DataConnector
from etl.connectors.base import BaseConnector
from etl.pipeline import PipelineManager
from etl.scheduler import JobScheduler
from etl.transformers.engine import TransformationEngine
from schemas.alerts import AlertFilter
from schemas.data_source import DataSource, DataSourceCreate, DataSourceUpdate
from schemas.rules import TransformationRule, TransformationRuleCreate, TransformationRuleUpdate
from schemas.jobs import Job, JobCreate, JobUpdate, Schedule
from schemas.enums import (
    DataSourceType,
    RuleType,
    JobStatus,
    RunTrigger,
    AlertType,
    AlertSeverity,
    AlertCategory,
)
from schemas.quality import QualityChecks
from core.exceptions import ConcurrencyError, NotFoundError, ValidationError, LoadError


class GatedConnector(BaseConnector):
    """Custom connector whose reads wait on an event"""

    def __init__(self, source_id, source_name, gate, delay=0):
        super().__init__(source_id, source_name)
        self.gate = gate
        self.delay = delay

    async def connect(self):
        self.connected = True

    async def read(self, query=None):
        if self.delay:
            await asyncio.sleep(self.delay)
        await self.gate.wait()
        return [{"parcel_id": "P-1", "value": 50}]

    async def write(self, records):
        return len(records)


class RejectingConnector(BaseConnector):
    """Custom destination whose writes always fail"""

    async def connect(self):
        self.connected = True

    async def read(self, query=None):
        return []

    async def write(self, records):
        raise LoadError(f"{self.source_name} rejected {len(records)} records", context={"source_id": self.source_id})


def _gated_source(source_id="gated"):
    return DataSource(
        id=source_id,
        name="Gated feed",
        type=DataSourceType.CUSTOM,
        configuration={"connector": "gated"}
    )


async def _wait_for(predicate, timeout=5.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


# ============================================================================
# Execution outcomes
# ============================================================================

class TestExecution:

    @pytest.mark.asyncio
    async def test_successful_run(self, loaded_manager):
        run = await loaded_manager.execute_job("parcel-refresh")

        assert run.status == JobStatus.SUCCESS
        assert run.trigger == RunTrigger.MANUAL
        assert run.records_extracted == 5
        assert run.records_transformed == 3
        assert run.records_loaded == 3
        assert run.duration_seconds is not None

        job = loaded_manager.get_job("parcel-refresh")
        assert job.status == JobStatus.SUCCESS
        assert job.last_run_at is not None

        loaded = await loaded_manager.connector.extract("parcels-clean")
        assert [r["parcel_id"] for r in loaded.data] == ["P-2", "P-3", "P-5"]

        [alert] = loaded_manager.get_alerts()
        assert alert.type == AlertType.SUCCESS
        assert alert.severity == AlertSeverity.LOW
        assert alert.job_id == "parcel-refresh"

    @pytest.mark.asyncio
    async def test_zero_rows_after_filter_is_success(self, manager, memory_sources, parcel_job):
        strict = TransformationRule(
            id="value-over-15",
            name="Nothing passes",
            type=RuleType.FILTER,
            configuration={"conditions": [{"field": "value", "operator": "greater_than", "value": 1000}]}
        )
        await manager.initialize([parcel_job], memory_sources, [strict])

        run = await manager.execute_job("parcel-refresh")

        assert run.status == JobStatus.SUCCESS
        assert run.records_loaded == 0
        assert (await manager.connector.extract("parcels-clean")).data == []

    @pytest.mark.asyncio
    async def test_zero_rows_replace_previous_destination_contents(self, manager, memory_sources, parcel_job):
        memory_sources[1].configuration["records"] = [{"parcel_id": "P-old", "stale": True}]
        strict = TransformationRule(
            id="value-over-15",
            name="Nothing passes",
            type=RuleType.FILTER,
            configuration={"conditions": [{"field": "value", "operator": "greater_than", "value": 1000}]}
        )
        await manager.initialize([parcel_job], memory_sources, [strict])
        assert (await manager.connector.extract("parcels-clean")).data != []

        run = await manager.execute_job("parcel-refresh")

        assert run.status == JobStatus.SUCCESS
        assert (await manager.connector.extract("parcels-clean")).data == []

    @pytest.mark.asyncio
    async def test_zero_rows_into_unreachable_destination_fails(self, manager, memory_sources, tmp_path):
        memory_sources[0].configuration["records"] = []
        sources = [
            memory_sources[0],
            DataSource(
                id="export",
                name="Export",
                type=DataSourceType.FILE,
                configuration={"path": str(tmp_path / "no-such-dir" / "parcels.csv")}
            ),
        ]
        job = Job(id="export-parcels", name="Export parcels", source_ids=["parcels-raw"], destination_ids=["export"])
        await manager.initialize([job], sources, [])

        run = await manager.execute_job("export-parcels")

        assert run.status == JobStatus.FAILED
        assert run.records_extracted == 0
        assert "export" in run.error_message
        assert manager.get_job("export-parcels").last_run_at is None

        [alert] = manager.get_alerts()
        assert alert.type == AlertType.ERROR
        assert alert.category == AlertCategory.CONNECTION

    @pytest.mark.asyncio
    async def test_row_errors_finish_with_warning(self, manager, memory_sources):
        memory_sources[0].configuration["records"] = [
            {"parcel_id": "P-1", "value": "12"},
            {"parcel_id": "P-2", "value": "n/a"},
        ]
        to_int = TransformationRule(
            id="value-to-int",
            name="Value to integer",
            type=RuleType.CONVERT,
            configuration={"field": "value", "target_type": "integer"}
        )
        job = Job(
            id="convert-values",
            name="Convert values",
            source_ids=["parcels-raw"],
            destination_ids=["parcels-clean"],
            rule_ids=["value-to-int"]
        )
        await manager.initialize([job], memory_sources, [to_int])

        run = await manager.execute_job("convert-values")

        assert run.status == JobStatus.WARNING
        assert run.records_loaded == 2
        assert len(run.row_errors) == 1
        assert run.row_errors[0].record_index == 1
        assert manager.get_job("convert-values").last_run_at is not None

        [alert] = manager.get_alerts()
        assert alert.type == AlertType.WARNING
        assert alert.severity == AlertSeverity.MEDIUM
        assert alert.category == AlertCategory.DATA_QUALITY

    @pytest.mark.asyncio
    async def test_extraction_failure(self, manager, tmp_path):
        sources = [
            DataSource(
                id="assessments",
                name="Assessments",
                type=DataSourceType.FILE,
                configuration={"path": str(tmp_path / "missing.csv")}
            ),
            DataSource(id="out", name="Out", type=DataSourceType.MEMORY, configuration={"data_key": "out"}),
        ]
        job = Job(id="import", name="Import", source_ids=["assessments"], destination_ids=["out"])
        await manager.initialize([job], sources, [])

        run = await manager.execute_job("import")

        assert run.status == JobStatus.FAILED
        assert "assessments" in run.error_message
        assert manager.get_job("import").status == JobStatus.FAILED
        assert manager.get_job("import").last_run_at is None

        [alert] = manager.get_alerts()
        assert alert.type == AlertType.ERROR
        assert alert.severity == AlertSeverity.HIGH
        assert alert.category == AlertCategory.CONNECTION
        assert manager.get_system_status().last_failure_at is not None

    @pytest.mark.asyncio
    async def test_load_failure(self, manager, memory_sources, value_filter_rule, parcel_job):
        manager.connector.register_connector_factory(
            "rejecting", lambda source, options: RejectingConnector(source.id, source.name)
        )
        sources = [
            memory_sources[0],
            DataSource(
                id="parcels-clean",
                name="Warehouse",
                type=DataSourceType.CUSTOM,
                configuration={"connector": "rejecting"}
            ),
        ]
        await manager.initialize([parcel_job], sources, [value_filter_rule])

        run = await manager.execute_job("parcel-refresh")

        assert run.status == JobStatus.FAILED
        assert run.records_transformed == 3
        assert run.records_loaded == 0
        assert "parcels-clean" in run.error_message
        assert manager.get_job("parcel-refresh").status == JobStatus.FAILED
        assert manager.get_job("parcel-refresh").last_run_at is None

        [alert] = manager.get_alerts()
        assert alert.type == AlertType.ERROR
        assert alert.severity == AlertSeverity.HIGH
        assert alert.category == AlertCategory.CONNECTION
        assert manager.get_data_source("parcels-clean").last_error

    @pytest.mark.asyncio
    async def test_low_quality_batch_raises_data_quality_warning(self, manager, memory_sources):
        memory_sources[0].configuration["records"] = [
            {"parcel_id": "P-1", "value": None, "zone": None},
            {"parcel_id": "P-2", "value": None, "zone": ""},
        ]
        job = Job(id="sparse", name="Sparse parcels", source_ids=["parcels-raw"], destination_ids=["parcels-clean"])
        await manager.initialize([job], memory_sources, [])

        run = await manager.execute_job("sparse")

        assert run.status == JobStatus.SUCCESS
        assert run.records_loaded == 2
        assert run.quality_score == 77.8

        [alert] = manager.get_alerts(AlertFilter(category=AlertCategory.DATA_QUALITY))
        assert alert.type == AlertType.WARNING
        assert alert.severity == AlertSeverity.MEDIUM
        assert alert.job_id == "sparse"
        assert "77.8" in alert.message

    @pytest.mark.asyncio
    async def test_job_quality_checks_feed_the_score(self, manager, memory_sources, parcel_job):
        parcel_job.rule_ids = []
        parcel_job.quality_checks = QualityChecks(unique_keys=["zone"])
        await manager.initialize([parcel_job], memory_sources, [])

        run = await manager.execute_job("parcel-refresh")

        # 2 of 5 zones repeat: accuracy 60%
        assert run.quality_score == 86.7
        assert manager.get_alerts(AlertFilter(category=AlertCategory.DATA_QUALITY)) == []

    @pytest.mark.asyncio
    async def test_invalid_rule_fails_job(self, manager, memory_sources, parcel_job):
        broken = TransformationRule(
            id="value-over-15",
            name="Broken filter",
            type=RuleType.FILTER,
            configuration={"conditions": []}
        )
        await manager.initialize([parcel_job], memory_sources, [broken])

        run = await manager.execute_job("parcel-refresh")

        assert run.status == JobStatus.FAILED
        assert "Broken filter" in run.error_message
        assert (await manager.connector.extract("parcels-clean")).data == []

        [alert] = manager.get_alerts()
        assert alert.severity == AlertSeverity.HIGH
        assert alert.category == AlertCategory.JOB

    @pytest.mark.asyncio
    async def test_rules_run_in_order_then_position(self, manager, memory_sources):
        rules = [
            TransformationRule(
                id="flatten",
                name="Flatten value",
                type=RuleType.MAP,
                order=2,
                configuration={"mappings": [{"target": "value", "operation": "constant", "value": 100}]}
            ),
            TransformationRule(
                id="over-20",
                name="Over 20",
                type=RuleType.FILTER,
                order=1,
                configuration={"conditions": [{"field": "value", "operator": "greater_than", "value": 20}]}
            ),
        ]
        job = Job(
            id="ordered",
            name="Ordered",
            source_ids=["parcels-raw"],
            destination_ids=["parcels-clean"],
            rule_ids=["flatten", "over-20"]
        )
        await manager.initialize([job], memory_sources, rules)

        run = await manager.execute_job("ordered")

        # filter (order 1) runs before the constant overwrite (order 2)
        assert run.records_loaded == 2

    @pytest.mark.asyncio
    async def test_unknown_job_raises(self, manager):
        with pytest.raises(NotFoundError):
            await manager.execute_job("missing")

    @pytest.mark.asyncio
    async def test_disabled_job_runs_manually(self, manager, memory_sources, value_filter_rule, parcel_job):
        parcel_job.enabled = False
        await manager.initialize([parcel_job], memory_sources, [value_filter_rule])

        run = await manager.execute_job("parcel-refresh")

        assert run.status == JobStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_run_history_newest_first_and_bounded(self, memory_sources, value_filter_rule, parcel_job):
        alerts = AlertRegistry()
        manager = PipelineManager(
            connector=DataConnector(),
            engine=TransformationEngine(),
            scheduler=JobScheduler(alerts=alerts, timezone="UTC"),
            alerts=alerts,
            execution_timeout=None,
            max_run_history=2
        )
        await manager.initialize([parcel_job], memory_sources, [value_filter_rule])

        runs = [await manager.execute_job("parcel-refresh") for _ in range(3)]
        history = manager.get_job_runs("parcel-refresh")
        await manager.shutdown()

        assert [r.run_id for r in history] == [runs[2].run_id, runs[1].run_id]


# ============================================================================
# Concurrency & timeouts
# ============================================================================

class TestConcurrency:

    @pytest.mark.asyncio
    async def test_second_run_is_rejected(self, manager):
        gate = asyncio.Event()
        manager.connector.register_connector_factory(
            "gated", lambda source, options: GatedConnector(source.id, source.name, gate)
        )
        out = DataSource(id="out", name="Out", type=DataSourceType.MEMORY, configuration={"data_key": "out"})
        job = Job(id="slow", name="Slow", source_ids=["gated"], destination_ids=["out"])
        await manager.initialize([job], [_gated_source(), out], [])

        first = asyncio.create_task(manager.execute_job("slow"))
        await _wait_for(lambda: manager.is_running("slow"))

        with pytest.raises(ConcurrencyError):
            await manager.execute_job("slow")
        with pytest.raises(ConcurrencyError):
            manager.pause_job("slow")
        with pytest.raises(ConcurrencyError):
            manager.update_job("slow", JobUpdate(name="Renamed"))
        assert manager.get_system_status().running_job_count == 1

        gate.set()
        run = await first

        assert run.status == JobStatus.SUCCESS
        assert manager.is_running("slow") is False
        assert len(manager.get_job_runs("slow")) == 1

    @pytest.mark.asyncio
    async def test_timeout_fails_with_critical_alert(self):
        alerts = AlertRegistry()
        manager = PipelineManager(
            connector=DataConnector(),
            engine=TransformationEngine(),
            scheduler=JobScheduler(alerts=alerts, timezone="UTC"),
            alerts=alerts,
            execution_timeout=0.1
        )
        gate = asyncio.Event()
        manager.connector.register_connector_factory(
            "gated", lambda source, options: GatedConnector(source.id, source.name, gate)
        )
        out = DataSource(id="out", name="Out", type=DataSourceType.MEMORY, configuration={"data_key": "out"})
        job = Job(id="stuck", name="Stuck", source_ids=["gated"], destination_ids=["out"])
        await manager.initialize([job], [_gated_source(), out], [])

        run = await manager.execute_job("stuck")
        await manager.shutdown()

        assert run.status == JobStatus.FAILED
        assert "0.1 seconds" in run.error_message
        assert manager.is_running("stuck") is False

        [alert] = alerts.get_alerts()
        assert alert.severity == AlertSeverity.CRITICAL

    @pytest.mark.asyncio
    async def test_unexpected_error_is_critical(self, manager, memory_sources, value_filter_rule, parcel_job):
        await manager.initialize([parcel_job], memory_sources, [value_filter_rule])

        async def explode(records, rules):
            raise RuntimeError("engine crashed")

        manager.engine.apply_transformations = explode

        run = await manager.execute_job("parcel-refresh")

        assert run.status == JobStatus.FAILED
        assert "engine crashed" in run.error_message
        [alert] = manager.get_alerts()
        assert alert.severity == AlertSeverity.CRITICAL


# ============================================================================
# Initialization & scheduling
# ============================================================================

class TestInitialization:

    @pytest.mark.asyncio
    async def test_jobs_with_missing_references_are_excluded(
        self, manager, memory_sources, value_filter_rule, parcel_job
    ):
        orphan = Job(
            id="orphan",
            name="Orphan",
            source_ids=["nowhere"],
            destination_ids=["parcels-clean"],
            rule_ids=["no-such-rule"]
        )
        nightly = Job(
            id="nightly",
            name="Nightly",
            source_ids=["parcels-raw"],
            destination_ids=["parcels-clean"],
            schedule=Schedule(frequency="daily", time_of_day="02:00")
        )

        await manager.initialize([parcel_job, orphan, nightly], memory_sources, [value_filter_rule])

        [excluded] = manager.get_excluded_jobs()
        assert excluded.job_id == "orphan"
        assert excluded.missing_source_ids == ["nowhere"]
        assert excluded.missing_rule_ids == ["no-such-rule"]

        with pytest.raises(NotFoundError):
            manager.get_job("orphan")

        assert manager.get_job("nightly").status == JobStatus.SCHEDULED
        assert manager.get_job("nightly").next_run_at is not None
        assert manager.get_job("parcel-refresh").status == JobStatus.IDLE

        status = manager.get_system_status()
        assert status.job_count == 2
        assert status.data_source_count == 2
        assert status.transformation_rule_count == 1
        assert status.excluded_job_count == 1
        assert status.scheduled_job_count == 1
        assert status.running_job_count == 0

        [alert] = manager.get_alerts(AlertFilter(type=AlertType.WARNING))
        assert alert.job_id == "orphan"

    @pytest.mark.asyncio
    async def test_status_counts_after_initialize(self, manager, memory_sources, value_filter_rule, parcel_job):
        jobs = [
            parcel_job,
            parcel_job.model_copy(update={"id": "parcel-refresh-2"}),
            parcel_job.model_copy(update={"id": "parcel-refresh-3", "rule_ids": []}),
        ]

        await manager.initialize(jobs, memory_sources, [value_filter_rule])

        status = manager.get_system_status()
        assert status.job_count == 3
        assert status.data_source_count == 2
        assert status.transformation_rule_count == 1
        assert status.excluded_job_count == 0

    @pytest.mark.asyncio
    async def test_reinitialize_replaces_catalog(self, manager, memory_sources, value_filter_rule, parcel_job):
        await manager.initialize([parcel_job], memory_sources, [value_filter_rule])
        await manager.initialize([], memory_sources[:1], [])

        assert manager.get_all_jobs() == []
        assert [s.id for s in manager.get_all_data_sources()] == ["parcels-raw"]
        assert manager.get_all_transformation_rules() == []

    @pytest.mark.asyncio
    async def test_once_schedule_runs_and_completes(self, manager, memory_sources, value_filter_rule, parcel_job):
        parcel_job.schedule = Schedule(
            frequency="once",
            start_date=datetime.now(timezone.utc) - timedelta(minutes=1)
        )
        await manager.initialize([parcel_job], memory_sources, [value_filter_rule])

        manager.start()
        await _wait_for(lambda: manager.get_job("parcel-refresh").status == JobStatus.COMPLETED)

        [run] = manager.get_job_runs("parcel-refresh")
        assert run.trigger == RunTrigger.SCHEDULED
        assert run.status == JobStatus.SUCCESS
        assert manager.scheduler.get_scheduled_job("parcel-refresh") is None

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, manager, memory_sources, value_filter_rule, parcel_job):
        parcel_job.schedule = Schedule(frequency="hourly")
        await manager.initialize([parcel_job], memory_sources, [value_filter_rule])

        paused = manager.pause_job("parcel-refresh")
        assert paused.status == JobStatus.PAUSED
        assert paused.next_run_at is None
        assert manager.scheduler.get_scheduled_job("parcel-refresh") is None

        # edits keep a paused job paused
        manager.update_job("parcel-refresh", JobUpdate(description="still paused"))
        assert manager.get_job("parcel-refresh").status == JobStatus.PAUSED

        resumed = manager.resume_job("parcel-refresh")
        assert resumed.status == JobStatus.SCHEDULED
        assert resumed.next_run_at is not None

    @pytest.mark.asyncio
    async def test_paused_catalog_job_stays_paused(self, manager, memory_sources, value_filter_rule, parcel_job):
        parcel_job.schedule = Schedule(frequency="hourly")
        parcel_job.status = JobStatus.PAUSED

        await manager.initialize([parcel_job], memory_sources, [value_filter_rule])

        job = manager.get_job("parcel-refresh")
        assert job.status == JobStatus.PAUSED
        assert job.next_run_at is None
        assert manager.scheduler.get_scheduled_job("parcel-refresh") is None
        assert manager.get_system_status().scheduled_job_count == 0

        resumed = manager.resume_job("parcel-refresh")
        assert resumed.status == JobStatus.SCHEDULED
        assert resumed.next_run_at is not None

    @pytest.mark.asyncio
    async def test_shutdown_is_idempotent(self, manager):
        manager.start()
        await manager.shutdown()
        await manager.shutdown()

        assert manager.get_system_status().scheduler_running is False


# ============================================================================
# Catalog maintenance
# ============================================================================

class TestCatalog:

    @pytest.mark.asyncio
    async def test_create_entities_and_run(self, manager):
        manager.create_data_source(DataSourceCreate(
            id="raw", name="Raw", type=DataSourceType.MEMORY,
            configuration={"data_key": "raw", "records": [{"owner": " a. lee "}]}
        ))
        manager.create_data_source(DataSourceCreate(
            id="clean", name="Clean", type=DataSourceType.MEMORY, configuration={"data_key": "clean"}
        ))
        manager.create_transformation_rule(TransformationRuleCreate(
            id="upper-owner",
            name="Uppercase owner",
            type=RuleType.MAP,
            configuration={"mappings": [{"target": "owner", "source": "owner", "operation": "uppercase"}]}
        ))
        job = manager.create_job(JobCreate(
            name="Owners", source_ids=["raw"], destination_ids=["clean"], rule_ids=["upper-owner"]
        ))

        run = await manager.execute_job(job.id)

        assert job.status == JobStatus.IDLE
        assert run.status == JobStatus.SUCCESS
        assert (await manager.connector.extract("clean")).data == [{"owner": " A. LEE "}]

    @pytest.mark.asyncio
    async def test_invalid_entities_rejected(self, loaded_manager):
        with pytest.raises(ValidationError):
            loaded_manager.create_data_source(DataSourceCreate(
                id="parcels-raw", name="Dup", type=DataSourceType.MEMORY, configuration={"data_key": "x"}
            ))
        with pytest.raises(ValidationError):
            loaded_manager.create_data_source(DataSourceCreate(
                name="No url", type=DataSourceType.API, configuration={}
            ))
        with pytest.raises(ValidationError):
            loaded_manager.create_transformation_rule(TransformationRuleCreate(
                name="Empty map", type=RuleType.MAP, configuration={"mappings": []}
            ))
        with pytest.raises(ValidationError):
            loaded_manager.create_job(JobCreate(name="Dangling", source_ids=["nowhere"]))
        with pytest.raises(ValidationError):
            await loaded_manager.update_data_source(
                "parcels-raw", DataSourceUpdate(configuration={"records": []})
            )

    @pytest.mark.asyncio
    async def test_referenced_entities_cannot_be_deleted(self, loaded_manager):
        with pytest.raises(ValidationError):
            await loaded_manager.delete_data_source("parcels-raw")
        with pytest.raises(ValidationError):
            loaded_manager.delete_transformation_rule("value-over-15")

        loaded_manager.delete_job("parcel-refresh")
        await loaded_manager.delete_data_source("parcels-raw")
        loaded_manager.delete_transformation_rule("value-over-15")

        with pytest.raises(NotFoundError):
            loaded_manager.get_job_runs("parcel-refresh")
        assert loaded_manager.get_system_status().data_source_count == 1

    @pytest.mark.asyncio
    async def test_rule_update_applies_to_next_run(self, loaded_manager):
        loaded_manager.update_transformation_rule(
            "value-over-15",
            TransformationRuleUpdate(enabled=False)
        )

        run = await loaded_manager.execute_job("parcel-refresh")

        assert run.records_loaded == 5

    @pytest.mark.asyncio
    async def test_update_job_schedule_rearms(self, loaded_manager):
        updated = loaded_manager.update_job(
            "parcel-refresh",
            JobUpdate(schedule=Schedule(frequency="daily", time_of_day="04:15"))
        )

        assert updated.status == JobStatus.SCHEDULED
        assert loaded_manager.scheduler.get_scheduled_job("parcel-refresh") is not None

        disabled = loaded_manager.update_job("parcel-refresh", JobUpdate(enabled=False))

        assert disabled.status == JobStatus.IDLE
        assert loaded_manager.scheduler.get_scheduled_job("parcel-refresh") is None


class TestScheduledRuns:

    @pytest.mark.asyncio
    async def test_overlapping_scheduled_run_raises_warning(self, loaded_manager):
        busy = AsyncMock(side_effect=ConcurrencyError("Job 'Parcel refresh' is already running"))

        with patch.object(loaded_manager, "execute_job", busy):
            await loaded_manager._on_schedule("parcel-refresh")

        busy.assert_awaited_once_with("parcel-refresh", trigger=RunTrigger.SCHEDULED)
        [alert] = loaded_manager.get_alerts()
        assert alert.type == AlertType.WARNING
        assert alert.job_id == "parcel-refresh"

    @pytest.mark.asyncio
    async def test_scheduled_fire_for_deleted_job_unschedules(self, loaded_manager):
        loaded_manager.scheduler.schedule_job(
            "ghost", "Ghost", Schedule(frequency="hourly"), loaded_manager._on_schedule
        )

        await loaded_manager._on_schedule("ghost")

        assert loaded_manager.scheduler.get_scheduled_job("ghost") is None
        assert loaded_manager.get_alerts() == []
