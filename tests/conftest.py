"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from typing import AsyncGenerator
from etl.alerts import AlertRegistry
from etl.connector import DataConnector
from etl.scheduler import JobScheduler
from etl.transformers.engine import TransformationEngine
from etl.pipeline import PipelineManager
from schemas.data_source import DataSource
from schemas.rules import TransformationRule
from schemas.jobs import Job
from schemas.enums import DataSourceType, RuleType


@pytest.fixture
def alerts() -> AlertRegistry:
    return AlertRegistry()


@pytest.fixture
def connector() -> DataConnector:
    return DataConnector()


@pytest.fixture
def engine() -> TransformationEngine:
    return TransformationEngine()


@pytest_asyncio.fixture
async def scheduler(alerts) -> AsyncGenerator[JobScheduler, None]:
    job_scheduler = JobScheduler(alerts=alerts, timezone="UTC")
    yield job_scheduler
    job_scheduler.shutdown()


@pytest_asyncio.fixture
async def manager(connector, engine, scheduler, alerts) -> AsyncGenerator[PipelineManager, None]:
    """Pipeline manager without an execution timeout"""
    pipeline = PipelineManager(
        connector=connector,
        engine=engine,
        scheduler=scheduler,
        alerts=alerts,
        execution_timeout=None
    )
    yield pipeline
    await pipeline.shutdown()


@pytest.fixture
def parcel_records():
    """Raw parcel assessment rows"""
    return [
        {"parcel_id": "P-1", "value": 10, "zone": "north"},
        {"parcel_id": "P-2", "value": 20, "zone": "north"},
        {"parcel_id": "P-3", "value": 30, "zone": "south"},
        {"parcel_id": "P-4", "value": 15, "zone": "south"},
        {"parcel_id": "P-5", "value": 25, "zone": "east"},
    ]


@pytest.fixture
def memory_sources(parcel_records):
    """In-memory source seeded with parcel_records plus an empty destination"""
    return [
        DataSource(
            id="parcels-raw",
            name="Raw parcels",
            type=DataSourceType.MEMORY,
            configuration={"data_key": "parcels_raw", "records": parcel_records}
        ),
        DataSource(
            id="parcels-clean",
            name="Clean parcels",
            type=DataSourceType.MEMORY,
            configuration={"data_key": "parcels_clean"}
        ),
    ]


@pytest.fixture
def value_filter_rule():
    return TransformationRule(
        id="value-over-15",
        name="Value over 15",
        type=RuleType.FILTER,
        configuration={
            "logic": "AND",
            "conditions": [{"field": "value", "operator": "greater_than", "value": 15}]
        }
    )


@pytest.fixture
def parcel_job():
    return Job(
        id="parcel-refresh",
        name="Parcel refresh",
        source_ids=["parcels-raw"],
        destination_ids=["parcels-clean"],
        rule_ids=["value-over-15"]
    )


@pytest_asyncio.fixture
async def loaded_manager(manager, memory_sources, value_filter_rule, parcel_job) -> PipelineManager:
    """Manager initialized with the parcel catalog"""
    await manager.initialize([parcel_job], memory_sources, [value_filter_rule])
    return manager
