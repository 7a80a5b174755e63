"""
ETL orchestration components.

This package contains everything that moves and shapes data:

Modules:
    alerts: AlertRegistry, the append-only sink for operational events
    connector: DataConnector, the data source registry with structured extract/load results
    scheduler: ScheduleTrigger and JobScheduler on top of APScheduler
    pipeline: PipelineManager, catalogs and end-to-end job execution
    quality: DataQualityAnalyzer, completeness/consistency/accuracy scoring of record batches

Subpackages:
    connectors: One connector per data source type (database, api, file, in-memory)
    transformers: TransformationEngine (filter, map, convert, aggregate, custom rules)

Architecture:
    Each execution flows one way:

    1. Extract - DataConnector reads every source of the job
    2. Transform - TransformationEngine applies the job's enabled rules in order
    3. Load - DataConnector writes the batch to every destination

    Between transform and load the batch is scored by DataQualityAnalyzer;
    a score under DATA_QUALITY_THRESHOLD raises a data-quality alert.

    The scheduler triggers PipelineManager.execute_job at computed times;
    manual runs use the same entry point. Every outcome ends in a job status
    transition plus an Alert.

Usage:
    from etl.pipeline import build_pipeline
    from schemas.catalog import Catalog

Example:
    catalog = Catalog.from_file("scripts/sample_catalog.json")
    manager = build_pipeline()
    await manager.initialize(catalog.jobs, catalog.data_sources, catalog.transformation_rules)

    run = await manager.execute_job("parcel-refresh")
    print(f"{run.status.value}: loaded {run.records_loaded} records")

Error Handling:
    Connector and engine return structured results; exceptions from
    core.exceptions are raised only for catalog errors (NotFoundError,
    ValidationError) and overlapping runs (ConcurrencyError).
"""

from etl.alerts import AlertRegistry
from etl.connector import DataConnector
from etl.transformers.engine import TransformationEngine
from etl.scheduler import ScheduleTrigger, JobScheduler
from etl.quality import DataQualityAnalyzer
from etl.pipeline import PipelineManager, build_pipeline

__all__ = [
    "AlertRegistry",
    "DataConnector",
    "TransformationEngine",
    "ScheduleTrigger",
    "JobScheduler",
    "DataQualityAnalyzer",
    "PipelineManager",
    "build_pipeline",
]
