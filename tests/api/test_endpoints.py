"""
API endpoint tests
"""

import logging
import pytest
from fastapi.testclient import TestClient
from api.main import create_app
from etl.alerts import AlertRegistry
from etl.connector import DataConnector
from etl.pipeline import PipelineManager
from etl.scheduler import JobScheduler
from etl.transformers.engine import TransformationEngine
from core.logging import ContextFilter
from schemas.catalog import Catalog


@pytest.fixture
def client(memory_sources, value_filter_rule, parcel_job):
    """Test client around a freshly built manager loaded with the parcel catalog"""
    alerts = AlertRegistry()
    manager = PipelineManager(
        connector=DataConnector(),
        engine=TransformationEngine(),
        scheduler=JobScheduler(alerts=alerts, timezone="UTC"),
        alerts=alerts,
        execution_timeout=None
    )
    catalog = Catalog(
        data_sources=memory_sources,
        transformation_rules=[value_filter_rule],
        jobs=[parcel_job]
    )
    app = create_app(manager=manager, catalog=catalog, start_scheduler=False)

    with TestClient(app) as test_client:
        yield test_client


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["jobs"] == "/jobs"


def test_request_id_header(client):
    generated = client.get("/health")
    echoed = client.get("/health", headers={"X-Request-ID": "req_from_caller"})

    assert generated.headers["X-Request-ID"].startswith("req_")
    assert "X-API-Latency-ms" in generated.headers
    assert echoed.headers["X-Request-ID"] == "req_from_caller"


def test_request_id_bound_to_logs(client, caplog):
    caplog.handler.addFilter(ContextFilter())
    caplog.set_level(logging.INFO)

    client.post("/jobs/parcel-refresh/execute", headers={"X-Request-ID": "req_manual_run"})
    client.get("/jobs/missing", headers={"X-Request-ID": "req_missing"})

    job_records = [r for r in caplog.records if r.name == "etl.pipeline"]
    assert job_records
    assert all(r.request_id == "req_manual_run" and r.job_id == "parcel-refresh" for r in job_records)

    [not_found] = [r for r in caplog.records if r.name == "api.main" and "404" in r.getMessage()]
    assert not_found.request_id == "req_missing"


def test_health_reflects_job_status(client):
    before = client.get("/health").json()

    assert before["status"] == "healthy"
    assert before["scheduler_running"] is False
    assert before["total_jobs"] == 1
    assert before["jobs"][0]["status"] == "idle"


def test_status(client):
    data = client.get("/status").json()

    assert data["job_count"] == 1
    assert data["data_source_count"] == 2
    assert data["transformation_rule_count"] == 1
    assert data["excluded_job_count"] == 0
    assert client.get("/status/excluded-jobs").json() == []
    assert client.get("/status/scheduled-jobs").json() == []


def test_execute_job_and_history(client):
    response = client.post("/jobs/parcel-refresh/execute")

    assert response.status_code == 200
    run = response.json()
    assert run["status"] == "success"
    assert run["records_loaded"] == 3
    assert "data" not in run

    runs = client.get("/jobs/parcel-refresh/runs").json()
    assert [r["run_id"] for r in runs] == [run["run_id"]]

    health = client.get("/health").json()
    assert health["successful_jobs"] == 1


def test_unknown_job_is_404(client):
    response = client.get("/jobs/missing")

    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "NotFoundError"
    assert "missing" in body["detail"]


def test_create_job_with_unknown_reference_is_422(client):
    response = client.post("/jobs", json={"name": "Dangling", "source_ids": ["nowhere"]})

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


def test_job_crud_and_schedule(client):
    created = client.post("/jobs", json={
        "id": "nightly",
        "name": "Nightly copy",
        "source_ids": ["parcels-raw"],
        "destination_ids": ["parcels-clean"],
        "schedule": {"frequency": "daily", "time_of_day": "02:00"}
    })

    assert created.status_code == 201
    assert created.json()["status"] == "scheduled"
    assert created.json()["next_run_at"] is not None

    [scheduled] = client.get("/status/scheduled-jobs").json()
    assert scheduled["job_id"] == "nightly"

    paused = client.post("/jobs/nightly/pause").json()
    assert paused["status"] == "paused"
    assert client.get("/status/scheduled-jobs").json() == []

    resumed = client.post("/jobs/nightly/resume").json()
    assert resumed["status"] == "scheduled"

    renamed = client.patch("/jobs/nightly", json={"name": "Nightly parcels"})
    assert renamed.json()["name"] == "Nightly parcels"

    assert client.delete("/jobs/nightly").status_code == 204
    assert client.get("/jobs/nightly").status_code == 404


def test_data_source_crud_and_connection(client):
    created = client.post("/data-sources", json={
        "id": "zones",
        "name": "Zones",
        "type": "in-memory",
        "configuration": {"data_key": "zones", "records": [{"zone": "north"}]}
    })
    assert created.status_code == 201

    tested = client.post("/data-sources/zones/test").json()
    assert tested["success"] is True

    connected = client.post("/data-sources/zones/connect").json()
    assert connected["connected"] is True

    disconnected = client.post("/data-sources/zones/disconnect").json()
    assert disconnected["connected"] is False

    invalid = client.post("/data-sources", json={"name": "No url", "type": "api", "configuration": {}})
    assert invalid.status_code == 422

    in_use = client.delete("/data-sources/parcels-raw")
    assert in_use.status_code == 422

    assert client.delete("/data-sources/zones").status_code == 204


def test_rule_crud_and_preview(client):
    created = client.post("/rules", json={
        "id": "north-only",
        "name": "North only",
        "type": "filter",
        "configuration": {"conditions": [{"field": "zone", "operator": "equals", "value": "north"}]}
    })
    assert created.status_code == 201

    preview = client.post("/rules/north-only/test", json={
        "records": [{"zone": "north"}, {"zone": "south"}]
    }).json()

    assert preview["success"] is True
    assert preview["data"] == [{"zone": "north"}]

    updated = client.patch("/rules/north-only", json={"order": 3})
    assert updated.json()["order"] == 3

    assert client.delete("/rules/north-only").status_code == 204
    assert len(client.get("/rules").json()) == 1


def test_alerts_filter_and_acknowledge(client):
    client.post("/jobs/parcel-refresh/execute")

    [alert] = client.get("/alerts", params={"type": "success"}).json()
    assert client.get("/alerts", params={"type": "error"}).json() == []

    acknowledged = client.post(f"/alerts/{alert['id']}/acknowledge").json()
    assert acknowledged["acknowledged"] is True
    assert client.get("/alerts", params={"acknowledged": "false"}).json() == []

    assert client.get("/alerts/alert_missing").status_code == 404


def test_quality_analysis(client):
    response = client.post("/quality/analyze", json={
        "records": [
            {"parcel_id": "P-1", "value": 10},
            {"parcel_id": "P-1", "value": None},
        ],
        "checks": {"unique_keys": ["parcel_id"]}
    })

    assert response.status_code == 200
    report = response.json()
    assert report["record_count"] == 2
    assert report["completeness"] == 75.0
    assert report["accuracy"] == 50.0
    assert {issue["kind"] for issue in report["issues"]} == {"missing-values", "duplicate"}
    assert report["recommendations"]


def test_executed_run_reports_quality_score(client):
    run = client.post("/jobs/parcel-refresh/execute").json()

    assert run["quality_score"] == 100.0
