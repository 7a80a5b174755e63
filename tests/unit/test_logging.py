"""
Unit tests for log context binding
"""

import asyncio
import logging
import pytest
from core.logging import ContextFilter, log_context, current_log_context


def _record(message="hello"):
    return logging.LogRecord("etl.test", logging.INFO, __file__, 1, message, None, None)


class TestLogContext:

    def test_nested_blocks_merge_and_reset(self):
        with log_context(job_id="parcel-refresh"):
            with log_context(run_id="run_1", trigger=None):
                assert current_log_context() == {"job_id": "parcel-refresh", "run_id": "run_1"}
            assert current_log_context() == {"job_id": "parcel-refresh"}

        assert current_log_context() == {}

    @pytest.mark.asyncio
    async def test_concurrent_tasks_keep_their_own_context(self):
        seen = {}

        async def run(job_id):
            with log_context(job_id=job_id):
                await asyncio.sleep(0.01)
                seen[job_id] = current_log_context()["job_id"]

        await asyncio.gather(run("a"), run("b"))

        assert seen == {"a": "a", "b": "b"}


class TestContextFilter:

    def test_prefix_orders_known_keys(self):
        record = _record()

        with log_context(run_id="run_1", job_id="parcel-refresh", request_id="req_1", source="raw"):
            ContextFilter().filter(record)

        assert record.context == "[request_id=req_1 job_id=parcel-refresh run_id=run_1 source=raw] "
        assert record.job_id == "parcel-refresh"

    def test_no_context_means_no_prefix(self):
        record = _record()

        assert ContextFilter().filter(record) is True
        assert record.context == ""
        assert record.job_id == "-"

    @pytest.mark.asyncio
    async def test_job_execution_records_carry_job_and_run_ids(self, loaded_manager, caplog):
        caplog.handler.addFilter(ContextFilter())
        caplog.set_level(logging.INFO, logger="etl.pipeline")

        run = await loaded_manager.execute_job("parcel-refresh")

        pipeline_records = [r for r in caplog.records if r.name == "etl.pipeline"]
        assert pipeline_records
        assert all(r.job_id == "parcel-refresh" for r in pipeline_records)
        assert all(r.run_id == run.run_id for r in pipeline_records)
        assert current_log_context() == {}
