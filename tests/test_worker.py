"""Tests for scheduled pipeline runs and logging setup."""

import json
import logging

import pytest

from battracker.logging_config import setup_logging
from battracker.worker.scheduler import setup_scheduler
from battracker.worker.tasks import TaskRunner


def test_scheduler_registers_both_pipelines():
    scheduler = setup_scheduler()

    jobs = {job.id: job for job in scheduler.get_jobs()}

    assert set(jobs) == {"amazon_prices", "justbats_prices"}
    assert jobs["amazon_prices"].max_instances == 1


@pytest.mark.asyncio
async def test_overlapping_runs_are_skipped():
    """A trigger that fires while a run is in progress does nothing."""
    runner = TaskRunner()

    async with runner._locks["amazon"]:
        assert await runner.run_amazon_pipeline() is None
    async with runner._locks["justbats"]:
        assert await runner.run_justbats_pipeline() is None


def test_setup_logging_writes_json(tmp_path):
    """Records land in logs/app.log as one JSON object per line."""
    root = setup_logging(tmp_path)
    try:
        logging.getLogger("battracker.test").warning("Rejected price for variant 7")
        for handler in root.handlers:
            handler.flush()

        lines = (tmp_path / "logs" / "app.log").read_text().splitlines()
        record = json.loads(lines[-1])
        assert record["message"] == "Rejected price for variant 7"
        assert record["level"] == "WARNING"
        assert record["logger"] == "battracker.test"
        assert record["source"] is None
        assert record["model_id"] is None
        assert record["location"].startswith("test_worker.test_setup_logging_writes_json:")
        assert (tmp_path / "logs" / "error.log").exists()
    finally:
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)


def test_pipeline_fields_reach_json_lines(tmp_path):
    """Source and model id passed as extra appear in both log files."""
    root = setup_logging(tmp_path)
    try:
        logging.getLogger("battracker.worker.pipeline").error(
            "Failed to process DeMarini Voodoo 2024",
            extra={"source": "amazon", "model_id": 7},
        )
        for handler in root.handlers:
            handler.flush()

        for name in ("app.log", "error.log"):
            lines = (tmp_path / "logs" / name).read_text().splitlines()
            record = json.loads(lines[-1])
            assert record["source"] == "amazon"
            assert record["model_id"] == 7
            assert record["level"] == "ERROR"
    finally:
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
