import logging
from unittest.mock import MagicMock

import pytest

from zigzig.utils.logging_config import (
    ContextFilter, PerformanceMonitor, bind_job, configure_for_environment, get_logger,
    get_matching_logger, log_api_call, request_id_var,
)


def make_record(**extra):
    record = logging.LogRecord("zigzig.test", logging.INFO, __file__, 1, "hello", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContextFilter:

    def test_defaults_outside_a_request(self):
        record = make_record()
        assert ContextFilter().filter(record) is True
        assert (record.request_id, record.job_id) == ("-", "-")

    def test_bound_job_and_request(self):
        token = request_id_var.set("req-7")
        try:
            with bind_job("job-1"):
                record = make_record()
                ContextFilter().filter(record)
        finally:
            request_id_var.reset(token)
        assert (record.request_id, record.job_id) == ("req-7", "job-1")

    def test_explicit_extra_wins(self):
        with bind_job("job-1"):
            record = make_record(job_id="job-2")
            ContextFilter().filter(record)
        assert record.job_id == "job-2"

    def test_binding_is_undone_after_the_block(self):
        with bind_job("job-1"):
            pass
        record = make_record()
        ContextFilter().filter(record)
        assert record.job_id == "-"


class TestEnvironmentPresets:

    @pytest.fixture(autouse=True)
    def restore(self, monkeypatch):
        yield
        monkeypatch.setenv("ENVIRONMENT", "testing")
        monkeypatch.delenv("MATCH_LOG_LEVEL", raising=False)
        configure_for_environment()

    def test_testing_preset_is_quiet_and_console_only(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "testing")
        configure_for_environment()
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert all(not isinstance(h, logging.FileHandler) for h in root.handlers)

    def test_matching_level_can_be_raised_alone(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "testing")
        monkeypatch.setenv("MATCH_LOG_LEVEL", "debug")
        configure_for_environment()
        assert logging.getLogger().level == logging.WARNING
        assert get_matching_logger("orchestrator").getEffectiveLevel() == logging.DEBUG


def test_logger_names():
    assert get_logger("services.db").name == "zigzig.services.db"
    assert get_logger("zigzig.main").name == "zigzig.main"
    assert get_matching_logger("scoring").name == "zigzig.matching.scoring"


@pytest.mark.asyncio
async def test_log_api_call_reraises():
    @log_api_call("explode")
    async def handler():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await handler()
    assert handler.__name__ == "handler"


def test_performance_monitor_warns_past_threshold():
    log = MagicMock()
    with PerformanceMonitor("score", log, threshold_ms=-1) as monitor:
        pass
    assert monitor.elapsed_ms >= 0
    log.warning.assert_called_once()

    log = MagicMock()
    with pytest.raises(ValueError):
        with PerformanceMonitor("score", log, threshold_ms=10_000):
            raise ValueError("bad")
    assert "aborted" in log.warning.call_args[0][0]
