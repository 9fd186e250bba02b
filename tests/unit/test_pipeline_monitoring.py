"""
Unit tests for pipeline monitoring
==================================

Tests for pipeline_monitoring.py including:
- ProgressCounter concurrency and rendering
- Progress bar construction
- Resource checks
- Context managers and stage tracking
"""

import logging
import threading
from unittest.mock import MagicMock, patch

import psutil
import pytest

from pipeline_monitoring import (
    MonitoredStage, ProgressCounter, StageMetrics, check_resource_usage, create_progress_bar
)


class TestProgressCounter:
    """Test ProgressCounter"""

    def test_add_and_percent(self):
        """Test increments accumulate and percent tracks the total"""
        counter = ProgressCounter(total=200)
        counter.add(50)
        counter.add(50)

        assert counter.value == 100
        assert counter.percent == 50.0

    def test_ignores_non_positive(self):
        """Test zero and negative increments are ignored"""
        renderer = MagicMock()
        counter = ProgressCounter(total=10, renderer=renderer)
        counter.add(0)
        counter.add(-3)

        assert counter.value == 0
        renderer.update.assert_not_called()

    def test_zero_total_is_complete(self):
        """Test an empty run reports 100%"""
        assert ProgressCounter(total=0).percent == 100.0

    def test_concurrent_adds(self):
        """Test increments from many threads are never lost"""
        counter = ProgressCounter(total=16 * 1000)

        def work():
            for _ in range(1000):
                counter.add(1)

        threads = [threading.Thread(target=work) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert counter.value == 16 * 1000
        assert counter.percent == 100.0

    def test_renderer_receives_updates(self):
        """Test each increment is forwarded to the renderer"""
        renderer = MagicMock()
        counter = ProgressCounter(total=10, renderer=renderer)
        counter.add(4)
        counter.add(6)

        assert [c.args[0] for c in renderer.update.call_args_list] == [4, 6]

    def test_close_with_message(self):
        """Test close sets the final description and closes once"""
        renderer = MagicMock()
        with ProgressCounter(total=1, renderer=renderer) as counter:
            counter.close("done")

        renderer.set_description_str.assert_called_once_with("done")
        renderer.close.assert_called_once()

    def test_progress_bar_disabled(self):
        """Test a disabled bar still accepts updates"""
        bar = create_progress_bar(1024, enabled=False)
        with ProgressCounter(total=1024, renderer=bar) as counter:
            counter.add(1024)
        assert counter.value == 1024
        assert bar.disable


class TestResourceUsage:
    """Test check_resource_usage"""

    def test_reports_memory(self):
        """Test the snapshot contains memory and CPU figures"""
        usage = check_resource_usage()
        assert 0 <= usage['memory_percent'] <= 100
        assert usage['cpu_count'] >= 1
        assert usage['process_rss'] > 0

    def test_failure_returns_empty(self, caplog):
        """Test psutil failures degrade to an empty snapshot"""
        with patch("pipeline_monitoring.psutil.virtual_memory",
                   side_effect=psutil.AccessDenied()):
            with caplog.at_level(logging.WARNING):
                assert check_resource_usage() == {}
        assert "Resource check failed" in caplog.text


class TestMonitoredStage:
    """Test MonitoredStage"""

    def test_successful_stage(self, caplog):
        """Test a stage logs its duration on success"""
        with caplog.at_level(logging.INFO, logger="pipeline_monitoring"):
            with MonitoredStage("write", items=3, bytes_count=2048) as stage:
                stage.update_progress(items=1, bytes_count=1024)

        assert stage.metrics.end_time is not None
        assert stage.metrics.items_processed == 4
        assert stage.metrics.bytes_processed == 3072
        assert not stage.metrics.failed
        assert "Stage 'write' finished" in caplog.text

    def test_failed_stage(self, caplog):
        """Test a failing stage is marked and the exception propagates"""
        with pytest.raises(RuntimeError):
            with MonitoredStage("compress") as stage:
                raise RuntimeError("boom")

        assert stage.metrics.failed
        assert "Stage 'compress' failed" in caplog.text

    def test_throughput(self):
        """Test throughput is bytes per second in MB"""
        metrics = StageMetrics(stage_name="x", start_time=10.0, end_time=12.0,
                               bytes_processed=4 * 1024 * 1024)
        assert metrics.duration == 2.0
        assert metrics.throughput_mb_per_sec == 2.0
