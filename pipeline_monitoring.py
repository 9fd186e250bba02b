"""
Pipeline Monitoring and Progress Reporting
==========================================

Byte-level progress tracking shared by the parallel workers, stage timing,
and system resource checks for the folder archive pipeline.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import psutil
from tqdm import tqdm

logger = logging.getLogger(__name__)

PROGRESS_BAR_FORMAT = '[{elapsed}] {bar:40} {n_fmt}/{total_fmt} ({percentage:3.0f}%)'


class ProgressCounter:
    """Monotonic byte counter incremented from many worker threads.

    Only the increment itself is done under the lock, so contention stays
    independent of how much work each worker does between increments. An
    optional renderer (anything with ``update(n)`` and ``close()``, usually a
    tqdm bar) receives every increment.
    """

    def __init__(self, total: int = 0, renderer: Optional[Any] = None):
        self.total = total
        self._value = 0
        self._lock = threading.Lock()
        self._renderer = renderer

    def add(self, amount: int) -> None:
        if amount <= 0:
            return
        with self._lock:
            self._value += amount
            if self._renderer is not None:
                self._renderer.update(amount)

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 100.0
        return min(100.0, self.value * 100.0 / self.total)

    def close(self, message: Optional[str] = None) -> None:
        if self._renderer is None:
            return
        if message and hasattr(self._renderer, 'set_description_str'):
            self._renderer.set_description_str(message)
        self._renderer.close()
        self._renderer = None

    def __enter__(self) -> 'ProgressCounter':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def create_progress_bar(total: int, enabled: bool = True, desc: str = "Compressing") -> tqdm:
    """Create the byte progress bar: elapsed time, bytes done/total, percentage"""
    return tqdm(
        total=total,
        desc=desc,
        unit='B',
        unit_scale=True,
        unit_divisor=1024,
        bar_format=PROGRESS_BAR_FORMAT,
        disable=not enabled,
    )


def check_resource_usage() -> Dict[str, Any]:
    """Snapshot of system and process resource usage"""
    try:
        memory = psutil.virtual_memory()
        process = psutil.Process()
        return {
            'memory_percent': memory.percent,
            'memory_available': memory.available,
            'process_rss': process.memory_info().rss,
            'cpu_count': psutil.cpu_count() or 1,
        }
    except (psutil.Error, OSError) as e:
        logger.warning(f"Resource check failed: {e}")
        return {}


@dataclass
class StageMetrics:
    """Metrics for a pipeline stage"""
    stage_name: str
    start_time: float
    end_time: Optional[float] = None
    items_processed: int = 0
    bytes_processed: int = 0
    failed: bool = False

    @property
    def duration(self) -> float:
        if self.end_time:
            return self.end_time - self.start_time
        return time.time() - self.start_time

    @property
    def throughput_mb_per_sec(self) -> float:
        if self.duration > 0:
            return (self.bytes_processed / 1024 / 1024) / self.duration
        return 0.0


class MonitoredStage:
    """Context manager that times a stage and logs its metrics"""

    def __init__(self, stage_name: str, items: int = 0, bytes_count: int = 0):
        self.metrics = StageMetrics(stage_name=stage_name, start_time=time.time(),
                                    items_processed=items, bytes_processed=bytes_count)

    def __enter__(self) -> 'MonitoredStage':
        logger.debug(f"Stage '{self.metrics.stage_name}' started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.metrics.end_time = time.time()
        if exc_type:
            self.metrics.failed = True
            logger.error(f"Stage '{self.metrics.stage_name}' failed after "
                         f"{self.metrics.duration:.2f}s: {exc_val}")
        else:
            logger.info(f"Stage '{self.metrics.stage_name}' finished in {self.metrics.duration:.2f}s "
                        f"({self.metrics.items_processed} items, "
                        f"{self.metrics.throughput_mb_per_sec:.1f} MB/s)")
        return False

    def update_progress(self, items: int = 0, bytes_count: int = 0) -> None:
        self.metrics.items_processed += items
        self.metrics.bytes_processed += bytes_count
