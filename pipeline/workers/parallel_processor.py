"""
Parallel processing manager: runs ingest -> compress -> build for every file
on a fixed-size thread pool and collects one result per file.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import AsyncIterator, Iterable, List, Optional

import psutil

from archive_errors import FileProcessingError
from base_classes import FileTask, ProcessedEntry, RunResult
from pipeline.stages.compression import get_codec
from pipeline.stages.entry import build_entry, printable_path
from pipeline.stages.ingest import ingest_file
from pipeline_configs import PipelineConfig
from pipeline_monitoring import ProgressCounter

logger = logging.getLogger(__name__)

MAX_WORKERS = 32


class ParallelProcessor:
    """Manages parallel processing of files with isolated per-file failures.

    Workers hand each finished ProcessedEntry to a result queue; a single
    collector drains the queue, so results arrive in completion order and no
    lock is needed around the aggregated list.
    """

    def __init__(self, config: Optional[PipelineConfig] = None,
                 num_workers: Optional[int] = None):
        """Initialize parallel processor with specified number of workers."""
        self.config = config or PipelineConfig()
        requested = num_workers or self.config.num_workers or psutil.cpu_count() or 1
        self.num_workers = max(1, min(requested, MAX_WORKERS))
        self.codec = get_codec(self.config.codec)
        self.thread_executor = ThreadPoolExecutor(max_workers=self.num_workers,
                                                  thread_name_prefix='archive-worker')

        logger.info(f"Initialized ParallelProcessor with {self.num_workers} workers "
                    f"({self.codec.name} level {self.config.compression_level})")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure cleanup."""
        self.shutdown()
        return False

    def shutdown(self):
        """Shutdown the worker pool, waiting for running tasks."""
        self.thread_executor.shutdown(wait=True)

    def process_task(self, task: FileTask,
                     progress: Optional[ProgressCounter] = None) -> ProcessedEntry:
        """
        Run one file through ingest -> compress -> build.

        The first failing stage ends the chain; the failure is recorded on the
        returned entry instead of being raised.
        """
        try:
            data = ingest_file(task.source_path, progress, self.config.chunk_size)
            compressed = self.codec.compress(data, self.config.compression_level)
            descriptor = build_entry(task.relative_path, compressed,
                                     mtime=task.mtime, mode=task.mode,
                                     tar_format=self.config.tar_format)
        except FileProcessingError as e:
            logger.warning(f"Failed to archive {printable_path(task.relative_path)}: {e}")
            return ProcessedEntry.failed(task.relative_path, e)
        except Exception as e:
            logger.error(f"Unexpected error processing {printable_path(task.relative_path)}: {e}",
                         exc_info=True)
            return ProcessedEntry.failed(task.relative_path, e)

        logger.debug(f"Compressed {task.relative_path}: {len(data)} -> {len(compressed)} bytes")
        return ProcessedEntry.ok(task.relative_path, compressed, descriptor,
                                 original_size=len(data))

    async def process_files_parallel(self,
                                     tasks: List[FileTask],
                                     progress: Optional[ProgressCounter] = None
                                     ) -> AsyncIterator[ProcessedEntry]:
        """
        Process files in parallel.

        Args:
            tasks: Files to process
            progress: Shared byte counter advanced while files are read

        Yields:
            One ProcessedEntry per task, in completion order
        """
        logger.debug(f"Starting parallel processing of {len(tasks)} files")

        # Handle empty file list
        if not tasks:
            logger.debug("No files to process, returning early")
            return

        worker_count = min(self.num_workers, len(tasks))
        loop = asyncio.get_running_loop()

        work_queue: asyncio.Queue = asyncio.Queue()
        for task in tasks:
            work_queue.put_nowait(task)

        # Add sentinel values for worker termination
        for _ in range(worker_count):
            work_queue.put_nowait(None)

        result_queue: asyncio.Queue = asyncio.Queue()

        async def worker():
            """Process tasks from work queue until sentinel is received."""
            try:
                while True:
                    task = await work_queue.get()
                    if task is None:
                        break
                    entry = await loop.run_in_executor(
                        self.thread_executor, self.process_task, task, progress
                    )
                    await result_queue.put(entry)
            finally:
                # Signal worker completion
                await result_queue.put(None)

        workers = [asyncio.create_task(worker()) for _ in range(worker_count)]
        logger.debug(f"Created {len(workers)} worker tasks")

        # Collect results as they become available
        completed_workers = 0
        while completed_workers < worker_count:
            entry = await result_queue.get()
            if entry is None:
                completed_workers += 1
                logger.debug(f"Worker completed, total: {completed_workers}/{worker_count}")
            else:
                yield entry

        # Surface anything that escaped a worker
        await asyncio.gather(*workers)
        logger.debug("All workers completed")

    async def collect(self, tasks: List[FileTask],
                      progress: Optional[ProgressCounter] = None) -> RunResult:
        """Drain ``process_files_parallel`` into a RunResult."""
        result = RunResult(total_bytes=sum(t.size for t in tasks))
        async for entry in self.process_files_parallel(tasks, progress):
            result.append(entry)

        if progress is not None:
            result.bytes_read = progress.value

        if len(result) != len(tasks):
            logger.error(f"Collected {len(result)} results for {len(tasks)} files")
        return result

    def run(self, tasks: Iterable[FileTask],
            progress: Optional[ProgressCounter] = None) -> RunResult:
        """Process all tasks and return the aggregated RunResult."""
        return asyncio.run(self.collect(list(tasks), progress))
