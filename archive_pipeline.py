"""
Folder Archive Pipeline
=======================

Packs a directory tree into a single compressed archive and unpacks it again.

Compression runs in stages:

1. Discover every regular file under the input folder.
2. Read, compress and describe each file in parallel; a file that fails is
   recorded as failed and the run continues (best effort).
3. Write the successful entries into a tar container compressed as a whole.
4. Report one ``[OK]``/``[ERR]`` line per discovered file and a summary.

A run where every file fails still produces a valid, empty archive. Only
problems with the input folder or the output file abort the run.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from archive_errors import InputFolderError
from base_classes import FileTask, RunResult
from pipeline.stages.reader import EntryInfo, extract, list_entries
from pipeline.stages.entry import printable_path
from pipeline.stages.writer import format_report, order_entries, write_archive
from pipeline.workers.parallel_processor import ParallelProcessor
from pipeline_configs import PipelineConfig
from pipeline_monitoring import (
    MonitoredStage, ProgressCounter, check_resource_usage, create_progress_bar
)
from security_validation import PathValidator

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class FolderArchivePipeline:
    """Compress folders into archives and extract them back"""

    def __init__(self, config: Optional[PipelineConfig] = None,
                 echo: Callable[[str], None] = print):
        self.config = config or PipelineConfig()
        self.echo = echo

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover_files(self, input_folder: PathLike,
                       exclude: Iterable[PathLike] = ()) -> List[FileTask]:
        """
        Enumerate regular files under ``input_folder``.

        Symlinks are skipped unless ``follow_symlinks`` is set. Paths in
        ``exclude`` (typically the output archive) are never included.

        Raises:
            InputFolderError: if the folder does not exist or cannot be listed
        """
        root = Path(input_folder)
        if not root.is_dir():
            raise InputFolderError(f"Input folder {root} does not exist or is not a directory",
                                   path=str(root))

        excluded = {Path(p).resolve() for p in exclude}
        root_resolved = root.resolve()

        def on_error(error: OSError) -> None:
            if error.filename and Path(error.filename).resolve() == root_resolved:
                raise InputFolderError(f"Cannot list input folder {root}",
                                       path=str(root), cause=error)
            logger.warning(f"Skipping unreadable directory {error.filename}: {error}")

        tasks = []
        follow = self.config.follow_symlinks
        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error, followlinks=follow):
            dirnames.sort()
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                if path.is_symlink() and not follow:
                    logger.debug(f"Skipping symlink {path}")
                    continue
                if not path.is_file():
                    continue
                if path.resolve() in excluded:
                    logger.info(f"Skipping output archive {path}")
                    continue
                try:
                    stat = path.stat()
                    size, mtime, mode = stat.st_size, stat.st_mtime, stat.st_mode & 0o7777
                except OSError as e:
                    # Still scheduled so the failure shows up in the report
                    logger.warning(f"Cannot stat {path}: {e}")
                    size, mtime, mode = 0, 0.0, 0o644
                tasks.append(FileTask(
                    source_path=path.absolute(),
                    relative_path=PathValidator.to_entry_name(path, root),
                    size=size,
                    mtime=mtime,
                    mode=mode,
                ))

        logger.info(f"Found {len(tasks)} files to archive in {root}")
        return tasks

    def _plan_workers(self) -> Optional[int]:
        """Halve the worker count when memory is already under pressure"""
        workers = self.config.num_workers
        resources = check_resource_usage()
        memory_percent = resources.get('memory_percent', 0)
        if memory_percent > self.config.memory_threshold_percent:
            baseline = workers or resources.get('cpu_count', 1)
            workers = max(1, baseline // 2)
            logger.warning(f"High memory usage: {memory_percent:.1f}%, "
                           f"reducing workers to {workers}")
        return workers

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def compress_folder(self, input_folder: PathLike, output_file: PathLike) -> RunResult:
        """
        Archive ``input_folder`` into ``output_file``.

        Returns:
            The RunResult with one entry per discovered file; ``written``
            holds the number of entries stored in the archive

        Raises:
            InputFolderError: the input folder cannot be enumerated
            ArchiveIOError: the archive cannot be created
        """
        output_path = Path(output_file)
        with MonitoredStage("discover"):
            tasks = self.discover_files(input_folder, exclude=[output_path])

        total_bytes = sum(t.size for t in tasks)
        renderer = create_progress_bar(total_bytes, enabled=self.config.show_progress)
        with ProgressCounter(total_bytes, renderer=renderer) as progress:
            with ParallelProcessor(self.config, num_workers=self._plan_workers()) as processor:
                with MonitoredStage("compress", items=len(tasks), bytes_count=total_bytes):
                    results = processor.run(tasks, progress)
            progress.close("📦 Compression finished")
        logger.info(f"Read {progress.value} of {total_bytes} bytes ({progress.percent:.0f}%)")

        entries = order_entries(results, self.config.sort_entries)
        with MonitoredStage("write") as stage:
            results.written = write_archive(
                output_path,
                entries,
                codec=self.config.container_codec,
                level=self.config.effective_container_level,
                sort_entries=False,
                atomic=self.config.atomic_write,
                tar_format=self.config.tar_format,
            )
            stored = sum(len(e.payload) for e in results.succeeded)
            stage.update_progress(items=results.written, bytes_count=stored)
        original = sum(e.original_size for e in results.succeeded)
        logger.info(f"Stored {original} bytes as {stored} compressed payload bytes, "
                    f"{len(results.failed)} files failed")

        self.echo("\n📃 Results:")
        for line in format_report(entries):
            self.echo(line)
        self.echo(f"\n✅ Folder '{input_folder}' compressed into '{output_file}' "
                  f"({results.written}/{len(results)} files archived)")
        return results

    def decompress_folder(self, input_file: PathLike, output_folder: PathLike,
                          decode_entries: bool = False) -> List[str]:
        """
        Extract ``input_file`` into ``output_folder``.

        Extracted files keep their per-file compression unless
        ``decode_entries`` is set.
        """
        with MonitoredStage("extract"):
            names = extract(input_file, output_folder, decode_entries=decode_entries)
        self.echo(f"✅ Archive '{input_file}' extracted into '{output_folder}' "
                  f"({len(names)} files)")
        return names

    def list_archive(self, input_file: PathLike) -> List[EntryInfo]:
        """Print and return the entries of ``input_file``"""
        entries = list_entries(input_file)
        for info in entries:
            self.echo(f"{printable_path(info.name):<60} {info.size:>12} {info.checksum:>8o}")
        self.echo(f"\n{len(entries)} entries in '{input_file}'")
        return entries
