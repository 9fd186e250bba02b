"""
Archive writing: serialize successful entries into one tar container wrapped
in a container-level compressor.

Entries carry payloads that are already compressed per file, so an archive
is compressed twice: once per entry, then once as a whole. Extracting with
``decode_entries=False`` therefore yields the per-file compressed bytes.
"""

import io
import logging
import tarfile
from pathlib import Path
from typing import Iterable, Iterator, List, Union

import zstandard as zstd

from archive_errors import ArchiveIOError
from base_classes import ProcessedEntry, RunResult
from pipeline.stages.compression import open_container_writer
from pipeline.stages.entry import PATH_ENCODING, TAR_FORMAT_CODES, printable_path
from secure_utils import open_output

logger = logging.getLogger(__name__)


def order_entries(results: Union[RunResult, Iterable[ProcessedEntry]],
                  sort_entries: bool = True) -> List[ProcessedEntry]:
    """Entries in write order: by relative path, or as collected when unsorted"""
    entries = list(results)
    if sort_entries:
        entries.sort(key=lambda e: e.relative_path)
    return entries


def write_archive(output_path: Union[str, Path],
                  results: Union[RunResult, Iterable[ProcessedEntry]],
                  codec: str = 'zstd',
                  level: int = 21,
                  sort_entries: bool = True,
                  atomic: bool = True,
                  tar_format: str = 'ustar') -> int:
    """
    Write every successful entry of ``results`` to ``output_path``.

    Failed entries are skipped here; they still appear in ``format_report``.
    With no successful entries a valid, empty archive is produced.

    Args:
        output_path: Archive file to create
        results: Processed entries, in collection order
        codec: Container compressor ('zstd' or 'lz4')
        level: Container compression level
        sort_entries: Write entries sorted by relative path
        atomic: Write through a temp file renamed into place
        tar_format: 'ustar', 'gnu' or 'pax'

    Returns:
        Number of entries written

    Raises:
        ArchiveIOError: if the archive cannot be created or finalized
    """
    output_path = Path(output_path)
    entries = order_entries(results, sort_entries)
    written = 0

    try:
        with open_output(output_path, atomic=atomic) as fh:
            with open_container_writer(fh, codec=codec, level=level) as stream:
                with tarfile.open(fileobj=stream, mode='w|',
                                  format=TAR_FORMAT_CODES[tar_format],
                                  encoding=PATH_ENCODING, errors='strict') as tar:
                    for entry in entries:
                        if not entry.success:
                            continue
                        tar.addfile(entry.descriptor.to_tarinfo(), io.BytesIO(entry.payload))
                        written += 1
    except (OSError, zstd.ZstdError, tarfile.TarError, RuntimeError) as e:
        raise ArchiveIOError(f"Cannot write archive {output_path}",
                             path=str(output_path), cause=e) from e

    logger.info(f"Wrote {written} entries to {output_path} "
                f"({len(entries) - written} skipped after errors)")
    return written


def format_report(entries: Iterable[ProcessedEntry], width: int = 60) -> Iterator[str]:
    """One ``<relative_path> [OK|ERR]`` line per processed file"""
    for entry in entries:
        yield f"{printable_path(entry.relative_path):<{width}} [{entry.status}]"
