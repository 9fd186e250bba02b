"""
File ingestion: read one file fully into memory in fixed-size chunks.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from archive_errors import OpenFailed, ReadFailed
from pipeline_monitoring import ProgressCounter

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 8 * 1024


def ingest_file(path: Union[str, Path],
                progress: Optional[ProgressCounter] = None,
                chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """
    Read the complete content of ``path``.

    Every chunk read advances ``progress``. A failure affects only this file:
    partial data is discarded and the error is raised for the caller to record.

    Args:
        path: File to read
        progress: Shared byte counter, safe to use from many threads
        chunk_size: Bytes requested per read call

    Returns:
        The exact byte content of the file

    Raises:
        OpenFailed: if the file cannot be opened
        ReadFailed: if any chunk read fails
    """
    try:
        f = open(path, 'rb')
    except OSError as e:
        raise OpenFailed(f"Cannot open {path}", path=str(path), cause=e) from e

    buffer = bytearray()
    with f:
        while True:
            try:
                chunk = f.read(chunk_size)
            except OSError as e:
                raise ReadFailed(f"Read failed after {len(buffer)} bytes of {path}",
                                 path=str(path), cause=e) from e
            if not chunk:
                break
            buffer.extend(chunk)
            if progress is not None:
                progress.add(len(chunk))

    logger.debug(f"Read {len(buffer)} bytes from {path}")
    return bytes(buffer)
