"""
Secure Utilities Module
=======================

Atomic file output for archives: data is written to a temporary file next
to the target, fsynced, and renamed into place, so a killed process never
leaves a half-written archive under the final name.
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Union

logger = logging.getLogger(__name__)


@contextmanager
def atomic_output(target_path: Union[str, Path], permissions: int = 0o644) -> Iterator[BinaryIO]:
    """Open ``target_path`` for binary writing with atomic replace on success"""
    target_path = Path(target_path)
    fd, temp_name = tempfile.mkstemp(
        dir=str(target_path.parent),
        prefix=f'.{target_path.name}.',
        suffix='.tmp'
    )
    temp_path = Path(temp_name)

    try:
        with os.fdopen(fd, 'wb') as f:
            yield f
            f.flush()
            os.fsync(f.fileno())

        if hasattr(os, 'chmod'):
            os.chmod(temp_path, permissions)

        # Atomic rename
        os.replace(temp_path, target_path)
    except BaseException:
        # Cleanup on failure
        try:
            temp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove temp file {temp_path}: {e}")
        raise


@contextmanager
def direct_output(target_path: Union[str, Path]) -> Iterator[BinaryIO]:
    """Open ``target_path`` for binary writing in place"""
    with open(target_path, 'wb') as f:
        yield f
        f.flush()


def open_output(target_path: Union[str, Path], atomic: bool = True):
    return atomic_output(target_path) if atomic else direct_output(target_path)
