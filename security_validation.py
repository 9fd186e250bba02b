"""
Archive Path Validation
=======================

Rules for the relative paths stored in archive entries. The same rules are
applied when writing (an invalid path fails that one file) and when reading
(an invalid path rejects the whole archive), and extraction targets are
checked to resolve inside the output directory.
"""

import logging
import re
from pathlib import Path, PurePosixPath
from typing import Optional, Union

from archive_errors import UnsafePathError

logger = logging.getLogger(__name__)

_DRIVE_PREFIX = re.compile(r'^[A-Za-z]:')


class PathValidator:
    """Validates forward-slash relative paths used as archive entry names"""

    @staticmethod
    def problem(name: str) -> Optional[str]:
        """Return why ``name`` is not a safe relative entry path, or None if it is"""
        if not name:
            return "empty path"
        if '\x00' in name:
            return "path contains null bytes"
        if '\\' in name:
            return "path contains backslashes"
        if name.startswith('/') or _DRIVE_PREFIX.match(name):
            return "absolute path"
        for segment in name.split('/'):
            if segment == '..':
                return "parent directory reference"
            if segment in ('', '.'):
                return "empty or current-directory segment"
        return None

    @staticmethod
    def to_entry_name(path: Union[str, Path], root: Union[str, Path]) -> str:
        """Express ``path`` relative to ``root`` using forward slashes"""
        return PurePosixPath(*Path(path).relative_to(root).parts).as_posix()


def resolve_inside(root: Path, name: str) -> Path:
    """Map an archive entry name onto a path inside ``root``.

    Raises:
        UnsafePathError: if the name is unsafe or resolves outside ``root``
            (for example through a symlink already present in ``root``)
    """
    reason = PathValidator.problem(name)
    if reason:
        raise UnsafePathError(f"Refusing archive member {name!r}: {reason}", path=name)

    root = Path(root).resolve()
    target = (root / name).resolve()
    try:
        target.relative_to(root)
    except ValueError:
        logger.error(f"Archive member escapes output directory: {name}")
        raise UnsafePathError(f"Archive member {name!r} resolves outside {root}", path=name)
    return target
