"""
Archive Error Types
===================

Structured errors for the folder archive pipeline. Errors fall into two
families:

- ``FileProcessingError`` subclasses describe a failure of one file
  (open, read, compress, path encoding). The parallel pipeline records
  them against that file's entry and keeps going.
- ``FatalArchiveError`` subclasses describe a failure of the archive
  itself (output creation, corrupt input, unsafe member paths). They
  abort the command and surface to the caller.
"""

import time
import traceback
from typing import Any, Dict, Optional


class ArchiveError(Exception):
    """Base class for all archive pipeline errors"""

    error_code = "ARCHIVE_ERROR"

    def __init__(self, message: str, path: Optional[str] = None,
                 cause: Optional[BaseException] = None,
                 details: Optional[Dict[str, Any]] = None):
        """
        Initialize an archive error.

        Args:
            message: Error description
            path: File or archive path the error is attributed to
            cause: Original exception that caused this error
            details: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.path = path
        self.cause = cause
        self.details = details or {}
        self.timestamp = time.time()
        self.traceback = traceback.format_exc() if cause else None

    def __str__(self) -> str:
        base_msg = f"[{self.error_code}] {self.message}"
        if self.cause:
            return f"{base_msg} (caused by {type(self.cause).__name__}: {self.cause})"
        return base_msg

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(message={self.message!r}, "
                f"path={self.path!r}, cause={self.cause!r})")

    def log_context(self) -> Dict[str, Any]:
        """Return a dict suitable for structured logging"""
        return {
            'error_type': type(self).__name__,
            'error_code': self.error_code,
            'message': self.message,
            'path': self.path,
            'cause': repr(self.cause) if self.cause else None,
            'details': self.details,
            'timestamp': self.timestamp,
        }


class FileProcessingError(ArchiveError):
    """Failure confined to a single file; recorded, never propagated"""

    error_code = "FILE_ERROR"


class OpenFailed(FileProcessingError):
    error_code = "OPEN_FAILED"


class ReadFailed(FileProcessingError):
    error_code = "READ_FAILED"


class CompressError(FileProcessingError):
    error_code = "COMPRESS_FAILED"


class PathEncodingError(FileProcessingError):
    """Relative path cannot be represented in the archive header"""

    error_code = "PATH_ENCODING"


class FatalArchiveError(ArchiveError):
    """Failure of the archive as a whole; aborts the command"""

    error_code = "FATAL"


class ArchiveIOError(FatalArchiveError):
    error_code = "IO_ERROR"


class InputFolderError(FatalArchiveError):
    error_code = "INPUT_FOLDER"


class DecodeError(FatalArchiveError):
    """Archive stream is corrupt, truncated or of an unknown format"""

    error_code = "DECODE_ERROR"


class UnsafePathError(FatalArchiveError):
    """Archive member would be written outside the output directory"""

    error_code = "UNSAFE_PATH"
