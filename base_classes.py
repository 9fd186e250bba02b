"""
Base Classes for the Folder Archive Pipeline
============================================

Contains the core data structures passed between pipeline stages.
"""

import tarfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional


@dataclass(frozen=True)
class FileTask:
    """One discovered file waiting to be archived"""
    source_path: Path
    relative_path: str  # Forward-slash path inside the archive
    size: int = 0
    mtime: float = 0.0
    mode: int = 0o644


@dataclass(frozen=True)
class EntryDescriptor:
    """Archive header metadata for one entry"""
    name: str
    size: int  # Length of the compressed payload
    checksum: int  # Header checksum, computed over the descriptor fields only
    mtime: float = 0.0
    mode: int = 0o644
    tar_format: int = tarfile.USTAR_FORMAT
    path_encoding: str = 'utf-8'
    header: bytes = b''

    def to_tarinfo(self) -> tarfile.TarInfo:
        info = tarfile.TarInfo(self.name)
        info.size = self.size
        info.mtime = int(self.mtime)
        info.mode = self.mode
        info.type = tarfile.REGTYPE
        return info


@dataclass
class ProcessedEntry:
    """Outcome of running one FileTask through the pipeline"""
    relative_path: str
    payload: bytes = b''
    descriptor: Optional[EntryDescriptor] = None
    success: bool = False
    error: Optional[BaseException] = None
    original_size: int = 0

    @classmethod
    def ok(cls, relative_path: str, payload: bytes,
           descriptor: EntryDescriptor, original_size: int = 0) -> 'ProcessedEntry':
        return cls(relative_path=relative_path, payload=payload,
                   descriptor=descriptor, success=True,
                   original_size=original_size)

    @classmethod
    def failed(cls, relative_path: str, error: BaseException) -> 'ProcessedEntry':
        return cls(relative_path=relative_path, error=error)

    @property
    def status(self) -> str:
        return "OK" if self.success else "ERR"


@dataclass
class RunResult:
    """All ProcessedEntry objects of one compression run, in collection order.

    Collection order follows worker completion and differs between runs;
    ``pipeline.stages.writer.order_entries`` gives a reproducible order.
    """
    entries: List[ProcessedEntry] = field(default_factory=list)
    total_bytes: int = 0
    bytes_read: int = 0
    written: int = 0

    def append(self, entry: ProcessedEntry) -> None:
        self.entries.append(entry)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ProcessedEntry]:
        return iter(self.entries)

    @property
    def succeeded(self) -> List[ProcessedEntry]:
        return [e for e in self.entries if e.success]

    @property
    def failed(self) -> List[ProcessedEntry]:
        return [e for e in self.entries if not e.success]
