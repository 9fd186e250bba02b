"""
Archive reading: decode the container stream and materialize entries on disk.
"""

import logging
import tarfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Union

import zstandard as zstd

from archive_errors import ArchiveIOError, DecodeError, UnsafePathError
from pipeline.stages.compression import decode_payload, open_container_reader
from pipeline.stages.entry import PATH_ENCODING
from security_validation import PathValidator, resolve_inside

logger = logging.getLogger(__name__)

_STREAM_ERRORS = (tarfile.TarError, zstd.ZstdError, EOFError, RuntimeError)


@dataclass(frozen=True)
class EntryInfo:
    """Header information of one archive member"""
    name: str
    size: int
    checksum: int
    mtime: int
    is_dir: bool = False


class _StrictTarInfo(tarfile.TarInfo):
    """TarInfo that treats a damaged header as corruption.

    ``TarFile.next`` stops quietly on a bad header past the first member,
    which would make a damaged archive look like a shorter valid one.
    """

    @classmethod
    def fromtarfile(cls, tarfile_):
        try:
            return super().fromtarfile(tarfile_)
        except tarfile.EOFHeaderError:
            raise
        except tarfile.HeaderError as e:
            raise tarfile.ReadError(f"Invalid header at offset {tarfile_.offset}: {e}") from e


@contextmanager
def open_archive(input_path: Union[str, Path]) -> Iterator[tarfile.TarFile]:
    """Open an archive as a streaming tar reader.

    Corruption detected anywhere while the context is active is raised as
    ``DecodeError``.
    """
    try:
        fh = open(input_path, 'rb')
    except OSError as e:
        raise ArchiveIOError(f"Cannot open archive {input_path}", path=str(input_path), cause=e) from e

    try:
        with fh, open_container_reader(fh) as stream:
            with tarfile.open(fileobj=stream, mode='r|', tarinfo=_StrictTarInfo,
                              encoding=PATH_ENCODING, errors='surrogateescape') as tar:
                yield tar
    except _STREAM_ERRORS as e:
        raise DecodeError(f"Archive {input_path} is corrupt or truncated",
                          path=str(input_path), cause=e) from e


def _check_member(member: tarfile.TarInfo) -> None:
    reason = PathValidator.problem(member.name)
    if reason:
        raise UnsafePathError(f"Refusing archive member {member.name!r}: {reason}", path=member.name)
    if not (member.isfile() or member.isdir()):
        raise UnsafePathError(f"Refusing archive member {member.name!r}: "
                              f"links and special files are not extracted", path=member.name)


def _check_trailer(tar: tarfile.TarFile) -> None:
    # Only NUL padding may follow the end-of-archive block. Reading to the end
    # also lets the container codec verify its frame checksum.
    while True:
        block = tar.fileobj.read(tarfile.RECORDSIZE)
        if not block:
            return
        if block.strip(b'\0'):
            raise DecodeError("Unexpected data after the end-of-archive marker")


def _read_member(tar: tarfile.TarFile, member: tarfile.TarInfo) -> bytes:
    f = tar.extractfile(member)
    data = f.read() if f is not None else b''
    if len(data) != member.size:
        raise DecodeError(f"Archive member {member.name!r} is truncated "
                          f"({len(data)} of {member.size} bytes)", path=member.name)
    return data


def list_entries(input_path: Union[str, Path]) -> List[EntryInfo]:
    """
    List archive members without writing anything.

    Raises:
        DecodeError: corrupt or unrecognised archive
        UnsafePathError: a member path is absolute, escapes via ``..``, or is
            a link or special file
        ArchiveIOError: the archive cannot be opened
    """
    entries = []
    with open_archive(input_path) as tar:
        for member in tar:
            _check_member(member)
            entries.append(EntryInfo(name=member.name, size=member.size,
                                     checksum=member.chksum, mtime=int(member.mtime),
                                     is_dir=member.isdir()))
        _check_trailer(tar)
    return entries


def extract(input_path: Union[str, Path], output_dir: Union[str, Path],
            decode_entries: bool = False) -> List[str]:
    """
    Unpack every archive member under ``output_dir``.

    Per-file payloads are written exactly as stored, i.e. still compressed
    with their per-file codec; the container compression is the only layer
    removed. Pass ``decode_entries=True`` to also undo the per-file layer and
    restore original file contents.

    All member paths are validated in a first pass, so an archive containing
    an unsafe member writes nothing at all.

    Returns:
        Names of the files written, in archive order

    Raises:
        DecodeError: corrupt or truncated archive, or undecodable payload
        UnsafePathError: a member would land outside ``output_dir``
        ArchiveIOError: the archive cannot be opened or a file cannot be written
    """
    list_entries(input_path)

    root = Path(output_dir)
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ArchiveIOError(f"Cannot create output directory {root}", path=str(root), cause=e) from e

    written = []
    with open_archive(input_path) as tar:
        for member in tar:
            target = resolve_inside(root, member.name)
            try:
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                data = _read_member(tar, member)
                if decode_entries:
                    data = decode_payload(data)
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(data)
            except OSError as e:
                raise ArchiveIOError(f"Cannot write {target}", path=str(target), cause=e) from e
            written.append(member.name)
            logger.debug(f"Extracted {member.name} ({len(data)} bytes)")

    logger.info(f"Extracted {len(written)} files from {input_path} into {root}")
    return written
