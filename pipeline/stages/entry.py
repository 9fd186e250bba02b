"""
Entry building: turn a relative path and compressed payload into tar header
metadata. Pure functions, no I/O and no shared state.
"""

import tarfile

from archive_errors import PathEncodingError
from base_classes import EntryDescriptor
from security_validation import PathValidator

PATH_ENCODING = 'utf-8'
MAX_USTAR_MTIME = 8 ** 11 - 1

TAR_FORMAT_CODES = {
    'ustar': tarfile.USTAR_FORMAT,
    'gnu': tarfile.GNU_FORMAT,
    'pax': tarfile.PAX_FORMAT,
}


def printable_path(name: str) -> str:
    """Render a path for the console; undecodable bytes appear as escapes"""
    return name.encode(PATH_ENCODING, 'backslashreplace').decode(PATH_ENCODING)


def build_entry(relative_path: str, compressed: bytes,
                mtime: float = 0.0, mode: int = 0o644,
                tar_format: str = 'ustar') -> EntryDescriptor:
    """
    Describe one archive entry.

    The path must be a safe forward-slash relative path that the chosen tar
    format can encode in strict UTF-8 (ustar: at most 100 bytes, or split on
    a ``/`` into a prefix of at most 155 bytes and a name of at most 100).
    The checksum is the tar header checksum, covering the header fields but
    not the payload.

    Raises:
        PathEncodingError: naming ``relative_path`` when it cannot be encoded
    """
    reason = PathValidator.problem(relative_path)
    if reason:
        raise PathEncodingError(f"{relative_path!r}: {reason}", path=relative_path)

    try:
        format_code = TAR_FORMAT_CODES[tar_format]
    except KeyError:
        raise ValueError(f"Invalid tar_format: {tar_format}")

    info = tarfile.TarInfo(relative_path)
    info.size = len(compressed)
    # ustar stores mtime in 11 octal digits
    info.mtime = min(max(int(mtime), 0), MAX_USTAR_MTIME)
    info.mode = mode & 0o7777
    info.type = tarfile.REGTYPE

    try:
        header = info.tobuf(format=format_code, encoding=PATH_ENCODING, errors='strict')
    except ValueError as e:
        # UnicodeEncodeError is a ValueError; so is ustar's "name is too long"
        raise PathEncodingError(f"{relative_path!r} cannot be stored in a {tar_format} header",
                                path=relative_path, cause=e) from e

    return EntryDescriptor(
        name=relative_path,
        size=info.size,
        checksum=header_checksum(header),
        mtime=info.mtime,
        mode=info.mode,
        tar_format=format_code,
        path_encoding=PATH_ENCODING,
        header=header,
    )


def header_checksum(header: bytes) -> int:
    """Checksum of the last 512-byte block of an encoded header.

    GNU and pax formats may prepend extension blocks for long names; the
    member's own header is always the final block.
    """
    return tarfile.calc_chksums(header[-tarfile.BLOCKSIZE:])[0]
