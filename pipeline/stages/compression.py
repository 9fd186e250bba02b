"""
Byte codecs for per-file and container-level compression.

Per-file payloads are compressed one-shot from a complete in-memory buffer;
the container is compressed as a stream wrapped around the tar writer.
Both zstd (``zstandard``) and LZ4 frames (``lz4.frame``) are supported and
recognised on read by their frame magic numbers.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import BinaryIO, Dict, Iterator, Optional

import lz4.frame
import zstandard as zstd

from archive_errors import CompressError, DecodeError

logger = logging.getLogger(__name__)

ZSTD_MAGIC = b'\x28\xb5\x2f\xfd'
LZ4_MAGIC = b'\x04\x22\x4d\x18'


class ByteCodec(ABC):
    """A compression algorithm usable for payloads and container streams"""

    name: str = ''
    magic: bytes = b''
    min_level: int = 0
    max_level: int = 0

    def check_level(self, level: int) -> None:
        if not self.min_level <= level <= self.max_level:
            raise ValueError(f"{self.name} level must be between "
                             f"{self.min_level} and {self.max_level}, got {level}")

    def compress(self, data: bytes, level: int) -> bytes:
        """Compress a complete buffer; empty input yields a valid empty frame.

        Raises:
            CompressError: if the codec rejects the input
        """
        try:
            return self._compress(data, level)
        except (zstd.ZstdError, RuntimeError, ValueError, MemoryError) as e:
            raise CompressError(f"{self.name} compression failed", cause=e) from e

    def decompress(self, data: bytes) -> bytes:
        """Decompress a complete frame.

        Raises:
            DecodeError: if the frame is corrupt or truncated
        """
        try:
            return self._decompress(data)
        except (zstd.ZstdError, RuntimeError, ValueError) as e:
            raise DecodeError(f"{self.name} payload is corrupt", cause=e) from e

    def matches(self, head: bytes) -> bool:
        return head.startswith(self.magic)

    @abstractmethod
    def _compress(self, data: bytes, level: int) -> bytes:
        pass

    @abstractmethod
    def _decompress(self, data: bytes) -> bytes:
        pass

    @abstractmethod
    def stream_writer(self, fileobj: BinaryIO, level: int):
        """Wrap ``fileobj`` in a compressing writer; closing it must not close ``fileobj``"""

    @abstractmethod
    def stream_reader(self, fileobj: BinaryIO):
        """Wrap ``fileobj`` in a decompressing reader"""


class ZstdCodec(ByteCodec):
    name = 'zstd'
    magic = ZSTD_MAGIC
    min_level = 1
    max_level = 22

    # ZstdCompressor/ZstdDecompressor instances are not thread safe; build one per call.
    # Frames carry a content checksum
    def _compress(self, data: bytes, level: int) -> bytes:
        return zstd.ZstdCompressor(level=level, write_checksum=True).compress(data)

    def _decompress(self, data: bytes) -> bytes:
        return zstd.ZstdDecompressor().decompress(data)

    def stream_writer(self, fileobj: BinaryIO, level: int):
        compressor = zstd.ZstdCompressor(level=level, write_checksum=True)
        return compressor.stream_writer(fileobj, closefd=False)

    def stream_reader(self, fileobj: BinaryIO):
        return zstd.ZstdDecompressor().stream_reader(fileobj, closefd=False)


class Lz4Codec(ByteCodec):
    name = 'lz4'
    magic = LZ4_MAGIC
    min_level = 0
    max_level = 16

    def _compress(self, data: bytes, level: int) -> bytes:
        return lz4.frame.compress(data, compression_level=level, content_checksum=True)

    def _decompress(self, data: bytes) -> bytes:
        return lz4.frame.decompress(data)

    def stream_writer(self, fileobj: BinaryIO, level: int):
        return lz4.frame.LZ4FrameFile(fileobj, mode='wb', compression_level=level,
                                     content_checksum=True)

    def stream_reader(self, fileobj: BinaryIO):
        return lz4.frame.LZ4FrameFile(fileobj, mode='rb')


CODECS: Dict[str, ByteCodec] = {
    'zstd': ZstdCodec(),
    'lz4': Lz4Codec(),
}


def get_codec(name: str) -> ByteCodec:
    try:
        return CODECS[name]
    except KeyError:
        raise ValueError(f"Unknown codec: {name} (expected one of {', '.join(CODECS)})")


def detect_codec(head: bytes) -> Optional[ByteCodec]:
    """Identify the codec of a frame from its first bytes"""
    for codec in CODECS.values():
        if codec.matches(head):
            return codec
    return None


def decode_payload(data: bytes) -> bytes:
    """Undo per-file compression of an extracted payload.

    Raises:
        DecodeError: if the payload is not a zstd or LZ4 frame
    """
    codec = detect_codec(data[:4])
    if codec is None:
        raise DecodeError("Payload is not a zstd or LZ4 frame")
    return codec.decompress(data)


@contextmanager
def open_container_writer(fileobj: BinaryIO, codec: str = 'zstd', level: int = 21) -> Iterator[BinaryIO]:
    """Container-level compressor around ``fileobj``.

    The compressed frame is finished when the context exits, before the
    caller closes ``fileobj``.
    """
    selected = get_codec(codec)
    selected.check_level(level)
    writer = selected.stream_writer(fileobj, level)
    try:
        yield writer
    finally:
        writer.close()
    logger.debug(f"Finished {codec} container frame at level {level}")


@contextmanager
def open_container_reader(fileobj: BinaryIO) -> Iterator[BinaryIO]:
    """Container-level decompressor around a seekable ``fileobj``.

    Raises:
        DecodeError: if the stream does not start with a known frame magic
    """
    head = fileobj.read(4)
    fileobj.seek(0)
    codec = detect_codec(head)
    if codec is None:
        raise DecodeError("Unrecognised archive format (expected a zstd or LZ4 stream)")
    logger.debug(f"Detected {codec.name} container")
    reader = codec.stream_reader(fileobj)
    try:
        yield reader
    finally:
        reader.close()
