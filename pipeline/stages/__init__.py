"""
Pipeline stages for the folder archive system.
"""

from .compression import ByteCodec, get_codec, detect_codec, decode_payload
from .entry import build_entry
from .ingest import ingest_file
from .reader import EntryInfo, extract, list_entries
from .writer import format_report, order_entries, write_archive

__all__ = [
    'ByteCodec',
    'get_codec',
    'detect_codec',
    'decode_payload',
    'build_entry',
    'ingest_file',
    'EntryInfo',
    'extract',
    'list_entries',
    'format_report',
    'order_entries',
    'write_archive',
]
