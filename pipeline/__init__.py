"""
Folder archive pipeline modules.
"""

# Import pipeline stages
from .stages.compression import get_codec, detect_codec
from .stages.reader import extract, list_entries
from .stages.writer import write_archive, format_report
from .workers.parallel_processor import ParallelProcessor

__all__ = [
    'get_codec',
    'detect_codec',
    'extract',
    'list_entries',
    'write_archive',
    'format_report',
    'ParallelProcessor',
]
