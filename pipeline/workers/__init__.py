"""
Worker pool that runs the per-file archive chain in parallel.
"""

from .parallel_processor import MAX_WORKERS, ParallelProcessor

__all__ = [
    'MAX_WORKERS',
    'ParallelProcessor',
]
