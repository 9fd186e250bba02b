"""
Pipeline Configurations for Different Use Cases
===============================================

This module provides the archive pipeline settings and pre-configured
presets tuned for common scenarios.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Optional

import psutil

logger = logging.getLogger(__name__)

# Codec name -> (min level, max level)
CODEC_LEVELS: Dict[str, tuple] = {
    'zstd': (1, 22),
    'lz4': (0, 16),
}

TAR_FORMATS = ('ustar', 'gnu', 'pax')


@dataclass
class PipelineConfig:
    """Configuration settings for the archive pipeline"""

    # Processing settings
    num_workers: Optional[int] = None  # None -> one per CPU
    chunk_size: int = 8 * 1024  # Read size for file ingestion

    # Per-file compression
    codec: str = 'zstd'
    compression_level: int = 21

    # Container settings
    container_codec: str = 'zstd'
    container_level: Optional[int] = None  # None -> same as compression_level
    tar_format: str = 'ustar'
    sort_entries: bool = True
    atomic_write: bool = True

    # Enumeration
    follow_symlinks: bool = False

    # Runtime settings
    show_progress: bool = True
    memory_threshold_percent: float = 80.0

    def __post_init__(self) -> None:
        """Validate configuration parameters"""
        if self.num_workers is not None and self.num_workers <= 0:
            raise ValueError("num_workers must be positive")
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if self.codec not in CODEC_LEVELS:
            raise ValueError(f"Invalid codec: {self.codec}")
        if self.container_codec not in CODEC_LEVELS:
            raise ValueError(f"Invalid container_codec: {self.container_codec}")
        self._check_level(self.codec, self.compression_level, 'compression_level')
        if self.container_level is not None:
            self._check_level(self.container_codec, self.container_level, 'container_level')
        if self.tar_format not in TAR_FORMATS:
            raise ValueError(f"Invalid tar_format: {self.tar_format}")
        if not 0 < self.memory_threshold_percent <= 100:
            raise ValueError("memory_threshold_percent must be in (0, 100]")

    @staticmethod
    def _check_level(codec: str, level: int, field_name: str) -> None:
        low, high = CODEC_LEVELS[codec]
        if not low <= level <= high:
            raise ValueError(f"{field_name} for {codec} must be between {low} and {high}")

    @property
    def effective_container_level(self) -> int:
        if self.container_level is not None:
            return self.container_level
        # Levels are codec specific; clamp when borrowing the per-file level
        low, high = CODEC_LEVELS[self.container_codec]
        return min(max(self.compression_level, low), high)

    def with_overrides(self, **changes) -> 'PipelineConfig':
        """Return a validated copy with the non-None values of ``changes`` applied"""
        changes = {k: v for k, v in changes.items() if v is not None}
        if 'codec' in changes and 'container_codec' not in changes:
            changes['container_codec'] = changes['codec']
        if 'codec' in changes and 'compression_level' not in changes:
            changes['compression_level'] = _default_level(changes['codec'])
        if 'container_codec' in changes and 'container_level' not in changes:
            changes['container_level'] = None
        return replace(self, **changes)


def _default_level(codec: str) -> int:
    return PipelineConfig.compression_level if codec == 'zstd' else 9


class ConfigPresets:
    """Pre-configured settings for common use cases"""

    @staticmethod
    def fast() -> PipelineConfig:
        """
        Optimized for throughput
        - LZ4 per file and for the container
        - All CPUs
        """
        return PipelineConfig(
            codec='lz4',
            compression_level=3,
            container_codec='lz4',
            container_level=0,
        )

    @staticmethod
    def max_ratio() -> PipelineConfig:
        """Maximum zstd compression at both levels"""
        return PipelineConfig(
            codec='zstd',
            compression_level=22,
            container_codec='zstd',
            container_level=22,
        )

    @staticmethod
    def low_memory() -> PipelineConfig:
        """
        Optimized for systems with limited memory
        - Two workers, so at most two files are held in memory
        - Moderate zstd levels
        """
        return PipelineConfig(
            num_workers=2,
            codec='zstd',
            compression_level=9,
            container_codec='zstd',
            container_level=9,
            memory_threshold_percent=60.0,
        )


class AdaptiveConfig:
    """Pick a preset from system resources and the input folder"""

    @staticmethod
    def auto_configure(input_folder: Path) -> PipelineConfig:
        """Automatically configure based on folder and system characteristics"""
        cpu_count = os.cpu_count() or 4
        memory = psutil.virtual_memory()

        largest = 0
        total_size = 0
        try:
            for f in Path(input_folder).rglob('*'):
                if f.is_file():
                    try:
                        size = f.stat().st_size
                    except OSError as e:
                        logger.warning(f"Cannot access file {f}: {e}")
                        continue
                    total_size += size
                    largest = max(largest, size)
        except OSError as e:
            logger.error(f"Error analyzing folder: {e}")

        if memory.total < 4 * 1024 * 1024 * 1024:  # < 4GB RAM
            config = ConfigPresets.low_memory()
        elif total_size > memory.available:
            config = ConfigPresets.fast()
        else:
            config = PipelineConfig()

        # Each worker holds one whole file plus its compressed copy
        if largest:
            fit = int(memory.available // (largest * 2)) or 1
            config.num_workers = max(1, min(cpu_count, fit, config.num_workers or cpu_count))

        logger.info(f"Auto configuration: codec={config.codec} level={config.compression_level} "
                    f"workers={config.num_workers}")
        return config
