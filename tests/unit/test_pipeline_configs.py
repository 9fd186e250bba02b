"""
Unit tests for pipeline configuration and presets
"""

from collections import namedtuple
from unittest.mock import patch

import pytest

from pipeline_configs import AdaptiveConfig, ConfigPresets, PipelineConfig

GB = 1024 * 1024 * 1024
FakeMemory = namedtuple("FakeMemory", "total available percent")


class TestPipelineConfig:
    """Test PipelineConfig validation and overrides"""

    def test_defaults(self):
        """Test defaults: zstd level 21 for both layers, sorted ustar output"""
        config = PipelineConfig()

        assert config.codec == "zstd"
        assert config.compression_level == 21
        assert config.container_codec == "zstd"
        assert config.effective_container_level == 21
        assert config.tar_format == "ustar"
        assert config.sort_entries is True
        assert config.atomic_write is True
        assert config.follow_symlinks is False

    @pytest.mark.parametrize("kwargs,message", [
        ({"num_workers": 0}, "num_workers must be positive"),
        ({"chunk_size": 0}, "chunk_size must be positive"),
        ({"codec": "gzip"}, "Invalid codec: gzip"),
        ({"container_codec": "xz"}, "Invalid container_codec: xz"),
        ({"compression_level": 23}, "compression_level for zstd must be between 1 and 22"),
        ({"codec": "lz4", "compression_level": 17}, "compression_level for lz4"),
        ({"container_level": 0}, "container_level for zstd"),
        ({"tar_format": "v7"}, "Invalid tar_format: v7"),
        ({"memory_threshold_percent": 0}, "memory_threshold_percent"),
    ])
    def test_validation(self, kwargs, message):
        """Test invalid settings are rejected on construction"""
        with pytest.raises(ValueError, match=message):
            PipelineConfig(**kwargs)

    def test_container_level_clamped_to_codec(self):
        """Test a borrowed per-file level is clamped to the container codec range"""
        config = PipelineConfig(compression_level=21, container_codec="lz4")
        assert config.effective_container_level == 16

    def test_explicit_container_level(self):
        """Test an explicit container level wins"""
        assert PipelineConfig(container_level=5).effective_container_level == 5

    def test_with_overrides_ignores_none(self):
        """Test None values leave settings unchanged"""
        config = PipelineConfig().with_overrides(codec=None, num_workers=None, tar_format="gnu")
        assert config.codec == "zstd"
        assert config.num_workers is None
        assert config.tar_format == "gnu"

    def test_codec_override_follows_through(self):
        """Test changing the codec also changes the container codec and default level"""
        config = PipelineConfig().with_overrides(codec="lz4")
        assert config.container_codec == "lz4"
        assert config.compression_level == 9
        assert config.container_level is None

    def test_codec_override_with_level(self):
        """Test an explicit level is kept with a codec change"""
        config = PipelineConfig().with_overrides(codec="lz4", compression_level=2,
                                                 container_codec="zstd")
        assert config.compression_level == 2
        assert config.container_codec == "zstd"
        assert config.effective_container_level == 2

    def test_with_overrides_validates(self):
        """Test overrides go through validation"""
        with pytest.raises(ValueError):
            ConfigPresets.fast().with_overrides(compression_level=40)


class TestConfigPresets:
    """Test the named presets"""

    def test_fast(self):
        config = ConfigPresets.fast()
        assert config.codec == "lz4"
        assert config.container_codec == "lz4"

    def test_max_ratio(self):
        config = ConfigPresets.max_ratio()
        assert config.compression_level == 22
        assert config.effective_container_level == 22

    def test_low_memory(self):
        config = ConfigPresets.low_memory()
        assert config.num_workers == 2
        assert config.memory_threshold_percent == 60.0


class TestAdaptiveConfig:
    """Test AdaptiveConfig.auto_configure"""

    def test_low_memory_system(self, sample_tree):
        """Test small machines get the low-memory preset"""
        root, _ = sample_tree
        with patch("pipeline_configs.psutil.virtual_memory",
                   return_value=FakeMemory(2 * GB, 1 * GB, 50.0)):
            config = AdaptiveConfig.auto_configure(root)

        assert config.compression_level == 9
        assert config.num_workers <= 2

    def test_large_input_prefers_speed(self, sample_tree):
        """Test inputs larger than available memory get the fast preset"""
        root, _ = sample_tree
        with patch("pipeline_configs.psutil.virtual_memory",
                   return_value=FakeMemory(16 * GB, 1000, 90.0)):
            config = AdaptiveConfig.auto_configure(root)

        assert config.codec == "lz4"
        assert config.num_workers == 1

    def test_default_system(self, sample_tree):
        """Test roomy systems keep the default codec"""
        root, _ = sample_tree
        with patch("pipeline_configs.psutil.virtual_memory",
                   return_value=FakeMemory(32 * GB, 16 * GB, 20.0)):
            config = AdaptiveConfig.auto_configure(root)

        assert config.codec == "zstd"
        assert config.compression_level == 21
        assert config.num_workers >= 1
