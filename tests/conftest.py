"""
Shared fixtures for the folder archive test suite.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from pipeline_configs import PipelineConfig


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    tmp_dir = Path(tempfile.mkdtemp())
    yield tmp_dir
    shutil.rmtree(tmp_dir, ignore_errors=True)


@pytest.fixture
def fast_config():
    """Low compression levels keep the suite quick."""
    return PipelineConfig(compression_level=3, num_workers=4, show_progress=False)


@pytest.fixture
def sample_tree(temp_dir):
    """A small folder with nested, empty, binary and non-ASCII files."""
    root = temp_dir / "source"
    files = {
        "README.md": b"# Sample\n\nSome text that compresses well. " * 20,
        "empty.txt": b"",
        "data/blob.bin": bytes(range(256)) * 64,
        "data/nested/deep/notes.txt": b"deep file\n",
        "données/café.txt": "café crème".encode("utf-8"),
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    return root, files


@pytest.fixture
def read_tree():
    """Map forward-slash relative path -> content for every file under a root."""
    def _read(root: Path) -> dict:
        return {
            p.relative_to(root).as_posix(): p.read_bytes()
            for p in sorted(root.rglob("*")) if p.is_file()
        }
    return _read
