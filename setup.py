#!/usr/bin/env python3
"""
Setup configuration for the Folder Archive Pipeline.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

# Read requirements from requirements.txt
requirements = []
if (this_directory / "requirements.txt").exists():
    requirements = (this_directory / "requirements.txt").read_text().strip().split('\n')
    requirements = [req.strip() for req in requirements if req.strip() and not req.startswith('#')]

setup(
    name="folder-archive",
    version="1.0.0",
    author="Project Think",
    author_email="",
    description="Parallel folder archiver with per-file and container-level compression",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=['pipeline', 'pipeline.*']),
    py_modules=[
        'archive_errors',
        'archive_pipeline',
        'base_classes',
        'compress',
        'pipeline_configs',
        'pipeline_monitoring',
        'secure_utils',
        'security_validation',
    ],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Archiving :: Compression",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov",
            "pytest-asyncio",
            "black",
            "flake8",
            "mypy",
        ],
        "test": [
            "pytest>=7.0",
            "pytest-cov",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "folder-archive=compress:main",
        ],
    },
    keywords=[
        "archive",
        "tar",
        "zstd",
        "lz4",
        "compression",
        "parallel",
    ],
)
