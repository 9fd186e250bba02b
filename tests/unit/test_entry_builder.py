"""
Unit tests for entry building
"""

import io
import os
import tarfile

import pytest

from archive_errors import PathEncodingError
from pipeline.stages.entry import MAX_USTAR_MTIME, build_entry, header_checksum, printable_path


class TestBuildEntry:
    """Test build_entry"""

    def test_descriptor_fields(self):
        """Test the descriptor carries name, payload size and metadata"""
        descriptor = build_entry("docs/readme.md", b"\x28\xb5\x2f\xfd" + b"x" * 20,
                                 mtime=1_700_000_000.7, mode=0o100755)

        assert descriptor.name == "docs/readme.md"
        assert descriptor.size == 24
        assert descriptor.mtime == 1_700_000_000
        assert descriptor.mode == 0o755
        assert descriptor.tar_format == tarfile.USTAR_FORMAT
        assert descriptor.path_encoding == "utf-8"
        assert len(descriptor.header) == tarfile.BLOCKSIZE

    def test_checksum_ignores_payload_content(self):
        """Test the checksum covers header fields, not payload bytes"""
        a = build_entry("a.txt", b"aaaa")
        b = build_entry("a.txt", b"bbbb")
        c = build_entry("b.txt", b"aaaa")

        assert a.checksum == b.checksum
        assert a.checksum != c.checksum

    def test_checksum_matches_written_header(self):
        """Test the checksum equals what a tar reader reports for the member"""
        payload = b"payload bytes"
        descriptor = build_entry("dir/file.bin", payload, mtime=1234567890)

        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode="w", format=tarfile.USTAR_FORMAT) as tar:
            tar.addfile(descriptor.to_tarinfo(), io.BytesIO(payload))
        buf.seek(0)
        with tarfile.open(fileobj=buf, mode="r") as tar:
            member = tar.getmember("dir/file.bin")

        assert member.chksum == descriptor.checksum
        assert member.size == len(payload)
        assert header_checksum(descriptor.header) == descriptor.checksum

    def test_unicode_path(self):
        """Test non-ASCII UTF-8 paths are accepted"""
        descriptor = build_entry("données/café.txt", b"")
        assert descriptor.name == "données/café.txt"
        assert descriptor.size == 0

    def test_mtime_is_clamped(self):
        """Test out-of-range modification times fit the header field"""
        assert build_entry("old", b"", mtime=-5).mtime == 0
        assert build_entry("future", b"", mtime=10 ** 12).mtime == MAX_USTAR_MTIME

    @pytest.mark.parametrize("name", [
        "", "/etc/passwd", "../escape", "a/../../b", "a//b", "./a", "C:/x", "a\\b", "nul\x00l",
    ])
    def test_unsafe_paths_rejected(self, name):
        """Test paths that cannot be extracted safely are rejected"""
        with pytest.raises(PathEncodingError):
            build_entry(name, b"data")

    def test_non_utf8_path_rejected(self):
        """Test a path holding undecodable bytes fails strict UTF-8 encoding"""
        name = b"bad\xff.txt".decode("utf-8", "surrogateescape")
        with pytest.raises(PathEncodingError) as exc_info:
            build_entry(name, b"data")

        assert exc_info.value.path == name
        assert isinstance(exc_info.value.cause, UnicodeEncodeError)

    def test_name_too_long_for_ustar(self):
        """Test a single component over 100 bytes cannot be stored in ustar"""
        name = "n" * 150
        with pytest.raises(PathEncodingError, match="ustar"):
            build_entry(name, b"data")

    def test_long_path_split_into_prefix(self):
        """Test ustar accepts long paths that split on a slash"""
        name = "d" * 120 + "/" + "f" * 90
        assert build_entry(name, b"data").name == name

    @pytest.mark.parametrize("tar_format", ["gnu", "pax"])
    def test_long_name_in_extended_formats(self, tar_format):
        """Test gnu and pax formats store long names"""
        name = "n" * 150
        descriptor = build_entry(name, b"data", tar_format=tar_format)

        assert descriptor.name == name
        assert len(descriptor.header) > tarfile.BLOCKSIZE

    def test_invalid_format(self):
        """Test unknown tar formats are rejected"""
        with pytest.raises(ValueError, match="Invalid tar_format"):
            build_entry("a.txt", b"", tar_format="zip")


class TestPrintablePath:
    """Test printable_path"""

    def test_plain_names_unchanged(self):
        assert printable_path("données/café.txt") == "données/café.txt"

    def test_undecodable_bytes_escaped(self):
        """Test surrogate-escaped names become encodable text"""
        name = os.fsdecode(b"bad\xff.txt")
        shown = printable_path(name)

        assert shown == "bad\\udcff.txt"
        shown.encode("utf-8")
