"""Behaviour every bucket driver must share.

Runs once per bundled driver via the parametrized ``bucket`` fixture.
"""

import pytest

from bucketfs import (
    BlobNotFoundError,
    FileInfo,
    InvalidPathError,
    WriterClosedError,
    WriterState,
)


def put(bucket, path, data, **options):
    with bucket.create(path, **options) as w:
        w.write(data)


class TestRoundTrip:
    """Test write-then-read behaviour."""

    def test_write_then_read(self, bucket):
        """Test that committed bytes read back exactly."""
        data = b"hello\x00world" * 100
        put(bucket, "a/b/c.bin", data)

        with bucket.open("a/b/c.bin") as f:
            assert f.read() == data
        assert bucket.info("a/b/c.bin").size == len(data)

    def test_info_returns_snapshot(self, bucket):
        """Test info fields for a fresh blob."""
        put(bucket, "doc.txt", b"12345")

        info = bucket.info("doc.txt")
        assert isinstance(info, FileInfo)
        assert info.path == "doc.txt"
        assert info.size == 5
        assert info.mtime is not None

    def test_overwrite_replaces_content(self, bucket):
        """Test that a second commit fully replaces the first."""
        put(bucket, "f.txt", b"a much longer original content")
        put(bucket, "f.txt", b"short")

        assert bucket.read("f.txt") == b"short"
        assert bucket.info("f.txt").size == 5

    def test_empty_blob(self, bucket):
        """Test that a writer closed without data creates an empty blob."""
        bucket.create("empty").close()

        assert bucket.info("empty").size == 0
        assert bucket.read("empty") == b""

    def test_str_writes_use_encoding(self, bucket):
        """Test that str data is encoded with the requested encoding."""
        put(bucket, "latin.txt", "café", encoding="latin-1")
        put(bucket, "utf8.txt", "café")

        assert bucket.read("latin.txt") == "café".encode("latin-1")
        assert bucket.read("utf8.txt") == "café".encode("utf-8")

    def test_write_and_read_helpers(self, bucket):
        """Test the whole-blob convenience methods."""
        bucket.write("x/y.txt", b"payload")
        assert bucket.read("x/y.txt") == b"payload"

    def test_concurrent_opens_are_independent(self, bucket):
        """Test that two readers of one blob keep separate positions."""
        put(bucket, "f.txt", b"abcdef")

        with bucket.open("f.txt") as r1, bucket.open("f.txt") as r2:
            assert r1.read(3) == b"abc"
            assert r2.read(2) == b"ab"
            assert r1.read() == b"def"
            assert r2.read() == b"cdef"

    def test_paths_are_normalized(self, bucket):
        """Test that equivalent spellings address the same blob."""
        put(bucket, "/dir//sub/./file.txt", b"x")

        assert bucket.read("dir/sub/file.txt") == b"x"
        assert list(bucket.ls()) == ["dir/sub/file.txt"]

    def test_unknown_options_are_ignored(self, bucket):
        """Test that one option set works against every driver."""
        put(
            bucket,
            "opts.txt",
            b"data",
            content_type="text/plain",
            metadata={"owner": "ops"},
            no_such_option=True,
        )
        assert bucket.read("opts.txt") == b"data"


class TestAtomicity:
    """Test that partial writes are never visible."""

    def test_uncommitted_write_is_invisible(self, bucket):
        """Test that readers see nothing at a new path until commit."""
        with bucket.create("new.txt") as w:
            w.write(b"partial")
            with pytest.raises(BlobNotFoundError):
                bucket.info("new.txt")
            assert list(bucket.ls()) == []

        assert bucket.read("new.txt") == b"partial"

    def test_uncommitted_overwrite_keeps_old_content(self, bucket):
        """Test that readers see old content while a rewrite is in flight."""
        put(bucket, "f.txt", b"old")

        with bucket.create("f.txt") as w:
            w.write(b"new content")
            assert bucket.read("f.txt") == b"old"

        assert bucket.read("f.txt") == b"new content"

    def test_abort_new_path(self, bucket):
        """Test that aborting leaves a new path absent."""
        w = bucket.create("gone.txt")
        w.write(b"data")
        assert w.abort() is WriterState.ABORTED

        with pytest.raises(BlobNotFoundError):
            bucket.info("gone.txt")

    def test_abort_existing_path(self, bucket):
        """Test that aborting leaves old content in place."""
        put(bucket, "f.txt", b"old")
        w = bucket.create("f.txt")
        w.write(b"new")
        w.abort()

        assert bucket.read("f.txt") == b"old"

    def test_exception_in_block_aborts_and_propagates(self, bucket):
        """Test that a failing with-block discards the write and re-raises."""
        put(bucket, "f.txt", b"old")

        with pytest.raises(ValueError, match="boom"):
            with bucket.create("f.txt") as w:
                w.write(b"half")
                raise ValueError("boom")

        assert w.state is WriterState.ABORTED
        assert bucket.read("f.txt") == b"old"

    def test_double_close_returns_prior_outcome(self, bucket):
        """Test that closing twice commits once."""
        w = bucket.create("f.txt")
        w.write(b"once")
        assert w.close() is WriterState.COMMITTED
        assert w.close() is WriterState.COMMITTED
        assert w.abort() is WriterState.COMMITTED
        assert bucket.read("f.txt") == b"once"

    def test_write_after_close_fails(self, bucket):
        """Test that a committed writer rejects more data."""
        w = bucket.create("f.txt")
        w.close()
        with pytest.raises(WriterClosedError):
            w.write(b"late")


class TestDelete:
    """Test rm semantics."""

    def test_rm_removes_blob(self, bucket):
        put(bucket, "f.txt", b"x")
        bucket.rm("f.txt")

        with pytest.raises(BlobNotFoundError):
            bucket.info("f.txt")

    def test_rm_is_idempotent(self, bucket):
        """Test that deleting twice, or deleting nothing, is fine."""
        put(bucket, "f.txt", b"x")
        bucket.rm("f.txt")
        bucket.rm("f.txt")
        bucket.rm("never/existed.txt")


class TestCopyMove:
    """Test cp and mv semantics."""

    def test_cp_leaves_source(self, bucket):
        put(bucket, "a.txt", b"content")
        bucket.cp("a.txt", "deep/nested/b.txt")

        assert bucket.read("a.txt") == b"content"
        assert bucket.read("deep/nested/b.txt") == b"content"

    def test_cp_destination_is_independent(self, bucket):
        """Test that rewriting the copy does not touch the original."""
        put(bucket, "a.txt", b"original")
        bucket.cp("a.txt", "b.txt")
        put(bucket, "b.txt", b"changed and longer")

        assert bucket.info("a.txt").size == len(b"original")
        assert bucket.read("a.txt") == b"original"

    def test_cp_missing_source(self, bucket):
        with pytest.raises(BlobNotFoundError):
            bucket.cp("missing.txt", "b.txt")
        with pytest.raises(BlobNotFoundError):
            bucket.info("b.txt")

    def test_cp_onto_itself(self, bucket):
        put(bucket, "a.txt", b"same")
        bucket.cp("a.txt", "a.txt")

        assert bucket.read("a.txt") == b"same"
        assert list(bucket.ls()) == ["a.txt"]
        with pytest.raises(BlobNotFoundError):
            bucket.cp("missing.txt", "missing.txt")

    def test_mv_moves_content(self, bucket):
        put(bucket, "a.txt", b"moving")
        bucket.mv("a.txt", "x/b.txt")

        with pytest.raises(BlobNotFoundError):
            bucket.info("a.txt")
        assert bucket.read("x/b.txt") == b"moving"

    def test_mv_overwrites_destination(self, bucket):
        put(bucket, "a.txt", b"new")
        put(bucket, "b.txt", b"old")
        bucket.mv("a.txt", "b.txt")

        assert bucket.read("b.txt") == b"new"
        assert list(bucket.ls()) == ["b.txt"]

    def test_mv_missing_source(self, bucket):
        with pytest.raises(BlobNotFoundError):
            bucket.mv("missing.txt", "b.txt")


class TestListing:
    """Test glob-based listing."""

    @pytest.fixture
    def populated(self, bucket):
        for path in ["x/y.txt", "x/z/y.txt", "y.txt", "x/data.csv"]:
            put(bucket, path, b"-")
        return bucket

    def test_default_lists_everything(self, populated):
        assert sorted(populated.ls()) == ["x/data.csv", "x/y.txt", "x/z/y.txt", "y.txt"]

    def test_star_stays_in_segment(self, populated):
        assert sorted(populated.ls("*.txt")) == ["y.txt"]

    def test_double_star_crosses_segments(self, populated):
        assert sorted(populated.ls("**/y.txt")) == ["x/y.txt", "x/z/y.txt", "y.txt"]

    def test_directory_pattern(self, populated):
        assert sorted(populated.ls("x/*")) == ["x/data.csv", "x/y.txt"]
        assert sorted(populated.ls("x/**")) == ["x/data.csv", "x/y.txt", "x/z/y.txt"]

    def test_ls_reenumerates(self, populated):
        """Test that each call reflects the current contents."""
        first = sorted(populated.ls())
        populated.rm("y.txt")
        second = sorted(populated.ls())

        assert "y.txt" in first
        assert "y.txt" not in second

    def test_ls_is_lazy(self, bucket):
        """Test that ls returns an iterator rather than a list."""
        put(bucket, "a.txt", b"-")
        result = bucket.ls()
        assert next(iter(result)) == "a.txt"


class TestMissingAndInvalid:
    """Test error reporting."""

    def test_info_missing(self, bucket):
        with pytest.raises(BlobNotFoundError) as exc_info:
            bucket.info("nope.txt")
        assert exc_info.value.path == "nope.txt"

    def test_open_missing(self, bucket):
        with pytest.raises(BlobNotFoundError):
            bucket.open("nope.txt")

    @pytest.mark.parametrize("path", ["../escape.txt", "a/../../b", "", "/"])
    def test_invalid_paths_rejected(self, bucket, path):
        with pytest.raises(InvalidPathError):
            bucket.create(path)
        with pytest.raises(InvalidPathError):
            bucket.info(path)
