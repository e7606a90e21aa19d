"""Tests for pdfraster.resources — file, blob and remote document sources."""

from pathlib import Path

import pytest

from pdfraster.errors import ResourceFetchError
from pdfraster.resources import BlobResource, FileResource, RemoteResource, _LazyBytes, resource_from


class TestFileResource:
    def test_missing_file_is_invalid(self, tmp_path):
        res = FileResource(tmp_path / "nope.pdf")
        assert res.is_valid() is False
        assert res.get_data() is None

    @pytest.mark.parametrize("path", ["", None])
    def test_empty_path_is_invalid(self, path):
        res = FileResource(path)
        assert res.is_valid() is False
        assert res.get_data() is None

    def test_directory_is_invalid(self, tmp_path):
        assert FileResource(tmp_path).is_valid() is False

    def test_reads_contents(self, pdf_file, pdf_bytes):
        res = FileResource(str(pdf_file))
        assert res.is_valid() is True
        assert res.get_data() == pdf_bytes

    def test_contents_cached(self, tmp_path):
        path = tmp_path / "doc.pdf"
        path.write_bytes(b"first")
        res = FileResource(path)
        assert res.get_data() == b"first"
        path.write_bytes(b"second")
        assert res.get_data() == b"first"

    def test_cached_bytes_survive_removal(self, tmp_path):
        path = tmp_path / "doc.pdf"
        path.write_bytes(b"%PDF")
        res = FileResource(path)
        assert res.get_data() == b"%PDF"
        path.unlink()
        assert res.get_data() == b"%PDF"

    def test_unreadable_file_is_absent(self, tmp_path, monkeypatch):
        path = tmp_path / "locked.pdf"
        path.write_bytes(b"%PDF")

        def deny(self):
            raise PermissionError("denied")

        monkeypatch.setattr(Path, "read_bytes", deny)
        res = FileResource(path)
        assert res.is_valid() is True
        assert res.get_data() is None

    def test_zero_byte_file_is_not_absent(self, tmp_path):
        """A zero-byte document returns b"" rather than the absent signal."""
        path = tmp_path / "empty.pdf"
        path.write_bytes(b"")
        res = FileResource(path)
        assert res.is_valid() is True
        assert res.get_data() == b""


class TestBlobResource:
    def test_valid_blob(self):
        res = BlobResource(b"%PDF-1.7")
        assert res.is_valid() is True
        assert res.get_data() == b"%PDF-1.7"

    @pytest.mark.parametrize("data", [b"", None])
    def test_empty_blob_is_invalid(self, data):
        res = BlobResource(data)
        assert res.is_valid() is False
        assert res.get_data() is None

    def test_bytearray_copied(self):
        buf = bytearray(b"abc")
        res = BlobResource(buf)
        buf[0] = ord("z")
        assert res.get_data() == b"abc"


class TestRemoteResource:
    def test_fetches_once(self):
        calls = []

        def fetcher(url):
            calls.append(url)
            return b"remote-bytes"

        res = RemoteResource("https://example.com/doc.pdf", fetcher=fetcher)
        assert res.get_data() == b"remote-bytes"
        assert res.get_data() == b"remote-bytes"
        assert calls == ["https://example.com/doc.pdf"]

    @pytest.mark.parametrize(
        "url", ["", "not a url", "example.com/doc.pdf", "https://", "https://exa mple.com/x.pdf"]
    )
    def test_malformed_url_is_invalid(self, url):
        def fetcher(url):
            raise AssertionError("must not fetch")

        res = RemoteResource(url, fetcher=fetcher)
        assert res.is_valid() is False
        assert res.get_data() is None

    def test_fetch_failure_raises(self):
        def fetcher(url):
            raise ConnectionError("unreachable")

        res = RemoteResource("http://example.com/doc.pdf", fetcher=fetcher)
        assert res.is_valid() is True
        with pytest.raises(ResourceFetchError, match="unreachable"):
            res.get_data()

    def test_file_url(self, pdf_file, pdf_bytes):
        res = RemoteResource(pdf_file.as_uri())
        assert res.is_valid() is True
        assert res.get_data() == pdf_bytes


class TestResourceFrom:
    def test_bytes(self):
        assert isinstance(resource_from(b"%PDF"), BlobResource)

    def test_url(self):
        assert isinstance(resource_from("https://example.com/a.pdf"), RemoteResource)

    def test_path(self, pdf_file):
        assert isinstance(resource_from(pdf_file), FileResource)
        assert isinstance(resource_from(str(pdf_file)), FileResource)


class TestLazyBytesBase:
    def test_is_abstract(self):
        with pytest.raises(TypeError):
            _LazyBytes()
