"""Unit tests for the document loaders and format parsers."""

from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from ragx.errors import OperationCancelled, SourceUnreachable, UnsupportedFormat
from ragx.ingestion.loader import FileLoader, MultiLoader, UrlLoader, loader_kind_for
from ragx.models import Source

HTML = (
    b"<html><head><title>Guide</title><style>p {}</style></head>"
    b"<body><p>Hello</p><script>track()</script><p>World</p></body></html>"
)


def _response(content: bytes, content_type: str = "text/html") -> MagicMock:
    return MagicMock(content=content, headers={"content-type": content_type}, raise_for_status=MagicMock())


class TestLoaderKind:
    @pytest.mark.parametrize(
        "uri",
        ["https://example.com/a.html", "http://localhost:8080/doc", "ftp://files.example.com/x.txt"],
    )
    def test_urls(self, uri: str) -> None:
        assert loader_kind_for(uri) == "url"

    @pytest.mark.parametrize(
        "uri",
        ["/tmp/a.md", "docs/readme.md", "C:\\docs\\a.pdf", "example.com/page", "file.txt"],
    )
    def test_files(self, uri: str) -> None:
        assert loader_kind_for(uri) == "file"


class TestFileLoader:
    def test_markdown_file_loaded_as_text(self, tmp_path: Path) -> None:
        path = tmp_path / "Guide.MD"
        path.write_text("# Title\nBody\n", encoding="utf-8")
        passages = FileLoader().load(Source(uri=str(path)))
        assert len(passages) == 1
        assert passages[0].content == "# Title\nBody\n"
        assert passages[0].metadata["_source"] == str(path)
        assert passages[0].metadata["_file_name"] == "Guide.MD"
        assert passages[0].metadata["_extension"] == ".md"

    def test_html_file_uses_body_text(self, tmp_path: Path) -> None:
        path = tmp_path / "page.html"
        path.write_bytes(HTML)
        passages = FileLoader().load(Source(uri=str(path)))
        assert passages[0].content == "Hello\nWorld"
        assert passages[0].metadata["title"] == "Guide"

    def test_extension_hint_overrides_suffix(self, tmp_path: Path) -> None:
        path = tmp_path / "page.txt"
        path.write_bytes(HTML)
        passages = FileLoader().load(Source(uri=str(path), extension=".html"))
        assert passages[0].content == "Hello\nWorld"
        assert passages[0].metadata["_extension"] == ".html"

    @pytest.mark.parametrize("hint", ["md", "MD", ".Md", " md "])
    def test_extension_hint_is_normalized(self, tmp_path: Path, hint: str) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("# Title\nBody\n", encoding="utf-8")
        passages = FileLoader().load(Source(uri=str(path), extension=hint))
        assert passages[0].metadata["_extension"] == ".md"
        assert passages[0].is_markdown()

    def test_unknown_extension_falls_back_to_text(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.rst"
        path.write_text("plain words", encoding="utf-8")
        assert FileLoader().load(Source(uri=str(path)))[0].content == "plain words"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SourceUnreachable):
            FileLoader().load(Source(uri=str(tmp_path / "nope.txt")))

    def test_invalid_text(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.txt"
        path.write_bytes(b"\xff\xfe\xfa not utf-8")
        with pytest.raises(UnsupportedFormat):
            FileLoader().load(Source(uri=str(path)))

    def test_corrupt_pdf(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"this is not a pdf")
        with pytest.raises(UnsupportedFormat):
            FileLoader().load(Source(uri=str(path)))


class TestUrlLoader:
    def test_html_by_content_type(self) -> None:
        with patch("requests.get", return_value=_response(HTML)) as mock_get:
            passages = UrlLoader(timeout=5).load(Source(uri="https://example.com/docs/"))
        mock_get.assert_called_once_with("https://example.com/docs/", timeout=5)
        assert passages[0].content == "Hello\nWorld"
        assert passages[0].metadata["_extension"] == ".html"
        assert passages[0].metadata["_source"] == "https://example.com/docs/"

    def test_extension_from_url_path(self) -> None:
        with patch("requests.get", return_value=_response(b"# Hi\n", "application/octet-stream")):
            passages = UrlLoader().load(Source(uri="https://example.com/raw/README.md"))
        assert passages[0].content == "# Hi\n"
        assert passages[0].metadata["_extension"] == ".md"
        assert passages[0].metadata["_file_name"] == "README.md"

    def test_extension_hint_without_dot(self) -> None:
        with patch("requests.get", return_value=_response(HTML, "text/plain")):
            passages = UrlLoader().load(Source(uri="https://example.com/page", extension="HTML"))
        assert passages[0].metadata["_extension"] == ".html"
        assert passages[0].content == "Hello\nWorld"

    def test_connection_error(self) -> None:
        with patch("requests.get", side_effect=requests.ConnectionError("boom")):
            with pytest.raises(SourceUnreachable):
                UrlLoader().load(Source(uri="https://unreachable.example.com/a.html"))

    def test_http_error_status(self) -> None:
        resp = _response(b"")
        resp.raise_for_status.side_effect = requests.HTTPError("404 Not Found")
        with patch("requests.get", return_value=resp):
            with pytest.raises(SourceUnreachable):
                UrlLoader().load(Source(uri="https://example.com/missing.html"))

    def test_uses_injected_session(self) -> None:
        session = MagicMock()
        session.get.return_value = _response(b"text body", "text/plain")
        passages = UrlLoader(session=session).load(Source(uri="https://example.com/a.txt"))
        assert passages[0].content == "text body"
        session.get.assert_called_once()


class TestMultiLoader:
    def test_dispatches_urls(self) -> None:
        file_loader, url_loader = MagicMock(), MagicMock()
        url_loader.load.return_value = []
        MultiLoader(file_loader, url_loader).load(Source(uri="https://example.com/a.pdf"))
        url_loader.load.assert_called_once()
        file_loader.load.assert_not_called()

    def test_dispatches_files(self) -> None:
        file_loader, url_loader = MagicMock(), MagicMock()
        file_loader.load.return_value = []
        MultiLoader(file_loader, url_loader).load(Source(uri="/data/a.pdf"))
        file_loader.load.assert_called_once()
        url_loader.load.assert_not_called()

    def test_errors_propagate_unchanged(self, tmp_path: Path) -> None:
        with pytest.raises(SourceUnreachable):
            MultiLoader().load(Source(uri=str(tmp_path / "missing.md")))

    def test_cancelled_before_start(self) -> None:
        file_loader = MagicMock()
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(OperationCancelled):
            MultiLoader(file_loader, MagicMock()).load(Source(uri="/data/a.md"), cancel=cancel)
        file_loader.load.assert_not_called()
