"""Document loaders — resolve a :class:`~ragx.models.Source` to passages.

:class:`MultiLoader` is the entry point: it looks at the shape of the URI
and hands the source to either the file loader or the URL loader.  Both
loaders defer format handling to an :class:`~ragx.ingestion.parsers.ExtensionParser`.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path, PurePosixPath
from typing import Literal
from urllib.parse import unquote, urlparse

import requests
from langchain_core.document_loaders import Blob
from langchain_core.documents import Document

from ragx.config import settings
from ragx.errors import SourceUnreachable, UnsupportedFormat
from ragx.ingestion.parsers import ExtensionParser, ParseError
from ragx.models import META_EXTENSION, META_FILE_NAME, META_SOURCE, Passage, Source
from ragx.utils import is_url, raise_if_cancelled

logger = logging.getLogger(__name__)

LoaderKind = Literal["file", "url"]

_CONTENT_TYPE_EXTENSIONS = {
    "text/html": ".html",
    "application/xhtml+xml": ".html",
    "application/pdf": ".pdf",
    "text/markdown": ".md",
}


def loader_kind_for(uri: str) -> LoaderKind:
    """Return ``"url"`` for absolute URLs, ``"file"`` for everything else."""
    return "url" if is_url(uri) else "file"


def _normalize_extension(extension: str | None) -> str:
    """Return *extension* lower-cased with a leading dot, or ``""``."""
    extension = (extension or "").strip().lower()
    if extension and not extension.startswith("."):
        extension = "." + extension
    return extension


def _to_passages(docs: list[Document], uri: str, file_name: str, extension: str) -> list[Passage]:
    passages = []
    for doc in docs:
        metadata = {
            **doc.metadata,
            META_SOURCE: uri,
            META_FILE_NAME: file_name,
            META_EXTENSION: extension,
        }
        passages.append(Passage(content=doc.page_content, metadata=metadata))
    return passages


class FileLoader:
    """Load a document from the local filesystem."""

    def __init__(self, parser: ExtensionParser | None = None) -> None:
        self.parser = parser or ExtensionParser()

    def load(self, source: Source) -> list[Passage]:
        path = Path(source.uri)
        extension = _normalize_extension(source.extension or path.suffix)

        try:
            data = path.read_bytes()
        except OSError as exc:
            raise SourceUnreachable(source.uri, str(exc)) from exc

        blob = Blob.from_data(data, path=str(path), metadata={"source": source.uri})
        try:
            docs = self.parser.parse_as(blob, extension)
        except ParseError as exc:
            raise UnsupportedFormat(source.uri, extension, str(exc)) from exc

        return _to_passages(docs, source.uri, path.name, extension)


class UrlLoader:
    """Fetch a document over HTTP(S).

    Parameters
    ----------
    parser:
        Parser used for the response body.
    timeout:
        Per-request timeout in seconds.
    session:
        Optional :class:`requests.Session` (connection pooling, auth, …).
    """

    def __init__(
        self,
        parser: ExtensionParser | None = None,
        *,
        timeout: float = settings.url_timeout,
        session: requests.Session | None = None,
    ) -> None:
        self.parser = parser or ExtensionParser()
        self.timeout = timeout
        self._http = session or requests

    def load(self, source: Source) -> list[Passage]:
        try:
            resp = self._http.get(source.uri, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise SourceUnreachable(source.uri, str(exc)) from exc

        url_path = PurePosixPath(unquote(urlparse(source.uri).path))
        extension = _normalize_extension(source.extension or url_path.suffix)
        if not extension:
            content_type = resp.headers.get("content-type", "").split(";")[0].strip().lower()
            extension = _CONTENT_TYPE_EXTENSIONS.get(content_type, "")

        blob = Blob.from_data(resp.content, path=url_path.name or None, metadata={"source": source.uri})
        try:
            docs = self.parser.parse_as(blob, extension)
        except ParseError as exc:
            raise UnsupportedFormat(source.uri, extension, str(exc)) from exc

        return _to_passages(docs, source.uri, url_path.name, extension)


class MultiLoader:
    """Route each source to the file loader or the URL loader."""

    def __init__(
        self,
        file_loader: FileLoader | None = None,
        url_loader: UrlLoader | None = None,
    ) -> None:
        parser = ExtensionParser()
        self.file_loader = file_loader or FileLoader(parser)
        self.url_loader = url_loader or UrlLoader(parser)

    def load(self, source: Source, *, cancel: threading.Event | None = None) -> list[Passage]:
        """Load *source* and return one passage per logical unit.

        Raises
        ------
        SourceUnreachable
            The file or URL could not be read.
        UnsupportedFormat
            The parser rejected the content.
        """
        raise_if_cancelled(cancel, "load")
        kind = loader_kind_for(source.uri)
        loader = self.url_loader if kind == "url" else self.file_loader
        passages = loader.load(source)
        logger.info("Loaded %d document(s) from %s (%s)", len(passages), source.uri, kind)
        return passages
