"""Byte-to-text parsers selected by file extension.

Parsers follow LangChain's :class:`~langchain_core.document_loaders.BaseBlobParser`
protocol so the loaders can hand them a :class:`Blob` regardless of whether
the bytes came from disk or over HTTP.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from pathlib import PurePath

from bs4 import BeautifulSoup
from langchain_core.document_loaders import BaseBlobParser, Blob
from langchain_core.documents import Document
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from ragx.config import settings

logger = logging.getLogger(__name__)


class ParseError(ValueError):
    """Raised by a parser that cannot make sense of its input."""


class TextParser(BaseBlobParser):
    """Decode the blob as text.  Used for any unregistered extension."""

    def lazy_parse(self, blob: Blob) -> Iterator[Document]:
        try:
            text = blob.as_string()
        except UnicodeDecodeError as exc:
            raise ParseError(f"not valid {blob.encoding} text: {exc}") from exc
        yield Document(page_content=text, metadata={})


class HtmlParser(BaseBlobParser):
    """Extract visible text from the element matched by *selector*.

    Parameters
    ----------
    selector:
        CSS selector of the element whose text is kept.  When nothing
        matches, the whole document is used.
    """

    def __init__(self, selector: str | None = settings.html_selector) -> None:
        self.selector = selector

    def lazy_parse(self, blob: Blob) -> Iterator[Document]:
        soup = BeautifulSoup(blob.as_bytes(), "html.parser")
        root = soup.select_one(self.selector) if self.selector else None
        if root is None:
            root = soup

        for tag in root(["script", "style", "noscript"]):
            tag.decompose()

        metadata = {}
        if soup.title and soup.title.string:
            metadata["title"] = soup.title.string.strip()
        yield Document(page_content=root.get_text("\n", strip=True), metadata=metadata)


class PdfParser(BaseBlobParser):
    """Concatenate the text of every page into a single document."""

    def lazy_parse(self, blob: Blob) -> Iterator[Document]:
        try:
            reader = PdfReader(io.BytesIO(blob.as_bytes()))
            pages = [page.extract_text() or "" for page in reader.pages]
        except PyPdfError as exc:
            raise ParseError(f"unreadable PDF: {exc}") from exc
        yield Document(page_content="\n".join(pages), metadata={"total_pages": len(pages)})


class ExtensionParser(BaseBlobParser):
    """Dispatch to a parser registered for the blob's extension.

    Parameters
    ----------
    parsers:
        Mapping of lower-case extension (with leading dot) to parser.
    fallback:
        Parser used for unregistered extensions.
    """

    def __init__(
        self,
        parsers: dict[str, BaseBlobParser] | None = None,
        fallback: BaseBlobParser | None = None,
    ) -> None:
        if parsers is None:
            html = HtmlParser()
            parsers = {".html": html, ".htm": html, ".pdf": PdfParser()}
        self.parsers = parsers
        self.fallback = fallback or TextParser()

    def parser_for(self, extension: str) -> BaseBlobParser:
        return self.parsers.get(extension.lower(), self.fallback)

    def parse_as(self, blob: Blob, extension: str) -> list[Document]:
        """Parse *blob* with the parser registered for *extension*."""
        parser = self.parser_for(extension)
        logger.debug("Parsing %s with %s", blob.source, type(parser).__name__)
        return list(parser.lazy_parse(blob))

    def lazy_parse(self, blob: Blob) -> Iterator[Document]:
        extension = PurePath(str(blob.path)).suffix if blob.path else ""
        yield from self.parse_as(blob, extension)
