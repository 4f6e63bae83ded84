"""Passage data model and the field names shared by every pipeline stage."""

from __future__ import annotations

from typing import Any

from langchain_core.documents import Document
from pydantic import BaseModel, Field

# Metadata recorded by the loaders.
META_SOURCE = "_source"
META_FILE_NAME = "_file_name"
META_EXTENSION = "_extension"

# Heading hierarchy recorded by the Markdown splitter.
TITLE1 = "h1"
TITLE2 = "h2"
TITLE3 = "h3"
TITLE_KEYS = ("h1", "h2", "h3", "h4", "h5", "h6")

# Vector index fields.
FIELD_CONTENT = "content"
FIELD_CONTENT_VECTOR = "content_vector"
FIELD_EXTRA = "ext"
FIELD_KNOWLEDGE_NAME = "_knowledge_name"

# Metadata keys persisted into the ``ext`` blob; everything else is dropped.
EXT_KEYS = (META_EXTENSION, META_FILE_NAME, META_SOURCE, TITLE1, TITLE2, TITLE3)

MARKDOWN_EXTENSIONS = frozenset({".md", ".markdown"})


class Source(BaseModel):
    """Where to load a document from.

    Attributes
    ----------
    uri:
        Local file path or absolute URL.
    extension:
        Optional format hint (e.g. ``".pdf"``) overriding the extension
        inferred from *uri*.
    """

    uri: str
    extension: str | None = None


class Passage(BaseModel):
    """A document or a chunk of one.

    ``id`` stays empty until the merge stage assigns one.  ``vector`` and
    ``score`` are only populated on retrieval results.
    """

    id: str = ""
    content: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    vector: list[float] | None = None
    score: float | None = None

    @property
    def source(self) -> Any:
        return self.metadata.get(META_SOURCE)

    @property
    def extension(self) -> Any:
        return self.metadata.get(META_EXTENSION)

    def is_markdown(self) -> bool:
        ext = self.extension
        return isinstance(ext, str) and ext.lower() in MARKDOWN_EXTENSIONS

    # -- LangChain interop ----------------------------------------------------

    def to_document(self) -> Document:
        return Document(page_content=self.content, metadata=dict(self.metadata))

    @classmethod
    def from_document(cls, doc: Document) -> Passage:
        return cls(content=doc.page_content, metadata=dict(doc.metadata))
