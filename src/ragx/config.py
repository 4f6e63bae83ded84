"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = Field(
        default="ragx_knowledge",
        description="Collection backing every knowledge partition",
    )

    # Embedding
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_dimensions: int = Field(
        default=384,
        description="Dimensionality of the content_vector field; must match embedding_model",
    )

    # Splitting / merging
    chunk_size: int = 1000
    chunk_overlap: int = 100
    chunk_separators: list[str] = ["\n", "。", "?", "？", "!", "！"]
    merge_max_length: int = 512

    # Indexing / retrieval
    index_batch_size: int = 10
    retrieval_top_k: int = 5

    # Loading
    url_timeout: float = Field(default=30.0, description="Seconds to wait on a URL fetch")
    html_selector: str = "body"

    # Serving
    upload_dir: str = "./uploads"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton — import `settings` wherever needed.
settings = Settings()
