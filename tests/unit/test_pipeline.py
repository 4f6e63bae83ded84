"""Unit tests for the end-to-end ingestion pipeline."""

from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ragx.errors import MissingPartitionKey, OperationCancelled, SourceUnreachable
from ragx.ingestion.indexer import KnowledgeIndexer
from ragx.ingestion.pipeline import IngestionPipeline
from ragx.models import Source


@pytest.fixture()
def pipeline(fake_store, embedder) -> IngestionPipeline:
    return IngestionPipeline(KnowledgeIndexer(fake_store, embedder))


def test_markdown_file_is_split_merged_and_titled(pipeline, fake_store, tmp_path: Path) -> None:
    path = tmp_path / "guide.md"
    path.write_text("# Intro\nWelcome.\n## Setup\nInstall it.\n", encoding="utf-8")

    ids = pipeline.ingest(str(path), "kb1")

    assert ids
    assert set(ids) == set(fake_store.records)
    contents = [fake_store.records[i]["content"] for i in ids]
    assert all(c.startswith("h1:Intro") for c in contents)
    assert all(r["_knowledge_name"] == "kb1" for r in fake_store.records.values())


def test_text_file_is_split_without_titles(pipeline, fake_store, tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("Just some notes.", encoding="utf-8")

    ids = pipeline.ingest(Source(uri=str(path)), "kb2")

    assert len(ids) == 1
    assert fake_store.records[ids[0]]["content"] == "Just some notes."


def test_missing_knowledge_name_checked_before_loading(fake_store, embedder) -> None:
    loader = MagicMock()
    pipeline = IngestionPipeline(KnowledgeIndexer(fake_store, embedder), loader=loader)
    with pytest.raises(MissingPartitionKey):
        pipeline.ingest("/data/a.md", "")
    loader.load.assert_not_called()


def test_stage_errors_propagate(pipeline, fake_store, tmp_path: Path) -> None:
    with pytest.raises(SourceUnreachable):
        pipeline.ingest(str(tmp_path / "missing.md"), "kb1")
    assert fake_store.writes == []


def test_cancelled(pipeline, fake_store, tmp_path: Path) -> None:
    path = tmp_path / "a.txt"
    path.write_text("text", encoding="utf-8")
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(OperationCancelled):
        pipeline.ingest(str(path), "kb1", cancel=cancel)
    assert fake_store.writes == []
