"""Shared fixtures: in-memory scorer and document listing, fresh services per test."""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional, Set, Tuple

import pytest

from backend.core.config import Settings
from backend.core.errors import ScorerFailure
from backend.models.documents import Document, PairwiseResult, ScoreResult, SimilarDocument
from backend.services import ServiceFactory
from backend.services.progress_tracker import ProgressTracker


def make_doc(doc_id: str, folder: str = "", filename: Optional[str] = None) -> Document:
    return Document(id=doc_id, folder=folder, filename=filename or f"{doc_id}.pdf")


def make_result(a: str, b: str, final_percent: float) -> PairwiseResult:
    return PairwiseResult(
        doc1=make_doc(a),
        doc2=make_doc(b),
        result=ScoreResult.from_percentages(final_percent),
    )


class FakeScorer:
    """Scores pairs from a lookup table and records every call."""

    def __init__(
        self,
        scores: Optional[Dict[Tuple[str, str], float]] = None,
        default: float = 50.0,
        fail_on: Iterable[Tuple[str, str]] = (),
        delay: float = 0.0,
    ) -> None:
        self.scores = scores or {}
        self.default = default
        self.fail_on: Set[Tuple[str, str]] = set(fail_on)
        self.delay = delay
        self.calls: List[Tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.gate: Optional[asyncio.Event] = None

    async def score(self, id1: str, id2: str) -> ScoreResult:
        self.calls.append((id1, id2))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            else:
                await asyncio.sleep(0)
            if (id1, id2) in self.fail_on:
                raise ScorerFailure("HTTP 500", document_ids=(id1, id2))
            percent = self.scores.get((id1, id2), self.scores.get((id2, id1), self.default))
            return ScoreResult.from_percentages(percent)
        finally:
            self.in_flight -= 1

    async def similar(self, document_id: str, top_k: int = 10) -> List[SimilarDocument]:
        rows = []
        for (a, b), percent in self.scores.items():
            if document_id in (a, b):
                other = b if a == document_id else a
                rows.append(SimilarDocument(
                    id=other,
                    final_percent=percent,
                    near_duplicate_percent=percent,
                    topic_similarity_percent=percent,
                ))
        rows.sort(key=lambda row: row.final_percent, reverse=True)
        return rows[:top_k]


class FakeListing:
    """Document store stand-in."""

    def __init__(self, documents: Iterable[Document] = (), folders: Optional[Iterable[str]] = None) -> None:
        self.documents = list(documents)
        self.folders = list(folders) if folders is not None else sorted({d.folder for d in self.documents if d.folder})

    async def list_documents(self) -> List[Document]:
        return list(self.documents)

    async def list_folders(self) -> List[str]:
        return list(self.folders)


@pytest.fixture(autouse=True)
def fresh_services():
    """Every test starts without cached services or progress tasks."""
    ProgressTracker.reset_instance()
    ServiceFactory.reset()
    yield
    ProgressTracker.reset_instance()
    ServiceFactory.reset()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        scorer_base_url="http://scorer.test",
        comparison_concurrency=1,
        preserve_partial_results=False,
        default_similarity_threshold=40.0,
    )


@pytest.fixture
def corpus() -> List[Document]:
    return [
        make_doc("d1", "alpha"),
        make_doc("d2", "alpha"),
        make_doc("d3", "beta"),
        make_doc("d4", "beta"),
        make_doc("d5", "gamma"),
    ]


@pytest.fixture
def listing(corpus: List[Document]) -> FakeListing:
    return FakeListing(corpus)


@pytest.fixture
def scorer() -> FakeScorer:
    return FakeScorer()
