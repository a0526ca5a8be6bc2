"""Tests for the scorer and document-directory HTTP clients."""

from __future__ import annotations

import json

import httpx
import pytest

from backend.core.config import Settings
from backend.core.errors import ScorerFailure, ServiceUnavailableError
from backend.services.document_directory import DocumentDirectoryClient
from backend.services.scorer_client import SimilarityScorerClient

SCORE_PAYLOAD = {
    "doc1TextContentLength": 1200,
    "doc2TextContentLength": 900,
    "doc1TokensLength": 210,
    "doc2TokensLength": 180,
    "doc1ShinglesLength": 200,
    "doc2ShinglesLength": 170,
    "jaccard": {"intersection": 40, "union": 330, "score": 0.1212},
    "cosine": {"dot": 0.5, "na2": 1.0, "nb2": 1.0, "score": 0.5},
    "nearDuplicate": 0.1212,
    "topicSimilarity": 0.5,
    "final": 0.3456,
    "matchingSegments": None,
}


def scorer_with(handler, settings: Settings, **kwargs) -> SimilarityScorerClient:
    return SimilarityScorerClient(transport=httpx.MockTransport(handler), settings=settings, **kwargs)


class TestSimilarityScorerClient:
    """``POST /compare`` and ``GET /similar/{id}``."""

    async def test_score_posts_ids_and_converts_to_percent(self, settings: Settings) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=SCORE_PAYLOAD)

        client = scorer_with(handler, settings)
        result = await client.score("a", "b")
        await client.close()

        assert seen == {"path": "/compare", "body": {"ID1": "a", "ID2": "b"}}
        assert result.final == 0.3456
        assert result.final_percent == pytest.approx(34.56)
        assert result.near_duplicate_percent == pytest.approx(12.12)
        assert result.topic_similarity_percent == pytest.approx(50.0)
        assert result.jaccard.intersection == 40
        assert result.matching_segments == []

    async def test_http_error_becomes_scorer_failure(self, settings: Settings) -> None:
        client = scorer_with(lambda request: httpx.Response(500, text="boom"), settings)

        with pytest.raises(ScorerFailure) as exc_info:
            await client.score("a", "b")
        await client.close()

        assert exc_info.value.status_code == 502
        assert exc_info.value.details["document_ids"] == ["a", "b"]
        assert "boom" in exc_info.value.message

    async def test_malformed_payload_becomes_scorer_failure(self, settings: Settings) -> None:
        client = scorer_with(lambda request: httpx.Response(200, json={"final": "n/a"}), settings)

        with pytest.raises(ScorerFailure) as exc_info:
            await client.score("a", "b")
        await client.close()

        assert "malformed" in exc_info.value.message

    @pytest.mark.parametrize("overrides", [
        {"final": 3.0},
        {"nearDuplicate": 1.7},
        {"topicSimilarity": -0.2},
    ])
    async def test_out_of_range_scores_are_malformed(self, settings: Settings, overrides: dict) -> None:
        """Fractions outside [0, 1] would become percents outside [0, 100]."""
        payload = {**SCORE_PAYLOAD, **overrides}
        client = scorer_with(lambda request: httpx.Response(200, json=payload), settings)

        with pytest.raises(ScorerFailure) as exc_info:
            await client.score("a", "b")
        await client.close()

        assert "malformed" in exc_info.value.message
        assert exc_info.value.details["document_ids"] == ["a", "b"]

    async def test_full_match_is_one_hundred_percent(self, settings: Settings) -> None:
        payload = {**SCORE_PAYLOAD, "nearDuplicate": 1.0, "topicSimilarity": 0.0, "final": 1.0}
        client = scorer_with(lambda request: httpx.Response(200, json=payload), settings)

        result = await client.score("a", "b")
        await client.close()

        assert result.final_percent == 100.0
        assert result.topic_similarity_percent == 0.0

    async def test_transport_error_retried_up_to_max_attempts(self, settings: Settings) -> None:
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request.url.path)
            if len(attempts) < 2:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json=SCORE_PAYLOAD)

        client = scorer_with(handler, settings, max_attempts=2)
        result = await client.score("a", "b")
        await client.close()

        assert len(attempts) == 2
        assert result.final_percent == pytest.approx(34.56)

    async def test_single_attempt_by_default(self, settings: Settings) -> None:
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            raise httpx.ConnectError("refused", request=request)

        client = scorer_with(handler, settings)
        with pytest.raises(ScorerFailure):
            await client.score("a", "b")
        await client.close()

        assert len(attempts) == 1

    async def test_similar_passes_top_k(self, settings: Settings) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["topK"] = request.url.params["topK"]
            return httpx.Response(200, json=[{
                "id": "b",
                "finalPercent": 81.0,
                "nearDuplicatePercent": 70.0,
                "topicSimilarityPercent": 90.0,
            }])

        client = scorer_with(handler, settings)
        rows = await client.similar("a", top_k=3)
        await client.close()

        assert seen == {"path": "/similar/a", "topK": "3"}
        assert rows[0].id == "b"
        assert rows[0].final_percent == 81.0


class TestDocumentDirectoryClient:
    """Document store listings."""

    @staticmethod
    def handler(request: httpx.Request) -> httpx.Response:
        routes = {
            "/documents": [
                {"id": "d1", "folder": "alpha", "filename": "one.pdf", "originalFilename": "One.pdf",
                 "size": 10, "ext": "pdf", "updatedAt": "2024-05-01T10:00:00Z"},
                {"id": "d2", "folder": "beta", "filename": "two.pdf"},
            ],
            "/documents/ids": ["d1", "d2"],
            "/folders": ["alpha", "beta"],
        }
        if request.url.path not in routes:
            return httpx.Response(404)
        return httpx.Response(200, json=routes[request.url.path])

    async def test_listings(self, settings: Settings) -> None:
        client = DocumentDirectoryClient(transport=httpx.MockTransport(self.handler), settings=settings)

        documents = await client.list_documents()
        ids = await client.list_document_ids()
        folders = await client.list_folders()
        await client.close()

        assert [d.id for d in documents] == ["d1", "d2"]
        assert documents[0].original_filename == "One.pdf"
        assert documents[0].updated_at is not None
        assert ids == ["d1", "d2"]
        assert folders == ["alpha", "beta"]

    async def test_snapshot(self, settings: Settings) -> None:
        client = DocumentDirectoryClient(transport=httpx.MockTransport(self.handler), settings=settings)

        snapshot = await client.snapshot()
        await client.close()

        assert len(snapshot) == 2
        assert snapshot.folders == ("alpha", "beta")
        assert [d.id for d in snapshot.documents_in_folder("beta")] == ["d2"]

    async def test_unavailable_store(self, settings: Settings) -> None:
        client = DocumentDirectoryClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
            settings=settings,
        )

        with pytest.raises(ServiceUnavailableError):
            await client.list_documents()
        assert await client.ping() is False
        await client.close()
