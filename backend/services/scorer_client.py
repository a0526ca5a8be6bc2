"""HTTP client for the external similarity scorer."""
from __future__ import annotations

from typing import List, Optional, Protocol

import httpx
import pydantic
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from backend.core.config import Settings, get_settings
from backend.core.errors import ScorerFailure
from backend.core.logging import LogEvent, get_logger
from backend.models.documents import ScoreResult, SimilarDocument

logger = get_logger(__name__)


class SimilarityScorer(Protocol):
    """Scores one document pair. Raises ``ScorerFailure`` on any failure."""

    async def score(self, id1: str, id2: str) -> ScoreResult:
        ...


class SimilarityScorerClient:
    """Scorer reached over HTTP (``POST /compare``, ``GET /similar/{id}``)."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize scorer client.

        Args:
            base_url: Scorer base URL; defaults to ``settings.scorer_base_url``
            timeout: Request timeout in seconds
            max_attempts: Transport-level attempts per call (connect errors only)
            transport: Optional httpx transport, used by tests
        """
        settings = settings or get_settings()
        self.base_url = (base_url or settings.scorer_base_url).rstrip('/')
        self.max_attempts = max_attempts or settings.scorer_max_attempts

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout or settings.scorer_timeout),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def score(self, id1: str, id2: str) -> ScoreResult:
        """Score one pair and convert its fractions to percentages."""
        logger.debug(LogEvent.SCORER_CALL, id1=id1, id2=id2)
        try:
            response = await self._send("POST", "/compare", json={"ID1": id1, "ID2": id2})
        except httpx.HTTPStatusError as e:
            logger.error(
                LogEvent.SCORER_ERROR,
                id1=id1,
                id2=id2,
                status_code=e.response.status_code,
                detail=e.response.text[:200],
            )
            raise ScorerFailure(
                e.response.text or f"HTTP {e.response.status_code}",
                document_ids=(id1, id2),
                original_error=e,
            ) from e
        except httpx.HTTPError as e:
            logger.error(LogEvent.SCORER_ERROR, id1=id1, id2=id2, error=str(e))
            raise ScorerFailure(f"request failed: {e}", document_ids=(id1, id2), original_error=e) from e

        try:
            return ScoreResult.model_validate(response.json())
        except (ValueError, pydantic.ValidationError) as e:
            logger.error(LogEvent.SCORER_ERROR, id1=id1, id2=id2, error="malformed result")
            raise ScorerFailure("malformed result", document_ids=(id1, id2), original_error=e) from e

    async def similar(self, document_id: str, top_k: int = 10) -> List[SimilarDocument]:
        """Top-k most similar documents to ``document_id``."""
        try:
            response = await self._send("GET", f"/similar/{document_id}", params={"topK": top_k})
            return [SimilarDocument.model_validate(row) for row in response.json()]
        except (httpx.HTTPError, ValueError, pydantic.ValidationError) as e:
            logger.error(LogEvent.SCORER_ERROR, document_id=document_id, error=str(e))
            raise ScorerFailure(f"similar lookup failed: {e}", document_ids=(document_id,), original_error=e) from e

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        # only connection-level failures are retried; a scored response is never re-requested
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                response = await self.client.request(method, url, **kwargs)
                response.raise_for_status()
        return response

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()
