"""Read-only client for the external document store listing."""
from __future__ import annotations

import asyncio
from typing import List, Optional, Protocol

import httpx
import pydantic
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from backend.core.config import Settings, get_settings
from backend.core.errors import ServiceUnavailableError
from backend.core.logging import LogEvent, get_logger
from backend.models.comparison import CorpusSnapshot
from backend.models.documents import Document

logger = get_logger(__name__)


class DocumentListing(Protocol):
    async def list_documents(self) -> List[Document]:
        ...

    async def list_folders(self) -> List[str]:
        ...


async def take_snapshot(listing: DocumentListing) -> CorpusSnapshot:
    """Fetch documents and folders together as one point-in-time corpus."""
    documents, folders = await asyncio.gather(listing.list_documents(), listing.list_folders())
    return CorpusSnapshot.of(list(documents), list(folders))


class DocumentDirectoryClient:
    """``GET /documents``, ``/documents/ids`` and ``/folders`` on the document store."""

    service_name = "document-store"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.base_url = (base_url or settings.scorer_base_url).rstrip('/')
        self.max_attempts = settings.scorer_max_attempts
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout or settings.scorer_timeout),
            transport=transport,
        )

    async def list_documents(self) -> List[Document]:
        payload = await self._get_json("/documents")
        try:
            return [Document.model_validate(item) for item in payload or []]
        except pydantic.ValidationError as e:
            raise ServiceUnavailableError(self.service_name, f"malformed document listing: {e.error_count()} errors") from e

    async def list_document_ids(self) -> List[str]:
        payload = await self._get_json("/documents/ids")
        return [str(item) for item in payload or []]

    async def list_folders(self) -> List[str]:
        payload = await self._get_json("/folders")
        return [str(item) for item in payload or []]

    async def snapshot(self) -> CorpusSnapshot:
        return await take_snapshot(self)

    async def ping(self) -> bool:
        """Readiness check used by the health endpoint."""
        try:
            await self._get_json("/folders")
        except ServiceUnavailableError:
            return False
        return True

    async def _get_json(self, path: str):
        logger.debug(LogEvent.DIRECTORY_CALL, path=path)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    response = await self.client.get(path)
                    response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(LogEvent.DIRECTORY_ERROR, path=path, error=str(e))
            raise ServiceUnavailableError(self.service_name, str(e)) from e

    async def close(self) -> None:
        await self.client.aclose()
