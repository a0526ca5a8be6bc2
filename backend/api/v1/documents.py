"""Read-only document listing and top-k similarity lookups."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from backend.api.deps import get_document_directory, get_orchestrator
from backend.core.logging import get_logger
from backend.models.documents import Document
from backend.services.comparison_orchestrator import ComparisonOrchestrator
from backend.services.document_directory import DocumentDirectoryClient
from backend.services.gauge import traffic_light

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1", tags=["Document Library"])


class SimilarRow(BaseModel):
    id: str
    final_percent: float
    near_duplicate_percent: float
    topic_similarity_percent: float
    final_light: str
    near_duplicate_light: str
    topic_similarity_light: str


@router.get("/documents", response_model=List[Document], summary="List documents")
async def list_documents(
    directory: DocumentDirectoryClient = Depends(get_document_directory),
) -> List[Document]:
    return await directory.list_documents()


@router.get("/documents/ids", response_model=List[str], summary="List document ids")
async def list_document_ids(
    directory: DocumentDirectoryClient = Depends(get_document_directory),
) -> List[str]:
    return await directory.list_document_ids()


@router.get("/folders", response_model=List[str], summary="List folders")
async def list_folders(
    directory: DocumentDirectoryClient = Depends(get_document_directory),
) -> List[str]:
    return await directory.list_folders()


@router.get("/similar/{document_id}", response_model=List[SimilarRow], summary="Most similar documents")
async def similar_documents(
    document_id: str,
    top_k: int = Query(default=10, ge=1, le=100, description="Number of neighbours to return"),
    orchestrator: ComparisonOrchestrator = Depends(get_orchestrator),
) -> List[SimilarRow]:
    rows = await orchestrator.similar(document_id, top_k)
    return [
        SimilarRow(
            id=row.id,
            final_percent=row.final_percent,
            near_duplicate_percent=row.near_duplicate_percent,
            topic_similarity_percent=row.topic_similarity_percent,
            final_light=traffic_light(row.final_percent),
            near_duplicate_light=traffic_light(row.near_duplicate_percent),
            topic_similarity_light=traffic_light(row.topic_similarity_percent),
        )
        for row in rows
    ]
