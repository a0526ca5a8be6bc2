"""Comparison run APIs: start/cancel a run and explore its similarity graph."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field

from backend.api.deps import get_orchestrator
from backend.core.errors import ResourceNotFoundError
from backend.core.logging import get_logger
from backend.models.comparison import ComparisonMode, Selection
from backend.models.documents import Document, PairwiseResult
from backend.services.comparison_orchestrator import ComparisonOrchestrator, ComparisonRun

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1/comparisons", tags=["Comparison"])

ThresholdQuery = Query(
    default=None,
    ge=0,
    le=100,
    description="Minimum final similarity percent; defaults to the current slider value",
)


class RunRequest(BaseModel):
    selection: Selection
    preserve_partial_results: Optional[bool] = Field(
        default=None,
        description="Override the configured partial-result policy for this run",
    )


class RunResponse(BaseModel):
    run_id: str
    mode: ComparisonMode
    pair_count: int
    scorer_calls: int
    started_at: Optional[str]
    completed_at: Optional[str]
    results: List[PairwiseResult]

    @classmethod
    def from_run(cls, run: ComparisonRun) -> "RunResponse":
        return cls(
            run_id=run.run_id,
            mode=run.mode,
            pair_count=len(run.pairs),
            scorer_calls=run.scorer_calls,
            started_at=run.started_at.isoformat() if run.started_at else None,
            completed_at=run.completed_at.isoformat() if run.completed_at else None,
            results=run.results,
        )


class NodeModel(BaseModel):
    id: str
    name: str


class LinkModel(BaseModel):
    source: str
    target: str
    value: float
    band: str
    color: str
    label: str


class GraphResponse(BaseModel):
    threshold: float
    nodes: List[NodeModel]
    links: List[LinkModel]


class NeighborItem(BaseModel):
    other: Document
    result: PairwiseResult


class NeighborResponse(BaseModel):
    node: NodeModel
    threshold: float
    comparisons: List[NeighborItem]


@router.post("", response_model=RunResponse, summary="Run a pairwise comparison")
async def run_comparison(
    payload: RunRequest,
    orchestrator: ComparisonOrchestrator = Depends(get_orchestrator),
) -> RunResponse:
    run = await orchestrator.run(
        payload.selection,
        preserve_partial_results=payload.preserve_partial_results,
    )
    return RunResponse.from_run(run)


@router.get("/latest", response_model=RunResponse, summary="Most recent completed run")
async def latest_run(
    orchestrator: ComparisonOrchestrator = Depends(get_orchestrator),
) -> RunResponse:
    if orchestrator.latest_run is None:
        raise ResourceNotFoundError("Comparison run")
    return RunResponse.from_run(orchestrator.latest_run)


@router.delete("/current", status_code=status.HTTP_204_NO_CONTENT, summary="Cancel the in-flight run")
async def cancel_run(
    orchestrator: ComparisonOrchestrator = Depends(get_orchestrator),
) -> Response:
    if not orchestrator.cancel():
        raise ResourceNotFoundError("Running comparison")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/latest/graph", response_model=GraphResponse, summary="Threshold-filtered similarity graph")
async def latest_graph(
    threshold: Optional[float] = ThresholdQuery,
    orchestrator: ComparisonOrchestrator = Depends(get_orchestrator),
) -> GraphResponse:
    if threshold is not None:
        orchestrator.explorer.set_threshold(threshold)
    graph = orchestrator.to_graph()
    data = graph.to_dict()
    return GraphResponse(threshold=orchestrator.explorer.threshold, nodes=data["nodes"], links=data["links"])


@router.get(
    "/latest/graph/nodes/{node_id}",
    response_model=NeighborResponse,
    summary="Visible comparisons of one node",
)
async def node_neighbors(
    node_id: str,
    threshold: Optional[float] = ThresholdQuery,
    orchestrator: ComparisonOrchestrator = Depends(get_orchestrator),
) -> NeighborResponse:
    explorer = orchestrator.explorer
    if threshold is not None:
        explorer.set_threshold(threshold)
    explorer.select_node(node_id)
    node = explorer.selected_node
    return NeighborResponse(
        node=NodeModel(id=node.id, name=node.name),
        threshold=explorer.threshold,
        comparisons=[NeighborItem(other=entry.other, result=entry.result) for entry in explorer.neighbor_entries()],
    )


@router.delete(
    "/latest/graph/selection",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Return to the whole-graph view",
)
async def clear_selection(
    orchestrator: ComparisonOrchestrator = Depends(get_orchestrator),
) -> Response:
    orchestrator.explorer.clear_selection()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
