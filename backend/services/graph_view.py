"""Threshold filtering, neighbor inspection and the interactive graph explorer.

Everything here is a pure derivation of the current result list and threshold;
changing the threshold never goes back to the scorer.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from backend.core.errors import ResourceNotFoundError, ValidationError
from backend.models.documents import Document, PairwiseResult
from backend.models.graph import GraphNode, SimilarityGraph
from backend.services.graph_builder import build_graph

MIN_THRESHOLD = 0.0
MAX_THRESHOLD = 100.0


def check_threshold(threshold: float) -> float:
    if not MIN_THRESHOLD <= threshold <= MAX_THRESHOLD:
        raise ValidationError("Threshold must be between 0 and 100", field="threshold", value=threshold)
    return float(threshold)


def filter_graph(graph: SimilarityGraph, threshold: float) -> SimilarityGraph:
    """Edges with ``value >= threshold``; every node is kept, edge-less or not."""
    threshold = check_threshold(threshold)
    return SimilarityGraph(
        nodes=dict(graph.nodes),
        edges=[edge for edge in graph.edges if edge.value >= threshold],
    )


def neighbors(results: Sequence[PairwiseResult], node_id: str, threshold: float) -> List[PairwiseResult]:
    """Results involving ``node_id`` at or above ``threshold``, in comparison order."""
    threshold = check_threshold(threshold)
    return [
        result
        for result in results
        if result.involves(node_id) and result.result.final_percent >= threshold
    ]


def to_graph(results: Sequence[PairwiseResult], threshold: float) -> SimilarityGraph:
    return filter_graph(build_graph(results), threshold)


@dataclass(frozen=True)
class NeighborEntry:
    """One row of the selected node's side panel."""

    other: Document
    result: PairwiseResult


class GraphExplorer:
    """
    View state of the graph panel: result list, live threshold, selected node.

    The full graph is rebuilt only when the result list is replaced; threshold
    changes re-filter it and re-derive the selected node's neighbors.
    """

    def __init__(self, results: Sequence[PairwiseResult] = (), threshold: float = 40.0):
        self._threshold = check_threshold(threshold)
        self._results: List[PairwiseResult] = []
        self._full = SimilarityGraph()
        self._selected: Optional[GraphNode] = None
        self.replace_results(results)

    @property
    def results(self) -> List[PairwiseResult]:
        return list(self._results)

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def full_graph(self) -> SimilarityGraph:
        return self._full

    @property
    def graph(self) -> SimilarityGraph:
        return filter_graph(self._full, self._threshold)

    @property
    def selected_node(self) -> Optional[GraphNode]:
        return self._selected

    @property
    def selected_neighbors(self) -> List[PairwiseResult]:
        if self._selected is None:
            return []
        return neighbors(self._results, self._selected.id, self._threshold)

    def neighbor_entries(self) -> List[NeighborEntry]:
        if self._selected is None:
            return []
        node_id = self._selected.id
        return [NeighborEntry(other=r.other(node_id), result=r) for r in self.selected_neighbors]

    def replace_results(self, results: Sequence[PairwiseResult]) -> None:
        """New run: results are replaced wholesale and the selection is cleared."""
        self._results = list(results)
        self._full = build_graph(self._results)
        self._selected = None

    def set_threshold(self, threshold: float) -> SimilarityGraph:
        self._threshold = check_threshold(threshold)
        return self.graph

    def select_node(self, node_id: str) -> List[PairwiseResult]:
        node = self._full.nodes.get(node_id)
        if node is None:
            raise ResourceNotFoundError("Graph node", node_id)
        self._selected = node
        return self.selected_neighbors

    def clear_selection(self) -> None:
        self._selected = None
