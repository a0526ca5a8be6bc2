"""Fold pairwise results into an undirected, deduplicated similarity graph."""
from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from backend.core.logging import LogEvent, get_logger
from backend.models.documents import Document, PairwiseResult
from backend.models.graph import (
    ColorBand,
    GraphEdge,
    GraphNode,
    PairKey,
    SimilarityGraph,
    canonical_pair_key,
)

logger = get_logger(__name__)

# lower bounds are exclusive: 90 itself falls in band B
BAND_BREAKPOINTS: List[Tuple[float, ColorBand]] = [
    (90.0, ColorBand.A),
    (70.0, ColorBand.B),
    (40.0, ColorBand.C),
]


def classify_band(final_percent: float) -> ColorBand:
    for lower, band in BAND_BREAKPOINTS:
        if final_percent > lower:
            return band
    return ColorBand.D


def edge_label(final_percent: float) -> str:
    return f"Similarity: {final_percent:.2f}%"


def make_edge(result: PairwiseResult) -> GraphEdge:
    value = result.result.final_percent
    return GraphEdge(
        a=result.doc1.id,
        b=result.doc2.id,
        value=value,
        band=classify_band(value),
        label=edge_label(value),
    )


def upsert_edge(edges: Dict[PairKey, GraphEdge], edge: GraphEdge) -> bool:
    """Insert ``edge`` under its canonical key, replacing any earlier edge.

    Last write wins: a later result for the same unordered pair overwrites the
    earlier one (values are not averaged). The key keeps its original position
    in the edge order. Returns True when an existing edge was replaced.
    """
    key = canonical_pair_key(edge.a, edge.b)
    replaced = key in edges
    edges[key] = edge
    return replaced


def add_node(nodes: Dict[str, GraphNode], document: Document) -> None:
    """First-seen attributes win."""
    if document.id not in nodes:
        nodes[document.id] = GraphNode(id=document.id, name=document.filename)


def build_graph(results: Iterable[PairwiseResult]) -> SimilarityGraph:
    nodes: Dict[str, GraphNode] = {}
    edges: Dict[PairKey, GraphEdge] = {}
    replaced = 0

    for result in results:
        add_node(nodes, result.doc1)
        add_node(nodes, result.doc2)
        if upsert_edge(edges, make_edge(result)):
            replaced += 1
            logger.debug(
                LogEvent.DUPLICATE_EDGE_REPLACED,
                key=canonical_pair_key(result.doc1.id, result.doc2.id),
                value=result.result.final_percent,
            )

    logger.debug(LogEvent.GRAPH_BUILT, nodes=len(nodes), edges=len(edges), replaced=replaced)
    return SimilarityGraph(nodes=nodes, edges=list(edges.values()))
