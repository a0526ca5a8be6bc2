"""Similarity graph: one node per document, at most one edge per unordered pair."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple

PairKey = Tuple[str, str]


def canonical_pair_key(a: str, b: str) -> PairKey:
    """Order-independent key of an unordered pair: the ids sorted lexicographically."""
    return (a, b) if a <= b else (b, a)


class ColorBand(str, Enum):
    """Presentational bucket of a final similarity percentage."""

    A = "A"  # > 90
    B = "B"  # > 70
    C = "C"  # > 40
    D = "D"  # <= 40

    @property
    def color(self) -> str:
        return BAND_COLORS[self]


BAND_COLORS = {
    ColorBand.A: "#4caf50",
    ColorBand.B: "#ffeb3b",
    ColorBand.C: "#ffa500",
    ColorBand.D: "#f44336",
}


@dataclass(frozen=True, slots=True)
class GraphNode:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class GraphEdge:
    a: str
    b: str
    value: float
    band: ColorBand
    label: str

    @property
    def key(self) -> PairKey:
        return canonical_pair_key(self.a, self.b)

    @property
    def color(self) -> str:
        return self.band.color

    def touches(self, node_id: str) -> bool:
        return node_id in (self.a, self.b)


@dataclass(frozen=True)
class SimilarityGraph:
    """Derived view; filters return new instances instead of mutating this one."""

    nodes: Dict[str, GraphNode] = field(default_factory=dict)
    edges: List[GraphEdge] = field(default_factory=list)

    def edge_keys(self) -> set[PairKey]:
        return {edge.key for edge in self.edges}

    def degree(self, node_id: str) -> int:
        return sum(1 for edge in self.edges if edge.touches(node_id))

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form consumed by the force-graph front end."""
        return {
            "nodes": [{"id": node.id, "name": node.name} for node in self.nodes.values()],
            "links": [
                {
                    "source": edge.a,
                    "target": edge.b,
                    "value": edge.value,
                    "band": edge.band.value,
                    "color": edge.color,
                    "label": edge.label,
                }
                for edge in self.edges
            ],
        }
