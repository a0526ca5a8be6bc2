"""Tests for graph construction, edge dedup and band classification."""

from __future__ import annotations

import pytest

from backend.models.documents import PairwiseResult, ScoreResult
from backend.models.graph import ColorBand
from backend.services.graph_builder import (
    build_graph,
    canonical_pair_key,
    classify_band,
    edge_label,
    make_edge,
    upsert_edge,
)
from tests.conftest import make_doc, make_result


class TestBands:
    """Presentational band breakpoints."""

    @pytest.mark.parametrize("percent,band", [
        (100.0, ColorBand.A),
        (90.01, ColorBand.A),
        (90.0, ColorBand.B),
        (70.5, ColorBand.B),
        (70.0, ColorBand.C),
        (40.01, ColorBand.C),
        (40.0, ColorBand.D),
        (0.0, ColorBand.D),
    ])
    def test_classify_band(self, percent: float, band: ColorBand) -> None:
        assert classify_band(percent) is band

    def test_band_colors(self) -> None:
        assert ColorBand.A.color == "#4caf50"
        assert ColorBand.B.color == "#ffeb3b"
        assert ColorBand.C.color == "#ffa500"
        assert ColorBand.D.color == "#f44336"

    def test_edge_label(self) -> None:
        assert edge_label(95) == "Similarity: 95.00%"
        assert edge_label(33.333) == "Similarity: 33.33%"


class TestUpsert:
    """Explicit canonicalization and overwrite policy."""

    def test_canonical_key_is_order_independent(self) -> None:
        assert canonical_pair_key("b", "a") == ("a", "b")
        assert canonical_pair_key("a", "b") == ("a", "b")

    def test_edge_key_uses_canonical_key(self) -> None:
        """Edges and the edge map share one canonicalization."""
        forward = make_edge(make_result("b", "a", 10.0))
        backward = make_edge(make_result("a", "b", 10.0))

        assert forward.key == backward.key == canonical_pair_key("b", "a")

    def test_upsert_last_write_wins(self) -> None:
        edges = {}

        assert upsert_edge(edges, make_edge(make_result("a", "b", 20.0))) is False
        assert upsert_edge(edges, make_edge(make_result("b", "a", 80.0))) is True

        assert list(edges) == [("a", "b")]
        assert edges[("a", "b")].value == 80.0
        assert edges[("a", "b")].band is ColorBand.B


class TestBuildGraph:
    """Node and edge sets."""

    def test_mirrored_results_collapse_to_one_edge(self) -> None:
        graph = build_graph([make_result("A", "B", 30.0), make_result("B", "A", 60.0)])

        assert len(graph.edges) == 1
        assert graph.edges[0].value == 60.0
        assert set(graph.nodes) == {"A", "B"}

    def test_edge_keeps_first_insertion_position(self) -> None:
        graph = build_graph([
            make_result("A", "B", 30.0),
            make_result("A", "C", 50.0),
            make_result("B", "A", 90.5),
        ])

        assert [edge.key for edge in graph.edges] == [("A", "B"), ("A", "C")]
        assert graph.edges[0].value == 90.5

    def test_first_seen_node_name_wins(self) -> None:
        first = PairwiseResult(
            doc1=make_doc("A", filename="first.pdf"),
            doc2=make_doc("B"),
            result=ScoreResult.from_percentages(10.0),
        )
        second = PairwiseResult(
            doc1=make_doc("C"),
            doc2=make_doc("A", filename="renamed.pdf"),
            result=ScoreResult.from_percentages(10.0),
        )

        graph = build_graph([first, second])

        assert graph.nodes["A"].name == "first.pdf"

    def test_idempotent(self) -> None:
        results = [
            make_result("X", "Y", 95.0),
            make_result("X", "Z", 60.0),
            make_result("Z", "Y", 10.0),
            make_result("Y", "X", 91.0),
        ]

        first = build_graph(results)
        second = build_graph(results)

        assert set(first.nodes) == set(second.nodes)
        assert {(e.key, e.value) for e in first.edges} == {(e.key, e.value) for e in second.edges}

    def test_empty_results(self) -> None:
        graph = build_graph([])

        assert graph.nodes == {}
        assert graph.edges == []

    def test_to_dict_shape(self) -> None:
        data = build_graph([make_result("A", "B", 95.0)]).to_dict()

        assert data["nodes"] == [{"id": "A", "name": "A.pdf"}, {"id": "B", "name": "B.pdf"}]
        assert data["links"] == [{
            "source": "A",
            "target": "B",
            "value": 95.0,
            "band": "A",
            "color": "#4caf50",
            "label": "Similarity: 95.00%",
        }]
