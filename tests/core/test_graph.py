# tests/core/test_graph.py
"""Tests for the workflow graph model and its structural queries."""

import pytest

from tests.fixtures.factories import make_graph


class TestGraphConstruction:
    """Building workflow graphs."""

    def test_empty_graph(self) -> None:
        from flowstitch.core.graph import WorkflowGraph

        graph = WorkflowGraph()
        assert graph.node_count == 0
        assert graph.edge_count == 0

    def test_add_node(self) -> None:
        from flowstitch.contracts import NodeType
        from flowstitch.core.graph import WorkflowGraph

        graph = WorkflowGraph()
        info = graph.add_node("start", node_type=NodeType.TRIGGER)

        assert graph.node_count == 1
        assert graph.has_node("start")
        assert info.name == "start"
        assert info.node_type == NodeType.TRIGGER

    def test_node_type_accepts_string_value(self) -> None:
        from flowstitch.contracts import NodeType
        from flowstitch.core.graph import WorkflowGraph

        graph = WorkflowGraph()
        info = graph.add_node("loop", node_type="merge-point")

        assert info.node_type is NodeType.MERGE_POINT

    def test_unknown_node_type_rejected(self) -> None:
        from flowstitch.core.graph import WorkflowGraph

        graph = WorkflowGraph()
        with pytest.raises(ValueError):
            graph.add_node("x", node_type="webhook")

    def test_duplicate_node_rejected(self) -> None:
        from flowstitch.contracts import GraphModelError
        from flowstitch.core.graph import WorkflowGraph

        graph = WorkflowGraph()
        graph.add_node("a", node_type="action")
        with pytest.raises(GraphModelError, match="Duplicate node id"):
            graph.add_node("a", node_type="terminal")

    def test_config_is_read_only(self) -> None:
        from flowstitch.core.graph import WorkflowGraph

        graph = WorkflowGraph()
        info = graph.add_node("a", node_type="action", config={"url": "https://example.test"})

        assert info.config["url"] == "https://example.test"
        with pytest.raises(TypeError):
            info.config["url"] = "changed"  # type: ignore[index]

    def test_frozen_graph_rejects_mutation(self) -> None:
        from flowstitch.contracts import GraphModelError

        graph = make_graph([("a", "trigger")])
        graph.freeze()

        with pytest.raises(GraphModelError, match="frozen"):
            graph.add_node("b", node_type="action")
        with pytest.raises(GraphModelError, match="frozen"):
            graph.add_edge("a", "b")

    def test_negative_port_rejected(self) -> None:
        from flowstitch.contracts import GraphModelError

        graph = make_graph([("a", "trigger"), ("b", "action")])
        with pytest.raises(GraphModelError, match="non-negative"):
            graph.add_edge("a", "b", source_port=-1)

    def test_dangling_edge_is_recorded(self) -> None:
        graph = make_graph([("a", "trigger")], [("a", "ghost")])

        assert graph.edge_count == 1
        assert [edge.target for edge in graph.dangling_edges()] == ["ghost"]
        # Queries ignore dangling edges
        assert graph.out_degree("a") == 0
        assert graph.neighbors_of("a") == []

    def test_edge_ref_format(self) -> None:
        from flowstitch.contracts import EdgeKind

        graph = make_graph([("a", "trigger"), ("b", "action")])
        edge = graph.add_edge("a", "b", source_port=1, target_port=2, kind=EdgeKind.ERROR)

        assert edge.ref == "a:1->b:2 (error)"


class TestStructuralQueries:
    """neighbors_of, degrees and reachability."""

    def test_neighbors_in_insertion_order_without_repeats(self) -> None:
        graph = make_graph(
            [("t", "trigger"), ("b", "action"), ("a", "action")],
            [("t", "b"), ("t", "a"), ("t", "b")],
        )

        assert graph.neighbors_of("t") == ["b", "a"]

    def test_neighbors_filtered_by_kind(self) -> None:
        from flowstitch.contracts import EdgeKind

        graph = make_graph(
            [("t", "trigger"), ("ok", "action"), ("fail", "terminal")],
            [("t", "ok"), ("t", "fail", "error")],
        )

        assert graph.neighbors_of("t") == ["ok"]
        assert graph.neighbors_of("t", EdgeKind.ERROR) == ["fail"]
        assert graph.predecessors_of("fail", EdgeKind.ERROR) == ["t"]

    def test_neighbors_of_unknown_node(self) -> None:
        from flowstitch.contracts import UnknownNodeError

        graph = make_graph([("a", "trigger")])
        with pytest.raises(UnknownNodeError, match="Node not found: missing"):
            graph.neighbors_of("missing")

    def test_unknown_node_error_is_key_error(self) -> None:
        graph = make_graph([("a", "trigger")])
        with pytest.raises(KeyError):
            graph.get_node_info("missing")

    def test_degrees_per_kind(self) -> None:
        from flowstitch.contracts import EdgeKind

        graph = make_graph(
            [("t", "trigger"), ("x", "action"), ("err", "terminal")],
            [("t", "x"), ("x", "err"), ("t", "err", "error")],
        )

        assert graph.in_degree("err") == 2
        assert graph.in_degree("err", EdgeKind.MAIN) == 1
        assert graph.in_degree("err", EdgeKind.ERROR) == 1
        assert graph.out_degree("t") == 2
        assert graph.out_degree("t", EdgeKind.MAIN) == 1
        assert graph.in_degree("t") == 0

    def test_reachable_from_follows_main_edges_only(self) -> None:
        graph = make_graph(
            [("t", "trigger"), ("a", "action"), ("b", "terminal"), ("handler", "action"), ("island", "action")],
            [("t", "a"), ("a", "b"), ("a", "handler", "error")],
        )

        assert graph.reachable_from(["t"]) == {"t", "a", "b"}

    def test_reachable_from_multiple_starts(self) -> None:
        graph = make_graph(
            [("t1", "trigger"), ("t2", "trigger"), ("a", "action"), ("b", "action")],
            [("t1", "a"), ("t2", "b")],
        )

        assert graph.reachable_from(["t1", "t2"]) == {"t1", "t2", "a", "b"}
        assert graph.reachable_from([]) == set()

    def test_reachable_from_handles_cycles(self) -> None:
        graph = make_graph(
            [("t", "trigger"), ("a", "action"), ("b", "action")],
            [("t", "a"), ("a", "b"), ("b", "a")],
        )

        assert graph.reachable_from(["t"]) == {"t", "a", "b"}

    def test_reachable_from_unknown_start(self) -> None:
        from flowstitch.contracts import UnknownNodeError

        graph = make_graph([("t", "trigger")])
        with pytest.raises(UnknownNodeError):
            graph.reachable_from(["nope"])

    def test_main_graph_is_frozen_and_main_only(self) -> None:
        import networkx as nx

        graph = make_graph(
            [("a", "trigger"), ("b", "action"), ("c", "action")],
            [("a", "b"), ("a", "b"), ("b", "c", "error"), ("b", "ghost")],
        )
        main = graph.main_graph()

        assert sorted(main.edges()) == [("a", "b")]
        assert "ghost" not in main
        with pytest.raises(nx.NetworkXError):
            main.add_node("d")

    def test_sorted_ids_use_subsection_then_local_id(self) -> None:
        from flowstitch.core.graph import WorkflowGraph

        graph = WorkflowGraph()
        graph.add_node("zeta.a", node_type="action", subsection="zeta", local_id="a")
        graph.add_node("alpha.z", node_type="action", subsection="alpha", local_id="z")
        graph.add_node("alpha.b", node_type="action", subsection="alpha", local_id="b")

        assert graph.sorted_ids(graph.node_ids) == ["alpha.b", "alpha.z", "zeta.a"]
