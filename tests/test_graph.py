import pytest

from cozo_client import UsageError
from cozo_client.script import graph


def test_page_rank_omits_unset_options() -> None:
    request = graph.page_rank("follows")
    assert request.script == (
        "edges[from, to] := *follows{from, to}\n"
        "?[node, rank] <~ PageRank(edges[])"
    )
    assert request.immutable is True
    assert request.params == {}


def test_page_rank_with_options() -> None:
    request = graph.page_rank("follows", iterations=20, theta=0.85)
    assert request.script.endswith("?[node, rank] <~ PageRank(edges[], iterations: 20, theta: 0.85)")


def test_shortest_path_inlines_start_and_goal() -> None:
    request = graph.shortest_path("roads", "a", "b", from_column="src", to_column="dst")
    assert request.script.splitlines() == [
        "edges[src, dst] := *roads{src, dst}",
        'starting[] <- [["a"]]',
        'goals[] <- [["b"]]',
        "?[start, goal, path] <~ ShortestPathBFS(edges[], starting[], goals[])",
    ]


def test_weighted_algorithm_binds_weight_column() -> None:
    request = graph.community_detection("links", weight_column="w", max_iter=5)
    assert request.script.splitlines() == [
        "edges[from, to, w] := *links{from, to, w}",
        "?[labels, node] <~ CommunityDetectionLouvain(edges[], max_iter: 5)",
    ]


def test_unweighted_algorithm_rejects_weight() -> None:
    with pytest.raises(UsageError, match="does not accept a weight column"):
        graph.run_algorithm(graph.TOP_SORT, "deps", weight_column="w")


def test_bfs_reads_nodes_and_inserts_condition() -> None:
    request = graph.bfs("follows", "users", [1], condition="name == 'Bob'", node_columns=["id", "name"], limit=1)
    assert request.script.splitlines() == [
        "edges[from, to] := *follows{from, to}",
        "nodes[id, name] := *users{id, name}",
        "starting[] <- [[1]]",
        "?[start, goal, path] <~ BFS(edges[], nodes[], starting[], condition: name == 'Bob', limit: 1)",
    ]


def test_required_options_are_enforced() -> None:
    with pytest.raises(UsageError, match=r"requires options \['k'\]"):
        graph.run_algorithm("KShortestPathYen", "roads", starting=[1], goals=[2])
    with pytest.raises(UsageError, match="condition"):
        graph.run_algorithm(graph.DEPTH_FIRST_SEARCH, "e", node_relation="n", starting=[1])


def test_required_inputs_are_enforced() -> None:
    with pytest.raises(UsageError, match="requires starting input"):
        graph.run_algorithm(graph.SHORTEST_PATH_DIJKSTRA, "roads")
    with pytest.raises(UsageError, match="does not take goals input"):
        graph.run_algorithm(graph.PAGE_RANK, "follows", goals=[1])


def test_unknown_option_is_rejected() -> None:
    with pytest.raises(UsageError, match="does not accept option 'damping'"):
        graph.run_algorithm(graph.PAGE_RANK, "follows", damping=0.85)


def test_unknown_algorithm_is_rejected() -> None:
    with pytest.raises(UsageError, match="unknown graph algorithm"):
        graph.run_algorithm("Magic", "follows")
    with pytest.raises(UsageError):
        graph.get_algorithm(42)  # type: ignore[arg-type]


def test_algorithms_are_looked_up_by_engine_name() -> None:
    assert graph.get_algorithm("PageRank") is graph.PAGE_RANK
    assert len(graph.ALGORITHMS) == 18
    assert graph.ALGORITHMS["RandomWalk"].required_options == ("steps",)


def test_outputs_can_be_renamed() -> None:
    request = graph.run_algorithm(graph.CONNECTED_COMPONENTS, "links", outputs=["n", "c"])
    assert request.script.endswith("?[n, c] <~ ConnectedComponents(edges[])")
    with pytest.raises(UsageError, match="produces 2 columns"):
        graph.run_algorithm(graph.CONNECTED_COMPONENTS, "links", outputs=["n"])


def test_random_walk_weight_is_an_expression() -> None:
    request = graph.run_algorithm(
        graph.RANDOM_WALK,
        "e",
        node_relation="n",
        starting=["x"],
        steps=10,
        weight="to_float(score)",
    )
    assert request.script.endswith('RandomWalk(edges[], nodes[], starting[], steps: 10, weight: to_float(score))')


def test_starting_scalar_and_empty() -> None:
    assert "starting[] <- [[7]]" in graph.run_algorithm(graph.MINIMUM_SPANNING_TREE_PRIM, "e", starting=7).script
    with pytest.raises(UsageError, match="at least one node"):
        graph.run_algorithm(graph.MINIMUM_SPANNING_TREE_PRIM, "e", starting=[])


def test_edge_columns_must_be_distinct() -> None:
    with pytest.raises(UsageError, match="distinct"):
        graph.run_algorithm(graph.TOP_SORT, "deps", from_column="a", to_column="a")
