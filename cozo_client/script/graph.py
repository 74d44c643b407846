"""Builders for CozoDB's built-in graph algorithms.

Every algorithm is described by an :class:`Algorithm` descriptor: which input
relations it reads, which keyword options it accepts and which columns it
outputs. :func:`run_algorithm` turns a descriptor plus caller input into a
two-stage script: local rules binding the stored relations, then a fixed
rule invocation of the algorithm over them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..errors import UsageError
from ..literals import to_literal
from .base import QueryRequest, bindings, ensure_identifier, ensure_identifiers, ensure_text

EDGES = "edges"
NODES = "nodes"
STARTING = "starting"
GOALS = "goals"


@dataclass(frozen=True)
class Algorithm:
    """Shape of one fixed-rule graph algorithm."""

    name: str
    outputs: Tuple[str, ...]
    inputs: Tuple[str, ...] = (EDGES,)
    required_inputs: Tuple[str, ...] = (EDGES,)
    options: Tuple[str, ...] = ()
    required_options: Tuple[str, ...] = ()
    expressions: Tuple[str, ...] = ()
    weighted: bool = False

    def accepts(self, option: str) -> bool:
        return option in self.options or option in self.expressions


CLUSTERING_COEFFICIENTS = Algorithm(
    "ClusteringCoefficients", ("node", "coefficient", "triangles", "degree")
)
DEGREE_CENTRALITY = Algorithm("DegreeCentrality", ("node", "degree", "out_degree", "in_degree"))
CLOSENESS_CENTRALITY = Algorithm(
    "ClosenessCentrality", ("node", "centrality"), options=("undirected",), weighted=True
)
BETWEENNESS_CENTRALITY = Algorithm(
    "BetweennessCentrality", ("node", "centrality"), options=("undirected",), weighted=True
)
PAGE_RANK = Algorithm(
    "PageRank",
    ("node", "rank"),
    options=("undirected", "theta", "epsilon", "iterations"),
    weighted=True,
)
COMMUNITY_DETECTION_LOUVAIN = Algorithm(
    "CommunityDetectionLouvain",
    ("labels", "node"),
    options=("undirected", "max_iter", "delta", "keep_depth"),
    weighted=True,
)
LABEL_PROPAGATION = Algorithm(
    "LabelPropagation", ("label", "node"), options=("undirected", "max_iter"), weighted=True
)
CONNECTED_COMPONENTS = Algorithm("ConnectedComponents", ("node", "component"))
STRONGLY_CONNECTED_COMPONENT = Algorithm("StronglyConnectedComponent", ("node", "component"))
MINIMUM_SPANNING_FOREST_KRUSKAL = Algorithm(
    "MinimumSpanningForestKruskal", ("src", "dst", "cost"), weighted=True
)
MINIMUM_SPANNING_TREE_PRIM = Algorithm(
    "MinimumSpanningTreePrim",
    ("src", "dst", "cost"),
    inputs=(EDGES, STARTING),
    weighted=True,
)
TOP_SORT = Algorithm("TopSort", ("order", "node"))
SHORTEST_PATH_BFS = Algorithm(
    "ShortestPathBFS",
    ("start", "goal", "path"),
    inputs=(EDGES, STARTING, GOALS),
    required_inputs=(EDGES, STARTING, GOALS),
)
SHORTEST_PATH_DIJKSTRA = Algorithm(
    "ShortestPathDijkstra",
    ("start", "goal", "cost", "path"),
    inputs=(EDGES, STARTING, GOALS),
    required_inputs=(EDGES, STARTING),
    options=("undirected", "keep_ties"),
    weighted=True,
)
K_SHORTEST_PATH_YEN = Algorithm(
    "KShortestPathYen",
    ("start", "goal", "cost", "path"),
    inputs=(EDGES, STARTING, GOALS),
    required_inputs=(EDGES, STARTING, GOALS),
    options=("k", "undirected"),
    required_options=("k",),
    weighted=True,
)
BREADTH_FIRST_SEARCH = Algorithm(
    "BFS",
    ("start", "goal", "path"),
    inputs=(EDGES, NODES, STARTING),
    required_inputs=(EDGES, NODES, STARTING),
    options=("limit",),
    expressions=("condition",),
    required_options=("condition",),
)
DEPTH_FIRST_SEARCH = Algorithm(
    "DFS",
    ("start", "goal", "path"),
    inputs=(EDGES, NODES, STARTING),
    required_inputs=(EDGES, NODES, STARTING),
    options=("limit",),
    expressions=("condition",),
    required_options=("condition",),
)
RANDOM_WALK = Algorithm(
    "RandomWalk",
    ("walk", "start", "path"),
    inputs=(EDGES, NODES, STARTING),
    required_inputs=(EDGES, NODES, STARTING),
    options=("steps", "iterations"),
    expressions=("weight",),
    required_options=("steps",),
)

ALGORITHMS: Dict[str, Algorithm] = {
    algo.name: algo
    for algo in (
        CLUSTERING_COEFFICIENTS,
        DEGREE_CENTRALITY,
        CLOSENESS_CENTRALITY,
        BETWEENNESS_CENTRALITY,
        PAGE_RANK,
        COMMUNITY_DETECTION_LOUVAIN,
        LABEL_PROPAGATION,
        CONNECTED_COMPONENTS,
        STRONGLY_CONNECTED_COMPONENT,
        MINIMUM_SPANNING_FOREST_KRUSKAL,
        MINIMUM_SPANNING_TREE_PRIM,
        TOP_SORT,
        SHORTEST_PATH_BFS,
        SHORTEST_PATH_DIJKSTRA,
        K_SHORTEST_PATH_YEN,
        BREADTH_FIRST_SEARCH,
        DEPTH_FIRST_SEARCH,
        RANDOM_WALK,
    )
}


def get_algorithm(algorithm: Union[str, Algorithm]) -> Algorithm:
    if isinstance(algorithm, Algorithm):
        return algorithm
    if isinstance(algorithm, str):
        found = ALGORITHMS.get(algorithm)
        if found is not None:
            return found
        raise UsageError(f"unknown graph algorithm {algorithm!r}")
    raise UsageError("algorithm must be an Algorithm descriptor or an algorithm name")


def _node_set(values: Any, ctx: str) -> str:
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        values = [values]
    if not values:
        raise UsageError(f"{ctx} requires at least one node")
    return "[" + ", ".join(f"[{to_literal(value)}]" for value in values) + "]"


def _option_fragment(algo: Algorithm, key: str, value: Any) -> str:
    if key in algo.expressions:
        return f"{key}: {ensure_text(value, f'{algo.name} option {key!r}')}"
    return f"{key}: {to_literal(value)}"


def run_algorithm(
    algorithm: Union[str, Algorithm],
    edge_relation: str,
    *,
    from_column: str = "from",
    to_column: str = "to",
    weight_column: Optional[str] = None,
    node_relation: Optional[str] = None,
    node_columns: Optional[Sequence[str]] = None,
    starting: Optional[Sequence[Any]] = None,
    goals: Optional[Sequence[Any]] = None,
    outputs: Optional[Sequence[str]] = None,
    **options: Any,
) -> QueryRequest:
    """Build a script running ``algorithm`` over ``edge_relation``.

    Args:
        algorithm: Descriptor from this module or its engine name.
        edge_relation: Stored relation holding the edges.
        from_column: Edge source column, also used as the bound variable name.
        to_column: Edge target column.
        weight_column: Optional weight column for weighted algorithms.
        node_relation: Stored relation holding the nodes, for algorithms that
            read node data (``BFS``, ``DFS``, ``RandomWalk``).
        node_columns: Node columns to bind; the first one is the node id.
        starting: Start nodes, inlined as a literal rule.
        goals: Goal nodes, inlined as a literal rule.
        outputs: Output column names overriding the descriptor's defaults.
        **options: Algorithm keyword options. Only the given ones are
            emitted; the rest keep the engine's defaults. Expression options
            (``condition``, ``weight``) are inserted as script text.

    Raises:
        UsageError: if the input does not fit the algorithm's descriptor.
    """
    algo = get_algorithm(algorithm)
    edge_relation = ensure_identifier(edge_relation, "edge relation")
    edge_cols = [ensure_identifier(from_column, "from_column"), ensure_identifier(to_column, "to_column")]
    if weight_column is not None:
        if not algo.weighted:
            raise UsageError(f"{algo.name} does not accept a weight column")
        edge_cols.append(ensure_identifier(weight_column, "weight_column"))
    if len(set(edge_cols)) != len(edge_cols):
        raise UsageError("edge columns must be distinct")

    for key in options:
        if not algo.accepts(key):
            raise UsageError(f"{algo.name} does not accept option {key!r}")
    missing = [key for key in algo.required_options if options.get(key) is None]
    if missing:
        raise UsageError(f"{algo.name} requires options {missing}")

    head = list(algo.outputs)
    if outputs is not None:
        head = ensure_identifiers(outputs, "outputs")
        if len(head) != len(algo.outputs):
            raise UsageError(f"{algo.name} produces {len(algo.outputs)} columns, got {len(head)} output names")

    supplied = {EDGES: True, NODES: node_relation is not None, STARTING: starting is not None, GOALS: goals is not None}
    for role, present in supplied.items():
        if present and role not in algo.inputs:
            raise UsageError(f"{algo.name} does not take {role} input")
        if not present and role in algo.required_inputs:
            raise UsageError(f"{algo.name} requires {role} input")

    lines: List[str] = [f"{EDGES}[{bindings(edge_cols)}] := *{edge_relation}{{{bindings(edge_cols)}}}"]
    if node_relation is not None:
        relation = ensure_identifier(node_relation, "node relation")
        cols = ensure_identifiers(node_columns if node_columns is not None else ["id"], "node_columns")
        lines.append(f"{NODES}[{bindings(cols)}] := *{relation}{{{bindings(cols)}}}")
    if starting is not None:
        lines.append(f"{STARTING}[] <- {_node_set(starting, 'starting')}")
    if goals is not None:
        lines.append(f"{GOALS}[] <- {_node_set(goals, 'goals')}")

    args = [f"{role}[]" for role in algo.inputs if supplied[role]]
    for key, value in options.items():
        if value is None:
            continue
        args.append(_option_fragment(algo, key, value))
    lines.append(f"?[{bindings(head)}] <~ {algo.name}({', '.join(args)})")
    return QueryRequest("\n".join(lines), {}, immutable=True)


def page_rank(
    edge_relation: str,
    *,
    iterations: Optional[int] = None,
    theta: Optional[float] = None,
    epsilon: Optional[float] = None,
    undirected: Optional[bool] = None,
    from_column: str = "from",
    to_column: str = "to",
) -> QueryRequest:
    """Rank nodes by importance; ``theta`` is the damping factor."""
    return run_algorithm(
        PAGE_RANK,
        edge_relation,
        from_column=from_column,
        to_column=to_column,
        iterations=iterations,
        theta=theta,
        epsilon=epsilon,
        undirected=undirected,
    )


def shortest_path(
    edge_relation: str,
    from_node: Any,
    to_node: Any,
    *,
    from_column: str = "from",
    to_column: str = "to",
) -> QueryRequest:
    """Unweighted shortest path between two nodes."""
    return run_algorithm(
        SHORTEST_PATH_BFS,
        edge_relation,
        from_column=from_column,
        to_column=to_column,
        starting=[from_node],
        goals=[to_node],
    )


def community_detection(
    edge_relation: str,
    *,
    from_column: str = "from",
    to_column: str = "to",
    weight_column: Optional[str] = None,
    **options: Any,
) -> QueryRequest:
    return run_algorithm(
        COMMUNITY_DETECTION_LOUVAIN,
        edge_relation,
        from_column=from_column,
        to_column=to_column,
        weight_column=weight_column,
        **options,
    )


def bfs(
    edge_relation: str,
    node_relation: str,
    starting: Sequence[Any],
    *,
    condition: str,
    limit: Optional[int] = None,
    node_columns: Optional[Sequence[str]] = None,
    from_column: str = "from",
    to_column: str = "to",
) -> QueryRequest:
    """Breadth-first search from ``starting`` until ``condition`` holds on a node."""
    return run_algorithm(
        BREADTH_FIRST_SEARCH,
        edge_relation,
        from_column=from_column,
        to_column=to_column,
        node_relation=node_relation,
        node_columns=node_columns,
        starting=starting,
        condition=condition,
        limit=limit,
    )
