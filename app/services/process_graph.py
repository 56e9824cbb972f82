"""Decision-flow graph for a process.

Steps are nodes and ``StepOutcome`` rows are edges.  The edge list is
resolved through an id → index map; nodes never hold references to each
other.  Cycles (rework loops) are allowed in stored data and are reported
through ``has_cycle`` / ``back_edges`` so renderers can stop expanding a
revisited step.
"""

import logging

logger = logging.getLogger(__name__)


def _find_back_edges(node_count, adjacency):
    """Iterative DFS over index adjacency; returns edges closing a cycle."""
    WHITE, GREY, BLACK = 0, 1, 2
    colour = [WHITE] * node_count
    back_edges = []

    for start in range(node_count):
        if colour[start] != WHITE:
            continue
        colour[start] = GREY
        stack = [(start, iter(adjacency[start]))]
        while stack:
            node, children = stack[-1]
            advanced = False
            for target, edge_pos in children:
                if colour[target] == GREY:
                    back_edges.append(edge_pos)
                elif colour[target] == WHITE:
                    colour[target] = GREY
                    stack.append((target, iter(adjacency[target])))
                    advanced = True
                    break
            if not advanced:
                colour[node] = BLACK
                stack.pop()

    return back_edges


def build_process_graph(steps, outcomes):
    """Resolve steps + outcome rows into an adjacency view.

    Args:
        steps: step dicts (``id``, ``step_number``, ``step_type``, …).
        outcomes: outcome dicts (``id``, ``from_step_id``, ``to_step_id``,
            ``label``, ``priority``).

    Returns:
        dict with
          ``nodes``      steps ordered by step_number,
          ``edges``      resolvable outcomes,
          ``adjacency``  {step_id: [{"edge_id", "to_step_id", "label", "priority"}]}
                         ordered by priority then input order,
          ``roots``      ids of steps with no incoming edge (or the first
                         step when every step has one),
          ``has_cycle``  bool,
          ``back_edges`` ids of edges that close a cycle.
    """
    nodes = [dict(s) for s in sorted(steps, key=lambda s: s.get("step_number") or 0)]
    index = {node["id"]: pos for pos, node in enumerate(nodes)}

    edges = []
    for outcome in outcomes:
        if outcome.get("from_step_id") not in index or outcome.get("to_step_id") not in index:
            logger.warning(
                "Dropping outcome id=%s: endpoint not in process (%s -> %s)",
                outcome.get("id"), outcome.get("from_step_id"), outcome.get("to_step_id"),
            )
            continue
        edges.append(dict(outcome))

    ordered = sorted(enumerate(edges), key=lambda pair: (pair[1].get("priority") or 0, pair[0]))
    index_adjacency = [[] for _ in nodes]
    adjacency = {node["id"]: [] for node in nodes}
    incoming = set()
    for pos, edge in ordered:
        src = index[edge["from_step_id"]]
        dst = index[edge["to_step_id"]]
        index_adjacency[src].append((dst, pos))
        adjacency[edge["from_step_id"]].append({
            "edge_id": edge.get("id"),
            "to_step_id": edge["to_step_id"],
            "label": edge.get("label"),
            "priority": edge.get("priority") or 0,
        })
        incoming.add(edge["to_step_id"])

    roots = [node["id"] for node in nodes if node["id"] not in incoming]
    if not roots and nodes:
        roots = [nodes[0]["id"]]

    back_positions = _find_back_edges(len(nodes), index_adjacency)
    back_edges = [edges[pos].get("id") for pos in back_positions]

    return {
        "nodes": nodes,
        "edges": edges,
        "adjacency": adjacency,
        "roots": roots,
        "has_cycle": bool(back_edges),
        "back_edges": back_edges,
    }
