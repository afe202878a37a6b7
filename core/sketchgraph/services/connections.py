"""Connection gate for graph edges.

Execution edges (``exec-out`` -> ``exec-in``) are always accepted between
existing nodes. Data edges must join an existing output port to an existing
input port whose types are compatible.
"""

from __future__ import annotations

import logging

from sketchgraph.domain.models import Edge, Graph
from sketchgraph.domain.value_types import is_compatible
from sketchgraph.errors import ConnectionRejected

logger = logging.getLogger(__name__)


def check_connection(graph: Graph, edge: Edge) -> str | None:
    """Return why ``edge`` may not be added to ``graph``, or None if it may."""

    source = graph.get_node(edge.source)
    target = graph.get_node(edge.target)
    if source is None:
        return f"Unknown source node: {edge.source}"
    if target is None:
        return f"Unknown target node: {edge.target}"

    if edge.is_execution:
        return None

    source_port = source.output_port(edge.source_handle)
    target_port = target.input_port(edge.target_handle)
    if source_port is None:
        return f"Unknown output port {edge.source_handle!r} on node {edge.source}"
    if target_port is None:
        return f"Unknown input port {edge.target_handle!r} on node {edge.target}"

    if not is_compatible(source_port.type, target_port.type):
        return f"Type mismatch: {source_port.type} cannot connect to {target_port.type}"
    return None


def connect(graph: Graph, edge: Edge) -> Graph:
    """Return a new snapshot with ``edge`` added.

    For data edges the target input port is flagged ``connected``. Adding an
    edge that is already present returns ``graph`` unchanged.

    Raises:
        ConnectionRejected: If `check_connection` refuses the edge.
    """

    reason = check_connection(graph, edge)
    if reason is not None:
        logger.debug("rejected edge %s -> %s: %s", edge.source, edge.target, reason)
        raise ConnectionRejected(reason)

    if edge in graph.edges:
        return graph

    nodes = list(graph.nodes)
    if not edge.is_execution:
        nodes = [
            n.model_copy(
                update={
                    "inputs": [
                        p.model_copy(update={"connected": True}) if p.id == edge.target_handle else p
                        for p in n.inputs
                    ]
                }
            )
            if n.id == edge.target
            else n
            for n in nodes
        ]

    return Graph(nodes=nodes, edges=[*graph.edges, edge])
