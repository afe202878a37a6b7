"""Graph-to-sketch compiler.

Turns an immutable `Graph` snapshot into Arduino-style source text with an
include block, an optional global block, and the ``setup``/``loop``
procedures.

Pipeline:
1. Variable pass: declarations for named variable nodes, and every variable
   output resolves to the variable's name.
2. Control-flow discovery: execution edges are followed from the setup node
   and from the loop node (DFS pre-order, edge-list order).
3. Dependency ordering: data producers in the same procedure come first.
4. Emission: one call statement per function node. A call whose output is
   consumed is cached and reused as the argument expression downstream.
5. Orphan pass: function nodes outside both procedures that still feed a
   data edge get their expressions computed.
6. Assembly.

Edges naming a node or port that does not exist are ignored. Every traversal
keeps a visited set (or, for expression building, the set of nodes on the
current path) so cyclic graphs terminate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from sketchgraph.domain.models import (
    Edge,
    FunctionNode,
    Graph,
    LoopNode,
    Port,
    SetupNode,
    VariableNode,
)
from sketchgraph.domain.value_types import ValueType, zero_value

logger = logging.getLogger(__name__)

AnyNode = SetupNode | LoopNode | FunctionNode | VariableNode


class CompilerOptions(BaseModel):
    """Presentation settings for the generated sketch."""

    model_config = ConfigDict(frozen=True)

    header: list[str] = Field(
        default_factory=lambda: ["// Generated by sketchgraph"],
        description="Comment lines written at the top of the sketch",
    )
    indent: str = Field(default="  ", description="Indentation of procedure statements")
    setup_placeholder: str = Field(default="// Add setup code here")
    loop_placeholder: str = Field(default="// Add loop code here")


class Sketch(BaseModel):
    """Compiled sketch, both as parts and as the assembled ``source``."""

    model_config = ConfigDict(frozen=True)

    includes: list[str] = Field(default_factory=list)
    global_declarations: list[str] = Field(default_factory=list)
    setup: list[str] = Field(default_factory=list)
    loop: list[str] = Field(default_factory=list)
    expressions: dict[str, str] = Field(
        default_factory=dict,
        description="Resolved expression per consumed output, keyed 'node_id:port_id'",
    )
    source: str = ""


def compile_graph(graph: Graph, options: CompilerOptions | None = None) -> str:
    """Compile a graph snapshot to sketch source text."""

    return compile_sketch(graph, options).source


def compile_sketch(graph: Graph, options: CompilerOptions | None = None) -> Sketch:
    """Compile a graph snapshot to a `Sketch`.

    Args:
        graph: Graph snapshot. It is only read.
        options: Presentation settings; defaults to `CompilerOptions()`.

    Returns:
        The compiled sketch. Compilation never fails for a valid `Graph`.
    """

    options = options or CompilerOptions()
    ctx = _Context.from_graph(graph)

    _register_variables(ctx)

    setup_root = _root_id(graph, "setup")
    loop_root = _root_id(graph, "loop")
    setup, setup_nodes = _build_procedure(ctx, setup_root)
    loop, loop_nodes = _build_procedure(ctx, loop_root)

    _precompute_orphans(ctx, covered=setup_nodes | loop_nodes)

    includes = list(ctx.includes)
    expressions = {f"{node_id}:{port_id}": e.text for (node_id, port_id), e in sorted(ctx.expressions.items())}
    source = _assemble(options, includes, ctx.global_declarations, setup, loop)

    logger.debug(
        "compiled sketch: %d includes, %d globals, %d setup / %d loop statements",
        len(includes),
        len(ctx.global_declarations),
        len(setup),
        len(loop),
    )
    return Sketch(
        includes=includes,
        global_declarations=list(ctx.global_declarations),
        setup=setup,
        loop=loop,
        expressions=expressions,
        source=source,
    )


@dataclass(frozen=True, slots=True)
class _Expr:
    text: str
    # Ids of non-global variables the expression reads.
    locals: tuple[str, ...] = ()


@dataclass(slots=True)
class _Context:
    nodes: dict[str, AnyNode]
    exec_targets: dict[str, list[str]]
    data_in: dict[str, list[Edge]]
    consumed: set[tuple[str, str]]
    includes: dict[str, None]
    global_declarations: list[str]
    expressions: dict[tuple[str, str], _Expr]

    @classmethod
    def from_graph(cls, graph: Graph) -> "_Context":
        nodes = {n.id: n for n in sorted(graph.nodes, key=lambda n: n.id)}
        exec_targets: dict[str, list[str]] = {}
        data_in: dict[str, list[Edge]] = {}
        consumed: set[tuple[str, str]] = set()

        for edge in graph.edges:
            if edge.is_execution:
                exec_targets.setdefault(edge.source, []).append(edge.target)
                continue
            if not _is_live_data_edge(nodes, edge):
                continue
            data_in.setdefault(edge.target, []).append(edge)
            consumed.add((edge.source, edge.source_handle))

        return cls(
            nodes=nodes,
            exec_targets=exec_targets,
            data_in=data_in,
            consumed=consumed,
            includes={},
            global_declarations=[],
            expressions={},
        )

    def producers(self, node_id: str) -> list[str]:
        return [e.source for e in self.data_in.get(node_id, [])]

    def edge_into(self, node_id: str, port_id: str) -> Edge | None:
        return next((e for e in self.data_in.get(node_id, []) if e.target_handle == port_id), None)


def _is_live_data_edge(nodes: dict[str, AnyNode], edge: Edge) -> bool:
    source = nodes.get(edge.source)
    target = nodes.get(edge.target)
    if source is None or target is None:
        return False
    return source.output_port(edge.source_handle) is not None and target.input_port(edge.target_handle) is not None


def _root_id(graph: Graph, kind: str) -> str | None:
    return next((n.id for n in graph.nodes if n.kind == kind), None)


def _register_variables(ctx: _Context) -> None:
    for node in ctx.nodes.values():
        if not isinstance(node, VariableNode) or not node.name:
            continue
        if node.is_global:
            ctx.global_declarations.append(node.declaration())
            ctx.expressions[(node.id, node.value_port.id)] = _Expr(node.name)
        else:
            ctx.expressions[(node.id, node.value_port.id)] = _Expr(node.name, (node.id,))


def _discover(ctx: _Context, root_id: str) -> list[str]:
    """Nodes reachable from ``root_id`` over execution edges, in DFS pre-order."""

    order: list[str] = []
    visited = {root_id}
    stack = list(reversed(ctx.exec_targets.get(root_id, [])))
    while stack:
        node_id = stack.pop()
        if node_id in visited:
            continue
        visited.add(node_id)
        node = ctx.nodes.get(node_id)
        if not isinstance(node, (FunctionNode, VariableNode)):
            continue
        order.append(node_id)
        stack.extend(reversed(ctx.exec_targets.get(node_id, [])))
    return order


def _order(ctx: _Context, discovered: list[str]) -> list[str]:
    """Place same-procedure data producers before their consumers."""

    members = set(discovered)
    seen: set[str] = set()
    result: list[str] = []

    for start in discovered:
        if start in seen:
            continue
        seen.add(start)
        stack = [(start, iter(ctx.producers(start)))]
        while stack:
            node_id, deps = stack[-1]
            for dep in deps:
                if dep in members and dep not in seen:
                    seen.add(dep)
                    stack.append((dep, iter(ctx.producers(dep))))
                    break
            else:
                stack.pop()
                result.append(node_id)
    return result


def _build_procedure(ctx: _Context, root_id: str | None) -> tuple[list[str], set[str]]:
    if root_id is None:
        return [], set()

    ordered = _order(ctx, _discover(ctx, root_id))
    statements: list[str] = []
    declared: set[str] = set()

    for node_id in ordered:
        node = ctx.nodes[node_id]
        if isinstance(node, VariableNode):
            if node.name and not node.is_global and node.id not in declared:
                declared.add(node.id)
                statements.append(node.declaration())
            continue

        if not isinstance(node, FunctionNode):
            continue
        used: list[str] = []
        call = _emit_call(ctx, node, used)
        for var_id in dict.fromkeys(used):
            if var_id not in declared:
                declared.add(var_id)
                var = ctx.nodes[var_id]
                if isinstance(var, VariableNode):
                    statements.append(var.declaration())
        statements.append(call)

    return statements, set(ordered)


def _emit_call(ctx: _Context, node: FunctionNode, used: list[str]) -> str:
    if node.include:
        ctx.includes[node.include] = None

    path = frozenset({node.id})
    args = [_resolve_input(ctx, node.id, port, path, used) for port in node.inputs]
    expr = f"{node.call_name}({', '.join(args)})"

    for port in node.outputs:
        if port.type is not ValueType.VOID and (node.id, port.id) in ctx.consumed:
            ctx.expressions[(node.id, port.id)] = _Expr(expr, tuple(dict.fromkeys(used)))
    return f"{expr};"


def _resolve_input(
    ctx: _Context,
    node_id: str,
    port: Port,
    path: frozenset[str],
    used: list[str],
) -> str:
    """Argument expression for one input port.

    Priority: cached upstream expression, expression built from the upstream
    node, the port literal, the type's zero value. A connection that cannot
    be resolved (cycle, unnamed variable, non-value upstream) falls back the
    same way as an unconnected port.
    """

    edge = ctx.edge_into(node_id, port.id)
    if edge is not None:
        cached = ctx.expressions.get((edge.source, edge.source_handle))
        if cached is not None:
            used.extend(cached.locals)
            return cached.text

        upstream = ctx.nodes.get(edge.source)
        if edge.source not in path and isinstance(upstream, (FunctionNode, VariableNode)):
            expr = _build_expression(ctx, upstream, path, used)
            if expr is not None:
                return expr

    return port.literal or zero_value(port.type)


def _build_expression(
    ctx: _Context,
    node: FunctionNode | VariableNode,
    path: frozenset[str],
    used: list[str],
    *,
    register_includes: bool = True,
) -> str | None:
    if isinstance(node, VariableNode):
        if not node.name:
            return None
        if not node.is_global:
            used.append(node.id)
        return node.name

    if register_includes and node.include:
        ctx.includes[node.include] = None

    path = path | {node.id}
    args = [_resolve_input(ctx, node.id, port, path, used) for port in node.inputs]
    return f"{node.call_name}({', '.join(args)})"


def _precompute_orphans(ctx: _Context, covered: set[str]) -> None:
    for node in ctx.nodes.values():
        if not isinstance(node, FunctionNode) or node.id in covered:
            continue
        for port in node.outputs:
            key = (node.id, port.id)
            if key not in ctx.consumed or key in ctx.expressions:
                continue
            used: list[str] = []
            text = _build_expression(ctx, node, frozenset(), used, register_includes=False)
            if text is not None:
                ctx.expressions[key] = _Expr(text, tuple(dict.fromkeys(used)))


def _assemble(
    options: CompilerOptions,
    includes: list[str],
    global_declarations: list[str],
    setup: list[str],
    loop: list[str],
) -> str:
    lines: list[str] = []
    if options.header:
        lines.extend(options.header)
        lines.append("")

    if includes:
        lines.extend(includes)
        lines.append("")

    if global_declarations:
        lines.append("// Global variables")
        lines.extend(global_declarations)
        lines.append("")

    lines.extend(_procedure("setup", setup, options.setup_placeholder, options.indent))
    lines.append("")
    lines.extend(_procedure("loop", loop, options.loop_placeholder, options.indent))
    return "\n".join(lines) + "\n"


def _procedure(name: str, statements: list[str], placeholder: str, indent: str) -> list[str]:
    body = statements or [placeholder]
    return [f"void {name}() {{", *(f"{indent}{s}" for s in body), "}"]
