"""sketchgraph core package.

Compiles node graphs into Arduino-style sketches and parses C/C++ headers
into library descriptors.

Important: the public helpers depend on Pydantic. They are resolved lazily
so `python -m sketchgraph.rpc.server` keeps a cheap import path.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

__version__ = "0.1.0"

__all__ = ["Graph", "Library", "compile_graph", "parse_header"]


if TYPE_CHECKING:
    from .domain.models import Graph as Graph
    from .domain.models import Library as Library
    from .services.generator import compile_graph as compile_graph
    from .services.header_parser import parse_header as parse_header


def __getattr__(name: str) -> Any:
    if name in {"Graph", "Library"}:
        from .domain.models import Graph, Library

        return {"Graph": Graph, "Library": Library}[name]
    if name == "compile_graph":
        from .services.generator import compile_graph

        return compile_graph
    if name == "parse_header":
        from .services.header_parser import parse_header

        return parse_header
    raise AttributeError(name)
