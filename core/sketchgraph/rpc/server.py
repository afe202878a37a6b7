"""Minimal stdio RPC server for sketchgraph.

Protocol:
- JSON per line over stdin/stdout.
- Requests: {"id": number, "method": string, "params"?: object}
- Responses: {"id": number, "result"?: any, "error"?: {"message": string}}

Methods:
- hello, ping, shutdown
- parse_header {content, file_name} -> ParseResult
- validate_library {library} -> {"problems": [...]}
- compile_graph {graph, options?} -> Sketch
- check_connection {graph, edge} -> {"ok": bool, "reason": str | null}
- catalog -> default LibraryCatalog
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

from pydantic import BaseModel, ValidationError

from sketchgraph.domain.models import Edge, Graph, Library
from sketchgraph.library.catalog import default_catalog
from sketchgraph.services.connections import check_connection
from sketchgraph.services.generator import CompilerOptions, compile_sketch
from sketchgraph.services.header_parser import parse_header, validate_library

logger = logging.getLogger(__name__)


class _ParseHeaderParams(BaseModel):
    content: str
    file_name: str


class _ValidateLibraryParams(BaseModel):
    library: Library


class _CompileGraphParams(BaseModel):
    graph: Graph
    options: CompilerOptions | None = None


class _CheckConnectionParams(BaseModel):
    graph: Graph
    edge: Edge


def main() -> None:
    """Run the RPC loop reading stdin and writing stdout."""

    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue

        try:
            request = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("ignoring malformed request line")
            continue

        response = handle_request(request)
        sys.stdout.write(json.dumps(response, ensure_ascii=False) + "\n")
        sys.stdout.flush()

        if response.get("result") == "shutdown":
            return


def handle_request(request: Any) -> dict[str, Any]:
    """Handle one RPC request.

    Args:
        request: Parsed JSON object.

    Returns:
        RPC response dict.
    """

    if not isinstance(request, dict):
        return {"id": -1, "error": {"message": "Invalid request"}}

    request_id = request.get("id")
    method = request.get("method")

    if not isinstance(request_id, int) or not isinstance(method, str):
        return {"id": -1, "error": {"message": "Invalid request fields"}}

    logger.debug("rpc request %d: %s", request_id, method)

    if method == "hello":
        return {"id": request_id, "result": "hello from sketchgraph-core"}

    if method == "ping":
        return {"id": request_id, "result": "pong"}

    if method == "shutdown":
        return {"id": request_id, "result": "shutdown"}

    if method == "parse_header":
        try:
            params = _parse_params(request.get("params"), _ParseHeaderParams)
            result = parse_header(params.content, params.file_name)
            return {"id": request_id, "result": result.model_dump(mode="json")}
        except Exception as exc:  # noqa: BLE001 - return structured RPC errors
            return _error_response(request_id, method, exc)

    if method == "validate_library":
        try:
            params = _parse_params(request.get("params"), _ValidateLibraryParams)
            return {"id": request_id, "result": {"problems": validate_library(params.library)}}
        except Exception as exc:  # noqa: BLE001 - return structured RPC errors
            return _error_response(request_id, method, exc)

    if method == "compile_graph":
        try:
            params = _parse_params(request.get("params"), _CompileGraphParams)
            sketch = compile_sketch(params.graph, params.options)
            return {"id": request_id, "result": sketch.model_dump(mode="json")}
        except Exception as exc:  # noqa: BLE001 - return structured RPC errors
            return _error_response(request_id, method, exc)

    if method == "check_connection":
        try:
            params = _parse_params(request.get("params"), _CheckConnectionParams)
            reason = check_connection(params.graph, params.edge)
            return {"id": request_id, "result": {"ok": reason is None, "reason": reason}}
        except Exception as exc:  # noqa: BLE001 - return structured RPC errors
            return _error_response(request_id, method, exc)

    if method == "catalog":
        try:
            return {"id": request_id, "result": default_catalog().model_dump(mode="json")}
        except Exception as exc:  # noqa: BLE001 - return structured RPC errors
            return _error_response(request_id, method, exc)

    return {"id": request_id, "error": {"message": f"Unknown method: {method}"}}


def _parse_params(value: Any, model: type[BaseModel]) -> Any:
    if value is None:
        value = {}
    if not isinstance(value, dict):
        raise ValueError("params must be an object")

    try:
        return model.model_validate(value)
    except ValidationError as exc:
        # Keep errors readable for the editor UI.
        raise ValueError(exc.errors(include_url=False)) from exc


def _format_error(exc: Exception) -> str:
    message = str(exc).strip() or exc.__class__.__name__
    return message


def _error_response(request_id: int, method: str, exc: Exception) -> dict[str, Any]:
    message = _format_error(exc)
    print(f"[RPC] {method} failed: {message}", file=sys.stderr)
    return {"id": request_id, "error": {"message": message}}


if __name__ == "__main__":
    main()
