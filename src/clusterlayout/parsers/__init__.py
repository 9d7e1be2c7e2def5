"""Parser registry: detect the diagram type and dispatch to the right parser."""

from __future__ import annotations

from clusterlayout.errors import ParseError
from clusterlayout.ir.ast import Graph
from clusterlayout.parsers.flowchart import FlowchartParser


def detect_type(src: str) -> str:
    """Detect the diagram type from source text. Returns 'flowchart' etc."""
    for line in src.strip().split("\n"):
        line = line.strip()
        if not line or line.startswith("%%"):
            continue
        first = line.split(maxsplit=1)[0].lower()
        if first in ("flowchart", "graph"):
            return "flowchart"
        if first in ("sequencediagram", "classdiagram", "statediagram", "erdiagram", "gantt", "pie"):
            return first
        break
    return "flowchart"


_PARSERS = {
    "flowchart": FlowchartParser,
}


def parse(src: str) -> Graph:
    """Auto-detect diagram type and parse to AST."""
    diagram_type = detect_type(src)
    parser_cls = _PARSERS.get(diagram_type)
    if parser_cls is None:
        raise ParseError(f"Unsupported diagram type: {diagram_type}")
    return parser_cls().parse(src)


__all__ = ["FlowchartParser", "detect_type", "parse"]
