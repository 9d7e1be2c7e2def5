"""Flowchart parser, hand-rolled recursive descent.

Parses the Mermaid flowchart/graph subset that carries layering information
(node ids and labels, edge chains, nested subgraphs) into the AST types from
ir.ast. Edge styles and node shapes are accepted but not recorded.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from clusterlayout.errors import ParseError
from clusterlayout.ir.ast import Edge, Graph, Node, Subgraph

# ─── Tokens ──────────────────────────────────────────────────────────────────

_COMMENT_RE = re.compile(r"%%[^\n]*")
_WHITESPACE_RE = re.compile(r"[ \t]+")
_NEWLINE_RE = re.compile(r"\r\n|\n|\r")

# longest first so "<-->" is not read as "<" + "-->"
_EDGE_CONNECTORS: tuple[str, ...] = ("<-.->", "<==>", "<-->", "-.->", "==>", "-->", "-.-", "===", "---")

_NODE_ID_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_-]*")
_HEADER_RE = re.compile(r"(flowchart|graph)\b[^\n;]*")
_DIRECTION_STMT_RE = re.compile(r"direction\s+(TD|TB|LR|RL|BT)\b")
_LABEL_TEXT_RE = re.compile(r"[^|\n]+")
_SUBGRAPH_NAME_RE = re.compile(r"[^\n\[%;]+")

# opening bracket -> closing bracket, two-char forms before one-char forms
_SHAPES: tuple[tuple[str, str], ...] = (("((", "))"), ("([", "])"), ("[[", "]]"), ("{{", "}}"), ("[", "]"), ("(", ")"), ("{", "}"))


@dataclass
class _Cursor:
    """Stateful parser cursor over the input string."""

    src: str
    pos: int = 0

    def eof(self) -> bool:
        return self.pos >= len(self.src)

    def peek(self, s: str) -> bool:
        return self.src.startswith(s, self.pos)

    def consume(self, s: str) -> bool:
        if self.peek(s):
            self.pos += len(s)
            return True
        return False

    def match_re(self, pattern: re.Pattern[str]) -> str | None:
        m = pattern.match(self.src, self.pos)
        if m:
            self.pos = m.end()
            return m.group(0)
        return None

    def skip_ws(self) -> None:
        while self.match_re(_WHITESPACE_RE) or self.match_re(_COMMENT_RE):
            pass

    def skip_blank(self) -> None:
        while self.match_re(_WHITESPACE_RE) or self.match_re(_COMMENT_RE) or self.match_re(_NEWLINE_RE) or self.consume(";"):
            pass

    def end_statement(self) -> None:
        self.skip_ws()
        if not self.eof() and not self.consume(";") and not self.match_re(_NEWLINE_RE):
            line = self.src.count("\n", 0, self.pos) + 1
            rest = self.src[self.pos :].split("\n", 1)[0]
            raise ParseError(f"line {line}: unexpected text '{rest}'")

    def parse_bracketed(self, close: str) -> str:
        self.skip_ws()
        if self.consume('"'):
            end = self.src.find('"', self.pos)
            if end < 0:
                raise ParseError("unterminated quoted label")
            text = self.src[self.pos : end]
            self.pos = end + 1
            self.skip_ws()
        else:
            end = self.src.find(close, self.pos)
            newline = self.src.find("\n", self.pos)
            if end < 0 or (0 <= newline < end):
                raise ParseError(f"missing '{close}' after label")
            text = self.src[self.pos : end].strip()
            self.pos = end
        if not self.consume(close):
            raise ParseError(f"missing '{close}' after label")
        return text

    def parse_node_ref(self) -> Node | None:
        self.skip_ws()
        node_id = self.match_re(_NODE_ID_RE)
        if not node_id:
            return None
        for opening, closing in _SHAPES:
            if self.consume(opening):
                return Node(id=node_id, label=self.parse_bracketed(closing))
        return Node.bare(node_id)

    def parse_connector(self) -> bool:
        self.skip_ws()
        return any(self.consume(token) for token in _EDGE_CONNECTORS)

    def parse_edge_label(self) -> str | None:
        self.skip_ws()
        if not self.consume("|"):
            return None
        text = self.match_re(_LABEL_TEXT_RE) or ""
        if not self.consume("|"):
            raise ParseError("missing closing '|' after edge label")
        return text.strip()

    def at_keyword(self, word: str) -> bool:
        if not self.peek(word):
            return False
        after = self.pos + len(word)
        return after >= len(self.src) or not (self.src[after].isalnum() or self.src[after] in "_-")

    def parse_statement(self, nodes: list[Node], edges: list[Edge], subgraphs: list[Subgraph]) -> None:
        if self.at_keyword("subgraph"):
            self.pos += len("subgraph")
            subgraphs.append(self.parse_subgraph())
            return
        if self.match_re(_DIRECTION_STMT_RE):
            self.end_statement()
            return

        source = self.parse_node_ref()
        if source is None:
            line = self.src.count("\n", 0, self.pos) + 1
            raise ParseError(f"line {line}: expected a node id")
        _upsert_node(nodes, source)
        prev = source
        while self.parse_connector():
            label = self.parse_edge_label()
            target = self.parse_node_ref()
            if target is None:
                raise ParseError(f"edge from '{prev.id}' has no target")
            _upsert_node(nodes, target)
            edges.append(Edge(from_id=prev.id, to_id=target.id, label=label))
            prev = target
        self.end_statement()

    def parse_subgraph(self) -> Subgraph:
        self.skip_ws()
        name = (self.match_re(_SUBGRAPH_NAME_RE) or "").strip()
        if not name:
            raise ParseError("subgraph without a name")
        label = self.parse_bracketed("]") if self.consume("[") else None
        self.end_statement()
        sg = Subgraph(name=name, label=label)
        while True:
            self.skip_blank()
            if self.eof():
                raise ParseError(f"subgraph '{name}' is missing its 'end'")
            if self.at_keyword("end"):
                self.pos += len("end")
                self.end_statement()
                return sg
            self.parse_statement(sg.nodes, sg.edges, sg.subgraphs)

    def parse_graph(self) -> Graph:
        graph = Graph()
        self.skip_blank()
        self.match_re(_HEADER_RE)
        while True:
            self.skip_blank()
            if self.eof():
                return graph
            if self.at_keyword("end"):
                raise ParseError("'end' without an open subgraph")
            self.parse_statement(graph.nodes, graph.edges, graph.subgraphs)


def _upsert_node(nodes: list[Node], node: Node) -> None:
    """First labelled definition wins; a bare mention never overrides a label."""
    for i, existing in enumerate(nodes):
        if existing.id == node.id:
            if existing.label == existing.id and node.label != node.id:
                nodes[i] = node
            return
    nodes.append(node)


class FlowchartParser:
    """Flowchart/graph diagram parser."""

    def parse(self, src: str) -> Graph:
        cursor = _Cursor(src=src)
        return cursor.parse_graph()
