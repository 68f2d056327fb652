"""Tree-sitter parsing for PHP source units.

tree-sitter never raises on malformed input; it produces ERROR and MISSING
nodes instead. A unit whose tree contains any of them is rejected with
PhpParseError so callers can report it the way a strict parser would.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tree_sitter
import tree_sitter_php


class PhpParseError(Exception):
    """A PHP source unit could not be parsed."""

    def __init__(self, message: str, line: int = 1) -> None:
        super().__init__(message)
        self.message = message
        self.line = line


@dataclass
class ParsedUnit:
    """Result of parsing one PHP file."""

    path: str
    source: bytes
    tree: Any  # tree-sitter Tree
    root_node: Any  # tree-sitter Node


def node_text(node: Any) -> str:
    """Decode a node's source text."""
    if node is None or node.text is None:
        return ""
    text: str = node.text.decode("utf-8", errors="replace")
    return text


def _first_error_node(root: Any) -> Any:
    """Depth-first search for the first ERROR or MISSING node."""
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node
        if node.has_error:
            stack.extend(reversed(node.children))
    return None


def _describe_error(node: Any) -> str:
    if node.is_missing:
        return f"Syntax error, missing '{node.type}'"
    snippet = node_text(node).strip().splitlines()
    token = snippet[0][:40] if snippet else ""
    return f"Syntax error, unexpected '{token}'"


class PhpParser:
    """
    Tree-sitter parser bound to the PHP grammar.

    Usage::

        parser = PhpParser()
        unit = parser.parse_file(Path("src/Foo.php"))
    """

    def __init__(self) -> None:
        self._language = tree_sitter.Language(tree_sitter_php.language_php())
        self._parser = tree_sitter.Parser(self._language)

    def parse_source(self, source: bytes | str, path: str = "<memory>") -> ParsedUnit:
        """
        Parse PHP source text.

        Raises:
            PhpParseError: If the tree contains syntax errors.
        """
        if isinstance(source, str):
            source = source.encode("utf-8")

        tree = self._parser.parse(source)
        root = tree.root_node
        if root.has_error:
            error_node = _first_error_node(root)
            if error_node is None:
                raise PhpParseError("Syntax error", line=1)
            line = error_node.start_point[0] + 1
            raise PhpParseError(f"{_describe_error(error_node)} on line {line}", line=line)

        return ParsedUnit(path=path, source=source, tree=tree, root_node=root)

    def parse_file(self, path: Path | str) -> ParsedUnit:
        """
        Read and parse a PHP file.

        Raises:
            PhpParseError: If the file cannot be read or contains syntax errors.
        """
        file_path = Path(path)
        try:
            content = file_path.read_bytes()
        except OSError as e:
            raise PhpParseError(f"Cannot read file: {e.strerror or e}", line=1) from e
        return self.parse_source(content, str(path))
