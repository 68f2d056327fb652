"""PHP parsing collaborators: tree-sitter source units and doc blocks."""

from phpthrows.parsing.docblock import DocBlockError, find_doc_comment, parse_throws_tags
from phpthrows.parsing.php import ParsedUnit, PhpParseError, PhpParser, node_text

__all__ = [
    "DocBlockError",
    "ParsedUnit",
    "PhpParseError",
    "PhpParser",
    "find_doc_comment",
    "node_text",
    "parse_throws_tags",
]
