"""@throws extraction from PHP documentation blocks."""

from __future__ import annotations

import re
from typing import Any

import structlog

from phpthrows.parsing.php import node_text

log = structlog.get_logger(__name__)

_COMMENT_TYPES = frozenset({"comment"})

_THROWS_TAG = re.compile(r"^@throws(?:\s+(?P<rest>.*))?$")
_IDENT = r"[A-Za-z_\x80-\uffff][A-Za-z0-9_\x80-\uffff]*"
_CLASS_NAME = re.compile(rf"^\\?{_IDENT}(?:\\{_IDENT})*$")


class DocBlockError(ValueError):
    """A documentation block could not be interpreted."""


def _strip_comment_markers(text: str) -> list[str]:
    stripped = text.strip()
    if not stripped.startswith("/**"):
        raise DocBlockError("not a documentation block")
    if not stripped.endswith("*/") or len(stripped) < 5:
        raise DocBlockError("unterminated documentation block")

    body = stripped[3:-2]
    lines: list[str] = []
    for raw in body.splitlines():
        line = raw.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        lines.append(line)
    return lines


def parse_throws_tags(text: str) -> list[str]:
    """Return the exception types named by @throws tags, in order.

    Leading namespace separators are dropped; union types contribute each member.
    A tag without a valid type is skipped; the other tags still count.

    Raises:
        DocBlockError: If the text is not a terminated documentation block.
    """
    declared: list[str] = []
    for line in _strip_comment_markers(text):
        match = _THROWS_TAG.match(line)
        if match is None:
            continue

        words = (match.group("rest") or "").split()
        if not words:
            log.debug("throws_tag_invalid", tag=line, reason="missing type")
            continue

        members = [m.strip("()") for m in words[0].split("|")]
        if not all(_CLASS_NAME.match(m) for m in members):
            log.debug("throws_tag_invalid", tag=line, reason="invalid type")
            continue
        declared.extend(m.lstrip("\\") for m in members)

    return declared


def find_doc_comment(node: Any) -> str | None:
    """Return the /** */ block attached to a declaration node.

    Walks back over the comments directly preceding the node and returns the
    nearest documentation block among them.
    """
    prev = node.prev_named_sibling
    while prev is not None and prev.type in _COMMENT_TYPES:
        text = node_text(prev)
        if text.startswith("/**"):
            return text
        prev = prev.prev_named_sibling
    return None
