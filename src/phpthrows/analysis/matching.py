"""Approximate exception-name matching.

Two names match when they are identical, share the same last segment, or are
identical once both carry a single leading separator. There is no class
hierarchy lookup: a declared parent class does not cover a subclass with a
different short name.
"""

from __future__ import annotations


def short_name(name: str) -> str:
    return name.rsplit("\\", 1)[-1]


def exceptions_match(thrown: str, declared: str) -> bool:
    if thrown == declared:
        return True
    if short_name(thrown) == short_name(declared):
        return True
    return "\\" + thrown.lstrip("\\") == "\\" + declared.lstrip("\\")
