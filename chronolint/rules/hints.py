"""Identifier and comment hints that a number is a duration."""

from __future__ import annotations

import re

from chronolint.syntax.nodes import Comment, Node, VariableDeclarator

IDENTIFIER_TIME_KEYWORDS = (
    "timeout",
    "delay",
    "interval",
    "duration",
    "time",
    "timer",
    "ms",
    "millisecond",
    "second",
    "minute",
    "hour",
    "day",
    "week",
    "ttl",
    "expiry",
    "expire",
    "expires",
    "wait",
)

# Longest first so "milliseconds" wins over "ms" at the same position.
COMMENT_TIME_KEYWORDS = (
    "milliseconds",
    "seconds",
    "minutes",
    "hours",
    "days",
    "weeks",
    "millisecond",
    "second",
    "minute",
    "hour",
    "day",
    "week",
    "ms",
    "sec",
    "min",
    "hr",
)

CONSTANT_NAME_RE = re.compile(r"^[A-Z][A-Z_0-9]*$")


def is_constant_name(name: str) -> bool:
    return bool(CONSTANT_NAME_RE.match(name))


def nearest_declarator_name(node: Node) -> str | None:
    for ancestor in node.ancestors():
        if isinstance(ancestor, VariableDeclarator):
            return ancestor.name
    return None


def identifier_hints(node: Node) -> list[str]:
    """Time keywords found in the nearest enclosing variable name."""
    name = nearest_declarator_name(node)
    if not name or is_constant_name(name):
        return []
    found: list[str] = []
    for part in name.split("_"):
        lowered = part.lower()
        for keyword in IDENTIFIER_TIME_KEYWORDS:
            if keyword in lowered and keyword not in found:
                found.append(keyword)
    return found


def keywords_in_comment(text: str) -> list[str]:
    lowered = text.lower()
    matches: list[tuple[int, int, str]] = []
    for keyword in COMMENT_TIME_KEYWORDS:
        index = lowered.find(keyword)
        while index != -1:
            matches.append((index, index + len(keyword), keyword))
            index = lowered.find(keyword, index + 1)
    matches.sort(key=lambda item: (item[0], -len(item[2])))

    found: list[str] = []
    used: list[tuple[int, int]] = []
    for start, end, keyword in matches:
        if any(start < used_end and end > used_start for used_start, used_end in used):
            continue
        used.append((start, end))
        if keyword not in found:
            found.append(keyword)
    return found


def comment_hints(node: Node, comments: list[Comment], line: int) -> list[str]:
    """Keywords from comments that start on ``line`` (the node's last line)."""
    found: list[str] = []
    for comment in comments:
        if comment.line != line:
            continue
        for keyword in keywords_in_comment(comment.value):
            if keyword not in found:
                found.append(keyword)
    return found
