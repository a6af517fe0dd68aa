"""Structural path-pattern queries.

The engine issues one query shape: every descendant of a subtree with a
given node type, optionally filtered by property predicates::

    /jcr:root/content/documents/a//element(*,hippo:facetselect)[@hippo:docbase and @hippo:docbase != 'x']

Path segments are ISO 9075 encoded so names starting with a digit or
containing spaces remain valid XPath steps.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..errors import InvalidQueryError

_NAME_START = re.compile(r"[A-Za-z_:]")
_NAME_CHAR = re.compile(r"[A-Za-z0-9_.:\-]")
_ESCAPE = re.compile(r"_x([0-9A-Fa-f]{4})_")

_QUERY = re.compile(
    r"^/jcr:root(?P<path>/\S*?)?//element\(\*\s*,\s*(?P<type>[^\s)]+)\s*\)"
    r"(?:\[(?P<predicate>.*)\])?$"
)
_TERM = re.compile(r"^@(?P<prop>[\w:.\-]+)(?:\s*(?P<op>!=|=)\s*'(?P<value>[^']*)')?$")


def encode_segment(name: str) -> str:
    """ISO 9075 encode one path segment."""
    out: list[str] = []
    for i, ch in enumerate(name):
        valid = _NAME_START.match(ch) if i == 0 else _NAME_CHAR.match(ch)
        # A literal "_x" must be escaped too, or decoding would be ambiguous.
        if valid and not (ch == "_" and _ESCAPE.match(name, i)):
            out.append(ch)
        elif ord(ch) > 0xFFFF:
            # Supplementary characters are written as a UTF-16 surrogate pair.
            units = ch.encode("utf-16-be")
            out.append(f"_x{units[:2].hex()}__x{units[2:].hex()}_")
        else:
            out.append(f"_x{ord(ch):04x}_")
    return "".join(out)


def decode_segment(encoded: str) -> str:
    decoded = _ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), encoded)
    return decoded.encode("utf-16-le", "surrogatepass").decode(
        "utf-16-le", "surrogatepass"
    )


def encode_path(path: str) -> str:
    """Encode every segment of an absolute path, keeping ``[n]`` indices."""
    encoded: list[str] = []
    for segment in path.split("/"):
        if not segment:
            continue
        name, bracket, rest = segment.partition("[")
        encoded.append(encode_segment(name) + bracket + rest)
    return "/" + "/".join(encoded)


def decode_path(path: str) -> str:
    return "/".join(decode_segment(segment) for segment in path.split("/"))


@dataclass(frozen=True)
class Predicate:
    """One ``@prop`` / ``@prop = 'v'`` / ``@prop != 'v'`` test."""

    prop: str
    op: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class DescendantQuery:
    """Parsed form of a descendant-by-type query."""

    scope: str
    node_type: str
    predicates: tuple[Predicate, ...] = ()


def build_descendant_query(
    scope: str,
    node_type: str,
    required_property: str | None = None,
    excluded_value: str | None = None,
) -> str:
    """Build the query statement for descendants of *scope*.

    Args:
        scope: Absolute path of the subtree root.
        node_type: Node type the descendants must have.
        required_property: Property that must be set, if any.
        excluded_value: Value *required_property* must not equal.
    """
    statement = f"/jcr:root{encode_path(scope).rstrip('/')}//element(*,{node_type})"
    if required_property:
        predicate = f"@{required_property}"
        if excluded_value is not None:
            predicate += f" and @{required_property} != '{excluded_value}'"
        statement += f"[{predicate}]"
    return statement


def parse_query(statement: str) -> DescendantQuery:
    """Parse a statement produced by ``build_descendant_query``.

    Raises:
        InvalidQueryError: If the statement is not of the supported shape.
    """
    match = _QUERY.match(statement.strip())
    if not match:
        raise InvalidQueryError(f"Unsupported query: {statement}")

    predicates: list[Predicate] = []
    raw = match.group("predicate")
    if raw is not None:
        for term in raw.split(" and "):
            term_match = _TERM.match(term.strip())
            if not term_match:
                raise InvalidQueryError(
                    f"Unsupported predicate '{term}' in query: {statement}"
                )
            predicates.append(
                Predicate(
                    prop=term_match.group("prop"),
                    op=term_match.group("op"),
                    value=term_match.group("value"),
                )
            )

    scope = decode_path(match.group("path") or "") or "/"
    return DescendantQuery(
        scope=scope,
        node_type=match.group("type"),
        predicates=tuple(predicates),
    )
