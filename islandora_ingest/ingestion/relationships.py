"""
RELS-EXT relationship construction.

Pure functions: each returns the triples an object needs for its role in
the hierarchy, in the order they must be sent. Nothing here talks to the
repository.
"""

import re

from islandora_ingest.models import RelationshipTriple, ValueType

FEDORA_MODEL_URI = "info:fedora/fedora-system:def/model#"
FEDORA_RELS_EXT_URI = "info:fedora/fedora-system:def/relations-external#"
ISLANDORA_RELS_EXT_URI = "http://islandora.ca/ontology/relsext#"

DEFAULT_SECTION = "1"

_TRAILING_DIGITS = re.compile(r"(\d+)$")


def content_model_triple(pid: str, content_model: str) -> RelationshipTriple:
    return RelationshipTriple(
        subject_pid=pid,
        predicate="hasModel",
        object=content_model,
        namespace_uri=FEDORA_MODEL_URI,
    )


def membership_triple(pid: str, predicate: str, parent: str) -> RelationshipTriple:
    return RelationshipTriple(
        subject_pid=pid,
        predicate=predicate,
        object=parent,
        namespace_uri=FEDORA_RELS_EXT_URI,
    )


def object_relationships(
    pid: str, content_model: str, parent: str, predicate: str
) -> list[RelationshipTriple]:
    """
    Triples every object gets: content model first, then parent membership.

    The content model must be set before any datastream is added, so it
    always leads.
    """
    return [
        content_model_triple(pid, content_model),
        membership_triple(pid, predicate, parent),
    ]


def _literal(pid: str, predicate: str, value: str) -> RelationshipTriple:
    return RelationshipTriple(
        subject_pid=pid,
        predicate=predicate,
        object=value,
        namespace_uri=ISLANDORA_RELS_EXT_URI,
        value_type=ValueType.LITERAL,
    )


def page_relationships(
    pid: str, parent: str, sequence: str, section: str = DEFAULT_SECTION
) -> list[RelationshipTriple]:
    """
    Structural triples for a page of a book or newspaper issue.

    The page's isMemberOf link to its parent is its membership triple and
    is not repeated here.

    Args:
        pid: Page PID
        parent: Book or issue PID
        sequence: Page position
        section: Section number

    Returns:
        isPageOf, isSequenceNumber, isPageNumber and isSection triples
    """
    return [
        RelationshipTriple(
            subject_pid=pid,
            predicate="isPageOf",
            object=parent,
            namespace_uri=ISLANDORA_RELS_EXT_URI,
        ),
        _literal(pid, "isSequenceNumber", sequence),
        _literal(pid, "isPageNumber", sequence),
        _literal(pid, "isSection", section),
    ]


def constituent_relationships(
    pid: str, parent: str, sequence: str
) -> list[RelationshipTriple]:
    """Sequence triple for a constituent of a compound object."""
    escaped_parent = parent.replace(":", "_")
    return [_literal(pid, f"isSequenceNumberOf{escaped_parent}", sequence)]


def issue_relationships(pid: str, date_issued: str | None) -> list[RelationshipTriple]:
    if not date_issued:
        return []
    return [_literal(pid, "dateIssued", date_issued)]


def sequence_from_dirname(name: str, position: int) -> str:
    """
    Derive a child's sequence number from its directory name.

    Args:
        name: Child directory name, e.g. "001" or "page_12"
        position: 1-based position among its siblings

    Returns:
        Trailing number as written (zero padding kept), or position
        when the name has no trailing number

    Examples:
        >>> sequence_from_dirname("001", 1)
        '001'
        >>> sequence_from_dirname("cover", 3)
        '3'
    """
    match = _TRAILING_DIGITS.search(name)
    if match:
        return match.group(1)
    return str(position)


def child_sort_key(name: str) -> tuple[int, int, str]:
    """Sort numbered children numerically, then the rest by name."""
    match = _TRAILING_DIGITS.search(name)
    if match:
        return (0, int(match.group(1)), name)
    return (1, 0, name)
