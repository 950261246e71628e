"""Mapping of fetched commit objects to output records."""

from typing import Iterable, List

from .models import CommitNode, CommitRecord


def to_record(node: CommitNode) -> CommitRecord:
    # Tag association is not resolved; every record carries an empty list.
    return CommitRecord(
        commit_id=node.id,
        author=node.author_name or "",
        date=node.author_date or "",
        message=node.message,
        tags=[],
    )


def to_records(nodes: Iterable[CommitNode]) -> List[CommitRecord]:
    """Map commit nodes to records, preserving traversal order."""
    return [to_record(node) for node in nodes]
