"""Commit history traversal engine."""

from .models import (
    Branch,
    BranchListing,
    BranchOutcome,
    CommitNode,
    CommitRecord,
    Repository,
    RepositoryReport,
    TraversalError,
    TraversalResult,
)
from .errors import (
    CommitCycleError,
    CommitFetchError,
    EnumerationError,
    HistoryError,
    RetryExhaustedError,
)
from .retry import RetryPolicy, RetryState, call_with_retry
from .walker import CommitHistoryWalker
from .aggregator import to_records
from .enumerators import BranchEnumerator, RepositoryEnumerator

__all__ = [
    # Models
    "Branch",
    "BranchListing",
    "BranchOutcome",
    "CommitNode",
    "CommitRecord",
    "Repository",
    "RepositoryReport",
    "TraversalError",
    "TraversalResult",
    # Errors
    "CommitCycleError",
    "CommitFetchError",
    "EnumerationError",
    "HistoryError",
    "RetryExhaustedError",
    # Engine
    "RetryPolicy",
    "RetryState",
    "call_with_retry",
    "CommitHistoryWalker",
    "to_records",
    "BranchEnumerator",
    "RepositoryEnumerator",
]
