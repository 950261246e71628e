"""
Shared pytest fixtures for Commit History tests.

Provides an in-memory provider client that can be scripted to throttle or
fail individual calls, and a retry policy that records sleeps instead of
waiting.
"""

import threading
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from commit_history.api_clients.error_handler import (
    ResourceNotFoundError,
    ThrottlingError,
)
from commit_history.history.models import Branch, CommitNode, Repository
from commit_history.history.retry import RetryPolicy

CallKey = Tuple[str, ...]


class FakeProvider:
    """In-memory ``ProviderClient`` with scripted throttling and failures."""

    def __init__(self):
        self.repositories: List[Repository] = []
        self.branch_heads: Dict[str, Dict[str, Optional[str]]] = {}
        self.commits: Dict[Tuple[str, str], CommitNode] = {}
        self.throttles: Dict[CallKey, int] = {}
        self.failures: Dict[CallKey, Exception] = {}
        self.calls: List[CallKey] = []
        self._lock = threading.Lock()

    # Scripting helpers

    def add_repository(
        self, name: str, branches: Optional[Dict[str, Optional[str]]] = None
    ) -> Repository:
        repository = Repository(name=name, id=f"id-{name}")
        self.repositories.append(repository)
        self.branch_heads[name] = dict(branches or {})
        return repository

    def add_commit(
        self,
        repository: str,
        commit_id: str,
        parents: Sequence[str] = (),
        author: Optional[str] = "Alice",
        date: Optional[str] = "1700000000 +0000",
        message: str = "",
    ) -> CommitNode:
        node = CommitNode(
            id=commit_id,
            parent_ids=list(parents),
            author_name=author,
            author_date=date,
            message=message or f"message {commit_id}",
        )
        self.commits[(repository, commit_id)] = node
        return node

    def add_chain(self, repository: str, commit_ids: Sequence[str]) -> None:
        """Add a linear chain given newest first; the last id is the root."""
        for index, commit_id in enumerate(commit_ids):
            parents = [commit_ids[index + 1]] if index + 1 < len(commit_ids) else []
            self.add_commit(repository, commit_id, parents)

    def throttle(self, key: CallKey, times: int) -> None:
        self.throttles[key] = times

    def fail(self, key: CallKey, error: Exception) -> None:
        self.failures[key] = error

    def count(self, key: CallKey) -> int:
        return sum(1 for call in self.calls if call == key)

    def _check(self, key: CallKey) -> None:
        with self._lock:
            self.calls.append(key)
            remaining = self.throttles.get(key, 0)
            if remaining > 0:
                self.throttles[key] = remaining - 1
                raise ThrottlingError(
                    "ThrottlingException: Rate exceeded",
                    error_code="ThrottlingException",
                    status_code=400,
                )
        if key in self.failures:
            raise self.failures[key]

    # ProviderClient operations

    def list_repositories(self) -> List[Repository]:
        self._check(("ListRepositories",))
        return list(self.repositories)

    def list_branches(self, repository_name: str) -> List[str]:
        self._check(("ListBranches", repository_name))
        if repository_name not in self.branch_heads:
            raise ResourceNotFoundError(
                f"RepositoryDoesNotExistException: {repository_name} does not exist",
                error_code="RepositoryDoesNotExistException",
                status_code=400,
            )
        return list(self.branch_heads[repository_name])

    def get_branch(self, repository_name: str, branch_name: str) -> Branch:
        self._check(("GetBranch", repository_name, branch_name))
        heads = self.branch_heads.get(repository_name, {})
        if branch_name not in heads:
            raise ResourceNotFoundError(
                f"BranchDoesNotExistException: {branch_name} does not exist",
                error_code="BranchDoesNotExistException",
                status_code=400,
            )
        return Branch(name=branch_name, head_commit_id=heads[branch_name])

    def get_commit(self, repository_name: str, commit_id: str) -> CommitNode:
        self._check(("GetCommit", repository_name, commit_id))
        node = self.commits.get((repository_name, commit_id))
        if node is None:
            raise ResourceNotFoundError(
                f"CommitIdDoesNotExistException: {commit_id} does not exist",
                error_code="CommitIdDoesNotExistException",
                status_code=400,
            )
        return node

    def close(self) -> None:
        pass


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Empty in-memory provider client."""
    return FakeProvider()


@pytest.fixture
def sleeps() -> List[float]:
    """Delays requested by ``retry_policy``, in order."""
    return []


@pytest.fixture
def retry_policy(sleeps) -> RetryPolicy:
    """Default retry policy that records sleeps instead of waiting."""
    return RetryPolicy(sleep=sleeps.append)
