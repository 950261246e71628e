"""Provider client interface consumed by the history engine."""

from typing import List, Protocol, runtime_checkable

from ..history.models import Branch, CommitNode, Repository


@runtime_checkable
class ProviderClient(Protocol):
    """The four remote operations the traversal engine depends on.

    ``get_commit`` may raise ``ThrottlingError``; it is the only error the
    retry policy treats as transient.
    """

    def list_repositories(self) -> List[Repository]: ...

    def list_branches(self, repository_name: str) -> List[str]: ...

    def get_branch(self, repository_name: str, branch_name: str) -> Branch: ...

    def get_commit(self, repository_name: str, commit_id: str) -> CommitNode: ...
