"""First-parent commit history traversal."""

import logging
from typing import Iterator, List, Optional, Set, TYPE_CHECKING

from .errors import CommitCycleError, CommitFetchError, HistoryError
from .models import CommitNode
from .retry import RetryPolicy

if TYPE_CHECKING:
    from ..api_clients.provider_client import ProviderClient

logger = logging.getLogger(__name__)


class CommitHistoryWalker:
    """Walks a branch from its head commit back to the root commit.

    Each step fetches exactly one commit through the retry policy and
    advances to the commit's first parent. Secondary parents of merge
    commits are never followed.
    """

    def __init__(
        self,
        client: "ProviderClient",
        retry_policy: Optional[RetryPolicy] = None,
        detect_cycles: bool = True,
    ):
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()
        self.detect_cycles = detect_cycles

    def _fetch(self, repository_name: str, commit_id: str) -> CommitNode:
        try:
            return self.retry_policy.call(
                lambda: self.client.get_commit(repository_name, commit_id),
                operation_name="GetCommit",
                target_id=commit_id,
            )
        except Exception as e:
            raise CommitFetchError(repository_name, commit_id, e) from e

    def iter_commits(
        self, repository_name: str, start_commit_id: str
    ) -> Iterator[CommitNode]:
        """Yield commits from ``start_commit_id`` to the root, newest first.

        Raises:
            ValueError: If ``start_commit_id`` is empty
            CommitFetchError: If a commit cannot be fetched
            CommitCycleError: If cycle detection is on and a commit repeats
        """
        if not start_commit_id:
            raise ValueError("start_commit_id must be a non-empty commit id")

        visited: Set[str] = set()
        cursor: Optional[str] = start_commit_id

        while cursor:
            if self.detect_cycles:
                if cursor in visited:
                    raise CommitCycleError(repository_name, cursor, len(visited))
                visited.add(cursor)

            commit = self._fetch(repository_name, cursor)
            yield commit
            cursor = commit.first_parent_id

    def walk(self, repository_name: str, start_commit_id: str) -> List[CommitNode]:
        """Return the full head-to-root chain; no partial result on failure."""
        commits: List[CommitNode] = []
        try:
            for commit in self.iter_commits(repository_name, start_commit_id):
                commits.append(commit)
        except HistoryError:
            logger.error(
                f"Traversal of {repository_name} from {start_commit_id} aborted "
                f"after {len(commits)} commits"
            )
            raise

        logger.info(
            f"Walked {len(commits)} commits in {repository_name} from {start_commit_id}"
        )
        return commits
