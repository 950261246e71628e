"""History service: repository, branch and commit traversal orchestration.

Wires the enumerators, the commit history walker and the aggregator around a
single provider client, and isolates failures per branch so one broken
branch never aborts its siblings.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, TYPE_CHECKING

from ..api_clients.error_handler import ProviderErrorHandler
from ..config import Config
from ..history.aggregator import to_records
from ..history.enumerators import BranchEnumerator, RepositoryEnumerator
from ..history.errors import EnumerationError, HistoryError
from ..history.models import (
    Branch,
    BranchOutcome,
    Repository,
    RepositoryReport,
    TraversalError,
    TraversalResult,
)
from ..history.retry import RetryPolicy
from ..history.walker import CommitHistoryWalker
from ..utils.exception_logger import ExceptionLogger

if TYPE_CHECKING:
    from ..api_clients.provider_client import ProviderClient

logger = logging.getLogger(__name__)


class HistoryService:
    """Reconstructs linear branch histories for every visible repository."""

    def __init__(
        self,
        client: "ProviderClient",
        config: Optional[Config] = None,
        retry_policy: Optional[RetryPolicy] = None,
        exception_logger: Optional[ExceptionLogger] = None,
    ):
        """Initialize the service.

        Args:
            client: Provider client, constructed once by the caller
            config: Configuration (defaults apply when omitted)
            retry_policy: Retry policy override; built from config otherwise
            exception_logger: Optional error log receiving every failure
        """
        self.config = config or Config()
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy.from_config(
            self.config.retry,
            ProviderErrorHandler(self.config.provider.throttling_error_codes),
        )
        self.exception_logger = exception_logger
        self.max_workers = self.config.traversal.max_workers

        self.repositories = RepositoryEnumerator(client)
        self.branches = BranchEnumerator(client, self.retry_policy)
        self.walker = CommitHistoryWalker(
            client,
            self.retry_policy,
            detect_cycles=self.config.traversal.detect_cycles,
        )

    def traverse(self, repository_name: str, branch: Branch) -> TraversalResult:
        """Walk a resolved branch and aggregate its records.

        A branch without a head commit yields an empty result.
        """
        result = TraversalResult(repository=repository_name, branch=branch.name)
        if not branch.head_commit_id:
            logger.info(f"Branch {branch.name} in {repository_name} has no commits")
            return result

        nodes = self.walker.walk(repository_name, branch.head_commit_id)
        result.records = to_records(nodes)
        return result

    def get_commits_on_branch(
        self, repository_name: str, branch_name: str
    ) -> TraversalResult:
        """Resolve a branch head and return its history, newest first.

        Raises:
            EnumerationError: If the branch cannot be resolved
            CommitFetchError: If a commit in the chain cannot be fetched
            CommitCycleError: If the first-parent chain is cyclic
        """
        branch = self.branches.resolve_branch(repository_name, branch_name)
        return self.traverse(repository_name, branch)

    def traverse_branch(self, repository_name: str, branch_name: str) -> BranchOutcome:
        """Traverse one branch, returning its result or an error descriptor."""
        try:
            result = self.get_commits_on_branch(repository_name, branch_name)
        except HistoryError as e:
            logger.error(
                f"Traversal failed for {repository_name}/{branch_name}: {e}"
            )
            self._record_failure(e, repository_name, branch_name)
            return BranchOutcome(
                repository=repository_name,
                branch=branch_name,
                error=TraversalError.from_exception(
                    repository_name, e, branch=branch_name
                ),
            )

        return BranchOutcome(
            repository=repository_name, branch=branch_name, result=result
        )

    def enumerate_repository(self, repository: Repository) -> RepositoryReport:
        """Traverse every branch of a repository.

        Outcomes are ordered as the provider listed the branches, whether
        branches are processed sequentially or on a worker pool.
        """
        report = RepositoryReport(repository=repository)
        try:
            branch_names = self.branches.list_branch_names(repository.name)
        except EnumerationError as e:
            self._record_failure(e, repository.name)
            report.error = TraversalError.from_exception(repository.name, e)
            return report

        if self.max_workers > 1 and len(branch_names) > 1:
            with ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix=f"traverse-{repository.name}",
            ) as executor:
                report.outcomes = list(
                    executor.map(
                        lambda name: self.traverse_branch(repository.name, name),
                        branch_names,
                    )
                )
        else:
            report.outcomes = [
                self.traverse_branch(repository.name, name) for name in branch_names
            ]

        logger.info(
            f"Repository {repository.name}: {len(report.outcomes)} branches, "
            f"{report.failed_count} failed"
        )
        return report

    def enumerate_all(self) -> List[RepositoryReport]:
        """Traverse every branch of every visible repository.

        Raises:
            EnumerationError: If the repository list itself cannot be fetched;
                this aborts the run before any traversal starts
        """
        repositories = self.repositories.list_repositories()
        return [self.enumerate_repository(repository) for repository in repositories]

    def _record_failure(
        self,
        error: Exception,
        repository_name: str,
        branch_name: Optional[str] = None,
    ) -> None:
        if self.exception_logger is None:
            return
        self.exception_logger.log_exception(
            error,
            context={
                "repository": repository_name,
                "branch": branch_name,
                "commit_id": getattr(error, "commit_id", None),
            },
        )
