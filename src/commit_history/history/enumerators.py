"""Repository and branch enumeration."""

import logging
from typing import List, Optional, TYPE_CHECKING

from .errors import EnumerationError
from .models import Branch, BranchListing, Repository, TraversalError
from .retry import RetryPolicy

if TYPE_CHECKING:
    from ..api_clients.provider_client import ProviderClient

logger = logging.getLogger(__name__)


class RepositoryEnumerator:
    """Lists repositories visible to the provider client's credentials."""

    def __init__(self, client: "ProviderClient"):
        self.client = client

    def list_repositories(self) -> List[Repository]:
        """List all repositories with a single, non-retried call.

        Raises:
            EnumerationError: If the provider call fails
        """
        logger.info("Fetching list of repositories")
        try:
            repositories = self.client.list_repositories()
        except Exception as e:
            logger.error(f"Failed to list repositories: {e}")
            raise EnumerationError(f"Failed to list repositories: {e}") from e

        logger.info(f"Successfully retrieved {len(repositories)} repositories")
        return list(repositories)


class BranchEnumerator:
    """Lists the branches of a repository and resolves their heads."""

    def __init__(self, client: "ProviderClient", retry_policy: Optional[RetryPolicy] = None):
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()

    def list_branch_names(self, repository_name: str) -> List[str]:
        """List branch names of a repository.

        Raises:
            EnumerationError: If the branches cannot be listed
        """
        logger.info(f"Fetching branches for repository: {repository_name}")
        try:
            names = self.retry_policy.call(
                lambda: self.client.list_branches(repository_name),
                operation_name="ListBranches",
                target_id=repository_name,
            )
        except Exception as e:
            logger.error(f"Failed to list branches for repository {repository_name}: {e}")
            raise EnumerationError(
                f"Failed to list branches for repository {repository_name}: {e}",
                repository=repository_name,
            ) from e

        logger.info(
            f"Successfully retrieved {len(names)} branches for repository: {repository_name}"
        )
        return list(names)

    def resolve_branch(self, repository_name: str, branch_name: str) -> Branch:
        """Resolve a branch to its head commit id.

        Raises:
            EnumerationError: If the branch cannot be resolved
        """
        try:
            return self.retry_policy.call(
                lambda: self.client.get_branch(repository_name, branch_name),
                operation_name="GetBranch",
                target_id=f"{repository_name}/{branch_name}",
            )
        except Exception as e:
            raise EnumerationError(
                f"Failed to get branch {branch_name} in repository {repository_name}: {e}",
                repository=repository_name,
                branch=branch_name,
            ) from e

    def list_branches(self, repository: Repository) -> List[Branch]:
        """List branches of a repository without resolving their heads."""
        return [Branch(name=name) for name in self.list_branch_names(repository.name)]

    def list_resolved_branches(self, repository: Repository) -> BranchListing:
        """List branches and resolve each head commit.

        A failure to resolve one branch is logged and recorded in the
        listing's ``failures``; sibling branches are still resolved.

        Raises:
            EnumerationError: If the branch names cannot be listed at all
        """
        listing = BranchListing()
        for name in self.list_branch_names(repository.name):
            try:
                listing.branches.append(self.resolve_branch(repository.name, name))
            except EnumerationError as e:
                logger.error(str(e))
                listing.failures.append(
                    TraversalError.from_exception(repository.name, e, branch=name)
                )
        return listing
