"""Data models for repositories, branches, commits and traversal output."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Repository(BaseModel):
    """A repository visible to the caller's credentials."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Provider-assigned unique repository name")
    id: str = Field(..., description="Provider-assigned repository identifier")


class Branch(BaseModel):
    """A branch reference, optionally resolved to its head commit."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Branch name, unique within a repository")
    head_commit_id: Optional[str] = Field(
        None, description="Head commit id; None when the branch has no commits"
    )


class CommitNode(BaseModel):
    """A commit object as fetched from the provider. Never mutated."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Content-addressed commit id")
    parent_ids: List[str] = Field(
        default_factory=list,
        description="Parent commit ids, first entry is the first parent",
    )
    author_name: Optional[str] = Field(None, description="Author name")
    author_date: Optional[str] = Field(
        None, description="Provider-formatted author timestamp"
    )
    message: str = Field(default="", description="Commit message")

    @property
    def first_parent_id(self) -> Optional[str]:
        """Return the first parent id, or None for a root commit."""
        return self.parent_ids[0] if self.parent_ids else None

    @property
    def is_root(self) -> bool:
        return not self.parent_ids


class CommitRecord(BaseModel):
    """Output record built one-to-one from a CommitNode."""

    commit_id: str = Field(..., description="Commit id")
    author: str = Field(default="", description="Author name or empty string")
    date: str = Field(default="", description="Author date or empty string")
    message: str = Field(default="", description="Commit message")
    tags: List[str] = Field(
        default_factory=list, description="Associated tags (not resolved)"
    )


class TraversalResult(BaseModel):
    """Ordered head-to-root history of one branch."""

    repository: str = Field(..., description="Repository name")
    branch: str = Field(..., description="Branch name")
    records: List[CommitRecord] = Field(
        default_factory=list, description="Commit records, newest first"
    )

    @property
    def is_empty(self) -> bool:
        return not self.records


class TraversalError(BaseModel):
    """Error descriptor for a failed enumeration or traversal."""

    repository: str = Field(..., description="Repository name")
    branch: Optional[str] = Field(None, description="Branch name, if applicable")
    commit_id: Optional[str] = Field(
        None, description="Offending commit id, if applicable"
    )
    error_type: str = Field(..., description="Exception class name")
    message: str = Field(..., description="Human readable error message")

    @classmethod
    def from_exception(
        cls,
        repository: str,
        error: BaseException,
        branch: Optional[str] = None,
    ) -> "TraversalError":
        """Describe ``error``, naming its direct cause's type when chained."""
        cause = error.__cause__ or error
        return cls(
            repository=repository,
            branch=branch,
            commit_id=getattr(error, "commit_id", None),
            error_type=type(cause).__name__,
            message=str(error),
        )


class BranchOutcome(BaseModel):
    """Result-or-error value for one branch traversal."""

    repository: str = Field(..., description="Repository name")
    branch: str = Field(..., description="Branch name")
    result: Optional[TraversalResult] = Field(
        None, description="Traversal result when the traversal succeeded"
    )
    error: Optional[TraversalError] = Field(
        None, description="Error descriptor when the traversal failed"
    )

    @property
    def ok(self) -> bool:
        return self.error is None


class BranchListing(BaseModel):
    """Branches of a repository with per-branch head resolution failures."""

    branches: List[Branch] = Field(default_factory=list)
    failures: List[TraversalError] = Field(default_factory=list)


class RepositoryReport(BaseModel):
    """Traversal outcomes for every branch of one repository."""

    repository: Repository = Field(..., description="Repository enumerated")
    outcomes: List[BranchOutcome] = Field(default_factory=list)
    error: Optional[TraversalError] = Field(
        None, description="Set when the repository's branches could not be listed"
    )

    @property
    def failed_count(self) -> int:
        failed = sum(1 for outcome in self.outcomes if not outcome.ok)
        return failed + (1 if self.error else 0)
