"""Exceptions raised by the history traversal engine."""

from typing import Optional


class HistoryError(Exception):
    """Base exception for history engine errors."""

    pass


class RetryExhaustedError(HistoryError):
    """Raised when every allowed attempt of a remote call was throttled."""

    def __init__(
        self,
        operation: str,
        target_id: str,
        attempts: int,
        last_error: Exception,
    ):
        super().__init__(
            f"{operation} for {target_id} still throttled after {attempts} "
            f"attempts: {last_error}"
        )
        self.operation = operation
        self.target_id = target_id
        self.attempts = attempts
        self.last_error = last_error


class CommitFetchError(HistoryError):
    """Raised when a commit cannot be fetched during a traversal."""

    def __init__(self, repository: str, commit_id: str, cause: Exception):
        super().__init__(
            f"Failed to get commit {commit_id} in repository {repository}: {cause}"
        )
        self.repository = repository
        self.commit_id = commit_id
        self.cause = cause


class CommitCycleError(HistoryError):
    """Raised when first-parent links revisit an already recorded commit."""

    def __init__(self, repository: str, commit_id: str, depth: int):
        super().__init__(
            f"Commit {commit_id} in repository {repository} was reached twice "
            f"after {depth} commits; parent links form a cycle"
        )
        self.repository = repository
        self.commit_id = commit_id
        self.depth = depth


class EnumerationError(HistoryError):
    """Raised when repositories or branches cannot be listed."""

    def __init__(
        self,
        message: str,
        repository: Optional[str] = None,
        branch: Optional[str] = None,
    ):
        super().__init__(message)
        self.repository = repository
        self.branch = branch
