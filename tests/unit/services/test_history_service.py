"""Tests for the history service orchestration."""

import json
import threading
import time

import pytest

from commit_history.api_clients.error_handler import ProviderError
from commit_history.config import Config, TraversalConfig
from commit_history.history.errors import (
    CommitFetchError,
    EnumerationError,
)
from commit_history.history.retry import RetryPolicy
from commit_history.services.history_service import HistoryService
from commit_history.utils.exception_logger import ExceptionLogger


@pytest.fixture
def service(fake_provider, retry_policy):
    return HistoryService(fake_provider, retry_policy=retry_policy)


class TestGetCommitsOnBranch:
    """Test single-branch traversal."""

    def test_returns_history_newest_first(self, fake_provider, service):
        fake_provider.add_repository("repo", {"main": "C3"})
        fake_provider.add_chain("repo", ["C3", "C2", "C1"])

        result = service.get_commits_on_branch("repo", "main")

        assert result.repository == "repo"
        assert result.branch == "main"
        assert [r.commit_id for r in result.records] == ["C3", "C2", "C1"]
        assert all(r.tags == [] for r in result.records)

    def test_branch_without_commits_yields_empty_result(
        self, fake_provider, service
    ):
        fake_provider.add_repository("repo", {"empty": None})

        result = service.get_commits_on_branch("repo", "empty")

        assert result.is_empty
        assert not any(call[0] == "GetCommit" for call in fake_provider.calls)

    def test_missing_commit_raises_without_partial_result(
        self, fake_provider, service
    ):
        fake_provider.add_repository("repo", {"main": "C3"})
        fake_provider.add_commit("repo", "C3", parents=["C2"])

        with pytest.raises(CommitFetchError) as exc_info:
            service.get_commits_on_branch("repo", "main")

        assert exc_info.value.commit_id == "C2"

    def test_unknown_branch_raises_enumeration_error(self, fake_provider, service):
        fake_provider.add_repository("repo", {"main": "C1"})

        with pytest.raises(EnumerationError):
            service.get_commits_on_branch("repo", "nope")


class TestTraverseBranch:
    """Test result-or-error outcomes for a single branch."""

    def test_failure_is_captured_in_outcome(self, fake_provider, service):
        fake_provider.add_repository("repo", {"main": "C2"})
        fake_provider.add_commit("repo", "C2", parents=["C1"])
        fake_provider.fail(
            ("GetCommit", "repo", "C1"),
            ProviderError("InternalFailure: boom", error_code="InternalFailure"),
        )

        outcome = service.traverse_branch("repo", "main")

        assert not outcome.ok
        assert outcome.result is None
        assert outcome.error.commit_id == "C1"
        assert outcome.error.branch == "main"
        assert outcome.error.error_type == "ProviderError"

    def test_failure_is_written_to_exception_log(
        self, fake_provider, retry_policy, tmp_path
    ):
        exception_logger = ExceptionLogger(tmp_path / "error.log")
        service = HistoryService(
            fake_provider, retry_policy=retry_policy, exception_logger=exception_logger
        )
        fake_provider.add_repository("repo", {"main": "C1"})

        service.traverse_branch("repo", "main")

        content = (tmp_path / "error.log").read_text()
        entry = json.loads(content.split("\n---\n")[0])
        assert entry["exception_type"] == "CommitFetchError"
        assert entry["context"] == {
            "repository": "repo",
            "branch": "main",
            "commit_id": "C1",
        }


class TestEnumerateRepository:
    """Test per-repository branch fan-out."""

    def test_failing_branch_does_not_affect_siblings(self, fake_provider, service):
        repository = fake_provider.add_repository(
            "repo", {"main": "C3", "broken": "B1", "empty": None}
        )
        fake_provider.add_chain("repo", ["C3", "C2", "C1"])

        report = service.enumerate_repository(repository)

        assert [o.branch for o in report.outcomes] == ["main", "broken", "empty"]
        main, broken, empty = report.outcomes
        assert [r.commit_id for r in main.result.records] == ["C3", "C2", "C1"]
        assert broken.error.commit_id == "B1"
        assert empty.ok and empty.result.is_empty
        assert report.failed_count == 1
        assert report.error is None

    def test_branch_listing_failure_is_reported(self, fake_provider, service):
        repository = fake_provider.add_repository("repo", {"main": "C1"})
        fake_provider.throttle(("ListBranches", "repo"), 3)

        report = service.enumerate_repository(repository)

        assert report.outcomes == []
        assert report.error.repository == "repo"
        assert report.error.error_type == "RetryExhaustedError"
        assert report.failed_count == 1

    def test_parallel_traversal_keeps_listing_order(self, fake_provider, sleeps):
        class SlowProvider(type(fake_provider)):
            def get_commit(self, repository_name, commit_id):
                # The first listed branch finishes last.
                if commit_id == "a1":
                    time.sleep(0.05)
                return super().get_commit(repository_name, commit_id)

        provider = SlowProvider()
        branches = {f"b{n}": f"{chr(97 + n)}1" for n in range(4)}
        repository = provider.add_repository("repo", branches)
        for head in branches.values():
            provider.add_commit("repo", head)

        service = HistoryService(
            provider,
            config=Config(traversal=TraversalConfig(max_workers=4)),
            retry_policy=RetryPolicy(sleep=sleeps.append),
        )

        report = service.enumerate_repository(repository)

        assert [o.branch for o in report.outcomes] == ["b0", "b1", "b2", "b3"]
        assert [o.result.records[0].commit_id for o in report.outcomes] == [
            "a1",
            "b1",
            "c1",
            "d1",
        ]

    def test_parallel_traversal_uses_worker_threads(self, fake_provider, sleeps):
        seen_threads = set()

        class RecordingProvider(type(fake_provider)):
            def get_commit(self, repository_name, commit_id):
                seen_threads.add(threading.current_thread().name)
                return super().get_commit(repository_name, commit_id)

        provider = RecordingProvider()
        repository = provider.add_repository("repo", {"x": "X1", "y": "Y1"})
        provider.add_commit("repo", "X1")
        provider.add_commit("repo", "Y1")
        service = HistoryService(
            provider,
            config=Config(traversal=TraversalConfig(max_workers=2)),
            retry_policy=RetryPolicy(sleep=sleeps.append),
        )

        service.enumerate_repository(repository)

        assert seen_threads
        assert all(name.startswith("traverse-repo") for name in seen_threads)


class TestEnumerateAll:
    """Test the full enumeration."""

    def test_reports_every_repository(self, fake_provider, service):
        fake_provider.add_repository("alpha", {"main": "A1"})
        fake_provider.add_repository("beta", {"main": "B2"})
        fake_provider.add_commit("alpha", "A1")
        fake_provider.add_chain("beta", ["B2", "B1"])

        reports = service.enumerate_all()

        assert [r.repository.name for r in reports] == ["alpha", "beta"]
        assert len(reports[1].outcomes[0].result.records) == 2

    def test_repository_listing_failure_is_fatal(self, fake_provider, service):
        fake_provider.add_repository("alpha", {"main": "A1"})
        fake_provider.throttle(("ListRepositories",), 1)

        with pytest.raises(EnumerationError):
            service.enumerate_all()

        assert fake_provider.count(("ListBranches", "alpha")) == 0

    def test_no_repositories(self, service):
        assert service.enumerate_all() == []
