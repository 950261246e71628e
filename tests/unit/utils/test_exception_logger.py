"""Tests for the failure log writer."""

import json
import os

from commit_history.utils.exception_logger import ExceptionLogger


def test_create_names_log_by_timestamp_and_pid(tmp_path):
    log_dir = tmp_path / ".commit-history"
    exception_logger = ExceptionLogger.create(log_dir)

    assert exception_logger.log_file_path.parent == log_dir
    assert exception_logger.log_file_path.name.startswith("error_")
    assert exception_logger.log_file_path.name.endswith(f"_{os.getpid()}.log")
    # Nothing is written until a failure is logged
    assert not log_dir.exists()


def test_log_directory_created_on_first_failure(tmp_path):
    log_dir = tmp_path / "nested" / ".commit-history"
    exception_logger = ExceptionLogger.create(log_dir)

    exception_logger.log_exception(RuntimeError("boom"))

    assert exception_logger.log_file_path.exists()
    assert "RuntimeError" in exception_logger.log_file_path.read_text()


def test_entries_are_appended_with_context(tmp_path):
    exception_logger = ExceptionLogger(tmp_path / "error.log")

    try:
        raise RuntimeError("first")
    except RuntimeError as e:
        exception_logger.log_exception(e, context={"repository": "alpha"})
    exception_logger.log_exception(ValueError("second"), thread_name="worker-1")

    entries = [
        json.loads(chunk)
        for chunk in (tmp_path / "error.log").read_text().split("\n---\n")
        if chunk.strip()
    ]
    assert [e["exception_type"] for e in entries] == ["RuntimeError", "ValueError"]
    assert entries[0]["context"] == {"repository": "alpha"}
    assert "raise RuntimeError" in entries[0]["stack_trace"]
    assert entries[1]["thread"] == "worker-1"
