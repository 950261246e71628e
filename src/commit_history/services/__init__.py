"""Services built on top of the history engine."""

from .history_service import HistoryService
from .report_export import build_export, format_commit_log, write_export

__all__ = ["HistoryService", "build_export", "format_commit_log", "write_export"]
