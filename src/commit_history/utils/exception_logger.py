"""Error log for failed enumerations and traversals.

Records each failure with full debugging context:
- Timestamp and process ID-based log file
- Complete stack trace
- Thread information
- Repository, branch and commit context
"""

import json
import os
import threading
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any


class ExceptionLogger:
    """Appends failures with context to a timestamped log file."""

    def __init__(self, log_file_path: Path):
        """Initialize exception logger with specific log file path.

        Args:
            log_file_path: Path to the log file for writing exceptions
        """
        self.log_file_path = log_file_path
        self._lock = threading.Lock()

    @classmethod
    def create(cls, log_dir: Path) -> "ExceptionLogger":
        """Create a logger writing into ``log_dir``.

        The log file name carries a timestamp and the process ID. The
        directory is created when the first failure is logged.
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        pid = os.getpid()

        return cls(log_dir / f"error_{timestamp}_{pid}.log")

    def log_exception(
        self,
        exception: BaseException,
        thread_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log an exception with full context.

        Args:
            exception: The exception to log
            thread_name: Name of the thread where exception occurred (optional)
            context: Additional context data to include in log (optional)
        """
        log_entry = {
            "timestamp": datetime.now().isoformat(),
            "thread": thread_name or threading.current_thread().name,
            "exception_type": type(exception).__name__,
            "exception_message": str(exception),
            "stack_trace": "".join(
                traceback.format_exception(
                    type(exception), exception, exception.__traceback__
                )
            ),
            "context": context or {},
        }

        with self._lock:
            self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_file_path, "a") as f:
                f.write(json.dumps(log_entry, indent=2))
                f.write("\n---\n")
