"""Rendering of traversal results for display and export."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from ..history.models import RepositoryReport, TraversalResult


def format_commit_log(result: TraversalResult) -> str:
    """Render a branch history in the plain commit listing format."""
    blocks = []
    for record in result.records:
        blocks.append(
            "\n".join(
                [
                    f"Commit: {record.commit_id}",
                    f"Author: {record.author}",
                    f"Date: {record.date}",
                    f"Message: {record.message}",
                    f"Tags: {record.tags}",
                ]
            )
        )
    return "\n\n".join(blocks)


def build_export(reports: List[RepositoryReport]) -> Dict[str, Any]:
    """Build the JSON export document for a full enumeration."""
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "repositories": [report.model_dump() for report in reports],
    }


def write_export(reports: List[RepositoryReport], output_path: Path) -> Path:
    """Write the JSON export document, creating parent directories."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(build_export(reports), f, indent=2)
    return output_path
