# codeseek/application/change_detector.py

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from codeseek.domain.models import ChangeReport, Fragment
from codeseek.infrastructure.file_scanner import scan_directory


class ChangeDetector:
    """
    Compares an indexed fragment set with the live file tree.

    Never raises: any failure is reported as None, the same answer as
    "nothing indexed yet". Whether to re-index is the caller's decision.
    """

    def __init__(self, scanner: Callable[[str], List[str]] = scan_directory):
        self._scanner = scanner

    def detect(self, root_dir: str, indexed_fragments: List[Fragment]) -> Optional[ChangeReport]:
        if not indexed_fragments:
            return None

        try:
            return self._compare(root_dir, indexed_fragments)
        except Exception as error:
            print(f"[ChangeDetector] Error detecting file changes: {error}")
            return None

    def _compare(self, root_dir: str, indexed_fragments: List[Fragment]) -> ChangeReport:
        if not Path(root_dir).is_dir():
            raise FileNotFoundError(f"Root directory not found: {root_dir}")

        last_index_time = max(
            _as_utc(f.updated_at) for f in indexed_fragments if f.updated_at is not None
        )
        indexed_files = {f.file_path for f in indexed_fragments}
        current_files = set(self._scanner(root_dir))

        report = ChangeReport()
        for file_path in sorted(current_files):
            if file_path not in indexed_files:
                report.new_files += 1
                continue
            try:
                modified_at = datetime.fromtimestamp(os.stat(file_path).st_mtime, tz=timezone.utc)
            except FileNotFoundError:
                # removed between scan and stat
                continue
            if modified_at > last_index_time:
                report.modified_files += 1

        report.deleted_files = len(indexed_files - current_files)
        return report


def format_change_message(report: ChangeReport) -> str:
    """e.g. '2 new files, 1 modified file'"""
    parts = []
    for count, label in (
        (report.new_files, "new"),
        (report.modified_files, "modified"),
        (report.deleted_files, "deleted"),
    ):
        if count > 0:
            parts.append(f"{count} {label} file{'s' if count > 1 else ''}")
    return ", ".join(parts)


def _as_utc(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)
