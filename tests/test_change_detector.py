# tests/test_change_detector.py

import os
import time
from datetime import datetime, timedelta, timezone

from codeseek.application.change_detector import ChangeDetector, format_change_message
from codeseek.domain.models import ChangeReport, Fragment
from codeseek.infrastructure.file_scanner import scan_directory


def _write(path, text="export const x = 1;\n"):
    path.write_text(text, encoding="utf-8")
    return str(path.resolve())


def _indexed(file_path, updated_at):
    return Fragment(
        content      = "export const x = 1;",
        file_path    = file_path,
        project_name = "demo",
        language     = "typescript",
        updated_at   = updated_at,
    )


def _index_tree(root):
    now = datetime.now(timezone.utc)
    return [_indexed(path, now) for path in scan_directory(str(root))]


def test_nothing_indexed_gives_none(tmp_path):
    _write(tmp_path / "a.ts")
    assert ChangeDetector().detect(str(tmp_path), []) is None


def test_unchanged_tree_reports_no_changes(tmp_path):
    _write(tmp_path / "a.ts")
    _write(tmp_path / "b.ts")
    report = ChangeDetector().detect(str(tmp_path), _index_tree(tmp_path))

    assert report == ChangeReport()
    assert report.total_changes == 0


def test_new_file_is_reported(tmp_path):
    _write(tmp_path / "a.ts")
    indexed = _index_tree(tmp_path)
    _write(tmp_path / "b.ts")

    report = ChangeDetector().detect(str(tmp_path), indexed)
    assert (report.new_files, report.modified_files, report.deleted_files) == (1, 0, 0)


def test_modified_file_is_reported(tmp_path):
    a = _write(tmp_path / "a.ts")
    _write(tmp_path / "b.ts")
    indexed = _index_tree(tmp_path)

    future = time.time() + 120
    os.utime(a, (future, future))

    report = ChangeDetector().detect(str(tmp_path), indexed)
    assert (report.new_files, report.modified_files, report.deleted_files) == (0, 1, 0)


def test_deleted_file_is_reported(tmp_path):
    _write(tmp_path / "a.ts")
    b = tmp_path / "b.ts"
    _write(b)
    indexed = _index_tree(tmp_path)
    b.unlink()

    report = ChangeDetector().detect(str(tmp_path), indexed)
    assert (report.new_files, report.modified_files, report.deleted_files) == (0, 0, 1)


def test_latest_fragment_timestamp_is_the_baseline(tmp_path):
    a = _write(tmp_path / "a.ts")
    now = datetime.now(timezone.utc)
    indexed = [
        _indexed(a, now - timedelta(days=10)),
        _indexed(a, now + timedelta(minutes=5)),
    ]
    report = ChangeDetector().detect(str(tmp_path), indexed)
    assert report.modified_files == 0


def test_ignored_and_unlisted_files_are_not_new(tmp_path):
    _write(tmp_path / "a.ts")
    indexed = _index_tree(tmp_path)

    (tmp_path / "node_modules").mkdir()
    _write(tmp_path / "node_modules" / "lib.js")
    _write(tmp_path / "image.png", "binary-ish")

    report = ChangeDetector().detect(str(tmp_path), indexed)
    assert report.total_changes == 0


def test_missing_root_gives_none(tmp_path):
    indexed = [_indexed(str(tmp_path / "gone" / "a.ts"), datetime.now(timezone.utc))]
    assert ChangeDetector().detect(str(tmp_path / "gone"), indexed) is None


def test_scanner_failure_gives_none(tmp_path):
    def broken_scanner(root_dir):
        raise PermissionError("denied")

    indexed = [_indexed(str(tmp_path / "a.ts"), datetime.now(timezone.utc))]
    assert ChangeDetector(scanner=broken_scanner).detect(str(tmp_path), indexed) is None


def test_format_change_message():
    assert format_change_message(ChangeReport(new_files=2, modified_files=1)) == (
        "2 new files, 1 modified file"
    )
    assert format_change_message(ChangeReport(deleted_files=3)) == "3 deleted files"
    assert format_change_message(ChangeReport()) == ""
