"""
Read-only revision history for fragment enrichment.

Shells out to git; any failure (not a repository, git missing, timeout)
degrades to "no history" instead of raising.
"""

import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from codeseek.domain.interfaces import RevisionHistoryPort


GIT_TIMEOUT = 30  # seconds
DEFAULT_HISTORY_LIMIT = 100

_LOG_FORMAT = "%H|%an|%ae|%aI|%s"  # hash, author, email, ISO date, subject


@dataclass
class GitCommit:
    hash: str
    author: str
    email: str
    date: datetime
    message: str


@dataclass
class AuthorShare:
    author: str
    email: str
    commit_count: int


@dataclass
class FileHistory:
    file_path: str
    commits: List[GitCommit]
    primary_authors: List[AuthorShare] = field(default_factory=list)

    @property
    def total_commits(self) -> int:
        return len(self.commits)

    @property
    def last_commit(self) -> GitCommit:
        return self.commits[0]


def parse_log(output: str, file_path: str) -> Optional[FileHistory]:
    """Parse `git log --format=%H|%an|%ae|%aI|%s` output, newest first."""
    commits = []
    for line in output.strip().splitlines():
        parts = line.split("|", 4)
        if len(parts) < 5:
            continue
        commit_hash, author, email, date, message = parts
        commits.append(GitCommit(
            hash    = commit_hash,
            author  = author,
            email   = email,
            date    = datetime.fromisoformat(date),
            message = message,
        ))

    if not commits:
        return None

    shares: Dict[str, AuthorShare] = {}
    for commit in commits:
        share = shares.setdefault(commit.email, AuthorShare(commit.author, commit.email, 0))
        share.commit_count += 1

    return FileHistory(
        file_path       = file_path,
        commits         = commits,
        primary_authors = sorted(shares.values(), key=lambda s: s.commit_count, reverse=True),
    )


class GitHistoryProvider(RevisionHistoryPort):

    def __init__(self, project_path: str, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self._history_limit = history_limit
        self._repo_root = self._find_git_root(Path(project_path))
        if self._repo_root is None:
            print(f"[GitHistory] '{project_path}' is not a git repository, history disabled.")

    @property
    def is_repository(self) -> bool:
        return self._repo_root is not None

    @property
    def repo_root(self) -> Optional[Path]:
        return self._repo_root

    def file_history(self, file_path: str, limit: Optional[int] = None) -> Optional[FileHistory]:
        if self._repo_root is None:
            return None

        try:
            relative = Path(file_path).resolve().relative_to(self._repo_root)
        except ValueError:
            return None

        output = self._run_git([
            "log", "--follow", f"--format={_LOG_FORMAT}",
            "-n", str(limit or self._history_limit),
            "--", str(relative),
        ])
        if output is None:
            return None

        try:
            return parse_log(output, str(relative))
        except ValueError as error:
            print(f"[GitHistory] Unparseable log for {relative}: {error}")
            return None

    def enrichment_for(self, file_path: str) -> dict:
        history = self.file_history(file_path)
        if history is None:
            return {}

        last = history.last_commit
        owner = history.primary_authors[0]
        return {
            "last_commit_hash":     last.hash,
            "last_commit_author":   last.author,
            "last_commit_email":    last.email,
            "last_commit_date":     last.date,
            "last_commit_message":  last.message,
            "total_commits":        history.total_commits,
            "primary_author":       owner.author,
            "primary_author_email": owner.email,
            "file_owner_commits":   owner.commit_count,
        }

    # ─── Private ──────────────────────────────────────────────────────────────

    @staticmethod
    def _find_git_root(start: Path) -> Optional[Path]:
        try:
            result = subprocess.run(
                ["git", "rev-parse", "--show-toplevel"],
                capture_output=True, text=True, timeout=GIT_TIMEOUT,
                cwd=start,
            )
        except (OSError, subprocess.TimeoutExpired):
            return None
        if result.returncode != 0:
            return None
        return Path(result.stdout.strip()).resolve()

    def _run_git(self, args: List[str]) -> Optional[str]:
        try:
            result = subprocess.run(
                ["git", *args],
                capture_output=True,
                text=True,
                errors="replace",
                timeout=GIT_TIMEOUT,
                cwd=self._repo_root,
            )
        except (OSError, subprocess.TimeoutExpired) as error:
            print(f"[GitHistory] git {args[0]} failed: {error}")
            return None

        if result.returncode != 0:
            print(f"[GitHistory] git {args[0]} exited {result.returncode}: {result.stderr.strip()}")
            return None
        return result.stdout
