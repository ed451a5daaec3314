# codeseek/application/insights.py

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from codeseek.domain.interfaces import SnippetStorePort
from codeseek.domain.models import AuthorSummary, FileActivity, Fragment


class ProjectInsights:
    """
    Authorship and recency listings over the indexed fragments.

    Every fragment of a file carries the same revision-history fields, so
    each listing reads one fragment per file.
    """

    def __init__(self, store: SnippetStorePort):
        self._store = store

    def authors(self, project_name: str) -> List[AuthorSummary]:
        """Primary authors, most commits to their owned files first."""
        summaries: Dict[str, AuthorSummary] = {}
        for fragment in _first_per_file(self._store.find_many(project_name)):
            email = fragment.primary_author_email
            if not email:
                continue
            summary = summaries.setdefault(
                email, AuthorSummary(author=fragment.primary_author or email, email=email)
            )
            summary.files_owned += 1
            summary.owner_commits += fragment.file_owner_commits or 0
        return sorted(
            summaries.values(),
            key=lambda s: (s.owner_commits, s.files_owned),
            reverse=True,
        )

    def author_files(self, project_name: str, email: str) -> List[FileActivity]:
        """Files whose primary author is email, busiest first."""
        owned = [
            f for f in self._store.find_many(project_name, author_email=email)
            if f.primary_author_email == email
        ]
        files = _first_per_file(owned)
        files.sort(key=lambda f: f.total_commits or 0, reverse=True)
        return [_activity(f) for f in files]

    def recently_modified(
        self,
        project_name: str,
        days: int = 7,
        now: Optional[datetime] = None,
    ) -> List[FileActivity]:
        """Files last committed within the past `days` days, newest first."""
        if days < 1:
            raise ValueError("days must be positive")
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        recent = [
            f for f in self._store.find_many(project_name)
            if f.last_commit_date is not None and _as_utc(f.last_commit_date) >= _as_utc(cutoff)
        ]
        recent.sort(key=lambda f: _as_utc(f.last_commit_date), reverse=True)
        return [_activity(f) for f in _first_per_file(recent)]


def _first_per_file(fragments: List[Fragment]) -> List[Fragment]:
    seen = set()
    unique = []
    for fragment in fragments:
        if fragment.file_path not in seen:
            seen.add(fragment.file_path)
            unique.append(fragment)
    return unique


def _activity(fragment: Fragment) -> FileActivity:
    return FileActivity(
        file_path=fragment.file_path,
        function_name=fragment.function_name,
        total_commits=fragment.total_commits,
        last_commit_author=fragment.last_commit_author,
        last_commit_date=fragment.last_commit_date,
        last_commit_message=fragment.last_commit_message,
    )


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
