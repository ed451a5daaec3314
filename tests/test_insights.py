# tests/test_insights.py

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from codeseek.application.insights import ProjectInsights
from codeseek.domain.models import AuthorSummary, Fragment
from codeseek.infrastructure.memory_store import InMemorySnippetStore


NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def _make_fragment(file_path: str, owner: str, owner_commits: int, total_commits: int, days_ago: float, **kwargs):
    return Fragment(
        content=kwargs.pop("content", f"// {file_path}"),
        file_path=file_path,
        project_name=kwargs.pop("project", "demo"),
        language="typescript",
        embedding=np.zeros(1),
        primary_author=owner.split("@")[0].title(),
        primary_author_email=owner,
        file_owner_commits=owner_commits,
        total_commits=total_commits,
        last_commit_author=kwargs.pop("last_author", "Ada"),
        last_commit_email=kwargs.pop("last_email", "ada@example.com"),
        last_commit_date=NOW - timedelta(days=days_ago),
        **kwargs,
    )


@pytest.fixture
def insights():
    store = InMemorySnippetStore()
    store.create_many([
        _make_fragment("a.ts", "ada@example.com", 8, 10, days_ago=1, function_name="first"),
        _make_fragment("a.ts", "ada@example.com", 8, 10, days_ago=1, function_name="second"),
        _make_fragment("b.ts", "ada@example.com", 2, 3, days_ago=20),
        _make_fragment("c.ts", "grace@example.com", 5, 12, days_ago=3, last_author="Ada"),
        _make_fragment("d.ts", "grace@example.com", 1, 1, days_ago=6,
                       last_author="Grace", last_email="grace@example.com"),
        _make_fragment("x.ts", "ada@example.com", 50, 50, days_ago=0, project="other"),
    ])
    return ProjectInsights(store)


# ── Authors ──────────────────────────────────────────────────────────────────

def test_authors_ranked_by_commits_to_owned_files(insights):
    assert insights.authors("demo") == [
        AuthorSummary(author="Ada", email="ada@example.com", files_owned=2, owner_commits=10),
        AuthorSummary(author="Grace", email="grace@example.com", files_owned=2, owner_commits=6),
    ]


def test_authors_without_history():
    assert ProjectInsights(InMemorySnippetStore()).authors("demo") == []


def test_author_files_are_primary_ownership_only(insights):
    # Ada made the last commit to c.ts but Grace owns it
    files = insights.author_files("demo", "ada@example.com")
    assert [f.file_path for f in files] == ["a.ts", "b.ts"]
    assert files[0].function_name == "first"


def test_author_files_sorted_by_total_commits(insights):
    files = insights.author_files("demo", "grace@example.com")
    assert [(f.file_path, f.total_commits) for f in files] == [("c.ts", 12), ("d.ts", 1)]


# ── Recency ──────────────────────────────────────────────────────────────────

def test_recently_modified_newest_first(insights):
    files = insights.recently_modified("demo", days=7, now=NOW)
    assert [f.file_path for f in files] == ["a.ts", "c.ts", "d.ts"]
    assert files[2].last_commit_author == "Grace"


def test_recently_modified_window(insights):
    assert [f.file_path for f in insights.recently_modified("demo", days=2, now=NOW)] == ["a.ts"]
    assert len(insights.recently_modified("demo", days=30, now=NOW)) == 4


def test_recently_modified_accepts_naive_now(insights):
    naive = NOW.replace(tzinfo=None)
    assert [f.file_path for f in insights.recently_modified("demo", days=2, now=naive)] == ["a.ts"]


def test_recently_modified_rejects_non_positive_days(insights):
    with pytest.raises(ValueError):
        insights.recently_modified("demo", days=0)


def test_file_activity_serialises_dates(insights):
    row = insights.recently_modified("demo", days=2, now=NOW)[0].to_dict()
    assert row["file_path"] == "a.ts"
    assert row["last_commit_date"] == (NOW - timedelta(days=1)).isoformat()
