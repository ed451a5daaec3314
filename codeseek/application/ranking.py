# codeseek/application/ranking.py

from datetime import datetime, timezone
from typing import List, Optional

import numpy as np

from codeseek.domain.models import Fragment, RankedResult, SearchOptions
from codeseek.infrastructure.embedding_engine import cosine_similarity


DEFAULT_RESULT_LIMIT = 5

RECENCY_MAX_BOOST   = 0.2
FREQUENCY_MAX_BOOST = 0.15
FREQUENCY_SATURATION_COMMITS = 50

CONTEXT_SEPARATOR = "\n\n---\n\n"
COMMIT_MESSAGE_PREVIEW = 80


def recency_multiplier(
    last_commit_date: Optional[datetime],
    recent_days: int,
    now: datetime,
) -> float:
    """
    Linear decay from 1.2 at day 0 down to 1.0 at recent_days.
    No date, or a commit older than the window, gives 1.0.
    """
    if last_commit_date is None or recent_days <= 0:
        return 1.0
    if last_commit_date.tzinfo is None:
        last_commit_date = last_commit_date.replace(tzinfo=timezone.utc)

    days_since_commit = max(0.0, (now - last_commit_date).total_seconds() / 86400)
    if days_since_commit > recent_days:
        return 1.0
    return 1 + RECENCY_MAX_BOOST * (1 - days_since_commit / recent_days)


def frequency_multiplier(total_commits: Optional[int]) -> float:
    """Up to +15%, saturating at 50 commits."""
    if total_commits is None:
        return 1.0
    saturated = min(max(total_commits, 0), FREQUENCY_SATURATION_COMMITS)
    return 1 + (saturated / FREQUENCY_SATURATION_COMMITS) * FREQUENCY_MAX_BOOST


class SimilarityRanker:
    """
    Cosine scoring with optional recency / commit-frequency boosts,
    one result per file, top-N.

    Author filtering is not done here: callers pass an already-filtered set.
    """

    def __init__(self, limit: int = DEFAULT_RESULT_LIMIT):
        self._limit = limit

    def rank(
        self,
        query_vector: np.ndarray,
        fragments: List[Fragment],
        options: Optional[SearchOptions] = None,
        now: Optional[datetime] = None,
    ) -> List[RankedResult]:
        options = options or SearchOptions()
        now = now or datetime.now(timezone.utc)

        scored = []
        for fragment in fragments:
            score = cosine_similarity(query_vector, fragment.embedding)
            if options.boost_recent:
                score *= recency_multiplier(fragment.last_commit_date, options.recent_days, now)
            if options.boost_frequent:
                score *= frequency_multiplier(fragment.total_commits)
            scored.append(RankedResult(fragment=fragment, score=score))

        # sorted() is stable: equal scores keep corpus order
        scored = sorted(scored, key=lambda result: result.score, reverse=True)

        seen_files = set()
        ranked = []
        for result in scored:
            if result.file_path in seen_files:
                continue
            seen_files.add(result.file_path)
            ranked.append(result)
            if len(ranked) == self._limit:
                break
        return ranked


def format_context(results: List[RankedResult], now: Optional[datetime] = None) -> str:
    """Render results as numbered, provenance-headed blocks for answer synthesis."""
    now = now or datetime.now(timezone.utc)
    blocks = []
    for index, result in enumerate(results, start=1):
        fragment = result.fragment
        header = f"[{index}] {fragment.file_path}"
        if fragment.function_name:
            header += f" ({fragment.function_name})"

        annotation = _authorship_annotation(fragment, now)
        if annotation:
            header += f" | {annotation}"

        if fragment.last_commit_message:
            message = fragment.last_commit_message
            if len(message) > COMMIT_MESSAGE_PREVIEW:
                message = message[:COMMIT_MESSAGE_PREVIEW] + "..."
            header += f'\nLast commit: "{message}"'

        blocks.append(f"{header}\n{fragment.content}")
    return CONTEXT_SEPARATOR.join(blocks)


def _authorship_annotation(fragment: Fragment, now: datetime) -> str:
    parts = []
    if fragment.last_commit_author:
        parts.append(f"last modified by {fragment.last_commit_author}")
    if fragment.last_commit_date is not None:
        commit_date = fragment.last_commit_date
        if commit_date.tzinfo is None:
            commit_date = commit_date.replace(tzinfo=timezone.utc)
        days = max(0, (now - commit_date).days)
        parts.append("today" if days == 0 else f"{days} day{'s' if days != 1 else ''} ago")
    if fragment.primary_author and fragment.primary_author != fragment.last_commit_author:
        parts.append(f"owner {fragment.primary_author}")
    return ", ".join(parts)
