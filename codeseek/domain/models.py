# codeseek/domain/models.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union
import numpy as np


# Passthrough revision-history fields, in persisted order.
ENRICHMENT_FIELDS = (
    "last_commit_hash",
    "last_commit_author",
    "last_commit_email",
    "last_commit_date",
    "last_commit_message",
    "total_commits",
    "primary_author",
    "primary_author_email",
    "file_owner_commits",
)


@dataclass
class SourceChunk:
    """
    A fragment precursor produced by the segmenter, before it is tied
    to a project, embedded and persisted.
    """
    content: str
    function_name: Optional[str] = None
    line_start: Optional[int] = None
    line_end: Optional[int] = None


@dataclass
class Fragment:
    """
    Represents a single retrievable unit of source content with provenance.
    """
    content: str
    file_path: str
    project_name: str
    language: str
    function_name: Optional[str] = None
    line_start: Optional[int] = None
    line_end: Optional[int] = None
    embedding: np.ndarray = field(default=None, repr=False)
    fragment_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    last_commit_hash: Optional[str] = None
    last_commit_author: Optional[str] = None
    last_commit_email: Optional[str] = None
    last_commit_date: Optional[datetime] = None
    last_commit_message: Optional[str] = None
    total_commits: Optional[int] = None
    primary_author: Optional[str] = None
    primary_author_email: Optional[str] = None
    file_owner_commits: Optional[int] = None

    def enrichment(self) -> dict:
        """Revision-history fields that are actually set."""
        return {
            name: getattr(self, name)
            for name in ENRICHMENT_FIELDS
            if getattr(self, name) is not None
        }

    def is_authored_by(self, email: str) -> bool:
        return email in (self.last_commit_email, self.primary_author_email)


@dataclass
class SearchOptions:
    boost_recent: bool = False
    boost_frequent: bool = False
    filter_author: Optional[str] = None
    recent_days: int = 30


@dataclass
class RankedResult:
    """
    Represents a ranked fragment returned for a query.
    """
    fragment: Fragment
    score: float

    @property
    def id(self) -> Optional[str]:
        return self.fragment.fragment_id

    @property
    def content(self) -> str:
        return self.fragment.content

    @property
    def file_path(self) -> str:
        return self.fragment.file_path

    @property
    def function_name(self) -> Optional[str]:
        return self.fragment.function_name

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "content": self.content,
            "file_path": self.file_path,
            "function_name": self.function_name,
            "line_start": self.fragment.line_start,
            "line_end": self.fragment.line_end,
            "score": round(float(self.score), 4),
        }
        for name, value in self.fragment.enrichment().items():
            data[name] = value.isoformat() if isinstance(value, datetime) else value
        return data

    def __repr__(self) -> str:
        preview = self.content[:80].replace("\n", " ")
        return (
            f"RankedResult(score={self.score:.4f}, "
            f"file='{self.file_path}', "
            f"preview='{preview}...')"
        )


@dataclass
class SearchOutcome:
    answer: str
    sources: List[RankedResult]


@dataclass
class ChangeReport:
    new_files: int = 0
    modified_files: int = 0
    deleted_files: int = 0

    @property
    def total_changes(self) -> int:
        return self.new_files + self.modified_files + self.deleted_files


@dataclass
class IngestionSummary:
    files_found: int
    files_processed: int
    fragments_stored: int
    vocabulary_size: int
    generation: int


@dataclass
class AuthorSummary:
    """A primary author and the files they own in the index."""
    author: str
    email: str
    files_owned: int = 0
    owner_commits: int = 0


@dataclass
class FileActivity:
    """One row per file for authorship and recency listings."""
    file_path: str
    function_name: Optional[str] = None
    total_commits: Optional[int] = None
    last_commit_author: Optional[str] = None
    last_commit_date: Optional[datetime] = None
    last_commit_message: Optional[str] = None

    def to_dict(self) -> dict:
        data = dict(self.__dict__)
        if self.last_commit_date is not None:
            data["last_commit_date"] = self.last_commit_date.isoformat()
        return data


@dataclass
class ConversationEntry:
    query: str
    answer: str
    provider: str
    timestamp: datetime


# ── Parse outcomes ────────────────────────────────────────────────────────────

@dataclass
class Structured:
    chunks: List[SourceChunk]


@dataclass
class Unsupported:
    language: str


@dataclass
class Failed:
    reason: str


ParseOutcome = Union[Structured, Unsupported, Failed]
