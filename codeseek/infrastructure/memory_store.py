# codeseek/infrastructure/memory_store.py

import itertools
from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional

from codeseek.domain.interfaces import SnippetStorePort
from codeseek.domain.models import Fragment


class InMemorySnippetStore(SnippetStorePort):
    """
    List-backed snippet store.
    Keeps insertion order, which is the corpus order the ranker tie-breaks on.
    Nothing survives the process.
    """

    def __init__(self):
        self._fragments: List[Fragment] = []
        self._ids = itertools.count(1)

    def find_many(
        self,
        project_name: str,
        file_path: Optional[str] = None,
        author_email: Optional[str] = None,
    ) -> List[Fragment]:
        return [
            replace(f)
            for f in self._fragments
            if f.project_name == project_name
            and (file_path is None or f.file_path == file_path)
            and (author_email is None or f.is_authored_by(author_email))
        ]

    def create(self, fragment: Fragment) -> Fragment:
        if fragment.embedding is None:
            raise ValueError(f"Fragment missing embedding: {fragment.file_path}")

        stored = replace(
            fragment,
            fragment_id = fragment.fragment_id or str(next(self._ids)),
            updated_at  = datetime.now(timezone.utc),
        )
        self._fragments.append(stored)
        return replace(stored)

    def create_many(self, fragments: List[Fragment]) -> List[Fragment]:
        return [self.create(f) for f in fragments]

    def delete_many(self, project_name: str) -> int:
        before = len(self._fragments)
        self._fragments = [f for f in self._fragments if f.project_name != project_name]
        return before - len(self._fragments)

    def count(self, project_name: str) -> int:
        return sum(1 for f in self._fragments if f.project_name == project_name)
