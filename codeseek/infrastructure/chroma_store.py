# codeseek/infrastructure/chroma_store.py

import hashlib
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import chromadb
import numpy as np
from chromadb.config import Settings

from codeseek.domain.interfaces import SnippetStorePort
from codeseek.domain.models import ENRICHMENT_FIELDS, Fragment


# ── Constants ─────────────────────────────────────────────────────────────────

COLLECTION_PREFIX = "snippets_"
PROJECT_NAME_KEY  = "project_name"
SEQUENCE_KEY      = "sequence"

DATE_FIELDS    = {"updated_at", "last_commit_date"}
SCALAR_FIELDS  = (
    "file_path",
    "project_name",
    "language",
    "function_name",
    "line_start",
    "line_end",
    "updated_at",
) + ENRICHMENT_FIELDS

# Chroma rejects zero-length vectors; an empty vocabulary is stored as [0.0].
EMPTY_EMBEDDING = [0.0]


def collection_name_for(project_name: str) -> str:
    """Chroma collection names are restricted, so projects map through a hash."""
    digest = hashlib.md5(project_name.encode("utf-8")).hexdigest()[:16]
    return f"{COLLECTION_PREFIX}{digest}"


class ChromaSnippetStore(SnippetStorePort):
    """
    Persistent snippet store on ChromaDB.

    One collection per project. Collections are dropped wholesale on
    delete_many(), which also resets the embedding dimension: each ingestion
    writes vectors in its own vocabulary's dimensionality.

    Persisted per fragment:
        - document   → fragment content
        - embedding  → TF-IDF vector of the ingestion that wrote it
        - metadata   → provenance + revision-history fields (absent = omitted),
                       plus an insertion sequence that preserves corpus order
    """

    def __init__(self, persist_directory: str):
        self._persist_directory = persist_directory

        path = Path(persist_directory)
        if path.exists() and not path.is_dir():
            raise RuntimeError(f"Failed to initialize ChromaDB: path '{persist_directory}' is a file.")
        path.mkdir(parents=True, exist_ok=True)

        try:
            self._client = chromadb.PersistentClient(
                path=persist_directory,
                settings=Settings(anonymized_telemetry=False),
            )
        except Exception as error:
            raise RuntimeError(
                f"Failed to initialize ChromaDB at '{persist_directory}'.\n"
                f"The database may be locked by another process or corrupted.\n"
                f"Fix: close other running instances, or delete '{persist_directory}'.\n"
                f"Original error: {error}"
            ) from error

        print(f"[ChromaStore] Connected to '{persist_directory}'.")

    # ─── SnippetStorePort ────────────────────────────────────────────────────

    def find_many(
        self,
        project_name: str,
        file_path: Optional[str] = None,
        author_email: Optional[str] = None,
    ) -> List[Fragment]:
        collection = self._collection(project_name)

        conditions = []
        if file_path is not None:
            conditions.append({"file_path": file_path})
        if author_email is not None:
            conditions.append({"$or": [
                {"last_commit_email":    author_email},
                {"primary_author_email": author_email},
            ]})

        where = None
        if len(conditions) == 1:
            where = conditions[0]
        elif conditions:
            where = {"$and": conditions}

        results = collection.get(
            where   = where,
            include = ["documents", "metadatas", "embeddings"],
        )

        embeddings = results["embeddings"]
        if embeddings is None:
            embeddings = [None] * len(results["ids"])

        rows = sorted(
            zip(results["ids"], results["documents"], results["metadatas"], embeddings),
            key=lambda row: row[2].get(SEQUENCE_KEY, 0),
        )
        return [self._to_fragment(fid, text, metadata, embedding) for fid, text, metadata, embedding in rows]

    def create(self, fragment: Fragment) -> Fragment:
        return self.create_many([fragment])[0]

    def create_many(self, fragments: List[Fragment]) -> List[Fragment]:
        """Write one batch. All fragments must belong to the same project."""
        if not fragments:
            return []

        missing = [f.file_path for f in fragments if f.embedding is None]
        if missing:
            raise ValueError(f"Fragments missing embeddings: {missing[:5]}")

        projects = {f.project_name for f in fragments}
        if len(projects) > 1:
            raise ValueError(f"A batch must target a single project, got {sorted(projects)}")

        collection = self._collection(fragments[0].project_name)
        sequence_start = collection.count()
        now = datetime.now(timezone.utc)

        stored = []
        for offset, fragment in enumerate(fragments):
            copy = replace(
                fragment,
                fragment_id = fragment.fragment_id or str(uuid.uuid4()),
                updated_at  = now,
            )
            stored.append((copy, sequence_start + offset))

        collection.add(
            ids        = [f.fragment_id for f, _ in stored],
            embeddings = [self._embedding_to_list(f.embedding) for f, _ in stored],
            documents  = [f.content for f, _ in stored],
            metadatas  = [self._to_metadata(f, sequence) for f, sequence in stored],
        )
        return [f for f, _ in stored]

    def delete_many(self, project_name: str) -> int:
        name = collection_name_for(project_name)
        removed = self.count(project_name)
        self._client.delete_collection(name)
        print(f"[ChromaStore] Cleared {removed} fragments for project '{project_name}'.")
        return removed

    def count(self, project_name: str) -> int:
        return self._collection(project_name).count()

    # ─── Private: Mapping ────────────────────────────────────────────────────

    def _collection(self, project_name: str):
        return self._client.get_or_create_collection(
            name     = collection_name_for(project_name),
            metadata = {PROJECT_NAME_KEY: project_name, "hnsw:space": "cosine"},
        )

    @staticmethod
    def _embedding_to_list(embedding) -> List[float]:
        values = [float(v) for v in np.asarray(embedding).ravel()]
        return values or list(EMPTY_EMBEDDING)

    @staticmethod
    def _to_metadata(fragment: Fragment, sequence: int) -> dict:
        metadata = {SEQUENCE_KEY: sequence}
        for name in SCALAR_FIELDS:
            value = getattr(fragment, name)
            if value is None:
                continue
            metadata[name] = value.isoformat() if name in DATE_FIELDS else value
        return metadata

    @staticmethod
    def _to_fragment(fid: str, text: str, metadata: dict, embedding) -> Fragment:
        fields = {
            name: metadata[name]
            for name in SCALAR_FIELDS
            if name in metadata
        }
        for name in DATE_FIELDS:
            if name in fields:
                fields[name] = datetime.fromisoformat(fields[name])

        return Fragment(
            content     = text,
            fragment_id = fid,
            embedding   = None if embedding is None else np.array(embedding, dtype=np.float64),
            **fields,
        )
