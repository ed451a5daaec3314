# codeseek/application/search_service.py

import itertools
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional

import numpy as np

from codeseek.application.change_detector import ChangeDetector
from codeseek.application.ranking import SimilarityRanker, format_context
from codeseek.domain.interfaces import (
    AnswerSynthesisPort,
    EmbeddingPort,
    RevisionHistoryPort,
    SnippetStorePort,
)
from codeseek.domain.models import (
    ChangeReport,
    Fragment,
    IngestionSummary,
    SearchOptions,
    SearchOutcome,
)
from codeseek.infrastructure.embedding_engine import TfidfEmbeddingEngine
from codeseek.infrastructure.file_scanner import scan_directory
from codeseek.infrastructure.source_segmenter import SourceSegmenter, detect_language


DEFAULT_BATCH_SIZE = 50


@dataclass
class IndexGeneration:
    """
    One vocabulary snapshot and the fragments embedded against it.
    Vectors from different generations are never compared.
    """
    number: int
    project_name: str
    engine: EmbeddingPort
    fragments: List[Fragment]
    vectors: Dict[str, np.ndarray] = field(default_factory=dict)

    def vector_for(self, fragment: Fragment) -> np.ndarray:
        vector = self.vectors.get(fragment.fragment_id)
        if vector is None:
            vector = self.engine.encode_single(fragment.content)
        return vector


class CodebaseSearchService:
    """
    Core use case: index a source tree, answer questions about it.

    Lifecycle:
    - ingest_corpus() builds a new index generation and persists fragments
    - open() loads a generation from what the store already holds
    - search() reuses the current generation (opening one if needed)
    - invalidate() / close() drop generations; the next search rebuilds

    This service never decides whether re-indexing is needed; it reports
    changes and the composition root (main.py / api.py) decides.
    """

    def __init__(
        self,
        store: SnippetStorePort,
        answer_provider: AnswerSynthesisPort,
        segmenter: Optional[SourceSegmenter] = None,
        ranker: Optional[SimilarityRanker] = None,
        history_provider: Optional[RevisionHistoryPort] = None,
        change_detector: Optional[ChangeDetector] = None,
        engine_factory: Callable[[], EmbeddingPort] = TfidfEmbeddingEngine,
        scanner: Callable[[str], List[str]] = scan_directory,
        batch_size: int = DEFAULT_BATCH_SIZE,
        rebuild_vocabulary_per_query: bool = False,
    ):
        self._store = store
        self._answer_provider = answer_provider
        self._segmenter = segmenter or SourceSegmenter()
        self._ranker = ranker or SimilarityRanker()
        self._history_provider = history_provider
        self._change_detector = change_detector or ChangeDetector(scanner)
        self._engine_factory = engine_factory
        self._scanner = scanner
        self._batch_size = batch_size
        self._rebuild_per_query = rebuild_vocabulary_per_query
        self._generations: Dict[str, IndexGeneration] = {}
        self._generation_numbers = itertools.count(1)

    # ─── Lifecycle ────────────────────────────────────────────────────────────

    def open(self, project_name: str) -> IndexGeneration:
        """
        Build a generation from the stored corpus. Stored embeddings may come
        from another snapshot, so every fragment is re-vectorised in memory.
        """
        fragments = self._store.find_many(project_name)
        engine = self._engine_factory()
        engine.build_vocabulary([f.content for f in fragments])
        vectors = engine.encode([f.content for f in fragments])

        generation = IndexGeneration(
            number       = next(self._generation_numbers),
            project_name = project_name,
            engine       = engine,
            fragments    = [replace(f, embedding=v) for f, v in zip(fragments, vectors)],
        )
        generation.vectors = {f.fragment_id: f.embedding for f in generation.fragments}
        self._generations[project_name] = generation
        print(
            f"[SearchService] Opened generation {generation.number} for '{project_name}' "
            f"({len(fragments)} fragments)."
        )
        return generation

    def invalidate(self, project_name: str) -> None:
        self._generations.pop(project_name, None)

    def close(self, project_name: Optional[str] = None) -> None:
        if project_name is None:
            self._generations.clear()
        else:
            self.invalidate(project_name)

    def current_generation(self, project_name: str) -> Optional[IndexGeneration]:
        return self._generations.get(project_name)

    @property
    def store(self) -> SnippetStorePort:
        return self._store

    @property
    def answer_provider(self) -> AnswerSynthesisPort:
        return self._answer_provider

    @property
    def answer_provider_name(self) -> str:
        return self._answer_provider.provider_name

    # ─── Indexing ─────────────────────────────────────────────────────────────

    def ingest_corpus(self, root_dir: str, project_name: str) -> IngestionSummary:
        """
        Full, destructive re-index: segment every file, build one vocabulary
        over the whole corpus, then replace the project's stored fragments.
        """
        files = self._scanner(root_dir)
        print(f"[SearchService] Found {len(files)} files to process.")

        fragments: List[Fragment] = []
        processed = 0
        for file_path in files:
            try:
                # newline="" keeps CRLF so fragment content matches the file on disk
                with open(file_path, encoding="utf-8", newline="") as handle:
                    text = handle.read()
            except (OSError, UnicodeDecodeError) as error:
                print(f"[SearchService] ⚠ Skipping '{file_path}': {error}")
                continue

            try:
                file_fragments = self._fragments_for_file(text, file_path, project_name)
            except Exception as error:
                print(f"[SearchService] ⚠ Failed to segment '{file_path}': {error!r}")
                continue

            fragments.extend(file_fragments)
            processed += 1
            if processed % 10 == 0:
                print(f"[SearchService] Processed {processed}/{len(files)} files...")

        engine = self._engine_factory()
        engine.build_vocabulary([f.content for f in fragments])
        for fragment, embedding in zip(fragments, engine.encode([f.content for f in fragments])):
            fragment.embedding = embedding

        self._store.delete_many(project_name)
        stored: List[Fragment] = []
        for start in range(0, len(fragments), self._batch_size):
            stored.extend(self._store.create_many(fragments[start : start + self._batch_size]))

        generation = IndexGeneration(
            number       = next(self._generation_numbers),
            project_name = project_name,
            engine       = engine,
            fragments    = stored,
            vectors      = {f.fragment_id: f.embedding for f in stored},
        )
        self._generations[project_name] = generation

        print(
            f"[SearchService] ✓ Indexed {len(stored)} fragments from {processed} files "
            f"(generation {generation.number})."
        )
        return IngestionSummary(
            files_found      = len(files),
            files_processed  = processed,
            fragments_stored = len(stored),
            vocabulary_size  = engine.dimension,
            generation       = generation.number,
        )

    def ensure_indexed(
        self,
        root_dir: str,
        project_name: str,
        force: bool = False,
    ) -> Optional[IngestionSummary]:
        """Ingest when the project has nothing stored, or when forced. None if skipped."""
        if self.indexed_fragment_count(project_name) > 0 and not force:
            return None
        return self.ingest_corpus(root_dir, project_name)

    def indexed_fragment_count(self, project_name: str) -> int:
        return self._store.count(project_name)

    def detect_changes(self, root_dir: str, project_name: str) -> Optional[ChangeReport]:
        try:
            indexed = self._store.find_many(project_name)
        except Exception as error:
            print(f"[SearchService] Could not read index for change detection: {error}")
            return None
        return self._change_detector.detect(root_dir, indexed)

    # ─── Querying ─────────────────────────────────────────────────────────────

    def search(
        self,
        query: str,
        project_name: str,
        options: Optional[SearchOptions] = None,
    ) -> SearchOutcome:
        query = query.strip()
        if not query:
            raise ValueError("Query cannot be empty.")
        options = options or SearchOptions()

        if self._rebuild_per_query:
            self.invalidate(project_name)
        generation = self._generations.get(project_name) or self.open(project_name)

        if options.filter_author:
            candidates = [
                replace(f, embedding=generation.vector_for(f))
                for f in self._store.find_many(project_name, author_email=options.filter_author)
            ]
        else:
            candidates = generation.fragments

        query_vector = generation.engine.encode_single(query)
        ranked = self._ranker.rank(query_vector, candidates, options)

        answer = self._answer_provider.generate_answer(query, format_context(ranked))
        return SearchOutcome(answer=answer, sources=ranked)

    # ─── Private ──────────────────────────────────────────────────────────────

    def _fragments_for_file(self, text: str, file_path: str, project_name: str) -> List[Fragment]:
        chunks = self._segmenter.segment(text, file_path)
        if not chunks:
            return []

        enrichment = {}
        if self._history_provider is not None:
            enrichment = self._history_provider.enrichment_for(file_path)

        language = detect_language(file_path)
        return [
            Fragment(
                content       = chunk.content,
                file_path     = file_path,
                project_name  = project_name,
                language      = language,
                function_name = chunk.function_name,
                line_start    = chunk.line_start,
                line_end      = chunk.line_end,
                **enrichment,
            )
            for chunk in chunks
        ]
