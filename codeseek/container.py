# codeseek/container.py
# Wiring shared by main.py and api.py.

from typing import Optional

from codeseek.application.ranking import SimilarityRanker
from codeseek.application.search_service import CodebaseSearchService
from codeseek.config import Settings
from codeseek.domain.interfaces import AnswerSynthesisPort, SnippetStorePort
from codeseek.infrastructure.answer_provider import create_answer_provider
from codeseek.infrastructure.chroma_store import ChromaSnippetStore
from codeseek.infrastructure.git_history import GitHistoryProvider
from codeseek.infrastructure.source_segmenter import SourceSegmenter


def build_service(
    settings: Settings,
    root_dir: str,
    store: Optional[SnippetStorePort] = None,
    answer_provider: Optional[AnswerSynthesisPort] = None,
) -> CodebaseSearchService:
    """
    Raises RuntimeError when the store cannot be opened or no answer
    provider is configured.
    """
    history_provider = None
    if settings.git_history:
        history = GitHistoryProvider(root_dir)
        if history.is_repository:
            history_provider = history

    return CodebaseSearchService(
        store            = store or ChromaSnippetStore(settings.chroma_persist_directory),
        answer_provider  = answer_provider or create_answer_provider(settings),
        segmenter        = SourceSegmenter(window_size=settings.window_size),
        ranker           = SimilarityRanker(limit=settings.top_k),
        history_provider = history_provider,
        batch_size       = settings.batch_size,
        rebuild_vocabulary_per_query = settings.rebuild_vocabulary_per_query,
    )
