# codeseek/domain/interfaces.py

from abc import ABC, abstractmethod
from typing import List, Optional
import numpy as np

from .models import Fragment, ParseOutcome


class EmbeddingPort(ABC):
    """
    Port for any embedding engine.
    Local engines need the corpus up front, hence build_vocabulary().
    """

    @property
    @abstractmethod
    def dimension(self) -> int: ...

    @abstractmethod
    def build_vocabulary(self, corpus: List[str]) -> None: ...

    @abstractmethod
    def encode(self, texts: List[str]) -> np.ndarray: ...

    @abstractmethod
    def encode_single(self, text: str) -> np.ndarray: ...


class SnippetStorePort(ABC):
    """
    Persistence for fragments, keyed by project and file path.
    """

    @abstractmethod
    def find_many(
        self,
        project_name: str,
        file_path: Optional[str] = None,
        author_email: Optional[str] = None,
    ) -> List[Fragment]:
        """
        Return fragments for a project in corpus (insertion) order.
        author_email matches either last_commit_email or primary_author_email.
        """
        ...

    @abstractmethod
    def create(self, fragment: Fragment) -> Fragment: ...

    @abstractmethod
    def create_many(self, fragments: List[Fragment]) -> List[Fragment]: ...

    @abstractmethod
    def delete_many(self, project_name: str) -> int: ...

    @abstractmethod
    def count(self, project_name: str) -> int: ...


class SourceParser(ABC):
    """
    Structure-aware parsing capability for one language.
    Implementations never raise for bad input: they return Failed instead.
    """

    language: str

    @abstractmethod
    def parse(self, text: str) -> ParseOutcome: ...


class AnswerSynthesisPort(ABC):

    @abstractmethod
    def generate_answer(self, query: str, context: str) -> str: ...

    @property
    def provider_name(self) -> str:
        return type(self).__name__


class RevisionHistoryPort(ABC):

    @abstractmethod
    def enrichment_for(self, file_path: str) -> dict:
        """
        Return the Fragment revision-history fields for a file.
        Empty dict when no history is available.
        """
        ...
