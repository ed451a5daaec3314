# codeseek/infrastructure/embedding_engine.py
# Vectors are corpus-relative: every build_vocabulary() call changes the
# meaning of previously computed coordinates.

import math
import re
from collections import Counter
from typing import Dict, List

import numpy as np

from codeseek.domain.interfaces import EmbeddingPort


MIN_TOKEN_LENGTH = 3
_NON_TOKEN_CHARS = re.compile(r"[^a-z0-9_]+")


def tokenize(text: str) -> List[str]:
    """Lowercase, split on anything outside [a-z0-9_], drop tokens of length <= 2."""
    return [
        token
        for token in _NON_TOKEN_CHARS.sub(" ", text.lower()).split()
        if len(token) >= MIN_TOKEN_LENGTH
    ]


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """
    Cosine over the shared prefix of both vectors.
    Returns 0.0 when either side has zero norm.
    """
    length = min(len(a), len(b))
    a = np.asarray(a[:length], dtype=np.float64)
    b = np.asarray(b[:length], dtype=np.float64)

    norm_product = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm_product == 0.0:
        return 0.0
    return float(np.dot(a, b) / norm_product)


class TfidfEmbeddingEngine(EmbeddingPort):
    """
    Local TF-IDF embeddings, no external service involved.

    One engine instance holds exactly one vocabulary snapshot. Term order is
    the first-seen order of terms across the corpus, so the same corpus in
    the same order always yields the same dimensions.
    """

    def __init__(self):
        self._idf: Dict[str, float] = {}
        self._term_index: Dict[str, int] = {}
        self._document_count = 0

    @property
    def vocabulary_size(self) -> int:
        return len(self._term_index)

    @property
    def dimension(self) -> int:
        return self.vocabulary_size

    @property
    def document_count(self) -> int:
        return self._document_count

    @property
    def idf(self) -> Dict[str, float]:
        return dict(self._idf)

    @property
    def terms(self) -> List[str]:
        return list(self._term_index)

    def build_vocabulary(self, corpus: List[str]) -> None:
        """Full rebuild of the IDF table from the given documents."""
        document_frequency: Dict[str, int] = {}
        for document in corpus:
            for term in dict.fromkeys(tokenize(document)):
                document_frequency[term] = document_frequency.get(term, 0) + 1

        document_count = len(corpus)
        self._document_count = document_count
        self._idf = {
            term: math.log(document_count / frequency)
            for term, frequency in document_frequency.items()
        }
        self._term_index = {term: i for i, term in enumerate(self._idf)}

        print(
            f"[Embeddings] Vocabulary built over {document_count} fragments: "
            f"{len(self._idf)} terms."
        )

    def encode(self, texts: List[str]) -> np.ndarray:
        matrix = np.zeros((len(texts), self.vocabulary_size), dtype=np.float64)
        for row, text in enumerate(texts):
            matrix[row] = self.encode_single(text)
        return matrix

    def encode_single(self, text: str) -> np.ndarray:
        vector = np.zeros(self.vocabulary_size, dtype=np.float64)
        tokens = tokenize(text)
        if not tokens:
            return vector

        for term, occurrences in Counter(tokens).items():
            index = self._term_index.get(term)
            if index is None:
                continue
            vector[index] = (occurrences / len(tokens)) * self._idf[term]
        return vector
