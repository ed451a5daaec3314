# codeseek/infrastructure/source_segmenter.py

from pathlib import Path
from typing import Dict, List, Optional

from codeseek.domain.interfaces import SourceParser
from codeseek.domain.models import Failed, SourceChunk, Structured, Unsupported
from codeseek.infrastructure.source_parsers import default_parsers, split_lines


DEFAULT_WINDOW_SIZE = 50

EXTENSION_LANGUAGES: Dict[str, str] = {
    ".js":  "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts":  "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".py":  "python",
    ".pyw": "python",
}


def detect_language(file_path: str) -> str:
    """Language name for a path; the bare extension when it is not a known one."""
    suffix = Path(file_path).suffix.lower()
    return EXTENSION_LANGUAGES.get(suffix, suffix.lstrip(".") or "text")


class SourceSegmenter:
    """
    Splits a source file into ordered chunks for indexing.

    Design principles:
    - Structure first: one chunk per function, class or closure-bound
      variable, so a question about a function retrieves that function
    - Never blocks ingestion: a failed or unsupported parse falls back to
      fixed line windows
    - Whole-file coverage: lines outside every construct are windowed too
    """

    def __init__(
        self,
        parsers: Optional[Dict[str, SourceParser]] = None,
        window_size: int = DEFAULT_WINDOW_SIZE,
    ):
        if window_size < 1:
            raise ValueError("window_size must be a positive number of lines.")
        self._parsers = default_parsers() if parsers is None else parsers
        self._window_size = window_size

    @property
    def window_size(self) -> int:
        return self._window_size

    def segment(self, text: str, file_path: str) -> List[SourceChunk]:
        if not text:
            return []

        language = detect_language(file_path)
        parser = self._parsers.get(language)
        outcome = parser.parse(text) if parser is not None else Unsupported(language)

        if isinstance(outcome, Failed):
            print(
                f"[Segmenter] Parse failed for {Path(file_path).name} "
                f"({outcome.reason}), using {self._window_size}-line windows."
            )
        if isinstance(outcome, Structured) and outcome.chunks:
            return self._with_uncovered_lines(text, outcome.chunks)
        return self.window(text)

    def window(self, text: str, first_line: int = 1) -> List[SourceChunk]:
        """Consecutive, non-overlapping windows of window_size lines."""
        lines = split_lines(text)
        chunks = []
        for start in range(0, len(lines), self._window_size):
            window = lines[start : start + self._window_size]
            chunks.append(SourceChunk(
                content    = "".join(window),
                line_start = first_line + start,
                line_end   = first_line + start + len(window) - 1,
            ))
        return chunks

    # ─── Private ──────────────────────────────────────────────────────────────

    def _with_uncovered_lines(
        self,
        text: str,
        structured: List[SourceChunk],
    ) -> List[SourceChunk]:
        """
        Add windowed chunks for runs of lines that no construct covers and
        that hold more than whitespace (imports, top-level statements).
        """
        lines = split_lines(text)
        covered = [False] * (len(lines) + 1)
        for chunk in structured:
            for line_number in range(chunk.line_start, min(chunk.line_end, len(lines)) + 1):
                covered[line_number] = True

        gaps: List[SourceChunk] = []
        run_start = None
        for line_number in range(1, len(lines) + 2):
            is_gap = line_number <= len(lines) and not covered[line_number]
            if is_gap and run_start is None:
                run_start = line_number
            elif not is_gap and run_start is not None:
                run = "".join(lines[run_start - 1 : line_number - 1])
                if run.strip():
                    gaps.extend(self.window(run, first_line=run_start))
                run_start = None

        return sorted(structured + gaps, key=lambda chunk: chunk.line_start)
