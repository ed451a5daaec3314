import os
from pathlib import Path
from typing import Iterable, List


IGNORE_DIRS = {
    "node_modules",
    ".git",
    "dist",
    "build",
    "target",
    "__pycache__",
    ".next",
    ".nuxt",
    "coverage",
    ".cache",
    "vendor",
    "tmp",
    "temp",
    ".venv",
    "venv",
    ".idea",
    ".vscode",
}

DEFAULT_EXTENSIONS = {
    ".ts", ".js", ".tsx", ".jsx", ".mjs", ".cjs",
    ".py", ".pyw",
    ".go",
    ".rs",
    ".java",
    ".c", ".cpp", ".cc", ".cxx", ".h", ".hpp", ".hxx",
    ".cs",
    ".rb", ".php", ".swift", ".kt", ".kts", ".scala", ".r",
    ".vue", ".svelte",
}


def scan_directory(
    root_dir: str,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> List[str]:
    """
    Return absolute paths of source files under root_dir, sorted.
    Ignored directories are pruned; unreadable directories are skipped.
    Used by both ingestion and change detection so they agree on the file set.
    """
    wanted = {ext.lower() for ext in extensions}
    root = Path(root_dir).resolve()
    files = []

    for current, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORE_DIRS)
        for filename in sorted(filenames):
            if Path(filename).suffix.lower() in wanted:
                files.append(str(Path(current) / filename))

    return sorted(files)
