# codeseek/application/documentation.py

import os
import re
from dataclasses import replace
from typing import Iterable, List, Optional

from codeseek.domain.interfaces import AnswerSynthesisPort, SnippetStorePort
from codeseek.domain.models import Fragment


README_FILENAME = "README.md"
AGENTS_FILENAME = "AGENTS.md"

README_SAMPLE_FRAGMENTS = 10
README_SAMPLE_CHARS = 200
AGENTS_SAMPLE_FRAGMENTS = 15
AGENTS_SAMPLE_CHARS = 300
AGENTS_LISTED_FILES = 50
AGENTS_LISTED_ITEMS = 10
ENTRY_POINT_LIMIT = 5
DATA_MODEL_LIMIT = 20

# ── Detection tables ─────────────────────────────────────────────────────────

# (extension, technology)
_EXTENSION_TECHNOLOGIES = (
    ((".tsx", ".jsx"), "React"),
    ((".ts",), "TypeScript"),
    ((".js", ".mjs", ".cjs"), "JavaScript"),
    ((".py",), "Python"),
    ((".rs",), "Rust"),
    ((".go",), "Go"),
    ((".java",), "Java"),
)

# (lower-cased content marker, technology)
_CONTENT_TECHNOLOGIES = (
    ("express", "Express"),
    ("fastapi", "FastAPI"),
    ("django", "Django"),
    ("flask", "Flask"),
    ("next/", "Next.js"),
    ("vue", "Vue"),
    ("svelte", "Svelte"),
    ("postgres", "PostgreSQL"),
    ("mongodb", "MongoDB"),
    ("redis", "Redis"),
    ("mysql", "MySQL"),
    ("docker", "Docker"),
    ("kubernetes", "Kubernetes"),
    ("graphql", "GraphQL"),
    ("grpc", "gRPC"),
)

_TOOL_MARKERS = (
    ("axios", "Axios"),
    ("fetch(", "Fetch API"),
    ("chalk", "Chalk"),
    ("commander", "Commander"),
    ("readline", "Readline"),
    ("openai", "OpenAI"),
    ("anthropic", "Anthropic"),
    ("langchain", "LangChain"),
    ("pinecone", "Pinecone"),
    ("supabase", "Supabase"),
    ("stripe", "Stripe"),
    ("aws-sdk", "AWS"),
    ("boto3", "AWS"),
    ("vercel", "Vercel"),
)

_ROUTE_PATTERNS = (
    # app.get("/users") / router.post('/login')
    re.compile(r"""(?:app|router)\.(get|post|put|delete|patch)\(\s*['"`]([^'"`]+)['"`]"""),
    # @app.get("/users") / @router.post("/login")
    re.compile(r"""@(?:app|router|api)\.(get|post|put|delete|patch)\(\s*['"]([^'"]+)['"]"""),
)

_PRISMA_MODEL = re.compile(r"\bmodel\s+(\w+)\s*\{")
_TYPE_DECLARATION = re.compile(r"\b(?:interface|type)\s+(\w+)\s*[={<]")
_CLASS_DECLARATION = re.compile(r"^\s*class\s+(\w+)\s*(?:\([^)]*\))?\s*:", re.MULTILINE)

_ENTRY_POINT_MARKERS = ("main", "index", "app")


# ── Detection ────────────────────────────────────────────────────────────────

def detect_technologies(fragments: Iterable[Fragment]) -> List[str]:
    """Technologies named by file extensions and content markers, in first-seen order."""
    found: List[str] = []
    for fragment in fragments:
        path = fragment.file_path.lower()
        for extensions, technology in _EXTENSION_TECHNOLOGIES:
            if path.endswith(extensions):
                _add_once(found, technology)
                break
        if "prisma" in path:
            _add_once(found, "Prisma")
        content = fragment.content.lower()
        for marker, technology in _CONTENT_TECHNOLOGIES:
            if marker in content:
                _add_once(found, technology)
    return found


def detect_tools(fragments: Iterable[Fragment]) -> List[str]:
    found: List[str] = []
    for fragment in fragments:
        content = fragment.content.lower()
        for marker, tool in _TOOL_MARKERS:
            if marker in content:
                _add_once(found, tool)
    return found


def detect_api_endpoints(fragments: Iterable[Fragment]) -> List[str]:
    """HTTP routes declared Express- or decorator-style, as "GET /path"."""
    found: List[str] = []
    for fragment in fragments:
        for pattern in _ROUTE_PATTERNS:
            for method, path in pattern.findall(fragment.content):
                _add_once(found, f"{method.upper()} {path}")
    return found


def detect_data_models(fragments: Iterable[Fragment]) -> List[str]:
    found: List[str] = []
    for fragment in fragments:
        content = fragment.content
        for name in _PRISMA_MODEL.findall(content):
            _add_once(found, f"Prisma: {name}")
        for name in _TYPE_DECLARATION.findall(content):
            # single letters and lower-case aliases are rarely models
            if len(name) > 2 and name[0].isupper():
                _add_once(found, f"Type: {name}")
        for name in _CLASS_DECLARATION.findall(content):
            _add_once(found, f"Class: {name}")
    return found[:DATA_MODEL_LIMIT]


def describe_code_patterns(fragments: Iterable[Fragment]) -> List[str]:
    text = "\n".join(f.content for f in fragments)
    patterns = []
    if "async " in text or "Promise" in text or "await " in text:
        patterns.append("Asynchronous operations")
    if re.search(r"\bclass\s+\w+", text):
        patterns.append("Object-oriented patterns")
    if re.search(r"\bconst\s+\w+\s*=\s*(?:async\s*)?\([^)]*\)\s*=>", text):
        patterns.append("Functional programming")
    if ("try" in text and "catch" in text) or ("try:" in text and "except" in text):
        patterns.append("Error handling with try-catch")
    return patterns or ["Standard procedural code"]


def find_entry_points(fragments: Iterable[Fragment]) -> List[str]:
    found: List[str] = []
    for fragment in fragments:
        name = os.path.basename(fragment.file_path).lower()
        function_name = (fragment.function_name or "").lower()
        if any(marker in name for marker in _ENTRY_POINT_MARKERS) or "main" in function_name:
            _add_once(found, fragment.file_path)
    return found[:ENTRY_POINT_LIMIT]


def _add_once(items: List[str], item: str) -> None:
    if item not in items:
        items.append(item)


# ── Generator ────────────────────────────────────────────────────────────────

class DocumentationGenerator:
    """
    Writes project documents from the indexed corpus: a README for humans
    and an AGENTS.md for coding agents. Both are drafted by the answer
    provider from a context summarising the stored fragments.

    Nothing is written to disk here; see write_document().
    """

    def __init__(self, store: SnippetStorePort, answer_provider: AnswerSynthesisPort):
        self._store = store
        self._answer_provider = answer_provider

    def readme(self, project_name: str, root_dir: Optional[str] = None) -> str:
        fragments = self._indexed_fragments(project_name, root_dir)
        print(f"[Docs] Drafting {README_FILENAME} from {len(fragments)} fragments...")
        return self._answer_provider.generate_answer(
            readme_instructions(project_name),
            readme_context(fragments),
        )

    def agents_md(self, project_name: str, root_dir: Optional[str] = None) -> str:
        fragments = self._indexed_fragments(project_name, root_dir)
        print(f"[Docs] Drafting {AGENTS_FILENAME} from {len(fragments)} fragments...")
        return self._answer_provider.generate_answer(
            agents_instructions(project_name),
            agents_context(fragments),
        )

    def _indexed_fragments(self, project_name: str, root_dir: Optional[str]) -> List[Fragment]:
        fragments = self._store.find_many(project_name)
        if not fragments:
            raise ValueError(f"Project '{project_name}' is not indexed yet.")
        if root_dir is None:
            return fragments
        # Documents show paths relative to the project root
        return [_relative_to(f, root_dir) for f in fragments]


def _relative_to(fragment: Fragment, root_dir: str) -> Fragment:
    path = fragment.file_path
    if os.path.isabs(path):
        path = os.path.relpath(path, os.path.realpath(root_dir))
    return replace(fragment, file_path=path.replace(os.sep, "/"))


def write_document(path: str, content: str, overwrite: bool = False) -> None:
    """Raises FileExistsError when path exists and overwrite is False."""
    if os.path.exists(path) and not overwrite:
        raise FileExistsError(f"{path} already exists")
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(content)
    print(f"[Docs] Wrote {path}")


# ── Prompts ──────────────────────────────────────────────────────────────────

def readme_context(fragments: List[Fragment]) -> str:
    files = sorted({f.file_path for f in fragments})
    technologies = detect_technologies(fragments) or ["Unknown"]
    entry_points = find_entry_points(fragments) or ["Unknown"]
    samples = "\n---\n".join(
        _sample(f, README_SAMPLE_CHARS) for f in fragments[:README_SAMPLE_FRAGMENTS]
    )
    return (
        "File structure:\n" + "\n".join(files) + "\n\n"
        "Technologies: " + ", ".join(technologies) + "\n\n"
        "Entry points: " + ", ".join(entry_points) + "\n\n"
        "Sample code:\n" + samples
    )


def _sample(fragment: Fragment, limit: int) -> str:
    header = f"File: {fragment.file_path}\n"
    if fragment.function_name:
        header += f"Function: {fragment.function_name}\n"
    return f"{header}{fragment.content[:limit]}..."


def readme_instructions(project_name: str) -> str:
    return (
        f"Write a README.md in Markdown for the project '{project_name}', based on the code context. "
        "Include: a title and one-paragraph description, the technologies used, "
        "installation instructions, usage, the project structure, key features, "
        "and a short contributing section. Return only the Markdown."
    )


def agents_context(fragments: List[Fragment]) -> str:
    files = sorted({f.file_path for f in fragments})
    listed = "\n".join(files[:AGENTS_LISTED_FILES])
    if len(files) > AGENTS_LISTED_FILES:
        listed += f"\n... and {len(files) - AGENTS_LISTED_FILES} more files"

    endpoints = detect_api_endpoints(fragments)[:AGENTS_LISTED_ITEMS]
    models = detect_data_models(fragments)[:AGENTS_LISTED_ITEMS]
    samples = "\n---\n".join(
        _sample(f, AGENTS_SAMPLE_CHARS) for f in fragments[:AGENTS_SAMPLE_FRAGMENTS]
    )
    return (
        f"Files ({len(files)}):\n{listed}\n\n"
        "Technologies: " + (", ".join(detect_technologies(fragments)) or "Unknown") + "\n"
        "Tools and integrations: " + (", ".join(detect_tools(fragments)) or "None detected") + "\n"
        "Entry points: " + (", ".join(find_entry_points(fragments)) or "Unknown") + "\n"
        "Code patterns: " + ", ".join(describe_code_patterns(fragments)) + "\n\n"
        "API endpoints:\n" + ("\n".join(endpoints) or "None detected") + "\n\n"
        "Data models:\n" + ("\n".join(models) or "None detected") + "\n\n"
        "Sample code:\n" + samples
    )


def agents_instructions(project_name: str) -> str:
    return (
        f"Write an AGENTS.md in Markdown that briefs AI coding agents on the project '{project_name}'. "
        "Use these sections: Agent Metadata, Capabilities, Technologies, Configuration, "
        "Usage Examples, Context & Knowledge, Constraints & Limitations, Tools & Integrations. "
        "Ground every statement in the code context. Return only the Markdown."
    )
