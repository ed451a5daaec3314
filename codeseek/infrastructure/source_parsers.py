# codeseek/infrastructure/source_parsers.py

import ast
import re
from typing import Dict, List, Optional

from tree_sitter import Language, Parser

from codeseek.domain.interfaces import SourceParser
from codeseek.domain.models import (
    Failed,
    ParseOutcome,
    SourceChunk,
    Structured,
)


_LONE_CARRIAGE_RETURN = re.compile(r"\r(?!\n)")


def split_lines(text: str) -> List[str]:
    """
    Lines with their terminators, split on line feeds only.
    Parser line numbers count line feeds alone, so form feeds, U+2028 and
    other Unicode breaks stay inside their line.
    """
    lines = text.split("\n")
    last = lines.pop()
    split = [line + "\n" for line in lines]
    if last:
        split.append(last)
    return split


# Format: "language_name": ("module_name", "function_name")
TREE_SITTER_LANGUAGES: Dict[str, tuple] = {
    "javascript": ("tree_sitter_javascript", "language"),
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "tsx":        ("tree_sitter_typescript", "language_tsx"),
}

# Node types that are emitted as a fragment on their own
DECLARATION_TYPES = {
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "abstract_class_declaration",
}

# Initializers that turn a variable declarator into a closure fragment
CLOSURE_TYPES = {
    "arrow_function",
    "function_expression",
    "function",
    "generator_function",
}


def _load_language(language: str) -> Language:
    module_name, func_name = TREE_SITTER_LANGUAGES[language]
    try:
        language_module = __import__(module_name)
    except ImportError as error:
        raise ImportError(
            f"Language package '{module_name}' not installed. "
            f"Install it with: pip install {module_name.replace('_', '-')}"
        ) from error

    lang_obj = getattr(language_module, func_name)()
    return lang_obj if isinstance(lang_obj, Language) else Language(lang_obj)


class TreeSitterParser(SourceParser):
    """
    JavaScript / TypeScript structure parser on tree-sitter grammars.

    Emits function declarations, class declarations and variable
    declarators bound to a closure, at any depth, in document order.
    A tree containing ERROR nodes counts as a failed parse.
    """

    def __init__(self, language: str):
        if language not in TREE_SITTER_LANGUAGES:
            raise ValueError(f"Unsupported language for tree-sitter: {language}")
        self.language = language
        self._parser: Optional[Parser] = None

    def parse(self, text: str) -> ParseOutcome:
        try:
            parser = self._get_parser()
        except (ImportError, AttributeError) as error:
            return Failed(str(error))

        source = text.encode("utf-8")
        tree = parser.parse(source)
        if tree.root_node.has_error:
            return Failed("syntax error")

        chunks: List[SourceChunk] = []
        stack = [tree.root_node]
        while stack:
            node = stack.pop()
            chunk = self._chunk_for(node, source)
            if chunk is not None:
                chunks.append(chunk)
            stack.extend(reversed(node.children))

        return Structured(chunks)

    def _get_parser(self) -> Parser:
        if self._parser is None:
            self._parser = Parser(_load_language(self.language))
        return self._parser

    def _chunk_for(self, node, source: bytes) -> Optional[SourceChunk]:
        if node.type in DECLARATION_TYPES:
            name = self._identifier(node)
        elif node.type == "class" and node.parent is not None and node.parent.type == "export_statement":
            # `export default class { ... }`
            name = None
        elif node.type == "variable_declarator":
            value = node.child_by_field_name("value")
            if value is None or value.type not in CLOSURE_TYPES:
                return None
            name = self._identifier(node)
        else:
            return None

        return SourceChunk(
            content       = source[node.start_byte:node.end_byte].decode("utf-8", errors="replace"),
            function_name = name,
            line_start    = node.start_point[0] + 1,
            line_end      = node.end_point[0] + 1,
        )

    @staticmethod
    def _identifier(node) -> Optional[str]:
        name_node = node.child_by_field_name("name")
        if name_node is None or name_node.type not in ("identifier", "type_identifier"):
            return None
        return name_node.text.decode("utf-8")


class PythonAstParser(SourceParser):
    """
    Python structure parser on the standard ast module.
    Decorators are part of the fragment; content is taken as whole lines.
    """

    language = "python"

    def parse(self, text: str) -> ParseOutcome:
        # ast also ends a line at a lone "\r"; blank those so its line numbers
        # agree with split_lines()
        source = _LONE_CARRIAGE_RETURN.sub(" ", text)
        try:
            tree = ast.parse(source)
        except (SyntaxError, ValueError, MemoryError, RecursionError) as error:
            return Failed(f"{type(error).__name__}: {error}")

        lines = split_lines(text)
        chunks = []
        for node in ast.walk(tree):
            name = self._declared_name(node)
            if name is False:
                continue
            start = min([node.lineno] + [d.lineno for d in getattr(node, "decorator_list", [])])
            chunks.append(SourceChunk(
                content       = "".join(lines[start - 1:node.end_lineno]),
                function_name = name,
                line_start    = start,
                line_end      = node.end_lineno,
            ))

        chunks.sort(key=lambda chunk: (chunk.line_start, -chunk.line_end))
        return Structured(chunks)

    @staticmethod
    def _declared_name(node):
        """Declared identifier, None for an anonymous fragment, False to skip."""
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
            return node.name
        if isinstance(node, ast.Assign) and isinstance(node.value, ast.Lambda):
            target = node.targets[0]
            return target.id if isinstance(target, ast.Name) else None
        if isinstance(node, ast.AnnAssign) and isinstance(node.value, ast.Lambda):
            return node.target.id if isinstance(node.target, ast.Name) else None
        return False


def default_parsers() -> Dict[str, SourceParser]:
    parsers: Dict[str, SourceParser] = {
        language: TreeSitterParser(language) for language in TREE_SITTER_LANGUAGES
    }
    parsers["python"] = PythonAstParser()
    return parsers
