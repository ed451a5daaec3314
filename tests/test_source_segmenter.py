# tests/test_source_segmenter.py

from unittest.mock import MagicMock

import pytest

from codeseek.domain.models import Failed, SourceChunk, Structured, Unsupported
from codeseek.infrastructure.source_parsers import PythonAstParser, TreeSitterParser, split_lines
from codeseek.infrastructure.source_segmenter import SourceSegmenter, detect_language


def _numbered_lines(count: int) -> str:
    return "".join(f"line {i}\n" for i in range(1, count + 1))


# ── Fixed windows ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize("line_count,window", [(1, 50), (50, 50), (51, 50), (120, 50), (7, 3)])
def test_windows_are_contiguous_and_cover_every_line(line_count, window):
    segmenter = SourceSegmenter(parsers={}, window_size=window)
    chunks = segmenter.segment(_numbered_lines(line_count), "notes.txt")

    assert chunks[0].line_start == 1
    assert chunks[-1].line_end == line_count
    for previous, current in zip(chunks, chunks[1:]):
        assert current.line_start == previous.line_end + 1
    assert all(c.line_end - c.line_start + 1 <= window for c in chunks)
    assert all(c.function_name is None for c in chunks)


def test_windows_are_exact_substrings_of_the_file():
    text = _numbered_lines(120)
    chunks = SourceSegmenter(parsers={}).segment(text, "main.go")

    assert len(chunks) == 3
    assert "".join(c.content for c in chunks) == text


def test_empty_file_gives_no_chunks():
    assert SourceSegmenter().segment("", "empty.ts") == []


def test_single_line_file_gives_one_chunk():
    chunks = SourceSegmenter(parsers={}).segment("package main", "main.go")
    assert chunks == [SourceChunk(content="package main", line_start=1, line_end=1)]


def test_window_size_must_be_positive():
    with pytest.raises(ValueError):
        SourceSegmenter(window_size=0)


# ── Parser decision point ─────────────────────────────────────────────────────

def _parser_returning(outcome):
    parser = MagicMock()
    parser.parse.return_value = outcome
    return parser


def test_failed_parse_falls_back_to_windows():
    parser = _parser_returning(Failed("syntax error"))
    segmenter = SourceSegmenter(parsers={"typescript": parser}, window_size=10)

    chunks = segmenter.segment(_numbered_lines(25), "broken.ts")

    parser.parse.assert_called_once()
    assert [(c.line_start, c.line_end) for c in chunks] == [(1, 10), (11, 20), (21, 25)]


def test_structured_parse_without_chunks_falls_back_to_windows():
    segmenter = SourceSegmenter(parsers={"python": _parser_returning(Structured([]))})
    chunks = segmenter.segment("x = 1\ny = 2\n", "consts.py")
    assert [(c.line_start, c.line_end) for c in chunks] == [(1, 2)]


def test_unsupported_parse_falls_back_to_windows():
    segmenter = SourceSegmenter(parsers={"python": _parser_returning(Unsupported("python"))})
    assert len(segmenter.segment("print('hi')\n", "hi.py")) == 1


def test_uncovered_lines_become_extra_chunks():
    text = "import os\n\ndef run():\n    return os.getcwd()\n\nrun()\n"
    function = SourceChunk(content="def run():\n    return os.getcwd()\n", function_name="run",
                           line_start=3, line_end=4)
    segmenter = SourceSegmenter(parsers={"python": _parser_returning(Structured([function]))})

    chunks = segmenter.segment(text, "app.py")

    assert [(c.line_start, c.line_end, c.function_name) for c in chunks] == [
        (1, 2, None),
        (3, 4, "run"),
        (5, 6, None),
    ]


def test_detect_language_by_extension():
    assert detect_language("/src/a.ts") == "typescript"
    assert detect_language("/src/view.TSX") == "tsx"
    assert detect_language("/src/util.mjs") == "javascript"
    assert detect_language("/src/app.py") == "python"
    assert detect_language("/src/main.go") == "go"


# ── tree-sitter (TypeScript / JavaScript) ─────────────────────────────────────

def test_typescript_function_becomes_named_chunk():
    text = "function foo() {\n  return 1;\n}\n"
    chunks = SourceSegmenter().segment(text, "A.ts")

    assert chunks == [SourceChunk(content="function foo() {\n  return 1;\n}",
                                  function_name="foo", line_start=1, line_end=3)]


def test_typescript_closure_and_class_are_chunked():
    text = (
        "export const add = (a: number, b: number) => a + b;\n"
        "\n"
        "export class Greeter {\n"
        "  greet(name: string) { return `hi ${name}`; }\n"
        "}\n"
        "const notAFunction = 42;\n"
    )
    chunks = SourceSegmenter().segment(text, "lib.ts")
    named = [(c.function_name, c.line_start, c.line_end) for c in chunks if c.function_name]

    assert named == [("add", 1, 1), ("Greeter", 3, 5)]
    # the plain constant is still covered by a window
    assert any(c.line_start <= 6 <= c.line_end and c.function_name is None for c in chunks)


def test_nested_closure_overlaps_its_parent():
    text = (
        "function outer() {\n"
        "  const inner = () => 1;\n"
        "  return inner();\n"
        "}\n"
    )
    chunks = SourceSegmenter().segment(text, "nested.js")
    assert [(c.function_name, c.line_start, c.line_end) for c in chunks] == [
        ("outer", 1, 4),
        ("inner", 2, 2),
    ]
    assert chunks[1].content == "inner = () => 1"


def test_anonymous_default_class_has_no_name():
    outcome = TreeSitterParser("typescript").parse("export default class {\n  run() {}\n}\n")
    assert isinstance(outcome, Structured)
    assert [c.function_name for c in outcome.chunks] == [None]


def test_malformed_typescript_reports_failure():
    outcome = TreeSitterParser("typescript").parse("function (((\n")
    assert isinstance(outcome, Failed)


def test_malformed_typescript_is_windowed():
    chunks = SourceSegmenter().segment("function (((\n", "bad.ts")
    assert chunks == [SourceChunk(content="function (((\n", line_start=1, line_end=1)]


def test_unknown_tree_sitter_language_rejected():
    with pytest.raises(ValueError):
        TreeSitterParser("cobol")


# ── Python ast ────────────────────────────────────────────────────────────────

def test_python_parser_emits_functions_classes_and_lambdas():
    text = (
        "import functools\n"
        "\n"
        "@functools.cache\n"
        "def load(path):\n"
        "    return open(path).read()\n"
        "\n"
        "class Store:\n"
        "    def get(self, key):\n"
        "        return key\n"
        "\n"
        "square = lambda x: x * x\n"
    )
    outcome = PythonAstParser().parse(text)

    assert isinstance(outcome, Structured)
    assert [(c.function_name, c.line_start, c.line_end) for c in outcome.chunks] == [
        ("load", 3, 5),
        ("Store", 7, 9),
        ("get", 8, 9),
        ("square", 11, 11),
    ]
    assert outcome.chunks[0].content.startswith("@functools.cache\ndef load(path):")


def test_python_syntax_error_reports_failure():
    outcome = PythonAstParser().parse("def broken(:\n    pass\n")
    assert isinstance(outcome, Failed)
    assert "SyntaxError" in outcome.reason


def test_python_parser_survives_pathologically_deep_expressions():
    outcome = PythonAstParser().parse("x = " + "-" * 200000 + "1\n")
    assert isinstance(outcome, Failed)


def test_deep_python_file_is_windowed():
    text = "x = " + "-" * 200000 + "1\n"
    chunks = SourceSegmenter().segment(text, "deep.py")
    assert [c.content for c in chunks] == [text]


# ── Line boundaries ───────────────────────────────────────────────────────────

FORM_FEED_SOURCE = (
    "def alpha():\n"
    '    """doc\x0cmore"""\n'
    "    return 1\n"
    "\n"
    "\n"
    "def beta():\n"
    "    return 2\n"
)


def test_split_lines_breaks_on_line_feeds_only():
    assert split_lines("a\x0cb\nc\u2028d\x85e\r\nf") == ["a\x0cb\n", "c\u2028d\x85e\r\n", "f"]
    assert split_lines("") == []
    assert split_lines("a\n") == ["a\n"]


def test_form_feed_in_docstring_keeps_python_lines_aligned():
    chunks = SourceSegmenter().segment(FORM_FEED_SOURCE, "alpha.py")
    beta = next(c for c in chunks if c.function_name == "beta")

    assert (beta.line_start, beta.line_end) == (6, 7)
    assert beta.content == "def beta():\n    return 2\n"
    assert beta.content in FORM_FEED_SOURCE


def test_unicode_line_separator_stays_inside_its_window():
    text = "a = 1\nb = '\u2028'\nc = 3\n"
    chunks = SourceSegmenter(parsers={}).window(text)

    assert chunks[-1].line_end == 3
    assert "".join(c.content for c in chunks) == text


def test_lone_carriage_return_in_python_string_keeps_lines_aligned():
    text = "x = '\r'\n\n\ndef beta():\n    return 2\n"
    outcome = PythonAstParser().parse(text)

    assert isinstance(outcome, Structured)
    beta = outcome.chunks[0]
    assert (beta.function_name, beta.line_start, beta.line_end) == ("beta", 4, 5)
    assert beta.content == "def beta():\n    return 2\n"


def test_crlf_lines_keep_their_terminators():
    text = "function foo() {\r\n  return 1;\r\n}\r\n"
    chunks = SourceSegmenter().segment(text, "foo.ts")

    assert chunks[0].function_name == "foo"
    assert (chunks[0].line_start, chunks[0].line_end) == (1, 3)
    assert "\r\n" in chunks[0].content
    assert chunks[0].content in text
