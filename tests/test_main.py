# tests/test_main.py

from unittest.mock import MagicMock

import pytest

import main
from codeseek.config import Settings
from codeseek.domain.models import SearchOutcome


@pytest.fixture
def service(monkeypatch, tmp_path):
    service = MagicMock()
    service.answer_provider_name = "Mock"
    monkeypatch.setattr(main.Settings, "from_env", classmethod(
        lambda cls, dotenv=True: Settings(sessions_dir=str(tmp_path / "sessions"))
    ))
    monkeypatch.setattr(main, "build_service", lambda settings, root_dir: service)
    monkeypatch.setattr(main, "_refresh_index", lambda *args, **kwargs: None)
    for name in ("display_welcome_banner", "display_goodbye", "display_commands", "ask_for_details"):
        monkeypatch.setattr(main, name, MagicMock(return_value=False))
    return service


@pytest.fixture
def screen(monkeypatch):
    mocks = {}
    for name in ("display_error", "display_answer", "display_history", "display_authors",
                  "display_file_activity", "display_document_written", "confirm_overwrite"):
        mocks[name] = MagicMock()
        monkeypatch.setattr(main, name, mocks[name])
    return mocks


def _ask(monkeypatch, *queries):
    monkeypatch.setattr(main, "prompt_for_query", MagicMock(side_effect=[*queries, KeyboardInterrupt]))


# ── Question loop ─────────────────────────────────────────────────────────────

def test_provider_failure_does_not_end_the_session(monkeypatch, service, screen, tmp_path):
    _ask(monkeypatch, "where is foo?", "and bar?")
    service.search.side_effect = [RuntimeError("provider 429"), SearchOutcome("bar is in b.ts", [])]

    main.main(["--root", str(tmp_path)])

    assert service.search.call_count == 2
    screen["display_error"].assert_called_once_with("provider 429")
    screen["display_answer"].assert_called_once_with("bar is in b.ts")
    service.close.assert_called_once()


def test_blank_questions_are_not_searched(monkeypatch, service, screen, tmp_path):
    _ask(monkeypatch, "   ", "")
    main.main(["--root", str(tmp_path)])
    service.search.assert_not_called()


def test_answers_are_recorded_in_the_session(monkeypatch, service, screen, tmp_path):
    _ask(monkeypatch, "where is foo?", "/history")
    service.search.return_value = SearchOutcome("foo is in a.ts", [])

    main.main(["--root", str(tmp_path)])

    history = screen["display_history"].call_args.args[0]
    assert history == "Q: where is foo?\nA: foo is in a.ts\n(via Mock)\n"
    assert len(list((tmp_path / "sessions").glob("*.json"))) == 1


def test_resume_loads_the_previous_session(monkeypatch, service, screen, tmp_path):
    service.search.return_value = SearchOutcome("foo is in a.ts", [])
    _ask(monkeypatch, "where is foo?")
    main.main(["--root", str(tmp_path), "--project", "demo"])

    _ask(monkeypatch, "/history")
    main.main(["--root", str(tmp_path), "--project", "demo", "--resume"])

    assert "Q: where is foo?" in screen["display_history"].call_args.args[0]


# ── Commands ──────────────────────────────────────────────────────────────────

def test_insight_commands(monkeypatch, service, screen, tmp_path):
    insights = MagicMock()
    insights.authors.return_value = ["ada"]
    insights.recently_modified.return_value = []
    insights.author_files.return_value = []
    monkeypatch.setattr(main, "ProjectInsights", lambda store: insights)
    _ask(monkeypatch, "/authors", "/recent 14", "/files ada@example.com", "/files")

    main.main(["--root", str(tmp_path), "--project", "demo"])

    screen["display_authors"].assert_called_once_with(["ada"])
    insights.recently_modified.assert_called_once_with("demo", days=14)
    insights.author_files.assert_called_once_with("demo", "ada@example.com")
    assert "Usage: /files" in screen["display_error"].call_args.args[0]
    service.search.assert_not_called()


# ── Document generation ───────────────────────────────────────────────────────

def test_readme_flag_writes_and_exits(monkeypatch, service, screen, tmp_path):
    generator = MagicMock()
    generator.readme.return_value = "# demo\n"
    monkeypatch.setattr(main, "DocumentationGenerator", lambda store, provider: generator)
    prompt = MagicMock()
    monkeypatch.setattr(main, "prompt_for_query", prompt)

    main.main(["--root", str(tmp_path), "--project", "demo", "--readme"])

    assert (tmp_path / "README.md").read_text(encoding="utf-8") == "# demo\n"
    generator.readme.assert_called_once_with("demo", str(tmp_path.resolve()))
    prompt.assert_not_called()


def test_existing_document_is_kept_unless_confirmed(monkeypatch, service, screen, tmp_path):
    (tmp_path / "AGENTS.md").write_text("hand written\n", encoding="utf-8")
    generator = MagicMock()
    monkeypatch.setattr(main, "DocumentationGenerator", lambda store, provider: generator)
    screen["confirm_overwrite"].return_value = False

    main.main(["--root", str(tmp_path), "--agents"])

    assert (tmp_path / "AGENTS.md").read_text(encoding="utf-8") == "hand written\n"
    generator.agents_md.assert_not_called()


def test_document_failure_is_reported(monkeypatch, service, screen, tmp_path):
    generator = MagicMock()
    generator.readme.side_effect = ValueError("Project 'x' is not indexed yet.")
    monkeypatch.setattr(main, "DocumentationGenerator", lambda store, provider: generator)

    main.main(["--root", str(tmp_path), "--readme", "docs.md"])

    assert "not indexed" in screen["display_error"].call_args.args[0]
    assert not (tmp_path / "docs.md").exists()
    service.close.assert_called_once()
