# main.py

import argparse
import os
import sys
from pathlib import Path

from codeseek.application.documentation import (
    AGENTS_FILENAME,
    README_FILENAME,
    DocumentationGenerator,
    write_document,
)
from codeseek.application.insights import ProjectInsights
from codeseek.application.search_service import CodebaseSearchService
from codeseek.application.sessions import ConversationSession
from codeseek.config import Settings
from codeseek.container import build_service
from codeseek.domain.models import SearchOptions
from codeseek.interface.cli import (
    ask_for_details,
    confirm_overwrite,
    display_answer,
    display_authors,
    display_change_report,
    display_commands,
    display_document_written,
    display_error,
    display_file_activity,
    display_goodbye,
    display_history,
    display_indexing_status,
    display_sources,
    display_up_to_date,
    display_welcome_banner,
    prompt_for_query,
)


RECENT_DAYS_DEFAULT = 7


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ask questions about a codebase.")
    parser.add_argument("--root", default=".", help="Source tree to index (default: cwd).")
    parser.add_argument("--project", default=None, help="Project name (default: root folder name).")
    parser.add_argument("--reindex", action="store_true", help="Drop the index and rebuild it.")
    parser.add_argument("--boost-recent", action="store_true", help="Favour recently committed code.")
    parser.add_argument("--boost-frequent", action="store_true", help="Favour frequently committed code.")
    parser.add_argument("--author", default=None, help="Only search code by this author email.")
    parser.add_argument("--readme", nargs="?", const=README_FILENAME, default=None, metavar="PATH",
                        help=f"Generate a README (default: <root>/{README_FILENAME}) and exit.")
    parser.add_argument("--agents", nargs="?", const=AGENTS_FILENAME, default=None, metavar="PATH",
                        help=f"Generate an AGENTS.md (default: <root>/{AGENTS_FILENAME}) and exit.")
    parser.add_argument("--resume", action="store_true", help="Continue the previous conversation.")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    settings = Settings.from_env()
    root_dir = str(Path(args.root).resolve())
    project_name = args.project or Path(root_dir).name

    # ── 1. Initialize infrastructure ─────────────────────────────────────────
    try:
        service = build_service(settings, root_dir)
    except (RuntimeError, ImportError) as error:
        display_error(str(error))
        sys.exit(1)

    display_welcome_banner(project_name, service.answer_provider_name)

    try:
        # ── 2. Re-indexing decision ──────────────────────────────────────────
        _refresh_index(service, root_dir, project_name, force=args.reindex)

        # ── 3. One-shot document generation ──────────────────────────────────
        if args.readme or args.agents:
            documents = DocumentationGenerator(service.store, service.answer_provider)
            if args.readme:
                _generate_document(documents.readme, args.readme, root_dir, project_name)
            if args.agents:
                _generate_document(documents.agents_md, args.agents, root_dir, project_name)
            return

        # ── 4. Interactive question loop ─────────────────────────────────────
        session = ConversationSession(project_name, settings.sessions_dir)
        if args.resume and not session.load_previous():
            print("[Main] No previous session found, starting a new one.")

        options = SearchOptions(
            boost_recent   = args.boost_recent,
            boost_frequent = args.boost_frequent,
            filter_author  = args.author,
            recent_days    = settings.recent_days,
        )
        _question_loop(service, session, ProjectInsights(service.store), project_name, options)
    except (KeyboardInterrupt, EOFError):
        display_goodbye()
    finally:
        service.close()


def _question_loop(
    service: CodebaseSearchService,
    session: ConversationSession,
    insights: ProjectInsights,
    project_name: str,
    options: SearchOptions,
) -> None:
    display_commands()
    while True:
        query = prompt_for_query().strip()
        if not query:
            continue
        if query.startswith("/"):
            try:
                _run_command(query, session, insights, project_name)
            except ValueError as error:
                display_error(str(error))
            continue

        try:
            outcome = service.search(query, project_name, options)
        except ValueError as error:
            display_error(str(error))
            continue
        except Exception as error:
            # Provider outages and the like end this question, not the session
            display_error(str(error))
            continue

        session.add(query, outcome.answer, service.answer_provider_name)
        display_answer(outcome.answer)
        if outcome.sources and ask_for_details():
            display_sources(outcome.sources)


def _run_command(
    command: str,
    session: ConversationSession,
    insights: ProjectInsights,
    project_name: str,
) -> None:
    name, _, argument = command.partition(" ")
    argument = argument.strip()

    if name == "/history":
        display_history(session.history_text())
    elif name == "/authors":
        display_authors(insights.authors(project_name))
    elif name == "/recent":
        days = int(argument) if argument.isdigit() else RECENT_DAYS_DEFAULT
        display_file_activity(
            f"Files changed in the last {days} days",
            insights.recently_modified(project_name, days=days),
        )
    elif name == "/files":
        if not argument:
            raise ValueError("Usage: /files <author email>")
        display_file_activity(f"Files owned by {argument}", insights.author_files(project_name, argument))
    else:
        display_commands()


def _generate_document(generate, path: str, root_dir: str, project_name: str) -> None:
    target = path if os.path.isabs(path) else os.path.join(root_dir, path)
    if os.path.exists(target) and not confirm_overwrite(target):
        print(f"[Main] Keeping existing {target}")
        return
    try:
        content = generate(project_name, root_dir)
        write_document(target, content, overwrite=True)
    except Exception as error:
        display_error(f"Could not generate {target}: {error}")
        return
    display_document_written(target)


def _refresh_index(
    service: CodebaseSearchService,
    root_dir: str,
    project_name: str,
    force: bool,
) -> None:
    summary = service.ensure_indexed(root_dir, project_name, force=force)
    if summary is not None:
        # First run or --reindex
        display_indexing_status(summary)
        return

    # Index exists: re-index only when the tree moved on
    report = service.detect_changes(root_dir, project_name)
    if report is None:
        print("[Main] Could not compare the index with the file tree, keeping it.")
    elif report.total_changes > 0:
        display_change_report(report)
        display_indexing_status(service.ingest_corpus(root_dir, project_name))
    else:
        display_up_to_date()


if __name__ == "__main__":
    main()
