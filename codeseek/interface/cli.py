# codeseek/interface/cli.py

from typing import List

from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from codeseek.application.change_detector import format_change_message
from codeseek.domain.models import (
    AuthorSummary,
    ChangeReport,
    FileActivity,
    IngestionSummary,
    RankedResult,
)


console = Console()

SOURCES_SHOWN = 3


def display_welcome_banner(project_name: str, provider_name: str) -> None:
    console.print(Panel.fit(
        f"[bold cyan]🔍 codeseek[/bold cyan]  [dim]project:[/dim] [bold]{escape(project_name)}[/bold]\n"
        f"[dim]Local TF-IDF retrieval + answers from {escape(provider_name)}[/dim]",
        box=box.DOUBLE,
        border_style="cyan",
    ))


def display_indexing_status(summary: IngestionSummary) -> None:
    console.print(
        f"\n[green]✓[/green] Index built: [bold]{summary.fragments_stored}[/bold] fragments "
        f"from {summary.files_processed} files, {summary.vocabulary_size} terms.\n"
    )


def display_change_report(report: ChangeReport) -> None:
    console.print(f"\n[yellow]↻[/yellow] Detected {format_change_message(report)}, re-indexing...")


def display_up_to_date() -> None:
    console.print("\n[green]✓[/green] Index is up to date.\n")


def prompt_for_query() -> str:
    return Prompt.ask("\n[bold yellow]🐥 How can I help?[/bold yellow]")


def display_answer(answer: str) -> None:
    console.print()
    console.print(Markdown(answer))


def ask_for_details() -> bool:
    answer = Prompt.ask(
        "\n[dim]💡 Want more details?[/dim]",
        choices=["y", "n"],
        default="n",
    )
    return answer.lower() == "y"


def display_sources(results: List[RankedResult]) -> None:
    if not results:
        console.print("\n[dim]No matching code found.[/dim]")
        return

    console.print("\n[bold]📚 Relevant code:[/bold]\n")
    for rank, result in enumerate(results[:SOURCES_SHOWN], start=1):
        score_color = _score_to_color(result.score)

        title = f"[bold]#{rank}[/bold] {escape(result.file_path)}"
        if result.function_name:
            title += f" ({escape(result.function_name)})"

        panel_content = Text()
        panel_content.append("🎯 Relevance: ")
        panel_content.append(f"{result.score * 100:.1f}%", style=score_color)
        if result.fragment.line_start is not None:
            panel_content.append(
                f"   lines {result.fragment.line_start}-{result.fragment.line_end}",
                style="dim",
            )
        panel_content.append(f"\n\n{result.content}")

        console.print(Panel(
            panel_content,
            title=title,
            border_style=score_color,
            box=box.ROUNDED,
            padding=(1, 2),
        ))


def display_commands() -> None:
    console.print(
        "[dim]Commands: /history  /authors  /recent [days]  /files <email>  "
        "(Ctrl+C to quit)[/dim]"
    )


def display_history(history: str) -> None:
    if not history:
        console.print("\n[dim]No conversations in this session yet.[/dim]")
        return
    console.print()
    console.print(Panel(escape(history), title="Session history", border_style="cyan"))


def display_authors(authors: List[AuthorSummary]) -> None:
    if not authors:
        console.print("\n[dim]No authorship recorded. Is the project a git repository?[/dim]")
        return

    table = Table(title="Primary authors", box=box.SIMPLE_HEAVY)
    table.add_column("Author")
    table.add_column("Email", style="dim")
    table.add_column("Files owned", justify="right")
    table.add_column("Commits", justify="right")
    for author in authors:
        table.add_row(
            escape(author.author),
            escape(author.email),
            str(author.files_owned),
            str(author.owner_commits),
        )
    console.print(table)


def display_file_activity(title: str, files: List[FileActivity]) -> None:
    if not files:
        console.print(f"\n[dim]{escape(title)}: nothing found.[/dim]")
        return

    table = Table(title=escape(title), box=box.SIMPLE_HEAVY)
    table.add_column("File")
    table.add_column("Commits", justify="right")
    table.add_column("Last commit", style="dim")
    table.add_column("By")
    for activity in files:
        last = activity.last_commit_date.strftime("%Y-%m-%d") if activity.last_commit_date else "-"
        table.add_row(
            escape(activity.file_path),
            str(activity.total_commits) if activity.total_commits is not None else "-",
            last,
            escape(activity.last_commit_author or "-"),
        )
    console.print(table)


def confirm_overwrite(path: str) -> bool:
    return Confirm.ask(f"[yellow]{escape(path)} already exists. Overwrite?[/yellow]", default=False)


def display_document_written(path: str) -> None:
    console.print(f"\n[green]✓[/green] Wrote [bold]{escape(path)}[/bold]\n")


def display_error(message: str) -> None:
    console.print(f"\n[bold red]✗ Error:[/bold red] {escape(message)}\n")


def display_goodbye() -> None:
    console.print("\n👋 Happy coding!")


def _score_to_color(score: float) -> str:
    if score >= 0.50:
        return "green"
    elif score >= 0.25:
        return "yellow"
    else:
        return "red"
