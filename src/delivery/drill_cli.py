"""
aleph: terminal drill for the Persian alphabet.

A Rich terminal interface over the adaptive drilling engine.

Commands:
- aleph drill     - Run a multiple-choice drill session
- aleph stats     - Show mastery per symbol and weakest forms
- aleph suggest   - Preview the next symbols to be introduced
- aleph export    - Write progress to a versioned JSON file
- aleph import    - Load progress from an export (or older) file
- aleph reset     - Clear saved progress
"""
from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from config import get_settings
from src.adaptive.models import Question, QuestionType
from src.adaptive.schemas import ProgressImportError
from src.content.catalog import Catalog, CatalogError
from src.core.mastery import MasteryLevel
from src.delivery.drill_session import AnswerOutcome, DrillSession
from src.delivery.state_store import StateStore
from src.delivery.transfer import export_to_file, import_from_file

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="aleph",
    help="aleph: adaptive Persian alphabet drills",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Styling
# =============================================================================

STYLES = {
    "correct": "bold green",
    "incorrect": "bold red",
    "info": "bold cyan",
    "warning": "bold yellow",
    "dim": "dim",
    "question_type": {
        QuestionType.LETTER_RECOGNITION: "blue",
        QuestionType.NAME_TO_LETTER: "magenta",
        QuestionType.FORM_RECOGNITION: "yellow",
        QuestionType.WORD_CONTEXT: "cyan",
        QuestionType.WORD_READING: "green",
    },
}


def style_question_type(question_type: QuestionType) -> str:
    """Get styled question type string."""
    color = STYLES["question_type"].get(question_type, "white")
    return f"[{color}]{question_type.display_name}[/{color}]"


# =============================================================================
# Display Helpers
# =============================================================================

def _prompt_text(question: Question) -> str:
    symbol = question.symbol
    form = question.form

    if question.type is QuestionType.LETTER_RECOGNITION and symbol and form:
        return f"[bold]{symbol.glyph(form)}[/bold]\n\nWhich letter is this?"
    if question.type is QuestionType.NAME_TO_LETTER and symbol and form:
        return f"Find [bold]{symbol.name}[/bold] in its {form.value} form"
    if question.type is QuestionType.FORM_RECOGNITION and symbol and form:
        return f"[bold]{symbol.glyph(form)}[/bold]\n\nWhich form of {symbol.name} is this?"
    if question.word is not None:
        word = question.word
        marked = _mark_target(word.text, question.target_index)
        return (
            f"[bold]{marked}[/bold]  [dim]{word.transliteration} - {word.meaning}[/dim]\n\n"
            "Which letter is highlighted?"
        )
    return "Which letter is this?"


def _mark_target(text: str, index: int | None) -> str:
    if index is None or not 0 <= index < len(text):
        return text
    return f"{text[:index]}[reverse]{text[index]}[/reverse]{text[index + 1:]}"


def display_question(question: Question, index: int, total: int) -> None:
    """Display the question and its numbered options."""
    header = f"Question {index}/{total}  |  {style_question_type(question.type)}"

    content = _prompt_text(question) + "\n"
    for i, option in enumerate(question.options, 1):
        content += f"\n  [bold]{i}[/bold]) {option}"

    console.print(Panel(content, title=header, title_align="left", border_style="cyan", padding=(1, 2)))


def display_feedback(outcome: AnswerOutcome) -> None:
    """Display whether the answer was right, and what it was confused with."""
    if outcome.correct:
        console.print(f"[{STYLES['correct']}]✓ Correct[/{STYLES['correct']}]")
        return

    message = f"[{STYLES['incorrect']}]✗ Answer: {outcome.correct_answer}[/{STYLES['incorrect']}]"
    if outcome.confused_with is not None:
        message += f"  [dim](you picked {outcome.confused_with.name})[/dim]"
    console.print(message)


def _type_breakdown(by_type: dict[QuestionType, int]) -> str:
    lines = [
        f"\n  {style_question_type(question_type)}: {count}"
        for question_type, count in sorted(by_type.items(), key=lambda kv: -kv[1])
    ]
    return "\n\nBy question type:" + "".join(lines) if lines else ""


def _load_session() -> DrillSession:
    try:
        return DrillSession.from_settings(get_settings())
    except CatalogError as e:
        console.print(f"[red]Reference data error:[/red] {e}")
        raise typer.Exit(1)
    except ProgressImportError as e:
        console.print(f"[red]Saved progress is corrupt:[/red] {e}")
        console.print("[dim]Run 'aleph reset' or 'aleph import' to recover.[/dim]")
        raise typer.Exit(1)


# =============================================================================
# Commands
# =============================================================================

@app.command()
def drill(
    count: int = typer.Option(20, "--count", "-n", min=1, help="Number of questions"),
    no_words: bool = typer.Option(False, "--no-words", help="Disable word-reading questions"),
) -> None:
    """Run a multiple-choice drill session."""
    session = _load_session()
    if no_words:
        session.generator.update_config(word_reading_enabled=False)

    active = session.generator.active_symbol_ids()
    console.print(f"[{STYLES['info']}]Active letters:[/{STYLES['info']}] {', '.join(active)}")
    console.print("[dim]Answer with 1-4, or q to stop.[/dim]\n")

    for index in range(1, count + 1):
        question = session.next_question()
        display_question(question, index, count)

        started = time.monotonic()
        choices = [str(i) for i in range(1, len(question.options) + 1)] + ["q"]
        reply = Prompt.ask("[bold]Your answer[/bold]", choices=choices, show_choices=False)
        if reply == "q":
            break

        elapsed_ms = (time.monotonic() - started) * 1000
        outcome = session.answer(question, question.options[int(reply) - 1], response_ms=elapsed_ms)
        display_feedback(outcome)
        console.print()

    session.save()

    tally = session.tally
    console.print(Panel(
        f"[bold]Session Complete![/bold]\n\n"
        f"Questions answered: {tally.answered}\n"
        f"Accuracy: {tally.accuracy * 100:.1f}%"
        + _type_breakdown(tally.by_type),
        title="Summary",
        border_style="green",
    ))

    suggestions = session.generator.suggest_next()
    if suggestions:
        console.print(f"[dim]Coming up next: {', '.join(suggestions)}[/dim]")


@app.command()
def stats(
    limit: int = typer.Option(5, "--limit", "-l", help="Number of weak forms to list"),
) -> None:
    """Show mastery per symbol and the forms needing practice."""
    session = _load_session()
    rows = session.symbol_rows()

    if not rows:
        console.print("[yellow]No progress yet. Run 'aleph drill' to start.[/yellow]")
        return

    table = Table(title="Letter Mastery")
    table.add_column("Letter", justify="center")
    table.add_column("Name")
    table.add_column("Mastery", justify="right")
    table.add_column("Seen", justify="right")
    table.add_column("Level")

    for symbol, overall, exposures, level_value in rows:
        level = MasteryLevel(level_value)
        table.add_row(
            symbol.isolated,
            symbol.name,
            f"{overall * 100:.0f}%",
            str(exposures),
            f"[{level.color}]{level.emoji} {level.display_name}[/{level.color}]",
        )
    console.print(table)

    weak = Table(title="Needs Practice")
    weak.add_column("Letter", justify="center")
    weak.add_column("Form")
    weak.add_column("Score", justify="right")
    for symbol, form_name, score in session.weakest_forms(limit):
        weak.add_row(symbol.isolated, form_name, f"{score:.2f}")
    console.print(weak)

    word_ids = [item.id for item in session.catalog.vocabulary]
    word_stats = session.word_store.get_stats(word_ids)
    console.print(
        f"\nWords practised: {word_stats.practiced}/{word_stats.total}  "
        f"(proficient: {word_stats.mastered}, avg mastery {word_stats.average_mastery * 100:.0f}%)"
    )


@app.command()
def suggest() -> None:
    """Preview the next letters to be introduced."""
    session = _load_session()
    active = session.generator.active_symbol_ids()
    upcoming = session.generator.suggest_next()

    console.print(f"Active letters ({len(active)}): {', '.join(active)}")
    if upcoming:
        console.print(f"[{STYLES['info']}]Next up:[/{STYLES['info']}] {', '.join(upcoming)}")
    else:
        console.print("[green]Every letter group is active.[/green]")

    for item in session.selector.get_items_for_review():
        console.print(f"  [dim]review[/dim] {item.text}  {item.transliteration} ({item.meaning})")


@app.command("export")
def export_command(
    output: Path = typer.Argument(..., help="File to write the export to"),
) -> None:
    """Write progress to a versioned JSON file."""
    session = _load_session()
    path = export_to_file(output, session.store, session.selector)
    console.print(f"[green]Exported progress for {len(session.store)} letters to {path}[/green]")


@app.command("import")
def import_command(
    source: Path = typer.Argument(..., help="Export file to load"),
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Replace saved progress with an exported file."""
    try:
        imported = import_from_file(source)
    except ProgressImportError as e:
        console.print(f"[red]Import failed:[/red] {e}")
        raise typer.Exit(1)

    if not confirm and not Confirm.ask("Replace current progress?", default=False):
        raise typer.Exit(0)

    settings = get_settings()
    state = StateStore(settings.state_dir)
    catalog = _load_catalog(settings.data_dir)
    try:
        # Exports carry no whole-word mastery; keep what is already saved
        session = DrillSession.build(
            catalog,
            store=imported.mastery_store,
            word_store=state.load_word_mastery(),
            settings=settings,
            state=state,
        )
        # Older exports carry no word progression either
        if not imported.apply_word_progression(session.selector):
            state.load_word_progression(session.selector)
    except ProgressImportError as e:
        console.print(f"[red]Saved word progress is corrupt:[/red] {e}")
        raise typer.Exit(1)
    session.save()

    kind = "legacy" if imported.legacy else f"v{imported.version}"
    console.print(f"[green]Imported {kind} progress for {len(imported.mastery_store)} letters[/green]")


def _load_catalog(data_dir: Optional[Path]) -> Catalog:
    try:
        return Catalog.load(data_dir)
    except CatalogError as e:
        console.print(f"[red]Reference data error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def reset(
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Clear saved progress for a fresh start."""
    if not confirm and not Confirm.ask("Reset ALL progress? This cannot be undone!", default=False):
        raise typer.Exit(0)

    removed = StateStore(get_settings().state_dir).reset()
    console.print(f"[green]Progress reset ({removed} files removed).[/green]")


# =============================================================================
# Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point."""
    settings = get_settings()

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="1 MB")

    app()


if __name__ == "__main__":
    main()
