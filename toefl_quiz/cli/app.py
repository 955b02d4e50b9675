"""Typer CLI application for TOEFL quiz generation."""

import asyncio
import logging
from pathlib import Path
from string import ascii_uppercase

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from toefl_quiz.agents.orchestrator import generate_quiz
from toefl_quiz.config.settings import get_settings
from toefl_quiz.exceptions import QuizGenerationError
from toefl_quiz.export.docx_generator import (
    choice_label,
    export_quiz_with_separate_answers,
    export_to_docx,
)
from toefl_quiz.grading import grade_quiz, incorrect_questions
from toefl_quiz.history.storage import JsonFileStorage
from toefl_quiz.history.store import HistoryStore
from toefl_quiz.models.history import Answer, QuizAttempt
from toefl_quiz.models.quiz import GenerationProgress, Question, QuestionType, Quiz

app = typer.Typer(
    name="quiz-agent",
    help="TOEFL-style reading quiz generator",
    add_completion=False,
)

console = Console()


def get_history_store() -> HistoryStore:
    """Build the history store backed by the configured directory."""
    return HistoryStore(JsonFileStorage(get_settings().history_dir))


def read_article(path: Path) -> str:
    """Read an article file, exiting with an error if it is empty."""
    article = path.read_text(encoding="utf-8")
    if not article.strip():
        console.print(f"[red]Error:[/red] {path} is empty.", style="bold")
        raise typer.Exit(code=1)
    return article


def run_generation(article: str) -> Quiz:
    """Generate a quiz while showing a progress bar."""
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            console=console,
        ) as progress:
            task = progress.add_task("[cyan]Analyzing article...", total=100)

            def on_progress(update: GenerationProgress) -> None:
                progress.update(
                    task, completed=update.percentage, description=f"[cyan]{update.stage}"
                )

            quiz = asyncio.run(generate_quiz(article, on_progress))
            progress.update(task, description="[green]Quiz generation complete!")
    except QuizGenerationError as e:
        console.print(f"\n[red]Error during quiz generation:[/red] {escape(str(e))}", style="bold")
        raise typer.Exit(code=1)

    return quiz


def parse_answer(text: str, choice_count: int) -> list[int] | None:
    """
    Parse a typed answer into choice indices.

    Accepts letters ("A, C") or 1-based numbers ("1 3"). Blank input means
    the question was skipped.

    Args:
        text: Raw user input
        choice_count: Number of choices the question offers

    Returns:
        Sorted list of indices, or None when skipped

    Raises:
        ValueError: If a token is not a valid choice
    """
    tokens = text.replace(",", " ").split()
    if not tokens:
        return None

    indices = set()
    for token in tokens:
        token = token.strip("[]").upper()
        if token.isdigit():
            index = int(token) - 1
        elif len(token) == 1 and token in ascii_uppercase:
            index = ascii_uppercase.index(token)
        else:
            raise ValueError(f"Not a choice: {token!r}")
        if not 0 <= index < choice_count:
            raise ValueError(f"Choice {token} is out of range")
        indices.add(index)
    return sorted(indices)


def ask_question(question: Question, quiz: Quiz) -> Answer:
    """Display a question and prompt until a valid answer is given."""
    console.print()
    console.print(
        Panel(
            escape(question.question_text),
            title=f"Question {question.question_number} of {quiz.total_questions}",
            subtitle=question.question_type.value,
            border_style="cyan",
        )
    )
    if question.highlighted_text:
        console.print(f"[bold]{escape(question.highlighted_text)}[/bold]")
    if question.question_type == QuestionType.INSERT_TEXT:
        console.print(f"[italic]{escape(question.sentence_to_insert)}[/italic]")
        console.print(escape(question.paragraph_for_insertion))
    if question.question_type == QuestionType.PROSE_SUMMARY:
        console.print(f"[bold]{escape(quiz.summary_introductory_sentence)}[/bold]")
        console.print("[italic]Select THREE answer choices.[/italic]")

    for i, choice in enumerate(question.choices):
        console.print(f"  {ascii_uppercase[i]}. {escape(choice.text)}")

    while True:
        raw = typer.prompt("Your answer (blank to skip, ? for hint)", default="", show_default=False)
        if raw.strip() == "?":
            console.print(f"[yellow]Hint:[/yellow] {escape(question.hint)}")
            continue
        try:
            return parse_answer(raw, len(question.choices))
        except ValueError as e:
            console.print(f"[red]{escape(str(e))}[/red]")


def take_quiz(quiz: Quiz) -> list[Answer]:
    """Ask every question in order and collect the answers."""
    return [ask_question(question, quiz) for question in quiz.questions]


def finish_attempt(
    user: str, article: str, quiz: Quiz, answers: list[Answer], group_id: str | None = None
) -> None:
    """Grade an attempt, record it, and show the result."""
    result = grade_quiz(quiz, answers)
    store = get_history_store()
    store.set_last_user(user)
    history = store.save_attempt(
        user, article, quiz, answers, result.score, existing_group_id=group_id
    )
    saved = next((g for g in history if g.id == group_id), history[0])

    console.print(
        f"\n[bold green]Score: {result.score} / {result.total}[/bold green] "
        f"({result.accuracy:.0f}%)"
    )

    table = Table(title="Review", border_style="cyan")
    table.add_column("Q#", style="cyan")
    table.add_column("Type", style="white")
    table.add_column("Result", style="white")
    for question, correct in zip(quiz.questions, result.correctness):
        table.add_row(
            str(question.question_number),
            question.question_type.value,
            "[green]correct[/green]" if correct else "[red]incorrect[/red]",
        )
    console.print(table)
    console.print(f"\nRun [bold]quiz-agent review {saved.id}[/bold] to see what you missed.")


def describe_choices(question: Question, indices: list[int]) -> str:
    """Render the given choices as lettered lines."""
    return "\n".join(
        f"  {choice_label(i)}. {escape(question.choices[i].text)}"
        for i in indices
        if i < len(question.choices)
    )


def show_analysis(quiz: Quiz, answers: list[Answer]) -> None:
    """
    Show every missed question with the chosen and correct answers.

    Each missed question is printed with its rationale and the passage text
    it refers to, preceded by a per-type count of misses.
    """
    missed = incorrect_questions(quiz, answers)
    if not missed:
        console.print(
            "[bold green]Congratulations![/bold green] You answered all questions correctly."
        )
        return

    missed_numbers = {q.question_number for q in missed}
    table = Table(title="Missed by Type", border_style="cyan")
    table.add_column("Type", style="white")
    table.add_column("Missed", style="red")
    for question_type in QuestionType:
        questions = quiz.get_questions_by_type(question_type)
        if questions:
            wrong = sum(q.question_number in missed_numbers for q in questions)
            table.add_row(question_type.value, f"{wrong} / {len(questions)}")
    console.print(table)

    for question in missed:
        answer = answers[question.question_number - 1] or []
        body = "\n".join(
            [
                escape(question.question_text),
                "",
                "[red]Your answer:[/red]",
                describe_choices(question, answer) or "  [italic]No answer provided.[/italic]",
                "[green]Correct answer:[/green]",
                describe_choices(question, sorted(question.correct_choice_indices)),
                "",
                f"[bold]Rationale:[/bold] {escape(question.rationale)}",
                f'[bold]Relevant text:[/bold] [italic]"{escape(question.relevant_article_snippet)}"[/italic]',
            ]
        )
        console.print(
            Panel(
                body,
                title=f"Question {question.question_number}: {question.question_type.value}",
                border_style="red",
            )
        )


def resolve_user(user: str | None) -> str:
    """Use the given user, or fall back to the last active one."""
    if user:
        return user
    last_user = get_history_store().get_last_user()
    if not last_user:
        console.print("[red]Error:[/red] pass --user (no previous user found).", style="bold")
        raise typer.Exit(code=1)
    return last_user


@app.command()
def generate(
    article_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Article text file"),
    output: str = typer.Option(
        "quiz",
        "--output",
        "-o",
        help="Output file path (without extension)",
    ),
    separate_answers: bool = typer.Option(
        True,
        "--separate-answers/--include-answers",
        help="Generate separate answer key file vs include answers in quiz",
    ),
) -> None:
    """
    Generate a quiz from an article and export it to DOCX.

    Example:
        quiz-agent generate article.txt -o reading_quiz
    """
    article = read_article(article_file)
    quiz = run_generation(article)
    display_quiz_summary(quiz)

    console.print("\n[cyan]Exporting to DOCX...[/cyan]")
    try:
        if separate_answers:
            questions_file, answers_file = export_quiz_with_separate_answers(
                quiz, output, article=article
            )
            console.print(f"\n[green]✓[/green] Quiz exported successfully!")
            console.print(f"  Questions: {questions_file}")
            console.print(f"  Answers:   {answers_file}")
        else:
            output_file = export_to_docx(quiz, f"{output}.docx", True, article=article)
            console.print(f"\n[green]✓[/green] Quiz exported to: {output_file}")
    except OSError as e:
        console.print(f"\n[red]Error during export:[/red] {e}", style="bold")
        raise typer.Exit(code=1)


@app.command()
def take(
    article_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Article text file"),
    user: str | None = typer.Option(None, "--user", "-u", help="User identifier"),
) -> None:
    """Generate a quiz from an article, take it, and save the attempt."""
    user = resolve_user(user)
    article = read_article(article_file)
    quiz = run_generation(article)
    console.print(Panel(escape(article.strip()), title=escape(quiz.title), border_style="green"))
    answers = take_quiz(quiz)
    finish_attempt(user, article, quiz, answers)


@app.command()
def retake(
    group_id: str = typer.Argument(..., help="History group to retake"),
    user: str | None = typer.Option(None, "--user", "-u", help="User identifier"),
) -> None:
    """Retake a quiz from history and append the new attempt."""
    user = resolve_user(user)
    group = get_history_store().get_group(user, group_id)
    if group is None:
        console.print(f"[red]Error:[/red] no history group {group_id}.", style="bold")
        raise typer.Exit(code=1)

    console.print(Panel(escape(group.article.strip()), title=escape(group.title), border_style="green"))
    answers = take_quiz(group.quiz)
    finish_attempt(user, group.article, group.quiz, answers, group_id=group.id)


@app.command()
def review(
    group_id: str = typer.Argument(..., help="History group to review"),
    attempt: int | None = typer.Option(
        None, "--attempt", "-a", min=1, help="Attempt to review, 1 for the first (default: latest)"
    ),
    user: str | None = typer.Option(None, "--user", "-u", help="User identifier"),
) -> None:
    """Review a past attempt: score, missed questions, rationales and passage text."""
    user = resolve_user(user)
    group = get_history_store().get_group(user, group_id)
    if group is None:
        console.print(f"[red]Error:[/red] no history group {group_id}.", style="bold")
        raise typer.Exit(code=1)

    selected: QuizAttempt | None
    if attempt is None:
        selected = group.latest_attempt
    elif attempt <= len(group.attempts):
        selected = group.attempts[attempt - 1]
    else:
        selected = None
    if selected is None:
        console.print(
            f"[red]Error:[/red] attempt {attempt} not found; "
            f"{escape(group.title)} has {len(group.attempts)} attempt(s).",
            style="bold",
        )
        raise typer.Exit(code=1)

    console.print(
        Panel(
            f"Attempt taken {selected.timestamp:%Y-%m-%d %H:%M}\n"
            f"[bold]Score: {selected.score} / {group.quiz.total_questions}[/bold]",
            title=escape(group.title),
            border_style="green",
        )
    )
    show_analysis(group.quiz, selected.user_answers)


@app.command()
def history(
    user: str | None = typer.Option(None, "--user", "-u", help="User identifier"),
) -> None:
    """List saved quizzes, most recent first."""
    user = resolve_user(user)
    groups = get_history_store().get_history(user)
    if not groups:
        console.print("[yellow]No quizzes in history yet.[/yellow]")
        return

    table = Table(title=f"Quiz History: {user}", border_style="cyan")
    table.add_column("Group", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Attempts", style="white")
    table.add_column("Best", style="white")
    table.add_column("Last attempt", style="white")
    for group in groups:
        table.add_row(
            group.id,
            escape(group.title),
            str(len(group.attempts)),
            f"{group.best_score} / {group.quiz.total_questions}",
            group.last_attempt_timestamp.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command()
def delete(
    group_id: str = typer.Argument(..., help="History group to delete"),
    user: str | None = typer.Option(None, "--user", "-u", help="User identifier"),
) -> None:
    """Delete a quiz and all of its attempts from history."""
    user = resolve_user(user)
    remaining = get_history_store().delete_group(user, group_id)
    console.print(f"[green]✓[/green] Deleted {group_id}. {len(remaining)} quiz(zes) remain.")


@app.command()
def export(
    group_id: str = typer.Argument(..., help="History group to export"),
    user: str | None = typer.Option(None, "--user", "-u", help="User identifier"),
    with_answers: bool = typer.Option(
        False,
        "--with-answers/--no-answers",
        help="Include answers in the exported document",
    ),
) -> None:
    """Export a quiz from history to DOCX."""
    user = resolve_user(user)
    group = get_history_store().get_group(user, group_id)
    if group is None:
        console.print(f"[red]Error:[/red] no history group {group_id}.", style="bold")
        raise typer.Exit(code=1)

    output_file = export_to_docx(
        group.quiz, f"{get_settings().default_output_path}.docx", with_answers, article=group.article
    )
    console.print(f"[green]✓[/green] Quiz exported to: {output_file}")


@app.command()
def info() -> None:
    """Display information about the quiz generator."""
    info_text = """
[bold cyan]TOEFL Reading Quiz Generator[/bold cyan]
Version: 0.1.0

[bold]Pipeline:[/bold]
  • Metadata Generator - Derives the quiz title and summary sentence
  • Question Generator - One structured request per question
  • Orchestrator - Runs all question requests concurrently, all-or-nothing
  • Grading - Exact match on selected choices, no partial credit
  • History - Per-user quiz groups with retakes
  • Review - Missed questions with rationales and passage text

[bold]Question plan:[/bold] 12 questions covering all seven TOEFL reading types
    """
    console.print(Panel(info_text, title="Quiz Agent Info", border_style="cyan"))


def display_quiz_summary(quiz: Quiz) -> None:
    """Display a summary of the generated quiz."""
    console.print("\n[bold green]Quiz Generated Successfully![/bold green]")

    table = Table(title=escape(quiz.title), border_style="green")
    table.add_column("Q#", style="cyan")
    table.add_column("Type", style="white")
    table.add_column("Choices", style="white")

    for question in quiz.questions:
        table.add_row(
            str(question.question_number),
            question.question_type.value,
            str(len(question.choices)),
        )

    console.print()
    console.print(table)


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """
    TOEFL Reading Quiz Generator - Create reading quizzes from any article.
    """
    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


if __name__ == "__main__":
    app()
