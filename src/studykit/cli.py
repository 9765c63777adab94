"""Study session engine CLI."""

import asyncio
import random
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from studykit.config import settings
from studykit.context import StudyContext, load_document
from studykit.engine import AnnotationManager, KnowledgeUnitManager, SessionEngine
from studykit.errors import StudyKitError
from studykit.log import setup_logging
from studykit.models import QuizSelector
from studykit.storage import SqlEntityStore

app = typer.Typer(
    name="studykit",
    help="Highlights, flashcards and quizzes for your documents",
    add_completion=False,
)
console = Console()

DocumentOpt = typer.Option(..., "--document", "-d", help="Document id")
OwnerOpt = typer.Option(..., "--owner", "-o", help="Owner (user) id")
DatabaseOpt = typer.Option(None, "--database-url", help="Override the configured database URL")


@app.callback()
def main(log_level: str = typer.Option(settings.log_level, help="Logging level")) -> None:
    setup_logging(log_level)


def _run(coro) -> None:
    try:
        asyncio.run(coro)
    except StudyKitError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1)


@app.command("init-db")
def init_db(database_url: Optional[str] = DatabaseOpt) -> None:
    """Create the database tables."""

    async def _init() -> None:
        store = SqlEntityStore(database_url=database_url)
        try:
            await store.init()
        finally:
            await store.close()

    _run(_init())
    console.print("[green]Database ready[/green]")


@app.command()
def highlights(
    document: str = DocumentOpt,
    owner: str = OwnerOpt,
    page: Optional[int] = typer.Option(None, help="Only this page"),
    database_url: Optional[str] = DatabaseOpt,
) -> None:
    """List highlights, most recent first."""

    async def _list() -> None:
        store = SqlEntityStore(database_url=database_url)
        try:
            context = StudyContext(owner_id=owner, store=store)
            doc = await load_document(context, document)
            async with AnnotationManager(context, doc) as manager:
                items = manager.on_page(page) if page else manager.annotations

            table = Table(title=f"Highlights: {doc.title}")
            table.add_column("Page", justify="right")
            table.add_column("Text")
            table.add_column("Note", style="italic")
            for a in items:
                table.add_row(str(a.page), a.text, a.note or "")
            console.print(table)
        finally:
            await store.close()

    _run(_list())


@app.command()
def cards(
    document: str = DocumentOpt,
    owner: str = OwnerOpt,
    chapter: Optional[str] = typer.Option(None, help="Only this chapter"),
    page: Optional[int] = typer.Option(None, help="Only this page"),
    database_url: Optional[str] = DatabaseOpt,
) -> None:
    """List flashcards with their review statistics."""

    async def _list() -> None:
        store = SqlEntityStore(database_url=database_url)
        try:
            context = StudyContext(owner_id=owner, store=store)
            doc = await load_document(context, document)
            async with KnowledgeUnitManager(context, doc) as manager:
                units = manager.units
                if chapter:
                    units = manager.filter_by_chapter(units, chapter)
                if page:
                    units = manager.filter_by_page(units, page)
                totals = manager.totals()

            table = Table(title=f"Flashcards: {doc.title}")
            table.add_column("Page", justify="right")
            table.add_column("Chapter")
            table.add_column("Question")
            table.add_column("Difficulty")
            table.add_column("Correct", justify="right")
            table.add_column("Incorrect", justify="right")
            table.add_column("Accuracy", justify="right")
            for u in units:
                accuracy = f"{u.accuracy:.0%}" if u.accuracy is not None else "-"
                table.add_row(
                    str(u.page),
                    u.chapter or "",
                    u.question,
                    u.difficulty.value,
                    str(u.correct_count),
                    str(u.incorrect_count),
                    accuracy,
                )
            console.print(table)
            if totals.accuracy is not None:
                console.print(
                    f"[dim]{totals.reviewed_units}/{totals.units} reviewed, "
                    f"overall accuracy {totals.accuracy:.0%}[/dim]"
                )
        finally:
            await store.close()

    _run(_list())


@app.command()
def quiz(
    document: str = DocumentOpt,
    owner: str = OwnerOpt,
    chapter: Optional[str] = typer.Option(None, help="Quiz one chapter"),
    page: Optional[int] = typer.Option(None, help="Quiz one page"),
    seed: Optional[int] = typer.Option(None, help="Shuffle seed"),
    database_url: Optional[str] = DatabaseOpt,
) -> None:
    """Run one pass over a shuffled pool of flashcards."""
    if chapter and page:
        console.print("[bold red]Error:[/bold red] use --chapter or --page, not both")
        raise typer.Exit(code=2)
    if chapter:
        selector = QuizSelector.for_chapter(chapter)
    elif page:
        selector = QuizSelector.for_page(page)
    else:
        selector = QuizSelector.all()

    async def _quiz() -> None:
        store = SqlEntityStore(database_url=database_url)
        try:
            context = StudyContext(owner_id=owner, store=store)
            doc = await load_document(context, document)
            async with KnowledgeUnitManager(context, doc) as manager:
                engine = SessionEngine(manager, rng=random.Random(seed))
                session = engine.start_quiz(manager.units, selector)

                while not session.completed:
                    unit = engine.current_question(session, manager.units)
                    if unit is None:
                        session = engine.skip(session)
                        continue

                    console.print(
                        f"\n[bold]Question {session.current_index + 1} of "
                        f"{session.total_questions}[/bold] (page {unit.page})"
                    )
                    console.print(unit.question)
                    typer.prompt("Press Enter to reveal the answer", default="", show_default=False)
                    console.print(f"[green]{unit.answer}[/green]")
                    correct = typer.confirm("Did you get it right?")
                    session, stats = await engine.submit_answer(session, correct)
                    console.print(
                        f"[dim]Score {session.score}/{session.current_index} | "
                        f"this card: {stats.correct_count} correct, "
                        f"{stats.incorrect_count} incorrect[/dim]"
                    )

            result = engine.summary(session)
            console.print(
                f"\n[bold blue]Quiz completed![/bold blue] "
                f"{result.score}/{result.total_questions} ({result.percentage}% correct)"
            )
        finally:
            await store.close()

    _run(_quiz())


if __name__ == "__main__":
    app()
