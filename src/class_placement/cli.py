"""CLI entry point for class placement."""

import logging
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .constants import Strategy
from .exceptions import PlacementError
from .models import PlacementResult, Student
from .placement import (
    analyze_constraints,
    generate_insights,
    parent_request_fulfillment,
    resolve_constraints,
    run_placement,
    summarize,
)
from .placement.suggestions import SuggestionGenerator
from .sources import DirectoryDataSource, export_result_json
from .teachers import GreedyMatcher, OptimalMatcher, match_teachers

app = typer.Typer(
    name="class-placement",
    help="Place students into balanced classes and match teachers",
    add_completion=False,
)
console = Console()


class StrategyOption(str, Enum):
    """Strategy options."""

    balanced = "balanced"
    academic_focus = "academic_focus"
    parent_requests_priority = "parent_requests_priority"
    default = "default"


DataDir = Annotated[
    Path,
    typer.Argument(help="Directory with students.csv, constraints.json, ...", exists=True, file_okay=False),
]
ClassesOpt = Annotated[
    Optional[int],
    typer.Option("-n", "--classes", help="Number of classes (defaults to settings.json)"),
]
StrategyOpt = Annotated[
    Optional[StrategyOption],
    typer.Option("-s", "--strategy", help="Placement strategy (defaults to settings.json)"),
]
GradeOpt = Annotated[
    Optional[int],
    typer.Option("-g", "--grade", help="Only place students of this grade"),
]
VerboseOpt = Annotated[
    bool,
    typer.Option("-v", "--verbose", help="Show detailed output"),
]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _place(
    data_dir: Path,
    classes: int | None,
    strategy: StrategyOption | None,
    grade: int | None,
) -> tuple[DirectoryDataSource, list[Student], PlacementResult]:
    """Load inputs from ``data_dir`` and run a placement."""
    source = DirectoryDataSource(data_dir)
    settings = source.load_settings()
    if grade is not None:
        settings.grade = grade

    students = source.load_students(settings.grade)
    chosen = Strategy(strategy.value) if strategy else settings.strategy

    with console.status("[bold green]Placing students..."):
        result = run_placement(
            students,
            classes if classes is not None else settings.number_of_classes,
            chosen,
            source.load_constraints(),
            settings.weights,
            source.load_parent_requests(),
            settings=settings,
        )
    return source, students, result


def _show_classes(result: PlacementResult, show_teachers: bool = False) -> None:
    table = Table(title="Classes")
    table.add_column("Class", style="cyan")
    table.add_column("Students", justify="right")
    table.add_column("Gender", justify="right")
    table.add_column("Academic", justify="right")
    table.add_column("Behavioral", justify="right")
    table.add_column("Special needs", justify="right")
    table.add_column("Overall", justify="right", style="bold")
    if show_teachers:
        table.add_column("Teacher")
        table.add_column("Compatibility", justify="right")

    for bucket in result.classes:
        scores = bucket.balance_scores
        row = [
            bucket.name,
            str(bucket.size),
            f"{scores.gender:.2f}",
            f"{scores.academic:.2f}",
            f"{scores.behavioral:.2f}",
            f"{scores.special_needs:.2f}",
            f"{scores.overall:.2f}",
        ]
        if show_teachers:
            row.append(bucket.teacher_name or bucket.teacher_id or "-")
            row.append(f"{bucket.compatibility_score:.0f}" if bucket.compatibility_score is not None else "-")
        table.add_row(*row)

    console.print(table)


def _show_stats(result: PlacementResult) -> None:
    stats = result.statistics
    console.print(f"\n[bold]Placement Results ({result.strategy.value}):[/bold]")
    console.print(f"  Total students: {stats.total_students}")
    console.print(f"  Average class size: {stats.average_class_size}")
    console.print(f"  Balance score: {stats.balance_score:.2f}")
    console.print(f"  Constraints applied: {stats.constraints_applied}")
    console.print(f"  Parent requests applied: {stats.parent_requests_applied}")

    if stats.violations:
        console.print(f"\n[bold yellow]Separation violations ({len(stats.violations)}):[/bold yellow]")
        for v in stats.violations:
            console.print(f"  [yellow]• {v.student_id} and {v.other_id} share {v.class_name}[/yellow]")


@app.command()
def place(
    data_dir: DataDir,
    classes: ClassesOpt = None,
    strategy: StrategyOpt = None,
    grade: GradeOpt = None,
    output: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Write the result as JSON"),
    ] = None,
    verbose: VerboseOpt = False,
) -> None:
    """Place students into classes."""
    _configure_logging(verbose)
    try:
        _, _, result = _place(data_dir, classes, strategy, grade)
    except PlacementError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    _show_stats(result)
    _show_classes(result)

    if output:
        if not output.suffix:
            output = output.with_suffix(".json")
        export_result_json(result, output)
        console.print(f"\n[bold green]✓[/bold green] Exported to: {output}")


@app.command()
def suggest(
    data_dir: DataDir,
    classes: ClassesOpt = None,
    strategy: StrategyOpt = None,
    grade: GradeOpt = None,
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", help="Maximum number of suggestions"),
    ] = None,
    verbose: VerboseOpt = False,
) -> None:
    """Place students, then propose swaps/moves that would improve balance."""
    _configure_logging(verbose)
    try:
        source, students, result = _place(data_dir, classes, strategy, grade)
        settings = source.load_settings()
        resolved = resolve_constraints(source.load_constraints(), students)
    except PlacementError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    generator = SuggestionGenerator(
        students,
        resolved,
        settings.weights,
        limit if limit is not None else settings.max_suggestions,
    )
    suggestions = generator.suggest(result.classes)

    console.print(f"\n[bold]{summarize(suggestions)}[/bold]")
    for i, s in enumerate(suggestions, 1):
        who = " ⇄ ".join(f"{st.name} ({st.current_class})" for st in s.students)
        if s.type.value == "move":
            who += f" → {s.target_class}"
        impact = ", ".join(f"{k} {v:+.1f}" for k, v in s.impact.items() if v)
        console.print(f"  {i}. [cyan]{s.type.value}[/cyan] {who}")
        console.print(f"     {s.reason}")
        if impact:
            console.print(f"     [dim]Impact: {impact}[/dim]")


@app.command("assign-teachers")
def assign_teachers(
    data_dir: DataDir,
    classes: ClassesOpt = None,
    strategy: StrategyOpt = None,
    grade: GradeOpt = None,
    optimal: Annotated[
        bool,
        typer.Option("--optimal", help="Solve the assignment exactly instead of greedily"),
    ] = False,
    verbose: VerboseOpt = False,
) -> None:
    """Place students, then assign teachers by compatibility."""
    _configure_logging(verbose)
    try:
        source, students, result = _place(data_dir, classes, strategy, grade)
        teachers = source.load_teachers()
    except PlacementError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    matcher = OptimalMatcher() if optimal else GreedyMatcher()
    with console.status("[bold green]Matching teachers..."):
        matched = match_teachers(teachers, result.classes, students, matcher)

    result.classes = matched.classes
    _show_classes(result, show_teachers=True)

    if matched.message:
        console.print(f"\n[yellow]{matched.message}[/yellow]")
    console.print(
        f"\n  Teachers assigned: {matched.assigned_teacher_count} of {matched.total_teacher_count}"
    )
    console.print(f"  Mean compatibility: {matched.teacher_assignment_score}")


@app.command()
def insights(
    data_dir: DataDir,
    classes: ClassesOpt = None,
    strategy: StrategyOpt = None,
    grade: GradeOpt = None,
    verbose: VerboseOpt = False,
) -> None:
    """Place students and report imbalances and constraint fulfillment."""
    _configure_logging(verbose)
    try:
        source, students, result = _place(data_dir, classes, strategy, grade)
        resolved = resolve_constraints(source.load_constraints(), students)
        requests = source.load_parent_requests()
    except PlacementError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    report = generate_insights(
        result.classes, students, parent_request_fulfillment(result.classes, requests)
    )
    console.print(f"\n[bold]Balance score:[/bold] {report.balance_score}")
    console.print(f"  {report.summary}")

    colors = {"info": "green", "medium": "yellow", "high": "red"}
    for insight in report.insights:
        color = colors[insight.severity.value]
        console.print(f"  [{color}]• {insight.message}[/{color}]")

    constraint_report = analyze_constraints(result.classes, resolved)
    if constraint_report.fulfilled or constraint_report.unfulfilled:
        console.print(
            f"\n[bold]Constraints fulfilled:[/bold] {constraint_report.fulfillment_rate:.0f}%"
        )
        for outcome in constraint_report.unfulfilled:
            console.print(f"  [red]• {outcome.description}[/red]")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
