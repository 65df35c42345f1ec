"""
Cadence: operator CLI for the adaptive scheduling core.

Commands:
- cadence queue      - Show the next session slice for a learner snapshot
- cadence estimate   - Show per-dimension ability estimates
- cadence calibrate  - Recalibrate item parameters from a response matrix
- cadence review     - Apply one response and write the updated snapshot
"""
from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from cadence.ability.calibration import calibrate_items
from cadence.core.dimensions import SessionMode, SkillDimension
from cadence.errors import CadenceError
from cadence.learner.loop import LearnerLoop
from cadence.memory.mastery import MasteryStage, ResponseData, stage_progress
from cadence.priority.cache import EngineCache
from cadence.snapshot import CalibrationMatrix, LearnerSnapshot

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="cadence",
    help="Cadence: adaptive scheduling core",
    no_args_is_help=True,
)
console = Console()


def _load(path: Path) -> LearnerSnapshot:
    try:
        return LearnerSnapshot.load(path)
    except (OSError, ValueError) as exc:
        console.print(f"[bold red]Could not read snapshot {path}:[/bold red] {exc}")
        raise typer.Exit(code=1)


def _loop(snapshot: LearnerSnapshot) -> LearnerLoop:
    return LearnerLoop(snapshot.to_state(), cache=EngineCache())


# =============================================================================
# Commands
# =============================================================================


@app.command()
def queue(
    snapshot_path: Path = typer.Argument(..., help="Learner snapshot (JSON)"),
    size: Optional[int] = typer.Option(None, "--size", "-n", help="Session size"),
    new_ratio: Optional[float] = typer.Option(None, "--new-ratio", help="Fraction of new items"),
) -> None:
    """Show the next session slice."""
    snapshot = _load(snapshot_path)
    loop = _loop(snapshot)
    now = snapshot.now or datetime.now()
    session = loop.next_session(snapshot.candidates(), now, size, new_ratio)

    table = Table(title=f"Session for {snapshot.learner_id}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Item")
    table.add_column("Kind")
    table.add_column("Value", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Urgency", justify="right")
    table.add_column("Final", justify="right", style="bold")
    table.add_column("Stage")
    table.add_column("Cue", justify="right")

    for rank, entry in enumerate(session, start=1):
        stage = MasteryStage(loop.state.mastery_for(entry.item_id).stage)
        table.add_row(
            str(rank),
            entry.item_id,
            "[cyan]due[/cyan]" if entry.is_due else "[magenta]new[/magenta]",
            f"{entry.record.value_score:.3f}",
            f"{entry.record.cost_score:.3f}",
            f"{entry.record.urgency:.2f}",
            f"{entry.final_score:.3f}",
            f"[{stage.color}]{stage.display_name}[/{stage.color}]",
            str(loop.cue_level(entry.item_id)),
        )
    console.print(table)


@app.command()
def estimate(
    snapshot_path: Path = typer.Argument(..., help="Learner snapshot (JSON)"),
) -> None:
    """Show per-dimension ability estimates."""
    snapshot = _load(snapshot_path)
    state = snapshot.to_state()

    table = Table(title=f"Ability for {snapshot.learner_id}")
    table.add_column("Dimension")
    table.add_column("Theta", justify="right")
    table.add_column("SE", justify="right")
    table.add_column("Method")
    table.add_column("Responses", justify="right")

    for dimension in SkillDimension:
        est = state.profile[dimension]
        flag = " [yellow]![/yellow]" if est.flagged else ""
        table.add_row(
            dimension.short_code,
            f"{est.theta:+.3f}",
            f"{est.se:.3f}{flag}",
            est.method.value,
            str(len(state.histories.get(dimension, []))),
        )
    console.print(table)


@app.command()
def calibrate(
    matrix_path: Path = typer.Argument(..., help="Response matrix (JSON)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write items as JSON"),
) -> None:
    """Recalibrate item parameters by EM."""
    try:
        matrix = CalibrationMatrix.load(matrix_path)
        result = calibrate_items(matrix.responses, [i.to_parameter() for i in matrix.items])
    except (OSError, ValueError, CadenceError) as exc:
        console.print(f"[bold red]Calibration failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    table = Table(title="Calibrated items")
    table.add_column("Item")
    table.add_column("a", justify="right")
    table.add_column("b", justify="right")
    table.add_column("c", justify="right")
    for item in result.items:
        table.add_row(item.item_id, f"{item.a:.3f}", f"{item.b:+.3f}", f"{item.c:.3f}")
    console.print(table)
    status = "[green]converged[/green]" if result.converged else "[yellow]not converged[/yellow]"
    console.print(f"{status} after {result.iterations} iterations, log-likelihood {result.log_likelihood:.2f}")

    if output is not None:
        updated = [
            snap.model_copy(update={"a": item.a, "b": item.b, "c": item.c})
            for snap, item in zip(matrix.items, result.items)
        ]
        output.write_text(
            matrix.model_copy(update={"items": updated}).model_dump_json(indent=2),
            encoding="utf-8",
        )
        console.print(f"[dim]Wrote {output}[/dim]")


@app.command()
def review(
    snapshot_path: Path = typer.Argument(..., help="Learner snapshot (JSON)"),
    item_id: str = typer.Argument(..., help="Item answered"),
    correct: bool = typer.Option(True, "--correct/--incorrect", help="Response outcome"),
    cue: int = typer.Option(0, "--cue", min=0, max=3, help="Cue level shown (0-3)"),
    latency: int = typer.Option(3000, "--latency", min=0, help="Response time (ms)"),
    mode: SessionMode = typer.Option(SessionMode.TRAINING, "--mode", help="Session mode"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Defaults to the input file"),
) -> None:
    """Apply one response and write the updated snapshot."""
    snapshot = _load(snapshot_path)
    parameters = snapshot.item_parameters()
    if item_id not in parameters:
        console.print(f"[bold red]Unknown item:[/bold red] {item_id}")
        raise typer.Exit(code=1)

    loop = _loop(snapshot)
    now = snapshot.now or datetime.now()
    try:
        outcome = loop.record_response(
            parameters[item_id], ResponseData(correct, cue, latency), now, mode
        )
    except CadenceError as exc:
        console.print(f"[bold red]Rejected:[/bold red] {exc}")
        raise typer.Exit(code=1)

    mastery = outcome.mastery
    stage = mastery.state.stage
    console.print(
        f"{item_id}: [bold]{mastery.rating.name}[/bold], "
        f"[{stage.color}]{stage.display_name}[/{stage.color}] "
        f"({stage_progress(mastery.state):.0%} to next), next review in {mastery.interval_days}d"
    )
    for dimension, est in outcome.ability.items():
        console.print(f"  {dimension.short_code}: theta {est.theta:+.3f} (se {est.se:.3f})")

    target = output or snapshot_path
    snapshot.update_from_state(loop.state).save(target)
    console.print(f"[dim]Wrote {target}[/dim]")


def main() -> None:
    """CLI entry point."""
    from config import get_settings

    settings = get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level="DEBUG", rotation="10 MB")

    app()


if __name__ == "__main__":
    main()
