"""Shared Typer app object, shared option types, and store utility."""

import json
import logging
from pathlib import Path
from typing import Annotated, Any, NoReturn, Optional

import typer
from rich.logging import RichHandler

from ..core.engine.config_loader import EngineDefaults, load_engine_defaults
from ..io.history_store import HistoryStore, get_default_history_path
from . import views

# Shared --history-path option type used across commands that touch the store
HistoryPathOption = Annotated[
    Optional[Path],
    typer.Option("--history-path", "-p", help="Path to history JSONL file"),
]

JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]

app = typer.Typer(
    name="lift-planner",
    help="Readiness-driven session prescriptions and periodized strength plans.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """
    Readiness-driven session prescriptions and periodized strength plans.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=views.err_console, show_path=False)],
        force=True,
    )


def get_store(history_path: Path | None) -> HistoryStore:
    """Get history store from path or default location."""
    if history_path is None:
        history_path = get_default_history_path()
    return HistoryStore(history_path)


def get_engine_defaults() -> EngineDefaults:
    return load_engine_defaults()


def load_json_file(path: Path, what: str) -> Any:
    """
    Read a JSON input file for a command.

    Exits with code 1 (after printing the error) when the file is missing or
    not valid JSON.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        views.print_error(f"{what} file not found: {path}")
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        views.print_error(f"Invalid JSON in {what} file {path}: {e}")
        raise typer.Exit(1)


def fail(error: Exception) -> NoReturn:
    """Report a validation error and exit with code 1."""
    views.print_error(str(error))
    raise typer.Exit(1)


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))
