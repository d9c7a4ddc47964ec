"""PRDForge CLI application entry point.

Built with `Typer <https://typer.tiangolo.com/>`_ and
`Rich <https://rich.readthedocs.io/>`_.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

import typer
from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.table import Table

from prdforge.cli.config import PrdForgeConfig, load_config
from prdforge.cli.errors import CLIError, error_handler
from prdforge.cli.init_cmd import run_init
from prdforge.cli.logging_setup import setup_logging
from prdforge.records.models import Feature
from prdforge.records.normalizer import recover_batch
from prdforge.records.specs import BUILTIN_SPECS, RecordSpec
from prdforge.recovery.pipeline import FailurePolicy

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="prdforge",
    help="PRDForge – recover structured features, tasks and sections from LLM output.",
    add_completion=False,
    no_args_is_help=True,
)
generate_app = typer.Typer(
    help="Generate records with an LLM.",
    no_args_is_help=True,
)
app.add_typer(generate_app, name="generate")

_console = Console(stderr=True)


class RecordKind(str, Enum):
    """Record type selector for ``prdforge recover``."""

    FEATURES = "features"
    TASKS = "tasks"
    SECTIONS = "sections"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config(ctx: typer.Context) -> PrdForgeConfig:
    obj = ctx.find_root().obj
    if isinstance(obj, PrdForgeConfig):
        return obj
    return load_config()


def _read_input(source: str) -> str:
    if source == "-":
        return typer.get_text_stream("stdin").read()
    path = Path(source)
    if not path.is_file():
        raise CLIError(f"Input file not found: {source}")
    return path.read_text(encoding="utf-8")


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {k: _dump(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_dump(v) for v in value]
    return value


def _emit_json(payload: Any, output: Optional[Path]) -> None:
    text = json.dumps(_dump(payload), indent=2, ensure_ascii=False)
    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    _console.print(f"[green]Saved to {output}[/green]")


def _cell(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, list):
        return "\n".join(str(v) for v in value)
    return "" if value is None else str(value)


def _records_table(records: list[BaseModel], spec: RecordSpec) -> Table:
    table = Table(title=f"{len(records)} {spec.name} record(s)", show_lines=True)
    columns = [f.attr for f in spec.fields]
    for column in columns:
        table.add_column(column.replace("_", " ").title())
    for record in records:
        table.add_row(*(_cell(getattr(record, column)) for column in columns))
    return table


# ---------------------------------------------------------------------------
# Version callback
# ---------------------------------------------------------------------------


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from prdforge import __version__

        _console.print(f"prdforge {__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Main callback (global options)
# ---------------------------------------------------------------------------


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) output.",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration TOML file.",
    ),
) -> None:
    """Global options for PRDForge CLI."""
    with error_handler(_console):
        cfg = load_config(config_path=config)
    setup_logging("DEBUG" if verbose else cfg.log_level, cfg.log_file)
    ctx.obj = cfg


# ---------------------------------------------------------------------------
# Init command
# ---------------------------------------------------------------------------


@app.command()
def init(
    path: Optional[Path] = typer.Argument(
        None,
        help="Target directory to initialise. Defaults to current directory.",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing configuration file.",
    ),
) -> None:
    """Write a default ``.prdforge/config.toml``."""
    with error_handler(_console):
        config_path = run_init(path, force=force)
        _console.print(f"[green]Wrote {config_path}[/green]")


# ---------------------------------------------------------------------------
# Recover command
# ---------------------------------------------------------------------------


@app.command()
def recover(
    ctx: typer.Context,
    source: str = typer.Argument(
        ...,
        metavar="INPUT",
        help="File holding a raw LLM response, or '-' for stdin.",
    ),
    kind: RecordKind = typer.Option(
        RecordKind.FEATURES,
        "--kind",
        "-k",
        help="Record type to build from the recovered JSON.",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Exit with code 3 when nothing can be recovered.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Print records as JSON instead of a table.",
    ),
) -> None:
    """Recover records from a saved LLM response.

    Example::

        prdforge recover response.txt --kind tasks
        pbpaste | prdforge recover - --json
    """
    with error_handler(_console):
        cfg = _config(ctx)
        spec = BUILTIN_SPECS[kind.value]
        policy = FailurePolicy.RAISE if strict else cfg.failure_policy

        batch = recover_batch(_read_input(source), spec, policy=policy)

        if json_output:
            _emit_json(batch.records, None)
            return

        if batch.recovered:
            _console.print(
                f"Recovered {len(batch.records)} {spec.name} record(s) via strategy "
                f"{batch.result.strategy_index} ([bold]{batch.result.strategy_name}[/bold])"
            )
        else:
            _console.print(
                f"[yellow]No JSON could be recovered after "
                f"{len(batch.result.attempts)} attempt(s).[/yellow]"
            )
        Console().print(_records_table(batch.records, spec))


# ---------------------------------------------------------------------------
# Generate commands
# ---------------------------------------------------------------------------


@generate_app.command("features")
def generate_features(
    ctx: typer.Context,
    prd_file: Path = typer.Argument(..., help="PRD document (markdown or text)."),
    max_features: Optional[int] = typer.Option(
        None,
        "--max",
        help="Maximum number of features (default from config).",
    ),
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="LLM model to use (default from config).",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write features JSON here instead of stdout.",
    ),
) -> None:
    """Extract features from a PRD with an LLM."""
    with error_handler(_console):
        from prdforge.generators.features import FeatureGenerator
        from prdforge.llm.gateway import LLMGateway

        cfg = _config(ctx)
        prd_text = _read_input(str(prd_file))

        generator = FeatureGenerator(
            config=cfg.generator_config(model),
            gateway=LLMGateway(cfg.gateway_config()),
        )
        features = generator.generate_from_prd(
            prd_text,
            max_features=max_features or cfg.max_features,
        )
        _console.print(f"[bold]Generated {len(features)} feature(s)[/bold]")
        _emit_json(features, output)


@generate_app.command("tasks")
def generate_tasks(
    ctx: typer.Context,
    features_file: Path = typer.Argument(
        ...,
        help="Features JSON, as written by 'prdforge generate features'.",
    ),
    max_tasks: Optional[int] = typer.Option(
        None,
        "--max",
        help="Maximum tasks per feature (default from config).",
    ),
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="LLM model to use (default from config).",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write tasks JSON here instead of stdout.",
    ),
) -> None:
    """Generate tasks for every feature in a features JSON file."""
    with error_handler(_console):
        from prdforge.generators.tasks import TaskGenerator
        from prdforge.llm.gateway import LLMGateway

        cfg = _config(ctx)
        try:
            data = json.loads(_read_input(str(features_file)))
            if not isinstance(data, list):
                raise CLIError(f"{features_file} must contain a JSON array of features")
            features = [Feature.model_validate(item) for item in data]
        except (json.JSONDecodeError, ValidationError) as exc:
            raise CLIError(f"Invalid features file {features_file}: {exc}") from exc

        for feature in features:
            if not feature.id:
                feature.id = str(uuid4())

        generator = TaskGenerator(
            config=cfg.generator_config(model),
            gateway=LLMGateway(cfg.gateway_config()),
        )
        by_feature = generator.generate_for_features(
            features,
            max_tasks_per_feature=max_tasks or cfg.max_tasks,
        )

        all_tasks = [task for tasks in by_feature.values() for task in tasks]
        summary = generator.calculate_total_hours(all_tasks)
        table = Table(title=f"{len(all_tasks)} task(s), {summary.total:g} hours")
        table.add_column("Role")
        table.add_column("Hours", justify="right")
        for role, hours in sorted(summary.by_role.items()):
            table.add_row(role, f"{hours:g}")
        _console.print(table)

        _emit_json(by_feature, output)
