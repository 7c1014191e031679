"""Command line interface for running mass imports."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from ..exceptions import ConfigurationError, ImporterNotFoundError, InputLoadError
from ..exporters.text_exporter import render_summary
from ..importers import get_importer, list_importers
from ..pipeline.orchestrator import ImportOrchestrator, RunRequest, RunResult
from ..pipeline.signals import StopController, install_signal_handlers
from ..utils.config import load_run_config
from ..utils.logging import set_log_level

OrchestratorFactory = Callable[..., ImportOrchestrator]


def _build_overrides(
    *,
    importer: str | None,
    dry_run: bool,
    offset: int | None,
    limit: int | None,
) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    run: dict[str, Any] = {}
    if importer:
        overrides["importer"] = importer
    if dry_run:
        run["dry_run"] = True
    if offset is not None:
        run["offset"] = offset
    if limit is not None:
        run["limit"] = limit
    if run:
        overrides["run"] = run
    return overrides


def confirm_resume(session_id: str, summary: dict[str, int]) -> bool:
    """Ask on the terminal whether to resume an interrupted session."""

    click.echo(
        f"Found checkpoint for session {session_id}: "
        f"{summary['processed']} of {summary['total']} items already processed "
        f"({summary['succeeded']} succeeded, {summary['failed']} failed, "
        f"{summary['skipped']} skipped)."
    )
    return click.confirm("Resume this session?", default=True)


def print_result(result: RunResult) -> None:
    click.echo("\n" + render_summary(result.report, max_failures=20))
    for path in result.report_files:
        click.echo(f"  Report written: {path}")
    if result.checkpoint_path is not None:
        click.echo(f"  Checkpoint kept: {result.checkpoint_path}")
        click.echo("  Re-run with --resume to continue.")
    if result.error is not None:
        click.echo(f"\n❌ Run aborted: {result.error.describe()}", err=True)


@click.group()
@click.version_option(package_name="public-art-mass-import")
def cli() -> None:
    """Deduplicating, resumable mass import of public-art records."""


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--importer", "importer_name", default=None, help="Importer name (see `importers`)")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML run configuration",
)
@click.option("--resume", is_flag=True, help="Resume the latest (or --session-id) checkpoint")
@click.option("--session-id", default=None, help="Explicit session id to create or resume")
@click.option("--fresh-start", is_flag=True, help="Ignore existing checkpoints")
@click.option("--yes", "assume_yes", is_flag=True, help="Resume without prompting")
@click.option("--offset", type=click.IntRange(min=0), default=None, help="Skip the first N records")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Process at most N records")
@click.option("--dry-run", is_flag=True, help="Validate and deduplicate without writing")
@click.option(
    "--report-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for run reports",
)
@click.option(
    "--checkpoint-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for session checkpoints",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def run(
    ctx: click.Context,
    input_path: Path,
    importer_name: str | None,
    config_path: Path | None,
    resume: bool,
    session_id: str | None,
    fresh_start: bool,
    assume_yes: bool,
    offset: int | None,
    limit: int | None,
    dry_run: bool,
    report_dir: Path | None,
    checkpoint_dir: Path | None,
    verbose: bool,
) -> None:
    """Import INPUT_PATH into the catalogue."""

    if verbose:
        set_log_level("DEBUG")
    if resume and fresh_start:
        raise click.UsageError("--resume and --fresh-start are mutually exclusive")

    try:
        config = load_run_config(
            config_path,
            overrides=_build_overrides(
                importer=importer_name, dry_run=dry_run, offset=offset, limit=limit
            ),
        )
        get_importer(config.importer)
    except (ConfigurationError, ImporterNotFoundError) as exc:
        raise click.ClickException(str(exc)) from exc

    factory: OrchestratorFactory = (ctx.obj or {}).get(
        "orchestrator_factory", ImportOrchestrator.from_settings
    )
    stop = StopController()
    try:
        orchestrator = factory(
            config,
            checkpoint_dir=checkpoint_dir,
            report_dir=report_dir,
            confirm=confirm_resume,
            stop_controller=stop,
        )
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    request = RunRequest(
        input_path=input_path,
        resume=resume,
        session_id=session_id,
        fresh_start=fresh_start,
        assume_yes=assume_yes,
    )

    async def _execute() -> RunResult:
        try:
            return await orchestrator.run(request)
        finally:
            await orchestrator.aclose()

    with install_signal_handlers(stop):
        result = asyncio.run(_execute())

    print_result(result)
    ctx.exit(result.exit_code)


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--importer", "importer_name", default="geojson", show_default=True)
@click.option("--source", default=None, help="Source name applied to records")
@click.option("--json", "output_json", is_flag=True, help="Output the result as JSON")
@click.pass_context
def validate(
    ctx: click.Context,
    input_path: Path,
    importer_name: str,
    source: str | None,
    output_json: bool,
) -> None:
    """Load and validate INPUT_PATH without importing anything."""

    try:
        importer = get_importer(importer_name)(source=source)
        batch = asyncio.run(importer.load(input_path))
    except ImporterNotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    except (ConfigurationError, InputLoadError) as exc:
        raise click.ClickException(f"Cannot load {input_path}: {exc}") from exc

    invalid = batch.invalid
    if output_json:
        click.echo(
            json.dumps(
                {
                    "importer": batch.importer,
                    "source": batch.source,
                    "total": len(batch.entries),
                    "valid": len(batch.entries) - len(invalid),
                    "invalid": [
                        {"index": e.index, "source_id": e.source_id, "error": e.error}
                        for e in invalid
                    ],
                },
                indent=2,
            )
        )
    else:
        click.echo("=" * 70)
        click.echo(f"VALIDATION: {input_path}")
        click.echo("=" * 70)
        click.echo(f"  Importer:  {batch.importer}")
        click.echo(f"  Source:    {batch.source}")
        click.echo(f"  Records:   {len(batch.entries)}")
        click.echo(f"  Valid:     {len(batch.entries) - len(invalid)}")
        click.echo(f"  Invalid:   {len(invalid)}")
        for entry in invalid[:50]:
            click.echo(f"    • #{entry.index} {entry.source_id}: {entry.error}")
        if len(invalid) > 50:
            click.echo(f"    ... {len(invalid) - 50} more")

    if invalid:
        ctx.exit(1)


@cli.command("importers")
def importers_command() -> None:
    """List the registered importers."""

    for name in list_importers():
        importer_class = get_importer(name)
        summary = (importer_class.__doc__ or "").strip().splitlines()
        click.echo(f"{name:<12} {summary[0] if summary else ''}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
