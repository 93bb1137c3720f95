"""introscan CLI: detect TV introductions and write EDL markers."""

from __future__ import annotations

import logging
import signal
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from introscan.config import DEFAULT_CONFIG_PATH, ConfigStore, config_to_dict
from introscan.errors import IntroScanError
from introscan.export import export_json, intro_report, text_report
from introscan.model import EdlAction, OutputMode, RunSummary
from introscan.schedule import DailyTrigger, TaskHost, parse_time_of_day
from introscan.task import DetectIntroductionsTask, PluginContext

app = typer.Typer(name="introscan", help="Detect TV introductions with audio fingerprints")
console = Console(stderr=True)

CONFIG_OPTION = typer.Option(
    str(DEFAULT_CONFIG_PATH), "--config", "-c", help="Configuration file path"
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable debug logging")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=verbose)],
        force=True,
    )


def _load_store(config: str) -> ConfigStore:
    try:
        return ConfigStore(config)
    except IntroScanError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _build_host(config: str, fpcalc_path: str | None) -> TaskHost:
    store = _load_store(config)
    context = PluginContext.from_config(store, fpcalc_path=fpcalc_path)
    return TaskHost(DetectIntroductionsTask(context))


def _install_interrupt(host: TaskHost) -> None:
    """First Ctrl+C requests cancellation; a second one aborts."""

    def _handler(signum, frame):
        if host.cancel.is_set():
            raise KeyboardInterrupt
        console.print("[yellow]Cancelling after in-flight seasons finish…[/yellow]")
        host.stop()

    signal.signal(signal.SIGINT, _handler)


def _print_summary(summary: RunSummary, report: bool) -> None:
    if report:
        typer.echo(text_report(summary))
    console.print(
        f"[green]Done:[/green] processed {summary.total_processed} of "
        f"{summary.total_queued} episodes ({summary.progress}%)"
    )


@app.command()
def run(
    config: str = CONFIG_OPTION,
    fpcalc_path: str = typer.Option(None, "--fpcalc-path", help="Path to fpcalc executable"),
    report: bool = typer.Option(False, "--report", help="Print a per-season report"),
    verbose: bool = VERBOSE_OPTION,
):
    """Analyze every queued season once."""
    from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

    _setup_logging(verbose)
    host = _build_host(config, fpcalc_path)
    _install_interrupt(host)

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task_id = progress.add_task("Detecting introductions…", total=100)

            def _on_progress(percent: float) -> None:
                progress.update(task_id, completed=percent)

            summary = host.run_now(_on_progress)
            progress.update(task_id, description="Done")
    except IntroScanError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    _print_summary(summary, report)


@app.command()
def serve(
    config: str = CONFIG_OPTION,
    at: str = typer.Option("00:00", "--at", help="Daily run time (HH:MM, local time)"),
    run_now: bool = typer.Option(False, "--run-now", help="Also run once at startup"),
    fpcalc_path: str = typer.Option(None, "--fpcalc-path", help="Path to fpcalc executable"),
    verbose: bool = VERBOSE_OPTION,
):
    """Run the analysis every day at a fixed time."""
    _setup_logging(verbose)
    try:
        trigger = DailyTrigger(parse_time_of_day(at))
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    host = _build_host(config, fpcalc_path)
    host.triggers = [trigger]
    _install_interrupt(host)

    if run_now:
        try:
            _print_summary(host.run_now(), report=False)
        except IntroScanError as e:
            console.print(f"[red]Error:[/red] {e}")

    host.serve(on_complete=lambda s: _print_summary(s, report=False))


@app.command()
def show(
    config: str = CONFIG_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of text"),
    output: str = typer.Option(None, "-o", "--output", help="Write JSON to this file"),
    pretty: bool = typer.Option(True, "--pretty/--compact"),
):
    """Show stored intros."""
    store = _load_store(config)
    context = PluginContext.from_config(store)
    context.queue.enqueue_all()
    episodes = {ep.episode_id: ep for season in context.queue.snapshot() for ep in season}
    intros = context.results.all()

    if as_json or output:
        json_str = export_json(intros, episodes, path=output, pretty=pretty)
        if output:
            console.print(f"[green]Wrote:[/green] {output}")
        else:
            typer.echo(json_str)
        return

    typer.echo(intro_report(intros, episodes))


@app.command(name="config")
def config_cmd(
    config: str = CONFIG_OPTION,
    library: list[str] = typer.Option(None, "--library", "-l", help="Library root (repeatable)"),
    parallelism: int = typer.Option(None, "--parallelism", help="Seasons analyzed at once"),
    season_zero: bool = typer.Option(None, "--season-zero/--no-season-zero"),
    regenerate: bool = typer.Option(
        None, "--regenerate/--no-regenerate", help="Rewrite all EDL files on the next run"
    ),
    output_mode: OutputMode = typer.Option(None, "--output-mode"),
    edl_action: EdlAction = typer.Option(None, "--edl-action"),
):
    """Show or update the configuration."""
    store = _load_store(config)
    cfg = store.configuration
    changed = False

    if library:
        cfg.libraries = [str(Path(p).expanduser().resolve()) for p in library]
        changed = True
    if parallelism is not None:
        cfg.max_parallelism = parallelism
        changed = True
    if season_zero is not None:
        cfg.analyze_season_zero = season_zero
        changed = True
    if regenerate is not None:
        cfg.regenerate_edl_files = regenerate
        changed = True
    if output_mode is not None:
        cfg.output_mode = output_mode
        changed = True
    if edl_action is not None:
        cfg.edl_action = edl_action
        changed = True

    if changed:
        try:
            store.save()
        except IntroScanError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
        console.print(f"[green]Wrote:[/green] {store.path}")

    for key, value in config_to_dict(cfg).items():
        typer.echo(f"{key:<34} {value}")


if __name__ == "__main__":
    app()
