"""
scribeline.cli - Typer CLI entry point.

Provides the transcribe, init-config and doctor subcommands.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from scribeline import __version__
from scribeline.config import (
    CONFIG_FILENAME,
    create_default_config,
    find_config_file,
    load_config,
    resolve_api_key,
    write_config,
)
from scribeline.exceptions import ConfigError
from scribeline.logging import configure_logging
from scribeline.utils import format_size

app = typer.Typer(
    name="scribeline",
    help="Transcribe audio and video files with Gemini.\n\n"
    "Large files are split into segments, transcribed in order, and joined "
    "into a single plain-text transcript.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"scribeline {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Scribeline - chunked media transcription."""
    pass


@app.command("transcribe")
def transcribe(
    media_file: Path = typer.Argument(..., help="Audio or video file to transcribe"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write the transcript to this file instead of stdout"
    ),
    save: bool = typer.Option(
        False, "--save", "-s", help="Write the transcript to <file>.txt next to the input"
    ),
    json_output: Path | None = typer.Option(
        None, "--json", help="Also write the result document as JSON"
    ),
    config_path: Path | None = typer.Option(
        None, "--config", "-c", help=f"Path to {CONFIG_FILENAME} (searched upward if not set)"
    ),
    backend: str | None = typer.Option(
        None, "--backend", "-b", help="Backend: upload (file API) or inline (base64)"
    ),
    model: str | None = typer.Option(None, "--model", "-m", help="Gemini model name"),
    language: str | None = typer.Option(
        None, "--language", "-l", help="Language to write the transcript in"
    ),
    mime_type: str | None = typer.Option(
        None, "--mime-type", help="Declared MIME type (guessed from the filename if not set)"
    ),
    deadline: float | None = typer.Option(
        None, "--deadline", help="Abort the whole request after this many seconds"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Transcribe an audio or video file."""
    configure_logging(verbose)

    from scribeline.io import transcript_path_for, write_json, write_text
    from scribeline.pipeline import PipelineState, TranscriptionPipeline

    try:
        config = load_config(
            config_path or find_config_file(),
            overrides={
                "backend": backend,
                "model": model,
                "language": language,
                "deadline_seconds": deadline,
            },
        )
        api_key = resolve_api_key(config)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    media_file = media_file.expanduser().resolve()
    if media_file.exists():
        console.print(
            f"[cyan]Transcribing {media_file.name}[/cyan] "
            f"[dim]({format_size(media_file.stat().st_size)}, {config.backend} backend, "
            f"{config.model})[/dim]"
        )

    with console.status("Starting...") as status:

        def on_progress(state: PipelineState, label: str) -> None:
            status.update(label)
            console.print(f"[dim]  {label}[/dim]")

        pipeline = TranscriptionPipeline(config, api_key, on_progress=on_progress)
        outcome = pipeline.transcribe_file(media_file, mime_type)

    if json_output:
        write_json(json_output, outcome.to_dict())

    if not outcome.ok:
        if outcome.timed_out:
            console.print(f"[red]Timed out: {outcome.error}[/red]")
        else:
            console.print(f"[red]Error: {outcome.error}[/red]")
        raise typer.Exit(1)

    destination = output or (transcript_path_for(media_file) if save else None)
    if destination:
        write_text(destination, outcome.transcript or "")
        console.print(
            f"\n[green]✓[/green] Transcribed {outcome.segment_count} segment(s) → {destination}"
        )
    else:
        console.print()
        console.print(outcome.transcript, markup=False, highlight=False)
        console.print(f"\n[green]✓[/green] Transcribed {outcome.segment_count} segment(s)")


@app.command("init-config")
def init_config(
    path: Path = typer.Option(Path("."), "--path", "-d", help="Directory to write the config in"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
) -> None:
    """Write a default scribeline.yaml."""
    config_file = path / CONFIG_FILENAME
    if config_file.exists() and not force:
        console.print(f"[red]Error: '{config_file}' already exists[/red]")
        raise typer.Exit(1)

    write_config(create_default_config(), config_file)
    console.print(f"[green]✓[/green] Created {config_file}")
    console.print("[dim]  Set GEMINI_API_KEY in your environment before transcribing[/dim]")


@app.command("doctor")
def run_doctor(
    config_path: Path | None = typer.Option(
        None, "--config", "-c", help=f"Path to {CONFIG_FILENAME} (searched upward if not set)"
    ),
) -> None:
    """Check dependencies and environment setup."""
    console.print("[cyan]Running preflight checks...[/cyan]\n")

    from scribeline.validation import run_preflight_checks

    try:
        config = load_config(config_path or find_config_file())
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    results = run_preflight_checks(config)
    checks = results["checks"]

    table = Table(title="Dependency Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Version/Details")

    ffmpeg = checks["ffmpeg"]
    if "error" in ffmpeg:
        table.add_row("FFmpeg", "✗ Missing", ffmpeg.get("install_hint") or ffmpeg["error"])
    else:
        table.add_row("FFmpeg", "✓ Installed", ffmpeg.get("ffmpeg_version", "unknown"))
        table.add_row("FFprobe", "✓ Installed", ffmpeg.get("ffprobe_version", "unknown"))

    backend = checks["backend"]
    if "error" in backend:
        table.add_row(
            f"Backend ({config.backend})", "✗ Missing", backend.get("install_hint") or ""
        )
    else:
        table.add_row(f"Backend ({config.backend})", "✓ Installed", backend["module"])

    api_key = checks["api_key"]
    if api_key["present"]:
        table.add_row("API key", "✓ Set", api_key["env_var"])
    else:
        table.add_row("API key", "✗ Missing", api_key.get("error", ""))

    disk = checks["disk_space"]
    disk_status = "✓ OK" if disk["sufficient"] else "✗ Low"
    table.add_row("Temp disk space", disk_status, f"{disk['available_mb']} MB free")

    console.print(table)

    if results["passed"]:
        console.print("\n[green]✓ All checks passed[/green]")
    else:
        console.print("\n[yellow]⚠ Some checks failed[/yellow]")
        console.print("[dim]Fix the issues above before transcribing[/dim]")
        raise typer.Exit(1)
