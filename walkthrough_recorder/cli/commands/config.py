"""CLI — Configuration inspection."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.syntax import Syntax

app = typer.Typer(help="Inspect the effective configuration.")
console = Console()


@app.command("show")
def show_config(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
) -> None:
    """Print the effective settings (defaults + YAML + environment) as JSON."""
    from walkthrough_recorder.config import Settings

    settings = Settings.load(config_file=config)
    json_str = json.dumps(settings.model_dump(mode="json"), indent=2)
    console.print(Syntax(json_str, "json"))
