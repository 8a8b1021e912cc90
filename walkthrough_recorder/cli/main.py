"""Walkthrough Recorder CLI — Entry point.

Usage:
    walkthrough sessions list
    walkthrough sessions show <name>
    walkthrough sessions events <name>
    walkthrough sessions export <name> [-o FILE]
    walkthrough sessions import <file.json> <name>
    walkthrough sessions delete <name>
    walkthrough config show
"""

from __future__ import annotations

import typer
from rich.console import Console

from walkthrough_recorder.cli.commands import config, sessions

app = typer.Typer(
    name="walkthrough",
    help="Walkthrough Recorder — manage narrated 3D inspection recordings.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

console = Console()

app.add_typer(sessions.app, name="sessions")
app.add_typer(config.app, name="config")


@app.callback()
def main_callback() -> None:
    pass


if __name__ == "__main__":
    app()
