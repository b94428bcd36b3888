# src/gitsops/cli.py: Command-Line Interface (CLI) entry point.
# Implemented using Typer, this module provides the 'git-sops' command. git
# calls the smudge/clean/textconv subcommands once per file; operators call
# init, decrypt and update. stdout is reserved for file content: every message
# goes to the stderr console, and filter output is written only after the
# whole file has been transformed.

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, NoReturn, Optional

import click
import typer
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import Settings, load_settings
from .engine.sops import SopsEngine
from .filters import FilterCore
from .gitwrap import GitRepo
from .preflight import Environment, check_environment
from .registration import FilterRegistration, GitLocalConfig
from .repoops import RepoOps
from .util.errors import GitSopsError
from .util.log import setup_logging

FILTER_COMMANDS = ("smudge", "clean", "textconv")
USAGE = "Usage: git-sops {init|smudge|clean|textconv|update|decrypt}"

app = typer.Typer(
    name="git-sops",
    help="Transparent sops encryption for files routed through a git filter.",
    add_completion=False,
)
console = Console(stderr=True)


@dataclass
class Runtime:
    settings: Settings
    env: Environment
    repo: GitRepo
    engine: SopsEngine
    core: FilterCore
    ops: RepoOps


def load_runtime(assume_yes: bool = False) -> Runtime:
    """Loads settings, checks preconditions and wires the collaborators."""
    settings = load_settings()
    setup_logging(settings.logging.level, settings.logging.json_format)
    env = check_environment(settings)
    repo = GitRepo(env.root)
    engine = SopsEngine(
        config_path=env.sops_config,
        key_file=env.key_file,
        marker=settings.encryption_marker,
        binary=env.sops_binary,
        attempts=settings.retry.attempts,
        backoff_sec=settings.retry.backoff_sec,
        cwd=env.root,
        assume_yes=assume_yes,
    )
    core = FilterCore(repo, engine, detect_content_type=settings.detect_content_type)
    ops = RepoOps(repo, engine, settings, detector=core.detector)
    return Runtime(settings=settings, env=env, repo=repo, engine=engine, core=core, ops=ops)


def fail(e: GitSopsError) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", highlight=False)
    raise typer.Exit(e.exit_code)


def emit(data: bytes) -> None:
    stream = typer.get_binary_stream("stdout")
    stream.write(data)
    stream.flush()


def version_callback(value: bool):
    """Print the version and exit."""
    if value:
        console.print(f"git-sops version: {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True
    ),
):
    """
    git-sops: keep secrets encrypted in history and readable in the working tree.
    """
    if ctx.invoked_subcommand is None:
        console.print(USAGE, highlight=False, markup=False)
        raise typer.Exit(0)


@app.command()
def init(
    decrypt: Optional[bool] = typer.Option(
        None, "--decrypt/--no-decrypt", help="Decrypt existing files without asking."
    ),
):
    """Register the filter and diff driver in the local git config."""
    try:
        rt = load_runtime()
        registration = FilterRegistration(rt.settings.filter_name)
        rt.ops.init(registration, GitLocalConfig(rt.repo), decrypt=decrypt)
    except GitSopsError as e:
        fail(e)


@app.command()
def smudge(path: Optional[str] = typer.Argument(None, help="Path of the file being checked out.")):
    """Decrypt a blob from stdin to stdout (git smudge filter)."""
    try:
        rt = load_runtime()
        data = typer.get_binary_stream("stdin").read()
        output = rt.core.smudge(path, data)
    except GitSopsError as e:
        fail(e)
    emit(output)


@app.command()
def clean(path: Optional[str] = typer.Argument(None, help="Path of the file being staged.")):
    """Encrypt working-tree content from stdin to stdout (git clean filter)."""
    try:
        rt = load_runtime()
        data = typer.get_binary_stream("stdin").read()
        output = rt.core.clean(path, data)
    except GitSopsError as e:
        fail(e)
    emit(output)


@app.command()
def textconv(file: Optional[str] = typer.Argument(None, help="Temporary file holding the blob.")):
    """Print a decrypted view of a blob for 'git diff' (diff textconv)."""
    try:
        rt = load_runtime()
        data = Path(file).read_bytes() if file else b""
        output = rt.core.textconv(file, data)
    except OSError as e:
        console.print(f"[bold red]Error:[/bold red] Cannot read {escape(str(file))}: {escape(str(e))}")
        raise typer.Exit(1)
    except GitSopsError as e:
        fail(e)
    emit(output)


@app.command()
def update(
    paths: Optional[List[str]] = typer.Argument(None, help="Files to re-key. Defaults to every encrypted file."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Answer yes to every prompt."),
):
    """Rotate keys after the recipient config changed."""
    try:
        rt = load_runtime(assume_yes=yes)
        rt.ops.update_keys(paths or [], assume_yes=yes)
    except GitSopsError as e:
        fail(e)


@app.command()
def decrypt():
    """Decrypt every encrypted file in the working tree."""
    try:
        rt = load_runtime()
        rt.ops.decrypt_repo()
    except GitSopsError as e:
        fail(e)


def run_cli():
    """Main entry point for the CLI application."""
    try:
        rv = app(standalone_mode=False)
    except click.UsageError as e:
        command = e.ctx.info_name if e.ctx is not None else None
        console.print(f"Error: {e.format_message()}", highlight=False, markup=False)
        console.print(USAGE, highlight=False, markup=False)
        sys.exit(1 if command in FILTER_COMMANDS else 0)
    except click.Abort:
        console.print("Aborted.")
        sys.exit(1)
    except GitSopsError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}", highlight=False)
        sys.exit(e.exit_code)
    sys.exit(rv if isinstance(rv, int) else 0)


if __name__ == "__main__":
    run_cli()
