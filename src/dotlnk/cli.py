"""CLI commands for dotlnk - a Git-backed dotfiles linker."""

import sys
from contextlib import contextmanager
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)
from rich.status import Status
from typing_extensions import Annotated

from . import __version__
from .config import DEFAULT_SYNC_MESSAGE, get_dotlnk_paths
from .core import DoctorResult, Lnk
from .exceptions import DotlnkError
from .logging_setup import setup_logging

# Global app and console instances
app = typer.Typer(help="dotlnk - a Git-backed dotfiles linker")
console = Console()

HostOption = Annotated[
    str,
    typer.Option(
        "--host", "-H", help="Manage the host-specific profile for this host"
    ),
]


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


def plural_s(count: int) -> str:
    return "" if count == 1 else "s"


def plural_y(count: int) -> str:
    return "y" if count == 1 else "ies"


def host_suffix(host: str) -> str:
    return f" (host: {host})" if host else ""


def report_error(error: DotlnkError) -> None:
    """Print a dotlnk error with its path and suggestion on separate lines."""
    typer.secho(f"Error: {error.message}", fg=typer.colors.RED, err=True)
    if error.path:
        typer.secho(f"  {error.path}", fg=typer.colors.WHITE, err=True)
    if error.suggestion:
        typer.secho(f"  {error.suggestion}", fg=typer.colors.CYAN, err=True)


@contextmanager
def dotlnk_errors() -> Iterator[None]:
    """Turn dotlnk errors into a red message and exit status 1."""
    try:
        yield
    except DotlnkError as e:
        report_error(e)
        raise typer.Exit(code=1)


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show debug output")
    ] = False,
) -> None:
    """Move dotfiles into a Git repository and symlink them back."""
    setup_logging(verbose)


# ============================================================================
# REPOSITORY COMMANDS
# ============================================================================


@app.command()
def init(
    remote: Annotated[
        str,
        typer.Option("--remote", "-r", help="Clone an existing dotfiles repository"),
    ] = "",
    force: Annotated[
        bool,
        typer.Option("--force", help="Clone even if managed files already exist"),
    ] = False,
    no_bootstrap: Annotated[
        bool,
        typer.Option("--no-bootstrap", help="Do not run bootstrap.sh after cloning"),
    ] = False,
) -> None:
    """Initialize the dotlnk repository, optionally from a remote."""
    with dotlnk_errors():
        lnk = Lnk()
        if not remote:
            lnk.init()
            typer.secho(
                f"Initialized dotlnk repository at {lnk.repo_path}",
                fg=typer.colors.GREEN,
            )
            _print_paths()
            return

        if force and lnk.has_user_content():
            typer.secho(
                "Warning: existing managed files will be replaced by the clone",
                fg=typer.colors.YELLOW,
                bold=True,
            )
        with Status(f"Cloning {remote}...", console=console):
            lnk.init(remote=remote, force=force)
        typer.secho(f"Cloned {remote} into {lnk.repo_path}", fg=typer.colors.GREEN)
        _print_paths()

        if no_bootstrap:
            typer.secho("Skipped bootstrap script", fg=typer.colors.YELLOW)
            return
        script = lnk.find_bootstrap_script()
        if script:
            typer.secho(f"Running {script}...", fg=typer.colors.BLUE)
            lnk.run_bootstrap_script(script)
            typer.secho("Bootstrap completed", fg=typer.colors.GREEN)


def _print_paths() -> None:
    paths = get_dotlnk_paths()
    typer.secho(f"  Home: {paths['home']}", fg=typer.colors.CYAN)
    typer.secho(f"  Repository: {paths['repo']}", fg=typer.colors.CYAN)


@app.command()
def bootstrap() -> None:
    """Run the repository's bootstrap script."""
    with dotlnk_errors():
        lnk = Lnk()
        script = lnk.find_bootstrap_script()
        if script is None:
            typer.secho("No bootstrap script found", fg=typer.colors.YELLOW)
            return
        typer.secho(f"Running {script}...", fg=typer.colors.BLUE)
        lnk.run_bootstrap_script(script)
    typer.secho("Bootstrap completed", fg=typer.colors.GREEN)


# ============================================================================
# DOTFILE MANAGEMENT
# ============================================================================


@app.command()
def add(
    paths: Annotated[List[Path], typer.Argument(help="Files or directories to add")],
    host: HostOption = "",
    recursive: Annotated[
        bool,
        typer.Option(
            "--recursive", "-r", help="Add the files inside directories one by one"
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Show what would be added"),
    ] = False,
) -> None:
    """Move files into the repository and replace them with symlinks."""
    with dotlnk_errors():
        lnk = Lnk(host=host)

        if dry_run:
            files = lnk.preview_add(paths, recursive=recursive)
            typer.secho(
                f"Would add {len(files)} file{plural_s(len(files))}"
                f"{host_suffix(host)}:",
                fg=typer.colors.WHITE,
                bold=True,
            )
            for f in files:
                typer.secho(f"  {f}", fg=typer.colors.CYAN)
            typer.secho("To proceed: run without --dry-run", fg=typer.colors.BLUE)
            return

        if recursive:
            _add_recursive(lnk, paths)
        elif len(paths) == 1:
            with Status(f"Adding {paths[0].name}...", console=console):
                lnk.add(paths[0])
            typer.secho(
                f"Added {paths[0].name} to dotlnk{host_suffix(host)}",
                fg=typer.colors.GREEN,
            )
        else:
            with Status(f"Adding {len(paths)} items...", console=console):
                lnk.add_multiple(paths)
            typer.secho(
                f"Added {len(paths)} items to dotlnk{host_suffix(host)}",
                fg=typer.colors.GREEN,
            )


def _add_recursive(lnk: Lnk, paths: List[Path]) -> None:
    """Add directory contents with a progress bar."""
    before = set(lnk.list())
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Adding files", total=None)

        def report(current: int, total: int, name: str) -> None:
            progress.update(
                task, total=total, completed=current - 1, description=f"Adding {name}"
            )

        lnk.add_recursive(paths, progress=report)

    added = len(set(lnk.list()) - before)
    typer.secho(
        f"Added {added} file{plural_s(added)} recursively{host_suffix(lnk.host)}",
        fg=typer.colors.GREEN,
    )


@app.command()
def rm(
    path: Annotated[Path, typer.Argument(help="Symlink of a managed file")],
    host: HostOption = "",
    force: Annotated[
        bool,
        typer.Option(
            "--force", "-f", help="Remove from tracking even if the symlink is gone"
        ),
    ] = False,
) -> None:
    """Stop managing a file and move it back into place."""
    with dotlnk_errors():
        lnk = Lnk(host=host)
        if force:
            lnk.remove_force(path)
            typer.secho(
                f"Force removed {path.name} from dotlnk{host_suffix(host)}",
                fg=typer.colors.GREEN,
            )
        else:
            lnk.remove(path)
            typer.secho(
                f"Removed {path.name} from dotlnk{host_suffix(host)}",
                fg=typer.colors.GREEN,
            )


@app.command("list")
def list_entries(
    host: HostOption = "",
    all_profiles: Annotated[
        bool,
        typer.Option("--all", "-a", help="List the common and every host profile"),
    ] = False,
) -> None:
    """List the files managed by dotlnk."""
    with dotlnk_errors():
        if not all_profiles:
            entries = Lnk(host=host).list()
            _print_entries(entries, "common" if not host else f"host: {host}")
            return

        common = Lnk()
        _print_entries(common.list(), "common")
        for name in common.list_hosts():
            _print_entries(Lnk(host=name).list(), f"host: {name}")


def _print_entries(entries: List[str], label: str) -> None:
    if not entries:
        typer.secho(f"No files managed by dotlnk ({label})", fg=typer.colors.YELLOW)
        return
    typer.secho(
        f"{len(entries)} managed item{plural_s(len(entries))} ({label}):",
        fg=typer.colors.WHITE,
        bold=True,
    )
    for entry in entries:
        typer.secho(f"  {entry}", fg=typer.colors.GREEN)


# ============================================================================
# SYNCHRONIZATION
# ============================================================================


@app.command()
def status() -> None:
    """Show how the repository compares to its remote."""
    with dotlnk_errors():
        info = Lnk().status()

    typer.secho(f"Remote: {info['remote']}", fg=typer.colors.WHITE, bold=True)
    if info["dirty"]:
        typer.secho("Repository has uncommitted changes", fg=typer.colors.YELLOW)
        typer.secho("  → Run 'dotlnk push' to commit and sync", fg=typer.colors.CYAN)

    if info["ahead"] == 0 and info["behind"] == 0:
        if not info["dirty"]:
            typer.secho("Repository is up to date", fg=typer.colors.GREEN)
        return
    if info["ahead"]:
        typer.secho(
            f"{info['ahead']} commit{plural_s(info['ahead'])} ahead",
            fg=typer.colors.YELLOW,
        )
    if info["behind"]:
        typer.secho(
            f"{info['behind']} commit{plural_s(info['behind'])} behind",
            fg=typer.colors.YELLOW,
        )
        typer.secho("  → Run 'dotlnk pull' to update", fg=typer.colors.CYAN)


@app.command()
def diff() -> None:
    """Show uncommitted changes in the repository."""
    with dotlnk_errors():
        output = Lnk().diff(color=sys.stdout.isatty())

    if not output:
        typer.secho("No uncommitted changes", fg=typer.colors.GREEN)
        return
    typer.echo(output)


@app.command()
def push(
    message: Annotated[
        Optional[str], typer.Argument(help="Commit message for pending changes")
    ] = None,
) -> None:
    """Commit pending changes and push them to the remote."""
    with dotlnk_errors():
        with Status("Pushing to remote...", console=console):
            Lnk().push(message or DEFAULT_SYNC_MESSAGE)
    typer.secho("Pushed changes to remote", fg=typer.colors.GREEN)


@app.command()
def pull(host: HostOption = "") -> None:
    """Pull from the remote and restore missing symlinks."""
    with dotlnk_errors():
        with Status("Pulling from remote...", console=console):
            restored = Lnk(host=host).pull()

    typer.secho(
        f"Pulled changes from remote{host_suffix(host)}", fg=typer.colors.GREEN
    )
    if restored:
        typer.secho(
            f"Restored {len(restored)} symlink{plural_s(len(restored))}:",
            fg=typer.colors.WHITE,
            bold=True,
        )
        for entry in restored:
            typer.secho(f"  {entry}", fg=typer.colors.CYAN)
    else:
        typer.secho("All symlinks already in place", fg=typer.colors.GREEN)


# ============================================================================
# MAINTENANCE
# ============================================================================


@app.command()
def doctor(
    host: HostOption = "",
    dry_run: Annotated[
        bool, typer.Option("--dry-run", "-n", help="Only report problems")
    ] = False,
) -> None:
    """Find and fix invalid entries and broken symlinks."""
    with dotlnk_errors():
        lnk = Lnk(host=host)
        result = lnk.preview_doctor() if dry_run else lnk.doctor()

    if not result.has_issues():
        typer.secho(
            f"Repository is healthy{host_suffix(host)}", fg=typer.colors.GREEN
        )
        return

    if dry_run:
        _print_doctor_preview(result, host)
    else:
        _print_doctor_fixes(result, host)


def _print_doctor_preview(result: DoctorResult, host: str) -> None:
    total = result.total_issues()
    typer.secho(
        f"Found {total} issue{plural_s(total)}{host_suffix(host)}:",
        fg=typer.colors.WHITE,
        bold=True,
    )
    if result.broken_symlinks:
        count = len(result.broken_symlinks)
        typer.secho(f"Would fix {count} broken symlink{plural_s(count)}:")
        for entry in result.broken_symlinks:
            typer.secho(f"  {entry}", fg=typer.colors.YELLOW)
    if result.invalid_entries:
        count = len(result.invalid_entries)
        typer.secho(f"Would remove {count} invalid entr{plural_y(count)}:")
        for entry in result.invalid_entries:
            typer.secho(f"  {entry}", fg=typer.colors.RED)
    typer.secho("To proceed: run without --dry-run", fg=typer.colors.BLUE)


def _print_doctor_fixes(result: DoctorResult, host: str) -> None:
    total = result.total_issues()
    typer.secho(
        f"Fixed {total} issue{plural_s(total)}{host_suffix(host)}",
        fg=typer.colors.GREEN,
        bold=True,
    )
    if result.broken_symlinks:
        count = len(result.broken_symlinks)
        typer.secho(f"Restored {count} broken symlink{plural_s(count)}:")
        for entry in result.broken_symlinks:
            typer.secho(f"  {entry}", fg=typer.colors.CYAN)
    if result.invalid_entries:
        count = len(result.invalid_entries)
        typer.secho(f"Removed {count} invalid entr{plural_y(count)}:")
        for entry in result.invalid_entries:
            typer.secho(f"  {entry}", fg=typer.colors.RED)
    typer.secho("Use 'dotlnk push' to sync the fix", fg=typer.colors.BLUE)


@app.command()
def version() -> None:
    """Show dotlnk version."""
    try:
        version_str = get_version("dotlnk")
    except PackageNotFoundError:
        version_str = __version__

    typer.secho(f"dotlnk version {version_str}", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
