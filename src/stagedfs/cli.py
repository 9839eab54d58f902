"""CLI commands using Typer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, NoReturn

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from stagedfs import __version__
from stagedfs.console import Output
from stagedfs.context import create_context
from stagedfs.errors import FsError
from stagedfs.fs import Fs, from_fs
from stagedfs.manifest import Manifest, apply_manifest, stage_manifest

if TYPE_CHECKING:
    from stagedfs.context import AppContext

app = typer.Typer(
    name="stagedfs",
    help="Stage directory trees in memory and commit them to disk",
    no_args_is_help=True,
)

console = Console()
output = Output(console)

# Errors reported to the user instead of a traceback
_EXPECTED_ERRORS = (FsError, OSError, ValidationError, yaml.YAMLError)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"stagedfs v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log every storage operation")
    ] = False,
) -> None:
    """Stage directory trees in memory and commit them to disk."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


def _fail(message: str, error: Exception) -> NoReturn:
    """Report an error and exit with status 1."""
    output.show_error(f"{message}: {error}")
    raise typer.Exit(1) from error


def _parse_root(ctx: AppContext, root: Path) -> Fs:
    """Parse a root directory or exit.

    Args:
        ctx: Application context.
        root: Directory to parse.

    Returns:
        Fs reflecting the directory.

    Raises:
        typer.Exit: If the directory cannot be parsed.
    """
    fs = Fs(root, ctx.storage)
    try:
        fs.parse()
    except _EXPECTED_ERRORS as e:
        _fail(f"Cannot read '{root}'", e)
    return fs


# ============================================================================
# Inspection Commands
# ============================================================================


@app.command("tree")
def tree(
    root: Annotated[Path, typer.Argument(help="Directory to display")],
    depth: Annotated[int, typer.Option("--depth", "-d", help="Levels to show (-1 for all)")] = -1,
    _context=None,
) -> None:
    """Display a directory as a tree."""
    ctx = _context or create_context()
    fs = _parse_root(ctx, root)
    output.show_tree(fs, depth)


@app.command("ls")
def ls(
    root: Annotated[Path, typer.Argument(help="Directory to list")],
    depth: Annotated[int, typer.Option("--depth", "-d", help="Levels to list (-1 for all)")] = -1,
    absolute: Annotated[
        bool, typer.Option("--absolute", "-a", help="Print absolute paths")
    ] = False,
    _context=None,
) -> None:
    """List every path below a directory, sorted."""
    ctx = _context or create_context()
    fs = _parse_root(ctx, root)
    output.show_paths(fs.children_paths(depth, absolute))


# ============================================================================
# Mutation Commands
# ============================================================================


@app.command("apply")
def apply(
    manifest: Annotated[Path, typer.Argument(help="YAML manifest to apply")],
    dry_run: Annotated[
        bool, typer.Option("--dry-run", "-n", help="Show the staged result without writing")
    ] = False,
    _context=None,
) -> None:
    """Apply a manifest of creations and deletions."""
    ctx = _context or create_context()

    try:
        loaded = Manifest.from_file(manifest)
        if dry_run:
            fs = stage_manifest(loaded, ctx.storage)
        else:
            fs = apply_manifest(loaded, ctx.storage)
    except _EXPECTED_ERRORS as e:
        _fail(f"Failed to apply '{manifest}'", e)

    if dry_run:
        output.show_tree(fs)
        output.show_pending(fs)
        output.show_info("Dry run, nothing written")
        return
    output.show_success(f"Applied {len(loaded.create)} creation(s) and "
                        f"{len(loaded.delete)} deletion(s) to {fs.absolute_path}")


@app.command("mirror")
def mirror(
    source: Annotated[Path, typer.Argument(help="Directory to mirror")],
    target: Annotated[Path, typer.Argument(help="Directory to mirror into")],
    content: Annotated[
        bool, typer.Option("--content/--no-content", help="Copy file contents")
    ] = True,
    recursive: Annotated[
        bool, typer.Option("--recursive/--no-recursive", help="Mirror subdirectories")
    ] = True,
    overwrite: Annotated[
        bool, typer.Option("--overwrite", "-f", help="Replace existing target files")
    ] = False,
    _context=None,
) -> None:
    """Mirror a directory's structure and contents into another directory."""
    ctx = _context or create_context()
    source_fs = _parse_root(ctx, source)

    try:
        target_fs = from_fs(
            target,
            source_fs,
            content=content,
            recursive=recursive,
            overwrite=overwrite,
            storage=ctx.storage,
        )
        target_fs.flush()
    except _EXPECTED_ERRORS as e:
        _fail(f"Failed to mirror '{source}'", e)

    count = len(target_fs.children_paths())
    output.show_success(f"Mirrored {count} path(s) into {target_fs.absolute_path}")


@app.command("rm")
def rm(
    root: Annotated[Path, typer.Argument(help="Root directory")],
    path: Annotated[str, typer.Argument(help="Path to remove, relative to root")],
    recursive: Annotated[
        bool, typer.Option("--recursive", "-r", help="Remove directories and their contents")
    ] = False,
    immediate: Annotated[
        bool, typer.Option("--immediate", help="Remove in one call instead of staging")
    ] = False,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
    _context=None,
) -> None:
    """Remove a path below a root directory."""
    ctx = _context or create_context()
    fs = _parse_root(ctx, root)

    try:
        descriptor = fs.find(path)
    except _EXPECTED_ERRORS as e:
        _fail(f"Invalid path '{path}'", e)
    if descriptor is None or descriptor.is_root:
        output.show_error(f"'{path}' not found under {fs.absolute_path}")
        raise typer.Exit(1)

    if not yes and not output.confirm(f"Remove {descriptor.path(absolute=True)}?"):
        output.show_info("Aborted")
        return

    try:
        if immediate:
            descriptor.remove(recursive)
        else:
            descriptor.delete(recursive)
            fs.flush(remove=True)
    except _EXPECTED_ERRORS as e:
        _fail(f"Failed to remove '{path}'", e)
    output.show_success(f"Removed {path}")


if __name__ == "__main__":
    app()
