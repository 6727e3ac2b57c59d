"""CLI commands for vendoring directories of other repositories with git-cross."""

from __future__ import annotations

import logging
import subprocess
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .context import CrossContext
from .crossfile import Crossfile, ReplayStep
from .errors import CrossError, PatchNotFoundError, UserInputError
from .operations import (
    Reporter,
    add_patch,
    prune as prune_patches,
    remote_rows,
    remove_patch,
    sync_patches,
    use_remote,
)
from .push import PushOptions, push_patch
from .registry import Patch, Registry
from .settings import CrossSettings
from .status import collect_diffs, collect_status
from .tools.vcs import GitRepository
from .utils.paths import relative_to_cwd, repo_relative

APP_HELP = "Vendor directories of other git repositories using sparse worktrees."

app = typer.Typer(help=APP_HELP, no_args_is_help=True)


@dataclass(frozen=True, slots=True)
class CliState:
    """Root options shared by every command of one invocation."""

    config: Optional[Path] = None
    dry: bool = False
    verbose: bool = False


# ------------------------------------------------------------------ output
def _info(message: str) -> None:
    typer.secho("==> ", fg=typer.colors.BLUE, bold=True, nl=False)
    typer.echo(message)


def _success(message: str) -> None:
    typer.secho("==> ", fg=typer.colors.GREEN, bold=True, nl=False)
    typer.echo(message)


def _warning(message: str) -> None:
    typer.secho("==> WARNING: ", fg=typer.colors.YELLOW, bold=True, nl=False, err=True)
    typer.echo(message, err=True)


def _error(message: str) -> None:
    typer.secho("==> ERROR: ", fg=typer.colors.RED, bold=True, nl=False, err=True)
    typer.echo(message, err=True)


REPORTER = Reporter(info=_info, success=_success, warning=_warning, error=_error)


def _console() -> Console:
    return Console(soft_wrap=False)


def _patch_table(patches: Sequence[Patch]) -> Table:
    table = Table("REMOTE", "REMOTE PATH", "LOCAL PATH", "WORKTREE", "BRANCH")
    for patch in patches:
        table.add_row(patch.remote, patch.remote_path, patch.local_path, patch.worktree, patch.branch)
    return table


@contextmanager
def _handle_errors() -> Iterator[None]:
    """Turn core failures into an error line and a non-zero exit."""
    try:
        yield
    except CrossError as error:
        _error(str(error))
        raise typer.Exit(code=1) from error


# ----------------------------------------------------------------- context
def _state(ctx: typer.Context) -> CliState:
    state = ctx.find_root().obj
    return state if isinstance(state, CliState) else CliState()


def _settings(ctx: typer.Context) -> CrossSettings:
    state = _state(ctx)
    repo = GitRepository.discover()
    return CrossSettings.load(repo.root, state.config, dry_run=state.dry)


def _context(ctx: typer.Context) -> CrossContext:
    return CrossContext.from_settings(_settings(ctx))


def _local_arg(settings: CrossSettings, value: str) -> str:
    """Translate a path typed from the current directory to a repository-relative one."""
    if not value:
        return ""
    cwd = Path.cwd().resolve()
    try:
        prefix = cwd.relative_to(settings.repo_root).as_posix()
    except ValueError:
        prefix = ""
    if prefix == ".":
        prefix = ""
    return repo_relative(value, prefix)


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML settings file (defaults to .cross.yaml in the repository root).",
    ),
    dry: bool = typer.Option(
        False,
        "--dry",
        help="Print shell/navigation commands instead of running them.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging and stash the root options for subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = CliState(config=config, dry=dry, verbose=verbose)


# ---------------------------------------------------------------- commands
@app.command()
def version() -> None:
    """Print the git-cross version."""
    typer.echo(__version__)


@app.command()
def init(ctx: typer.Context) -> None:
    """Create an empty Crossfile if none exists."""
    with _handle_errors():
        try:
            root = GitRepository.discover().root
        except UserInputError:
            root = Path.cwd()
        settings = CrossSettings.load(root, _state(ctx).config)
        crossfile = Crossfile(settings.crossfile_path, settings.command_prefix, settings.crossfile_header)
        if crossfile.init():
            _success("Crossfile initialized.")
        else:
            _info("Crossfile already exists.")


@app.command()
def use(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the remote."),
    url: str = typer.Argument(..., help="URL of the remote repository."),
) -> None:
    """Add a remote repository (or update its URL) and fetch its default branch."""
    with _handle_errors():
        use_remote(_context(ctx), name, url, REPORTER)
    _success("Remote added and Crossfile updated.")


@app.command()
def patch(
    ctx: typer.Context,
    spec: str = typer.Argument(..., help="remote[:branch]:remote_path"),
    local_path: Optional[str] = typer.Argument(
        None,
        help="Local directory to vendor into (defaults to the last remote path component).",
    ),
) -> None:
    """Vendor a directory from a remote."""
    with _handle_errors():
        context = _context(ctx)
        target = _local_arg(context.settings, local_path) if local_path else None
        add_patch(context, spec, target, REPORTER)
    _success("Patch successful.")


@app.command()
def sync(
    ctx: typer.Context,
    local_path: str = typer.Argument("", help="Only sync the patch at this path."),
) -> None:
    """Update patches from upstream."""
    with _handle_errors():
        context = _context(ctx)
        outcomes = sync_patches(context, _local_arg(context.settings, local_path), REPORTER)
    if not outcomes:
        _info("No patches found to sync.")
        return
    failed = [outcome for outcome in outcomes if not outcome.ok]
    if failed:
        _error(f"{len(failed)} of {len(outcomes)} patch(es) failed to sync.")
        raise typer.Exit(code=1)
    _success("Sync completed.")


@app.command()
def remove(
    ctx: typer.Context,
    local_path: str = typer.Argument(..., help="Local path of the patch to remove."),
) -> None:
    """Remove a patch, its worktree, its local directory and its Crossfile entry."""
    with _handle_errors():
        context = _context(ctx)
        remove_patch(context, _local_arg(context.settings, local_path), REPORTER)
    _success("Patch removed successfully.")


@app.command()
def prune(
    ctx: typer.Context,
    remote: Optional[str] = typer.Argument(None, help="Remove every patch of this remote, then the remote."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask before removing unused remotes."),
) -> None:
    """Prune unused remotes and worktrees, or every patch of one remote."""

    def _confirm(names: List[str]) -> bool:
        _info(f"Unused remotes: {', '.join(names)}")
        return yes or typer.confirm("Remove these remotes?", default=False)

    with _handle_errors():
        result = prune_patches(_context(ctx), remote, confirm=_confirm, report=REPORTER)
    if remote:
        _success(f"Remote {remote} and {len(result.removed_patches)} patch(es) pruned successfully.")
    else:
        _success("Worktree pruning complete.")


@app.command("list")
def list_patches(ctx: typer.Context) -> None:
    """Show configured remotes and patches."""
    with _handle_errors():
        context = _context(ctx)
        registry = context.registry.load()
        rows = remote_rows(context)

    console = _console()
    if rows:
        _info("Configured Remotes:")
        table = Table("NAME", "URL")
        for name, url in rows:
            table.add_row(name, url)
        console.print(table)
    if not registry.patches:
        typer.echo("No patches configured.")
        return
    _info("Configured Patches:")
    console.print(_patch_table(registry.patches))


@app.command()
def status(ctx: typer.Context) -> None:
    """Show drift, upstream position and conflicts for every patch."""
    with _handle_errors():
        context = _context(ctx)
        registry = context.registry.load()
        if not registry.patches:
            typer.echo("No patches configured.")
            return
        results = collect_status(context.settings, context.backends.inspector, registry.patches)

    table = Table("LOCAL PATH", "DIFF", "UPSTREAM", "CONFLICTS")
    for item in results:
        table.add_row(item.patch.local_path, item.diff.value, item.upstream, item.conflicts_label)
    _console().print(table)
    failed = [item for item in results if item.error]
    for item in failed:
        _error(f"{item.patch.local_path}: {item.error}")
    if failed:
        raise typer.Exit(code=1)


@app.command()
def diff(
    ctx: typer.Context,
    local_path: str = typer.Argument("", help="Only diff the patch at this path."),
) -> None:
    """Show changes between the upstream worktree and the local copy."""
    with _handle_errors():
        context = _context(ctx)
        registry = context.registry.load()
        key = _local_arg(context.settings, local_path)
        if key:
            selected = registry.find(key)
            if selected is None:
                raise PatchNotFoundError(f"Patch not found for path: {key}")
            patches = [selected]
        else:
            patches = list(registry.patches)
        results = collect_diffs(context.settings, context.backends.inspector, patches)

    failed = False
    for item in results:
        if item.error:
            _error(item.error)
            failed = True
        elif item.text:
            typer.echo(item.text, nl=not item.text.endswith("\n"))
    if failed:
        raise typer.Exit(code=1)


@app.command()
def push(
    ctx: typer.Context,
    local_path: str = typer.Argument("", help="Local path of the patch (defaults to the first patch)."),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Push to this branch instead."),
    force: bool = typer.Option(False, "--force", "-f", help="Force the push."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Commit message to use."),
) -> None:
    """Push local changes of a patch back to its upstream."""

    def _confirm(worktree_status: str) -> bool:
        typer.echo(worktree_status.rstrip("\n") or "(no changes)")
        return typer.confirm("Run push?", default=False)

    with _handle_errors():
        context = _context(ctx)
        options = PushOptions(
            local_path=_local_arg(context.settings, local_path),
            branch=branch,
            force=force,
            yes=yes,
            message=message,
        )
        outcome = push_patch(
            context.settings,
            context.backends,
            context.registry.load(),
            options,
            confirm=_confirm,
            report=_info,
        )
    if outcome.cancelled:
        _info("Push cancelled.")
        return
    _success("Push completed.")


@app.command()
def replay(ctx: typer.Context) -> None:
    """Re-execute every command recorded in the Crossfile."""
    state = _state(ctx)
    with _handle_errors():
        settings = _settings(ctx)
        crossfile = Crossfile(settings.crossfile_path, settings.command_prefix, settings.crossfile_header)
        if not crossfile.exists():
            typer.echo("No Crossfile found.")
            return

        _info("Replaying Crossfile...")
        root_args: List[str] = []
        if state.config is not None:
            root_args.extend(["--config", str(state.config.resolve())])
        if state.verbose:
            root_args.append("--verbose")

        def _run_tool(argv: Sequence[str]) -> int:
            command = [sys.executable, "-m", "cross", *root_args, *argv]
            return subprocess.run(command, cwd=settings.repo_root, check=False).returncode

        def _run_shell(line: str) -> int:
            return subprocess.run(["bash", "-c", line], cwd=settings.repo_root, check=False).returncode

        def _announce(step: ReplayStep) -> None:
            _info(f"Executing: {step.line}")

        crossfile.replay(_run_tool, _run_shell, on_step=_announce)
    _success("Replay completed.")


@app.command(
    "exec",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def exec_command(
    ctx: typer.Context,
    args: List[str] = typer.Argument(..., help="Shell command to run."),
) -> None:
    """Run an arbitrary shell command from the repository root."""
    command = " ".join([*args, *ctx.args])
    if _state(ctx).dry:
        typer.echo(command)
        return
    with _handle_errors():
        root = _settings(ctx).repo_root
    _info(f"Executing custom command: {command}")
    returncode = subprocess.run(["bash", "-c", command], cwd=root, check=False).returncode
    if returncode != 0:
        raise typer.Exit(code=returncode)


def _select_patch(registry: Registry, settings: CrossSettings, local_path: str) -> Optional[Patch]:
    if local_path:
        key = _local_arg(settings, local_path)
        found = registry.find_containing(key) or registry.find(key)
        if found is None:
            raise PatchNotFoundError(f"Patch not found for path: {key}")
        return found
    if len(registry.patches) == 1:
        return registry.patches[0]
    return None


def _open_shell(ctx: typer.Context, local_path: str, *, worktree: bool) -> None:
    with _handle_errors():
        context = _context(ctx)
        registry = context.registry.load()
        if not registry.patches:
            typer.echo("No patches configured.")
            return
        selected = _select_patch(registry, context.settings, local_path)
        if selected is None:
            _console().print(_patch_table(registry.patches))
            _info("Several patches are configured; rerun with a path.")
            return
        target = context.settings.resolve(selected.worktree if worktree else selected.local_path)
        label = "worktree" if worktree else "local_path"
        if not target.exists():
            raise UserInputError(f"{label} not found: {target}")

        if context.settings.dry_run:
            typer.echo(f"cd {relative_to_cwd(target)}")
            return

        _info(f"Opening shell in {context.settings.relative(target)}")
        returncode = subprocess.run([context.settings.shell], cwd=target, check=False).returncode
        if returncode != 0:
            raise CrossError("Shell exited with error")


@app.command()
def cd(
    ctx: typer.Context,
    local_path: str = typer.Argument("", help="Path of (or inside) the patch."),
) -> None:
    """Open a shell in a patch's local directory."""
    _open_shell(ctx, local_path, worktree=False)


@app.command()
def wt(
    ctx: typer.Context,
    local_path: str = typer.Argument("", help="Path of (or inside) the patch."),
) -> None:
    """Open a shell in a patch's hidden worktree."""
    _open_shell(ctx, local_path, worktree=True)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
