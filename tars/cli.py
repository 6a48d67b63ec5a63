"""TARS CLI — plan, apply and roll back configuration profiles."""

from __future__ import annotations

import functools
import logging
import uuid
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tars import __version__
from tars.errors import TarsError

console = Console()


def _handle_errors(f):
    """Turn a TarsError into a red message and exit code 1."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except TarsError as e:
            console.print(f"[red]Error:[/] {escape(str(e))}", highlight=False)
            raise SystemExit(1)

    return wrapper


def _print_plain(text: str) -> None:
    console.print(text, markup=False, highlight=False, soft_wrap=True)


@click.group()
@click.version_option(version=__version__)
@click.option("--data-dir", default=None, help="Data directory (default: ~/.tars)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
@_handle_errors
def main(ctx: click.Context, data_dir: str | None, verbose: bool):
    """TARS — apply configuration profiles to AI coding assistant projects.

    Plan the changes a profile implies, apply them with a backup of every
    touched file, and roll them back byte-for-byte.
    """
    from tars.config import load_settings

    settings = load_settings(data_dir=data_dir, log_level="DEBUG" if verbose else None)
    logging.basicConfig(
        level=settings.log_level_number,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = settings


# ── Plan ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("profile_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("project", type=click.Path(exists=True, file_okay=False))
@click.option(
    "--format", "fmt", default="terminal", type=click.Choice(["terminal", "markdown"]),
    help="Output format",
)
@click.option("--no-git-check", is_flag=True, help="Skip the uncommitted-changes warning")
@click.pass_obj
@_handle_errors
def plan(settings, profile_file: str, project: str, fmt: str, no_git_check: bool):
    """Show what applying PROFILE_FILE to PROJECT would change."""
    from tars.diff.display import DiffSummary, format_plan_markdown, format_plan_terminal
    from tars.diff.plan import generate_plan
    from tars.profile.loader import load_profile

    profile = load_profile(profile_file)
    project_id = _project_id_for(settings, project)
    diff_plan = generate_plan(
        project_id, Path(project), profile,
        check_git=settings.check_git and not no_git_check,
    )

    if diff_plan.is_empty():
        console.print("[green]No changes needed[/] — project already matches profile.")
        return

    if fmt == "markdown":
        _print_plain(format_plan_markdown(diff_plan))
    else:
        _print_plain(format_plan_terminal(diff_plan))
    console.print(f"Summary: {DiffSummary.from_plan(diff_plan).one_line()}", highlight=False)


# ── Apply ────────────────────────────────────────────────────────────


@main.command()
@click.argument("profile_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("project", type=click.Path(exists=True, file_okay=False))
@click.option("--dry-run", is_flag=True, help="Preview changes without applying")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.option("--no-git-check", is_flag=True, help="Skip the uncommitted-changes warning")
@click.pass_obj
@_handle_errors
def apply(settings, profile_file: str, project: str, dry_run: bool, yes: bool, no_git_check: bool):
    """Apply PROFILE_FILE to PROJECT, backing up every file it touches."""
    from tars.apply.engine import apply_operations
    from tars.backup.create import new_archive_path, save_backup
    from tars.backup.index import BackupIndex
    from tars.backup.models import Backup
    from tars.diff.display import DiffSummary, format_plan_terminal
    from tars.diff.plan import generate_plan
    from tars.profile.loader import load_profile

    project_path = Path(project)
    profile = load_profile(profile_file)
    project_id = _project_id_for(settings, project)

    diff_plan = generate_plan(
        project_id, project_path, profile,
        check_git=settings.check_git and not no_git_check,
    )

    if diff_plan.is_empty():
        console.print("[green]No changes needed[/] — project already matches profile.")
        return

    _print_plain(format_plan_terminal(diff_plan))
    console.print(f"Summary: {DiffSummary.from_plan(diff_plan).one_line()}", highlight=False)

    if diff_plan.has_errors():
        console.print("\n[red]Plan has errors, refusing to apply.[/]")
        raise SystemExit(1)

    if dry_run:
        console.print("\n[yellow]Dry run: no changes made.[/]")
        return

    if not yes and not click.confirm("\nApply these changes?", default=False):
        console.print("[yellow]Aborted.[/]")
        raise SystemExit(1)

    index = BackupIndex(settings.backup_dir)
    backup = Backup(
        project_id=project_id,
        archive_path=new_archive_path(settings.backup_dir),
        profile_id=profile.id,
        description=f"Before applying profile '{profile.name}'",
    )

    try:
        applied = apply_operations(diff_plan, project_path, backup)
    except TarsError:
        if not backup.is_empty:
            save_backup(backup)
            index.register(backup, project_path)
            console.print(
                f"[red]Apply failed part-way.[/] Partial backup saved: {backup.id}\n"
                f"Undo with: tars rollback {backup.id} {project}",
                highlight=False,
            )
        raise

    save_backup(backup)
    index.register(backup, project_path)

    console.print(f"\n[green]Applied {applied} operation(s).[/]")
    console.print(f"Backup created: {backup.id}", highlight=False)


# ── Rollback ─────────────────────────────────────────────────────────


@main.command()
@click.argument("backup_id")
@click.argument("project", type=click.Path(file_okay=False))
@click.pass_obj
@_handle_errors
def rollback(settings, backup_id: str, project: str):
    """Restore PROJECT to its state before backup BACKUP_ID was taken."""
    from tars.backup.index import BackupIndex
    from tars.backup.restore import restore_from_backup, verify_backup_integrity

    backup = BackupIndex(settings.backup_dir).load(backup_id)
    verify_backup_integrity(backup)
    restored = restore_from_backup(Path(project), backup)

    console.print(f"[green]Rolled back {restored} file(s).[/]")


# ── Verify ───────────────────────────────────────────────────────────


@main.command()
@click.argument("backup")
@click.pass_obj
@_handle_errors
def verify(settings, backup: str):
    """Check the integrity of BACKUP (an id or an archive path)."""
    from tars.backup.index import BackupIndex
    from tars.backup.restore import find_integrity_mismatches, load_backup

    if Path(backup).is_file():
        loaded = load_backup(backup)
    else:
        loaded = BackupIndex(settings.backup_dir).load(backup)

    mismatches = find_integrity_mismatches(loaded)
    if not mismatches:
        console.print(f"[green]OK[/] {len(loaded.files)} file(s) verified", highlight=False)
        return

    console.print(f"[red]Integrity check FAILED[/] ({len(mismatches)} file(s))")
    for m in mismatches:
        console.print(f"  [red]x[/] {m.path}", highlight=False)
        console.print(f"      expected {m.expected}", highlight=False)
        console.print(f"      got      {m.actual}", highlight=False)
    raise SystemExit(1)


# ── Backups ──────────────────────────────────────────────────────────


@main.command(name="backups")
@click.option("--project", "-p", default=None, help="Only backups of this project")
@click.pass_obj
@_handle_errors
def list_backups(settings, project: str | None):
    """List registered backups, newest first."""
    from tars.backup.index import BackupIndex

    index = BackupIndex(settings.backup_dir)
    entries = index.list_for_project(project) if project else index.list_all()

    if not entries:
        console.print("[yellow]No backups found.[/]")
        return

    table = Table(title=f"Backups ({len(entries)})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Created")
    table.add_column("Files", justify="right")
    table.add_column("Description")

    for entry in entries:
        table.add_row(entry.id, entry.created_at[:19], str(entry.file_count), entry.description or "")

    console.print(table)


@main.command()
@click.argument("project", type=click.Path(exists=True, file_okay=False))
@click.pass_obj
@_handle_errors
def backup(settings, project: str):
    """Take a full backup of PROJECT's CLAUDE.md and .claude directory."""
    from tars.backup.create import create_full_backup
    from tars.backup.index import BackupIndex

    project_id = _project_id_for(settings, project)
    created = create_full_backup(project_id, Path(project), settings.backup_dir)
    BackupIndex(settings.backup_dir).register(created, project)

    console.print(
        Panel(
            f"{len(created.files)} file(s)\n{created.archive_path}",
            title=f"Backup {created.id}",
        )
    )


# ── Snapshot ─────────────────────────────────────────────────────────


@main.command()
@click.argument("project", type=click.Path(exists=True, file_okay=False))
@click.argument("name")
@click.option("--output", "-o", default=None, help="Output file (default: <name>.yaml)")
@click.option("--description", "-d", default=None, help="Profile description")
@_handle_errors
def snapshot(project: str, name: str, output: str | None, description: str | None):
    """Capture PROJECT's current configuration as profile NAME."""
    from tars.profile.loader import save_profile
    from tars.profile.snapshot import snapshot_from_project
    from tars.utils.paths import validate_name

    validate_name(name)
    profile = snapshot_from_project(project, name)
    profile.description = description

    path = save_profile(profile, output or f"{name}.yaml")
    console.print(
        f"[green]Profile written to:[/] {path} ({profile.repo_overlays.count} overlay(s))",
        highlight=False,
    )


def _project_id_for(settings, project: str) -> uuid.UUID:
    """Reuse the project id of earlier backups of this path, or mint one."""
    from tars.backup.index import BackupIndex

    known = BackupIndex(settings.backup_dir).find_latest_project_id(project)
    return uuid.UUID(known) if known else uuid.uuid4()


if __name__ == "__main__":
    main()
