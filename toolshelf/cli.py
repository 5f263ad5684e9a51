#!/usr/bin/env python3
"""
Toolshelf CLI

Command-line interface for running the Toolshelf review queue.
"""

import click
from pathlib import Path
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from toolshelf.database import Database
from toolshelf.config import configure_logging, load_config
from toolshelf.errors import ToolshelfError
from toolshelf.models import Role, SubmissionStatus
from toolshelf.services import PublicationSync, SubmissionService

console = Console()

STATUS_COLORS = {
    SubmissionStatus.SUBMITTED.value: "yellow",
    SubmissionStatus.REVIEWING.value: "blue",
    SubmissionStatus.CHANGES_REQUESTED.value: "magenta",
    SubmissionStatus.APPROVED.value: "green",
    SubmissionStatus.REJECTED.value: "red",
    SubmissionStatus.WITHDRAWN.value: "dim",
}


def get_db() -> Database:
    """Get database connection using config."""
    config = load_config()
    db_path = config.get("database", {}).get("path", "db/toolshelf.db")
    return Database(db_path)


def fail(message: str):
    console.print(f"[red]Error:[/red] {message}")
    raise click.exceptions.Exit(1)


def profile_id_for(db: Database, nickname: str) -> int:
    profile = db.get_profile_by_nickname(nickname.strip().lower())
    if profile is None:
        fail(f"No profile with nickname '{nickname}'")
    return profile["id"]


@click.group()
@click.version_option(version="0.1.0", prog_name="toolshelf")
def main():
    """Toolshelf - AI tool directory

    Review submitted tools and keep the published directory in sync.
    """
    configure_logging(load_config())


@main.command()
def init():
    """Initialize the database and configuration."""
    db = get_db()
    db.init_schema()
    console.print("[green]✓[/green] Database initialized")

    config_path = Path("config.yaml")
    if not config_path.exists():
        console.print(
            "[yellow]![/yellow] No config.yaml found. "
            "Copy config.example.yaml to change the defaults."
        )
    else:
        console.print("[green]✓[/green] Configuration loaded")


@main.command()
def status():
    """Show review queue and directory statistics."""
    db = get_db()
    db.init_schema()

    stats = db.get_directory_stats()
    review = SubmissionService(db).get_review_stats()

    table = Table(title="Submissions", show_header=True, header_style="bold cyan")
    table.add_column("Status", style="bold")
    table.add_column("Count", justify="right")
    table.add_column("Bar", justify="left", width=20)

    statuses = stats["submissions_by_status"]
    max_count = max(statuses.values()) if any(statuses.values()) else 1

    for name, count in statuses.items():
        bar_width = int((count / max_count) * 20)
        bar = "█" * bar_width + "░" * (20 - bar_width)
        color = STATUS_COLORS.get(name, "white")
        table.add_row(name.replace("_", " ").capitalize(), str(count), f"[{color}]{bar}[/{color}]")

    console.print(table)

    avg = review.avg_review_time_hours
    summary = f"""
[bold]Awaiting review:[/bold] {review.pending_count}
[bold]Approved today:[/bold] {review.approved_today}
[bold]Rejected today:[/bold] {review.rejected_today}
[bold]Average review time:[/bold] {f'{avg:.1f}h' if avg is not None else 'n/a'}
[bold]Published tools:[/bold] {stats['published_tools']}
[bold]Active categories:[/bold] {stats['active_categories']}
[bold]Profiles:[/bold] {stats['total_profiles']}
    """.strip()

    console.print(Panel(summary, title="Summary", border_style="blue"))

    categories = db.list_categories(active_only=True)
    if categories:
        cat_table = Table(title="Categories", show_header=True)
        cat_table.add_column("Slug")
        cat_table.add_column("Name")
        cat_table.add_column("Tools", justify="right")
        for category in categories:
            cat_table.add_row(category["slug"], category["name"], str(category["tools_count"]))
        console.print(cat_table)


@main.command()
@click.option("--limit", "-l", default=None, type=int, help="Max submissions to show")
def pending(limit):
    """List submissions waiting for review."""
    db = get_db()
    db.init_schema()
    config = load_config()
    limit = limit or config["review"]["page_size"]

    submissions = SubmissionService(db).list_pending_submissions(limit=limit)
    if not submissions:
        console.print("[green]✓[/green] No submissions pending review")
        return

    table = Table(title="Review Queue", show_header=True)
    table.add_column("ID", justify="right")
    table.add_column("Tool")
    table.add_column("Category")
    table.add_column("Submitter")
    table.add_column("Status")
    table.add_column("Priority", justify="right")
    table.add_column("Submitted", style="dim")

    for s in submissions:
        color = STATUS_COLORS.get(s.status.value, "white")
        table.add_row(
            str(s.submission_id),
            s.tool_name if s.version == 1 else f"{s.tool_name} (v{s.version})",
            s.category_name,
            s.submitter_name or "-",
            f"[{color}]{s.status.value}[/{color}]",
            str(s.review_priority),
            s.submitted_at[:16],
        )

    console.print(table)


@main.command()
@click.argument("submission_id", type=int)
@click.argument("action")
@click.option("--actor", "-a", required=True, help="Nickname of the reviewer")
@click.option("--notes", "-n", default=None, help="Review notes (required to reject or request changes)")
def review(submission_id, action, actor, notes):
    """Apply a review ACTION to a submission.

    ACTION is one of start_review, approve, reject, request_changes.
    """
    db = get_db()
    db.init_schema()
    actor_id = profile_id_for(db, actor)

    try:
        result = SubmissionService(db).review_submission(submission_id, action, notes, actor_id)
    except ToolshelfError as e:
        fail(f"{e.message} ({e.kind})")

    console.print(
        f"[green]✓[/green] Submission {submission_id}: "
        f"{result.previous_status.value} → {result.new_status.value}"
    )
    console.print(f"    {result.message}")
    if result.tool_id is not None:
        console.print(f"    Published as tool #{result.tool_id}")


@main.command()
@click.argument("submission_id", type=int, required=False)
@click.option("--all", "sync_everything", is_flag=True, help="Sync every approved submission without a tool")
def sync(submission_id, sync_everything):
    """Publish approved submissions to the tool directory."""
    if submission_id is None and not sync_everything:
        fail("Give a SUBMISSION_ID or --all")

    db = get_db()
    db.init_schema()
    publisher = PublicationSync(db)

    if submission_id is not None:
        try:
            tool_id = publisher.sync_submission(submission_id)
        except ToolshelfError as e:
            fail(f"{e.message} ({e.kind})")
        console.print(f"[green]✓[/green] Submission {submission_id} published as tool #{tool_id}")
        return

    report = publisher.sync_all()
    console.print(f"[green]✓[/green] Synced {len(report.synced)} of {report.total} submissions")
    for failed_id, error in report.failed.items():
        console.print(f"    [red]✗[/red] Submission {failed_id}: {error}")
    if report.failed:
        raise click.exceptions.Exit(1)


@main.command()
def recount():
    """Recompute category tool counts from the tools table."""
    db = get_db()
    db.init_schema()
    changes = PublicationSync(db).recount_categories()

    drifted = {slug: counts for slug, counts in changes.items() if counts[0] != counts[1]}
    if not drifted:
        console.print("[green]✓[/green] All category counts were correct")
        return

    table = Table(title="Corrected Counts", show_header=True)
    table.add_column("Category")
    table.add_column("Was", justify="right")
    table.add_column("Now", justify="right")
    for slug, (old, new) in drifted.items():
        table.add_row(slug, str(old), str(new))
    console.print(table)


@main.command(name="set-role")
@click.argument("nickname")
@click.argument("role", type=click.Choice([r.value for r in Role]))
def set_role(nickname, role):
    """Give a profile the user, reviewer or admin role.

    Run from the server shell; this is how the first admin is created.
    """
    db = get_db()
    db.init_schema()
    profile_id = profile_id_for(db, nickname)
    db.update_profile_role(profile_id, role)
    console.print(f"[green]✓[/green] {nickname} is now {role}")


@main.group()
def migrate():
    """Manage database migrations."""
    pass


def get_migrator():
    from toolshelf.migrations import Migrator
    config = load_config()
    return Migrator(config["database"]["path"])


@migrate.command(name="up")
@click.option("--steps", "-s", default=None, type=int, help="Number of migrations to apply")
def migrate_up(steps):
    """Apply pending migrations."""
    from toolshelf.migrations import MigrationError

    migrator = get_migrator()
    try:
        applied = migrator.migrate(steps)
    except MigrationError as e:
        fail(str(e))
    finally:
        migrator.close()

    if not applied:
        console.print("[green]✓[/green] Database is up to date")
    for name in applied:
        console.print(f"[green]✓[/green] Applied {name}")


@migrate.command(name="down")
@click.option("--steps", "-s", default=1, type=int, help="Number of migrations to roll back")
def migrate_down(steps):
    """Roll back the most recent migrations."""
    from toolshelf.migrations import MigrationError

    migrator = get_migrator()
    try:
        rolled_back = migrator.rollback(steps)
    except MigrationError as e:
        fail(str(e))
    finally:
        migrator.close()

    for name in rolled_back:
        console.print(f"[yellow]↓[/yellow] Rolled back {name}")


@migrate.command(name="status")
def migrate_status():
    """Show applied and pending migrations."""
    migrator = get_migrator()
    try:
        state = migrator.status()
    finally:
        migrator.close()

    table = Table(title="Migrations", show_header=True)
    table.add_column("Migration")
    table.add_column("State")
    for name in state["applied"]:
        table.add_row(name, "[green]applied[/green]")
    for name in state["pending"]:
        table.add_row(name, "[yellow]pending[/yellow]")
    console.print(table)


@migrate.command(name="create")
@click.argument("name")
def migrate_create(name):
    """Create an empty migration file."""
    from toolshelf.migrations import create_migration

    path = create_migration(name)
    console.print(f"[green]✓[/green] Created {path}")


if __name__ == "__main__":
    main()
