"""
Flask CLI commands for watering reminders.

Usage:
    flask send-watering-reminders              # Run one reminder sweep now
    flask send-watering-reminders --dry-run    # Count due entries, send nothing
    flask watering-schedule "Every 2-3 days"   # Show the interval and next due date
"""

from __future__ import annotations

import click
from flask.cli import with_appcontext


@click.command("send-watering-reminders")
@click.option("--dry-run", is_flag=True, default=False,
              help="Only count due garden entries. No reminders are claimed or sent.")
@with_appcontext
def send_watering_reminders_command(dry_run: bool) -> None:
    """Run one watering reminder sweep (for cron hosts without HTTP access)."""
    from plantcare.services import garden
    from plantcare.services.garden_store import StoreError

    ctx = garden.get_context()

    if dry_run:
        try:
            due = ctx.store.list_due_before(ctx.clock())
        except StoreError as e:
            click.echo(f"Error: could not list due entries: {e}")
            raise SystemExit(1)

        owners = {entry.user_id for entry in due}
        click.echo(f"{len(due)} garden entr{'y' if len(due) == 1 else 'ies'} due across {len(owners)} user(s).")
        click.echo("\nDry run, no reminders sent. Omit --dry-run to send.")
        return

    stats = ctx.engine.run_sweep_tick()

    click.echo(f"\nDone: {stats['sent']} sent, {stats['failed']} failed, {stats['skipped']} skipped "
               f"({stats['due']} due, {stats['conflicts']} conflicts, {stats['errors']} errors).")

    if stats["errors"] and not stats["due"]:
        raise SystemExit(1)


@click.command("watering-schedule")
@click.argument("care_water", required=False, default="")
def watering_schedule_command(care_water: str) -> None:
    """Show how a care "water" text maps to a watering interval."""
    from plantcare.services.watering import schedule_from, utcnow

    now = utcnow()
    days, due = schedule_from(care_water or None, now)
    click.echo(f"Interval: every {days} day(s)")
    click.echo(f"Watered now -> next watering {due.isoformat()}")
