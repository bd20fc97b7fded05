# Overview: Flask CLI command groups for bootstrap and numbering inspection.

# backend/tradedesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use "flask db upgrade" for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Numbering inspection:
# - python -m flask sequences list
#   List every sequence bucket with its period and current counter.
# - python -m flask sequences preview PO --date 202501
#   Show the next number for a document code without allocating it.

import click
from flask.cli import with_appcontext

from .errors import TradeDeskError
from .extensions import db
from .services import numbering_service, sequence_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop and recreate every table. Sequence counters restart at zero."""
    if not yes:
        click.confirm("WARN Every transaction, ledger entry and counter will be lost. Continue?", abort=True)

    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset complete.")


@click.group('sequences')
def sequences_group():
    """Document numbering inspection."""


@sequences_group.command('list')
@with_appcontext
def list_sequences():
    """List sequence buckets."""
    rows = sequence_service.list_sequences()
    if not rows:
        click.echo("No sequences allocated yet.")
        return
    for seq in rows:
        click.echo(f"{seq.sequence_type:<18} {seq.period or '-':<8} {seq.format(seq.current):<20} current={seq.current}")


@sequences_group.command('preview')
@click.argument('code')
@click.option('--date', 'period', default=None, help='Period override: YYYYMM or YYYY')
@with_appcontext
def preview_sequence(code, period):
    """Show the next number for CODE (PO, SO, SI, PI, SR, PR) without allocating it."""
    try:
        click.echo(numbering_service.preview_next_number(code, period))
    except TradeDeskError as e:
        raise click.ClickException(e.message)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(sequences_group)
