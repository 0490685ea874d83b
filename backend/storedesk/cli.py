# Overview: Flask CLI commands for local database setup and inspection.

# backend/storedesk/cli.py
# Commands Legend (run from the backend directory):
# - python -m flask storedesk init-db
#   Create all tables (idempotent; existing tables are left alone).
# - python -m flask storedesk reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask storedesk series --store-id 1
#   List voucher series lanes with their current and next document numbers.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import VoucherSeries


@click.group('storedesk')
def storedesk_group():
    """Database setup and inspection commands."""


@storedesk_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Tables created")


@storedesk_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm dropping every table')
@with_appcontext
def reset_db(yes):
    """Drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@storedesk_group.command('series')
@click.option('--store-id', type=int, default=None, help='Only lanes of this store')
@with_appcontext
def list_series(store_id):
    """List voucher series lanes."""
    query = db.session.query(VoucherSeries)
    if store_id is not None:
        query = query.filter_by(store_id=store_id)
    lanes = query.order_by(VoucherSeries.store_id, VoucherSeries.voucher_type, VoucherSeries.series).all()
    if not lanes:
        click.echo("No voucher series found")
        return
    for lane in lanes:
        click.echo(
            f"{lane.id:>5}  store={lane.store_id:<4} {lane.voucher_type.value:<12} "
            f"{lane.series:<8} current={lane.formatted_number}  next={lane.next_formatted_number}"
        )


def register_commands(app):
    """Register CLI commands with Flask app."""
    app.cli.add_command(storedesk_group)
