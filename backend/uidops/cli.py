# Overview: Flask CLI command groups for bootstrap, bin loading and plan/metrics inspection.

# backend/uidops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "uidops:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Bin weights:
# - python -m flask bins load bins.csv
#   Upsert bin weights from a CSV or .xlsx export (mobile_bin / weight_kg columns, aliases accepted).
# - python -m flask bins list
#
# Plans and analytics:
# - python -m flask plans list --limit 10
# - python -m flask plans show 2025-06-02
# - python -m flask metrics show 2025-06-02 [--dispatched-actual 2025-06-09]
#
# Duplicate cleanup:
# - python -m flask records delete-key --sku SKU1 --uid U1

import csv
import io
import json
from pathlib import Path

import click
from flask.cli import with_appcontext

from .extensions import business_clock, db
from .services import analytics_service, bin_service, plan_service, record_service
from .validation import ValidationError


def _echo_json(payload) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _read_rows(path: Path) -> list[dict]:
    ext = path.suffix.lower().lstrip(".")
    if ext == "csv":
        with io.open(path, newline="", encoding="utf-8-sig") as handle:
            return [row for row in csv.DictReader(handle)]
    if ext == "json":
        with io.open(path, encoding="utf-8") as handle:
            rows = json.load(handle)
        return rows.get("rows", []) if isinstance(rows, dict) else rows
    if ext in {"xlsx", "xlsm", "xltx", "xltm"}:
        from openpyxl import load_workbook
        wb = load_workbook(path, read_only=True, data_only=True)
        data = list(wb.active.values)
        if not data:
            return []
        headers = [str(h) if h is not None else "" for h in data[0]]
        return [{headers[i]: row[i] for i in range(len(headers))} for row in data[1:]]
    raise click.BadParameter(f"Unsupported file format: .{ext}")


@click.group('system')
def system_group():
    """Database bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables ready: " + ", ".join(sorted(db.metadata.tables)))


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate every table."""
    if not yes:
        raise click.UsageError("Refusing to reset without --yes")
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('bins')
def bins_group():
    """Bin weight inventory."""


@bins_group.command('load')
@click.argument('path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@with_appcontext
def load_bins(path):
    """Upsert bin weights from CSV, JSON or Excel."""
    result = bin_service.load_bins(_read_rows(path), clock=business_clock())
    click.echo(f"PASS Bins created={result['created']} updated={result['updated']} skipped={result['skipped']}")


@bins_group.command('list')
@with_appcontext
def list_bins():
    for b in bin_service.list_bins():
        click.echo(f"{b['mobile_bin']:<20} {b['weight_kg'] if b['weight_kg'] is not None else '-'}")


@click.group('plans')
def plans_group():
    """Weekly plan inspection."""


@plans_group.command('list')
@click.option('--limit', default=plan_service.DEFAULT_WEEK_LIST_LIMIT, show_default=True, type=int)
@with_appcontext
def list_plans(limit):
    for week in plan_service.list_weeks(limit):
        click.echo(f"{week['week_start']}  updated {week['updated_at']}")


@plans_group.command('show')
@click.argument('week_start')
@with_appcontext
def show_plan(week_start):
    try:
        _echo_json(plan_service.get_week(week_start))
    except ValidationError as exc:
        raise click.BadParameter(str(exc))


@click.group('metrics')
def metrics_group():
    """Plan-vs-actual analytics."""


@metrics_group.command('show')
@click.argument('week_start')
@click.option('--baseline-actual', default=None)
@click.option('--inventory-actual', default=None)
@click.option('--processing-actual', default=None)
@click.option('--dispatched-actual', default=None)
@click.option('--completion-pct', default=None)
@with_appcontext
def show_metrics(week_start, baseline_actual, inventory_actual, processing_actual, dispatched_actual, completion_pct):
    overrides = {
        "baseline_actual": baseline_actual,
        "inventory_actual": inventory_actual,
        "processing_actual": processing_actual,
        "dispatched_actual": dispatched_actual,
        "completion_pct": completion_pct,
    }
    try:
        _echo_json(analytics_service.week_metrics(week_start, clock=business_clock(), overrides=overrides))
    except ValidationError as exc:
        raise click.BadParameter(str(exc))


@click.group('records')
def records_group():
    """Scan record maintenance."""


@records_group.command('delete-key')
@click.option('--sku', 'sku_code', required=True)
@click.option('--uid', required=True)
@with_appcontext
def delete_key(sku_code, uid):
    """Delete every record with this (sku_code, uid)."""
    deleted = record_service.delete_by_natural_key(sku_code, uid)
    click.echo(f"PASS Deleted {deleted} record(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(bins_group)
    app.cli.add_command(plans_group)
    app.cli.add_command(metrics_group)
    app.cli.add_command(records_group)
