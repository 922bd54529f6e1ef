"""``flask`` sub-commands: run with ``flask --app cheatsheet.main:create_app <command>``."""

from __future__ import annotations

import json

import click
from flask import Flask, current_app
from flask.cli import with_appcontext

from .docs import get_document
from .extensions import db
from .lint import available_checks, lint_document
from .links import build_link_checker, run_link_checks
from .user_login import create_user


def print_report(report, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return
    for issue in report.issues:
        click.echo(str(issue), err=issue.severity == "error")
    click.echo(f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)")


@click.command("lint")
@with_appcontext
@click.option("--links", "check_links", is_flag=True, help="Also request every external link.")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON.")
@click.option("--check", "checks", multiple=True, type=click.Choice(available_checks()), help="Run only this check (repeatable).")
def lint_command(check_links: bool, as_json: bool, checks) -> None:
    """Lint the configured cheat sheet."""
    doc = get_document()
    checker = build_link_checker() if check_links else None
    try:
        report = lint_document(doc, checks=list(checks) or None, check_links=check_links, link_checker=checker)
    finally:
        if checker is not None:
            checker.close()
    print_report(report, as_json)
    if not report.ok:
        raise SystemExit(1)


@click.command("create-user")
@with_appcontext
@click.argument("username")
@click.argument("password")
@click.option("--overwrite", is_flag=True, help="Update the password if the user exists.")
def create_user_command(username: str, password: str, overwrite: bool) -> None:
    """Create a login for the bookmark and link-check API."""
    try:
        user = create_user(username, password, overwrite=overwrite)
    except ValueError as exc:
        db.session.rollback()
        raise click.ClickException(str(exc))
    # a new row has no id until the commit flushes it
    created = user.id is None
    db.session.commit()
    click.echo(f"{'Created' if created else 'Updated'} user '{user.username}'.")


@click.command("check-links")
@with_appcontext
def check_links_command() -> None:
    """Probe every external link and store the results."""
    results = run_link_checks()
    for result in results:
        mark = "ok " if result.ok else "BAD"
        click.echo(f"{mark} {result.status or '-':>3} {result.url}" + (f"  ({result.error})" if result.error else ""))
    failing = [r for r in results if not r.ok]
    current_app.logger.info("check-links: %d checked, %d failing", len(results), len(failing))
    if failing:
        raise SystemExit(1)


def register_commands(app: Flask) -> None:
    app.cli.add_command(lint_command)
    app.cli.add_command(create_user_command)
    app.cli.add_command(check_links_command)
