#!/usr/bin/env python3
"""Grant, revoke and list moderation access."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from db import create_db_engine, create_session_factory, default_db_url
from domain.common import utc_now
from repositories import ensure_schema
from repositories.admin_repository import list_admins, upsert_admin

DbUrlOption = Annotated[
    str | None,
    typer.Option("--db-url", help="Database URL. Defaults to $VAPERANK_DB_URL."),
]

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Admin directory maintenance.",
)


def _session_factory(db_url: str | None):
    engine = create_db_engine(db_url or default_db_url())
    ensure_schema(engine)
    return create_session_factory(engine)


@app.command()
def grant(
    email: Annotated[str, typer.Argument(help="Admin e-mail address.")],
    role: Annotated[str | None, typer.Option("--role", help="Optional role label.")] = None,
    db_url: DbUrlOption = None,
) -> None:
    """Create or re-activate an admin."""
    if "@" not in email:
        raise typer.BadParameter(f"Not an e-mail address: {email}", param_hint="email")
    with _session_factory(db_url)() as session:
        with session.begin():
            admin = upsert_admin(session, email=email, role=role, is_active=True, now=utc_now())
    typer.echo(f"granted email={admin.email} role={admin.role or '-'}")


@app.command()
def revoke(
    email: Annotated[str, typer.Argument(help="Admin e-mail address.")],
    db_url: DbUrlOption = None,
) -> None:
    """Deactivate an admin; running servers notice after the admin cache TTL."""
    with _session_factory(db_url)() as session:
        with session.begin():
            admin = upsert_admin(session, email=email, role=None, is_active=False, now=utc_now())
    typer.echo(f"revoked email={admin.email}")


@app.command(name="list")
def list_command(db_url: DbUrlOption = None) -> None:
    """Print every admin."""
    with _session_factory(db_url)() as session:
        admins = list_admins(session)
    if not admins:
        typer.echo("no admins")
        return
    for admin in admins:
        typer.echo(f"{admin.email} role={admin.role or '-'} active={admin.is_active}")


if __name__ == "__main__":
    app()
