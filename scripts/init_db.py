#!/usr/bin/env python3
"""Create the schema and optionally seed approved celebrities from a text file."""

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
from domain.common import new_record_id, slugify, utc_now
from domain.config import DEFAULT_CONFIG_PATH, load_app_config
from repositories import ensure_schema
from repositories.celebrity_repository import find_celebrity_by_name, insert_celebrity

app = typer.Typer(
    add_completion=False,
    help="Initialise the VapeRank database.",
)


def parse_seed_line(line: str) -> tuple[str, str | None] | None:
    """``Name`` or ``Name|wikipedia_page_id``; blank lines and ``#`` comments are skipped."""
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    name, _, page_id = stripped.partition("|")
    name = name.strip()
    if not name:
        return None
    return name, page_id.strip() or None


@app.command()
def init_db(
    db_url: Annotated[
        str | None,
        typer.Option("--db-url", help="Database URL. Defaults to $VAPERANK_DB_URL."),
    ] = None,
    config_path: Annotated[
        Path,
        typer.Option("--config", help="Settings TOML file (for the initial rating)."),
    ] = DEFAULT_CONFIG_PATH,
    seed_file: Annotated[
        Path | None,
        typer.Option("--seed-file", help="Text file with one 'Name' or 'Name|page_id' per line."),
    ] = None,
) -> None:
    """Create missing tables, then insert seed celebrities that do not exist yet."""
    config = load_app_config(config_path)
    engine = create_db_engine(db_url or default_db_url())
    created = ensure_schema(engine)
    typer.echo(f"created_tables={','.join(created) or '-'}")

    if seed_file is None:
        return
    if not seed_file.is_file():
        raise typer.BadParameter(f"Seed file not found: {seed_file}", param_hint="--seed-file")

    entries = [
        parsed
        for parsed in (parse_seed_line(line) for line in seed_file.read_text(encoding="utf-8").splitlines())
        if parsed is not None
    ]

    session_factory = create_session_factory(engine)
    inserted = 0
    skipped = 0
    now = utc_now()
    with session_factory() as session:
        with session.begin():
            for name, page_id in entries:
                if find_celebrity_by_name(session, name) is not None:
                    skipped += 1
                    continue
                insert_celebrity(
                    session,
                    celebrity_id=new_record_id(),
                    name=name,
                    slug=slugify(name) or None,
                    wikipedia_page_id=page_id,
                    approved=True,
                    rating=config.rating.initial_rating,
                    now=now,
                )
                inserted += 1

    typer.echo(f"seed_file={seed_file} inserted={inserted} skipped={skipped}")


if __name__ == "__main__":
    app()
