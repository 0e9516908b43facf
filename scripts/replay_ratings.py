#!/usr/bin/env python3
"""Recompute ratings from the match log and report or fix drift."""

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
from domain.config import DEFAULT_CONFIG_PATH, load_app_config
from domain.pipeline import replay_match_log

app = typer.Typer(
    add_completion=False,
    help="Replay the append-only match log.",
)


@app.command()
def replay(
    db_url: Annotated[
        str | None,
        typer.Option("--db-url", help="Database URL. Defaults to $VAPERANK_DB_URL."),
    ] = None,
    config_path: Annotated[
        Path,
        typer.Option("--config", help="Settings TOML file (initial rating and scale factor)."),
    ] = DEFAULT_CONFIG_PATH,
    apply: Annotated[
        bool,
        typer.Option("--apply", help="Overwrite drifted ratings with the replayed values."),
    ] = False,
    show: Annotated[
        int,
        typer.Option("--show", help="Number of drifted celebrities to print."),
    ] = 20,
) -> None:
    """Replay every vote in order; without --apply nothing is written."""
    config = load_app_config(config_path)
    session_factory = create_session_factory(create_db_engine(db_url or default_db_url()))

    summary = replay_match_log(
        session_factory=session_factory,
        params=config.rating,
        dry_run=not apply,
        echo=typer.echo,
    )

    for drift in sorted(summary.drifts, key=lambda d: abs(d.rating_delta), reverse=True)[:show]:
        typer.echo(
            f"{drift.name:<30} stored={drift.stored_rating:5d} "
            f"replayed={drift.replayed_rating:5d} delta={drift.rating_delta:+d} "
            f"matches={drift.stored_matches}/{drift.replayed_matches}"
        )


if __name__ == "__main__":
    app()
