#!/usr/bin/env python3
"""Show the top approved celebrities by rating."""

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
from domain.common import RankedCelebrity
from domain.metrics import wilson_lower_bound, win_rate
from repositories.celebrity_repository import fetch_all_celebrities
from services.catalogue import rank_celebrities

app = typer.Typer(
    add_completion=False,
    help="Query the current celebrity leaderboard.",
)


def _render_row(entry: RankedCelebrity) -> str:
    celebrity = entry.celebrity
    return (
        f"{entry.rank:3d}. {celebrity.name:<30} "
        f"rating={celebrity.rating:5d} "
        f"record={celebrity.wins}/{celebrity.matches} "
        f"win_rate={win_rate(celebrity.wins, celebrity.matches):5.1f}% "
        f"wilson={wilson_lower_bound(celebrity.wins, celebrity.matches):.3f}"
        f"{' confirmed' if celebrity.confirmed_vaper else ''}"
    )


@app.command()
def show_rankings(
    top_n: Annotated[
        int,
        typer.Option("--top-n", help="Number of celebrities to return."),
    ] = 20,
    min_matches: Annotated[
        int,
        typer.Option("--min-matches", help="Hide celebrities with fewer recorded matches."),
    ] = 0,
    db_url: Annotated[
        str | None,
        typer.Option("--db-url", help="Database URL. Defaults to $VAPERANK_DB_URL."),
    ] = None,
) -> None:
    """Print the leaderboard; ranks are assigned before the match filter."""
    if top_n <= 0:
        raise typer.BadParameter("--top-n must be greater than 0")
    if min_matches < 0:
        raise typer.BadParameter("--min-matches must be >= 0")

    session_factory = create_session_factory(create_db_engine(db_url or default_db_url()))
    with session_factory() as session:
        celebrities = fetch_all_celebrities(session, approved_only=True)

    ranked = [entry for entry in rank_celebrities(celebrities) if entry.celebrity.matches >= min_matches]
    if not ranked:
        typer.echo("no celebrities found")
        return

    for entry in ranked[:top_n]:
        typer.echo(_render_row(entry))


if __name__ == "__main__":
    app()
