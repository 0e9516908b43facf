#!/usr/bin/env python3
"""Run the VapeRank HTTP API with uvicorn."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
import uvicorn

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from db import create_db_engine, create_session_factory, default_db_url
from domain.config import DEFAULT_CONFIG_PATH, load_app_config
from repositories import ensure_schema
from services import build_service_context
from web import create_app

app = typer.Typer(
    add_completion=False,
    help="Serve the voting, ranking and moderation API.",
)


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Port to bind.")] = 8000,
    db_url: Annotated[
        str | None,
        typer.Option(
            "--db-url",
            help="Database URL. Defaults to $VAPERANK_DB_URL or the local vaperank postgres instance.",
        ),
    ] = None,
    config_path: Annotated[
        Path,
        typer.Option("--config", help="Settings TOML file."),
    ] = DEFAULT_CONFIG_PATH,
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Python logging level (DEBUG, INFO, WARNING, ...)."),
    ] = "INFO",
    create_schema: Annotated[
        bool,
        typer.Option("--create-schema/--no-create-schema", help="Create missing tables on startup."),
    ] = True,
) -> None:
    """Start the API server."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = load_app_config(config_path)
    if config.admin.read_secret() is None:
        typer.echo(f"warning: ${config.admin.secret_env} is not set, admin actions are disabled")

    engine = create_db_engine(db_url or default_db_url())
    if create_schema:
        created = ensure_schema(engine)
        typer.echo(f"created_tables={','.join(created) or '-'}")

    context = build_service_context(config, create_session_factory(engine))
    typer.echo(f"config={config.file_path} host={host} port={port}")
    uvicorn.run(create_app(context), host=host, port=port, log_level=log_level.lower())


if __name__ == "__main__":
    app()
