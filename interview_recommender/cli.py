"""
Interview Recommender — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (DB init, catalog import, profile build, ranking).
  5. Report result to stdout.

Install and run::

    pip install -e .
    interview-recs --help
    interview-recs init-db
    interview-recs validate-config
    interview-recs import-catalog --file data/catalog.json
    interview-recs show-profile --user-id 42
    interview-recs recommend --user-id 42 --limit 5 --device mobile --time-of-day
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="interview-recs",
    help="Personalized interview-video recommendations — local CLI.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from interview_recommender.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from interview_recommender.utils.logging import configure_logging
    configure_logging(config.logging)


def _with_db_path(config, db_path: Optional[str]):
    """Return ``config`` with ``database.db_path`` overridden, if given."""
    if not db_path:
        return config
    database = config.database.model_copy(update={"db_path": db_path})
    return config.model_copy(update={"database": database})


async def _run_with_context(config, action):
    """Run ``action(ctx)`` against a fresh service context, then close it."""
    from interview_recommender.service import build_service_context, close_service_context

    ctx = build_service_context(config)
    try:
        return await action(ctx)
    finally:
        await close_service_context(ctx)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config (e.g. data/db/test.db).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Initialize the SQLite database and apply the full schema.

    Safe to run multiple times — all DDL uses IF NOT EXISTS.
    """
    from interview_recommender.db.connection import get_connection
    from interview_recommender.db.schema import ALL_TABLE_NAMES, apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:    {config.database.db_path}")
    typer.echo(f"  Cache backend:    {config.cache.backend}")
    typer.echo(
        f"  Cache TTLs:       profile={config.cache.profile_ttl_seconds}s "
        f"recs={config.cache.recommendations_ttl_seconds}s"
    )
    typer.echo(
        f"  Limits:           default={config.ranking.default_limit} "
        f"max={config.ranking.max_limit} candidates={config.ranking.candidate_cap}"
    )
    typer.echo(f"  Affinity model:   {config.affinity_model.artifact_path or '(neutral)'}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("import-catalog")
def import_catalog(
    catalog_file: str = typer.Option(
        ...,
        "--file",
        "-f",
        help="Path to a catalog JSON file with users, interviews, interactions.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Validate records but do not write to the database.",
    ),
) -> None:
    """Import users, interviews and interactions from a JSON file.

    All records are validated first; nothing is written if any fails.
    """
    import sqlite3

    from interview_recommender.db.connection import get_connection
    from interview_recommender.db.schema import apply_schema
    from interview_recommender.ingestion.catalog_json import parse_catalog_json, write_catalog

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    path = Path(catalog_file)
    typer.echo(f"Loading catalog from: {path}")
    try:
        catalog = parse_catalog_json(path)
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    counts = catalog.counts()
    typer.echo(
        f"  Validated {counts['users']} user(s), {counts['interviews']} interview(s), "
        f"{counts['interactions']} interaction(s)."
    )

    if dry_run:
        typer.echo("[DRY RUN] Nothing written to database.")
        return

    try:
        with get_connection(
            config.database.db_path,
            wal_mode=config.database.wal_mode,
            busy_timeout_ms=config.database.busy_timeout_ms,
        ) as conn:
            apply_schema(conn)
            write_catalog(conn, catalog)
    except sqlite3.Error as exc:
        typer.echo(f"[ERROR] Import failed, nothing written: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"  Inserted into {config.database.db_path}.")
    typer.echo("[OK] Catalog imported.")


@app.command("show-profile")
def show_profile(
    user_id: int = typer.Option(..., "--user-id", help="User to profile."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
) -> None:
    """Build a user's preference profile and print it as JSON."""
    from interview_recommender.errors import RecommenderError
    from interview_recommender.recommendations.profile_builder import build_profile

    config = _with_db_path(_load_config_or_exit(config_path), db_path)
    _configure_logging(config)

    try:
        profile = asyncio.run(
            _run_with_context(config, lambda ctx: build_profile(ctx, user_id))
        )
    except (RecommenderError, FileNotFoundError, ValueError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(profile.model_dump_json(indent=2))


@app.command("recommend")
def recommend(
    user_id: int = typer.Option(..., "--user-id", help="Requesting user."),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        help="Maximum number of results (config default if omitted).",
    ),
    device: Optional[str] = typer.Option(
        None,
        "--device",
        help="Request device: mobile or desktop.",
    ),
    time_of_day: bool = typer.Option(
        False,
        "--time-of-day",
        help="Boost items whose category fits the current time of day.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config.",
    ),
) -> None:
    """Rank personalized recommendations for a user and print them as JSON."""
    from interview_recommender.errors import RecommenderError
    from interview_recommender.recommendations.engine import get_personalized_recommendations

    if device is not None and device.lower() not in ("mobile", "desktop"):
        typer.echo(f"[ERROR] --device must be 'mobile' or 'desktop', got '{device}'.", err=True)
        raise typer.Exit(code=1)
    if limit is not None and limit < 1:
        typer.echo("[ERROR] --limit must be >= 1.", err=True)
        raise typer.Exit(code=1)

    config = _with_db_path(_load_config_or_exit(config_path), db_path)
    _configure_logging(config)

    context = {"timeOfDay": time_of_day, "device": device}
    try:
        recommendations = asyncio.run(
            _run_with_context(
                config,
                lambda ctx: get_personalized_recommendations(ctx, user_id, limit, context),
            )
        )
    except (RecommenderError, FileNotFoundError, ValueError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    payload = [r.model_dump(mode="json") for r in recommendations]
    typer.echo(json.dumps(payload, indent=2))


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
