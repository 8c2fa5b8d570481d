"""Bring the study plan schema up to date before the API starts.

Deploys call this with ``--seed-checklists`` so the checklist queues exist before
the first generation request. ``--check`` only reports whether revisions are
pending and exits with status 2 when they are.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import List, Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError

LOGGER = logging.getLogger("planner.migrations")
URL_PLACEHOLDER = "%(PLANNER_DATABASE_URL)s"
DEFAULT_TIMEOUT = int(os.getenv("PLANNER_DB_MIGRATION_TIMEOUT", "60"))
DEFAULT_POLL_INTERVAL = float(os.getenv("PLANNER_DB_MIGRATION_POLL_INTERVAL", "3"))
BACKEND_ROOT = Path(__file__).resolve().parent.parent
PENDING_EXIT_CODE = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upgrade the study plan database schema.")
    parser.add_argument(
        "--revision",
        default=os.getenv("PLANNER_DB_MIGRATION_REVISION", "head"),
        help="Target revision (default: head).",
    )
    parser.add_argument("--timeout", type=int, default=DEFAULT_TIMEOUT)
    parser.add_argument("--poll-interval", type=float, default=DEFAULT_POLL_INTERVAL)
    parser.add_argument("--config", default=str(BACKEND_ROOT / "alembic.ini"))
    parser.add_argument(
        "--check",
        action="store_true",
        help="Report pending revisions without applying them.",
    )
    parser.add_argument(
        "--seed-checklists",
        action="store_true",
        help="Seed checklist queues from the task list after upgrading.",
    )
    return parser.parse_args(argv)


def get_alembic_config(config_path: str) -> Config:
    config = Config(config_path)
    config.set_main_option("script_location", str(BACKEND_ROOT / "alembic"))
    return config


def resolve_database_url(config: Config) -> str:
    url = config.get_main_option("sqlalchemy.url")
    if url and url != URL_PLACEHOLDER:
        return url
    env_url = os.getenv("PLANNER_DATABASE_URL")
    if not env_url:
        raise RuntimeError("PLANNER_DATABASE_URL must be set before running migrations.")
    config.set_main_option("sqlalchemy.url", env_url)
    return env_url


def wait_for_database(database_url: str, *, timeout: int, poll_interval: float) -> None:
    """Probe with ``SELECT 1`` until the database answers or ``timeout`` elapses."""
    engine: Engine = create_engine(database_url, future=True, pool_pre_ping=True)
    deadline = time.monotonic() + timeout
    last_error: Optional[Exception] = None
    try:
        while True:
            try:
                with engine.connect() as connection:
                    connection.execute(text("SELECT 1"))
                LOGGER.info("Database is reachable.")
                return
            except OperationalError as exc:
                last_error = exc
                LOGGER.warning("Database not ready yet: %s", exc)
            except SQLAlchemyError as exc:
                last_error = exc
                LOGGER.error("Database error during readiness probe: %s", exc)
                break
            if time.monotonic() + poll_interval >= deadline:
                break
            time.sleep(poll_interval)
    finally:
        engine.dispose()
    raise RuntimeError("Database did not become ready in time.") from last_error


def pending_revisions(config: Config, database_url: str) -> List[str]:
    """Revisions between the database's current head and the script head."""
    script = ScriptDirectory.from_config(config)
    engine = create_engine(database_url, future=True)
    try:
        with engine.connect() as connection:
            current = MigrationContext.configure(connection).get_current_heads()
    finally:
        engine.dispose()
    heads = script.get_heads()
    if set(current) == set(heads):
        return []
    pending: List[str] = []
    for revision in script.iterate_revisions(heads, current or None):
        if revision.revision not in current:
            pending.append(revision.revision)
    return list(reversed(pending))


def seed_checklists() -> int:
    from planner.checklists import ChecklistResolver

    inserted = ChecklistResolver().ensure_seeded()
    LOGGER.info("Seeded %s checklist queues.", inserted)
    return inserted


def run_migrations(
    revision: str,
    *,
    timeout: int,
    poll_interval: float,
    config: Optional[Config] = None,
) -> None:
    config = config or get_alembic_config(str(BACKEND_ROOT / "alembic.ini"))
    database_url = resolve_database_url(config)
    LOGGER.info("Upgrading study plan schema to %s", revision)
    wait_for_database(database_url, timeout=timeout, poll_interval=poll_interval)
    command.upgrade(config, revision)
    LOGGER.info("Migrations complete.")


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=os.getenv("PLANNER_DB_MIGRATION_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = parse_args(argv)
    try:
        config = get_alembic_config(args.config)
        if args.check:
            database_url = resolve_database_url(config)
            wait_for_database(database_url, timeout=args.timeout, poll_interval=args.poll_interval)
            pending = pending_revisions(config, database_url)
            if pending:
                LOGGER.warning("Pending revisions: %s", ", ".join(pending))
                return PENDING_EXIT_CODE
            LOGGER.info("Schema is up to date.")
            return 0
        run_migrations(
            args.revision,
            timeout=args.timeout,
            poll_interval=args.poll_interval,
            config=config,
        )
        if args.seed_checklists:
            seed_checklists()
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Migration run failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
