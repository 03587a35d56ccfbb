"""Operational entry point: serve the API, apply migrations, or expire logged payloads."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from datetime import UTC, datetime

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncConnection

logger = logging.getLogger("coursegen.cli")

_PUBLIC_TABLES_SQL = """
SELECT table_name
FROM information_schema.tables
WHERE table_schema = 'public'
  AND table_type = 'BASE TABLE'
"""


async def _guard_schema_history(connection: AsyncConnection) -> None:
  """Refuse to upgrade a database whose tables exist without Alembic history."""
  tables = set((await connection.execute(text(_PUBLIC_TABLES_SQL))).scalars().all())
  if "alembic_version" not in tables and tables:
    raise RuntimeError(f"Database contains tables ({', '.join(sorted(tables))}) but no alembic_version table. Run `alembic stamp head` if the schema is already current.")


def _run_upgrade_sync(connection: Connection) -> None:
  from alembic import command

  from coursegen.core.migrations import alembic_config

  config = alembic_config()
  config.attributes["connection"] = connection
  command.upgrade(config, "head")


async def _migrate() -> None:
  from coursegen.core.database import get_db_engine

  engine = get_db_engine()
  if engine is None:
    raise RuntimeError("COURSEGEN_PG_DSN is not set.")
  async with engine.connect() as connection:
    async with connection.begin():
      await _guard_schema_history(connection)
      logger.info("Running alembic upgrade head")
      await connection.run_sync(_run_upgrade_sync)
  await engine.dispose()
  logger.info("Migrations applied")


async def _cleanup_logs() -> int:
  from coursegen.core.database import get_db_engine
  from coursegen.storage.postgres_generation_log_repo import PostgresGenerationLogRepository

  repo = PostgresGenerationLogRepository()
  count = await repo.cleanup_expired_payloads(datetime.now(UTC))
  engine = get_db_engine()
  if engine is not None:
    await engine.dispose()
  return count


def _parse_args(argv: list[str]) -> argparse.Namespace:
  parser = argparse.ArgumentParser(prog="coursegen")
  commands = parser.add_subparsers(dest="command", required=True)

  serve = commands.add_parser("serve", help="Run the HTTP API with uvicorn.")
  serve.add_argument("--host", default=os.getenv("COURSEGEN_HOST", "127.0.0.1"))
  serve.add_argument("--port", type=int, default=int(os.getenv("COURSEGEN_PORT", "8002")))

  commands.add_parser("migrate", help="Apply Alembic migrations up to head.")
  commands.add_parser("cleanup-logs", help="Null sensitive text on expired generation log rows.")
  return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
  args = _parse_args(sys.argv[1:] if argv is None else argv)
  logging.basicConfig(level=logging.INFO)

  if args.command == "serve":
    import uvicorn

    uvicorn.run("coursegen.main:app", host=args.host, port=args.port)
    return 0

  if args.command == "migrate":
    asyncio.run(_migrate())
    return 0

  count = asyncio.run(_cleanup_logs())
  print(f"Expired sensitive payloads on {count} row(s).")
  return 0


if __name__ == "__main__":
  sys.exit(main())
