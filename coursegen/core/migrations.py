"""Alembic context options and existence-guarded schema operations."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from alembic import op
from alembic.config import Config
from sqlalchemy import MetaData, text

PROJECT_ROOT = Path(__file__).resolve().parents[2]
ALEMBIC_INI_PATH = PROJECT_ROOT / "alembic.ini"
ALEMBIC_SCRIPT_PATH = PROJECT_ROOT / "alembic"


def alembic_config() -> Config:
  """Load alembic.ini with script_location pinned to the repository, whatever the working directory."""
  if not ALEMBIC_INI_PATH.exists():
    raise RuntimeError(f"Missing Alembic config at {ALEMBIC_INI_PATH}.")
  config = Config(str(ALEMBIC_INI_PATH))
  config.set_main_option("script_location", str(ALEMBIC_SCRIPT_PATH))
  return config


def include_object(object: Any, name: str, type_: str, reflected: bool, compare_to: Any) -> bool:
  """Keep autogenerate from proposing drops for objects the ORM does not own."""
  if type_ == "table" and reflected and compare_to is None:
    return False
  if type_ == "column" and reflected and compare_to is None:
    return False
  return True


def build_migration_context_options(*, target_metadata: MetaData) -> dict[str, Any]:
  """Options shared by online and offline runs."""
  return {
    "compare_type": True,
    "compare_server_default": True,
    "include_schemas": False,
    "transaction_per_migration": True,
    "include_object": include_object,
    "target_metadata": target_metadata,
  }


def _exists(statement: str, params: dict[str, str]) -> bool:
  result = op.get_bind().execute(text(statement), params)
  return result.first() is not None


def table_exists(*, table_name: str, schema: str | None = None) -> bool:
  return _exists(
    """
    SELECT 1
    FROM information_schema.tables
    WHERE table_schema = :schema
      AND table_name = :table_name
      AND table_type = 'BASE TABLE'
    LIMIT 1
    """,
    {"schema": schema or "public", "table_name": table_name},
  )


def column_exists(*, table_name: str, column_name: str, schema: str | None = None) -> bool:
  return _exists(
    """
    SELECT 1
    FROM information_schema.columns
    WHERE table_schema = :schema
      AND table_name = :table_name
      AND column_name = :column_name
    LIMIT 1
    """,
    {"schema": schema or "public", "table_name": table_name, "column_name": column_name},
  )


def index_exists(*, index_name: str, schema: str | None = None) -> bool:
  return _exists(
    """
    SELECT 1
    FROM pg_indexes
    WHERE schemaname = :schema
      AND indexname = :index_name
    LIMIT 1
    """,
    {"schema": schema or "public", "index_name": index_name},
  )


def guarded_create_table(table_name: str, *args: Any, **kwargs: Any) -> None:
  """Create a table unless it already exists, e.g. from an earlier create_all."""
  if table_exists(table_name=table_name, schema=kwargs.get("schema")):
    return
  op.create_table(table_name, *args, **kwargs)


def guarded_drop_table(table_name: str, *args: Any, **kwargs: Any) -> None:
  if not table_exists(table_name=table_name, schema=kwargs.get("schema")):
    return
  op.drop_table(table_name, *args, **kwargs)


def guarded_add_column(table_name: str, column: Any, *args: Any, **kwargs: Any) -> None:
  """Add a column when the table exists and does not have it yet."""
  schema = kwargs.get("schema")
  if not table_exists(table_name=table_name, schema=schema):
    return
  if column_exists(table_name=table_name, column_name=column.name, schema=schema):
    return
  op.add_column(table_name, column, *args, **kwargs)


def guarded_drop_column(table_name: str, column_name: str, *args: Any, **kwargs: Any) -> None:
  if not column_exists(table_name=table_name, column_name=column_name, schema=kwargs.get("schema")):
    return
  op.drop_column(table_name, column_name, *args, **kwargs)


def guarded_create_index(index_name: str, table_name: str, *args: Any, **kwargs: Any) -> None:
  schema = kwargs.get("schema")
  if not table_exists(table_name=table_name, schema=schema):
    return
  if index_exists(index_name=index_name, schema=schema):
    return
  op.create_index(index_name, table_name, *args, **kwargs)


def guarded_drop_index(index_name: str, *args: Any, **kwargs: Any) -> None:
  if not index_exists(index_name=index_name, schema=kwargs.get("schema")):
    return
  op.drop_index(index_name, *args, **kwargs)
