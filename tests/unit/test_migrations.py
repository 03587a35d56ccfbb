"""Unit tests for the Alembic environment, revisions and the migrate command."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from alembic.script import ScriptDirectory
from sqlalchemy import Column

from coursegen.__main__ import _guard_schema_history, _run_upgrade_sync, main
from coursegen.core import migrations
from coursegen.core.database import Base
from coursegen.core.migrations import alembic_config, build_migration_context_options, guarded_add_column, guarded_create_table, include_object
from coursegen.schema.sql import GenerationClaim, GenerationLog

INITIAL_REVISION = "4e1a7c9b2d30"
HEAD_REVISION = "9b3f5d8e6a12"


@pytest.fixture
def script() -> ScriptDirectory:
  return ScriptDirectory.from_config(alembic_config())


def test_revisions_form_a_single_chain(script: ScriptDirectory) -> None:
  assert script.get_heads() == [HEAD_REVISION]
  assert [revision.revision for revision in script.walk_revisions()] == [HEAD_REVISION, INITIAL_REVISION]


def test_revisions_create_every_orm_column(script: ScriptDirectory) -> None:
  created: dict[str, set[str]] = {}

  def create_table(table_name, *elements, **_kwargs):
    created[table_name] = {element.name for element in elements if isinstance(element, Column)}

  def add_column(table_name, column, **_kwargs):
    created[table_name].add(column.name)

  for revision_id in (INITIAL_REVISION, HEAD_REVISION):
    module = script.get_revision(revision_id).module
    with (
      patch.object(module, "guarded_create_table", side_effect=create_table, create=True),
      patch.object(module, "guarded_add_column", side_effect=add_column, create=True),
      patch.object(module, "guarded_create_index", create=True),
      patch.object(module, "op", create=True),
    ):
      module.upgrade()

  expected = {model.__tablename__: set(model.__table__.columns.keys()) for model in (GenerationLog, GenerationClaim)}
  assert created == expected


def test_include_object_ignores_unowned_reflected_objects() -> None:
  assert include_object(None, "legacy", "table", True, None) is False
  assert include_object(None, "legacy_col", "column", True, None) is False
  assert include_object(None, "generation_logs", "table", True, object()) is True
  assert include_object(None, "generation_logs", "table", False, None) is True


def test_context_options_compare_types_and_defaults() -> None:
  options = build_migration_context_options(target_metadata=Base.metadata)
  assert options["compare_type"] is True
  assert options["compare_server_default"] is True
  assert options["target_metadata"] is Base.metadata
  assert options["include_object"] is include_object


def test_guarded_operations_skip_existing_objects() -> None:
  column = MagicMock()
  column.name = "prompt_redacted"
  with (
    patch.object(migrations, "op") as op,
    patch.object(migrations, "table_exists", return_value=True),
    patch.object(migrations, "column_exists", return_value=True),
  ):
    guarded_create_table("generation_logs")
    guarded_add_column("generation_logs", column)

  op.create_table.assert_not_called()
  op.add_column.assert_not_called()


def test_guarded_add_column_adds_missing_columns() -> None:
  column = MagicMock()
  column.name = "prompt_redacted"
  with (
    patch.object(migrations, "op") as op,
    patch.object(migrations, "table_exists", return_value=True),
    patch.object(migrations, "column_exists", return_value=False),
  ):
    guarded_add_column("generation_logs", column)

  op.add_column.assert_called_once_with("generation_logs", column)


def _connection_with_tables(*tables: str) -> AsyncMock:
  connection = AsyncMock()
  result = MagicMock()
  result.scalars.return_value.all.return_value = list(tables)
  connection.execute.return_value = result
  return connection


@pytest.mark.anyio
async def test_history_guard_rejects_unversioned_schema() -> None:
  with pytest.raises(RuntimeError, match="alembic stamp head"):
    await _guard_schema_history(_connection_with_tables("generation_logs", "generation_claims"))


@pytest.mark.anyio
async def test_history_guard_allows_empty_or_versioned_databases() -> None:
  await _guard_schema_history(_connection_with_tables())
  await _guard_schema_history(_connection_with_tables("alembic_version", "generation_logs"))


def test_upgrade_reuses_the_callers_connection() -> None:
  connection = MagicMock()
  with patch("alembic.command.upgrade") as upgrade:
    _run_upgrade_sync(connection)

  config, target = upgrade.call_args.args
  assert target == "head"
  assert config.attributes["connection"] is connection
  assert config.get_main_option("script_location").endswith("alembic")


def test_migrate_command_runs_migrations() -> None:
  with patch("coursegen.__main__._migrate", new_callable=AsyncMock) as migrate:
    assert main(["migrate"]) == 0
  migrate.assert_awaited_once()
