from __future__ import annotations

import os

import pytest

from coursegen.config import DEFAULT_REPACK_MODEL_PREFERENCE, get_settings
from coursegen.utils.env import load_env_file

_ENV_KEYS = (
  "COURSEGEN_ENV",
  "COURSEGEN_ALLOWED_ORIGINS",
  "COURSEGEN_REPACK_MODEL_PREFERENCE",
  "COURSEGEN_GENERATION_LOG_SENSITIVE_TTL_HOURS",
  "COURSEGEN_GENERATION_STALE_SECONDS",
  "COURSEGEN_PG_DSN",
  "DATABASE_URL",
)


@pytest.fixture
def clean_env(monkeypatch, clear_settings_cache):
  for key in _ENV_KEYS:
    monkeypatch.delenv(key, raising=False)
  return monkeypatch


def test_defaults(clean_env) -> None:
  settings = get_settings()
  assert settings.environment == "development"
  assert settings.allowed_origins == ()
  assert settings.repack_model_preference == DEFAULT_REPACK_MODEL_PREFERENCE
  assert settings.generation_log_sensitive_ttl_hours == 24.0
  assert settings.generation_stale_seconds == 600
  assert settings.pg_dsn is None


def test_overrides(clean_env) -> None:
  clean_env.setenv("COURSEGEN_ALLOWED_ORIGINS", "https://a.example, https://b.example")
  clean_env.setenv("COURSEGEN_REPACK_MODEL_PREFERENCE", "gpt-5-mini,gemini-2.5-flash")
  clean_env.setenv("COURSEGEN_GENERATION_LOG_SENSITIVE_TTL_HOURS", "-3")
  clean_env.setenv("DATABASE_URL", "postgresql://localhost/coursegen")

  settings = get_settings()

  assert settings.allowed_origins == ("https://a.example", "https://b.example")
  assert settings.repack_model_preference == ("gpt-5-mini", "gemini-2.5-flash")
  assert settings.generation_log_sensitive_ttl_hours == 24.0
  assert settings.pg_dsn == "postgresql://localhost/coursegen"


def test_wildcard_origin_is_rejected(clean_env) -> None:
  clean_env.setenv("COURSEGEN_ALLOWED_ORIGINS", "*")
  with pytest.raises(ValueError, match="wildcard"):
    get_settings()


def test_non_positive_stale_seconds_is_rejected(clean_env) -> None:
  clean_env.setenv("COURSEGEN_GENERATION_STALE_SECONDS", "0")
  with pytest.raises(ValueError, match="positive"):
    get_settings()


def test_load_env_file(tmp_path, monkeypatch) -> None:
  env_file = tmp_path / ".env"
  env_file.write_text('# comment\nexport COURSEGEN_TEST_A="quoted"\nCOURSEGEN_TEST_B=plain\nnot a pair\n', encoding="utf-8")
  monkeypatch.delenv("COURSEGEN_TEST_A", raising=False)
  monkeypatch.setenv("COURSEGEN_TEST_B", "from-shell")

  applied = load_env_file(env_file)

  assert applied == {"COURSEGEN_TEST_A": "quoted"}
  assert os.environ["COURSEGEN_TEST_B"] == "from-shell"
  os.environ.pop("COURSEGEN_TEST_A", None)
