"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from coursegen.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

DEFAULT_REPACK_MODEL_PREFERENCE: tuple[str, ...] = (
  "claude-haiku-4-5-20251001",
  "gpt-5-mini",
  "gemini-2.5-flash",
  "claude-sonnet-4-5-20250929",
  "o3-mini",
  "gemini-2.5-pro",
  "claude-opus-4-6",
  "gpt-5.2",
  "gemini-3-pro-preview",
)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the generation core."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_dir: str
  log_max_bytes: int
  log_backup_count: int
  pg_dsn: str | None
  pg_connect_timeout: int
  generation_log_enabled: bool
  generation_log_raw_text_max_chars: int
  generation_log_inline_max_chars: int
  generation_log_sensitive_ttl_hours: float
  generation_stale_seconds: int
  repack_model_preference: tuple[str, ...]


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _parse_csv(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ()
  return tuple(item.strip() for item in raw.split(",") if item.strip())


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  origins = _parse_csv(raw)
  if "*" in origins:
    raise ValueError("COURSEGEN_ALLOWED_ORIGINS must not include wildcard origins.")
  return origins


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _ttl_hours(raw: str | None) -> float:
  """Fall back to 24h for missing or nonsensical retention values."""
  if raw is None:
    return 24.0
  try:
    hours = float(raw)
  except ValueError:
    return 24.0
  if hours != hours or hours <= 0 or hours == float("inf"):
    return 24.0
  return hours


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("COURSEGEN_ENV", "development").lower()
  debug = _parse_bool(os.getenv("COURSEGEN_DEBUG"))

  log_max_bytes = _positive_int("COURSEGEN_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("COURSEGEN_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("COURSEGEN_LOG_BACKUP_COUNT must be zero or a positive integer.")

  raw_text_max = _positive_int("COURSEGEN_GENERATION_LOG_RAW_TEXT_MAX_CHARS", str(200 * 1024))
  inline_max = _positive_int("COURSEGEN_GENERATION_LOG_INLINE_MAX_CHARS", "800")
  stale_seconds = _positive_int("COURSEGEN_GENERATION_STALE_SECONDS", "600")

  # An explicit preference list replaces the default ordering entirely.
  repack_preference = _parse_csv(os.getenv("COURSEGEN_REPACK_MODEL_PREFERENCE")) or DEFAULT_REPACK_MODEL_PREFERENCE

  database = get_database_settings()

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("COURSEGEN_ALLOWED_ORIGINS")),
    log_dir=os.getenv("COURSEGEN_LOG_DIR", "./logs").strip(),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    pg_dsn=database.pg_dsn,
    pg_connect_timeout=database.pg_connect_timeout,
    generation_log_enabled=_parse_bool(os.getenv("COURSEGEN_GENERATION_LOG_ENABLED")),
    generation_log_raw_text_max_chars=raw_text_max,
    generation_log_inline_max_chars=inline_max,
    generation_log_sensitive_ttl_hours=_ttl_hours(os.getenv("COURSEGEN_GENERATION_LOG_SENSITIVE_TTL_HOURS")),
    generation_stale_seconds=stale_seconds,
    repack_model_preference=repack_preference,
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring the rest of the runtime configuration."""
  debug = _parse_bool(os.getenv("COURSEGEN_DEBUG"))
  pg_connect_timeout = _positive_int("COURSEGEN_PG_CONNECT_TIMEOUT", "5")

  # Support fallback to DATABASE_URL for hosted environments.
  pg_dsn = os.getenv("COURSEGEN_PG_DSN") or os.getenv("DATABASE_URL")

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)
