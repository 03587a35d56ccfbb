"""Redaction helpers applied before generation payloads are persisted."""

from __future__ import annotations

import hashlib
import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta

INLINE_MAX_CHARS = 800
LONG_PROMPT_MIN_CHARS = 1200
RAW_TEXT_MAX_CHARS = 200 * 1024
DEFAULT_SENSITIVE_TTL_HOURS = 24.0

_EMAIL_RE = re.compile(r"[\w\.-]+@[\w\.-]+\.\w+")
_PHONE_RE = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")
_CONTEXT_DOC_RE = re.compile(r"COURSE CONTEXT DOCUMENT:\n([\s\S]*?)(\n\n[A-Z][A-Z _-]+:|$)", re.IGNORECASE)
_WEAK_AREAS_RE = re.compile(r"(IMPORTANT - WEAK AREAS FEEDBACK:\n)([\s\S]*?)(\n\n[A-Z][A-Z _-]+:|$)", re.IGNORECASE)


@dataclass(frozen=True)
class SanitizedText:
  sanitized: str | None
  redacted: bool
  hash: str | None


_EMPTY = SanitizedText(sanitized=None, redacted=False, hash=None)


def sha256_hex(value: str) -> str:
  return hashlib.sha256(value.encode("utf-8")).hexdigest()


def redaction_marker(label: str, value: str) -> str:
  return f"[REDACTED:{label}:sha256={sha256_hex(value)}:chars={len(value)}]"


def scrub_pii(text: str) -> str:
  """Redact common PII patterns."""
  text = _EMAIL_RE.sub("[EMAIL REDACTED]", text)
  return _PHONE_RE.sub("[PHONE REDACTED]", text)


def truncate_text(text: str | None, max_chars: int = RAW_TEXT_MAX_CHARS) -> str | None:
  if text is None or len(text) <= max_chars:
    return text
  omitted = len(text) - max_chars
  return f"{text[:max_chars]}\n[TRUNCATED: {omitted} chars omitted]"


def sanitize_text_for_persistence(value: str | None, label: str, *, max_chars: int = INLINE_MAX_CHARS) -> SanitizedText:
  """Keep short values inline; replace long ones with a hash marker."""
  if not value:
    return _EMPTY

  digest = sha256_hex(value)
  if len(value) <= max_chars:
    return SanitizedText(sanitized=value, redacted=False, hash=digest)
  return SanitizedText(sanitized=redaction_marker(label, value), redacted=True, hash=digest)


def sanitize_prompt_for_persistence(prompt: str | None, *, max_chars: int = LONG_PROMPT_MIN_CHARS) -> SanitizedText:
  """Redact user-supplied blocks and PII; collapse long prompts to a marker. The hash covers the original prompt."""
  if not prompt:
    return _EMPTY

  redacted = False

  def _context(match: re.Match[str]) -> str:
    nonlocal redacted
    redacted = True
    return f"COURSE CONTEXT DOCUMENT:\n{redaction_marker('contextDoc', match.group(1))}{match.group(2)}"

  def _weak_areas(match: re.Match[str]) -> str:
    nonlocal redacted
    redacted = True
    return f"{match.group(1)}{redaction_marker('userFeedback', match.group(2))}{match.group(3)}"

  output = _CONTEXT_DOC_RE.sub(_context, prompt)
  output = _WEAK_AREAS_RE.sub(_weak_areas, output)

  scrubbed = scrub_pii(output)
  if scrubbed != output:
    redacted = True
  output = scrubbed

  if len(output) > max_chars:
    redacted = True
    output = redaction_marker("prompt", output)

  return SanitizedText(sanitized=output, redacted=redacted, hash=sha256_hex(prompt))


def sensitive_text_expiry(now: datetime, ttl_hours: float = DEFAULT_SENSITIVE_TTL_HOURS) -> datetime:
  if math.isnan(ttl_hours) or ttl_hours <= 0:
    ttl_hours = DEFAULT_SENSITIVE_TTL_HOURS
  return now + timedelta(hours=ttl_hours)
