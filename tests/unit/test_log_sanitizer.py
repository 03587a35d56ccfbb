from __future__ import annotations

from datetime import UTC, datetime, timedelta

from coursegen.telemetry.sanitizer import (
  redaction_marker,
  sanitize_prompt_for_persistence,
  sanitize_text_for_persistence,
  scrub_pii,
  sensitive_text_expiry,
  sha256_hex,
  truncate_text,
)


def test_truncate_text() -> None:
  assert truncate_text(None) is None
  assert truncate_text("short", 10) == "short"
  assert truncate_text("abcdefghij", 4) == "abcd\n[TRUNCATED: 6 chars omitted]"


def test_short_text_is_kept_inline() -> None:
  result = sanitize_text_for_persistence("{}", "rawOutput")
  assert result.sanitized == "{}"
  assert not result.redacted
  assert result.hash == sha256_hex("{}")


def test_long_text_is_replaced_by_marker() -> None:
  value = "z" * 801
  result = sanitize_text_for_persistence(value, "rawOutput")
  assert result.redacted
  assert result.sanitized == redaction_marker("rawOutput", value)
  assert result.sanitized.endswith(":chars=801]")


def test_empty_text() -> None:
  result = sanitize_text_for_persistence("", "rawOutput")
  assert result.sanitized is None
  assert result.hash is None


def test_scrub_pii() -> None:
  assert scrub_pii("mail ada@example.com or call 555-123-4567") == "mail [EMAIL REDACTED] or call [PHONE REDACTED]"


def test_prompt_blocks_are_redacted() -> None:
  prompt = (
    "Build a lesson on limits.\n\n"
    "COURSE CONTEXT DOCUMENT:\nMy private syllabus notes\n\n"
    "IMPORTANT - WEAK AREAS FEEDBACK:\nStruggles with epsilon-delta proofs\n\n"
    "OUTPUT FORMAT:\nJSON"
  )

  result = sanitize_prompt_for_persistence(prompt)

  assert result.redacted
  assert "My private syllabus notes" not in result.sanitized
  assert "Struggles with epsilon-delta" not in result.sanitized
  assert "[REDACTED:contextDoc:sha256=" in result.sanitized
  assert "[REDACTED:userFeedback:sha256=" in result.sanitized
  assert result.sanitized.endswith("OUTPUT FORMAT:\nJSON")
  assert result.hash == sha256_hex(prompt)


def test_prompt_pii_and_length() -> None:
  assert sanitize_prompt_for_persistence("Email ada@example.com the lesson").sanitized == "Email [EMAIL REDACTED] the lesson"

  long_prompt = "Explain derivatives. " * 100
  result = sanitize_prompt_for_persistence(long_prompt)
  assert result.redacted
  assert result.sanitized.startswith("[REDACTED:prompt:sha256=")

  plain = sanitize_prompt_for_persistence("Explain derivatives.")
  assert plain.sanitized == "Explain derivatives."
  assert not plain.redacted


def test_sensitive_text_expiry_defaults() -> None:
  now = datetime(2026, 1, 1, tzinfo=UTC)
  assert sensitive_text_expiry(now, 2) == now + timedelta(hours=2)
  assert sensitive_text_expiry(now, 0) == now + timedelta(hours=24)
  assert sensitive_text_expiry(now, float("nan")) == now + timedelta(hours=24)
