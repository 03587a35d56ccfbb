"""Repair pipeline contracts and hooks."""

from coursegen.ai.pipeline.contracts import GenerationAttempt, GenerationLogContext, GenerationResult
from coursegen.ai.pipeline.repair_hook import RepairTracker, build_repair_hook

__all__ = ["GenerationAttempt", "GenerationLogContext", "GenerationResult", "RepairTracker", "build_repair_hook"]
