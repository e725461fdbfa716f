"""Directory claim and follow flows."""

from __future__ import annotations

from paynym_wallet.orchestrator.claim import ClaimOrchestrator

__all__ = ["ClaimOrchestrator"]
