"""Per-market readiness gate and lifecycle states."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from app.domain import MarketDefinition


class MarketState(str, Enum):
    PENDING_TIME = "pending_time"
    READY = "ready"
    RESOLVED = "resolved"
    SKIPPED = "skipped"
    FAILED = "failed"


TERMINAL_STATES = frozenset({MarketState.RESOLVED, MarketState.SKIPPED, MarketState.FAILED})


@dataclass(frozen=True, slots=True)
class GateDecision:
    ready: bool
    wait_seconds: int
    ready_at: datetime


def unix_to_iso(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def evaluate_gate(market: MarketDefinition, chain_time: int) -> GateDecision:
    """A market may be resolved once chain time reaches its resolve time."""

    wait = max(market.resolve_time - chain_time, 0)
    return GateDecision(
        ready=chain_time >= market.resolve_time,
        wait_seconds=wait,
        ready_at=datetime.fromtimestamp(market.resolve_time, tz=timezone.utc),
    )


def format_wait(seconds: int) -> str:
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}h {minutes}m {secs}s"
