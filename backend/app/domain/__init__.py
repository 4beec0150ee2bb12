"""Domain models representing leaderboard snapshots, markets, and commitments."""

from .models import (
    Commitment,
    Entry,
    MarketDefinition,
    MarketRule,
    ResolvedMarket,
    SignedCommitment,
    Snapshot,
    SubmissionReceipt,
    UnresolvedMarket,
    Winner,
)
from .rules import HeadToHeadRule, ThresholdRule, TOP_RANK_THRESHOLD

__all__ = [
    "Commitment",
    "Entry",
    "HeadToHeadRule",
    "MarketDefinition",
    "MarketRule",
    "ResolvedMarket",
    "SignedCommitment",
    "Snapshot",
    "SubmissionReceipt",
    "TOP_RANK_THRESHOLD",
    "ThresholdRule",
    "UnresolvedMarket",
    "Winner",
]
