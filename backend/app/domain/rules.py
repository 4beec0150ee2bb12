"""Winner rules for the two supported market kinds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Final

from app.errors import NotFoundError

from .models import Entry, Snapshot, Winner

TOP_RANK_THRESHOLD: Final[int] = 10
"""Entries ranked at or above this position count as inside the top group."""


def _require_entry(snapshot: Snapshot, name: str) -> Entry:
    entry = snapshot.find(name)
    if entry is None:
        raise NotFoundError(f"Project {name} not found in leaderboard")
    return entry


def winner_for_threshold_market(snapshot: Snapshot, subject: str) -> Winner:
    entry = _require_entry(snapshot, subject)
    return Winner.FIRST if entry.rank <= TOP_RANK_THRESHOLD else Winner.SECOND


def winner_for_head_to_head_market(
    snapshot: Snapshot, subject_a: str, subject_b: str
) -> Winner:
    """Return ``FIRST`` when ``subject_a`` ranks strictly better than ``subject_b``.

    Equal ranks break the snapshot invariant; they resolve to ``SECOND``.
    """

    entry_a = snapshot.find(subject_a)
    entry_b = snapshot.find(subject_b)
    if entry_a is None or entry_b is None:
        raise NotFoundError(f"Projects not found: {subject_a} or {subject_b}")
    return Winner.FIRST if entry_a.rank < entry_b.rank else Winner.SECOND


@dataclass(frozen=True, slots=True)
class ThresholdRule:
    """Resolves to ``FIRST`` when the subject finishes inside the top group."""

    subject: str
    kind: ClassVar[str] = "top10"

    @property
    def label(self) -> str:
        return f"Top-{TOP_RANK_THRESHOLD}: {self.subject}"

    def determine_winner(self, snapshot: Snapshot) -> Winner:
        return winner_for_threshold_market(snapshot, self.subject)

    def describe_winner(self, winner: Winner) -> str:
        if winner is Winner.FIRST:
            return f"Yes - In Top {TOP_RANK_THRESHOLD}"
        return f"No - Not in Top {TOP_RANK_THRESHOLD}"


@dataclass(frozen=True, slots=True)
class HeadToHeadRule:
    """Resolves to the better ranked of two subjects."""

    subject_a: str
    subject_b: str
    kind: ClassVar[str] = "h2h"

    @property
    def label(self) -> str:
        return f"H2H: {self.subject_a} vs {self.subject_b}"

    def determine_winner(self, snapshot: Snapshot) -> Winner:
        return winner_for_head_to_head_market(snapshot, self.subject_a, self.subject_b)

    def describe_winner(self, winner: Winner) -> str:
        return self.subject_a if winner is Winner.FIRST else self.subject_b


__all__ = [
    "HeadToHeadRule",
    "TOP_RANK_THRESHOLD",
    "ThresholdRule",
    "winner_for_head_to_head_market",
    "winner_for_threshold_market",
]
