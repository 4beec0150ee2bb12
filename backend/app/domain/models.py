"""Typed domain representations used across ingestion, signing, and submission."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, Protocol


class Winner(IntEnum):
    """Outcome slot reported to the settlement oracle."""

    FIRST = 1
    SECOND = 2


@dataclass(frozen=True, slots=True)
class Entry:
    """One ranked leaderboard row.

    ``has_logo`` is false when the upstream row had no ``logo`` key at all,
    which serializes differently from an explicit ``null``.
    """

    name: str
    rank: int
    score: int | float
    logo: str | None
    has_logo: bool = True


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Ordered leaderboard as read from the API; order is significant for hashing."""

    entries: tuple[Entry, ...]

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def find(self, name: str) -> Entry | None:
        """Return the first entry called ``name``."""

        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def top(self, count: int) -> tuple[Entry, ...]:
        return self.entries[:count]


class MarketRule(Protocol):
    """Winner determination capability implemented by each market kind."""

    kind: str

    @property
    def label(self) -> str:
        """Human-readable market title used in status lines."""

    def determine_winner(self, snapshot: Snapshot) -> Winner:
        """Return the winning slot for ``snapshot``."""

    def describe_winner(self, winner: Winner) -> str:
        """Explain what ``winner`` means for this market."""


@dataclass(frozen=True, slots=True)
class UnresolvedMarket:
    """Market definition whose on-chain id has not been computed yet."""

    rule: MarketRule
    question_digest: bytes
    lock_time: int
    resolve_time: int
    market_address: str | None = None

    @property
    def label(self) -> str:
        return self.rule.label

    @property
    def definition(self) -> UnresolvedMarket:
        return self

    def resolve(self, market_id: bytes) -> ResolvedMarket:
        return ResolvedMarket(definition=self, market_id=market_id)


@dataclass(frozen=True, slots=True)
class ResolvedMarket:
    """Market definition paired with its on-chain market id."""

    definition: UnresolvedMarket
    market_id: bytes

    @property
    def rule(self) -> MarketRule:
        return self.definition.rule

    @property
    def question_digest(self) -> bytes:
        return self.definition.question_digest

    @property
    def lock_time(self) -> int:
        return self.definition.lock_time

    @property
    def resolve_time(self) -> int:
        return self.definition.resolve_time

    @property
    def label(self) -> str:
        return self.definition.label


MarketDefinition = UnresolvedMarket | ResolvedMarket


@dataclass(frozen=True, slots=True)
class Commitment:
    """Outcome tuple signed by the oracle and posted on chain."""

    market_id: bytes
    winner: Winner
    snapshot_hash: bytes
    resolved_at: int
    challenge_until: int
    nonce: int

    def as_tuple(self) -> tuple[bytes, int, bytes, int, int, int]:
        """Return the field order of the contract's ``Resolution`` struct."""

        return (
            self.market_id,
            int(self.winner),
            self.snapshot_hash,
            self.resolved_at,
            self.challenge_until,
            self.nonce,
        )


@dataclass(frozen=True, slots=True)
class SignedCommitment:
    commitment: Commitment
    digest: bytes
    signature: bytes


@dataclass(frozen=True, slots=True)
class SubmissionReceipt:
    """Confirmation details of a mined resolution transaction."""

    tx_hash: str
    block_number: int
    status: int
