from __future__ import annotations

from typing import Any, Protocol

from loguru import logger

from app.domain import Snapshot, TOP_RANK_THRESHOLD

from .normalize import normalize_leaderboard


class SnapshotSource(Protocol):
    def fetch_leaderboard(self) -> list[dict[str, Any]]:
        ...

    def fetch_markets(self) -> list[dict[str, Any]]:
        ...


def load_snapshot(client: SnapshotSource) -> Snapshot:
    """Load today's latest leaderboard snapshot as-is.

    The snapshot is already randomized upstream; it is never reshuffled here.
    """

    logger.info("Loading leaderboard snapshot (latest index for today)...")
    snapshot = normalize_leaderboard(client.fetch_leaderboard())
    logger.info("Loaded leaderboard with {} projects", len(snapshot))
    logger.info(
        "Top {}: {}",
        TOP_RANK_THRESHOLD,
        ", ".join(entry.name for entry in snapshot.top(TOP_RANK_THRESHOLD)),
    )
    return snapshot


def load_market_records(client: SnapshotSource) -> list[dict[str, Any]]:
    logger.info("Loading markets from API...")
    records = client.fetch_markets()
    logger.info("Loaded {} market definitions", len(records))
    return records
