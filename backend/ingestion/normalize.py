from __future__ import annotations

from collections import Counter
from typing import Any, Iterable

from loguru import logger
from pydantic import ValidationError

from app.domain import (
    Entry,
    HeadToHeadRule,
    MarketDefinition,
    MarketRule,
    Snapshot,
    ThresholdRule,
    UnresolvedMarket,
)
from app.errors import InvalidPayloadError
from app.schemas import LeaderboardEntryPayload, MarketPayload


def _hex_to_bytes(value: str) -> bytes:
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


def _warn_on_duplicates(entries: Iterable[Entry]) -> None:
    entries = list(entries)
    duplicate_ranks = sorted(
        rank for rank, count in Counter(entry.rank for entry in entries).items() if count > 1
    )
    duplicate_names = sorted(
        name for name, count in Counter(entry.name for entry in entries).items() if count > 1
    )
    if duplicate_ranks:
        logger.warning(
            "Leaderboard snapshot repeats ranks {}; head-to-head ties resolve to the second project",
            duplicate_ranks,
        )
    if duplicate_names:
        logger.warning(
            "Leaderboard snapshot repeats project names {}; the first occurrence is used",
            duplicate_names,
        )


def normalize_leaderboard(raw_entries: Iterable[dict[str, Any]]) -> Snapshot:
    """Validate raw leaderboard rows, preserving their order."""

    entries: list[Entry] = []
    for index, raw_entry in enumerate(raw_entries):
        try:
            payload = LeaderboardEntryPayload.model_validate(raw_entry)
        except ValidationError as exc:
            raise InvalidPayloadError(
                f"Leaderboard entry #{index} is invalid: {exc}"
            ) from exc
        entries.append(
            Entry(
                name=payload.name,
                rank=payload.rank,
                score=payload.score,
                logo=payload.logo,
                has_logo="logo" in payload.model_fields_set,
            )
        )

    _warn_on_duplicates(entries)
    return Snapshot(entries=tuple(entries))


def _build_rule(payload: MarketPayload) -> MarketRule:
    if payload.type == "top10":
        return ThresholdRule(subject=payload.project_name or "")
    return HeadToHeadRule(subject_a=payload.project_a or "", subject_b=payload.project_b or "")


def normalize_market(raw_market: dict[str, Any]) -> MarketDefinition:
    """Convert an API market record into a domain market definition.

    Records that already carry a ``marketId`` come back resolved.
    """

    try:
        payload = MarketPayload.model_validate(raw_market)
    except ValidationError as exc:
        identifier = raw_market.get("questionHash", "unknown") if isinstance(raw_market, dict) else "unknown"
        raise InvalidPayloadError(f"Market {identifier} is invalid: {exc}") from exc

    market = UnresolvedMarket(
        rule=_build_rule(payload),
        question_digest=_hex_to_bytes(payload.question_hash),
        lock_time=payload.lock_time,
        resolve_time=payload.resolve_time,
        market_address=payload.market_address,
    )
    if payload.market_id:
        return market.resolve(_hex_to_bytes(payload.market_id))
    return market
