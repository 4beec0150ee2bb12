"""Contract address table resolved once at start-up.

The local JSON file is the fallback; the API's ``/api/contracts`` listing
overrides it only when, after merging, all three roles are present.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from eth_utils import is_address, to_checksum_address
from loguru import logger
from pydantic import ValidationError

from app.errors import ConfigurationError, OracleError
from app.schemas import ContractRecordPayload, ContractTablePayload


class ContractRole(str, Enum):
    SETTLEMENT_ORACLE = "settlementOracle"
    MARKET_FACTORY = "marketFactory"
    STAKE_TOKEN = "stakeToken"


@dataclass(frozen=True, slots=True)
class ContractAddresses:
    settlement_oracle: str
    market_factory: str
    stake_token: str

    def address_for(self, role: ContractRole | str) -> str:
        role = ContractRole(role)
        if role is ContractRole.SETTLEMENT_ORACLE:
            return self.settlement_oracle
        if role is ContractRole.MARKET_FACTORY:
            return self.market_factory
        return self.stake_token

    def to_dict(self) -> dict[str, str]:
        return {role.value: self.address_for(role) for role in ContractRole}


def _checksum(value: str | None) -> str | None:
    if not value:
        return None
    if not is_address(value):
        logger.warning("Ignoring malformed contract address {}", value)
        return None
    return to_checksum_address(value)


def _read_fallback(path: Path) -> dict[str, str]:
    if not path.exists():
        logger.warning("Contract address file {} not found", path)
        return {}
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        table = ContractTablePayload.model_validate(raw)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigurationError(f"Invalid contract address file {path}: {exc}") from exc

    merged: dict[str, str] = {}
    for role, value in (
        (ContractRole.SETTLEMENT_ORACLE, table.settlement_oracle),
        (ContractRole.MARKET_FACTORY, table.market_factory),
        (ContractRole.STAKE_TOKEN, table.stake_token),
    ):
        address = _checksum(value)
        if address:
            merged[role.value] = address
    return merged


def merge_remote_records(
    base: Mapping[str, str], records: Iterable[Mapping[str, Any]]
) -> dict[str, str] | None:
    """Overlay API records on ``base``; return ``None`` unless every role is set."""

    known_roles = {role.value for role in ContractRole}
    merged = dict(base)
    for raw in records:
        try:
            record = ContractRecordPayload.model_validate(raw)
        except ValidationError:
            logger.warning("Skipping malformed contract record {}", raw)
            continue
        if record.type not in known_roles:
            continue
        address = _checksum(record.address)
        if address:
            merged[record.type] = address
    if known_roles - set(merged):
        return None
    return merged


def load_contract_addresses(
    fallback_path: Path,
    fetch_remote: Callable[[], Iterable[Mapping[str, Any]]] | None = None,
) -> ContractAddresses:
    table = _read_fallback(fallback_path)

    if fetch_remote is not None:
        try:
            remote_records = list(fetch_remote())
        except OracleError as exc:
            logger.warning(
                "Failed to fetch contracts from API, using local config: {}", exc
            )
        else:
            merged = merge_remote_records(table, remote_records)
            if merged is None:
                logger.warning(
                    "API contract listing is incomplete; keeping local contract addresses"
                )
            else:
                table = merged

    missing = [role.value for role in ContractRole if role.value not in table]
    if missing:
        raise ConfigurationError(
            f"Contract addresses not configured: missing {', '.join(missing)}"
        )

    addresses = ContractAddresses(
        settlement_oracle=table[ContractRole.SETTLEMENT_ORACLE.value],
        market_factory=table[ContractRole.MARKET_FACTORY.value],
        stake_token=table[ContractRole.STAKE_TOKEN.value],
    )
    logger.info("Using contract addresses {}", addresses.to_dict())
    return addresses


__all__ = [
    "ContractAddresses",
    "ContractRole",
    "load_contract_addresses",
    "merge_remote_records",
]
