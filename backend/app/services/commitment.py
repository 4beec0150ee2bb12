"""Commitment construction for the settlement oracle.

Everything here is pure: the same snapshot, market, and timestamps always
produce the same bytes. ``build_blob_digest`` reproduces the contract's own
``keccak256(abi.encode(...))`` over the ``Resolve`` type descriptor, so any
change to field order, widths, or the hash function invalidates every
signature the oracle produces.
"""

from __future__ import annotations

import json
import math
import re
from decimal import Decimal
from typing import Final

from eth_abi import encode
from eth_utils import keccak, to_checksum_address

from app.domain import (
    Commitment,
    Entry,
    MarketDefinition,
    ResolvedMarket,
    Snapshot,
)
from app.domain.rules import (
    TOP_RANK_THRESHOLD,
    winner_for_head_to_head_market,
    winner_for_threshold_market,
)
from app.errors import MarketIdUnsetError

RESOLVE_TYPE: Final[str] = (
    "Resolve(bytes32 marketId,uint8 winner,bytes32 snapshotHash,uint64 resolvedAt,"
    "uint64 challengeUntil,uint256 nonce,address this)"
)
RESOLVE_TYPEHASH: Final[bytes] = keccak(text=RESOLVE_TYPE)
BLOB_ABI_TYPES: Final[tuple[str, ...]] = (
    "bytes32",
    "bytes32",
    "uint8",
    "bytes32",
    "uint64",
    "uint64",
    "uint256",
    "address",
)
CHALLENGE_WINDOW_RESERVED: Final[int] = 0
MAX_SAFE_INTEGER: Final[int] = 2**53
_LONE_SURROGATE = re.compile(r"[\ud800-\udfff]")


def _format_number(value: int | float) -> str:
    """Render ``value`` the way ECMAScript ``Number#toString`` does."""

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        if abs(value) <= MAX_SAFE_INTEGER:
            return str(value)
        # Larger integers only exist upstream as IEEE doubles.
        try:
            value = float(value)
        except OverflowError:
            return "null"
    if not math.isfinite(value):
        return "null"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr() yields the shortest round-tripping digits, as ECMAScript requires.
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = "".join(str(digit) for digit in digit_tuple).rstrip("0")
    k = len(digits)
    n = len(digit_tuple) + exponent

    if k <= n <= 21:
        body = digits + "0" * (n - k)
    elif 0 < n <= 21:
        body = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        body = "0." + "0" * (-n) + digits
    else:
        e = n - 1
        e_sign = "+" if e >= 0 else "-"
        mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        body = f"{mantissa}e{e_sign}{abs(e)}"
    return sign + body


def _format_string(value: str | None) -> str:
    if value is None:
        return "null"
    # Adjacent surrogate halves pair up into one code point; unpaired ones are
    # written as lowercase \uXXXX escapes, as well-formed JSON.stringify does.
    value = value.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")
    encoded = json.dumps(value, ensure_ascii=False)
    return _LONE_SURROGATE.sub(lambda match: f"\\u{ord(match.group()):04x}", encoded)


def _serialize_entry(entry: Entry) -> str:
    fields = [
        f'"name":{_format_string(entry.name)}',
        f'"rank":{_format_number(entry.rank)}',
        f'"score":{_format_number(entry.score)}',
    ]
    if entry.has_logo:
        fields.append(f'"logo":{_format_string(entry.logo)}')
    return "{" + ",".join(fields) + "}"


def canonical_snapshot_json(snapshot: Snapshot) -> str:
    """Serialize the ordered snapshot with fixed key order and number formatting."""

    return "[" + ",".join(_serialize_entry(entry) for entry in snapshot) + "]"


def canonical_snapshot_hash(snapshot: Snapshot) -> bytes:
    return keccak(text=canonical_snapshot_json(snapshot))


def build_commitment(
    market: MarketDefinition, snapshot: Snapshot, resolved_at: int
) -> Commitment:
    """Build the outcome commitment for a market whose id is known."""

    if not isinstance(market, ResolvedMarket):
        raise MarketIdUnsetError(
            f"Market ID not set for market: 0x{market.question_digest.hex()}"
        )

    winner = market.rule.determine_winner(snapshot)
    return Commitment(
        market_id=market.market_id,
        winner=winner,
        snapshot_hash=canonical_snapshot_hash(snapshot),
        resolved_at=resolved_at,
        challenge_until=CHALLENGE_WINDOW_RESERVED,
        nonce=resolved_at,
    )


def encode_blob(commitment: Commitment, verifying_contract: str) -> bytes:
    """ABI-encode the typed ``Resolve`` blob exactly as the contract does."""

    return encode(
        list(BLOB_ABI_TYPES),
        [
            RESOLVE_TYPEHASH,
            commitment.market_id,
            int(commitment.winner),
            commitment.snapshot_hash,
            commitment.resolved_at,
            commitment.challenge_until,
            commitment.nonce,
            to_checksum_address(verifying_contract),
        ],
    )


def build_blob_digest(commitment: Commitment, verifying_contract: str) -> bytes:
    return keccak(encode_blob(commitment, verifying_contract))


__all__ = [
    "BLOB_ABI_TYPES",
    "RESOLVE_TYPE",
    "RESOLVE_TYPEHASH",
    "TOP_RANK_THRESHOLD",
    "build_blob_digest",
    "build_commitment",
    "canonical_snapshot_hash",
    "canonical_snapshot_json",
    "encode_blob",
    "winner_for_head_to_head_market",
    "winner_for_threshold_market",
]
