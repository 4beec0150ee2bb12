"""Payload and constant builders shared by the test modules."""

from __future__ import annotations

from typing import Any

# Well-known development account (Hardhat/Anvil account #0); never funded on real networks.
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
TEST_SIGNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ORACLE_ADDRESS = "0x" + "11" * 20
FACTORY_ADDRESS = "0x" + "22" * 20
STAKE_TOKEN_ADDRESS = "0x" + "33" * 20

PROJECT_NAMES = (
    "Scroll",
    "Morpho",
    "Jupiter",
    "Fantom",
    "Gains Network",
    "Drift Protocol",
    "Aave",
    "Lido",
    "Uniswap",
    "Pendle",
    "Ethena",
    "Hyperliquid",
)


def leaderboard_rows(names: tuple[str, ...] = PROJECT_NAMES) -> list[dict[str, Any]]:
    return [
        {
            "name": name,
            "rank": index,
            "score": round(100 - index * 3.5, 2),
            "logo": f"https://cdn.example.com/{name.lower().replace(' ', '-')}.png",
        }
        for index, name in enumerate(names, start=1)
    ]


def question_hash(seed: int) -> str:
    return "0x" + f"{seed:02x}" * 32


def top10_market(
    project: str, *, resolve_time: int, seed: int = 1, market_id: str | None = None
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": "top10",
        "projectName": project,
        "lockTime": resolve_time - 3600,
        "resolveTime": resolve_time,
        "questionHash": question_hash(seed),
    }
    if market_id:
        payload["marketId"] = market_id
    return payload


def h2h_market(
    project_a: str, project_b: str, *, resolve_time: int, seed: int = 2
) -> dict[str, Any]:
    return {
        "type": "h2h",
        "projectA": project_a,
        "projectB": project_b,
        "lockTime": resolve_time - 3600,
        "resolveTime": resolve_time,
        "questionHash": question_hash(seed),
    }
