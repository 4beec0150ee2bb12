from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

HEX_32_LENGTH = 66


def _normalize_hex32(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        value = "0x" + bytes(value).hex()
    if not isinstance(value, str):
        raise ValueError("expected a 0x-prefixed hex string")
    candidate = value.strip().lower()
    if not candidate.startswith("0x"):
        candidate = "0x" + candidate
    if len(candidate) != HEX_32_LENGTH:
        raise ValueError("expected 32 bytes of hex data")
    try:
        bytes.fromhex(candidate[2:])
    except ValueError as exc:
        raise ValueError("expected 32 bytes of hex data") from exc
    return candidate


class LeaderboardEntryPayload(BaseModel):
    # Strict: the snapshot hash covers these values as received, so no coercion.
    model_config = ConfigDict(extra="ignore", strict=True)

    name: str
    rank: int = Field(ge=1)
    score: int | float
    logo: str | None = None


class MarketPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: Literal["top10", "h2h"]
    project_name: str | None = Field(default=None, alias="projectName")
    project_a: str | None = Field(default=None, alias="projectA")
    project_b: str | None = Field(default=None, alias="projectB")
    lock_time: int = Field(alias="lockTime", ge=0)
    resolve_time: int = Field(alias="resolveTime", ge=0)
    question_hash: str = Field(alias="questionHash")
    market_id: str | None = Field(default=None, alias="marketId")
    market_address: str | None = Field(default=None, alias="marketAddress")

    @field_validator("question_hash", "market_id", mode="before")
    @classmethod
    def _coerce_hex32(cls, value: Any) -> Any:
        if value in ("", None):
            return None
        return _normalize_hex32(value)

    @model_validator(mode="after")
    def _require_subjects(self) -> "MarketPayload":
        if self.question_hash is None:
            raise ValueError("questionHash is required")
        if self.type == "top10" and not self.project_name:
            raise ValueError("top10 markets require projectName")
        if self.type == "h2h" and not (self.project_a and self.project_b):
            raise ValueError("h2h markets require projectA and projectB")
        return self


class ContractRecordPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    address: str


class ContractTablePayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    settlement_oracle: str | None = Field(default=None, alias="settlementOracle")
    market_factory: str | None = Field(default=None, alias="marketFactory")
    stake_token: str | None = Field(default=None, alias="stakeToken")
