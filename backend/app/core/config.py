from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, AnyUrl, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.errors import ConfigurationError


def _strip_trailing_slash(value: Any) -> Any:
    if isinstance(value, str):
        return value.rstrip("/")
    return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    rpc_url: AnyUrl | str = Field(
        default="https://sepolia.base.org",
        description="JSON-RPC endpoint of the chain hosting the settlement oracle",
    )
    private_key: SecretStr | None = Field(
        default=None,
        description="Hex-encoded private key of the oracle signer",
    )
    api_base_url: AnyUrl | str = Field(
        default="http://localhost:3001",
        validation_alias=AliasChoices("API_URL", "api_base_url"),
        description="Base URL of the leaderboard/market API (source of truth)",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices("ORACLE_HTTP_TIMEOUT_SECONDS", "http_timeout_seconds"),
        description="Timeout applied to every leaderboard/market API request",
        gt=0,
    )
    contracts_path: Path = Field(
        default=Path("config/contracts.json"),
        description="Fallback contract address table used when the API cannot supply one",
    )
    chain_receipt_timeout_seconds: float = Field(
        default=600.0,
        description="Upper bound on waiting for a resolution transaction to be mined",
        gt=0,
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum loguru level emitted by command line entry points",
    )

    @field_validator("rpc_url", "api_base_url", mode="before")
    @classmethod
    def _normalize_urls(cls, value: Any) -> Any:
        return _strip_trailing_slash(value)

    @field_validator("private_key", mode="before")
    @classmethod
    def _normalize_private_key(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, SecretStr):
            value = value.get_secret_value()
        candidate = str(value).strip()
        if not candidate:
            return None
        if not candidate.startswith("0x"):
            candidate = "0x" + candidate
        return candidate

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        allowed = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(
                f"log_level must be one of {', '.join(sorted(allowed))}"
            )
        return normalized

    @property
    def resolved_api_base_url(self) -> str:
        return str(self.api_base_url).rstrip("/")

    @property
    def resolved_rpc_url(self) -> str:
        return str(self.rpc_url).rstrip("/")

    def require_private_key(self) -> str:
        if self.private_key is None:
            raise ConfigurationError("PRIVATE_KEY not set in environment variables")
        return self.private_key.get_secret_value()


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
