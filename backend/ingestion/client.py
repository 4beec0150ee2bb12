from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from app.core.config import settings
from app.errors import FetchTimeoutError, InvalidPayloadError, TransportUnavailableError

LEADERBOARD_PATH = "/api/leaderboard/today"
MARKETS_PATH = "/api/markets"
CONTRACTS_PATH = "/api/contracts"


class OracleApiClient:
    """Thin wrapper around the leaderboard API the oracle treats as source of truth."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.resolved_api_base_url
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self.client = httpx.Client(
            base_url=self.base_url, timeout=self.timeout, transport=transport
        )

    def _get_json(self, path: str) -> Any:
        logger.debug("Oracle API GET {}{}", self.base_url, path)
        try:
            response = self.client.get(path)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(
                f"Request timeout while fetching {path}. API may be unresponsive."
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise TransportUnavailableError(
                f"Failed to fetch {path}: {exc.response.status_code} {exc.response.reason_phrase}"
            ) from exc
        except httpx.TransportError as exc:
            raise TransportUnavailableError(
                f"Connection failed while fetching {path}. Is the API server running at {self.base_url}?"
            ) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise InvalidPayloadError(f"Response from {path} is not valid JSON") from exc

    def _get_list(self, path: str) -> list[dict[str, Any]]:
        payload = self._get_json(path)
        if not isinstance(payload, list):
            raise InvalidPayloadError(
                f"Expected a JSON array from {path}, got {type(payload).__name__}"
            )
        return payload

    def fetch_leaderboard(self) -> list[dict[str, Any]]:
        """Return the latest ranked snapshot for today."""

        return self._get_list(LEADERBOARD_PATH)

    def fetch_markets(self) -> list[dict[str, Any]]:
        return self._get_list(MARKETS_PATH)

    def fetch_contracts(self) -> list[dict[str, Any]]:
        return self._get_list(CONTRACTS_PATH)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "OracleApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
