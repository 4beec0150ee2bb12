from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))
sys.path.insert(0, str(Path(__file__).resolve().parent))

import pytest

from app.core.config import Settings
from app.domain import Entry, Snapshot
from app.services.signer import CommitmentSigner
from factories import TEST_PRIVATE_KEY, leaderboard_rows


@pytest.fixture
def ranked_snapshot() -> Snapshot:
    """Twelve entries ranked 1..12 in order."""

    return Snapshot(
        entries=tuple(
            Entry(name=row["name"], rank=row["rank"], score=row["score"], logo=row["logo"])
            for row in leaderboard_rows()
        )
    )


@pytest.fixture
def signer() -> CommitmentSigner:
    return CommitmentSigner(TEST_PRIVATE_KEY)


@pytest.fixture
def test_settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        private_key=TEST_PRIVATE_KEY,
        api_base_url="http://oracle.test",
        rpc_url="http://rpc.test",
        contracts_path=tmp_path / "contracts.json",
        http_timeout_seconds=5,
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    return settings
