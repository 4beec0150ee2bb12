from __future__ import annotations

from dataclasses import dataclass

from app.core.config import Settings
from app.domain import Snapshot


@dataclass(slots=True)
class ResolutionContext:
    """Read-only inputs shared by every market in one resolution run."""

    run_id: str
    chain_time: int
    snapshot: Snapshot
    verifying_contract: str
    settings: Settings
    dry_run: bool
