"""Oracle job that resolves ready markets against today's leaderboard snapshot."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence
from uuid import uuid4

from loguru import logger

from app.core.config import Settings, get_settings
from app.core.logging import configure_logging
from app.domain import UnresolvedMarket
from app.errors import ErrorKind, NotReadyYetError, OracleError, classify
from app.services.chain import ChainAdapter, Web3ChainAdapter
from app.services.commitment import build_commitment, canonical_snapshot_hash
from app.services.contracts import ContractAddresses, ContractRole, load_contract_addresses
from app.services.signer import CommitmentSigner
from ingestion.client import OracleApiClient
from ingestion.normalize import normalize_market
from ingestion.service import SnapshotSource, load_market_records, load_snapshot

from .context import ResolutionContext
from .gate import MarketState, evaluate_gate, format_wait, unix_to_iso


@dataclass(slots=True)
class MarketOutcome:
    label: str
    question_hash: str
    state: MarketState = MarketState.PENDING_TIME
    market_id: str | None = None
    winner: int | None = None
    winner_label: str | None = None
    tx_hash: str | None = None
    wait_seconds: int | None = None
    error_kind: ErrorKind | None = None
    reason: str | None = None

    def fail(self, exc: BaseException) -> None:
        self.state = MarketState.FAILED
        self.error_kind = classify(exc)
        self.reason = str(exc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "question_hash": self.question_hash,
            "state": self.state.value,
            "market_id": self.market_id,
            "winner": self.winner,
            "winner_label": self.winner_label,
            "tx_hash": self.tx_hash,
            "wait_seconds": self.wait_seconds,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "reason": self.reason,
        }


@dataclass(slots=True)
class ResolutionSummary:
    run_id: str
    dry_run: bool = False
    chain_time: int | None = None
    snapshot_hash: str | None = None
    total_markets: int = 0
    resolved: int = 0
    skipped: int = 0
    failed: int = 0
    prepared: int = 0
    outcomes: list[MarketOutcome] = field(default_factory=list)

    def record(self, outcome: MarketOutcome) -> None:
        self.total_markets += 1
        self.outcomes.append(outcome)
        if outcome.state is MarketState.RESOLVED:
            self.resolved += 1
        elif outcome.state is MarketState.SKIPPED:
            self.skipped += 1
        elif outcome.state is MarketState.READY:
            self.prepared += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "dry_run": self.dry_run,
            "chain_time": self.chain_time,
            "snapshot_hash": self.snapshot_hash,
            "total_markets": self.total_markets,
            "resolved": self.resolved,
            "skipped": self.skipped,
            "failed": self.failed,
            "prepared": self.prepared,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


class ResolutionPipeline:
    """Drive the readiness gate, commitment signing, and posting for every market.

    Markets are processed one at a time. Only a ``NOT_READY_YET`` error turns
    into a skip; any other error is recorded as a failure for that market and
    the batch moves on. Failures while loading the shared inputs (snapshot,
    markets, contract table, chain time) abort the run.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: SnapshotSource | None = None,
        signer: CommitmentSigner | None = None,
        chain: ChainAdapter | None = None,
        chain_factory: Callable[[ContractAddresses, CommitmentSigner], ChainAdapter] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._owns_client = client is None
        self._client = client or OracleApiClient(
            base_url=self.settings.resolved_api_base_url,
            timeout=self.settings.http_timeout_seconds,
        )
        self._signer = signer
        self._chain = chain
        self._chain_factory = chain_factory or self._default_chain_factory

    @property
    def signer(self) -> CommitmentSigner:
        if self._signer is None:
            self._signer = CommitmentSigner(self.settings.require_private_key())
        return self._signer

    def _default_chain_factory(
        self, contracts: ContractAddresses, signer: CommitmentSigner
    ) -> ChainAdapter:
        return Web3ChainAdapter(
            rpc_url=self.settings.resolved_rpc_url,
            signer=signer,
            contracts=contracts,
            receipt_timeout=self.settings.chain_receipt_timeout_seconds,
            request_timeout=self.settings.http_timeout_seconds,
        )

    def _ensure_chain(self) -> ChainAdapter:
        if self._chain is None:
            fetch_remote = getattr(self._client, "fetch_contracts", None)
            contracts = load_contract_addresses(self.settings.contracts_path, fetch_remote)
            self._chain = self._chain_factory(contracts, self.signer)
        return self._chain

    def run(
        self,
        *,
        dry_run: bool = False,
        question_hashes: Sequence[str] | None = None,
    ) -> ResolutionSummary:
        summary = ResolutionSummary(run_id=str(uuid4()), dry_run=dry_run)
        logger.info("Starting resolution run {} (dry_run={})", summary.run_id, dry_run)

        snapshot = load_snapshot(self._client)
        snapshot_hash = canonical_snapshot_hash(snapshot)
        summary.snapshot_hash = "0x" + snapshot_hash.hex()

        records = load_market_records(self._client)
        records = _filter_records(records, question_hashes)
        if not records:
            logger.info("No markets found to process.")
            return summary

        chain = self._ensure_chain()
        chain_time = chain.latest_block_timestamp()
        summary.chain_time = chain_time
        verifying_contract = chain.resolve_contract_address(ContractRole.SETTLEMENT_ORACLE)
        self._check_registered_signer(chain)

        context = ResolutionContext(
            run_id=summary.run_id,
            chain_time=chain_time,
            snapshot=snapshot,
            verifying_contract=verifying_contract,
            settings=self.settings,
            dry_run=dry_run,
        )

        logger.info("Current block timestamp: {} ({})", chain_time, unix_to_iso(chain_time))
        logger.info("Processing {} markets...", len(records))

        for raw_market in records:
            summary.record(self._process_market(raw_market, context, chain))

        logger.info(
            "Resolution run {} completed. resolved={}, skipped={}, failed={}, prepared={}",
            summary.run_id,
            summary.resolved,
            summary.skipped,
            summary.failed,
            summary.prepared,
        )
        if summary.skipped:
            logger.info(
                "Some markets are not ready yet. Wait until resolveTime has passed and run again."
            )
        if summary.failed:
            logger.warning("Resolution run completed with {} failures", summary.failed)
        return summary

    def _check_registered_signer(self, chain: ChainAdapter) -> None:
        try:
            registered = chain.oracle_signer()
        except OracleError as exc:
            logger.warning("Could not read the oracle's registered signer: {}", exc)
            return
        if registered.lower() != self.signer.address.lower():
            logger.warning(
                "Local signer {} is not the oracle's registered signer {}; submissions will revert",
                self.signer.address,
                registered,
            )

    def _process_market(
        self,
        raw_market: Any,
        context: ResolutionContext,
        chain: ChainAdapter,
    ) -> MarketOutcome:
        question_hash = _question_hash_of(raw_market)
        outcome = MarketOutcome(label=question_hash, question_hash=question_hash)

        try:
            market = normalize_market(raw_market)
            outcome.label = market.label
            logger.info("Processing market: {}", market.label)
            logger.info("  Question Hash: {}", question_hash)
            logger.info(
                "  Resolve Time: {} ({})", market.resolve_time, unix_to_iso(market.resolve_time)
            )

            decision = evaluate_gate(market, context.chain_time)
            if not decision.ready:
                logger.info(
                    "  Market not ready yet. ETA: {} seconds ({}), ready at {}",
                    decision.wait_seconds,
                    format_wait(decision.wait_seconds),
                    unix_to_iso(market.resolve_time),
                )
                outcome.state = MarketState.SKIPPED
                outcome.wait_seconds = decision.wait_seconds
                return outcome

            outcome.state = MarketState.READY
            if isinstance(market, UnresolvedMarket):
                market = market.resolve(
                    chain.resolve_market_id(market.question_digest, market.lock_time)
                )
                logger.info("  Computed market ID: 0x{}", market.market_id.hex())
            outcome.market_id = "0x" + market.market_id.hex()

            commitment = build_commitment(market, context.snapshot, context.chain_time)
            signed = self.signer.sign_commitment(commitment, context.verifying_contract)
            outcome.winner = int(commitment.winner)
            outcome.winner_label = market.rule.describe_winner(commitment.winner)

            logger.info("  Market ready for resolution")
            logger.info("  Winner: {} ({})", outcome.winner, outcome.winner_label)
            logger.info("  Snapshot hash: 0x{}", commitment.snapshot_hash.hex())
            logger.info(
                "  Resolved at: {} ({})", commitment.resolved_at, unix_to_iso(commitment.resolved_at)
            )

            if context.dry_run:
                logger.info("  Dry run: signed commitment not submitted")
                return outcome

            receipt = chain.submit(commitment, signed.signature)
            outcome.tx_hash = receipt.tx_hash
            outcome.state = MarketState.RESOLVED
        except NotReadyYetError as exc:
            logger.info("  Market not ready (time check failed): {}", exc)
            outcome.state = MarketState.SKIPPED
            outcome.error_kind = exc.kind
            outcome.reason = str(exc)
        except OracleError as exc:
            logger.error(
                "Error processing market {}: [{}] {}", question_hash, exc.kind.value, exc
            )
            outcome.fail(exc)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error processing market {}", question_hash)
            outcome.fail(exc)
        return outcome

    def close(self) -> None:
        if self._owns_client and hasattr(self._client, "close"):
            self._client.close()


def _question_hash_of(raw_market: Any) -> str:
    if isinstance(raw_market, dict):
        value = raw_market.get("questionHash")
        if value:
            return str(value)
    return "unknown"


def _filter_records(
    records: Iterable[dict[str, Any]], question_hashes: Sequence[str] | None
) -> list[dict[str, Any]]:
    records = list(records)
    if not question_hashes:
        return records
    wanted = {value.strip().lower() for value in question_hashes if value and value.strip()}
    filtered = [
        record for record in records if _question_hash_of(record).lower() in wanted
    ]
    missing = wanted - {_question_hash_of(record).lower() for record in filtered}
    if missing:
        logger.warning(
            "Requested question hashes not found in market list: {}",
            ", ".join(sorted(missing)),
        )
    return filtered


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Resolve ready leaderboard markets and post signed outcomes on chain",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build and sign resolutions without submitting transactions",
    )
    parser.add_argument(
        "--market",
        dest="question_hashes",
        action="append",
        metavar="QUESTION_HASH",
        help="Restrict the run to specific question hashes (can be provided multiple times)",
    )
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional path where a JSON summary report will be written",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with a non-zero status when any market fails",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL for this run",
    )
    return parser.parse_args(argv)


def _write_summary(summary: ResolutionSummary, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(summary.to_dict(), indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    logger.info("Resolution summary written to {}", path)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)
    logger.info("Starting leaderboard oracle pipeline...")

    pipeline = ResolutionPipeline(settings)
    try:
        summary = pipeline.run(dry_run=args.dry_run, question_hashes=args.question_hashes)
    except OracleError as exc:
        logger.error("Oracle pipeline failed: [{}] {}", exc.kind.value, exc)
        return 1
    finally:
        pipeline.close()

    if args.summary_path:
        _write_summary(summary, args.summary_path)

    logger.info(
        "Processed {} markets, skipped {} (not ready yet)", summary.resolved, summary.skipped
    )
    if args.strict and summary.failed:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
