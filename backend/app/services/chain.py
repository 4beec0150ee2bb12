"""Chain access for the oracle: block time, market ids, and resolution posting."""

from __future__ import annotations

from typing import Any, Final, Protocol

import requests
from eth_utils import to_checksum_address
from loguru import logger
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from app.domain import Commitment, SubmissionReceipt
from app.errors import (
    ChainRejectedError,
    NotReadyYetError,
    OracleError,
    TransportUnavailableError,
)

from .contracts import ContractAddresses, ContractRole
from .signer import CommitmentSigner

RESOLUTION_COMPONENTS: Final[list[dict[str, str]]] = [
    {"name": "marketId", "type": "bytes32"},
    {"name": "winner", "type": "uint8"},
    {"name": "snapshotHash", "type": "bytes32"},
    {"name": "resolvedAt", "type": "uint64"},
    {"name": "challengeUntil", "type": "uint64"},
    {"name": "nonce", "type": "uint256"},
]

SETTLEMENT_ORACLE_ABI: Final[list[dict[str, Any]]] = [
    {
        "type": "function",
        "name": "post",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "r", "type": "tuple", "components": RESOLUTION_COMPONENTS},
            {"name": "sig", "type": "bytes"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "getSigner",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
]

MARKET_FACTORY_ABI: Final[list[dict[str, Any]]] = [
    {
        "type": "function",
        "name": "computeMarketId",
        "stateMutability": "view",
        "inputs": [
            {"name": "questionHash", "type": "bytes32"},
            {"name": "lockTime", "type": "uint64"},
        ],
        "outputs": [{"name": "", "type": "bytes32"}],
    },
]

_TIME_REJECTION_MARKERS: Final[tuple[str, ...]] = ("time", "too early", "not ready")


class ChainAdapter(Protocol):
    """Interface the resolution pipeline uses to talk to the chain."""

    def latest_block_timestamp(self) -> int:
        """Return the timestamp of the latest block in unix seconds."""

    def resolve_market_id(self, question_digest: bytes, lock_time: int) -> bytes:
        """Return the factory's market id for a question and lock time."""

    def resolve_contract_address(self, role: ContractRole | str) -> str:
        """Return the deployed address for ``role``."""

    def oracle_signer(self) -> str:
        """Return the signer address registered on the settlement oracle."""

    def submit(self, commitment: Commitment, signature: bytes) -> SubmissionReceipt:
        """Post a signed commitment and block until it is mined."""


def _revert_message(exc: ContractLogicError) -> str:
    message = getattr(exc, "message", None)
    return str(message or exc)


def is_time_rejection(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _TIME_REJECTION_MARKERS)


def classify_chain_error(exc: Exception, action: str) -> OracleError:
    """Translate web3/transport failures into oracle error kinds."""

    if isinstance(exc, OracleError):
        return exc
    if isinstance(exc, ContractLogicError):
        message = _revert_message(exc)
        if is_time_rejection(message):
            return NotReadyYetError(f"{action} rejected by time check: {message}")
        return ChainRejectedError(f"{action} reverted: {message}")
    if isinstance(exc, TimeExhausted):
        return ChainRejectedError(f"{action} was not confirmed in time: {exc}")
    if isinstance(exc, (requests.exceptions.RequestException, ConnectionError)):
        return TransportUnavailableError(f"RPC unreachable during {action}: {exc}")
    return ChainRejectedError(f"{action} failed: {exc}")


class Web3ChainAdapter:
    """web3.py implementation of :class:`ChainAdapter`."""

    def __init__(
        self,
        *,
        rpc_url: str,
        signer: CommitmentSigner,
        contracts: ContractAddresses,
        receipt_timeout: float = 600.0,
        request_timeout: float = 30.0,
        web3: Web3 | None = None,
    ) -> None:
        self.signer = signer
        self.contracts = contracts
        self.receipt_timeout = receipt_timeout
        self.w3 = web3 or Web3(
            Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout})
        )
        self._oracle = self.w3.eth.contract(
            address=to_checksum_address(contracts.settlement_oracle),
            abi=SETTLEMENT_ORACLE_ABI,
        )
        self._factory = self.w3.eth.contract(
            address=to_checksum_address(contracts.market_factory),
            abi=MARKET_FACTORY_ABI,
        )

    def latest_block_timestamp(self) -> int:
        try:
            block = self.w3.eth.get_block("latest")
        except (Web3Exception, requests.exceptions.RequestException, ConnectionError) as exc:
            raise classify_chain_error(exc, "reading latest block") from exc
        return int(block["timestamp"])

    def resolve_market_id(self, question_digest: bytes, lock_time: int) -> bytes:
        try:
            market_id = self._factory.functions.computeMarketId(
                question_digest, lock_time
            ).call()
        except (Web3Exception, requests.exceptions.RequestException, ConnectionError) as exc:
            raise classify_chain_error(exc, "computeMarketId") from exc
        return bytes(market_id)

    def resolve_contract_address(self, role: ContractRole | str) -> str:
        return self.contracts.address_for(role)

    def oracle_signer(self) -> str:
        try:
            address = self._oracle.functions.getSigner().call()
        except (Web3Exception, requests.exceptions.RequestException, ConnectionError) as exc:
            raise classify_chain_error(exc, "getSigner") from exc
        return to_checksum_address(address)

    def submit(self, commitment: Commitment, signature: bytes) -> SubmissionReceipt:
        sender = self.signer.address
        market_hex = "0x" + commitment.market_id.hex()
        try:
            transaction = self._oracle.functions.post(
                commitment.as_tuple(), signature
            ).build_transaction(
                {
                    "from": sender,
                    "nonce": self.w3.eth.get_transaction_count(sender, "pending"),
                    "chainId": self.w3.eth.chain_id,
                }
            )
            signed = self.signer.account.sign_transaction(transaction)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
            logger.info(
                "Posted resolution for market {}: {}", market_hex, "0x" + bytes(tx_hash).hex()
            )
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except (Web3Exception, requests.exceptions.RequestException, ConnectionError) as exc:
            raise classify_chain_error(exc, f"post for market {market_hex}") from exc

        result = SubmissionReceipt(
            tx_hash="0x" + bytes(receipt["transactionHash"]).hex(),
            block_number=int(receipt["blockNumber"]),
            status=int(receipt["status"]),
        )
        if result.status != 1:
            raise ChainRejectedError(
                f"Resolution transaction {result.tx_hash} for market {market_hex} reverted"
            )
        logger.info("Resolution confirmed for market {} in block {}", market_hex, result.block_number)
        return result


__all__ = [
    "ChainAdapter",
    "MARKET_FACTORY_ABI",
    "SETTLEMENT_ORACLE_ABI",
    "Web3ChainAdapter",
    "classify_chain_error",
    "is_time_rejection",
]
