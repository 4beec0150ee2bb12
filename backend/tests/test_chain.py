from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests
from eth_utils import to_checksum_address
from web3.exceptions import ContractLogicError, TimeExhausted

from app.domain import Commitment, Winner
from app.errors import (
    ChainRejectedError,
    ErrorKind,
    NotReadyYetError,
    TransportUnavailableError,
)
from app.services.chain import Web3ChainAdapter, classify_chain_error, is_time_rejection
from app.services.contracts import ContractAddresses, ContractRole
from factories import FACTORY_ADDRESS, ORACLE_ADDRESS, STAKE_TOKEN_ADDRESS

TX_HASH = b"\x12" * 32


def _commitment() -> Commitment:
    return Commitment(
        market_id=bytes.fromhex("ab" * 32),
        winner=Winner.SECOND,
        snapshot_hash=bytes.fromhex("cd" * 32),
        resolved_at=1_700_000_000,
        challenge_until=0,
        nonce=1_700_000_000,
    )


@pytest.fixture
def addresses() -> ContractAddresses:
    return ContractAddresses(
        settlement_oracle=to_checksum_address(ORACLE_ADDRESS),
        market_factory=to_checksum_address(FACTORY_ADDRESS),
        stake_token=to_checksum_address(STAKE_TOKEN_ADDRESS),
    )


@pytest.fixture
def web3_mock() -> MagicMock:
    w3 = MagicMock()
    w3.eth.get_block.return_value = {"timestamp": 1_700_000_123}
    w3.eth.chain_id = 84532
    w3.eth.get_transaction_count.return_value = 3
    w3.eth.send_raw_transaction.return_value = TX_HASH
    w3.eth.wait_for_transaction_receipt.return_value = {
        "transactionHash": TX_HASH,
        "blockNumber": 42,
        "status": 1,
    }
    contract = w3.eth.contract.return_value
    contract.functions.post.return_value.build_transaction.return_value = {
        "to": to_checksum_address(ORACLE_ADDRESS),
        "value": 0,
        "gas": 150_000,
        "gasPrice": 1_000_000_000,
        "nonce": 3,
        "chainId": 84532,
        "data": "0x",
    }
    return w3


@pytest.fixture
def adapter(signer, addresses, web3_mock) -> Web3ChainAdapter:
    return Web3ChainAdapter(
        rpc_url="http://rpc.test",
        signer=signer,
        contracts=addresses,
        receipt_timeout=5,
        web3=web3_mock,
    )


class TestClassification:

    @pytest.mark.parametrize(
        "message",
        ["execution reverted: resolveTime not reached", "Too early", "market not ready"],
    )
    def test_time_related_revert_is_not_ready(self, message):
        error = classify_chain_error(ContractLogicError(message), "post")
        assert isinstance(error, NotReadyYetError)
        assert error.kind is ErrorKind.NOT_READY_YET

    def test_other_revert_is_chain_rejected(self):
        error = classify_chain_error(ContractLogicError("execution reverted: bad sig"), "post")
        assert isinstance(error, ChainRejectedError)

    def test_unconfirmed_is_chain_rejected(self):
        assert isinstance(classify_chain_error(TimeExhausted(), "post"), ChainRejectedError)

    def test_connection_failure_is_transport_unavailable(self):
        error = classify_chain_error(requests.exceptions.ConnectionError("refused"), "post")
        assert isinstance(error, TransportUnavailableError)

    def test_time_rejection_matching(self):
        assert is_time_rejection("Resolve TIME in future")
        assert not is_time_rejection("already resolved")


class TestWeb3ChainAdapter:

    def test_latest_block_timestamp(self, adapter):
        assert adapter.latest_block_timestamp() == 1_700_000_123

    def test_latest_block_transport_failure(self, adapter, web3_mock):
        web3_mock.eth.get_block.side_effect = requests.exceptions.ConnectionError("down")
        with pytest.raises(TransportUnavailableError):
            adapter.latest_block_timestamp()

    def test_resolve_market_id_calls_factory(self, adapter, web3_mock):
        compute = web3_mock.eth.contract.return_value.functions.computeMarketId
        compute.return_value.call.return_value = b"\x07" * 32

        assert adapter.resolve_market_id(b"\x01" * 32, 1_699_996_400) == b"\x07" * 32
        compute.assert_called_once_with(b"\x01" * 32, 1_699_996_400)

    def test_resolve_contract_address(self, adapter):
        assert adapter.resolve_contract_address(
            ContractRole.SETTLEMENT_ORACLE
        ) == to_checksum_address(ORACLE_ADDRESS)

    def test_oracle_signer(self, adapter, web3_mock):
        get_signer = web3_mock.eth.contract.return_value.functions.getSigner
        get_signer.return_value.call.return_value = ORACLE_ADDRESS
        assert adapter.oracle_signer() == to_checksum_address(ORACLE_ADDRESS)

    def test_submit_posts_resolution_tuple(self, adapter, web3_mock, signer):
        commitment = _commitment()
        signature = b"\x01" * 65

        receipt = adapter.submit(commitment, signature)

        post = web3_mock.eth.contract.return_value.functions.post
        post.assert_called_once_with(commitment.as_tuple(), signature)
        build_args = post.return_value.build_transaction.call_args.args[0]
        assert build_args["from"] == signer.address
        assert build_args["nonce"] == 3
        assert build_args["chainId"] == 84532
        web3_mock.eth.send_raw_transaction.assert_called_once()
        assert receipt.tx_hash == "0x" + TX_HASH.hex()
        assert receipt.block_number == 42
        assert receipt.status == 1

    def test_submit_reverted_receipt_is_chain_rejected(self, adapter, web3_mock):
        web3_mock.eth.wait_for_transaction_receipt.return_value = {
            "transactionHash": TX_HASH,
            "blockNumber": 42,
            "status": 0,
        }
        with pytest.raises(ChainRejectedError):
            adapter.submit(_commitment(), b"\x01" * 65)

    def test_submit_time_revert_is_not_ready(self, adapter, web3_mock):
        build = web3_mock.eth.contract.return_value.functions.post.return_value.build_transaction
        build.side_effect = ContractLogicError("execution reverted: resolvedAt in future time")
        with pytest.raises(NotReadyYetError):
            adapter.submit(_commitment(), b"\x01" * 65)
        web3_mock.eth.send_raw_transaction.assert_not_called()
