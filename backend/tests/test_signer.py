"""Tests for oracle commitment signing and recovery."""

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import keccak

from app.domain import Commitment, Winner
from app.errors import ConfigurationError
from app.services.commitment import build_blob_digest
from app.services.signer import CommitmentSigner, recover_signer
from factories import ORACLE_ADDRESS, TEST_SIGNER_ADDRESS


def _commitment() -> Commitment:
    return Commitment(
        market_id=bytes.fromhex("ab" * 32),
        winner=Winner.FIRST,
        snapshot_hash=keccak(text="[]"),
        resolved_at=1_735_689_600,
        challenge_until=0,
        nonce=1_735_689_600,
    )


class TestSigning:

    def test_signer_address_derives_from_key(self, signer):
        assert signer.address == TEST_SIGNER_ADDRESS

    def test_sign_recover_roundtrip(self, signer):
        digest = keccak(text="resolution")
        signature = signer.sign(digest)
        assert len(signature) == 65
        assert recover_signer(digest, signature) == signer.address

    def test_signature_uses_personal_sign_envelope(self, signer):
        digest = keccak(text="resolution")
        signature = signer.sign(digest)
        message = encode_defunct(primitive=digest)
        assert message.version == b"E"
        assert message.header == b"thereum Signed Message:\n32"
        assert message.body == digest
        assert Account.recover_message(message, signature=signature) == signer.address

    def test_recover_with_other_digest_yields_other_address(self, signer):
        signature = signer.sign(keccak(text="resolution"))
        assert recover_signer(keccak(text="tampered"), signature) != signer.address

    def test_rejects_non_digest_input(self, signer):
        with pytest.raises(ValueError):
            signer.sign(b"short")

    def test_sign_commitment_covers_blob_digest(self, signer):
        commitment = _commitment()
        signed = signer.sign_commitment(commitment, ORACLE_ADDRESS)

        assert signed.commitment is commitment
        assert signed.digest == build_blob_digest(commitment, ORACLE_ADDRESS)
        assert recover_signer(signed.digest, signed.signature) == signer.address


class TestKeyHandling:

    def test_missing_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            CommitmentSigner("")

    def test_malformed_key_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            CommitmentSigner("0xnot-a-key")
