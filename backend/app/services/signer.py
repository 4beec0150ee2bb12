"""Oracle signing with an Ethereum secp256k1 key.

Signatures use the EIP-191 "personal sign" envelope over the 32-byte blob
digest, which is what the settlement contract recovers with
``toEthSignedMessageHash(blob)``.
"""

from __future__ import annotations

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address

from app.domain import Commitment, SignedCommitment
from app.errors import ConfigurationError

from .commitment import build_blob_digest

DIGEST_LENGTH = 32


class CommitmentSigner:
    """Wraps the oracle's private key."""

    def __init__(self, private_key: str) -> None:
        if not private_key:
            raise ConfigurationError("PRIVATE_KEY not set in environment variables")
        try:
            self._account: LocalAccount = Account.from_key(private_key)
        except Exception as exc:  # noqa: BLE001
            raise ConfigurationError("PRIVATE_KEY is not a valid secp256k1 key") from exc

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def account(self) -> LocalAccount:
        return self._account

    def sign(self, digest: bytes) -> bytes:
        """Return a 65-byte ``r || s || v`` signature over ``digest``."""

        if len(digest) != DIGEST_LENGTH:
            raise ValueError(f"digest must be {DIGEST_LENGTH} bytes, got {len(digest)}")
        signed = self._account.sign_message(encode_defunct(primitive=digest))
        return bytes(signed.signature)

    def sign_commitment(
        self, commitment: Commitment, verifying_contract: str
    ) -> SignedCommitment:
        digest = build_blob_digest(commitment, verifying_contract)
        return SignedCommitment(
            commitment=commitment,
            digest=digest,
            signature=self.sign(digest),
        )


def recover_signer(digest: bytes, signature: bytes) -> str:
    """Return the checksummed address that produced ``signature`` over ``digest``."""

    address = Account.recover_message(encode_defunct(primitive=digest), signature=signature)
    return to_checksum_address(address)


__all__ = ["CommitmentSigner", "recover_signer"]
