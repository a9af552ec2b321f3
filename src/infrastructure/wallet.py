"""
Infrastructure Layer: Wallet Session
Supplies the account and, when a key is configured, a local signer.
"""
from dataclasses import dataclass
from typing import Optional

import structlog
from eth_account import Account
from eth_account.signers.local import LocalAccount
from pydantic import SecretStr
from web3 import Web3

from src.domain import Address

logger = structlog.get_logger()


@dataclass(frozen=True)
class WalletSession:
    """Implements IWalletSession"""
    address: Optional[Address] = None
    signer: Optional[LocalAccount] = None

    @property
    def account(self) -> Optional[Address]:
        if self.signer is not None:
            return Address(self.signer.address)
        return self.address

    @property
    def signer_available(self) -> bool:
        return self.signer is not None

    @classmethod
    def from_private_key(cls, private_key: SecretStr) -> "WalletSession":
        signer: LocalAccount = Account.from_key(private_key.get_secret_value())
        logger.info("wallet_signer_loaded", account=signer.address)
        return cls(address=Address(signer.address), signer=signer)

    @classmethod
    def read_only(cls, address: Optional[str] = None) -> "WalletSession":
        """Watch-only session; queries work, mutations fail fast."""
        checksummed = Address(Web3.to_checksum_address(address)) if address else None
        return cls(address=checksummed)
