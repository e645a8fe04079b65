"""
Signing identity derived from the PRIVATE_KEY environment variable.
"""

from dataclasses import dataclass
from typing import Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount

from errors import ConfigurationError


def normalize_private_key(private_key: Optional[str]) -> str:
    """Strip an optional 0x prefix from a hex private key."""
    if not private_key:
        raise ConfigurationError("PRIVATE_KEY environment variable is required")

    private_key = private_key.strip()
    if private_key.startswith("0x"):
        private_key = private_key[2:]

    if not private_key:
        raise ConfigurationError("PRIVATE_KEY environment variable is required")
    return private_key


@dataclass(frozen=True)
class WalletIdentity:
    account: LocalAccount

    @property
    def address(self) -> str:
        return self.account.address

    @classmethod
    def from_private_key(cls, private_key: Optional[str]) -> "WalletIdentity":
        normalized = normalize_private_key(private_key)
        try:
            account = Account.from_key(normalized)
        except Exception as e:
            raise ConfigurationError(f"PRIVATE_KEY is not a valid private key: {e}") from e
        return cls(account=account)
