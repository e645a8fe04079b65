"""
Lazily created read and signing clients for the active chain.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3
from web3.providers import AsyncHTTPProvider

from chain_config import ChainRegistry
from errors import ConfigurationError
from settings import DEFAULT_CHAIN_ID, Settings
from wallet import WalletIdentity

logger = logging.getLogger(__name__)


@dataclass
class EnvironmentStatus:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    config: Dict[str, Any] = field(default_factory=dict)


class Signer:
    """Local account bound to a read client; signs and broadcasts transactions."""

    def __init__(self, w3: AsyncWeb3, account: LocalAccount, chain_id: int):
        self.w3 = w3
        self.account = account
        self.chain_id = chain_id

    @property
    def address(self) -> str:
        return self.account.address

    async def send_transaction(self, function, value: int = 0):
        """Build, sign and send a contract call, then wait for its receipt."""
        nonce = await self.w3.eth.get_transaction_count(self.address)
        tx = await function.build_transaction({
            "from": self.address,
            "value": value,
            "chainId": self.chain_id,
            "nonce": nonce,
        })

        signed = self.account.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        logger.info(f"Sent transaction {AsyncWeb3.to_hex(tx_hash)}")

        return await self.w3.eth.wait_for_transaction_receipt(tx_hash)


class BlockchainClient:
    """Holds the read client and signing client, each created at most once."""

    def __init__(self, settings: Settings, registry: ChainRegistry):
        self.settings = settings
        self.registry = registry
        self._provider: Optional[AsyncWeb3] = None
        self._signer: Optional[Signer] = None

    def get_provider(self) -> AsyncWeb3:
        if self._provider is not None:
            return self._provider

        if not self.settings.rpc_url:
            raise ConfigurationError("RPC_URL environment variable is required")

        chain = self.registry.resolve()
        self._provider = AsyncWeb3(AsyncHTTPProvider(self.settings.rpc_url))
        logger.info(f"Created RPC client for {chain.name} ({chain.chain_id})")
        return self._provider

    def get_signer(self) -> Signer:
        if self._signer is not None:
            return self._signer

        if not self.settings.private_key:
            raise ConfigurationError("PRIVATE_KEY environment variable is required")

        w3 = self.get_provider()
        wallet = WalletIdentity.from_private_key(self.settings.private_key)
        self._signer = Signer(w3, wallet.account, self.registry.resolve().chain_id)
        return self._signer

    def get_wallet_address(self) -> str:
        return self.get_signer().address

    def reset(self) -> None:
        """Drop both clients. Only meant for tests."""
        self._provider = None
        self._signer = None

    def validate_environment(self) -> EnvironmentStatus:
        """Report every missing setting instead of stopping at the first."""
        errors = []

        if not self.settings.private_key:
            errors.append("PRIVATE_KEY environment variable is required")
        if not self.settings.kuru_api_url:
            errors.append("KURU_API_URL environment variable is required")
        if not self.settings.rpc_url:
            errors.append("RPC_URL environment variable is required")

        chain_id = DEFAULT_CHAIN_ID
        try:
            chain_id = self.registry.resolve().chain_id
        except ConfigurationError as e:
            errors.append(f"Chain configuration error: {e}")

        return EnvironmentStatus(
            is_valid=not errors,
            errors=errors,
            config={
                "rpc_url": self.settings.rpc_url or "",
                "kuru_api_url": self.settings.kuru_api_url or "",
                "chain_id": chain_id,
            },
        )

    async def aclose(self) -> None:
        if self._provider is not None:
            await self._provider.provider.disconnect()
        self.reset()
