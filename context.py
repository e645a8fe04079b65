"""
Context object shared by the tool handlers and the swap operations.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from chain_config import ChainConfig, ChainRegistry
from client import BlockchainClient
from kuru_api import KuruApiClient
from router import KuruRouter
from settings import Settings
from wallet import WalletIdentity


@dataclass
class KuruContext:
    """Context for the Kuru MCP server."""
    settings: Settings
    registry: ChainRegistry
    client: BlockchainClient
    api: KuruApiClient
    router: KuruRouter
    http_client: Optional[httpx.AsyncClient] = None
    wallet: Optional[WalletIdentity] = None

    @property
    def chain(self) -> ChainConfig:
        return self.registry.resolve()

    async def aclose(self) -> None:
        if self.http_client is not None:
            await self.http_client.aclose()
        await self.client.aclose()


def build_context(settings: Settings, wallet: Optional[WalletIdentity] = None) -> KuruContext:
    """Wire up the clients for the default chain in settings."""
    registry = ChainRegistry.from_settings(settings)
    chain = registry.resolve()

    http_client = httpx.AsyncClient(timeout=settings.http_timeout)
    return KuruContext(
        settings=settings,
        registry=registry,
        client=BlockchainClient(settings, registry),
        api=KuruApiClient(chain.kuru_api_url, http_client),
        router=KuruRouter(),
        http_client=http_client,
        wallet=wallet,
    )
