"""
Chain configuration for the Kuru MCP server.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional

from errors import UnsupportedChainError
from settings import DEFAULT_CHAIN_ID, Settings

# Native token sentinel, not configurable
NATIVE_TOKEN_ADDRESS = "0x0000000000000000000000000000000000000000"

DEFAULT_ROUTER_ADDRESS = "0xc816865f172d640d93712C68a7E1F83F3fA63235"
DEFAULT_MARGIN_ACCOUNT_ADDRESS = "0x4B186949F31FCA0aD08497Df9169a6bEbF0e26ef"
DEFAULT_KURU_API_URL = "https://api.testnet.kuru.io"


class ChainID(IntEnum):
    MONAD_MAIN = 143
    MONAD_TESTNET = 10143


@dataclass(frozen=True)
class NativeCurrency:
    name: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class ChainContracts:
    margin_account: str
    router: str
    order_book_factory: str
    token_factory: str


@dataclass(frozen=True)
class ChainConfig:
    """Configuration for a blockchain network"""
    chain_id: int
    name: str
    rpc_url: str
    explorer_url: str
    native_currency: NativeCurrency
    contracts: ChainContracts
    kuru_api_url: str


def _build_chain_configs(settings: Settings) -> List[ChainConfig]:
    contracts = ChainContracts(
        margin_account=settings.margin_account_address or DEFAULT_MARGIN_ACCOUNT_ADDRESS,
        router=settings.router_address or DEFAULT_ROUTER_ADDRESS,
        # not deployed yet
        order_book_factory=NATIVE_TOKEN_ADDRESS,
        token_factory=NATIVE_TOKEN_ADDRESS,
    )
    kuru_api_url = settings.kuru_api_url or DEFAULT_KURU_API_URL

    return [
        ChainConfig(
            chain_id=int(ChainID.MONAD_MAIN),
            name="Monad",
            rpc_url=settings.rpc_url or "https://rpc.monad.xyz",
            explorer_url="https://explorer.monad.xyz",
            native_currency=NativeCurrency(name="Monad", symbol="MON", decimals=18),
            contracts=contracts,
            kuru_api_url=kuru_api_url,
        ),
        ChainConfig(
            chain_id=int(ChainID.MONAD_TESTNET),
            name="Monad Testnet",
            rpc_url=settings.rpc_url or "https://rpc.ankr.com/monad_testnet",
            explorer_url="https://testnet.monadexplorer.com",
            native_currency=NativeCurrency(name="Monad Testnet", symbol="MON", decimals=18),
            contracts=contracts,
            kuru_api_url=kuru_api_url,
        ),
    ]


class ChainRegistry:
    """Fixed table of supported chains, keyed by chain id."""

    def __init__(self, chains: List[ChainConfig], default_chain_id: int = DEFAULT_CHAIN_ID):
        self._chains: Dict[int, ChainConfig] = {}
        for cfg in chains:
            self._chains[int(cfg.chain_id)] = cfg
        self.default_chain_id = default_chain_id

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChainRegistry":
        return cls(_build_chain_configs(settings), default_chain_id=settings.chain_id)

    def resolve(self, chain_id: Optional[int] = None) -> ChainConfig:
        """Return the config for chain_id, or for the default chain when omitted."""
        target = self.default_chain_id if chain_id is None else chain_id
        config = self._chains.get(target)
        if config is None:
            supported = ", ".join(str(c) for c in self.list_ids())
            raise UnsupportedChainError(
                f"Unsupported chain ID: {target}. Supported chains: {supported}"
            )
        return config

    def resolve_by_name(self, name: str) -> ChainConfig:
        """Case-insensitive exact match on the chain display name."""
        for config in self._chains.values():
            if config.name.lower() == name.lower():
                return config
        raise UnsupportedChainError(
            f"Unsupported chain: {name}. Supported chains: {', '.join(self.list_names())}"
        )

    def is_valid(self, chain_id: int) -> bool:
        return chain_id in self._chains

    def list_ids(self) -> List[int]:
        return list(self._chains.keys())

    def list_names(self) -> List[str]:
        return [config.name for config in self._chains.values()]
