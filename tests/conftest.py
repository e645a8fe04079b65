from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from chain_config import ChainRegistry
from client import EnvironmentStatus
from context import KuruContext
from kuru_api import Pool
from settings import load_settings

WALLET = "0x1111111111111111111111111111111111111111"
TOKEN_A = "0x" + "ab" * 20
TOKEN_B = "0x" + "cd" * 20
NATIVE = "0x0000000000000000000000000000000000000000"

TEST_ENV = {
    "PRIVATE_KEY": "0x" + "11" * 32,
    "RPC_URL": "http://localhost:8545",
    "KURU_API_URL": "http://kuru.test",
}


class FakeCall:
    """Stands in for a bound contract function."""

    def __init__(self, name: str, args: tuple, result: Any):
        self.name = name
        self.args = args
        self.result = result

    async def call(self):
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeFunctions:
    def __init__(self, contract: "FakeContract"):
        self._contract = contract

    def __getattr__(self, name: str):
        def bind(*args):
            self._contract.calls.append((name, args))
            if name not in self._contract.values:
                raise AssertionError(f"unexpected contract call {name}")
            return FakeCall(name, args, self._contract.values[name])
        return bind


class FakeContract:
    def __init__(self, values: Dict[str, Any]):
        self.values = values
        self.calls: List[tuple] = []
        self.functions = FakeFunctions(self)


class FakeEth:
    def __init__(self, contracts: Dict[str, FakeContract]):
        self.contracts = {address.lower(): contract for address, contract in contracts.items()}
        self.requested: List[str] = []

    def contract(self, address: str, abi=None):
        self.requested.append(address)
        if address.lower() not in self.contracts:
            raise AssertionError(f"unexpected contract {address}")
        return self.contracts[address.lower()]


class FakeW3:
    def __init__(self, contracts: Optional[Dict[str, FakeContract]] = None):
        self.eth = FakeEth(contracts or {})


class FakeSigner:
    def __init__(self, w3: FakeW3, address: str = WALLET, receipts: Optional[List[dict]] = None):
        self.w3 = w3
        self.address = address
        self.receipts = list(receipts or [])
        self.sent: List[tuple] = []

    async def send_transaction(self, function, value: int = 0):
        self.sent.append((function, value))
        return self.receipts.pop(0)


class FakeClient:
    def __init__(self, w3: Optional[FakeW3] = None, signer: Optional[FakeSigner] = None):
        self.w3 = w3 or FakeW3()
        self.signer = signer or FakeSigner(self.w3)
        self.provider_requests = 0

    def get_provider(self):
        self.provider_requests += 1
        return self.w3

    def get_signer(self):
        return self.signer

    def get_wallet_address(self):
        return self.signer.address

    def validate_environment(self):
        return EnvironmentStatus(is_valid=True, errors=[], config={})

    async def aclose(self):
        pass


class FakeApi:
    def __init__(self, pools=None, path=None, pools_error=None, path_error=None):
        self.pools = [] if pools is None else pools
        self.path = path
        self.pools_error = pools_error
        self.path_error = path_error
        self.pool_requests: List[tuple] = []
        self.path_requests: List[tuple] = []

    async def get_all_pools(self, token_in, token_out, base_tokens):
        self.pool_requests.append((token_in, token_out, list(base_tokens)))
        if self.pools_error:
            raise self.pools_error
        return self.pools

    async def find_best_path(self, token_in, token_out, amount, amount_type, pools):
        self.path_requests.append((token_in, token_out, amount, amount_type, list(pools)))
        if self.path_error:
            raise self.path_error
        return self.path


class FakeRouter:
    def __init__(self, receipt=None, error=None, approval_hash=None):
        self.receipt = receipt
        self.error = error
        self.approval_hash = approval_hash
        self.swaps: List[tuple] = []

    async def swap(self, signer, router_address, route, amount, in_decimals, out_decimals,
                   slippage_tolerance, approve_tokens, on_approval=None):
        self.swaps.append((router_address, route, amount, in_decimals, out_decimals,
                           slippage_tolerance, approve_tokens))
        if self.error:
            raise self.error
        if approve_tokens and on_approval is not None:
            on_approval(self.approval_hash)
        return self.receipt


def erc20(name="Test Token", symbol="TEST", decimals=6, total_supply=10**12, allowance=0):
    return FakeContract({
        "name": name,
        "symbol": symbol,
        "decimals": decimals,
        "totalSupply": total_supply,
        "allowance": allowance,
    })


def pools_for(token_in, token_out):
    return [Pool(base_token=token_in, quote_token=token_out, orderbook="0x" + "ef" * 20)]


def route_for(token_in, token_out, output=25.5, native_send=False):
    return {
        "route": {
            "path": [{"baseToken": token_in, "quoteToken": token_out, "orderbook": "0x" + "ef" * 20}],
            "tokenIn": token_in,
            "tokenOut": token_out,
        },
        "isBuy": [False],
        "nativeSend": [native_send],
        "output": output,
        "priceImpact": 0.12,
        "feeInBase": 0.003,
    }


@pytest.fixture
def settings():
    return load_settings(TEST_ENV)


@pytest.fixture
def make_context(settings):
    """Build a KuruContext around fake clients.

    Usage in tests:
      kuru_ctx = make_context(client=FakeClient(...), api=FakeApi(...))
    """

    def _make(client=None, api=None, router=None, env_settings=None):
        active = env_settings or settings
        return KuruContext(
            settings=active,
            registry=ChainRegistry.from_settings(active),
            client=client or FakeClient(),
            api=api or FakeApi(),
            router=router or FakeRouter(),
        )

    return _make


@pytest.fixture
def tool_context():
    """Wrap a KuruContext the way FastMCP hands it to tools."""

    def _wrap(kuru_ctx):
        return SimpleNamespace(request_context=SimpleNamespace(lifespan_context=kuru_ctx))

    return _wrap
