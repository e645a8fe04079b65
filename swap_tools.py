"""
Swap operations: pool discovery, path finding, estimation and execution.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from web3 import Web3

from chain_config import NATIVE_TOKEN_ADDRESS
from errors import (
    KuruError,
    NoPoolsFoundError,
    PathfindingError,
    PoolDiscoveryError,
    SwapExecutionError,
)
from kuru_api import BaseToken, Pool
from tokens import TokenInfo, check_token_allowance, get_token_info, is_native_token

logger = logging.getLogger(__name__)

SLIPPAGE_TOLERANCE = 0.5  # percent

# Native token and stablecoins used as routing intermediaries
BASE_TOKENS = [
    BaseToken(symbol="MON", address=NATIVE_TOKEN_ADDRESS),
    BaseToken(symbol="USDC", address="0xf817257fed379853cDe0fa4F97AB987181B1E5Ea"),
    BaseToken(symbol="USDT", address="0x88b8E2161DEDC77EF4ab7585569D2415a1C1055D"),
]

AMOUNT_TYPES = ("amountIn", "amountOut")


@dataclass
class SwapEstimate:
    token_in: str
    token_out: str
    amount_in: float
    estimated_amount_out: Any
    path: Any
    pools: Any
    token_info: Dict[str, TokenInfo]
    price_impact: Any = None
    fee_in_base: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SwapResult:
    transaction_hash: Optional[str]
    status: int
    gas_used: Optional[str]
    block_number: Optional[str]
    block_hash: Optional[str]
    logs: List[Dict[str, Any]] = field(default_factory=list)
    token_info: Dict[str, TokenInfo] = field(default_factory=dict)
    allowance_info: Dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def get_available_base_tokens() -> List[BaseToken]:
    return list(BASE_TOKENS)


def is_valid_address(address: Any) -> bool:
    """0x-prefixed, 40 hex characters, valid checksum if mixed case."""
    return isinstance(address, str) and address.startswith("0x") and Web3.is_address(address)


def validate_token_addresses(token_in: Any, token_out: Any) -> bool:
    return is_valid_address(token_in) and is_valid_address(token_out)


def _to_json_safe(value: Any) -> Any:
    """Hashes to hex strings and integers to decimal strings, recursively."""
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return str(value)
    if hasattr(value, "items"):
        return {key: _to_json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json_safe(item) for item in value]
    return value


def _string_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    return _to_json_safe(value) if isinstance(value, (bytes, bytearray)) else str(value)


def _path_of(best_path: Dict[str, Any]) -> Any:
    route = best_path.get("route")
    if isinstance(route, dict) and route.get("path") is not None:
        return route["path"]
    return best_path.get("path")


async def get_all_pools(ctx, token_in: str, token_out: str,
                        base_tokens: Optional[Sequence[BaseToken]] = None) -> List[Pool]:
    """Get every pool connecting the pair, directly or through a base token."""
    if base_tokens is None:
        base_tokens = BASE_TOKENS
    try:
        return await ctx.api.get_all_pools(token_in, token_out, base_tokens)
    except Exception as e:
        raise PoolDiscoveryError(f"Failed to get pools: {e}") from e


async def find_best_path(ctx, token_in: str, token_out: str, amount: float,
                         amount_type: str = "amountIn",
                         base_tokens: Optional[Sequence[BaseToken]] = None) -> Dict[str, Any]:
    """Find the best route for a swap.

    Args:
        amount: Amount in token units (not raw)
        amount_type: "amountIn" or "amountOut"

    Returns:
        The route from the routing service, unchanged.
    """
    if amount_type not in AMOUNT_TYPES:
        raise PathfindingError(f"Unknown amount type: {amount_type}")

    pools = await get_all_pools(ctx, token_in, token_out, base_tokens)
    if not pools:
        raise NoPoolsFoundError("No pools found for the specified token pair")

    try:
        best_path = await ctx.api.find_best_path(token_in, token_out, amount, amount_type, pools)
    except Exception as e:
        raise PathfindingError(f"Failed to find best path: {e}") from e

    if not best_path:
        raise PathfindingError("No valid path found for the specified token pair")
    return best_path


async def estimate_swap_output(ctx, token_in: str, token_out: str, amount_in: float,
                               base_tokens: Optional[Sequence[BaseToken]] = None) -> SwapEstimate:
    """Quote a swap without sending any transaction."""
    token_in_info, token_out_info, best_path = await asyncio.gather(
        get_token_info(ctx, token_in),
        get_token_info(ctx, token_out),
        find_best_path(ctx, token_in, token_out, amount_in, "amountIn", base_tokens),
    )

    estimated = best_path.get("output")
    if estimated is None:
        estimated = best_path.get("amountOut")

    return SwapEstimate(
        token_in=token_in,
        token_out=token_out,
        amount_in=amount_in,
        estimated_amount_out=estimated,
        path=_path_of(best_path),
        pools=best_path.get("pools", _path_of(best_path)),
        token_info={"token_in": token_in_info, "token_out": token_out_info},
        price_impact=best_path.get("priceImpact"),
        fee_in_base=best_path.get("feeInBase"),
    )


async def execute_swap(ctx, token_in: str, token_out: str, amount: float,
                       on_approval: Optional[Callable[[Optional[str]], None]] = None,
                       base_tokens: Optional[Sequence[BaseToken]] = None) -> SwapResult:
    """Swap amount of token_in for token_out through the Kuru router.

    Non-native input tokens are approved for the router first when the
    current allowance is zero. The approval hash is only reported through
    on_approval.
    """
    signer = ctx.client.get_signer()
    chain = ctx.chain

    token_in_info, token_out_info = await asyncio.gather(
        get_token_info(ctx, token_in),
        get_token_info(ctx, token_out),
    )

    native = is_native_token(token_in)
    needs_approval = False
    if not native:
        allowance = await check_token_allowance(
            ctx, token_in, signer.address, chain.contracts.router
        )
        needs_approval = allowance.needs_approval

    best_path = await find_best_path(ctx, token_in, token_out, amount, "amountIn", base_tokens)

    try:
        receipt = await ctx.router.swap(
            signer,
            chain.contracts.router,
            best_path,
            amount,
            token_in_info.decimals,
            token_out_info.decimals,
            SLIPPAGE_TOLERANCE,
            needs_approval,
            on_approval,
        )
    except KuruError:
        raise
    except Exception as e:
        raise SwapExecutionError(f"Failed to execute swap: {e}") from e

    logger.info(f"Swap executed - Status: {receipt.get('status')}, Gas Used: {receipt.get('gasUsed')}")

    return SwapResult(
        transaction_hash=_string_or_none(receipt.get("transactionHash")),
        status=int(receipt.get("status", 0)),
        gas_used=_string_or_none(receipt.get("gasUsed")),
        block_number=_string_or_none(receipt.get("blockNumber")),
        block_hash=_string_or_none(receipt.get("blockHash")),
        logs=_to_json_safe(list(receipt.get("logs") or [])),
        token_info={"token_in": token_in_info, "token_out": token_out_info},
        allowance_info={"needs_approval": needs_approval, "is_native_token": native},
    )
