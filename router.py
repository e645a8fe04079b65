"""
Swap execution through the Kuru router contract.
"""

import logging
from decimal import ROUND_DOWN, Decimal, localcontext
from typing import Any, Callable, Dict, List, Optional

from web3 import Web3

from errors import SwapExecutionError
from tokens import AMOUNT_PRECISION, ERC20_ABI, format_amount

logger = logging.getLogger(__name__)

ROUTER_ABI = [
    {
        "name": "anyToAnySwap",
        "type": "function",
        "inputs": [
            {"name": "_marketAddresses", "type": "address[]"},
            {"name": "_isBuy", "type": "bool[]"},
            {"name": "_nativeSend", "type": "bool[]"},
            {"name": "_debitToken", "type": "address"},
            {"name": "_creditToken", "type": "address"},
            {"name": "_amount", "type": "uint256"},
            {"name": "_minAmountOut", "type": "uint256"}
        ],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "payable"
    }
]


def min_amount_out(output: Any, slippage_tolerance: float, decimals: int) -> str:
    """Raw minimum output after slippage, truncated to the token's precision."""
    with localcontext() as context:
        context.prec = AMOUNT_PRECISION
        minimum = Decimal(str(output)) * (Decimal(100) - Decimal(str(slippage_tolerance))) / Decimal(100)
        minimum = minimum.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_DOWN)
        return format_amount(minimum, decimals)


def _route_fields(route: Dict[str, Any]) -> Dict[str, Any]:
    try:
        hops = route["route"]
        return {
            "markets": [Web3.to_checksum_address(pool["orderbook"]) for pool in hops["path"]],
            "is_buy": list(route["isBuy"]),
            "native_send": list(route["nativeSend"]),
            "token_in": Web3.to_checksum_address(hops["tokenIn"]),
            "token_out": Web3.to_checksum_address(hops["tokenOut"]),
            "output": route["output"],
        }
    except (KeyError, TypeError, ValueError) as e:
        raise SwapExecutionError(f"Route is missing swap data: {e}") from e


class KuruRouter:
    """Sends the approval and swap transactions for a route."""

    async def swap(
        self,
        signer,
        router_address: str,
        route: Dict[str, Any],
        amount: Any,
        in_decimals: int,
        out_decimals: int,
        slippage_tolerance: float,
        approve_tokens: bool,
        on_approval: Optional[Callable[[Optional[str]], None]] = None,
    ):
        """Swap amount of the route's input token along the route.

        Args:
            signer: Signer from BlockchainClient.get_signer()
            router_address: Kuru router contract
            route: Route from the routing service
            amount: Input amount in token units (not raw)
            in_decimals: Input token decimals
            out_decimals: Output token decimals
            slippage_tolerance: Percent, applied to the route output
            approve_tokens: Send an ERC20 approval for the router first
            on_approval: Receives the approval transaction hash

        Returns:
            The swap transaction receipt.
        """
        fields = _route_fields(route)
        router = Web3.to_checksum_address(router_address)
        raw_amount = int(format_amount(amount, in_decimals))
        raw_min_out = int(min_amount_out(fields["output"], slippage_tolerance, out_decimals))

        if approve_tokens:
            token = signer.w3.eth.contract(address=fields["token_in"], abi=ERC20_ABI)
            approval = await signer.send_transaction(token.functions.approve(router, raw_amount))
            if approval["status"] != 1:
                raise SwapExecutionError("Approval transaction reverted")

            approval_hash = Web3.to_hex(approval["transactionHash"])
            logger.info(f"Approved router {router} for {raw_amount}: {approval_hash}")
            if on_approval is not None:
                on_approval(approval_hash)

        contract = signer.w3.eth.contract(address=router, abi=ROUTER_ABI)
        swap_call = contract.functions.anyToAnySwap(
            fields["markets"],
            fields["is_buy"],
            fields["native_send"],
            fields["token_in"],
            fields["token_out"],
            raw_amount,
            raw_min_out,
        )
        native_send: List[bool] = fields["native_send"]
        value = raw_amount if native_send and native_send[0] else 0

        return await signer.send_transaction(swap_call, value=value)
