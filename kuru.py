#!/usr/bin/env python3
"""
Kuru Exchange MCP Server (FastMCP Implementation)
Provides AI agents with tools to discover pools, quote and execute swaps on the
Kuru order book exchange.
"""

import asyncio
import json
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Literal, Optional

from mcp.server.fastmcp import FastMCP, Context

import swap_tools
from chain_config import NATIVE_TOKEN_ADDRESS
from context import KuruContext, build_context
from settings import get_settings
from tokens import get_token_info as fetch_token_info
from wallet import WalletIdentity

# Configure logging, stdout is reserved for MCP messages
logging.basicConfig(level=logging.INFO, stream=sys.stderr)
logger = logging.getLogger(__name__)

REQUIRED_ENVIRONMENT = ["PRIVATE_KEY", "KURU_API_URL", "RPC_URL"]


@asynccontextmanager
async def kuru_lifespan(server: FastMCP) -> AsyncIterator[KuruContext]:
    """Manages the Kuru client lifecycle."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level)

    # A missing or malformed key is a deployment error
    wallet = WalletIdentity.from_private_key(settings.private_key)

    kuru_ctx = build_context(settings, wallet=wallet)
    chain = kuru_ctx.chain

    logger.info("Kuru Exchange MCP Server running")
    logger.info(f"Wallet Address: {wallet.address}")
    logger.info(f"Chain: {chain.name} ({chain.chain_id})")
    logger.info(f"RPC URL: {chain.rpc_url}")
    logger.info(f"Kuru API: {chain.kuru_api_url}")

    validation = kuru_ctx.client.validate_environment()
    if validation.is_valid:
        logger.info("Environment validated - ready for Kuru exchange operations")
    else:
        logger.warning(f"Environment validation failed - some tools may not work: {', '.join(validation.errors)}")

    try:
        yield kuru_ctx
    finally:
        await kuru_ctx.aclose()
        logger.info("Kuru server shutdown complete")


# Initialize FastMCP server
mcp = FastMCP(
    "kuru-exchange",
    instructions="MCP server for AI agents to trade on the Kuru exchange",
    lifespan=kuru_lifespan
)


def _kuru_context(ctx: Context) -> KuruContext:
    return ctx.request_context.lifespan_context


def _environment_error(kuru_ctx: KuruContext) -> Optional[str]:
    validation = kuru_ctx.client.validate_environment()
    if validation.is_valid:
        return None
    errors = "\n".join(f"- {error}" for error in validation.errors)
    return f"Error: Environment validation failed:\n{errors}"


def _address_error(**addresses: Any) -> Optional[str]:
    invalid = [
        f"{name}={value!r}" for name, value in addresses.items()
        if not swap_tools.is_valid_address(value)
    ]
    if not invalid:
        return None
    return f"Error: Invalid token addresses provided: {', '.join(invalid)}"


def _pool_dicts(pools: Any) -> List[Dict[str, Any]]:
    return [pool.to_dict() if hasattr(pool, "to_dict") else pool for pool in pools or []]


@mcp.tool(name="getWalletAddress")
async def get_wallet_address(ctx: Context) -> str:
    """Get the wallet address derived from the PRIVATE_KEY environment variable.

    Returns:
        JSON string with the address, active chain and readiness status.
    """
    try:
        kuru_ctx = _kuru_context(ctx)

        error = _environment_error(kuru_ctx)
        if error:
            return f"{error}\n\nRequired environment variables: {', '.join(REQUIRED_ENVIRONMENT)}"

        chain = kuru_ctx.chain
        address = kuru_ctx.wallet.address if kuru_ctx.wallet else kuru_ctx.client.get_wallet_address()

        result = {
            "address": address,
            "chain": chain.name,
            "chain_id": chain.chain_id,
            "rpc_url": chain.rpc_url,
            "kuru_api_url": chain.kuru_api_url,
            "status": "ready",
            "native_token_address": NATIVE_TOKEN_ADDRESS
        }

        return json.dumps(result, indent=2)

    except Exception as e:
        logger.error(f"Error getting wallet address: {e}")
        return f"Error getting wallet address: {str(e)}"


@mcp.tool(name="getChainInfo")
async def get_chain_info(ctx: Context) -> str:
    """Get information about the configured blockchain network.

    Returns:
        JSON string with chain configuration, contract addresses and supported chains.
    """
    try:
        kuru_ctx = _kuru_context(ctx)
        chain = kuru_ctx.registry.resolve()

        chain_info = {
            "chain_id": chain.chain_id,
            "name": chain.name,
            "native_currency": {
                "name": chain.native_currency.name,
                "symbol": chain.native_currency.symbol,
                "decimals": chain.native_currency.decimals,
                "address": NATIVE_TOKEN_ADDRESS
            },
            "explorer_url": chain.explorer_url,
            "rpc_url": chain.rpc_url,
            "kuru_api_url": chain.kuru_api_url,
            "contracts": {
                "margin_account": chain.contracts.margin_account,
                "router": chain.contracts.router
            },
            "notes": [
                f"{chain.native_currency.symbol} is the native token and needs no approval for swaps",
                "ERC20 tokens are approved for the router automatically before swapping"
            ],
            "supported_chains": kuru_ctx.registry.list_names()
        }

        return json.dumps(chain_info, indent=2)

    except Exception as e:
        logger.error(f"Error getting chain info: {e}")
        return f"Error getting chain info: {str(e)}"


@mcp.tool(name="getAllPools")
async def get_all_pools(ctx: Context, tokenIn: str, tokenOut: str) -> str:
    """Get all available pools for a token pair.

    Args:
        tokenIn: Input token address
        tokenOut: Output token address

    Returns:
        JSON string with the pool count and each pool's base, quote and order book.
    """
    try:
        kuru_ctx = _kuru_context(ctx)

        error = _environment_error(kuru_ctx) or _address_error(tokenIn=tokenIn, tokenOut=tokenOut)
        if error:
            return error

        pools = await swap_tools.get_all_pools(kuru_ctx, tokenIn, tokenOut)

        result = {
            "token_in": tokenIn,
            "token_out": tokenOut,
            "total_pools": len(pools),
            "pools": _pool_dicts(pools)
        }

        return json.dumps(result, indent=2)

    except Exception as e:
        logger.error(f"Error getting pools: {e}")
        return f"Error getting pools: {str(e)}"


@mcp.tool(name="findBestPath")
async def find_best_path(ctx: Context, tokenIn: str, tokenOut: str, amount: float,
                         amountType: Literal["amountIn", "amountOut"] = "amountIn") -> str:
    """Find the best path for a token swap.

    Args:
        tokenIn: Input token address
        tokenOut: Output token address
        amount: Amount to swap in token units, not raw ERC20 decimals
        amountType: Whether amount is the input or the desired output (default: amountIn)

    Returns:
        JSON string with amount out, path and number of pools used.
    """
    try:
        kuru_ctx = _kuru_context(ctx)

        error = _environment_error(kuru_ctx) or _address_error(tokenIn=tokenIn, tokenOut=tokenOut)
        if error:
            return error

        best_path = await swap_tools.find_best_path(kuru_ctx, tokenIn, tokenOut, amount, amountType)
        route = best_path.get("route") or {}
        path = route.get("path") or best_path.get("path") or []

        result = {
            "token_in": tokenIn,
            "token_out": tokenOut,
            "amount": amount,
            "amount_type": amountType,
            "amount_out": best_path.get("output", best_path.get("amountOut")),
            "path": path or "Direct",
            "pools_used": len(best_path.get("pools") or path)
        }

        return json.dumps(result, indent=2, default=str)

    except Exception as e:
        logger.error(f"Error finding best path: {e}")
        return f"Error finding best path: {str(e)}"


@mcp.tool(name="estimateSwapOutput")
async def estimate_swap_output(ctx: Context, tokenIn: str, tokenOut: str, amountIn: float) -> str:
    """Estimate the output amount for a token swap.

    Args:
        tokenIn: Input token address
        tokenOut: Output token address
        amountIn: Input amount in token units, not raw ERC20 decimals

    Returns:
        JSON string with the estimated amount out, path, pools used and price impact.
    """
    try:
        kuru_ctx = _kuru_context(ctx)

        error = _environment_error(kuru_ctx) or _address_error(tokenIn=tokenIn, tokenOut=tokenOut)
        if error:
            return error

        estimate = await swap_tools.estimate_swap_output(kuru_ctx, tokenIn, tokenOut, amountIn)

        result = {
            "token_in": tokenIn,
            "token_out": tokenOut,
            "amount_in": amountIn,
            "estimated_amount_out": estimate.estimated_amount_out,
            "path": estimate.path or "Direct",
            "pools_used": len(estimate.pools or []),
            "price_impact": estimate.price_impact,
            "fee_in_base": estimate.fee_in_base,
            "token_info": {
                "token_in": estimate.token_info["token_in"].to_dict(),
                "token_out": estimate.token_info["token_out"].to_dict()
            }
        }

        return json.dumps(result, indent=2, default=str)

    except Exception as e:
        logger.error(f"Error estimating swap output: {e}")
        return f"Error estimating swap output: {str(e)}"


@mcp.tool(name="executeSwap")
async def execute_swap(ctx: Context, tokenIn: str, tokenOut: str, amount: float) -> str:
    """Execute a token swap through the router contract.

    Token decimals are detected automatically and ERC20 input tokens are
    approved for the router first when needed.

    Args:
        tokenIn: Input token address
        tokenOut: Output token address
        amount: Amount to swap in token units, not raw ERC20 decimals

    Returns:
        JSON string with swap transaction details.
    """
    try:
        kuru_ctx = _kuru_context(ctx)

        error = _environment_error(kuru_ctx) or _address_error(tokenIn=tokenIn, tokenOut=tokenOut)
        if error:
            return error

        approval_tx_hash = None

        def on_approval(tx_hash: Optional[str]) -> None:
            nonlocal approval_tx_hash
            approval_tx_hash = tx_hash

        swap = await swap_tools.execute_swap(kuru_ctx, tokenIn, tokenOut, amount, on_approval)
        token_in_info = swap.token_info["token_in"]
        token_out_info = swap.token_info["token_out"]
        explorer_url = kuru_ctx.chain.explorer_url

        result = {
            "token_in": {
                "address": tokenIn,
                "symbol": token_in_info.symbol,
                "decimals": token_in_info.decimals
            },
            "token_out": {
                "address": tokenOut,
                "symbol": token_out_info.symbol,
                "decimals": token_out_info.decimals
            },
            "amount": amount,
            "allowance_info": {
                "is_native_token": swap.allowance_info["is_native_token"],
                "needs_approval": swap.allowance_info["needs_approval"]
            },
            "transaction": {
                "approval_tx_hash": approval_tx_hash or "N/A",
                "swap_tx_hash": swap.transaction_hash or "N/A",
                "status": "success" if swap.status == 1 else "failed",
                "gas_used": swap.gas_used or "N/A",
                "block_number": swap.block_number
            },
            "explorer_url": f"{explorer_url}/tx/{swap.transaction_hash}" if swap.transaction_hash else None
        }

        return json.dumps(result, indent=2)

    except Exception as e:
        logger.error(f"Error executing swap: {e}")
        return f"Error executing swap: {str(e)}"


@mcp.tool(name="getTokenInfo")
async def get_token_info(ctx: Context, tokenAddress: str) -> str:
    """Get detailed information about an ERC20 token or the native token.

    Args:
        tokenAddress: Token contract address

    Returns:
        JSON string with name, symbol, decimals and total supply.
    """
    try:
        kuru_ctx = _kuru_context(ctx)

        error = _environment_error(kuru_ctx)
        if error:
            return error

        if not swap_tools.validate_token_addresses(tokenAddress, tokenAddress):
            return f"Error: Invalid token address provided: {tokenAddress!r}"

        token_info = await fetch_token_info(kuru_ctx, tokenAddress)

        return json.dumps(token_info.to_dict(), indent=2)

    except Exception as e:
        logger.error(f"Error getting token info: {e}")
        return f"Error getting token info: {str(e)}"


@mcp.tool(name="getAvailableBaseTokens")
async def get_available_base_tokens(ctx: Context) -> str:
    """Get the base tokens used as routing intermediaries for pool discovery.

    Returns:
        JSON string with the symbol and address of each base token.
    """
    try:
        base_tokens = swap_tools.get_available_base_tokens()

        result = {
            "base_tokens": [token.to_dict() for token in base_tokens],
            "usage": "These tokens are commonly used as base pairs for liquidity pools"
        }

        return json.dumps(result, indent=2)

    except Exception as e:
        logger.error(f"Error getting base tokens: {e}")
        return f"Error getting base tokens: {str(e)}"


async def main():
    """Main function to run the MCP server."""
    transport = get_settings().transport

    if transport == "stdio":
        await mcp.run_stdio_async()
    elif transport == "sse":
        await mcp.run_sse_async()
    else:
        logger.error(f"Unsupported transport: {transport}")
        return


if __name__ == "__main__":
    asyncio.run(main())
