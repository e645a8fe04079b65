"""
HTTP client for the Kuru exchange API (pool discovery and pathfinding).
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

import httpx

logger = logging.getLogger(__name__)

POOLS_ENDPOINT = "/api/v2/markets/filtered"
ROUTE_ENDPOINT = "/api/v2/routes/best"


@dataclass(frozen=True)
class BaseToken:
    symbol: str
    address: str

    def to_dict(self) -> Dict[str, str]:
        return {"symbol": self.symbol, "address": self.address}


@dataclass(frozen=True)
class Pool:
    """An order book market pairing two tokens"""
    base_token: str
    quote_token: str
    orderbook: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "baseToken": self.base_token,
            "quoteToken": self.quote_token,
            "orderbook": self.orderbook,
        }


def build_token_pairs(token_in: str, token_out: str,
                      base_tokens: Sequence[BaseToken]) -> List[Dict[str, str]]:
    """Candidate market pairs: the direct pair, each leg against every base
    token, and the base tokens against each other."""
    pairs = [{"baseToken": token_in, "quoteToken": token_out}]

    for base in base_tokens:
        if base.address.lower() != token_in.lower():
            pairs.append({"baseToken": token_in, "quoteToken": base.address})
        if base.address.lower() != token_out.lower():
            pairs.append({"baseToken": base.address, "quoteToken": token_out})

    for i, first in enumerate(base_tokens):
        for second in base_tokens[i + 1:]:
            pairs.append({"baseToken": first.address, "quoteToken": second.address})

    unique = []
    seen = set()
    for pair in pairs:
        key = (pair["baseToken"].lower(), pair["quoteToken"].lower())
        if key not in seen:
            seen.add(key)
            unique.append(pair)
    return unique


class KuruApiClient:
    """Kuru exchange API client."""

    def __init__(self, base_url: str, http_client: httpx.AsyncClient):
        self.base_url = base_url.rstrip('/')
        self.http_client = http_client

    async def _post(self, path: str, payload: Dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        response = await self.http_client.post(url, json=payload)
        if response.status_code != 200:
            raise Exception(f"Request to {url} failed: {response.status_code} {response.text}")
        return response.json()

    async def get_all_pools(self, token_in: str, token_out: str,
                            base_tokens: Sequence[BaseToken]) -> List[Pool]:
        """Get every market connecting token_in and token_out through base_tokens."""
        pairs = build_token_pairs(token_in, token_out, base_tokens)
        result = await self._post(POOLS_ENDPOINT, {"pairs": pairs})

        pools = [
            Pool(
                base_token=market["baseasset"],
                quote_token=market["quoteasset"],
                orderbook=market["market"],
            )
            for market in result.get("data", [])
        ]
        logger.debug(f"Found {len(pools)} pools for {token_in} -> {token_out}")
        return pools

    async def find_best_path(self, token_in: str, token_out: str, amount: float,
                             amount_type: str, pools: Sequence[Pool]) -> Dict[str, Any]:
        """Ask the routing service for the best route over the given pools.

        Returns:
            The route exactly as the service returns it.
        """
        result = await self._post(ROUTE_ENDPOINT, {
            "tokenIn": token_in,
            "tokenOut": token_out,
            "amount": amount,
            "amountType": amount_type,
            "pools": [pool.to_dict() for pool in pools],
        })
        if isinstance(result, dict) and "data" in result:
            return result["data"]
        return result
