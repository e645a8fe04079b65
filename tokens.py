"""
Token metadata, ERC20 allowance reads and amount unit conversion.
"""

import asyncio
from dataclasses import asdict, dataclass
from decimal import Decimal, localcontext
from typing import Any, Dict, Union

from web3 import Web3

from chain_config import NATIVE_TOKEN_ADDRESS
from errors import AllowanceCheckError, TokenLookupError, ValidationError

# Enough digits for any uint256 plus its fractional part
AMOUNT_PRECISION = 160

ERC20_ABI = [
    {
        "inputs": [],
        "name": "name",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"}
        ],
        "name": "allowance",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"}
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]


@dataclass(frozen=True)
class TokenInfo:
    address: str
    name: str
    symbol: str
    decimals: int
    total_supply: str
    is_native_token: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AllowanceInfo:
    allowance: str
    needs_approval: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def is_native_token(address: str) -> bool:
    return address.lower() == NATIVE_TOKEN_ADDRESS


def erc20_contract(w3, token_address: str):
    return w3.eth.contract(address=Web3.to_checksum_address(token_address), abi=ERC20_ABI)


async def get_token_info(ctx, token_address: str) -> TokenInfo:
    """Get token metadata for an ERC20 token or the chain's native currency.

    The native token is answered from the chain config without any RPC call.
    ERC20 tokens are read live on every call; name, symbol, decimals and
    total supply must all succeed together.
    """
    if is_native_token(token_address):
        currency = ctx.chain.native_currency
        return TokenInfo(
            address=token_address,
            name=currency.name,
            symbol=currency.symbol,
            decimals=currency.decimals,
            total_supply="0",
            is_native_token=True,
        )

    try:
        w3 = ctx.client.get_provider()
        contract = erc20_contract(w3, token_address)

        name, symbol, decimals, total_supply = await asyncio.gather(
            contract.functions.name().call(),
            contract.functions.symbol().call(),
            contract.functions.decimals().call(),
            contract.functions.totalSupply().call(),
        )
    except Exception as e:
        raise TokenLookupError(f"Failed to get token info for {token_address}: {e}") from e

    return TokenInfo(
        address=token_address,
        name=name,
        symbol=symbol,
        decimals=int(decimals),
        total_supply=str(total_supply),
        is_native_token=False,
    )


async def check_token_allowance(ctx, token_address: str, owner_address: str,
                                spender_address: str) -> AllowanceInfo:
    """Read the ERC20 allowance owner has granted spender."""
    try:
        w3 = ctx.client.get_provider()
        contract = erc20_contract(w3, token_address)
        allowance = await contract.functions.allowance(
            Web3.to_checksum_address(owner_address),
            Web3.to_checksum_address(spender_address),
        ).call()
    except Exception as e:
        raise AllowanceCheckError(f"Failed to check allowance for {token_address}: {e}") from e

    return AllowanceInfo(allowance=str(allowance), needs_approval=int(allowance) == 0)


def format_amount(amount: Union[int, float, str, Decimal], decimals: int) -> str:
    """Convert a human amount to its raw integer string (1.5, 6 -> "1500000")."""
    with localcontext() as context:
        context.prec = AMOUNT_PRECISION
        try:
            value = Decimal(str(amount))
        except ArithmeticError as e:
            raise ValidationError(f"Invalid amount: {amount}") from e

        if not value.is_finite():
            raise ValidationError(f"Invalid amount: {amount}")

        raw = value.scaleb(decimals)
        if raw != raw.to_integral_value():
            raise ValidationError(
                f"Amount {amount} has more than {decimals} fractional digits"
            )
        return str(int(raw))


def parse_amount(raw: Union[int, str], decimals: int) -> Decimal:
    """Convert a raw integer amount to a human amount ("1500000", 6 -> 1.5)."""
    with localcontext() as context:
        context.prec = AMOUNT_PRECISION
        try:
            return Decimal(int(raw)).scaleb(-decimals)
        except ValueError as e:
            raise ValidationError(f"Invalid raw amount: {raw}") from e
