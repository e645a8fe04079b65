"""
Error types raised by the Kuru MCP server internals.
Tool handlers in kuru.py are the only place these are turned into text.
"""


class KuruError(Exception):
    """Base class for all Kuru server errors."""


class ConfigurationError(KuruError):
    """Missing or invalid environment setting."""


class UnsupportedChainError(ConfigurationError):
    """Chain identifier or name not present in the registry."""


class ValidationError(KuruError):
    """Malformed caller input (token address, amount)."""


class PoolDiscoveryError(KuruError):
    """Remote pool lookup failed."""


class NoPoolsFoundError(PoolDiscoveryError):
    """Remote pool lookup returned no pools for the pair."""


class PathfindingError(KuruError):
    """Remote routing failed."""


class TokenLookupError(KuruError):
    """Token metadata could not be read."""


class AllowanceCheckError(KuruError):
    """ERC20 allowance could not be read."""


class SwapExecutionError(KuruError):
    """Swap transaction submission or confirmation failed."""
