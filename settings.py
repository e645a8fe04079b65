"""
Environment configuration for the Kuru MCP server.
All environment variables are read here, once, into an immutable Settings value.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional

from dotenv import load_dotenv

from errors import ConfigurationError

DEFAULT_CHAIN_ID = 10143
DEFAULT_HTTP_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration loaded at startup"""
    private_key: Optional[str]
    rpc_url: Optional[str]
    kuru_api_url: Optional[str]
    chain_id: int = DEFAULT_CHAIN_ID
    router_address: Optional[str] = None
    margin_account_address: Optional[str] = None
    transport: str = "stdio"
    log_level: str = "INFO"
    http_timeout: float = DEFAULT_HTTP_TIMEOUT


def _parse_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from e


def _parse_log_level(env: Mapping[str, str]) -> str:
    raw = env.get("LOG_LEVEL") or ""
    level = raw.strip().upper() or "INFO"
    # getLevelName maps known names to their numeric level
    if not isinstance(logging.getLevelName(level), int):
        raise ConfigurationError(f"LOG_LEVEL must be a logging level name, got '{raw}'")
    return level


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from a mapping of environment variables.

    Args:
        env: Variables to read. Defaults to os.environ after loading a .env file.

    Returns:
        Immutable Settings. Empty strings are treated as unset.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    def _get(name: str) -> Optional[str]:
        value = env.get(name)
        return value if value else None

    return Settings(
        private_key=_get("PRIVATE_KEY"),
        rpc_url=_get("RPC_URL"),
        kuru_api_url=_get("KURU_API_URL"),
        chain_id=_parse_number(env, "CHAIN_ID", DEFAULT_CHAIN_ID, int),
        router_address=_get("ROUTER_ADDRESS"),
        margin_account_address=_get("MARGIN_ACCOUNT_ADDRESS"),
        transport=_get("TRANSPORT") or "stdio",
        log_level=_parse_log_level(env),
        http_timeout=_parse_number(env, "HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT, float),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings for this process, loaded on first use."""
    return load_settings()
