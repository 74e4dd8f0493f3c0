import math
import os
import re
from dataclasses import dataclass, field
from typing import Dict, Optional

from .chains import DEFAULT_NETWORKS, NetworkTable
from .errors import ConfigurationError, UnsupportedChain

API_KEY_ENV = "ETHERSCAN_API_KEY"
API_KEY_ENV_PREFIX = "ETHERSCAN_API_KEY_"


@dataclass
class Config:
    chain_id: int = 1
    api_keys: Dict[str, str] = field(default_factory=dict)
    request_timeout: float = 10
    cache_ttl_seconds: float = 3600
    log_level: str = "WARNING"
    rpc_url: Optional[str] = None


def _read_number(name: str, default: str, cast):
    raw = os.getenv(name, default).strip()
    try:
        value = cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number; got '{raw}'.") from exc
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(f"{name} must be a positive finite number; got '{raw}'.")
    return value


def _read_api_keys(networks: NetworkTable) -> Dict[str, str]:
    """Collect per-network keys: ETHERSCAN_API_KEY is mainnet, ETHERSCAN_API_KEY_<NETWORK> the rest."""
    keys: Dict[str, str] = {}
    for info in networks.list_chains():
        value = os.getenv(API_KEY_ENV_PREFIX + info.name.upper())
        if value and value.strip():
            keys[info.name] = value.strip()

    mainnet_key = os.getenv(API_KEY_ENV)
    if mainnet_key and mainnet_key.strip() and "mainnet" not in keys:
        keys["mainnet"] = mainnet_key.strip()
    return keys


def _read_chain_id(networks: NetworkTable) -> int:
    chain_id_env = (os.getenv("CHAIN_ID") or "").strip()
    if chain_id_env:
        if not re.fullmatch(r"[0-9]+", chain_id_env):
            raise ConfigurationError(f"CHAIN_ID must be an integer; got '{chain_id_env}'.")
        return int(chain_id_env)

    network = os.getenv("NETWORK", "mainnet")
    try:
        return networks.chain_id(network)
    except UnsupportedChain as exc:
        allowed = ", ".join(info.name for info in networks.list_chains())
        raise ConfigurationError(f"Unknown NETWORK '{network}'. Supported: {allowed}.") from exc


def load_config(networks: NetworkTable = DEFAULT_NETWORKS) -> Config:
    """Load configuration from environment variables."""
    rpc_url = (os.getenv("RPC_URL") or "").strip() or None
    return Config(
        chain_id=_read_chain_id(networks),
        api_keys=_read_api_keys(networks),
        request_timeout=_read_number("REQUEST_TIMEOUT", "10", float),
        cache_ttl_seconds=_read_number("CACHE_TTL_SECONDS", "3600", float),
        log_level=os.getenv("LOG_LEVEL", "WARNING").strip().upper(),
        rpc_url=rpc_url,
    )
