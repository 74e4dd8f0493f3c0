from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

import requests

from .cache import ExpiringCache
from .chains import DEFAULT_NETWORKS, NetworkTable
from .config import Config
from .contracts import Contracts
from .etherscan_client import EtherscanClient
from .rpc_client import load_provider
from .timestamps import TimestampInput

log = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=(level or "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class EtherealService:
    """Combine configuration, cache, client, and contract helpers."""

    def __init__(
        self,
        config: Config,
        networks: NetworkTable = DEFAULT_NETWORKS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        self.networks = networks
        self.cache = ExpiringCache(config.cache_ttl_seconds)
        self.client = EtherscanClient(
            chain_id=config.chain_id,
            api_keys=config.api_keys,
            cache=self.cache,
            timeout=config.request_timeout,
            networks=networks,
            session=session,
        )
        self.contracts = Contracts(self.client, self.cache)

    @staticmethod
    def from_rpc(config: Config, networks: NetworkTable = DEFAULT_NETWORKS) -> EtherealService:
        """
        Create a service whose chain is taken from the configured RPC endpoint.

        Without ``config.rpc_url`` the configured ``chain_id`` is used as is.
        """
        if config.rpc_url:
            rpc = load_provider(config.rpc_url, timeout=config.request_timeout)
            chain_id = rpc.get_chain_id()
            log.info("RPC endpoint reports chain %s", chain_id)
            config = replace(config, chain_id=chain_id)
        return EtherealService(config, networks=networks)

    @property
    def chain_id(self) -> int:
        return self.client.chain_id

    def to_block(self, timestamp: TimestampInput, closest: str = "after") -> int:
        return self.client.get_block_by_timestamp(timestamp, closest)

    def get_abi(self, address: str) -> List[Dict[str, Any]]:
        return self.contracts.get_abi(address)

    def get_source_code(self, address: str) -> Dict[str, Any]:
        return self.client.get_source_code(address)

    def list_events(self, address: str) -> List[str]:
        return self.contracts.list_events(address)

    def get_function_signature(self, address: str, function_name: str) -> str:
        return self.contracts.get_function_signature(address, function_name)

    def is_contract(self, address: str) -> bool:
        return self.contracts.is_contract(address)

    def list_chains(self) -> List[Dict[str, Any]]:
        return [info.as_dict() for info in self.networks.list_chains()]

    def clear_cache(self) -> None:
        self.cache.clear()

    def sweep_cache(self) -> int:
        return self.cache.sweep()
