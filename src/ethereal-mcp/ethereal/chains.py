from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping
from urllib.parse import urlparse

from .errors import ConfigurationError, UnsupportedChain


def _norm(text: str) -> str:
    return (text or "").strip().lower()


@dataclass(frozen=True)
class ChainInfo:
    chain_id: int
    name: str
    api_url: str

    def as_dict(self) -> Dict[str, Any]:
        return {"chain_id": self.chain_id, "network": self.name, "api_url": self.api_url}


class NetworkTable:
    """
    Immutable chain id -> endpoint and chain id -> network name tables.

    Both tables are checked against each other when the table is built, so a
    chain is either fully supported or not supported at all.
    """

    def __init__(self, endpoints: Mapping[int, str], names: Mapping[int, str]) -> None:
        endpoint_ids = set(endpoints)
        name_ids = set(names)
        if endpoint_ids != name_ids:
            missing = sorted(endpoint_ids ^ name_ids)
            raise ConfigurationError(
                f"Endpoint and network tables disagree on chain ids: {missing}."
            )

        seen: Dict[str, int] = {}
        for chain_id, name in names.items():
            normalized = _norm(name)
            if not normalized:
                raise ConfigurationError(f"Chain {chain_id} has an empty network name.")
            if normalized in seen:
                raise ConfigurationError(
                    f"Network name '{normalized}' is used by chains {seen[normalized]} and {chain_id}."
                )
            seen[normalized] = chain_id

        for chain_id, url in endpoints.items():
            if urlparse(url or "").scheme not in {"http", "https"}:
                raise ConfigurationError(f"Chain {chain_id} has a non-HTTP endpoint '{url}'.")

        self._endpoints: Mapping[int, str] = MappingProxyType(
            {int(cid): url.rstrip("/") for cid, url in endpoints.items()}
        )
        self._names: Mapping[int, str] = MappingProxyType(
            {int(cid): _norm(name) for cid, name in names.items()}
        )
        self._ids_by_name: Mapping[str, int] = MappingProxyType(
            {name: cid for cid, name in self._names.items()}
        )

    def __contains__(self, chain_id: object) -> bool:
        return chain_id in self._endpoints

    def endpoint(self, chain_id: int) -> str:
        try:
            return self._endpoints[chain_id]
        except KeyError:
            raise UnsupportedChain(chain_id) from None

    def network_name(self, chain_id: int) -> str:
        try:
            return self._names[chain_id]
        except KeyError:
            raise UnsupportedChain(chain_id) from None

    def chain_id(self, network: str) -> int:
        normalized = _norm(network)
        if re.fullmatch(r"[0-9]+", normalized) and int(normalized) in self._names:
            return int(normalized)
        try:
            return self._ids_by_name[normalized]
        except KeyError:
            raise UnsupportedChain(network) from None

    def info(self, chain_id: int) -> ChainInfo:
        return ChainInfo(
            chain_id=chain_id,
            name=self.network_name(chain_id),
            api_url=self.endpoint(chain_id),
        )

    def list_chains(self) -> List[ChainInfo]:
        return [self.info(cid) for cid in sorted(self._endpoints)]


DEFAULT_NETWORKS = NetworkTable(
    endpoints={
        1: "https://api.etherscan.io/api",
        3: "https://api-ropsten.etherscan.io/api",
        4: "https://api-rinkeby.etherscan.io/api",
        5: "https://api-goerli.etherscan.io/api",
        10: "https://api-optimistic.etherscan.io/api",
        42: "https://api-kovan.etherscan.io/api",
        56: "https://api.bscscan.com/api",
        137: "https://api.polygonscan.com/api",
        250: "https://api.ftmscan.com/api",
        42161: "https://api.arbiscan.io/api",
        43114: "https://api.snowtrace.io/api",
        11155111: "https://api-sepolia.etherscan.io/api",
    },
    names={
        1: "mainnet",
        3: "ropsten",
        4: "rinkeby",
        5: "goerli",
        10: "optimism",
        42: "kovan",
        56: "bsc",
        137: "polygon",
        250: "fantom",
        42161: "arbitrum",
        43114: "avalanche",
        11155111: "sepolia",
    },
)


def get_chain_id(network: str) -> int:
    """Resolve a network name (case-insensitive) to its chain id."""
    return DEFAULT_NETWORKS.chain_id(network)


def get_network(chain_id: int) -> str:
    return DEFAULT_NETWORKS.network_name(chain_id)
