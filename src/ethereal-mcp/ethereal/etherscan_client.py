import json
import logging
import re
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import requests

from .cache import ExpiringCache
from .chains import DEFAULT_NETWORKS, NetworkTable
from .errors import (
    ConfigurationError,
    DecodeError,
    InvalidArgument,
    NotFound,
    RateLimitError,
    TransportError,
    UpstreamError,
)
from .timestamps import GENESIS_TIMESTAMP, TimestampInput, to_timestamp

log = logging.getLogger(__name__)

CLOSEST_DIRECTIONS = ("before", "after")
_BLOCK_NUMBER_RE = re.compile(r"[0-9]+")


class EtherscanClient:
    """
    Caching client for one chain of the Etherscan API family.

    Successful, decoded results are memoized in the given cache. Failures are
    raised to the caller and never retried or cached here.
    """

    def __init__(
        self,
        chain_id: int,
        api_keys: Mapping[str, str],
        cache: ExpiringCache,
        timeout: float = 10,
        networks: NetworkTable = DEFAULT_NETWORKS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._chain_id = chain_id
        self._api_keys: Mapping[str, str] = MappingProxyType(
            {str(name).strip().lower(): key for name, key in (api_keys or {}).items()}
        )
        self.cache = cache
        self.timeout = timeout
        self.networks = networks
        self.session = session or requests.Session()

    @property
    def chain_id(self) -> int:
        return self._chain_id

    def get_block_by_timestamp(self, timestamp: TimestampInput, closest: str = "after") -> int:
        """
        Resolve a timestamp to the block closest to it.

        Timestamps before the genesis block are returned unchanged, without
        touching the cache or the network.
        """
        self._resolve_chain()
        epoch = to_timestamp(timestamp)
        if epoch < GENESIS_TIMESTAMP:
            return epoch

        direction = (closest or "").strip().lower()
        if direction not in CLOSEST_DIRECTIONS:
            raise InvalidArgument(f"closest must be one of {', '.join(CLOSEST_DIRECTIONS)}; got '{closest}'.")

        params = {
            "module": "block",
            "action": "getblocknobytime",
            "timestamp": epoch,
            "closest": direction,
        }
        return self._fetch(f"block:{epoch}:{direction}", params, _decode_block_number)

    def get_abi(self, address: str) -> List[Dict[str, Any]]:
        normalized = _normalize_address(address)
        params = {"module": "contract", "action": "getabi", "address": normalized}
        return self._fetch(f"abi:{normalized}", params, _decode_abi)

    def get_source_code(self, address: str) -> Dict[str, Any]:
        normalized = _normalize_address(address)
        params = {"module": "contract", "action": "getsourcecode", "address": normalized}
        return self._fetch(f"source:{normalized}", params, _decode_source_code)

    def _resolve_chain(self) -> Tuple[str, str]:
        endpoint = self.networks.endpoint(self._chain_id)
        network = self.networks.network_name(self._chain_id)
        return endpoint, network

    def _api_key(self, network: str) -> str:
        key = (self._api_keys.get(network) or "").strip()
        if not key:
            raise ConfigurationError(
                f"No Etherscan API key configured for network '{network}' (chain {self._chain_id})."
            )
        return key

    def _fetch(self, cache_key: str, params: Dict[str, Any], decode: Callable[[Any], Any]) -> Any:
        endpoint, network = self._resolve_chain()

        try:
            cached = self.cache.get(cache_key)
        except NotFound:
            pass
        else:
            log.debug("Cache hit for %s on %s", cache_key, network)
            return cached

        log.debug("Cache miss for %s on %s", cache_key, network)
        api_key = self._api_key(network)
        payload = self._request(endpoint, params, api_key)
        value = decode(_extract_result(payload))
        self.cache.set(cache_key, value)
        return value

    def _request(self, url: str, params: Dict[str, Any], api_key: str) -> Any:
        log.debug("Querying %s with %s", url, params)
        merged = {**params, "apikey": api_key}
        try:
            response = self.session.get(url, params=merged, timeout=self.timeout)
        except requests.Timeout as exc:
            raise TransportError(f"Request to {url} timed out after {self.timeout}s.") from exc
        except requests.RequestException as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

        if response.status_code == 429:
            raise RateLimitError("Too many requests", f"HTTP {response.status_code}")
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError("Failed to parse response from Etherscan.") from exc


def _normalize_address(address: str) -> str:
    if not isinstance(address, str) or not address.strip():
        raise InvalidArgument("address must be a non-empty string.")
    return address.strip().lower()


def _is_rate_limit_payload(payload: Dict[str, Any]) -> bool:
    candidates: List[str] = []
    for key in ("message", "result"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            candidates.append(value)

    haystack = " ".join(candidates).lower()
    if not haystack:
        return False

    return (
        "rate limit" in haystack
        or "max calls per sec" in haystack
        or "max calls per second" in haystack
        or "too many requests" in haystack
    )


def _extract_result(payload: Any) -> Any:
    if not isinstance(payload, dict) or "status" not in payload or "message" not in payload:
        raise DecodeError("Unexpected response from Etherscan (missing status/message envelope).")

    status = str(payload.get("status"))
    message = payload.get("message")
    message = message if isinstance(message, str) else str(message)
    result = payload.get("result")

    if status != "1":
        if _is_rate_limit_payload(payload):
            raise RateLimitError(message, result)
        raise UpstreamError(message, result)
    if "result" not in payload:
        raise DecodeError("Unexpected response from Etherscan (missing result).")
    return result


def _decode_block_number(result: Any) -> int:
    if isinstance(result, bool):
        raise DecodeError("Block number result must be an integer.")
    if isinstance(result, int):
        return result
    if isinstance(result, str) and _BLOCK_NUMBER_RE.fullmatch(result.strip()):
        return int(result.strip())
    raise DecodeError(f"Block number result must be an integer; got {result!r}.")


def _decode_abi(result: Any) -> List[Dict[str, Any]]:
    if isinstance(result, str):
        try:
            result = json.loads(result)
        except json.JSONDecodeError as exc:
            raise DecodeError("Invalid ABI returned from Etherscan.") from exc
    if not isinstance(result, list) or not all(isinstance(item, dict) for item in result):
        raise DecodeError("Invalid ABI returned from Etherscan (expected a list of objects).")
    return result


def _decode_source_code(result: Any) -> Dict[str, Any]:
    if not isinstance(result, list) or not result or not isinstance(result[0], dict):
        raise DecodeError("Unexpected source code result from Etherscan.")
    return result[0]
