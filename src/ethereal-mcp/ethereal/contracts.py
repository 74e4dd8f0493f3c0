import logging
from typing import Any, Dict, List

from .cache import ExpiringCache
from .errors import InvalidArgument, NotFound, UpstreamError
from .etherscan_client import EtherscanClient

log = logging.getLogger(__name__)


class Contracts:
    """ABI-derived helpers on top of the Etherscan client."""

    def __init__(self, client: EtherscanClient, cache: ExpiringCache) -> None:
        self.client = client
        self.cache = cache

    def get_abi(self, address: str) -> List[Dict[str, Any]]:
        _require(address, "address")
        return self.client.get_abi(address)

    def list_events(self, address: str) -> List[str]:
        events: List[str] = []
        for item in self.get_abi(address):
            name = item.get("name")
            if item.get("type") == "event" and name and name not in events:
                events.append(name)
        return events

    def get_function_signature(self, address: str, function_name: str) -> str:
        _require(function_name, "function name")
        for item in self.get_abi(address):
            if item.get("type") == "function" and item.get("name") == function_name:
                inputs = item.get("inputs")
                if not isinstance(inputs, list):
                    raise InvalidArgument(f"Invalid ABI format: inputs missing for '{function_name}'.")
                return f"{function_name}({','.join(_canonical_type(arg) for arg in inputs)})"
        raise NotFound(f"Function '{function_name}' not found in ABI of {address}.")

    def is_contract(self, address: str) -> bool:
        _require(address, "address")
        key = f"is_contract:{address.strip().lower()}"
        value, found = self.cache.lookup(key)
        if found:
            return value

        try:
            is_contract = bool(self.client.get_abi(address))
        except UpstreamError as exc:
            # Unverified contracts and plain accounts both come back as NOTOK.
            log.debug("No ABI for %s: %s", address, exc)
            is_contract = False

        self.cache.set(key, is_contract)
        return is_contract


def _require(value: Any, field: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{field} cannot be empty.")


def _canonical_type(arg: Dict[str, Any]) -> str:
    typ = arg.get("type")
    if not isinstance(typ, str) or not typ:
        raise InvalidArgument("Invalid ABI format: input type not found.")
    if typ.startswith("tuple"):
        components = arg.get("components") or []
        return f"({','.join(_canonical_type(c) for c in components)}){typ[len('tuple'):]}"
    return typ
