import itertools
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests

from .errors import DecodeError, InvalidArgument, TransportError, UpstreamError


class RpcClient:
    """Minimal JSON-RPC 2.0 client for EVM nodes (HTTP POST)."""

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 10,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        url = (rpc_url or "").strip()
        if not url:
            raise InvalidArgument("rpc_url must be a non-empty string.")

        self.rpc_url = url
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            session.headers.update({"Content-Type": "application/json"})
            if headers:
                session.headers.update(dict(headers))
        self.session = session
        self._ids = itertools.count(1)

    def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        if not isinstance(method, str) or not method.strip():
            raise InvalidArgument("method must be a non-empty string.")
        if params is None:
            params = []
        if not isinstance(params, list):
            raise InvalidArgument("params must be a list.")

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        try:
            response = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TransportError(f"RPC request {method} failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise DecodeError("Unexpected JSON-RPC response (not JSON).") from exc
        if not isinstance(data, dict):
            raise DecodeError("Unexpected JSON-RPC response (non-object).")

        error_obj = data.get("error")
        if isinstance(error_obj, dict):
            code = error_obj.get("code")
            message = error_obj.get("message")
            err_data = error_obj.get("data")
            parts: List[str] = []
            if code is not None:
                parts.append(f"code {code}")
            if message:
                parts.append(str(message))
            if err_data:
                parts.append(str(err_data))
            detail = ": ".join(parts) if parts else "unknown error"
            raise UpstreamError(detail, source="RPC")

        if "result" not in data:
            raise DecodeError("Unexpected JSON-RPC response (missing result).")
        return data.get("result")

    def get_chain_id(self) -> int:
        return _hex_quantity(self.call("eth_chainId", []), "eth_chainId")

    def get_block_number(self) -> int:
        return _hex_quantity(self.call("eth_blockNumber", []), "eth_blockNumber")


def _hex_quantity(result: Any, method: str) -> int:
    if not isinstance(result, str) or not result.startswith("0x"):
        raise DecodeError(f"{method} returned unexpected result {result!r}.")
    try:
        return int(result, 16)
    except ValueError as exc:
        raise DecodeError(f"{method} returned unexpected result {result!r}.") from exc


def load_provider(uri: str, timeout: float = 10) -> RpcClient:
    """Build an RPC client for ``uri``. Only HTTP(S) endpoints are supported."""
    try:
        parsed = urlparse(uri or "")
        # Accessing the port validates it.
        parsed.port
    except ValueError as exc:
        raise InvalidArgument(f"Invalid URI '{uri}': {exc}") from exc

    if parsed.scheme in {"http", "https"}:
        if not parsed.netloc:
            raise InvalidArgument(f"Invalid URI '{uri}': missing host.")
        return RpcClient(uri, timeout=timeout)
    if parsed.scheme in {"ws", "wss", "file"}:
        raise InvalidArgument(
            f"Scheme '{parsed.scheme}' in '{uri}' is not supported; use an http(s) RPC endpoint."
        )
    raise InvalidArgument(f"Cannot connect to scheme '{parsed.scheme}' in '{uri}'.")
