import json
from typing import Any, Dict, List, Optional

import pytest
import requests

from ethereal.cache import ExpiringCache
from ethereal.etherscan_client import EtherscanClient

ADDRESS = "0xAbC0000000000000000000000000000000000001"

ERC20_ABI = [
    {"type": "constructor", "inputs": []},
    {
        "type": "function",
        "name": "transfer",
        "inputs": [{"name": "to", "type": "address"}, {"name": "value", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "swap",
        "inputs": [
            {
                "name": "order",
                "type": "tuple[]",
                "components": [{"name": "a", "type": "address"}, {"name": "b", "type": "uint8"}],
            },
            {"name": "deadline", "type": "uint256"},
        ],
    },
    {"type": "event", "name": "Transfer", "inputs": []},
    {"type": "event", "name": "Approval", "inputs": []},
    {"type": "event", "name": "Transfer", "inputs": []},
]


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, text: Optional[str] = None) -> None:
        self._payload = payload
        self.status_code = status_code
        self._text = text

    def json(self) -> Any:
        if self._text is not None:
            return json.loads(self._text)
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """Stands in for requests.Session; replays queued responses or exceptions."""

    def __init__(self, *responses: Any) -> None:
        self.responses: List[Any] = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self.headers: Dict[str, str] = {}

    def _next(self, **call: Any) -> Any:
        self.calls.append(call)
        if not self.responses:
            raise AssertionError("Unexpected HTTP request")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url: str, params: Optional[Dict[str, Any]] = None, timeout: Any = None) -> Any:
        return self._next(method="GET", url=url, params=params, timeout=timeout)

    def post(self, url: str, json: Any = None, timeout: Any = None) -> Any:
        return self._next(method="POST", url=url, json=json, timeout=timeout)


def ok(result: Any) -> FakeResponse:
    return FakeResponse({"status": "1", "message": "OK", "result": result})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> ExpiringCache:
    return ExpiringCache(60, clock=clock)


@pytest.fixture
def make_client(cache: ExpiringCache):
    def _make(*responses: Any, chain_id: int = 1, api_keys: Optional[Dict[str, str]] = None) -> EtherscanClient:
        keys = {"mainnet": "KEY-MAIN", "polygon": "KEY-POLY"} if api_keys is None else api_keys
        return EtherscanClient(
            chain_id=chain_id,
            api_keys=keys,
            cache=cache,
            timeout=5,
            session=FakeSession(*responses),
        )

    return _make
