"""Tests for ethereal.etherscan_client."""

from datetime import datetime, timezone

import pytest
import requests

from conftest import ADDRESS, ERC20_ABI, FakeResponse, ok
from ethereal.errors import (
    ConfigurationError,
    DecodeError,
    InvalidArgument,
    RateLimitError,
    TransportError,
    UnsupportedChain,
    UpstreamError,
)
from ethereal.timestamps import GENESIS_TIMESTAMP

NEW_YEAR_2021 = 1609459200


class TestBlockByTimestamp:
    def test_request_shape(self, make_client):
        client = make_client(ok("11565019"))

        assert client.get_block_by_timestamp(NEW_YEAR_2021) == 11565019

        call = client.session.calls[0]
        assert call["url"] == "https://api.etherscan.io/api"
        assert call["timeout"] == 5
        assert call["params"] == {
            "module": "block",
            "action": "getblocknobytime",
            "timestamp": NEW_YEAR_2021,
            "closest": "after",
            "apikey": "KEY-MAIN",
        }

    def test_second_call_is_served_from_cache(self, make_client):
        client = make_client(ok("11565019"))

        first = client.get_block_by_timestamp(NEW_YEAR_2021)
        second = client.get_block_by_timestamp(NEW_YEAR_2021)

        assert first == second == 11565019
        assert len(client.session.calls) == 1

    def test_input_forms_share_one_cache_entry(self, make_client, cache):
        client = make_client(ok("11565019"))

        blocks = [
            client.get_block_by_timestamp(NEW_YEAR_2021),
            client.get_block_by_timestamp(datetime(2021, 1, 1, tzinfo=timezone.utc)),
            client.get_block_by_timestamp("2021-01-01T00:00:00Z"),
        ]

        assert blocks == [11565019] * 3
        assert len(client.session.calls) == 1
        assert cache.get(f"block:{NEW_YEAR_2021}:after") == 11565019

    def test_direction_is_part_of_the_key(self, make_client):
        client = make_client(ok("11565019"), ok("11565018"))

        assert client.get_block_by_timestamp(NEW_YEAR_2021, "after") == 11565019
        assert client.get_block_by_timestamp(NEW_YEAR_2021, "before") == 11565018
        assert len(client.session.calls) == 2

    def test_pre_genesis_timestamp_is_returned_unchanged(self, make_client, cache):
        client = make_client()

        assert client.get_block_by_timestamp(GENESIS_TIMESTAMP - 1) == GENESIS_TIMESTAMP - 1
        assert client.get_block_by_timestamp(12345) == 12345
        assert client.session.calls == []
        assert len(cache) == 0

    def test_invalid_direction(self, make_client):
        client = make_client()
        with pytest.raises(InvalidArgument):
            client.get_block_by_timestamp(NEW_YEAR_2021, "sideways")

    def test_non_integer_result_is_a_decode_error(self, make_client, cache):
        client = make_client(ok("not-a-block"))
        with pytest.raises(DecodeError):
            client.get_block_by_timestamp(NEW_YEAR_2021)
        assert len(cache) == 0

    @pytest.mark.parametrize("result", ["\u00b2", "-5", "12a", ""])
    def test_malformed_block_number_strings(self, make_client, cache, result):
        client = make_client(ok(result))
        with pytest.raises(DecodeError):
            client.get_block_by_timestamp(NEW_YEAR_2021)
        assert len(cache) == 0


class TestAbi:
    def test_abi_is_decoded_and_cached(self, make_client, cache):
        import json

        client = make_client(ok(json.dumps(ERC20_ABI)))

        assert client.get_abi(ADDRESS) == ERC20_ABI
        assert client.get_abi(ADDRESS.lower()) == ERC20_ABI
        assert len(client.session.calls) == 1
        assert client.session.calls[0]["params"]["action"] == "getabi"
        assert f"abi:{ADDRESS.lower()}" in cache

    def test_invalid_abi_json(self, make_client, cache):
        client = make_client(ok("[not json"))
        with pytest.raises(DecodeError):
            client.get_abi(ADDRESS)
        assert len(cache) == 0

    def test_empty_address(self, make_client):
        client = make_client()
        with pytest.raises(InvalidArgument):
            client.get_abi("  ")

    def test_source_code(self, make_client):
        client = make_client(ok([{"ContractName": "Token", "SourceCode": "contract Token {}"}]))
        assert client.get_source_code(ADDRESS)["ContractName"] == "Token"


class TestFailures:
    def test_upstream_error_is_not_cached(self, make_client, cache):
        client = make_client(
            FakeResponse({"status": "0", "message": "NOTOK", "result": "Contract source code not verified"}),
            ok("[]"),
        )

        with pytest.raises(UpstreamError) as excinfo:
            client.get_abi(ADDRESS)
        assert excinfo.value.message == "NOTOK"
        assert len(cache) == 0

        assert client.get_abi(ADDRESS) == []
        assert len(client.session.calls) == 2

    def test_upstream_error_without_result(self, make_client):
        client = make_client(FakeResponse({"status": "0", "message": "NOTOK"}))
        with pytest.raises(UpstreamError) as excinfo:
            client.get_block_by_timestamp(NEW_YEAR_2021)
        assert excinfo.value.message == "NOTOK"

    def test_missing_credential_fails_before_request(self, make_client):
        client = make_client(api_keys={"polygon": "KEY-POLY"})
        with pytest.raises(ConfigurationError):
            client.get_abi("0xabc0000000000000000000000000000000000000")
        assert client.session.calls == []

    def test_credential_is_chosen_by_network(self, make_client):
        client = make_client(ok("42"), chain_id=137)
        client.get_block_by_timestamp(NEW_YEAR_2021)
        call = client.session.calls[0]
        assert call["url"] == "https://api.polygonscan.com/api"
        assert call["params"]["apikey"] == "KEY-POLY"

    def test_unsupported_chain_skips_cache_and_network(self, make_client, cache):
        cache.set("abi:0xabc", ["cached"])
        client = make_client(chain_id=999999)

        with pytest.raises(UnsupportedChain):
            client.get_abi("0xabc")
        with pytest.raises(UnsupportedChain):
            client.get_block_by_timestamp(NEW_YEAR_2021)
        assert client.session.calls == []

    def test_cache_hit_skips_credential_resolution(self, make_client, cache):
        cache.set(f"block:{NEW_YEAR_2021}:after", 7)
        client = make_client(api_keys={})
        assert client.get_block_by_timestamp(NEW_YEAR_2021) == 7

    def test_transport_error(self, make_client, cache):
        client = make_client(requests.ConnectionError("boom"))
        with pytest.raises(TransportError):
            client.get_abi(ADDRESS)
        assert len(cache) == 0

    def test_timeout_is_a_transport_error(self, make_client):
        client = make_client(requests.Timeout("slow"))
        with pytest.raises(TransportError):
            client.get_abi(ADDRESS)

    def test_http_error_status(self, make_client):
        client = make_client(FakeResponse(status_code=502))
        with pytest.raises(TransportError):
            client.get_abi(ADDRESS)

    def test_http_429_is_rate_limit(self, make_client):
        client = make_client(FakeResponse(status_code=429))
        with pytest.raises(RateLimitError):
            client.get_abi(ADDRESS)

    def test_rate_limit_envelope(self, make_client):
        client = make_client(
            FakeResponse({"status": "0", "message": "NOTOK", "result": "Max rate limit reached"})
        )
        with pytest.raises(RateLimitError):
            client.get_abi(ADDRESS)

    def test_non_json_body(self, make_client):
        client = make_client(FakeResponse(text="<html>oops</html>"))
        with pytest.raises(DecodeError):
            client.get_abi(ADDRESS)

    def test_missing_envelope_fields(self, make_client):
        client = make_client(FakeResponse({"result": "1"}))
        with pytest.raises(DecodeError):
            client.get_block_by_timestamp(NEW_YEAR_2021)

    def test_failures_are_not_retried(self, make_client):
        client = make_client(FakeResponse(status_code=503), ok("1"))
        with pytest.raises(TransportError):
            client.get_block_by_timestamp(NEW_YEAR_2021)
        assert len(client.session.calls) == 1
