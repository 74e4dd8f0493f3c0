"""
MCP server exposing block lookup and contract ABI helpers via Etherscan.
"""

import argparse
from typing import Optional, Union

from mcp.server.fastmcp import FastMCP

from .config import load_config
from .service import EtherealService, configure_logging

server = FastMCP(
    name="ethereal-mcp",
    instructions="Resolve timestamps to blocks and inspect verified contract ABIs via the Etherscan API.",
)

_service: Optional[EtherealService] = None


def _get_service() -> EtherealService:
    global _service
    if _service is None:
        cfg = load_config()
        configure_logging(cfg.log_level)
        _service = EtherealService.from_rpc(cfg)
    return _service


@server.tool(
    name="to_block",
    title="Block At Timestamp",
    description="Resolve a timestamp (epoch seconds or ISO-8601 string) to a block number. closest: before|after (default after).",
)
def to_block(timestamp: Union[int, str], closest: str = "after") -> dict:
    svc = _get_service()
    block = svc.to_block(timestamp, closest)
    return {"chain_id": svc.chain_id, "timestamp": timestamp, "closest": closest, "block": block}


@server.tool(
    name="get_abi",
    title="Get Contract ABI",
    description="Fetch the verified ABI of a contract.",
)
def get_abi(address: str) -> dict:
    svc = _get_service()
    return {"chain_id": svc.chain_id, "address": address, "abi": svc.get_abi(address)}


@server.tool(
    name="list_events",
    title="List Contract Events",
    description="List event names declared in a verified contract ABI.",
)
def list_events(address: str) -> dict:
    svc = _get_service()
    return {"chain_id": svc.chain_id, "address": address, "events": svc.list_events(address)}


@server.tool(
    name="get_function_signature",
    title="Get Function Signature",
    description="Return the canonical signature, e.g. transfer(address,uint256), of a function in a verified ABI.",
)
def get_function_signature(address: str, function: str) -> dict:
    svc = _get_service()
    return {
        "chain_id": svc.chain_id,
        "address": address,
        "signature": svc.get_function_signature(address, function),
    }


@server.tool(
    name="is_contract",
    title="Is Verified Contract",
    description="Check whether an address has a verified contract ABI.",
)
def is_contract(address: str) -> dict:
    svc = _get_service()
    return {"chain_id": svc.chain_id, "address": address, "is_contract": svc.is_contract(address)}


@server.tool(
    name="list_chains",
    title="List Supported Chains",
    description="List chain ids, network names and API endpoints supported by this server.",
)
def list_chains() -> dict:
    svc = _get_service()
    return {"chains": svc.list_chains()}


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the ethereal MCP server.")
    parser.add_argument(
        "--transport",
        choices=["stdio", "sse", "streamable-http"],
        default="stdio",
        help="Transport protocol for MCP.",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for SSE/HTTP transports.",
    )
    parser.add_argument(
        "--mount-path",
        default="/",
        help="Mount path for SSE transport (only when transport=sse).",
    )
    args = parser.parse_args()

    # FastMCP uses host/port only for SSE/HTTP transports; stdio ignores them.
    server.settings.host = args.host
    server.settings.port = args.port

    if args.transport == "sse":
        server.run(transport="sse", mount_path=args.mount_path)
    else:
        server.run(transport=args.transport)


if __name__ == "__main__":
    main()
