import argparse
import json
import re
import sys
from typing import Optional

from .config import load_config
from .errors import EtherealError
from .service import EtherealService, configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Query block numbers and contract ABIs through Etherscan.",
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    block_parser = subparsers.add_parser("to-block", help="Resolve a timestamp to a block number")
    block_parser.add_argument(
        "--timestamp",
        required=True,
        help="Epoch seconds or ISO-8601 date-time (e.g. 2021-01-01T00:00:00Z).",
    )
    block_parser.add_argument(
        "--closest",
        choices=["before", "after"],
        default="after",
        help="Pick the block before or after the timestamp. Defaults to after.",
    )

    abi_parser = subparsers.add_parser("get-abi", help="Fetch a verified contract ABI")
    abi_parser.add_argument(
        "--address",
        required=True,
        help="Contract address (0x-prefixed).",
    )

    events_parser = subparsers.add_parser("list-events", help="List event names in a contract ABI")
    events_parser.add_argument(
        "--address",
        required=True,
        help="Contract address (0x-prefixed).",
    )

    signature_parser = subparsers.add_parser("function-signature", help="Show a function's canonical signature")
    signature_parser.add_argument(
        "--address",
        required=True,
        help="Contract address (0x-prefixed).",
    )
    signature_parser.add_argument(
        "--name",
        required=True,
        help="Function name as it appears in the ABI.",
    )

    subparsers.add_parser("list-chains", help="List supported chains")

    return parser


def main(argv: Optional[list] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config()
        configure_logging(config.log_level)
        service = EtherealService.from_rpc(config)

        if args.command == "to-block":
            timestamp = args.timestamp
            if re.fullmatch(r"[0-9]+", timestamp):
                timestamp = int(timestamp)
            result = {"block": service.to_block(timestamp, args.closest)}
        elif args.command == "get-abi":
            result = service.get_abi(args.address)
        elif args.command == "list-events":
            result = service.list_events(args.address)
        elif args.command == "function-signature":
            result = {"signature": service.get_function_signature(args.address, args.name)}
        else:
            result = service.list_chains()
        print(json.dumps(result, indent=2))
    except EtherealError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
