"""Worker: print balance, staking position and active referenda for an account.

Usage:
    python -m worker.inspect_account --address 15oF4u...
    python -m worker.inspect_account --address 15oF4u... --network kusama --proposals
"""

import argparse
import sys

import structlog

from config import ChainSettings, Settings
from dotstarter.sdk import DotStarter
from dotstarter.services.errors import DotStarterError
from dotstarter.services.networks import NetworkName

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def parse_network(raw: str) -> NetworkName:
    try:
        return NetworkName(raw.lower())
    except ValueError as exc:
        choices = ", ".join(n.value for n in NetworkName)
        raise argparse.ArgumentTypeError(f"Unknown network '{raw}'. Expected one of: {choices}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Inspect an account on a Substrate chain",
    )
    parser.add_argument("--address", "-a", required=True, help="SS58 account address")
    parser.add_argument(
        "--network",
        "-n",
        type=parse_network,
        default=NetworkName.POLKADOT,
        help="Well-known network (default: polkadot)",
    )
    parser.add_argument("--rpc-url", default=None, help="Override the network endpoint")
    parser.add_argument(
        "--proposals",
        action="store_true",
        default=False,
        help="Also list active referenda",
    )
    return parser


def main(argv: list[str] | None = None, sdk: DotStarter | None = None) -> None:
    args: argparse.Namespace = build_parser().parse_args(argv)

    if sdk is None:
        settings = Settings(chain=ChainSettings(network=args.network, rpc_url=args.rpc_url))
        sdk = DotStarter(settings=settings)

    logger.info("Inspecting account", address=args.address[:16], network=args.network.value)

    try:
        sdk.connect()
        balance = sdk.wallet.get_balance(args.address)
        staking = sdk.staking.get_staking_info(args.address)
        proposals = sdk.governance.list_active_proposals() if args.proposals else []
    except DotStarterError as e:
        logger.error("inspection_failed", error=str(e))
        sys.exit(1)
    finally:
        sdk.disconnect()

    print(f"Free:       {balance.formatted}")
    print(f"Reserved:   {sdk.format_amount(balance.reserved)}")
    print(f"Bonded:     {sdk.format_amount(staking.bonded_amount)}")
    print(f"Redeemable: {sdk.format_amount(staking.redeemable_amount)}")
    for chunk in staking.unbonding_chunks:
        print(f"  unbonding {sdk.format_amount(chunk.amount)} at era {chunk.era}")
    if staking.nomination_targets:
        print(f"Nominating: {', '.join(staking.nomination_targets)}")
    for proposal in proposals:
        print(f"#{proposal.index} {proposal.title} by {proposal.author}")


if __name__ == "__main__":
    main()
