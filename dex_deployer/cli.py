"""
Command line interface

    python -m dex_deployer --network sepolia deploy-core
    python -m dex_deployer --network sepolia deploy-tokens
    python -m dex_deployer --network sepolia deploy-pools --fees 500 3000
    python -m dex_deployer --network sepolia mint-position
    python -m dex_deployer --network sepolia swap --amount 10

Exit status is 0 on success (including a degraded core deployment) and 1
on an unrecoverable failure.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .client import DeployerClient
from .config import get_config, setup_logging
from .deploy.plans import TETHER, USDC
from .errors import DeployerError
from . import stages

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def _registry_key(value: str) -> str:
    """Accept TETHER or TETHER_ADDRESS"""
    value = value.upper()
    return value if value.endswith("_ADDRESS") else f"{value}_ADDRESS"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dex-deployer",
        description="Deploy and bootstrap a concentrated-liquidity exchange",
    )
    parser.add_argument("--network", "-n", default="localhost", help="Network name (default: localhost)")
    parser.add_argument("--registry-dir", help="Directory of deployed-addresses-<network>.json")
    parser.add_argument("--artifacts-dir", help="Extra directory searched first for compiled artifacts")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("deploy-core", help="Deploy WETH, factory, router, descriptors and position manager")

    tokens = sub.add_parser("deploy-tokens", help="Deploy test tokens and mint them to the deployer")
    tokens.add_argument("--mint-amount", type=int, default=stages.DEFAULT_MINT_AMOUNT,
                        help="Whole tokens minted per token (default: 100000)")

    pools = sub.add_parser("deploy-pools", help="Create and initialize pools for a token pair")
    pools.add_argument("--token-a", type=_registry_key, default=TETHER, help="Registry key of the first token")
    pools.add_argument("--token-b", type=_registry_key, default=USDC, help="Registry key of the second token")
    pools.add_argument("--fees", type=int, nargs="+", default=[500, 3000], help="Fee tiers (default: 500 3000)")
    pools.add_argument("--reserves", type=int, nargs=2, default=[1, 1], metavar=("A", "B"),
                       help="Initial price as reserves of token A and token B (default: 1 1)")

    mint = sub.add_parser("mint-position", help="Mint a liquidity position")
    mint.add_argument("--token-a", type=_registry_key, default=TETHER)
    mint.add_argument("--token-b", type=_registry_key, default=USDC)
    mint.add_argument("--fee", type=int, default=3000)
    mint.add_argument("--tick-lower", type=int, default=-60)
    mint.add_argument("--tick-upper", type=int, default=60)
    mint.add_argument("--amount", type=int, default=20, help="Whole tokens per side (default: 20)")

    swap = sub.add_parser("swap", help="Exact-input single-pool swap")
    swap.add_argument("--token-in", type=_registry_key, default=TETHER)
    swap.add_argument("--token-out", type=_registry_key, default=USDC)
    swap.add_argument("--fee", type=int, default=500)
    swap.add_argument("--amount", type=int, default=10, help="Whole tokens in (default: 10)")

    return parser


def run_command(client: DeployerClient, args: argparse.Namespace) -> int:
    """Run the selected stage, return the exit status"""
    if args.command == "deploy-core":
        return stages.deploy_core(client).exit_code

    if args.command == "deploy-tokens":
        return stages.deploy_tokens(client, mint_amount=args.mint_amount).exit_code

    if args.command == "deploy-pools":
        pools = stages.deploy_pools(
            client,
            token_a_key=args.token_a,
            token_b_key=args.token_b,
            fees=args.fees,
            reserves=tuple(args.reserves),
        )
        missing = [key for key, address in pools.items() if int(address, 16) == 0]
        return EXIT_FAILURE if missing else EXIT_OK

    if args.command == "mint-position":
        result = stages.mint_position(
            client,
            token_a_key=args.token_a,
            token_b_key=args.token_b,
            fee=args.fee,
            tick_lower=args.tick_lower,
            tick_upper=args.tick_upper,
            amount=args.amount,
        )
        logger.info(f"Position #{result.token_id} liquidity={result.liquidity} tx={result.tx_hash}")
        return EXIT_OK

    if args.command == "swap":
        result = stages.swap(
            client,
            token_in_key=args.token_in,
            token_out_key=args.token_out,
            fee=args.fee,
            amount=args.amount,
        )
        logger.info(f"Swapped {result.amount_in} for {result.amount_out} tx={result.tx_hash}")
        return EXIT_OK

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None, client: Optional[DeployerClient] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = get_config()
    if args.log_level:
        config.logging.log_level = args.log_level
    setup_logging(config.logging)

    try:
        if client is None:
            client = DeployerClient.from_network(
                args.network,
                registry_dir=args.registry_dir,
                artifacts_dir=args.artifacts_dir,
                config=config,
            )
        return run_command(client, args)
    except DeployerError as e:
        logger.error(f"{args.command} failed: {e}")
        if e.original_error is not None:
            logger.debug(f"Caused by: {e.original_error!r}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
