"""
Pipeline stages

One function per stage. Stages communicate only through the network's
registry file: each loads it, adds its results and writes it back.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, Tuple

from web3 import Web3

from .client import DeployerClient
from .deploy.plans import TETHER, TOKEN_CONTRACTS, USDC, core_plan, token_plan
from .errors import DeployerError
from .infra.retry import CorrelationContext
from .modules.tokens import to_raw
from .protocols.uniswap import pool_registry_key, sort_tokens
from .types import MintResult, PositionRequest, RunOutcome, SwapRequest, SwapResult

logger = logging.getLogger(__name__)

BANNER_WIDTH = 50

# Test tokens are minted in 18-decimal units
TOKEN_MINT_DECIMALS = 18
DEFAULT_MINT_AMOUNT = 100_000


def token_symbol(registry_key: str) -> str:
    """TETHER_ADDRESS -> TETHER"""
    return registry_key[: -len("_ADDRESS")] if registry_key.endswith("_ADDRESS") else registry_key


def log_banner(client: DeployerClient, title: str) -> int:
    """
    Log network, deployer and balance; warn on a low balance

    Returns:
        Deployer balance in wei
    """
    ledger = client.ledger
    balance = ledger.balance(ledger.deployer)
    balance_eth = Web3.from_wei(balance, "ether")

    logger.info("=" * BANNER_WIDTH)
    logger.info(title)
    logger.info("=" * BANNER_WIDTH)
    logger.info(f"Network: {ledger.network} (Chain ID: {ledger.chain_id})")
    logger.info(f"Deployer Address: {ledger.deployer}")
    logger.info(f"Deployer Balance: {balance_eth} ETH")
    if Decimal(balance_eth) < Decimal(str(client.config.deploy.low_balance_eth)):
        logger.warning("Low balance detected. You may need more funds for deployment.")
    logger.info("=" * BANNER_WIDTH)
    return balance


def log_addresses(title: str, addresses: Dict[str, str]) -> None:
    logger.info("=" * BANNER_WIDTH)
    logger.info(title)
    logger.info("=" * BANNER_WIDTH)
    for key, address in addresses.items():
        logger.info(f"{key}: {address}")
    logger.info("=" * BANNER_WIDTH)


def deploy_core(client: DeployerClient) -> RunOutcome:
    """Deploy the core exchange contracts"""
    log_banner(client, "DEPLOYMENT CONFIGURATION")
    outcome = client.pipeline.run(core_plan())

    if not outcome.is_failed:
        title = "DEPLOYMENT COMPLETED" if outcome.is_done else "PARTIAL DEPLOYMENT COMPLETED"
        log_addresses(title, {key: c.address for key, c in outcome.deployed.items()})
    return outcome


def deploy_tokens(client: DeployerClient, mint_amount: int = DEFAULT_MINT_AMOUNT) -> RunOutcome:
    """
    Deploy the test tokens, then mint mint_amount of each to the deployer

    Final balances are stored in the registry metadata.
    """
    log_banner(client, "TOKEN DEPLOYMENT CONFIGURATION")
    outcome = client.pipeline.run(token_plan())
    if outcome.is_failed:
        return outcome

    with CorrelationContext("mint_tokens") as cid:
        registry = client.registry()
        balances = registry.metadata.setdefault("balances", {})
        raw_amount = to_raw(mint_amount, TOKEN_MINT_DECIMALS)

        try:
            for key in TOKEN_CONTRACTS:
                token = outcome.deployed[key].address
                client.tokens.mint(token, client.address, raw_amount)
                balances[key] = str(client.tokens.balance_of(token, client.address))
                logger.info(f"[{cid}] Minted {mint_amount} {token_symbol(key)} to {client.address}")
        except DeployerError as e:
            logger.error(f"[{cid}] Token minting failed: {e}")
            outcome = RunOutcome.failed(
                outcome.plan, outcome.deployed, str(e), failed_stage="mint", error=e
            )
        finally:
            client.store.save(registry)

    if not outcome.is_failed:
        log_addresses("TOKEN DEPLOYMENT COMPLETED", {key: c.address for key, c in outcome.deployed.items()})
    return outcome


def deploy_pools(
    client: DeployerClient,
    token_a_key: str = TETHER,
    token_b_key: str = USDC,
    fees: Iterable[int] = (500, 3000),
    reserves: Tuple[int, int] = (1, 1),
) -> Dict[str, str]:
    """
    Ensure a pool per fee tier for the token pair, record non-zero addresses

    Returns:
        Pool registry key -> address (zero address when the lookup failed)

    Raises:
        ConfigurationError: Core contracts or tokens not in the registry
    """
    with CorrelationContext("deploy_pools") as cid:
        registry = client.registry()
        token_a = registry.require(token_a_key)
        token_b = registry.require(token_b_key)

        pools: Dict[str, str] = {}
        for fee in fees:
            pool = client.pools.bootstrap(token_a, token_b, fee, reserves[0], reserves[1])
            key = pool_registry_key(token_symbol(token_a_key), token_symbol(token_b_key), fee)
            pools[key] = pool.address
            if pool.preexisting:
                logger.info(f"[{cid}] {key} already existed, initial price left unchanged")
            if pool.exists:
                registry.record(key, pool.address)
            else:
                logger.error(f"[{cid}] No pool address for {key}: {pool.create_error or 'factory lookup failed'}")

        client.store.save(registry)
        log_addresses("POOLS", pools)
        return pools


def mint_position(
    client: DeployerClient,
    token_a_key: str = TETHER,
    token_b_key: str = USDC,
    fee: int = 3000,
    tick_lower: int = -60,
    tick_upper: int = 60,
    amount: int = 20,
) -> MintResult:
    """Mint a position of amount whole tokens on each side"""
    with CorrelationContext("mint_position"):
        registry = client.registry()
        token0, token1 = sort_tokens(registry.require(token_a_key), registry.require(token_b_key))
        trading = client.config.trading

        request = PositionRequest(
            token0=token0,
            token1=token1,
            fee=fee,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            amount0_desired=to_raw(amount, client.tokens.decimals(token0)),
            amount1_desired=to_raw(amount, client.tokens.decimals(token1)),
            recipient=client.address,
            amount0_min=trading.amount0_min,
            amount1_min=trading.amount1_min,
        )
        return client.lp.mint_position(request)


def swap(
    client: DeployerClient,
    token_in_key: str = TETHER,
    token_out_key: str = USDC,
    fee: int = 500,
    amount: int = 10,
) -> SwapResult:
    """Swap amount whole tokens of token_in for token_out"""
    with CorrelationContext("swap"):
        registry = client.registry()
        token_in = registry.require(token_in_key)
        token_out = registry.require(token_out_key)

        request = SwapRequest(
            token_in=token_in,
            token_out=token_out,
            fee=fee,
            amount_in=to_raw(amount, client.tokens.decimals(token_in)),
            recipient=client.address,
            amount_out_minimum=client.config.trading.amount_out_minimum,
            sqrt_price_limit_x96=0,
        )
        return client.swap.swap_exact_in(request)

