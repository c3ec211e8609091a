"""
Pool bootstrapper

Creates and initializes pools through the position manager, then reads the
canonical address back from the factory.
"""

import logging
from typing import Optional

from web3 import Web3

from ...config import EVMConfig, config as global_config
from ...errors import DeployerError, PoolAlreadyExists
from ...infra.ledger import Ledger
from ...types import Pool, ZERO_ADDRESS
from .abi import V3_FACTORY_ABI, V3_POSITION_MANAGER_ABI
from .math import encode_sqrt_price_x96, sort_tokens

logger = logging.getLogger(__name__)


def pool_registry_key(symbol_a: str, symbol_b: str, fee: int) -> str:
    """Registry key of a pool, e.g. POOL_TETHER_USDC_500"""
    return f"POOL_{symbol_a.upper()}_{symbol_b.upper()}_{fee}"


class PoolBootstrapper:
    """
    Idempotent pool creation

    Usage:
        bootstrapper = PoolBootstrapper(ledger, position_manager, factory)
        token0, token1 = sort_tokens(usdt, usdc)
        address = bootstrapper.ensure_pool(token0, token1, 500, encode_sqrt_price_x96(1, 1))
    """

    def __init__(
        self,
        ledger: Ledger,
        position_manager: str,
        factory: str,
        evm_config: Optional[EVMConfig] = None,
    ):
        self._ledger = ledger
        self._position_manager = position_manager
        self._factory = factory
        self._evm = evm_config or global_config.evm

    def get_pool(self, token0: str, token1: str, fee: int) -> str:
        """Factory lookup; zero address when no pool exists"""
        address = self._ledger.call(self._factory, V3_FACTORY_ABI, "getPool", (token0, token1, fee))
        return Web3.to_checksum_address(address)

    def create_pool(
        self, token0: str, token1: str, fee: int, sqrt_price_x96: int
    ) -> Optional[PoolAlreadyExists]:
        """
        createAndInitializePoolIfNecessary on the position manager

        Returns:
            None on success, otherwise the tolerated PoolAlreadyExists
            wrapping the failure (the pool usually exists already)
        """
        try:
            result = self._ledger.transact(
                self._position_manager,
                V3_POSITION_MANAGER_ABI,
                "createAndInitializePoolIfNecessary",
                (token0, token1, fee, sqrt_price_x96),
                gas_limit=self._evm.pool_gas_limit,
            )
        except DeployerError as e:
            logger.warning(f"Pool creation fee={fee} refused, checking factory: {e}")
            return PoolAlreadyExists(token0, token1, fee, original_error=e)

        logger.info(f"Pool created or already initialized (tx {result.tx_hash})")
        return None

    def _lookup(self, token0: str, token1: str, fee: int) -> str:
        try:
            address = self.get_pool(token0, token1, fee)
        except Exception as e:
            logger.error(f"getPool failed for {token0}/{token1} fee={fee}: {e}")
            return ZERO_ADDRESS

        logger.info(f"Pool address: {address}")
        return address

    def ensure_pool(self, token0: str, token1: str, fee: int, sqrt_price_x96: int) -> str:
        """
        Create and initialize a pool if necessary, return its address

        The creation call is always attempted and its failure is tolerated.
        The factory lookup that follows is the source of truth; if that
        lookup fails the zero address is returned and the failure logged.

        Args:
            token0: Lower token address (see sort_tokens)
            token1: Higher token address
            fee: Fee tier
            sqrt_price_x96: Initial price, used only if the pool is created

        Returns:
            Pool address, or the zero address if it could not be looked up
        """
        logger.info(
            f"Ensuring pool fee={fee} token0={token0} token1={token1} sqrtPriceX96={sqrt_price_x96}"
        )
        self.create_pool(token0, token1, fee, sqrt_price_x96)
        return self._lookup(token0, token1, fee)

    def bootstrap(
        self,
        token_a: str,
        token_b: str,
        fee: int,
        reserve_a: int = 1,
        reserve_b: int = 1,
    ) -> Pool:
        """
        Sort the pair, price it from the reserves and ensure the pool

        The initial price of token0 in token1 is reserve1 / reserve0 after
        sorting. A refused creation is kept on the result as create_error.
        """
        token0, token1 = sort_tokens(token_a, token_b)
        if token0 == token_a:
            reserve0, reserve1 = reserve_a, reserve_b
        else:
            reserve0, reserve1 = reserve_b, reserve_a

        sqrt_price = encode_sqrt_price_x96(reserve1, reserve0)
        logger.info(f"Bootstrapping pool fee={fee} token0={token0} token1={token1} sqrtPriceX96={sqrt_price}")
        create_error = self.create_pool(token0, token1, fee, sqrt_price)
        return Pool(
            token0=token0,
            token1=token1,
            fee=fee,
            sqrt_price_x96=sqrt_price,
            address=self._lookup(token0, token1, fee),
            create_error=create_error,
        )
