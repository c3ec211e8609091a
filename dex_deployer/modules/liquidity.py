"""
Liquidity Module

Mints concentrated-liquidity positions through the position manager.
"""

import logging
import time
from typing import Optional

from ..config import EVMConfig, config as global_config
from ..errors import TransactionError
from ..infra.ledger import Ledger
from ..protocols.uniswap.abi import V3_POSITION_MANAGER_ABI
from ..types import MintResult, PositionRequest
from .approvals import ensure_allowance

logger = logging.getLogger(__name__)


class PositionMinter:
    """
    Position minting

    Approvals are topped up first. The mint itself is sent once: a reverted
    mint is raised, never retried.
    """

    def __init__(self, ledger: Ledger, position_manager: str, evm_config: Optional[EVMConfig] = None):
        self._ledger = ledger
        self._position_manager = position_manager
        self._evm = evm_config or global_config.evm

    @property
    def owner(self) -> str:
        return self._ledger.deployer

    def mint_position(self, request: PositionRequest) -> MintResult:
        """
        Mint a position

        Args:
            request: Mint parameters; deadline defaults to now + the
                configured deadline

        Returns:
            MintResult decoded from the IncreaseLiquidity event

        Raises:
            TransactionError: Approval or mint reverted
        """
        for token, amount in ((request.token0, request.amount0_desired), (request.token1, request.amount1_desired)):
            ensure_allowance(self._ledger, token, self.owner, self._position_manager, amount)

        deadline = request.deadline or int(time.time()) + self._evm.tx_deadline_seconds
        params = request.to_params(deadline)
        logger.info(
            f"Minting position fee={request.fee} ticks=[{request.tick_lower}, {request.tick_upper}] "
            f"amounts=({request.amount0_desired}, {request.amount1_desired}) "
            f"min=({request.amount0_min}, {request.amount1_min}) deadline={deadline}"
        )
        if request.amount0_min == 0 and request.amount1_min == 0:
            logger.warning("Minting with zero minimum amounts: no slippage protection")

        result = self._ledger.transact(
            self._position_manager,
            V3_POSITION_MANAGER_ABI,
            "mint",
            (params,),
            gas_limit=self._evm.mint_gas_limit,
        )

        events = self._ledger.decode_events(
            self._position_manager, V3_POSITION_MANAGER_ABI, "IncreaseLiquidity", result
        )
        if not events:
            raise TransactionError(
                "Mint succeeded but emitted no IncreaseLiquidity event",
                tx_hash=result.tx_hash,
                function="mint",
            )

        event = events[0]
        minted = MintResult(
            tx_hash=result.tx_hash,
            token_id=int(event["tokenId"]),
            liquidity=int(event["liquidity"]),
            amount0=int(event["amount0"]),
            amount1=int(event["amount1"]),
        )
        logger.info(
            f"Minted position #{minted.token_id}: liquidity={minted.liquidity} "
            f"amount0={minted.amount0} amount1={minted.amount1} (tx {minted.tx_hash})"
        )
        return minted
