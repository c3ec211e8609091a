"""
Swap Module

Exact-input single-pool swaps through the router.
"""

import logging
import time
from typing import Optional

from ..config import EVMConfig, config as global_config
from ..infra.ledger import Ledger
from ..protocols.uniswap.abi import ERC20_ABI, V3_SWAP_ROUTER_ABI
from ..types import SwapRequest, SwapResult
from .approvals import ensure_allowance

logger = logging.getLogger(__name__)


class Swapper:
    """
    Exact-input swaps

    A reverted swap is raised, never retried.
    """

    def __init__(self, ledger: Ledger, router: str, evm_config: Optional[EVMConfig] = None):
        self._ledger = ledger
        self._router = router
        self._evm = evm_config or global_config.evm

    def swap_exact_in(self, request: SwapRequest) -> SwapResult:
        """
        Swap exactly amount_in of token_in for token_out

        Returns:
            SwapResult; amount_out is the sum of token_out transfers to the
            recipient in the swap transaction

        Raises:
            TransactionError: Approval or swap reverted
        """
        ensure_allowance(self._ledger, request.token_in, self._ledger.deployer, self._router, request.amount_in)

        deadline = request.deadline or int(time.time()) + self._evm.tx_deadline_seconds
        logger.info(
            f"Swapping {request.amount_in} {request.token_in} -> {request.token_out} "
            f"fee={request.fee} min_out={request.amount_out_minimum}"
        )
        if request.amount_out_minimum == 0:
            logger.warning("Swapping with amountOutMinimum=0: no slippage protection")

        result = self._ledger.transact(
            self._router,
            V3_SWAP_ROUTER_ABI,
            "exactInputSingle",
            (request.to_params(deadline),),
            gas_limit=self._evm.swap_gas_limit,
        )

        transfers = self._ledger.decode_events(request.token_out, ERC20_ABI, "Transfer", result)
        amount_out = sum(
            int(t["value"]) for t in transfers if t["to"].lower() == request.recipient.lower()
        )

        logger.info(f"Swap complete: received {amount_out} of {request.token_out} (tx {result.tx_hash})")
        return SwapResult(tx_hash=result.tx_hash, amount_in=request.amount_in, amount_out=amount_out)
