"""
Token allowance handling
"""

import logging
from typing import Optional

from ..config import config as global_config
from ..infra.ledger import Ledger
from ..protocols.uniswap.abi import ERC20_ABI
from ..types import TxResult

logger = logging.getLogger(__name__)


def get_allowance(ledger: Ledger, token: str, owner: str, spender: str) -> int:
    return int(ledger.call(token, ERC20_ABI, "allowance", (owner, spender)))


def ensure_allowance(
    ledger: Ledger,
    token: str,
    owner: str,
    spender: str,
    amount: int,
    gas_limit: Optional[int] = None,
) -> TxResult:
    """
    Make sure spender may move at least amount of owner's token

    An allowance below amount is topped up with a single approval of exactly
    amount, and the approval is mined before this returns.

    Returns:
        Skipped result when the allowance already suffices, otherwise the
        approval's result

    Raises:
        TransactionError: Approval reverted or could not be sent
    """
    current = get_allowance(ledger, token, owner, spender)
    if current >= amount:
        logger.info(f"Allowance sufficient for {token}: {current} >= {amount}")
        return TxResult.skipped(f"Allowance {current} >= {amount}")

    logger.info(f"Approving {amount} of {token} for {spender} (current allowance {current})")
    result = ledger.transact(
        token,
        ERC20_ABI,
        "approve",
        (spender, amount),
        gas_limit=gas_limit or global_config.evm.approve_gas_limit,
    )
    logger.info(f"Approved {token} (tx {result.tx_hash})")
    return result
