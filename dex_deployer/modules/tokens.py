"""
Token Module

ERC20 reads and the owner-only mint of the test tokens.
"""

import logging
from decimal import Decimal
from typing import Union

from ..infra.ledger import Ledger
from ..protocols.uniswap.abi import ERC20_ABI
from ..types import TxResult

logger = logging.getLogger(__name__)


def to_raw(amount: Union[int, str, Decimal], decimals: int) -> int:
    """Whole-token amount to smallest units (exact, no float)"""
    return int(Decimal(str(amount)).scaleb(decimals))


def from_raw(amount: int, decimals: int) -> Decimal:
    return Decimal(amount).scaleb(-decimals)


class TokenModule:
    """ERC20 operations for the deployer account"""

    def __init__(self, ledger: Ledger):
        self._ledger = ledger
        self._decimals_cache = {}

    def decimals(self, token: str) -> int:
        key = token.lower()
        if key not in self._decimals_cache:
            self._decimals_cache[key] = int(self._ledger.call(token, ERC20_ABI, "decimals"))
        return self._decimals_cache[key]

    def balance_of(self, token: str, owner: str = None) -> int:
        owner = owner or self._ledger.deployer
        return int(self._ledger.call(token, ERC20_ABI, "balanceOf", (owner,)))

    def mint(self, token: str, recipient: str, amount: int) -> TxResult:
        """
        Mint raw amount of a test token (deployer must own the token)

        Raises:
            TransactionError: Mint reverted
        """
        logger.info(f"Minting {amount} of {token} to {recipient}")
        result = self._ledger.transact(token, ERC20_ABI, "mint", (recipient, amount))
        logger.info(f"Minted {token} to {recipient} (tx {result.tx_hash})")
        return result
