"""
Request and result types for liquidity and swap calls

Requests are ephemeral and never persisted. Raw amounts are integers in the
token's smallest unit.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class PositionRequest:
    """
    Parameters of a position-manager mint call

    amount0_min / amount1_min of zero accept any execution price.
    deadline of None means "submission time + configured deadline".
    """
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    amount0_desired: int
    amount1_desired: int
    recipient: str
    amount0_min: int = 0
    amount1_min: int = 0
    deadline: Optional[int] = None

    def to_params(self, deadline: int) -> Tuple:
        """Tuple in the order of the MintParams struct"""
        return (
            self.token0,
            self.token1,
            self.fee,
            self.tick_lower,
            self.tick_upper,
            self.amount0_desired,
            self.amount1_desired,
            self.amount0_min,
            self.amount1_min,
            self.recipient,
            deadline,
        )


@dataclass(frozen=True)
class SwapRequest:
    """
    Parameters of a router exactInputSingle call

    amount_out_minimum of zero accepts unlimited slippage.
    sqrt_price_limit_x96 of zero means no price limit.
    """
    token_in: str
    token_out: str
    fee: int
    amount_in: int
    recipient: str
    amount_out_minimum: int = 0
    sqrt_price_limit_x96: int = 0
    deadline: Optional[int] = None

    def to_params(self, deadline: int) -> Tuple:
        """Tuple in the order of the ExactInputSingleParams struct"""
        return (
            self.token_in,
            self.token_out,
            self.fee,
            self.recipient,
            deadline,
            self.amount_in,
            self.amount_out_minimum,
            self.sqrt_price_limit_x96,
        )


@dataclass(frozen=True)
class MintResult:
    """Outcome of a successful position mint"""
    tx_hash: str
    token_id: int
    liquidity: int
    amount0: int
    amount1: int


@dataclass(frozen=True)
class SwapResult:
    """Outcome of a successful exact-input swap"""
    tx_hash: str
    amount_in: int
    amount_out: int
