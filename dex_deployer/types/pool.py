"""
Pool type definitions
"""

from dataclasses import dataclass, field
from typing import Optional

from ..errors import PoolAlreadyExists

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class Pool:
    """
    Concentrated-liquidity pool, uniquely identified by (token0, token1, fee)

    Attributes:
        token0: Lower token address (normalized hex comparison)
        token1: Higher token address
        fee: Fee tier in hundredths of a bip (500 = 0.05%)
        sqrt_price_x96: Initial sqrt price the pool was bootstrapped with
        address: Pool address as reported by the factory
        create_error: Tolerated failure of the creation call, None if it succeeded
    """
    token0: str
    token1: str
    fee: int
    sqrt_price_x96: int
    address: str = ZERO_ADDRESS
    create_error: Optional[PoolAlreadyExists] = field(default=None, compare=False)

    @property
    def exists(self) -> bool:
        return int(self.address, 16) != 0

    @property
    def preexisting(self) -> bool:
        """Creation was refused but the factory knows the pool"""
        return self.create_error is not None and self.exists

    @property
    def key(self) -> tuple:
        return (self.token0.lower(), self.token1.lower(), self.fee)

    def __repr__(self) -> str:
        return f"Pool({self.token0[:10]}.../{self.token1[:10]}..., fee={self.fee}, address={self.address})"
