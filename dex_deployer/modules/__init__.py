"""
Functional modules for DeployerClient

Provides high-level operations:
- ensure_allowance: approval top-up before token transfers
- PositionMinter: position minting
- Swapper: exact-input swaps
- TokenModule: ERC20 reads and test-token minting
"""

from .approvals import ensure_allowance, get_allowance
from .liquidity import PositionMinter
from .swap import Swapper
from .tokens import TokenModule, to_raw, from_raw

__all__ = [
    "ensure_allowance",
    "get_allowance",
    "PositionMinter",
    "Swapper",
    "TokenModule",
    "to_raw",
    "from_raw",
]
