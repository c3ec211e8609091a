"""
Uniswap V3 style pools: ABIs, price math and pool bootstrapping
"""

from .abi import ERC20_ABI, V3_FACTORY_ABI, V3_POSITION_MANAGER_ABI, V3_SWAP_ROUTER_ABI
from .bootstrap import PoolBootstrapper, pool_registry_key
from .math import Q96, encode_sqrt_price_x96, sort_tokens

__all__ = [
    "ERC20_ABI",
    "V3_FACTORY_ABI",
    "V3_POSITION_MANAGER_ABI",
    "V3_SWAP_ROUTER_ABI",
    "PoolBootstrapper",
    "pool_registry_key",
    "Q96",
    "encode_sqrt_price_x96",
    "sort_tokens",
]
