"""
Protocol-specific contract glue
"""

from .uniswap import PoolBootstrapper, encode_sqrt_price_x96, sort_tokens

__all__ = [
    "PoolBootstrapper",
    "encode_sqrt_price_x96",
    "sort_tokens",
]
