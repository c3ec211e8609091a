"""
Type definitions for DEX Deployer
"""

from .result import TxResult, TxStatus
from .artifact import ContractArtifact, LinkReference, ArtifactStore
from .deployment import DeployedContract, OutcomeStatus, RunOutcome
from .pool import Pool, ZERO_ADDRESS
from .requests import PositionRequest, SwapRequest, MintResult, SwapResult

__all__ = [
    "TxResult",
    "TxStatus",
    "ContractArtifact",
    "LinkReference",
    "ArtifactStore",
    "DeployedContract",
    "OutcomeStatus",
    "RunOutcome",
    "Pool",
    "ZERO_ADDRESS",
    "PositionRequest",
    "SwapRequest",
    "MintResult",
    "SwapResult",
]
