"""
DEX Deployer - Deployment orchestration for a concentrated-liquidity exchange

Provides:
- Bytecode linking of library addresses
- Dependency-ordered contract deployment with retry, confirmations and a
  degraded fallback
- Per-network address registry with atomic writes
- Idempotent pool bootstrapping (token ordering, sqrt price encoding)
- Position minting and exact-input swaps
"""

from .client import DeployerClient
from .types import (
    ContractArtifact,
    LinkReference,
    ArtifactStore,
    DeployedContract,
    RunOutcome,
    OutcomeStatus,
    Pool,
    PositionRequest,
    SwapRequest,
    MintResult,
    SwapResult,
    TxResult,
    TxStatus,
    ZERO_ADDRESS,
)
from .errors import (
    DeployerError,
    ErrorCode,
    LinkError,
    MissingLinkSymbol,
    BytecodeBoundsError,
    DeploymentError,
    ConfirmationTimeout,
    TransactionError,
    PoolAlreadyExists,
    RegistryWriteError,
    ConfigurationError,
)
from .deploy import (
    link_bytecode,
    DeploymentPipeline,
    DeploymentPlan,
    DeploymentStep,
    Ref,
    AddressRegistry,
    RegistryStore,
    core_plan,
    token_plan,
)
from .infra import Ledger, Web3Ledger, EVMSigner, FixedDelay, ExponentialDelay, NO_DELAY
from .protocols.uniswap import PoolBootstrapper, encode_sqrt_price_x96, sort_tokens
from .modules import ensure_allowance, PositionMinter, Swapper

__version__ = "0.1.0"

__all__ = [
    # Client
    "DeployerClient",
    # Types
    "ContractArtifact",
    "LinkReference",
    "ArtifactStore",
    "DeployedContract",
    "RunOutcome",
    "OutcomeStatus",
    "Pool",
    "PositionRequest",
    "SwapRequest",
    "MintResult",
    "SwapResult",
    "TxResult",
    "TxStatus",
    "ZERO_ADDRESS",
    # Errors
    "DeployerError",
    "ErrorCode",
    "LinkError",
    "MissingLinkSymbol",
    "BytecodeBoundsError",
    "DeploymentError",
    "ConfirmationTimeout",
    "TransactionError",
    "PoolAlreadyExists",
    "RegistryWriteError",
    "ConfigurationError",
    # Deployment
    "link_bytecode",
    "DeploymentPipeline",
    "DeploymentPlan",
    "DeploymentStep",
    "Ref",
    "AddressRegistry",
    "RegistryStore",
    "core_plan",
    "token_plan",
    # Infrastructure
    "Ledger",
    "Web3Ledger",
    "EVMSigner",
    "FixedDelay",
    "ExponentialDelay",
    "NO_DELAY",
    # Pools and trading
    "PoolBootstrapper",
    "encode_sqrt_price_x96",
    "sort_tokens",
    "ensure_allowance",
    "PositionMinter",
    "Swapper",
]
