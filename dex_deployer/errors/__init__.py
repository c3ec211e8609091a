"""
Error definitions for DEX Deployer
"""

from .exceptions import (
    ErrorCode,
    DeployerError,
    RpcError,
    LinkError,
    MissingLinkSymbol,
    BytecodeBoundsError,
    DeploymentError,
    ConfirmationTimeout,
    TransactionError,
    PoolAlreadyExists,
    RegistryWriteError,
    SignerError,
    ArtifactNotFound,
    ConfigurationError,
)

__all__ = [
    "ErrorCode",
    "DeployerError",
    "RpcError",
    "LinkError",
    "MissingLinkSymbol",
    "BytecodeBoundsError",
    "DeploymentError",
    "ConfirmationTimeout",
    "TransactionError",
    "PoolAlreadyExists",
    "RegistryWriteError",
    "SignerError",
    "ArtifactNotFound",
    "ConfigurationError",
]
