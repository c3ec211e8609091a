"""
Infrastructure layer for DEX Deployer

Provides:
- Ledger / Web3Ledger: chain access (deploy, transact, call, logs, confirmations)
- EVMSigner: EVM transaction signing using web3.py
- execute_with_retry: bounded retry with correlation-id logging
"""

from .evm_signer import (
    EVMSigner,
    NonceManager,
    create_web3,
    create_evm_signer,
    get_nonce_manager,
)
from .ledger import Ledger, Web3Ledger
from .retry import (
    CorrelationContext,
    ExponentialDelay,
    FixedDelay,
    NO_DELAY,
    execute_with_retry,
    get_correlation_id,
)

__all__ = [
    "EVMSigner",
    "NonceManager",
    "create_web3",
    "create_evm_signer",
    "get_nonce_manager",
    "Ledger",
    "Web3Ledger",
    "CorrelationContext",
    "ExponentialDelay",
    "FixedDelay",
    "NO_DELAY",
    "execute_with_retry",
    "get_correlation_id",
]
