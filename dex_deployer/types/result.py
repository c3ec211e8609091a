"""
Result type definitions for transactions
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any


class TxStatus(Enum):
    """Transaction status"""
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"
    SKIPPED = "skipped"  # No action needed (e.g., allowance already sufficient)


@dataclass
class TxResult:
    """
    Transaction execution result

    Attributes:
        status: Transaction status
        tx_hash: Transaction hash (0x-prefixed hex)
        error: Error message if failed
        block_number: Block the transaction was mined in
        gas_used: Gas consumed
        contract_address: Created contract address for deployments
        receipt: Raw receipt as returned by the ledger
    """
    status: TxStatus
    tx_hash: Optional[str] = None
    error: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    contract_address: Optional[str] = None
    receipt: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status == TxStatus.SUCCESS

    @property
    def is_failed(self) -> bool:
        return self.status == TxStatus.FAILED

    @property
    def is_skipped(self) -> bool:
        return self.status == TxStatus.SKIPPED

    @classmethod
    def success(cls, tx_hash: str, **kwargs) -> "TxResult":
        """Create successful result"""
        return cls(status=TxStatus.SUCCESS, tx_hash=tx_hash, **kwargs)

    @classmethod
    def failed(cls, error: str, tx_hash: str = None, **kwargs) -> "TxResult":
        """Create failed result"""
        return cls(status=TxStatus.FAILED, tx_hash=tx_hash, error=error, **kwargs)

    @classmethod
    def skipped(cls, reason: str = "No action needed", **kwargs) -> "TxResult":
        """Create skipped result (no transaction was needed)"""
        return cls(status=TxStatus.SKIPPED, tx_hash=None, error=reason, **kwargs)

    def __str__(self) -> str:
        if self.is_success:
            hash_display = f"{self.tx_hash[:18]}..." if self.tx_hash else "no hash"
            return f"TxResult(SUCCESS, {hash_display})"
        return f"TxResult({self.status.value}, error={self.error})"
