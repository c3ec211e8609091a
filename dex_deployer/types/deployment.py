"""
Deployment result types
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


@dataclass
class DeployedContract:
    """
    A contract whose deployment transaction has been mined

    The address never changes. The confirmation count only grows.

    Attributes:
        name: Contract (artifact) name
        address: Deployed address (checksummed)
        tx_hash: Deployment transaction hash
        confirmations: Confirmations observed so far
        key: Registry key the address is stored under
    """
    name: str
    address: str
    tx_hash: str
    confirmations: int = 1
    key: Optional[str] = None

    def record_confirmations(self, count: int) -> int:
        if count > self.confirmations:
            self.confirmations = count
        return self.confirmations

    def __str__(self) -> str:
        return f"{self.name}@{self.address} ({self.confirmations} conf)"


class OutcomeStatus(Enum):
    """Terminal state of a pipeline run"""
    DONE = "done"
    DEGRADED = "degraded"  # Done with gaps that need manual remediation
    FAILED = "failed"


@dataclass
class RunOutcome:
    """
    Tagged result of DeploymentPipeline.run()

    Attributes:
        status: DONE, DEGRADED or FAILED
        plan: Plan name
        deployed: Contracts deployed during this run, by registry key
        gaps: Registry keys that were skipped and replaced by a placeholder
        reason: Why the run degraded or failed
        failed_stage: Step key that caused a failure
        error: The fatal exception for FAILED runs
        registry_path: Where the registry was persisted, if it was
    """
    status: OutcomeStatus
    plan: str
    deployed: Dict[str, DeployedContract] = field(default_factory=dict)
    gaps: List[str] = field(default_factory=list)
    reason: Optional[str] = None
    failed_stage: Optional[str] = None
    error: Optional[Exception] = None
    registry_path: Optional[str] = None

    @property
    def is_done(self) -> bool:
        return self.status == OutcomeStatus.DONE

    @property
    def is_degraded(self) -> bool:
        return self.status == OutcomeStatus.DEGRADED

    @property
    def is_failed(self) -> bool:
        return self.status == OutcomeStatus.FAILED

    @property
    def exit_code(self) -> int:
        return 1 if self.is_failed else 0

    @classmethod
    def done(cls, plan: str, deployed: Dict[str, DeployedContract], **kwargs) -> "RunOutcome":
        return cls(status=OutcomeStatus.DONE, plan=plan, deployed=deployed, **kwargs)

    @classmethod
    def degraded(cls, plan: str, deployed: Dict[str, DeployedContract], reason: str, gaps: List[str], **kwargs) -> "RunOutcome":
        return cls(
            status=OutcomeStatus.DEGRADED,
            plan=plan,
            deployed=deployed,
            reason=reason,
            gaps=gaps,
            **kwargs
        )

    @classmethod
    def failed(cls, plan: str, deployed: Dict[str, DeployedContract], reason: str, **kwargs) -> "RunOutcome":
        return cls(status=OutcomeStatus.FAILED, plan=plan, deployed=deployed, reason=reason, **kwargs)

    def __str__(self) -> str:
        text = f"RunOutcome({self.plan}: {self.status.value}, deployed={len(self.deployed)}"
        if self.gaps:
            text += f", gaps={self.gaps}"
        if self.reason:
            text += f", reason={self.reason}"
        return text + ")"
