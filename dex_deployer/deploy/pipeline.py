"""
Deployment pipeline

Deploys contracts in plan order: link, submit with bounded retry, wait for
confirmations on non-local networks, record the address. A run ends in one
of three states:

    DONE       every step deployed
    DEGRADED   a non-critical step failed, dependents got its placeholder
    FAILED     a critical step failed, the run stopped there

The registry is written once at the end of the run whatever the state, so
addresses of contracts that reached the chain before a failure are kept.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..config import LOCAL_CHAIN_IDS, DeployConfig, config as global_config
from ..errors import (
    ArtifactNotFound,
    ConfigurationError,
    DeployerError,
    DeploymentError,
    LinkError,
    RegistryWriteError,
)
from ..infra.ledger import Ledger
from ..infra.retry import CorrelationContext, DelayStrategy, FixedDelay, execute_with_retry
from ..types import ArtifactStore, ContractArtifact, DeployedContract, RunOutcome
from .linker import link_artifact
from .plan import DeploymentPlan, DeploymentStep, Ref
from .registry import AddressRegistry, RegistryStore

logger = logging.getLogger(__name__)

# Failures of a non-critical step that degrade the run instead of failing it
DEGRADABLE_ERRORS = (LinkError, DeploymentError, ArtifactNotFound)


class DeploymentPipeline:
    """
    Runs deployment plans against a ledger

    Usage:
        pipeline = DeploymentPipeline(ledger, ArtifactStore(["artifacts"]), RegistryStore("."))
        outcome = pipeline.run(core_plan())
        if outcome.is_failed:
            sys.exit(outcome.exit_code)
    """

    def __init__(
        self,
        ledger: Ledger,
        artifacts: ArtifactStore,
        store: RegistryStore,
        deploy_config: Optional[DeployConfig] = None,
        delay: Optional[DelayStrategy] = None,
    ):
        self._ledger = ledger
        self._artifacts = artifacts
        self._store = store
        self._config = deploy_config or global_config.deploy
        self._delay = delay if delay is not None else FixedDelay(self._config.retry_delay)

    @property
    def is_local(self) -> bool:
        return self._ledger.chain_id in LOCAL_CHAIN_IDS

    @property
    def confirmations_required(self) -> int:
        """Confirmations to wait for, 0 on local networks"""
        return 0 if self.is_local else self._config.confirmations

    def deploy(
        self,
        artifact: Union[str, ContractArtifact],
        *args: Any,
        libraries: Optional[Mapping[str, str]] = None,
        key: Optional[str] = None,
        wait: bool = True,
    ) -> DeployedContract:
        """
        Link and deploy one contract

        Args:
            artifact: Artifact or contract name
            *args: Constructor arguments (resolved addresses, not Refs)
            libraries: Link symbol -> library address
            key: Registry key, for bookkeeping
            wait: Wait for confirmations before returning

        Raises:
            LinkError: Linking failed, nothing was submitted
            DeploymentError: Submission failed on every attempt
            ConfirmationTimeout: Mined but not confirmed in time
        """
        if isinstance(artifact, str):
            artifact = self._artifacts.load(artifact)

        bytecode = link_artifact(artifact, libraries or {})

        logger.info(f"Deploying {artifact.name}...")
        result = execute_with_retry(
            lambda: self._ledger.deploy_contract(artifact.abi, bytecode, args, label=artifact.name),
            f"deploy({artifact.name})",
            max_attempts=self._config.max_attempts,
            delay=self._delay,
        )

        deployed = DeployedContract(
            name=artifact.name,
            address=result.contract_address,
            tx_hash=result.tx_hash,
            key=key,
        )
        logger.info(f"{artifact.name} deployed to: {deployed.address} (tx {deployed.tx_hash})")

        if wait:
            self.wait_for_finality(deployed)
        return deployed

    def wait_for_finality(self, deployed: DeployedContract) -> DeployedContract:
        """Wait for the configured confirmations; no-op on local networks"""
        required = self.confirmations_required
        if required <= deployed.confirmations:
            return deployed

        logger.info(f"Waiting for {required} confirmations of {deployed.name}...")
        observed = self._ledger.wait_for_confirmations(
            deployed.tx_hash,
            required,
            timeout=self._config.confirmation_timeout,
            poll_interval=self._config.poll_interval,
        )
        deployed.record_confirmations(observed)
        return deployed

    def wait_for_batch(self, contracts: Sequence[DeployedContract]) -> None:
        """
        Wait for confirmations of already-submitted deployments concurrently

        Returns once every wait has finished. The first failure is raised
        after all waits completed.
        """
        if not contracts or self.confirmations_required <= 0:
            return

        logger.info(f"Waiting for confirmations of {len(contracts)} deployments...")
        with ThreadPoolExecutor(max_workers=len(contracts)) as executor:
            futures = [executor.submit(self.wait_for_finality, c) for c in contracts]

        errors = [f.exception() for f in futures if f.exception() is not None]
        if errors:
            raise errors[0]
        logger.info("All deployments confirmed")

    def _resolve(self, key: str, addresses: Mapping[str, str]) -> str:
        address = addresses.get(key)
        if address is None:
            raise ConfigurationError.missing(f"address for {key}")
        return address

    def _resolve_args(self, step: DeploymentStep, addresses: Mapping[str, str]) -> List[Any]:
        return [self._resolve(arg.key, addresses) if isinstance(arg, Ref) else arg for arg in step.args]

    def _skip(self, step: DeploymentStep, error: Exception, registry: AddressRegistry) -> str:
        registry.add_gap(step.key)
        # Dependents deployed this run reference the placeholder, not an earlier address
        registry.forget(step.key)
        reason = f"{step.artifact} skipped: {error}"
        logger.warning(
            f"Skipping {step.artifact}; dependents use placeholder {step.placeholder}. "
            f"Manual remediation required for {step.key}"
        )
        for number, action in enumerate(step.remediation, 1):
            logger.warning(f"  NEXT STEP {number}. {action}")
        return reason

    def run(self, plan: DeploymentPlan, registry: Optional[AddressRegistry] = None) -> RunOutcome:
        """
        Execute a plan and persist the registry

        Args:
            plan: Steps to execute
            registry: Registry to extend (loaded from the store if None)

        Returns:
            RunOutcome in state DONE, DEGRADED or FAILED. Errors never
            propagate except non-deployer bugs, and the registry write is
            attempted in every case.
        """
        with CorrelationContext(plan.name) as cid:
            logger.info(f"[{cid}] Running plan {plan.name} ({len(plan.steps)} steps)")

            deployed: Dict[str, DeployedContract] = {}
            gaps: List[str] = []
            reasons: List[str] = []
            current: Optional[DeploymentStep] = None
            outcome: Optional[RunOutcome] = None

            if registry is None:
                try:
                    registry = self._store.load_or_create(
                        self._ledger.network, self._ledger.chain_id, self._ledger.deployer
                    )
                except DeployerError as e:
                    logger.error(f"[{cid}] Cannot load registry: {e}")
                    return RunOutcome.failed(plan.name, deployed, str(e), error=e)
            # Registry entries from earlier runs, overlaid by this run's results
            addresses: Dict[str, str] = dict(registry.contracts)

            try:
                plan.validate(addresses.keys())

                for current in plan.steps:
                    args = self._resolve_args(current, addresses)
                    libraries = {
                        symbol: self._resolve(key, addresses)
                        for symbol, key in current.libraries.items()
                    }

                    try:
                        contract = self.deploy(
                            current.artifact,
                            *args,
                            libraries=libraries,
                            key=current.key,
                            wait=False,
                        )
                    except DEGRADABLE_ERRORS as e:
                        if current.critical:
                            raise
                        reasons.append(self._skip(current, e, registry))
                        gaps.append(current.key)
                        addresses[current.key] = current.placeholder
                        continue

                    deployed[current.key] = contract
                    addresses[current.key] = contract.address
                    registry.record(current.key, contract.address)
                    registry.clear_gap(current.key)

                    # Stays recorded if finality times out
                    if not plan.batch_confirmations:
                        self.wait_for_finality(contract)

                current = None
                if plan.batch_confirmations:
                    self.wait_for_batch(list(deployed.values()))

                if gaps:
                    outcome = RunOutcome.degraded(plan.name, deployed, "; ".join(reasons), gaps)
                else:
                    outcome = RunOutcome.done(plan.name, deployed)

            except DeployerError as e:
                stage = current.key if current is not None else None
                logger.error(f"[{cid}] Plan {plan.name} failed at {stage or 'plan level'}: {e}")
                outcome = RunOutcome.failed(
                    plan.name, deployed, str(e), failed_stage=stage, error=e, gaps=gaps
                )

            finally:
                try:
                    path = self._store.save(registry)
                except RegistryWriteError as e:
                    logger.error(f"[{cid}] {e}")
                    outcome = RunOutcome.failed(
                        plan.name, deployed, str(e), error=e, gaps=gaps,
                        failed_stage=outcome.failed_stage if outcome else None,
                    )
                else:
                    if outcome is not None:
                        outcome.registry_path = str(path)

            if outcome.is_failed and deployed:
                logger.warning(
                    f"[{cid}] {len(deployed)} contracts were deployed before the failure and remain "
                    f"on-chain: {', '.join(deployed)}"
                )
            logger.info(f"[{cid}] {outcome}")
            return outcome
