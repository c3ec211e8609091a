"""
Deployment plan types

A plan is an ordered list of steps. A step names the artifact to deploy, the
registry key its address is stored under, and constructor arguments that
may refer to addresses produced by earlier steps (Ref) or by an earlier run
(already in the registry).
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Set, Tuple

from ..errors import ConfigurationError
from ..types import ZERO_ADDRESS


@dataclass(frozen=True)
class Ref:
    """Constructor argument resolved to the address stored under key"""
    key: str

    def __repr__(self) -> str:
        return f"Ref({self.key})"


@dataclass(frozen=True)
class DeploymentStep:
    """
    One contract deployment

    Attributes:
        key: Registry key for the deployed address
        artifact: Contract name, looked up in the artifact store
        args: Constructor arguments; Ref values are resolved at run time
        libraries: Link symbol -> registry key of the library address
        critical: A failing critical step fails the run; a non-critical one
            degrades it and dependents receive the placeholder address
        placeholder: Address handed to dependents when this step is skipped
        remediation: Manual follow-up logged when the step is skipped
    """
    key: str
    artifact: str
    args: Tuple[Any, ...] = ()
    libraries: Mapping[str, str] = field(default_factory=dict)
    critical: bool = True
    placeholder: str = ZERO_ADDRESS
    remediation: Tuple[str, ...] = ()

    @property
    def dependencies(self) -> Set[str]:
        deps = {arg.key for arg in self.args if isinstance(arg, Ref)}
        deps.update(self.libraries.values())
        return deps


@dataclass(frozen=True)
class DeploymentPlan:
    """
    Ordered deployment steps

    Attributes:
        name: Plan name used in logs and outcomes
        steps: Steps in execution order
        batch_confirmations: Submit every step first, then wait for all
            confirmations concurrently. Only valid for independent steps.
    """
    name: str
    steps: Tuple[DeploymentStep, ...]
    batch_confirmations: bool = False

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(step.key for step in self.steps)

    def step(self, key: str) -> Optional[DeploymentStep]:
        for step in self.steps:
            if step.key == key:
                return step
        return None

    def validate(self, available: Iterable[str] = ()) -> None:
        """
        Check that every dependency is produced by an earlier step or is
        already available

        Raises:
            ConfigurationError: Duplicate key, unknown or forward dependency,
                or dependent steps in a batch plan
        """
        known = set(available)
        produced: Set[str] = set()

        for step in self.steps:
            if step.key in produced:
                raise ConfigurationError.invalid(self.name, f"duplicate step key {step.key}")

            for dep in step.dependencies:
                if dep in produced:
                    if self.batch_confirmations:
                        raise ConfigurationError.invalid(
                            self.name,
                            f"{step.key} depends on {dep}, batch plans must have independent steps",
                        )
                    continue
                if dep not in known:
                    raise ConfigurationError.invalid(
                        self.name, f"{step.key} depends on {dep}, which no earlier step produces"
                    )
            produced.add(step.key)
