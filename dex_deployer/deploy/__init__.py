"""
Contract deployment: bytecode linking, plans, pipeline and address registry
"""

from .linker import link_bytecode, link_artifact, normalize_library_address
from .plan import DeploymentPlan, DeploymentStep, Ref
from .pipeline import DeploymentPipeline
from .plans import core_plan, token_plan
from .registry import AddressRegistry, RegistryStore

__all__ = [
    "link_bytecode",
    "link_artifact",
    "normalize_library_address",
    "DeploymentPlan",
    "DeploymentStep",
    "Ref",
    "DeploymentPipeline",
    "core_plan",
    "token_plan",
    "AddressRegistry",
    "RegistryStore",
]
