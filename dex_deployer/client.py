"""
DeployerClient - Unified entry point for deployment operations

Wires a ledger, the artifact store and the registry store together and
exposes the pipeline and functional modules lazily.
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from .config import Config, config as global_config
from .deploy.pipeline import DeploymentPipeline
from .deploy.registry import AddressRegistry, RegistryStore
from .infra.ledger import Ledger, Web3Ledger
from .infra.retry import DelayStrategy
from .types import ArtifactStore

if TYPE_CHECKING:
    from .modules import PositionMinter, Swapper, TokenModule
    from .protocols.uniswap import PoolBootstrapper


class DeployerClient:
    """
    Unified deployer client

    Provides access to deployment operations through:
    - pipeline: contract deployment plans
    - tokens: ERC20 reads and test-token mints
    - pools: pool bootstrapping (needs a deployed core)
    - lp: position minting (needs a deployed core)
    - swap: exact-input swaps (needs a deployed core)

    Usage:
        client = DeployerClient.from_network("sepolia", registry_dir="./deployments")

        outcome = client.pipeline.run(core_plan())
        pool = client.pools.bootstrap(usdt, usdc, 500)
    """

    def __init__(
        self,
        ledger: Ledger,
        artifacts: Optional[ArtifactStore] = None,
        store: Optional[RegistryStore] = None,
        config: Optional[Config] = None,
        delay: Optional[DelayStrategy] = None,
    ):
        """
        Initialize DeployerClient

        Args:
            ledger: Chain access
            artifacts: Artifact store (defaults to configured search paths)
            store: Registry store (defaults to configured registry dir)
            config: Configuration (defaults to the global config)
            delay: Retry delay strategy for deployments
        """
        self._config = config or global_config
        self._ledger = ledger
        self._artifacts = artifacts or ArtifactStore(self._config.deploy.search_paths)
        self._store = store or RegistryStore(
            self._config.deploy.registry_dir, lock_timeout=self._config.deploy.lock_timeout
        )
        self._delay = delay

        # Lazy-loaded modules
        self._pipeline: Optional[DeploymentPipeline] = None
        self._tokens: Optional["TokenModule"] = None
        self._pools: Optional["PoolBootstrapper"] = None
        self._lp: Optional["PositionMinter"] = None
        self._swap: Optional["Swapper"] = None

    @classmethod
    def from_network(
        cls,
        network: str,
        registry_dir: Optional[str] = None,
        artifacts_dir: Optional[str] = None,
        config: Optional[Config] = None,
    ) -> "DeployerClient":
        """
        Connect to a named network with configured endpoint and key

        Raises:
            ConfigurationError: No RPC URL for the network
            RpcError: Endpoint unreachable or serving another chain
            SignerError: No usable key
        """
        config = config or global_config
        ledger = Web3Ledger.connect(
            network,
            settings=config.network.resolve(network),
            signer_config=config.signer,
            evm_config=config.evm,
        )

        search_paths = config.deploy.search_paths
        if artifacts_dir:
            search_paths = [artifacts_dir] + search_paths
        store = RegistryStore(registry_dir or config.deploy.registry_dir, lock_timeout=config.deploy.lock_timeout)
        return cls(ledger, ArtifactStore(search_paths), store, config=config)

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def config(self) -> Config:
        return self._config

    @property
    def network(self) -> str:
        return self._ledger.network

    @property
    def address(self) -> str:
        """Deployer address"""
        return self._ledger.deployer

    @property
    def artifacts(self) -> ArtifactStore:
        return self._artifacts

    @property
    def store(self) -> RegistryStore:
        return self._store

    def registry(self) -> AddressRegistry:
        """
        Registry for the connected network, as currently on disk

        Raises:
            ConfigurationError: No registry written yet
        """
        return self._store.require(self.network)

    @property
    def pipeline(self) -> DeploymentPipeline:
        if self._pipeline is None:
            self._pipeline = DeploymentPipeline(
                self._ledger,
                self._artifacts,
                self._store,
                deploy_config=self._config.deploy,
                delay=self._delay,
            )
        return self._pipeline

    @property
    def tokens(self) -> "TokenModule":
        if self._tokens is None:
            from .modules.tokens import TokenModule
            self._tokens = TokenModule(self._ledger)
        return self._tokens

    @property
    def pools(self) -> "PoolBootstrapper":
        """
        Pool bootstrapper bound to the registry's position manager and factory
        """
        if self._pools is None:
            from .deploy.plans import FACTORY, POSITION_MANAGER
            from .protocols.uniswap import PoolBootstrapper
            registry = self.registry()
            self._pools = PoolBootstrapper(
                self._ledger,
                registry.require(POSITION_MANAGER),
                registry.require(FACTORY),
                evm_config=self._config.evm,
            )
        return self._pools

    @property
    def lp(self) -> "PositionMinter":
        if self._lp is None:
            from .deploy.plans import POSITION_MANAGER
            from .modules.liquidity import PositionMinter
            self._lp = PositionMinter(
                self._ledger, self.registry().require(POSITION_MANAGER), evm_config=self._config.evm
            )
        return self._lp

    @property
    def swap(self) -> "Swapper":
        if self._swap is None:
            from .deploy.plans import SWAP_ROUTER
            from .modules.swap import Swapper
            self._swap = Swapper(self._ledger, self.registry().require(SWAP_ROUTER), evm_config=self._config.evm)
        return self._swap

    def __repr__(self) -> str:
        return f"DeployerClient(network={self.network}, address={self.address})"
