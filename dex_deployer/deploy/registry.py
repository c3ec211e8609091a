"""
Address registry

One JSON file per network, `deployed-addresses-<network>.json`:

    {
      "network": "sepolia",
      "chainId": 11155111,
      "deployer": "0x...",
      "contracts": {"FACTORY_ADDRESS": "0x...", ...},
      "timestamp": "2024-01-01T00:00:00+00:00",
      "metadata": {"gaps": [...], "balances": {...}}
    }

The file is the only channel between stages. Writes go to a temp file that
is fsynced and renamed over the target, under a per-network lock file, so a
reader never sees a partial document and two runs never interleave.
"""

import json
import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

from ..errors import ConfigurationError, RegistryWriteError

logger = logging.getLogger(__name__)

REGISTRY_FILE_TEMPLATE = "deployed-addresses-{network}.json"


@dataclass
class AddressRegistry:
    """
    Contract addresses deployed on one network

    Attributes:
        network: Network name
        chain_id: Chain id the addresses live on
        deployer: Address that deployed them
        contracts: Registry key -> address
        timestamp: ISO-8601 UTC time of the last write
        metadata: Free-form extras (gaps, balances)
    """
    network: str
    chain_id: int
    deployer: str
    contracts: Dict[str, str] = field(default_factory=dict)
    timestamp: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def record(self, key: str, address: str) -> None:
        previous = self.contracts.get(key)
        if previous and previous.lower() != address.lower():
            logger.warning(f"Registry {self.network}: {key} changes {previous} -> {address}")
        self.contracts[key] = address

    def get(self, key: str) -> Optional[str]:
        return self.contracts.get(key)

    def require(self, key: str) -> str:
        """
        Address stored under key

        Raises:
            ConfigurationError: Key not present (earlier stage not run)
        """
        address = self.contracts.get(key)
        if not address:
            raise ConfigurationError.missing(
                f"{key} in registry for network '{self.network}' (run the stage that deploys it first)"
            )
        return address

    def forget(self, key: str) -> Optional[str]:
        """Drop key, returning the address it pointed to"""
        previous = self.contracts.pop(key, None)
        if previous:
            logger.warning(f"Registry {self.network}: {key} no longer points to {previous}")
        return previous

    def add_gap(self, key: str) -> None:
        gaps = self.metadata.setdefault("gaps", [])
        if key not in gaps:
            gaps.append(key)

    def clear_gap(self, key: str) -> None:
        gaps = self.metadata.get("gaps", [])
        if key in gaps:
            gaps.remove(key)

    @property
    def gaps(self) -> list:
        return list(self.metadata.get("gaps", []))

    def __contains__(self, key: str) -> bool:
        return key in self.contracts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "network": self.network,
            "chainId": self.chain_id,
            "deployer": self.deployer,
            "contracts": dict(self.contracts),
            "timestamp": self.timestamp,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AddressRegistry":
        return cls(
            network=data["network"],
            chain_id=int(data["chainId"]),
            deployer=data.get("deployer", ""),
            contracts=dict(data.get("contracts", {})),
            timestamp=data.get("timestamp"),
            metadata=dict(data.get("metadata", {})),
        )


class RegistryStore:
    """
    Reads and atomically writes registry files in one directory

    Usage:
        store = RegistryStore("./deployments")
        registry = store.load_or_create("sepolia", 11155111, deployer)
        registry.record("FACTORY_ADDRESS", factory)
        store.save(registry)
    """

    def __init__(self, directory: Union[str, Path] = ".", lock_timeout: float = 30.0):
        self.directory = Path(directory)
        self.lock_timeout = lock_timeout

    def path_for(self, network: str) -> Path:
        return self.directory / REGISTRY_FILE_TEMPLATE.format(network=network)

    def load(self, network: str) -> Optional[AddressRegistry]:
        """
        Registry for network, or None if nothing was written yet

        Raises:
            RegistryWriteError: File exists but cannot be parsed
        """
        path = self.path_for(network)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return AddressRegistry.from_dict(json.load(f))
        except (OSError, ValueError, KeyError) as e:
            raise RegistryWriteError.corrupt(str(path), e)

    def load_or_create(self, network: str, chain_id: int, deployer: str) -> AddressRegistry:
        registry = self.load(network)
        if registry is None:
            return AddressRegistry(network=network, chain_id=chain_id, deployer=deployer)

        if registry.chain_id != chain_id:
            raise ConfigurationError.invalid(
                "network",
                f"registry {self.path_for(network)} is for chain {registry.chain_id}, connected to {chain_id}",
            )
        registry.deployer = deployer
        return registry

    def require(self, network: str) -> AddressRegistry:
        registry = self.load(network)
        if registry is None:
            raise ConfigurationError.missing(f"registry file {self.path_for(network)}")
        return registry

    @staticmethod
    def _holder_is_dead(lock_path: Path) -> bool:
        """True when the lock file names a pid that no longer runs"""
        try:
            pid = int(lock_path.read_text().strip())
        except (OSError, ValueError):
            # Missing, or created but not yet written by its holder
            return False
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return True
        except OSError:
            return False
        return False

    @contextmanager
    def _lock(self, path: Path) -> Iterator[None]:
        lock_path = path.with_name(path.name + ".lock")
        deadline = time.monotonic() + self.lock_timeout
        while True:
            try:
                fd = os.open(str(lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                break
            except FileExistsError:
                if self._holder_is_dead(lock_path):
                    logger.warning(f"Removing stale registry lock {lock_path}")
                    try:
                        os.unlink(lock_path)
                    except FileNotFoundError:
                        pass
                    continue
                if time.monotonic() >= deadline:
                    raise RegistryWriteError.locked(str(path), self.lock_timeout, lock_path=str(lock_path))
                time.sleep(0.1)
        try:
            os.write(fd, str(os.getpid()).encode())
            yield
        finally:
            os.close(fd)
            try:
                os.unlink(lock_path)
            except FileNotFoundError:
                pass

    def save(self, registry: AddressRegistry) -> Path:
        """
        Persist registry as a single atomic replace

        Returns:
            Path written

        Raises:
            RegistryWriteError: Lock not acquired or write failed
        """
        path = self.path_for(registry.network)
        registry.timestamp = datetime.now(timezone.utc).isoformat()

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with self._lock(path):
                tmp_path = path.with_name(path.name + f".{os.getpid()}.tmp")
                try:
                    with open(tmp_path, "w", encoding="utf-8") as f:
                        json.dump(registry.to_dict(), f, indent=2)
                        f.write("\n")
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp_path, path)
                finally:
                    if tmp_path.exists():
                        tmp_path.unlink()
        except RegistryWriteError:
            raise
        except (OSError, TypeError, ValueError) as e:
            raise RegistryWriteError.write_failed(str(path), e)

        logger.info(f"Registry saved: {path} ({len(registry.contracts)} contracts)")
        return path
