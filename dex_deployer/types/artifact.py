"""
Contract artifact types

Artifacts are produced by an external compile step (Hardhat layout):
{"contractName", "abi", "bytecode", "linkReferences"}.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..errors import ArtifactNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkReference:
    """
    Placeholder for a library address inside deployment bytecode

    Attributes:
        source: Containing source file id (e.g. "contracts/libraries/NFTDescriptor.sol")
        symbol: Library name the placeholder stands for
        start: Byte offset into the bytecode (not counting the 0x prefix)
        length: Byte length of the placeholder (20 for an address)
    """
    source: str
    symbol: str
    start: int
    length: int

    @classmethod
    def from_hardhat(cls, link_references: Dict[str, Dict[str, List[Dict[str, int]]]]) -> Tuple["LinkReference", ...]:
        """Flatten Hardhat's {file: {library: [{start, length}]}} mapping"""
        refs = []
        for source, libraries in (link_references or {}).items():
            for symbol, positions in libraries.items():
                for position in positions:
                    refs.append(cls(
                        source=source,
                        symbol=symbol,
                        start=int(position["start"]),
                        length=int(position["length"]),
                    ))
        return tuple(refs)


@dataclass(frozen=True)
class ContractArtifact:
    """
    Compiled contract, read-only input to the deployment pipeline

    Attributes:
        name: Contract name
        abi: Application binary interface descriptor
        bytecode: Raw deployment bytecode (0x-prefixed hex, may contain placeholders)
        link_references: Library placeholders that must be linked before deploy
    """
    name: str
    abi: Tuple[Dict[str, Any], ...]
    bytecode: str
    link_references: Tuple[LinkReference, ...] = field(default_factory=tuple)

    @property
    def needs_linking(self) -> bool:
        return bool(self.link_references)

    @property
    def library_symbols(self) -> Tuple[str, ...]:
        return tuple(sorted({ref.symbol for ref in self.link_references}))

    @classmethod
    def from_dict(cls, data: Dict[str, Any], name: Optional[str] = None) -> "ContractArtifact":
        name = name or data.get("contractName") or "unknown"
        bytecode = data.get("bytecode")
        if isinstance(bytecode, dict):
            # solc standard-json shape {"object": ..., "linkReferences": ...}
            link_refs = bytecode.get("linkReferences", {})
            bytecode = bytecode.get("object")
        else:
            link_refs = data.get("linkReferences", {})

        if not bytecode or not isinstance(bytecode, str):
            raise ArtifactNotFound.invalid(name, "no deployment bytecode")
        if not bytecode.startswith("0x"):
            bytecode = "0x" + bytecode

        return cls(
            name=name,
            abi=tuple(data.get("abi", [])),
            bytecode=bytecode,
            link_references=LinkReference.from_hardhat(link_refs),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path], name: Optional[str] = None) -> "ContractArtifact":
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ArtifactNotFound.invalid(name or path.stem, str(e))
        return cls.from_dict(data, name=name or data.get("contractName") or path.stem)


class ArtifactStore:
    """
    Finds compiled artifacts by contract name

    Searches each directory recursively for "<Name>.json", skipping Hardhat's
    ".dbg.json" debug files. The first match in search order wins.
    """

    def __init__(self, search_paths: Sequence[Union[str, Path]]):
        self._search_paths = [Path(p) for p in search_paths]
        self._cache: Dict[str, ContractArtifact] = {}

    @property
    def search_paths(self) -> List[Path]:
        return list(self._search_paths)

    def find(self, name: str) -> Optional[Path]:
        filename = f"{name}.json"
        for root in self._search_paths:
            direct = root / filename
            if direct.is_file():
                return direct
            if not root.is_dir():
                continue
            for candidate in sorted(root.rglob(filename)):
                if candidate.is_file():
                    return candidate
        return None

    def load(self, name: str) -> ContractArtifact:
        if name in self._cache:
            return self._cache[name]

        path = self.find(name)
        if path is None:
            raise ArtifactNotFound.missing(name, self._search_paths)

        artifact = ContractArtifact.from_file(path, name=name)
        logger.debug(f"Loaded artifact {name} from {path} ({len(artifact.link_references)} link refs)")
        self._cache[name] = artifact
        return artifact

    def register(self, artifact: ContractArtifact) -> None:
        """Make an in-memory artifact available under its name"""
        self._cache[artifact.name] = artifact
