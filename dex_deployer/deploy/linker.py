"""
Bytecode linker

Patches library addresses into the placeholder slots of unlinked deployment
bytecode. Pure functions, no chain access.
"""

import logging
from typing import Dict, Iterable, Mapping

from web3 import Web3

from ..errors import BytecodeBoundsError, LinkError, MissingLinkSymbol
from ..types import ContractArtifact, LinkReference

logger = logging.getLogger(__name__)

ADDRESS_BYTES = 20


def normalize_library_address(symbol: str, address: str) -> str:
    """
    20-byte address as lower-case hex without the 0x prefix

    Raises:
        LinkError: If the value is not an address
    """
    try:
        return Web3.to_checksum_address(address).lower()[2:]
    except (ValueError, TypeError):
        raise LinkError.invalid_address(symbol, address)


def link_bytecode(
    bytecode: str,
    link_references: Iterable[LinkReference],
    libraries: Mapping[str, str],
) -> str:
    """
    Substitute resolved library addresses into bytecode

    Every referenced symbol is checked before any substitution, so a missing
    library fails without producing partially linked output.

    Args:
        bytecode: Hex bytecode, with or without a 0x prefix
        link_references: Placeholder windows (byte offsets exclude the prefix)
        libraries: Symbol name -> library address

    Returns:
        Linked bytecode of the same length as the input

    Raises:
        MissingLinkSymbol: A reference names a symbol not in libraries
        BytecodeBoundsError: A window extends past the end of the bytecode
        LinkError: Malformed address or window length
    """
    refs = list(link_references)

    resolved: Dict[str, str] = {}
    for ref in refs:
        if ref.symbol in resolved:
            continue
        if ref.symbol not in libraries:
            raise MissingLinkSymbol(ref.symbol, ref.source)
        resolved[ref.symbol] = normalize_library_address(ref.symbol, libraries[ref.symbol])

    prefix = 2 if bytecode[:2].lower() == "0x" else 0
    linked = bytecode

    for ref in refs:
        if ref.length != ADDRESS_BYTES:
            raise LinkError.invalid_length(ref.symbol, ref.length)

        start = prefix + ref.start * 2
        end = start + ref.length * 2
        if ref.start < 0 or end > len(linked):
            raise BytecodeBoundsError(ref.symbol, start, ref.length * 2, len(linked))

        linked = linked[:start] + resolved[ref.symbol] + linked[end:]

    return linked


def link_artifact(artifact: ContractArtifact, libraries: Mapping[str, str]) -> str:
    """Linked bytecode of an artifact (unchanged when it has no references)"""
    if not artifact.needs_linking:
        return artifact.bytecode

    linked = link_bytecode(artifact.bytecode, artifact.link_references, libraries)
    logger.info(
        f"Linked {artifact.name} against {', '.join(artifact.library_symbols)} "
        f"({len(linked)} hex chars)"
    )
    return linked
