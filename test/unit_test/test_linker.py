"""
Unit tests for the bytecode linker
"""

import sys
import unittest
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from dex_deployer.deploy.linker import link_artifact, link_bytecode, normalize_library_address
from dex_deployer.errors import BytecodeBoundsError, ErrorCode, LinkError, MissingLinkSymbol
from dex_deployer.types import ContractArtifact, LinkReference

LIBRARY = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
PLACEHOLDER = "__$" + "b" * 34 + "$__"


def ref(symbol="NFTDescriptor", start=2, length=20):
    return LinkReference(source="contracts/libraries/NFTDescriptor.sol", symbol=symbol, start=start, length=length)


class TestNormalizeLibraryAddress(unittest.TestCase):

    def test_lowercase_without_prefix(self):
        self.assertEqual(normalize_library_address("L", LIBRARY), LIBRARY.lower()[2:])

    def test_invalid_address(self):
        with self.assertRaises(LinkError) as ctx:
            normalize_library_address("L", "0x1234")
        self.assertEqual(ctx.exception.symbol, "L")


class TestLinkBytecode(unittest.TestCase):

    def setUp(self):
        self.bytecode = "0x6080" + PLACEHOLDER + "6040"

    def test_substitutes_address(self):
        linked = link_bytecode(self.bytecode, [ref()], {"NFTDescriptor": LIBRARY})

        self.assertEqual(linked, "0x6080" + LIBRARY.lower()[2:] + "6040")
        self.assertEqual(len(linked), len(self.bytecode))

    def test_bytecode_without_prefix(self):
        bytecode = self.bytecode[2:]
        linked = link_bytecode(bytecode, [ref()], {"NFTDescriptor": LIBRARY})

        self.assertEqual(linked, "6080" + LIBRARY.lower()[2:] + "6040")

    def test_no_references_is_identity(self):
        self.assertEqual(link_bytecode(self.bytecode, [], {}), self.bytecode)

    def test_multiple_references_same_symbol(self):
        bytecode = "0x" + PLACEHOLDER + "00" + PLACEHOLDER
        refs = [ref(start=0), ref(start=21)]

        linked = link_bytecode(bytecode, refs, {"NFTDescriptor": LIBRARY})

        address = LIBRARY.lower()[2:]
        self.assertEqual(linked, "0x" + address + "00" + address)

    def test_missing_symbol(self):
        with self.assertRaises(MissingLinkSymbol) as ctx:
            link_bytecode(self.bytecode, [ref()], {"OtherLibrary": LIBRARY})

        self.assertEqual(ctx.exception.symbol, "NFTDescriptor")
        self.assertEqual(ctx.exception.code, ErrorCode.LINK_MISSING_SYMBOL)
        self.assertIn("Missing link library name NFTDescriptor", str(ctx.exception))

    def test_missing_symbol_checked_before_any_substitution(self):
        """A later missing symbol fails even if earlier ones resolve"""
        bytecode = "0x" + PLACEHOLDER + PLACEHOLDER
        refs = [ref(start=0), ref(symbol="Other", start=20)]

        with self.assertRaises(MissingLinkSymbol):
            link_bytecode(bytecode, refs, {"NFTDescriptor": LIBRARY})

    def test_window_past_end(self):
        with self.assertRaises(BytecodeBoundsError) as ctx:
            link_bytecode(self.bytecode, [ref(start=10)], {"NFTDescriptor": LIBRARY})

        self.assertEqual(ctx.exception.code, ErrorCode.LINK_OUT_OF_BOUNDS)

    def test_window_exactly_at_end(self):
        bytecode = "0x" + PLACEHOLDER
        linked = link_bytecode(bytecode, [ref(start=0)], {"NFTDescriptor": LIBRARY})
        self.assertEqual(linked, "0x" + LIBRARY.lower()[2:])

    def test_wrong_length(self):
        with self.assertRaises(LinkError):
            link_bytecode(self.bytecode, [ref(length=19)], {"NFTDescriptor": LIBRARY})

    def test_invalid_library_address(self):
        with self.assertRaises(LinkError):
            link_bytecode(self.bytecode, [ref()], {"NFTDescriptor": "not-an-address"})


class TestLinkArtifact(unittest.TestCase):

    def test_unlinked_artifact_unchanged(self):
        artifact = ContractArtifact(name="WETH9", abi=(), bytecode="0x6080")
        self.assertEqual(link_artifact(artifact, {}), "0x6080")

    def test_artifact_from_hardhat_json(self):
        artifact = ContractArtifact.from_dict({
            "contractName": "NonfungibleTokenPositionDescriptor",
            "abi": [],
            "bytecode": "0x6080" + PLACEHOLDER + "6040",
            "linkReferences": {
                "contracts/libraries/NFTDescriptor.sol": {
                    "NFTDescriptor": [{"start": 2, "length": 20}],
                },
            },
        })

        self.assertTrue(artifact.needs_linking)
        self.assertEqual(artifact.library_symbols, ("NFTDescriptor",))
        linked = link_artifact(artifact, {"NFTDescriptor": LIBRARY})
        self.assertNotIn("__$", linked)


if __name__ == "__main__":
    unittest.main()
