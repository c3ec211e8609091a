"""
Shared fixtures for unit tests

FakeLedger is an in-memory stand-in for an RPC endpoint: it hands out
deterministic contract addresses, tracks allowances, balances and pools,
and emits the events the modules decode.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from web3 import Web3

from dex_deployer.deploy.registry import RegistryStore
from dex_deployer.errors import ConfirmationTimeout, TransactionError
from dex_deployer.infra.ledger import Ledger
from dex_deployer.types import ArtifactStore, ContractArtifact, LinkReference, TxResult, ZERO_ADDRESS

DEPLOYER = Web3.to_checksum_address("0x" + "de" * 20)

# 40 hex chars standing in for the NFTDescriptor library address
LIBRARY_PLACEHOLDER = "__$" + "a" * 34 + "$__"


def make_address(n: int) -> str:
    return Web3.to_checksum_address(f"0x{n:040x}")


class FakeLedger(Ledger):
    """
    In-memory ledger

    Attributes:
        deploy_failures: label -> exceptions raised by successive deploy attempts
        fail_pool_creation: createAndInitializePoolIfNecessary raises
        fail_get_pool: getPool raises
        confirmation_timeout: wait_for_confirmations raises
    """

    def __init__(self, chain_id: int = 31337, network: str = "localhost"):
        self._chain_id = chain_id
        self._network = network
        self._counter = 0x1000

        self.deployments: List[Dict[str, Any]] = []
        self.deploy_attempts: Dict[str, int] = {}
        self.deploy_failures: Dict[str, List[Exception]] = {}
        self.transactions: List[Dict[str, Any]] = []
        self.confirmation_waits: List[Dict[str, Any]] = []

        self.allowances: Dict[tuple, int] = {}
        self.balances: Dict[tuple, int] = {}
        self.pools: Dict[tuple, str] = {}
        self.pool_creations = 0
        self.swap_output = 9_990_000_000_000_000_000
        self.native_balance = 5 * 10 ** 18

        self.fail_pool_creation = False
        self.fail_get_pool = False
        self.confirmation_timeout = False

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def network(self) -> str:
        return self._network

    @property
    def deployer(self) -> str:
        return DEPLOYER

    def _next_address(self) -> str:
        self._counter += 1
        return make_address(self._counter)

    def _tx_hash(self) -> str:
        return "0x" + f"{len(self.deployments) + len(self.transactions) + 1:064x}"

    def deploy_contract(self, abi, bytecode, args=(), gas_limit=None, label="contract") -> TxResult:
        self.deploy_attempts[label] = self.deploy_attempts.get(label, 0) + 1
        failures = self.deploy_failures.get(label)
        if failures:
            raise failures.pop(0)

        address = self._next_address()
        tx_hash = self._tx_hash()
        self.deployments.append({
            "label": label,
            "address": address,
            "bytecode": bytecode,
            "args": list(args),
            "tx_hash": tx_hash,
        })
        return TxResult.success(tx_hash, contract_address=address, block_number=len(self.deployments))

    def _key(self, *parts: str) -> tuple:
        return tuple(p.lower() for p in parts)

    def transact(self, address, abi, function, args=(), gas_limit=None, value=0) -> TxResult:
        tx_hash = self._tx_hash()
        self.transactions.append({
            "address": address,
            "function": function,
            "args": list(args),
            "gas_limit": gas_limit,
            "tx_hash": tx_hash,
        })
        events = []

        if function == "approve":
            spender, amount = args
            self.allowances[self._key(address, DEPLOYER, spender)] = amount

        elif function == "mint" and len(args) == 2:
            recipient, amount = args
            key = self._key(address, recipient)
            self.balances[key] = self.balances.get(key, 0) + amount

        elif function == "createAndInitializePoolIfNecessary":
            if self.fail_pool_creation:
                raise TransactionError.reverted(function, tx_hash)
            token0, token1, fee, _ = args
            key = self._key(token0, token1) + (fee,)
            if key not in self.pools:
                self.pools[key] = self._next_address()
                self.pool_creations += 1

        elif function == "mint":
            params = args[0]
            events.append((address, "IncreaseLiquidity", {
                "tokenId": 1,
                "liquidity": 123456,
                "amount0": params[5],
                "amount1": params[6],
            }))

        elif function == "exactInputSingle":
            token_in, token_out, fee, recipient = args[0][:4]
            events.append((token_in, "Transfer", {"from": DEPLOYER, "to": "0x" + "11" * 20, "value": args[0][5]}))
            events.append((token_out, "Transfer", {"from": "0x" + "11" * 20, "to": recipient, "value": self.swap_output}))

        return TxResult.success(tx_hash, receipt={"events": events})

    def call(self, address, abi, function, args=()) -> Any:
        if function == "allowance":
            owner, spender = args
            return self.allowances.get(self._key(address, owner, spender), 0)
        if function == "balanceOf":
            return self.balances.get(self._key(address, args[0]), 0)
        if function == "decimals":
            return 18
        if function == "getPool":
            if self.fail_get_pool:
                raise ConnectionError("connection refused")
            token_a, token_b, fee = args
            for key in (self._key(token_a, token_b) + (fee,), self._key(token_b, token_a) + (fee,)):
                if key in self.pools:
                    return self.pools[key]
            return ZERO_ADDRESS
        raise NotImplementedError(function)

    def decode_events(self, address, abi, event, tx_result) -> List[Dict[str, Any]]:
        return [
            dict(args)
            for emitter, name, args in tx_result.receipt.get("events", [])
            if name == event and (address is None or emitter.lower() == address.lower())
        ]

    def wait_for_confirmations(self, tx_hash, confirmations, timeout, poll_interval) -> int:
        self.confirmation_waits.append({"tx_hash": tx_hash, "confirmations": confirmations})
        if self.confirmation_timeout:
            raise ConfirmationTimeout(tx_hash, confirmations, 1, timeout)
        return confirmations

    def balance(self, address) -> int:
        return self.native_balance

    def transactions_named(self, function: str) -> List[Dict[str, Any]]:
        return [t for t in self.transactions if t["function"] == function]


def make_artifact(name: str, link_references: Sequence[LinkReference] = ()) -> ContractArtifact:
    """Artifact whose bytecode holds one placeholder per link reference"""
    if link_references:
        bytecode = "0x" + "60" * 10 + LIBRARY_PLACEHOLDER + "60" * 10
    else:
        bytecode = "0x" + "6080604052" * 4
    return ContractArtifact(
        name=name,
        abi=({"type": "constructor", "inputs": []},),
        bytecode=bytecode,
        link_references=tuple(link_references),
    )


DESCRIPTOR_LINK = LinkReference(
    source="contracts/libraries/NFTDescriptor.sol",
    symbol="NFTDescriptor",
    start=10,
    length=20,
)

CORE_CONTRACTS = (
    "WETH9",
    "UniswapV3Factory",
    "SwapRouter",
    "NFTDescriptor",
    "NonfungiblePositionManager",
)
TOKEN_CONTRACTS = ("Tether", "UsdCoin", "WrappedBitcoin")


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def remote_ledger() -> FakeLedger:
    return FakeLedger(chain_id=11155111, network="sepolia")


@pytest.fixture
def artifacts() -> ArtifactStore:
    store = ArtifactStore([])
    for name in CORE_CONTRACTS + TOKEN_CONTRACTS:
        store.register(make_artifact(name))
    store.register(make_artifact("NonfungibleTokenPositionDescriptor", [DESCRIPTOR_LINK]))
    return store


@pytest.fixture
def registry_store(tmp_path) -> RegistryStore:
    return RegistryStore(tmp_path, lock_timeout=0.5)
