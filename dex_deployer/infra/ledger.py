"""
Ledger abstraction

Everything the deployer does against a chain goes through Ledger: deploying
bytecode, sending and reading contract calls, decoding logs and waiting for
confirmations. Web3Ledger is the JSON-RPC implementation; tests substitute an
in-memory ledger.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from web3 import Web3
from web3.exceptions import TimeExhausted
from web3.logs import DISCARD

from ..config import EVMConfig, NetworkSettings, SignerConfig, config as global_config
from ..errors import (
    ConfigurationError,
    ConfirmationTimeout,
    DeploymentError,
    RpcError,
    TransactionError,
)
from ..types import TxResult
from .evm_signer import EVMSigner, create_evm_signer, create_web3
from .retry import classify_error

logger = logging.getLogger(__name__)


class Ledger(ABC):
    """
    Chain access used by the pipeline, pool bootstrapper and modules

    Writes return a TxResult for a mined, successful transaction and raise on
    anything else.
    """

    @property
    @abstractmethod
    def chain_id(self) -> int:
        """Numeric chain identifier"""
        pass

    @property
    @abstractmethod
    def network(self) -> str:
        """Network name the ledger is connected to"""
        pass

    @property
    @abstractmethod
    def deployer(self) -> str:
        """Address of the signing account"""
        pass

    @abstractmethod
    def deploy_contract(
        self,
        abi: Sequence[Dict[str, Any]],
        bytecode: str,
        args: Sequence[Any] = (),
        gas_limit: Optional[int] = None,
        label: str = "contract",
    ) -> TxResult:
        """
        Submit a contract-creation transaction and wait for its receipt

        Returns:
            TxResult with contract_address set

        Raises:
            DeploymentError: Rejected or reverted deployment
            RpcError: Endpoint unreachable
        """
        pass

    @abstractmethod
    def transact(
        self,
        address: str,
        abi: Sequence[Dict[str, Any]],
        function: str,
        args: Sequence[Any] = (),
        gas_limit: Optional[int] = None,
        value: int = 0,
    ) -> TxResult:
        """
        Send a state-changing call and wait for its receipt

        Raises:
            TransactionError: Send failure or revert
            RpcError: Endpoint unreachable
        """
        pass

    @abstractmethod
    def call(
        self,
        address: str,
        abi: Sequence[Dict[str, Any]],
        function: str,
        args: Sequence[Any] = (),
    ) -> Any:
        """Read-only contract call"""
        pass

    @abstractmethod
    def decode_events(
        self,
        address: Optional[str],
        abi: Sequence[Dict[str, Any]],
        event: str,
        tx_result: TxResult,
    ) -> List[Dict[str, Any]]:
        """
        Decode the named event from a transaction's logs

        Args:
            address: Only logs emitted by this contract (None for any)

        Returns:
            Event arguments, one dict per matching log
        """
        pass

    @abstractmethod
    def wait_for_confirmations(
        self,
        tx_hash: str,
        confirmations: int,
        timeout: float,
        poll_interval: float,
    ) -> int:
        """
        Block until the transaction has the given number of confirmations

        Returns:
            Confirmations observed

        Raises:
            ConfirmationTimeout: Not reached within timeout
        """
        pass

    @abstractmethod
    def balance(self, address: str) -> int:
        """Native balance in wei"""
        pass


class Web3Ledger(Ledger):
    """
    Ledger backed by web3.py and a local EVMSigner

    Usage:
        ledger = Web3Ledger.connect("sepolia")
        result = ledger.deploy_contract(abi, bytecode, (factory, weth))
    """

    def __init__(
        self,
        web3: Web3,
        signer: EVMSigner,
        network: str,
        evm_config: Optional[EVMConfig] = None,
    ):
        self._web3 = web3
        self._signer = signer
        self._network = network
        self._evm = evm_config or global_config.evm
        self._chain_id: Optional[int] = None

    @classmethod
    def connect(
        cls,
        network: str,
        settings: Optional[NetworkSettings] = None,
        signer_config: Optional[SignerConfig] = None,
        evm_config: Optional[EVMConfig] = None,
    ) -> "Web3Ledger":
        """
        Connect to a named network using configured endpoint and key

        Raises:
            ConfigurationError: No RPC URL for the network
            RpcError: Endpoint unreachable or on another chain
            SignerError: No usable key
        """
        settings = settings or global_config.network.resolve(network)
        if not settings.rpc_url:
            raise ConfigurationError.missing(f"RPC URL for network '{network}'")

        signer_config = signer_config or global_config.signer
        signer = create_evm_signer(
            private_key=signer_config.private_key or None,
            keystore_path=signer_config.keystore_path or None,
            keystore_password=signer_config.keystore_password or None,
        )

        web3 = create_web3(
            settings.rpc_url,
            chain_id=settings.chain_id,
            timeout=global_config.network.timeout_seconds,
        )
        logger.info(f"Connected to {settings.name} ({settings.rpc_url}) as {signer.address}")
        return cls(web3, signer, settings.name, evm_config)

    @property
    def web3(self) -> Web3:
        return self._web3

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = self._web3.eth.chain_id
        return self._chain_id

    @property
    def network(self) -> str:
        return self._network

    @property
    def deployer(self) -> str:
        return self._signer.address

    def _add_gas_price(self, tx: Dict[str, Any]):
        """Add EIP-1559 gas price with the configured priority fee

        Falls back to the legacy gasPrice on chains without a base fee.
        """
        latest_block = self._web3.eth.get_block("latest")
        base_fee = latest_block.get("baseFeePerGas")
        if base_fee is None:
            tx.setdefault("gasPrice", self._web3.eth.gas_price)
            return
        max_priority_fee = self._web3.to_wei(self._evm.priority_fee_gwei, "gwei")
        tx["maxFeePerGas"] = int(base_fee * 2) + max_priority_fee
        tx["maxPriorityFeePerGas"] = max_priority_fee
        # web3 v7 build_transaction may add a legacy price
        tx.pop("gasPrice", None)

    def _contract(self, address: str, abi: Sequence[Dict[str, Any]]):
        return self._web3.eth.contract(address=Web3.to_checksum_address(address), abi=list(abi))

    def _raise_for_transport(self, error: Exception):
        is_transport, code = classify_error(error)
        if is_transport:
            raise RpcError(
                f"RPC request failed: {error}",
                code,
                original_error=error,
                endpoint=getattr(self._web3.provider, "endpoint_uri", None),
            )

    def _raise_for_receipt_timeout(self, result: Dict[str, Any]) -> None:
        """Broadcast but not mined in time: the transaction may still land"""
        if result.get("tx_hash") and isinstance(result.get("exception"), TimeExhausted):
            raise ConfirmationTimeout(result["tx_hash"], 1, 0, self._evm.receipt_timeout)

    def deploy_contract(
        self,
        abi: Sequence[Dict[str, Any]],
        bytecode: str,
        args: Sequence[Any] = (),
        gas_limit: Optional[int] = None,
        label: str = "contract",
    ) -> TxResult:
        factory = self._web3.eth.contract(abi=list(abi), bytecode=bytecode)
        tx_params: Dict[str, Any] = {"from": self.deployer}
        if gas_limit:
            tx_params["gas"] = gas_limit

        try:
            tx = factory.constructor(*args).build_transaction(tx_params)
            self._add_gas_price(tx)
        except Exception as e:
            self._raise_for_transport(e)
            raise DeploymentError.submission_failed(label, e)

        result = self._signer.sign_and_send(
            self._web3, tx, wait_for_receipt=True, timeout=self._evm.receipt_timeout
        )

        if result["status"] != "success":
            self._raise_for_receipt_timeout(result)
            error = result.get("exception") or Exception(result.get("error", "reverted"))
            if not result.get("tx_hash"):
                self._raise_for_transport(error)
            raise DeploymentError.submission_failed(label, error)

        address = result.get("contract_address")
        if not address:
            raise DeploymentError.submission_failed(label, Exception("receipt has no contract address"))

        return TxResult.success(
            result["tx_hash"],
            block_number=result.get("block_number"),
            gas_used=result.get("gas_used"),
            contract_address=Web3.to_checksum_address(address),
            receipt=result.get("receipt", {}),
        )

    def transact(
        self,
        address: str,
        abi: Sequence[Dict[str, Any]],
        function: str,
        args: Sequence[Any] = (),
        gas_limit: Optional[int] = None,
        value: int = 0,
    ) -> TxResult:
        contract = self._contract(address, abi)
        tx_params: Dict[str, Any] = {"from": self.deployer, "value": value}
        if gas_limit:
            tx_params["gas"] = gas_limit

        try:
            tx = contract.functions[function](*args).build_transaction(tx_params)
            self._add_gas_price(tx)
        except Exception as e:
            self._raise_for_transport(e)
            raise TransactionError.send_failed(function, str(e))

        result = self._signer.sign_and_send(
            self._web3, tx, wait_for_receipt=True, timeout=self._evm.receipt_timeout
        )

        if result["status"] == "success":
            return TxResult.success(
                result["tx_hash"],
                block_number=result.get("block_number"),
                gas_used=result.get("gas_used"),
                receipt=result.get("receipt", {}),
            )

        self._raise_for_receipt_timeout(result)
        if result.get("tx_hash"):
            raise TransactionError.reverted(function, result["tx_hash"])

        error = result.get("exception") or Exception(result.get("error", "unknown error"))
        self._raise_for_transport(error)
        raise TransactionError.send_failed(function, str(error))

    def call(
        self,
        address: str,
        abi: Sequence[Dict[str, Any]],
        function: str,
        args: Sequence[Any] = (),
    ) -> Any:
        contract = self._contract(address, abi)
        try:
            return contract.functions[function](*args).call()
        except Exception as e:
            self._raise_for_transport(e)
            raise

    def decode_events(
        self,
        address: Optional[str],
        abi: Sequence[Dict[str, Any]],
        event: str,
        tx_result: TxResult,
    ) -> List[Dict[str, Any]]:
        contract = self._web3.eth.contract(abi=list(abi))
        decoded = contract.events[event]().process_receipt(tx_result.receipt, errors=DISCARD)

        events = []
        for entry in decoded:
            if address and entry["address"].lower() != address.lower():
                continue
            events.append(dict(entry["args"]))
        return events

    def wait_for_confirmations(
        self,
        tx_hash: str,
        confirmations: int,
        timeout: float,
        poll_interval: float,
    ) -> int:
        started = time.monotonic()
        try:
            receipt = self._web3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted:
            raise ConfirmationTimeout(tx_hash, confirmations, 0, timeout)
        mined_in = receipt["blockNumber"]

        while True:
            observed = self._web3.eth.block_number - mined_in + 1
            if observed >= confirmations:
                logger.debug(f"{tx_hash}: {observed} confirmations")
                return observed

            if time.monotonic() - started >= timeout:
                raise ConfirmationTimeout(tx_hash, confirmations, observed, timeout)
            time.sleep(poll_interval)

    def balance(self, address: str) -> int:
        try:
            return self._web3.eth.get_balance(Web3.to_checksum_address(address))
        except Exception as e:
            self._raise_for_transport(e)
            raise

    def __repr__(self) -> str:
        return f"Web3Ledger(network={self._network}, deployer={self.deployer})"
