"""
Deployer account signing

Signs deployment and contract-call transactions with a local key and
sends them through a web3 provider. Nonces come from a per-process
NonceManager so a failed submission can hand its nonce to the retry that
follows it.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Dict, Any, Set

from web3 import Web3, HTTPProvider
from web3.middleware import ExtraDataToPOAMiddleware
from eth_account import Account
from eth_account.signers.local import LocalAccount

from ..errors import SignerError, RpcError

logger = logging.getLogger(__name__)

# Chains whose block headers carry extra data (PoA)
POA_CHAIN_IDS = (56, 97, 137, 80002)

# Send failures after which the node may still hold the transaction
MAYBE_SENT_KEYWORDS = (
    "timeout",
    "timed out",
    "already known",
)


def _may_have_reached_node(error: Exception) -> bool:
    if isinstance(error, TimeoutError):
        return True
    message = str(error).lower()
    return any(keyword in message for keyword in MAYBE_SENT_KEYWORDS)


class NonceManager:
    """
    Hands out nonces per sender without waiting for each transaction to mine

    The next nonce is the larger of the chain's pending count and the last
    one assigned here, so transactions sent by other tools are not reused.
    A nonce released right after it was assigned goes back to the pool.

    Usage:
        nonces = NonceManager()
        nonce = nonces.get_nonce(web3, deployer)
        try:
            web3.eth.send_raw_transaction(...)
            nonces.confirm_nonce(deployer, nonce)
        except ValueError:
            nonces.release_nonce(deployer, nonce)
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._next: Dict[str, int] = {}
        self._unsent: Dict[str, Set[int]] = {}

    def get_nonce(self, web3: "Web3", address: str) -> int:
        """Assign the next nonce for address"""
        sender = address.lower()

        with self._lock:
            pending = web3.eth.get_transaction_count(Web3.to_checksum_address(address), "pending")
            nonce = max(pending, self._next.get(sender, pending))

            self._next[sender] = nonce + 1
            self._unsent.setdefault(sender, set()).add(nonce)

        logger.debug(f"Nonce {nonce} assigned to {address} (chain pending {pending})")
        return nonce

    def confirm_nonce(self, address: str, nonce: int) -> None:
        """The transaction carrying nonce was broadcast"""
        with self._lock:
            self._unsent.get(address.lower(), set()).discard(nonce)

    def release_nonce(self, address: str, nonce: int) -> None:
        """
        Give back a nonce whose transaction never reached the node

        Only the most recently assigned nonce can be reused; releasing an
        older one would leave a gap.
        """
        sender = address.lower()

        with self._lock:
            self._unsent.get(sender, set()).discard(nonce)
            if self._next.get(sender) == nonce + 1:
                self._next[sender] = nonce
                logger.debug(f"Nonce {nonce} released for {address}")

    def in_flight(self, address: str) -> Set[int]:
        """Nonces assigned but not yet broadcast"""
        with self._lock:
            return set(self._unsent.get(address.lower(), set()))

    def reset(self, address: Optional[str] = None) -> None:
        """Forget local state for address (or every address) and follow the chain again"""
        with self._lock:
            if address is None:
                self._next.clear()
                self._unsent.clear()
                return
            self._next.pop(address.lower(), None)
            self._unsent.pop(address.lower(), None)


# Shared by every signer in the process
_nonce_manager = NonceManager()


def get_nonce_manager() -> NonceManager:
    return _nonce_manager


class EVMSigner:
    """
    Local-key signer for the deployer account

    Usage:
        signer = EVMSigner.from_private_key(os.environ["EVM_PRIVATE_KEY"])
        sent = signer.sign_and_send(web3, deploy_tx)
        if sent["status"] == "success":
            print(sent["contract_address"])
    """

    def __init__(self, account: LocalAccount, nonce_manager: Optional[NonceManager] = None):
        self._account = account
        self._nonces = nonce_manager or _nonce_manager

    @property
    def address(self) -> str:
        """Checksummed deployer address"""
        return self._account.address

    @staticmethod
    def _summarize(tx_hash: str, receipt: Any) -> Dict[str, Any]:
        return {
            "status": "success" if receipt["status"] == 1 else "failed",
            "tx_hash": tx_hash,
            "block_number": receipt["blockNumber"],
            "gas_used": receipt["gasUsed"],
            "contract_address": receipt.get("contractAddress"),
            "receipt": dict(receipt),
        }

    def sign_and_send(
        self,
        web3: "Web3",
        tx_dict: Dict[str, Any],
        wait_for_receipt: bool = True,
        timeout: int = 120,
    ) -> Dict[str, Any]:
        """
        Sign tx_dict, broadcast it and optionally wait for the receipt

        A nonce and chain id are filled in when missing. Nothing is raised:
        errors come back as status "failed" with "error" and "exception",
        and tx_hash None when the node never accepted the transaction.

        Args:
            web3: Connected Web3 instance
            tx_dict: Built transaction (modified in place)
            wait_for_receipt: Block until mined
            timeout: Receipt timeout in seconds

        Returns:
            Dict with status ("success", "failed" or "pending"), tx_hash and,
            once mined, block_number, gas_used, contract_address and receipt
        """
        assigned = None
        tx_hash = None

        try:
            if "nonce" not in tx_dict:
                assigned = self._nonces.get_nonce(web3, self.address)
                tx_dict["nonce"] = assigned
            tx_dict.setdefault("chainId", web3.eth.chain_id)

            signed = self._account.sign_transaction(tx_dict)
            tx_hash = Web3.to_hex(web3.eth.send_raw_transaction(signed.raw_transaction))
            if assigned is not None:
                self._nonces.confirm_nonce(self.address, assigned)

            if not wait_for_receipt:
                return {"status": "pending", "tx_hash": tx_hash}
            return self._summarize(tx_hash, web3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout))

        except Exception as e:
            if assigned is not None and tx_hash is None and not _may_have_reached_node(e):
                self._nonces.release_nonce(self.address, assigned)

            logger.error(f"Transaction from {self.address} failed: {e}")
            return {
                "status": "failed",
                "error": str(e),
                "tx_hash": tx_hash,
                "exception": e,
            }

    @classmethod
    def from_private_key(cls, private_key: str) -> "EVMSigner":
        """Signer for a hex private key, 0x prefix optional"""
        key = private_key if private_key.startswith("0x") else f"0x{private_key}"
        try:
            return cls(Account.from_key(key))
        except (ValueError, TypeError) as e:
            raise SignerError.failed(f"invalid private key: {type(e).__name__}")

    @classmethod
    def from_keystore(cls, keystore_path: str, password: str) -> "EVMSigner":
        """Signer for an encrypted JSON keystore"""
        with open(keystore_path, "r") as f:
            encrypted = f.read()

        try:
            key = Account.decrypt(encrypted, password)
        except ValueError as e:
            raise SignerError.failed(f"cannot decrypt keystore {keystore_path}: {e}")
        return cls(Account.from_key(key))

    def __repr__(self) -> str:
        return f"EVMSigner(address={self.address})"


def create_web3(
    rpc_url: str,
    chain_id: Optional[int] = None,
    timeout: int = 30,
) -> "Web3":
    """
    Connect to rpc_url and check which chain it serves

    Args:
        rpc_url: HTTP endpoint
        chain_id: Chain the endpoint must report, unchecked if None
        timeout: Per-request timeout in seconds

    Raises:
        RpcError: Endpoint unreachable or serving another chain
    """
    web3 = Web3(HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))

    try:
        served = web3.eth.chain_id
    except Exception as e:
        raise RpcError.connection_failed(rpc_url, e)

    if chain_id is not None and served != chain_id:
        raise RpcError.chain_mismatch(rpc_url, chain_id, served)

    if served in POA_CHAIN_IDS:
        web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return web3


def create_evm_signer(
    private_key: Optional[str] = None,
    keystore_path: Optional[str] = None,
    keystore_password: Optional[str] = None,
) -> EVMSigner:
    """
    Signer from a private key, else from a keystore

    Raises:
        SignerError: Neither source configured
    """
    if private_key:
        return EVMSigner.from_private_key(private_key)
    if keystore_path and keystore_password is not None:
        return EVMSigner.from_keystore(keystore_path, keystore_password)
    raise SignerError.not_configured()
