"""
Exception definitions for DEX Deployer
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """
    Unified error codes for deployment operations

    1xxx - RPC errors
    2xxx - Transaction / deployment errors
    3xxx - Bytecode linking errors
    4xxx - Pool errors
    5xxx - Registry errors
    6xxx - Signer errors
    8xxx - Artifact errors
    9xxx - Configuration errors
    """
    # RPC errors (recoverable)
    RPC_CONNECTION_FAILED = "1001"
    RPC_TIMEOUT = "1002"
    RPC_INVALID_RESPONSE = "1004"

    # Transaction / deployment errors
    TX_SEND_FAILED = "2002"
    TX_CONFIRMATION_TIMEOUT = "2003"
    TX_INSUFFICIENT_FUNDS = "2004"
    TX_REVERTED = "2006"
    DEPLOY_FAILED = "2101"
    DEPLOY_RETRIES_EXHAUSTED = "2102"

    # Linking errors
    LINK_MISSING_SYMBOL = "3001"
    LINK_OUT_OF_BOUNDS = "3002"
    LINK_INVALID_REFERENCE = "3003"

    # Pool errors
    POOL_ALREADY_EXISTS = "4001"
    POOL_LOOKUP_FAILED = "4002"

    # Registry errors
    REGISTRY_WRITE_FAILED = "5001"
    REGISTRY_LOCKED = "5002"
    REGISTRY_CORRUPT = "5003"

    # Signer errors
    SIGNER_NOT_CONFIGURED = "6001"
    SIGNER_FAILED = "6002"

    # Artifact errors
    ARTIFACT_NOT_FOUND = "8001"
    ARTIFACT_INVALID = "8002"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"


class DeployerError(Exception):
    """
    Base exception for all deployer errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        recoverable: Whether the error might succeed on retry
        original_error: The underlying exception if any
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"

    @property
    def should_retry(self) -> bool:
        """Indicate if the operation should be retried"""
        return self.recoverable


class RpcError(DeployerError):
    """
    RPC-related errors - typically recoverable

    Raised when:
    - Connection to RPC endpoint fails
    - Request times out
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RPC_CONNECTION_FAILED,
        original_error: Optional[Exception] = None,
        endpoint: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=True,
            original_error=original_error,
            details={"endpoint": endpoint} if endpoint else None,
        )
        self.endpoint = endpoint

    @classmethod
    def connection_failed(cls, endpoint: str, error: Exception = None) -> "RpcError":
        return cls(
            f"Failed to connect to RPC endpoint: {endpoint}",
            ErrorCode.RPC_CONNECTION_FAILED,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def chain_mismatch(cls, endpoint: str, expected: int, actual: int) -> "RpcError":
        return cls(
            f"RPC endpoint reports chain id {actual}, expected {expected}",
            ErrorCode.RPC_INVALID_RESPONSE,
            endpoint=endpoint,
        )


class LinkError(DeployerError):
    """
    Bytecode linking errors - fatal, raised before anything is submitted

    Raised when:
    - A link reference names a library with no resolved address
    - A substitution window falls outside the bytecode
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.LINK_INVALID_REFERENCE,
        symbol: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            details={"symbol": symbol},
        )
        self.symbol = symbol

    @classmethod
    def invalid_address(cls, symbol: str, address: str) -> "LinkError":
        return cls(f"Invalid library address for {symbol}: {address!r}", symbol=symbol)

    @classmethod
    def invalid_length(cls, symbol: str, length: int) -> "LinkError":
        return cls(f"Link reference for {symbol} spans {length} bytes, expected 20", symbol=symbol)


class MissingLinkSymbol(LinkError):
    """A link reference names a library that was not supplied"""

    def __init__(self, symbol: str, source: Optional[str] = None):
        where = f" (referenced from {source})" if source else ""
        super().__init__(
            f"Missing link library name {symbol}{where}",
            ErrorCode.LINK_MISSING_SYMBOL,
            symbol=symbol,
        )
        self.source = source


class BytecodeBoundsError(LinkError):
    """A substitution window exceeds the bytecode length"""

    def __init__(self, symbol: str, start: int, length: int, bytecode_length: int):
        super().__init__(
            f"Invalid bytecode linking parameters for {symbol}: "
            f"window [{start}, {start + length}) exceeds bytecode of {bytecode_length} hex chars",
            ErrorCode.LINK_OUT_OF_BOUNDS,
            symbol=symbol,
        )
        self.start = start
        self.length = length
        self.bytecode_length = bytecode_length


class DeploymentError(DeployerError):
    """
    Contract deployment errors

    Raised when:
    - The deployment transaction is rejected (insufficient funds, revert)
    - The retry budget for a stage is exhausted
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.DEPLOY_FAILED,
        stage: Optional[str] = None,
        attempts: Optional[int] = None,
        original_error: Optional[Exception] = None,
        recoverable: bool = True,
    ):
        super().__init__(
            message,
            code,
            recoverable=recoverable,
            original_error=original_error,
            details={"stage": stage, "attempts": attempts},
        )
        self.stage = stage
        self.attempts = attempts

    @classmethod
    def submission_failed(cls, stage: str, error: Exception) -> "DeploymentError":
        code = ErrorCode.DEPLOY_FAILED
        if "insufficient funds" in str(error).lower():
            code = ErrorCode.TX_INSUFFICIENT_FUNDS
        return cls(
            f"Failed to deploy {stage}: {error}",
            code,
            stage=stage,
            original_error=error,
        )

    @classmethod
    def exhausted(cls, stage: str, attempts: int, error: Exception) -> "DeploymentError":
        return cls(
            f"Deployment of {stage} failed after {attempts} attempts: {error}",
            ErrorCode.DEPLOY_RETRIES_EXHAUSTED,
            stage=stage,
            attempts=attempts,
            original_error=error,
            recoverable=False,
        )


class ConfirmationTimeout(DeployerError):
    """Finality was not observed within the timeout - fatal for the stage"""

    def __init__(
        self,
        tx_hash: str,
        confirmations: int,
        observed: int,
        timeout: float,
    ):
        super().__init__(
            f"Transaction {tx_hash} reached {observed}/{confirmations} confirmations "
            f"within {timeout}s",
            ErrorCode.TX_CONFIRMATION_TIMEOUT,
            recoverable=False,
            details={"tx_hash": tx_hash, "confirmations": confirmations, "observed": observed},
        )
        self.tx_hash = tx_hash
        self.confirmations = confirmations
        self.observed = observed


class TransactionError(DeployerError):
    """
    Transaction execution errors for state-changing calls

    Raised when:
    - The transaction could not be sent
    - The transaction was mined with a failed status (revert)
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TX_SEND_FAILED,
        tx_hash: Optional[str] = None,
        function: Optional[str] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            details={"tx_hash": tx_hash, "function": function},
        )
        self.tx_hash = tx_hash
        self.function = function

    @classmethod
    def reverted(cls, function: str, tx_hash: Optional[str] = None, reason: str = "") -> "TransactionError":
        suffix = f": {reason}" if reason else ""
        return cls(
            f"Transaction {function} reverted{suffix}",
            ErrorCode.TX_REVERTED,
            tx_hash=tx_hash,
            function=function,
        )

    @classmethod
    def send_failed(cls, function: str, error: str) -> "TransactionError":
        return cls(
            f"Failed to send {function}: {error}",
            ErrorCode.TX_SEND_FAILED,
            function=function,
        )


class PoolAlreadyExists(DeployerError):
    """
    The pool creation call reported an existing pool - tolerated

    The bootstrapper logs this and proceeds to the factory lookup.
    """

    def __init__(self, token0: str, token1: str, fee: int, original_error: Optional[Exception] = None):
        super().__init__(
            f"Pool {token0}/{token1} fee={fee} already exists or could not be created",
            ErrorCode.POOL_ALREADY_EXISTS,
            recoverable=True,
            original_error=original_error,
            details={"token0": token0, "token1": token1, "fee": fee},
        )


class RegistryWriteError(DeployerError):
    """Registry could not be persisted - fatal"""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.REGISTRY_WRITE_FAILED,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            original_error=original_error,
            details={"path": path},
        )
        self.path = path

    @classmethod
    def write_failed(cls, path: str, error: Exception) -> "RegistryWriteError":
        return cls(f"Failed to write registry {path}: {error}", path=path, original_error=error)

    @classmethod
    def locked(cls, path: str, timeout: float, lock_path: Optional[str] = None) -> "RegistryWriteError":
        held_by = f"; remove {lock_path} if no deployment is running" if lock_path else ""
        return cls(
            f"Registry {path} is locked by another run (waited {timeout}s){held_by}",
            path=path,
            code=ErrorCode.REGISTRY_LOCKED,
        )

    @classmethod
    def corrupt(cls, path: str, error: Exception) -> "RegistryWriteError":
        return cls(
            f"Registry {path} is unreadable: {error}",
            path=path,
            code=ErrorCode.REGISTRY_CORRUPT,
            original_error=error,
        )


class SignerError(DeployerError):
    """
    Signing-related errors

    Raised when:
    - No signer configured
    - Signing operation fails
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SIGNER_FAILED,
        recoverable: bool = False,
    ):
        super().__init__(message, code, recoverable=recoverable)

    @classmethod
    def not_configured(cls) -> "SignerError":
        return cls(
            "No signer configured. Set EVM_PRIVATE_KEY or provide a keystore.",
            ErrorCode.SIGNER_NOT_CONFIGURED,
        )

    @classmethod
    def failed(cls, reason: str) -> "SignerError":
        return cls(f"Signing failed: {reason}", ErrorCode.SIGNER_FAILED)


class ArtifactNotFound(DeployerError):
    """Contract artifact missing or malformed"""

    def __init__(
        self,
        message: str,
        name: Optional[str] = None,
        code: ErrorCode = ErrorCode.ARTIFACT_NOT_FOUND,
    ):
        super().__init__(message, code, recoverable=False, details={"name": name})
        self.name = name

    @classmethod
    def missing(cls, name: str, search_paths) -> "ArtifactNotFound":
        paths = ", ".join(str(p) for p in search_paths)
        return cls(f"Artifact {name} not found under: {paths}", name=name)

    @classmethod
    def invalid(cls, name: str, reason: str) -> "ArtifactNotFound":
        return cls(f"Artifact {name} is invalid: {reason}", name=name, code=ErrorCode.ARTIFACT_INVALID)


class ConfigurationError(DeployerError):
    """
    Configuration-related errors

    Raised when:
    - Required configuration is missing
    - Configuration values are invalid
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
    ):
        super().__init__(message, code, recoverable=False)

    @classmethod
    def missing(cls, param: str) -> "ConfigurationError":
        return cls(f"Missing required configuration: {param}", ErrorCode.CONFIG_MISSING)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid configuration '{param}': {reason}", ErrorCode.CONFIG_INVALID)
