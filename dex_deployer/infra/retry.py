"""
Retry Logic Helper Module

Provides the bounded retry wrapper used for contract deployments, with
injectable delay strategies. Includes structured logging with correlation IDs
for transaction tracing.
"""

import logging
import time
import uuid
import contextvars
from typing import Callable, Tuple, Optional, Type, TypeVar

from ..errors import ErrorCode, DeploymentError, RpcError
from ..config import config as global_config

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Context variable for correlation ID (thread-safe)
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for transaction tracing."""
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    """Set the correlation ID in context. Returns token for reset."""
    return _correlation_id.set(correlation_id)


class CorrelationContext:
    """
    Context manager for correlation ID scoping.

    Usage:
        with CorrelationContext("deploy_core") as cid:
            logger.info(f"[{cid}] Starting stage")
            outcome = pipeline.run(plan)
    """

    def __init__(self, prefix: Optional[str] = None):
        """
        Initialize correlation context.

        Args:
            prefix: Optional prefix for the correlation ID (e.g., "deploy", "pool")
        """
        self.correlation_id = generate_correlation_id()
        if prefix:
            self.correlation_id = f"{prefix}_{self.correlation_id}"
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _correlation_id.reset(self._token)


def log_with_correlation(
    level: int,
    message: str,
    operation_name: str,
    attempt: Optional[int] = None,
    max_attempts: Optional[int] = None,
    **extra
):
    """
    Log message with correlation ID and structured context.

    Args:
        level: Logging level (logging.INFO, logging.WARNING, etc.)
        message: Log message
        operation_name: Name of the operation being executed
        attempt: Current attempt number (1-indexed)
        max_attempts: Maximum number of attempts
        **extra: Additional context fields
    """
    cid = get_correlation_id()

    parts = []
    if cid:
        parts.append(f"[{cid}]")
    parts.append(f"[{operation_name}]")
    if attempt is not None and max_attempts is not None:
        parts.append(f"[{attempt}/{max_attempts}]")
    parts.append(message)

    extra_context = {
        "correlation_id": cid,
        "operation": operation_name,
        "attempt": attempt,
        "max_attempts": max_attempts,
        **extra
    }

    logger.log(level, " ".join(parts), extra=extra_context)


# Error keywords for classification
RECOVERABLE_KEYWORDS = [
    "timeout", "timed out", "connection", "network", "rate limit",
    "too many requests", "503", "502", "504",
    "temporarily unavailable", "service unavailable",
    "econnreset", "enotfound", "etimedout",
    "socket hang up", "request failed",
]


def classify_error(error: Exception) -> Tuple[bool, Optional[ErrorCode]]:
    """
    Classify a raw provider error.

    Args:
        error: The exception to classify

    Returns:
        Tuple of (is_transport_error, error_code). Transport errors are
        connection/timeout problems with the RPC endpoint, as opposed to the
        ledger rejecting the transaction.
    """
    error_str = str(error).lower()

    if not any(keyword in error_str for keyword in RECOVERABLE_KEYWORDS):
        return False, None

    if "timeout" in error_str or "timed out" in error_str:
        return True, ErrorCode.RPC_TIMEOUT
    if any(kw in error_str for kw in ["connection", "network", "socket"]):
        return True, ErrorCode.RPC_CONNECTION_FAILED
    return True, ErrorCode.RPC_INVALID_RESPONSE


class FixedDelay:
    """Same delay before every retry"""

    def __init__(self, seconds: float):
        self.seconds = seconds

    def __call__(self, attempt: int) -> float:
        return self.seconds

    def __repr__(self) -> str:
        return f"FixedDelay({self.seconds})"


class ExponentialDelay:
    """base * factor^(attempt-1), capped at max_delay"""

    def __init__(self, base: float, factor: float = 2.0, max_delay: float = 60.0):
        self.base = base
        self.factor = factor
        self.max_delay = max_delay

    def __call__(self, attempt: int) -> float:
        return min(self.base * (self.factor ** (attempt - 1)), self.max_delay)

    def __repr__(self) -> str:
        return f"ExponentialDelay({self.base}, factor={self.factor}, max={self.max_delay})"


NO_DELAY = FixedDelay(0.0)

DelayStrategy = Callable[[int], float]


def execute_with_retry(
    operation: Callable[[], T],
    operation_name: str,
    max_attempts: Optional[int] = None,
    delay: Optional[DelayStrategy] = None,
    retry_on: Tuple[Type[BaseException], ...] = (DeploymentError, RpcError),
) -> T:
    """
    Execute an operation, retrying failures of the given types.

    The operation is attempted at most max_attempts times. Exceptions outside
    retry_on propagate immediately. When the budget is exhausted the last
    error is raised as a fatal DeploymentError carrying the attempt count.

    Args:
        operation: Zero-argument callable
        operation_name: Name for logging and error context
        max_attempts: Attempt budget (defaults to config.deploy.max_attempts)
        delay: Delay strategy called with the failed attempt number
            (defaults to FixedDelay(config.deploy.retry_delay))
        retry_on: Exception types considered transient

    Returns:
        Whatever the operation returns

    Example:
        deployed = execute_with_retry(
            lambda: ledger.deploy_contract(abi, bytecode, args),
            "deploy(UniswapV3Factory)",
        )
    """
    if max_attempts is None:
        max_attempts = global_config.deploy.max_attempts
    if delay is None:
        delay = FixedDelay(global_config.deploy.retry_delay)
    max_attempts = max(1, max_attempts)

    last_error: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            result = operation()
            if attempt > 1:
                log_with_correlation(
                    logging.INFO,
                    f"Succeeded after {attempt} attempts",
                    operation_name,
                    attempt,
                    max_attempts,
                )
            return result

        except retry_on as e:
            last_error = e
            if attempt < max_attempts:
                wait = delay(attempt)
                log_with_correlation(
                    logging.WARNING,
                    f"Attempt failed: {e}. Retrying in {wait:g}s",
                    operation_name,
                    attempt,
                    max_attempts,
                    error_type="retryable",
                )
                if wait > 0:
                    time.sleep(wait)
                continue

            log_with_correlation(
                logging.ERROR,
                f"Failed: {e}",
                operation_name,
                attempt,
                max_attempts,
                error_type="fatal",
            )

    raise DeploymentError.exhausted(operation_name, max_attempts, last_error)
