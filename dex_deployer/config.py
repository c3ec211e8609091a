"""
Deployer settings

Every setting comes from the environment (after loading the project-root
.env), falling back to the defaults below. Sections: networks, signer,
deployment behaviour, gas limits, trading minimums and logging.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List, Tuple

from dotenv import load_dotenv


def _load_env_file():
    """Load .env file from project root"""
    current = Path(__file__).parent.parent  # dex_deployer package parent
    env_file = current / ".env"

    if env_file.exists():
        load_dotenv(env_file)


# Load .env on module import
_load_env_file()


def _get_env(key: str, default: Optional[str] = "") -> Optional[str]:
    """Get environment variable with default"""
    value = os.getenv(key)
    if value is None:
        return default
    return value


def _get_env_float(key: str, default: float) -> float:
    """Get environment variable as float"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid float value for {key}='{value}', using default={default}"
        )
        return default


def _get_env_int(key: str, default: int) -> int:
    """Get environment variable as int"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Invalid int value for {key}='{value}', using default={default}"
        )
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    """Get environment variable as bool"""
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


# Chain ids of local / ephemeral development networks (hardhat, ganache, anvil)
LOCAL_CHAIN_IDS: Tuple[int, ...] = (31337, 1337)


@dataclass(frozen=True)
class NetworkSettings:
    """Resolved settings for one named network"""
    name: str
    rpc_url: str
    chain_id: Optional[int] = None

    @property
    def is_local(self) -> bool:
        return self.chain_id in LOCAL_CHAIN_IDS


@dataclass
class NetworkConfig:
    """
    Network endpoints

    Known networks are localhost/hardhat and sepolia. Any other name is
    resolved from <NAME>_RPC_URL and <NAME>_CHAIN_ID.
    """
    localhost_rpc_url: str = field(default_factory=lambda: _get_env("LOCALHOST_RPC_URL", "http://127.0.0.1:8545"))
    sepolia_rpc_url: str = field(
        default_factory=lambda: _get_env("ALCHEMY_SEPOLIA_RPC", "") or _get_env("SEPOLIA_RPC_URL", "")
    )
    timeout_seconds: int = field(default_factory=lambda: _get_env_int("RPC_TIMEOUT_SECONDS", 30))

    def resolve(self, name: str) -> NetworkSettings:
        """Resolve a network name to its RPC endpoint and expected chain id"""
        key = name.lower()
        if key in ("localhost", "hardhat"):
            return NetworkSettings(name=key, rpc_url=self.localhost_rpc_url, chain_id=31337)
        if key == "sepolia":
            return NetworkSettings(name=key, rpc_url=self.sepolia_rpc_url, chain_id=11155111)

        prefix = key.upper().replace("-", "_")
        chain_id = _get_env_int(f"{prefix}_CHAIN_ID", 0) or None
        return NetworkSettings(
            name=key,
            rpc_url=_get_env(f"{prefix}_RPC_URL", ""),
            chain_id=chain_id,
        )


@dataclass
class SignerConfig:
    """Signer configuration for local key signing"""
    private_key: str = field(
        default_factory=lambda: _get_env("EVM_PRIVATE_KEY", "") or _get_env("PRIVATE_KEY", "")
    )
    keystore_path: str = field(default_factory=lambda: _get_env("EVM_KEYSTORE_PATH", ""))
    keystore_password: str = field(default_factory=lambda: _get_env("EVM_KEYSTORE_PASSWORD", ""))


@dataclass
class DeployConfig:
    """Deployment pipeline settings"""
    # Blocks to wait after the deployment block on non-local networks
    confirmations: int = field(default_factory=lambda: _get_env_int("DEPLOY_CONFIRMATIONS", 2))
    max_attempts: int = field(default_factory=lambda: _get_env_int("DEPLOY_MAX_ATTEMPTS", 3))
    retry_delay: float = field(default_factory=lambda: _get_env_float("DEPLOY_RETRY_DELAY", 2.0))
    confirmation_timeout: float = field(default_factory=lambda: _get_env_float("DEPLOY_CONFIRMATION_TIMEOUT", 300.0))
    poll_interval: float = field(default_factory=lambda: _get_env_float("DEPLOY_POLL_INTERVAL", 2.0))
    artifacts_dir: str = field(default_factory=lambda: _get_env("ARTIFACTS_DIR", "artifacts"))
    # Extra artifact search paths, separated by os.pathsep
    artifact_paths: str = field(default_factory=lambda: _get_env("ARTIFACT_PATHS", ""))
    registry_dir: str = field(default_factory=lambda: _get_env("REGISTRY_DIR", "."))
    lock_timeout: float = field(default_factory=lambda: _get_env_float("REGISTRY_LOCK_TIMEOUT", 30.0))
    # Warn when the deployer holds less than this many native units
    low_balance_eth: float = field(default_factory=lambda: _get_env_float("DEPLOY_LOW_BALANCE_ETH", 0.1))

    @property
    def search_paths(self) -> List[str]:
        paths = [self.artifacts_dir]
        paths.extend(p for p in self.artifact_paths.split(os.pathsep) if p)
        return paths


@dataclass
class EVMConfig:
    """EVM transaction settings"""
    # Deadline for mint/swap calls, relative to submission time
    tx_deadline_seconds: int = field(default_factory=lambda: _get_env_int("EVM_TX_DEADLINE_SECONDS", 600))
    pool_gas_limit: int = field(default_factory=lambda: _get_env_int("EVM_POOL_GAS_LIMIT", 5_000_000))
    mint_gas_limit: int = field(default_factory=lambda: _get_env_int("EVM_MINT_GAS_LIMIT", 1_000_000))
    swap_gas_limit: int = field(default_factory=lambda: _get_env_int("EVM_SWAP_GAS_LIMIT", 300_000))
    approve_gas_limit: int = field(default_factory=lambda: _get_env_int("EVM_APPROVE_GAS_LIMIT", 100_000))
    # Priority fee (tip) in gwei
    priority_fee_gwei: float = field(default_factory=lambda: _get_env_float("EVM_PRIORITY_FEE_GWEI", 1.5))
    # Receipt wait timeout in seconds
    receipt_timeout: int = field(default_factory=lambda: _get_env_int("EVM_RECEIPT_TIMEOUT", 120))


@dataclass
class TradingConfig:
    """
    Default minimums for mint and swap calls

    Zero means no slippage protection. This is the permissive default of the
    bootstrap flows; set non-zero values for anything beyond a test network.
    """
    amount0_min: int = field(default_factory=lambda: _get_env_int("MINT_AMOUNT0_MIN", 0))
    amount1_min: int = field(default_factory=lambda: _get_env_int("MINT_AMOUNT1_MIN", 0))
    amount_out_minimum: int = field(default_factory=lambda: _get_env_int("SWAP_AMOUNT_OUT_MINIMUM", 0))


def _get_default_log_path() -> str:
    """dex_deployer/log/dex_deployer_<UTC timestamp>.log, one file per process"""
    from datetime import datetime, timezone
    started = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return str(Path(__file__).parent / "log" / f"dex_deployer_{started}.log")


@dataclass
class LoggingConfig:
    """
    Where deployment logs go

    Every run writes a rotating log file (so a failed deployment can be
    reconstructed afterwards) and, unless disabled, mirrors it to the console.

    Environment variables:
        LOG_FILE: Log file path (default: dex_deployer/log/dex_deployer_<timestamp>.log)
        LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
        LOG_FORMAT: logging format string
        LOG_CONSOLE: Mirror to stderr (default: true)
        LOG_MAX_BYTES: Rotation size (default: 10MB)
        LOG_BACKUP_COUNT: Rotated files kept (default: 5)
    """
    log_file: str = field(default_factory=lambda: _get_env("LOG_FILE", _get_default_log_path()))
    log_level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO"))
    log_format: str = field(default_factory=lambda: _get_env(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ))
    console_output: bool = field(default_factory=lambda: _get_env_bool("LOG_CONSOLE", True))
    max_bytes: int = field(default_factory=lambda: _get_env_int("LOG_MAX_BYTES", 10 * 1024 * 1024))
    backup_count: int = field(default_factory=lambda: _get_env_int("LOG_BACKUP_COUNT", 5))

    @property
    def level(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.INFO)


@dataclass
class Config:
    """
    All deployer settings

    Usage:
        from dex_deployer.config import config

        print(config.deploy.confirmations)
        print(config.network.resolve("sepolia").rpc_url)
    """
    network: NetworkConfig = field(default_factory=NetworkConfig)
    signer: SignerConfig = field(default_factory=SignerConfig)
    deploy: DeployConfig = field(default_factory=DeployConfig)
    evm: EVMConfig = field(default_factory=EVMConfig)
    trading: TradingConfig = field(default_factory=TradingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def reload(cls) -> "Config":
        """Re-read .env and the environment"""
        _load_env_file()
        return cls()


# Global config instance
config = Config()


def get_config() -> Config:
    return config


def reload_config() -> Config:
    """Replace the global config with a fresh read of the environment"""
    global config
    config = Config.reload()
    return config


def _log_handlers(log_config: LoggingConfig) -> List[logging.Handler]:
    from logging.handlers import RotatingFileHandler

    handlers: List[logging.Handler] = []
    if log_config.log_file:
        Path(log_config.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            log_config.log_file,
            maxBytes=log_config.max_bytes,
            backupCount=log_config.backup_count,
            encoding="utf-8",
        ))
    if log_config.console_output:
        handlers.append(logging.StreamHandler())
    return handlers


def setup_logging(
    log_config: Optional[LoggingConfig] = None,
    logger_name: str = "dex_deployer",
) -> logging.Logger:
    """
    Attach file and console handlers to the package logger

    Calling it again replaces the handlers of the previous call, so each
    CLI invocation logs to exactly the configured destinations.

    Args:
        log_config: Settings (global config.logging if None)
        logger_name: Logger to configure; module loggers below it inherit

    Returns:
        The configured logger
    """
    log_config = log_config or config.logging

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_config.level)

    # Close first so rotated files are released
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(log_config.log_format)
    for handler in _log_handlers(log_config):
        handler.setLevel(log_config.level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if log_config.log_file:
        logger.info(f"Logging to {log_config.log_file} at {log_config.log_level}")
    return logger
