"""
Unit tests for retry logic module
"""

import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from dex_deployer.infra.retry import (
    _correlation_id,
    execute_with_retry,
    classify_error,
    CorrelationContext,
    ExponentialDelay,
    FixedDelay,
    NO_DELAY,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
    RECOVERABLE_KEYWORDS,
)
from dex_deployer.types import TxResult
from dex_deployer.errors import DeploymentError, ErrorCode, LinkError, RpcError


class TestClassifyError(unittest.TestCase):
    """Tests for error classification"""

    def test_timeout_error_is_transport(self):
        """Timeout errors should be classified as transport errors"""
        error = Exception("Connection timeout after 30 seconds")
        is_transport, error_code = classify_error(error)

        self.assertTrue(is_transport)
        self.assertEqual(error_code, ErrorCode.RPC_TIMEOUT)

    def test_network_error_is_transport(self):
        """Network errors should be classified as connection failures"""
        error = Exception("Network connection failed: ECONNRESET")
        is_transport, error_code = classify_error(error)

        self.assertTrue(is_transport)
        self.assertEqual(error_code, ErrorCode.RPC_CONNECTION_FAILED)

    def test_503_error_is_transport(self):
        error = Exception("HTTP 503 Service Unavailable")
        is_transport, error_code = classify_error(error)

        self.assertTrue(is_transport)
        self.assertEqual(error_code, ErrorCode.RPC_INVALID_RESPONSE)

    def test_revert_is_not_transport(self):
        """Ledger rejections are not transport errors"""
        error = Exception("execution reverted: STF")
        is_transport, error_code = classify_error(error)

        self.assertFalse(is_transport)
        self.assertIsNone(error_code)


class TestDelayStrategies(unittest.TestCase):

    def test_fixed_delay(self):
        delay = FixedDelay(2.0)
        self.assertEqual([delay(n) for n in (1, 2, 3)], [2.0, 2.0, 2.0])

    def test_exponential_delay_is_capped(self):
        delay = ExponentialDelay(1.0, factor=2.0, max_delay=5.0)
        self.assertEqual([delay(n) for n in (1, 2, 3, 4)], [1.0, 2.0, 4.0, 5.0])

    def test_no_delay(self):
        self.assertEqual(NO_DELAY(1), 0.0)


class TestExecuteWithRetry(unittest.TestCase):
    """Tests for execute_with_retry function"""

    @patch("dex_deployer.infra.retry.global_config")
    def test_success_on_first_attempt(self, mock_config):
        """Operation that succeeds on first attempt"""
        mock_config.deploy.max_attempts = 3
        mock_config.deploy.retry_delay = 0.1

        mock_operation = MagicMock(return_value=TxResult.success("0xabc"))

        result = execute_with_retry(mock_operation, "test_operation")

        self.assertTrue(result.is_success)
        self.assertEqual(result.tx_hash, "0xabc")
        self.assertEqual(mock_operation.call_count, 1)

    @patch("dex_deployer.infra.retry.global_config")
    @patch("dex_deployer.infra.retry.time.sleep")
    def test_success_on_third_attempt_stops(self, mock_sleep, mock_config):
        """Fails twice then succeeds: the result is returned, no fourth call"""
        mock_config.deploy.max_attempts = 3
        mock_config.deploy.retry_delay = 2.0

        mock_operation = MagicMock(side_effect=[
            DeploymentError("nonce too low"),
            DeploymentError("nonce too low"),
            TxResult.success("0xabc", contract_address="0x" + "11" * 20),
        ])

        result = execute_with_retry(mock_operation, "deploy(UniswapV3Factory)")

        self.assertTrue(result.is_success)
        self.assertEqual(mock_operation.call_count, 3)
        self.assertEqual(mock_sleep.call_count, 2)
        mock_sleep.assert_called_with(2.0)

    @patch("dex_deployer.infra.retry.time.sleep")
    def test_max_attempts_exceeded(self, mock_sleep):
        """Budget exhausted raises a fatal DeploymentError"""
        original = RpcError("connection refused")
        mock_operation = MagicMock(side_effect=original)

        with self.assertRaises(DeploymentError) as ctx:
            execute_with_retry(mock_operation, "deploy(WETH9)", max_attempts=3, delay=FixedDelay(1.0))

        self.assertEqual(mock_operation.call_count, 3)
        self.assertEqual(ctx.exception.code, ErrorCode.DEPLOY_RETRIES_EXHAUSTED)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertIs(ctx.exception.original_error, original)
        self.assertFalse(ctx.exception.should_retry)

    def test_non_retryable_exception_propagates(self):
        """Errors outside retry_on are raised on the first attempt"""
        mock_operation = MagicMock(side_effect=LinkError("bad link"))

        with self.assertRaises(LinkError):
            execute_with_retry(mock_operation, "deploy(X)", max_attempts=3, delay=NO_DELAY)

        self.assertEqual(mock_operation.call_count, 1)

    @patch("dex_deployer.infra.retry.time.sleep")
    def test_zero_delay_does_not_sleep(self, mock_sleep):
        mock_operation = MagicMock(side_effect=[DeploymentError("x"), "ok"])

        result = execute_with_retry(mock_operation, "op", max_attempts=2, delay=NO_DELAY)

        self.assertEqual(result, "ok")
        mock_sleep.assert_not_called()

    @patch("dex_deployer.infra.retry.time.sleep")
    def test_injected_delay_gets_attempt_number(self, mock_sleep):
        delay = MagicMock(return_value=0.5)
        mock_operation = MagicMock(side_effect=[DeploymentError("x"), DeploymentError("x"), "ok"])

        execute_with_retry(mock_operation, "op", max_attempts=3, delay=delay)

        self.assertEqual([c.args[0] for c in delay.call_args_list], [1, 2])

    def test_single_attempt_budget(self):
        mock_operation = MagicMock(side_effect=DeploymentError("x"))

        with self.assertRaises(DeploymentError):
            execute_with_retry(mock_operation, "op", max_attempts=1, delay=NO_DELAY)
        self.assertEqual(mock_operation.call_count, 1)


class TestRetryKeywords(unittest.TestCase):

    def test_recoverable_keywords_present(self):
        self.assertIn("timeout", RECOVERABLE_KEYWORDS)
        self.assertIn("connection", RECOVERABLE_KEYWORDS)


class TestCorrelationContext(unittest.TestCase):
    """Stage scopes and the log prefix they produce"""

    def test_ids_are_short_and_unique(self):
        ids = {generate_correlation_id() for _ in range(50)}

        self.assertEqual(len(ids), 50)
        for cid in ids:
            self.assertEqual(len(cid), 12)
            int(cid, 16)

    def test_stage_scope(self):
        self.assertIsNone(get_correlation_id())

        with CorrelationContext("deploy_core") as cid:
            self.assertTrue(cid.startswith("deploy_core_"))
            self.assertEqual(get_correlation_id(), cid)

        self.assertIsNone(get_correlation_id())

    def test_scope_restored_after_error(self):
        with self.assertRaises(LinkError):
            with CorrelationContext("deploy_tokens"):
                raise LinkError("bad artifact")

        self.assertIsNone(get_correlation_id())

    def test_mint_scope_inside_stage_scope(self):
        with CorrelationContext("deploy_tokens") as stage:
            with CorrelationContext("mint_tokens") as mint:
                self.assertEqual(get_correlation_id(), mint)
            self.assertEqual(get_correlation_id(), stage)

    def test_manual_id(self):
        token = set_correlation_id("run_7")
        try:
            self.assertEqual(get_correlation_id(), "run_7")
        finally:
            _correlation_id.reset(token)

    @patch("dex_deployer.infra.retry.time.sleep")
    def test_retry_log_prefix(self, _):
        operation = MagicMock(side_effect=[DeploymentError("nonce too low"), "ok"])

        with CorrelationContext("deploy_core") as cid:
            with self.assertLogs("dex_deployer.infra.retry", level="WARNING") as logs:
                execute_with_retry(operation, "deploy(WETH9)", max_attempts=3, delay=NO_DELAY)

        self.assertIn(f"[{cid}] [deploy(WETH9)] [1/3]", logs.output[0])


if __name__ == "__main__":
    unittest.main()
