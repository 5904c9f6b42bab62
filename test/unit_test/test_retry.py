"""
Unit tests for retry logic module
"""

import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from clmm_bootstrap.infra.retry import (
    ALREADY_EXISTS_KEYWORDS,
    DEADLINE_KEYWORDS,
    RECOVERABLE_KEYWORDS,
    SLIPPAGE_KEYWORDS,
    CorrelationContext,
    classify_error,
    classify_result,
    execute_with_retry,
    generate_correlation_id,
    get_correlation_id,
    log_with_correlation,
    set_correlation_id,
)
from clmm_bootstrap.types import TxResult
from clmm_bootstrap.errors import ErrorCode, TransactionError, TransportUnavailable


class TestClassifyError(unittest.TestCase):
    """Tests for error classification"""

    def test_timeout_error_is_recoverable(self):
        """Timeout errors should be classified as recoverable"""
        error = Exception("Connection timeout after 30 seconds")
        is_recoverable, is_slippage, error_code = classify_error(error)

        self.assertTrue(is_recoverable)
        self.assertFalse(is_slippage)
        self.assertEqual(error_code, ErrorCode.RPC_TIMEOUT)

    def test_network_error_is_recoverable(self):
        """Network errors should be classified as recoverable"""
        error = Exception("Network connection failed: ECONNRESET")
        is_recoverable, is_slippage, error_code = classify_error(error)

        self.assertTrue(is_recoverable)
        self.assertEqual(error_code, ErrorCode.RPC_CONNECTION_FAILED)

    def test_rate_limit_error_is_recoverable(self):
        error = Exception("Too many requests, rate limit exceeded")
        is_recoverable, _, error_code = classify_error(error)

        self.assertTrue(is_recoverable)
        self.assertEqual(error_code, ErrorCode.RPC_RATE_LIMITED)

    def test_blockhash_error_is_recoverable(self):
        """An expired blockhash is cured by rebuilding the transaction"""
        is_recoverable, _, _ = classify_error(Exception("Blockhash not found"))
        self.assertTrue(is_recoverable)

    def test_slippage_is_final(self):
        """Slippage is reported, never retried with the same bounds"""
        error = Exception("Program log: Error Code: PriceSlippageCheck. Error Message: Price slippage check.")
        is_recoverable, is_slippage, error_code = classify_error(error)

        self.assertFalse(is_recoverable)
        self.assertTrue(is_slippage)
        self.assertEqual(error_code, ErrorCode.SLIPPAGE_EXCEEDED)

    def test_already_in_use_is_account_exists(self):
        error = Exception("Allocate: account Address { address: abc, base: None } already in use")
        is_recoverable, is_slippage, error_code = classify_error(error)

        self.assertFalse(is_recoverable)
        self.assertFalse(is_slippage)
        self.assertEqual(error_code, ErrorCode.TX_ACCOUNT_EXISTS)

    def test_already_exists_wins_over_transport_keywords(self):
        """A program rejection that mentions the network is still final"""
        error = Exception("connection reset; account already in use")
        is_recoverable, _, error_code = classify_error(error)

        self.assertFalse(is_recoverable)
        self.assertEqual(error_code, ErrorCode.TX_ACCOUNT_EXISTS)

    def test_transaction_too_old_is_deadline(self):
        error = Exception("Program log: AnchorError occurred. Error Code: TransactionTooOld.")
        is_recoverable, _, error_code = classify_error(error)

        self.assertFalse(is_recoverable)
        self.assertEqual(error_code, ErrorCode.DEADLINE_EXPIRED)

    def test_typed_error_keeps_its_recoverability(self):
        """ClmmError subclasses carry their own code and flag"""
        error = TransportUnavailable.rate_limited("https://rpc.example.com")
        self.assertEqual(classify_error(error), (True, False, ErrorCode.RPC_RATE_LIMITED))

        error = TransactionError.simulation_failed("custom program error: 0xbc4", [])
        self.assertEqual(classify_error(error), (False, False, ErrorCode.TX_SIMULATION_FAILED))

    def test_preflight_logs_are_classified(self):
        """Logs embedded in a preflight failure decide the code"""
        error = TransportUnavailable.preflight_failed(
            "https://rpc.example.com",
            "custom program error: 0x0",
            ["Allocate: account Address { address: abc, base: None } already in use"],
        )
        _, _, error_code = classify_error(error)
        self.assertEqual(error_code, ErrorCode.TX_ACCOUNT_EXISTS)

    def test_unknown_error_not_recoverable(self):
        """Unknown errors should not be classified as recoverable"""
        error = Exception("Unexpected error in program execution")
        is_recoverable, is_slippage, error_code = classify_error(error)

        self.assertFalse(is_recoverable)
        self.assertFalse(is_slippage)
        self.assertIsNone(error_code)

    def test_503_error_is_recoverable(self):
        """HTTP 503 errors should be recoverable"""
        is_recoverable, _, _ = classify_error(Exception("Service temporarily unavailable: 503"))
        self.assertTrue(is_recoverable)


class TestClassifyResult(unittest.TestCase):
    """Tests for classification of failed results"""

    def test_code_from_logs(self):
        result = TxResult.failed(
            "custom program error: 0x1771",
            logs=["Program log: AnchorError occurred. Error Code: TransactionTooOld."],
        )
        self.assertEqual(classify_result(result), ErrorCode.DEADLINE_EXPIRED)

    def test_no_code_for_unknown_failure(self):
        self.assertIsNone(classify_result(TxResult.failed("custom program error: 0x1")))


class TestExecuteWithRetry(unittest.TestCase):
    """Tests for execute_with_retry function"""

    @patch("clmm_bootstrap.infra.retry.global_config")
    def test_success_on_first_attempt(self, mock_config):
        """Operation that succeeds on first attempt"""
        mock_config.tx.max_retries = 5
        mock_config.tx.retry_delay = 0.1

        mock_operation = MagicMock(return_value=TxResult.success("test_signature"))

        result = execute_with_retry(mock_operation, "test_operation")

        self.assertTrue(result.is_success)
        self.assertEqual(result.signature, "test_signature")
        self.assertEqual(mock_operation.call_count, 1)

    @patch("clmm_bootstrap.infra.retry.global_config")
    @patch("clmm_bootstrap.infra.retry.time.sleep")
    def test_success_after_retries(self, mock_sleep, mock_config):
        """Operation that succeeds after retries"""
        mock_config.tx.max_retries = 5
        mock_config.tx.retry_delay = 2.0

        # Fail twice then succeed
        mock_operation = MagicMock(side_effect=[
            TxResult.failed("timeout error", recoverable=True),
            TxResult.failed("timeout error", recoverable=True),
            TxResult.success("test_signature"),
        ])

        result = execute_with_retry(mock_operation, "test_operation")

        self.assertTrue(result.is_success)
        self.assertEqual(mock_operation.call_count, 3)
        # Linear backoff
        self.assertEqual([c.args[0] for c in mock_sleep.call_args_list], [2.0, 4.0])

    @patch("clmm_bootstrap.infra.retry.global_config")
    def test_non_recoverable_error_no_retry(self, mock_config):
        """Non-recoverable error should not trigger retry"""
        mock_config.tx.max_retries = 5
        mock_config.tx.retry_delay = 0.1

        mock_operation = MagicMock(return_value=TxResult.failed("program rejected", recoverable=False))

        result = execute_with_retry(mock_operation, "test_operation")

        self.assertFalse(result.is_success)
        self.assertEqual(mock_operation.call_count, 1)

    @patch("clmm_bootstrap.infra.retry.time.sleep")
    def test_max_retries_exceeded(self, mock_sleep):
        """Should fail after max retries exceeded"""
        mock_operation = MagicMock(return_value=TxResult.failed("timeout error", recoverable=True))

        result = execute_with_retry(mock_operation, "test_operation", max_retries=3, retry_delay=0.1)

        self.assertFalse(result.is_success)
        self.assertEqual(mock_operation.call_count, 3)
        self.assertTrue(result.recoverable)

    @patch("clmm_bootstrap.infra.retry.time.sleep")
    def test_exception_handling(self, mock_sleep):
        """Exceptions should be caught and classified"""
        # Exception on first call, success on second
        mock_operation = MagicMock(side_effect=[
            TransportUnavailable.timeout("https://rpc.example.com", 30.0),
            TxResult.success("test_signature"),
        ])

        result = execute_with_retry(mock_operation, "test_operation", max_retries=3, retry_delay=0.1)

        self.assertTrue(result.is_success)
        self.assertEqual(mock_operation.call_count, 2)

    def test_already_exists_exception_not_retried(self):
        """Resending cannot help when the target account already exists"""
        mock_operation = MagicMock(side_effect=TransactionError.simulation_failed(
            "custom program error: 0x0",
            ["Allocate: account Address { address: abc, base: None } already in use"],
        ))

        result = execute_with_retry(mock_operation, "tier1_bundle0", max_retries=3, retry_delay=0)

        self.assertEqual(mock_operation.call_count, 1)
        self.assertFalse(result.recoverable)
        self.assertEqual(result.error_code, ErrorCode.TX_ACCOUNT_EXISTS.value)
        self.assertEqual(len(result.logs), 1)

    def test_slippage_exception_not_retried(self):
        mock_operation = MagicMock(side_effect=Exception("Price slippage check"))

        result = execute_with_retry(mock_operation, "mint_tokenized_position", max_retries=3, retry_delay=0)

        self.assertEqual(mock_operation.call_count, 1)
        self.assertEqual(result.error_code, ErrorCode.SLIPPAGE_EXCEEDED.value)

    def test_failed_result_gets_error_code(self):
        """Failed results without a code are classified from their text and logs"""
        mock_operation = MagicMock(return_value=TxResult.failed(
            "custom program error: 0x1771",
            logs=["Program log: Error Code: TransactionTooOld."],
        ))

        result = execute_with_retry(mock_operation, "mint_tokenized_position", max_retries=2, retry_delay=0)

        self.assertEqual(mock_operation.call_count, 1)
        self.assertEqual(result.error_code, ErrorCode.DEADLINE_EXPIRED.value)

    @patch("clmm_bootstrap.infra.retry.global_config")
    def test_custom_max_retries(self, mock_config):
        """Custom max_retries should override config"""
        mock_config.tx.max_retries = 10
        mock_config.tx.retry_delay = 0.0

        mock_operation = MagicMock(return_value=TxResult.failed("error", recoverable=True))

        execute_with_retry(mock_operation, "test_operation", max_retries=2)

        self.assertEqual(mock_operation.call_count, 2)

    def test_non_recoverable_exception(self):
        """Non-recoverable exceptions should not trigger retry"""
        mock_operation = MagicMock(side_effect=Exception("Unknown program error"))

        result = execute_with_retry(mock_operation, "test_operation", max_retries=5, retry_delay=0)

        self.assertFalse(result.is_success)
        self.assertEqual(mock_operation.call_count, 1)


class TestRetryKeywords(unittest.TestCase):
    """Tests for retry keyword lists"""

    def test_recoverable_keywords_present(self):
        essential_keywords = ["timeout", "connection", "network", "rate limit", "blockhash"]
        for keyword in essential_keywords:
            self.assertIn(keyword, RECOVERABLE_KEYWORDS)

    def test_program_rejection_keywords_present(self):
        self.assertIn("slippage", SLIPPAGE_KEYWORDS)
        self.assertIn("already in use", ALREADY_EXISTS_KEYWORDS)
        self.assertIn("transactiontooold", DEADLINE_KEYWORDS)


class TestCorrelationContext(unittest.TestCase):
    """Tests for correlation ID context management"""

    def test_generate_correlation_id(self):
        cid1 = generate_correlation_id()
        cid2 = generate_correlation_id()

        # Should be 12 hex characters
        self.assertEqual(len(cid1), 12)
        self.assertTrue(all(c in "0123456789abcdef" for c in cid1))
        self.assertNotEqual(cid1, cid2)

    def test_correlation_context_basic(self):
        self.assertIsNone(get_correlation_id())

        with CorrelationContext() as cid:
            self.assertEqual(get_correlation_id(), cid)
            self.assertEqual(len(cid), 12)

        self.assertIsNone(get_correlation_id())

    def test_correlation_context_with_prefix(self):
        with CorrelationContext("add_liquidity") as cid:
            self.assertTrue(cid.startswith("add_liquidity_"))

    def test_nested_correlation_context(self):
        with CorrelationContext("outer") as outer_cid:
            with CorrelationContext("inner") as inner_cid:
                self.assertEqual(get_correlation_id(), inner_cid)
            self.assertEqual(get_correlation_id(), outer_cid)

        self.assertIsNone(get_correlation_id())

    def test_set_correlation_id_manual(self):
        token = set_correlation_id("test_cid_12345")
        try:
            self.assertEqual(get_correlation_id(), "test_cid_12345")
        finally:
            from clmm_bootstrap.infra.retry import _correlation_id
            _correlation_id.reset(token)

        self.assertIsNone(get_correlation_id())

    def test_log_with_correlation_prefixes_message(self):
        log = MagicMock()
        with CorrelationContext("add_liquidity") as cid:
            log_with_correlation(20, "Confirmed", "tier0_bundle0", 1, 3, log=log)

        level, message = log.log.call_args[0]
        self.assertEqual(level, 20)
        self.assertEqual(message, f"[{cid}] [tier0_bundle0] [1/3] Confirmed")
        self.assertEqual(log.log.call_args[1]["extra"]["correlation_id"], cid)


if __name__ == "__main__":
    unittest.main()
