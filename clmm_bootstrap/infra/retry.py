"""
Retry Logic Helper Module

Provides retry functionality for bootstrap transactions.
Includes structured logging with correlation IDs for transaction tracing.
"""

import logging
import time
import uuid
import contextvars
from typing import Callable, Tuple, Optional

from ..types import TxResult
from ..errors import ClmmError, ErrorCode
from ..config import config as global_config

logger = logging.getLogger(__name__)

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
        with CorrelationContext("add_liquidity") as cid:
            logger.info(f"[{cid}] Starting operation")
            result = execute_with_retry(...)
    """

    def __init__(self, prefix: Optional[str] = None):
        """
        Initialize correlation context.

        Args:
            prefix: Optional prefix for the correlation ID (e.g., "add_liquidity")
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
    max_retries: Optional[int] = None,
    log: Optional[logging.Logger] = None,
    **extra
):
    """
    Log message with correlation ID and structured context.

    Args:
        level: Logging level (logging.INFO, logging.WARNING, etc.)
        message: Log message
        operation_name: Name of the operation being executed
        attempt: Current attempt number (1-indexed)
        max_retries: Maximum number of retries
        log: Logger to write to (defaults to this module's logger)
        **extra: Additional context fields
    """
    cid = get_correlation_id()

    parts = []
    if cid:
        parts.append(f"[{cid}]")
    parts.append(f"[{operation_name}]")
    if attempt is not None and max_retries is not None:
        parts.append(f"[{attempt}/{max_retries}]")
    parts.append(message)

    log_message = " ".join(parts)

    # Add extra context for structured logging systems
    extra_context = {
        "correlation_id": cid,
        "operation": operation_name,
        "attempt": attempt,
        "max_retries": max_retries,
        **extra
    }

    (log or logger).log(level, log_message, extra=extra_context)


# Error keywords for classification
RECOVERABLE_KEYWORDS = [
    "timeout", "timed out", "connection", "network", "rate limit",
    "blockhash", "too many requests", "503", "502", "504",
    "temporarily unavailable", "service unavailable",
    "econnreset", "enotfound", "etimedout",
    "socket hang up", "request failed",
]

SLIPPAGE_KEYWORDS = [
    "slippage", "price moved", "price slippage check",
    "amount out less than minimum", "exceeds slippage",
]

# Deterministic accounts someone else (or an earlier attempt) already created
ALREADY_EXISTS_KEYWORDS = [
    "already in use", "already exists", "already initialized",
]

DEADLINE_KEYWORDS = [
    "transaction too old", "transactiontooold", "deadline",
]


def classify_error(error: Exception) -> Tuple[bool, bool, Optional[ErrorCode]]:
    """
    Classify an error to determine if it's recoverable or slippage-related.

    Program rejections (account already exists, deadline passed) are checked
    first: they are final for the transaction that produced them, even when
    the message also mentions a transport keyword.

    Args:
        error: The exception to classify

    Returns:
        Tuple of (is_recoverable, is_slippage, error_code)
    """
    # Program logs often carry the only readable reason for a rejection
    logs = getattr(error, "logs", None) or []
    error_str = " ".join([str(error), *logs]).lower()

    if any(keyword in error_str for keyword in ALREADY_EXISTS_KEYWORDS):
        return False, False, ErrorCode.TX_ACCOUNT_EXISTS

    if any(keyword in error_str for keyword in DEADLINE_KEYWORDS):
        return False, False, ErrorCode.DEADLINE_EXPIRED

    if any(keyword in error_str for keyword in SLIPPAGE_KEYWORDS):
        return False, True, ErrorCode.SLIPPAGE_EXCEEDED

    # Typed errors already know whether they are recoverable
    if isinstance(error, ClmmError):
        return error.recoverable, False, error.code

    is_recoverable = any(keyword in error_str for keyword in RECOVERABLE_KEYWORDS)

    error_code = None
    if is_recoverable:
        if "timeout" in error_str or "timed out" in error_str:
            error_code = ErrorCode.RPC_TIMEOUT
        elif any(kw in error_str for kw in ["connection", "network", "socket"]):
            error_code = ErrorCode.RPC_CONNECTION_FAILED
        elif "rate limit" in error_str or "too many requests" in error_str:
            error_code = ErrorCode.RPC_RATE_LIMITED
        else:
            error_code = ErrorCode.RPC_INVALID_RESPONSE

    return is_recoverable, False, error_code


def classify_result(result: TxResult) -> Optional[ErrorCode]:
    """Error code implied by a failed TxResult's error text and logs"""
    text = " ".join([result.error or "", *result.logs])
    _, _, error_code = classify_error(Exception(text))
    return error_code


def execute_with_retry(
    operation: Callable[[], TxResult],
    operation_name: str,
    max_retries: Optional[int] = None,
    retry_delay: Optional[float] = None,
) -> TxResult:
    """
    Execute an operation with automatic retry for recoverable errors.

    Wraps building and sending one bundle, with linear backoff on transient
    failures (2s, 4s, 6s...). Each attempt rebuilds the transaction, so a
    retry always carries a fresh blockhash. Slippage, deadline and
    already-exists rejections are returned at once: resending the same
    instruction cannot change their outcome.

    Args:
        operation: Callable that returns a TxResult
        operation_name: Name for logging purposes
        max_retries: Maximum attempts (defaults to config.tx.max_retries)
        retry_delay: Base delay between retries in seconds (defaults to config.tx.retry_delay)

    Returns:
        TxResult from the operation

    Example:
        def send_bundle():
            return tx_builder.build_and_send(bundle.instructions)

        result = execute_with_retry(send_bundle, "tier1_bundle0")
    """
    max_retries = max_retries if max_retries is not None else global_config.tx.max_retries
    retry_delay = retry_delay if retry_delay is not None else global_config.tx.retry_delay
    last_error: Optional[Exception] = None

    for attempt in range(max_retries):
        try:
            result = operation()

            if result.is_success:
                if attempt > 0:
                    log_with_correlation(
                        logging.INFO,
                        f"Succeeded after {attempt + 1} attempts",
                        operation_name,
                        attempt + 1,
                        max_retries,
                        signature=result.signature,
                    )
                return result

            if result.is_failed and result.error_code is None:
                error_code = classify_result(result)
                if error_code is not None:
                    result.error_code = error_code.value

            # Check if the result indicates a recoverable error
            if result.recoverable and attempt < max_retries - 1:
                log_with_correlation(
                    logging.WARNING,
                    f"Recoverable error: {result.error}",
                    operation_name,
                    attempt + 1,
                    max_retries,
                    error=result.error,
                )
                time.sleep(retry_delay * (attempt + 1))  # Linear backoff: 2s, 4s, 6s...
                continue

            # Non-recoverable error or max retries reached
            return result

        except Exception as e:
            last_error = e
            is_recoverable, is_slippage, error_code = classify_error(e)
            code_value = error_code.value if error_code else None
            logs = getattr(e, "logs", None) or []

            if is_slippage:
                log_with_correlation(
                    logging.WARNING,
                    f"Slippage error: {e}",
                    operation_name,
                    attempt + 1,
                    max_retries,
                    error_type="slippage",
                )
                return TxResult.failed(str(e), error_code=code_value, logs=logs)

            # Recoverable network/timeout errors
            if is_recoverable and attempt < max_retries - 1:
                log_with_correlation(
                    logging.WARNING,
                    f"Recoverable error: {e}",
                    operation_name,
                    attempt + 1,
                    max_retries,
                    error_type="recoverable",
                )
                time.sleep(retry_delay * (attempt + 1))  # Linear backoff: 2s, 4s, 6s...
                continue

            log_with_correlation(
                logging.ERROR,
                f"Failed: {e}",
                operation_name,
                attempt + 1,
                max_retries,
                error_type="recoverable" if is_recoverable else "fatal",
            )
            return TxResult.failed(
                str(e),
                recoverable=is_recoverable,
                error_code=code_value,
                logs=logs,
            )

    # Max retries exceeded
    error_msg = f"Max retries ({max_retries}) exceeded"
    if last_error:
        error_msg += f". Last error: {last_error}"

    log_with_correlation(
        logging.ERROR,
        error_msg,
        operation_name,
        max_retries,
        max_retries,
    )
    return TxResult.failed(error_msg, recoverable=True)
