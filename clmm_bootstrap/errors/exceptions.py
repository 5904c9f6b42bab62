"""
Exception definitions for the CLMM bootstrap client
"""

from enum import Enum
from typing import Optional, List
from decimal import Decimal


class ErrorCode(Enum):
    """
    Unified error codes for bootstrap operations

    1xxx - Transport errors
    2xxx - Transaction errors
    3xxx - Slippage/Deadline errors
    4xxx - Pool/Planning errors
    5xxx - Input errors
    6xxx - Signer errors
    7xxx - Operation errors
    8xxx - Derivation errors
    9xxx - Configuration errors
    """
    # Transport errors (recoverable)
    RPC_CONNECTION_FAILED = "1001"
    RPC_TIMEOUT = "1002"
    RPC_RATE_LIMITED = "1003"
    RPC_INVALID_RESPONSE = "1004"
    RPC_PREFLIGHT_FAILED = "1005"

    # Transaction errors
    TX_SIMULATION_FAILED = "2001"
    TX_SEND_FAILED = "2002"
    TX_CONFIRMATION_FAILED = "2003"
    TX_TOO_LARGE = "2004"
    TX_ACCOUNT_EXISTS = "2005"

    # Slippage/Deadline errors (recoverable with fresh inputs)
    SLIPPAGE_EXCEEDED = "3001"
    DEADLINE_EXPIRED = "3002"

    # Pool/Planning errors
    POOL_NOT_FOUND = "4001"
    POOL_INVALID_STATE = "4002"
    FACTORY_NOT_INITIALIZED = "4003"
    PLANNING_BLOCKED = "4004"

    # Input errors
    INVALID_TICK = "5001"
    INVALID_RANGE = "5002"
    INVALID_FEE_TIER = "5003"

    # Signer errors
    SIGNER_NOT_CONFIGURED = "6001"
    SIGNER_FAILED = "6002"

    # Operation errors
    OPERATION_CANCELLED = "7001"
    OPERATION_FAILED = "7002"

    # Derivation errors
    DERIVATION_EXHAUSTED = "8001"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"


class ClmmError(Exception):
    """
    Base exception for all CLMM bootstrap errors

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


class TransportUnavailable(ClmmError):
    """
    Ledger transport errors - typically recoverable

    Raised when:
    - Connection to RPC endpoint fails
    - Request times out
    - Rate limit is hit
    - Invalid response received
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RPC_CONNECTION_FAILED,
        original_error: Optional[Exception] = None,
        endpoint: Optional[str] = None,
        recoverable: bool = True,
        logs: Optional[List[str]] = None,
    ):
        details = {}
        if endpoint:
            details["endpoint"] = endpoint
        if logs:
            details["logs"] = logs
        super().__init__(
            message,
            code,
            recoverable=recoverable,
            original_error=original_error,
            details=details,
        )
        self.endpoint = endpoint
        self.logs = logs or []

    @classmethod
    def connection_failed(cls, endpoint: str, error: Exception = None) -> "TransportUnavailable":
        return cls(
            f"Failed to connect to RPC endpoint: {endpoint}",
            ErrorCode.RPC_CONNECTION_FAILED,
            original_error=error,
            endpoint=endpoint,
        )

    @classmethod
    def timeout(cls, endpoint: str, timeout_seconds: float) -> "TransportUnavailable":
        return cls(
            f"RPC request timed out after {timeout_seconds}s",
            ErrorCode.RPC_TIMEOUT,
            endpoint=endpoint,
        )

    @classmethod
    def rate_limited(cls, endpoint: str) -> "TransportUnavailable":
        return cls(
            "RPC rate limit exceeded",
            ErrorCode.RPC_RATE_LIMITED,
            endpoint=endpoint,
        )

    @classmethod
    def preflight_failed(cls, endpoint: str, error: str, logs: Optional[List[str]] = None) -> "TransportUnavailable":
        log_text = "; ".join(logs) if logs else ""
        message = f"Transaction preflight failed: {error}"
        if log_text:
            message = f"{message} ({log_text})"
        return cls(
            message,
            ErrorCode.RPC_PREFLIGHT_FAILED,
            endpoint=endpoint,
            recoverable=False,
            logs=logs,
        )


class InvalidTick(ClmmError):
    """
    Tick index rejected before any network call

    Raised when:
    - Tick is outside the program's [MIN_TICK, MAX_TICK]
    - Tick is not a multiple of the fee tier's tick spacing
    """

    def __init__(self, message: str, tick: Optional[int] = None, tick_spacing: Optional[int] = None):
        super().__init__(
            message,
            ErrorCode.INVALID_TICK,
            recoverable=False,
            details={"tick": tick, "tick_spacing": tick_spacing},
        )
        self.tick = tick
        self.tick_spacing = tick_spacing

    @classmethod
    def out_of_bounds(cls, tick: int, min_tick: int, max_tick: int) -> "InvalidTick":
        return cls(f"Tick {tick} outside [{min_tick}, {max_tick}]", tick=tick)

    @classmethod
    def not_aligned(cls, tick: int, tick_spacing: int) -> "InvalidTick":
        return cls(
            f"Tick {tick} is not a multiple of tick spacing {tick_spacing}",
            tick=tick,
            tick_spacing=tick_spacing,
        )


class InvalidRange(ClmmError):
    """Tick range rejected because tick_lower >= tick_upper"""

    def __init__(self, tick_lower: int, tick_upper: int):
        super().__init__(
            f"Invalid tick range: lower {tick_lower} must be below upper {tick_upper}",
            ErrorCode.INVALID_RANGE,
            recoverable=False,
            details={"tick_lower": tick_lower, "tick_upper": tick_upper},
        )
        self.tick_lower = tick_lower
        self.tick_upper = tick_upper


class InvalidFeeTier(ClmmError):
    """Fee tier the program does not recognise"""

    def __init__(self, fee: int, supported: Optional[List[int]] = None):
        supported = sorted(supported or [])
        super().__init__(
            f"Unknown fee tier {fee}; supported tiers: {supported}",
            ErrorCode.INVALID_FEE_TIER,
            recoverable=False,
            details={"fee": fee, "supported": supported},
        )
        self.fee = fee


class DerivationExhausted(ClmmError):
    """
    No salt in the bounded search space produced an off-curve address

    Fatal and surfaced verbatim.
    """

    def __init__(self, domain_tag: bytes, program_id: str):
        super().__init__(
            f"Unable to find a viable bump for seed {domain_tag!r} under program {program_id}",
            ErrorCode.DERIVATION_EXHAUSTED,
            recoverable=False,
            details={"domain_tag": domain_tag.hex(), "program_id": program_id},
        )
        self.domain_tag = domain_tag
        self.program_id = program_id


class PlanningBlocked(ClmmError):
    """
    Existence of a required account could not be determined

    Recoverable after a fresh probe.
    """

    def __init__(self, unknown_addresses: List[str]):
        super().__init__(
            f"Cannot plan: existence unknown for {len(unknown_addresses)} account(s): "
            f"{', '.join(unknown_addresses)}",
            ErrorCode.PLANNING_BLOCKED,
            recoverable=True,
            details={"addresses": list(unknown_addresses)},
        )
        self.unknown_addresses = list(unknown_addresses)


class AlreadyExists(ClmmError):
    """
    A deterministic account was created by a concurrent actor

    Recovered locally by re-probing; never surfaced as a failure.
    """

    def __init__(self, addresses: List[str], signature: Optional[str] = None):
        super().__init__(
            f"Account(s) already exist: {', '.join(addresses)}",
            ErrorCode.TX_ACCOUNT_EXISTS,
            recoverable=True,
            details={"addresses": list(addresses), "signature": signature},
        )
        self.addresses = list(addresses)


class SlippageExceeded(ClmmError):
    """
    Implied deposit amounts fall below the caller's minimums - recoverable with fresh inputs
    """

    def __init__(
        self,
        message: str,
        expected: Optional[Decimal] = None,
        actual: Optional[Decimal] = None,
        slippage_bps: Optional[int] = None,
    ):
        super().__init__(
            message,
            ErrorCode.SLIPPAGE_EXCEEDED,
            recoverable=True,
            details={
                "expected": str(expected) if expected is not None else None,
                "actual": str(actual) if actual is not None else None,
                "slippage_bps": slippage_bps,
            },
        )
        self.expected = expected
        self.actual = actual
        self.slippage_bps = slippage_bps

    @classmethod
    def below_minimum(cls, token: str, minimum: int, implied: int) -> "SlippageExceeded":
        return cls(
            f"Implied {token} amount {implied} is below the minimum {minimum}",
            expected=Decimal(minimum),
            actual=Decimal(implied),
        )

    @classmethod
    def on_chain(cls, error: str) -> "SlippageExceeded":
        return cls(f"Program rejected the mint on slippage: {error}")


class DeadlineExpired(ClmmError):
    """Submission attempted after the caller's deadline"""

    def __init__(self, deadline: int, now: Optional[int] = None):
        message = f"Deadline {deadline} has passed"
        if now is not None:
            message += f" (now {now})"
        super().__init__(
            message,
            ErrorCode.DEADLINE_EXPIRED,
            recoverable=True,
            details={"deadline": deadline, "now": now},
        )
        self.deadline = deadline
        self.now = now


class PoolUnavailable(ClmmError):
    """
    Pool not usable - not recoverable

    Raised when:
    - Pool account not found when it must exist
    - Pool or program accounts are in an inconsistent state
    """

    def __init__(
        self,
        message: str,
        pool_address: Optional[str] = None,
        code: ErrorCode = ErrorCode.POOL_INVALID_STATE,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            details={"pool_address": pool_address},
        )
        self.pool_address = pool_address

    @classmethod
    def not_found(cls, pool_address: str) -> "PoolUnavailable":
        return cls(
            f"Pool not found: {pool_address}",
            pool_address=pool_address,
            code=ErrorCode.POOL_NOT_FOUND,
        )

    @classmethod
    def invalid_state(cls, pool_address: str, reason: str) -> "PoolUnavailable":
        return cls(
            f"Pool has invalid state: {reason}",
            pool_address=pool_address,
            code=ErrorCode.POOL_INVALID_STATE,
        )

    @classmethod
    def factory_missing(cls, factory_address: str) -> "PoolUnavailable":
        return cls(
            f"Program factory {factory_address} is not initialized",
            code=ErrorCode.FACTORY_NOT_INITIALIZED,
        )


class TransactionError(ClmmError):
    """
    Transaction execution errors

    Raised when:
    - Transaction simulation fails
    - Transaction send fails
    - A bundle cannot fit the transport ceiling
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TX_SEND_FAILED,
        signature: Optional[str] = None,
        logs: Optional[list] = None,
        recoverable: bool = False,
    ):
        super().__init__(
            message,
            code,
            recoverable=recoverable,
            details={"signature": signature, "logs": logs},
        )
        self.signature = signature
        self.logs = logs or []

    @classmethod
    def simulation_failed(cls, error: str, logs: list = None) -> "TransactionError":
        return cls(
            f"Transaction simulation failed: {error}",
            ErrorCode.TX_SIMULATION_FAILED,
            logs=logs,
            recoverable=False,
        )

    @classmethod
    def send_failed(cls, error: str, signature: Optional[str] = None) -> "TransactionError":
        # Some send failures are recoverable (network issues)
        recoverable = "timeout" in error.lower() or "connection" in error.lower()
        return cls(
            f"Failed to send transaction: {error}",
            ErrorCode.TX_SEND_FAILED,
            signature=signature,
            recoverable=recoverable,
        )

    @classmethod
    def too_large(cls, size: int, limit: int) -> "TransactionError":
        return cls(
            f"Instruction does not fit in a single transaction: {size} bytes > {limit} bytes",
            ErrorCode.TX_TOO_LARGE,
        )


class SignerError(ClmmError):
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
            "No signer configured. Provide a keypair or SOLANA_KEYPAIR_PATH.",
            ErrorCode.SIGNER_NOT_CONFIGURED,
        )

    @classmethod
    def failed(cls, reason: str) -> "SignerError":
        return cls(f"Signing failed: {reason}", ErrorCode.SIGNER_FAILED)


class ConfigurationError(ClmmError):
    """
    Configuration-related errors

    Raised when:
    - Required configuration or request input is missing
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


class OperationCancelled(ClmmError):
    """User cancelled before all tiers were submitted; committed tiers stay committed"""

    def __init__(self, committed_tiers: Optional[List[int]] = None):
        committed = list(committed_tiers or [])
        super().__init__(
            f"Operation cancelled after committing tiers {committed}",
            ErrorCode.OPERATION_CANCELLED,
            recoverable=True,
            details={"committed_tiers": committed},
        )
        self.committed_tiers = committed
