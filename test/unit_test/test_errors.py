"""
Test Errors Module

Tests for clmm_bootstrap.errors package.
"""

import sys
from decimal import Decimal
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))


def test_error_code():
    """Test ErrorCode enum"""
    from clmm_bootstrap.errors import ErrorCode

    print("Testing ErrorCode...")

    assert ErrorCode.RPC_CONNECTION_FAILED.value == "1001"
    assert ErrorCode.TX_ACCOUNT_EXISTS.value == "2005"
    assert ErrorCode.SLIPPAGE_EXCEEDED.value == "3001"
    assert ErrorCode.PLANNING_BLOCKED.value == "4004"
    assert ErrorCode.INVALID_TICK.value == "5001"
    assert ErrorCode.DERIVATION_EXHAUSTED.value == "8001"

    print("  ErrorCode: PASSED")


def test_clmm_error():
    """Test ClmmError base class"""
    from clmm_bootstrap.errors import ClmmError, ErrorCode

    print("Testing ClmmError...")

    error = ClmmError(
        message="Test error",
        code=ErrorCode.RPC_CONNECTION_FAILED,
        recoverable=True,
    )

    # __str__ returns "[code] message" format
    assert "[1001] Test error" == str(error)
    assert error.code == ErrorCode.RPC_CONNECTION_FAILED
    assert error.should_retry
    assert error.details == {}

    print("  ClmmError: PASSED")


def test_transport_unavailable():
    """Test TransportUnavailable constructors"""
    from clmm_bootstrap.errors import TransportUnavailable, ErrorCode

    print("Testing TransportUnavailable...")

    error1 = TransportUnavailable.connection_failed("https://rpc.example.com")
    assert error1.code == ErrorCode.RPC_CONNECTION_FAILED
    assert error1.recoverable
    assert error1.endpoint == "https://rpc.example.com"

    error2 = TransportUnavailable.timeout("https://rpc.example.com", 30.0)
    assert error2.code == ErrorCode.RPC_TIMEOUT
    assert error2.recoverable

    error3 = TransportUnavailable.rate_limited("https://rpc.example.com")
    assert error3.code == ErrorCode.RPC_RATE_LIMITED

    # Preflight rejections are deterministic and carry the program logs
    error4 = TransportUnavailable.preflight_failed(
        "https://rpc.example.com", "custom program error: 0x0", ["account already in use"]
    )
    assert not error4.recoverable
    assert error4.logs == ["account already in use"]
    assert "already in use" in str(error4)

    print("  TransportUnavailable: PASSED")


def test_input_errors():
    """Test input validation errors are not recoverable"""
    from clmm_bootstrap.errors import InvalidTick, InvalidRange, InvalidFeeTier, ErrorCode

    print("Testing input errors...")

    tick = InvalidTick.not_aligned(5, 10)
    assert tick.code == ErrorCode.INVALID_TICK
    assert tick.tick == 5
    assert tick.tick_spacing == 10
    assert not tick.recoverable

    bounds = InvalidTick.out_of_bounds(300000, -221818, 221818)
    assert "300000" in str(bounds)

    rng = InvalidRange(10, 0)
    assert rng.code == ErrorCode.INVALID_RANGE
    assert rng.details == {"tick_lower": 10, "tick_upper": 0}

    fee = InvalidFeeTier(123, [3000, 500])
    assert fee.details["supported"] == [500, 3000]

    print("  Input errors: PASSED")


def test_derivation_exhausted():
    """Test DerivationExhausted is fatal"""
    from clmm_bootstrap.errors import DerivationExhausted, ErrorCode

    error = DerivationExhausted(b"p", "11111111111111111111111111111111")
    assert error.code == ErrorCode.DERIVATION_EXHAUSTED
    assert not error.recoverable
    assert error.details["domain_tag"] == "70"


def test_planning_and_existence_errors():
    """Test PlanningBlocked and AlreadyExists"""
    from clmm_bootstrap.errors import PlanningBlocked, AlreadyExists

    blocked = PlanningBlocked(["addr1", "addr2"])
    assert blocked.recoverable
    assert blocked.unknown_addresses == ["addr1", "addr2"]

    exists = AlreadyExists(["addr1"], signature="sig")
    assert exists.addresses == ["addr1"]
    assert exists.details["signature"] == "sig"


def test_slippage_exceeded():
    """Test SlippageExceeded exception"""
    from clmm_bootstrap.errors import SlippageExceeded, ErrorCode

    print("Testing SlippageExceeded...")

    error = SlippageExceeded.below_minimum("token0", minimum=1000, implied=900)
    assert error.code == ErrorCode.SLIPPAGE_EXCEEDED
    assert error.expected == Decimal(1000)
    assert error.actual == Decimal(900)
    assert error.recoverable

    on_chain = SlippageExceeded.on_chain("Price slippage check")
    assert "slippage" in on_chain.message.lower()

    print("  SlippageExceeded: PASSED")


def test_deadline_expired():
    """Test DeadlineExpired message and details"""
    from clmm_bootstrap.errors import DeadlineExpired, ErrorCode

    error = DeadlineExpired(100, now=150)
    assert error.code == ErrorCode.DEADLINE_EXPIRED
    assert "now 150" in error.message
    assert error.details == {"deadline": 100, "now": 150}


def test_pool_unavailable():
    """Test PoolUnavailable constructors"""
    from clmm_bootstrap.errors import PoolUnavailable, ErrorCode

    print("Testing PoolUnavailable...")

    error = PoolUnavailable.not_found("pool123")
    assert error.code == ErrorCode.POOL_NOT_FOUND
    assert error.pool_address == "pool123"
    assert not error.recoverable

    missing = PoolUnavailable.factory_missing("factory123")
    assert missing.code == ErrorCode.FACTORY_NOT_INITIALIZED

    invalid = PoolUnavailable.invalid_state("pool123", "vault missing")
    assert "vault missing" in invalid.message

    print("  PoolUnavailable: PASSED")


def test_transaction_error():
    """Test TransactionError constructors"""
    from clmm_bootstrap.errors import TransactionError, ErrorCode

    print("Testing TransactionError...")

    error1 = TransactionError.simulation_failed("Insufficient funds", ["log1", "log2"])
    assert error1.code == ErrorCode.TX_SIMULATION_FAILED
    assert error1.logs == ["log1", "log2"]

    error2 = TransactionError.send_failed("connection reset", signature="sig123")
    assert error2.recoverable
    assert error2.signature == "sig123"

    error3 = TransactionError.too_large(1500, 1232)
    assert error3.code == ErrorCode.TX_TOO_LARGE
    assert "1500" in error3.message

    print("  TransactionError: PASSED")


def test_operation_cancelled():
    """Test OperationCancelled carries committed tiers"""
    from clmm_bootstrap.errors import OperationCancelled, ErrorCode

    error = OperationCancelled([0, 1])
    assert error.code == ErrorCode.OPERATION_CANCELLED
    assert error.committed_tiers == [0, 1]
    assert OperationCancelled().committed_tiers == []


def test_configuration_error():
    """Test ConfigurationError"""
    from clmm_bootstrap.errors import ConfigurationError, ErrorCode

    print("Testing ConfigurationError...")

    error1 = ConfigurationError.missing("start_price")
    assert error1.code == ErrorCode.CONFIG_MISSING
    assert "start_price" in error1.message

    error2 = ConfigurationError.invalid("slippage_bps", "must be in [0, 10000]")
    assert error2.code == ErrorCode.CONFIG_INVALID

    print("  ConfigurationError: PASSED")


def test_error_inheritance():
    """Test that all errors inherit from ClmmError"""
    from clmm_bootstrap.errors import (
        ClmmError,
        TransportUnavailable,
        InvalidTick,
        InvalidRange,
        InvalidFeeTier,
        DerivationExhausted,
        PlanningBlocked,
        AlreadyExists,
        SlippageExceeded,
        DeadlineExpired,
        PoolUnavailable,
        TransactionError,
        SignerError,
        ConfigurationError,
        OperationCancelled,
    )

    for cls in (
        TransportUnavailable, InvalidTick, InvalidRange, InvalidFeeTier,
        DerivationExhausted, PlanningBlocked, AlreadyExists, SlippageExceeded,
        DeadlineExpired, PoolUnavailable, TransactionError, SignerError,
        ConfigurationError, OperationCancelled,
    ):
        assert issubclass(cls, ClmmError), cls.__name__


if __name__ == "__main__":
    test_error_code()
    test_clmm_error()
    test_transport_unavailable()
    test_input_errors()
    test_derivation_exhausted()
    test_planning_and_existence_errors()
    test_slippage_exceeded()
    test_deadline_expired()
    test_pool_unavailable()
    test_transaction_error()
    test_operation_cancelled()
    test_configuration_error()
    test_error_inheritance()
    print("\nAll error tests passed!")
