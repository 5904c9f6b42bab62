"""
Test Add-Liquidity Flow

End-to-end runs of ClmmClient.add_liquidity against the in-memory ledger:
fresh pool bootstrap, idempotent re-runs, input rejection, cancellation and
partial failure reporting.
"""

import sys
from dataclasses import replace
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from solders.keypair import Keypair

from clmm_bootstrap.errors import (
    ErrorCode,
    InvalidFeeTier,
    InvalidRange,
    InvalidTick,
    OperationCancelled,
    PoolUnavailable,
    SlippageExceeded,
)
from clmm_bootstrap.modules.assembler import CancellationToken
from clmm_bootstrap.protocols.cyclos.pda import derive_tokenized_position
from clmm_bootstrap.types import TierStatus

from conftest import FakeLedger, PROGRAM_ID, TOKEN_X, TOKEN_Y, create_client
from test_planner import make_request

FRESH_POOL_KINDS = [
    ["enable_fee_amount", "create_and_init_pool"],
    ["init_tick_account", "init_tick_account", "init_bitmap_account"],
    ["init_position_account"],
    ["mint_tokenized_position"],
]


def test_fresh_pool_bootstrap(ledger, client):
    """Every tier commits in order and the NFT mint identifies the position"""
    print("Testing fresh pool bootstrap...")

    events = []
    result = client.add_liquidity(make_request(), on_progress=events.append)

    assert result.is_success, result.error
    assert result.committed_tiers == [0, 1, 2, 3]
    assert [e.tier for e in events] == [0, 1, 2, 3]
    assert all(e.status == TierStatus.COMMITTED for e in events)
    assert ledger.sent == FRESH_POOL_KINDS
    assert len(result.signatures) == 4

    assert result.position_id == result.mint.position_id
    tokenized = derive_tokenized_position(result.position_id, PROGRAM_ID)
    assert ledger.exists(tokenized.address)

    print(f"  position {result.position_id}: PASSED")


def test_rerun_only_mints(ledger, client):
    """A second request for the same range skips every bootstrap tier"""
    first = client.add_liquidity(make_request())
    second = client.add_liquidity(make_request())

    assert first.is_success and second.is_success
    assert first.position_id != second.position_id
    assert [p.status for p in second.progress] == [
        TierStatus.SATISFIED, TierStatus.SATISFIED, TierStatus.SATISFIED, TierStatus.COMMITTED,
    ]
    assert ledger.sent[len(FRESH_POOL_KINDS):] == [["mint_tokenized_position"]]
    assert len(second.signatures) == 1


def test_second_wallet_shares_the_core_position(ledger):
    """Core position accounts are keyed by the factory, not the owner"""
    alice = create_client(ledger)
    bob = create_client(ledger, payer=Keypair())

    assert alice.add_liquidity(make_request()).is_success
    result = bob.add_liquidity(make_request(token_a=TOKEN_X, token_b=TOKEN_Y, start_price=None))

    assert result.is_success, result.error
    assert result.committed_tiers == [0, 1, 2, 3]
    assert len(ledger.sent) == len(FRESH_POOL_KINDS) + 1


def test_misaligned_tick_rejected_before_any_call(ledger, client):
    result = client.add_liquidity(make_request(tick_lower=5, tick_upper=10))

    assert not result.is_success
    assert isinstance(result.error, InvalidTick)
    assert result.committed_tiers == []
    assert ledger.multiple_accounts_calls == []
    assert ledger.sent == []


def test_inverted_range_rejected(ledger, client):
    result = client.add_liquidity(make_request(tick_lower=10, tick_upper=0))

    assert isinstance(result.error, InvalidRange)
    assert ledger.multiple_accounts_calls == []


def test_unknown_fee_rejected(ledger, client):
    result = client.add_liquidity(replace(make_request(), fee=250))

    assert isinstance(result.error, InvalidFeeTier)
    assert ledger.sent == []


def test_missing_factory():
    ledger = FakeLedger(with_factory=False)
    client = create_client(ledger)

    result = client.add_liquidity(make_request())

    assert isinstance(result.error, PoolUnavailable)
    assert result.error.code == ErrorCode.FACTORY_NOT_INITIALIZED
    assert ledger.sent == []


def test_failed_probe_is_retried(ledger, client):
    """A probe round that times out is repeated instead of treating accounts as absent"""
    ledger.probe_failures = 1

    result = client.add_liquidity(make_request())

    assert result.is_success, result.error
    assert len(ledger.multiple_accounts_calls) >= 2
    assert ledger.sent == FRESH_POOL_KINDS


def test_persistent_probe_failure_blocks(ledger, client):
    ledger.probe_failures = 100

    result = client.add_liquidity(make_request())

    assert result.error.code == ErrorCode.PLANNING_BLOCKED
    assert ledger.sent == []


def test_cancel_keeps_committed_tiers(ledger, client):
    token = CancellationToken()

    def stop_after_pool(event):
        if event.tier == 0:
            token.cancel()

    result = client.add_liquidity(make_request(), on_progress=stop_after_pool, cancel=token)

    assert isinstance(result.error, OperationCancelled)
    assert result.committed_tiers == [0]
    assert ledger.sent == FRESH_POOL_KINDS[:1]
    assert len(result.signatures) == 1

    # Resuming picks up from the first missing tier
    resumed = client.add_liquidity(make_request())
    assert resumed.is_success
    assert [p.status for p in resumed.progress][0] == TierStatus.SATISFIED
    assert ledger.sent == FRESH_POOL_KINDS


def test_mint_failure_reports_bootstrap_progress(ledger, client):
    ledger.force_slippage = True

    result = client.add_liquidity(make_request())

    assert isinstance(result.error, SlippageExceeded)
    assert result.committed_tiers == [0, 1, 2]
    assert len(result.signatures) == 3
    assert result.position_id is None


def test_one_tick_range_on_spacing_one_tier(ledger, client):
    """Fee 100 ranges end on odd ticks and still mint a position"""
    print("Testing fee 100 one-tick range...")

    result = client.add_liquidity(replace(make_request(tick_lower=0, tick_upper=1), fee=100))

    assert result.is_success, result.error
    assert result.committed_tiers == [0, 1, 2, 3]
    assert ledger.sent == FRESH_POOL_KINDS
    assert result.mint.liquidity > 0

    print("  fee 100 one-tick range: PASSED")


def test_odd_range_around_price_on_spacing_one_tier(ledger, client):
    result = client.add_liquidity(replace(make_request(tick_lower=-7, tick_upper=3), fee=100))

    assert result.is_success, result.error
    # Ticks -7 and 3 sit in bitmap words -1 and 0
    assert ledger.sent[1] == ["init_tick_account", "init_tick_account", "init_bitmap_account", "init_bitmap_account"]
    assert result.mint.amount0 > 0
    assert result.mint.amount1 > 0


def test_split_bundles_end_to_end(ledger):
    client = create_client(ledger, max_instructions_per_tx=1)

    result = client.add_liquidity(make_request(tick_lower=-10, tick_upper=10))

    assert result.is_success, result.error
    assert all(len(kinds) == 1 for kinds in ledger.sent)
    # 2 pool + 2 ticks + 2 bitmaps + position + mint
    assert len(ledger.sent) == 8


if __name__ == "__main__":
    import pytest

    sys.exit(pytest.main([__file__, "-v"]))
