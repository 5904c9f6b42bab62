"""
Existence Probe

Batched, read-only lookup of which derived accounts are already on-chain.
"""

import logging
from typing import Dict, Iterable, List, Optional

from ..config import config
from ..errors import TransportUnavailable
from ..infra import RpcClient
from ..protocols.cyclos.state_parser import decode_account_data
from ..types import AccountState, ProbeResult

logger = logging.getLogger(__name__)


class ExistenceProbe:
    """
    Resolve EXISTS / ABSENT / UNKNOWN for a set of addresses

    One getMultipleAccounts call per batch. A batch the transport cannot
    answer maps every address in it to UNKNOWN, never to ABSENT, so a flaky
    endpoint can not make the planner re-create an account that exists.

    Usage:
        probe = ExistenceProbe(rpc)
        results = probe.probe([pool, tick_lower, tick_upper])
        if results[pool].exists:
            ...
    """

    def __init__(self, rpc: RpcClient, batch_size: Optional[int] = None):
        """
        Args:
            rpc: RPC client
            batch_size: Addresses per RPC call (defaults to config.probe.batch_size)
        """
        self._rpc = rpc
        self._batch_size = batch_size or config.probe.batch_size

    def probe(self, addresses: Iterable[str]) -> Dict[str, ProbeResult]:
        """
        Probe addresses for existence

        Args:
            addresses: Base58 addresses, duplicates allowed

        Returns:
            Mapping of every distinct address to its ProbeResult
        """
        unique: List[str] = list(dict.fromkeys(addresses))
        results: Dict[str, ProbeResult] = {}

        for start in range(0, len(unique), self._batch_size):
            batch = unique[start:start + self._batch_size]
            results.update(self._probe_batch(batch))

        unknown = [a for a, r in results.items() if r.is_unknown]
        logger.debug(
            f"Probed {len(unique)} accounts: "
            f"{sum(r.exists for r in results.values())} exist, {len(unknown)} unknown"
        )
        return results

    def _probe_batch(self, batch: List[str]) -> Dict[str, ProbeResult]:
        try:
            accounts = self._rpc.get_multiple_accounts(batch)
        except TransportUnavailable as e:
            logger.warning(f"Existence probe failed for {len(batch)} accounts: {e}")
            return {
                address: ProbeResult(address=address, state=AccountState.UNKNOWN, error=str(e))
                for address in batch
            }

        results = {}
        for address, account in zip(batch, accounts):
            if account is None:
                results[address] = ProbeResult(address=address, state=AccountState.ABSENT)
            else:
                results[address] = ProbeResult(
                    address=address,
                    state=AccountState.EXISTS,
                    data=decode_account_data(account),
                    owner=account.get("owner"),
                )
        return results
