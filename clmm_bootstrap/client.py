"""
ClmmClient - Entry point for concentrated-liquidity position bootstrap

Wires the RPC client, signer and transaction builder together and exposes the
liquidity module.
"""

from __future__ import annotations

from typing import Callable, Optional, Union, List, TYPE_CHECKING

if TYPE_CHECKING:
    from solders.keypair import Keypair

from .config import config as global_config
from .infra import RpcClient, RpcClientConfig, TxBuilder, TxBuilderConfig, create_signer, Signer
from .modules.assembler import AssemblerConfig, CancellationToken
from .types import AddLiquidityResult, PositionRequest, TierProgress


class ClmmClient:
    """
    CLMM bootstrap client

    Usage:
        from solders.keypair import Keypair

        client = ClmmClient(
            rpc_url="https://api.mainnet-beta.solana.com",
            keypair_path="/path/to/keypair.json",
        )

        request = PositionRequest.create(
            token_a=USDC, token_b=SOL, fee=500,
            tick_lower=-1000, tick_upper=1000,
            amount_a_desired=1_000_000, amount_b_desired=10_000_000,
        )
        result = client.add_liquidity(request, on_progress=print)
    """

    def __init__(
        self,
        rpc_url: Optional[Union[str, List[str]]] = None,
        keypair: Optional["Keypair"] = None,
        keypair_path: Optional[str] = None,
        program_id: Optional[str] = None,
        rpc_config: Optional[RpcClientConfig] = None,
        tx_config: Optional[TxBuilderConfig] = None,
        assembler_config: Optional[AssemblerConfig] = None,
        rpc: Optional[RpcClient] = None,
        signer: Optional[Signer] = None,
    ):
        """
        Initialize ClmmClient

        Args:
            rpc_url: RPC endpoint URL or list of URLs for fallback (defaults to SOLANA_RPC_URL)
            keypair: Optional Keypair for local signing
            keypair_path: Optional path to keypair file
            program_id: Cyclos core program (defaults to CLMM_PROGRAM_ID)
            rpc_config: Optional RPC configuration
            tx_config: Optional transaction configuration
            assembler_config: Optional bundling configuration
            rpc: Prebuilt RPC client, used instead of rpc_url
            signer: Prebuilt signer, used instead of keypair/keypair_path
        """
        self._rpc = rpc or RpcClient(rpc_url or global_config.rpc.url, config=rpc_config)
        self._signer = signer or create_signer(keypair=keypair, keypair_path=keypair_path)
        self._tx_builder = TxBuilder(self._rpc, self._signer, config=tx_config)
        self._program_id = program_id or global_config.program.program_id
        self._assembler_config = assembler_config

        # Lazy-loaded modules
        self._lp: Optional["LiquidityModule"] = None

    @property
    def rpc(self) -> RpcClient:
        """Access to RPC client"""
        return self._rpc

    @property
    def signer(self) -> Signer:
        """Access to signer"""
        return self._signer

    @property
    def tx_builder(self) -> TxBuilder:
        """Access to transaction builder"""
        return self._tx_builder

    @property
    def pubkey(self) -> str:
        """Owner's public key"""
        return self._signer.pubkey

    @property
    def program_id(self) -> str:
        return self._program_id

    @property
    def assembler_config(self) -> Optional[AssemblerConfig]:
        return self._assembler_config

    @property
    def lp(self) -> "LiquidityModule":
        """
        Liquidity module

        Provides:
        - add_liquidity(request, on_progress, cancel): Bootstrap and mint a position
        - prepare(request, nft_mint): Derive, probe and plan only
        """
        if self._lp is None:
            from .modules.liquidity import LiquidityModule
            self._lp = LiquidityModule(self)
        return self._lp

    def add_liquidity(
        self,
        request: PositionRequest,
        on_progress: Optional[Callable[[TierProgress], None]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> AddLiquidityResult:
        """Shortcut for client.lp.add_liquidity"""
        return self.lp.add_liquidity(request, on_progress=on_progress, cancel=cancel)

    def close(self):
        """Close client connections and release resources"""
        self._rpc.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"ClmmClient(endpoint={self._rpc.endpoint}, pubkey={self.pubkey[:8]}...)"


# Type hints for modules (resolved at runtime)
if TYPE_CHECKING:
    from .modules.liquidity import LiquidityModule
