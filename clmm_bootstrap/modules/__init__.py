"""
Functional modules for ClmmClient

Provides the position bootstrap pipeline:
- ExistenceProbe: Batched account existence lookup
- BootstrapPlanner: Tiered plan of missing account initialisations
- TransactionAssembler: Bundling and ordered submission
- PositionMinter: Tokenized position mint
- LiquidityModule: add_liquidity surface
"""

from .probe import ExistenceProbe
from .planner import BootstrapPlanner
from .assembler import AssemblerConfig, BundleOutcome, CancellationToken, TransactionAssembler
from .minting import PositionMinter
from .liquidity import LiquidityModule

__all__ = [
    "ExistenceProbe",
    "BootstrapPlanner",
    "AssemblerConfig",
    "BundleOutcome",
    "CancellationToken",
    "TransactionAssembler",
    "PositionMinter",
    "LiquidityModule",
]
