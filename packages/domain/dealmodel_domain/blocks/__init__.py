"""Engine blocks.

Wraps the pure engines as blocks so a deal can run several of them through
one dependency-ordered executor and get tabular outputs.

Architecture:
    Schemas (inputs) -> Engines (pure functions) -> Blocks (context + DataFrames)

Available blocks:
- DCFBlock: DCF valuation and discounted cash-flow table
- LBOBlock: LBO returns, yearly projection and debt schedule tables
- WaterfallBlock: Waterfall distribution by tier and by participant

Usage:
    from dealmodel_domain.blocks import BlockContext, BlockExecutor, LBOBlock

    context = BlockContext()
    context.set("lbo_inputs", lbo_inputs)
    BlockExecutor([LBOBlock()]).execute(context)

    projections_df = context.get("lbo_projections")
"""

from .base import Block, BlockExecutor, BlockContext, CircularDependencyError, topological_sort
from .dcf import DCFBlock
from .lbo import LBOBlock
from .waterfall import WaterfallBlock

__all__ = [
    "Block",
    "BlockExecutor",
    "BlockContext",
    "CircularDependencyError",
    "topological_sort",
    "DCFBlock",
    "LBOBlock",
    "WaterfallBlock",
]
