"""Deal-type dispatcher.

Chooses which engines to run for a deal, runs them through the block layer
and collects their results. Engines never call one another.

Engine plan by deal type:

    LBO_STRUCTURE                   required: lbo   optional: dcf, waterfall
    SINGLE_ASSET_CONTINUATION       required: dcf   optional: waterfall
    MULTI_ASSET_CONTINUATION        required: dcf   optional: waterfall
    anything else                   required: dcf   optional: waterfall
"""

import logging
from typing import Dict, List, Tuple

from .blocks import BlockContext, BlockExecutor, DCFBlock, LBOBlock, WaterfallBlock
from .errors import MissingEngineInputs
from .schemas import (
    DealModelRequest,
    DealModelResults,
    LBO_STRUCTURE,
    MULTI_ASSET_CONTINUATION,
    SINGLE_ASSET_CONTINUATION,
)

logger = logging.getLogger(__name__)

# deal type -> (required engines, optional engines)
ENGINE_PLANS: Dict[str, Tuple[Tuple[str, ...], Tuple[str, ...]]] = {
    LBO_STRUCTURE: (("lbo",), ("dcf", "waterfall")),
    SINGLE_ASSET_CONTINUATION: (("dcf",), ("waterfall",)),
    MULTI_ASSET_CONTINUATION: (("dcf",), ("waterfall",)),
}
DEFAULT_PLAN: Tuple[Tuple[str, ...], Tuple[str, ...]] = (("dcf",), ("waterfall",))

BLOCKS = {
    "dcf": DCFBlock,
    "lbo": LBOBlock,
    "waterfall": WaterfallBlock,
}


def engine_plan(deal_type: str) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """Required and optional engines for a deal type."""
    return ENGINE_PLANS.get(deal_type, DEFAULT_PLAN)


def run_deal_model(request: DealModelRequest) -> DealModelResults:
    """Run every engine the deal type calls for.

    Args:
        request: DealModelRequest with the deal type, engine inputs and config

    Returns:
        DealModelResults with one result per engine that ran

    Raises:
        MissingEngineInputs: If a required engine has no inputs
        DealModelError: Whatever a running engine raises

    Example:
        results = run_deal_model(DealModelRequest(
            deal_type="LBO_STRUCTURE",
            lbo=lbo_inputs,
            waterfall=waterfall_inputs,
        ))
        results.engines_run  # ("lbo", "waterfall")
    """
    required, optional = engine_plan(request.deal_type)

    missing = [name for name in required if getattr(request, name) is None]
    if missing:
        raise MissingEngineInputs(
            f"Deal type '{request.deal_type}' requires inputs for: {', '.join(missing)}"
        )

    engines: List[str] = list(required) + [
        name for name in optional if getattr(request, name) is not None
    ]

    context = BlockContext()
    blocks = []
    for name in engines:
        context.set(f"{name}_inputs", getattr(request, name))
        blocks.append(BLOCKS[name](cfg=request.config))

    logger.info("Deal %s (%s): running %s", request.deal_id, request.deal_type, engines)
    BlockExecutor(blocks).execute(context)

    return DealModelResults(
        deal_id=request.deal_id,
        deal_type=request.deal_type,
        engines_run=tuple(engines),
        **{name: context.get(f"{name}_results") for name in engines},
    )
