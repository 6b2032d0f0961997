"""Waterfall computation block.

Distributes cash through the waterfall tiers and tabulates the result:
1. Return of capital
2. Preferred return
3. GP catch-up
4. Carry split
"""

from typing import List, Optional

import pandas as pd

from .base import Block, BlockContext
from ..engines.waterfall import run_waterfall
from ..schemas import EngineCFG, WaterfallInputs, WaterfallResults


class WaterfallBlock(Block):
    """Computes a distribution waterfall.

    Inputs (from context):
        - waterfall_inputs: WaterfallInputs

    Outputs (to context):
        - waterfall_results: WaterfallResults
        - waterfall_steps: DataFrame with one row per tier that ran:
            * step: Step number (1, 2, 3, ...)
            * order: Tier order
            * tier_type: return_of_capital, preferred_return, catch_up, carry_split
            * amount_available: Amount entering the tier
            * amount_distributed: Amount the tier paid out
            * amount_remaining: Amount left after the tier

        - waterfall_by_participant: DataFrame with one row per participant:
            * participant_id, name, type
            * contributed_capital
            * return_of_capital, preferred_return, catch_up, carry_split
            * total_distribution
            * distribution_pct: Share of the distribution amount (0-100)
            * effective_return: total_distribution / contributed_capital

    Example:
        context = BlockContext()
        context.set("waterfall_inputs", waterfall_inputs)

        WaterfallBlock().execute(context)

        steps_df = context.get("waterfall_steps")
        by_participant_df = context.get("waterfall_by_participant")
    """

    def __init__(
        self,
        inputs_key: str = "waterfall_inputs",
        cfg: Optional[EngineCFG] = None,
    ):
        """Initialize WaterfallBlock.

        Args:
            inputs_key: Context key for WaterfallInputs
            cfg: Engine configuration (defaults to EngineCFG())
        """
        self.inputs_key = inputs_key
        self.cfg = cfg

    def inputs(self) -> List[str]:
        return [self.inputs_key]

    def outputs(self) -> List[str]:
        return ["waterfall_results", "waterfall_steps", "waterfall_by_participant"]

    def execute(self, context: BlockContext) -> None:
        inputs: WaterfallInputs = context.get(self.inputs_key)
        results = run_waterfall(inputs, self.cfg)

        context.set("waterfall_results", results)
        context.set("waterfall_steps", self._steps_frame(results))
        context.set("waterfall_by_participant", self._by_participant_frame(inputs, results))

    def _steps_frame(self, results: WaterfallResults) -> pd.DataFrame:
        columns = [
            "step", "order", "tier_type",
            "amount_available", "amount_distributed", "amount_remaining",
        ]
        rows = []
        for step, tier in enumerate(results.tier_results, start=1):
            rows.append({
                "step": step,
                "order": tier.order,
                "tier_type": tier.type,
                "amount_available": float(tier.amount_available),
                "amount_distributed": float(tier.amount_distributed),
                "amount_remaining": float(tier.amount_remaining),
            })
        return pd.DataFrame(rows, columns=columns)

    def _by_participant_frame(
        self, inputs: WaterfallInputs, results: WaterfallResults
    ) -> pd.DataFrame:
        distribution = inputs.distribution_amount
        rows = []
        for s in results.participant_summary:
            rows.append({
                "participant_id": s.participant_id,
                "name": s.name,
                "type": s.type,
                "contributed_capital": float(s.contributed_capital),
                "return_of_capital": float(s.return_of_capital),
                "preferred_return": float(s.preferred_return),
                "catch_up": float(s.catch_up),
                "carry_split": float(s.carry_split),
                "total_distribution": float(s.total_allocation),
                "distribution_pct": (
                    float(s.total_allocation / distribution * 100) if distribution > 0 else 0.0
                ),
                "effective_return": (
                    float(s.effective_return) if s.effective_return is not None else None
                ),
            })
        return pd.DataFrame(rows)
