"""DCF valuation block.

Runs the DCF engine on inputs from the context and tabulates the discounted
cash flows for rendering or analysis.
"""

from typing import List, Optional

import pandas as pd

from .base import Block, BlockContext
from ..engines.dcf import run_dcf
from ..schemas import DCFInputs, DCFResults, EngineCFG


class DCFBlock(Block):
    """Values a business by discounting projected free cash flow.

    Inputs (from context):
        - dcf_inputs: DCFInputs

    Outputs (to context):
        - dcf_results: DCFResults
        - dcf_cash_flows: DataFrame with one row per projection year:
            * year
            * revenue, ebitda, capex, working_capital_delta
            * free_cash_flow
            * discount_factor: 1 / (1 + WACC) ** year
            * present_value: free_cash_flow * discount_factor
    """

    def __init__(
        self,
        inputs_key: str = "dcf_inputs",
        cfg: Optional[EngineCFG] = None,
    ):
        """Initialize DCFBlock.

        Args:
            inputs_key: Context key for DCFInputs
            cfg: Engine configuration (defaults to EngineCFG())
        """
        self.inputs_key = inputs_key
        self.cfg = cfg

    def inputs(self) -> List[str]:
        return [self.inputs_key]

    def outputs(self) -> List[str]:
        return ["dcf_results", "dcf_cash_flows"]

    def execute(self, context: BlockContext) -> None:
        inputs: DCFInputs = context.get(self.inputs_key)
        results = run_dcf(inputs, self.cfg)

        context.set("dcf_results", results)
        context.set("dcf_cash_flows", self._cash_flows_frame(inputs, results))

    def _cash_flows_frame(self, inputs: DCFInputs, results: DCFResults) -> pd.DataFrame:
        rows = []
        discount_base = 1 + float(results.wacc)
        for row, fcf in zip(inputs.cash_flows, results.free_cash_flows):
            discount_factor = 1 / discount_base ** row.year
            rows.append({
                "year": row.year,
                "revenue": float(row.revenue),
                "ebitda": float(row.ebitda),
                "capex": float(row.capex),
                "working_capital_delta": float(row.working_capital_delta),
                "free_cash_flow": float(fcf),
                "discount_factor": discount_factor,
                "present_value": float(fcf) * discount_factor,
            })
        return pd.DataFrame(rows)
