"""LBO block.

Runs the LBO engine and exposes the yearly projection and the per-tranche
debt schedule as DataFrames.
"""

from typing import List, Optional

import pandas as pd

from .base import Block, BlockContext
from ..engines.lbo import run_lbo
from ..schemas import EngineCFG, LBOInputs, LBOResults


class LBOBlock(Block):
    """Simulates an LBO's debt service and equity returns.

    Inputs (from context):
        - lbo_inputs: LBOInputs

    Outputs (to context):
        - lbo_results: LBOResults
        - lbo_projections: DataFrame with one row per projection year
          (ebitda, interest_expense, free_cash_flow, cash_sweep, total_debt,
          leverage, interest_coverage, cash_shortfall, ...)
        - lbo_debt_schedule: DataFrame with one row per (year, tranche):
          opening_balance, interest_expense, mandatory_amortization,
          cash_sweep, closing_balance
    """

    def __init__(
        self,
        inputs_key: str = "lbo_inputs",
        cfg: Optional[EngineCFG] = None,
    ):
        """Initialize LBOBlock.

        Args:
            inputs_key: Context key for LBOInputs
            cfg: Engine configuration (defaults to EngineCFG())
        """
        self.inputs_key = inputs_key
        self.cfg = cfg

    def inputs(self) -> List[str]:
        return [self.inputs_key]

    def outputs(self) -> List[str]:
        return ["lbo_results", "lbo_projections", "lbo_debt_schedule"]

    def execute(self, context: BlockContext) -> None:
        inputs: LBOInputs = context.get(self.inputs_key)
        results = run_lbo(inputs, self.cfg)

        context.set("lbo_results", results)
        context.set("lbo_projections", self._projections_frame(results))
        context.set("lbo_debt_schedule", self._debt_schedule_frame(results))

    def _projections_frame(self, results: LBOResults) -> pd.DataFrame:
        rows = []
        for p in results.projections:
            rows.append({
                "year": p.year,
                "ebitda": float(p.ebitda),
                "interest_expense": float(p.interest_expense),
                "mandatory_amortization": float(p.mandatory_amortization),
                "capex": float(p.capex),
                "cash_taxes": float(p.cash_taxes),
                "free_cash_flow": float(p.free_cash_flow),
                "cash_sweep": float(p.cash_sweep),
                "unswept_cash": float(p.unswept_cash),
                "total_debt": float(p.total_debt),
                "leverage": p.leverage,
                "interest_coverage": p.interest_coverage,
                "cash_shortfall": p.cash_shortfall,
            })
        return pd.DataFrame(rows)

    def _debt_schedule_frame(self, results: LBOResults) -> pd.DataFrame:
        columns = [
            "year", "tranche_id", "opening_balance", "interest_expense",
            "mandatory_amortization", "cash_sweep", "closing_balance",
        ]
        if not results.debt_paydown_schedule:
            return pd.DataFrame(columns=columns)

        rows = []
        for row in results.debt_paydown_schedule:
            rows.append({
                "year": row.year,
                "tranche_id": row.tranche_id,
                "opening_balance": float(row.opening_balance),
                "interest_expense": float(row.interest_expense),
                "mandatory_amortization": float(row.mandatory_amortization),
                "cash_sweep": float(row.cash_sweep),
                "closing_balance": float(row.closing_balance),
            })
        return pd.DataFrame(rows, columns=columns)
