"""
Pure DCF valuation engine.

Turns DCFInputs into DCFResults. No I/O and no shared state; the input model
is deep-copied on entry and never modified.

Key functions:
    run_dcf: Main entry point
    compute_free_cash_flows: FCF per projection year
    compute_wacc: Weighted average cost of capital
    compute_terminal_value: Perpetuity-growth or exit-multiple terminal value
    compute_payback_period: Years to recover the initial investment
"""

import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from ..errors import ConvergenceFailure, InvalidCapitalStructure, InvalidGrowthAssumption, NoSignChange
from ..schemas.config import EngineCFG
from ..schemas.dcf import DCFInputs, DCFResults
from .irr import solve_irr

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def compute_free_cash_flows(inputs: DCFInputs) -> List[Decimal]:
    """
    Free cash flow for each projection row.

    FCF_t = EBITDA_t - capex_t - dWC_t - taxes_t, with
    taxes_t = max(0, (EBITDA_t - depreciation_t) * tax_rate).
    """
    fcfs = []
    for row in inputs.cash_flows:
        taxes = max(ZERO, (row.ebitda - row.depreciation) * inputs.tax_rate)
        fcfs.append(row.ebitda - row.capex - row.working_capital_delta - taxes)
    return fcfs


def compute_wacc(inputs: DCFInputs) -> Decimal:
    """
    Weighted average cost of capital.

    Raises:
        InvalidCapitalStructure: If market value of equity plus debt is not
            positive, or the resulting discount factor base (1 + WACC) is not.
    """
    equity = inputs.market_value_equity
    debt = inputs.market_value_debt
    capital = equity + debt
    if capital <= 0:
        raise InvalidCapitalStructure(
            f"Market value of equity plus debt must be positive, got {capital}")

    wacc = ((equity / capital) * inputs.cost_of_equity +
            (debt / capital) * inputs.cost_of_debt * (1 - inputs.tax_rate))
    if 1 + wacc <= 0:
        raise InvalidCapitalStructure(f"WACC of {wacc} leaves no valid discount factor")
    return wacc


def compute_terminal_value(inputs: DCFInputs, final_fcf: Decimal,
                           wacc: Decimal) -> Decimal:
    """
    Undiscounted terminal value at the final projection year.

    Raises:
        InvalidGrowthAssumption: If the perpetuity method is used with
            WACC <= terminal growth (the perpetuity does not converge).
    """
    if inputs.terminal_value_method == "multiple":
        return inputs.cash_flows[-1].ebitda * inputs.exit_multiple

    growth = inputs.terminal_growth_rate
    if wacc <= growth:
        raise InvalidGrowthAssumption(
            f"WACC ({wacc}) must exceed terminal growth ({growth}) for a perpetuity")
    return final_fcf * (1 + growth) / (wacc - growth)


def compute_payback_period(years: Sequence[int], fcfs: Sequence[Decimal],
                           investment: Decimal) -> Optional[float]:
    """
    Years until cumulative undiscounted FCF recovers the investment.

    Linearly interpolated within the recovering year. Returns None if the
    investment is never recovered within the projection.
    """
    if investment <= 0:
        return 0.0

    cumulative = ZERO
    previous_year = 0
    for year, fcf in zip(years, fcfs):
        if fcf > 0 and cumulative + fcf >= investment:
            fraction = (investment - cumulative) / fcf
            return float(previous_year + fraction * (year - previous_year))
        cumulative += fcf
        previous_year = year
    return None


def run_dcf(inputs: DCFInputs, cfg: Optional[EngineCFG] = None) -> DCFResults:
    """
    Run a DCF valuation.

    Steps:
        1. Free cash flow per year
        2. WACC from the capital structure
        3. Terminal value (perpetuity or multiple) at the final year
        4. Discount FCFs and terminal value at WACC -> enterprise value
        5. Equity value = EV - market value of debt
        6. NPV against the initial investment (or equity value without one)
        7. IRR of investing at t=0 and realizing equity value in the final year

    Args:
        inputs: DCFInputs
        cfg: Engine configuration (defaults to EngineCFG())

    Returns:
        DCFResults. IRR problems are reported as irr=NaN plus a warning.

    Raises:
        InvalidCapitalStructure: If E + D <= 0
        InvalidGrowthAssumption: If WACC <= g under the perpetuity method
    """
    inputs = inputs.model_copy(deep=True)
    cfg = cfg or EngineCFG()
    warnings: List[str] = []

    fcfs = compute_free_cash_flows(inputs)
    wacc = compute_wacc(inputs)
    terminal_value = compute_terminal_value(inputs, fcfs[-1], wacc)

    years = [row.year for row in inputs.cash_flows]
    final_year = years[-1]
    discount_base = 1 + wacc

    pv_of_projections = sum(
        (fcf / discount_base**year for year, fcf in zip(years, fcfs)), ZERO)
    pv_of_terminal_value = terminal_value / discount_base**final_year
    enterprise_value = pv_of_projections + pv_of_terminal_value
    equity_value = enterprise_value - inputs.market_value_debt

    investment = inputs.initial_investment
    npv = equity_value - investment if investment is not None else equity_value

    irr = float('nan')
    payback_period = None
    if investment is None:
        warnings.append("IRR not computed: no initial investment supplied")
    else:
        flows = [-investment] + [ZERO] * (final_year - 1) + [equity_value]
        try:
            irr = solve_irr(flows, cfg.solver)
        except (NoSignChange, ConvergenceFailure) as exc:
            message = f"IRR unavailable ({type(exc).__name__}): {exc}"
            logger.warning(message)
            warnings.append(message)
        payback_period = compute_payback_period(years, fcfs, investment)

    terminal_value_share = None
    if enterprise_value != 0:
        terminal_value_share = float(pv_of_terminal_value / enterprise_value)

    review = cfg.dcf_review
    if terminal_value_share is not None and terminal_value_share > review.max_terminal_value_share:
        warnings.append(
            f"Terminal value is {terminal_value_share:.0%} of enterprise value "
            f"(above {review.max_terminal_value_share:.0%}); validate growth assumptions")
    if wacc > review.max_wacc:
        warnings.append(
            f"WACC of {float(wacc):.1%} exceeds {float(review.max_wacc):.1%}; "
            f"review the capital structure")

    logger.debug("DCF: wacc=%s ev=%s equity=%s irr=%s", wacc, enterprise_value,
                 equity_value, irr)

    return DCFResults(
        enterprise_value=enterprise_value,
        equity_value=equity_value,
        npv=npv,
        irr=irr,
        pv_of_projections=pv_of_projections,
        pv_of_terminal_value=pv_of_terminal_value,
        terminal_value=terminal_value,
        wacc=wacc,
        free_cash_flows=tuple(fcfs),
        terminal_value_share=terminal_value_share,
        payback_period=payback_period,
        warnings=tuple(warnings),
    )
