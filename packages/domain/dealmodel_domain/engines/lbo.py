"""Leveraged buyout engine.

Simulates debt service for an acquisition funded by a stack of tranches and
measures the equity return at exit.

Per projection year:
    1. EBITDA from the supplied series or base EBITDA grown at a fixed rate
    2. Interest on each tranche's opening balance, plus mandatory amortization
       (straight_line tranches only)
    3. Free cash flow = EBITDA - interest - mandatory amortization - capex
       - cash taxes; when positive it sweeps cash_sweep tranches in seniority
       order, when negative the year is flagged as a shortfall
    4. Leverage = closing debt / EBITDA

Exit equity = exit EBITDA * exit multiple - closing debt at the exit year.
"""

import logging
from decimal import Decimal
from math import inf, isfinite
from typing import Dict, List, Optional, Tuple

from ..errors import ConvergenceFailure, NoSignChange, UnbalancedSources
from ..schemas.config import CovenantCFG, EngineCFG
from ..schemas.lbo import (
    CovenantBreach,
    LBOInputs,
    LBOResults,
    LBOYearProjection,
    TranchePaydown,
)
from .irr import solve_irr

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")


# =============================================================================
# Sources & Uses
# =============================================================================

def validate_sources_and_uses(inputs: LBOInputs) -> None:
    """Check that sources of funds equal uses of funds to the cent.

    Sources: debt principal + equity funding + management rollover
    Uses: purchase price + transaction fees

    Raises:
        UnbalancedSources: If the two sides differ by a cent or more.
            Inputs are never rebalanced.
    """
    sources = inputs.total_sources
    uses = inputs.total_uses
    if abs(sources - uses) >= CENT:
        raise UnbalancedSources(sources, uses)


# =============================================================================
# Debt schedule
# =============================================================================

def _mandatory_amortization(tranche, opening_balance: Decimal, year: int) -> Decimal:
    """Scheduled principal repayment for a tranche in a given year."""
    if tranche.amortization != "straight_line" or year > tranche.term_years:
        return ZERO
    return min(opening_balance, tranche.principal / tranche.term_years)


def simulate_year(
    inputs: LBOInputs,
    year: int,
    balances: Dict[str, Decimal],
) -> Tuple[LBOYearProjection, List[TranchePaydown], Dict[str, Decimal]]:
    """Simulate one projection year of debt service.

    Args:
        inputs: LBOInputs
        year: Projection year (1-based)
        balances: Opening balance per tranche id

    Returns:
        (year projection, per-tranche paydown rows, closing balances)
    """
    ebitda = inputs.ebitda_for_year(year)

    interest: Dict[str, Decimal] = {}
    mandatory: Dict[str, Decimal] = {}
    for tranche in inputs.debt_tranches:
        opening = balances[tranche.id]
        interest[tranche.id] = opening * tranche.annual_rate
        mandatory[tranche.id] = _mandatory_amortization(tranche, opening, year)

    total_interest = sum(interest.values(), ZERO)
    total_mandatory = sum(mandatory.values(), ZERO)
    capex = max(ZERO, ebitda * inputs.capex_percent_of_ebitda)
    cash_taxes = max(ZERO, (ebitda - total_interest) * inputs.tax_rate)
    free_cash_flow = ebitda - total_interest - total_mandatory - capex - cash_taxes

    # A deficit is flagged, not carried forward as negative cash
    cash_shortfall = free_cash_flow < 0
    available = free_cash_flow if free_cash_flow > 0 else ZERO

    # Sweep most senior first
    sweep: Dict[str, Decimal] = {}
    for tranche in inputs.debt_tranches:
        sweep[tranche.id] = ZERO
        if tranche.amortization != "cash_sweep" or available <= 0:
            continue
        outstanding = balances[tranche.id] - mandatory[tranche.id]
        payment = min(available, outstanding)
        sweep[tranche.id] = payment
        available -= payment

    closing: Dict[str, Decimal] = {}
    paydowns: List[TranchePaydown] = []
    for tranche in inputs.debt_tranches:
        opening = balances[tranche.id]
        closing[tranche.id] = opening - mandatory[tranche.id] - sweep[tranche.id]
        paydowns.append(TranchePaydown(
            year=year,
            tranche_id=tranche.id,
            opening_balance=opening,
            interest_expense=interest[tranche.id],
            mandatory_amortization=mandatory[tranche.id],
            cash_sweep=sweep[tranche.id],
            closing_balance=closing[tranche.id],
        ))

    total_debt = sum(closing.values(), ZERO)
    leverage = float(total_debt / ebitda) if ebitda > 0 else inf
    interest_coverage = float(ebitda / total_interest) if total_interest > 0 else None

    projection = LBOYearProjection(
        year=year,
        ebitda=ebitda,
        interest_expense=total_interest,
        mandatory_amortization=total_mandatory,
        capex=capex,
        cash_taxes=cash_taxes,
        free_cash_flow=free_cash_flow,
        cash_sweep=sum(sweep.values(), ZERO),
        unswept_cash=available,
        total_debt=total_debt,
        leverage=leverage,
        interest_coverage=interest_coverage,
        cash_shortfall=cash_shortfall,
    )
    return projection, paydowns, closing


def check_covenants(
    projections: List[LBOYearProjection],
    covenants: CovenantCFG,
) -> List[CovenantBreach]:
    """Record every year that breaches the leverage or coverage covenant."""
    breaches = []
    for p in projections:
        if p.leverage > covenants.max_leverage:
            breaches.append(CovenantBreach(
                year=p.year,
                covenant="max_leverage",
                actual=p.leverage,
                limit=covenants.max_leverage,
            ))
        if p.interest_coverage is not None and p.interest_coverage < covenants.min_interest_coverage:
            breaches.append(CovenantBreach(
                year=p.year,
                covenant="min_interest_coverage",
                actual=p.interest_coverage,
                limit=covenants.min_interest_coverage,
            ))
    return breaches


# =============================================================================
# Main entry point
# =============================================================================

def run_lbo(inputs: LBOInputs, cfg: Optional[EngineCFG] = None) -> LBOResults:
    """Run an LBO simulation and compute equity returns.

    Args:
        inputs: LBOInputs
        cfg: Engine configuration (defaults to EngineCFG())

    Returns:
        LBOResults with per-year projections, the per-tranche paydown
        schedule, covenant breaches and warnings

    Raises:
        UnbalancedSources: If sources and uses differ (checked before simulating)

    Example:
        Purchase price 100 funded by a 60 senior tranche (10%, interest only)
        and 40 of equity; flat EBITDA of 15; exit at 10x in year 5:
            exit EV = 150, exit equity = 150 - 60 = 90
            equity multiple = 90 / 40 = 2.25x
            equity IRR = 2.25 ** (1/5) - 1 = 17.6%
    """
    inputs = inputs.model_copy(deep=True)
    cfg = cfg or EngineCFG()
    validate_sources_and_uses(inputs)

    warnings: List[str] = []
    balances = {t.id: t.principal for t in inputs.debt_tranches}
    projections: List[LBOYearProjection] = []
    schedule: List[TranchePaydown] = []

    for year in range(1, inputs.projection_years + 1):
        projection, paydowns, balances = simulate_year(inputs, year, balances)
        projections.append(projection)
        schedule.extend(paydowns)

        if projection.ebitda <= 0:
            message = f"Year {year}: EBITDA of {projection.ebitda} is not positive; leverage is unbounded"
            logger.warning(message)
            warnings.append(message)
        if projection.cash_shortfall:
            warnings.append(
                f"Year {year}: free cash flow shortfall of {-projection.free_cash_flow}; no cash sweep"
            )

    leverages = [p.leverage for p in projections]
    peak_leverage = max(leverages)
    avg_leverage = sum(leverages) / len(leverages)

    # ---- EXIT ----
    exit_projection = projections[inputs.exit_year - 1]
    exit_enterprise_value = exit_projection.ebitda * inputs.exit_multiple
    exit_equity_value = exit_enterprise_value - exit_projection.total_debt

    # ---- RETURNS ----
    invested = inputs.total_equity_invested
    distributions = list(inputs.interim_distributions)
    distributions += [ZERO] * (inputs.exit_year - len(distributions))
    total_interim = sum(distributions, ZERO)

    cash_flows = [-invested] + distributions
    cash_flows[-1] += exit_equity_value

    if invested > 0:
        equity_multiple = float(exit_equity_value / invested)
        cash_on_cash_return = float((exit_equity_value + total_interim) / invested)
    else:
        equity_multiple = float('nan')
        cash_on_cash_return = float('nan')
        warnings.append("No equity invested; equity multiple is undefined")

    equity_irr = float('nan')
    try:
        equity_irr = solve_irr(cash_flows, cfg.solver)
    except (NoSignChange, ConvergenceFailure) as exc:
        message = f"Equity IRR unavailable ({type(exc).__name__}): {exc}"
        logger.warning(message)
        warnings.append(message)

    # ---- COVENANTS ----
    covenants = cfg.covenants
    breaches = check_covenants(projections, covenants)
    if peak_leverage > covenants.max_leverage:
        warnings.append(
            f"Peak leverage of {peak_leverage:.1f}x exceeds {covenants.max_leverage:.1f}x; covenant risk"
        )
    if isfinite(equity_irr) and equity_irr < covenants.target_irr:
        warnings.append(
            f"Equity IRR of {equity_irr:.1%} is below the {covenants.target_irr:.0%} target"
        )
    if isfinite(equity_multiple) and equity_multiple < covenants.min_equity_multiple:
        warnings.append(
            f"Equity multiple of {equity_multiple:.2f}x is below {covenants.min_equity_multiple:.1f}x"
        )

    logger.debug(
        "LBO: exit_equity=%s multiple=%.4f irr=%.6f peak_leverage=%s",
        exit_equity_value, equity_multiple, equity_irr, peak_leverage,
    )

    return LBOResults(
        equity_irr=equity_irr,
        equity_multiple=equity_multiple,
        cash_on_cash_return=cash_on_cash_return,
        total_return=exit_equity_value + total_interim - invested,
        peak_leverage=peak_leverage,
        avg_leverage=avg_leverage,
        exit_enterprise_value=exit_enterprise_value,
        exit_equity_value=exit_equity_value,
        total_equity_invested=invested,
        projections=tuple(projections),
        debt_paydown_schedule=tuple(schedule),
        covenant_breaches=tuple(breaches),
        warnings=tuple(warnings),
    )
