"""Internal rate of return solver.

Finds the rate r with sum(cf[t] / (1 + r) ** t) == 0 for a signed cash-flow
series where cf[0] is conventionally the (negative) initial outlay.

Newton-Raphson (scipy.optimize.newton with the analytic derivative) runs
first from SolverCFG.initial_guess. If the derivative falls below
SolverCFG.min_derivative, the iteration cap is exhausted, or the root lies
outside the admissible range, the solver falls back to bisection
(scipy.optimize.bisect) over a bracket found by sampling NPV on a geometric
grid of rates.

The loop is bounded and synchronous; callers needing a wall-clock budget
wrap the call themselves.
"""

import logging
from math import isfinite
from typing import List, Optional, Sequence, Tuple

from scipy import optimize

from ..errors import NoConvergence, NoSignChange
from ..schemas.config import SolverCFG

logger = logging.getLogger(__name__)

# Number of rates sampled when searching for a bisection bracket
BRACKET_GRID_POINTS = 64


def npv(rate: float, cash_flows: Sequence[float]) -> float:
    """Net present value of cash_flows at rate, with cash_flows[0] at t=0."""
    total = 0.0
    factor = 1.0
    growth = 1.0 + rate
    for cf in cash_flows:
        total += float(cf) * factor
        factor /= growth
    return total


def npv_derivative(rate: float, cash_flows: Sequence[float]) -> float:
    """Derivative of npv() with respect to rate."""
    total = 0.0
    growth = 1.0 + rate
    factor = 1.0 / growth
    for t, cf in enumerate(cash_flows):
        total -= t * float(cf) * factor
        factor /= growth
    return total


def has_sign_change(cash_flows: Sequence[float]) -> bool:
    """True if the series holds at least one positive and one negative flow."""
    return any(cf > 0 for cf in cash_flows) and any(cf < 0 for cf in cash_flows)


def solve_irr(cash_flows: Sequence[float], cfg: Optional[SolverCFG] = None) -> float:
    """Solve for the internal rate of return.

    Args:
        cash_flows: Signed cash flows, one per period, starting at t=0.
            Decimal values are accepted and converted to float.
        cfg: Solver settings (defaults to SolverCFG())

    Returns:
        The IRR as a decimal rate (0.176 = 17.6%)

    Raises:
        NoSignChange: If fewer than two flows are given or all share a sign
        NoConvergence: If neither Newton-Raphson nor bisection converges

    Example:
        solve_irr([-40, 0, 0, 0, 0, 90])  # ~0.1761 = 2.25 ** (1/5) - 1
    """
    cfg = cfg or SolverCFG()
    flows = [float(cf) for cf in cash_flows]

    if len(flows) < 2 or not has_sign_change(flows):
        raise NoSignChange(
            f"IRR undefined: cash flows need at least one sign change, got {flows}"
        )

    rate = _newton_raphson(flows, cfg)
    if rate is not None:
        return rate

    logger.debug("Newton-Raphson failed for %d cash flows; falling back to bisection", len(flows))
    return _bisection(flows, cfg)


def _newton_raphson(flows: List[float], cfg: SolverCFG) -> Optional[float]:
    """Newton iteration. Returns None when the method should be abandoned."""
    def slope(rate, cash_flows):
        # scipy raises on a zero derivative; tiny or NaN slopes count as zero
        value = npv_derivative(rate, cash_flows)
        return value if abs(value) >= cfg.min_derivative else 0.0

    try:
        rate = optimize.newton(
            npv,
            x0=cfg.initial_guess,
            fprime=slope,
            args=(flows,),
            tol=cfg.rate_tolerance,
            maxiter=cfg.max_iterations,
        )
    except (RuntimeError, ZeroDivisionError, OverflowError) as exc:
        logger.debug("Newton-Raphson abandoned: %s", exc)
        return None

    rate = float(rate)
    if not isfinite(rate) or not cfg.lower_bound <= rate <= cfg.upper_bound:
        logger.debug("Newton-Raphson root %s is outside the admissible range", rate)
        return None
    return rate


def _rate_grid(cfg: SolverCFG) -> List[float]:
    """Rates whose growth factors (1 + r) form a geometric sequence across the bounds."""
    low = 1.0 + cfg.lower_bound
    high = 1.0 + cfg.upper_bound
    ratio = (high / low) ** (1.0 / (BRACKET_GRID_POINTS - 1))
    return [low * ratio ** k - 1.0 for k in range(BRACKET_GRID_POINTS)]


def _find_bracket(flows: List[float], cfg: SolverCFG) -> Tuple[float, float, float, float]:
    """Find adjacent grid rates whose NPVs have opposite signs."""
    samples = [(rate, npv(rate, flows)) for rate in _rate_grid(cfg)]
    samples = [(rate, value) for rate, value in samples if isfinite(value)]

    for (lo, f_lo), (hi, f_hi) in zip(samples, samples[1:]):
        if f_lo == 0 or f_hi == 0 or (f_lo < 0) != (f_hi < 0):
            return lo, f_lo, hi, f_hi

    raise NoConvergence(
        f"IRR not found: NPV does not change sign between "
        f"{cfg.lower_bound:.0%} and {cfg.upper_bound:.0%}"
    )


def _bisection(flows: List[float], cfg: SolverCFG) -> float:
    """Bisection over a sampled bracket."""
    lo, f_lo, hi, f_hi = _find_bracket(flows, cfg)
    if abs(f_lo) <= cfg.tolerance:
        return lo
    if abs(f_hi) <= cfg.tolerance:
        return hi

    try:
        rate = optimize.bisect(
            npv, lo, hi,
            args=(flows,),
            xtol=cfg.rate_tolerance,
            maxiter=cfg.max_iterations,
        )
    except RuntimeError as exc:
        raise NoConvergence(
            f"IRR bisection did not converge within {cfg.max_iterations} iterations"
        ) from exc
    return float(rate)
