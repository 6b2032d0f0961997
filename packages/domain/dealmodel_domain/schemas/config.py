"""Engine configuration models.

Configuration is passed explicitly to each engine call; there is no global
configuration. Every model has usable defaults, so callers only override
what they need:

    cfg = EngineCFG(covenants=CovenantCFG(max_leverage=6.0))
    results = run_lbo(inputs, cfg)
"""

from decimal import Decimal
from pydantic import Field, model_validator

from .base import DomainModel


# =============================================================================
# IRR Solver
# =============================================================================

class SolverCFG(DomainModel):
    """Settings for the IRR root finder.

    Newton-Raphson (scipy.optimize.newton) starts at initial_guess and is
    abandoned for bisection (scipy.optimize.bisect) when its root lies outside
    [lower_bound, upper_bound], the derivative becomes smaller than
    min_derivative, or max_iterations is exhausted.
    """

    initial_guess: float = Field(
        default=0.10,
        description="Starting rate for Newton-Raphson (0.10 = 10%)"
    )

    max_iterations: int = Field(
        default=100,
        gt=0,
        description="Iteration cap applied to each method separately"
    )

    tolerance: float = Field(
        default=1e-7,
        gt=0,
        description="Absolute NPV error at which a bracket endpoint is accepted as the root"
    )

    rate_tolerance: float = Field(
        default=1e-12,
        gt=0,
        description="Rate step (Newton) or bracket width (bisection) passed to scipy as xtol"
    )

    min_derivative: float = Field(
        default=1e-12,
        gt=0,
        description="Derivative magnitude below which Newton is considered stalled"
    )

    lower_bound: float = Field(
        default=-0.99,
        gt=-1,
        description="Lowest admissible rate (-99%)"
    )

    upper_bound: float = Field(
        default=10.0,
        description="Highest admissible rate (1000%)"
    )

    @model_validator(mode='after')
    def validate_bounds(self):
        """Validate that the search interval is non-empty and holds the guess."""
        if self.lower_bound >= self.upper_bound:
            raise ValueError("lower_bound must be below upper_bound")
        if not self.lower_bound <= self.initial_guess <= self.upper_bound:
            raise ValueError("initial_guess must lie within [lower_bound, upper_bound]")
        return self


# =============================================================================
# DCF review thresholds
# =============================================================================

class DCFReviewCFG(DomainModel):
    """Thresholds for the review notes attached to DCF results."""

    max_terminal_value_share: float = Field(
        default=0.75,
        description="Warn when PV of terminal value exceeds this share of enterprise value"
    )

    max_wacc: Decimal = Field(
        default=Decimal("0.15"),
        description="Warn when WACC exceeds this rate"
    )


# =============================================================================
# LBO covenants
# =============================================================================

class CovenantCFG(DomainModel):
    """Covenant limits and return targets checked against LBO results.

    Defaults follow common sponsor underwriting screens:
        - Total leverage at or below 5.5x EBITDA
        - Interest coverage at or above 2.0x
        - 15% equity IRR, 2.0x equity multiple
    """

    max_leverage: float = Field(
        default=5.5,
        gt=0,
        description="Maximum total debt / EBITDA before a breach is recorded"
    )

    min_interest_coverage: float = Field(
        default=2.0,
        ge=0,
        description="Minimum EBITDA / interest expense before a breach is recorded"
    )

    target_irr: float = Field(
        default=0.15,
        description="Equity IRR below this triggers a warning"
    )

    min_equity_multiple: float = Field(
        default=2.0,
        ge=0,
        description="Equity multiple below this triggers a warning"
    )


# =============================================================================
# Waterfall
# =============================================================================

class WaterfallCFG(DomainModel):
    """Settings for waterfall allocation.

    redistribute_unclaimed selects what happens when a participant's
    allocation is capped (e.g. their capital is already returned):
        - False (default): the unclaimed share rolls to the next tier
        - True: it is re-split among the uncapped participants of the same tier
    """

    rounding_unit: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Allocations are rounded down to a multiple of this unit"
    )

    sum_tolerance: Decimal = Field(
        default=Decimal("0.000001"),
        ge=0,
        description="Allowed deviation from 1.0 for ownership and tier percentage sums"
    )

    redistribute_unclaimed: bool = Field(
        default=False,
        description="Re-split capped participants' unclaimed share within the same tier"
    )


# =============================================================================
# Aggregate
# =============================================================================

class EngineCFG(DomainModel):
    """Configuration for all engines, grouped for the dispatcher."""

    solver: SolverCFG = Field(default_factory=SolverCFG)
    dcf_review: DCFReviewCFG = Field(default_factory=DCFReviewCFG)
    covenants: CovenantCFG = Field(default_factory=CovenantCFG)
    waterfall: WaterfallCFG = Field(default_factory=WaterfallCFG)
