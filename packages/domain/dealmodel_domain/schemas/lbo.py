"""Leveraged buyout models.

An LBO run funds a purchase with a stack of debt tranches plus sponsor and
management equity, simulates debt service year by year, and measures equity
returns at exit.

Sources and uses must balance:
    sum(tranche.principal) + equity_funding + management_rollover
        == purchase_price + transaction_fees
"""

from typing import List, Literal, Optional, Tuple
from decimal import Decimal
from pydantic import Field, model_validator

from .base import DomainModel, MoneyAmount, SignedAmount, Percentage, Rate, Multiple, TrancheId


# =============================================================================
# Debt Tranche
# =============================================================================

class DebtTranche(DomainModel):
    """One layer of acquisition debt.

    Position in LBOInputs.debt_tranches is seniority: earlier tranches are
    more senior and are swept first.

    Amortization:
        - none: interest only, no principal reduction
        - straight_line: principal / term_years repaid each year until term ends
        - cash_sweep: no mandatory repayment; excess free cash flow repays it
    """

    id: TrancheId

    type: Literal["senior", "subordinated", "mezzanine", "bridge"]

    principal: MoneyAmount = Field(
        description="Amount drawn at close"
    )

    annual_rate: Rate = Field(
        description="Cash interest rate applied to the opening balance each year"
    )

    term_years: int = Field(
        ge=1,
        description="Contractual maturity in years"
    )

    amortization: Literal["none", "straight_line", "cash_sweep"] = Field(
        default="none",
        description="Principal repayment schedule"
    )


# =============================================================================
# LBO Inputs
# =============================================================================

class LBOInputs(DomainModel):
    """Inputs for an LBO simulation.

    EBITDA comes from exactly one of two sources:
        - ebitda_projection: one value per projection year
        - base_ebitda + ebitda_growth_rate: EBITDA_t = base * (1 + g) ** t

    Example:
        LBOInputs(
            purchase_price=Decimal("150000000"),
            debt_tranches=[
                DebtTranche(id="senior", type="senior", principal=Decimal("90000000"),
                            annual_rate=Decimal("0.055"), term_years=7,
                            amortization="cash_sweep"),
                DebtTranche(id="mezz", type="mezzanine", principal=Decimal("30000000"),
                            annual_rate=Decimal("0.12"), term_years=8),
            ],
            equity_funding=Decimal("28000000"),
            management_rollover=Decimal("5000000"),
            transaction_fees=Decimal("3000000"),
            projection_years=5,
            exit_multiple=Decimal("12"),
            exit_year=5,
            tax_rate=Decimal("0.25"),
            base_ebitda=Decimal("25000000"),
            ebitda_growth_rate=Decimal("0.08"),
        )
    """

    purchase_price: MoneyAmount
    debt_tranches: Tuple[DebtTranche, ...] = Field(
        default=(),
        description="Debt stack in seniority order (most senior first)"
    )
    equity_funding: MoneyAmount
    management_rollover: Optional[MoneyAmount] = None
    transaction_fees: MoneyAmount = Decimal("0")

    projection_years: int = Field(ge=1)
    exit_multiple: Multiple
    exit_year: int = Field(ge=1)
    tax_rate: Percentage = Decimal("0")

    ebitda_projection: Optional[Tuple[SignedAmount, ...]] = Field(
        default=None,
        description="EBITDA per projection year"
    )

    base_ebitda: Optional[SignedAmount] = Field(
        default=None,
        description="Year-0 EBITDA grown by ebitda_growth_rate"
    )

    ebitda_growth_rate: Optional[Rate] = Field(
        default=None,
        description="Annual EBITDA growth applied to base_ebitda"
    )

    capex_percent_of_ebitda: Percentage = Field(
        default=Decimal("0"),
        description="Capex and working capital needs as a share of EBITDA"
    )

    interim_distributions: Tuple[MoneyAmount, ...] = Field(
        default=(),
        description="Equity distributions paid in years 1..n before exit (default none)"
    )

    @model_validator(mode='after')
    def validate_structure(self):
        """Validate hold period, EBITDA source and interim distributions."""
        if self.exit_year > self.projection_years:
            raise ValueError(
                f"exit_year ({self.exit_year}) cannot exceed projection_years ({self.projection_years})"
            )

        has_series = self.ebitda_projection is not None
        has_growth = self.base_ebitda is not None or self.ebitda_growth_rate is not None
        if has_series == has_growth:
            raise ValueError(
                "Provide either ebitda_projection or base_ebitda with ebitda_growth_rate"
            )
        if has_growth and (self.base_ebitda is None or self.ebitda_growth_rate is None):
            raise ValueError("base_ebitda and ebitda_growth_rate must be given together")
        if has_series and len(self.ebitda_projection) != self.projection_years:
            raise ValueError(
                f"ebitda_projection needs {self.projection_years} values, "
                f"got {len(self.ebitda_projection)}"
            )

        if len(self.interim_distributions) > self.exit_year:
            raise ValueError("interim_distributions cannot extend past exit_year")

        ids = [t.id for t in self.debt_tranches]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate tranche ids: {ids}")

        return self

    @property
    def total_debt(self) -> Decimal:
        return sum((t.principal for t in self.debt_tranches), Decimal("0"))

    @property
    def total_equity_invested(self) -> Decimal:
        return self.equity_funding + (self.management_rollover or Decimal("0"))

    @property
    def total_sources(self) -> Decimal:
        return self.total_debt + self.total_equity_invested

    @property
    def total_uses(self) -> Decimal:
        return self.purchase_price + self.transaction_fees

    def ebitda_for_year(self, year: int) -> Decimal:
        """EBITDA for a projection year (1-based)."""
        if self.ebitda_projection is not None:
            return self.ebitda_projection[year - 1]
        return self.base_ebitda * (1 + self.ebitda_growth_rate) ** year


# =============================================================================
# LBO Results
# =============================================================================

class TranchePaydown(DomainModel):
    """One tranche's debt service in one projection year."""

    year: int
    tranche_id: str
    opening_balance: Decimal
    interest_expense: Decimal
    mandatory_amortization: Decimal
    cash_sweep: Decimal
    closing_balance: Decimal


class LBOYearProjection(DomainModel):
    """Simulated results for one projection year.

    cash_shortfall is set when free cash flow was negative; the deficit is
    not carried into later years.
    """

    year: int
    ebitda: Decimal
    interest_expense: Decimal
    mandatory_amortization: Decimal
    capex: Decimal
    cash_taxes: Decimal
    free_cash_flow: Decimal
    cash_sweep: Decimal
    unswept_cash: Decimal
    total_debt: Decimal
    leverage: float
    interest_coverage: Optional[float] = None
    cash_shortfall: bool = False


class CovenantBreach(DomainModel):
    """A covenant test failed in a given year."""

    year: int
    covenant: Literal["max_leverage", "min_interest_coverage"]
    actual: float
    limit: float


class LBOResults(DomainModel):
    """Result of an LBO simulation.

    equity_irr is NaN when the solver fails; the reason is in warnings.
    cash_on_cash_return equals equity_multiple unless interim distributions
    were modeled.
    """

    equity_irr: float
    equity_multiple: float
    cash_on_cash_return: float
    total_return: Decimal
    peak_leverage: float
    avg_leverage: float
    exit_enterprise_value: Decimal
    exit_equity_value: Decimal
    total_equity_invested: Decimal

    projections: Tuple[LBOYearProjection, ...] = ()
    debt_paydown_schedule: Tuple[TranchePaydown, ...] = ()
    covenant_breaches: Tuple[CovenantBreach, ...] = ()
    warnings: Tuple[str, ...] = ()

    def breaches_for_year(self, year: int) -> List[CovenantBreach]:
        """All covenant breaches recorded for a projection year."""
        return [b for b in self.covenant_breaches if b.year == year]
