"""Discounted cash flow models.

A DCF run takes a year-indexed sequence of operating projections and the
components of the discount rate, and values the business as the present
value of its free cash flows plus a terminal value.
"""

from typing import Literal, Optional, Tuple
from decimal import Decimal
from pydantic import Field, model_validator

from .base import DomainModel, MoneyAmount, SignedAmount, Percentage, Rate, Multiple


# =============================================================================
# Projections
# =============================================================================

class CashFlowProjection(DomainModel):
    """One projection year of operating results.

    Free cash flow is derived from these fields:
        FCF = EBITDA - capex - working_capital_delta - taxes
        taxes = max(0, (EBITDA - depreciation) * tax_rate)

    Without a depreciation figure EBITDA is the taxable-income proxy.
    """

    year: int = Field(
        ge=1,
        description="Projection year (1 = first year after valuation date)"
    )

    revenue: SignedAmount = Field(
        description="Revenue for the year"
    )

    ebitda: SignedAmount = Field(
        description="EBITDA for the year"
    )

    capex: SignedAmount = Field(
        default=Decimal("0"),
        description="Capital expenditure for the year"
    )

    working_capital_delta: SignedAmount = Field(
        default=Decimal("0"),
        description="Increase in net working capital (a cash outflow when positive)"
    )

    depreciation: MoneyAmount = Field(
        default=Decimal("0"),
        description="Tax-deductible depreciation; 0 uses EBITDA as taxable income"
    )


# =============================================================================
# DCF Inputs
# =============================================================================

class DCFInputs(DomainModel):
    """Inputs for a DCF valuation.

    The discount rate is the WACC built from its components:
        WACC = E/(E+D) * cost_of_equity + D/(E+D) * cost_of_debt * (1 - tax_rate)

    Terminal value methods:
        - perpetuity: Gordon growth on the final year's free cash flow
        - multiple: final year's EBITDA times exit_multiple

    Example:
        DCFInputs(
            projection_years=5,
            terminal_growth_rate=Decimal("0.025"),
            cost_of_equity=Decimal("0.14"),
            cost_of_debt=Decimal("0.06"),
            market_value_equity=Decimal("200000000"),
            market_value_debt=Decimal("100000000"),
            tax_rate=Decimal("0.25"),
            terminal_value_method="perpetuity",
            cash_flows=[...],
            initial_investment=Decimal("150000000"),
        )
    """

    projection_years: int = Field(
        ge=1,
        description="Number of explicit projection years"
    )

    terminal_growth_rate: Rate = Field(
        default=Decimal("0"),
        description="Perpetual growth rate after the projection period"
    )

    cost_of_equity: Rate = Field(
        description="Required return on equity"
    )

    cost_of_debt: Rate = Field(
        description="Pre-tax cost of debt"
    )

    market_value_equity: SignedAmount = Field(
        description="Market value of equity (E) for WACC weights"
    )

    market_value_debt: SignedAmount = Field(
        description="Market value of debt (D) for WACC weights; deducted from EV"
    )

    tax_rate: Percentage = Field(
        default=Decimal("0"),
        description="Single scalar tax rate for cash taxes and the debt tax shield"
    )

    terminal_value_method: Literal["perpetuity", "multiple"] = Field(
        default="perpetuity",
        description="How the terminal value is computed"
    )

    exit_multiple: Optional[Multiple] = Field(
        default=None,
        description="EBITDA multiple for the 'multiple' terminal value method"
    )

    cash_flows: Tuple[CashFlowProjection, ...] = Field(
        description="Projection rows ordered by year"
    )

    initial_investment: Optional[MoneyAmount] = Field(
        default=None,
        description="Purchase price or investment, used for NPV, IRR and payback"
    )

    @model_validator(mode='after')
    def validate_projections(self):
        """Validate projection rows against projection_years and the TV method."""
        if len(self.cash_flows) != self.projection_years:
            raise ValueError(
                f"Expected {self.projection_years} projection rows, got {len(self.cash_flows)}"
            )

        years = [cf.year for cf in self.cash_flows]
        if any(later <= earlier for earlier, later in zip(years, years[1:])):
            raise ValueError(f"Projection years must be strictly increasing, got {years}")

        if self.terminal_value_method == "multiple" and self.exit_multiple is None:
            raise ValueError("terminal_value_method 'multiple' requires exit_multiple")

        return self


# =============================================================================
# DCF Results
# =============================================================================

class DCFResults(DomainModel):
    """Result of a DCF valuation.

    irr is NaN when it could not be computed (no investment given, no sign
    change, or no convergence); the reason is listed in warnings. The other
    values are valid regardless.
    """

    enterprise_value: Decimal
    equity_value: Decimal
    npv: Decimal
    irr: float
    pv_of_projections: Decimal
    pv_of_terminal_value: Decimal
    terminal_value: Decimal
    wacc: Decimal

    free_cash_flows: Tuple[Decimal, ...] = Field(
        description="Free cash flow per projection year"
    )

    terminal_value_share: Optional[float] = Field(
        default=None,
        description="PV of terminal value / enterprise value (None when EV is zero)"
    )

    payback_period: Optional[float] = Field(
        default=None,
        description="Years until cumulative FCF recovers the investment"
    )

    warnings: Tuple[str, ...] = Field(default=())
