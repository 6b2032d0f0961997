"""Distribution waterfall models.

A waterfall splits a cash distribution among fund participants through an
ordered set of tiers. The classic American structure is:

    1. Return of capital    - contributed capital back first
    2. Preferred return     - hurdle (e.g. 8% per year) on contributed capital
    3. GP catch-up          - GP receives profit until it holds its carry share
    4. Carry split          - remainder split (e.g. 80/20 LP/GP)

Each tier allocates by per-participant weights (``percentage``) that sum to
1.0. Return-of-capital and preferred-return tiers may leave ``percentage``
empty to allocate by participant ownership.
"""

from typing import Dict, Literal, Optional, Tuple
from decimal import Decimal
from pydantic import Field, model_validator

from .base import DomainModel, MoneyAmount, Percentage, Rate, ParticipantId


TierType = Literal["return_of_capital", "preferred_return", "catch_up", "carry_split"]


# =============================================================================
# Participant
# =============================================================================

class Participant(DomainModel):
    """A capital provider or recipient in the waterfall.

    For incremental use, the caller carries the amounts already paid in
    previous runs (capital_returned, preferred_return_paid). A fresh run
    assumes nothing has been paid yet.
    """

    id: ParticipantId

    name: str

    type: Literal["LP", "GP", "Management"]

    ownership_percentage: Percentage = Field(
        description="Share of fund ownership; all participants must sum to 1.0"
    )

    contributed_capital: Optional[MoneyAmount] = Field(
        default=None,
        description="Capital contributed; defaults to ownership * total_contributions"
    )

    capital_returned: MoneyAmount = Field(
        default=Decimal("0"),
        description="Capital already returned by earlier distributions"
    )

    preferred_return_paid: MoneyAmount = Field(
        default=Decimal("0"),
        description="Preferred return already paid by earlier distributions"
    )


# =============================================================================
# Waterfall Tier
# =============================================================================

class WaterfallTier(DomainModel):
    """One tier of the waterfall.

    threshold meaning by tier type:
        - return_of_capital: unused
        - preferred_return: annual hurdle rate (0.08 = 8%), accrued over
          WaterfallInputs.hold_period_years using ``compounding``
        - catch_up: GP target share of total profit (0.20 = 20% carry)
        - carry_split: unused

    Example:
        WaterfallTier(
            order=4,
            type="carry_split",
            percentage={"lp": Decimal("0.8"), "gp": Decimal("0.2")},
        )
    """

    order: int

    type: TierType

    threshold: Optional[Rate] = Field(
        default=None,
        description="Hurdle rate (preferred_return) or target carry share (catch_up)"
    )

    percentage: Dict[ParticipantId, Percentage] = Field(
        default_factory=dict,
        description="Participant id -> share of this tier; must sum to 1.0"
    )

    compounding: Literal["simple", "compound"] = Field(
        default="compound",
        description="Accrual convention for the preferred-return hurdle"
    )


# =============================================================================
# Waterfall Inputs
# =============================================================================

class WaterfallInputs(DomainModel):
    """Inputs for a waterfall distribution.

    Example:
        WaterfallInputs(
            participants=[
                Participant(id="lp", name="Pension LP", type="LP",
                            ownership_percentage=Decimal("0.8")),
                Participant(id="gp", name="Sponsor GP", type="GP",
                            ownership_percentage=Decimal("0.2")),
            ],
            tiers=[WaterfallTier(order=1, type="return_of_capital")],
            distribution_amount=Decimal("100"),
            total_committed_capital=Decimal("100"),
            total_contributions=Decimal("100"),
        )
    """

    participants: Tuple[Participant, ...]

    tiers: Tuple[WaterfallTier, ...]

    distribution_amount: MoneyAmount = Field(
        description="Cash to distribute in this run"
    )

    total_committed_capital: MoneyAmount

    total_contributions: MoneyAmount = Field(
        description="Capital called to date"
    )

    hold_period_years: Decimal = Field(
        default=Decimal("1"),
        ge=0,
        description="Years over which the preferred return accrues"
    )

    @model_validator(mode='after')
    def validate_participant_ids(self):
        """Validate that participant ids are unique."""
        ids = [p.id for p in self.participants]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate participant ids: {ids}")
        return self

    def contributed_capital(self, participant: Participant) -> Decimal:
        """Capital contributed by a participant (explicit or ownership-implied)."""
        if participant.contributed_capital is not None:
            return participant.contributed_capital
        return self.total_contributions * participant.ownership_percentage


# =============================================================================
# Waterfall Results
# =============================================================================

class ParticipantSummary(DomainModel):
    """Distribution received by one participant, by tier type."""

    participant_id: str
    name: str
    type: str
    contributed_capital: Decimal
    return_of_capital: Decimal = Decimal("0")
    preferred_return: Decimal = Decimal("0")
    catch_up: Decimal = Decimal("0")
    carry_split: Decimal = Decimal("0")
    total_allocation: Decimal = Decimal("0")
    effective_return: Optional[Decimal] = Field(
        default=None,
        description="total_allocation / contributed_capital (None when nothing contributed)"
    )


class TierResult(DomainModel):
    """Amounts moved through one tier."""

    order: int
    type: str
    amount_available: Decimal
    amount_distributed: Decimal
    amount_remaining: Decimal
    allocations: Dict[str, Decimal] = Field(default_factory=dict)


class WaterfallPerformanceMetrics(DomainModel):
    """Fund-level metrics for the distribution."""

    total_profit: Decimal = Field(
        description="Amount distributed above return of capital"
    )
    lp_distribution: Decimal
    gp_distribution: Decimal
    management_distribution: Decimal
    gp_profit_share: Optional[Decimal] = Field(
        default=None,
        description="GP share of total profit (None when there is no profit)"
    )
    dpi: Optional[Decimal] = Field(
        default=None,
        description="Distributions to paid-in capital for this run"
    )
    unfunded_commitment: Decimal


class WaterfallResults(DomainModel):
    """Result of a waterfall run.

    Invariant: total_distributed + remaining_amount == distribution_amount.
    """

    total_distributed: Decimal
    remaining_amount: Decimal
    participant_summary: Tuple[ParticipantSummary, ...]
    performance_metrics: WaterfallPerformanceMetrics
    tier_results: Tuple[TierResult, ...] = ()

    def summary_for(self, participant_id: str) -> ParticipantSummary:
        """Look up a participant's summary row.

        Raises:
            KeyError: If the participant is not in the results
        """
        for summary in self.participant_summary:
            if summary.participant_id == participant_id:
                return summary
        raise KeyError(f"Participant '{participant_id}' not found in waterfall results")
