"""Deal modeling schemas.

This package contains all Pydantic models for the modeling engines:
- Base types and conventions
- Engine configuration
- DCF inputs and results
- LBO inputs, debt tranches and results
- Waterfall participants, tiers and results
- Deal-level request and results

Usage:
    from dealmodel_domain.schemas import (
        DCFInputs, CashFlowProjection, LBOInputs, DebtTranche,
        WaterfallInputs, Participant, WaterfallTier, DealModelRequest
    )
"""

# Base types
from .base import (
    DomainModel,
    MoneyAmount,
    SignedAmount,
    Percentage,
    Rate,
    Multiple,
    TrancheId,
    ParticipantId,
)

# Configuration
from .config import (
    SolverCFG,
    DCFReviewCFG,
    CovenantCFG,
    WaterfallCFG,
    EngineCFG,
)

# DCF
from .dcf import (
    CashFlowProjection,
    DCFInputs,
    DCFResults,
)

# LBO
from .lbo import (
    DebtTranche,
    LBOInputs,
    TranchePaydown,
    LBOYearProjection,
    CovenantBreach,
    LBOResults,
)

# Waterfall
from .waterfall import (
    TierType,
    Participant,
    WaterfallTier,
    WaterfallInputs,
    ParticipantSummary,
    TierResult,
    WaterfallPerformanceMetrics,
    WaterfallResults,
)

# Deal
from .deal import (
    DealModelRequest,
    DealModelResults,
    LBO_STRUCTURE,
    SINGLE_ASSET_CONTINUATION,
    MULTI_ASSET_CONTINUATION,
    CO_INVESTMENT,
    NEW_INVESTMENT,
)

__all__ = [
    # Base types
    "DomainModel",
    "MoneyAmount",
    "SignedAmount",
    "Percentage",
    "Rate",
    "Multiple",
    "TrancheId",
    "ParticipantId",
    # Configuration
    "SolverCFG",
    "DCFReviewCFG",
    "CovenantCFG",
    "WaterfallCFG",
    "EngineCFG",
    # DCF
    "CashFlowProjection",
    "DCFInputs",
    "DCFResults",
    # LBO
    "DebtTranche",
    "LBOInputs",
    "TranchePaydown",
    "LBOYearProjection",
    "CovenantBreach",
    "LBOResults",
    # Waterfall
    "TierType",
    "Participant",
    "WaterfallTier",
    "WaterfallInputs",
    "ParticipantSummary",
    "TierResult",
    "WaterfallPerformanceMetrics",
    "WaterfallResults",
    # Deal
    "DealModelRequest",
    "DealModelResults",
    "LBO_STRUCTURE",
    "SINGLE_ASSET_CONTINUATION",
    "MULTI_ASSET_CONTINUATION",
    "CO_INVESTMENT",
    "NEW_INVESTMENT",
]
