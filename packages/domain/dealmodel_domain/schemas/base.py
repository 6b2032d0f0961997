"""Base classes and type system for deal modeling schemas.

This module provides the foundational types and the base model used
throughout the input, result and configuration schemas.
"""

import hashlib
from decimal import Decimal
from typing import Annotated
from pydantic import BaseModel, Field, ConfigDict

# =============================================================================
# Base Model
# =============================================================================

class DomainModel(BaseModel):
    """Base class for all domain models.

    Provides common configuration for all Pydantic models in the domain layer:
    - Frozen instances (inputs and results are read-only once built)
    - Validation on assignment for runtime safety
    - Support for Decimal values
    - Enum value serialization
    """

    model_config = ConfigDict(
        frozen=True,
        validate_assignment=True,
        use_enum_values=True,
        arbitrary_types_allowed=True,
    )

    def fingerprint(self) -> str:
        """Stable hash of the model contents.

        Two models with identical field values produce the same fingerprint,
        so results can be memoized by the fingerprint of their inputs.

        Returns:
            Hex-encoded SHA-256 digest of the canonical JSON dump
        """
        payload = self.model_dump_json(round_trip=True)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# =============================================================================
# Type Aliases - Numeric
# =============================================================================

MoneyAmount = Annotated[
    Decimal,
    Field(ge=0, description="Currency amount (non-negative)")
]

SignedAmount = Annotated[
    Decimal,
    Field(description="Currency amount that may be negative (EBITDA, working capital deltas)")
]

Percentage = Annotated[
    Decimal,
    Field(ge=0, le=1, description="Percentage as decimal (0.0 to 1.0)")
]

Rate = Annotated[
    Decimal,
    Field(gt=-1, description="Annual rate as decimal (e.g. 0.08 = 8%), above -100%")
]

Multiple = Annotated[
    Decimal,
    Field(ge=0, description="Multiplier value (e.g., 10x EBITDA = 10.0)")
]


# =============================================================================
# ID Conventions
# =============================================================================

TrancheId = Annotated[
    str,
    Field(
        min_length=1,
        description="Identifier for a debt tranche (e.g., 'senior_tla', 'mezz')"
    )
]

ParticipantId = Annotated[
    str,
    Field(
        min_length=1,
        description="Identifier for a waterfall participant (e.g., 'lp_pension', 'gp')"
    )
]
