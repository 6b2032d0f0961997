"""Exception taxonomy for the modeling engines.

Three families, by how callers should treat them:

- InputValidationError: malformed or inconsistent inputs. Always fatal,
  never retried.
- NumericDegeneracy: the math is undefined for the inputs (WACC at or below
  terminal growth, empty capital base, one-signed cash flows). Fatal for the
  derived field only.
- ConvergenceFailure: the IRR solver ran out of iterations. DCF and LBO
  report it as ``irr = NaN`` with a warning instead of raising.
"""


class DealModelError(Exception):
    """Base class for all engine errors."""
    pass


# =============================================================================
# Input validation
# =============================================================================

class InputValidationError(DealModelError):
    """Raised when inputs are inconsistent across records."""
    pass


class UnbalancedSources(InputValidationError):
    """Raised when LBO sources of funds do not equal uses of funds."""

    def __init__(self, sources, uses):
        self.sources = sources
        self.uses = uses
        super().__init__(
            f"Sources ({sources}) do not equal uses ({uses}); "
            f"difference {sources - uses}"
        )


class AllocationMismatch(InputValidationError):
    """Raised when ownership or tier percentages do not sum to 1.0."""
    pass


class InvalidTierOrder(InputValidationError):
    """Raised when waterfall tiers are not strictly increasing by order."""
    pass


class InvalidTierConfiguration(InputValidationError):
    """Raised when a waterfall tier is missing or has an unusable threshold."""
    pass


class MissingEngineInputs(InputValidationError):
    """Raised when a deal type requires an engine whose inputs were not given."""
    pass


# =============================================================================
# Numeric degeneracy
# =============================================================================

class NumericDegeneracy(DealModelError):
    """Raised when a derived value is mathematically undefined."""
    pass


class InvalidCapitalStructure(NumericDegeneracy):
    """Raised when market value of equity plus debt is not positive."""
    pass


class InvalidGrowthAssumption(NumericDegeneracy):
    """Raised when WACC <= terminal growth under the perpetuity method."""
    pass


class NoSignChange(NumericDegeneracy):
    """Raised when a cash-flow series has no sign change (IRR undefined)."""
    pass


# =============================================================================
# Convergence
# =============================================================================

class ConvergenceFailure(DealModelError):
    """Raised when an iterative method fails to converge."""
    pass


class NoConvergence(ConvergenceFailure):
    """Raised when neither Newton-Raphson nor bisection finds the IRR."""
    pass
