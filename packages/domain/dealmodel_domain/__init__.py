"""Deal Model Domain Engine - valuation and deal-structuring math.

This package provides the modeling layer for private-markets deals:
- IRR solver (Newton-Raphson with bisection fallback)
- DCF valuation (WACC, perpetuity or exit-multiple terminal value)
- LBO simulation (debt tranches, cash sweep, covenants, equity returns)
- Distribution waterfalls (return of capital, pref, catch-up, carry)
- Sensitivity tables and scenarios

The domain layer is designed to be:
- Framework-agnostic (no web or persistence dependencies)
- Testable (pure functions over frozen Pydantic models)
- Deterministic (same inputs, same results)
"""

from .schemas import *  # noqa: F403, F401
from .errors import *  # noqa: F403, F401
from .engines import (  # noqa: F401
    solve_irr,
    run_dcf,
    run_lbo,
    run_waterfall,
    run_sensitivity,
    run_scenarios,
)
from .dispatch import run_deal_model  # noqa: F401

__version__ = "0.1.0"
