"""Pure modeling engines.

Each engine is a synchronous function from a frozen inputs model to a results
model. Engines deep-copy their inputs, share no state and never call one
another.
"""

from .irr import npv, solve_irr
from .dcf import run_dcf
from .lbo import run_lbo, validate_sources_and_uses
from .waterfall import run_waterfall, validate_waterfall_inputs
from .sensitivity import run_scenarios, run_sensitivity

__all__ = [
    "npv",
    "solve_irr",
    "run_dcf",
    "run_lbo",
    "validate_sources_and_uses",
    "run_waterfall",
    "validate_waterfall_inputs",
    "run_sensitivity",
    "run_scenarios",
]
