"""Sensitivity tables and named scenarios.

Re-runs a pure engine (run_dcf, run_lbo, run_waterfall) with one or more
top-level input fields overridden and tabulates the chosen result metrics as
pandas DataFrames.

Example:
    table = run_sensitivity(
        run_lbo, lbo_inputs,
        parameter="exit_multiple",
        values=[Decimal("8"), Decimal("10"), Decimal("12")],
        metric="equity_irr",
    )
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import pandas as pd
from pydantic import ValidationError

from ..errors import DealModelError
from ..schemas.base import DomainModel
from ..schemas.config import EngineCFG

logger = logging.getLogger(__name__)

Engine = Callable[..., DomainModel]


def _with_overrides(inputs: DomainModel, overrides: Mapping[str, Any]) -> DomainModel:
    """Copy inputs with fields replaced, re-running field and model validation."""
    unknown = sorted(set(overrides) - set(type(inputs).model_fields))
    if unknown:
        raise KeyError(f"{type(inputs).__name__} has no fields {unknown}")
    data = inputs.model_copy(update=dict(overrides)).model_dump()
    return type(inputs).model_validate(data)


def _metric_value(results: DomainModel, metric: str) -> float:
    value = getattr(results, metric)
    return float('nan') if value is None else float(value)


def _evaluate(
    engine: Engine,
    inputs: DomainModel,
    overrides: Mapping[str, Any],
    metrics: Sequence[str],
    cfg: Optional[EngineCFG],
) -> Dict[str, Any]:
    """Run one point. Engine and validation errors become NaN plus the error name."""
    try:
        results = engine(_with_overrides(inputs, overrides), cfg)
    except (DealModelError, ValidationError) as exc:
        logger.info("Sensitivity point %s failed: %s", dict(overrides), exc)
        row = {metric: float('nan') for metric in metrics}
        row["error"] = type(exc).__name__
        return row

    row = {metric: _metric_value(results, metric) for metric in metrics}
    row["error"] = None
    return row


def run_sensitivity(
    engine: Engine,
    inputs: DomainModel,
    parameter: str,
    values: Sequence[Any],
    metric: str,
    cfg: Optional[EngineCFG] = None,
) -> pd.DataFrame:
    """One-way sensitivity of a result metric to an input field.

    Args:
        engine: Pure engine function taking (inputs, cfg)
        inputs: Base inputs for the engine
        parameter: Top-level input field to vary
        values: Values to substitute for the field
        metric: Result attribute to record (e.g. "equity_irr", "enterprise_value")
        cfg: Engine configuration passed through to every run

    Returns:
        DataFrame with columns [parameter, metric, "delta", "error"], one row
        per value. delta is the change versus the base run.

    Raises:
        DealModelError: If the base run itself fails
        KeyError: If parameter is not a field of inputs
    """
    if parameter not in type(inputs).model_fields:
        raise KeyError(f"{type(inputs).__name__} has no field '{parameter}'")

    base = _metric_value(engine(inputs, cfg), metric)

    rows: List[Dict[str, Any]] = []
    for value in values:
        row = _evaluate(engine, inputs, {parameter: value}, [metric], cfg)
        rows.append({
            parameter: value,
            metric: row[metric],
            "delta": row[metric] - base,
            "error": row["error"],
        })

    return pd.DataFrame(rows, columns=[parameter, metric, "delta", "error"])


def run_scenarios(
    engine: Engine,
    inputs: DomainModel,
    scenarios: Mapping[str, Mapping[str, Any]],
    metrics: Sequence[str],
    cfg: Optional[EngineCFG] = None,
) -> pd.DataFrame:
    """Evaluate named scenarios, each a set of input overrides.

    Args:
        engine: Pure engine function taking (inputs, cfg)
        inputs: Base inputs for the engine
        scenarios: Scenario name -> {field: value}; an empty mapping is the
            base case
        metrics: Result attributes to record
        cfg: Engine configuration passed through to every run

    Returns:
        DataFrame indexed by scenario name with one column per metric plus
        "error"

    Example:
        run_scenarios(run_lbo, inputs, {
            "bear": {"exit_multiple": Decimal("8")},
            "base": {},
            "bull": {"exit_multiple": Decimal("12")},
        }, metrics=["equity_irr", "equity_multiple"])
    """
    rows = [
        _evaluate(engine, inputs, overrides, metrics, cfg)
        for overrides in scenarios.values()
    ]
    table = pd.DataFrame(rows, index=list(scenarios), columns=list(metrics) + ["error"])
    table.index.name = "scenario"
    return table
