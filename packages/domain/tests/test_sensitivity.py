"""Tests for sensitivity tables and scenarios.

Tests cover:
- One-way sensitivity of LBO returns to the exit multiple
- Degenerate points recorded as NaN with the error name
- Named bear/base/bull scenarios
"""

import math
from decimal import Decimal

import pytest

from dealmodel_domain.engines.dcf import run_dcf
from dealmodel_domain.engines.lbo import run_lbo
from dealmodel_domain.engines.sensitivity import run_scenarios, run_sensitivity
from dealmodel_domain.schemas import CashFlowProjection, DCFInputs, DebtTranche, LBOInputs


def lbo_inputs() -> LBOInputs:
    return LBOInputs(
        purchase_price=Decimal("100"),
        debt_tranches=[
            DebtTranche(id="senior", type="senior", principal=Decimal("60"),
                        annual_rate=Decimal("0.10"), term_years=5),
        ],
        equity_funding=Decimal("40"),
        projection_years=5,
        exit_multiple=Decimal("10"),
        exit_year=5,
        ebitda_projection=[Decimal("15")] * 5,
    )


def dcf_inputs() -> DCFInputs:
    return DCFInputs(
        projection_years=1,
        terminal_growth_rate=Decimal("0.02"),
        cost_of_equity=Decimal("0.10"),
        cost_of_debt=Decimal("0.05"),
        market_value_equity=Decimal("1"),
        market_value_debt=Decimal("0"),
        cash_flows=[CashFlowProjection(year=1, revenue=Decimal("400"), ebitda=Decimal("100"))],
    )


class TestRunSensitivity:
    """One-way tables."""

    def test_exit_multiple(self):
        """Exit equity = 15 * multiple - 60 on 40 invested."""
        table = run_sensitivity(
            run_lbo, lbo_inputs(),
            parameter="exit_multiple",
            values=[Decimal("8"), Decimal("10"), Decimal("12")],
            metric="equity_multiple",
        )

        assert list(table.columns) == ["exit_multiple", "equity_multiple", "delta", "error"]
        assert list(table["equity_multiple"]) == pytest.approx([1.5, 2.25, 3.0])
        assert list(table["delta"]) == pytest.approx([-0.75, 0.0, 0.75])
        assert table["error"].isna().all()

    def test_base_inputs_unchanged(self):
        inputs = lbo_inputs()
        before = inputs.fingerprint()
        run_sensitivity(run_lbo, inputs, "exit_multiple", [Decimal("8")], "equity_irr")
        assert inputs.fingerprint() == before

    def test_degenerate_point(self):
        """Terminal growth equal to WACC makes the perpetuity undefined."""
        table = run_sensitivity(
            run_dcf, dcf_inputs(),
            parameter="terminal_growth_rate",
            values=[Decimal("0.01"), Decimal("0.10")],
            metric="enterprise_value",
        )

        assert not math.isnan(table.iloc[0]["enterprise_value"])
        assert math.isnan(table.iloc[1]["enterprise_value"])
        assert table.iloc[1]["error"] == "InvalidGrowthAssumption"

    def test_invalid_value(self):
        """Values that fail input validation are recorded, not raised."""
        table = run_sensitivity(
            run_lbo, lbo_inputs(),
            parameter="exit_year",
            values=[3, 9],
            metric="equity_irr",
        )

        assert table.iloc[0]["equity_irr"] == pytest.approx(2.25 ** (1 / 3) - 1, abs=1e-6)
        assert table.iloc[1]["error"] == "ValidationError"

    def test_unknown_parameter(self):
        with pytest.raises(KeyError, match="no field 'exit_price'"):
            run_sensitivity(run_lbo, lbo_inputs(), "exit_price", [Decimal("1")], "equity_irr")


class TestRunScenarios:
    """Named scenario tables."""

    def test_bear_base_bull(self):
        table = run_scenarios(
            run_lbo, lbo_inputs(),
            scenarios={
                "bear": {"exit_multiple": Decimal("8")},
                "base": {},
                "bull": {"exit_multiple": Decimal("12"), "ebitda_projection": [Decimal("16")] * 5},
            },
            metrics=["equity_multiple", "peak_leverage"],
        )

        assert list(table.index) == ["bear", "base", "bull"]
        assert table.index.name == "scenario"
        assert table.loc["bear", "equity_multiple"] == pytest.approx(1.5)
        assert table.loc["base", "equity_multiple"] == pytest.approx(2.25)
        assert table.loc["bull", "equity_multiple"] == pytest.approx((16 * 12 - 60) / 40)
        assert table.loc["bull", "peak_leverage"] == pytest.approx(60 / 16)

    def test_failed_scenario(self):
        table = run_scenarios(
            run_lbo, lbo_inputs(),
            scenarios={"underfunded": {"equity_funding": Decimal("30")}},
            metrics=["equity_irr"],
        )

        assert math.isnan(table.loc["underfunded", "equity_irr"])
        assert table.loc["underfunded", "error"] == "UnbalancedSources"
