"""Tests for the LBO engine.

Tests cover:
- Worked example (interest-only senior debt, 5-year hold at 10x)
- Sources and uses balance
- Amortization: none, straight_line, cash_sweep
- Capex, cash taxes and EBITDA growth
- Shortfalls and non-positive EBITDA
- Covenant breaches and return warnings
- Interim distributions and degenerate equity
"""

import math
from decimal import Decimal

import pytest
from pydantic import ValidationError

from dealmodel_domain.engines.lbo import run_lbo, validate_sources_and_uses
from dealmodel_domain.errors import InputValidationError, UnbalancedSources
from dealmodel_domain.schemas import CovenantCFG, DebtTranche, EngineCFG, LBOInputs


def senior(principal="60", rate="0.10", amortization="none", tranche_id="senior", term_years=5):
    return DebtTranche(
        id=tranche_id,
        type="senior",
        principal=Decimal(principal),
        annual_rate=Decimal(rate),
        term_years=term_years,
        amortization=amortization,
    )


def make_inputs(**overrides) -> LBOInputs:
    """Purchase at 100 with 60 of 10% senior debt and 40 of equity, flat EBITDA 15."""
    fields = dict(
        purchase_price=Decimal("100"),
        debt_tranches=[senior()],
        equity_funding=Decimal("40"),
        projection_years=5,
        exit_multiple=Decimal("10"),
        exit_year=5,
        ebitda_projection=[Decimal("15")] * 5,
    )
    fields.update(overrides)
    return LBOInputs(**fields)


class TestWorkedExample:
    """Scenario:
    - Purchase price 100: senior 60 @ 10% interest-only, equity 40
    - EBITDA 15 every year, exit at 10x in year 5

    Expected:
    - Exit EV 150, debt still 60, exit equity 90
    - Equity multiple 2.25x, IRR = 2.25 ** (1/5) - 1 = 17.6%
    """

    def test_returns(self):
        results = run_lbo(make_inputs())

        assert results.exit_enterprise_value == Decimal("150")
        assert results.exit_equity_value == Decimal("90")
        assert results.equity_multiple == pytest.approx(2.25)
        assert results.cash_on_cash_return == pytest.approx(2.25)
        assert results.equity_irr == pytest.approx(2.25 ** 0.2 - 1, abs=1e-6)
        assert results.total_return == Decimal("50")
        assert results.total_equity_invested == Decimal("40")

    def test_projections(self):
        results = run_lbo(make_inputs())

        assert len(results.projections) == 5
        for p in results.projections:
            assert p.interest_expense == Decimal("6")
            assert p.free_cash_flow == Decimal("9")
            assert p.cash_sweep == Decimal("0")
            assert p.unswept_cash == Decimal("9")
            assert p.total_debt == Decimal("60")
            assert p.leverage == pytest.approx(4.0)
            assert p.interest_coverage == pytest.approx(2.5)
            assert not p.cash_shortfall

        assert results.peak_leverage == pytest.approx(4.0)
        assert results.avg_leverage == pytest.approx(4.0)

    def test_no_warnings_or_breaches(self):
        results = run_lbo(make_inputs())

        assert results.covenant_breaches == ()
        assert results.warnings == ()

    def test_inputs_unchanged(self):
        inputs = make_inputs()
        before = inputs.fingerprint()
        run_lbo(inputs)
        assert inputs.fingerprint() == before


class TestSourcesAndUses:
    """Sources of funds must equal uses to the cent."""

    def test_one_cent_short(self):
        with pytest.raises(UnbalancedSources) as exc_info:
            run_lbo(make_inputs(equity_funding=Decimal("39.99")))

        assert exc_info.value.sources == Decimal("99.99")
        assert exc_info.value.uses == Decimal("100.00")

    def test_unbalanced_is_input_validation_error(self):
        with pytest.raises(InputValidationError):
            validate_sources_and_uses(make_inputs(equity_funding=Decimal("45")))

    def test_sub_cent_difference_tolerated(self):
        validate_sources_and_uses(make_inputs(equity_funding=Decimal("40.004")))

    @pytest.mark.parametrize("equity_funding", ["40.004", "40.0149"])
    def test_threshold_independent_of_rounding_boundary(self, equity_funding):
        """Uses of 100.005 sit on a half-cent; any gap under a cent passes."""
        inputs = make_inputs(
            purchase_price=Decimal("100.005"),
            equity_funding=Decimal(equity_funding),
        )
        validate_sources_and_uses(inputs)

    def test_exactly_one_cent_over(self):
        with pytest.raises(UnbalancedSources):
            validate_sources_and_uses(make_inputs(equity_funding=Decimal("40.01")))

    def test_fees_and_rollover(self):
        """Fees are a use; management rollover is a source and part of invested equity."""
        inputs = make_inputs(
            transaction_fees=Decimal("2"),
            equity_funding=Decimal("32"),
            management_rollover=Decimal("10"),
        )
        results = run_lbo(inputs)

        assert results.total_equity_invested == Decimal("42")
        assert results.equity_multiple == pytest.approx(90 / 42)


class TestAmortization:
    """Debt paydown conventions."""

    def test_cash_sweep(self):
        """All free cash flow repays the sweep tranche; interest on the opening balance."""
        results = run_lbo(make_inputs(debt_tranches=[senior(amortization="cash_sweep")]))

        year1, year2 = results.projections[0], results.projections[1]
        assert year1.cash_sweep == Decimal("9")
        assert year1.total_debt == Decimal("51")
        assert year2.interest_expense == Decimal("5.1")
        assert year2.total_debt == Decimal("41.1")

        balances = [p.total_debt for p in results.projections]
        assert balances == sorted(balances, reverse=True)
        assert results.exit_equity_value == Decimal("150") - results.projections[-1].total_debt
        assert results.equity_multiple > 2.25

    def test_sweep_most_senior_first(self):
        tranches = [
            senior(principal="50", rate="0.08", amortization="cash_sweep"),
            DebtTranche(
                id="mezz",
                type="mezzanine",
                principal=Decimal("10"),
                annual_rate=Decimal("0.12"),
                term_years=7,
                amortization="cash_sweep",
            ),
        ]
        results = run_lbo(make_inputs(debt_tranches=tranches))

        year1 = [row for row in results.debt_paydown_schedule if row.year == 1]
        senior_row, mezz_row = year1
        assert senior_row.tranche_id == "senior"
        assert senior_row.interest_expense == Decimal("4")
        assert senior_row.cash_sweep == Decimal("9.8")
        assert mezz_row.interest_expense == Decimal("1.2")
        assert mezz_row.cash_sweep == Decimal("0")
        assert len(results.debt_paydown_schedule) == 10

    def test_straight_line(self):
        """60 over 5 years repays 12 a year; early years run a shortfall."""
        results = run_lbo(make_inputs(debt_tranches=[senior(amortization="straight_line")]))

        year1 = results.projections[0]
        assert year1.mandatory_amortization == Decimal("12")
        assert year1.free_cash_flow == Decimal("-3")
        assert year1.cash_shortfall
        assert year1.total_debt == Decimal("48")

        assert results.projections[-1].total_debt == Decimal("0")
        assert results.exit_equity_value == Decimal("150")
        assert any(w.startswith("Year 1: free cash flow shortfall") for w in results.warnings)

    def test_no_tranches(self):
        """All-equity deal: no interest, leverage zero."""
        results = run_lbo(make_inputs(debt_tranches=[], equity_funding=Decimal("100")))

        assert results.peak_leverage == 0.0
        assert results.projections[0].interest_coverage is None
        assert results.exit_equity_value == Decimal("150")
        assert results.debt_paydown_schedule == ()


class TestOperatingAssumptions:
    """Capex, taxes and EBITDA growth."""

    def test_capex_and_taxes(self):
        """FCF = 15 - 6 interest - 1.5 capex - (15 - 6) * 25% taxes = 5.25."""
        results = run_lbo(make_inputs(
            tax_rate=Decimal("0.25"),
            capex_percent_of_ebitda=Decimal("0.10"),
        ))

        year1 = results.projections[0]
        assert year1.capex == Decimal("1.5")
        assert year1.cash_taxes == Decimal("2.25")
        assert year1.free_cash_flow == Decimal("5.25")

    def test_ebitda_growth(self):
        results = run_lbo(make_inputs(
            ebitda_projection=None,
            base_ebitda=Decimal("15"),
            ebitda_growth_rate=Decimal("0.10"),
        ))

        assert float(results.projections[0].ebitda) == pytest.approx(16.5)
        assert float(results.projections[1].ebitda) == pytest.approx(18.15)
        assert float(results.exit_enterprise_value) == pytest.approx(15 * 1.1 ** 5 * 10)

    def test_early_exit(self):
        results = run_lbo(make_inputs(exit_year=3))
        assert results.equity_irr == pytest.approx(2.25 ** (1 / 3) - 1, abs=1e-6)

    def test_interim_distributions(self):
        """Dividends in years 1-2 count toward cash-on-cash and IRR."""
        results = run_lbo(make_inputs(interim_distributions=[Decimal("5"), Decimal("5")]))

        assert results.equity_multiple == pytest.approx(2.25)
        assert results.cash_on_cash_return == pytest.approx(2.5)
        assert results.total_return == Decimal("60")
        assert results.equity_irr > 2.25 ** 0.2 - 1


class TestDegenerateOperations:
    """Non-positive EBITDA and missing equity never abort the run."""

    def test_negative_ebitda_year(self):
        results = run_lbo(make_inputs(
            ebitda_projection=[Decimal("-5")] + [Decimal("15")] * 4,
        ))

        year1 = results.projections[0]
        assert math.isinf(year1.leverage)
        assert year1.cash_shortfall
        assert math.isinf(results.peak_leverage)
        assert any("EBITDA of -5 is not positive" in w for w in results.warnings)
        assert results.exit_equity_value == Decimal("90")

    def test_no_equity(self):
        results = run_lbo(make_inputs(
            purchase_price=Decimal("60"),
            equity_funding=Decimal("0"),
        ))

        assert math.isnan(results.equity_multiple)
        assert math.isnan(results.equity_irr)
        assert any("No equity invested" in w for w in results.warnings)
        assert any("NoSignChange" in w for w in results.warnings)


class TestCovenants:
    """Covenant breaches and return warnings."""

    def test_high_leverage(self):
        """90 of debt on 15 of EBITDA: 6.0x leverage, 1.67x coverage every year."""
        results = run_lbo(make_inputs(
            debt_tranches=[senior(principal="90")],
            equity_funding=Decimal("10"),
        ))

        assert len(results.covenant_breaches) == 10
        year1 = results.breaches_for_year(1)
        assert {b.covenant for b in year1} == {"max_leverage", "min_interest_coverage"}
        assert results.peak_leverage == pytest.approx(6.0)
        assert any("Peak leverage of 6.0x exceeds 5.5x" in w for w in results.warnings)

    def test_low_returns(self):
        results = run_lbo(make_inputs(exit_multiple=Decimal("7")))

        assert any("below the 15% target" in w for w in results.warnings)
        assert any("is below 2.0x" in w for w in results.warnings)

    def test_custom_limits(self):
        cfg = EngineCFG(covenants=CovenantCFG(max_leverage=3.5, min_interest_coverage=3.0))
        results = run_lbo(make_inputs(), cfg)

        assert len(results.covenant_breaches) == 10
        assert results.breaches_for_year(6) == []


class TestInputValidation:
    """Structural problems rejected when the inputs are built."""

    def test_exit_after_projection(self):
        with pytest.raises(ValidationError, match="exit_year"):
            make_inputs(exit_year=6)

    def test_two_ebitda_sources(self):
        with pytest.raises(ValidationError, match="either ebitda_projection"):
            make_inputs(base_ebitda=Decimal("15"), ebitda_growth_rate=Decimal("0.05"))

    def test_projection_length(self):
        with pytest.raises(ValidationError, match="needs 5 values"):
            make_inputs(ebitda_projection=[Decimal("15")] * 4)

    def test_duplicate_tranche_ids(self):
        with pytest.raises(ValidationError, match="Duplicate tranche ids"):
            make_inputs(debt_tranches=[senior(principal="30"), senior(principal="30")])
