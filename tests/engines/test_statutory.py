"""
Tests for statutory deductions, employer contributions and settlement.
"""

from decimal import Decimal

import pytest

from payroll_engines.contributions import ContributionCalculator
from payroll_engines.settlement import SettlementCalculator
from payroll_engines.statutory import StatutoryCalculator, StatutoryRates
from payroll_kernel.exceptions import InvalidCompensationError


class TestEmployeeDeductions:
    def setup_method(self):
        self.calculator = StatutoryCalculator()

    def test_epf_is_capped(self):
        result = self.calculator.calculate(
            basic=Decimal("16800.00"),
            adjusted_gross=Decimal("28000.00"),
            professional_tax=Decimal("200"),
        )
        assert result.epf_employee == Decimal("1800")
        assert result.esic_employee == Decimal("0")
        assert result.professional_tax == Decimal("200.00")
        assert result.tds == Decimal("0.00")
        assert result.total == Decimal("2000.00")

    def test_outputs_carry_two_places(self):
        deductions = self.calculator.calculate(
            basic=Decimal("16800.00"),
            adjusted_gross=Decimal("28000.00"),
        )
        contributions = ContributionCalculator().calculate(
            basic=Decimal("16800.00"),
            adjusted_gross=Decimal("28000.00"),
        )
        assert str(deductions.epf_employee) == "1800.00"
        assert str(deductions.esic_employee) == "0.00"
        assert str(contributions.epf_employer) == "1800.00"
        assert str(contributions.esic_employer) == "0.00"
        assert str(self.calculator.epf(Decimal("10000.00"), applicable=False)) == "0.00"

    def test_epf_below_cap(self):
        assert self.calculator.epf(Decimal("10000.00")) == Decimal("1200.00")

    def test_esic_applies_at_or_below_ceiling(self):
        result = self.calculator.calculate(
            basic=Decimal("10500.00"),
            adjusted_gross=Decimal("21000.00"),
        )
        assert result.esic_employee == Decimal("157.50")

    def test_esic_zero_above_ceiling(self):
        result = self.calculator.calculate(
            basic=Decimal("10500.00"),
            adjusted_gross=Decimal("21000.01"),
        )
        assert result.esic_employee == Decimal("0")

    def test_inapplicable_flags(self):
        result = self.calculator.calculate(
            basic=Decimal("10000.00"),
            adjusted_gross=Decimal("20000.00"),
            pf_applicable=False,
            esic_applicable=False,
        )
        assert result.epf_employee == Decimal("0")
        assert result.esic_employee == Decimal("0")

    def test_tds_passes_through(self):
        result = self.calculator.calculate(
            basic=Decimal("30000.00"),
            adjusted_gross=Decimal("60000.00"),
            professional_tax=Decimal("200"),
            tds=Decimal("4500"),
        )
        assert result.tds == Decimal("4500.00")
        assert result.total == Decimal("6500.00")

    @pytest.mark.parametrize("field", ["professional_tax", "tds"])
    def test_negative_withholding_rejected(self, field):
        with pytest.raises(InvalidCompensationError):
            self.calculator.calculate(
                basic=Decimal("10000"),
                adjusted_gross=Decimal("20000"),
                **{field: Decimal("-1")},
            )

    def test_custom_rates(self):
        rates = StatutoryRates(epf_ceiling=Decimal("2500"))
        calculator = StatutoryCalculator(rates)
        assert calculator.epf(Decimal("25000")) == Decimal("2500")

    def test_invalid_rates_rejected(self):
        with pytest.raises(ValueError):
            StatutoryRates(epf_rate=Decimal("-0.12"))


class TestEmployerContributions:
    def test_below_esic_ceiling(self):
        result = ContributionCalculator().calculate(
            basic=Decimal("10000.00"),
            adjusted_gross=Decimal("20000.00"),
        )
        assert result.epf_employer == Decimal("1200.00")
        assert result.esic_employer == Decimal("650.00")
        assert result.gratuity == Decimal("481.00")
        assert result.total == Decimal("2331.00")

    def test_backend_scenario(self):
        result = ContributionCalculator().calculate(
            basic=Decimal("16800.00"),
            adjusted_gross=Decimal("28000.00"),
        )
        assert result.epf_employer == Decimal("1800")
        assert result.esic_employer == Decimal("0")
        assert result.gratuity == Decimal("808.08")
        assert result.total == Decimal("2608.08")


class TestSettlement:
    def test_ctc_identity(self):
        result = SettlementCalculator().settle(
            adjusted_gross=Decimal("28000.00"),
            variable_pay=Decimal("0"),
            total_employee_deductions=Decimal("2000.00"),
            sales_deduction=Decimal("0"),
            total_employer_contributions=Decimal("2608.08"),
        )
        assert result.net_take_home == Decimal("26000.00")
        assert result.monthly_ctc == Decimal("30608.08")
        assert result.annual_ctc == Decimal("367296.96")

    def test_sales_deduction_reduces_net(self):
        result = SettlementCalculator().settle(
            adjusted_gross=Decimal("40000.00"),
            variable_pay=Decimal("0"),
            total_employee_deductions=Decimal("2000.00"),
            sales_deduction=Decimal("6666.67"),
            total_employer_contributions=Decimal("2762.00"),
        )
        assert result.net_take_home == Decimal("31333.33")

    def test_negative_net_is_clamped(self, captured_logs):
        result = SettlementCalculator().settle(
            adjusted_gross=Decimal("1000.00"),
            variable_pay=Decimal("0"),
            total_employee_deductions=Decimal("1320.00"),
            sales_deduction=Decimal("250.00"),
            total_employer_contributions=Decimal("100.00"),
        )
        assert result.net_take_home == Decimal("0")
        # identity holds on the clamped net
        assert result.monthly_ctc == Decimal("1420.00")
        assert any(r["message"] == "net_take_home_clamped" for r in captured_logs())
