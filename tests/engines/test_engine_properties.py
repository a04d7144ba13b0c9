"""
Property-based tests for the payroll calculators.

Properties:
- adjusted_gross never exceeds base_salary and is zero iff eligible_days is zero
- EPF never exceeds its ceiling; ESIC is zero above the wage ceiling
- monthly_ctc = net + employee deductions + employer contributions
- annual_ctc = 12 * monthly_ctc
- net_take_home is never negative
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from payroll_engines.attendance import AttendanceAdjuster
from payroll_engines.components import BACKEND_STRUCTURE, SALES_STRUCTURE
from payroll_engines.performance import PerformanceRules
from payroll_engines.pipeline import CompensationInputs, CompensationPipeline
from payroll_engines.statutory import StatutoryCalculator

salaries = st.decimals(
    min_value=Decimal("1000"),
    max_value=Decimal("1000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
sales_amounts = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("5000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


@st.composite
def attendance_days(draw):
    total = draw(st.integers(min_value=28, max_value=31))
    eligible = draw(st.integers(min_value=0, max_value=total))
    return Decimal(total), Decimal(eligible)


@st.composite
def compensation_inputs(draw):
    total, eligible = draw(attendance_days())
    sales = draw(st.booleans())
    return CompensationInputs(
        employee_code="EMP-PROP",
        base_salary=draw(salaries),
        total_days=total,
        present_days=eligible,
        eligible_days=eligible,
        structure=SALES_STRUCTURE if sales else BACKEND_STRUCTURE,
        rules=PerformanceRules(),
        target_sales=draw(sales_amounts) if sales else Decimal("0"),
        actual_sales=draw(sales_amounts) if sales else Decimal("0"),
        pf_applicable=draw(st.booleans()),
        esic_applicable=draw(st.booleans()),
        professional_tax=Decimal("200"),
        tds=draw(st.sampled_from([Decimal("0"), Decimal("1500"), Decimal("50000")])),
    )


class TestAttendanceProperties:
    @given(base=salaries, days=attendance_days())
    def test_adjusted_gross_bounded_by_base(self, base, days):
        total, eligible = days
        adjusted = AttendanceAdjuster().adjust(base, total, eligible)
        assert Decimal("0") <= adjusted <= base

    @given(base=salaries, days=attendance_days())
    def test_zero_iff_no_eligible_days(self, base, days):
        total, eligible = days
        adjusted = AttendanceAdjuster().adjust(base, total, eligible)
        assert (adjusted == 0) == (eligible == 0)


class TestStatutoryProperties:
    @given(basic=salaries, gross=salaries)
    def test_epf_never_exceeds_ceiling(self, basic, gross):
        result = StatutoryCalculator().calculate(basic=basic, adjusted_gross=gross)
        assert result.epf_employee <= Decimal("1800")

    @given(basic=salaries, gross=salaries)
    def test_esic_zero_above_wage_ceiling(self, basic, gross):
        result = StatutoryCalculator().calculate(basic=basic, adjusted_gross=gross)
        if gross > Decimal("21000"):
            assert result.esic_employee == 0
        else:
            assert result.esic_employee > 0


class TestPipelineProperties:
    @settings(max_examples=200, deadline=None)
    @given(inputs=compensation_inputs())
    def test_ctc_identity(self, inputs):
        breakdown = CompensationPipeline().compute(inputs)
        settlement = breakdown.settlement
        assert settlement.monthly_ctc == (
            settlement.net_take_home
            + breakdown.deductions.total
            + breakdown.contributions.total
        )
        assert settlement.annual_ctc == settlement.monthly_ctc * 12

    @settings(deadline=None)
    @given(inputs=compensation_inputs())
    def test_net_never_negative(self, inputs):
        breakdown = CompensationPipeline().compute(inputs)
        assert breakdown.settlement.net_take_home >= 0

    @settings(deadline=None)
    @given(inputs=compensation_inputs())
    def test_amounts_are_quantized(self, inputs):
        fields = CompensationPipeline().compute(inputs).as_fields()
        for name, value in fields.items():
            if isinstance(value, Decimal):
                assert value == value.quantize(Decimal("0.01")), name

    @settings(deadline=None)
    @given(inputs=compensation_inputs())
    def test_incentive_and_deduction_exclusive(self, inputs):
        performance = CompensationPipeline().compute(inputs).performance
        assert performance.sales_incentive == 0 or performance.sales_deduction == 0
