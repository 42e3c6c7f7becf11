"""End-to-end payroll scenarios against the bundled 2025 rules.

These run the full pipeline (registry, engine, coherence, sector checks,
audit) and pin hand-computed figures.

Run with: pytest tests/test_scenarios_e2e.py -v
"""

import asyncio

import pytest

from nominacalc.sdk import (
    CalculationRejectedError,
    EngineSettings,
    FamilyInput,
    PayrollEngine,
    RegionRule,
    Severity,
    WorkerInput,
)
from nominacalc.sdk.taxes import compute_for_region


def start_engine(registry, **settings):
    engine = PayrollEngine(registry, EngineSettings(**settings))
    asyncio.run(engine.initialize())
    return engine


def cocinero(**overrides):
    data = {"category": "cocinero", "wage_table": "TABLE_I", "level": "LEVEL_III"}
    data.update(overrides)
    return WorkerInput(**data)


class TestScenarioA:
    """Hospitality cocinero TABLE_I/LEVEL_III in Valencia, no complements, no children."""

    @pytest.fixture
    def result(self, engine):
        return engine.compute_full_payroll(cocinero(), region_id="valencia", sector_id="hosteleria_valencia")

    def test_gross(self, result):
        """Base plus a quarter of it for three extra payments."""
        output = result.to_output()["ingresos"]
        assert output["conceptos_salariales"]["base_salary"] == 1214.84
        assert output["conceptos_salariales"]["extra_pay_proration"] == 303.71
        assert output["salario_bruto_total"] == 1518.55
        assert output["base_cotizacion"] == 1518.55
        assert output["base_irpf_anual"] == 18222.6

    def test_contributions(self, result):
        b = result.breakdown
        assert b.employee_contributions.total == pytest.approx(98.40204)
        assert b.employer_contributions.total == pytest.approx(483.20261)

    def test_tax(self, result):
        irpf = result.to_output()["deducciones"]["irpf"]
        assert irpf["base_liquidable"] == 9491.78
        assert irpf["cuota_anual"] == 1850.9
        assert irpf["retencion_mensual"] == 154.24
        assert irpf["tipo_efectivo"] == 10.16
        assert irpf["tipo_marginal"] == 19.5

    def test_summary(self, result):
        summary = result.to_output()["resumen"]
        assert summary == {
            "salario_neto": 1265.91,
            "total_deducciones": 252.64,
            "coste_empresa": 2001.75,
            "expolio_total": 581.6,
            "expolio_porcentaje": 29.05,
        }

    def test_clean_validation(self, result):
        assert result.validation.findings == []
        assert result.validation.is_valid


class TestScenarioB:
    """Liquidable base exactly zero."""

    def test_all_tax_fields_zero(self, region_data):
        region_data["tax_schedule"]["assumed_insurance_rate"] = 0
        region_data["minimums"]["personal"] = 8000
        region_data["minimums"]["deductible_expenses"] = 2000
        region = RegionRule.model_validate(region_data)

        tax = compute_for_region(10000, FamilyInput(), region)

        assert (tax.liquidable_base, tax.state_tax, tax.regional_tax) == (0.0, 0.0, 0.0)
        assert (tax.annual_quota, tax.monthly_withholding, tax.effective_rate) == (0.0, 0.0, 0.0)

    def test_no_critical_findings(self, registry, region_data):
        """A payslip with no withholding is still a valid payslip."""
        region_data["minimums"]["personal"] = 30000
        registry.register_region("untaxed", region_data)
        engine = start_engine(registry)

        result = engine.compute_full_payroll(cocinero(), region_id="untaxed")

        assert result.breakdown.tax.monthly_withholding == 0.0
        assert not result.validation.by_severity(Severity.CRITICAL)


class TestScenarioC:
    """Occupational accident rate forced to zero."""

    def test_rejected_with_citation(self, registry, region_data):
        region_data["social_security"]["employer_rates"]["occupational_accident"] = 0
        registry.register_region("malformed", region_data)
        engine = start_engine(registry, fail_on_region_audit=False)

        with pytest.raises(CalculationRejectedError) as exc_info:
            engine.compute_full_payroll(cocinero(), region_id="malformed")

        fatal = exc_info.value.fatal[0]
        assert fatal.severity == Severity.CRITICAL
        assert fatal.code == "OCCUPATIONAL_ACCIDENT_ZERO"
        assert "RD 2064/1995" in str(exc_info.value)


class TestScenarioD:
    """Same gross, different regional schedules, ordered withholding."""

    def test_withholding_ordered_by_progressivity(self, engine):
        results = {
            region_id: engine.compute_full_payroll(cocinero(), region_id=region_id).breakdown
            for region_id in ("valencia", "madrid", "cataluna")
        }

        assert len({b.gross_total for b in results.values()}) == 1
        assert results["madrid"].tax.regional_tax == pytest.approx(806.80, abs=0.01)
        assert results["cataluna"].tax.regional_tax == pytest.approx(901.72, abs=0.01)
        assert (
            results["valencia"].tax.monthly_withholding
            < results["madrid"].tax.monthly_withholding
            < results["cataluna"].tax.monthly_withholding
        )
        assert results["valencia"].net_pay > results["madrid"].net_pay > results["cataluna"].net_pay


class TestInvariantsAcrossJurisdictions:
    """Every region x wage level keeps the payslip relations."""

    SECTORS = [
        ("hosteleria_valencia", "cocinero"),
        ("limpieza_nacional", "limpiador"),
    ]

    @pytest.mark.parametrize("sector_id,category", SECTORS)
    def test_relations_hold(self, engine, registry, sector_id, category):
        sector = registry.get_sector(sector_id)
        for region_id, _ in registry.list_regions():
            for table, levels in sector.wage_tables.items():
                for level in levels:
                    worker = WorkerInput(category=category, wage_table=table, level=level)
                    result = engine.compute_full_payroll(
                        worker, FamilyInput(num_children=1), region_id=region_id, sector_id=sector_id,
                    )
                    b = result.breakdown
                    where = f"{region_id}/{sector_id}/{table}/{level}"

                    assert b.contribution_base <= b.gross_total, where
                    assert b.net_pay < b.gross_total < b.employer_cost, where
                    assert b.tax.monthly_withholding >= 0, where
                    assert 0 < b.state_take_percent < 100, where
                    assert abs(b.employee_contributions.total - b.employee_contributions.items_sum) <= 0.01
                    assert not result.validation.by_severity(Severity.CRITICAL), where
                    assert not [f for f in result.validation.findings if f.code.startswith("AUDIT_")], where

    def test_more_children_never_raise_withholding(self, engine):
        previous = None
        for children in range(0, 6):
            b = engine.compute_full_payroll(
                cocinero(level="LEVEL_I"), FamilyInput(num_children=children),
            ).breakdown
            if previous is not None:
                assert b.tax.monthly_withholding <= previous
            previous = b.tax.monthly_withholding

    def test_higher_level_never_lowers_net(self, engine):
        """Levels are ordered by wage, so net pay is ordered too."""
        nets = [
            engine.compute_full_payroll(cocinero(level=level)).breakdown.net_pay
            for level in ("LEVEL_V", "LEVEL_IV", "LEVEL_III", "LEVEL_II", "LEVEL_I")
        ]
        assert nets == sorted(nets)
