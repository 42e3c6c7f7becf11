"""Tests for second-path payslip audits and region rule audits."""

import pytest

from nominacalc.sdk import FamilyInput, PayrollEngine, RegionRule, Severity, audit_breakdown, audit_region_rules
from nominacalc.sdk.rules import TaxBracket
from nominacalc.sdk.taxes import compute_for_region
from nominacalc.sdk.validation import audit_brackets, boundary_parity, recompute_annual_quota


@pytest.fixture
def valencia(registry):
    return registry.get_region("valencia")


@pytest.fixture
def breakdown(registry, valencia, make_worker):
    engine = PayrollEngine(registry)
    return engine.compute_breakdown(
        make_worker(applies_transport=True, applies_meal_allowance=True),
        FamilyInput(num_children=1), valencia, registry.get_sector("hosteleria_valencia"),
        "valencia", "hosteleria_valencia",
    )


def codes(findings):
    return [f.code for f in findings]


class TestAuditBreakdown:
    """Recomputation of cost, state take, percentage and tax."""

    def test_clean_breakdown(self, breakdown, valencia):
        """The primary path agrees with the audit."""
        assert audit_breakdown(breakdown, valencia) == []

    def test_cost_divergence(self, breakdown, valencia):
        tampered = breakdown.model_copy(update={"employer_cost": breakdown.employer_cost + 0.05})
        findings = audit_breakdown(tampered, valencia)
        assert codes(findings) == ["AUDIT_COST"]
        assert findings[0].severity == Severity.WARNING

    def test_cent_within_tolerance(self, breakdown, valencia):
        """A one-cent difference is tolerated."""
        tampered = breakdown.model_copy(update={"employer_cost": breakdown.employer_cost + 0.01})
        assert audit_breakdown(tampered, valencia) == []

    def test_state_take_divergence(self, breakdown, valencia):
        tampered = breakdown.model_copy(update={"state_take": breakdown.state_take + 1})
        assert codes(audit_breakdown(tampered, valencia)) == ["AUDIT_STATE_TAKE"]

    def test_percent_divergence(self, breakdown, valencia):
        tampered = breakdown.model_copy(update={"state_take_percent": breakdown.state_take_percent + 0.5})
        assert codes(audit_breakdown(tampered, valencia)) == ["AUDIT_PERCENT"]

    def test_tax_divergence(self, breakdown, valencia):
        """A tampered annual quota is caught by the independent bracket walk."""
        tax = breakdown.tax.model_copy(update={"annual_quota": breakdown.tax.annual_quota + 10})
        tampered = breakdown.model_copy(update={"tax": tax})
        assert codes(audit_breakdown(tampered, valencia)) == ["AUDIT_TAX_BRACKETS"]

    def test_withholding_divergence(self, breakdown, valencia):
        tax = breakdown.tax.model_copy(update={"monthly_withholding": breakdown.tax.monthly_withholding + 1})
        tampered = breakdown.model_copy(update={"tax": tax})
        assert codes(audit_breakdown(tampered, valencia)) == ["AUDIT_TAX_BRACKETS"]

    def test_totals_resummed_from_items(self, breakdown, valencia):
        """A wrong stored contribution total does not fool the audit."""
        employer = breakdown.employer_contributions.model_copy(
            update={"total": breakdown.employer_contributions.total + 5}
        )
        tampered = breakdown.model_copy(update={
            "employer_contributions": employer,
            "employer_cost": breakdown.employer_cost + 5,
            "state_take": breakdown.state_take + 5,
        })
        assert set(codes(audit_breakdown(tampered, valencia))) >= {"AUDIT_COST", "AUDIT_STATE_TAKE"}


class TestRecomputeAnnualQuota:
    """The audit walk agrees with the primary tax path."""

    @pytest.mark.parametrize("annual,children", [
        (18222.6, 0),
        (18222.6, 4),
        (45000.0, 1),
        (400000.0, 2),
        (5000.0, 0),
    ])
    def test_matches_primary_path(self, registry, annual, children):
        for region_id in ("valencia", "madrid", "pais_vasco"):
            region = registry.get_region(region_id)
            primary = compute_for_region(annual, FamilyInput(num_children=children), region)
            assert recompute_annual_quota(annual, children, region) == pytest.approx(primary.annual_quota)


class TestAuditBrackets:
    """Structural checks on one schedule."""

    def test_empty(self):
        assert codes(audit_brackets([], "x")) == ["E_EMPTY_BRACKETS"]

    def test_null_limit(self):
        brackets = [TaxBracket(rate=10), TaxBracket(infinite=True, rate=20)]
        assert codes(audit_brackets(brackets, "x")) == ["E_NULL_LIMIT"]

    def test_order(self):
        brackets = [TaxBracket(up_to=2000, rate=10), TaxBracket(up_to=1000, rate=20),
                    TaxBracket(infinite=True, rate=30)]
        assert codes(audit_brackets(brackets, "x")) == ["E_BRACKET_ORDER"]

    def test_regressive(self):
        """A falling rate is a warning, not an error."""
        brackets = [TaxBracket(up_to=1000, rate=20), TaxBracket(up_to=2000, rate=10),
                    TaxBracket(infinite=True, rate=30)]
        findings = audit_brackets(brackets, "x")
        assert codes(findings) == ["W_REGRESSIVE"]
        assert findings[0].severity == Severity.WARNING

    def test_no_infinite(self):
        brackets = [TaxBracket(up_to=1000, rate=10), TaxBracket(up_to=2000, rate=20)]
        findings = audit_brackets(brackets, "x")
        assert codes(findings) == ["E_NO_INFINITE"]
        assert findings[0].remedy

    def test_rate_range_only_when_requested(self):
        """Unusual rates are INFO, and only for regional schedules."""
        brackets = [TaxBracket(up_to=1000, rate=1), TaxBracket(infinite=True, rate=2)]
        assert audit_brackets(brackets, "x") == []
        findings = audit_brackets(brackets, "x", check_rate_range=True)
        assert codes(findings) == ["I_RATE_RANGE"]
        assert findings[0].severity == Severity.INFO


class TestBoundaryParity:
    """State and regional boundaries may differ."""

    def test_same_boundaries(self, valencia):
        assert boundary_parity("valencia", valencia) is None

    def test_different_boundaries(self, registry):
        """Madrid's regional bounds differ; reported as INFO."""
        finding = boundary_parity("madrid", registry.get_region("madrid"))
        assert finding.severity == Severity.INFO
        assert finding.code == "I_BOUNDARY_PARITY"
        assert "13362" in finding.message


class TestAuditRegionRules:
    """Full region audit, optionally against a reference fixture."""

    def test_bundled_regions_have_no_errors(self, registry):
        """Every shipped region passes without CRITICAL/ERROR findings."""
        for region_id, region in registry.list_regions():
            findings = audit_region_rules(region_id, region)
            blocking = [f for f in findings if f.severity in (Severity.CRITICAL, Severity.ERROR)]
            assert blocking == [], f"{region_id}: {blocking}"

    def test_zero_occupational_accident(self, region_data):
        region_data["social_security"]["employer_rates"]["occupational_accident"] = 0
        region = RegionRule.model_validate(region_data)
        assert "E_OCCUPATIONAL_ACCIDENT_ZERO" in codes(audit_region_rules("valencia", region))

    def _reference(self, region):
        return {"state": [b.model_dump() for b in region.tax_schedule.state]}

    def test_matching_reference(self, valencia):
        findings = audit_region_rules("valencia", valencia, self._reference(valencia))
        assert not [c for c in codes(findings) if c.startswith("E_REFERENCE")]

    def test_reference_rate_mismatch(self, valencia):
        reference = self._reference(valencia)
        reference["state"][1]["rate"] = 25
        findings = audit_region_rules("valencia", valencia, reference)
        assert codes(findings).count("E_REFERENCE_MISMATCH") == 1

    def test_reference_count_mismatch(self, valencia):
        reference = self._reference(valencia)
        reference["state"].pop()
        assert "E_REFERENCE_COUNT" in codes(audit_region_rules("valencia", valencia, reference))

    def test_reference_missing_boundary(self, valencia):
        reference = self._reference(valencia)
        reference["state"][0]["up_to"] = 15000
        findings = codes(audit_region_rules("valencia", valencia, reference))
        assert "E_REFERENCE_MISSING_BOUNDARY" in findings
        assert "E_REFERENCE_MISMATCH" in findings

    def test_reference_tolerance(self, valencia):
        """Differences within the fixture tolerance pass."""
        reference = self._reference(valencia)
        reference["state"][1]["rate"] = 24.4
        reference["tolerance"] = 0.5
        findings = audit_region_rules("valencia", valencia, reference)
        assert "E_REFERENCE_MISMATCH" not in codes(findings)
