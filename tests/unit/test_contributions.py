"""Tests for ContributionEngine and the sector concept calculators."""

import pytest

from nominacalc.sdk import ContributionEngine, InvalidCategoryError, PayComponents


@pytest.fixture
def hospitality(registry):
    return registry.get_sector("hosteleria_valencia")


@pytest.fixture
def cleaning(registry):
    return registry.get_sector("limpieza_nacional")


@pytest.fixture
def valencia(registry):
    return registry.get_region("valencia")


@pytest.fixture
def ce():
    return ContributionEngine()


class TestSalariedConcepts:
    """Base wage, proration and salaried complements."""

    def test_base_and_proration(self, ce, hospitality, make_worker):
        """Three extra payments prorate a quarter of the base per month."""
        salaried = ce.compute_salaried_concepts(make_worker(), hospitality)

        assert salaried.items["base_salary"] == 1214.84
        assert salaried.items["extra_pay_proration"] == pytest.approx(303.71)
        assert salaried.items["training_bonus"] == 0.0
        assert salaried.items["meal_allowance"] == 0.0
        assert salaried.total == pytest.approx(1518.55)

    def test_optional_complements(self, ce, hospitality, make_worker):
        """Training bonus and meal allowance are added when flagged."""
        worker = make_worker(applies_training_bonus=True, applies_meal_allowance=True, is_hotel=True)
        salaried = ce.compute_salaried_concepts(worker, hospitality)

        assert salaried.items["training_bonus"] == 20.0
        assert salaried.items["meal_allowance"] == 44.13
        assert salaried.total == pytest.approx(1518.55 + 20.0 + 44.13)

    def test_cleaning_two_extra_payments(self, ce, cleaning, make_worker):
        """Cleaning prorates two extra payments and adds night/hazard bonuses."""
        worker = make_worker(category="limpiador", applies_night_shift=True, applies_hazard_pay=True)
        salaried = ce.compute_salaried_concepts(worker, cleaning)

        assert salaried.items["base_salary"] == 1195.30
        assert salaried.items["extra_pay_proration"] == pytest.approx(199.2167, abs=1e-4)
        assert salaried.items["night_shift_bonus"] == 45.30
        assert salaried.items["hazard_bonus"] == 38.50
        assert salaried.items["training_bonus"] == 0.0

    def test_cleaning_flagged_complements(self, ce, cleaning, make_worker):
        """Training bonus and meal allowance flags apply to cleaning too."""
        worker = make_worker(category="limpiador", applies_training_bonus=True, applies_meal_allowance=True)
        salaried = ce.compute_salaried_concepts(worker, cleaning)

        assert salaried.items["training_bonus"] == 20.0
        assert salaried.items["meal_allowance"] == 0.0
        assert salaried.items["night_shift_bonus"] == 0.0
        assert salaried.total == pytest.approx(1195.30 + 1195.30 * 2 / 12 + 20.0)

    def test_unknown_level(self, ce, hospitality, make_worker):
        """A level missing from the table raises InvalidCategoryError."""
        with pytest.raises(InvalidCategoryError) as exc_info:
            ce.compute_salaried_concepts(make_worker(level="LEVEL_IX"), hospitality)
        assert exc_info.value.level == "LEVEL_IX"
        assert "Hostelería Valencia" in str(exc_info.value)

    def test_unknown_table(self, ce, cleaning, make_worker):
        """A table missing from the sector raises InvalidCategoryError."""
        with pytest.raises(InvalidCategoryError):
            ce.compute_salaried_concepts(make_worker(category="limpiador", wage_table="TABLE_III"), cleaning)


class TestNonSalariedConcepts:
    """Transport, uniform and PPE."""

    def test_restaurant_split_urban_transport(self, ce, hospitality, make_worker):
        """Restaurant split shift uses the 66.96 transport cell."""
        worker = make_worker(category="camarero", level="LEVEL_II", applies_transport=True)
        non_salaried = ce.compute_non_salaried_concepts(worker, hospitality)
        assert non_salaried.items == {"transport": 66.96, "uniform": 0.0}

    def test_hotel_continuous_transport(self, ce, hospitality, make_worker):
        """Hotel continuous shift uses the 36.01 transport cell."""
        worker = make_worker(is_hotel=True, shift_type="continuous", applies_transport=True)
        assert ce.compute_non_salaried_concepts(worker, hospitality).items["transport"] == 36.01

    @pytest.mark.parametrize("category,expected", [
        ("cocinero", 17.31),
        ("camarero", 29.65),
        ("barman", 29.65),
    ])
    def test_flat_uniform_by_category(self, ce, hospitality, make_worker, category, expected):
        """Uniform totals come from keyword match, else the default category."""
        worker = make_worker(category=category, applies_uniform=True)
        assert ce.compute_non_salaried_concepts(worker, hospitality).items["uniform"] == expected

    def test_cleaning_ppe_items(self, ce, cleaning, make_worker):
        """PPE is the sum of the selected priced items."""
        worker = make_worker(category="limpiador", uniform_items=["bata_trabajo", "guantes_latex"])
        non_salaried = ce.compute_non_salaried_concepts(worker, cleaning)
        assert non_salaried.items["ppe"] == pytest.approx(20.80)
        assert non_salaried.total == pytest.approx(20.80)

    def test_cleaning_zone_transport(self, ce, cleaning, make_worker):
        """Cleaning transport depends on the zone only."""
        worker = make_worker(category="limpiador", applies_transport=True, urban_transport=False)
        assert ce.compute_non_salaried_concepts(worker, cleaning).items["transport"] == 48.20


class TestContributionBase:
    """Clamp of the salaried total to the region's limits."""

    @pytest.mark.parametrize("salaried,expected", [
        (1000.0, 1323.00),
        (1518.55, 1518.55),
        (6000.0, 4909.50),
    ])
    def test_clamp(self, valencia, salaried, expected):
        """Below min -> min, above max -> max, otherwise unchanged."""
        components = PayComponents.from_items({"base_salary": salaried})
        assert ContributionEngine.contribution_base(components, valencia.social_security) == expected

    def test_non_salaried_not_insured(self, ce, hospitality, valencia, make_worker):
        """Transport raises gross but not the contribution base."""
        worker = make_worker(applies_transport=True)
        salaried = ce.compute_salaried_concepts(worker, hospitality)
        non_salaried = ce.compute_non_salaried_concepts(worker, hospitality)

        gross = ce.gross_total(salaried, non_salaried)
        base = ce.contribution_base(salaried, valencia.social_security)

        assert gross == pytest.approx(1518.55 + 66.96)
        assert base == pytest.approx(1518.55)
        assert ce.annual_taxable_base(gross) == pytest.approx(gross * 12)


class TestContributions:
    """Per-rate contribution amounts."""

    def test_employee_contributions(self, ce, valencia):
        """Employee rates total 6.48% of the base."""
        result = ce.employee_contributions(1518.55, valencia.social_security.employee_rates)

        assert set(result.items) == {
            "common_contingencies", "unemployment", "training", "intergenerational_equity",
        }
        assert result.items["common_contingencies"] == pytest.approx(71.37185)
        assert result.total == pytest.approx(98.40204)
        assert result.total == pytest.approx(result.items_sum)
        assert result.rates["unemployment"] == 1.55

    def test_employer_contributions(self, ce, valencia):
        """Employer rates include occupational accident and wage guarantee fund."""
        result = ce.employer_contributions(1518.55, valencia.social_security.employer_rates)

        assert result.items["occupational_accident"] > 0
        assert result.items["wage_guarantee_fund"] == pytest.approx(3.0371)
        assert result.total == pytest.approx(483.20261)
        assert result.base == 1518.55


class TestCalculatorOverride:
    """Injected calculators replace the built-in strategy."""

    def test_override_used(self, hospitality, make_worker):
        """A calculator registered under the sector's id is used."""

        class FlatCalculator:
            def salaried_items(self, worker, sector, wage):
                return {"base_salary": 1000.0}

            def non_salaried_items(self, worker, sector):
                return {}

        ce = ContributionEngine(calculators={"hosteleria": FlatCalculator()})
        assert ce.compute_salaried_concepts(make_worker(), hospitality).total == 1000.0
        assert ce.compute_non_salaried_concepts(make_worker(), hospitality).total == 0
