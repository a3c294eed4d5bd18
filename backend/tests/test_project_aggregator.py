"""
test_project_aggregator.py — Unit tests for the project cost breakdown.

Tests cover:
  - Category subtotals of the conftest sample project (grand total 7320)
  - grand_total equals the sum of category subtotals
  - Day-rate resources with and without estimated field days
  - Missing-rate tracking and has_incomplete_data
  - Fresh catalog day-rates taking precedence over snapshots
  - Overhead and tax on top of the grand total
  - Phase summary by cost-item type and summary display rows
  - Empty / malformed project documents
  - Per-item details naming each line or resource and whether it has a cost

Sample project (see conftest.sample_project):
  pre_field 760 + services 1910 + crew 2400 + equipment 750
  + aircraft 900 + post_field 600 = 7320
"""

import pytest

from muster.config import CATEGORY_LABELS
from muster.models.rating_schema import DayRateResource, Phase
from muster.services.project_aggregator import (
    aggregate_project,
    phase_summary,
    phase_total,
    resolve_daily_rate,
    summary_rows,
)


def _close(a, b, tol=0.01):
    return abs(a - b) < tol


# ===========================================================================
# Class 1: Sample project
# ===========================================================================

class TestSampleProject:

    @pytest.fixture
    def breakdown(self, sample_project):
        return aggregate_project(sample_project)

    def test_categories_in_display_order(self, breakdown):
        assert list(breakdown.categories) == list(CATEGORY_LABELS)

    @pytest.mark.parametrize("key, expected", [
        ("pre_field", 760.0),
        ("services", 1910.0),
        ("field_crew", 2400.0),
        ("field_equipment", 750.0),
        ("field_aircraft", 900.0),
        ("post_field", 600.0),
    ])
    def test_subtotals(self, breakdown, key, expected):
        assert _close(breakdown.categories[key].subtotal, expected)

    def test_grand_total(self, breakdown):
        assert _close(breakdown.grand_total, 7320.0)
        assert _close(breakdown.grand_total, sum(c.subtotal for c in breakdown.categories.values()))

    def test_field_total(self, breakdown):
        assert _close(breakdown.field_total, 2400.0 + 750.0 + 900.0)

    def test_field_days_parsed_from_text(self, breakdown):
        assert breakdown.estimated_field_days == 3.0
        assert breakdown.days_not_set is False

    def test_phase_counts(self, breakdown):
        pre = breakdown.categories["pre_field"]
        assert pre.item_count == 2
        assert pre.with_cost == 1
        assert pre.missing_rate == 1
        assert pre.task_count == 2
        assert pre.completed_tasks == 1

    def test_aircraft_missing_rate(self, breakdown):
        aircraft = breakdown.categories["field_aircraft"]
        assert aircraft.item_count == 2
        assert aircraft.with_cost == 1
        assert aircraft.missing_rate == 1

    def test_incomplete_data_flagged(self, breakdown):
        assert breakdown.has_incomplete_data is True

    def test_no_adjustments_by_default(self, breakdown):
        assert breakdown.overhead == 0.0
        assert breakdown.tax == 0.0
        assert breakdown.total_with_adjustments == breakdown.grand_total


# ===========================================================================
# Class 2: Day-rate resources
# ===========================================================================

class TestDayRates:

    def test_days_not_set(self):
        """3 crew × 400/day with no field days: subtotal 0, flagged, not missing rates."""
        project = {
            "crew": [{"operatorId": f"op-{i}", "dailyRate": 400} for i in range(3)],
        }
        breakdown = aggregate_project(project)
        crew = breakdown.categories["field_crew"]
        assert crew.subtotal == 0.0
        assert crew.item_count == 3
        assert crew.with_cost == 0
        assert crew.missing_rate == 0
        assert breakdown.days_not_set is True
        assert breakdown.has_incomplete_data is True

    def test_days_set(self):
        project = {
            "estimatedFieldDays": 2,
            "crew": [{"operatorId": f"op-{i}", "dailyRate": 400} for i in range(3)],
        }
        breakdown = aggregate_project(project)
        assert breakdown.categories["field_crew"].subtotal == 2400.0
        assert breakdown.categories["field_crew"].with_cost == 3
        assert breakdown.days_not_set is False
        assert breakdown.has_incomplete_data is False

    def test_no_resources_no_flag(self):
        breakdown = aggregate_project({"estimatedFieldDays": 0})
        assert breakdown.days_not_set is False
        assert breakdown.has_incomplete_data is False

    def test_negative_days_treated_as_zero(self):
        project = {"estimatedFieldDays": -4, "assignedEquipment": [{"id": "eq-1", "dailyRate": 250}]}
        breakdown = aggregate_project(project)
        assert breakdown.estimated_field_days == 0.0
        assert breakdown.categories["field_equipment"].subtotal == 0.0
        assert breakdown.days_not_set is True

    def test_fractional_days(self):
        project = {"estimatedFieldDays": 1.5, "crew": [{"operatorId": "op-1", "dailyRate": 400}]}
        assert aggregate_project(project).categories["field_crew"].subtotal == 600.0


class TestFreshRates:

    def test_catalog_rates_win(self, sample_project, rate_catalog):
        """op-1 fresh 450 replaces snapshot 400: (450 + 400) × 3 = 2550."""
        breakdown = aggregate_project(sample_project, catalog=rate_catalog)
        assert _close(breakdown.categories["field_crew"].subtotal, 2550.0)
        assert _close(breakdown.grand_total, 7320.0 + 150.0)

    def test_unpriced_catalog_entry_falls_back_to_snapshot(self, sample_project, rate_catalog):
        """eq-1 has a catalog daily rate of 0, so the 250 snapshot stays."""
        breakdown = aggregate_project(sample_project, catalog=rate_catalog)
        assert _close(breakdown.categories["field_equipment"].subtotal, 750.0)

    def test_resolve_daily_rate(self, rate_catalog):
        known = DayRateResource(id="op-1", daily_rate=400)
        unknown = DayRateResource(id="op-9", daily_rate=380)
        unpriced = DayRateResource(id="op-8")
        assert resolve_daily_rate(known, "crew", rate_catalog) == 450.0
        assert resolve_daily_rate(unknown, "crew", rate_catalog) == 380.0
        assert resolve_daily_rate(unpriced, "crew", rate_catalog) == 0.0
        assert resolve_daily_rate(known, "crew") == 400.0


# ===========================================================================
# Class 3: Services
# ===========================================================================

class TestServices:

    def test_service_without_kind_defaults_to_daily(self):
        """A library service added without a kind is quoted per day: 2 × 650."""
        project = {"projectServices": [{"id": "s1", "dailyRate": 650, "quantity": 2}]}
        breakdown = aggregate_project(project)
        assert breakdown.categories["services"].subtotal == 1300.0

    def test_service_with_zero_total_is_missing(self):
        project = {"projectServices": [{"id": "s1", "selectedRateKind": "weekly", "dailyRate": 650, "quantity": 2}]}
        services = aggregate_project(project).categories["services"]
        assert services.subtotal == 0.0
        assert services.missing_rate == 1


# ===========================================================================
# Class 4: Overhead and tax
# ===========================================================================

class TestAdjustments:

    def test_overhead_then_tax(self, sample_project):
        """7320 × 10% = 732; (7320 + 732) × 5% = 402.60; total 8454.60."""
        breakdown = aggregate_project(sample_project, overhead_pct=10, tax_pct="5")
        assert _close(breakdown.overhead, 732.0)
        assert _close(breakdown.tax, 402.6)
        assert _close(breakdown.total_with_adjustments, 8454.6)
        assert _close(breakdown.grand_total, 7320.0)

    def test_junk_percentages_are_zero(self, sample_project):
        breakdown = aggregate_project(sample_project, overhead_pct="abc", tax_pct=None)
        assert breakdown.overhead == 0.0
        assert breakdown.tax == 0.0


# ===========================================================================
# Class 5: Phase summary and display rows
# ===========================================================================

class TestPhaseSummary:

    def test_by_type(self):
        phase = Phase.model_validate({
            "tasks": [
                {
                    "status": "completed",
                    "costItems": [
                        {"type": "personnel", "hours": 8, "rate": 95, "rateType": "hourly"},
                        {"type": "equipment", "rateType": "daily", "dailyRate": 250, "quantity": 2},
                    ],
                },
                {
                    "status": "in_progress",
                    "costItems": [
                        {"type": "travel", "rateType": "fixed", "rate": 120},
                    ],
                },
            ]
        })
        summary = phase_summary(phase)
        assert summary["total"] == 760.0 + 500.0 + 120.0
        assert summary["by_type"]["personnel"] == 760.0
        assert summary["by_type"]["equipment"] == 500.0
        assert summary["by_type"]["fixed"] == 120.0
        assert summary["task_count"] == 2
        assert summary["completed_tasks"] == 1
        assert phase_total(phase) == summary["total"]

    def test_none_phase(self):
        summary = phase_summary(None)
        assert summary["total"] == 0.0
        assert summary["task_count"] == 0
        assert phase_total(None) == 0.0


class TestSummaryRows:

    def test_rows_skip_empty_categories(self):
        breakdown = aggregate_project(
            {"projectServices": [{"selectedRateKind": "fixed", "fixedRate": 1000}]},
            overhead_pct=10,
        )
        rows = summary_rows(breakdown)
        assert [r["category"] for r in rows] == ["Services", "Overhead"]
        assert rows[0]["items"] == 1
        assert rows[1]["total"] == 100.0


# ===========================================================================
# Class 6: Malformed input
# ===========================================================================

class TestMalformedProjects:

    @pytest.mark.parametrize("project", [None, "project", 12, {}, {"preFieldPhase": "x", "crew": None}])
    def test_empty_breakdown(self, project):
        breakdown = aggregate_project(project)
        assert breakdown.grand_total == 0.0
        assert breakdown.has_incomplete_data is False
        assert set(breakdown.categories) == set(CATEGORY_LABELS)


# ===========================================================================
# Class 7: Per-item details
# ===========================================================================

class TestCategoryDetails:

    @pytest.fixture
    def breakdown(self, sample_project):
        return aggregate_project(sample_project)

    def test_crew_details(self, breakdown):
        """Each crew member: 400/day × 3 days = 1200."""
        details = breakdown.categories["field_crew"].details
        assert [d.name for d in details] == ["Sam Reyes", "Alex Chen"]
        assert all(d.daily_rate == 400.0 and d.cost == 1200.0 and d.has_cost for d in details)

    def test_unpriced_aircraft_is_named(self, breakdown):
        details = {d.name: d for d in breakdown.categories["field_aircraft"].details}
        assert details["Matrice 350"].has_cost is True
        assert details["Matrice 350"].cost == 900.0
        assert details["Backup Mini"].has_cost is False
        assert details["Backup Mini"].daily_rate == 0.0

    def test_service_details(self, breakdown):
        details = {d.id: d for d in breakdown.categories["services"].details}
        assert _close(details["svc-mapping"].cost, 1160.0)
        assert _close(details["svc-inspection"].cost, 750.0)
        assert details["svc-inspection"].rate_kind.value == "fixed"
        assert details["svc-inspection"].daily_rate is None

    def test_phase_details_flag_unpriced_item(self, breakdown):
        details = {d.id: d for d in breakdown.categories["pre_field"].details}
        assert details["ci-1"].has_cost is True
        assert details["ci-2"].has_cost is False

    def test_details_sum_to_subtotal(self, breakdown):
        for category in breakdown.categories.values():
            assert _close(sum(d.cost for d in category.details), category.subtotal)

    def test_no_cost_without_field_days(self):
        """Rate known but 0 days: has_cost is False while daily_rate is still reported."""
        breakdown = aggregate_project({"crew": [{"operatorId": "op-1", "operatorName": "Sam", "dailyRate": 400}]})
        detail = breakdown.categories["field_crew"].details[0]
        assert detail.daily_rate == 400.0
        assert detail.cost == 0.0
        assert detail.has_cost is False

    def test_fresh_rate_reported(self, sample_project, rate_catalog):
        details = aggregate_project(sample_project, catalog=rate_catalog).categories["field_crew"].details
        assert details[0].daily_rate == 450.0
        assert _close(details[0].cost, 1350.0)
