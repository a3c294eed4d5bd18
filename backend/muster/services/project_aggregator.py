"""
project_aggregator.py — Project-level cost breakdown.

Folds a project's pre-field tasks, project services, field resources and
post-field tasks into a CostBreakdown:

  pre_field / post_field   Σ rated cost items of every task in the phase
  services                 Σ rated project-level service lines
  field_crew               Σ daily_rate × estimated_field_days
  field_equipment          Σ daily_rate × estimated_field_days
  field_aircraft           Σ daily_rate × estimated_field_days

Rated categories count a line as "with cost" when its total is positive; the
rest are reported as ``missing_rate``. Day-rate categories count a resource as
missing when no daily rate is known, independent of the day count. When
resources are assigned but ``estimated_field_days`` is 0 the breakdown sets
``days_not_set`` instead.

Each category also lists its lines or resources as ``details`` (name, cost,
``has_cost``; day-rate entries carry the resolved ``daily_rate``), so an
unpriced crew member or service can be named.

``grand_total`` is always the sum of the category subtotals. Overhead and tax
are flat, caller-supplied percentages reported on top of it.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel

from muster.config import (
    CATEGORY_LABELS,
    COMPLETED_TASK_STATUS,
    COST_ITEM_TYPES,
    DAY_RATE_CATEGORIES,
    DEFAULT_SERVICE_RATE_KIND,
)
from muster.models.rating_schema import (
    CategoryCost,
    CostBreakdown,
    CostDetail,
    DayRateResource,
    LineItem,
    Phase,
    ProjectInput,
    RateKind,
    Task,
    to_number,
)
from muster.services.line_item_rater import rate_line_item
from muster.services.perf_monitor import timed
from muster.services.rate_catalog import RateCatalog

logger = logging.getLogger("muster-api.rating")

ProjectLike = Union[ProjectInput, Mapping[str, Any]]

# Catalog resource kind for each day-rate category.
_RESOURCE_KIND: Dict[str, str] = {
    "field_crew": "crew",
    "field_equipment": "equipment",
    "field_aircraft": "aircraft",
}


def as_project(project: Any) -> ProjectInput:
    if isinstance(project, ProjectInput):
        return project
    if isinstance(project, BaseModel):
        project = project.model_dump()
    if not isinstance(project, Mapping):
        return ProjectInput()
    return ProjectInput.model_validate(dict(project))


# ---------------------------------------------------------------------------
# Phase helpers
# ---------------------------------------------------------------------------

def task_total(task: Task) -> float:
    """Sum of a task's rated cost items."""
    return sum(rate_line_item(item) for item in task.cost_items)


def phase_total(phase: Optional[Phase]) -> float:
    if phase is None:
        return 0.0
    return sum(task_total(task) for task in phase.tasks)


def phase_summary(phase: Optional[Phase]) -> Dict[str, Any]:
    """
    Phase total broken down by cost item type.

    Returns
    -------
    dict with keys:
        total            : float
        by_type          : dict {personnel, service, equipment, fleet, fixed: float}
        task_count       : int
        completed_tasks  : int
    Unknown item types are folded into ``fixed``.
    """
    summary: Dict[str, Any] = {
        "total": 0.0,
        "by_type": {t: 0.0 for t in COST_ITEM_TYPES},
        "task_count": 0,
        "completed_tasks": 0,
    }
    if phase is None:
        return summary

    summary["task_count"] = len(phase.tasks)
    summary["completed_tasks"] = sum(1 for t in phase.tasks if t.status == COMPLETED_TASK_STATUS)
    for task in phase.tasks:
        for item in task.cost_items:
            cost = rate_line_item(item)
            summary["total"] += cost
            key = item.type if item.type in summary["by_type"] else "fixed"
            summary["by_type"][key] += cost
    return summary


# ---------------------------------------------------------------------------
# Category builders
# ---------------------------------------------------------------------------

def _with_default_kind(item: LineItem, kind: Optional[RateKind]) -> LineItem:
    if kind is None or item.selected_rate_kind is not None:
        return item
    return item.model_copy(update={"selected_rate_kind": kind})


def _rated_category(
    key: str, items: List[LineItem], default_kind: Optional[RateKind] = None
) -> CategoryCost:
    subtotal = 0.0
    with_cost = 0
    details: List[CostDetail] = []
    for item in items:
        line = _with_default_kind(item, default_kind)
        total = rate_line_item(line)
        if total > 0:
            with_cost += 1
        subtotal += total
        details.append(CostDetail(
            id=line.id,
            name=line.name,
            cost=total,
            has_cost=total > 0,
            rate_kind=line.selected_rate_kind,
        ))
    return CategoryCost(
        category=key,
        label=CATEGORY_LABELS[key],
        subtotal=subtotal,
        item_count=len(items),
        with_cost=with_cost,
        missing_rate=len(items) - with_cost,
        details=details,
    )


def _phase_category(key: str, phase: Phase) -> CategoryCost:
    items = [item for task in phase.tasks for item in task.cost_items]
    category = _rated_category(key, items)
    category.task_count = len(phase.tasks)
    category.completed_tasks = sum(1 for t in phase.tasks if t.status == COMPLETED_TASK_STATUS)
    return category


def resolve_daily_rate(
    resource: DayRateResource, kind: str, catalog: Optional[RateCatalog] = None
) -> float:
    """Fresh catalog rate, else the rate snapshotted on the assignment, else 0."""
    if catalog is not None and resource.id:
        fresh = catalog.daily_rate_for(kind, resource.id)
        if fresh is not None:
            return fresh
    return resource.daily_rate if resource.daily_rate > 0 else 0.0


def _day_rate_category(
    key: str,
    resources: List[DayRateResource],
    field_days: float,
    catalog: Optional[RateCatalog],
) -> CategoryCost:
    kind = _RESOURCE_KIND[key]
    subtotal = 0.0
    with_rate = 0
    details: List[CostDetail] = []
    for resource in resources:
        daily_rate = resolve_daily_rate(resource, kind, catalog)
        if daily_rate > 0:
            with_rate += 1
        cost = daily_rate * field_days
        subtotal += cost
        details.append(CostDetail(
            id=resource.id,
            name=resource.name,
            cost=cost,
            has_cost=daily_rate > 0 and field_days > 0,
            rate_kind=RateKind.DAILY,
            daily_rate=daily_rate,
        ))
    return CategoryCost(
        category=key,
        label=CATEGORY_LABELS[key],
        subtotal=subtotal,
        item_count=len(resources),
        with_cost=with_rate if field_days > 0 else 0,
        missing_rate=len(resources) - with_rate,
        details=details,
    )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

@timed
def aggregate_project(
    project: ProjectLike,
    catalog: Optional[RateCatalog] = None,
    overhead_pct: Any = 0.0,
    tax_pct: Any = 0.0,
) -> CostBreakdown:
    """
    Build a fresh CostBreakdown for ``project``.

    Args:
        project:      ProjectInput or a raw project document.
        catalog:      Optional RateCatalog supplying fresh day-rates for
                      crew / equipment / aircraft by resource id.
        overhead_pct: Flat overhead percentage (0–100) on the grand total.
        tax_pct:      Flat tax percentage (0–100) on grand total + overhead.
    """
    proj = as_project(project)
    field_days = proj.estimated_field_days if proj.estimated_field_days > 0 else 0.0

    categories: Dict[str, CategoryCost] = {
        "pre_field": _phase_category("pre_field", proj.pre_field_phase),
        "services": _rated_category("services", proj.services, DEFAULT_SERVICE_RATE_KIND),
        "field_crew": _day_rate_category("field_crew", proj.crew, field_days, catalog),
        "field_equipment": _day_rate_category("field_equipment", proj.equipment, field_days, catalog),
        "field_aircraft": _day_rate_category("field_aircraft", proj.aircraft, field_days, catalog),
        "post_field": _phase_category("post_field", proj.post_field_phase),
    }

    grand_total = sum(c.subtotal for c in categories.values())
    resources_assigned = any(categories[k].item_count > 0 for k in DAY_RATE_CATEGORIES)
    days_not_set = field_days == 0 and resources_assigned

    overhead_rate = to_number(overhead_pct)
    tax_rate = to_number(tax_pct)
    overhead = grand_total * overhead_rate / 100.0
    tax = (grand_total + overhead) * tax_rate / 100.0

    has_incomplete = days_not_set or any(c.missing_rate > 0 for c in categories.values())

    logger.debug(
        "project aggregated",
        extra={"grand_total": grand_total, "days_not_set": days_not_set},
    )

    return CostBreakdown(
        categories=categories,
        estimated_field_days=field_days,
        days_not_set=days_not_set,
        grand_total=grand_total,
        overhead_pct=overhead_rate,
        overhead=overhead,
        tax_pct=tax_rate,
        tax=tax,
        total_with_adjustments=grand_total + overhead + tax,
        has_incomplete_data=has_incomplete,
    )


def summary_rows(breakdown: CostBreakdown) -> List[Dict[str, Any]]:
    """Display rows for non-zero categories, then overhead and tax when present."""
    rows = [
        {"category": c.label, "items": c.item_count, "total": c.subtotal}
        for c in breakdown.categories.values()
        if c.subtotal > 0
    ]
    if breakdown.overhead > 0:
        rows.append({"category": "Overhead", "items": 1, "total": breakdown.overhead})
    if breakdown.tax > 0:
        rows.append({"category": "Tax", "items": 1, "total": breakdown.tax})
    return rows
