"""
Rating API Routes

POST /api/rating/line-total            — total and intermediates for one line item
POST /api/rating/modifiers/compose     — composed modifier scalar for display
POST /api/rating/projects/breakdown    — project CostBreakdown with summary rows
GET  /api/rating/presets               — common modifiers, deliverables, unit types, rate kinds
GET  /api/rating/rate-card             — merged rate-card items (optionally by category)
GET  /api/rating/rate-card/{item_id}/line-item — snapshot a rate-card item into a new line
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from muster.api.deps import get_rate_catalog
from muster.config import (
    DEFAULT_OVERHEAD_PCT,
    DEFAULT_TAX_PCT,
    MONEY_DECIMALS,
    RATE_KIND_LABELS,
    UNIT_TYPES,
)
from muster.models.rating_schema import CostBreakdown, LineItemRating, Modifier
from muster.services.deliverables import preset_deliverables
from muster.services.line_item_rater import explain_line_item
from muster.services.modifiers import compose_modifiers, format_multiplier, preset_modifiers
from muster.services.project_aggregator import aggregate_project, summary_rows
from muster.services.rate_catalog import RateCatalog, line_item_from_rate_card
from muster.services.rate_primitives import available_rate_kinds

router = APIRouter(prefix="/api/rating", tags=["Rating"])
logger = logging.getLogger("muster-api.rating")


# ── Pydantic Models ─────────────────────────────────────────────────────────

class ComposeModifiersRequest(BaseModel):
    modifiers: List[Dict[str, Any]] = []


class BreakdownRequest(BaseModel):
    project: Dict[str, Any] = {}
    overhead_pct: Optional[Any] = None
    tax_pct: Optional[Any] = None


# ── Helpers ──────────────────────────────────────────────────────────────────

def _money(value: float) -> float:
    return round(value, MONEY_DECIMALS)


def _rating_payload(rating: LineItemRating) -> Dict[str, Any]:
    payload = rating.model_dump(mode="json")
    for key in ("rate", "base", "base_fee", "deliverables", "pre_modifier", "pre_floor", "total"):
        payload[key] = _money(payload[key])
    payload["multiplier_display"] = format_multiplier(rating.multiplier)
    return payload


def _breakdown_payload(breakdown: CostBreakdown) -> Dict[str, Any]:
    payload = breakdown.model_dump(mode="json")
    for category in payload["categories"].values():
        category["subtotal"] = _money(category["subtotal"])
        for detail in category["details"]:
            detail["cost"] = _money(detail["cost"])
            if detail["daily_rate"] is not None:
                detail["daily_rate"] = _money(detail["daily_rate"])
    for key in ("grand_total", "overhead", "tax", "total_with_adjustments"):
        payload[key] = _money(payload[key])
    payload["field_total"] = _money(breakdown.field_total)
    payload["summary"] = [
        {**row, "total": _money(row["total"])} for row in summary_rows(breakdown)
    ]
    return payload


# ── Line items ───────────────────────────────────────────────────────────────

@router.post("/line-total")
async def line_total(item: Dict[str, Any]):
    """Rate one line item. Partial or in-progress input is coerced, never rejected."""
    rating = explain_line_item(item)
    return {"total": _money(rating.total), "rating": _rating_payload(rating)}


@router.post("/modifiers/compose")
async def compose(req: ComposeModifiersRequest):
    """Composed multiplier of an ordered modifier list, e.g. ×1.875."""
    modifiers = [Modifier.model_validate(m) for m in req.modifiers]
    multiplier = compose_modifiers(modifiers)
    return {"multiplier": multiplier, "display": format_multiplier(multiplier)}


# ── Projects ─────────────────────────────────────────────────────────────────

@router.post("/projects/breakdown")
async def project_breakdown(
    req: BreakdownRequest,
    catalog: RateCatalog = Depends(get_rate_catalog),
):
    """Fold a project document into a CostBreakdown using fresh catalog day-rates."""
    overhead_pct = DEFAULT_OVERHEAD_PCT if req.overhead_pct is None else req.overhead_pct
    tax_pct = DEFAULT_TAX_PCT if req.tax_pct is None else req.tax_pct
    breakdown = aggregate_project(req.project, catalog=catalog, overhead_pct=overhead_pct, tax_pct=tax_pct)
    if breakdown.has_incomplete_data:
        logger.info(
            "breakdown has incomplete data",
            extra={"grand_total": breakdown.grand_total, "days_not_set": breakdown.days_not_set},
        )
    return _breakdown_payload(breakdown)


# ── Reference data ───────────────────────────────────────────────────────────

@router.get("/presets")
async def presets():
    return {
        "modifiers": [m.model_dump() for m in preset_modifiers()],
        "deliverables": [d.model_dump() for d in preset_deliverables()],
        "unit_types": UNIT_TYPES,
        "rate_kinds": {kind.value: labels for kind, labels in RATE_KIND_LABELS.items()},
    }


@router.get("/rate-card")
async def rate_card(
    category: Optional[str] = None,
    catalog: RateCatalog = Depends(get_rate_catalog),
):
    items = catalog.items(category=category)
    for item in items:
        rates = catalog.rate_set(item["id"])
        item["available_rate_kinds"] = sorted(k.value for k in available_rate_kinds(rates))
    return {"items": items, "count": len(items)}


@router.get("/rate-card/{item_id}/line-item")
async def rate_card_line_item(
    item_id: str,
    quantity: float = 0.0,
    rate_kind: Optional[str] = None,
    catalog: RateCatalog = Depends(get_rate_catalog),
):
    """Snapshot a rate-card item into a new line item (copy-on-add)."""
    try:
        line = line_item_from_rate_card(catalog, item_id, quantity=quantity, rate_kind=rate_kind)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Rate-card item {item_id} not found")
    rating = explain_line_item(line)
    return {"line_item": line.model_dump(mode="json"), "total": _money(rating.total)}
