"""
line_item_rater.py — The one canonical line-item rating routine.

Every caller (project services, task cost items, rate-card picks, ad-hoc
fixed costs) rates lines through ``rate_line_item`` so there is a single
definition of a line total.

Evaluation order, fixed:
  1. Base cost      fixed → fixed_rate
                    per_unit with tiers and quantity > 0 → graduated tier cost
                    per_unit without tiers → quantity × unit_rate
                    hourly / daily / weekly → quantity × selected rate
  2. + base_fee     flat mobilization / setup charge
  3. + deliverables selected, non-included add-ons
  4. × modifiers    applied to the whole pre-modifier line
  5. floor          0 < total < minimum_charge → minimum_charge; 0 stays 0

Rating never raises: input is coerced by the schema, and the final total is
clamped at zero.
"""

import logging
from typing import Any, Mapping, Union

from pydantic import BaseModel

from muster.models.rating_schema import LineItem, LineItemRating, RateKind
from muster.services.deliverables import deliverables_total
from muster.services.modifiers import compose_modifiers
from muster.services.rate_primitives import rate_for_kind
from muster.services.volume_tiers import tiered_cost

logger = logging.getLogger("muster-api.rating")

LineItemLike = Union[LineItem, Mapping[str, Any]]


def as_line_item(item: Any) -> LineItem:
    """Accept a LineItem, another model or a raw document mapping."""
    if isinstance(item, LineItem):
        return item
    if isinstance(item, BaseModel):
        item = item.model_dump()
    if not isinstance(item, Mapping):
        return LineItem()
    return LineItem.model_validate(dict(item))


def explain_line_item(item: LineItemLike) -> LineItemRating:
    """Rate one line and return every intermediate value."""
    line = as_line_item(item)
    kind = line.selected_rate_kind
    rate = rate_for_kind(line)
    tiered = False

    if kind is RateKind.FIXED:
        base = rate
    elif kind is RateKind.PER_UNIT:
        if line.volume_tiers and line.quantity > 0:
            base = tiered_cost(line.quantity, line.volume_tiers)
            tiered = True
        else:
            base = line.quantity * rate
    else:
        base = line.quantity * rate

    extras = deliverables_total(line.deliverables, line.selected_deliverable_ids)
    pre_modifier = base + line.base_fee + extras
    multiplier = compose_modifiers(line.modifiers)
    pre_floor = pre_modifier * multiplier

    total = pre_floor
    floor_applied = False
    if line.minimum_charge > 0 and 0 < total < line.minimum_charge:
        total = line.minimum_charge
        floor_applied = True
    total = max(total, 0.0)

    has_rate = rate > 0 or (tiered and any(t.rate > 0 for t in line.volume_tiers))

    logger.debug(
        "line rated",
        extra={"line_id": line.id, "rate_kind": kind.value if kind else None, "line_total": total},
    )

    return LineItemRating(
        rate_kind=kind,
        rate=rate,
        base=base,
        tiered=tiered,
        base_fee=line.base_fee,
        deliverables=extras,
        pre_modifier=pre_modifier,
        multiplier=multiplier,
        pre_floor=pre_floor,
        floor_applied=floor_applied,
        total=total,
        has_rate=has_rate,
    )


def rate_line_item(item: LineItemLike) -> float:
    """Total cost of one line item."""
    return explain_line_item(item).total
