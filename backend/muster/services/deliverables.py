"""
deliverables.py — Optional add-on deliverables for a line item.
"""

from typing import Iterable, List

from muster.config import COMMON_DELIVERABLES
from muster.models.rating_schema import Deliverable


def deliverables_total(deliverables: Iterable[Deliverable], selected_ids: Iterable[str]) -> float:
    """
    Sum the price of selected deliverables that are not already included.

    Included deliverables are covered by the base rate and add nothing, even
    when selected. Selected ids with no catalog entry add nothing.
    """
    selected = set(selected_ids)
    if not selected:
        return 0.0
    return sum(d.price for d in deliverables if d.id in selected and not d.included)


def preset_deliverables() -> List[Deliverable]:
    """Common deliverables; a zero default price means bundled (included)."""
    return [
        Deliverable(
            id=f"preset-{idx}",
            name=p["name"],
            price=p["default_price"],
            included=p["default_price"] == 0,
        )
        for idx, p in enumerate(COMMON_DELIVERABLES)
    ]
