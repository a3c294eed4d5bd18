"""
rate_primitives.py — Which rate applies to a line item.

A line item carries a snapshot of every rate field of its source plus the
selected rate kind. These helpers resolve the single applicable rate and the
set of kinds an editor may offer.
"""

from typing import Any, FrozenSet, Iterable, Optional, Union

from muster.config import RATE_KIND_ORDER
from muster.models.rating_schema import LineItem, RateKind, RateSet, parse_rate_kind


def rate_for_kind(item: LineItem, kind: Optional[RateKind] = None) -> float:
    """
    Return the rate for ``kind`` (default: the item's selected kind).

    fixed→fixed_rate, hourly→hourly_rate, daily→daily_rate,
    weekly→weekly_rate, per_unit→unit_rate. Missing fields and unknown
    kinds give 0.
    """
    return item.rate_value(kind if kind is not None else item.selected_rate_kind)


def available_rate_kinds(rates: Union[RateSet, LineItem]) -> FrozenSet[RateKind]:
    """Kinds whose rate is positive. A RateSet computes this once when it is loaded."""
    return rates.available_rate_kinds()


def default_rate_kind(
    rates: Union[RateSet, LineItem],
    preferred: Any = None,
    order: Iterable[RateKind] = RATE_KIND_ORDER,
) -> Optional[RateKind]:
    """
    Pick the kind an editor should pre-select.

    ``preferred`` wins when it is available; otherwise the first available
    kind in ``order``. None when the source has no positive rate at all.
    """
    available = rates.available_rate_kinds()
    wanted = parse_rate_kind(preferred)
    if wanted is not None and wanted in available:
        return wanted
    for kind in order:
        if kind in available:
            return kind
    return None
