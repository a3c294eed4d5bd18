"""
volume_tiers.py — Graduated (marginal) volume tier pricing.

Quantity inside each bracket is charged at that bracket's rate only, the way
progressive tax brackets work. A bracket covers ``(previous up_to, up_to]``;
an unset ``up_to`` is unbounded.
"""

import math
from typing import Iterable, List

from muster.models.rating_schema import VolumeTier, to_number


def sort_tiers(tiers: Iterable[VolumeTier]) -> List[VolumeTier]:
    """Ascending by ``up_to``; unbounded tiers last. Stable for equal bounds."""
    return sorted(tiers, key=lambda t: t.bound)


def tiered_cost(quantity: float, tiers: Iterable[VolumeTier]) -> float:
    """
    Accumulate ``quantity`` across ``tiers``.

    Example:
        quantity = 12, tiers = [{up_to: 10, rate: 100}, {up_to: None, rate: 80}]
        → 10 × 100 + 2 × 80 = 1160

    Quantity beyond the last finite bound is charged at the last tier's rate,
    so an uncovered tail is never priced at zero. An empty tier list or a
    non-positive quantity gives 0.
    """
    remaining = to_number(quantity)
    ordered = sort_tiers(tiers)
    if remaining <= 0 or not ordered:
        return 0.0

    cost = 0.0
    prev_up_to = 0.0
    last_index = len(ordered) - 1
    for idx, tier in enumerate(ordered):
        if idx == last_index or math.isinf(tier.bound):
            consumed = remaining
        else:
            capacity = max(tier.bound - prev_up_to, 0.0)
            consumed = min(remaining, capacity)
            prev_up_to = max(prev_up_to, tier.bound)
        cost += consumed * tier.rate
        remaining -= consumed
        if remaining <= 0:
            break
    return cost
