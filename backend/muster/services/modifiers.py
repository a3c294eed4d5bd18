"""
modifiers.py — Multiplicative surcharges and discounts.

Modifiers always compose by multiplication: "+25%" and "+50%" together are
×1.25 × 1.50 = ×1.875, never ×1.75.
"""

from typing import Iterable, List

from muster.config import COMMON_MODIFIERS
from muster.models.rating_schema import Modifier


def compose_modifiers(modifiers: Iterable[Modifier]) -> float:
    """Product of all multipliers; 1.0 for an empty list."""
    multiplier = 1.0
    for mod in modifiers:
        multiplier *= mod.multiplier
    return multiplier


def format_multiplier(multiplier: float) -> str:
    """Display form used next to line totals, e.g. ``×1.25`` or ``×0.9``."""
    text = f"{multiplier:.4f}".rstrip("0").rstrip(".")
    if "." not in text:
        text += ".0"
    return f"×{text}"


def preset_modifiers() -> List[Modifier]:
    """Fresh Modifier instances for the common presets (Rush, Same Day, ...)."""
    return [
        Modifier(id=f"preset-{idx}", name=p["name"], multiplier=p["multiplier"])
        for idx, p in enumerate(COMMON_MODIFIERS)
    ]
