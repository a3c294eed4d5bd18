"""
rate_catalog.py — Rate-card lookup and line-item snapshotting.

Covers:
  - Default rate-card items (personnel, mobilization, equipment, field services, travel)
  - Organization overrides merged over the defaults, per item and per rate key
  - Fresh day-rates for crew / equipment / aircraft, keyed by resource id
  - Conversion of rate-card ``rates`` records to RateSet
  - Copy-on-add creation of LineItems from a RateSet source

A RateCatalog is built once per request (or once at startup) and passed
explicitly to the aggregator. Nothing here is module-level mutable state.
"""

import copy
import json
import logging
import os
from typing import Any, Dict, Iterable, List, Mapping, Optional

from muster.config import DEFAULT_SERVICE_RATE_KIND
from muster.models.rating_schema import (
    Deliverable,
    LineItem,
    Modifier,
    RateKind,
    RateSet,
    VolumeTier,
    to_number,
)
from muster.services.rate_primitives import default_rate_kind

logger = logging.getLogger("muster-api.rating")


# ---------------------------------------------------------------------------
# Default rate card (CAD)
# ---------------------------------------------------------------------------
DEFAULT_RATE_CARD_ITEMS: tuple = (
    {
        "id": "pic-basic",
        "category": "personnel-pic",
        "name": "Pilot in Command - Basic",
        "rates": {"hourly": 225, "halfDay": 900, "day": 1500, "week": 6750},
        "isActive": True,
    },
    {
        "id": "pic-advanced",
        "category": "personnel-pic",
        "name": "Pilot in Command - Advanced",
        "rates": {"hourly": 265, "halfDay": 1050, "day": 1750, "week": 7875},
        "isActive": True,
    },
    {
        "id": "payload-operator",
        "category": "personnel-field",
        "name": "Payload Operator",
        "rates": {"hourly": 150, "halfDay": 600, "day": 1000, "week": 4500},
        "isActive": True,
    },
    {
        "id": "mob-standard",
        "category": "mob-demob",
        "name": "Mobilization - Standard",
        "rates": {"fixed": 1040},
        "isActive": True,
    },
    {
        "id": "mob-complex",
        "category": "mob-demob",
        "name": "Mobilization - Complex Integration",
        "rates": {"fixed": 1500},
        "isActive": True,
    },
    {
        "id": "demob-standard",
        "category": "mob-demob",
        "name": "Demobilization - Standard",
        "rates": {"fixed": 1040},
        "isActive": True,
    },
    {
        "id": "rpas-backup-small",
        "category": "equipment-rpas-small",
        "name": "Backup RPAS System (<25kg)",
        "rates": {"day": 400, "week": 1600},
        "isActive": True,
    },
    {
        "id": "corridor-mapping",
        "category": "services-field",
        "name": "Corridor Mapping",
        "rates": {"day": 4000, "perKm": 250},
        "isActive": True,
    },
    {
        "id": "mileage",
        "category": "travel-expenses",
        "name": "Mileage",
        "rates": {"perKm": 0.70},
        "isActive": True,
    },
)

# Rate-card keys that map straight onto a RateSet field.
_RATE_KEY_FIELDS: Dict[str, str] = {
    "fixed": "fixed_rate",
    "hourly": "hourly_rate",
    "hour": "hourly_rate",
    "day": "daily_rate",
    "daily": "daily_rate",
    "week": "weekly_rate",
    "weekly": "weekly_rate",
    "unit": "unit_rate",
}

RESOURCE_KINDS = ("crew", "equipment", "aircraft")


def rate_set_from_rates(rates: Mapping[str, Any], unit_type: str = "") -> RateSet:
    """
    Build a RateSet from a rate-card ``rates`` record.

    ``hourly`` / ``day`` / ``week`` / ``fixed`` fill their own fields. The first
    positive ``perX`` key becomes the unit rate with ``x`` as the unit type
    (``perKm`` → km) unless ``unit_type`` is given. Other keys (``halfDay``)
    have no RateSet counterpart and are ignored.
    """
    fields: Dict[str, Any] = {"unit_type": unit_type}
    for key, value in (rates or {}).items():
        field = _RATE_KEY_FIELDS.get(key)
        if field is not None:
            fields[field] = to_number(value)
        elif key.startswith("per") and len(key) > 3 and "unit_rate" not in fields:
            amount = to_number(value)
            if amount > 0:
                fields["unit_rate"] = amount
                fields["unit_type"] = unit_type or key[3:].lower()
    return RateSet(**fields)


def _merge_item(default: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(dict(default))
    for key, value in override.items():
        if key == "rates" and isinstance(value, Mapping):
            merged["rates"] = {**merged.get("rates", {}), **value}
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class RateCatalog:
    """
    Rate-card defaults merged with organization overrides, plus fresh
    day-rates for assigned field resources.

    overrides: ``{item_id: {"rates": {...}, "isActive": bool, ...}}``. Ids not
               present in the defaults are added as organization-only items.
    resources: ``{"crew" | "equipment" | "aircraft": {resource_id: daily_rate}}``
               or lists of resource documents carrying ``id`` and ``dailyRate``.
    """

    def __init__(
        self,
        items: Iterable[Mapping[str, Any]] = DEFAULT_RATE_CARD_ITEMS,
        overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
        resources: Optional[Mapping[str, Any]] = None,
    ) -> None:
        merged: Dict[str, Dict[str, Any]] = {}
        for item in items:
            merged[str(item["id"])] = copy.deepcopy(dict(item))
        for item_id, override in (overrides or {}).items():
            if not isinstance(override, Mapping):
                continue
            base = merged.get(str(item_id), {"id": str(item_id)})
            merged[str(item_id)] = _merge_item(base, override)
        self._items = merged

        self._day_rates: Dict[str, Dict[str, float]] = {kind: {} for kind in RESOURCE_KINDS}
        for kind, entries in (resources or {}).items():
            if kind not in self._day_rates:
                logger.warning(f"Ignoring unknown resource kind in rate catalog: {kind}")
                continue
            self._day_rates[kind] = _day_rate_index(entries)

    # ------------------------------------------------------------------
    # Rate-card items
    # ------------------------------------------------------------------

    def items(self, category: Optional[str] = None, active_only: bool = True) -> List[Dict[str, Any]]:
        result = []
        for item in self._items.values():
            if active_only and not item.get("isActive", True):
                continue
            if category is not None and item.get("category") != category:
                continue
            result.append(copy.deepcopy(item))
        return result

    def get_item(self, item_id: str) -> Dict[str, Any]:
        """Return a copy of a merged rate-card item. Raises KeyError for unknown ids."""
        if item_id not in self._items:
            raise KeyError(f"Unknown rate-card item '{item_id}'")
        return copy.deepcopy(self._items[item_id])

    def rate_set(self, item_id: str) -> RateSet:
        item = self.get_item(item_id)
        return rate_set_from_rates(item.get("rates", {}), str(item.get("unitType", "") or ""))

    # ------------------------------------------------------------------
    # Field resources
    # ------------------------------------------------------------------

    def daily_rate_for(self, kind: str, resource_id: str) -> Optional[float]:
        """Fresh daily rate for a resource, or None when unknown or unpriced."""
        rate = self._day_rates.get(kind, {}).get(resource_id)
        if rate is None or rate <= 0:
            return None
        return rate

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_file(cls, path: str, **kwargs: Any) -> "RateCatalog":
        """
        Load organization overrides from a JSON file:
            {"overrides": {...}, "resources": {...}}
        A missing path yields the default catalog.
        """
        if not path or not os.path.exists(path):
            if path:
                logger.warning(f"Rate overrides file not found: {path} — using default rate card")
            return cls(**kwargs)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        logger.info(f"Loaded rate overrides from {path}")
        return cls(
            overrides=data.get("overrides") or {},
            resources=data.get("resources") or {},
            **kwargs,
        )


def _day_rate_index(entries: Any) -> Dict[str, float]:
    if isinstance(entries, Mapping):
        return {str(k): to_number(v) for k, v in entries.items()}
    index: Dict[str, float] = {}
    if isinstance(entries, (list, tuple)):
        for doc in entries:
            if isinstance(doc, Mapping) and doc.get("id") is not None:
                index[str(doc["id"])] = to_number(doc.get("dailyRate", doc.get("daily_rate")))
    return index


# ---------------------------------------------------------------------------
# Copy-on-add snapshotting
# ---------------------------------------------------------------------------

def line_item_from_rate_set(
    rates: RateSet,
    *,
    item_id: str = "",
    name: str = "",
    item_type: str = "service",
    rate_kind: Any = None,
    quantity: float = 0.0,
    volume_tiers: Iterable[Any] = (),
    base_fee: float = 0.0,
    minimum_charge: float = 0.0,
    deliverables: Iterable[Any] = (),
    selected_deliverable_ids: Iterable[str] = (),
    modifiers: Iterable[Any] = (),
) -> LineItem:
    """
    Create a LineItem that owns copies of every rate field of ``rates``.

    The line does not keep a reference to its source, so later edits to the
    service or rate card never change it. The rate kind defaults to the
    service default (daily) when available, else the first available kind.
    """
    kind = default_rate_kind(rates, rate_kind if rate_kind is not None else DEFAULT_SERVICE_RATE_KIND)
    return LineItem(
        id=item_id,
        name=name,
        type=item_type,
        selected_rate_kind=kind,
        quantity=to_number(quantity),
        fixed_rate=rates.fixed_rate,
        hourly_rate=rates.hourly_rate,
        daily_rate=rates.daily_rate,
        weekly_rate=rates.weekly_rate,
        unit_rate=rates.unit_rate,
        unit_type=rates.unit_type,
        volume_tiers=[VolumeTier.model_validate(_plain(t)) for t in volume_tiers],
        base_fee=to_number(base_fee),
        minimum_charge=to_number(minimum_charge),
        deliverables=[Deliverable.model_validate(_plain(d)) for d in deliverables],
        selected_deliverable_ids=[str(i) for i in selected_deliverable_ids],
        modifiers=[Modifier.model_validate(_plain(m)) for m in modifiers],
    )


def line_item_from_service(service: Mapping[str, Any], quantity: float = 0.0, rate_kind: Any = None) -> LineItem:
    """Snapshot a service-library document (rates, tiers, fees, add-ons) into a new line."""
    rates = RateSet.model_validate(dict(service))
    return line_item_from_rate_set(
        rates,
        item_id=str(service.get("id", "") or ""),
        name=str(service.get("name", "") or ""),
        item_type="service",
        rate_kind=rate_kind,
        quantity=quantity,
        volume_tiers=_list(service.get("volumeTiers", service.get("volume_tiers"))),
        base_fee=service.get("baseFee", service.get("base_fee")),
        minimum_charge=service.get("minimumCharge", service.get("minimum_charge")),
        deliverables=_list(service.get("deliverables")),
        modifiers=(),
    )


def line_item_from_rate_card(
    catalog: RateCatalog, item_id: str, quantity: float = 0.0, rate_kind: Any = None
) -> LineItem:
    """Snapshot a merged rate-card item into a new line. Raises KeyError for unknown ids."""
    item = catalog.get_item(item_id)
    item_type = "personnel" if str(item.get("category", "")).startswith("personnel") else "service"
    return line_item_from_rate_set(
        catalog.rate_set(item_id),
        item_id=item_id,
        name=str(item.get("name", "")),
        item_type=item_type,
        rate_kind=rate_kind,
        quantity=quantity,
    )


def _plain(value: Any) -> Any:
    return value.model_dump() if hasattr(value, "model_dump") else copy.deepcopy(value)


def _list(value: Any) -> List[Any]:
    return [v for v in value if isinstance(v, Mapping)] if isinstance(value, (list, tuple)) else []
