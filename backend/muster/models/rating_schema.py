"""
Rating data contracts for the Muster field-operations estimator.

These Pydantic models describe the line-item-shaped documents produced by the
project/task editor, the service library picker and the rate-card picker.
They accept the camelCase keys stored in the document database (``fixedRate``,
``volumeTiers``, ``estimatedFieldDays`` ...) as well as snake_case names, and
ignore any extra fields.

Every numeric field passes through ``to_number`` so that partially typed input
(``""``, ``None``, ``"12."``, ``"abc"``) validates to a safe number instead of
raising. The rating engine relies on that: it feeds a live cost preview and
must never fail mid-edit.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Numeric coercion
# ---------------------------------------------------------------------------

def to_number(value: Any, default: float = 0.0) -> float:
    """
    Coerce arbitrary user / document input to a finite float.

    None, empty strings, booleans, non-numeric strings, NaN and +/-inf all
    collapse to ``default``. Numeric strings are parsed after stripping
    whitespace and thousands separators.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return default
        try:
            number = float(text)
        except ValueError:
            return default
    else:
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def _to_list(value: Any) -> List[Any]:
    """Keep only mapping / model entries of a list-shaped field; anything else is dropped."""
    if not isinstance(value, (list, tuple)):
        return []
    return [v for v in value if isinstance(v, (dict, BaseModel))]


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _entry_id(entry: Any) -> str:
    """``id`` of a stored mapping or model entry, as text."""
    value = entry.get("id") if isinstance(entry, dict) else getattr(entry, "id", None)
    return _to_str(value)


# ---------------------------------------------------------------------------
# Rate kinds
# ---------------------------------------------------------------------------

class RateKind(str, Enum):
    FIXED = "fixed"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    PER_UNIT = "per_unit"


# Spellings seen in stored documents and rate-card records.
_RATE_KIND_ALIASES: Dict[str, RateKind] = {
    "fixed": RateKind.FIXED,
    "flat": RateKind.FIXED,
    "hourly": RateKind.HOURLY,
    "hour": RateKind.HOURLY,
    "daily": RateKind.DAILY,
    "day": RateKind.DAILY,
    "weekly": RateKind.WEEKLY,
    "week": RateKind.WEEKLY,
    "per_unit": RateKind.PER_UNIT,
    "per-unit": RateKind.PER_UNIT,
    "perunit": RateKind.PER_UNIT,
    "unit": RateKind.PER_UNIT,
}


def parse_rate_kind(value: Any) -> Optional[RateKind]:
    """Map a stored rate-kind spelling to a RateKind; unknown values give None."""
    if isinstance(value, RateKind):
        return value
    if not isinstance(value, str):
        return None
    return _RATE_KIND_ALIASES.get(value.strip().lower())


# ---------------------------------------------------------------------------
# Base document model
# ---------------------------------------------------------------------------

class _Document(BaseModel):
    """camelCase-tolerant, extra-ignoring base for stored documents."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class _RateFields(_Document):
    fixed_rate: float = 0.0
    hourly_rate: float = 0.0
    daily_rate: float = 0.0
    weekly_rate: float = 0.0
    unit_rate: float = 0.0
    unit_type: str = ""

    @field_validator("fixed_rate", "hourly_rate", "daily_rate", "weekly_rate", "unit_rate", mode="before")
    @classmethod
    def _coerce_rate(cls, v: Any) -> float:
        return to_number(v)

    @field_validator("unit_type", mode="before")
    @classmethod
    def _coerce_unit_type(cls, v: Any) -> str:
        return _to_str(v)

    def rate_value(self, kind: Optional[RateKind]) -> float:
        if kind is RateKind.FIXED:
            return self.fixed_rate
        if kind is RateKind.HOURLY:
            return self.hourly_rate
        if kind is RateKind.DAILY:
            return self.daily_rate
        if kind is RateKind.WEEKLY:
            return self.weekly_rate
        if kind is RateKind.PER_UNIT:
            return self.unit_rate
        return 0.0

    def _positive_kinds(self) -> FrozenSet[RateKind]:
        return frozenset(k for k in RateKind if self.rate_value(k) > 0)


class RateSet(_RateFields):
    """
    Priced attributes of something sellable: a library service, a rate-card
    item or an ad-hoc entry. Frozen once loaded; line items take a copy.
    """

    model_config = ConfigDict(frozen=True)

    _available: FrozenSet[RateKind] = PrivateAttr(default=frozenset())

    def model_post_init(self, __context: Any) -> None:
        self._available = self._positive_kinds()

    def available_rate_kinds(self) -> FrozenSet[RateKind]:
        return self._available


# ---------------------------------------------------------------------------
# Line item parts
# ---------------------------------------------------------------------------

class VolumeTier(_Document):
    """Quantity bracket ``(previous up_to, up_to]`` charged at ``rate`` per unit."""

    up_to: Optional[float] = None
    rate: float = 0.0

    @field_validator("up_to", mode="before")
    @classmethod
    def _coerce_up_to(cls, v: Any) -> Optional[float]:
        # Blank / zero / negative bounds are stored by the editor for the open-ended tier.
        number = to_number(v)
        return number if number > 0 else None

    @field_validator("rate", mode="before")
    @classmethod
    def _coerce_rate(cls, v: Any) -> float:
        return to_number(v)

    @property
    def bound(self) -> float:
        return self.up_to if self.up_to is not None else math.inf


class Deliverable(_Document):
    id: str = ""
    name: str = ""
    price: float = 0.0
    included: bool = False

    @field_validator("id", "name", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _to_str(v)

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, v: Any) -> float:
        return to_number(v)

    @field_validator("included", mode="before")
    @classmethod
    def _coerce_included(cls, v: Any) -> bool:
        if isinstance(v, str):
            return v.strip().lower() in ("true", "1", "yes", "on")
        return bool(v)


class Modifier(_Document):
    id: str = ""
    name: str = ""
    multiplier: float = 1.0

    @field_validator("id", "name", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _to_str(v)

    @field_validator("multiplier", mode="before")
    @classmethod
    def _coerce_multiplier(cls, v: Any) -> float:
        # An unset multiplier is a no-op, never a zeroing factor.
        number = to_number(v)
        return number if number != 0 else 1.0


class LineItem(_RateFields):
    """
    One priced entry attached to a project or task.

    ``rate`` is the single-rate snapshot written by older cost-item editors
    (``{hours, rate, rateType}``); it stands in for the selected kind's own
    field when that field is empty.
    """

    id: str = ""
    name: str = Field(default="", validation_alias=AliasChoices("name", "referenceName"))
    type: str = "fixed"
    selected_rate_kind: Optional[RateKind] = Field(
        default=None,
        validation_alias=AliasChoices("selectedRateKind", "selected_rate_kind", "rateType", "pricingType"),
    )
    quantity: float = Field(default=0.0, validation_alias=AliasChoices("quantity", "hours", "qty"))
    rate: float = 0.0
    volume_tiers: List[VolumeTier] = Field(default_factory=list)
    base_fee: float = 0.0
    minimum_charge: float = 0.0
    deliverables: List[Deliverable] = Field(default_factory=list)
    selected_deliverable_ids: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("selectedDeliverableIds", "selected_deliverable_ids", "selectedDeliverables"),
    )
    modifiers: List[Modifier] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _resolve_stored_selections(cls, data: Any) -> Any:
        """
        Service documents store the pricing model in ``pricingType``
        (``time_based | per_unit | fixed``); ``rateType`` only names the time
        unit of a time-based service and may linger after a switch. They also
        keep the full ``modifiers`` list next to the chosen ``selectedModifiers``.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if "selectedRateKind" not in data and "selected_rate_kind" not in data:
            pricing = parse_rate_kind(data.get("pricingType"))
            if pricing in (RateKind.PER_UNIT, RateKind.FIXED):
                data["selectedRateKind"] = pricing

        selected = data.get("selectedModifiers", data.get("selected_modifiers"))
        if isinstance(selected, (list, tuple)):
            pool = {_entry_id(m): m for m in _to_list(data.get("modifiers"))}
            chosen = []
            for entry in selected:
                if isinstance(entry, (dict, BaseModel)):
                    chosen.append(pool.get(_entry_id(entry), entry))
                elif entry is not None and str(entry) in pool:
                    chosen.append(pool[str(entry)])
            data["modifiers"] = chosen
        return data

    @field_validator("id", "name", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _to_str(v)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, v: Any) -> str:
        return _to_str(v) or "fixed"

    @field_validator("selected_rate_kind", mode="before")
    @classmethod
    def _coerce_kind(cls, v: Any) -> Optional[RateKind]:
        return parse_rate_kind(v)

    @field_validator("quantity", "rate", "base_fee", "minimum_charge", mode="before")
    @classmethod
    def _coerce_amount(cls, v: Any) -> float:
        return to_number(v)

    @field_validator("volume_tiers", "deliverables", "modifiers", mode="before")
    @classmethod
    def _coerce_parts(cls, v: Any) -> List[Any]:
        return _to_list(v)

    @field_validator("selected_deliverable_ids", mode="before")
    @classmethod
    def _coerce_ids(cls, v: Any) -> List[str]:
        if not isinstance(v, (list, tuple, set, frozenset)):
            return []
        ids = (_entry_id(i) if isinstance(i, (dict, BaseModel)) else i for i in v)
        return [str(i) for i in ids if i is not None and i != ""]

    def rate_value(self, kind: Optional[RateKind]) -> float:
        value = super().rate_value(kind)
        if value == 0 and kind is not None and kind is self.selected_rate_kind:
            return self.rate
        return value

    def available_rate_kinds(self) -> FrozenSet[RateKind]:
        return self._positive_kinds()


# ---------------------------------------------------------------------------
# Project inputs
# ---------------------------------------------------------------------------

class DayRateResource(_Document):
    """A crew member, equipment item or aircraft assigned to field work."""

    id: str = Field(
        default="",
        validation_alias=AliasChoices("operatorId", "crewMemberId", "equipmentId", "aircraftId", "id"),
    )
    name: str = Field(default="", validation_alias=AliasChoices("name", "operatorName", "nickname"))
    daily_rate: float = 0.0

    @field_validator("id", "name", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _to_str(v)

    @field_validator("daily_rate", mode="before")
    @classmethod
    def _coerce_rate(cls, v: Any) -> float:
        return to_number(v)


class Task(_Document):
    id: str = ""
    name: str = ""
    status: str = ""
    cost_items: List[LineItem] = Field(default_factory=list)

    @field_validator("id", "name", "status", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return _to_str(v)

    @field_validator("cost_items", mode="before")
    @classmethod
    def _coerce_items(cls, v: Any) -> List[Any]:
        return _to_list(v)


class Phase(_Document):
    tasks: List[Task] = Field(default_factory=list)

    @field_validator("tasks", mode="before")
    @classmethod
    def _coerce_tasks(cls, v: Any) -> List[Any]:
        return _to_list(v)


class ProjectInput(_Document):
    """The subset of a project document the aggregator reads."""

    estimated_field_days: float = 0.0
    pre_field_phase: Phase = Field(default_factory=Phase)
    post_field_phase: Phase = Field(default_factory=Phase)
    services: List[LineItem] = Field(
        default_factory=list,
        validation_alias=AliasChoices("projectServices", "services"),
    )
    crew: List[DayRateResource] = Field(default_factory=list)
    equipment: List[DayRateResource] = Field(
        default_factory=list,
        validation_alias=AliasChoices("assignedEquipment", "equipment"),
    )
    aircraft: List[DayRateResource] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _lift_flight_plan_aircraft(cls, data: Any) -> Any:
        if isinstance(data, BaseModel):
            return data
        if not isinstance(data, dict):
            return {}
        if "aircraft" not in data:
            plan = data.get("flightPlan") or data.get("flight_plan")
            if isinstance(plan, dict) and "aircraft" in plan:
                data = {**data, "aircraft": plan["aircraft"]}
        return data

    @field_validator("estimated_field_days", mode="before")
    @classmethod
    def _coerce_days(cls, v: Any) -> float:
        return to_number(v)

    @field_validator("pre_field_phase", "post_field_phase", mode="before")
    @classmethod
    def _coerce_phase(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, BaseModel)) else {}

    @field_validator("services", "crew", "equipment", "aircraft", mode="before")
    @classmethod
    def _coerce_lists(cls, v: Any) -> List[Any]:
        return _to_list(v)


# ---------------------------------------------------------------------------
# Rating outputs
# ---------------------------------------------------------------------------

class LineItemRating(BaseModel):
    """Every intermediate of one line's rating, in evaluation order."""

    rate_kind: Optional[RateKind] = None
    rate: float = 0.0
    base: float = 0.0
    tiered: bool = False
    base_fee: float = 0.0
    deliverables: float = 0.0
    pre_modifier: float = 0.0
    multiplier: float = 1.0
    pre_floor: float = 0.0
    floor_applied: bool = False
    total: float = 0.0
    has_rate: bool = False


class CostDetail(BaseModel):
    """One rated line or assigned resource inside a category, so the UI can point at it."""

    id: str = ""
    name: str = ""
    cost: float = 0.0
    has_cost: bool = False
    rate_kind: Optional[RateKind] = None
    daily_rate: Optional[float] = None


class CategoryCost(BaseModel):
    category: str
    label: str
    subtotal: float = 0.0
    item_count: int = 0
    with_cost: int = 0
    missing_rate: int = 0
    task_count: Optional[int] = None
    completed_tasks: Optional[int] = None
    details: List[CostDetail] = Field(default_factory=list)


class CostBreakdown(BaseModel):
    """Derived, never-persisted view of a project's estimate."""

    categories: Dict[str, CategoryCost] = Field(default_factory=dict)
    estimated_field_days: float = 0.0
    days_not_set: bool = False
    grand_total: float = 0.0
    overhead_pct: float = 0.0
    overhead: float = 0.0
    tax_pct: float = 0.0
    tax: float = 0.0
    total_with_adjustments: float = 0.0
    has_incomplete_data: bool = False

    @property
    def field_total(self) -> float:
        return sum(
            self.categories[key].subtotal
            for key in ("field_crew", "field_equipment", "field_aircraft")
            if key in self.categories
        )
