"""
Rating configuration — single source of truth for rate-kind ordering,
category labels, preset libraries and financial defaults.

Import from here in the rating services and routes rather than hardcoding values.
"""
from __future__ import annotations

import os

from muster.models.rating_schema import RateKind, to_number

# ── Rate kinds ─────────────────────────────────────────────────────────────────

# Order in which an available rate kind is picked when none is preferred.
RATE_KIND_ORDER: list[RateKind] = [
    RateKind.DAILY,
    RateKind.HOURLY,
    RateKind.WEEKLY,
    RateKind.PER_UNIT,
    RateKind.FIXED,
]

# Project services are quoted per day unless the editor picks otherwise.
DEFAULT_SERVICE_RATE_KIND: RateKind = RateKind.DAILY

RATE_KIND_LABELS: dict[RateKind, dict[str, str]] = {
    RateKind.HOURLY:   {"label": "Hours", "unit": "hr"},
    RateKind.DAILY:    {"label": "Days", "unit": "day"},
    RateKind.WEEKLY:   {"label": "Weeks", "unit": "wk"},
    RateKind.PER_UNIT: {"label": "Units", "unit": "unit"},
    RateKind.FIXED:    {"label": "Fixed", "unit": "fixed"},
}


# ── Cost breakdown categories ──────────────────────────────────────────────────

# Display order; every key must appear in CostBreakdown.categories.
CATEGORY_LABELS: dict[str, str] = {
    "pre_field":       "Pre-Field",
    "services":        "Services",
    "field_crew":      "Field Crew",
    "field_equipment": "Field Equipment",
    "field_aircraft":  "Field Aircraft",
    "post_field":      "Post-Field",
}

DAY_RATE_CATEGORIES: tuple[str, ...] = ("field_crew", "field_equipment", "field_aircraft")

# Cost item types tracked by the phase summary; anything else is folded into "fixed".
COST_ITEM_TYPES: tuple[str, ...] = ("personnel", "service", "equipment", "fleet", "fixed")

COMPLETED_TASK_STATUS: str = "completed"


# ── Preset libraries ───────────────────────────────────────────────────────────

COMMON_MODIFIERS: list[dict] = [
    {"name": "Rush (24-48hr)",        "multiplier": 1.25},
    {"name": "Same Day",              "multiplier": 1.50},
    {"name": "Difficult Terrain",     "multiplier": 1.30},
    {"name": "Remote Location",       "multiplier": 1.20},
    {"name": "Night Operations",      "multiplier": 1.40},
    {"name": "Survey-Grade Accuracy", "multiplier": 1.35},
    {"name": "High-Risk Environment", "multiplier": 1.50},
    {"name": "Weekend/Holiday",       "multiplier": 1.25},
]

# A default price of 0 marks a deliverable bundled with the base rate.
COMMON_DELIVERABLES: list[dict] = [
    {"name": "Orthomosaic",                 "default_price": 0},
    {"name": "Point Cloud",                 "default_price": 150},
    {"name": "3D Mesh Model",               "default_price": 300},
    {"name": "Digital Terrain Model (DTM)", "default_price": 200},
    {"name": "Digital Surface Model (DSM)", "default_price": 150},
    {"name": "Contour Map",                 "default_price": 100},
    {"name": "Volume Calculations",         "default_price": 75},
    {"name": "CAD Export",                  "default_price": 100},
    {"name": "GIS Layers",                  "default_price": 150},
    {"name": "Thermal Report",              "default_price": 200},
    {"name": "Inspection Report",           "default_price": 250},
    {"name": "Progress Report",             "default_price": 100},
    {"name": "Raw Imagery",                 "default_price": 0},
    {"name": "4K Video",                    "default_price": 150},
    {"name": "Edited Video",                "default_price": 300},
]

UNIT_TYPES: dict[str, str] = {
    "acre": "acres",
    "hectare": "hectares",
    "sqft": "sq ft",
    "sqm": "sq m",
    "mile": "miles",
    "km": "km",
    "structure": "structures",
    "tower": "towers",
    "turbine": "turbines",
    "mw": "MW",
    "panel": "panels",
    "site": "sites",
    "image": "images",
    "gb": "GB",
    "flight": "flights",
    "deliverable": "deliverables",
}


# ── Financial defaults ─────────────────────────────────────────────────────────

# Flat percentages (0–100). Zero unless the deployment sets them.
DEFAULT_OVERHEAD_PCT: float = to_number(os.getenv("MUSTER_DEFAULT_OVERHEAD_PCT"))
DEFAULT_TAX_PCT: float = to_number(os.getenv("MUSTER_DEFAULT_TAX_PCT"))

# Optional JSON file with organization rate-card overrides, loaded at startup.
RATE_OVERRIDES_FILE: str = os.getenv("MUSTER_RATE_OVERRIDES_FILE", "")

# Money values in HTTP responses are rounded to this many decimals.
MONEY_DECIMALS: int = 2


# ── Logging ────────────────────────────────────────────────────────────────────

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON: bool = os.getenv("LOG_FORMAT", "json").lower() != "text"
# Level for the rating engine logger only; unset inherits LOG_LEVEL.
ENGINE_LOG_LEVEL: str = os.getenv("MUSTER_ENGINE_LOG_LEVEL", "")
