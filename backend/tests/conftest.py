"""
conftest.py — Shared pytest fixtures for the Muster rating test suite.

No database or external service fixtures are defined here. All tests in this
suite are pure unit tests of the rating engine plus in-process HTTP tests
through FastAPI's TestClient.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``muster.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any muster imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Line item fixtures (raw documents, camelCase as stored)
# ---------------------------------------------------------------------------

@pytest.fixture
def acreage_tiers():
    """Two brackets: first 10 acres at 100, everything above at 80."""
    return [
        {"id": "t2", "upTo": None, "rate": 80},
        {"id": "t1", "upTo": 10, "rate": 100},
    ]


@pytest.fixture
def tiered_survey_line(acreage_tiers):
    """Per-acre mapping service, 12 acres, tiers stored out of order."""
    return {
        "id": "svc-mapping",
        "name": "Agricultural Mapping",
        "type": "service",
        "selectedRateKind": "per_unit",
        "quantity": 12,
        "unitRate": 120,
        "unitType": "acre",
        "volumeTiers": acreage_tiers,
    }


@pytest.fixture
def fixed_inspection_line():
    """
    Fixed-fee inspection: 500 fixed, 50 base fee, one paid deliverable (75)
    selected, one included deliverable selected, ×1.2 modifier.
    Expected total: (500 + 50 + 75) × 1.2 = 750.
    """
    return {
        "id": "svc-inspection",
        "name": "Tower Inspection",
        "type": "service",
        "selectedRateKind": "fixed",
        "fixedRate": 500,
        "dailyRate": 1800,
        "baseFee": 50,
        "deliverables": [
            {"id": "d-report", "name": "Inspection Report", "price": 75, "included": False},
            {"id": "d-raw", "name": "Raw Imagery", "price": 0, "included": True},
            {"id": "d-video", "name": "4K Video", "price": 150, "included": False},
        ],
        "selectedDeliverableIds": ["d-report", "d-raw"],
        "modifiers": [{"id": "m-remote", "name": "Remote Location", "multiplier": 1.2}],
    }


# ---------------------------------------------------------------------------
# Project fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_project(tiered_survey_line, fixed_inspection_line):
    """
    A project touching every category.

      pre_field   : 2 tasks — 8 h × 95 (760) + an unpriced personnel line
      services    : tiered mapping (1160) + fixed inspection (750)
      field_crew  : 2 × 400/day        × 3 days = 2400
      equipment   : 1 × 250/day        × 3 days =  750
      aircraft    : 1 × 300/day (flightPlan) × 3 days = 900, 1 without rate
      post_field  : 1 completed task — fixed 600
    """
    return {
        "id": "proj-1",
        "name": "North Ridge Survey",
        "estimatedFieldDays": "3",
        "preFieldPhase": {
            "tasks": [
                {
                    "id": "task-plan",
                    "name": "Flight planning",
                    "status": "completed",
                    "costItems": [
                        {"id": "ci-1", "type": "personnel", "hours": 8, "rate": 95, "rateType": "hourly"},
                    ],
                },
                {
                    "id": "task-permit",
                    "name": "Permits",
                    "status": "pending",
                    "costItems": [
                        {"id": "ci-2", "type": "personnel", "hours": 4, "rateType": "hourly"},
                    ],
                },
            ]
        },
        "projectServices": [tiered_survey_line, fixed_inspection_line],
        "crew": [
            {"operatorId": "op-1", "operatorName": "Sam Reyes", "dailyRate": 400},
            {"operatorId": "op-2", "operatorName": "Alex Chen", "dailyRate": 400},
        ],
        "assignedEquipment": [
            {"id": "eq-1", "name": "RTK Base Station", "dailyRate": 250},
        ],
        "flightPlan": {
            "aircraft": [
                {"id": "ac-1", "nickname": "Matrice 350", "dailyRate": 300},
                {"id": "ac-2", "nickname": "Backup Mini"},
            ]
        },
        "postFieldPhase": {
            "tasks": [
                {
                    "id": "task-process",
                    "name": "Processing",
                    "status": "completed",
                    "costItems": [
                        {"id": "ci-3", "type": "fixed", "rateType": "fixed", "rate": 600},
                    ],
                },
            ]
        },
        "organizationId": "org-1",
    }


@pytest.fixture
def rate_catalog():
    """Default rate card with a day-rate override for one crew member."""
    from muster.services.rate_catalog import RateCatalog
    return RateCatalog(
        overrides={
            "pic-basic": {"rates": {"day": 1600}},
            "org-thermal": {
                "category": "services-field",
                "name": "Thermal Survey",
                "rates": {"day": 2200, "perHectare": 45},
            },
        },
        resources={
            "crew": {"op-1": 450},
            "equipment": [{"id": "eq-1", "dailyRate": 0}],
        },
    )


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest.fixture
def client():
    """TestClient running the app lifespan (default rate catalog)."""
    from fastapi.testclient import TestClient
    from muster.main import app
    from muster.services.perf_monitor import tracker

    tracker.reset()
    with TestClient(app) as test_client:
        yield test_client
