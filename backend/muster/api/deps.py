"""FastAPI dependency injection — rate catalog."""
from fastapi import Request

from muster.services.rate_catalog import RateCatalog


def get_rate_catalog(request: Request) -> RateCatalog:
    """
    The organization rate catalog loaded at startup.

    Falls back to the default rate card when the app was started without a
    lifespan (e.g. a bare router mounted in tests).
    """
    catalog = getattr(request.app.state, "rate_catalog", None)
    if catalog is None:
        catalog = RateCatalog()
        request.app.state.rate_catalog = catalog
    return catalog
