from __future__ import annotations

from fastapi import Request

from tradewizard.bootstrap import TradeIntelServices, build_services


def get_services(request: Request) -> TradeIntelServices:
    """Return the app's services, building them from the environment on first use."""

    services = getattr(request.app.state, "services", None)
    if services is None:
        services = build_services()
        request.app.state.services = services
    return services
