from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter

registry = CollectorRegistry()

API_REQUESTS = Counter(
    "geocar_api_requests_total",
    "Requests sent to the identity and geo services",
    ["service", "status"],
    registry=registry,
)
AUTH_RECOVERIES = Counter(
    "geocar_auth_recoveries_total",
    "Single-shot recoveries after an authorization failure",
    ["service"],
    registry=registry,
)
VIEWPORT_LOADS = Counter(
    "geocar_viewport_loads_total",
    "Viewport loads by outcome",
    ["outcome"],
    registry=registry,
)
RESOLUTIONS = Counter(
    "geocar_location_resolutions_total",
    "Location text resolutions by winning strategy",
    ["strategy"],
    registry=registry,
)
