"""Prometheus metrics for the trust core."""

from prometheus_client import Counter, Gauge, Info, generate_latest
from prometheus_client.core import CollectorRegistry
from fastapi import Response

from ledtech import __version__


# Create a custom registry
REGISTRY = CollectorRegistry()

ledtech_auth_denials_total = Counter(
    "ledtech_auth_denials_total",
    "Requests rejected by the trust core",
    ["status"],  # status: 400/401/403/404/500
    registry=REGISTRY,
)

ledtech_login_attempts_total = Counter(
    "ledtech_login_attempts_total",
    "Login attempts",
    ["outcome"],  # outcome: success/invalid_credentials/inactive
    registry=REGISTRY,
)

ledtech_active_sessions = Gauge(
    "ledtech_active_sessions",
    "Sessions currently held in the session store",
    registry=REGISTRY,
)

system_info = Info("ledtech_trust_core", "Trust core information", registry=REGISTRY)
system_info.info({"version": __version__})


def track_denial(status_code: int):
    """Track a request rejected with a security error."""
    ledtech_auth_denials_total.labels(status=str(status_code)).inc()


def track_login(outcome: str):
    """Track a login attempt."""
    ledtech_login_attempts_total.labels(outcome=outcome).inc()


def update_active_sessions(count: int):
    """Update the active session gauge."""
    ledtech_active_sessions.set(count)


def metrics_endpoint() -> Response:
    """Generate metrics for Prometheus scraping."""
    metrics = generate_latest(REGISTRY)
    return Response(content=metrics, media_type="text/plain")
