from __future__ import annotations

import time

import httpx

from .stack import StackConfig


def check_health(url: str, timeout_s: float = 5.0) -> tuple[bool, str, float | None]:
    """Call a service health endpoint.

    Any 2xx answer counts as healthy (n8n's /healthz and docling's /health
    both answer {"status": "ok"}).
    Returns (is_healthy, message, latency_ms).
    """
    start = time.time()
    try:
        with httpx.Client(timeout=timeout_s, follow_redirects=False) as client:
            resp = client.get(url)
        latency_ms = round((time.time() - start) * 1000.0, 2)
        if 200 <= resp.status_code < 300:
            return True, "Healthy", latency_ms
        return False, f"HTTP {resp.status_code}", latency_ms
    except (httpx.ConnectError, httpx.TimeoutException):
        latency_ms = round((time.time() - start) * 1000.0, 2)
        return False, "No response", latency_ms
    except httpx.HTTPError as e:
        latency_ms = round((time.time() - start) * 1000.0, 2)
        return False, f"Error: {type(e).__name__}: {e}", latency_ms


def probe_stack(stack: StackConfig, timeout_s: float = 5.0) -> dict[str, tuple[bool, str, float | None]]:
    """Probe every service that declares a health_url, keyed by service name."""
    return {s.name: check_health(s.health_url, timeout_s) for s in stack.services if s.health_url}
