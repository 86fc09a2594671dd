#!/usr/bin/env python3
"""
Container health check for the Tax Copilot API.

Hits the root endpoint, then prints the per-component report from
/api/v1/health (database, blob storage, search index, models). Exits 0 when
the service reports healthy and 1 otherwise.
"""

import os
import sys
from typing import Optional

import httpx

BASE_URL = os.environ.get("HEALTHCHECK_URL", "http://localhost:8080")
HEALTH_PATH = "/api/v1/health"


def fetch_health_report() -> Optional[dict]:
    """Component report, or None when the health route cannot be read.

    An unhealthy service answers 503 and still sends the component report.
    """
    try:
        with httpx.Client(timeout=5.0) as client:
            response = client.get(BASE_URL + HEALTH_PATH)
    except httpx.HTTPError as e:
        print(f"Health request failed: {e}", file=sys.stderr)
        return None

    if response.status_code not in (200, 503):
        return None
    return response.json()


def api_is_up() -> bool:
    try:
        with httpx.Client(timeout=3.0) as client:
            return client.get(BASE_URL + "/").status_code == 200
    except httpx.HTTPError:
        return False


def main() -> int:
    if not api_is_up():
        print("Tax Copilot API is not answering", file=sys.stderr)
        return 1

    report = fetch_health_report()
    if report is None:
        print("Health report unavailable", file=sys.stderr)
        return 1

    healthy = report.get("status") == "healthy"
    stream = sys.stdout if healthy else sys.stderr
    print(f"tax-copilot: {report.get('status', 'unhealthy')}", file=stream)
    for name, state in sorted(report.get("components", {}).items()):
        print(f"  {name:<14} {state}", file=stream)

    return 0 if healthy else 1


if __name__ == "__main__":
    sys.exit(main())
