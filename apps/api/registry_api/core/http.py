from __future__ import annotations

from collections.abc import Generator

import httpx

from registry_api.core.config import get_settings


def get_http_client() -> Generator[httpx.Client, None, None]:
    # Centralize HTTP client configuration (timeouts, etc) so we can override in tests.
    settings = get_settings()
    headers = {"User-Agent": f"registry-api/{settings.VERSION}"}  # required by api.github.com
    with httpx.Client(timeout=10.0, headers=headers) as client:
        yield client
