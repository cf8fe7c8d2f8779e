"""Lightweight HTTP client util with retry.

Uses stdlib urllib; the only outbound call is the rate provider's GET.
Focus: GET JSON with limited retries and exponential backoff.
"""

from __future__ import annotations
import json
import logging
import time
import urllib.error
import urllib.request
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("p2p_exchange.http")


class HttpError(Exception):
    pass


def get_json(
    url: str,
    *,
    timeout: float = 5.0,
    retries: int = 2,
    backoff: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    last_err: Optional[Exception] = None
    request = urllib.request.Request(url, headers={"Accept": "application/json"})
    for attempt in range(retries + 1):
        try:
            with urllib.request.urlopen(request, timeout=timeout) as resp:  # nosec B310
                if resp.status >= 400:
                    raise HttpError(f"HTTP {resp.status}")
                payload = json.loads(resp.read().decode("utf-8"))
                if not isinstance(payload, dict):
                    raise HttpError("expected a JSON object")
                return payload
        except (
            urllib.error.URLError,
            TimeoutError,
            HttpError,
            ValueError,
        ) as e:  # ValueError for JSON decode
            last_err = e
            logger.warning("GET attempt %d/%d failed: %s", attempt + 1, retries + 1, e)
            if attempt == retries:
                break
            sleep(backoff * (2**attempt))
    # url may embed an API key; keep it out of the message
    raise HttpError(f"Failed to fetch JSON: {last_err}")
