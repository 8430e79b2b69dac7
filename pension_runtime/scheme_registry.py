"""
Scheme Registry Client: accrual-rate lookup over HTTP.

GET {base_url}/schemes/{scheme_id} -> {"scheme_id": ..., "accrual_rate": ...}

Any failure (transport error, timeout, non-2xx, malformed body) logs a
warning and falls back to the default rate. Fallbacks are never cached,
so the next request retries. Successful lookups live in a process-wide
cache shared by concurrent requests.
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional
from urllib.parse import quote

import httpx

from pension_kernel.constants import DEFAULT_ACCRUAL_RATE

from .config import DEFAULT_REGISTRY_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class SchemeRegistryError(RuntimeError):
    """Raised internally when a registry response cannot be used."""


class SchemeRegistryClient:
    """Implements the kernel's AccrualRateSource contract."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = DEFAULT_REGISTRY_TIMEOUT_SECONDS,
        default_rate: Decimal = DEFAULT_ACCRUAL_RATE,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._default_rate = default_rate
        self._client = client or httpx.Client(timeout=timeout_seconds)
        self._owns_client = client is None
        self._cache: Dict[str, Decimal] = {}
        self._lock = threading.Lock()

    def resolve(self, scheme_id: str) -> Decimal:
        with self._lock:
            cached = self._cache.get(scheme_id)
        if cached is not None:
            return cached

        try:
            rate = self._fetch(scheme_id)
        except httpx.TimeoutException:
            logger.warning(
                "Scheme registry request timed out for scheme %s, using default rate",
                scheme_id,
            )
            return self._default_rate
        except (httpx.HTTPError, SchemeRegistryError) as exc:
            logger.warning(
                "Failed to fetch accrual rate for scheme %s, using default rate: %s",
                scheme_id, exc,
            )
            return self._default_rate

        with self._lock:
            self._cache[scheme_id] = rate
        return rate

    def cached_rates(self) -> Dict[str, Decimal]:
        with self._lock:
            return dict(self._cache)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _fetch(self, scheme_id: str) -> Decimal:
        url = f"{self._base_url}/schemes/{quote(scheme_id, safe='')}"
        response = self._client.get(url)
        response.raise_for_status()
        try:
            body = response.json()
        except ValueError as exc:
            raise SchemeRegistryError(f"response is not JSON: {exc}") from exc
        if not isinstance(body, dict) or body.get("accrual_rate") is None:
            raise SchemeRegistryError(f"response has no accrual_rate: {body!r}")
        raw = body["accrual_rate"]
        if isinstance(raw, bool):
            raise SchemeRegistryError(f"accrual_rate is not a number: {raw!r}")
        try:
            rate = Decimal(str(raw))
        except InvalidOperation as exc:
            raise SchemeRegistryError(f"accrual_rate is not a number: {raw!r}") from exc
        if not rate.is_finite():
            raise SchemeRegistryError(f"accrual_rate is not finite: {raw!r}")
        return rate
