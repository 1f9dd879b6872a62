from __future__ import annotations

"""Live rate provider: exchangerate-api.com v6 "pair" endpoint.

GET {base_url}/{api_key}/pair/{FROM}/{TO} answers with
    {"result": "success", "base_code": "IDR", "target_code": "USD",
     "conversion_rate": 0.000065, ...}
or, on a business failure,
    {"result": "error", "error-type": "unsupported-code"}

Failures are surfaced immediately (no retries, no fallback rates):
    transport failure          -> RateServiceUnavailable
    error payload / non-2xx    -> ProviderError
    2xx without a usable rate  -> InvalidResponse
"""
import logging
import math
from typing import Any, Optional

import httpx

from fintrack.core.errors import (
    InvalidResponse,
    ProviderError,
    RateServiceUnavailable,
)
from fintrack.models.constants import parse_currency
from fintrack.services.http_client import HttpError, JsonResponse, get_json
from .base import RateFetcher
from .cache_service import RateCache

logger = logging.getLogger("fintrack.rates.provider")


def _provider_message(resp: JsonResponse) -> Optional[str]:
    """Error text reported by the provider, if the payload reports one."""
    data = resp.data if isinstance(resp.data, dict) else {}
    for key in ("error", "error-type"):
        if data.get(key):
            return str(data[key])
    if data.get("result") == "error":
        return "provider reported an error"
    if not resp.ok:
        return f"HTTP error! status: {resp.status}"
    return None


def _parse_rate(data: Any) -> float:
    if not isinstance(data, dict):
        raise InvalidResponse("Invalid API response: body is not a JSON object")
    rate = data.get("conversion_rate")
    if isinstance(rate, bool) or not isinstance(rate, (int, float)):
        raise InvalidResponse(
            "Invalid API response: missing or invalid conversion rate"
        )
    if not math.isfinite(rate) or rate <= 0:
        raise InvalidResponse(f"Invalid API response: conversion rate {rate!r}")
    return float(rate)


class ExchangeRateApiFetcher(RateFetcher):
    """Fetch a pair rate and record it in the rate cache."""

    def __init__(
        self,
        cache: RateCache,
        *,
        base_url: str,
        api_key: Optional[str],
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._cache = cache
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    def _pair_url(self, from_code: str, to_code: str) -> str:
        return f"{self._base_url}/{self._api_key}/pair/{from_code}/{to_code}"

    async def fetch_rate(self, from_currency: str, to_currency: str) -> float:  # type: ignore[override]
        from_code = parse_currency(from_currency).value
        to_code = parse_currency(to_currency).value
        if not self._api_key:
            raise ProviderError("exchange rate API key is not configured")

        logger.info(
            "fetching exchange rate",
            extra={"from_currency": from_code, "to_currency": to_code},
        )
        try:
            resp = await get_json(
                self._pair_url(from_code, to_code),
                client=self._client,
                timeout=self._timeout,
            )
        except HttpError as e:
            logger.warning("rate provider unreachable: %s", e)
            raise RateServiceUnavailable(
                f"Failed to fetch exchange rate: {e}"
            ) from e

        message = _provider_message(resp)
        if message is not None:
            logger.warning(
                "rate provider error: %s", message, extra={"status_code": resp.status}
            )
            raise ProviderError(message, http_status=resp.status)

        rate = _parse_rate(resp.data)
        self._cache.put(from_code, to_code, rate)
        logger.info(
            "fetched exchange rate",
            extra={"from_currency": from_code, "to_currency": to_code, "rate": rate},
        )
        return rate
