from __future__ import annotations

"""Async HTTP helper for JSON APIs.

GET a URL and hand back status + decoded body without interpreting either:
provider semantics (what counts as an error payload) belong to the caller.
No retries; transport failures are raised as `HttpError` immediately.
"""
from dataclasses import dataclass
from typing import Any, Optional

import httpx


class HttpError(Exception):
    """Transport level failure: the request never produced a response."""


@dataclass(frozen=True)
class JsonResponse:
    status: int
    data: Any  # None when the body is not valid JSON

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


async def get_json(
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 5.0,
) -> JsonResponse:
    if client is None:
        async with httpx.AsyncClient(timeout=timeout) as own_client:
            return await _get(own_client, url)
    return await _get(client, url)


async def _get(client: httpx.AsyncClient, url: str) -> JsonResponse:
    try:
        resp = await client.get(url)
    except httpx.RequestError as e:
        raise HttpError(f"{type(e).__name__}: {e}") from e
    try:
        data = resp.json()
    except ValueError:  # JSON decode
        data = None
    return JsonResponse(status=resp.status_code, data=data)
