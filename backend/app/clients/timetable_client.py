from __future__ import annotations

import logging
from typing import Any

import httpx

from app.core.exceptions import AppError, StoreUnavailableError
from app.schemas.timetable import EffectiveTimetableOut

logger = logging.getLogger(__name__)


class TimetableApiClient:
    """Async HTTP client for the timetable endpoints, suitable as a ``SyncPoller`` fetch."""

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "TimetableApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def login(self, role: str, password: str) -> str:
        payload = await self._request("POST", "/auth/login", json={"role": role, "password": password})
        token = payload["access_token"]
        self._client.headers["Authorization"] = f"Bearer {token}"
        return token

    async def fetch_effective(self, date_str: str, day_name: str) -> EffectiveTimetableOut:
        payload = await self._request("GET", "/timetable", params={"dateStr": date_str, "dayName": day_name})
        return EffectiveTimetableOut.model_validate(payload)

    async def save(self, mutation_type: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/timetable", json={"type": mutation_type, "payload": payload})

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise StoreUnavailableError(f"Timetable service unreachable: {exc}") from exc
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            raise AppError(
                body.get("message") or f"Timetable service answered {response.status_code}",
                status_code=response.status_code,
                details=body.get("details") or {},
            )
        if response.status_code == 204:
            return None
        return response.json()
