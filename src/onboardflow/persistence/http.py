"""HTTP client for the onboarding progress service."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from onboardflow.core.config import RemoteStoreConfig
from onboardflow.persistence.remote import progress_from_reply
from onboardflow.wizard.models import RemoteProgress

logger = logging.getLogger(__name__)

UPDATE_STEP_PATH = "/api/onboarding/update-step"
GET_DATA_PATH = "/api/onboarding/get-data"


class HttpRemoteStore:
    """Remote tier talking to ``onboardflow.web`` (or a compatible server) over HTTP."""

    def __init__(
        self,
        config: RemoteStoreConfig | None = None,
        client: httpx.AsyncClient | None = None,
        user_id: str | None = None,
    ) -> None:
        self.config = config or RemoteStoreConfig()
        headers: dict[str, str] = {}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        self._http = client or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout_seconds),
            headers=headers,
        )
        self._user_id = user_id

    # -- RemoteProgressStore ---------------------------------------------------

    async def save(
        self,
        step_key: str,
        payload: dict[str, Any],
        identity: str,
        full_answers: dict[str, Any],
    ) -> bool:
        body: dict[str, Any] = {
            "step": step_key,
            "data": payload,
            "email": identity,
            "formData": full_answers,
        }
        if self._user_id:
            body["userId"] = self._user_id
        resp = await self._post(UPDATE_STEP_PATH, body)
        if resp.status_code >= 400:
            logger.warning("Progress save for step %s returned %d", step_key, resp.status_code)
            return False
        return bool(resp.json().get("success"))

    async def restore_by_identity(self, identity: str) -> RemoteProgress | None:
        resp = await self._post(GET_DATA_PATH, {"email": identity})
        resp.raise_for_status()
        body = resp.json()
        if not body.get("success"):
            return None
        return progress_from_reply(body.get("data"))

    async def close(self) -> None:
        await self._http.aclose()

    # -- transport ------------------------------------------------------------

    async def _post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        """POST ``body`` to the progress service.

        Both endpoints are safe to repeat: ``update-step`` replaces the stored
        answers and ``get-data`` only reads. Server errors (5xx) and transport
        failures are retried ``max_retries`` times with doubling backoff; the
        last 5xx response is returned and the last transport error re-raised.
        """
        attempts = max(1, self.config.max_retries + 1)
        for attempt in range(1, attempts):
            try:
                resp = await self._http.post(path, json=body)
            except httpx.TransportError as exc:
                reason = f"{type(exc).__name__}: {exc}"
            else:
                if resp.status_code < 500:
                    return resp
                reason = f"HTTP {resp.status_code}"
            delay = self.config.retry_backoff_seconds * 2 ** (attempt - 1)
            logger.warning(
                "Progress service %s failed (%s); attempt %d of %d, next in %.1fs",
                path, reason, attempt, attempts, delay,
            )
            await asyncio.sleep(delay)
        return await self._http.post(path, json=body)
