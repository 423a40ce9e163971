"""
Collector notification for the unpack action.

POSTs {"address": <wallet>} to the collector endpoint after the on-chain
transfer is confirmed. Failures are logged and reported as False; they never
raise into the pipeline and never undo the transfer.
"""

from __future__ import annotations

from typing import Any

import httpx

from sol_sender.core.exceptions import SideEffectNotifyFailed
from sol_sender.sender_logging import get_logger

logger = get_logger(__name__)


class CollectorNotifier:
    def __init__(
        self,
        endpoint: str,
        *,
        timeout_sec: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not endpoint.strip():
            raise ValueError("endpoint must be non-empty")
        self._endpoint = endpoint.strip()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))

    async def __aenter__(self) -> "CollectorNotifier":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, address: str) -> None:
        try:
            resp = await self._client.post(self._endpoint, json={"address": address})
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise SideEffectNotifyFailed(f"collector notify failed: {e}") from e

    async def notify(self, address: str) -> bool:
        """Return True if the collector accepted the notification."""
        try:
            await self._post(address)
        except SideEffectNotifyFailed as e:
            logger.warning("collector_notify_failed", wallet_id=address, endpoint=self._endpoint, error=str(e))
            return False
        logger.info("collector_notified", wallet_id=address)
        return True
