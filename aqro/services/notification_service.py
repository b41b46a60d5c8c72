# aqro/services/notification_service.py
"""
Best-effort notification side-channel.

After a container transaction commits, the engine hands a payload to the
notifier, which POSTs it to NOTIFICATION_WEBHOOK_URL as a detached asyncio task:

    {event, customerId, email, containerId, containerType, restaurant, amount?, timestamp}

Delivery never blocks or fails the transaction. Non-2xx responses, timeouts
and network errors are logged and dropped. No retries.
"""

import asyncio
from datetime import datetime
from typing import Optional

import httpx

from aqro.config import settings
from aqro.utils.logger import get_logger

logger = get_logger(__name__)


def build_payload(event: str, *, customer_id, email, container_id, container_type,
                  restaurant=None, amount=None) -> dict:
    payload = {
        "event": event,
        "customerId": customer_id,
        "email": email,
        "containerId": container_id,
        "containerType": container_type,
        "restaurant": restaurant,
        "timestamp": datetime.utcnow().isoformat(),
    }
    if amount is not None:
        payload["amount"] = float(amount)
    return payload


class BestEffortNotifier:
    def __init__(self, webhook_url: Optional[str] = None, timeout: float = 5.0, max_pending: int = 100):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.max_pending = max_pending
        self._pending: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def notify(self, payload: dict) -> None:
        """Schedule delivery and return immediately. Never raises."""
        if not self.enabled:
            logger.debug(f"[NOTIFY] Webhook disabled, dropping {payload.get('event')}")
            return
        try:
            if len(self._pending) >= self.max_pending:
                logger.warning(f"[NOTIFY] {len(self._pending)} deliveries in flight, dropping {payload.get('event')}")
                return
            task = asyncio.get_running_loop().create_task(self._deliver(payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        except Exception as e:
            logger.error(f"[NOTIFY] Could not schedule {payload.get('event')}: {e}")

    async def _deliver(self, payload: dict) -> None:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json=payload)
            if response.status_code >= 300:
                logger.warning(f"[NOTIFY] {payload['event']} → webhook returned HTTP {response.status_code}")
            else:
                logger.info(f"[NOTIFY] {payload['event']} delivered for container {payload.get('containerId')}")
        except Exception as e:
            logger.error(f"[NOTIFY] {payload.get('event')} delivery failed: {e}")

    async def drain(self) -> None:
        """Wait for in-flight deliveries. Used on shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


notifier = BestEffortNotifier(
    webhook_url=settings.NOTIFICATION_WEBHOOK_URL,
    timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
    max_pending=settings.NOTIFICATION_MAX_PENDING,
)


def get_notifier() -> BestEffortNotifier:
    """FastAPI dependency: the process-wide notifier."""
    return notifier
