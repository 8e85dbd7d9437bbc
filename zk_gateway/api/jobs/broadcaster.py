"""Fan-out of job events to live subscribers."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncGenerator, Dict, Set

from pydantic import BaseModel

from .models import utcnow_iso

logger = logging.getLogger(__name__)


class JobEventBroadcaster:
    """Best-effort publish/subscribe for job updates.

    Each subscriber owns a bounded queue.  ``broadcast`` serializes an event
    once and offers it to every queue without waiting; a full or broken
    queue loses that event and nothing else.  Only subscribers registered
    at broadcast time receive it, so there is no replay.
    """

    def __init__(self, max_backlog: int = 100, server_name: str = "zk-pret-gateway") -> None:
        self._subscribers: Set[asyncio.Queue] = set()
        self._max_backlog = max_backlog
        self._server_name = server_name

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def broadcast(self, event: BaseModel | Dict[str, Any]) -> int:
        """Deliver *event* to every current subscriber; returns deliveries made."""
        payload = event.model_dump(mode="json") if isinstance(event, BaseModel) else event
        message = json.dumps(payload, default=str)
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.debug("Subscriber backlog full; dropping event")
            except Exception:  # noqa: BLE001
                logger.debug("Delivery to subscriber failed", exc_info=True)
        return delivered

    async def subscribe(self) -> AsyncGenerator[str, None]:
        """Yield a connection acknowledgement, then live serialized events.

        The subscriber is registered before the acknowledgement is yielded
        and removed when the generator is closed.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_backlog)
        self._subscribers.add(queue)
        logger.info("Subscriber connected (%d active)", len(self._subscribers))
        try:
            yield json.dumps({
                "type": "connection",
                "status": "connected",
                "server": self._server_name,
                "timestamp": utcnow_iso(),
            })
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)
            logger.info("Subscriber disconnected (%d active)", len(self._subscribers))
