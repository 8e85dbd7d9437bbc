"""WebSocket channel for live job updates."""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, WebSocket

from ..jobs.broadcaster import JobEventBroadcaster

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])


async def _pump(websocket: WebSocket, stream: AsyncGenerator[str, None]) -> None:
    async for message in stream:
        await websocket.send_text(message)


async def _drain(websocket: WebSocket) -> None:
    # Client messages are informational only; reading them is how a
    # disconnect is noticed while no events are flowing.
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
        logger.debug("WebSocket message received: %s", message.get("text") or message.get("bytes"))


@router.websocket("/ws")
async def job_updates(websocket: WebSocket) -> None:
    broadcaster: JobEventBroadcaster = websocket.app.state.broadcaster
    await websocket.accept()
    stream = broadcaster.subscribe()
    sender = asyncio.create_task(_pump(websocket, stream))
    receiver = asyncio.create_task(_drain(websocket))
    try:
        await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sender, receiver):
            task.cancel()
        results = await asyncio.gather(sender, receiver, return_exceptions=True)
        await stream.aclose()
        for res in results:
            if isinstance(res, Exception):
                logger.debug("WebSocket session ended with %r", res)
