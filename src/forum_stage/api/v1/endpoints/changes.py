# src/forum_stage/api/v1/endpoints/changes.py
"""WebSocket stream of committed changes.

Clients send ``{"table": ..., "column": ..., "value": ...}`` to subscribe and
receive ``{"table": ..., "op": ..., "id": ...}`` for each matching commit.
Notifications carry no content; clients re-fetch through the REST API.
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from forum_stage.services.change_feed import ChangeEvent, Subscription, change_feed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/changes", tags=["changes"])


@router.websocket("/ws")
async def change_stream(websocket: WebSocket) -> None:
    """Forward change notifications for the tables a client subscribes to."""
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
    subscriptions: list[Subscription] = []

    def _enqueue(change: ChangeEvent) -> None:
        # Commits may happen on another thread.
        loop.call_soon_threadsafe(queue.put_nowait, change)

    async def _receive() -> None:
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict):
                await websocket.send_json({"error": "Subscription must be a JSON object"})
                continue
            table = message.get("table")
            try:
                subscriptions.append(
                    change_feed.subscribe(
                        str(table),
                        _enqueue,
                        column=message.get("column"),
                        value=message.get("value"),
                    )
                )
            except ValueError as exc:
                await websocket.send_json({"error": str(exc)})
                continue
            await websocket.send_json({"subscribed": table})

    async def _send() -> None:
        while True:
            change = await queue.get()
            await websocket.send_json(
                {"table": change.table, "op": change.op, "id": change.row_id}
            )

    receiver = asyncio.create_task(_receive())
    sender = asyncio.create_task(_send())
    try:
        done, pending = await asyncio.wait({receiver, sender}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                raise exc
    finally:
        for subscription in subscriptions:
            change_feed.unsubscribe(subscription)
        logger.debug("Change stream closed after %d subscriptions", len(subscriptions))
