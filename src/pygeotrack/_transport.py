"""WebSocket relay delivering notifier topics to remote observers.

Each connected observer gets the global ``asset:created`` and
``asset:updated`` feeds.  It can additionally follow individual assets by
sending ``{"action": "subscribe", "assetId": "..."}`` and stop with
``{"action": "unsubscribe", "assetId": "..."}``.  Outbound frames are the
JSON form of :class:`pygeotrack.state.events.AssetEvent`.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Awaitable, Callable

from aiohttp import WSMsgType, web

from pygeotrack.notifier import ChangeNotifier, Subscription
from pygeotrack.state.events import GLOBAL_TOPICS, AssetEvent, asset_topic

_logger = logging.getLogger(__name__)


class WebSocketRelay:
    """Pumps subscriptions for one WebSocket connection.

    Subscriptions are registered before the handshake completes so the
    observer sees every event committed after it is connected.  All of them
    are released when the connection ends, whatever the reason.
    """

    def __init__(self, notifier: ChangeNotifier, ws: web.WebSocketResponse) -> None:
        self._notifier = notifier
        self._ws = ws
        self._subscriptions: dict[str, Subscription] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def topics(self) -> set[str]:
        return set(self._subscriptions)

    def _follow(self, topic: str) -> bool:
        if topic in self._subscriptions:
            return False
        self._subscriptions[topic] = self._notifier.subscribe(topic)
        # Before the handshake events only queue up; pumps start once prepared.
        if self._ws.prepared:
            self._start_pump(topic)
        return True

    def _start_pump(self, topic: str) -> None:
        if topic not in self._tasks:
            subscription = self._subscriptions[topic]
            self._tasks[topic] = asyncio.create_task(self._pump(subscription), name=f"geotrack-relay:{topic}")

    def _unfollow(self, topic: str) -> bool:
        subscription = self._subscriptions.pop(topic, None)
        if subscription is None:
            return False
        self._notifier.unsubscribe(subscription)
        task = self._tasks.pop(topic, None)
        if task is not None:
            task.cancel()
        return True

    async def _pump(self, subscription: Subscription) -> None:
        async for event in subscription:
            message = event.to_message() if isinstance(event, AssetEvent) else {"topic": subscription.topic, "data": event}
            try:
                await self._ws.send_json(message)
            except ConnectionError:
                _logger.debug("Relay send failed topic=%s; connection closed", subscription.topic)
                return
            except Exception:
                _logger.warning("Relay send failed topic=%s; stopping feed", subscription.topic, exc_info=True)
                return

    async def _handle_text(self, text: str) -> None:
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            await self._ws.send_json({"error": "invalid JSON"})
            return
        if not isinstance(message, dict):
            await self._ws.send_json({"error": "message must be an object"})
            return

        action = message.get("action")
        asset_id = message.get("assetId")
        if action not in ("subscribe", "unsubscribe") or not isinstance(asset_id, str) or not asset_id:
            await self._ws.send_json({"error": "expected {action: subscribe|unsubscribe, assetId}"})
            return

        topic = asset_topic(asset_id)
        if topic in GLOBAL_TOPICS:
            await self._ws.send_json({"error": f"reserved assetId: {asset_id}"})
            return
        if action == "subscribe":
            self._follow(topic)
            _logger.debug("Relay subscribed topic=%s", topic)
            await self._ws.send_json({"action": "subscribed", "assetId": asset_id})
        else:
            self._unfollow(topic)
            _logger.debug("Relay unsubscribed topic=%s", topic)
            await self._ws.send_json({"action": "unsubscribed", "assetId": asset_id})

    async def serve(self, request: web.Request) -> web.WebSocketResponse:
        """Run the relay until the observer disconnects."""
        for topic in GLOBAL_TOPICS:
            self._follow(topic)
        try:
            await self._ws.prepare(request)
            for topic in list(self._subscriptions):
                self._start_pump(topic)
            async for msg in self._ws:
                if msg.type == WSMsgType.TEXT:
                    await self._handle_text(msg.data)
                elif msg.type == WSMsgType.ERROR:
                    _logger.debug("Relay connection error: %s", self._ws.exception())
                    break
        finally:
            await self.close()
        return self._ws

    async def close(self) -> None:
        tasks = list(self._tasks.values())
        for topic in list(self._subscriptions):
            self._unfollow(topic)
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task


def make_websocket_handler(
    notifier: ChangeNotifier,
) -> Callable[[web.Request], Awaitable[web.WebSocketResponse]]:
    """aiohttp handler factory: ``app.router.add_get("/events", make_websocket_handler(n))``."""

    async def handler(request: web.Request) -> web.WebSocketResponse:
        relay = WebSocketRelay(notifier, web.WebSocketResponse(heartbeat=30.0))
        return await relay.serve(request)

    return handler


def attach_event_relay(app: web.Application, notifier: ChangeNotifier, path: str = "/events") -> None:
    """Register the relay route on *app*."""
    app.router.add_get(path, make_websocket_handler(notifier))
