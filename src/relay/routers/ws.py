"""WebSocket endpoints: the controller relay and the simulation event feed.

``/`` is the relay.  Every JSON object a peer sends is stamped with
``server_ts`` (ms since epoch) and forwarded verbatim to every *other*
connected peer.  Packets are neither addressed nor validated here; any two
peers exchange all traffic.  In-process listeners (the simulation engine) receive
every relayed packet too.  Malformed messages are logged and dropped; the
socket stays open.

``/events`` streams EventBus events (snapshots, wave and combat events) to
renderers and dashboards.
"""

import asyncio
import json
import queue
import threading
import time
from typing import Callable, Set

from fastapi import APIRouter, WebSocket
from loguru import logger

from odyssey.simulation.controls import loads_strict

router = APIRouter(tags=["websocket"])

PacketListener = Callable[[dict], object]


def stamp_server_ts(data: dict) -> dict:
    """Add the relay's receive time for latency display."""
    data["server_ts"] = int(time.time() * 1000)
    return data


class ConnectionManager:
    """Tracks relay peers, event-feed observers, and local packet listeners."""

    def __init__(self):
        self.peers: Set[WebSocket] = set()
        self.observers: Set[WebSocket] = set()
        self._listeners: list[PacketListener] = []
        self._lock = asyncio.Lock()

    # -- Relay peers ----------------------------------------------------------

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self.peers.add(websocket)
        logger.info(f"Relay peer connected. Total peers: {len(self.peers)}")

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            self.peers.discard(websocket)
        logger.info(f"Relay peer disconnected. Total peers: {len(self.peers)}")

    def add_listener(self, listener: PacketListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: PacketListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    async def relay(self, sender: WebSocket | None, data: dict) -> int:
        """Stamp ``data`` and fan it out to every peer except ``sender``.

        Returns the number of peers it was delivered to.
        """
        stamp_server_ts(data)
        message = json.dumps(data)
        delivered = 0
        failed = set()

        async with self._lock:
            for peer in self.peers:
                if peer is sender:
                    continue
                try:
                    await peer.send_text(message)
                    delivered += 1
                except Exception as e:
                    logger.warning(f"Failed to relay to peer: {e}")
                    failed.add(peer)
            self.peers -= failed

        for listener in list(self._listeners):
            # Off the event loop: listeners may wait on the engine lock
            await asyncio.to_thread(listener, data)
        return delivered

    # -- Event feed observers -------------------------------------------------

    async def add_observer(self, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self.observers.add(websocket)
        logger.info(f"Event observer connected. Total observers: {len(self.observers)}")

    async def remove_observer(self, websocket: WebSocket):
        async with self._lock:
            self.observers.discard(websocket)

    async def broadcast_event(self, message: dict):
        if not self.observers:
            return
        message_str = json.dumps(message)
        failed = set()
        async with self._lock:
            for observer in self.observers:
                try:
                    await observer.send_text(message_str)
                except Exception as e:
                    logger.warning(f"Failed to send event to observer: {e}")
                    failed.add(observer)
            self.observers -= failed


# Global connection manager
manager = ConnectionManager()


def decode_message(raw: str) -> dict | None:
    """Parse one relay frame; None (logged) if it is not a JSON object."""
    try:
        data = loads_strict(raw)
    except ValueError as e:
        logger.warning(f"Invalid relay message: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Relay message is not a JSON object: {type(data).__name__}")
        return None
    return data


def frame_text(message: dict) -> str | None:
    """Text of a text or UTF-8 binary frame; None (logged) otherwise."""
    text = message.get("text")
    if text is not None:
        return text
    payload = message.get("bytes")
    if payload is None:
        return None
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.warning(f"Dropping binary relay frame that is not UTF-8: {e}")
        return None


@router.websocket("/")
async def relay_endpoint(websocket: WebSocket):
    """Controller/game relay."""
    await manager.connect(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = frame_text(message)
            if raw is None:
                continue
            data = decode_message(raw)
            if data is not None:
                await manager.relay(websocket, data)
    finally:
        await manager.disconnect(websocket)


@router.websocket("/events")
async def events_endpoint(websocket: WebSocket):
    """Read-only simulation event stream."""
    await manager.add_observer(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        await manager.remove_observer(websocket)


class EventBridge:
    """Forwards EventBus events from the sim thread to websocket observers."""

    def __init__(self, event_bus, loop: asyncio.AbstractEventLoop, poll_timeout: float = 0.5):
        self._event_bus = event_bus
        self._loop = loop
        self._poll_timeout = poll_timeout
        self._sub: queue.Queue | None = None
        self._running = False
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._running:
            return
        self._sub = self._event_bus.subscribe()
        self._running = True
        self._thread = threading.Thread(target=self._bridge_loop, daemon=True, name="event-ws-bridge")
        self._thread.start()

    def stop(self) -> None:
        self._running = False
        if self._sub is not None:
            self._event_bus.unsubscribe(self._sub)
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

    def _bridge_loop(self) -> None:
        while self._running:
            try:
                msg = self._sub.get(timeout=self._poll_timeout)
            except queue.Empty:
                continue
            asyncio.run_coroutine_threadsafe(manager.broadcast_event(msg), self._loop)
