"""
WebSocket Manager - Stream grid changes to dashboard clients
"""
import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional, Set

from fastapi import WebSocket

from grid.state import StateChange
from visual.commands import VisualCommand

logger = logging.getLogger(__name__)


class WebSocketManager:
    def __init__(self, max_queue: int = 1000):
        self.active_connections: Set[WebSocket] = set()
        self.max_queue = max_queue
        self.message_queue: Optional[asyncio.Queue] = None
        self.running = False
        self.broadcast_task = None
        self.dropped = 0

    async def connect(self, websocket: WebSocket):
        """Accept new WebSocket connection"""
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info(f"Dashboard WebSocket connected (total: {len(self.active_connections)})")

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.discard(websocket)
            logger.info(f"Dashboard WebSocket disconnected (remaining: {len(self.active_connections)})")

    async def send_personal_message(self, message: Dict, websocket: WebSocket):
        """Send message to specific client"""
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.error(f"Error sending personal message: {e}")

    async def send_full_state_snapshot(self, websocket: WebSocket, snapshot: Dict):
        """Send full current state to newly connected client"""
        await self.send_personal_message({
            "type": "full_state_snapshot",
            "timestamp": datetime.utcnow().isoformat(),
            **snapshot,
        }, websocket)

    # ------------------------------------------------------------------
    # Producers (called synchronously from the engine side)
    # ------------------------------------------------------------------

    def publish(self, message: Dict):
        """Queue a message for every client; dropped while not broadcasting"""
        if not self.running or self.message_queue is None:
            return
        try:
            self.message_queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Broadcast queue full, dropping {message.get('type')} message")

    def on_visual_command(self, command: VisualCommand):
        self.publish({"type": "visual_command", **command.to_dict()})

    def on_state_change(self, change: StateChange):
        self.publish({"type": "state_change", **change.to_dict()})

    def on_event(self, message: Dict):
        self.publish(message)

    # ------------------------------------------------------------------
    # Broadcast loop
    # ------------------------------------------------------------------

    async def start_broadcasting(self):
        """Start background task for broadcasting queued messages"""
        self.message_queue = asyncio.Queue(maxsize=self.max_queue)
        self.running = True
        self.broadcast_task = asyncio.create_task(self._broadcast_loop())
        logger.info("WebSocket broadcaster started")

    async def stop_broadcasting(self):
        self.running = False
        if self.broadcast_task:
            self.broadcast_task.cancel()
            self.broadcast_task = None

    async def _broadcast_loop(self):
        while self.running:
            try:
                message = await asyncio.wait_for(self.message_queue.get(), timeout=0.1)
            except asyncio.TimeoutError:
                continue

            disconnected = set()
            for websocket in list(self.active_connections):
                try:
                    await websocket.send_json(message)
                except Exception as e:
                    logger.error(f"Error broadcasting to client: {e}")
                    disconnected.add(websocket)

            for websocket in disconnected:
                self.disconnect(websocket)

    def get_connection_count(self) -> int:
        return len(self.active_connections)
