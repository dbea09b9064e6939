"""
Log WebSocket Management Module
================================

Real-time log streaming for the device booking service. Every log line is
printed to the console with its tag and, when monitoring clients are
connected to the /logs WebSocket, broadcast to them as JSON.

Message Format:
--------------
    {
        "msg_type": "log" | "error" | "warning",
        "message": "[REGISTRY] Device 7 booked by Andrej",
        "timestamp": "2025-12-01T10:30:00+00:00"
    }

Usage Example:
-------------
    from device_service.Core import log_ws

    # From any thread (request handlers run in FastAPI's thread pool)
    log_ws.log_from_thread("[REGISTRY] Devices table created")
    log_ws.log_from_thread("[RAPIDAPI] Lookup failed: timeout", "error")

Thread Safety:
-------------
Request handlers, the registry and the remote specs client all run outside
the event loop. log_from_thread() schedules the broadcast on the main loop
with asyncio.run_coroutine_threadsafe(), so it is safe to call from anywhere.
"""

import asyncio
import json
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import WebSocket


class LogWebSocketManager:
    """
    Tracks /logs WebSocket clients and broadcasts log messages to them.

    Attributes:
        clients: Currently connected WebSocket clients
        main_loop: FastAPI's event loop, set during application startup
    """

    def __init__(self):
        self.clients: List[WebSocket] = []
        self.main_loop: Optional[asyncio.AbstractEventLoop] = None
        self._lock = threading.Lock()

    def set_main_loop(self, loop: Optional[asyncio.AbstractEventLoop]):
        """
        Register (or clear, with None) the loop broadcasts are scheduled on.

        Called from the application lifespan on startup and on shutdown.
        """
        self.main_loop = loop

    async def register(self, ws: WebSocket):
        """Accept the handshake and start sending logs to this client."""
        with self._lock:
            if ws not in self.clients:
                self.clients.append(ws)

        try:
            await ws.accept()
            print(f"[LOG-WS] Client registered. Total clients: {len(self.clients)}")
        except Exception:
            self.unregister(ws)
            raise

    def unregister(self, ws: WebSocket):
        """Stop tracking a client. Idempotent."""
        with self._lock:
            if ws in self.clients:
                self.clients.remove(ws)
                print(f"[LOG-WS] Client unregistered. Total clients: {len(self.clients)}")

    @property
    def has_clients(self) -> bool:
        with self._lock:
            return len(self.clients) > 0

    async def broadcast(self, message: Dict[str, Any]):
        """
        Send a message to every client; clients failing the send are dropped.

        The client list is copied under the lock and sent to without it.
        """
        to_remove = []

        with self._lock:
            current_clients = list(self.clients)

        payload = json.dumps(message)
        for ws in current_clients:
            try:
                await ws.send_text(payload)
            except Exception:
                to_remove.append(ws)

        for ws in to_remove:
            self.unregister(ws)

    def send_from_thread(self, message: Dict[str, Any]):
        """Schedule broadcast() on the main loop from a non-async context."""
        loop = self.main_loop
        if loop is None or loop.is_closed():
            return

        try:
            asyncio.run_coroutine_threadsafe(self.broadcast(message), loop)
        except RuntimeError:
            # Loop stopped between the check and the scheduling call
            pass

    async def handle_message(self, ws: WebSocket, message: str):
        """Clients are listeners only; incoming text is just echoed to the console."""
        print(f"[LOG-WS] Received message from client: {message}")


def log_from_thread(message: str, msg_type: str = "log"):
    """
    Log a message: print it, then broadcast it to /logs clients if any.

    Args:
        message: Log line, conventionally prefixed with a "[TAG]"
        msg_type: "log", "warning" or "error"
    """
    print(message)

    if log_ws_manager.has_clients:
        payload: Dict[str, Any] = {
            "msg_type": msg_type,
            "message": str(message),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        log_ws_manager.send_from_thread(payload)


# ============================================================
# GLOBAL LOG WEBSOCKET MANAGER INSTANCE
# ============================================================
log_ws_manager = LogWebSocketManager()
