"""WebSocket connection management for the scenepack API."""

from fastapi import WebSocket


class WebSocketManager:
    """Manages WebSocket connections grouped by key (e.g., "progress").

    Keeps the connect/broadcast/disconnect bookkeeping in one place for
    every router that pushes real-time updates.
    """

    def __init__(self):
        """Initialize the WebSocket manager with empty connections dict."""
        self.connections: dict[str, list[WebSocket]] = {}

    async def connect(self, key: str, websocket: WebSocket) -> None:
        """Accept a WebSocket connection and add it to the connection pool.

        Args:
            key: The grouping key
            websocket: The WebSocket connection to add
        """
        await websocket.accept()
        self.connections.setdefault(key, []).append(websocket)

    async def broadcast(self, key: str, message: dict) -> None:
        """Broadcast a message to all connected WebSockets for a given key.

        Args:
            key: The grouping key
            message: The message dict to send as JSON

        Note:
            Automatically cleans up disconnected WebSockets.
        """
        disconnected = []
        for ws in self.connections.get(key, []):
            try:
                await ws.send_json(message)
            except Exception:
                disconnected.append(ws)

        # Clean up disconnected WebSockets
        for ws in disconnected:
            if ws in self.connections.get(key, []):
                self.connections[key].remove(ws)

    def disconnect(self, key: str, websocket: WebSocket) -> None:
        """Remove a WebSocket from the connection pool."""
        if key in self.connections and websocket in self.connections[key]:
            self.connections[key].remove(websocket)

    def count(self, key: str) -> int:
        return len(self.connections.get(key, []))
