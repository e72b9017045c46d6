from typing import Dict, List
from fastapi import WebSocket
from collections import defaultdict
import logging

logger = logging.getLogger(__name__)


class NotificationWebSocketManager:
    """
    Live connections per user. One user may have several sockets open
    (tabs, devices); every message is pushed to all of them.
    """

    def __init__(self):
        self.user_connections: Dict[int, List[WebSocket]] = defaultdict(list)
        self.websocket_to_user: Dict[WebSocket, int] = {}

    async def connect(self, websocket: WebSocket, user_id: int):
        await websocket.accept()
        self.user_connections[user_id].append(websocket)
        self.websocket_to_user[websocket] = user_id
        logger.info(f"User {user_id} connected to notifications")

    async def disconnect(self, websocket: WebSocket):
        if websocket not in self.websocket_to_user:
            return

        user_id = self.websocket_to_user.pop(websocket)
        connections = self.user_connections.get(user_id)
        if connections is not None:
            if websocket in connections:
                connections.remove(websocket)
            if not connections:
                del self.user_connections[user_id]
        logger.info(f"User {user_id} disconnected")

    async def send_to_user(self, user_id: int, message: dict) -> int:
        """Push a message to every open socket of the user, return how many got it"""
        if user_id not in self.user_connections:
            return 0

        delivered = 0
        disconnected = []
        for ws in list(self.user_connections[user_id]):
            try:
                await ws.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to send message to user {user_id}: {e}")
                disconnected.append(ws)

        # drop dead sockets
        for ws in disconnected:
            await self.disconnect(ws)
        return delivered


websocket_manager = NotificationWebSocketManager()
