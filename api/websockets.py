from fastapi import WebSocket
from typing import List, Dict, Any
import logging

from core.event_bus import event_bus, CAMPAIGN_STATUS_CHANGED, DONATION_COMPLETED, FUNDS_RELEASED

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Manages WebSocket connections partitioned by campaign_id.
    Allows broadcasting messages to all clients watching a specific campaign.
    """
    def __init__(self):
        # Map campaign_id -> List[WebSocket]
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, campaign_id: str):
        await websocket.accept()
        if campaign_id not in self.active_connections:
            self.active_connections[campaign_id] = []
        self.active_connections[campaign_id].append(websocket)
        logger.info(f"WS Client connected for campaign {campaign_id}. Total: {len(self.active_connections[campaign_id])}")

    def disconnect(self, websocket: WebSocket, campaign_id: str):
        if campaign_id in self.active_connections:
            if websocket in self.active_connections[campaign_id]:
                self.active_connections[campaign_id].remove(websocket)
            if not self.active_connections[campaign_id]:
                del self.active_connections[campaign_id]
        logger.info(f"WS Client disconnected from campaign {campaign_id}")

    async def broadcast(self, message: Dict[str, Any], campaign_id: str):
        """Broadcast JSON message to all clients connected to campaign_id"""
        # Copy: a failed send may disconnect while we iterate
        connections = self.active_connections.get(campaign_id, [])[:]
        for connection in connections:
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.warning(f"Failed to send WS message: {e}")
                self.disconnect(connection, campaign_id)

    def count(self, campaign_id: str) -> int:
        return len(self.active_connections.get(campaign_id, []))


# Global instance
manager = ConnectionManager()


def _forward(event_name: str):
    async def handler(data: Dict[str, Any]):
        campaign_id = data.get("campaign_id")
        if campaign_id:
            await manager.broadcast({"event": event_name, "data": data}, str(campaign_id))
    handler.__name__ = f"forward_{event_name.replace('.', '_')}"
    return handler


_forwarding = {}


def register_event_forwarding():
    """Push campaign events to websocket subscribers (once per process)"""
    for name in (DONATION_COMPLETED, CAMPAIGN_STATUS_CHANGED, FUNDS_RELEASED):
        if name not in _forwarding:
            _forwarding[name] = _forward(name)
            event_bus.subscribe(name, _forwarding[name])
