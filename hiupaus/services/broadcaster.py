"""Fan-out broadcaster - pushes events to every connected live-view client"""

import json
import logging
from typing import Any, List, Protocol

logger = logging.getLogger(__name__)


class LiveViewClient(Protocol):
    async def send_text(self, data: str) -> None: ...


def encode_event(event: str, data: Any = None) -> str:
    """Serialize a push event envelope"""
    return json.dumps({"event": event, "data": data}, ensure_ascii=False)


class Broadcaster:
    """Registry of connected live-view clients.

    Every emit is one pass over the clients connected at that moment. A client
    whose send fails is dropped from the registry.
    """
    
    def __init__(self):
        self._clients: List[LiveViewClient] = []
        self.broadcasts = 0
    
    @property
    def client_count(self) -> int:
        return len(self._clients)
    
    def add(self, client: LiveViewClient):
        """Register a connected client"""
        if client not in self._clients:
            self._clients.append(client)
        logger.info(f"Client connected ({self.client_count} total)")
    
    def discard(self, client: LiveViewClient):
        """Forget a client; unknown clients are ignored"""
        if client in self._clients:
            self._clients.remove(client)
            logger.info(f"Client disconnected ({self.client_count} remaining)")
    
    async def send(self, client: LiveViewClient, event: str, data: Any = None):
        """Push an event to a single client"""
        await client.send_text(encode_event(event, data))
    
    async def emit(self, event: str, data: Any = None) -> int:
        """Push an event to all clients; returns how many received it"""
        message = encode_event(event, data)
        self.broadcasts += 1
        
        delivered = 0
        dead = []
        for client in list(self._clients):
            try:
                await client.send_text(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping live-view client after send failure: {e}")
                dead.append(client)
        
        for client in dead:
            self.discard(client)
        
        logger.debug(f"Broadcasted '{event}' to {delivered} clients")
        return delivered
