"""
Event Bus

Change notifications between services and realtime subscribers.
Services emit events after a write commits; the API forwards them to
websocket clients.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

# Event names
DONATION_COMPLETED = "donation.completed"
DONATION_REFUNDED = "donation.refunded"
CAMPAIGN_STATUS_CHANGED = "campaign.status_changed"
FUNDS_RELEASED = "funds.released"


class EventBus:
    """
    Simple in-process event bus.

    Usage:
        # Service: emit event
        await event_bus.emit("donation.completed", {"campaign_id": "...", "amount": 100.0})

        # Subscriber
        @event_bus.on("donation.completed")
        async def handle_donation(data):
            pass
    """

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {}

    def on(self, event_name: str):
        """Decorator to subscribe to an event."""
        def decorator(handler: Callable):
            self.subscribe(event_name, handler)
            logger.debug(f"Subscribed {handler.__name__} to {event_name}")
            return handler
        return decorator

    def subscribe(self, event_name: str, handler: Callable):
        """Subscribe a handler to an event (non-decorator version)."""
        if event_name not in self._handlers:
            self._handlers[event_name] = []
        self._handlers[event_name].append(handler)

    def unsubscribe(self, event_name: str, handler: Callable):
        if event_name in self._handlers:
            self._handlers[event_name] = [
                h for h in self._handlers[event_name] if h != handler
            ]

    async def emit(self, event_name: str, data: Dict[str, Any]):
        """
        Emit an event to all subscribers.

        Handler failures are logged and never reach the emitter: the write
        that produced the event has already committed.
        """
        handlers = self._handlers.get(event_name, [])

        if not handlers:
            logger.debug(f"No handlers for event: {event_name}")
            return

        logger.debug(f"Emitting {event_name} to {len(handlers)} handlers")

        tasks = []
        for handler in handlers:
            if asyncio.iscoroutinefunction(handler):
                tasks.append(handler(data))
            else:
                loop = asyncio.get_running_loop()
                tasks.append(loop.run_in_executor(None, handler, data))

        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Handler error for {event_name}: {result}")

    def clear(self):
        """Clear all subscriptions (useful for testing)."""
        self._handlers.clear()

    def get_subscriptions(self) -> Dict[str, int]:
        return {name: len(handlers) for name, handlers in self._handlers.items()}


# Global singleton
event_bus = EventBus()
