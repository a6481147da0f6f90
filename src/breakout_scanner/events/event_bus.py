"""Event bus for publishing scanner events to subscribers."""

import asyncio
from collections import defaultdict, deque
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Type

from ..config.logging import get_logger
from .events import DomainEvent

logger = get_logger(__name__)

EventHandler = Callable[[DomainEvent], Any]


class EventBus:
    """Typed publish/subscribe channel between the core and its consumers."""

    def __init__(self, name: str = "default", max_history_size: int = 500):
        self.name = name
        self.logger = logger.bind(event_bus=name)

        self._handlers: Dict[Type[DomainEvent], List[EventHandler]] = defaultdict(
            list
        )
        self._history: Deque[Dict[str, Any]] = deque(maxlen=max_history_size)
        self._pending: set = set()

        self._stats = {
            "events_published": 0,
            "handlers_executed": 0,
            "errors_count": 0,
            "last_event_time": None,
        }

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        """
        Subscribe a handler to an event type.

        Args:
            event_type: Type of event to subscribe to
            handler: Handler function (sync or async)
        """
        self._handlers[event_type].append(handler)
        self.logger.debug(
            "Event handler subscribed",
            event_type=event_type.__name__,
            handler=getattr(handler, "__name__", repr(handler)),
        )

    def unsubscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> bool:
        """Remove a handler; returns True if it was registered."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    async def publish(
        self, event: DomainEvent, wait_for_handlers: bool = False
    ) -> Dict[str, Any]:
        """
        Publish an event to all subscribed handlers.

        Handlers never propagate exceptions to the publisher. With
        ``wait_for_handlers`` the call returns after every handler finished.

        Args:
            event: Domain event to publish
            wait_for_handlers: Whether to wait for all handlers to complete

        Returns:
            Dictionary with publication results
        """
        event_type = type(event)
        self._stats["events_published"] += 1
        self._stats["last_event_time"] = datetime.utcnow()
        self._history.append(
            {
                "event_type": event_type.__name__,
                "event_id": event.event_id,
                "timestamp": event.timestamp.isoformat(),
            }
        )

        handlers = list(self._handlers.get(event_type, []))
        if not handlers:
            return {"event_id": event.event_id, "handlers_executed": 0, "failed_handlers": 0}

        tasks = [asyncio.create_task(self._run_handler(handler, event)) for handler in handlers]
        self._stats["handlers_executed"] += len(tasks)

        failed = 0
        if wait_for_handlers:
            results = await asyncio.gather(*tasks)
            failed = sum(1 for ok in results if not ok)
        else:
            # Keep references so fire-and-forget tasks are not collected early
            for task in tasks:
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

        return {
            "event_id": event.event_id,
            "handlers_executed": len(handlers),
            "failed_handlers": failed,
        }

    async def _run_handler(self, handler: EventHandler, event: DomainEvent) -> bool:
        try:
            if asyncio.iscoroutinefunction(handler):
                await handler(event)
            else:
                handler(event)
            return True
        except Exception as e:
            self._stats["errors_count"] += 1
            self.logger.error(
                "Event handler failed",
                event_type=type(event).__name__,
                handler=getattr(handler, "__name__", repr(handler)),
                error=str(e),
                exc_info=True,
            )
            return False

    async def drain(self) -> None:
        """Wait for fire-and-forget handler tasks still running."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def get_statistics(self) -> Dict[str, Any]:
        """Get event bus statistics."""
        return {
            **self._stats,
            "registered_event_types": len(self._handlers),
            "total_handlers": sum(len(h) for h in self._handlers.values()),
            "history_size": len(self._history),
        }

    def get_event_history(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Get recent event history."""
        return list(self._history)[-limit:]
