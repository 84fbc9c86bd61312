"""
Base Service Class for DJ Booth

This module provides the BaseService class that all DJ Booth services should inherit from.
It implements common functionality such as lifecycle management, event bus integration,
and standardized logging.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .core.event_topics import EventTopics
from .event_payloads import LogLevel, ServiceStatus, ServiceStatusPayload


class BaseService:
    """
    Base class for all DJ Booth services.

    Provides:
    - Standardized lifecycle management (start/stop)
    - Event bus integration
    - Contextual logging
    - Service status reporting
    """

    def __init__(
        self,
        service_name=None,
        event_bus=None,
        logger=None,
    ):
        """Initialize the service.

        Args:
            service_name: The name of the service
            event_bus: The event bus to use (pyee AsyncIOEventEmitter)
            logger: The logger to use
        """
        self._service_name = service_name or self.__class__.__name__.lower()
        self._event_bus = event_bus
        self._logger = logger
        self._is_running = False
        self._status = ServiceStatus.INITIALIZING
        self._event_handlers: Dict[str, List[Callable]] = {}  # topic -> [handlers]
        self._started = False
        self._start_time = None  # Track service start time for uptime calculation
        self._last_emitted_status = None

    @property
    def service_name(self):
        """Get the service name with public accessor."""
        return self._service_name

    def set_event_bus(self, event_bus) -> None:
        """Set the event bus for this service."""
        self._event_bus = event_bus

    @property
    def logger(self):
        """Get the logger for this service."""
        if not self._logger:
            self._logger = logging.getLogger(f"djbooth.{self._service_name}")
        return self._logger

    @property
    def is_running(self) -> bool:
        """Check if the service is currently running."""
        return self._started and self._status == ServiceStatus.RUNNING

    async def start(self) -> None:
        """Start the service."""
        if self._is_running:
            return

        if not self._event_bus:
            raise RuntimeError(
                "Event bus not set. Call set_event_bus() before starting the service."
            )

        self._start_time = datetime.now()

        await self.emit(
            EventTopics.SERVICE_STARTING,
            {
                "service_name": self._service_name,
                "timestamp": datetime.now().isoformat(),
            },
        )

        await self._start()
        self._is_running = True
        self._started = True
        await self._emit_status(
            ServiceStatus.RUNNING, f"{self.__class__.__name__} started successfully"
        )

        await self.subscribe(
            EventTopics.SERVICE_STATUS_REQUEST, self._handle_status_request
        )

        await self.emit(
            EventTopics.SERVICE_READY,
            {
                "service_name": self._service_name,
                "timestamp": datetime.now().isoformat(),
            },
        )

    async def stop(self) -> None:
        """Stop the service."""
        if not self._is_running:
            return

        await self._stop()
        await self._remove_subscriptions()
        self._is_running = False
        self._started = False
        await self._emit_status(
            ServiceStatus.STOPPED, f"{self.__class__.__name__} stopped"
        )

    async def _start(self) -> None:
        """Service-specific startup logic. Override in subclass."""
        pass

    async def _stop(self) -> None:
        """Service-specific shutdown logic. Override in subclass."""
        pass

    async def _remove_subscriptions(self) -> None:
        """Remove all event subscriptions."""
        self.logger.debug(f"Removing all subscriptions for {self.__class__.__name__}")

        if self._event_bus is None:
            self._event_handlers.clear()
            return

        for topic, handlers in list(self._event_handlers.items()):
            for handler in list(handlers):
                try:
                    # remove_listener is not a coroutine in pyee
                    self._event_bus.remove_listener(topic, handler)
                    self.logger.debug(f"Removed handler for topic {topic}")
                except KeyError as e:
                    self.logger.debug(f"Error removing handler for {topic}: {e}")

        self._event_handlers.clear()

    async def _emit_status(
        self,
        status: ServiceStatus,
        message: str,
        severity: LogLevel = LogLevel.INFO,
        force_emit: bool = False,
    ) -> None:
        """Emit a service status event.

        Args:
            status: Service status enum value
            message: Status message
            severity: Log level severity
            force_emit: Force emission even if status hasn't changed
        """
        if not force_emit and self._last_emitted_status == status:
            return

        self._status = status
        self._last_emitted_status = status

        log_method = getattr(self.logger, severity.value.lower())
        log_method(message)

        uptime = "0:00:00"
        if self._start_time:
            uptime_seconds = (datetime.now() - self._start_time).total_seconds()
            hours = int(uptime_seconds // 3600)
            minutes = int((uptime_seconds % 3600) // 60)
            seconds = int(uptime_seconds % 60)
            uptime = f"{hours}:{minutes:02d}:{seconds:02d}"

        await self.emit(
            EventTopics.SERVICE_STATUS_UPDATE,
            ServiceStatusPayload(
                service_name=self._service_name,
                status=status,
                uptime=uptime,
                message=message,
                severity=severity,
            ),
        )

    async def _handle_status_request(self, payload: Any) -> None:
        """Handle requests for current service status."""
        if self._is_running and self._status == ServiceStatus.RUNNING:
            await self._emit_status(
                ServiceStatus.RUNNING,
                f"{self.__class__.__name__} is online",
                severity=LogLevel.DEBUG,
                force_emit=True,
            )

    async def emit(self, event: str, payload: Any) -> None:
        """Emit an event on the event bus.

        Args:
            event: Event name/topic
            payload: Event payload (dict or Pydantic model)
        """
        self.emit_nowait(event, payload)

    def emit_nowait(self, event: str, payload: Any) -> None:
        """Emit an event from synchronous code.

        The emit method of pyee.AsyncIOEventEmitter is not a coroutine; async
        handlers are scheduled on the running loop.
        """
        if not self._event_bus:
            raise RuntimeError("Event bus not set")

        if hasattr(payload, "model_dump"):
            payload = payload.model_dump()

        self._event_bus.emit(event, payload)

    async def subscribe(self, event: str, handler: Callable) -> None:
        """Subscribe to an event on the event bus.

        Args:
            event: Event name/topic to subscribe to
            handler: Callback function to handle the event
        """
        if not self._event_bus:
            raise RuntimeError("Event bus not set")

        if event not in self._event_handlers:
            self._event_handlers[event] = []
        self._event_handlers[event].append(handler)

        # pyee's on() is not a coroutine
        self._event_bus.on(event, handler)
        self.logger.debug(f"Subscribed to event: {event}")

    @property
    def status(self) -> ServiceStatus:
        """Get the current service status."""
        return self._status

    @property
    def is_started(self) -> bool:
        """Check if the service is started."""
        return self._started
