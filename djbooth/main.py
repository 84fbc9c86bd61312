"""
DJ Booth Main Application

This module serves as the entry point for DJ Booth. It loads configuration,
builds the providers and services, runs until a shutdown is requested and then
stops everything in reverse order.
"""

import asyncio
import logging
import logging.handlers
import os
import queue
import signal
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pyee.asyncio import AsyncIOEventEmitter

from .base_service import BaseService
from .core.errors import ConfigurationError
from .core.event_topics import EventTopics
from .event_payloads import CliResponsePayload
from .services.audio_output import AudioSession
from .services.cli_service import CLIService
from .services.content_provider import OpenAIContentProvider
from .services.session_orchestrator_service import SessionOrchestratorService
from .services.track_metadata import SpotifyMetadataProvider

# --- Queued Logging Setup ---
log_queue: "queue.Queue" = queue.Queue()
queue_handler = logging.handlers.QueueHandler(log_queue)

console_handler = logging.StreamHandler()
console_handler.setFormatter(
    logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
)
console_handler.setLevel(logging.INFO)

log_listener = logging.handlers.QueueListener(log_queue, console_handler)


def configure_logging() -> None:
    """Route all records through the queue so audio callbacks never block on I/O."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.addHandler(queue_handler)
    root_logger.setLevel(logging.DEBUG)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def set_global_log_level(level: int) -> None:
    """Sets the console handler level and the djbooth logger level."""
    console_handler.setLevel(level)
    logging.getLogger("djbooth").setLevel(level)
    logging.info(f"Global log level set to: {logging.getLevelName(level)}")


logger = logging.getLogger("djbooth.main")


def _mask(key: str) -> str:
    return f"{key[:5]}...{key[-5:] if len(key) > 10 else ''}"


class DJBooth:
    """
    Main application class that manages the lifecycle of all services.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize DJ Booth."""
        self._event_bus = AsyncIOEventEmitter()
        self._services: Dict[str, BaseService] = {}
        self._shutdown_event = asyncio.Event()
        self._logger = logging.getLogger("djbooth.main")
        self._load_config()

        if config:
            self._config.update(config)

        self._event_bus.on(EventTopics.DEBUG_SET_GLOBAL_LEVEL, self._handle_set_global_log_level)
        self._event_bus.on(EventTopics.SYSTEM_SHUTDOWN_REQUESTED, self._handle_shutdown_requested)
        # pyee re-emits exceptions from async handlers as 'error'
        self._event_bus.on("error", self._handle_bus_error)

    @property
    def event_bus(self):
        return self._event_bus

    @property
    def logger(self):
        return self._logger

    @property
    def config(self) -> Dict[str, Any]:
        return self._config

    def _load_config(self) -> None:
        """Load configuration from environment variables."""
        load_dotenv()

        self._config = {
            "OPENAI_API_KEY": os.getenv("OPENAI_API_KEY", ""),
            "OPENAI_MODEL": os.getenv("OPENAI_MODEL", "gpt-4.1-mini"),
            "ELEVENLABS_API_KEY": os.getenv("ELEVENLABS_API_KEY", ""),
            "ELEVENLABS_VOICE_ID": os.getenv("ELEVENLABS_VOICE_ID", ""),
            "SPOTIFY_CLIENT_ID": os.getenv("SPOTIFY_CLIENT_ID", ""),
            "SPOTIFY_CLIENT_SECRET": os.getenv("SPOTIFY_CLIENT_SECRET", ""),
            "DJ_COMMENTARY_PROBABILITY": float(os.getenv("DJ_COMMENTARY_PROBABILITY", "0.6")),
            "DJ_TRACK_CEILING_SECONDS": float(os.getenv("DJ_TRACK_CEILING_SECONDS", "30")),
            "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO"),
        }

        self.logger.info("Loaded configuration from environment")
        for name in ("OPENAI_API_KEY", "ELEVENLABS_API_KEY", "SPOTIFY_CLIENT_ID"):
            if self._config[name]:
                self.logger.info(f"Using {name}: {_mask(self._config[name])}")
            else:
                self.logger.warning(f"No {name} found in environment")

    def _content_config(self) -> Dict[str, Any]:
        content_config = {
            "openai_api_key": self._config["OPENAI_API_KEY"],
            "openai_model": self._config["OPENAI_MODEL"],
            "elevenlabs_api_key": self._config["ELEVENLABS_API_KEY"],
        }
        if self._config.get("ELEVENLABS_VOICE_ID"):
            content_config["voice_id"] = self._config["ELEVENLABS_VOICE_ID"]
        return content_config

    def _orchestrator_config(self) -> Dict[str, Any]:
        return {
            "commentary_probability": self._config["DJ_COMMENTARY_PROBABILITY"],
            "track_ceiling_seconds": self._config["DJ_TRACK_CEILING_SECONDS"],
        }

    def _create_metadata_provider(self) -> Optional[SpotifyMetadataProvider]:
        client_id = self._config.get("SPOTIFY_CLIENT_ID")
        client_secret = self._config.get("SPOTIFY_CLIENT_SECRET")
        if not client_id or not client_secret:
            self.logger.warning("Spotify credentials missing; every track will use placeholder metadata")
            return None
        return SpotifyMetadataProvider({"client_id": client_id, "client_secret": client_secret})

    def _create_services(self) -> List[BaseService]:
        """Build the services in start order. Raises ConfigurationError on missing keys."""
        content_provider = OpenAIContentProvider(self._content_config())
        orchestrator = SessionOrchestratorService(
            self._event_bus,
            content_provider,
            config=self._orchestrator_config(),
            metadata_provider=self._create_metadata_provider(),
            audio_session=AudioSession(),
        )
        cli = CLIService(self._event_bus, self._config)
        return [orchestrator, cli]

    async def _initialize_services(self) -> None:
        """Initialize all services."""
        self.logger.info("Initializing services")
        for service in self._create_services():
            self.logger.info(f"Starting {service.service_name} service")
            self._services[service.service_name] = service
            try:
                await service.start()
            except Exception as e:
                self.logger.error(f"Failed to start service {service.service_name}: {e}")
                await self._cleanup_services()
                raise

    async def _cleanup_services(self) -> None:
        """Perform graceful shutdown and cleanup of all services."""
        self.logger.info("Shutting down services...")
        for service_name in reversed(list(self._services.keys())):
            try:
                self.logger.info(f"Stopping {service_name} service")
                await self._services[service_name].stop()
            except Exception as e:
                self.logger.error(f"Error stopping service {service_name}: {e}")
        self._services.clear()

    def _setup_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, lambda s=sig: self._handle_shutdown(s))
            except NotImplementedError:
                # Windows event loops have no signal handler support
                pass

    def _handle_shutdown(self, sig: signal.Signals) -> None:
        logger.info(f"Received shutdown signal: {sig.name}")
        self._shutdown_event.set()

    async def _handle_shutdown_requested(self, payload: Dict[str, Any]) -> None:
        logger.info(f"Received shutdown request from {payload.get('source', 'unknown')}")
        self._shutdown_event.set()

    def _handle_bus_error(self, error: Exception) -> None:
        logger.error(f"Unhandled error in event handler: {error}", exc_info=error)

    async def _handle_set_global_log_level(self, payload: Dict[str, Any]) -> None:
        level_name = payload.get("level")
        python_log_level = getattr(logging, str(level_name).upper(), None) if level_name else None
        if isinstance(python_log_level, int):
            set_global_log_level(python_log_level)
            self._respond(f"Log level set to {logging.getLevelName(python_log_level)}")
        else:
            self.logger.warning(f"Invalid log level received in event: {level_name}")
            self._respond(f"Invalid log level: {level_name}", is_error=True)

    def _respond(self, message: str, is_error: bool = False) -> None:
        payload = CliResponsePayload(message=message, is_error=is_error, service="main")
        self._event_bus.emit(EventTopics.CLI_RESPONSE, payload.model_dump())

    async def run(self) -> None:
        """Run the application until a shutdown is requested."""
        self._logger.info("Starting DJ Booth...")
        try:
            self._setup_signal_handlers()
            await self._initialize_services()
            self._event_bus.emit(EventTopics.SYSTEM_STARTUP, {"message": "DJ Booth ready"})
            await self._shutdown_event.wait()
        finally:
            await self._cleanup_services()
            logger.info("DJ Booth shutdown complete")


def main() -> None:
    """Main entry point for the application."""
    configure_logging()
    log_listener.start()
    try:
        app = DJBooth()
        level = getattr(logging, app.config["LOG_LEVEL"].upper(), logging.INFO)
        set_global_log_level(level)
        asyncio.run(app.run())
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        raise SystemExit(1)
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    finally:
        log_listener.stop()


if __name__ == "__main__":
    main()
