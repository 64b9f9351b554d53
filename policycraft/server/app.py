"""
PolicyCraft HTTP server application.

This module provides the main application factory and server runner for
the PolicyCraft HTTP API.

Example:
    Running the server::

        from policycraft.server import run_server
        from policycraft.config import load_config

        run_server(load_config("policycraft.yaml"), port=8081)
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiohttp import web

from policycraft.config.defaults import get_default_config
from policycraft.config.logging_setup import configure_logging
from policycraft.config.schema import PolicyCraftConfig
from policycraft.engine.engine import PolicyEngine
from policycraft.mapping.framework_mapper import FrameworkMapper

logger = logging.getLogger("policycraft.server")


class PolicyCraftApplication:
    """
    PolicyCraft HTTP application.

    Wraps the aiohttp application with the policy engine, the framework
    mapper and PolicyCraft-specific middleware.

    Example:
        Creating and running the application::

            from policycraft.server import PolicyCraftApplication

            app = PolicyCraftApplication()
            app.run()
    """

    def __init__(
        self,
        config: PolicyCraftConfig | None = None,
        engine: PolicyEngine | None = None,
        mapper: FrameworkMapper | None = None,
    ) -> None:
        """
        Initialize the application.

        Args:
            config: PolicyCraft configuration.
            engine: Policy engine; built from the config if None.
            mapper: Framework mapper; built from the config if None.

        Raises:
            ConfigurationError: If the reference data cannot be loaded.
        """
        self._config = config or get_default_config()
        self._engine = engine or PolicyEngine.from_config(self._config)
        self._mapper = mapper or FrameworkMapper.from_config(self._config)
        self._app: "web.Application | None" = None
        self._runner: "web.AppRunner | None" = None
        self._site: "web.TCPSite | None" = None

    @property
    def app(self) -> "web.Application":
        """Get the aiohttp application, creating it if needed."""
        if self._app is None:
            self._app = self._create_app()
        return self._app

    @property
    def engine(self) -> PolicyEngine:
        """The policy engine serving policy routes."""
        return self._engine

    def _create_app(self) -> "web.Application":
        """Create and configure the aiohttp application."""
        from aiohttp import web

        from policycraft.server.middleware import (
            create_cors_middleware,
            create_error_handler_middleware,
            create_request_id_middleware,
            create_request_logging_middleware,
        )
        from policycraft.server.routes import setup_routes

        server = self._config.server

        # Request ID first so the others can tag their output with it
        middlewares = [create_request_id_middleware(), create_error_handler_middleware()]
        if server.cors_enabled:
            middlewares.append(create_cors_middleware(allowed_origins=server.cors_origins))
        middlewares.append(create_request_logging_middleware())

        app = web.Application(
            middlewares=middlewares,
            client_max_size=server.max_request_size,
        )
        app["config"] = self._config
        app["engine"] = self._engine
        app["mapper"] = self._mapper

        setup_routes(app)

        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _on_startup(self, app: "web.Application") -> None:
        """Log the loaded reference data on startup."""
        library = self._engine.library
        logger.info(
            f"Starting PolicyCraft server: {len(library.templates)} templates, "
            f"{len(library.clauses)} clauses, "
            f"{len(self._mapper.catalog.frameworks)} frameworks"
        )

    async def _on_cleanup(self, app: "web.Application") -> None:
        """Log shutdown."""
        logger.info("PolicyCraft server shut down")

    async def start(self) -> None:
        """Start the server (async)."""
        from aiohttp import web

        server = self._config.server
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, server.host, server.port)
        await self._site.start()

        logger.info(f"Server listening on http://{server.host}:{server.port}")

    async def stop(self) -> None:
        """Stop the server (async)."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()

    def run(self) -> None:
        """Run the server (blocking)."""
        from aiohttp import web

        web.run_app(
            self.app,
            host=self._config.server.host,
            port=self._config.server.port,
            print=lambda msg: logger.info(msg),
        )


def create_app(config: PolicyCraftConfig | None = None) -> "web.Application":
    """
    Create a PolicyCraft HTTP application.

    Args:
        config: PolicyCraft configuration.

    Returns:
        Configured aiohttp Application.

    Example:
        Using with gunicorn::

            # In wsgi.py
            from policycraft.server import create_app
            app = create_app()

        Then run with::

            gunicorn wsgi:app --worker-class aiohttp.GunicornWebWorker
    """
    return PolicyCraftApplication(config).app


def run_server(
    config: PolicyCraftConfig | None = None,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """
    Run the PolicyCraft HTTP server.

    Args:
        config: PolicyCraft configuration.
        host: Host address to bind to; the configured host if None.
        port: Port number to listen on; the configured port if None.
    """
    config = config or get_default_config()
    if host is not None:
        config.server.host = host
    if port is not None:
        config.server.port = port

    configure_logging(config.logging)
    logger.info(f"Starting PolicyCraft server on http://{config.server.host}:{config.server.port}")
    PolicyCraftApplication(config).run()
