"""
HTTP server module for PolicyCraft.

This module provides a JSON API over the policy engine and the framework
mapper, built on aiohttp. Every response carries the standing disclaimer.

Example:
    Running the server::

        from policycraft.server import run_server
        from policycraft.config import load_config

        run_server(load_config("policycraft.yaml"), port=8080)

    Or from the command line::

        policycraft serve --host 0.0.0.0 --port 8080

Components:
    - app: Application factory and runner
    - routes: API route definitions
    - middleware: HTTP middleware (request ids, logging, error handling, CORS)
"""

from policycraft.server.app import PolicyCraftApplication, create_app, run_server

__all__ = [
    "PolicyCraftApplication",
    "create_app",
    "run_server",
]
