"""
Health check handler.
"""

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiohttp import web

from policycraft.version import __version__


async def health_check(request: "web.Request") -> "web.Response":
    """
    Health check endpoint.

    Reports the loaded reference data so load balancers and operators can
    tell a server with an empty library from a healthy one.

    Returns:
        JSON response with status "healthy".
    """
    from aiohttp import web

    engine = request.app["engine"]
    mapper = request.app["mapper"]
    library = engine.library

    return web.json_response({
        "status": "healthy",
        "version": __version__,
        "timestamp": time.time(),
        "templates": len(library.templates),
        "clauses": len(library.clauses),
        "frameworks": len(mapper.catalog.frameworks),
    })
