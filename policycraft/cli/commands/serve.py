"""
Serve command for PolicyCraft CLI.

Usage:
    policycraft serve [--host HOST] [--port PORT]
"""

import argparse
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from policycraft.cli.main import CLIContext


def register(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """
    Register the serve command with the parser.

    Args:
        subparsers: Subparsers action to add command to.
    """
    parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP API server",
        description="Run the PolicyCraft JSON API server.",
    )
    parser.add_argument(
        "--host",
        metavar="HOST",
        help="Host address to bind to (default: from config)",
    )
    parser.add_argument(
        "--port",
        metavar="PORT",
        type=int,
        help="Port to listen on (default: from config)",
    )
    parser.set_defaults(func=run_serve)


def run_serve(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """
    Execute the serve command.

    Args:
        args: Parsed command-line arguments.
        ctx: CLI context.

    Returns:
        Exit code.
    """
    from policycraft.cli.main import EXIT_SUCCESS
    from policycraft.server.app import run_server

    run_server(ctx.config, host=args.host, port=args.port)
    return EXIT_SUCCESS
