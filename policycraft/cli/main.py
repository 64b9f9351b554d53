"""
Main entry point for the PolicyCraft CLI.

This module provides the main command-line interface for PolicyCraft
using argparse for argument parsing. It supports global options,
subcommands, and proper exit codes.

Exit Codes:
    0: Success
    1: General error
    2: Validation error
    3: Configuration error
"""

import argparse
import logging
import sys
from typing import Any

from policycraft import __version__
from policycraft.exceptions import (
    SHORT_DISCLAIMER,
    ConfigurationError,
    CyclicDependencyError,
    MappingError,
    PolicyCraftError,
    ValidationError,
    error_response,
)

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_VALIDATION_ERROR = 2
EXIT_CONFIG_ERROR = 3


class CLIContext:
    """
    Context object that holds CLI state and configuration.

    Attributes:
        config_path: Path to the configuration file.
        verbose: Enable verbose output.
        quiet: Suppress non-essential output.
        output_format: Output format (table, json, yaml).
    """

    def __init__(
        self,
        config_path: str | None = None,
        verbose: bool = False,
        quiet: bool = False,
        output_format: str = "table",
    ) -> None:
        """
        Initialize the CLI context.

        Args:
            config_path: Path to configuration file.
            verbose: Enable verbose output.
            quiet: Suppress non-essential output.
            output_format: Output format.
        """
        self.config_path = config_path
        self.verbose = verbose
        self.quiet = quiet
        self.output_format = output_format
        self._config: Any = None
        self._engine: Any = None
        self._mapper: Any = None
        self._logger: logging.Logger | None = None

    @property
    def config(self) -> Any:
        """
        Load and return configuration.

        Returns:
            PolicyCraftConfig object.

        Raises:
            ConfigurationError: If configuration cannot be loaded.
        """
        if self._config is None:
            from policycraft.config.loader import ConfigLoader

            self._config = ConfigLoader().load(self.config_path)
        return self._config

    @property
    def engine(self) -> Any:
        """
        Get the policy engine.

        Raises:
            ConfigurationError: If the clause library cannot be loaded.
        """
        if self._engine is None:
            from policycraft.engine.engine import PolicyEngine

            self._engine = PolicyEngine.from_config(self.config)
        return self._engine

    @property
    def mapper(self) -> Any:
        """
        Get the framework mapper.

        Raises:
            ConfigurationError: If the control catalog cannot be loaded.
        """
        if self._mapper is None:
            from policycraft.mapping.framework_mapper import FrameworkMapper

            self._mapper = FrameworkMapper.from_config(self.config)
        return self._mapper

    @property
    def logger(self) -> logging.Logger:
        """Get configured logger."""
        if self._logger is None:
            self._logger = logging.getLogger("policycraft")
            level = logging.DEBUG if self.verbose else logging.INFO
            if self.quiet:
                level = logging.WARNING
            self._logger.setLevel(level)

            if not self._logger.handlers:
                handler = logging.StreamHandler(sys.stderr)
                handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
                self._logger.addHandler(handler)

        return self._logger

    def print(self, message: str, error: bool = False) -> None:
        """
        Print a message to stdout or stderr.

        Args:
            message: The message to print.
            error: If True, print to stderr.
        """
        if self.quiet and not error:
            return
        output = sys.stderr if error else sys.stdout
        print(message, file=output)

    def print_error(self, message: str) -> None:
        """Print an error message to stderr."""
        print(f"Error: {message}", file=sys.stderr)

    def report_error(self, error: Exception) -> None:
        """
        Print an error with the standing disclaimer.

        Structured formats get the same payload the API returns.
        """
        if self.output_format in ("json", "yaml"):
            from policycraft.cli.formatters import format_output

            print(format_output(error_response(error), self.output_format), file=sys.stderr)
            return

        message = error.message if isinstance(error, PolicyCraftError) else str(error)
        self.print_error(message)
        if self.verbose and isinstance(error, PolicyCraftError) and error.details:
            self.print_error(f"Details: {error.details}")
        print(SHORT_DISCLAIMER, file=sys.stderr)


def create_parser() -> argparse.ArgumentParser:
    """
    Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="policycraft",
        description="PolicyCraft: AI governance policy generation and framework mapping",
        epilog="Use 'policycraft <command> --help' for more information on a command.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global options
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"policycraft {__version__}",
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="PATH",
        help="Path to configuration file",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["table", "json", "yaml"],
        default="table",
        help="Output format (default: table)",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        metavar="<command>",
    )
    _register_commands(subparsers)

    return parser


def _register_commands(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """
    Register all command modules with the parser.

    Args:
        subparsers: Subparsers action to add commands to.
    """
    from policycraft.cli.commands import mapping as mapping_cmd
    from policycraft.cli.commands import policy as policy_cmd
    from policycraft.cli.commands import serve as serve_cmd

    policy_cmd.register(subparsers)
    mapping_cmd.register(subparsers)
    serve_cmd.register(subparsers)


def run_command(
    args: argparse.Namespace,
    ctx: CLIContext,
) -> int:
    """
    Execute the selected command.

    Args:
        args: Parsed command-line arguments.
        ctx: CLI context object.

    Returns:
        Exit code.
    """
    if not hasattr(args, "func"):
        return EXIT_ERROR

    try:
        return args.func(args, ctx)
    except ConfigurationError as e:
        ctx.report_error(e)
        return EXIT_CONFIG_ERROR
    except (ValidationError, MappingError, CyclicDependencyError) as e:
        ctx.report_error(e)
        return EXIT_VALIDATION_ERROR
    except PolicyCraftError as e:
        ctx.report_error(e)
        return EXIT_ERROR
    except KeyboardInterrupt:
        ctx.print("\nOperation cancelled.", error=True)
        return EXIT_ERROR
    except Exception as e:
        ctx.report_error(e)
        if ctx.verbose:
            import traceback

            traceback.print_exc()
        return EXIT_ERROR


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_SUCCESS

    ctx = CLIContext(
        config_path=args.config,
        verbose=args.verbose,
        quiet=args.quiet,
        output_format=args.format,
    )
    ctx.logger.debug(f"Running command: {args.command}")
    return run_command(args, ctx)


if __name__ == "__main__":
    sys.exit(main())
