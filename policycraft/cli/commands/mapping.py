"""
Framework mapping command for PolicyCraft CLI.

Usage:
    policycraft map PATH [--framework ID ...] [--state CODE ...]
"""

import argparse
from pathlib import Path
from typing import TYPE_CHECKING

from policycraft.exceptions import ValidationError
from policycraft.models.framework import Document

if TYPE_CHECKING:
    from policycraft.cli.main import CLIContext


def register(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """
    Register the map command with the parser.

    Args:
        subparsers: Subparsers action to add command to.
    """
    parser = subparsers.add_parser(
        "map",
        help="Map a document onto compliance frameworks",
        description=(
            "Score a plain-text document against the control catalog and "
            "report coverage, gaps and recommendations."
        ),
    )
    parser.add_argument("path", metavar="PATH", help="Plain-text document to map")
    parser.add_argument(
        "--id",
        metavar="ID",
        help="Document id (default: the file name)",
    )
    parser.add_argument(
        "--framework",
        metavar="ID",
        action="append",
        default=[],
        help="Only evaluate this base framework (repeatable)",
    )
    parser.add_argument(
        "--state",
        metavar="CODE",
        action="append",
        default=[],
        help="State the document applies to (repeatable)",
    )
    parser.add_argument(
        "--gaps",
        metavar="N",
        type=int,
        default=10,
        help="Number of gaps to list in table output (default: 10)",
    )
    parser.set_defaults(func=run_map)


def run_map(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """
    Execute the map command.

    Args:
        args: Parsed command-line arguments.
        ctx: CLI context.

    Returns:
        Exit code.
    """
    from policycraft.cli.formatters import TableFormatter, format_output, format_percentage
    from policycraft.cli.main import EXIT_SUCCESS

    path = Path(args.path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ValidationError(f"Cannot read document: {e}", {"path": args.path}) from e

    document = Document(
        id=args.id or path.name,
        text=text,
        title=path.stem,
        framework_tags=tuple(args.framework),
        state_tags=tuple(s.upper() for s in args.state),
    )
    result = ctx.mapper.map_document_to_frameworks(document)

    if ctx.output_format in ("json", "yaml"):
        ctx.print(format_output(result.to_dict(), ctx.output_format))
        return EXIT_SUCCESS

    ctx.print(f"Document: {result.document_id}")
    ctx.print(f"States: {', '.join(result.detected_states)}")
    ctx.print(f"Confidence: {result.confidence_score:.2f}")
    ctx.print("")

    rows = [
        [
            c.framework,
            c.total_controls,
            c.mapped_controls,
            c.implemented_controls,
            format_percentage(c.coverage_percentage),
            f"{c.average_confidence:.2f}",
        ]
        for c in result.coverage.values()
    ]
    ctx.print(
        TableFormatter.format_table(
            ["Framework", "Controls", "Mapped", "Implemented", "Coverage", "Confidence"],
            rows,
        )
    )

    if result.gaps:
        ctx.print("")
        ctx.print(f"Gaps ({len(result.gaps)}):")
        for gap in result.gaps[: args.gaps]:
            ctx.print(f"  [{gap.priority.value}] {gap.framework} {gap.control_id}: {gap.title}")

    if result.recommendations:
        ctx.print("")
        ctx.print("Recommendations:")
        for rec in result.recommendations:
            ctx.print(f"  {rec.title} ({rec.effort} effort, {rec.timeline})")
            for item in rec.action_items:
                ctx.print(f"    - {item}")

    return EXIT_SUCCESS
