"""
Policy commands for PolicyCraft CLI.

This module implements the template listing, policy generation and
redline commands.

Usage:
    policycraft templates
    policycraft generate TEMPLATE_ID [--profile PATH] [--org-name NAME] ...
    policycraft diff ORIGINAL UPDATED --reason TEXT
"""

import argparse
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from policycraft.exceptions import ValidationError

if TYPE_CHECKING:
    from policycraft.cli.main import CLIContext


def register(subparsers: argparse._SubParsersAction) -> None:  # type: ignore[type-arg]
    """
    Register the policy commands with the parser.

    Args:
        subparsers: Subparsers action to add commands to.
    """
    templates_parser = subparsers.add_parser(
        "templates",
        help="List policy templates",
        description="List the policy templates of the clause library.",
    )
    templates_parser.set_defaults(func=run_templates)

    # generate
    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate a policy from a template",
        description=(
            "Generate a draft policy for an organization. Profile values "
            "given as options override those read from --profile."
        ),
    )
    generate_parser.add_argument(
        "template_id",
        metavar="TEMPLATE_ID",
        help="Template to generate from",
    )
    generate_parser.add_argument(
        "--profile",
        "-p",
        metavar="PATH",
        help="YAML or JSON file with the organization profile",
    )
    generate_parser.add_argument("--org-name", metavar="NAME", help="Organization name")
    generate_parser.add_argument(
        "--org-type",
        metavar="TYPE",
        help="Organization type (K12, HigherEd, Nonprofit, Government, Corporate)",
    )
    generate_parser.add_argument("--state", metavar="CODE", help="State code, e.g. CA")
    generate_parser.add_argument(
        "--student-age-min", metavar="N", type=int, help="Youngest student age"
    )
    generate_parser.add_argument(
        "--student-age-max", metavar="N", type=int, help="Oldest student age"
    )
    generate_parser.add_argument(
        "--jurisdiction",
        "-j",
        metavar="NAME",
        action="append",
        help="Jurisdiction the policy applies in (repeatable)",
    )
    generate_parser.add_argument(
        "--output",
        "-o",
        metavar="PATH",
        help="Write the policy content to a file",
    )
    generate_parser.set_defaults(func=run_generate)

    # diff
    diff_parser = subparsers.add_parser(
        "diff",
        help="Show redlines between two policy revisions",
        description="Compare two policy content files section by section.",
    )
    diff_parser.add_argument("original", metavar="ORIGINAL", help="Original content file")
    diff_parser.add_argument("updated", metavar="UPDATED", help="Updated content file")
    diff_parser.add_argument(
        "--reason",
        "-r",
        metavar="TEXT",
        required=True,
        help="Rationale recorded on every diff",
    )
    diff_parser.add_argument(
        "--author",
        "-a",
        metavar="NAME",
        default="cli",
        help="Author of the change (default: cli)",
    )
    diff_parser.add_argument(
        "--from-version",
        metavar="VERSION",
        default="1.0",
        help="Version of the original content (default: 1.0)",
    )
    diff_parser.set_defaults(func=run_diff)


def run_templates(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """
    Execute the templates command.

    Args:
        args: Parsed command-line arguments.
        ctx: CLI context.

    Returns:
        Exit code.
    """
    from policycraft.cli.formatters import TableFormatter, format_output
    from policycraft.cli.main import EXIT_SUCCESS

    engine = ctx.engine
    templates = engine.list_templates()
    workflows = engine.library.workflows

    if ctx.output_format in ("json", "yaml"):
        ctx.print(format_output([t.to_dict() for t in templates], ctx.output_format))
        return EXIT_SUCCESS

    rows = [
        [
            t.id,
            t.title,
            t.risk_level.value,
            ", ".join(t.compliance_frameworks),
            "yes" if t.id in workflows else "no",
        ]
        for t in templates
    ]
    ctx.print(
        TableFormatter.format_table(
            ["ID", "Title", "Risk", "Frameworks", "Workflow"], rows
        )
    )
    return EXIT_SUCCESS


def load_profile(args: argparse.Namespace) -> dict[str, Any]:
    """
    Build an organization profile dictionary from a file and options.

    Raises:
        ValidationError: If the profile file cannot be read or is not a
            mapping.
    """
    profile: dict[str, Any] = {}
    if args.profile:
        try:
            with open(args.profile, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ValidationError(
                f"Cannot read profile file: {e}", {"path": args.profile}
            ) from e
        if data is not None and not isinstance(data, dict):
            raise ValidationError("Profile file must contain a mapping", {"path": args.profile})
        profile.update(data or {})

    overrides = {
        "organization_name": args.org_name,
        "organization_type": args.org_type,
        "state": args.state,
        "student_age_min": args.student_age_min,
        "student_age_max": args.student_age_max,
    }
    profile.update({k: v for k, v in overrides.items() if v is not None})
    return profile


def run_generate(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """
    Execute the generate command.

    Args:
        args: Parsed command-line arguments.
        ctx: CLI context.

    Returns:
        Exit code.
    """
    from policycraft.cli.formatters import format_output
    from policycraft.cli.main import EXIT_SUCCESS
    from policycraft.engine.engine import PolicyGenerationOptions

    policy = ctx.engine.generate_policy(
        args.template_id,
        load_profile(args),
        jurisdiction=args.jurisdiction,
        options=PolicyGenerationOptions(created_by="cli"),
    )

    if args.output:
        Path(args.output).write_text(policy.content, encoding="utf-8")

    if ctx.output_format in ("json", "yaml"):
        ctx.print(format_output(policy.to_dict(), ctx.output_format))
        return EXIT_SUCCESS

    if args.output:
        ctx.print(f"Policy written to {args.output}")
    else:
        ctx.print(policy.content)

    ctx.print(f"Title: {policy.title}")
    ctx.print(f"Version: {policy.version}")
    ctx.print(f"Next review: {policy.next_review_date:%Y-%m-%d}")
    if policy.unresolved_fields:
        ctx.print(f"Fillable fields: {', '.join(policy.unresolved_fields)}")
    return EXIT_SUCCESS


def run_diff(args: argparse.Namespace, ctx: "CLIContext") -> int:
    """
    Execute the diff command.

    Args:
        args: Parsed command-line arguments.
        ctx: CLI context.

    Returns:
        Exit code.
    """
    from policycraft.cli.formatters import TableFormatter, format_output, truncate
    from policycraft.cli.main import EXIT_SUCCESS
    from policycraft.engine.differ import RedlineDiffer, next_version

    try:
        original = Path(args.original).read_text(encoding="utf-8")
        updated = Path(args.updated).read_text(encoding="utf-8")
    except OSError as e:
        raise ValidationError(f"Cannot read content file: {e}") from e

    differ = RedlineDiffer(ctx.config.policy.approval_keywords)
    diffs = differ.diff(
        original,
        updated,
        version=next_version(args.from_version),
        reason=args.reason,
        author=args.author,
    )

    if ctx.output_format in ("json", "yaml"):
        ctx.print(format_output([d.to_dict() for d in diffs], ctx.output_format))
        return EXIT_SUCCESS

    if not diffs:
        ctx.print("No differences.")
        return EXIT_SUCCESS

    rows = [
        [
            d.change_type.value,
            d.section_id,
            "yes" if d.approval_required else "no",
            truncate(d.source_justification, 30),
        ]
        for d in diffs
    ]
    ctx.print(
        TableFormatter.format_table(["Change", "Section", "Approval", "Justification"], rows)
    )
    ctx.print("")
    ctx.print(
        f"{len(diffs)} changes, "
        f"{sum(d.approval_required for d in diffs)} require approval"
    )
    return EXIT_SUCCESS
