"""
Output formatters for PolicyCraft CLI.

This module provides formatting utilities for displaying data
in various formats: table, JSON, and YAML. Models, enums and datetimes
are converted with the same serializer the API uses.
"""

import json
from typing import Any

import yaml

from policycraft.models.base import serialize_value


def format_output(
    data: Any,
    output_format: str = "table",
    title: str | None = None,
) -> str:
    """
    Format data for output in the specified format.

    Args:
        data: Data to format.
        output_format: Output format (table, json, yaml).
        title: Optional title for table format.

    Returns:
        Formatted string.
    """
    if output_format == "json":
        return JsonFormatter.format(data)
    elif output_format == "yaml":
        return YamlFormatter.format(data)
    else:
        return TableFormatter.format(data, title=title)


class JsonFormatter:
    """Format data as JSON."""

    @staticmethod
    def format(data: Any, indent: int = 2) -> str:
        """
        Format data as JSON.

        Args:
            data: Data to format.
            indent: Indentation level.

        Returns:
            JSON string.
        """
        return json.dumps(serialize_value(data), indent=indent, ensure_ascii=False)


class YamlFormatter:
    """Format data as YAML."""

    @staticmethod
    def format(data: Any) -> str:
        """
        Format data as YAML.

        Args:
            data: Data to format.

        Returns:
            YAML string.
        """
        return yaml.safe_dump(
            serialize_value(data),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )


class TableFormatter:
    """Format data as a human-readable table."""

    @staticmethod
    def format(
        data: Any,
        title: str | None = None,
        max_width: int = 80,
    ) -> str:
        """
        Format data as indented key/value lines.

        Args:
            data: Data to format.
            title: Optional title.
            max_width: Width above which simple lists wrap.

        Returns:
            Formatted string.
        """
        lines: list[str] = []

        if title:
            lines.append(title)
            lines.append("-" * len(title))
            lines.append("")

        data = serialize_value(data)
        if isinstance(data, dict):
            lines.extend(TableFormatter._format_dict(data, max_width))
        elif isinstance(data, list):
            lines.extend(TableFormatter._format_list(data, max_width))
        else:
            lines.append(str(data))

        return "\n".join(lines)

    @staticmethod
    def _format_dict(
        data: dict[str, Any],
        max_width: int,
        indent: int = 0,
    ) -> list[str]:
        lines: list[str] = []
        prefix = "  " * indent
        width = max((len(str(k)) for k in data), default=0)

        for key, value in data.items():
            key_str = str(key).ljust(width)

            if isinstance(value, dict):
                lines.append(f"{prefix}{key_str}:")
                lines.extend(TableFormatter._format_dict(value, max_width, indent + 1))
            elif isinstance(value, list):
                if not value:
                    lines.append(f"{prefix}{key_str}: []")
                elif all(isinstance(v, (str, int, float, bool)) for v in value):
                    joined = ", ".join(str(v) for v in value)
                    if len(joined) > max_width - len(key_str) - 4:
                        lines.append(f"{prefix}{key_str}:")
                        lines.extend(f"{prefix}  - {item}" for item in value)
                    else:
                        lines.append(f"{prefix}{key_str}: [{joined}]")
                else:
                    lines.append(f"{prefix}{key_str}:")
                    lines.extend(TableFormatter._format_list(value, max_width, indent + 1))
            else:
                value_str = str(value) if value is not None else ""
                lines.append(f"{prefix}{key_str}: {value_str}")

        return lines

    @staticmethod
    def _format_list(
        data: list[Any],
        max_width: int,
        indent: int = 0,
    ) -> list[str]:
        lines: list[str] = []
        prefix = "  " * indent

        for i, item in enumerate(data):
            if isinstance(item, dict):
                if i > 0:
                    lines.append("")
                lines.append(f"{prefix}[{i + 1}]")
                lines.extend(TableFormatter._format_dict(item, max_width, indent + 1))
            else:
                lines.append(f"{prefix}- {item}")

        return lines

    @staticmethod
    def format_table(
        headers: list[str],
        rows: list[list[Any]],
        max_col_width: int = 40,
    ) -> str:
        """
        Format rows as an ASCII table.

        Args:
            headers: Column headers.
            rows: Data rows.
            max_col_width: Maximum column width.

        Returns:
            Formatted table string.
        """
        if not headers:
            return ""

        cells = [
            [truncate(str(cell), max_col_width) for cell in list(row) + [""] * (len(headers) - len(row))]
            for row in rows
        ]
        widths = [len(h) for h in headers]
        for row in cells:
            for i, cell in enumerate(row[: len(headers)]):
                widths[i] = max(widths[i], len(cell))

        row_format = " | ".join(f"{{:<{w}}}" for w in widths)
        lines = [row_format.format(*headers), "-+-".join("-" * w for w in widths)]
        lines.extend(row_format.format(*row[: len(headers)]) for row in cells)
        return "\n".join(lines)


def truncate(text: str, max_length: int) -> str:
    """Truncate text to a maximum length, marking the cut with '...'."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def format_percentage(value: float, decimals: int = 1) -> str:
    """
    Format a percentage that is already on the 0-100 scale.

    Args:
        value: Percentage between 0 and 100.
        decimals: Number of decimal places.
    """
    return f"{value:.{decimals}f}%"
