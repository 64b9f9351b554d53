"""
Tests for the PolicyCraft command-line interface.

This module runs the CLI entry point in-process and checks output and
exit codes for the policy and mapping commands.
"""

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from policycraft.cli.main import (
    EXIT_CONFIG_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    create_parser,
    main,
)
from policycraft.exceptions import LEGAL_DISCLAIMER, SHORT_DISCLAIMER

GOVERNANCE_TEXT = (
    "# Student Data Policy\n"
    "\n"
    "## Legal and Compliance\n"
    "Staff must follow every legal and regulatory requirement.\n"
    "This policy ensures FERPA protection of student privacy.\n"
)


@pytest.fixture(autouse=True)
def reset_cli_logger() -> Iterator[None]:
    """Drop the stderr handler the CLI attaches to the package logger."""
    yield
    logger = logging.getLogger("policycraft")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def quiet_config(tmp_path: Path) -> str:
    """Write a configuration file with notifications disabled."""
    path = tmp_path / "policycraft.yaml"
    path.write_text("approval:\n  notifications_enabled: false\n", encoding="utf-8")
    return str(path)


@pytest.fixture
def document(tmp_path: Path) -> Path:
    """Write a governance document to map."""
    path = tmp_path / "policy.md"
    path.write_text(GOVERNANCE_TEXT, encoding="utf-8")
    return path


# =============================================================================
# Parser Tests
# =============================================================================


class TestParser:
    """Tests for argument parsing."""

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test running without a command prints usage."""
        assert main([]) == EXIT_SUCCESS
        assert "usage: policycraft" in capsys.readouterr().out

    def test_global_options(self) -> None:
        """Test global options are parsed before the command."""
        args = create_parser().parse_args(["-f", "json", "-v", "templates"])
        assert args.format == "json"
        assert args.verbose is True
        assert args.command == "templates"

    def test_diff_requires_reason(self) -> None:
        """Test the diff command refuses to run without a rationale."""
        with pytest.raises(SystemExit):
            create_parser().parse_args(["diff", "a.md", "b.md"])


# =============================================================================
# Policy Command Tests
# =============================================================================


class TestTemplatesCommand:
    """Tests for the templates command."""

    def test_table(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test templates are listed with their workflow flag."""
        assert main(["templates"]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "ai-acceptable-use" in out
        assert "data-privacy" in out
        assert "Workflow" in out

    def test_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test JSON output lists template dictionaries."""
        assert main(["-f", "json", "templates"]) == EXIT_SUCCESS
        data = json.loads(capsys.readouterr().out)
        assert [t["id"] for t in data] == ["ai-acceptable-use", "data-privacy"]


class TestGenerateCommand:
    """Tests for the generate command."""

    def test_generate_to_stdout(
        self, quiet_config: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test the policy content and summary are printed."""
        code = main(
            [
                "-c",
                quiet_config,
                "generate",
                "ai-acceptable-use",
                "--org-name",
                "Springfield USD",
                "--org-type",
                "K12",
                "--student-age-min",
                "10",
            ]
        )
        assert code == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert out.startswith(LEGAL_DISCLAIMER)
        assert "Title: Springfield USD" in out
        assert "Version: 1.0" in out
        assert "Next review: " in out
        assert "Fillable fields: " in out

    def test_generate_to_file(
        self, quiet_config: str, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test --output writes the content and reports the path."""
        target = tmp_path / "policy.md"
        code = main(
            [
                "-c",
                quiet_config,
                "generate",
                "ai-acceptable-use",
                "--org-type",
                "HigherEd",
                "-o",
                str(target),
            ]
        )
        assert code == EXIT_SUCCESS
        assert target.read_text(encoding="utf-8").startswith(LEGAL_DISCLAIMER)
        assert f"Policy written to {target}" in capsys.readouterr().out

    def test_profile_file_with_overrides(
        self, quiet_config: str, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test options override values read from the profile file."""
        profile = tmp_path / "profile.yaml"
        profile.write_text(
            "organizationName: Shelbyville University\norganizationType: HigherEd\n",
            encoding="utf-8",
        )
        code = main(
            [
                "-c",
                quiet_config,
                "-f",
                "json",
                "generate",
                "data-privacy",
                "--profile",
                str(profile),
                "--org-name",
                "Capital City College",
                "-j",
                "federal",
                "-j",
                "TX",
            ]
        )
        assert code == EXIT_SUCCESS
        data = json.loads(capsys.readouterr().out)
        assert data["title"].startswith("Capital City College")
        assert data["jurisdiction"] == ["federal", "TX"]
        assert data["state_requirements"] == ["TX"]
        assert data["created_by"] == "cli"

    def test_invalid_org_type(
        self, quiet_config: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test an unknown organization type is a validation error."""
        code = main(["-c", quiet_config, "generate", "ai-acceptable-use", "--org-type", "Club"])
        assert code == EXIT_VALIDATION_ERROR
        err = capsys.readouterr().err
        assert "Error: Unknown organization type: Club" in err
        assert SHORT_DISCLAIMER in err

    def test_unknown_template(
        self, quiet_config: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test an unknown template exits with the configuration code."""
        code = main(["-c", quiet_config, "generate", "no-such-template"])
        assert code == EXIT_CONFIG_ERROR
        assert "no-such-template" in capsys.readouterr().err

    def test_json_error_payload(
        self, quiet_config: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test structured formats print the API error payload."""
        code = main(["-q", "-c", quiet_config, "-f", "json", "generate", "no-such-template"])
        assert code == EXIT_CONFIG_ERROR
        payload = json.loads(capsys.readouterr().err)
        assert payload["error"]["type"] == "TemplateNotFoundError"
        assert "disclaimer" in payload


class TestDiffCommand:
    """Tests for the diff command."""

    @pytest.fixture
    def revisions(self, tmp_path: Path) -> tuple[str, str]:
        """Write an original and an updated revision."""
        original = tmp_path / "v1.md"
        original.write_text("## Scope\nApplies to staff.\n", encoding="utf-8")
        updated = tmp_path / "v2.md"
        updated.write_text(
            "## Scope\nApplies to staff and students.\n## Privacy\nStudent data is protected.\n",
            encoding="utf-8",
        )
        return str(original), str(updated)

    def test_table(
        self, revisions: tuple[str, str], capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test redlines are tabulated and summarized."""
        code = main(["diff", *revisions, "--reason", "Cover students"])
        assert code == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "modification" in out
        assert "addition" in out
        assert "2 changes, 1 require approval" in out

    def test_json(
        self, revisions: tuple[str, str], capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test JSON output carries the diff records."""
        code = main(
            ["-f", "json", "diff", *revisions, "-r", "Cover students", "--from-version", "1.3"]
        )
        assert code == EXIT_SUCCESS
        data = json.loads(capsys.readouterr().out)
        assert [d["section_id"] for d in data] == ["scope", "privacy"]
        assert {d["version"] for d in data} == {"1.4"}
        assert {d["rationale"] for d in data} == {"Cover students"}

    def test_no_differences(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test identical files report no differences."""
        path = tmp_path / "same.md"
        path.write_text("## Scope\nx\n", encoding="utf-8")
        assert main(["diff", str(path), str(path), "-r", "None"]) == EXIT_SUCCESS
        assert "No differences." in capsys.readouterr().out

    def test_bad_version(self, revisions: tuple[str, str]) -> None:
        """Test a malformed starting version is a validation error."""
        code = main(["diff", *revisions, "-r", "x", "--from-version", "one"])
        assert code == EXIT_VALIDATION_ERROR

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test unreadable files are a validation error."""
        missing = str(tmp_path / "missing.md")
        assert main(["diff", missing, missing, "-r", "x"]) == EXIT_VALIDATION_ERROR


# =============================================================================
# Mapping Command Tests
# =============================================================================


class TestMapCommand:
    """Tests for the map command."""

    def test_table(self, document: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test coverage, gaps and confidence are printed."""
        assert main(["map", str(document)]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Document: policy.md" in out
        assert "States: Federal" in out
        assert "Confidence: " in out
        assert "NIST_AI_RMF" in out
        assert "Gaps (" in out

    def test_json(self, document: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test JSON output carries the full mapping result."""
        code = main(["-f", "json", "map", str(document), "--id", "doc-1", "--state", "ca"])
        assert code == EXIT_SUCCESS
        data = json.loads(capsys.readouterr().out)
        assert data["document_id"] == "doc-1"
        assert "CA" in data["detected_states"]
        assert "STATE_CA" in data["coverage"]

    def test_unknown_framework(self, document: Path) -> None:
        """Test an unknown framework tag is a validation error."""
        code = main(["map", str(document), "--framework", "ISO_42001"])
        assert code == EXIT_VALIDATION_ERROR

    def test_missing_document(self, tmp_path: Path) -> None:
        """Test an unreadable document is a validation error."""
        assert main(["map", str(tmp_path / "missing.md")]) == EXIT_VALIDATION_ERROR


# =============================================================================
# Configuration Tests
# =============================================================================


class TestConfiguration:
    """Tests for configuration errors."""

    def test_missing_config_file(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test a missing configuration file exits with the configuration code."""
        code = main(["-c", str(tmp_path / "missing.yaml"), "templates"])
        assert code == EXIT_CONFIG_ERROR
        assert SHORT_DISCLAIMER in capsys.readouterr().err

    def test_unknown_section(self, tmp_path: Path) -> None:
        """Test unknown configuration sections are rejected."""
        path = tmp_path / "bad.yaml"
        path.write_text("billing:\n  enabled: true\n", encoding="utf-8")
        assert main(["-c", str(path), "templates"]) == EXIT_CONFIG_ERROR
