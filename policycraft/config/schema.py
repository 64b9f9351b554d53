"""
Configuration schema definitions for PolicyCraft.

This module defines the configuration structure using dataclasses.
All configuration options are strongly typed with validation support.
"""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class LoggingConfig:
    """
    Logging configuration options.

    Attributes:
        level: Minimum log level for the policycraft logger hierarchy.
        format: Format string for plain-text log records.
        output_path: Optional file to write logs to in addition to stderr.
        json_format: Emit one JSON object per log record instead of text.
    """

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    output_path: str = ""
    json_format: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"level must be one of: {valid_levels}")


@dataclass
class PolicyConfig:
    """
    Policy generation and redline options.

    Attributes:
        default_review_cycle_months: Review cycle used when a template does
            not set its own.
        default_jurisdiction: Jurisdictions assumed when none are given.
        default_responsible_party: Accountable role when none is given.
        initial_version: Version string of a newly generated policy.
        approval_keywords: Section id fragments whose changes always
            require approval.
    """

    default_review_cycle_months: int = 12
    default_jurisdiction: list[str] = field(default_factory=lambda: ["federal"])
    default_responsible_party: str = "Privacy Officer"
    initial_version: str = "1.0"
    approval_keywords: list[str] = field(
        default_factory=lambda: ["compliance", "privacy", "security", "definitions"]
    )

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.default_review_cycle_months < 1:
            raise ValueError("default_review_cycle_months must be at least 1")
        if not self.default_jurisdiction:
            raise ValueError("default_jurisdiction must not be empty")
        parts = self.initial_version.split(".")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError("initial_version must look like 'major.minor'")


@dataclass
class MappingConfig:
    """
    Framework mapping thresholds and scoring factors.

    Attributes:
        inclusion_threshold: Mappings at or below this confidence are dropped.
        implemented_threshold: Confidence at which a control is implemented.
        partial_threshold: Confidence at which a control is partially
            implemented.
        planned_threshold: Confidence at which a control is planned.
        pattern_match_saturation: Match count at which a pattern rule
            scores 1.0.
        missing_context_factor: Score multiplier when no context keyword
            is present.
        exclusion_factor: Score multiplier when an exclusion keyword is
            present.
    """

    inclusion_threshold: float = 0.3
    implemented_threshold: float = 0.8
    partial_threshold: float = 0.5
    planned_threshold: float = 0.3
    pattern_match_saturation: int = 5
    missing_context_factor: float = 0.5
    exclusion_factor: float = 0.3

    def __post_init__(self) -> None:
        """Validate configuration values."""
        for name in (
            "inclusion_threshold",
            "implemented_threshold",
            "partial_threshold",
            "planned_threshold",
            "missing_context_factor",
            "exclusion_factor",
        ):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ValueError(f"{name} must be between 0 and 1")
        if not (
            self.planned_threshold
            <= self.partial_threshold
            <= self.implemented_threshold
        ):
            raise ValueError(
                "thresholds must satisfy planned <= partial <= implemented"
            )
        if self.pattern_match_saturation < 1:
            raise ValueError("pattern_match_saturation must be at least 1")


@dataclass
class ApprovalConfig:
    """
    Approval workflow options.

    Attributes:
        default_escalation_days: Days without response before escalation
            when a workflow rule does not set its own.
        notifications_enabled: Whether workflow notifications are sent.
        notification_channels: Channels to deliver notifications on
            ("log", "webhook").
        webhook_url: Target URL for the webhook channel.
        webhook_timeout_seconds: Timeout for webhook delivery.
    """

    default_escalation_days: int = 5
    notifications_enabled: bool = True
    notification_channels: list[str] = field(default_factory=lambda: ["log"])
    webhook_url: str = ""
    webhook_timeout_seconds: float = 10.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.default_escalation_days < 1:
            raise ValueError("default_escalation_days must be at least 1")
        valid_channels = ["log", "webhook"]
        for channel in self.notification_channels:
            if channel not in valid_channels:
                raise ValueError(f"notification_channels must be in: {valid_channels}")
        if "webhook" in self.notification_channels and not self.webhook_url:
            raise ValueError("webhook_url is required for the webhook channel")
        if self.webhook_timeout_seconds <= 0:
            raise ValueError("webhook_timeout_seconds must be positive")


@dataclass
class LibraryConfig:
    """
    Reference data locations.

    Empty paths select the data files shipped with the package.

    Attributes:
        library_path: YAML file with templates, clauses and workflows.
        catalog_path: YAML file with frameworks, controls and rules.
    """

    library_path: str = ""
    catalog_path: str = ""


@dataclass
class ServerConfig:
    """
    HTTP server configuration options.

    Attributes:
        host: Host address to bind the server to.
        port: Port number to listen on.
        cors_enabled: Whether to answer CORS requests.
        cors_origins: Allowed CORS origins.
        max_request_size: Maximum request body size in bytes.
    """

    host: str = "127.0.0.1"
    port: int = 8080
    cors_enabled: bool = False
    cors_origins: list[str] = field(default_factory=list)
    max_request_size: int = 2 * 1024 * 1024

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.port < 1 or self.port > 65535:
            raise ValueError("port must be between 1 and 65535")
        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be at least 1024 bytes")


@dataclass
class PolicyCraftConfig:
    """
    Root configuration object for PolicyCraft.

    Attributes:
        environment: The environment profile name (development, staging,
            production, test).
        logging: Logging configuration options.
        policy: Policy generation options.
        mapping: Framework mapping options.
        approval: Approval workflow options.
        library: Reference data locations.
        server: HTTP server configuration options.
    """

    environment: str = "development"
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    mapping: MappingConfig = field(default_factory=MappingConfig)
    approval: ApprovalConfig = field(default_factory=ApprovalConfig)
    library: LibraryConfig = field(default_factory=LibraryConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        valid_environments = ["development", "staging", "production", "test"]
        if self.environment.lower() not in valid_environments:
            raise ValueError(f"environment must be one of: {valid_environments}")

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return asdict(self)
