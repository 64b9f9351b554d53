"""
Notification management for PolicyCraft.

This module provides the NotificationManager used by the approval
workflow to announce approval requests, decisions and escalations.
Delivery failures are recorded on the notification and logged; they never
propagate into the workflow that triggered them.
"""

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from policycraft.config.schema import ApprovalConfig
from policycraft.models.base import generate_uuid, utc_now
from policycraft.version import __version__

logger = logging.getLogger("policycraft.notifications")


class NotificationChannel(Enum):
    """Available notification channels."""

    WEBHOOK = "webhook"
    """Send notification as a JSON POST to a webhook."""

    LOG = "log"
    """Write notification to the policycraft log."""


class NotificationStatus(Enum):
    """Status of a notification."""

    PENDING = "pending"
    """Notification is queued for delivery."""

    SENT = "sent"
    """Notification was sent successfully."""

    FAILED = "failed"
    """Notification delivery failed."""


class NotificationType(Enum):
    """Types of approval workflow notifications."""

    APPROVAL_REQUESTED = "approval_requested"
    """A role is asked to review a policy."""

    APPROVAL_RECEIVED = "approval_received"
    """A role approved a policy."""

    CHANGES_REQUESTED = "changes_requested"
    """A role asked for changes."""

    POLICY_REJECTED = "policy_rejected"
    """A role rejected a policy."""

    POLICY_APPROVED = "policy_approved"
    """Every required role approved a policy."""

    ESCALATION = "escalation"
    """An escalation rule fired."""


@dataclass
class NotificationTemplate:
    """
    A template for generating notification content.

    Attributes:
        notification_type: Type of notification this template is for.
        subject_template: Template for the notification subject.
        body_template: Template for the notification body.
    """

    notification_type: NotificationType
    subject_template: str = ""
    body_template: str = ""

    def render_subject(self, context: dict[str, Any]) -> str:
        """Render the subject with the given context."""
        return self._render(self.subject_template, context)

    def render_body(self, context: dict[str, Any]) -> str:
        """Render the body with the given context."""
        return self._render(self.body_template, context)

    def _render(self, template: str, context: dict[str, Any]) -> str:
        """Format-style substitution, leaving unknown fields in place."""
        try:
            return template.format(**context)
        except KeyError:
            result = template
            for key, value in context.items():
                result = result.replace(f"{{{key}}}", str(value))
            return result


@dataclass
class Notification:
    """
    A notification to be sent.

    Attributes:
        notification_type: Type of notification.
        channel: Delivery channel.
        recipient: Who should receive this notification.
        subject: Notification subject.
        body: Notification body.
        status: Current status.
        error: Error message if delivery failed.
        context: Context data the content was rendered from.
    """

    notification_type: NotificationType
    channel: NotificationChannel = NotificationChannel.LOG
    recipient: str = ""
    subject: str = ""
    body: str = ""
    status: NotificationStatus = NotificationStatus.PENDING
    error: str = ""
    context: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=generate_uuid)
    created_at: datetime = field(default_factory=utc_now)
    sent_at: datetime | None = None

    def to_dict(self, exclude_none: bool = False) -> dict[str, Any]:
        """Convert to dictionary."""
        data = {
            "id": self.id,
            "notification_type": self.notification_type.value,
            "channel": self.channel.value,
            "recipient": self.recipient,
            "subject": self.subject,
            "body": self.body,
            "status": self.status.value,
            "error": self.error,
            "context": self.context,
            "created_at": self.created_at.isoformat(),
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
        }
        if exclude_none:
            return {k: v for k, v in data.items() if v is not None}
        return data


NotificationCallback = Callable[[Notification], None]


class NotificationManager:
    """
    Sends approval workflow notifications.

    Every notification is delivered once per configured channel. The
    manager keeps the notifications it produced so callers and tests can
    inspect them.

    Example:
        Sending a notification::

            manager = NotificationManager(config.approval)
            manager.notify(
                NotificationType.APPROVAL_REQUESTED,
                recipient="counsel",
                context={"policy_title": "AI Acceptable Use", "role": "counsel"},
            )
    """

    DEFAULT_TEMPLATES = {
        NotificationType.APPROVAL_REQUESTED: NotificationTemplate(
            notification_type=NotificationType.APPROVAL_REQUESTED,
            subject_template="[PolicyCraft] Approval Required: {policy_title}",
            body_template=(
                "A policy requires your review.\n\n"
                "Policy: {policy_title}\n"
                "Version: {version}\n"
                "Role: {role}\n\n"
                "Please approve, reject or request changes."
            ),
        ),
        NotificationType.APPROVAL_RECEIVED: NotificationTemplate(
            notification_type=NotificationType.APPROVAL_RECEIVED,
            subject_template="[PolicyCraft] Approved by {role}: {policy_title}",
            body_template=(
                "Policy: {policy_title}\n"
                "Approved by: {approver} ({role})"
            ),
        ),
        NotificationType.CHANGES_REQUESTED: NotificationTemplate(
            notification_type=NotificationType.CHANGES_REQUESTED,
            subject_template="[PolicyCraft] Changes Requested: {policy_title}",
            body_template=(
                "Policy: {policy_title}\n"
                "Requested by: {approver} ({role})\n"
                "Comment: {comment}"
            ),
        ),
        NotificationType.POLICY_REJECTED: NotificationTemplate(
            notification_type=NotificationType.POLICY_REJECTED,
            subject_template="[PolicyCraft] Policy Rejected: {policy_title}",
            body_template=(
                "Policy: {policy_title}\n"
                "Rejected by: {approver} ({role})\n"
                "Reason: {comment}\n\n"
                "Please address the concerns and resubmit."
            ),
        ),
        NotificationType.POLICY_APPROVED: NotificationTemplate(
            notification_type=NotificationType.POLICY_APPROVED,
            subject_template="[PolicyCraft] Policy Approved: {policy_title}",
            body_template=(
                "Policy {policy_title} version {version} "
                "has been approved by every required role."
            ),
        ),
        NotificationType.ESCALATION: NotificationTemplate(
            notification_type=NotificationType.ESCALATION,
            subject_template="[PolicyCraft] Escalation: {policy_title}",
            body_template=(
                "Policy: {policy_title}\n"
                "Reason: {reason}\n\n"
                "Immediate attention is required."
            ),
        ),
    }

    def __init__(self, config: ApprovalConfig | None = None) -> None:
        """
        Initialize the notification manager.

        Args:
            config: Approval configuration holding the channel settings.
        """
        self._config = config or ApprovalConfig()
        self._channels = [NotificationChannel(c) for c in self._config.notification_channels]
        self._templates: dict[NotificationType, NotificationTemplate] = dict(
            self.DEFAULT_TEMPLATES
        )
        self._notifications: list[Notification] = []
        self._callbacks: list[NotificationCallback] = []

    @property
    def enabled(self) -> bool:
        """Whether notifications are delivered at all."""
        return self._config.notifications_enabled

    @property
    def sent(self) -> list[Notification]:
        """Notifications produced so far, oldest first."""
        return list(self._notifications)

    def on_notification(self, callback: NotificationCallback) -> None:
        """Register a callback for delivered notifications."""
        self._callbacks.append(callback)

    def set_template(
        self,
        notification_type: NotificationType,
        subject: str,
        body: str,
    ) -> None:
        """Replace the template of a notification type."""
        self._templates[notification_type] = NotificationTemplate(
            notification_type=notification_type,
            subject_template=subject,
            body_template=body,
        )

    def notify(
        self,
        notification_type: NotificationType,
        recipient: str,
        context: dict[str, Any] | None = None,
    ) -> list[Notification]:
        """
        Send a notification on every configured channel.

        Args:
            notification_type: Type of notification.
            recipient: Who should receive the notification.
            context: Context data for template rendering.

        Returns:
            One notification per channel; empty when disabled.
        """
        if not self.enabled:
            logger.debug(f"Notifications disabled, dropping {notification_type.value}")
            return []

        context = context or {}
        template = self._templates[notification_type]
        subject = template.render_subject(context)
        body = template.render_body(context)

        results: list[Notification] = []
        for channel in self._channels:
            notification = Notification(
                notification_type=notification_type,
                channel=channel,
                recipient=recipient,
                subject=subject,
                body=body,
                context=context,
            )
            self._send_notification(notification)
            self._notifications.append(notification)
            results.append(notification)

            for callback in self._callbacks:
                try:
                    callback(notification)
                except Exception:
                    logger.exception("Notification callback failed")

        return results

    def _send_notification(self, notification: Notification) -> None:
        """Send a notification using its channel."""
        try:
            if notification.channel == NotificationChannel.WEBHOOK:
                self._send_webhook(notification)
            else:
                self._send_log(notification)

            notification.status = NotificationStatus.SENT
            notification.sent_at = utc_now()

        except (urllib.error.URLError, OSError, ValueError) as e:
            notification.status = NotificationStatus.FAILED
            notification.error = str(e)
            logger.warning(
                f"Failed to deliver {notification.notification_type.value} "
                f"notification via {notification.channel.value}: {e}"
            )

    def _send_webhook(self, notification: Notification) -> None:
        """Send notification via webhook."""
        if not self._config.webhook_url:
            raise ValueError("No webhook URL available")

        payload = {
            "type": notification.notification_type.value,
            "recipient": notification.recipient,
            "subject": notification.subject,
            "body": notification.body,
            "context": notification.context,
            "timestamp": notification.created_at.isoformat(),
        }

        request = urllib.request.Request(
            self._config.webhook_url,
            data=json.dumps(payload, default=str).encode("utf-8"),
            headers={
                "Content-Type": "application/json",
                "User-Agent": f"PolicyCraft/{__version__}",
            },
            method="POST",
        )

        with urllib.request.urlopen(
            request, timeout=self._config.webhook_timeout_seconds
        ) as response:
            if response.status >= 400:
                raise ValueError(f"Webhook returned status {response.status}")

    def _send_log(self, notification: Notification) -> None:
        """Send notification to the log."""
        logger.info(
            f"Notification [{notification.notification_type.value}] "
            f"to {notification.recipient}: {notification.subject}"
        )
