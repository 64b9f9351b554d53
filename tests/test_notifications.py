"""
Tests for PolicyCraft workflow notifications.

This module tests the NotificationManager class: template rendering,
channel delivery, failure handling and callbacks.
"""

import json
import urllib.error
from unittest.mock import MagicMock

import pytest

from policycraft.config.schema import ApprovalConfig
from policycraft.notifications import (
    Notification,
    NotificationChannel,
    NotificationManager,
    NotificationStatus,
    NotificationTemplate,
    NotificationType,
)

CONTEXT = {
    "policy_id": "p-1",
    "policy_title": "AI Acceptable Use",
    "version": "1.0",
    "role": "counsel",
    "approver": "",
    "comment": "",
}


@pytest.fixture
def webhook_config() -> ApprovalConfig:
    """Approval configuration delivering to a webhook."""
    return ApprovalConfig(
        notification_channels=["webhook"],
        webhook_url="https://hooks.example.org/policycraft",
    )


# =============================================================================
# Template Tests
# =============================================================================


class TestNotificationTemplate:
    """Tests for the NotificationTemplate class."""

    def test_render(self) -> None:
        """Test subject and body rendering."""
        template = NotificationTemplate(
            notification_type=NotificationType.ESCALATION,
            subject_template="Escalation: {policy_title}",
            body_template="Reason: {reason}",
        )
        context = {"policy_title": "Data Privacy", "reason": "No response"}
        assert template.render_subject(context) == "Escalation: Data Privacy"
        assert template.render_body(context) == "Reason: No response"

    def test_missing_context_left_in_place(self) -> None:
        """Test unknown fields stay in the rendered text."""
        template = NotificationTemplate(
            notification_type=NotificationType.ESCALATION,
            body_template="{policy_title} by {approver}",
        )
        assert template.render_body({"policy_title": "P"}) == "P by {approver}"


# =============================================================================
# Manager Tests
# =============================================================================


class TestNotificationManager:
    """Tests for the NotificationManager class."""

    def test_log_channel(self) -> None:
        """Test log delivery marks the notification sent."""
        manager = NotificationManager()
        results = manager.notify(NotificationType.APPROVAL_REQUESTED, "counsel", CONTEXT)

        assert len(results) == 1
        notification = results[0]
        assert notification.channel == NotificationChannel.LOG
        assert notification.status == NotificationStatus.SENT
        assert notification.sent_at is not None
        assert notification.subject == "[PolicyCraft] Approval Required: AI Acceptable Use"
        assert "Role: counsel" in notification.body
        assert manager.sent == results

    def test_disabled(self) -> None:
        """Test nothing is sent when notifications are disabled."""
        manager = NotificationManager(ApprovalConfig(notifications_enabled=False))
        assert manager.enabled is False
        assert manager.notify(NotificationType.ESCALATION, "cio", CONTEXT) == []
        assert manager.sent == []

    def test_one_notification_per_channel(self) -> None:
        """Test every configured channel gets its own notification."""
        config = ApprovalConfig(
            notification_channels=["log", "log"],
        )
        results = NotificationManager(config).notify(
            NotificationType.POLICY_APPROVED, "creator", CONTEXT
        )
        assert len(results) == 2

    def test_custom_template(self) -> None:
        """Test templates can be replaced per notification type."""
        manager = NotificationManager()
        manager.set_template(NotificationType.POLICY_APPROVED, "Done: {policy_title}", "ok")
        (notification,) = manager.notify(NotificationType.POLICY_APPROVED, "creator", CONTEXT)
        assert notification.subject == "Done: AI Acceptable Use"
        assert notification.body == "ok"

    def test_callbacks(self) -> None:
        """Test callbacks receive each delivered notification."""
        received: list[Notification] = []
        manager = NotificationManager()
        manager.on_notification(received.append)

        manager.notify(NotificationType.APPROVAL_RECEIVED, "creator", CONTEXT)

        assert [n.notification_type for n in received] == [NotificationType.APPROVAL_RECEIVED]

    def test_failing_callback_is_contained(self) -> None:
        """Test a raising callback does not break delivery."""
        manager = NotificationManager()

        def broken(notification: Notification) -> None:
            raise RuntimeError("callback failed")

        manager.on_notification(broken)
        results = manager.notify(NotificationType.ESCALATION, "cio", CONTEXT)
        assert results[0].status == NotificationStatus.SENT

    def test_to_dict(self) -> None:
        """Test notifications serialize to plain values."""
        (notification,) = NotificationManager().notify(
            NotificationType.ESCALATION, "cio", CONTEXT
        )
        data = notification.to_dict()
        assert data["notification_type"] == "escalation"
        assert data["status"] == "sent"
        assert isinstance(data["created_at"], str)


# =============================================================================
# Webhook Tests
# =============================================================================


class TestWebhookChannel:
    """Tests for webhook delivery."""

    def test_webhook_requires_url(self) -> None:
        """Test the webhook channel cannot be configured without a URL."""
        with pytest.raises(ValueError):
            ApprovalConfig(notification_channels=["webhook"])

    def test_webhook_delivery(
        self, webhook_config: ApprovalConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a JSON payload is posted to the webhook."""
        response = MagicMock()
        response.__enter__.return_value.status = 200
        urlopen = MagicMock(return_value=response)
        monkeypatch.setattr("urllib.request.urlopen", urlopen)

        (notification,) = NotificationManager(webhook_config).notify(
            NotificationType.APPROVAL_REQUESTED, "counsel@district.org", CONTEXT
        )

        assert notification.status == NotificationStatus.SENT
        request = urlopen.call_args.args[0]
        assert request.full_url == "https://hooks.example.org/policycraft"
        assert request.get_method() == "POST"
        payload = json.loads(request.data.decode("utf-8"))
        assert payload["type"] == "approval_requested"
        assert payload["recipient"] == "counsel@district.org"
        assert payload["context"]["policy_id"] == "p-1"

    def test_webhook_failure(
        self, webhook_config: ApprovalConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test an unreachable webhook marks the notification failed."""
        urlopen = MagicMock(side_effect=urllib.error.URLError("connection refused"))
        monkeypatch.setattr("urllib.request.urlopen", urlopen)

        manager = NotificationManager(webhook_config)
        (notification,) = manager.notify(NotificationType.ESCALATION, "cio", CONTEXT)

        assert notification.status == NotificationStatus.FAILED
        assert "connection refused" in notification.error
        assert manager.sent == [notification]

    def test_webhook_error_status(
        self, webhook_config: ApprovalConfig, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test an error status from the webhook marks the notification failed."""
        response = MagicMock()
        response.__enter__.return_value.status = 503
        monkeypatch.setattr("urllib.request.urlopen", MagicMock(return_value=response))

        (notification,) = NotificationManager(webhook_config).notify(
            NotificationType.ESCALATION, "cio", CONTEXT
        )
        assert notification.status == NotificationStatus.FAILED
        assert "503" in notification.error
