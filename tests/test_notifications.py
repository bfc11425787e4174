"""Tests for the notification senders."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from artguard.lib.config import Settings
from artguard.lib.config.testing import set_settings
from artguard.lib.exceptions import SendError
from artguard.lib.notifications import (
    CompositeNotifier,
    EmailNotifier,
    NoOpNotifier,
    SlackNotifier,
    get_notifier,
)


@pytest.fixture
def notification_settings(test_db):
    """Enable both backends with fast retries."""
    set_settings(
        Settings(
            db_path=str(test_db),
            enable_notification_service=True,
            notification_backends="email,slack",
            email_smtp_host="smtp.example.com",
            email_smtp_port=465,
            email_smtp_user="curator",
            email_smtp_password="secret",
            email_from="alerts@example.com",
            email_alert_recipients="a@example.com, b@example.com",
            slack_webhook_url="https://hooks.slack.com/services/T000/B000/XXX",
            notification_max_retries=2,
            notification_initial_backoff_sec=0,
        )
    )


class TestEmailNotifier:
    """Tests for the SMTP e-mail backend."""

    @patch("artguard.lib.notifications.SMTP_SSL")
    @patch("artguard.lib.notifications.ssl.create_default_context")
    async def test_successful_send_implicit_tls(
        self, mock_ssl, mock_smtp_ssl, notification_settings
    ):
        mock_server = MagicMock()
        mock_smtp_ssl.return_value.__enter__.return_value = mock_server

        await EmailNotifier().send("art-1", "ALERT", "body")

        assert mock_smtp_ssl.call_args.args == ("smtp.example.com", 465)
        mock_server.login.assert_called_once_with("curator", "secret")
        mock_server.send_message.assert_called_once()
        mock_server.starttls.assert_not_called()

    @patch("artguard.lib.notifications.SMTP")
    @patch("artguard.lib.notifications.ssl.create_default_context")
    async def test_starttls_when_not_secure(
        self, mock_ssl, mock_smtp, notification_settings
    ):
        set_settings(
            Settings(
                email_smtp_host="smtp.example.com",
                email_smtp_port=587,
                email_smtp_secure=False,
                notification_initial_backoff_sec=0,
            )
        )
        mock_server = MagicMock()
        mock_smtp.return_value.__enter__.return_value = mock_server

        await EmailNotifier().send("art-1", "ALERT", "body")

        mock_server.starttls.assert_called_once()
        mock_server.send_message.assert_called_once()

    @patch("artguard.lib.notifications.SMTP_SSL")
    @patch("artguard.lib.notifications.ssl.create_default_context")
    async def test_retry_on_network_error(
        self, mock_ssl, mock_smtp_ssl, notification_settings
    ):
        mock_server = MagicMock()
        mock_server.send_message.side_effect = [OSError("Network error"), None]
        mock_smtp_ssl.return_value.__enter__.return_value = mock_server

        await EmailNotifier().send("art-1", "ALERT", "body")

        assert mock_server.send_message.call_count == 2

    @patch("artguard.lib.notifications.SMTP_SSL")
    @patch("artguard.lib.notifications.ssl.create_default_context")
    async def test_raises_send_error_after_retries(
        self, mock_ssl, mock_smtp_ssl, notification_settings
    ):
        mock_server = MagicMock()
        mock_server.send_message.side_effect = OSError("Network error")
        mock_smtp_ssl.return_value.__enter__.return_value = mock_server

        with pytest.raises(SendError):
            await EmailNotifier().send("art-1", "ALERT", "body")

        assert mock_server.send_message.call_count == 2

    @patch("artguard.lib.notifications.SMTP_SSL")
    @patch("artguard.lib.notifications.ssl.create_default_context")
    async def test_no_retry_on_non_network_error(
        self, mock_ssl, mock_smtp_ssl, notification_settings
    ):
        mock_server = MagicMock()
        mock_server.send_message.side_effect = ValueError("Bad data")
        mock_smtp_ssl.return_value.__enter__.return_value = mock_server

        with pytest.raises(SendError):
            await EmailNotifier().send("art-1", "ALERT", "body")

        assert mock_server.send_message.call_count == 1

    def test_build_email(self, notification_settings):
        message = EmailNotifier()._build_email("ALERT: HIGH Temperature", "hot")

        assert message["Subject"] == "ALERT: HIGH Temperature"
        assert message["From"] == "alerts@example.com"
        assert message["To"] == "a@example.com, b@example.com"
        assert "hot" in message.get_content()


class TestSlackNotifier:
    """Tests for the Slack webhook backend."""

    @patch("artguard.lib.notifications.urllib.request.urlopen")
    @patch("artguard.lib.notifications.urllib.request.Request")
    async def test_successful_send(
        self, mock_request, mock_urlopen, notification_settings
    ):
        mock_response = MagicMock()
        mock_response.status = 200
        mock_urlopen.return_value.__enter__.return_value = mock_response

        await SlackNotifier().send("art-1", "ALERT", "body")

        mock_request.assert_called_once()
        mock_urlopen.assert_called_once()

    @patch("artguard.lib.notifications.urllib.request.urlopen")
    @patch("artguard.lib.notifications.urllib.request.Request")
    async def test_bad_status_is_retried_then_fails(
        self, mock_request, mock_urlopen, notification_settings
    ):
        mock_response = MagicMock()
        mock_response.status = 500
        mock_urlopen.return_value.__enter__.return_value = mock_response

        with pytest.raises(SendError):
            await SlackNotifier().send("art-1", "ALERT", "body")

        assert mock_urlopen.call_count == 2

    def test_build_payload(self):
        payload = SlackNotifier()._build_payload("ALERT: HIGH CO₂", "details")

        assert payload["text"] == "ALERT: HIGH CO₂"
        assert payload["blocks"][0]["type"] == "header"
        assert "details" in payload["blocks"][1]["text"]["text"]


class TestCompositeNotifier:
    """Tests for the composite backend."""

    async def test_sends_to_all_backends(self):
        first, second = MagicMock(), MagicMock()
        first.send = AsyncMock()
        second.send = AsyncMock()

        await CompositeNotifier([first, second]).send("art-1", "s", "b")

        first.send.assert_awaited_once_with("art-1", "s", "b")
        second.send.assert_awaited_once_with("art-1", "s", "b")

    async def test_one_success_is_enough(self):
        failing, working = MagicMock(), MagicMock()
        failing.send = AsyncMock(side_effect=SendError("down"))
        working.send = AsyncMock()

        await CompositeNotifier([failing, working]).send("art-1", "s", "b")

        working.send.assert_awaited_once()

    async def test_all_failing_raises(self):
        first, second = MagicMock(), MagicMock()
        first.send = AsyncMock(side_effect=SendError("down"))
        second.send = AsyncMock(side_effect=SendError("down"))

        with pytest.raises(SendError):
            await CompositeNotifier([first, second]).send("art-1", "s", "b")


class TestNoOpNotifier:
    async def test_send_logs_only(self, caplog):
        await NoOpNotifier().send("art-1", "ALERT", "body")

        assert "disabled" in caplog.text.lower()


class TestGetNotifier:
    """Tests for the notifier factory function."""

    def test_disabled_returns_noop(self):
        assert isinstance(get_notifier(), NoOpNotifier)

    def test_returns_email_when_configured(self):
        with patch("artguard.lib.notifications.get_settings") as mock_get_settings:
            mock_get_settings.return_value.notifications.enabled = True
            mock_get_settings.return_value.notifications.backends = ["email"]
            assert isinstance(get_notifier(), EmailNotifier)

    def test_returns_slack_when_configured(self):
        with patch("artguard.lib.notifications.get_settings") as mock_get_settings:
            mock_get_settings.return_value.notifications.enabled = True
            mock_get_settings.return_value.notifications.backends = ["slack"]
            assert isinstance(get_notifier(), SlackNotifier)

    def test_returns_composite_when_multiple_backends(
        self, notification_settings
    ):
        notifier = get_notifier()

        assert isinstance(notifier, CompositeNotifier)
        assert len(notifier._notifiers) == 2
