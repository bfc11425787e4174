"""Notification senders for preservation alerts.

Provides an abstract notification interface with pluggable backends.
Supports SMTP e-mail and Slack notifications, or both simultaneously.
Every backend raises SendError when delivery ultimately fails.
"""

import asyncio
import json
import ssl
import urllib.request
from abc import ABC, abstractmethod
from email.message import EmailMessage
from smtplib import SMTP, SMTP_SSL
from typing import Any, override

from artguard.lib.config import NotificationBackend, get_settings
from artguard.lib.exceptions import SendError
from artguard.lib.retry import with_retry
from artguard.logging import get_logger

logger = get_logger("lib.notifications")


class AbstractNotifier(ABC):
    """Abstract base class for notification backends."""

    name = "notifier"

    @abstractmethod
    async def send(self, artifact_id: str, subject: str, body: str) -> None:
        """Deliver one message about an artifact.

        Raises:
            SendError: If the message could not be delivered.
        """


class EmailNotifier(AbstractNotifier):
    """SMTP e-mail notification backend."""

    name = "email"

    def _build_email(self, subject: str, body: str) -> EmailMessage:
        email = get_settings().notifications.email
        msg = EmailMessage()
        msg.add_header("From", email.sender)
        msg.add_header("To", ", ".join(email.recipients))
        msg.add_header("Subject", subject)
        msg.set_content(body)
        return msg

    @override
    async def send(self, artifact_id: str, subject: str, body: str) -> None:
        cfg = get_settings().notifications
        email = cfg.email
        message = self._build_email(subject, body)

        def do_send() -> None:
            context = ssl.create_default_context()
            password = email.password.get_secret_value()
            if email.secure:
                with SMTP_SSL(
                    email.host,
                    email.port,
                    timeout=cfg.timeout_sec,
                    context=context,
                ) as server:
                    server.login(email.username, password)
                    server.send_message(message)
            else:
                with SMTP(email.host, email.port, timeout=cfg.timeout_sec) as server:
                    server.starttls(context=context)
                    server.login(email.username, password)
                    server.send_message(message)
            logger.info(
                "Sent email notification for artifact %s to %d recipient(s)",
                artifact_id,
                len(email.recipients),
            )

        ok = await with_retry(
            do_send,
            name="Email",
            logger=logger,
            max_retries=cfg.max_retries,
            initial_backoff_sec=cfg.initial_backoff_sec,
            run_in_thread=True,
        )
        if not ok:
            raise SendError(f"E-mail delivery failed for artifact {artifact_id}")


class SlackNotifier(AbstractNotifier):
    """Slack webhook notification backend."""

    name = "slack"

    def _build_payload(self, subject: str, body: str) -> dict[str, Any]:
        return {
            "text": subject,
            "blocks": [
                {
                    "type": "header",
                    "text": {"type": "plain_text", "text": subject[:150]},
                },
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": f"```{body}```"},
                },
            ],
        }

    @override
    async def send(self, artifact_id: str, subject: str, body: str) -> None:
        cfg = get_settings().notifications
        webhook_url = cfg.slack.webhook_url
        data = json.dumps(self._build_payload(subject, body)).encode("utf-8")

        def do_send() -> None:
            req = urllib.request.Request(
                webhook_url,
                data=data,
                headers={"Content-Type": "application/json"},
                method="POST",
            )
            with urllib.request.urlopen(req, timeout=cfg.timeout_sec) as resp:
                if resp.status != 200:
                    raise OSError(f"Slack API returned status {resp.status}")
            logger.info("Sent Slack notification for artifact %s", artifact_id)

        ok = await with_retry(
            do_send,
            name="Slack",
            logger=logger,
            max_retries=cfg.max_retries,
            initial_backoff_sec=cfg.initial_backoff_sec,
            run_in_thread=True,
        )
        if not ok:
            raise SendError(f"Slack delivery failed for artifact {artifact_id}")


class CompositeNotifier(AbstractNotifier):
    """Sends notifications to multiple backends.

    Succeeds when at least one backend delivered the message.
    """

    name = "composite"

    def __init__(self, notifiers: list[AbstractNotifier]):
        self._notifiers = notifiers

    @override
    async def send(self, artifact_id: str, subject: str, body: str) -> None:
        results = await asyncio.gather(
            *(n.send(artifact_id, subject, body) for n in self._notifiers),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        for notifier, result in zip(self._notifiers, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning(
                    "%s backend failed for artifact %s: %s",
                    notifier.name,
                    artifact_id,
                    result,
                )
        if len(failures) == len(self._notifiers):
            raise SendError(
                f"All notification backends failed for artifact {artifact_id}"
            )


class NoOpNotifier(AbstractNotifier):
    """No-op notifier that logs but doesn't send notifications."""

    name = "noop"

    @override
    async def send(self, artifact_id: str, subject: str, body: str) -> None:
        logger.info(
            "Notifications disabled, skipping '%s' for artifact %s",
            subject,
            artifact_id,
        )


_BACKEND_MAP: dict[NotificationBackend, type[AbstractNotifier]] = {
    NotificationBackend.EMAIL: EmailNotifier,
    NotificationBackend.SLACK: SlackNotifier,
}


def get_notifier() -> AbstractNotifier:
    """Factory function to get the configured notifier."""
    cfg = get_settings().notifications
    if not cfg.enabled:
        return NoOpNotifier()

    notifiers = [_BACKEND_MAP[backend]() for backend in cfg.backends]
    if not notifiers:
        return NoOpNotifier()
    if len(notifiers) == 1:
        return notifiers[0]
    return CompositeNotifier(notifiers)
