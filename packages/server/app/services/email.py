"""
Outbound email over SMTP.

Sending is a no-op unless host, username, password and from are all set.
smtplib is blocking, so sends run in the default executor.
"""

from __future__ import annotations

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

import structlog

from app.core.config import Settings, get_settings

log = structlog.get_logger()

INVITE_TEMPLATE = """
<html>
<body>
    <h2>Team Invitation</h2>
    <p>Hi,</p>
    <p><strong>{inviter}</strong> has invited you to join the team <strong>{team}</strong>.</p>
    <p><a href="{url}">Click here to view and respond to this invitation</a></p>
</body>
</html>
"""


class EmailService:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    @property
    def is_configured(self) -> bool:
        return self.settings.smtp_configured

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        """Send an HTML email. Returns False when skipped."""
        if not self.is_configured:
            log.debug("email.skipped", to=to, reason="smtp_not_configured")
            return False

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.settings.smtp_from
        message["To"] = to
        message.attach(MIMEText(html_body, "html", "utf-8"))

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._send_sync, to, message)
        log.info("email.sent", to=to, subject=subject)
        return True

    def _send_sync(self, to: str, message: MIMEMultipart) -> None:
        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port) as server:
            server.starttls()
            server.login(self.settings.smtp_username, self.settings.smtp_password)
            server.sendmail(self.settings.smtp_from, [to], message.as_string())

    async def send_team_invite(
        self, to: str, team_name: str, inviter_name: str, invite_url: str
    ) -> bool:
        subject = f"You've been invited to join {team_name}"
        body = INVITE_TEMPLATE.format(
            inviter=escape(inviter_name), team=escape(team_name), url=escape(invite_url)
        )
        return await self.send(to, subject, body)
