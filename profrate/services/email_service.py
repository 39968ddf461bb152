"""
SMTP Email Service

Fallback transport for account emails when no transactional provider is
configured. Uses aiosmtplib for async delivery.
"""

import os
import logging
from typing import Optional, Dict, Any, List
import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import make_msgid

logger = logging.getLogger(__name__)


class EmailServiceConfig:
    """SMTP configuration from environment variables."""

    def __init__(self):
        self.smtp_host = os.getenv('SMTP_HOST', '')
        self.smtp_port = int(os.getenv('SMTP_PORT', '587'))
        self.smtp_username = os.getenv('SMTP_USERNAME', '')
        self.smtp_password = os.getenv('SMTP_PASSWORD', '')
        self.smtp_use_tls = os.getenv('SMTP_USE_TLS', 'false').lower() == 'true'
        self.smtp_start_tls = os.getenv('SMTP_START_TLS', 'true').lower() == 'true'
        self.smtp_timeout = float(os.getenv('SMTP_TIMEOUT_SECONDS', '10'))
        self.from_email = os.getenv('FROM_EMAIL', 'noreply@profrate.local')
        self.from_name = os.getenv('FROM_NAME', 'ProfRate')
        self.reply_to_email = os.getenv('REPLY_TO_EMAIL', '')

    def is_configured(self) -> bool:
        """SMTP counts as configured only when a host was given explicitly."""
        return bool(self.smtp_host and self.smtp_port and self.from_email)

    def validate(self) -> List[str]:
        errors = []
        if not self.smtp_host:
            errors.append("SMTP_HOST is required")
        if not self.smtp_port or self.smtp_port <= 0:
            errors.append("SMTP_PORT must be a positive integer")
        if not self.from_email:
            errors.append("FROM_EMAIL is required")
        if self.smtp_use_tls and self.smtp_start_tls:
            errors.append("SMTP_USE_TLS and SMTP_START_TLS are mutually exclusive")
        if bool(self.smtp_username) != bool(self.smtp_password):
            errors.append("SMTP_USERNAME and SMTP_PASSWORD must be set together")
        return errors


class EmailService:
    """Send multipart (text + HTML) messages over SMTP."""

    provider_name = 'smtp'

    def __init__(self, config: Optional[EmailServiceConfig] = None):
        self.config = config or EmailServiceConfig()

    def is_configured(self) -> bool:
        return self.config.is_configured() and not self.config.validate()

    def build_message(self, to_email: str, subject: str, html_content: str, text_content: Optional[str] = None) -> MIMEMultipart:
        message = MIMEMultipart('alternative')
        message['From'] = f"{self.config.from_name} <{self.config.from_email}>"
        message['To'] = to_email
        message['Subject'] = subject
        message['Message-ID'] = make_msgid(domain=self.config.from_email.split('@')[-1])
        if self.config.reply_to_email:
            message['Reply-To'] = self.config.reply_to_email
        # Plain part first so clients prefer the HTML alternative
        if text_content:
            message.attach(MIMEText(text_content, 'plain', 'utf-8'))
        message.attach(MIMEText(html_content, 'html', 'utf-8'))
        return message

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send one message; returns a dict with 'success' plus 'message_id' or 'error'."""
        if not self.is_configured():
            return {'success': False, 'provider': self.provider_name, 'error': 'SMTP not configured'}

        message = self.build_message(to_email, subject, html_content, text_content)
        try:
            async with aiosmtplib.SMTP(
                hostname=self.config.smtp_host,
                port=self.config.smtp_port,
                use_tls=self.config.smtp_use_tls,
                start_tls=self.config.smtp_start_tls,
                timeout=self.config.smtp_timeout,
            ) as smtp:
                if self.config.smtp_username:
                    await smtp.login(self.config.smtp_username, self.config.smtp_password)
                await smtp.send_message(message)
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("smtp_send_failed to=%s: %s", to_email, e)
            return {'success': False, 'provider': self.provider_name, 'error': str(e)}

        logger.info("smtp_send_ok to=%s subject=%s", to_email, subject)
        return {'success': True, 'provider': self.provider_name, 'message_id': message['Message-ID']}


_email_service = None


def get_email_service() -> EmailService:
    """Get singleton SMTP email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
