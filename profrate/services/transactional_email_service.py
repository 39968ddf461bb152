"""
Transactional Email Service

Primary transport for account emails through a hosted provider API.
Currently supports Resend; SMTP (see email_service) is the fallback.
"""

import asyncio
import os
import logging
from enum import Enum
from typing import Optional, Dict, Any, List

import resend

logger = logging.getLogger(__name__)


class EmailProvider(Enum):
    """Supported transactional email providers."""
    RESEND = "resend"


class TransactionalEmailConfig:
    """Configuration for the transactional provider."""

    def __init__(self):
        provider_name = os.getenv('EMAIL_PROVIDER', 'resend').strip().lower()
        try:
            self.provider: Optional[EmailProvider] = EmailProvider(provider_name)
        except ValueError:
            logger.warning("Unknown EMAIL_PROVIDER %r; transactional email disabled", provider_name)
            self.provider = None

        self.from_email = os.getenv('FROM_EMAIL', 'noreply@profrate.local')
        self.from_name = os.getenv('FROM_NAME', 'ProfRate')
        self.reply_to_email = os.getenv('REPLY_TO_EMAIL', '')
        self.resend_api_key = os.getenv('RESEND_API_KEY', '')

    def is_configured(self) -> bool:
        if self.provider == EmailProvider.RESEND:
            return bool(self.resend_api_key and self.from_email)
        return False

    def validate(self) -> List[str]:
        errors = []
        if not self.from_email:
            errors.append("FROM_EMAIL is required")
        if self.provider is None:
            errors.append("EMAIL_PROVIDER is not supported")
        elif self.provider == EmailProvider.RESEND and not self.resend_api_key:
            errors.append("RESEND_API_KEY is required for Resend provider")
        return errors


class ResendEmailService:
    """Email delivery through the Resend API."""

    def __init__(self, config: TransactionalEmailConfig):
        self.config = config
        resend.api_key = self.config.resend_api_key

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "from": f"{self.config.from_name} <{self.config.from_email}>",
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        if text_content:
            params["text"] = text_content
        if self.config.reply_to_email:
            params["reply_to"] = self.config.reply_to_email

        try:
            # The Resend SDK is synchronous
            result = await asyncio.to_thread(resend.Emails.send, params)
        except Exception as e:
            return {'success': False, 'provider': 'resend', 'error': str(e)}

        return {
            'success': True,
            'provider': 'resend',
            'message_id': result.get('id', '') if isinstance(result, dict) else getattr(result, 'id', ''),
        }


class TransactionalEmailService:
    """Delegates to the configured provider implementation."""

    provider_name = 'transactional'

    def __init__(self, config: Optional[TransactionalEmailConfig] = None):
        self.config = config or TransactionalEmailConfig()
        self.provider_service = None
        self._setup_provider()

    def _setup_provider(self):
        if not self.config.is_configured():
            logger.info("Transactional email provider not configured")
            return
        if self.config.provider == EmailProvider.RESEND:
            self.provider_service = ResendEmailService(self.config)
            self.provider_name = EmailProvider.RESEND.value
            logger.info("Initialized Resend email service")

    def is_configured(self) -> bool:
        return self.provider_service is not None

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send an email via the configured provider.

        Returns:
            Dict with 'success', 'provider', and 'message_id' or 'error' keys
        """
        if not self.provider_service:
            return {'success': False, 'provider': self.provider_name, 'error': 'Transactional email not configured'}

        logger.info("Sending email to %s via %s", to_email, self.provider_name)
        result = await self.provider_service.send_email(
            to_email=to_email,
            subject=subject,
            html_content=html_content,
            text_content=text_content,
        )
        if result['success']:
            logger.info("Email sent to %s via %s", to_email, result['provider'])
        else:
            logger.error("Email sending failed via %s: %s", result['provider'], result.get('error'))
        return result


_email_service = None


def get_transactional_email_service() -> TransactionalEmailService:
    """Get singleton transactional email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = TransactionalEmailService()
    return _email_service
