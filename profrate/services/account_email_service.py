"""
Account email dispatch: verification, password reset and username reminders.

Renders Jinja2 templates (HTML plus a text alternative) and hands them to the
first configured transport: the transactional provider, then SMTP. Delivery
problems are reported in the result dict and logged; callers never see an
exception for a failed send.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from profrate.services.email_service import get_email_service
from profrate.services.transactional_email_service import get_transactional_email_service
from profrate.utils import urls

logger = logging.getLogger(__name__)

TEMPLATE_VERIFICATION = 'verification'
TEMPLATE_RESET_PASSWORD = 'reset_password'
TEMPLATE_FORGOT_USERNAME = 'forgot_username'

RESET_TOKEN_TTL_HOURS = 24

_DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / 'templates' / 'email'


class AccountEmailService:
    """Renders account templates and sends them through the first working transport."""

    def __init__(self, transports: Optional[List[Any]] = None, template_dir: Optional[str] = None):
        if transports is None:
            transports = [get_transactional_email_service(), get_email_service()]
        self.transports = transports
        self.app_name = os.getenv('APP_NAME', 'ProfRate')
        template_path = Path(template_dir or os.getenv('EMAIL_TEMPLATE_DIR') or _DEFAULT_TEMPLATE_DIR)
        self.template_env = Environment(
            loader=FileSystemLoader(str(template_path)),
            autoescape=select_autoescape(enabled_extensions=('html',), default_for_string=False),
        )

    def is_configured(self) -> bool:
        return any(t.is_configured() for t in self.transports)

    def render_template(self, template_name: str, context: Dict[str, Any]) -> Tuple[str, str]:
        """
        Render email template with context.

        Returns:
            Tuple of (html_content, text_content)
        """
        full_context = {'app_name': self.app_name, 'base_url': urls.get_app_base_url(), **context}
        html_content = self.template_env.get_template(f"{template_name}.html").render(**full_context)
        try:
            text_content = self.template_env.get_template(f"{template_name}.txt").render(**full_context)
        except TemplateNotFound:
            text_content = ''
        return html_content, text_content

    async def send(self, to_email: str, subject: str, template_name: str, context: Dict[str, Any]) -> Dict[str, Any]:
        html_content, text_content = self.render_template(template_name, context)
        last_result: Dict[str, Any] = {}
        for transport in self.transports:
            if not transport.is_configured():
                continue
            result = await transport.send_email(
                to_email=to_email,
                subject=subject,
                html_content=html_content,
                text_content=text_content or None,
            )
            if result.get('success'):
                return result
            logger.warning(
                "account_email_transport_failed template=%s provider=%s error=%s",
                template_name, result.get('provider'), result.get('error'),
            )
            last_result = result
        if not last_result:
            logger.warning("account_email_skipped template=%s: no transport configured", template_name)
            return {'success': False, 'error': 'Email delivery is not configured'}
        return last_result

    async def send_verification_email(self, to_email: str, username: str, token: str) -> Dict[str, Any]:
        return await self.send(
            to_email,
            f"Verify your {self.app_name} email address",
            TEMPLATE_VERIFICATION,
            {'username': username, 'verify_url': urls.build_verification_link(token)},
        )

    async def send_password_reset_email(self, to_email: str, username: str, token: str) -> Dict[str, Any]:
        return await self.send(
            to_email,
            f"Reset your {self.app_name} password",
            TEMPLATE_RESET_PASSWORD,
            {
                'username': username,
                'reset_url': urls.build_reset_password_link(token),
                'expires_hours': RESET_TOKEN_TTL_HOURS,
            },
        )

    async def send_username_reminder(self, to_email: str, username: str) -> Dict[str, Any]:
        return await self.send(
            to_email,
            f"Your {self.app_name} username",
            TEMPLATE_FORGOT_USERNAME,
            {'username': username, 'login_url': urls.build_login_link()},
        )


_account_email_service = None


def get_account_email_service() -> AccountEmailService:
    """Get singleton account email service instance."""
    global _account_email_service
    if _account_email_service is None:
        _account_email_service = AccountEmailService()
    return _account_email_service
