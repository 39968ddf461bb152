"""
reCAPTCHA verification for self-registration.

Verification is enabled only when RECAPTCHA_SECRET_KEY is set; v3 responses
below RECAPTCHA_MIN_SCORE are treated as automated.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

import requests

logger = logging.getLogger(__name__)

SITEVERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"


@dataclass(frozen=True)
class RecaptchaResult:
    ok: bool
    reason: Optional[str] = None
    score: Optional[float] = None


class RecaptchaUnavailable(Exception):
    """The verification service could not be reached or answered garbage."""


class RecaptchaService:
    def __init__(self, secret_key: Optional[str] = None, min_score: Optional[float] = None, timeout: float = 5.0):
        self.secret_key = secret_key if secret_key is not None else os.getenv("RECAPTCHA_SECRET_KEY", "")
        self.min_score = min_score if min_score is not None else float(os.getenv("RECAPTCHA_MIN_SCORE", "0.5"))
        self.timeout = timeout

    def is_enabled(self) -> bool:
        return bool(self.secret_key)

    def verify(self, token: Optional[str], remote_ip: Optional[str] = None) -> RecaptchaResult:
        if not self.is_enabled():
            return RecaptchaResult(ok=True)
        if not token:
            return RecaptchaResult(ok=False, reason="reCAPTCHA verification is required")

        data = {"secret": self.secret_key, "response": token}
        if remote_ip:
            data["remoteip"] = remote_ip
        try:
            response = requests.post(SITEVERIFY_URL, data=data, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("recaptcha_verify_failed: %s", e)
            raise RecaptchaUnavailable(str(e)) from e

        if not payload.get("success"):
            logger.info("recaptcha_rejected errors=%s", payload.get("error-codes"))
            return RecaptchaResult(ok=False, reason="reCAPTCHA verification failed. Please try again.")

        score = payload.get("score")
        if score is not None and float(score) < self.min_score:
            logger.info("recaptcha_low_score score=%s", score)
            return RecaptchaResult(ok=False, reason="Suspicious activity detected. Please try again.", score=float(score))
        return RecaptchaResult(ok=True, score=float(score) if score is not None else None)


def get_recaptcha_service() -> RecaptchaService:
    """Build from the current environment; cheap enough to create per request."""
    return RecaptchaService()
