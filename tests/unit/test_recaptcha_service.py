from unittest.mock import MagicMock, patch

import pytest
import requests

from profrate.services.recaptcha_service import RecaptchaService, RecaptchaUnavailable


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


def test_disabled_without_secret_accepts_everything():
    svc = RecaptchaService(secret_key="")
    assert svc.is_enabled() is False
    assert svc.verify(None).ok is True


def test_missing_token_rejected_when_enabled():
    result = RecaptchaService(secret_key="s").verify(None)
    assert result.ok is False
    assert "required" in result.reason


def test_successful_verification_posts_remote_ip():
    with patch("profrate.services.recaptcha_service.requests.post", return_value=_response({"success": True, "score": 0.9})) as post:
        result = RecaptchaService(secret_key="s").verify("tok", "10.0.0.1")
    assert result.ok is True
    assert result.score == 0.9
    sent = post.call_args.kwargs["data"]
    assert sent == {"secret": "s", "response": "tok", "remoteip": "10.0.0.1"}


def test_low_score_is_rejected():
    with patch("profrate.services.recaptcha_service.requests.post", return_value=_response({"success": True, "score": 0.2})):
        result = RecaptchaService(secret_key="s", min_score=0.5).verify("tok")
    assert result.ok is False
    assert result.score == 0.2


def test_failed_verification_is_rejected():
    payload = {"success": False, "error-codes": ["invalid-input-response"]}
    with patch("profrate.services.recaptcha_service.requests.post", return_value=_response(payload)):
        result = RecaptchaService(secret_key="s").verify("tok")
    assert result.ok is False


def test_network_error_raises_unavailable():
    with patch(
        "profrate.services.recaptcha_service.requests.post",
        side_effect=requests.ConnectionError("no route"),
    ):
        with pytest.raises(RecaptchaUnavailable):
            RecaptchaService(secret_key="s").verify("tok")
