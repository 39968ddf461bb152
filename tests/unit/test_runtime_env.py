import pytest

from profrate.utils import runtime, urls


def test_app_env_defaults_to_development(monkeypatch):
    monkeypatch.delenv("APP_ENV", raising=False)
    assert runtime.app_env() == "development"
    assert runtime.is_production() is False


def test_session_secret_prefers_env(monkeypatch):
    monkeypatch.setenv("SESSION_SECRET", "  s3cret  ")
    assert runtime.session_secret() == "s3cret"
    assert runtime.session_secret_configured() is True


def test_session_secret_dev_fallback(monkeypatch):
    monkeypatch.delenv("SESSION_SECRET", raising=False)
    monkeypatch.setenv("APP_ENV", "development")
    assert runtime.session_secret() == runtime.DEFAULT_SESSION_SECRET
    assert runtime.session_secret_configured() is False


def test_session_secret_required_in_production(monkeypatch):
    monkeypatch.delenv("SESSION_SECRET", raising=False)
    monkeypatch.setenv("APP_ENV", "Production")
    with pytest.raises(RuntimeError):
        runtime.session_secret()


def test_cors_origins_from_env(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example ,")
    assert runtime.cors_origins() == ["https://a.example", "https://b.example"]
    monkeypatch.delenv("CORS_ORIGINS")
    assert "http://localhost:5000" in runtime.cors_origins()


def test_env_int_falls_back_on_garbage(monkeypatch):
    monkeypatch.setenv("SOME_LIMIT", "ten")
    assert runtime.env_int("SOME_LIMIT", 7) == 7
    monkeypatch.setenv("SOME_LIMIT", "12")
    assert runtime.env_int("SOME_LIMIT", 7) == 12


def test_links_use_base_url(monkeypatch):
    monkeypatch.setenv("APP_BASE_URL", "https://rate.example.edu/")
    assert urls.build_verification_link("abc") == "https://rate.example.edu/verify-email?token=abc"
    assert urls.build_reset_password_link("a b") == "https://rate.example.edu/reset-password?token=a+b"


def test_links_fall_back_to_app_host(monkeypatch):
    monkeypatch.delenv("APP_BASE_URL", raising=False)
    monkeypatch.setenv("APP_HOST", "localhost:5000")
    assert urls.build_login_link() == "http://localhost:5000/login"
    monkeypatch.setenv("APP_HOST", "rate.example.edu")
    assert urls.get_app_base_url() == "https://rate.example.edu"
