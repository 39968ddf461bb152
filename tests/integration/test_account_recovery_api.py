from datetime import timedelta

from fastapi.testclient import TestClient

from profrate.db import models
from profrate.utils.passwords import verify_password
from profrate.utils.tokens import hash_token


DEFAULT_PASSWORD = "Str0ng!Passw0rd"
NEW_PASSWORD = "N3w!Passw0rd#x"
GENERIC = "If an account exists for that email, we've sent instructions to it"


def _reset_token_from(spy):
    to_email, username, token = spy.send_password_reset_email.await_args.args
    return token


def test_forgot_password_sends_reset_link(client, user_factory, email_spy, db_session, get_csrf):
    user = user_factory("amy", email="amy@example.com")
    r = client.post("/api/auth/forgot-password", json={"email": "AMY@example.com"}, headers=get_csrf(client))
    assert r.status_code == 200
    assert r.json() == {"message": GENERIC}

    email_spy.send_password_reset_email.assert_awaited_once()
    token = _reset_token_from(email_spy)
    db_session.expire_all()
    stored = db_session.get(models.User, user.id)
    assert stored.reset_token_hash == hash_token(token)
    remaining = models.as_utc(stored.reset_token_expires_at) - models.now_utc()
    assert timedelta(hours=23) < remaining <= timedelta(hours=24)


def test_forgot_password_unknown_email_is_indistinguishable(client, email_spy, get_csrf):
    r = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"}, headers=get_csrf(client))
    assert r.status_code == 200
    assert r.json() == {"message": GENERIC}
    email_spy.send_password_reset_email.assert_not_awaited()


def test_reset_password_sets_new_password_and_revokes_sessions(client, user_factory, email_spy, db_session, get_csrf, login_as):
    user = user_factory("ben", email="ben@example.com")
    # A live session elsewhere must not survive the reset
    other = TestClient(client.app)
    login_as(other, "ben")

    client.post("/api/auth/forgot-password", json={"email": "ben@example.com"}, headers=get_csrf(client))
    token = _reset_token_from(email_spy)

    r = client.post(
        "/api/auth/reset-password",
        json={"token": token, "new_password": NEW_PASSWORD},
        headers=get_csrf(client),
    )
    assert r.status_code == 200
    assert "sign in" in r.json()["message"]

    db_session.expire_all()
    stored = db_session.get(models.User, user.id)
    assert verify_password(NEW_PASSWORD, stored.password_hash)
    assert stored.reset_token_hash is None
    assert other.get("/api/auth/user").json() is None

    # Tokens are single use
    r = client.post(
        "/api/auth/reset-password",
        json={"token": token, "new_password": NEW_PASSWORD},
        headers=get_csrf(client),
    )
    assert r.status_code == 400


def test_reset_password_rejects_expired_token(client, user_factory, db_session, get_csrf):
    user = user_factory("cat", email="cat@example.com")
    user.reset_token_hash = hash_token("expired-token")
    user.reset_token_expires_at = models.now_utc() - timedelta(minutes=1)
    db_session.commit()

    r = client.post(
        "/api/auth/reset-password",
        json={"token": "expired-token", "new_password": NEW_PASSWORD},
        headers=get_csrf(client),
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid or expired reset token"


def test_reset_password_rejects_weak_password(client, user_factory, db_session, get_csrf):
    user = user_factory("dan", email="dan@example.com")
    user.reset_token_hash = hash_token("good-token")
    user.reset_token_expires_at = models.now_utc() + timedelta(hours=1)
    db_session.commit()

    r = client.post(
        "/api/auth/reset-password",
        json={"token": "good-token", "new_password": "short"},
        headers=get_csrf(client),
    )
    assert r.status_code == 400
    assert "too weak" in r.json()["detail"]


def test_forgot_username_sends_reminder(client, user_factory, email_spy, get_csrf):
    user_factory("eve", email="eve@example.com")
    r = client.post("/api/auth/forgot-username", json={"email": "eve@example.com"}, headers=get_csrf(client))
    assert r.json() == {"message": GENERIC}
    email_spy.send_username_reminder.assert_awaited_once_with("eve@example.com", "eve")


def test_forgot_username_unknown_email(client, email_spy, get_csrf):
    r = client.post("/api/auth/forgot-username", json={"email": "ghost@example.com"}, headers=get_csrf(client))
    assert r.status_code == 200
    email_spy.send_username_reminder.assert_not_awaited()


def test_verify_email_flow(client, get_csrf, email_spy, db_session):
    r = client.post(
        "/api/auth/register",
        json={"username": "fay", "password": DEFAULT_PASSWORD, "email": "fay@example.com"},
        headers=get_csrf(client),
    )
    assert r.status_code == 201
    token = email_spy.send_verification_email.await_args.args[2]

    r = client.get("/api/auth/verify-email", params={"token": token})
    assert r.status_code == 200
    assert r.json() == {"message": "Email verified successfully", "username": "fay"}
    assert client.get("/api/auth/user").json()["email_verified"] is True

    # Token consumed
    assert client.get("/api/auth/verify-email", params={"token": token}).status_code == 400


def test_verify_email_rejects_unknown_token(client):
    r = client.get("/api/auth/verify-email", params={"token": "bogus"})
    assert r.status_code == 400


def test_resend_verification(client, user_factory, email_spy, login_as):
    user_factory("gus", email="gus@example.com")
    headers = login_as(client, "gus")
    r = client.post("/api/auth/resend-verification", headers=headers)
    assert r.status_code == 200
    assert r.json() == {"message": "Verification email sent"}
    email_spy.send_verification_email.assert_awaited_once()


def test_resend_verification_when_already_verified(client, user_factory, email_spy, login_as):
    user_factory("hal", email="hal@example.com", email_verified=True)
    headers = login_as(client, "hal")
    r = client.post("/api/auth/resend-verification", headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Email already verified"


def test_resend_verification_without_email(client, user_factory, login_as):
    user_factory("ivy")
    headers = login_as(client, "ivy")
    r = client.post("/api/auth/resend-verification", headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "No email address on file"


def test_resend_verification_requires_login(client, get_csrf):
    r = client.post("/api/auth/resend-verification", headers=get_csrf(client))
    assert r.status_code == 401


def test_change_password_keeps_current_session_only(client, user_factory, db_session, login_as):
    user_factory("jay")
    other = TestClient(client.app)
    login_as(other, "jay")
    headers = login_as(client, "jay")

    r = client.post(
        "/api/auth/change-password",
        json={"current_password": DEFAULT_PASSWORD, "new_password": NEW_PASSWORD},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json() == {"message": "Password updated"}
    assert client.get("/api/auth/user").json()["username"] == "jay"
    assert other.get("/api/auth/user").json() is None


def test_change_password_wrong_current(student_client):
    r = student_client.post(
        "/api/auth/change-password",
        json={"current_password": "Wrong!Passw0rd", "new_password": NEW_PASSWORD},
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Current password is incorrect"


def test_change_password_weak_new(student_client):
    r = student_client.post(
        "/api/auth/change-password",
        json={"current_password": DEFAULT_PASSWORD, "new_password": "abc"},
    )
    assert r.status_code == 400


def test_change_username(student_client, user_factory):
    user_factory("taken")
    body = {"current_password": DEFAULT_PASSWORD}

    assert student_client.post("/api/auth/change-username", json={**body, "new_username": "Taken"}).status_code == 409
    assert student_client.post("/api/auth/change-username", json={**body, "new_username": "student1"}).status_code == 400
    assert student_client.post("/api/auth/change-username", json={**body, "new_username": "x"}).status_code == 400
    wrong = {"current_password": "Wrong!Passw0rd", "new_username": "fresh"}
    assert student_client.post("/api/auth/change-username", json=wrong).status_code == 400

    r = student_client.post("/api/auth/change-username", json={**body, "new_username": "Fresh.Name"})
    assert r.status_code == 200
    assert r.json()["user"]["username"] == "fresh.name"
    assert student_client.get("/api/auth/user").json()["username"] == "fresh.name"


def test_upload_profile_picture(student_client):
    data_url = "data:image/png;base64,iVBORw0KGgo="
    r = student_client.post("/api/auth/upload-profile-picture", json={"image_data": data_url})
    assert r.status_code == 200
    assert r.json()["user"]["profile_image_url"] == data_url


def test_upload_profile_picture_rejects_non_image(student_client):
    r = student_client.post("/api/auth/upload-profile-picture", json={"image_data": "data:text/html;base64,PGI+"})
    assert r.status_code == 400
