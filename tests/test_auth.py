from datetime import timedelta

from onboardpro.models import User
from onboardpro.utils.dates import utcnow
from tests.conftest import PASSWORD, PNG_BYTES


def test_register_returns_token_pair(client, mailer):
    response = client.post(
        "/auth/register",
        json={"name": "New Hire", "email": "New.Hire@Example.com", "password": "secret123"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "success"
    assert body["data"]["user"]["email"] == "new.hire@example.com"
    assert body["data"]["user"]["role"] == "employee"
    assert body["data"]["user"]["onboarding_status"] == "not_started"
    assert body["data"]["user"]["employee_id"].startswith("EMP")
    assert body["data"]["access_token"]
    assert body["data"]["refresh_token"]
    assert len(mailer.sent_to("new.hire@example.com")) == 1


def test_register_duplicate_email_conflicts(client, employee_user):
    response = client.post(
        "/auth/register",
        json={"name": "Someone Else", "email": "evan@example.com", "password": "secret123"},
    )

    assert response.status_code == 409
    assert response.json()["status"] == "error"


def test_register_validation_errors_use_field_list(client):
    response = client.post("/auth/register", json={"name": "X", "email": "not-an-email", "password": "1"})

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation error"
    fields = {error["field"] for error in body["errors"]}
    assert {"name", "email", "password"} <= fields


def test_login_success_resets_attempts(client, db, employee_user):
    employee_user.login_attempts = 3
    db.commit()

    response = client.post("/auth/login", json={"email": "evan@example.com", "password": PASSWORD})

    assert response.status_code == 200
    assert response.json()["data"]["user"]["id"] == employee_user.id
    db.expire_all()
    assert employee_user.login_attempts == 0
    assert employee_user.last_login is not None


def test_login_unknown_email_and_wrong_password_look_the_same(client, employee_user):
    unknown = client.post("/auth/login", json={"email": "nobody@example.com", "password": PASSWORD})
    wrong = client.post("/auth/login", json={"email": "evan@example.com", "password": "wrong-password"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json()["message"] == wrong.json()["message"] == "Invalid email or password"


def test_login_locks_account_after_five_failures(client, db, employee_user):
    for _ in range(5):
        response = client.post("/auth/login", json={"email": "evan@example.com", "password": "wrong-password"})
        assert response.status_code == 401

    locked = client.post("/auth/login", json={"email": "evan@example.com", "password": PASSWORD})

    assert locked.status_code == 403
    assert "locked" in locked.json()["message"]
    db.expire_all()
    assert employee_user.account_locked_until > utcnow()


def test_login_rejects_inactive_account(client, db, employee_user):
    employee_user.is_active = False
    db.commit()

    response = client.post("/auth/login", json={"email": "evan@example.com", "password": PASSWORD})

    assert response.status_code == 403


def test_refresh_issues_new_pair(client, employee_user):
    login = client.post("/auth/login", json={"email": "evan@example.com", "password": PASSWORD}).json()["data"]

    response = client.post("/auth/refresh", json={"refreshToken": login["refresh_token"]})

    assert response.status_code == 200
    assert response.json()["data"]["access_token"]


def test_refresh_rejects_access_token(client, employee_user):
    login = client.post("/auth/login", json={"email": "evan@example.com", "password": PASSWORD}).json()["data"]

    response = client.post("/auth/refresh", json={"refreshToken": login["access_token"]})

    assert response.status_code == 401


def test_protected_route_requires_token(client):
    assert client.get("/auth/profile").status_code == 401
    assert client.get("/auth/profile", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_profile_update_only_touches_profile_fields(client, db, employee_user, employee_headers):
    response = client.put(
        "/auth/profile",
        json={"name": "Evan Updated", "phone": "555-123-4567", "address": "1 Main St"},
        headers=employee_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Evan Updated"
    assert data["phone"] == "555-123-4567"
    assert data["role"] == "employee"


def test_change_password(client, employee_headers):
    response = client.put(
        "/auth/change-password",
        json={"currentPassword": PASSWORD, "newPassword": "brand-new-1", "confirmPassword": "brand-new-1"},
        headers=employee_headers,
    )
    assert response.status_code == 200

    login = client.post("/auth/login", json={"email": "evan@example.com", "password": "brand-new-1"})
    assert login.status_code == 200


def test_change_password_wrong_current(client, employee_headers):
    response = client.put(
        "/auth/change-password",
        json={"currentPassword": "nope", "newPassword": "brand-new-1", "confirmPassword": "brand-new-1"},
        headers=employee_headers,
    )

    assert response.status_code == 401


def test_password_reset_flow(client, db, mailer, employee_user):
    unknown = client.post("/auth/forgot-password", json={"email": "ghost@example.com"})
    known = client.post("/auth/forgot-password", json={"email": "evan@example.com"})

    assert unknown.status_code == known.status_code == 200
    assert unknown.json()["message"] == known.json()["message"]
    assert len(mailer.sent_to("evan@example.com")) == 1

    db.expire_all()
    otp = employee_user.reset_password_token
    assert len(otp) == 6

    wrong_otp = "000000" if otp != "000000" else "111111"
    bad = client.post("/auth/reset-password", json={"email": "evan@example.com", "otp": wrong_otp, "password": "resetpass1"})
    assert bad.status_code == 400

    good = client.post(
        "/auth/reset-password",
        json={"email": "evan@example.com", "otp": otp, "password": "resetpass1", "confirmPassword": "resetpass1"},
    )
    assert good.status_code == 200
    assert client.post("/auth/login", json={"email": "evan@example.com", "password": "resetpass1"}).status_code == 200


def test_expired_reset_code_is_rejected(client, db, employee_user):
    employee_user.reset_password_token = "123456"
    employee_user.reset_password_expires = utcnow() - timedelta(minutes=1)
    db.commit()

    response = client.post("/auth/reset-password", json={"email": "evan@example.com", "otp": "123456", "password": "resetpass1"})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid or expired OTP"


def test_deactivated_user_token_is_rejected(client, db, employee_user, employee_headers):
    employee_user.is_active = False
    db.commit()

    assert client.get("/auth/verify", headers=employee_headers).status_code == 401


def test_profile_picture_upload_and_remove(client, db, storage, employee_user, employee_headers):
    response = client.post(
        "/auth/profile/picture",
        files={"file": ("me.png", PNG_BYTES, "image/png")},
        headers=employee_headers,
    )

    assert response.status_code == 200
    url = response.json()["data"]["profile_picture"]
    assert url.startswith("/uploads/profiles/")
    stored = storage.profile_picture_path(url)
    assert storage.exists(stored)

    removed = client.delete("/auth/profile/picture", headers=employee_headers)
    assert removed.status_code == 200
    assert not storage.exists(stored)
    db.expire_all()
    assert db.get(User, employee_user.id).profile_picture is None


def test_profile_picture_rejects_pdf(client, employee_headers):
    response = client.post(
        "/auth/profile/picture",
        files={"file": ("me.pdf", b"%PDF-1.4", "application/pdf")},
        headers=employee_headers,
    )

    assert response.status_code == 400
