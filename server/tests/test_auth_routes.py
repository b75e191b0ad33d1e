from testmate.models import Account, OneTimeToken, TokenPurpose
from testmate.services import one_time_tokens

SIGNUP = {
    "name": "Asha", "email": "a@x.com", "phone": "PRN001", "work": "CSE",
    "password": "secret123", "role": "Student", "year_of_study": "First Year",
}


def test_signup_sends_otp_and_verification_flow(client, mailer, db):
    response = client.post("/signup", json=SIGNUP)

    assert response.status_code == 201
    user = response.json()["user"]
    assert user["verified"] is False
    assert "password" not in user and "password_hash" not in user
    assert mailer.sent[-1][0] == "a@x.com"
    assert "1234" in mailer.sent[-1][2]

    response = client.post("/verify-email", json={"user_id": user["id"], "otp": "9999"})
    assert response.status_code == 401
    assert response.json() == {"error": "Please provide a valid token!"}

    response = client.post("/verify-email", json={"user_id": user["id"], "otp": "1234"})
    assert response.status_code == 200
    assert response.json()["user"]["verified"] is True
    assert mailer.subjects()[-1] == "Welcome Email"

    response = client.post("/verify-email", json={"user_id": user["id"], "otp": "1234"})
    assert response.status_code == 409


def test_signup_validation_errors(client):
    response = client.post("/signup", json={**SIGNUP, "email": "not-an-email"})
    assert response.status_code == 400
    assert response.json()["error"] == "Please provide all the details."

    response = client.post("/signup", json={**SIGNUP, "password": "short"})
    assert response.status_code == 400
    assert "7 to 16" in response.json()["error"]


def test_signup_twice_for_verified_account(client, register):
    register(email="a@x.com")

    response = client.post("/signup", json=SIGNUP)
    assert response.status_code == 409
    assert response.json()["error"] == "User already registered, please login!"


def test_login_errors_name_the_failing_factor(client, register):
    register(email="a@x.com")

    response = client.post("/login", json={"email": "b@x.com", "password": "secret123", "role": "Student"})
    assert response.status_code == 401
    assert response.json()["error"] == "Email is not registered"

    response = client.post("/login", json={"email": "a@x.com", "password": "wrongpass", "role": "Student"})
    assert response.status_code == 401
    assert response.json()["error"] == "Password is incorrect"


def test_login_with_unverified_account_requires_signup(client, db):
    client.post("/signup", json=SIGNUP)

    response = client.post("/login", json={"email": "a@x.com", "password": "secret123", "role": "Student"})
    assert response.status_code == 404
    assert response.json()["error"] == "User is not registered, please sign-up!"
    assert db.query(Account).count() == 0


def test_login_records_token_and_logout_revokes_it(client, register, db):
    user, headers = register(email="a@x.com")

    assert client.get("/me", headers=headers).json()["email"] == "a@x.com"

    response = client.post("/logout", headers=headers)
    assert response.json() == {"success": True, "message": "Signed-out successfully!"}
    assert db.get(Account, user["id"]).tokens == []

    response = client.get("/me", headers=headers)
    assert response.status_code == 401


def test_auth_boundary_rejects_missing_and_bad_tokens(client, register, db):
    user, headers = register(email="a@x.com")

    assert client.get("/me").status_code == 401
    assert client.get("/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

    db.delete(db.get(Account, user["id"]))
    db.commit()
    assert client.get("/me", headers=headers).status_code == 401


def test_admin_login_only_accepts_admins(client, register):
    register(email="admin@x.com", role="Admin", phone="A-1")
    register(email="a@x.com")

    assert client.post("/admin/login", json={"email": "admin@x.com", "password": "secret123"}).status_code == 200
    assert client.post("/admin/login", json={"email": "a@x.com", "password": "secret123"}).status_code == 401


def test_password_reset_flow(client, register, mailer, db, monkeypatch):
    user, _ = register(email="a@x.com")
    monkeypatch.setattr(one_time_tokens, "generate_reset_secret", lambda: "r" * 60)

    response = client.post("/forgot-password", json={"email": "a@x.com"})
    assert response.status_code == 200
    assert f"token={'r' * 60}&id={user['id']}" in mailer.sent[-1][2]

    response = client.post("/forgot-password", json={"email": "a@x.com"})
    assert response.status_code == 409
    assert "10 minutes" in response.json()["error"]

    query = {"token": "r" * 60, "id": user["id"]}
    assert client.get("/reset-password", params=query).status_code == 200
    assert client.get("/reset-password", params={**query, "token": "bad"}).status_code == 401

    response = client.post("/reset-password", params=query, json={"password": "secret123"})
    assert response.status_code == 400
    assert response.json()["error"] == "New password must be different."
    assert db.query(OneTimeToken).filter_by(purpose=TokenPurpose.RESET).count() == 1

    response = client.post("/reset-password", params=query, json={"password": "brandnew1"})
    assert response.status_code == 200
    assert mailer.subjects()[-1] == "Password Reset Success"
    assert db.query(OneTimeToken).count() == 0

    assert client.post("/reset-password", params=query, json={"password": "another12"}).status_code == 401
    response = client.post("/login", json={"email": "a@x.com", "password": "brandnew1", "role": "Student"})
    assert response.status_code == 201


def test_reset_link_requires_parameters(client):
    response = client.get("/reset-password")
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request!"


def test_forgot_password_unknown_and_unverified(client, db):
    assert client.post("/forgot-password", json={"email": "nobody@x.com"}).status_code == 404

    client.post("/signup", json=SIGNUP)
    response = client.post("/forgot-password", json={"email": "a@x.com"})
    assert response.status_code == 404
    assert response.json()["error"] == "User is not registered, please sign-up!"
    assert db.query(Account).count() == 0


def test_mail_failure_does_not_undo_signup(client, mailer, db):
    def broken_send(to, subject, html):
        raise ConnectionError("smtp down")

    mailer.send = broken_send
    response = client.post("/signup", json=SIGNUP)

    assert response.status_code == 201
    assert db.query(Account).count() == 1


def test_second_student_cannot_take_a_registered_prn(client, register):
    register(email="a@x.com", phone="PRN9")

    response = client.post("/signup", json={**SIGNUP, "email": "b@x.com", "phone": "PRN9"})
    assert response.status_code == 409
    assert response.json()["error"] == "PRN already registered!"


def test_login_with_padded_password(client, register):
    register(email="a@x.com", password=" secret123 ")

    response = client.post("/login", json={"email": "a@x.com", "password": " secret123 ", "role": "Student"})
    assert response.status_code == 201
