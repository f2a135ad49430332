from datetime import datetime, timedelta, timezone

import pytest

from conftest import TEST_PASSWORD


def register(client, **overrides):
    body = {"name": "Jane Doe", "email": "jane@school.edu", "password": TEST_PASSWORD}
    body.update(overrides)
    return client.post("/api/auth/register", json=body)


def test_register_creates_student_by_default(client):
    response = register(client, email="  Jane@School.EDU ", course="Maths")

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "User registered successfully"
    user = data["user"]
    assert user["email"] == "jane@school.edu"
    assert user["role"] == "student"
    assert user["course"] == "Maths"
    assert "password" not in user
    assert "hashedPassword" not in user


def test_register_honors_admin_role(client):
    response = register(client, role="admin")

    assert response.status_code == 201
    assert response.json()["user"]["role"] == "admin"


def test_student_register_ignores_requested_role(client):
    body = {"name": "Jane", "email": "jane@school.edu", "password": TEST_PASSWORD, "role": "admin"}
    response = client.post("/api/students/register", json=body)

    assert response.status_code == 201
    assert response.json()["user"]["role"] == "student"


def test_duplicate_email_is_case_insensitive(client):
    assert register(client).status_code == 201

    response = register(client, email="JANE@school.edu")
    assert response.status_code == 409
    assert response.json() == {"error": "Email already exists"}


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"name": ""}, "Name, email, and password are required"),
        ({"password": None}, "Name, email, and password are required"),
        ({"email": "not-an-email"}, "Please provide a valid email address"),
        ({"password": "12345"}, "Password must be at least 6 characters long"),
    ],
)
def test_register_validation_errors(client, overrides, message):
    response = register(client, **overrides)

    assert response.status_code == 400
    assert response.json() == {"error": message}


def test_login_returns_token_and_user(client, student):
    response = client.post("/api/auth/login", json={"email": "Student@School.edu", "password": TEST_PASSWORD})

    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["user"]["id"] == student.id
    assert data["user"]["role"] == "student"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == "student@school.edu"


@pytest.mark.parametrize(
    "email, password",
    [("student@school.edu", "wrong-password"), ("nobody@school.edu", TEST_PASSWORD)],
)
def test_login_failures_are_indistinguishable(client, student, email, password):
    response = client.post("/api/auth/login", json={"email": email, "password": password})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_login_requires_both_fields(client):
    response = client.post("/api/auth/login", json={"email": "student@school.edu"})

    assert response.status_code == 400


@pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer ", "bearer abc"])
def test_missing_or_malformed_authorization_header(client, header):
    headers = {"Authorization": header} if header is not None else {}
    response = client.get("/api/auth/me", headers=headers)

    assert response.status_code == 401
    assert response.json() == {"error": "Access denied. No valid token provided."}


def test_expired_token_is_rejected(app, client, student):
    issued = datetime.now(timezone.utc) - timedelta(hours=25)
    token = app.state.user_service.tokens.issue(student.id, "student", now=issued)

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json() == {"error": "Token has expired"}


def test_garbage_token_is_rejected(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid token"}


def test_token_of_deleted_user_is_rejected(client, student, student_headers, admin_headers):
    assert client.delete(f"/api/admin/users/{student.id}", headers=admin_headers).status_code == 200

    response = client.get("/api/auth/me", headers=student_headers)
    assert response.status_code == 401
    assert response.json() == {"error": "Token is not valid - user not found"}


def test_root_and_health(client):
    assert client.get("/").json()["message"] == "SSchool API running"
    assert client.get("/health").json() == {"status": "healthy"}
