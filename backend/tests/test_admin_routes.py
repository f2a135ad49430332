import uuid

import pytest
from sqlalchemy import func, select

from conftest import TEST_PASSWORD
from sschool.models.material import Material
from sschool.models.user import Role

MISSING_ID = str(uuid.uuid4())

ADMIN_ROUTES = [
    ("post", "/api/admin/create-admin"),
    ("get", "/api/admin/users"),
    ("get", f"/api/admin/users/{MISSING_ID}"),
    ("put", f"/api/admin/users/{MISSING_ID}"),
    ("delete", f"/api/admin/users/{MISSING_ID}"),
    ("get", "/api/admin/dashboard/stats"),
    ("get", "/api/admin/books"),
    ("get", "/api/admin/books/stats/total"),
    ("get", f"/api/admin/books/{MISSING_ID}"),
    ("post", "/api/admin/books"),
    ("put", f"/api/admin/books/{MISSING_ID}"),
    ("delete", f"/api/admin/books/{MISSING_ID}"),
]


def call(client, method, path, headers=None):
    kwargs = {"headers": headers or {}}
    if method in ("post", "put"):
        kwargs["json"] = {}
    return getattr(client, method)(path, **kwargs)


@pytest.mark.parametrize("method, path", ADMIN_ROUTES)
def test_student_is_forbidden_on_admin_routes(client, student_headers, method, path):
    response = call(client, method, path, student_headers)

    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden - Required role: admin, Your role: student"}


@pytest.mark.parametrize("method, path", ADMIN_ROUTES)
def test_anonymous_is_rejected_on_admin_routes(client, method, path):
    assert call(client, method, path).status_code == 401


def test_create_admin(client, admin_headers):
    body = {
        "name": "Second Admin",
        "email": "second@school.edu",
        "password": TEST_PASSWORD,
        "course": "Staff",
        "faculty": "Arts",
    }
    response = client.post("/api/admin/create-admin", json=body, headers=admin_headers)

    assert response.status_code == 201
    user = response.json()["user"]
    assert user["role"] == "admin"
    assert user["faculty"] == "Arts"


def test_create_admin_requires_course_and_faculty(client, admin_headers):
    body = {"name": "X", "email": "x@school.edu", "password": TEST_PASSWORD, "course": "Staff"}
    response = client.post("/api/admin/create-admin", json=body, headers=admin_headers)

    assert response.status_code == 400
    assert response.json() == {"error": "Name, email, password, course, and faculty are required"}


def test_list_users_pages_newest_first(client, admin, admin_headers, make_user):
    created = [make_user() for _ in range(11)]

    first = client.get("/api/admin/users", headers=admin_headers).json()
    assert first["total"] == 12
    assert first["totalPages"] == 2
    assert first["currentPage"] == 1
    assert len(first["items"]) == 10
    assert first["items"][0]["id"] == created[-1].id

    second = client.get("/api/admin/users", params={"page": 2}, headers=admin_headers).json()
    assert [u["id"] for u in second["items"]] == [created[0].id, admin.id]


def test_list_users_filters_by_role_and_search(client, admin, admin_headers, make_user):
    make_user(name="Alice Smith", course="Physics")
    make_user(name="Bob Jones", course="Chemistry")

    students = client.get("/api/admin/users", params={"role": "student"}, headers=admin_headers).json()
    assert students["total"] == 2
    assert all(u["role"] == "student" for u in students["items"])

    found = client.get("/api/admin/users", params={"search": "physics"}, headers=admin_headers).json()
    assert [u["name"] for u in found["items"]] == ["Alice Smith"]


def test_limit_out_of_range_is_rejected(client, admin_headers):
    response = client.get("/api/admin/users", params={"limit": 0}, headers=admin_headers)

    assert response.status_code == 400
    assert "error" in response.json()


def test_get_user_by_id(client, student, admin_headers):
    response = client.get(f"/api/admin/users/{student.id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["email"] == "student@school.edu"


def test_get_user_malformed_and_missing_ids(client, admin_headers):
    malformed = client.get("/api/admin/users/123", headers=admin_headers)
    assert malformed.status_code == 400
    assert malformed.json() == {"error": "Invalid user ID"}

    missing = client.get(f"/api/admin/users/{MISSING_ID}", headers=admin_headers)
    assert missing.status_code == 404
    assert missing.json() == {"error": "User not found"}


def test_update_user_changes_only_supplied_fields(client, student, admin_headers):
    response = client.put(f"/api/admin/users/{student.id}", json={"name": "Renamed"}, headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "User updated successfully"
    assert data["user"]["name"] == "Renamed"
    assert data["user"]["course"] == "CS"
    assert data["user"]["semester"] == "3"
    assert data["user"]["email"] == "student@school.edu"


def test_update_user_role_and_password(client, student, admin_headers):
    body = {"role": "admin", "password": "new-password"}
    response = client.put(f"/api/admin/users/{student.id}", json=body, headers=admin_headers)
    assert response.json()["user"]["role"] == Role.ADMIN.value

    login = client.post("/api/auth/login", json={"email": "student@school.edu", "password": "new-password"})
    assert login.status_code == 200
    assert login.json()["user"]["role"] == "admin"


@pytest.mark.parametrize(
    "body, status, message",
    [
        ({"role": "librarian"}, 400, "Role must be either student or admin"),
        ({"email": "bad"}, 400, "Please provide a valid email address"),
        ({"password": "123"}, 400, "Password must be at least 6 characters long"),
        ({"email": "ADMIN@school.edu"}, 409, "Email already exists"),
    ],
)
def test_update_user_rejections(client, admin, student, admin_headers, body, status, message):
    response = client.put(f"/api/admin/users/{student.id}", json=body, headers=admin_headers)

    assert response.status_code == status
    assert response.json() == {"error": message}


def test_delete_user_cascades_to_materials(client, db, student, student_headers, admin_headers, make_user):
    other = make_user()
    for title in ("One", "Two"):
        client.post("/api/students/materials", json={"title": title, "content": "x"}, headers=student_headers)
    client.post("/api/students/materials", json={"title": "Kept", "content": "x"}, headers=_headers_for(client, other))

    response = client.delete(f"/api/admin/users/{student.id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "User and associated materials deleted successfully"}

    assert client.get(f"/api/admin/users/{student.id}", headers=admin_headers).status_code == 404
    remaining = db.scalars(select(Material.title)).all()
    assert remaining == ["Kept"]


def test_delete_unknown_user(client, admin_headers):
    assert client.delete(f"/api/admin/users/{MISSING_ID}", headers=admin_headers).status_code == 404


def test_dashboard_stats(client, db, admin, admin_headers, make_user, student_headers):
    newest = [make_user() for _ in range(6)]
    client.post("/api/students/materials", json={"title": "T", "content": "C"}, headers=student_headers)
    client.post("/api/admin/books", json={"bookName": "Dune", "author": "Herbert"}, headers=admin_headers)

    stats = client.get("/api/admin/dashboard/stats", headers=admin_headers).json()

    # admin, the student behind student_headers, and six more
    assert stats["totalUsers"] == 8
    assert stats["totalAdmins"] == 1
    assert stats["totalStudents"] == 7
    assert stats["totalBooks"] == 1
    assert stats["totalMaterials"] == db.scalar(select(func.count()).select_from(Material)) == 1
    assert [u["id"] for u in stats["recentUsers"]] == [u.id for u in reversed(newest)][:5]


def _headers_for(client, user):
    token = client.app.state.user_service.tokens.issue(user.id, Role(user.role).value)
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.parametrize("method", ["put", "delete"])
def test_malformed_user_id_on_update_and_delete(client, admin_headers, method):
    kwargs = {"json": {"name": "Anyone"}} if method == "put" else {}
    response = getattr(client, method)("/api/admin/users/123", headers=admin_headers, **kwargs)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid user ID"}


def test_huge_page_on_user_listing_is_rejected(client, admin_headers):
    response = client.get("/api/admin/users", params={"page": 10**19}, headers=admin_headers)

    assert response.status_code == 400
