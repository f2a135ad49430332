import json

import httpx
import pytest

from sschool.client.api import (
    APIError,
    AuthenticationRequired,
    SchoolClient,
    SessionStore,
    StoredSession,
    landing_page_for,
)
from sschool.client.cli import create_parser, run_command

ADMIN_USER = {"id": "a1", "name": "Ada", "email": "ada@school.edu", "role": "admin"}
STUDENT_USER = {"id": "s1", "name": "Sam", "email": "sam@school.edu", "role": "student"}


class FakeAPI:
    """Records requests and answers from a path -> (status, body) table"""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes[(request.method, request.url.path)]
        return httpx.Response(status, json=body)


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "session.json")


def make_client(store, routes):
    api = FakeAPI(routes)
    client = SchoolClient("http://test/api", store=store, transport=httpx.MockTransport(api))
    return client, api


def test_landing_page_by_role():
    assert landing_page_for("admin") == "admin-dashboard"
    assert landing_page_for("student") == "student-dashboard"


@pytest.mark.parametrize("user, landing", [(ADMIN_USER, "admin-dashboard"), (STUDENT_USER, "student-dashboard")])
def test_login_persists_session_and_returns_landing(store, user, landing):
    client, api = make_client(store, {
        ("POST", "/api/auth/login"): (200, {"message": "Login successful", "token": "tok-1", "user": user}),
    })

    assert client.login("ada@school.edu", "secret123") == landing

    session = store.load()
    assert session.token == "tok-1"
    assert session.user == user
    assert json.loads(api.requests[0].content) == {"email": "ada@school.edu", "password": "secret123"}


def test_requests_carry_bearer_token(store):
    store.save(StoredSession(token="tok-1", user=STUDENT_USER))
    client, api = make_client(store, {
        ("GET", "/api/students/profile"): (200, STUDENT_USER),
    })

    assert client.profile() == STUDENT_USER
    assert api.requests[0].headers["Authorization"] == "Bearer tok-1"


def test_unauthorized_is_not_retried(store):
    store.save(StoredSession(token="expired", user=STUDENT_USER))
    client, api = make_client(store, {
        ("GET", "/api/students/materials"): (401, {"error": "Token has expired"}),
    })

    with pytest.raises(AuthenticationRequired) as exc_info:
        client.materials()

    assert exc_info.value.message == "Token has expired"
    assert len(api.requests) == 1


def test_error_message_is_passed_through_verbatim(store):
    client, _ = make_client(store, {
        ("POST", "/api/students/register"): (409, {"error": "Email already exists"}),
    })

    with pytest.raises(APIError) as exc_info:
        client.register("Sam", "sam@school.edu", "secret123")

    assert exc_info.value.status_code == 409
    assert exc_info.value.message == "Email already exists"


def test_update_profile_sends_camel_case_and_refreshes_stored_user(store):
    store.save(StoredSession(token="tok-1", user=STUDENT_USER))
    updated = dict(STUDENT_USER, studentId="S-42")
    client, api = make_client(store, {
        ("PUT", "/api/students/profile"): (200, {"message": "Profile updated successfully", "user": updated}),
    })

    client.update_profile(student_id="S-42", course=None)

    assert json.loads(api.requests[0].content) == {"studentId": "S-42"}
    assert store.load().user["studentId"] == "S-42"
    assert store.load().token == "tok-1"


def test_logout_clears_session(store):
    store.save(StoredSession(token="tok-1", user=STUDENT_USER))
    client, _ = make_client(store, {})

    client.logout()

    assert store.load() is None


def test_corrupt_session_file_reads_as_logged_out(store):
    store.path.write_text("{not json", encoding="utf-8")

    assert store.load() is None


def test_cli_books_lists_catalog(store):
    page = {
        "items": [{"id": "b1", "bookName": "Dune", "author": "Frank Herbert"}],
        "totalPages": 1,
        "currentPage": 1,
        "total": 1,
    }
    client, api = make_client(store, {("GET", "/api/books"): (200, page)})
    args = create_parser().parse_args(["books", "--search", "dune"])

    assert run_command(client, args) == 0
    assert api.requests[0].url.params["search"] == "dune"


def test_cli_parses_admin_commands():
    args = create_parser().parse_args(["admin", "users", "--role", "student", "--page", "2"])

    assert args.command == "admin"
    assert args.action == "users"
    assert args.role == "student"
    assert args.page == 2
