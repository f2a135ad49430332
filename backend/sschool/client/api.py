"""
HTTP client for the SSchool API.

Mirrors what the browser front end does: the token and user returned by
login are persisted locally, every later request carries
``Authorization: Bearer <token>``, and a 401 is surfaced to the caller as
``AuthenticationRequired``. Nothing is retried or refreshed; after a 401 the
user has to log in again.
"""

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from pydantic.alias_generators import to_camel

DEFAULT_API_URL = "http://localhost:4000/api"
DEFAULT_SESSION_PATH = Path.home() / ".sschool" / "session.json"

LANDING_PAGES = {
    "admin": "admin-dashboard",
    "student": "student-dashboard",
}


def landing_page_for(role: str) -> str:
    """Where a user lands after login; anything but admin is a student"""
    return LANDING_PAGES.get(role, LANDING_PAGES["student"])


class APIError(Exception):
    """Non-2xx response; ``message`` is the server's ``error`` string verbatim"""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


class AuthenticationRequired(APIError):
    """401 from the server: missing, expired or rejected token"""


@dataclass
class StoredSession:
    token: str
    user: Dict[str, Any]

    @property
    def role(self) -> str:
        return self.user.get("role", "student")


class SessionStore:
    """Token and user persisted as JSON, the equivalent of browser localStorage"""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else DEFAULT_SESSION_PATH

    def load(self) -> Optional[StoredSession]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return StoredSession(token=data["token"], user=data["user"])
        except (json.JSONDecodeError, KeyError, TypeError):
            # Corrupt session file: behave as logged out
            return None

    def save(self, session: StoredSession) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(asdict(session), indent=2), encoding="utf-8")
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            pass

    def update_user(self, user: Dict[str, Any]) -> None:
        session = self.load()
        if session is not None:
            self.save(StoredSession(token=session.token, user=user))

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class SchoolClient:
    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        store: Optional[SessionStore] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.store = store or SessionStore()
        self._http = httpx.Client(base_url=base_url.rstrip("/"), transport=transport, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SchoolClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def session(self) -> Optional[StoredSession]:
        return self.store.load()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        session = self.store.load()
        if session is not None:
            headers["Authorization"] = f"Bearer {session.token}"

        try:
            response = self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise APIError(0, f"Network error: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code == 401:
            raise AuthenticationRequired(401, _error_message(data, "Authentication required"))
        if response.is_error:
            raise APIError(response.status_code, _error_message(data, "Request failed"))
        return data

    # Authentication
    # -----------------------------

    def login(self, email: str, password: str) -> str:
        """Log in, persist token and user, and return the landing page for the role"""
        data = self._request("POST", "/auth/login", json={"email": email, "password": password})
        session = StoredSession(token=data["token"], user=data["user"])
        self.store.save(session)
        return landing_page_for(session.role)

    def logout(self) -> None:
        self.store.clear()

    def register(self, name: str, email: str, password: str, *, admin: bool = False, **profile) -> Dict[str, Any]:
        body = {"name": name, "email": email, "password": password, **_camel(profile)}
        if admin:
            body["role"] = "admin"
            return self._request("POST", "/auth/register", json=body)
        return self._request("POST", "/students/register", json=body)

    # Student
    # -----------------------------

    def profile(self) -> Dict[str, Any]:
        return self._request("GET", "/students/profile")

    def update_profile(self, **fields) -> Dict[str, Any]:
        data = self._request("PUT", "/students/profile", json=_camel(fields))
        self.store.update_user(data["user"])
        return data

    def books(self, page: int = 1, limit: int = 10, search: Optional[str] = None) -> Dict[str, Any]:
        return self._request("GET", "/books", params=_page_params(page, limit, search=search))

    def book(self, book_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/books/{book_id}")

    def materials(self, page: int = 1, limit: int = 10, search: Optional[str] = None) -> Dict[str, Any]:
        return self._request("GET", "/students/materials", params=_page_params(page, limit, search=search))

    def add_material(self, title: str, content: str) -> Dict[str, Any]:
        return self._request("POST", "/students/materials", json={"title": title, "content": content})

    # Admin
    # -----------------------------

    def dashboard_stats(self) -> Dict[str, Any]:
        return self._request("GET", "/admin/dashboard/stats")

    def users(
        self,
        page: int = 1,
        limit: int = 10,
        role: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._request("GET", "/admin/users", params=_page_params(page, limit, role=role, search=search))

    def user(self, user_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/admin/users/{user_id}")

    def create_admin(self, name: str, email: str, password: str, course: str, faculty: str) -> Dict[str, Any]:
        body = {"name": name, "email": email, "password": password, "course": course, "faculty": faculty}
        return self._request("POST", "/admin/create-admin", json=body)

    def update_user(self, user_id: str, **fields) -> Dict[str, Any]:
        return self._request("PUT", f"/admin/users/{user_id}", json=_camel(fields))

    def delete_user(self, user_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/admin/users/{user_id}")

    def add_book(self, book_name: str, author: str, description: str = "") -> Dict[str, Any]:
        body = {"bookName": book_name, "author": author, "description": description}
        return self._request("POST", "/admin/books", json=body)

    def delete_book(self, book_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/admin/books/{book_id}")

    def total_books(self) -> int:
        return self._request("GET", "/admin/books/stats/total")["total"]


def _error_message(data: Any, fallback: str) -> str:
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return fallback


def _camel(fields: Dict[str, Any]) -> Dict[str, Any]:
    """snake_case keyword arguments to the API's camelCase keys, dropping unset ones"""
    return {to_camel(key): value for key, value in fields.items() if value is not None}


def _page_params(page: int, limit: int, **filters) -> Dict[str, Any]:
    params: Dict[str, Any] = {"page": page, "limit": limit}
    params.update({key: value for key, value in filters.items() if value})
    return params
