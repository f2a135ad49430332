from datetime import datetime
from typing import List, Optional

from sschool.models.user import Role
from sschool.schemas.common import CamelModel


class RegisterRequest(CamelModel):
    # Presence is checked by the service so missing fields get one combined message
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    course: Optional[str] = None
    student_id: Optional[str] = None
    semester: Optional[str] = None
    faculty: Optional[str] = None
    role: Optional[str] = None


class CreateAdminRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    course: Optional[str] = None
    faculty: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserUpdateRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    course: Optional[str] = None
    student_id: Optional[str] = None
    semester: Optional[str] = None
    faculty: Optional[str] = None
    role: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdateRequest(CamelModel):
    """Self-service update; email and role are not accepted here"""

    name: Optional[str] = None
    course: Optional[str] = None
    student_id: Optional[str] = None
    semester: Optional[str] = None
    faculty: Optional[str] = None
    password: Optional[str] = None


class UserResponse(CamelModel):
    id: str
    name: str
    email: str
    role: Role
    course: str = ""
    student_id: str = ""
    semester: str = ""
    faculty: str = ""
    created_at: datetime
    updated_at: Optional[datetime] = None


class UserMessageResponse(CamelModel):
    message: str
    user: UserResponse


class LoginResponse(CamelModel):
    message: str
    token: str
    user: UserResponse


class DashboardStats(CamelModel):
    total_users: int
    total_students: int
    total_admins: int
    total_books: int
    total_materials: int
    recent_users: List[UserResponse]
