import enum

from sqlalchemy import Column, DateTime, Enum, String

from sschool.core.database import Base, generate_id, utcnow


class Role(str, enum.Enum):
    STUDENT = "student"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value) -> "Role | None":
        """Return the matching role, or None for anything outside the enum"""
        try:
            return cls(value)
        except ValueError:
            return None


class User(Base):
    """
    Identity record for students and admins.

    Emails are lowercased and trimmed before every write, so the unique index
    is effectively case-insensitive. The password is stored only as a bcrypt
    digest and no response schema exposes it.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String, nullable=False)
    # Unique index is the authoritative duplicate-email check
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(
        Enum(Role, name="user_role", native_enum=False, values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=Role.STUDENT,
        index=True,
    )
    course = Column(String, nullable=False, default="")
    student_id = Column(String, nullable=False, default="")
    semester = Column(String, nullable=False, default="")
    faculty = Column(String, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
