import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from sschool.core.database import store_errors
from sschool.core.exceptions import ConflictError, NotFoundError, UnauthenticatedError, ValidationError
from sschool.core.permissions import Identity
from sschool.core.security import PasswordHasher, TokenService
from sschool.models.user import Role, User
from sschool.schemas.user import (
    CreateAdminRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserUpdateRequest,
)
from sschool.services.material_service import material_service
from sschool.services.validation import check_password, clean, normalize_email, parse_id, require
from sschool.utils.pagination import PageParams, PageResult, paginate, search_clause

logger = logging.getLogger(__name__)

EMAIL_EXISTS_MESSAGE = "Email already exists"
USER_NOT_FOUND_MESSAGE = "User not found"
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"

# Text fields matched by the admin user search
USER_SEARCH_COLUMNS = (User.name, User.email, User.course, User.faculty)

# Profile fields a user may change on their own account
PROFILE_FIELDS = ("name", "course", "student_id", "semester", "faculty", "password")


class UserService:
    """Identity store operations.

    Holds the shared password hasher and token service so every code path
    that sets a password uses the same cost factor.
    """

    def __init__(self, hasher: PasswordHasher, tokens: TokenService):
        self.hasher = hasher
        self.tokens = tokens

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def register(self, db: Session, payload: RegisterRequest, role: Optional[Role] = None) -> User:
        """Create an account from a registration form.

        With no explicit ``role`` the body decides: ``"admin"`` creates an
        admin and anything else a student.
        """
        require("Name, email, and password are required", payload.name, payload.email, payload.password)
        if role is None:
            role = Role.ADMIN if payload.role == Role.ADMIN.value else Role.STUDENT
        return self._create(
            db,
            name=payload.name,
            email=payload.email,
            password=payload.password,
            role=role,
            course=payload.course,
            student_id=payload.student_id,
            semester=payload.semester,
            faculty=payload.faculty,
        )

    def create_admin(self, db: Session, payload: CreateAdminRequest) -> User:
        require(
            "Name, email, password, course, and faculty are required",
            payload.name, payload.email, payload.password, payload.course, payload.faculty,
        )
        return self._create(
            db,
            name=payload.name,
            email=payload.email,
            password=payload.password,
            role=Role.ADMIN,
            course=payload.course,
            faculty=payload.faculty,
        )

    def _create(
        self,
        db: Session,
        *,
        name: str,
        email: str,
        password: str,
        role: Role,
        course: Optional[str] = None,
        student_id: Optional[str] = None,
        semester: Optional[str] = None,
        faculty: Optional[str] = None,
    ) -> User:
        email = normalize_email(email)
        check_password(password)

        # Friendly pre-check; the unique index below is the real guarantee
        if self._find_by_email(db, email) is not None:
            raise ConflictError(EMAIL_EXISTS_MESSAGE)

        user = User(
            name=clean(name),
            email=email,
            hashed_password=self.hasher.hash(password),
            role=role,
            course=clean(course) or "",
            student_id=clean(student_id) or "",
            semester=clean(semester) or "",
            faculty=clean(faculty) or "",
        )
        with store_errors(db, EMAIL_EXISTS_MESSAGE):
            db.add(user)
            db.commit()
            db.refresh(user)
        logger.info(f"Created {role.value} account {user.id}")
        return user

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, db: Session, payload: LoginRequest) -> tuple[str, User]:
        """Check credentials and issue a token.

        Unknown email and wrong password produce the same error so the
        response does not reveal which accounts exist.
        """
        require("Email and password are required", payload.email, payload.password)
        user = self._find_by_email(db, payload.email.strip().lower())
        if user is None or not self.hasher.verify(payload.password, user.hashed_password):
            raise UnauthenticatedError(INVALID_CREDENTIALS_MESSAGE)

        token = self.tokens.issue(user.id, Role(user.role).value)
        return token, user

    # ------------------------------------------------------------------
    # Admin management
    # ------------------------------------------------------------------

    @staticmethod
    def list_users(
        db: Session,
        params: PageParams,
        role: Optional[str] = None,
        search: Optional[str] = None,
    ) -> PageResult:
        stmt = select(User).order_by(User.created_at.desc())
        role_filter = Role.parse(role) if role else None
        if role_filter is not None:
            stmt = stmt.where(User.role == role_filter)
        clause = search_clause(USER_SEARCH_COLUMNS, search)
        if clause is not None:
            stmt = stmt.where(clause)
        return paginate(db, stmt, params)

    def get_user(self, db: Session, user_id: str) -> User:
        return self._get(db, parse_id(user_id, "user"))

    def update_user(self, db: Session, user_id: str, payload: UserUpdateRequest) -> User:
        key = parse_id(user_id, "user")
        updates = self._build_updates(payload.model_dump(exclude_unset=True, exclude_none=True))
        user = self._get(db, key)
        return self._apply_updates(db, user, updates)

    def delete_user(self, db: Session, user_id: str) -> User:
        """Delete a user, then their materials.

        The two deletes are separate commits. If the second one fails the
        user is already gone and the orphaned materials are left for the
        scheduled sweep.
        """
        key = parse_id(user_id, "user")
        user = self._get(db, key)
        with store_errors(db):
            db.delete(user)
            db.commit()
        removed = material_service.delete_for_owner(db, key)
        logger.info(f"Deleted user {key} and {removed} materials")
        return user

    # ------------------------------------------------------------------
    # Self service
    # ------------------------------------------------------------------

    def get_profile(self, db: Session, identity: Identity) -> User:
        user = db.get(User, identity.id)
        if user is None:
            raise NotFoundError("User profile not found")
        return user

    def update_profile(self, db: Session, identity: Identity, payload: ProfileUpdateRequest) -> User:
        fields = payload.model_dump(exclude_unset=True, exclude_none=True)
        updates = self._build_updates({k: v for k, v in fields.items() if k in PROFILE_FIELDS})
        user = self._get(db, identity.id)
        return self._apply_updates(db, user, updates)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _find_by_email(db: Session, email: str) -> Optional[User]:
        return db.scalars(select(User).where(User.email == email)).first()

    @staticmethod
    def _get(db: Session, key: str) -> User:
        user = db.get(User, key)
        if user is None:
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)
        return user

    def _build_updates(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Validate a partial update before touching the store.

        Same rules as creation: trimmed text, regex-checked lowercased email,
        minimum password length, role restricted to the enum.
        """
        updates: dict[str, Any] = {}
        for field, value in fields.items():
            if field == "name":
                name = clean(value)
                if not name:
                    raise ValidationError("Name cannot be empty")
                updates["name"] = name
            elif field == "email":
                updates["email"] = normalize_email(value)
            elif field == "role":
                role = Role.parse(value)
                if role is None:
                    raise ValidationError("Role must be either student or admin")
                updates["role"] = role
            elif field == "password":
                updates["hashed_password"] = self.hasher.hash(check_password(value))
            elif field in ("course", "student_id", "semester", "faculty"):
                updates[field] = clean(value)
        return updates

    def _apply_updates(self, db: Session, user: User, updates: dict[str, Any]) -> User:
        new_email = updates.get("email")
        if new_email and new_email != user.email:
            existing = self._find_by_email(db, new_email)
            if existing is not None and existing.id != user.id:
                raise ConflictError(EMAIL_EXISTS_MESSAGE)

        for field, value in updates.items():
            setattr(user, field, value)

        with store_errors(db, EMAIL_EXISTS_MESSAGE):
            db.commit()
            db.refresh(user)
        return user
