from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from sschool.api.dependencies import get_db, get_notifier, get_page_params, get_user_service, require_student
from sschool.core.permissions import Identity
from sschool.models.user import Role
from sschool.schemas.book import BookResponse
from sschool.schemas.common import Page
from sschool.schemas.material import MaterialCreateRequest, MaterialMessageResponse, MaterialResponse
from sschool.schemas.user import ProfileUpdateRequest, RegisterRequest, UserMessageResponse, UserResponse
from sschool.services.book_service import book_service
from sschool.services.material_service import material_service
from sschool.services.notification_service import Notifier, welcome_notification
from sschool.services.user_service import UserService
from sschool.utils.pagination import PageParams

router = APIRouter(prefix="/students", tags=["students"])


@router.post("/register", response_model=UserMessageResponse, status_code=status.HTTP_201_CREATED)
async def register_student(
    payload: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
    notifier: Notifier = Depends(get_notifier),
):
    """Create a student account; any role in the body is ignored"""
    user = users.register(db, payload, role=Role.STUDENT)
    background_tasks.add_task(notifier.enqueue, welcome_notification(user.name, user.email, user.role.value))
    return {"message": "Student account created successfully", "user": user}


@router.get("/profile", response_model=UserResponse)
async def get_own_profile(
    student: Identity = Depends(require_student),
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
):
    return users.get_profile(db, student)


@router.put("/profile", response_model=UserMessageResponse)
async def update_own_profile(
    payload: ProfileUpdateRequest,
    student: Identity = Depends(require_student),
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
):
    """Update name, course, studentId, semester, faculty or password.

    Email and role cannot be changed through this route.
    """
    user = users.update_profile(db, student, payload)
    return {"message": "Profile updated successfully", "user": user}


@router.post("/materials", response_model=MaterialMessageResponse, status_code=status.HTTP_201_CREATED)
async def add_material(
    payload: MaterialCreateRequest,
    student: Identity = Depends(require_student),
    db: Session = Depends(get_db),
):
    material = material_service.add_material(db, student.id, payload)
    return {"message": "Material added successfully", "material": material}


@router.get("/materials", response_model=Page[MaterialResponse])
async def get_own_materials(
    search: Optional[str] = None,
    params: PageParams = Depends(get_page_params),
    student: Identity = Depends(require_student),
    db: Session = Depends(get_db),
):
    """List the caller's own materials, newest first"""
    return material_service.list_materials(db, student.id, params, search).to_dict()


@router.get("/books", response_model=Page[BookResponse])
async def list_books(
    search: Optional[str] = None,
    params: PageParams = Depends(get_page_params),
    student: Identity = Depends(require_student),
    db: Session = Depends(get_db),
):
    return book_service.list_books(db, params, search).to_dict()


@router.get("/books/{book_id}", response_model=BookResponse)
async def get_book(
    book_id: str,
    student: Identity = Depends(require_student),
    db: Session = Depends(get_db),
):
    return book_service.get_book(db, book_id)
