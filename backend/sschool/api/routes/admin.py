from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.orm import Session

from sschool.api.dependencies import get_db, get_notifier, get_page_params, get_user_service, require_admin
from sschool.core.permissions import Identity
from sschool.schemas.book import BookCreateRequest, BookMessageResponse, BookResponse, BookUpdateRequest
from sschool.schemas.common import CountResponse, MessageResponse, Page
from sschool.schemas.user import (
    CreateAdminRequest,
    DashboardStats,
    UserMessageResponse,
    UserResponse,
    UserUpdateRequest,
)
from sschool.services.book_service import book_service
from sschool.services.dashboard_service import collect_dashboard_stats
from sschool.services.notification_service import (
    Notifier,
    account_removed_notification,
    account_updated_notification,
    welcome_notification,
)
from sschool.services.user_service import UserService
from sschool.utils.pagination import PageParams

# Every route here requires an admin token
router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# Users
# -----------------------------

@router.post("/create-admin", response_model=UserMessageResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    payload: CreateAdminRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
    notifier: Notifier = Depends(get_notifier),
):
    user = users.create_admin(db, payload)
    background_tasks.add_task(notifier.enqueue, welcome_notification(user.name, user.email, user.role.value))
    return {"message": "Admin created successfully", "user": user}


@router.get("/users", response_model=Page[UserResponse])
async def get_all_users(
    role: Optional[str] = None,
    search: Optional[str] = None,
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
):
    return users.list_users(db, params, role=role, search=search).to_dict()


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user_by_id(
    user_id: str,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
):
    return users.get_user(db, user_id)


@router.put("/users/{user_id}", response_model=UserMessageResponse)
async def update_user(
    user_id: str,
    payload: UserUpdateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
    notifier: Notifier = Depends(get_notifier),
):
    user = users.update_user(db, user_id, payload)
    background_tasks.add_task(notifier.enqueue, account_updated_notification(user.name, user.email))
    return {"message": "User updated successfully", "user": user}


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    users: UserService = Depends(get_user_service),
    notifier: Notifier = Depends(get_notifier),
):
    """Delete a user and cascade to their materials"""
    user = users.delete_user(db, user_id)
    background_tasks.add_task(notifier.enqueue, account_removed_notification(user.name, user.email))
    return {"message": "User and associated materials deleted successfully"}


@router.get("/dashboard/stats", response_model=DashboardStats)
async def get_dashboard_stats(request: Request):
    return await collect_dashboard_stats(request.app.state.session_factory)


# Books
# -----------------------------

@router.get("/books", response_model=Page[BookResponse])
async def list_books(
    search: Optional[str] = None,
    params: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
):
    return book_service.list_books(db, params, search).to_dict()


@router.get("/books/stats/total", response_model=CountResponse)
async def total_books(db: Session = Depends(get_db)):
    return {"total": book_service.count_books(db)}


@router.get("/books/{book_id}", response_model=BookResponse)
async def get_book(book_id: str, db: Session = Depends(get_db)):
    return book_service.get_book(db, book_id)


@router.post("/books", response_model=BookMessageResponse, status_code=status.HTTP_201_CREATED)
async def create_book(
    payload: BookCreateRequest,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    book = book_service.create_book(db, payload, creator_id=admin.id)
    return {"message": "Book created successfully", "book": book}


@router.put("/books/{book_id}", response_model=BookMessageResponse)
async def update_book(book_id: str, payload: BookUpdateRequest, db: Session = Depends(get_db)):
    book = book_service.update_book(db, book_id, payload)
    return {"message": "Book updated successfully", "book": book}


@router.delete("/books/{book_id}", response_model=MessageResponse)
async def delete_book(book_id: str, db: Session = Depends(get_db)):
    book_service.delete_book(db, book_id)
    return {"message": "Book deleted successfully"}
